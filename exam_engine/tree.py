"""Read-only test content tree consumed by the session engine."""
from __future__ import annotations

import enum
import re
from dataclasses import dataclass, field
from typing import Iterator

_PARAGRAPH_SPLIT = re.compile(r"\n{2,}")
_NUMBERED = re.compile(r"^\s*(\d+)\.\s*(.*)$", re.S)


class ChapterType(str, enum.Enum):
    """Section kind of a chapter."""

    LISTENING = "listening"
    READING = "reading"
    GRAMMAR = "grammar"


class Visibility(str, enum.Enum):
    """Who may take a test."""

    ALL = "all"
    SUBSCRIBERS = "subscribers"
    NON_SUBSCRIBERS = "non_subscribers"


@dataclass(frozen=True)
class Question:
    id: str
    idx: int
    text: str
    options: tuple[str, ...]
    answer: str
    question_type: ChapterType
    points: int = 1
    hint: str | None = None
    explanation: str | None = None
    explanation_en: str | None = None
    base_text: str | None = None
    underlined_words: tuple[str, ...] = ()
    underlined_positions: tuple[tuple[int, int], ...] = ()

    def underlines(self) -> tuple[Span, ...]:
        """Underlined spans of ``base_text``, see :func:`underline_spans`."""
        return underline_spans(self.base_text, self.underlined_words, self.underlined_positions)


@dataclass(frozen=True)
class Span:
    start: int
    end: int


@dataclass(frozen=True)
class Paragraph:
    num: int
    text: str


@dataclass(frozen=True)
class Piece:
    """A listening clip or reading passage grouping questions."""

    id: str
    idx: int
    questions: tuple[Question, ...] = ()
    audio_url: str | None = None
    transcript: str | None = None
    passage_title: str | None = None
    passage: str | None = None

    @property
    def paragraphs(self) -> tuple[Paragraph, ...]:
        """Numbered paragraphs of the passage, empty when it is not numbered."""
        return split_paragraphs(self.passage)


@dataclass(frozen=True)
class Chapter:
    id: str
    idx: int
    type: ChapterType
    title: str | None = None
    duration_seconds: int | None = None
    pieces: tuple[Piece, ...] = ()
    questions: tuple[Question, ...] = ()

    @property
    def has_pieces(self) -> bool:
        return self.type in (ChapterType.LISTENING, ChapterType.READING)

    @property
    def item_count(self) -> int:
        """Number of navigable sub-items (pieces, or grammar questions)."""
        return len(self.pieces) if self.has_pieces else len(self.questions)

    def item_questions(self, item_index: int) -> tuple[Question, ...]:
        """Questions displayed together on one sub-item."""
        if self.has_pieces:
            return self.pieces[item_index].questions
        return (self.questions[item_index],)

    def piece_at(self, item_index: int) -> Piece | None:
        if not self.has_pieces or not 0 <= item_index < len(self.pieces):
            return None
        return self.pieces[item_index]

    def all_questions(self) -> tuple[Question, ...]:
        if self.has_pieces:
            return tuple(q for piece in self.pieces for q in piece.questions)
        return self.questions


@dataclass(frozen=True)
class TestInfo:
    id: str
    title: str
    visibility: Visibility = Visibility.ALL
    is_published: bool = True
    description: str | None = None

    __test__ = False

    def is_visible_to(self, is_subscriber: bool | None) -> bool:
        """Check the visibility policy; anonymous callers count as non-subscribers."""
        if self.visibility == Visibility.SUBSCRIBERS:
            return bool(is_subscriber)
        if self.visibility == Visibility.NON_SUBSCRIBERS:
            return not is_subscriber
        return True


@dataclass(frozen=True)
class TestTree:
    """A test with its ordered chapters."""

    test: TestInfo
    chapters: tuple[Chapter, ...] = ()
    _positions: dict[str, tuple[int, int]] = field(
        default_factory=dict, init=False, repr=False, compare=False
    )

    __test__ = False

    def __post_init__(self) -> None:
        for chapter_index, chapter in enumerate(self.chapters):
            for item_index in range(chapter.item_count):
                for question in chapter.item_questions(item_index):
                    self._positions[question.id] = (chapter_index, item_index)

    def iter_questions(self) -> Iterator[Question]:
        for chapter in self.chapters:
            yield from chapter.all_questions()

    @property
    def total_possible(self) -> int:
        return sum(q.points for q in self.iter_questions())

    @property
    def question_count(self) -> int:
        return len(self._positions)

    def locate(self, question_id: str) -> tuple[int, int] | None:
        """Return (chapter_index, item_index) of a question, or None."""
        return self._positions.get(question_id)

    def question(self, question_id: str) -> Question | None:
        position = self.locate(question_id)
        if position is None:
            return None
        chapter_index, item_index = position
        for question in self.chapters[chapter_index].item_questions(item_index):
            if question.id == question_id:
                return question
        return None


def split_paragraphs(passage: str | None) -> tuple[Paragraph, ...]:
    """Split a passage on blank lines into numbered paragraphs.

    Every part has to start with ``N.``; otherwise the passage is not a
    numbered one and an empty tuple is returned.
    """
    if not passage:
        return ()
    paragraphs = []
    for part in _PARAGRAPH_SPLIT.split(passage.strip()):
        part = part.strip()
        if not part:
            continue
        match = _NUMBERED.match(part)
        if match is None:
            return ()
        paragraphs.append(Paragraph(num=int(match.group(1)), text=match.group(2).strip()))
    return tuple(paragraphs)


def _word_spans(text: str, words: tuple[str, ...]) -> tuple[Span, ...]:
    patterns = [re.compile(rf"\b{re.escape(word)}\b", re.I) for word in words if word]
    spans = []
    offset = 0
    while offset < len(text):
        found = None
        for pattern in patterns:
            match = pattern.search(text, offset)
            if match is None or match.end() == match.start():
                continue
            if found is None or match.start() < found.start():
                found = match
        if found is None:
            break
        spans.append(Span(found.start(), found.end()))
        offset = found.end()
    return tuple(spans)


def underline_spans(
    text: str | None,
    words: tuple[str, ...] = (),
    positions: tuple[tuple[int, int], ...] = (),
) -> tuple[Span, ...]:
    """Character spans of ``text`` to underline.

    Explicit positions win over words. Positions are sorted and clamped to
    the text; overlapping or empty spans are dropped. Words match whole
    words, case-insensitively, earliest first.
    """
    if not text:
        return ()
    if positions:
        spans = []
        last_end = 0
        for start, end in sorted(positions):
            start = max(start, last_end, 0)
            end = min(end, len(text))
            if end <= start:
                continue
            spans.append(Span(start, end))
            last_end = end
        return tuple(spans)
    if words:
        return _word_spans(text, words)
    return ()
