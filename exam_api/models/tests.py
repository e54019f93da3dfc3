"""Test content Pydantic models (import payloads)."""
from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field

from exam_engine.tree import Visibility


class UnderlinePosition(BaseModel):
    """Character range of ``base_text`` to underline."""

    start: int
    end: int


class ImportedQuestion(BaseModel):
    """A question as it appears in an import file."""

    idx: int | None = None
    question_text: str = Field(..., min_length=1)
    options: list[str] = Field(default_factory=list)
    answer: str = Field(..., min_length=1)
    hint: str | None = None
    explanation: str | None = None
    explanation_en: str | None = None
    points: int = Field(1, ge=0)
    base_text: str | None = None
    underlined_words: list[str] = Field(default_factory=list)
    underlined_positions: list[UnderlinePosition] = Field(default_factory=list)


class ImportedListeningPiece(BaseModel):
    idx: int | None = None
    audio_url: str = Field(..., min_length=1)
    transcript: str | None = None
    questions: list[ImportedQuestion] = Field(default_factory=list)


class ImportedReadingPiece(BaseModel):
    idx: int | None = None
    passage_title: str | None = None
    passage: str = Field(..., min_length=1)
    questions: list[ImportedQuestion] = Field(default_factory=list)


class _ImportedChapterBase(BaseModel):
    idx: int | None = None
    title: str | None = None
    duration_seconds: int | None = Field(None, gt=0)


class GrammarChapter(_ImportedChapterBase):
    type: Literal["grammar"] = "grammar"
    questions: list[ImportedQuestion] = Field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.questions


class ReadingChapter(_ImportedChapterBase):
    type: Literal["reading"] = "reading"
    pieces: list[ImportedReadingPiece] = Field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not any(piece.questions for piece in self.pieces)


class ListeningChapter(_ImportedChapterBase):
    type: Literal["listening"] = "listening"
    pieces: list[ImportedListeningPiece] = Field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not any(piece.questions for piece in self.pieces)


ImportedChapter = Annotated[
    Union[GrammarChapter, ReadingChapter, ListeningChapter],
    Field(discriminator="type"),
]


class TestImport(BaseModel):
    """Model for importing a complete test.

    Chapters come either as one ``chapters`` list or split by type.
    """

    __test__ = False

    title: str = Field(..., min_length=1)
    description: str | None = None
    visibility: Visibility = Visibility.ALL
    is_published: bool = True
    chapters: list[ImportedChapter] = Field(default_factory=list)
    grammar_chapters: list[GrammarChapter] = Field(default_factory=list)
    reading_chapters: list[ReadingChapter] = Field(default_factory=list)
    listening_chapters: list[ListeningChapter] = Field(default_factory=list)

    def all_chapters(self) -> list[GrammarChapter | ReadingChapter | ListeningChapter]:
        """Chapters in submission order, preferring the combined list."""
        if self.chapters:
            return list(self.chapters)
        return [*self.grammar_chapters, *self.reading_chapters, *self.listening_chapters]
