import asyncio

import pytest

from exam_engine.errors import SessionInitError
from exam_engine.loader import SessionLoader, normalize_tree
from exam_engine.timing import format_mmss, resolve_duration, warning_thresholds
from exam_engine.tree import (
    Chapter,
    ChapterType,
    Piece,
    Span,
    TestInfo,
    TestTree,
    Visibility,
    split_paragraphs,
    underline_spans,
)
from tests.support import (
    InMemoryStore,
    grammar_chapter,
    listening_chapter,
    reading_chapter,
    sample_tree,
)


def _unordered_tree(test_id: str = "t9") -> TestTree:
    return TestTree(
        test=TestInfo(id=test_id, title="Unordered"),
        chapters=(
            grammar_chapter(idx=2, duration=None),
            listening_chapter(idx=0, duration=None),
            reading_chapter(idx=1, duration=None),
        ),
    )


def test_tree_locates_questions(tree: TestTree) -> None:
    assert tree.locate("l1") == (0, 0)
    assert tree.locate("l3") == (0, 1)
    assert tree.locate("r2") == (1, 0)
    assert tree.locate("g3") == (2, 2)
    assert tree.locate("nope") is None
    assert tree.question("r1").question_type == ChapterType.READING
    assert tree.question_count == 8
    assert tree.total_possible == 8


def test_chapter_items() -> None:
    listening = listening_chapter()
    grammar = grammar_chapter()
    assert listening.item_count == 2
    assert [q.id for q in listening.item_questions(0)] == ["l1", "l2"]
    assert listening.piece_at(1).id == "p2"
    assert listening.piece_at(5) is None
    assert grammar.item_count == 3
    assert [q.id for q in grammar.item_questions(1)] == ["g2"]
    assert grammar.piece_at(0) is None


def test_visibility_policy() -> None:
    everyone = TestInfo(id="a", title="a")
    members = TestInfo(id="b", title="b", visibility=Visibility.SUBSCRIBERS)
    guests = TestInfo(id="c", title="c", visibility=Visibility.NON_SUBSCRIBERS)
    assert everyone.is_visible_to(None) and everyone.is_visible_to(True)
    assert members.is_visible_to(True)
    assert not members.is_visible_to(None)
    assert guests.is_visible_to(None) and guests.is_visible_to(False)
    assert not guests.is_visible_to(True)


def test_split_paragraphs() -> None:
    paragraphs = split_paragraphs("1. Bees dance.\n\n2. Bees sting.\n")
    assert [(p.num, p.text) for p in paragraphs] == [(1, "Bees dance."), (2, "Bees sting.")]
    assert split_paragraphs("Intro text.\n\n1. Numbered.") == ()
    assert split_paragraphs(None) == ()
    assert reading_chapter().pieces[0].paragraphs[1].num == 2


def test_underline_positions_are_clamped() -> None:
    text = "He go to school"
    spans = underline_spans(text, positions=((10, 99), (3, 5), (-2, 1)))
    assert spans == (Span(0, 1), Span(3, 5), Span(10, 15))
    assert underline_spans("abcdefgh", positions=((0, 4), (2, 6), (7, 7))) == (Span(0, 4), Span(4, 6))
    assert underline_spans(None, positions=((0, 1),)) == ()


def test_underline_words_match_whole_words() -> None:
    text = "The cat sat on the mat"
    assert underline_spans(text, words=("the", "mat")) == (Span(0, 3), Span(15, 18), Span(19, 22))
    assert underline_spans("concatenate cat", words=("cat",)) == (Span(12, 15),)
    assert underline_spans("a b", words=("a",), positions=((2, 3),)) == (Span(2, 3),)
    assert underline_spans("plain text") == ()


def test_resolve_duration() -> None:
    assert resolve_duration(90, 0) == 90
    assert resolve_duration(None, 0) == 13 * 60
    assert resolve_duration(0, 2) == 20 * 60
    assert resolve_duration(None, 7) == 10 * 60
    assert resolve_duration(None, 9) == 20 * 60
    assert resolve_duration(None, 3, defaults={3: 15}) == 15 * 60
    assert resolve_duration(None, 1, defaults=(5,), fallback_minutes=7) == 7 * 60


def test_warning_thresholds() -> None:
    assert warning_thresholds(20 * 60) == (600, 300)
    assert warning_thresholds(25 * 60) == (600, 300)
    assert warning_thresholds(13 * 60) == (300,)
    assert warning_thresholds(10 * 60) == (300,)
    assert warning_thresholds(9 * 60) == ()


def test_format_mmss() -> None:
    assert format_mmss(65) == "01:05"
    assert format_mmss(20 * 60) == "20:00"
    assert format_mmss(-3) == "00:00"
    assert format_mmss(None) == "00:00"


def test_normalize_orders_chapters_and_resolves_durations() -> None:
    tree = normalize_tree(_unordered_tree())
    assert [c.type for c in tree.chapters] == [
        ChapterType.LISTENING,
        ChapterType.READING,
        ChapterType.GRAMMAR,
    ]
    assert [c.duration_seconds for c in tree.chapters] == [780, 780, 1200]
    assert tree.locate("g1") == (2, 0)


def test_normalize_drops_empty_chapters() -> None:
    raw = TestTree(
        test=TestInfo(id="t", title="t"),
        chapters=(
            Chapter(id="empty", idx=0, type=ChapterType.READING, pieces=()),
            Chapter(
                id="hollow",
                idx=1,
                type=ChapterType.LISTENING,
                pieces=(Piece(id="px", idx=0, audio_url="/a.mp3"),),
            ),
            grammar_chapter(idx=2, duration=None),
        ),
    )
    tree = normalize_tree(raw)
    assert [c.id for c in tree.chapters] == ["c2"]
    assert tree.chapters[0].duration_seconds == 13 * 60


def test_loader_creates_attempt() -> None:
    store = InMemoryStore(_unordered_tree())
    loaded = asyncio.run(SessionLoader(store).load("t9", user_id="u1"))
    assert loaded.attempt_id in store.attempts
    assert store.attempts[loaded.attempt_id]["user_id"] == "u1"
    assert loaded.tree.chapters[0].type == ChapterType.LISTENING


def test_loader_uses_configured_defaults() -> None:
    store = InMemoryStore(_unordered_tree())
    loaded = asyncio.run(SessionLoader(store, default_minutes=(1,), fallback_minutes=2).load("t9"))
    assert [c.duration_seconds for c in loaded.tree.chapters] == [60, 120, 120]


def test_loader_unknown_test_creates_nothing() -> None:
    store = InMemoryStore()
    with pytest.raises(SessionInitError) as exc_info:
        asyncio.run(SessionLoader(store).load("missing"))
    assert str(exc_info.value) == "Test not found"
    assert exc_info.value.test_id == "missing"
    assert store.attempts == {}


def test_loader_rejects_unpublished_test() -> None:
    store = InMemoryStore(sample_tree("t3", is_published=False))
    with pytest.raises(SessionInitError):
        asyncio.run(SessionLoader(store).load("t3"))
    assert store.attempts == {}


def test_loader_applies_visibility() -> None:
    store = InMemoryStore(sample_tree("t4", visibility=Visibility.SUBSCRIBERS))
    loader = SessionLoader(store)
    with pytest.raises(SessionInitError):
        asyncio.run(loader.load("t4", is_subscriber=False))
    loaded = asyncio.run(loader.load("t4", is_subscriber=True))
    assert loaded.tree.test.id == "t4"


def test_loader_rejects_test_without_questions() -> None:
    empty = TestTree(
        test=TestInfo(id="t5", title="Empty"),
        chapters=(Chapter(id="x", idx=0, type=ChapterType.GRAMMAR),),
    )
    store = InMemoryStore(empty)
    with pytest.raises(SessionInitError):
        asyncio.run(SessionLoader(store).load("t5"))
    assert store.attempts == {}


def test_loader_reports_attempt_creation_failure(store: InMemoryStore) -> None:
    store.fail_create = True
    with pytest.raises(SessionInitError) as exc_info:
        asyncio.run(SessionLoader(store).load("t1"))
    assert str(exc_info.value) == "Could not create attempt"
