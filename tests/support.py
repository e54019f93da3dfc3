"""Fakes and builders shared by the engine tests."""
import asyncio
from datetime import datetime, timezone

from exam_engine.audio import MirroredMediaElement
from exam_engine.errors import AudioPlaybackError, StoreError, TestNotFoundError
from exam_engine.store import AnswerRow, ResultRow
from exam_engine.tree import Chapter, ChapterType, Piece, Question, TestInfo, TestTree

FIXED_NOW = datetime(2026, 1, 5, 9, 30, tzinfo=timezone.utc)


def fixed_clock() -> datetime:
    return FIXED_NOW


def make_question(
    qid: str,
    qtype: ChapterType = ChapterType.GRAMMAR,
    answer: str = "A",
    points: int = 1,
    idx: int = 0,
) -> Question:
    return Question(
        id=qid,
        idx=idx,
        text=f"Question {qid}",
        options=("A", "B", "C", "D"),
        answer=answer,
        question_type=qtype,
        points=points,
        hint=f"hint {qid}",
        explanation=f"explanation {qid}",
    )


def listening_chapter(idx: int = 0, duration: int | None = 600) -> Chapter:
    lq = ChapterType.LISTENING
    return Chapter(
        id=f"c{idx}",
        idx=idx,
        type=lq,
        title="Listening",
        duration_seconds=duration,
        pieces=(
            Piece(
                id="p1",
                idx=0,
                audio_url="/audio/p1.mp3",
                transcript="secret transcript",
                questions=(make_question("l1", lq, idx=0), make_question("l2", lq, idx=1)),
            ),
            Piece(
                id="p2",
                idx=1,
                audio_url="/audio/p2.mp3",
                questions=(make_question("l3", lq),),
            ),
        ),
    )


def reading_chapter(idx: int = 1, duration: int | None = 600) -> Chapter:
    rq = ChapterType.READING
    return Chapter(
        id=f"c{idx}",
        idx=idx,
        type=rq,
        title="Reading",
        duration_seconds=duration,
        pieces=(
            Piece(
                id="p3",
                idx=0,
                passage_title="Bees",
                passage="1. Bees dance.\n\n2. Bees sting.",
                questions=(make_question("r1", rq, idx=0), make_question("r2", rq, idx=1)),
            ),
        ),
    )


def grammar_chapter(idx: int = 2, duration: int | None = 600, count: int = 3) -> Chapter:
    return Chapter(
        id=f"c{idx}",
        idx=idx,
        type=ChapterType.GRAMMAR,
        title="Grammar",
        duration_seconds=duration,
        questions=tuple(make_question(f"g{n}", idx=n) for n in range(1, count + 1)),
    )


def sample_tree(test_id: str = "t1", **info) -> TestTree:
    """Listening (2 pieces, 3 questions), reading (1 piece, 2), grammar (3)."""
    return TestTree(
        test=TestInfo(id=test_id, title="Practice test", **info),
        chapters=(listening_chapter(), reading_chapter(), grammar_chapter()),
    )


def grammar_tree(test_id: str = "t2", duration: int | None = 600, count: int = 2) -> TestTree:
    return TestTree(
        test=TestInfo(id=test_id, title="Grammar only"),
        chapters=(grammar_chapter(idx=0, duration=duration, count=count),),
    )


class InMemoryStore:
    """Attempt store kept in dicts, with switchable failures."""

    def __init__(self, *trees: TestTree) -> None:
        self.trees = {tree.test.id: tree for tree in trees}
        self.attempts: dict[str, dict[str, object]] = {}
        self.answers: dict[tuple[str, str], AnswerRow] = {}
        self.results: dict[str, ResultRow] = {}
        self.upsert_batches: list[list[str]] = []
        self.result_writes = 0
        self.fail_answers = 0
        self.fail_results = 0
        self.fail_create = False

    async def load_test_tree(self, test_id: str) -> TestTree:
        try:
            return self.trees[test_id]
        except KeyError:
            raise TestNotFoundError(test_id) from None

    async def create_attempt(self, test_id: str, user_id: str | None = None) -> str:
        if self.fail_create:
            raise StoreError("database is locked")
        attempt_id = f"attempt-{len(self.attempts) + 1}"
        self.attempts[attempt_id] = {"test_id": test_id, "user_id": user_id, "completed_at": None}
        return attempt_id

    async def upsert_answers(self, attempt_id: str, rows: list[AnswerRow]) -> None:
        if self.fail_answers:
            self.fail_answers -= 1
            raise StoreError("answers table unavailable")
        self.upsert_batches.append([row.question_id for row in rows])
        for row in rows:
            self.answers[(attempt_id, row.question_id)] = row

    async def upsert_result(self, attempt_id: str, result: ResultRow) -> None:
        if self.fail_results:
            self.fail_results -= 1
            raise StoreError("results table unavailable")
        self.result_writes += 1
        self.results[attempt_id] = result

    async def complete_attempt(self, attempt_id: str, completed_at: datetime) -> None:
        self.attempts[attempt_id]["completed_at"] = completed_at

    def saved(self, attempt_id: str) -> dict[str, str | None]:
        return {
            qid: row.selected_choice
            for (aid, qid), row in self.answers.items()
            if aid == attempt_id
        }


class ManualTicker:
    """Sleep replacement for timers, released one tick at a time."""

    def __init__(self) -> None:
        self._waiters: list[asyncio.Future] = []

    async def sleep(self, _seconds: float) -> None:
        future = asyncio.get_running_loop().create_future()
        self._waiters.append(future)
        await future

    async def tick(self, count: int = 1) -> None:
        for _ in range(count):
            await asyncio.sleep(0)
            waiters, self._waiters = self._waiters, []
            for waiter in waiters:
                if not waiter.done():
                    waiter.set_result(None)
            await asyncio.sleep(0)


async def idle_sleep(_seconds: float) -> None:
    await asyncio.Event().wait()


async def fast_sleep(_seconds: float) -> None:
    await asyncio.sleep(0)


async def run_until(predicate, limit: int = 20000) -> bool:
    for _ in range(limit):
        if predicate():
            return True
        await asyncio.sleep(0)
    return predicate()


class BlockedMedia(MirroredMediaElement):
    """Refuses to play until ``allowed`` is set, like a browser without a user gesture."""

    def __init__(self) -> None:
        super().__init__()
        self.allowed = False

    async def play(self) -> None:
        if not self.allowed:
            raise AudioPlaybackError("NotAllowedError: play() requires a user gesture")
        await super().play()


def sample_payload(title: str = "Imported test", **extra) -> dict:
    """Import payload: listening (2 questions), reading (1), grammar (2, one worth 2 points)."""
    return {
        "title": title,
        "description": "Mock exam",
        "chapters": [
            {
                "type": "listening",
                "title": "Listening",
                "pieces": [
                    {
                        "audio_url": "/audio/1.mp3",
                        "transcript": "hidden transcript",
                        "questions": [
                            {"question_text": "What did he say?", "options": ["A", "B"], "answer": "A"},
                            {"question_text": "Where was he?", "options": ["A", "B"], "answer": "B"},
                        ],
                    }
                ],
            },
            {
                "type": "reading",
                "title": "Reading",
                "duration_seconds": 900,
                "pieces": [
                    {
                        "passage_title": "Bees",
                        "passage": "1. Bees dance.\n\n2. Bees sting.",
                        "questions": [
                            {
                                "question_text": "What do bees do?",
                                "options": ["A", "B"],
                                "answer": "A",
                                "hint": "Paragraph 1",
                                "explanation": "Они танцуют.",
                                "explanation_en": "They dance.",
                            }
                        ],
                    }
                ],
            },
            {
                "type": "grammar",
                "title": "Grammar",
                "questions": [
                    {"question_text": "Pick one", "options": ["A", "B"], "answer": "B", "points": 2},
                    {"question_text": "Pick again", "options": ["A", "B"], "answer": "A"},
                ],
            },
            {"type": "grammar", "title": "Empty", "questions": []},
        ],
        **extra,
    }
