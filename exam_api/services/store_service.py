"""SQL implementation of the engine's attempt store."""
import logging
import uuid
from contextlib import contextmanager
from datetime import datetime
from typing import Iterator

from fastapi.concurrency import run_in_threadpool
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session as DbSession, selectinload, sessionmaker

from exam_api.models.db.attempt import AnswerRecord, Attempt, Result
from exam_api.models.db.test import Chapter, Piece, Question, Test
from exam_api.utils.time_utils import utc_now
from exam_engine.errors import StoreError, TestNotFoundError
from exam_engine.store import AnswerRow, ResultRow
from exam_engine import tree

logger = logging.getLogger(__name__)


def _question_from_orm(question: Question) -> tree.Question:
    return tree.Question(
        id=str(question.id),
        idx=question.idx,
        text=question.question_text,
        options=tuple(question.options),
        answer=question.answer,
        question_type=tree.ChapterType(question.question_type),
        points=question.points if question.points is not None else 1,
        hint=question.hint,
        explanation=question.explanation,
        explanation_en=question.explanation_en,
        base_text=question.base_text,
        underlined_words=tuple(question.underlined_words),
        underlined_positions=tuple(question.underlined_positions),
    )


def tree_from_orm(test: Test) -> tree.TestTree:
    """Map a loaded Test row (with chapters, pieces, questions) to a TestTree."""
    chapters = []
    for chapter in test.chapters:
        chapter_type = chapter.chapter_type
        if chapter_type == tree.ChapterType.GRAMMAR:
            pieces: tuple[tree.Piece, ...] = ()
            questions = tuple(
                _question_from_orm(q) for q in chapter.questions if q.piece_id is None
            )
        else:
            questions = ()
            pieces = tuple(
                tree.Piece(
                    id=str(piece.id),
                    idx=piece.idx,
                    questions=tuple(_question_from_orm(q) for q in piece.questions),
                    audio_url=piece.audio_url,
                    transcript=piece.transcript,
                    passage_title=piece.passage_title,
                    passage=piece.passage,
                )
                for piece in chapter.pieces
            )
        chapters.append(
            tree.Chapter(
                id=str(chapter.id),
                idx=chapter.idx,
                type=chapter_type,
                title=chapter.title,
                duration_seconds=chapter.duration_seconds,
                pieces=pieces,
                questions=questions,
            )
        )
    info = tree.TestInfo(
        id=test.id,
        title=test.title,
        visibility=tree.Visibility(test.visibility),
        is_published=test.is_published,
        description=test.description,
    )
    return tree.TestTree(test=info, chapters=tuple(chapters))


def load_test(db: DbSession, test_id: str) -> Test | None:
    """Get test by ID with its whole content tree loaded."""
    return db.execute(
        select(Test)
        .options(
            selectinload(Test.chapters)
            .selectinload(Chapter.pieces)
            .selectinload(Piece.questions),
            selectinload(Test.chapters).selectinload(Chapter.questions),
        )
        .where(Test.id == test_id)
    ).scalar_one_or_none()


class SqlAttemptStore:
    """
    Attempt store backed by the application database.
    Each operation runs its sync ORM work in the threadpool and reports
    database failures as StoreError.
    """

    def __init__(self, session_factory: sessionmaker) -> None:
        self.session_factory = session_factory

    @contextmanager
    def _session(self) -> Iterator[DbSession]:
        db = self.session_factory()
        try:
            yield db
        except SQLAlchemyError as exc:
            db.rollback()
            raise StoreError(str(exc)) from exc
        finally:
            db.close()

    # Test tree

    async def load_test_tree(self, test_id: str) -> tree.TestTree:
        return await run_in_threadpool(self._load_test_tree, test_id)

    def _load_test_tree(self, test_id: str) -> tree.TestTree:
        with self._session() as db:
            test = load_test(db, test_id)
            if test is None:
                raise TestNotFoundError(f"Test {test_id} not found")
            return tree_from_orm(test)

    # Attempts

    async def create_attempt(self, test_id: str, user_id: str | None = None) -> str:
        return await run_in_threadpool(self._create_attempt, test_id, user_id)

    def _create_attempt(self, test_id: str, user_id: str | None) -> str:
        with self._session() as db:
            attempt = Attempt(id=uuid.uuid4().hex, test_id=test_id, user_id=user_id)
            db.add(attempt)
            db.commit()
            return attempt.id

    async def complete_attempt(self, attempt_id: str, completed_at: datetime) -> None:
        await run_in_threadpool(self._complete_attempt, attempt_id, completed_at)

    def _complete_attempt(self, attempt_id: str, completed_at: datetime) -> None:
        with self._session() as db:
            attempt = db.get(Attempt, attempt_id)
            if attempt is None:
                raise StoreError(f"Attempt {attempt_id} not found")
            attempt.completed_at = completed_at
            db.commit()

    # Answers and results

    async def upsert_answers(self, attempt_id: str, rows: list[AnswerRow]) -> None:
        await run_in_threadpool(self._upsert_answers, attempt_id, rows)

    def _upsert_answers(self, attempt_id: str, rows: list[AnswerRow]) -> None:
        if not rows:
            return
        with self._session() as db:
            question_ids = [int(row.question_id) for row in rows]
            existing = {
                record.question_id: record
                for record in db.execute(
                    select(AnswerRecord).where(
                        AnswerRecord.attempt_id == attempt_id,
                        AnswerRecord.question_id.in_(question_ids),
                    )
                ).scalars()
            }
            for row in rows:
                question_id = int(row.question_id)
                record = existing.get(question_id)
                if record is None:
                    record = AnswerRecord(attempt_id=attempt_id, question_id=question_id)
                    db.add(record)
                    existing[question_id] = record
                record.question_type = row.question_type
                record.selected_choice = row.selected_choice
                record.is_correct = row.is_correct
                record.points_awarded = row.points_awarded
                record.answered_at = row.answered_at or utc_now()
            db.commit()
        logger.debug("Upserted %d answers for attempt %s", len(rows), attempt_id)

    async def upsert_result(self, attempt_id: str, result: ResultRow) -> None:
        await run_in_threadpool(self._upsert_result, attempt_id, result)

    def _upsert_result(self, attempt_id: str, result: ResultRow) -> None:
        with self._session() as db:
            record = db.execute(
                select(Result).where(Result.attempt_id == attempt_id)
            ).scalar_one_or_none()
            if record is None:
                record = Result(attempt_id=attempt_id)
                db.add(record)
            record.score = result.score
            record.correct_count = result.correct_count
            record.total_questions = result.total_questions
            record.total_possible = result.total_possible
            record.percentage = result.percentage
            db.commit()
