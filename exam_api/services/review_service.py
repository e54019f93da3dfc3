"""Service layer for results and attempt review."""
from sqlalchemy import select
from sqlalchemy.orm import Session as DbSession, joinedload

from exam_api.models.db.attempt import AnswerRecord, Attempt
from exam_api.models.db.test import Question
from exam_api.utils.time_utils import isoformat


def get_attempt(db: DbSession, attempt_id: str) -> Attempt | None:
    """Get attempt by ID with its result loaded."""
    return db.execute(
        select(Attempt)
        .options(joinedload(Attempt.result))
        .where(Attempt.id == attempt_id)
    ).unique().scalar_one_or_none()


def get_result(db: DbSession, attempt_id: str) -> dict[str, object] | None:
    """Get the stored result of an attempt, or None if not finalized."""
    attempt = get_attempt(db, attempt_id)
    if attempt is None or attempt.result is None:
        return None
    result = attempt.result
    return {
        "attemptId": attempt.id,
        "testId": attempt.test_id,
        "score": result.score,
        "correctCount": result.correct_count,
        "totalQuestions": result.total_questions,
        "totalPossible": result.total_possible,
        "percentage": result.percentage,
        "startedAt": isoformat(attempt.started_at),
        "completedAt": isoformat(attempt.completed_at),
    }


def get_review(db: DbSession, attempt_id: str) -> list[dict[str, object]]:
    """
    Answered questions of an attempt with the correct answers.
    Ordered the way the test presents them.
    """
    rows = db.execute(
        select(AnswerRecord, Question)
        .join(Question, Question.id == AnswerRecord.question_id)
        .where(AnswerRecord.attempt_id == attempt_id)
        .options(joinedload(Question.chapter), joinedload(Question.piece))
    ).all()

    def _order(pair: tuple[AnswerRecord, Question]) -> tuple[int, int, int]:
        question = pair[1]
        piece_idx = question.piece.idx if question.piece is not None else -1
        return question.chapter.idx, piece_idx, question.idx

    items = []
    for record, question in sorted(rows, key=_order):
        items.append(
            {
                "questionId": str(question.id),
                "questionType": record.question_type,
                "questionText": question.question_text,
                "options": question.options,
                "selectedChoice": record.selected_choice,
                "correctAnswer": question.answer,
                "isCorrect": record.is_correct,
                "pointsAwarded": record.points_awarded,
                "hint": question.hint,
                "explanation": question.explanation,
                "explanationEn": question.explanation_en,
            }
        )
    return items
