"""Database models."""
from exam_api.models.db.test import Chapter, Piece, Question, Test
from exam_api.models.db.attempt import AnswerRecord, Attempt, Result

__all__ = [
    "Test",
    "Chapter",
    "Piece",
    "Question",
    "Attempt",
    "AnswerRecord",
    "Result",
]
