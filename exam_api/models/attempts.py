"""Attempt-related Pydantic models."""
from pydantic import BaseModel


class ResultResponse(BaseModel):
    """Model for an attempt's stored result."""

    attemptId: str
    testId: str
    score: int
    correctCount: int
    totalQuestions: int
    totalPossible: int
    percentage: float
    startedAt: str
    completedAt: str | None = None


class ReviewItem(BaseModel):
    """One answered question in the attempt review."""

    questionId: str
    questionType: str
    questionText: str | None = None
    options: list[str] = []
    selectedChoice: str | None = None
    correctAnswer: str | None = None
    isCorrect: bool
    pointsAwarded: int
    hint: str | None = None
    explanation: str | None = None
    explanationEn: str | None = None


class ReviewResponse(BaseModel):
    attemptId: str
    testId: str
    items: list[ReviewItem]
