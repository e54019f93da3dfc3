"""Session-related Pydantic models."""
from typing import Literal

from pydantic import BaseModel, Field


class StartSessionRequest(BaseModel):
    """Model for starting a test session."""

    testId: str = Field(..., min_length=1)
    userId: str | None = None
    isSubscriber: bool | None = None


class AnswerRequest(BaseModel):
    """Model for selecting (or clearing) an answer."""

    questionId: str = Field(..., min_length=1)
    value: str | None = None


class MarkRequest(BaseModel):
    questionId: str = Field(..., min_length=1)


class NavigateRequest(BaseModel):
    """Model for Next/Previous.

    chapterIndex/itemIndex are the position the client was showing; a
    request made against a position that has since changed is dropped.
    """

    confirm: bool = False
    chapterIndex: int | None = None
    itemIndex: int | None = None

    def expected(self) -> tuple[int, int] | None:
        if self.chapterIndex is None or self.itemIndex is None:
            return None
        return self.chapterIndex, self.itemIndex


class GoToRequest(BaseModel):
    questionId: str = Field(..., min_length=1)


class AudioEventRequest(BaseModel):
    """Media event reported by the client's audio element."""

    type: Literal["pause", "seeking", "timeupdate", "ended", "play_failed", "error"]
    position: float | None = Field(None, ge=0)
    reason: str | None = None
