"""Pydantic models."""
from exam_api.models.attempts import (
    ResultResponse,
    ReviewItem,
    ReviewResponse,
)
from exam_api.models.sessions import (
    AnswerRequest,
    AudioEventRequest,
    GoToRequest,
    MarkRequest,
    NavigateRequest,
    StartSessionRequest,
)
from exam_api.models.tests import (
    GrammarChapter,
    ImportedChapter,
    ImportedQuestion,
    ListeningChapter,
    ReadingChapter,
    TestImport,
    UnderlinePosition,
)

__all__ = [
    "AnswerRequest",
    "AudioEventRequest",
    "GoToRequest",
    "GrammarChapter",
    "ImportedChapter",
    "ImportedQuestion",
    "ListeningChapter",
    "MarkRequest",
    "NavigateRequest",
    "ReadingChapter",
    "ResultResponse",
    "ReviewItem",
    "ReviewResponse",
    "StartSessionRequest",
    "TestImport",
    "UnderlinePosition",
]
