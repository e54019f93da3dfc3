"""Test session engine: loading, navigation, timing, audio lock and scoring."""
from exam_engine.audio import AudioLockController, MediaElement, MirroredMediaElement
from exam_engine.errors import (
    AnswerSaveError,
    AudioPlaybackError,
    ExamEngineError,
    FinalizeError,
    SessionInitError,
    SessionStateError,
    StoreError,
    TestNotFoundError,
    TimerRaceError,
)
from exam_engine.loader import LoadedSession, SessionLoader, normalize_tree
from exam_engine.navigation import NavState, Phase, Transition
from exam_engine.scoring import AttemptRecorder, ScoreSummary, SectionScore, compute_summary
from exam_engine.session import ExamSession
from exam_engine.store import AnswerRow, AttemptStore, ResultRow
from exam_engine.timer import ChapterTimer, TimerWarning
from exam_engine.tree import (
    Chapter,
    ChapterType,
    Paragraph,
    Piece,
    Question,
    TestInfo,
    TestTree,
    Visibility,
)

__all__ = [
    "AnswerRow",
    "AnswerSaveError",
    "AttemptRecorder",
    "AttemptStore",
    "AudioLockController",
    "AudioPlaybackError",
    "Chapter",
    "ChapterTimer",
    "ChapterType",
    "ExamEngineError",
    "ExamSession",
    "FinalizeError",
    "LoadedSession",
    "MediaElement",
    "MirroredMediaElement",
    "NavState",
    "Paragraph",
    "Phase",
    "Piece",
    "Question",
    "ResultRow",
    "ScoreSummary",
    "SectionScore",
    "SessionInitError",
    "SessionLoader",
    "SessionStateError",
    "StoreError",
    "TestInfo",
    "TestNotFoundError",
    "TestTree",
    "TimerRaceError",
    "TimerWarning",
    "Transition",
    "Visibility",
    "compute_summary",
    "normalize_tree",
]
