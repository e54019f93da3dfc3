"""Error taxonomy for the test session engine."""


class ExamEngineError(Exception):
    """Base class for engine errors."""


class SessionInitError(ExamEngineError):
    """The test could not be loaded or the attempt could not be created."""

    def __init__(self, message: str, test_id: str | None = None) -> None:
        super().__init__(message)
        self.test_id = test_id


class AnswerSaveError(ExamEngineError):
    """A bulk upsert of answer records failed.

    Recovered locally: the session keeps going with the in-memory drafts
    and the rows are retried on the next boundary save.
    """

    def __init__(self, message: str, question_ids: list[str] | None = None) -> None:
        super().__init__(message)
        self.question_ids = question_ids or []


class FinalizeError(ExamEngineError):
    """Writing the result or marking the attempt complete failed (retryable)."""

    def __init__(self, message: str, attempt_id: str | None = None) -> None:
        super().__init__(message)
        self.attempt_id = attempt_id


class AudioPlaybackError(ExamEngineError):
    """Autoplay was blocked or the media failed to load."""


class TimerRaceError(ExamEngineError):
    """A chapter timer fired for a chapter that is no longer current."""


class StoreError(Exception):
    """Raised by store implementations for any backend failure."""


class TestNotFoundError(StoreError):
    """The requested test id does not exist."""

    __test__ = False


class SessionStateError(ExamEngineError):
    """The operation is not valid in the session's current phase."""
