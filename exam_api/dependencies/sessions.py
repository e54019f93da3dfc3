"""Session dependencies for FastAPI."""
from typing import Annotated

from fastapi import Depends, HTTPException, status

from exam_api.config import CHAPTER_DEFAULT_MINUTES, CHAPTER_FALLBACK_MINUTES
from exam_api.database import SessionLocal
from exam_api.services.session_service import SessionRegistry, registry
from exam_api.services.store_service import SqlAttemptStore
from exam_api.utils.validation import validate_id
from exam_engine.loader import SessionLoader
from exam_engine.session import ExamSession


def get_store() -> SqlAttemptStore:
    """Get the attempt store bound to the application database."""
    return SqlAttemptStore(SessionLocal)


def get_loader(
    store: Annotated[SqlAttemptStore, Depends(get_store)],
) -> SessionLoader:
    """Get a session loader using the configured duration defaults."""
    return SessionLoader(store, CHAPTER_DEFAULT_MINUTES, CHAPTER_FALLBACK_MINUTES)


def get_registry() -> SessionRegistry:
    """Get the registry of live sessions."""
    return registry


def get_exam_session(
    attempt_id: str,
    sessions: Annotated[SessionRegistry, Depends(get_registry)],
) -> ExamSession:
    """Get the live session for an attempt.

    Raises:
        HTTPException: 404 if no live session exists for the attempt.
    """
    attempt_id = validate_id("attemptId", attempt_id)
    session = sessions.get(attempt_id)
    if session is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Session not found",
        )
    return session
