"""Test-taking session endpoints."""
import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException

from exam_api.config import AUTOPLAY, TIMER_TICK_SECONDS
from exam_api.dependencies import get_exam_session, get_loader, get_registry
from exam_api.models import (
    AnswerRequest,
    AudioEventRequest,
    GoToRequest,
    MarkRequest,
    NavigateRequest,
    StartSessionRequest,
)
from exam_api.services.session_service import SessionRegistry, build_view
from exam_api.utils import validate_id
from exam_engine.errors import FinalizeError, SessionInitError, SessionStateError
from exam_engine.loader import SessionLoader
from exam_engine.navigation import Transition
from exam_engine.session import ExamSession

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/sessions", tags=["sessions"])

SessionDep = Annotated[ExamSession, Depends(get_exam_session)]


def _transition_response(session: ExamSession, transition: Transition) -> dict[str, object]:
    """Build response for a navigation action; rejected moves are conflicts."""
    if not transition.accepted and not session.pending_confirmation:
        raise HTTPException(status_code=409, detail=transition.reason or "Not allowed")
    return {
        "accepted": transition.accepted,
        "reason": transition.reason,
        "session": build_view(session),
    }


@router.post("")
async def start_session(
    payload: StartSessionRequest,
    loader: Annotated[SessionLoader, Depends(get_loader)],
    sessions: Annotated[SessionRegistry, Depends(get_registry)],
) -> dict[str, object]:
    """Start a test: create the attempt and enter the first chapter."""
    test_id = validate_id("testId", payload.testId)
    try:
        session = await ExamSession.open(
            loader,
            test_id,
            user_id=payload.userId,
            is_subscriber=payload.isSubscriber,
            autoplay=AUTOPLAY,
            tick_seconds=TIMER_TICK_SECONDS,
        )
    except SessionInitError as exc:
        status_code = 404 if str(exc) == "Test not found" else 409
        raise HTTPException(status_code=status_code, detail=f"Cannot start test: {exc}") from exc
    sessions.add(session)
    return build_view(session)


@router.get("/{attempt_id}")
async def get_session(session: SessionDep) -> dict[str, object]:
    """Get current session view."""
    return build_view(session)


@router.post("/{attempt_id}/answers")
async def select_answer(payload: AnswerRequest, session: SessionDep) -> dict[str, object]:
    """Select (or clear, with a null value) the answer to a question."""
    transition = await session.select_answer(payload.questionId, payload.value)
    return _transition_response(session, transition)


@router.post("/{attempt_id}/marks")
async def toggle_mark(payload: MarkRequest, session: SessionDep) -> dict[str, object]:
    """Toggle the review mark of a question."""
    transition = await session.toggle_mark(payload.questionId)
    return _transition_response(session, transition)


@router.post("/{attempt_id}/next")
async def go_next(payload: NavigateRequest, session: SessionDep) -> dict[str, object]:
    """Advance; at a chapter end, unanswered questions need confirm=true."""
    transition = await session.next(confirm=payload.confirm, expected=payload.expected())
    return _transition_response(session, transition)


@router.post("/{attempt_id}/previous")
async def go_previous(payload: NavigateRequest, session: SessionDep) -> dict[str, object]:
    """Go back one item within the current chapter."""
    transition = await session.previous(expected=payload.expected())
    return _transition_response(session, transition)


@router.post("/{attempt_id}/goto")
async def go_to_question(payload: GoToRequest, session: SessionDep) -> dict[str, object]:
    """Jump to an already reached question of the current chapter."""
    transition = await session.go_to(payload.questionId)
    return _transition_response(session, transition)


@router.post("/{attempt_id}/audio/play")
async def play_audio(session: SessionDep) -> dict[str, object]:
    """Manual play trigger (fallback when autoplay is blocked)."""
    started = await session.start_audio()
    return {"started": started, "session": build_view(session)}


@router.post("/{attempt_id}/audio/events")
async def audio_event(payload: AudioEventRequest, session: SessionDep) -> dict[str, object]:
    """Report a media event; the response carries corrective commands."""
    await session.audio_event(payload.type, position=payload.position, reason=payload.reason)
    return build_view(session)


@router.post("/{attempt_id}/finalize")
async def finalize_session(
    session: SessionDep,
    sessions: Annotated[SessionRegistry, Depends(get_registry)],
) -> dict[str, object]:
    """Write the final result (idempotent, retryable)."""
    try:
        await session.finalize()
    except SessionStateError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    except FinalizeError as exc:
        raise HTTPException(
            status_code=503,
            detail="Could not save the result, please retry",
        ) from exc
    view = build_view(session)
    await sessions.discard(session.attempt_id)
    return view
