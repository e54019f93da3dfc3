"""In-memory registry of live test sessions and their client views."""
import logging

from exam_engine.audio import MirroredMediaElement
from exam_engine.session import ExamSession
from exam_engine.timing import format_mmss
from exam_engine.tree import ChapterType, Question

logger = logging.getLogger(__name__)


class SessionRegistry:
    """Live sessions keyed by attempt id, owned by the running process."""

    def __init__(self) -> None:
        self._sessions: dict[str, ExamSession] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def add(self, session: ExamSession) -> None:
        """Track a session until its result is written."""
        if session.state.is_finished and session.finalize_error is None:
            return
        session.on_finished = self._release
        self._sessions[session.attempt_id] = session

    def get(self, attempt_id: str) -> ExamSession | None:
        return self._sessions.get(attempt_id)

    def _release(self, session: ExamSession) -> None:
        if self._sessions.pop(session.attempt_id, None) is not None:
            logger.info("Released finished session %s", session.attempt_id)

    async def discard(self, attempt_id: str) -> bool:
        session = self._sessions.pop(attempt_id, None)
        if session is None:
            return False
        await session.close()
        return True

    async def close_all(self) -> None:
        for attempt_id in list(self._sessions):
            await self.discard(attempt_id)
        logger.info("Closed all live sessions")


registry = SessionRegistry()


def _question_view(session: ExamSession, question: Question) -> dict[str, object]:
    # Answers, hints and explanations stay server-side during the session
    return {
        "id": question.id,
        "idx": question.idx,
        "text": question.text,
        "options": list(question.options),
        "points": question.points,
        "baseText": question.base_text,
        "underlines": [{"start": span.start, "end": span.end} for span in question.underlines()],
        "selected": session.state.answers.get(question.id),
        "marked": question.id in session.state.marked,
    }


def _item_view(session: ExamSession) -> dict[str, object] | None:
    chapter = session.current_chapter
    if chapter is None or chapter.item_count == 0:
        return None
    item_index = session.state.item_index
    questions = [_question_view(session, q) for q in chapter.item_questions(item_index)]
    piece = chapter.piece_at(item_index)
    if piece is None:
        return {"questions": questions}
    if chapter.type == ChapterType.LISTENING:
        return {"pieceId": piece.id, "audioUrl": piece.audio_url, "questions": questions}
    return {
        "pieceId": piece.id,
        "passageTitle": piece.passage_title,
        "passage": piece.passage,
        "paragraphs": [{"num": p.num, "text": p.text} for p in piece.paragraphs],
        "questions": questions,
    }


def _summary_view(session: ExamSession) -> dict[str, object] | None:
    summary = session.summary
    if summary is None:
        return None
    return {
        "awarded": summary.awarded,
        "possible": summary.possible,
        "correctCount": summary.correct_count,
        "answeredCount": summary.answered_count,
        "totalQuestions": summary.total_questions,
        "percentage": summary.percentage,
        "sections": [
            {
                "section": section.section.value,
                "awarded": section.awarded,
                "possible": section.possible,
                "correct": section.correct,
                "total": section.total,
                "percentage": section.percentage,
            }
            for section in summary.sections
        ],
    }


def build_view(session: ExamSession) -> dict[str, object]:
    """
    Client view of a session.
    Queued audio commands are handed out once and then cleared.
    """
    chapter = session.current_chapter
    audio = session.audio
    commands = (
        session.media.drain_commands() if isinstance(session.media, MirroredMediaElement) else []
    )
    remaining = session.timer.remaining_seconds if chapter is not None else None
    return {
        "attemptId": session.attempt_id,
        "testId": session.tree.test.id,
        "title": session.tree.test.title,
        "phase": session.phase.value,
        "chapterIndex": session.state.chapter_index,
        "chapterCount": len(session.tree.chapters),
        "itemIndex": session.state.item_index,
        "chapter": None
        if chapter is None
        else {
            "id": chapter.id,
            "type": chapter.type.value,
            "title": chapter.title,
            "durationSeconds": chapter.duration_seconds,
            "itemCount": chapter.item_count,
        },
        "item": _item_view(session),
        "remainingSeconds": remaining,
        "remaining": format_mmss(remaining) if remaining is not None else None,
        "warnings": [
            {
                "thresholdSeconds": warning.threshold_seconds,
                "minutesLeft": warning.minutes_left,
                "message": warning.message,
            }
            for warning in session.warnings
        ],
        "unansweredCount": len(session.unanswered()),
        "needsConfirmation": bool(session.pending_confirmation),
        "unansweredIds": list(session.pending_confirmation),
        "audio": {
            "pieceId": audio.piece_id,
            "locked": audio.locked,
            "playing": audio.playing,
            "manualPlayRequired": audio.manual_play_required,
            "error": audio.last_error,
            "position": audio.last_time,
            "commands": commands,
        },
        "completedAt": session.completed_at.isoformat() if session.completed_at else None,
        "result": _summary_view(session),
        "finalizeError": str(session.finalize_error) if session.finalize_error else None,
    }
