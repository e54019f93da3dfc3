"""Test session: binds navigation, timer, audio lock and scoring together."""
from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable

from exam_engine import navigation
from exam_engine.audio import AudioLockController, MediaElement, MirroredMediaElement
from exam_engine.errors import FinalizeError, SessionStateError, TimerRaceError
from exam_engine.loader import LoadedSession, SessionLoader
from exam_engine.navigation import (
    AudioEnded,
    AudioStarted,
    BeginNextChapter,
    ConfirmUnanswered,
    EnterChapter,
    EnterItem,
    Event,
    GoTo,
    LeaveChapter,
    NavState,
    Next,
    Phase,
    Previous,
    SaveAnswers,
    SelectAnswer,
    SessionFinished,
    Timeout,
    ToggleMark,
    Transition,
)
from exam_engine.scoring import AttemptRecorder, ScoreSummary
from exam_engine.store import AttemptStore
from exam_engine.timer import ChapterTimer, TimerWarning
from exam_engine.tree import Chapter, ChapterType

logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ExamSession:
    """One student's run through one test.

    All transitions, whether user-driven, timer-driven or media-driven,
    are serialized by a single lock, so a timeout and a manual "Next"
    racing for the same chapter boundary can only advance it once.
    """

    def __init__(
        self,
        loaded: LoadedSession,
        store: AttemptStore,
        media: MediaElement | None = None,
        autoplay: bool = True,
        tick_seconds: float = 1.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self.attempt_id = loaded.attempt_id
        self.tree = loaded.tree
        self.user_id = loaded.user_id
        self.autoplay = autoplay
        self.clock = clock
        self.state = NavState()
        self.recorder = AttemptRecorder(store, self.attempt_id, self.tree, clock)
        self.media = media if media is not None else MirroredMediaElement()
        self.audio = AudioLockController(self.media, on_ended=self._on_audio_ended)
        self.timer = ChapterTimer(
            self._on_timer_expired, self._on_timer_warning, tick_seconds, sleep
        )
        self.warnings: list[TimerWarning] = []
        self.pending_confirmation: tuple[str, ...] = ()
        self.started_at = clock()
        self.completed_at: datetime | None = None
        self.finalize_error: FinalizeError | None = None
        # Called after the result is written; must not re-enter the session
        self.on_finished: Callable[[ExamSession], None] | None = None
        self._lock = asyncio.Lock()

    @classmethod
    async def open(
        cls,
        loader: SessionLoader,
        test_id: str,
        user_id: str | None = None,
        is_subscriber: bool | None = None,
        **options: Any,
    ) -> "ExamSession":
        """Load the test, create the attempt and enter the first chapter."""
        loaded = await loader.load(test_id, user_id=user_id, is_subscriber=is_subscriber)
        session = cls(loaded, loader.store, **options)
        await session.start()
        return session

    # Read-only helpers

    @property
    def phase(self) -> Phase:
        return self.state.phase

    @property
    def current_chapter(self) -> Chapter | None:
        if self.state.is_finished or not self.tree.chapters:
            return None
        return self.tree.chapters[self.state.chapter_index]

    @property
    def summary(self) -> ScoreSummary | None:
        return self.recorder.summary

    def unanswered(self) -> tuple[str, ...]:
        chapter = self.current_chapter
        if chapter is None:
            return ()
        return navigation.unanswered_in_chapter(chapter, self.state.answers)

    def position(self) -> tuple[int, int]:
        return self.state.chapter_index, self.state.item_index

    # User actions

    async def start(self) -> None:
        async with self._lock:
            await self._apply(navigation.start(self.tree))

    async def select_answer(self, question_id: str, value: str | None) -> Transition:
        async with self._lock:
            return await self._dispatch(SelectAnswer(question_id, value))

    async def toggle_mark(self, question_id: str) -> Transition:
        async with self._lock:
            return await self._dispatch(ToggleMark(question_id))

    async def next(self, confirm: bool = False, expected: tuple[int, int] | None = None) -> Transition:
        """Move forward; ``expected`` is the position the caller acted on."""
        observed = self.position()
        async with self._lock:
            stale = self._stale(observed, expected)
            if stale is not None:
                return stale
            return await self._dispatch(Next(confirm=confirm))

    async def previous(self, expected: tuple[int, int] | None = None) -> Transition:
        observed = self.position()
        async with self._lock:
            stale = self._stale(observed, expected)
            if stale is not None:
                return stale
            return await self._dispatch(Previous())

    async def go_to(self, question_id: str) -> Transition:
        async with self._lock:
            return await self._dispatch(GoTo(question_id))

    async def start_audio(self) -> bool:
        """Manual play trigger for the current listening piece."""
        async with self._lock:
            return await self._play_current()

    async def audio_event(
        self,
        kind: str,
        position: float | None = None,
        reason: str | None = None,
    ) -> None:
        """Apply a media event reported by the client's audio element."""
        async with self._lock:
            if self.audio.piece_id is None:
                return
            if isinstance(self.media, MirroredMediaElement):
                self.media.report(current_time=position)
            if kind == "timeupdate" and position is not None:
                self.audio.on_time_update(position)
            elif kind == "seeking" and position is not None:
                self.audio.on_seeking(position)
            elif kind == "pause":
                if isinstance(self.media, MirroredMediaElement):
                    self.media.report(paused=True)
                await self.audio.on_pause()
            elif kind == "ended":
                await self.audio.on_ended()
            elif kind in ("play_failed", "error"):
                self.audio.on_play_failed(reason or kind)
            else:
                logger.debug("Ignoring audio event %r", kind)

    async def finalize(self) -> ScoreSummary:
        """Write the result; idempotent, and retryable after a FinalizeError."""
        async with self._lock:
            if not self.state.is_finished:
                raise SessionStateError("Test is still in progress")
            return await self._finalize()

    async def close(self) -> None:
        """Release the timer and the media element."""
        self.timer.cancel()
        if self.audio.piece_id is not None:
            self.audio.reset()

    # Internals (called with the lock held)

    def _stale(
        self, observed: tuple[int, int], expected: tuple[int, int] | None
    ) -> Transition | None:
        current = self.position()
        if current != observed or (expected is not None and current != tuple(expected)):
            logger.debug("Dropping stale navigation for attempt %s", self.attempt_id)
            return Transition(state=self.state, accepted=False, reason="stale")
        return None

    async def _dispatch(self, event: Event) -> Transition:
        transition = navigation.reduce(self.tree, self.state, event)
        await self._apply(transition)
        return transition

    async def _apply(self, transition: Transition) -> None:
        if not transition.accepted:
            self.pending_confirmation = ()
            for effect in transition.effects:
                if isinstance(effect, ConfirmUnanswered):
                    self.pending_confirmation = effect.question_ids
            return

        # Stop the old chapter before its state is replaced.
        for effect in transition.effects:
            if isinstance(effect, LeaveChapter):
                self.timer.cancel()
                if self.audio.piece_id is not None:
                    self.audio.reset()
                if effect.forced:
                    logger.info(
                        "Chapter %d of attempt %s timed out", effect.chapter_index, self.attempt_id
                    )

        self.state = transition.state
        self.pending_confirmation = ()

        for effect in transition.effects:
            if isinstance(effect, SaveAnswers):
                await self.recorder.save(effect.questions, self.state.answers)
            elif isinstance(effect, EnterChapter):
                self.warnings.clear()
                self.timer.start(effect.chapter_index, effect.duration_seconds)
                logger.info(
                    "Attempt %s entered chapter %d (%ds)",
                    self.attempt_id,
                    effect.chapter_index,
                    effect.duration_seconds,
                )
            elif isinstance(effect, EnterItem):
                await self._enter_item(effect)
            elif isinstance(effect, SessionFinished):
                await self._finish()

        if self.state.phase == Phase.CHAPTER_COMPLETE:
            await self._apply(navigation.reduce(self.tree, self.state, BeginNextChapter()))

    async def _enter_item(self, effect: EnterItem) -> None:
        chapter = self.tree.chapters[effect.chapter_index]
        piece = chapter.piece_at(effect.item_index)
        if chapter.type != ChapterType.LISTENING or piece is None:
            if self.audio.piece_id is not None:
                self.audio.reset()
            return
        if effect.phase == Phase.AWAITING_INTRO:
            self.audio.load(piece.id, piece.audio_url)
            if self.autoplay and piece.audio_url:
                await self._play_current()
        elif self.audio.piece_id is not None:
            # A piece that was already heard is not replayed or resumed.
            self.audio.reset()

    async def _play_current(self) -> bool:
        if self.state.phase not in (Phase.AWAITING_INTRO, Phase.PLAYING_AUDIO):
            return False
        if self.state.phase == Phase.PLAYING_AUDIO and not self.audio.manual_play_required:
            return self.audio.playing
        started = await self.audio.play()
        if started and self.state.phase == Phase.AWAITING_INTRO:
            await self._dispatch(AudioStarted())
        return started

    async def _on_audio_ended(self) -> None:
        await self._dispatch(AudioEnded())

    def _on_timer_warning(self, warning: TimerWarning) -> None:
        self.warnings.append(warning)

    async def _on_timer_expired(self, chapter_index: int, epoch: int) -> None:
        async with self._lock:
            if not self.timer.is_current(epoch):
                logger.debug("Ignoring expiry of a timer that was already replaced")
                return
            if chapter_index != self.state.chapter_index:
                error = TimerRaceError(
                    f"Timer for chapter {chapter_index} fired in chapter {self.state.chapter_index}"
                )
                logger.error("Attempt %s: %s", self.attempt_id, error)
                return
            await self._dispatch(Timeout(chapter_index))

    async def _finish(self) -> None:
        self.completed_at = self.clock()
        self.timer.cancel()
        if self.audio.piece_id is not None:
            self.audio.reset()
        try:
            await self._finalize()
        except FinalizeError as exc:
            logger.warning("Attempt %s finished but is not finalized yet: %s", self.attempt_id, exc)

    async def _finalize(self) -> ScoreSummary:
        try:
            summary = await self.recorder.finalize(
                self.state.answers, self.completed_at or self.clock()
            )
        except FinalizeError as exc:
            self.finalize_error = exc
            raise
        self.finalize_error = None
        if self.on_finished is not None:
            self.on_finished(self)
        return summary
