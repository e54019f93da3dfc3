"""Audio lock: play once, no pausing and no scrubbing while a clip plays."""
from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, Protocol

from exam_engine.errors import AudioPlaybackError

logger = logging.getLogger(__name__)


class MediaElement(Protocol):
    """The playable media resource the controller drives."""

    src: str | None
    current_time: float
    paused: bool

    async def play(self) -> None:
        """Start playback; raises AudioPlaybackError when refused."""

    def pause(self) -> None: ...

    def seek(self, position: float) -> None: ...

    def load(self) -> None: ...


class MirroredMediaElement:
    """Server-side mirror of a client's audio element.

    Commands issued by the controller update the mirrored state and are
    queued for the client, which applies them and reports its own media
    events back.
    """

    def __init__(self) -> None:
        self.src: str | None = None
        self.current_time = 0.0
        self.paused = True
        self._commands: list[dict[str, Any]] = []

    async def play(self) -> None:
        if not self.src:
            raise AudioPlaybackError("No media source loaded")
        self.paused = False
        self._commands.append({"action": "play"})

    def pause(self) -> None:
        self.paused = True
        self._commands.append({"action": "pause"})

    def seek(self, position: float) -> None:
        self.current_time = position
        self._commands.append({"action": "seek", "position": position})

    def load(self) -> None:
        self.current_time = 0.0
        self.paused = True
        self._commands.append({"action": "load", "src": self.src})

    def report(self, current_time: float | None = None, paused: bool | None = None) -> None:
        """Record state reported by the client."""
        if current_time is not None:
            self.current_time = current_time
        if paused is not None:
            self.paused = paused

    def drain_commands(self) -> list[dict[str, Any]]:
        commands, self._commands = self._commands, []
        return commands


class AudioLockController:
    """Enforces the listen-once policy for the current listening piece."""

    def __init__(
        self,
        media: MediaElement,
        on_ended: Callable[[], Awaitable[None]] | None = None,
    ) -> None:
        self.media = media
        self._on_ended = on_ended
        self.piece_id: str | None = None
        self.locked = False
        self.playing = False
        self.last_time = 0.0
        self.manual_play_required = False
        self.last_error: str | None = None
        self._completed: set[str] = set()

    def is_completed(self, piece_id: str) -> bool:
        return piece_id in self._completed

    def load(self, piece_id: str, url: str | None) -> None:
        """Hard-reset the element and point it at a new piece."""
        self.reset()
        self.piece_id = piece_id
        self.media.src = url
        self.media.load()
        if not url:
            self._fallback(AudioPlaybackError(f"Piece {piece_id} has no audio"))

    def reset(self) -> None:
        """Stop playback, clear the source and release the lock."""
        self.locked = False
        self.playing = False
        self.last_time = 0.0
        self.manual_play_required = False
        self.last_error = None
        self.piece_id = None
        self.media.pause()
        self.media.src = None
        self.media.load()

    async def play(self) -> bool:
        """Begin playback and take the lock.

        Returns False when playback was refused; the controller then waits
        for a manual play trigger instead of failing the session.
        """
        if self.piece_id is None or self.piece_id in self._completed:
            return False
        if self.locked and self.playing:
            return True
        try:
            await self.media.play()
        except AudioPlaybackError as exc:
            self._fallback(exc)
            return False
        self.locked = True
        self.playing = True
        self.manual_play_required = False
        self.last_error = None
        return True

    def on_play_failed(self, reason: str) -> None:
        """The client could not start playback (autoplay blocked, load error)."""
        self._fallback(AudioPlaybackError(reason))

    def _fallback(self, exc: AudioPlaybackError) -> None:
        logger.info("Audio playback refused for piece %s, manual play required: %s", self.piece_id, exc)
        self.locked = False
        self.playing = False
        self.manual_play_required = True
        self.last_error = str(exc)

    async def on_pause(self) -> None:
        if not self.locked:
            self.playing = False
            return
        # Resume from the same position.
        self.media.seek(self.last_time)
        try:
            await self.media.play()
        except AudioPlaybackError as exc:
            self._fallback(exc)

    def on_seeking(self, target: float) -> float:
        """Handle a seek; while locked the position snaps back to the last known one."""
        if self.locked:
            if target != self.last_time:
                self.media.seek(self.last_time)
            return self.last_time
        self.last_time = target
        return target

    def on_time_update(self, position: float) -> None:
        if self.locked:
            self.last_time = max(self.last_time, position)
        else:
            self.last_time = position

    async def on_ended(self) -> None:
        self.locked = False
        self.playing = False
        if self.piece_id is None or self.piece_id in self._completed:
            return
        self._completed.add(self.piece_id)
        if self._on_ended is not None:
            await self._on_ended()
