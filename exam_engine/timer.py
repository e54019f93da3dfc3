"""Per-chapter countdown with warning marks and a single forced expiry."""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable

from exam_engine.timing import format_mmss, warning_thresholds

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TimerWarning:
    chapter_index: int
    threshold_seconds: int
    remaining_seconds: int

    @property
    def minutes_left(self) -> int:
        return -(-self.threshold_seconds // 60)

    @property
    def message(self) -> str:
        return (
            f"{self.minutes_left} minutes left in this section "
            f"({format_mmss(self.remaining_seconds)} remaining)."
        )


ExpireCallback = Callable[[int, int], Awaitable[None]]
WarningCallback = Callable[[TimerWarning], None]


class ChapterTimer:
    """One-second countdown scoped to the current chapter.

    Every :meth:`start` and :meth:`cancel` bumps an epoch. The countdown
    task captures the epoch it was started with and stops as soon as it
    no longer matches, so a timer for a chapter that has been left can
    never tick, warn or expire.
    """

    def __init__(
        self,
        on_expire: ExpireCallback,
        on_warning: WarningCallback | None = None,
        tick_seconds: float = 1.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._on_expire = on_expire
        self._on_warning = on_warning
        self.tick_seconds = tick_seconds
        self._sleep = sleep
        self._epoch = 0
        self._task: asyncio.Task | None = None
        self._alerted: dict[int, set[int]] = {}
        self.chapter_index: int | None = None
        self.duration_seconds = 0
        self.remaining_seconds: int | None = None
        self.expired = False

    @property
    def epoch(self) -> int:
        return self._epoch

    @property
    def active(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self, chapter_index: int, duration_seconds: int) -> int:
        """Cancel any running countdown and start one for ``chapter_index``."""
        self.cancel()
        self._epoch += 1
        epoch = self._epoch
        self.chapter_index = chapter_index
        self.duration_seconds = duration_seconds
        self.remaining_seconds = duration_seconds
        self.expired = False
        self._alerted[chapter_index] = set()
        self._task = asyncio.get_running_loop().create_task(
            self._run(epoch), name=f"chapter-timer-{chapter_index}-{epoch}"
        )
        logger.debug("Timer started for chapter %d (%ds)", chapter_index, duration_seconds)
        return epoch

    def cancel(self) -> None:
        """Stop the countdown. Safe to call from inside the expiry callback."""
        self._epoch += 1
        task, self._task = self._task, None
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()

    def is_current(self, epoch: int) -> bool:
        return epoch == self._epoch

    async def _run(self, epoch: int) -> None:
        while True:
            await self._sleep(self.tick_seconds)
            if not self.is_current(epoch):
                return
            self.remaining_seconds = max(0, (self.remaining_seconds or 0) - 1)
            self._check_warnings()
            if self.remaining_seconds == 0:
                break

        # Detach before the callback so that the transition it drives can
        # cancel this timer without cancelling itself.
        self._task = None
        self.expired = True
        chapter_index = self.chapter_index
        logger.info("Timer expired for chapter %s", chapter_index)
        await self._on_expire(chapter_index, epoch)

    def _check_warnings(self) -> None:
        alerted = self._alerted.setdefault(self.chapter_index, set())
        for threshold in warning_thresholds(self.duration_seconds):
            if self.remaining_seconds <= threshold and threshold not in alerted:
                alerted.add(threshold)
                warning = TimerWarning(self.chapter_index, threshold, self.remaining_seconds)
                logger.info("Chapter %d: %s", self.chapter_index, warning.message)
                if self._on_warning is not None:
                    self._on_warning(warning)
