"""Timer-driven growth detection (no inotify, only stat + read).

``PollSchedule`` owns the single outstanding timer of a stream and the interval
policy; ``GrowthPoller`` compares the observed size with the read offset and
runs the read for a growth window. A notification-based detector only needs to
replace these two classes; the lifecycle in ``stream`` does not change.
"""
from __future__ import annotations

import asyncio
import enum
from typing import Callable, Optional

from .errors import FileTruncatedError
from .handle import FileHandle
from .reader import read_window


class PollOutcome(enum.Enum):
    GROWTH = "growth"
    IDLE = "idle"
    DRAINED = "drained"


class PollSchedule:
    def __init__(
        self,
        loop: asyncio.AbstractEventLoop,
        start_delay: float,
        interval: float,
        backoff: str = "fixed",
        backoff_factor: float = 2.0,
        max_interval: Optional[float] = None,
    ) -> None:
        self._loop = loop
        self.start_delay = start_delay
        self.interval = interval
        self.backoff = backoff
        self.backoff_factor = backoff_factor
        self.max_interval = interval if max_interval is None else max(interval, max_interval)
        self.current_interval = interval
        self._timer: Optional[asyncio.TimerHandle] = None
        self._started = False

    @property
    def pending(self) -> bool:
        return self._timer is not None

    def next_delay(self) -> float:
        return self.current_interval if self._started else self.start_delay

    def schedule(self, callback: Callable[[], None]) -> None:
        """Arm the timer, replacing any outstanding one."""
        self.cancel()
        delay = self.next_delay()
        self._started = True
        self._timer = self._loop.call_later(delay, self._fire, callback)

    def _fire(self, callback: Callable[[], None]) -> None:
        self._timer = None
        callback()

    def cancel(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def idle(self) -> None:
        if self.backoff == "escalating":
            self.current_interval = min(self.current_interval * self.backoff_factor, self.max_interval)

    def reset(self) -> None:
        self.current_interval = self.interval


class GrowthPoller:
    def __init__(self, handle: FileHandle, schedule: PollSchedule) -> None:
        self.handle = handle
        self.schedule = schedule
        self.polls = 0
        self.reads = 0
        self.short_reads = 0
        self.bytes_read = 0

    async def observe(self) -> int:
        self.polls += 1
        return await self.handle.size()

    def decide(self, size: int, offset: int, completion_requested: bool) -> PollOutcome:
        if size < offset:
            raise FileTruncatedError(self.handle.path, offset, size)
        if size > offset:
            self.schedule.reset()
            return PollOutcome.GROWTH
        if completion_requested:
            return PollOutcome.DRAINED
        self.schedule.idle()
        return PollOutcome.IDLE

    async def read(self, offset: int, size: int) -> bytes:
        data = await read_window(self.handle, offset, size, self._count_short_read)
        self.reads += 1
        self.bytes_read += len(data)
        return data

    def _count_short_read(self, remaining: int) -> None:
        self.short_reads += 1


__all__ = ["PollOutcome", "PollSchedule", "GrowthPoller"]
