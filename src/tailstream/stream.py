"""Readable stream over a file that may still be growing.

``TailStream`` opens a path (or adopts a descriptor), polls its size and emits
every appended byte exactly once, in order. Once the producer calls
``signal_no_more_writes()`` the stream ends as soon as a poll finds nothing
left to read.

Consumption follows two models:

- push: attach a ``data`` listener and receive ``bytes`` chunks;
- pull: wait for ``readable`` (or use ``async for``) and call ``read()``.

Event order is always ``open``, data, ``end``, ``close``; a failure emits a
single ``error`` and nothing after it. Everything runs on one asyncio loop:
listeners are called on the loop thread and may call ``destroy()`` at any time.
"""
from __future__ import annotations

import asyncio
import dataclasses
import os
from collections import deque
from typing import Any, AsyncIterator, Callable, Deque, Optional, Union

from .config import TailOptions
from .errors import FileTruncatedError
from .events import EventEmitter
from .handle import FileHandle
from .logutil import get_logger
from .poller import GrowthPoller, PollOutcome, PollSchedule
from .state import TERMINAL, Effect, Signal, State, transition

PathArg = Union[str, "os.PathLike[str]"]


class CompletionTracker:
    """One-way "no more data will be written" flag."""

    def __init__(self) -> None:
        self.requested = False

    def signal(self) -> bool:
        if self.requested:
            return False
        self.requested = True
        return True


class TailStream(EventEmitter):
    def __init__(
        self,
        path: Optional[PathArg] = None,
        options: Optional[TailOptions] = None,
        *,
        loop: Optional[asyncio.AbstractEventLoop] = None,
        **overrides: Any,
    ) -> None:
        super().__init__()
        opts = options or TailOptions()
        if overrides:
            opts = dataclasses.replace(opts, **overrides)
        if path is None and opts.fd is None:
            raise TypeError("TailStream requires a path or an fd")
        self.options = opts
        self.path: Optional[str] = os.fspath(path) if path is not None else None
        self._loop = loop or asyncio.get_running_loop()
        self._handle = FileHandle(self.path, self._loop, fd=opts.fd)
        self._schedule = PollSchedule(
            self._loop,
            opts.start_delay,
            opts.poll_interval,
            opts.backoff,
            opts.backoff_factor,
            opts.max_interval,
        )
        self._poller = GrowthPoller(self._handle, self._schedule)
        self._completion = CompletionTracker()
        self._state = State.INITIALIZING
        self._epoch = 0
        self._destroyed = False
        self.read_offset = opts.start
        self.known_size = opts.start
        self.error: Optional[BaseException] = None
        self.bytes_emitted = 0
        # Chunks not yet pulled by read(); always empty while flowing
        self._buffer: Deque[bytes] = deque()
        self._buffered = 0
        self._end_pending = False
        self._ended = False
        self._waiter: Optional[asyncio.Future] = None
        self._closed: asyncio.Future = self._loop.create_future()
        self._poll_task: Optional[asyncio.Task] = None

        self._dispatch(Signal.START)
        self._open_task: Optional[asyncio.Task] = self._loop.create_task(self._open())
        self._open_task.add_done_callback(self._on_task_done)

    def __repr__(self) -> str:
        return f"<TailStream {self._name()} state={self._state.value} offset={self.read_offset}>"

    # -- inspection ---------------------------------------------------------

    @property
    def fd(self) -> Optional[int]:
        return self._handle.fd

    @property
    def auto_close(self) -> bool:
        return self.options.auto_close

    @property
    def state(self) -> State:
        return self._state

    @property
    def done_requested(self) -> bool:
        return self._completion.requested

    @property
    def destroyed(self) -> bool:
        return self._destroyed

    @property
    def poller(self) -> GrowthPoller:
        return self._poller

    @property
    def schedule(self) -> PollSchedule:
        return self._schedule

    @property
    def buffered(self) -> int:
        return self._buffered

    # -- public operations ----------------------------------------------------

    def signal_no_more_writes(self) -> None:
        """Declare that the file will not grow any more.

        The stream still delivers every byte up to the size seen by the next
        poll before it ends. Calls after the first are ignored.
        """
        if not self._completion.signal():
            return
        get_logger("stream").debug("%s: no more writes expected", self._name())
        schedule = self._schedule
        if self._state is State.ACTIVE and schedule.current_interval > schedule.interval:
            # Backed off while idle; come back at the base interval.
            schedule.reset()
            if schedule.pending:
                schedule.schedule(self._start_tick)

    done = signal_no_more_writes

    def destroy(self) -> None:
        """Tear the stream down from any state. Repeated calls are no-ops."""
        self._destroyed = True
        self._buffer.clear()
        self._buffered = 0
        self._end_pending = False
        self._dispatch(Signal.DESTROY)

    def read(self, size: Optional[int] = None) -> Optional[bytes]:
        """Pull buffered bytes, at most ``size`` of them; ``None`` when nothing is buffered."""
        if size is not None and size <= 0:
            raise ValueError(f"size must be positive, got {size}")
        if not self._buffer:
            return None
        joined = b"".join(self._buffer)
        self._buffer.clear()
        if size is None or size >= len(joined):
            data = joined
        else:
            data = joined[:size]
            self._buffer.append(joined[size:])
        self._buffered = len(joined) - len(data)
        if not self._buffer and self._end_pending:
            self._loop.call_soon(self._guarded, self._finish)
        return data

    async def chunks(self) -> AsyncIterator[bytes]:
        """Yield chunks until end of stream; re-raise the stream error if one occurs."""
        while True:
            chunk = self.read()
            if chunk is not None:
                yield chunk
                continue
            if self.error is not None:
                raise self.error
            if self._ended or self._state in TERMINAL:
                return
            await self._wait()

    def __aiter__(self) -> AsyncIterator[bytes]:
        return self.chunks()

    async def wait_closed(self) -> None:
        """Wait until the stream reaches Closed or Errored."""
        await asyncio.shield(self._closed)

    # -- lifecycle ----------------------------------------------------------------

    def _name(self) -> str:
        return self.path if self.path is not None else f"fd {self.options.fd}"

    def _dispatch(self, signal: Signal) -> None:
        previous = self._state
        state, effects = transition(
            previous,
            signal,
            auto_close=self.options.auto_close,
            emit_close=self.options.emit_close,
        )
        self._state = state
        self._epoch += 1
        epoch = self._epoch
        if state is not previous:
            get_logger("stream").debug("%s: %s -> %s (%s)", self._name(), previous.value, state.value, signal.value)
        for effect in effects:
            if epoch != self._epoch:
                # A listener re-entered the machine; its transition wins.
                break
            self._apply(effect)
        if state is not previous:
            if self._state in TERMINAL and not self._closed.done():
                self._closed.set_result(None)
            self._wake()

    def _apply(self, effect: Effect) -> None:
        if effect is Effect.CANCEL_TIMER:
            self._schedule.cancel()
            task, self._poll_task = self._poll_task, None
            if task is not None and not task.done():
                task.cancel()
        elif effect is Effect.SCHEDULE_POLL:
            self._schedule.schedule(self._start_tick)
        elif effect is Effect.RELEASE:
            self._handle.close()
        elif effect is Effect.EMIT_OPEN:
            self.emit("open", self._handle.fd)
        elif effect is Effect.EMIT_END:
            self._ended = True
            self.emit("end")
        elif effect is Effect.EMIT_CLOSE:
            self.emit("close")
        elif effect is Effect.EMIT_ERROR:
            if not self.emit("error", self.error):
                get_logger("stream").warning("%s: unhandled stream error: %r", self._name(), self.error)

    def _fail(self, exc: BaseException) -> None:
        if self._state in TERMINAL:
            get_logger("stream").debug("%s: ignoring %r after %s", self._name(), exc, self._state.value)
            return
        self.error = exc
        self._dispatch(Signal.FAILED)

    def _guarded(self, callback: Callable[[], None]) -> None:
        """Run a deferred loop callback; listener errors fail the stream as they do in a poll."""
        try:
            callback()
        except Exception as exc:  # noqa: BLE001
            self._fail(exc)

    def _on_task_done(self, task: asyncio.Task) -> None:
        if task is self._poll_task:
            self._poll_task = None
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            self._fail(exc)

    async def _open(self) -> None:
        try:
            size = await self._handle.open()
        except OSError as exc:
            self._fail(exc)
            return
        if self._state is not State.OPENING:
            return
        if size < self.read_offset:
            self._fail(FileTruncatedError(self.path, self.read_offset, size))
            return
        self.known_size = size
        self._dispatch(Signal.OPENED)

    # -- polling ------------------------------------------------------------------

    def _start_tick(self) -> None:
        self._poll_task = self._loop.create_task(self._tick())
        self._poll_task.add_done_callback(self._on_task_done)

    async def _tick(self) -> None:
        size = await self._poller.observe()
        if self._state is not State.ACTIVE:
            return
        outcome = self._poller.decide(size, self.read_offset, self._completion.requested)
        if outcome is PollOutcome.DRAINED:
            self._drain()
            return
        if outcome is PollOutcome.GROWTH:
            # Snapshot first; bytes appended from here on wait for the next tick.
            self.known_size = size
            data = await self._poller.read(self.read_offset, size)
            if self._state is not State.ACTIVE:
                return
            self._push(data)
            self.read_offset = size
        if self._state is State.ACTIVE:
            self._dispatch(Signal.RESCHEDULE)

    def _drain(self) -> None:
        if self._buffer:
            # The consumer still has to pull; end follows the read that empties the buffer.
            self._end_pending = True
            return
        self._finish()

    def _finish(self) -> None:
        if self._state is not State.ACTIVE:
            return
        self._end_pending = False
        self._dispatch(Signal.DRAINED)
        if self._state is State.DRAINING:
            self._dispatch(Signal.FINISHED)

    # -- buffering ------------------------------------------------------------------

    def _flowing(self) -> bool:
        return self.listener_count("data") > 0

    def _push(self, data: bytes) -> None:
        self.bytes_emitted += len(data)
        was_empty = not self._buffer
        self._buffer.append(data)
        self._buffered += len(data)
        if self._flowing():
            self._flush()
        elif was_empty:
            self.emit("readable")
        self._wake()

    def _flush(self) -> None:
        while self._buffer and self._flowing() and self._state not in TERMINAL:
            chunk = self._buffer.popleft()
            self._buffered -= len(chunk)
            self.emit("data", chunk)
        if not self._buffer and self._end_pending:
            self._finish()

    def _listener_added(self, event: str) -> None:
        if event == "data" and self._buffer:
            self._loop.call_soon(self._guarded, self._flush)

    async def _wait(self) -> None:
        if self._waiter is None or self._waiter.done():
            self._waiter = self._loop.create_future()
        await self._waiter

    def _wake(self) -> None:
        if self._waiter is not None and not self._waiter.done():
            self._waiter.set_result(None)


def create_tail_stream(
    path: Optional[PathArg] = None,
    options: Optional[TailOptions] = None,
    *,
    loop: Optional[asyncio.AbstractEventLoop] = None,
    **overrides: Any,
) -> TailStream:
    """Open ``path`` for tailing; keyword overrides are applied on top of ``options``."""
    return TailStream(path, options, loop=loop, **overrides)


create_read_stream = create_tail_stream


__all__ = ["CompletionTracker", "TailStream", "create_tail_stream", "create_read_stream"]
