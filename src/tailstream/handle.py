"""Descriptor ownership for a tail stream.

All blocking calls (open, stat, read) run in the loop's default executor.
A worker marks itself busy under a lock for as long as it uses the descriptor;
``close`` during that window hands the ``os.close`` to the worker, so the fd
number is never freed (and reused) under a running read. Adopted descriptors
are sized with ``fstat``: the path, if any, only names the file.
"""
from __future__ import annotations

import asyncio
import errno
import os
import threading
from typing import Any, Callable, Optional

from .logutil import get_logger

_OPEN_FLAGS = os.O_RDONLY | getattr(os, "O_BINARY", 0)


class FileHandle:
    def __init__(self, path: Optional[str], loop: asyncio.AbstractEventLoop, fd: Optional[int] = None) -> None:
        self.path = path
        self.fd = fd
        self.adopted = fd is not None
        self._loop = loop
        self._released = False
        # Guards _busy/_deferred_close between the loop thread and workers
        self._lock = threading.Lock()
        self._busy = 0
        self._deferred_close: Optional[int] = None

    @property
    def is_open(self) -> bool:
        return self.fd is not None and not self._released

    def _work(self, func: Callable[..., Any], *args: Any) -> Any:
        with self._lock:
            if self._released:
                raise OSError(errno.EBADF, "descriptor released")
            self._busy += 1
        try:
            return func(*args)
        finally:
            with self._lock:
                self._busy -= 1
                fd = None
                if not self._busy:
                    fd, self._deferred_close = self._deferred_close, None
            if fd is not None:
                _close_quietly(fd)

    async def _run(self, func: Callable[..., Any], *args: Any) -> Any:
        return await self._loop.run_in_executor(None, self._work, func, *args)

    async def open(self) -> int:
        """Acquire the descriptor (or adopt the one given) and return the current size.

        Raises the underlying ``OSError`` when the path cannot be opened.
        """
        if self._released:
            raise asyncio.CancelledError()
        if self.fd is None:
            fut = self._loop.run_in_executor(None, os.open, self.path, _OPEN_FLAGS)
            try:
                fd = await asyncio.shield(fut)
            except asyncio.CancelledError:
                # Abandoned mid-open; close the descriptor once it exists.
                fut.add_done_callback(_close_opened)
                raise
            if self._released:
                # Released while the open was in flight; nobody else will close it.
                os.close(fd)
                raise asyncio.CancelledError()
            self.fd = fd
            get_logger("handle").debug("opened %s as fd %d", self.path, fd)
        st = await self._run(os.fstat, self.fd)
        return st.st_size

    async def size(self) -> int:
        """Current size of the file.

        A descriptor opened here is sized through its path so removal is
        noticed; an adopted one is sized through the descriptor itself.
        """
        if self.path is not None and not self.adopted:
            st = await self._run(os.stat, self.path)
        else:
            st = await self._run(os.fstat, self.fd)
        return st.st_size

    async def call(self, func: Callable[..., Any], *args: Any) -> Any:
        """Run ``func(fd, *args)`` in the executor while holding the descriptor."""
        return await self._run(func, self.fd, *args)

    def close(self) -> None:
        """Release the descriptor. Safe to call repeatedly or before open completed."""
        with self._lock:
            if self._released:
                return
            self._released = True
            fd, self.fd = self.fd, None
            deferred = fd is not None and self._busy > 0
            if deferred:
                # The last worker out closes it.
                self._deferred_close = fd
        if fd is None:
            return
        if deferred:
            get_logger("handle").debug("fd %d busy in a worker; close deferred", fd)
        else:
            _close_quietly(fd)
            get_logger("handle").debug("released fd %d", fd)


def _close_quietly(fd: int) -> None:
    try:
        os.close(fd)
    except OSError as exc:
        get_logger("handle").warning("closing fd %d failed: %s", fd, exc)


def _close_opened(fut: asyncio.Future) -> None:
    if not fut.cancelled() and fut.exception() is None:
        _close_quietly(fut.result())


__all__ = ["FileHandle"]
