from __future__ import annotations

import os
from typing import Callable, List, Optional

from .errors import FileTruncatedError
from .handle import FileHandle


def _pread(fd: int, length: int, offset: int) -> bytes:
    if hasattr(os, "pread"):
        return os.pread(fd, length, offset)
    # Windows: no pread; the descriptor is single-owner so seek+read is safe.
    os.lseek(fd, offset, os.SEEK_SET)
    return os.read(fd, length)


async def read_window(
    handle: FileHandle,
    start: int,
    end: int,
    on_short_read: Optional[Callable[[int], None]] = None,
) -> bytes:
    """Read exactly the bytes in ``[start, end)``.

    Short reads are retried for the remainder; a read that returns nothing
    before the window is filled means the file shrank underneath us.
    """
    parts: List[bytes] = []
    offset = start
    while offset < end:
        chunk = await handle.call(_pread, end - offset, offset)
        if not chunk:
            raise FileTruncatedError(handle.path, end, offset)
        parts.append(chunk)
        offset += len(chunk)
        if offset < end and on_short_read is not None:
            on_short_read(end - offset)
    return b"".join(parts)


__all__ = ["read_window"]
