"""Chunk sink abstractions.

A sink receives every chunk a tail stream emits. ``pipe`` wires a stream to a
sink and closes the sink once the stream ends, fails or is destroyed.
"""
from __future__ import annotations
from typing import Protocol, List

from ..logutil import get_logger
from ..stream import TailStream

class ChunkSink(Protocol):  # pragma: no cover - simple protocol
    def write(self, chunk: bytes) -> None: ...  # noqa: D401,E701 - protocol stub
    def close(self) -> None: ...

class FileSink:
    """Append chunks to a file, flushing after each write."""

    def __init__(self, path: str) -> None:
        self.path = path
        self._fh = open(path, "ab")

    def write(self, chunk: bytes) -> None:
        self._fh.write(chunk)
        self._fh.flush()

    def close(self) -> None:
        if not self._fh.closed:
            self._fh.close()

class MultiSink:
    def __init__(self, sinks: List[ChunkSink]):
        self._sinks = sinks

    def write(self, chunk: bytes) -> None:
        for s in self._sinks:
            try:
                s.write(chunk)
            except Exception as exc:  # noqa: BLE001
                # Best-effort; individual sink failure should not cascade.
                get_logger("sinks").warning("sink %r failed to write: %s", s, exc)

    def close(self) -> None:
        for s in self._sinks:
            try:
                s.close()
            except Exception as exc:  # noqa: BLE001
                get_logger("sinks").warning("sink %r failed to close: %s", s, exc)

def pipe(stream: TailStream, sink: ChunkSink) -> TailStream:
    """Forward every chunk of ``stream`` to ``sink``; returns the stream."""
    closed = False

    def _close(*_args: object) -> None:
        nonlocal closed
        if not closed:
            closed = True
            sink.close()

    stream.on("data", sink.write)
    stream.once("end", _close)
    stream.once("error", _close)
    stream.once("close", _close)
    return stream

__all__ = ["ChunkSink", "FileSink", "MultiSink", "pipe"]
