"""Metrics helper for TailStream.

Provides a lightweight, dependency-free snapshot of internal counters suitable
for exposure via HTTP or logging. Avoids mutating the stream.
"""
from __future__ import annotations

from typing import Dict, Any

from .stream import TailStream


def stream_metrics(stream: TailStream) -> Dict[str, Any]:
    poller = stream.poller
    schedule = stream.schedule
    return {
        "path": stream.path,
        "state": stream.state.value,
        "read_offset": stream.read_offset,
        "known_size": stream.known_size,
        "buffered": stream.buffered,
        "bytes_emitted": stream.bytes_emitted,
        "done_requested": stream.done_requested,
        "destroyed": stream.destroyed,
        "error": repr(stream.error) if stream.error is not None else None,
        "polls": poller.polls,
        "reads": poller.reads,
        "short_reads": poller.short_reads,
        "bytes_read": poller.bytes_read,
        "poll_interval": schedule.current_interval,
        "timer_pending": schedule.pending,
        "config": {
            "start": stream.options.start,
            "start_delay": stream.options.start_delay,
            "poll_interval": stream.options.poll_interval,
            "backoff": stream.options.backoff,
            "backoff_factor": stream.options.backoff_factor,
            "max_interval": stream.options.max_interval,
            "auto_close": stream.options.auto_close,
            "emit_close": stream.options.emit_close,
        },
    }

__all__ = ["stream_metrics"]
