from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

BACKOFF_POLICIES = ("fixed", "escalating")


@dataclass
class TailOptions:
    # Byte offset the first read starts from
    start: int = 0
    # Delay before the first poll after open (seconds)
    start_delay: float = 1.0
    # Interval between polls (seconds); the base interval when escalating
    poll_interval: float = 0.25
    # "fixed" keeps poll_interval; "escalating" grows it on idle ticks
    backoff: str = "fixed"
    backoff_factor: float = 2.0
    max_interval: float = 2.0
    # Adopt an already open descriptor instead of opening the path
    fd: Optional[int] = None
    # Release the descriptor on end/error (destroy always releases)
    auto_close: bool = True
    # Emit "close" when the stream tears down after a successful open
    emit_close: bool = True

    def __post_init__(self) -> None:
        if self.start < 0:
            raise ValueError(f"start must be >= 0, got {self.start}")
        if self.start_delay < 0:
            raise ValueError(f"start_delay must be >= 0, got {self.start_delay}")
        if self.poll_interval < 0:
            raise ValueError(f"poll_interval must be >= 0, got {self.poll_interval}")
        if self.backoff not in BACKOFF_POLICIES:
            raise ValueError(f"backoff must be one of {BACKOFF_POLICIES}, got {self.backoff!r}")
        if self.backoff_factor < 1.0:
            raise ValueError(f"backoff_factor must be >= 1.0, got {self.backoff_factor}")
        if self.max_interval < self.poll_interval:
            # Escalation can never go below the base interval.
            self.max_interval = self.poll_interval
        if self.fd is not None and self.fd < 0:
            raise ValueError(f"fd must be a non-negative descriptor, got {self.fd}")
