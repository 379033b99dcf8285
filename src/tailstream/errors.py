"""Exception types raised or emitted by tail streams.

OS-level failures (missing file, permission denied, EIO, ...) are not wrapped:
the raised ``OSError`` itself is delivered as the ``error`` event payload.
"""
from __future__ import annotations


class TailStreamError(Exception):
    """Base class for tailstream-specific failures."""


class FileTruncatedError(TailStreamError):
    """The file is shorter than bytes already observed or delivered."""

    def __init__(self, path: object, expected: int, size: int) -> None:
        super().__init__(f"{path}: file is {size} bytes, expected at least {expected}")
        self.path = path
        self.expected = expected
        self.size = size


class TransitionError(TailStreamError):
    """A lifecycle signal arrived in a state that cannot accept it."""


__all__ = ["TailStreamError", "FileTruncatedError", "TransitionError"]
