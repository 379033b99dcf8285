"""Package metadata and public surface for tailstream.

Expose a single source of truth for the version. Prefer reading from
importlib.metadata so that an editable install or wheel always reports
the version declared in pyproject.toml. Fallback to a hardcoded string
to avoid import errors when metadata is unavailable (e.g. direct source
usage without installation).
"""

from __future__ import annotations

from importlib import metadata as _metadata

from .config import TailOptions
from .errors import FileTruncatedError, TailStreamError, TransitionError
from .state import State
from .stream import TailStream, create_read_stream, create_tail_stream

__all__ = [
    "__version__",
    "TailOptions",
    "TailStream",
    "State",
    "TailStreamError",
    "FileTruncatedError",
    "TransitionError",
    "create_tail_stream",
    "create_read_stream",
]

_FALLBACK_VERSION = "0.3.0"  # MUST match pyproject.toml [project].version

try:  # pragma: no cover - success path covered indirectly via version test
	__version__ = _metadata.version("tailstream")  # type: ignore[assignment]
except Exception:  # pragma: no cover - fallback exercised if metadata missing
	__version__ = _FALLBACK_VERSION
