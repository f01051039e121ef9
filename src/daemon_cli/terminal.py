"""Terminal capability detection for client streams.

Streams are probed through the TerminalCapable protocol rather than by
checking for a concrete file type, so pipes, in-memory buffers and sockets
all degrade to "not a terminal" instead of failing.
"""

from __future__ import annotations

import io
import logging
from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable

logger = logging.getLogger(__name__)


@runtime_checkable
class TerminalCapable(Protocol):
    """A stream that can report its descriptor and terminal status."""

    def fileno(self) -> int: ...

    def isatty(self) -> bool: ...


@dataclass(frozen=True)
class TerminalState:
    """Result of probing one stream.

    Attributes:
        fd: OS-level descriptor, 0 when the stream has none
        is_terminal: Whether the descriptor is an interactive terminal
    """

    fd: int = 0
    is_terminal: bool = False


def probe_stream(stream: Any | None) -> TerminalState:
    """Probe a stream for its descriptor and terminal status.

    Never raises. A missing stream, a stream without the capability, or one
    whose descriptor query fails all report ``TerminalState(0, False)``.
    """
    if stream is None or not isinstance(stream, TerminalCapable):
        return TerminalState()

    try:
        fd = stream.fileno()
    except (OSError, ValueError, io.UnsupportedOperation) as e:
        logger.debug(f"Stream {stream!r} has no usable descriptor: {e}")
        return TerminalState()

    try:
        is_terminal = bool(stream.isatty())
    except (OSError, ValueError) as e:
        logger.debug(f"Terminal query failed for fd {fd}: {e}")
        is_terminal = False

    return TerminalState(fd=fd, is_terminal=is_terminal)
