"""Error hierarchy for rtmpcast.

Precondition errors (AlreadyRunning, InvalidConfiguration) are raised
synchronously to the caller. Encoder lifecycle problems surface through
session state transitions; EncoderLaunchFailure is additionally raised
from SessionManager.start() once the fallback policy is exhausted.
"""

from __future__ import annotations


class StreamerError(Exception):
    """Base class for all rtmpcast errors."""


class UnsupportedPlatform(StreamerError):
    """Raised when the host is neither macOS nor Linux."""


class AlreadyRunning(StreamerError):
    """Raised when start() is requested while a session is active."""


class InvalidConfiguration(StreamerError):
    """Raised when a capture configuration is malformed."""


class DependencyMissing(StreamerError):
    """Raised when a preflight check fails."""

    def __init__(self, message: str, hint: str = "") -> None:
        super().__init__(message)
        self.hint = hint


class EncoderLaunchFailure(StreamerError):
    """Raised when the encoder process cannot be started.

    Covers both a failed spawn (binary missing, permission denied) and an
    encoder that exits with a non-zero code during the startup window.
    """

    def __init__(
        self,
        message: str,
        exit_code: int | None = None,
        stderr_tail: str = "",
    ) -> None:
        super().__init__(message)
        self.exit_code = exit_code
        self.stderr_tail = stderr_tail


class EncoderRuntimeExit(StreamerError):
    """Records a non-zero encoder exit after the session was running.

    Attached to the session as its error; never raised by the manager.
    """

    def __init__(self, exit_code: int) -> None:
        super().__init__(f"Encoder exited with code {exit_code}")
        self.exit_code = exit_code


class DiscoveryFailure(StreamerError):
    """Raised when a device enumeration command fails."""
