"""
Error types raised by the filemon engine.

Every fatal condition inherits from FatalError and carries the process exit
code; main() is the only place that turns one into an exit.
"""
from __future__ import annotations


class FilemonError(Exception):
    """Base exception for all filemon failures."""
    pass


class FatalError(FilemonError):
    """A condition after which the monitor cannot keep running."""

    exit_code = 1


class ConfigError(FatalError):
    """Raised when the startup configuration is unusable."""
    pass


class ChannelInitError(FatalError):
    """Raised when the notification channel cannot be opened."""
    pass


class WatchRegistrationError(FatalError):
    """Raised when a path cannot be subscribed on the channel."""

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Cannot watch {path}: {reason}")


class ChannelClosedError(FatalError):
    """Raised when a read from the channel returns no data at all."""
    pass


class ChannelReadError(FatalError):
    """Raised when reading from the channel fails for any reason but EINTR."""
    pass


class RegistryDesync(FatalError):
    """Raised when an event carries a watch handle the registry never issued."""

    def __init__(self, handle: int):
        self.handle = handle
        super().__init__(f"Cannot find watched path for watch handle {handle}")


class SpawnError(FatalError):
    """Raised when a child process cannot be forked."""
    pass


class CommandTooLong(FilemonError):
    """Raised when an assembled command line exceeds the configured bound.

    Only the current event is skipped; the loop keeps running.
    """

    def __init__(self, length: int, limit: int):
        self.length = length
        self.limit = limit
        super().__init__(f"Command line of {length} bytes exceeds limit of {limit}")
