"""
Custom exceptions for ping-process.

This module defines the exception hierarchy used throughout the application.
Every failure of a process run is one of these, so callers can branch on
intent (cancellation) versus fault (start, execution or kill failure).
"""

from typing import Optional


class PingProcessError(Exception):
    """Base exception for all ping-process errors."""

    def __init__(self, message: str, command: Optional[list[str]] = None):
        """
        Initialize error with the command that was being run.

        Args:
            message: Error message
            command: Command (argv) of the process involved, if any
        """
        super().__init__(message)
        self.command = command

    @property
    def command_line(self) -> Optional[str]:
        """Get the command as a single string."""
        if self.command is None:
            return None
        return " ".join(self.command)


class StartFailure(PingProcessError):
    """The OS could not create the process."""

    pass


class ExecutionError(PingProcessError):
    """Failure while waiting for the process or reading its streams."""

    pass


class CancellationError(PingProcessError):
    """Cancellation was observed before or during the run."""

    def __init__(self, message: str = "Operation was cancelled", command: Optional[list[str]] = None):
        super().__init__(message, command=command)


class KillFailure(PingProcessError):
    """Terminating a process on cancellation failed."""

    pass


class ConfigurationError(PingProcessError):
    """Configuration is invalid or missing."""

    pass
