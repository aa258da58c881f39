"""Utility functions, error types and logging."""

from ping_process.utils.errors import (
    CancellationError,
    ConfigurationError,
    ExecutionError,
    KillFailure,
    PingProcessError,
    StartFailure,
)
from ping_process.utils.helpers import (
    clamp_exit_status,
    format_duration,
    trim_output,
)
from ping_process.utils.logger import get_logger, log_performance, setup_logger

__all__ = [
    # Errors
    "CancellationError",
    "ConfigurationError",
    "ExecutionError",
    "KillFailure",
    "PingProcessError",
    "StartFailure",
    # Helpers
    "clamp_exit_status",
    "format_duration",
    "trim_output",
    # Logging
    "get_logger",
    "log_performance",
    "setup_logger",
]
