"""
ping-process

Runs the system ping executable and captures its exit code and output,
synchronously, asynchronously, on a dedicated long-running pool, or fanned
out across many targets, with cooperative cancellation.
"""

__version__ = "0.1.0"

from ping_process.executor import CancellationToken, PingProcess, ProcessInvoker
from ping_process.models import PingResult, ProcessSpec, ProcessState
from ping_process.utils import (
    CancellationError,
    ConfigurationError,
    ExecutionError,
    KillFailure,
    PingProcessError,
    StartFailure,
    get_logger,
    setup_logger,
)

__all__ = [
    "__version__",
    # Execution
    "CancellationToken",
    "PingProcess",
    "ProcessInvoker",
    # Models
    "PingResult",
    "ProcessSpec",
    "ProcessState",
    # Errors
    "CancellationError",
    "ConfigurationError",
    "ExecutionError",
    "KillFailure",
    "PingProcessError",
    "StartFailure",
    # Logging
    "get_logger",
    "setup_logger",
]
