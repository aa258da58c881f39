"""Process execution and management."""

from ping_process.executor.cancellation import (
    CancellationRegistration,
    CancellationToken,
    linked_token,
)
from ping_process.executor.parallel import FanOutExecutor
from ping_process.executor.ping import PingProcess
from ping_process.executor.subprocess import (
    ExecutionHandle,
    ProcessInvoker,
    invoke_process,
)

__all__ = [
    "CancellationRegistration",
    "CancellationToken",
    "ExecutionHandle",
    "FanOutExecutor",
    "PingProcess",
    "ProcessInvoker",
    "invoke_process",
    "linked_token",
]
