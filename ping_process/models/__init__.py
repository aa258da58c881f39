"""Data models for ping-process."""

from ping_process.models.process import STATE_TRANSITIONS, ProcessSpec, ProcessState
from ping_process.models.results import FanOutResult, FanOutSummary, PingResult

__all__ = [
    # Process models
    "ProcessSpec",
    "ProcessState",
    "STATE_TRANSITIONS",
    # Result models
    "FanOutResult",
    "FanOutSummary",
    "PingResult",
]
