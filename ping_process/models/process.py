"""
Data models for process launches.

This module contains the launch descriptor and lifecycle states of a spawned
process.
"""

import shlex
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional


class ProcessState(str, Enum):
    """Lifecycle state of a spawned process."""

    NOT_STARTED = "not_started"
    RUNNING = "running"
    COMPLETED = "completed"
    KILLED = "killed"
    FAILED_TO_START = "failed_to_start"

    @property
    def is_terminal(self) -> bool:
        """Check if no further transition is possible."""
        return self in (ProcessState.COMPLETED, ProcessState.KILLED, ProcessState.FAILED_TO_START)


# Allowed lifecycle transitions; terminal states have none
STATE_TRANSITIONS: dict[ProcessState, tuple[ProcessState, ...]] = {
    ProcessState.NOT_STARTED: (ProcessState.RUNNING, ProcessState.FAILED_TO_START),
    ProcessState.RUNNING: (ProcessState.COMPLETED, ProcessState.KILLED),
    ProcessState.COMPLETED: (),
    ProcessState.KILLED: (),
    ProcessState.FAILED_TO_START: (),
}


@dataclass(frozen=True)
class ProcessSpec:
    """Immutable launch descriptor for one external process."""

    executable: str
    arguments: tuple[str, ...] = ()
    working_directory: Optional[Path] = None

    @property
    def command(self) -> list[str]:
        """Get command as argv list."""
        return [self.executable, *self.arguments]

    @property
    def command_line(self) -> str:
        """Get command as a single shell-quoted string for diagnostics."""
        return shlex.join(self.command)
