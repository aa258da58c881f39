"""
Data models for ping results.

This module contains dataclasses for representing the results of ping runs.
"""

from dataclasses import dataclass, field
from typing import Iterator, Optional, Union


@dataclass(frozen=True)
class PingResult:
    """Exit code and captured stdout of one completed run (or a fan-out aggregate)."""

    exit_code: int
    std_output: Optional[str] = None

    def __iter__(self) -> Iterator[Union[int, Optional[str]]]:
        """Allow ``exit_code, output = result`` unpacking."""
        yield self.exit_code
        yield self.std_output

    @property
    def success(self) -> bool:
        """Check if the run exited with code 0."""
        return self.exit_code == 0

    @property
    def line_count(self) -> int:
        """Get number of captured output lines."""
        if not self.std_output:
            return 0
        return len(self.std_output.splitlines())


@dataclass(frozen=True)
class FanOutResult:
    """Result of one member run of a fan-out."""

    index: int
    target: str
    result: PingResult
    duration: float = 0.0


@dataclass
class FanOutSummary:
    """Summary of a completed fan-out."""

    targets: list[str]
    results: list[FanOutResult] = field(default_factory=list)
    total_duration: float = 0.0

    @property
    def total_runs(self) -> int:
        """Get number of member runs."""
        return len(self.targets)

    @property
    def failed_runs(self) -> int:
        """Get number of member runs with a nonzero exit code."""
        return sum(1 for r in self.results if not r.result.success)

    @property
    def success_rate(self) -> float:
        """Calculate percentage of member runs that exited with code 0."""
        if not self.results:
            return 0.0
        return ((len(self.results) - self.failed_runs) / len(self.results)) * 100
