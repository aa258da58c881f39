"""
Parallel fan-out of ping runs.

This module runs one independent run per target, all concurrently, and folds
the results into a single aggregate in submission order.
"""

import asyncio
import time
from typing import Awaitable, Callable, Optional, Sequence

from ..models import FanOutResult, FanOutSummary, PingResult
from ..utils import format_duration, get_logger, trim_output

logger = get_logger(__name__)

Runner = Callable[[str], Awaitable[PingResult]]


class FanOutExecutor:
    """
    Runs many targets concurrently and aggregates their results.

    The aggregate exit code is the sum of the member exit codes, so two
    failing targets yield 2 rather than 1. The aggregate output is each
    member's trimmed output in submission order, whatever the completion order.
    Either every run succeeds and one aggregate is returned, or the first
    failure in submission order is raised.
    """

    def __init__(self, runner: Runner):
        """
        Initialize fan-out executor.

        Args:
            runner: Coroutine function running one target to a PingResult
        """
        self.runner = runner
        self._last_summary: Optional[FanOutSummary] = None

    @property
    def last_summary(self) -> Optional[FanOutSummary]:
        """Get summary of the most recent successful fan-out."""
        return self._last_summary

    async def run_many(
        self,
        targets: Sequence[str],
        runner: Optional[Runner] = None,
    ) -> PingResult:
        """
        Run every target concurrently and aggregate the results.

        Cancelling the awaiting task cancels every member run.

        Args:
            targets: Targets in submission order
            runner: Runner for this call only (the executor's runner if None)

        Returns:
            Aggregate PingResult

        Raises:
            ValueError: If no targets are given
            PingProcessError: First member failure in submission order
        """
        target_list = list(targets)
        if not target_list:
            raise ValueError("At least one target is required")

        run = runner or self.runner
        self._last_summary = None
        start_time = time.monotonic()
        logger.info(f"Starting fan-out over {len(target_list)} target(s)")

        # Indexed buffer: gather keeps submission order regardless of completion order
        outcomes = await asyncio.gather(
            *(self._run_member(run, index, target) for index, target in enumerate(target_list)),
            return_exceptions=True,
        )

        failures = [o for o in outcomes if isinstance(o, BaseException)]
        if failures:
            if len(failures) > 1:
                logger.warning(f"{len(failures) - 1} further fan-out failure(s) superseded")
            raise failures[0]

        members = [o for o in outcomes if isinstance(o, FanOutResult)]
        aggregate = self._aggregate(members)

        summary = FanOutSummary(
            targets=target_list,
            results=members,
            total_duration=time.monotonic() - start_time,
        )
        self._last_summary = summary

        logger.info(
            f"Fan-out complete: {len(members)} run(s), aggregate exit code "
            f"{aggregate.exit_code} in {format_duration(summary.total_duration)}"
        )
        return aggregate

    async def _run_member(self, run: Runner, index: int, target: str) -> FanOutResult:
        start_time = time.monotonic()
        try:
            result = await run(target)
        except Exception as e:
            logger.error(f"Fan-out run {index} ({target}) failed: {e}")
            raise

        return FanOutResult(
            index=index,
            target=target,
            result=result,
            duration=time.monotonic() - start_time,
        )

    @staticmethod
    def _aggregate(members: Sequence[FanOutResult]) -> PingResult:
        total = 0
        outputs: list[str] = []
        for member in sorted(members, key=lambda m: m.index):
            total += member.result.exit_code
            output = trim_output(member.result.std_output)
            if output is not None:
                outputs.append(output)

        return PingResult(exit_code=total, std_output=trim_output("\n".join(outputs)))
