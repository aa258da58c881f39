"""
Ping runs in synchronous, asynchronous, long-running and fan-out modes.

All modes share the same single-run semantics: build a launch descriptor with
the target as the final argument, capture stdout line by line, and return the
exit code with the trimmed output. They differ only in scheduling.
"""

import asyncio
import concurrent.futures
import threading
from typing import Callable, Optional

from ..config import PingProcessConfig
from ..models import FanOutSummary, PingResult, ProcessSpec
from ..utils import get_logger, log_performance, trim_output
from .cancellation import CancellationToken, linked_token
from .parallel import FanOutExecutor
from .subprocess import LineCallback, ProcessInvoker

logger = get_logger(__name__)

ProgressCallback = Callable[[Optional[str]], None]


class PingProcess:
    """
    Runs the diagnostic executable against one or many targets.

    Owns two worker pools: the default pool used by the await-based and
    detached-wait modes, and a separate pool reserved for long-running
    blocking runs so they cannot starve the default pool. Each fan-out gets
    its own pool with one worker per target.
    """

    def __init__(
        self,
        config: Optional[PingProcessConfig] = None,
        invoker: Optional[ProcessInvoker] = None,
    ):
        """
        Initialize ping runner.

        Args:
            config: Configuration (defaults if None)
            invoker: Process invoker (created from config if None)
        """
        self.config = config or PingProcessConfig.create_default()
        self.invoker = invoker or ProcessInvoker(drain_timeout=self.config.executor.drain_timeout)
        self._pool_lock = threading.Lock()
        self._default_pool: Optional[concurrent.futures.ThreadPoolExecutor] = None
        self._long_running_pool: Optional[concurrent.futures.ThreadPoolExecutor] = None
        self._closed = False
        self.fan_out = FanOutExecutor(self.run_async)

    def build_spec(self, target: str) -> ProcessSpec:
        """
        Build the launch descriptor for one target.

        Args:
            target: Host name or address

        Returns:
            ProcessSpec with the target as the final argument

        Raises:
            ValueError: If the target is blank or looks like an option
        """
        if not target or not target.strip():
            raise ValueError("Target must not be empty")
        if target.startswith("-"):
            raise ValueError(f"Target must not start with '-': {target}")

        ping = self.config.ping
        return ProcessSpec(
            executable=ping.executable,
            arguments=(*ping.arguments, target),
            working_directory=ping.working_directory,
        )

    @log_performance()
    def run(
        self,
        target: str,
        cancel_token: Optional[CancellationToken] = None,
        on_output_line: Optional[LineCallback] = None,
    ) -> PingResult:
        """
        Run against one target, blocking until the process exits.

        Args:
            target: Host name or address
            cancel_token: Cancelling it kills the process
            on_output_line: Optional live view of each stdout line

        Returns:
            PingResult with the trimmed output (None if nothing was printed)

        Raises:
            CancellationError: If cancelled before or during the run
            StartFailure: If the executable cannot be started
            ExecutionError: If the run fails while waiting or reading
            KillFailure: If the process could not be killed on cancellation
        """
        spec = self.build_spec(target)
        exit_code, output = self.invoker.invoke(
            spec,
            on_output_line=on_output_line,
            on_error_line=self._log_error_line,
            cancel_token=cancel_token,
        )
        return PingResult(exit_code=exit_code, std_output=trim_output(output))

    def run_task_async(self, target: str) -> "concurrent.futures.Future[PingResult]":
        """
        Run on the default pool, wait for it, and return the resolved future.

        The caller is blocked for the whole run; the returned future is
        already done and holds either the result or the run's exception.

        Args:
            target: Host name or address

        Returns:
            Completed future
        """
        future = self._get_default_pool().submit(self.run, target)
        concurrent.futures.wait([future])
        return future

    async def run_async(
        self,
        target: str,
        cancel_token: Optional[CancellationToken] = None,
        progress_callback: Optional[ProgressCallback] = None,
    ) -> PingResult:
        """
        Run on the default pool and await completion.

        Args:
            target: Host name or address
            cancel_token: Already cancelled = fail without starting,
                cancelled mid-run = kill and fail
            progress_callback: Called once with the full output after completion

        Returns:
            PingResult

        Raises:
            CancellationError: If cancelled before or during the run
        """
        if cancel_token is not None:
            cancel_token.raise_if_cancelled()

        result = await self._schedule(self._get_default_pool(), target, cancel_token)

        if progress_callback is not None:
            try:
                progress_callback(result.std_output)
            except Exception as e:
                logger.warning(f"Progress callback failed: {e}")

        return result

    async def run_long_running_async(
        self,
        target: str,
        cancel_token: Optional[CancellationToken] = None,
    ) -> PingResult:
        """
        Run on the dedicated long-running pool and await completion.

        Args:
            target: Host name or address
            cancel_token: Already cancelled = fail without starting,
                cancelled mid-run = kill and fail

        Returns:
            PingResult

        Raises:
            CancellationError: If cancelled before or during the run
        """
        if cancel_token is not None:
            cancel_token.raise_if_cancelled()

        return await self._schedule(self._get_long_running_pool(), target, cancel_token)

    async def run_many(self, *targets: str) -> PingResult:
        """
        Run every target concurrently and aggregate the results.

        The aggregate exit code is the sum of the member exit codes; the
        output is each member's trimmed output in submission order.

        Args:
            *targets: Host names or addresses

        Returns:
            Aggregate PingResult

        Raises:
            ValueError: If no targets are given
        """
        if not targets:
            raise ValueError("At least one target is required")

        with self._pool_lock:
            self._check_open()

        # Sized to the fan-out so no member waits for a worker
        pool = concurrent.futures.ThreadPoolExecutor(
            max_workers=len(targets),
            thread_name_prefix="ping-fan-out",
        )

        async def run_member(target: str) -> PingResult:
            return await self._schedule(pool, target, None)

        try:
            return await self.fan_out.run_many(targets, runner=run_member)
        finally:
            # Workers of cancelled members exit once their process is reaped
            pool.shutdown(wait=False)

    @property
    def last_summary(self) -> Optional[FanOutSummary]:
        """Get summary of the most recent successful fan-out."""
        return self.fan_out.last_summary

    async def _schedule(
        self,
        pool: concurrent.futures.ThreadPoolExecutor,
        target: str,
        cancel_token: Optional[CancellationToken],
    ) -> PingResult:
        loop = asyncio.get_running_loop()

        with linked_token(cancel_token) as token:
            future = loop.run_in_executor(pool, self.run, target, token)
            try:
                return await future
            except asyncio.CancelledError:
                # The worker thread keeps running until its process is gone
                logger.info(f"Run for {target} cancelled by its awaiting task")
                try:
                    token.cancel()
                except Exception as e:
                    logger.error(f"Failed to kill run for {target}: {e}")
                raise

    @staticmethod
    def _log_error_line(line: str) -> None:
        logger.debug(f"stderr: {line}")

    def _get_default_pool(self) -> concurrent.futures.ThreadPoolExecutor:
        with self._pool_lock:
            self._check_open()
            if self._default_pool is None:
                self._default_pool = concurrent.futures.ThreadPoolExecutor(
                    max_workers=self.config.executor.max_workers,
                    thread_name_prefix="ping-worker",
                )
            return self._default_pool

    def _get_long_running_pool(self) -> concurrent.futures.ThreadPoolExecutor:
        with self._pool_lock:
            self._check_open()
            if self._long_running_pool is None:
                self._long_running_pool = concurrent.futures.ThreadPoolExecutor(
                    max_workers=self.config.executor.long_running_workers,
                    thread_name_prefix="ping-long-running",
                )
            return self._long_running_pool

    def _check_open(self) -> None:
        if self._closed:
            raise RuntimeError("PingProcess is closed")

    def close(self) -> None:
        """Shut down the worker pools, waiting for in-flight runs."""
        with self._pool_lock:
            self._closed = True
            pools = [p for p in (self._default_pool, self._long_running_pool) if p is not None]
            self._default_pool = None
            self._long_running_pool = None

        for pool in pools:
            pool.shutdown(wait=True)

    def __enter__(self) -> "PingProcess":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    async def __aenter__(self) -> "PingProcess":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await asyncio.get_running_loop().run_in_executor(None, self.close)
