"""
Blocking subprocess wrapper for diagnostic executable runs.

This module provides lifecycle management for one spawned process:
start, line-oriented capture of stdout and stderr, wait for exit,
kill on cancellation, and cleanup on every exit path.
"""

import subprocess
import sys
import threading
from typing import IO, Callable, Optional

from ..models import STATE_TRANSITIONS, ProcessSpec, ProcessState
from ..utils import (
    CancellationError,
    ExecutionError,
    KillFailure,
    PingProcessError,
    StartFailure,
    get_logger,
)
from .cancellation import CancellationToken

logger = get_logger(__name__)

LineCallback = Callable[[str], None]

# Seconds between liveness checks while waiting for exit
WAIT_POLL_INTERVAL = 0.1

# Hide the console window of the child on Windows
CREATE_NO_WINDOW = getattr(subprocess, "CREATE_NO_WINDOW", 0) if sys.platform.startswith("win") else 0


class ExecutionHandle:
    """
    One in-flight process, owned by the ProcessInvoker call that created it.

    Holds the OS process, one pump thread per redirected stream, the stdout
    line accumulator (written only by the stdout pump) and the lifecycle
    state. Kill requests may arrive from any thread.
    """

    def __init__(self, spec: ProcessSpec):
        """
        Initialize handle for a launch descriptor.

        Args:
            spec: Launch descriptor of the process
        """
        self.spec = spec
        self.process: Optional[subprocess.Popen] = None
        self._state = ProcessState.NOT_STARTED
        self._lock = threading.Lock()
        self._pumps: list[threading.Thread] = []
        self._stdout_lines: list[str] = []
        self._pump_error: Optional[BaseException] = None
        self._kill_error: Optional[BaseException] = None
        self._killed = False

    @property
    def state(self) -> ProcessState:
        """Get current lifecycle state."""
        return self._state

    @property
    def pid(self) -> Optional[int]:
        """Get OS process id, if started."""
        return self.process.pid if self.process else None

    @property
    def is_running(self) -> bool:
        """Check if the process is started and still alive."""
        return self.process is not None and self.process.poll() is None

    @property
    def kill_error(self) -> Optional[BaseException]:
        """Get the exception raised by a failed kill attempt."""
        return self._kill_error

    @property
    def pump_error(self) -> Optional[BaseException]:
        """Get the exception raised by a line callback."""
        return self._pump_error

    @property
    def stdout_text(self) -> Optional[str]:
        """Get accumulated stdout, each line followed by a line terminator."""
        if not self._stdout_lines:
            return None
        return "".join(f"{line}\n" for line in self._stdout_lines)

    def transition(self, new_state: ProcessState) -> None:
        """
        Move to a new lifecycle state.

        Args:
            new_state: Target state

        Raises:
            ExecutionError: If the transition is not allowed
        """
        with self._lock:
            if new_state not in STATE_TRANSITIONS[self._state]:
                raise ExecutionError(
                    f"Invalid process state transition {self._state.value} -> {new_state.value}",
                    command=self.spec.command,
                )
            self._state = new_state

    def start(
        self,
        on_output_line: Optional[LineCallback] = None,
        on_error_line: Optional[LineCallback] = None,
    ) -> None:
        """
        Spawn the process and start pumping its streams.

        Args:
            on_output_line: Called with each stdout line, in arrival order
            on_error_line: Called with each stderr line, in arrival order

        Raises:
            StartFailure: If the OS cannot create the process
        """
        try:
            self.process = subprocess.Popen(
                self.spec.command,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                cwd=self.spec.working_directory,
                shell=False,
                text=True,
                errors="replace",
                bufsize=1,
                creationflags=CREATE_NO_WINDOW,
            )
        except (OSError, ValueError) as e:
            self.transition(ProcessState.FAILED_TO_START)
            logger.error(f"Failed to start '{self.spec.command_line}': {e}")
            raise StartFailure(
                f"Failed to start '{self.spec.command_line}': {e}",
                command=self.spec.command,
            ) from e

        self.transition(ProcessState.RUNNING)
        logger.debug(f"Started process {self.process.pid}: {self.spec.command_line}")

        def on_stdout(line: str) -> None:
            self._stdout_lines.append(line)
            if on_output_line:
                on_output_line(line)

        self._start_pump(self.process.stdout, on_stdout, "stdout")
        self._start_pump(self.process.stderr, on_error_line, "stderr")

    def _start_pump(
        self,
        stream: Optional[IO[str]],
        callback: Optional[LineCallback],
        name: str,
    ) -> None:
        if stream is None:
            return
        pump = threading.Thread(
            target=self._pump,
            args=(stream, callback, name),
            name=f"{name}-pump-{self.pid}",
            daemon=True,
        )
        self._pumps.append(pump)
        pump.start()

    def _pump(self, stream: IO[str], callback: Optional[LineCallback], name: str) -> None:
        """
        Read one stream line by line until EOF.

        After a callback failure the stream is still drained so the child
        never blocks on a full pipe, but no further lines are delivered.
        """
        try:
            for raw_line in iter(stream.readline, ""):
                if callback is None or self._pump_error is not None:
                    continue
                try:
                    callback(raw_line.rstrip("\r\n"))
                except Exception as e:
                    logger.error(f"Line callback for {name} of process {self.pid} failed: {e}")
                    self._pump_error = e
                    self._kill_quietly()
        except (OSError, ValueError) as e:
            # Stream closed underneath us during cleanup
            logger.debug(f"Stopped reading {name} of process {self.pid}: {e}")

    def _kill_quietly(self) -> None:
        try:
            self.kill()
        except KillFailure as e:
            self._kill_error = e

    def kill(self) -> bool:
        """
        Forcibly terminate the process if it is still alive.

        Returns:
            True if a kill signal was sent

        Raises:
            KillFailure: If the OS refuses to terminate the process
        """
        with self._lock:
            if self.process is None or self.process.poll() is not None:
                return False
            try:
                self._send_kill()
            except OSError as e:
                raise KillFailure(
                    f"Error cancelling process {self.process.pid}: {e}",
                    command=self.spec.command,
                ) from e
            self._killed = True

        logger.warning(f"Killed process {self.process.pid}")
        return True

    def _send_kill(self) -> None:
        if self.process is None:
            raise OSError("No process to kill")
        self.process.kill()

    def kill_on_cancel(self) -> None:
        """Cancellation callback: kill the process, recording any failure."""
        try:
            self.kill()
        except KillFailure as e:
            self._kill_error = e
            raise

    def wait(self) -> int:
        """
        Wait for the process to exit.

        Returns immediately if the process has already exited. Stops waiting
        early if a kill attempt has failed.

        Returns:
            Exit code, or -1 if the process could not be reaped
        """
        if self.process is None:
            raise ExecutionError("Process not started", command=self.spec.command)

        returncode = self.process.poll()
        while returncode is None and self._kill_error is None:
            try:
                returncode = self.process.wait(timeout=WAIT_POLL_INTERVAL)
            except subprocess.TimeoutExpired:
                continue

        return -1 if returncode is None else returncode

    def drain(self, timeout: float) -> bool:
        """
        Wait for the stream pumps to reach EOF.

        Args:
            timeout: Maximum seconds to wait per pump

        Returns:
            True if every pump finished
        """
        for pump in self._pumps:
            pump.join(timeout)
        return not any(pump.is_alive() for pump in self._pumps)

    def finish(self) -> ProcessState:
        """
        Record the terminal state of an exited process.

        Returns:
            KILLED if a kill was sent, otherwise COMPLETED
        """
        self.transition(ProcessState.KILLED if self._killed else ProcessState.COMPLETED)
        return self._state

    def close(self, drain_timeout: float) -> None:
        """
        Release the process: kill if alive, reap, stop pumps and close pipes.

        Safe to call on every exit path, including before start.

        Args:
            drain_timeout: Maximum seconds to wait for exit and for each pump
        """
        if self.process is None:
            return

        if self.process.poll() is None:
            try:
                self.kill()
            except KillFailure as e:
                logger.error(f"Cleanup could not kill process {self.pid}: {e}")
            try:
                self.process.wait(timeout=drain_timeout)
            except subprocess.TimeoutExpired:
                logger.error(f"Process {self.pid} still alive after {drain_timeout}s")

        if self._state == ProcessState.RUNNING and self.process.poll() is not None:
            self.finish()

        if not self.drain(drain_timeout):
            # Closing a pipe blocked in readline would block too
            logger.warning(f"Stream pumps of process {self.pid} did not finish")
            return

        for stream in (self.process.stdout, self.process.stderr):
            if stream is not None:
                stream.close()


class ProcessInvoker:
    """
    Runs external processes to completion with line capture and cancellation.

    Every invocation creates its own ExecutionHandle and releases it before
    returning, whatever the outcome.
    """

    def __init__(self, drain_timeout: float = 5.0):
        """
        Initialize invoker.

        Args:
            drain_timeout: Seconds to wait for pumps and reaping during cleanup
        """
        self.drain_timeout = drain_timeout
        self._active: set[ExecutionHandle] = set()
        self._active_lock = threading.Lock()

    @property
    def active_count(self) -> int:
        """Get number of invocations currently holding a process handle."""
        with self._active_lock:
            return len(self._active)

    def invoke(
        self,
        spec: ProcessSpec,
        on_output_line: Optional[LineCallback] = None,
        on_error_line: Optional[LineCallback] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> tuple[int, Optional[str]]:
        """
        Run a process to completion.

        Args:
            spec: Launch descriptor
            on_output_line: Called with each stdout line, in arrival order
            on_error_line: Called with each stderr line, in arrival order
            cancel_token: Cancelling it kills the process

        Returns:
            Tuple of (exit code, accumulated stdout or None)

        Raises:
            CancellationError: If cancelled before start or during the run
            StartFailure: If the process cannot be created
            KillFailure: If killing the process on cancellation failed
            ExecutionError: If waiting or reading fails
        """
        if cancel_token is not None and cancel_token.is_cancelled:
            logger.info(f"Cancelled before start: {spec.command_line}")
            cancel_token.raise_if_cancelled(spec.command)

        handle = ExecutionHandle(spec)
        with self._active_lock:
            self._active.add(handle)

        registration = None
        try:
            logger.info(f"Running: {spec.command_line}")
            handle.start(on_output_line, on_error_line)

            if cancel_token is not None:
                registration = cancel_token.register(handle.kill_on_cancel)

            exit_code = handle.wait()
            handle.drain(self.drain_timeout)

            if handle.kill_error is not None:
                raise KillFailure(
                    f"Error cancelling '{spec.command_line}': {handle.kill_error}",
                    command=spec.command,
                ) from handle.kill_error

            if cancel_token is not None and cancel_token.is_cancelled:
                logger.info(f"Process {handle.pid} cancelled: {spec.command_line}")
                raise CancellationError("Process run was cancelled", command=spec.command)

            if handle.pump_error is not None:
                raise ExecutionError(
                    f"Error running '{spec.command_line}': {handle.pump_error}",
                    command=spec.command,
                ) from handle.pump_error

            handle.finish()
            logger.info(f"Process {handle.pid} exited with code {exit_code}")
            return exit_code, handle.stdout_text

        except PingProcessError:
            raise
        except Exception as e:
            raise ExecutionError(
                f"Error running '{spec.command_line}': {e}",
                command=spec.command,
            ) from e

        finally:
            if registration is not None:
                registration.unregister()
            handle.close(self.drain_timeout)
            with self._active_lock:
                self._active.discard(handle)


def invoke_process(
    spec: ProcessSpec,
    on_output_line: Optional[LineCallback] = None,
    on_error_line: Optional[LineCallback] = None,
    cancel_token: Optional[CancellationToken] = None,
) -> tuple[int, Optional[str]]:
    """
    Convenience function to run one process with a fresh invoker.

    Args:
        spec: Launch descriptor
        on_output_line: Called with each stdout line
        on_error_line: Called with each stderr line
        cancel_token: Cancelling it kills the process

    Returns:
        Tuple of (exit code, accumulated stdout or None)
    """
    return ProcessInvoker().invoke(spec, on_output_line, on_error_line, cancel_token)
