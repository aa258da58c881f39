"""
Tests for fan-out execution.
"""

import asyncio
import threading
import time

import pytest

from ping_process.executor import FanOutExecutor, PingProcess
from ping_process.models import FanOutSummary, PingResult
from ping_process.utils import CancellationError, StartFailure


def make_runner(results: dict, delays: dict | None = None, calls: list | None = None):
    """Build a fake async runner from canned results."""
    delays = delays or {}

    async def runner(target: str) -> PingResult:
        if calls is not None:
            calls.append(target)
        await asyncio.sleep(delays.get(target, 0))
        outcome = results[target]
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome

    return runner


# === Unit tests with fake runners ===


class TestFanOutExecutor:
    """Test FanOutExecutor aggregation."""

    @pytest.mark.asyncio
    async def test_exit_codes_are_summed(self):
        """Test aggregate exit code is the sum of member exit codes."""
        runner = make_runner(
            {
                "a": PingResult(0, "a ok"),
                "b": PingResult(1, "b failed"),
                "c": PingResult(1, "c failed"),
            }
        )

        result = await FanOutExecutor(runner).run_many(["a", "b", "c"])

        assert result.exit_code == 2

    @pytest.mark.asyncio
    async def test_submission_order_kept(self):
        """Test output follows submission order, not completion order."""
        runner = make_runner(
            {
                "first": PingResult(0, "first output"),
                "second": PingResult(0, "second output"),
                "third": PingResult(0, "third output"),
            },
            delays={"first": 0.3, "second": 0.1, "third": 0.0},
        )

        result = await FanOutExecutor(runner).run_many(["first", "second", "third"])

        assert result.std_output == "first output\nsecond output\nthird output"

    @pytest.mark.asyncio
    async def test_members_trimmed(self):
        """Test each member's output is trimmed before joining."""
        runner = make_runner(
            {
                "a": PingResult(0, "\n  line a  \n\n"),
                "b": PingResult(0, "line b\n"),
            }
        )

        result = await FanOutExecutor(runner).run_many(["a", "b"])

        assert result.std_output == "line a\nline b"

    @pytest.mark.asyncio
    async def test_missing_output_skipped(self):
        """Test members without output add nothing."""
        runner = make_runner({"a": PingResult(0, None), "b": PingResult(0, "b")})

        result = await FanOutExecutor(runner).run_many(["a", "b"])

        assert result.std_output == "b"

    @pytest.mark.asyncio
    async def test_all_outputs_missing(self):
        """Test aggregate output is None when nothing was captured."""
        runner = make_runner({"a": PingResult(0, None)})

        result = await FanOutExecutor(runner).run_many(["a"])

        assert result == PingResult(0, None)

    @pytest.mark.asyncio
    async def test_runs_concurrently(self):
        """Test members overlap instead of running one after another."""
        runner = make_runner(
            {t: PingResult(0, t) for t in ["a", "b", "c", "d"]},
            delays={t: 0.3 for t in ["a", "b", "c", "d"]},
        )

        start = time.monotonic()
        await FanOutExecutor(runner).run_many(["a", "b", "c", "d"])

        assert time.monotonic() - start < 1.0

    @pytest.mark.asyncio
    async def test_first_failure_in_submission_order(self):
        """Test the first failure by position is raised when several fail."""
        runner = make_runner(
            {
                "ok": PingResult(0, "fine"),
                "late": StartFailure("late failure"),
                "early": CancellationError("early failure"),
            },
            delays={"late": 0.0, "early": 0.2},
        )

        with pytest.raises(StartFailure, match="late failure"):
            await FanOutExecutor(runner).run_many(["ok", "late", "early"])

    @pytest.mark.asyncio
    async def test_waits_for_all_before_failing(self):
        """Test every member finishes before the failure is raised."""
        finished = []

        async def runner(target: str) -> PingResult:
            if target == "boom":
                raise StartFailure("boom")
            await asyncio.sleep(0.2)
            finished.append(target)
            return PingResult(0, target)

        with pytest.raises(StartFailure):
            await FanOutExecutor(runner).run_many(["boom", "slow"])

        assert finished == ["slow"]

    @pytest.mark.asyncio
    async def test_no_partial_results(self):
        """Test a failed fan-out records no summary."""
        executor = FanOutExecutor(make_runner({"a": PingResult(0, "a"), "b": StartFailure("x")}))

        with pytest.raises(StartFailure):
            await executor.run_many(["a", "b"])

        assert executor.last_summary is None

    @pytest.mark.asyncio
    async def test_empty_targets(self):
        """Test an empty fan-out is rejected."""
        with pytest.raises(ValueError, match="At least one target"):
            await FanOutExecutor(make_runner({})).run_many([])

    @pytest.mark.asyncio
    async def test_summary(self):
        """Test per-target summary of the last fan-out."""
        executor = FanOutExecutor(
            make_runner({"a": PingResult(0, "a"), "b": PingResult(1, "b")}, delays={"a": 0.1})
        )

        await executor.run_many(["a", "b"])
        summary = executor.last_summary

        assert isinstance(summary, FanOutSummary)
        assert summary.total_runs == 2
        assert summary.failed_runs == 1
        assert summary.success_rate == 50.0
        assert [m.target for m in summary.results] == ["a", "b"]
        assert [m.index for m in summary.results] == [0, 1]
        assert summary.results[0].duration >= 0.1

    @pytest.mark.asyncio
    async def test_cancelling_fan_out_cancels_members(self):
        """Test cancelling the awaiting task cancels every member."""
        cancelled = []

        async def runner(target: str) -> PingResult:
            try:
                await asyncio.sleep(10)
            except asyncio.CancelledError:
                cancelled.append(target)
                raise
            return PingResult(0, target)

        task = asyncio.create_task(FanOutExecutor(runner).run_many(["a", "b", "c"]))
        await asyncio.sleep(0.1)
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task

        assert sorted(cancelled) == ["a", "b", "c"]


    @pytest.mark.asyncio
    async def test_runner_for_one_call(self):
        """Test a per-call runner replaces the default runner."""
        default_calls = []
        executor = FanOutExecutor(make_runner({"a": PingResult(0, "a")}, calls=default_calls))
        override = make_runner({"a": PingResult(1, "override")})

        result = await executor.run_many(["a"], runner=override)

        assert result == PingResult(1, "override")
        assert default_calls == []

    @pytest.mark.asyncio
    async def test_failed_fan_out_clears_summary(self):
        """Test a failure replaces the previous summary with none."""
        executor = FanOutExecutor(make_runner({"a": PingResult(0, "a"), "b": StartFailure("x")}))
        await executor.run_many(["a"])
        assert executor.last_summary is not None

        with pytest.raises(StartFailure):
            await executor.run_many(["a", "b"])

        assert executor.last_summary is None

# === Integration with the fake ping ===


class TestRunMany:
    """Test PingProcess.run_many against the fake ping."""

    @pytest.mark.asyncio
    async def test_identical_successful_targets(self, pinger, report_line_count):
        """Test N successful targets give exit 0 and N reports."""
        targets = ["localhost"] * 4

        result = await pinger.run_many(*targets)

        assert result.exit_code == 0
        assert result.line_count == report_line_count * len(targets)

    @pytest.mark.asyncio
    async def test_each_report_intact(self, pinger, is_report):
        """Test reports are not interleaved with each other."""
        result = await pinger.run_many("alpha", "beta")

        first, second = result.std_output.split("\nPinging beta")
        assert is_report(first)
        assert is_report("Pinging beta" + second)

    @pytest.mark.asyncio
    async def test_order_with_delayed_target(self, pinger):
        """Test a delayed first target still comes first."""
        result = await pinger.run_many("slow-1.0", "fast", "badquick")

        lines = result.std_output.splitlines()
        assert lines[0] == "Pinging slow-1.0 with 32 bytes of data:"
        assert "Pinging fast with 32 bytes of data:" in lines
        assert lines[-1] == "Ping request could not find host badquick. Please check the name and try again."

    @pytest.mark.asyncio
    async def test_failures_add_up(self, pinger):
        """Test two failing hosts give an aggregate exit code of 2."""
        result = await pinger.run_many("badone", "localhost", "badtwo")

        assert result.exit_code == 2

    @pytest.mark.asyncio
    async def test_no_process_left_behind(self, pinger, spawned):
        """Test every member process is reaped."""
        await pinger.run_many("localhost", "badhost", "exit-2")

        assert len(spawned) == 3
        for process in spawned:
            assert process.poll() is not None
            assert process.stdout.closed

    @pytest.mark.asyncio
    async def test_not_capped_by_default_pool(self, config):
        """Test more targets than default workers still run in one wave."""
        config.executor.max_workers = 1
        targets = ["slow-1.0"] * 6

        async with PingProcess(config) as pinger:
            start = time.monotonic()
            result = await pinger.run_many(*targets)
            elapsed = time.monotonic() - start

        assert result.exit_code == 0
        # Six sequential waves would take at least six seconds
        assert elapsed < 3.0

    @pytest.mark.asyncio
    async def test_default_pool_free_during_fan_out(self, config):
        """Test a fan-out does not occupy the default pool."""
        config.executor.max_workers = 1

        async with PingProcess(config) as pinger:
            fan_out = asyncio.create_task(pinger.run_many("slow-3.0", "slow-3.0"))
            await asyncio.sleep(0.3)

            single = await asyncio.wait_for(pinger.run_async("localhost"), timeout=2.0)

            assert not fan_out.done()
            result = await fan_out

        assert single.exit_code == 0
        assert result.exit_code == 0

    @pytest.mark.asyncio
    async def test_members_run_on_fan_out_pool(self, pinger, monkeypatch):
        """Test member runs use the per-call fan-out pool."""
        names = []
        real_run = pinger.run

        def run(*args, **kwargs):
            names.append(threading.current_thread().name)
            return real_run(*args, **kwargs)

        monkeypatch.setattr(pinger, "run", run)

        await pinger.run_many("alpha", "beta")

        assert len(names) == 2
        assert all(name.startswith("ping-fan-out") for name in names)

    @pytest.mark.asyncio
    async def test_last_summary(self, pinger):
        """Test the summary of the last fan-out is kept on the runner."""
        assert pinger.last_summary is None

        await pinger.run_many("alpha", "badbeta")
        summary = pinger.last_summary

        assert summary is not None
        assert [m.target for m in summary.results] == ["alpha", "badbeta"]
        assert summary.failed_runs == 1

    @pytest.mark.asyncio
    async def test_empty_targets(self, pinger):
        """Test an empty fan-out is rejected before any pool is made."""
        with pytest.raises(ValueError, match="At least one target"):
            await pinger.run_many()

    @pytest.mark.asyncio
    async def test_closed_runner_rejects_fan_out(self, config):
        """Test a closed runner refuses a fan-out."""
        pinger = PingProcess(config)
        pinger.close()

        with pytest.raises(RuntimeError, match="closed"):
            await pinger.run_many("alpha")
