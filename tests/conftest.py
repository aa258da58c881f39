"""
Shared fixtures: a fake ping executable and configured runners.
"""

import re
import subprocess
import sys
import textwrap

import pytest

from ping_process.config import ExecutorConfig, PingConfig, PingProcessConfig
from ping_process.executor import PingProcess

# Stand-in for the diagnostic executable. Behaviour is chosen by the target:
#   bad*        unknown host message, exit 1
#   slow-<s>    sleep <s> seconds, then report
#   hang        print one line, then sleep for a minute
#   stderr      write two stderr lines, then report
#   exit-<n>    print one line, exit <n>
#   cwd         print the working directory
#   anything    reachability report, exit 0
FAKE_PING = textwrap.dedent(
    '''
    import os
    import sys
    import time

    target = sys.argv[-1]
    pid_file = os.environ.get("FAKE_PING_PID_FILE")
    if pid_file:
        with open(pid_file, "a") as f:
            f.write(f"{os.getpid()}\\n")


    def say(line=""):
        print(line, flush=True)


    def report():
        say()
        say(f"Pinging {target} with 32 bytes of data:")
        for _ in range(4):
            say("Reply from ::1: time<1ms")
        say()
        say("Ping statistics for ::1:")
        say("    Packets: Sent = 4, Received = 4, Lost = 0 (0% loss),")
        say("Approximate round trip times in milli-seconds:")
        say("    Minimum = 0ms, Maximum = 0ms, Average = 0ms")


    if target.startswith("bad"):
        say(f"Ping request could not find host {target}. Please check the name and try again.")
        sys.exit(1)
    elif target.startswith("slow-"):
        time.sleep(float(target.split("-", 1)[1]))
        report()
    elif target == "hang":
        say("Pinging hang with 32 bytes of data:")
        time.sleep(60)
    elif target == "stderr":
        print("warning one", file=sys.stderr, flush=True)
        print("warning two", file=sys.stderr, flush=True)
        report()
    elif target.startswith("exit-"):
        say(f"exiting with {target}")
        sys.exit(int(target.split("-", 1)[1]))
    elif target == "cwd":
        say(os.getcwd())
    else:
        report()
    '''
)

REPORT_PATTERN = re.compile(
    r"Pinging \S+ with 32 bytes of data:\n"
    r"(Reply from ::1: time<\S+\n){4}"
    r"\n"
    r"Ping statistics for ::1:\n"
    r"    Packets: Sent = \d+, Received = \d+, Lost = 0 \(0% loss\),\n"
    r"Approximate round trip times in milli-seconds:\n"
    r"    Minimum = \S+, Maximum = \S+, Average = \S+"
)

# Lines of one trimmed report
REPORT_LINE_COUNT = 10


def is_reachability_report(text) -> bool:
    """Check if text has the shape of a successful ping report."""
    return text is not None and REPORT_PATTERN.fullmatch(text.replace("\r\n", "\n")) is not None


@pytest.fixture
def fake_ping(tmp_path):
    """Write the fake ping script and return its path."""
    script = tmp_path / "fake_ping.py"
    script.write_text(FAKE_PING, encoding="utf-8")
    return script


@pytest.fixture
def config(fake_ping):
    """Configuration that runs the fake ping with the current interpreter."""
    return PingProcessConfig(
        ping=PingConfig(executable=sys.executable, arguments=["-u", str(fake_ping)]),
        executor=ExecutorConfig(long_running_workers=2, drain_timeout=2.0),
    )


@pytest.fixture
def pinger(config):
    """PingProcess bound to the fake ping."""
    with PingProcess(config) as runner:
        yield runner


@pytest.fixture
def spawned(monkeypatch):
    """
    Record every Popen created through the invoker.

    Anything still alive at teardown is killed so a failing test cannot
    leave processes behind.
    """
    real_popen = subprocess.Popen
    processes: list[subprocess.Popen] = []

    def recording_popen(*args, **kwargs):
        process = real_popen(*args, **kwargs)
        processes.append(process)
        return process

    monkeypatch.setattr(
        "ping_process.executor.subprocess.subprocess.Popen", recording_popen
    )
    yield processes

    for process in processes:
        if process.poll() is None:
            process.kill()
            process.wait()
        for stream in (process.stdout, process.stderr):
            if stream is not None and not stream.closed:
                stream.close()


@pytest.fixture
def is_report():
    """Checker for the shape of a successful ping report."""
    return is_reachability_report


@pytest.fixture
def report_line_count():
    """Number of lines in one trimmed report."""
    return REPORT_LINE_COUNT
