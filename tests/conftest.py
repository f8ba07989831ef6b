"""
Pytest configuration and fixtures for engine manager tests.
"""

import sys
from pathlib import Path

import psutil
import pytest

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from engine_manager.core.config import Settings
from engine_manager.supervisor.server import CommandServer

# Daemonizes a sleep and records its pid, the way a real worker's
# bootstrap returns once the long-running process is detached.
DAEMON_COMMAND = ["sh", "-c", "sleep 60 >/dev/null 2>&1 & echo $! > {pidfile}"]
FAILING_COMMAND = ["sh", "-c", "exit 1"]


@pytest.fixture
def settings():
    """Settings with short poll intervals and bounded waits."""
    return Settings(
        pidfile_poll_interval=0.05,
        liveness_poll_interval=0.05,
        termination_poll_interval=0.05,
        max_pidfile_attempts=100,
        max_liveness_attempts=100,
        termination_grace_period=5.0,
    )


@pytest.fixture
def messages():
    """Collects everything sent to the message sink."""
    return []


@pytest.fixture
def make_worker(tmp_path):
    """Factory for command workers with pidfiles under tmp_path."""

    def factory(name, command=None, socket=False, **kwargs):
        return CommandServer(
            name=name,
            pidfile=str(tmp_path / f"{name}.pid"),
            socket=str(tmp_path / f"{name}.socket") if socket else None,
            command=command or DAEMON_COMMAND,
            **kwargs,
        )

    return factory


@pytest.fixture(autouse=True)
def kill_leftover_workers(tmp_path):
    """Make sure no daemonized sleep outlives its test."""
    yield
    for pidfile in tmp_path.glob("*.pid"):
        try:
            proc = psutil.Process(int(pidfile.read_text().strip()))
            if proc.name() == "sleep":
                proc.kill()
        except (ValueError, OSError, psutil.Error):
            pass
