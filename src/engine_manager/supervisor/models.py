"""Data models for the worker supervisor."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from ..core.exceptions import ManagerError
from .resource_manager import ResourceManager


class ProcessState(Enum):
    """State of a worker in the lifecycle protocol."""
    NOT_STARTED = "not_started"
    LAUNCHING = "launching"
    LAUNCH_FAILED = "launch_failed"
    AWAITING_PIDFILE = "awaiting_pidfile"
    AWAITING_LIVENESS = "awaiting_liveness"
    RUNNING = "running"
    TERMINATING = "terminating"
    AWAITING_TERMINATION = "awaiting_termination"
    STOPPED = "stopped"


class WorkerState(str, Enum):
    """Observed state of a worker, as reported by status."""
    RUNNING = "running"
    STOPPED = "stopped"
    STALE = "stale"
    UNPARSABLE = "unparsable"


@dataclass(frozen=True)
class RunningProcess:
    """Handle on a pid read from a pidfile.

    Built fresh whenever a lifecycle phase needs it, never kept around.
    """

    pid: int
    pidfile: str

    def is_running(self) -> bool:
        """Check whether the pid refers to a live, non-zombie process."""
        return ResourceManager.is_running(self.pid)


@dataclass
class OperationResult:
    """Outcome of a group operation."""

    operation: str
    errors: List[ManagerError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors

    def __bool__(self) -> bool:
        return self.ok


@dataclass
class WorkerStatus:
    """Status of one configured worker."""

    name: str
    pidfile: str
    state: WorkerState
    socket: Optional[str] = None
    pid: Optional[int] = None
    stats: Optional[Dict[str, Any]] = None

    @property
    def is_running(self) -> bool:
        return self.state == WorkerState.RUNNING


@dataclass
class StatusReport:
    """Result of the status operation."""

    workers: List[WorkerStatus] = field(default_factory=list)
    processes: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return all(w.is_running for w in self.workers)

    def __bool__(self) -> bool:
        return self.ok

    def format(self) -> str:
        """Render the report as human-readable text."""
        lines = []
        for worker in self.workers:
            line = f"{worker.name}: {worker.state.value}"
            if worker.pid is not None:
                line += f" (pid {worker.pid})"
            if worker.stats:
                rss_mb = worker.stats["memory"]["rss_bytes"] / (1024 * 1024)
                line += f" rss={rss_mb:.1f}MB cpu={worker.stats['cpu']['percent']:.1f}%"
                line += f" threads={worker.stats['num_threads']}"
            lines.append(line)
        if self.processes:
            lines.append("")
            lines.extend(self.processes)
        return "\n".join(lines)
