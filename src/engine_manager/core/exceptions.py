"""Custom exceptions for the engine manager."""

from typing import List, Optional


class ManagerError(Exception):
    """Base exception for all manager errors."""

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.code = code


class ConfigLoadError(ManagerError):
    """Configuration file could not be loaded or validated."""

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message, code="config_load")
        self.path = path


class WorkerError(ManagerError):
    """Failure tied to a single worker."""

    def __init__(self, message: str, worker: str, code: Optional[str] = None):
        super().__init__(message, code=code)
        self.worker = worker


class LaunchFailed(WorkerError):
    """Launch command exited non-zero or could not be executed."""

    def __init__(self, worker: str, command: List[str], exit_status: Optional[int], detail: Optional[str] = None):
        cmd = " ".join(command)
        if detail:
            message = f"Could not execute command ({cmd}): {detail}"
        else:
            message = f"Could not execute command ({cmd}) exited with status {exit_status}"
        super().__init__(message, worker, code="launch_failed")
        self.command = list(command)
        self.exit_status = exit_status
        self.detail = detail


class PidfileUnparsable(WorkerError):
    """Pidfile exists but does not hold a process id."""

    def __init__(self, worker: str, pidfile: str, content: str):
        super().__init__(
            f"pidfile ({pidfile}) does not contain a valid pid: {content!r}",
            worker,
            code="pidfile_unparsable",
        )
        self.pidfile = pidfile
        self.content = content


class WaitTimeout(WorkerError):
    """A polling loop hit its attempt cap."""

    def __init__(self, worker: str, phase: str, attempts: int):
        super().__init__(
            f"gave up waiting for {phase} after {attempts} attempts",
            worker,
            code="wait_timeout",
        )
        self.phase = phase
        self.attempts = attempts


class SignalDeliveryFailed(WorkerError):
    """Termination signal could not be delivered."""

    def __init__(self, worker: str, pid: int, detail: str):
        super().__init__(f"could not signal pid {pid}: {detail}", worker, code="signal_delivery_failed")
        self.pid = pid


class FileDeleteFailed(WorkerError):
    """Pidfile or socket cleanup failed."""

    def __init__(self, worker: str, path: str, detail: str):
        super().__init__(f"could not remove {path}: {detail}", worker, code="file_delete_failed")
        self.path = path


class OperationCancelled(WorkerError):
    """A wait loop was interrupted by the cancellation event."""

    def __init__(self, worker: str, phase: str):
        super().__init__(f"cancelled while waiting for {phase}", worker, code="cancelled")
        self.phase = phase
