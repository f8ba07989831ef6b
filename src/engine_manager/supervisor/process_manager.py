"""Per-worker lifecycle: launch, wait for the pidfile, wait for liveness, terminate."""

import os
import signal
import subprocess
import threading
import time
from pathlib import Path
from typing import Dict, List, Optional

import structlog

from ..core.config import Settings
from ..core.exceptions import (
    FileDeleteFailed,
    LaunchFailed,
    OperationCancelled,
    SignalDeliveryFailed,
    WaitTimeout,
    WorkerError,
)
from ..utils.logging import MessageSink, bind_worker_context
from .models import ProcessState, RunningProcess
from .pidfile import read_pidfile
from .server import WorkerSpec

logger = structlog.get_logger()


class ProcessManager:
    """Drives one worker at a time through the lifecycle protocol.

    All waiting is blocking. Every sleep goes through the cancellation
    event, so setting it interrupts any in-flight poll.
    """

    def __init__(self, settings: Settings, sink: MessageSink, cancel_event: Optional[threading.Event] = None):
        self.settings = settings
        self.sink = sink
        self.cancel_event = cancel_event or threading.Event()
        self.states: Dict[str, ProcessState] = {}

    # --- start protocol ---

    def start_worker(self, server: WorkerSpec) -> RunningProcess:
        """Launch a worker and block until its pid is alive."""
        with bind_worker_context(server.name):
            self.launch(server)
            process = self.wait_for_pidfile(server)
            self.wait_until_running(server, process)
            self._transition(server, ProcessState.RUNNING, pid=process.pid)
            self.sink(f"Pid {process.pid} is running")
            return process

    def launch(self, server: WorkerSpec) -> None:
        """Run the launch command and wait for it (not the worker) to exit."""
        cli = server.build_launch_arguments()
        self._transition(server, ProcessState.LAUNCHING)
        self.sink(f"Running {' '.join(cli)}")

        try:
            completed = subprocess.run(cli, stdin=subprocess.DEVNULL, check=False)
        except OSError as e:
            self._transition(server, ProcessState.LAUNCH_FAILED, error=str(e))
            raise LaunchFailed(server.name, cli, None, detail=e.strerror or str(e)) from e

        if completed.returncode != 0:
            self._transition(server, ProcessState.LAUNCH_FAILED, exit_status=completed.returncode)
            raise LaunchFailed(server.name, cli, completed.returncode)

    def wait_for_pidfile(self, server: WorkerSpec) -> RunningProcess:
        """Poll until the pidfile holds a pid."""
        self._transition(server, ProcessState.AWAITING_PIDFILE)
        cap = self.settings.max_pidfile_attempts
        count = 1
        while True:
            process = read_pidfile(server.pidfile, server.name)
            if process is not None:
                return process
            if cap is not None and count > cap:
                raise WaitTimeout(server.name, "pidfile", cap)
            self.sink(f"pidfile ({server.pidfile}) does not exist yet ... (trying {count} times)")
            self._sleep(server, "pidfile", self.settings.pidfile_poll_interval)
            count += 1

    def wait_until_running(self, server: WorkerSpec, process: RunningProcess) -> None:
        """Poll the OS until the pid read from the pidfile is alive."""
        self._transition(server, ProcessState.AWAITING_LIVENESS, pid=process.pid)
        cap = self.settings.max_liveness_attempts
        count = 1
        while not process.is_running():
            if cap is not None and count > cap:
                raise WaitTimeout(server.name, "liveness", cap)
            self.sink(f"pid ({process.pid}) with pid_file ({server.pidfile}) is not running yet, sleeping ...")
            self._sleep(server, "liveness", self.settings.liveness_poll_interval)
            count += 1

    # --- stop protocol ---

    def stop_worker(self, server: WorkerSpec) -> List[WorkerError]:
        """Terminate a worker and clean up its files.

        Errors are returned rather than raised so the caller can carry on
        with the remaining workers.
        """
        with bind_worker_context(server.name):
            try:
                process = self.terminate(server)
                if process is not None:
                    self.wait_for_termination(server, process)
            except WorkerError as e:
                # Termination not confirmed: leave pidfile and socket alone
                logger.warning("Worker stop incomplete", error=str(e), code=e.code)
                return [e]

            errors = self.cleanup(server)
            self._transition(server, ProcessState.STOPPED)
            return errors

    def terminate(self, server: WorkerSpec) -> Optional[RunningProcess]:
        """Send SIGTERM to the pid in the pidfile.

        Returns None when there is nothing left to wait for: no pidfile, or a
        pid that is already gone.
        """
        process = read_pidfile(server.pidfile, server.name)
        if process is None:
            logger.debug("No pidfile, nothing to kill", pidfile=server.pidfile)
            return None

        self._transition(server, ProcessState.TERMINATING, pid=process.pid)
        self.sink(f"Killing PID {process.pid} from {os.getpid()}")
        if not self._send_signal(server, process, signal.SIGTERM):
            self.sink(f"pid ({process.pid}) is already gone")
            return None
        return process

    def wait_for_termination(self, server: WorkerSpec, process: RunningProcess) -> None:
        """Poll until the pid is gone, escalating to SIGKILL after the grace period."""
        self._transition(server, ProcessState.AWAITING_TERMINATION, pid=process.pid)
        grace = self.settings.termination_grace_period
        deadline = time.monotonic() + grace if grace is not None else None
        killed = False

        while process.is_running():
            if deadline is not None and not killed and time.monotonic() >= deadline:
                self.sink(f"pid ({process.pid}) still running after {grace}s, sending SIGKILL")
                killed = True
                if not self._send_signal(server, process, signal.SIGKILL):
                    return
                continue
            self.sink(f"pid ({server.pidfile}) is still running, sleeping ...")
            self._sleep(server, "termination", self.settings.termination_poll_interval)

    def cleanup(self, server: WorkerSpec) -> List[WorkerError]:
        """Remove a leftover pidfile and the worker's socket."""
        errors: List[WorkerError] = []
        for path in (server.pidfile_path, server.socket_path):
            if path is None:
                continue
            error = self._remove(server, path)
            if error is not None:
                errors.append(error)
        return errors

    # --- helpers ---

    def _send_signal(self, server: WorkerSpec, process: RunningProcess, sig: signal.Signals) -> bool:
        """Deliver sig; False when the pid no longer exists."""
        try:
            os.kill(process.pid, sig)
        except ProcessLookupError:
            return False
        except PermissionError as e:
            raise SignalDeliveryFailed(server.name, process.pid, e.strerror or str(e)) from e
        logger.debug("Sent signal", pid=process.pid, signal=sig.name)
        return True

    def _remove(self, server: WorkerSpec, path: Path) -> Optional[FileDeleteFailed]:
        try:
            path.unlink()
        except FileNotFoundError:
            return None
        except OSError as e:
            logger.warning("Failed to remove file", path=str(path), error=str(e))
            return FileDeleteFailed(server.name, str(path), e.strerror or str(e))
        logger.debug("Removed file", path=str(path))
        return None

    def _sleep(self, server: WorkerSpec, phase: str, interval: float) -> None:
        if self.cancel_event.wait(interval):
            raise OperationCancelled(server.name, phase)

    def state_of(self, server: WorkerSpec) -> ProcessState:
        """Last lifecycle state this manager drove the worker into."""
        return self.states.get(server.name, ProcessState.NOT_STARTED)

    def _transition(self, server: WorkerSpec, state: ProcessState, **fields) -> None:
        previous = self.state_of(server)
        self.states[server.name] = state
        logger.debug("Worker state changed", previous=previous.value, state=state.value, **fields)
