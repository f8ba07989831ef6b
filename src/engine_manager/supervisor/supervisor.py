"""Group operations over the configured workers."""

import threading
from pathlib import Path
from typing import Optional, Sequence, Union

import structlog

from ..core.config import Settings
from ..core.exceptions import PidfileUnparsable, WorkerError
from ..core.loader import load_config
from ..utils.logging import MessageSink, make_log_sink
from .models import OperationResult, StatusReport, WorkerState, WorkerStatus
from .pidfile import read_pidfile
from .process_manager import ProcessManager
from .resource_manager import ResourceManager
from .server import WorkerSpec

logger = structlog.get_logger()


class Supervisor:
    """Starts, stops and inspects an ordered group of workers.

    Holds no state besides its configuration: everything about running
    workers lives in their pidfiles, so a fresh Supervisor can stop workers
    started by another process.
    """

    def __init__(
        self,
        servers: Sequence[WorkerSpec],
        sink: Optional[MessageSink] = None,
        settings: Optional[Settings] = None,
        cancel_event: Optional[threading.Event] = None,
    ):
        self.servers = tuple(servers)
        self.settings = settings or Settings()
        self.sink = sink or make_log_sink()
        self.process_manager = ProcessManager(self.settings, self.sink, cancel_event)

    @classmethod
    def from_config_file(cls, conf: Union[str, Path], **kwargs) -> "Supervisor":
        """Load a configuration file and build a Supervisor over it."""
        return cls(load_config(conf), **kwargs)

    def start(self) -> OperationResult:
        """Start every worker in order; on the first failure stop the whole group."""
        result = OperationResult("start")
        self.sink("Starting up the workers ...")

        for server in self.servers:
            try:
                self.process_manager.start_worker(server)
            except WorkerError as e:
                self._report(e)
                result.errors.append(e)
                self.sink("... stopping workers")
                result.errors.extend(self.stop().errors)
                return result

        self.sink("... workers have been started")
        return result

    def stop(self) -> OperationResult:
        """Stop every worker in order, carrying on past per-worker failures."""
        result = OperationResult("stop")
        self.sink("Killing the workers ...")

        for server in self.servers:
            errors = self.process_manager.stop_worker(server)
            for error in errors:
                self._report(error)
            result.errors.extend(errors)

        self.sink("... workers have been killed")
        return result

    def status(self) -> StatusReport:
        """Inspect each worker's pidfile and list related OS processes."""
        report = StatusReport()
        for server in self.servers:
            report.workers.append(self._worker_status(server))
        report.processes = ResourceManager.list_processes(self.settings.status_keyword)
        return report

    def _worker_status(self, server: WorkerSpec) -> WorkerStatus:
        status = WorkerStatus(
            name=server.name,
            pidfile=server.pidfile,
            socket=server.socket,
            state=WorkerState.STOPPED,
        )
        try:
            process = read_pidfile(server.pidfile, server.name)
        except PidfileUnparsable as e:
            logger.warning("Unparsable pidfile", worker=server.name, error=str(e))
            status.state = WorkerState.UNPARSABLE
            return status

        if process is None:
            return status

        status.pid = process.pid
        if not process.is_running():
            status.state = WorkerState.STALE
            return status

        status.state = WorkerState.RUNNING
        stats = ResourceManager.get_process_stats(process.pid)
        if "error" not in stats:
            status.stats = stats
        return status

    def _report(self, error: WorkerError) -> None:
        self.sink(f"{error.worker}: {error}")
