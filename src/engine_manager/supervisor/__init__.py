"""Worker supervisor - lifecycle protocol and group operations."""

from .supervisor import Supervisor
from .process_manager import ProcessManager
from .server import WorkerSpec, EngineServer, CommandServer, register_server_class

__all__ = [
    "Supervisor",
    "ProcessManager",
    "WorkerSpec",
    "EngineServer",
    "CommandServer",
    "register_server_class",
]
