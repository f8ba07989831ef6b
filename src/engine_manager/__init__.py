"""Engine Manager - start, stop and inspect a group of daemonized workers."""

__version__ = "0.1.0"

from engine_manager.core.config import Settings
from engine_manager.supervisor import Supervisor, WorkerSpec

__all__ = ["Settings", "Supervisor", "WorkerSpec", "__version__"]
