"""Process inspection for managed workers."""

import os
from typing import Any, Dict, List

import psutil
import structlog

logger = structlog.get_logger()


class ResourceManager:
    """OS-level queries about worker processes."""

    @staticmethod
    def is_running(pid: int) -> bool:
        """Check whether a pid refers to a live process.

        Zombies count as dead: an orphaned worker that exited but was not
        reaped yet must not keep a stop waiting forever.
        """
        if pid <= 0:
            return False
        try:
            return psutil.Process(pid).status() != psutil.STATUS_ZOMBIE
        except psutil.NoSuchProcess:
            return False
        except psutil.AccessDenied:
            # Exists, but owned by someone else
            return True

    @staticmethod
    def get_process_stats(pid: int) -> Dict[str, Any]:
        """Get resource usage statistics for a process."""
        try:
            process = psutil.Process(pid)

            memory_info = process.memory_info()
            cpu_percent = process.cpu_percent(interval=0.1)
            cpu_times = process.cpu_times()

            return {
                "pid": pid,
                "status": process.status(),
                "memory": {
                    "rss_bytes": memory_info.rss,
                    "vms_bytes": memory_info.vms,
                    "percent": process.memory_percent(),
                },
                "cpu": {
                    "percent": cpu_percent,
                    "user_time": cpu_times.user,
                    "system_time": cpu_times.system,
                },
                "num_threads": process.num_threads(),
            }

        except psutil.NoSuchProcess:
            return {"error": "Process not found"}
        except psutil.Error as e:
            return {"error": str(e)}

    @staticmethod
    def list_processes(keyword: str) -> List[str]:
        """List processes whose command line mentions keyword, ps-style."""
        own_pid = os.getpid()
        lines = []
        for proc in psutil.process_iter(["pid", "username", "cmdline", "name"]):
            info = proc.info
            if info["pid"] == own_pid:
                continue
            cmdline = " ".join(info["cmdline"] or []) or (info["name"] or "")
            if keyword not in cmdline:
                continue
            lines.append(f"{info['username'] or '?':<12} {info['pid']:>7} {cmdline}".rstrip())
        logger.debug("Listed processes", keyword=keyword, matches=len(lines))
        return lines
