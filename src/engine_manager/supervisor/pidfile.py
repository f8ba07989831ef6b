"""Pidfile handling."""

from pathlib import Path
from typing import Optional

import structlog

from ..core.exceptions import PidfileUnparsable
from .models import RunningProcess

logger = structlog.get_logger()


def read_pidfile(pidfile: str, worker: str) -> Optional[RunningProcess]:
    """Read and parse a pidfile in one step.

    Returns None when the file does not exist or has not been written yet
    (empty). Raises PidfileUnparsable when it holds anything but a positive
    decimal pid, surrounding whitespace aside.
    """
    try:
        content = Path(pidfile).read_text()
    except FileNotFoundError:
        return None
    except OSError as e:
        raise PidfileUnparsable(worker, pidfile, f"<unreadable: {e}>") from e

    text = content.strip()
    if not text:
        logger.debug("Pidfile is empty", pidfile=pidfile)
        return None

    try:
        pid = int(text)
    except ValueError:
        raise PidfileUnparsable(worker, pidfile, content) from None
    if pid <= 0:
        raise PidfileUnparsable(worker, pidfile, content)

    return RunningProcess(pid=pid, pidfile=pidfile)


def write_pidfile(pidfile: str, pid: int) -> None:
    """Write pid as decimal text, the format workers are expected to use."""
    Path(pidfile).write_text(f"{pid}\n")
