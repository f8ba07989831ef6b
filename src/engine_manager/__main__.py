"""CLI entrypoint: engine-manager [--conf PATH] {start,stop,status}."""

from __future__ import annotations

import argparse
import os
import signal
import sys
import threading
from typing import List, Optional

import structlog
from pydantic import ValidationError

from engine_manager import __version__
from engine_manager.core.config import Settings
from engine_manager.core.exceptions import ConfigLoadError
from engine_manager.supervisor import Supervisor
from engine_manager.utils.logging import setup_logging

logger = structlog.get_logger()

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_CONFIG = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="engine-manager", description="Manage a group of daemonized workers")
    parser.add_argument(
        "--conf",
        default=os.getenv("ENGINE_MANAGER_CONF"),
        help="Worker configuration file (.yml, .yaml or .json); defaults to $ENGINE_MANAGER_CONF",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    sub = parser.add_subparsers(dest="cmd", required=True)
    sub.add_parser("start", help="Start all workers, stopping the group if one fails")
    sub.add_parser("stop", help="Stop all workers")
    sub.add_parser("status", help="Show worker status")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if not args.conf:
        parser.error("--conf is required (or set ENGINE_MANAGER_CONF)")

    try:
        settings = Settings()
    except ValidationError as e:
        print(f"ERROR: invalid settings: {e}", file=sys.stderr)
        return EXIT_CONFIG

    setup_logging(settings.log_level, settings.log_format)

    cancel_event = threading.Event()
    try:
        supervisor = Supervisor.from_config_file(args.conf, settings=settings, cancel_event=cancel_event)
    except ConfigLoadError as e:
        logger.error("Configuration load failed", error=str(e), conf=e.path)
        return EXIT_CONFIG

    previous = _install_signal_handlers(cancel_event)
    try:
        if args.cmd == "start":
            result = supervisor.start()
        elif args.cmd == "stop":
            result = supervisor.stop()
        else:
            report = supervisor.status()
            print(report.format())
            return EXIT_OK if report.ok else EXIT_FAILED
    finally:
        _restore_signal_handlers(previous)

    return EXIT_OK if result.ok else EXIT_FAILED


def _install_signal_handlers(cancel_event: threading.Event) -> dict:
    """Turn SIGINT/SIGTERM into cancellation of the in-flight poll."""

    def handle(signum, _frame):
        logger.info("Received shutdown signal", signal=signal.Signals(signum).name)
        cancel_event.set()

    previous = {}
    for sig in (signal.SIGTERM, signal.SIGINT):
        previous[sig] = signal.signal(sig, handle)
    return previous


def _restore_signal_handlers(previous: dict) -> None:
    for sig, handler in previous.items():
        signal.signal(sig, handler)


if __name__ == "__main__":
    sys.exit(main())
