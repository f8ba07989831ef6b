"""Logging configuration utilities."""

import logging
import sys
from contextlib import contextmanager
from typing import Callable, Iterator

import structlog
from structlog.contextvars import bound_contextvars

MessageSink = Callable[[str], None]


def setup_logging(log_level: str = "INFO", log_format: str = "console") -> None:
    """Configure structured logging."""

    # Configure standard logging
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, log_level.upper()),
    )

    # Configure structlog processors
    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        structlog.processors.TimeStamper(fmt="iso"),
    ]

    if log_format == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(getattr(logging, log_level.upper())),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def make_log_sink(name: str = "engine_manager") -> MessageSink:
    """Return a message sink that forwards progress messages to structlog."""
    logger = structlog.get_logger(name)

    def sink(message: str) -> None:
        logger.info(message)

    return sink


@contextmanager
def bind_worker_context(worker: str) -> Iterator[None]:
    """Bind the worker name into log context for the duration of a step."""
    with bound_contextvars(worker=worker):
        yield
