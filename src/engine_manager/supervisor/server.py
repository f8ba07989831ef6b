"""Worker definitions and the registry of worker variants."""

import string
import sys
from abc import abstractmethod
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Type

from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_SERVER_CLASS = "engine"
TEMPLATE_FIELDS = {"name", "pidfile", "socket", "nproc"}
# Stand-ins with the types build_launch_arguments passes to str.format
TEMPLATE_SAMPLE = {"name": "", "pidfile": "", "socket": "", "nproc": 1}


class WorkerSpec(BaseModel):
    """Immutable description of one managed worker."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str = Field(..., min_length=1, description="Worker name, unique within a run")
    pidfile: str = Field(..., min_length=1, description="Where the running worker writes its pid")
    socket: Optional[str] = Field(None, description="UNIX socket the worker binds, removed on stop")
    nproc: int = Field(1, ge=1, description="Number of worker processes")
    additional_args: List[str] = Field(default_factory=list, description="Extra launch arguments")

    @field_validator("socket")
    @classmethod
    def empty_socket_is_none(cls, v: Optional[str]) -> Optional[str]:
        return v or None

    @property
    def pidfile_path(self) -> Path:
        return Path(self.pidfile)

    @property
    def socket_path(self) -> Optional[Path]:
        return Path(self.socket) if self.socket else None

    @abstractmethod
    def build_launch_arguments(self) -> List[str]:
        """Return the argv that launches (and daemonizes) this worker."""


SERVER_CLASSES: Dict[str, Type[WorkerSpec]] = {}


def register_server_class(tag: str) -> Callable[[Type[WorkerSpec]], Type[WorkerSpec]]:
    """Register a WorkerSpec variant under a server_class tag."""

    def decorator(cls: Type[WorkerSpec]) -> Type[WorkerSpec]:
        if tag in SERVER_CLASSES and SERVER_CLASSES[tag] is not cls:
            raise ValueError(f"server_class {tag!r} already registered to {SERVER_CLASSES[tag].__name__}")
        SERVER_CLASSES[tag] = cls
        return cls

    return decorator


def get_server_class(tag: Optional[str]) -> Type[WorkerSpec]:
    """Resolve a server_class tag, defaulting to the engine variant."""
    tag = tag or DEFAULT_SERVER_CLASS
    try:
        return SERVER_CLASSES[tag]
    except KeyError:
        known = ", ".join(sorted(SERVER_CLASSES))
        raise KeyError(f"Unknown server_class {tag!r} (known: {known})") from None


def create_server(entry: Dict[str, Any]) -> WorkerSpec:
    """Build a WorkerSpec from one decoded configuration entry."""
    fields = dict(entry)
    cls = get_server_class(fields.pop("server_class", None))
    return cls(**fields)


@register_server_class("engine")
class EngineServer(WorkerSpec):
    """Script that daemonizes itself given --nproc/--pidfile/--listen/--daemon."""

    scriptname: str = Field(..., min_length=1, description="Script to run")
    interpreter: str = Field(default_factory=lambda: sys.executable, description="Interpreter for the script")

    def build_launch_arguments(self) -> List[str]:
        cli = [
            self.interpreter,
            *self.additional_args,
            self.scriptname,
            "--nproc", str(self.nproc),
            "--pidfile", self.pidfile,
        ]
        if self.socket:
            cli += ["--listen", self.socket]
        cli.append("--daemon")
        return cli


@register_server_class("command")
class CommandServer(WorkerSpec):
    """Explicit argv template.

    Elements may reference {name}, {pidfile}, {socket} and {nproc}.
    """

    command: List[str] = Field(..., min_length=1, description="Launch argv template")

    @field_validator("command")
    @classmethod
    def validate_placeholders(cls, v: List[str]) -> List[str]:
        """Reject templates that would not format, so launching never fails on them."""
        formatter = string.Formatter()
        for part in v:
            try:
                fields = [f for _, f, _, _ in formatter.parse(part) if f is not None]
            except ValueError as e:
                raise ValueError(f"Malformed command template {part!r}: {e}") from e
            unknown = set(fields) - TEMPLATE_FIELDS
            if unknown:
                raise ValueError(f"Unknown placeholder(s) {sorted(unknown)} in {part!r}")
            try:
                part.format(**TEMPLATE_SAMPLE)
            except (ValueError, KeyError, IndexError, AttributeError) as e:
                raise ValueError(f"Malformed command template {part!r}: {e}") from e
        return v

    def build_launch_arguments(self) -> List[str]:
        values = {
            "name": self.name,
            "pidfile": self.pidfile,
            "socket": self.socket or "",
            "nproc": self.nproc,
        }
        return [part.format(**values) for part in self.command] + list(self.additional_args)
