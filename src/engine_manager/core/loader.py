"""Worker configuration file loading."""

import json
from pathlib import Path
from typing import Any, List, Union

import structlog
import yaml
from pydantic import ValidationError

from engine_manager.core.exceptions import ConfigLoadError
from engine_manager.supervisor.server import WorkerSpec, create_server

logger = structlog.get_logger()

YAML_SUFFIXES = {".yml", ".yaml"}
JSON_SUFFIXES = {".json"}


def load_config(path: Union[str, Path]) -> List[WorkerSpec]:
    """Load and validate a worker configuration file.

    The file holds a list of worker entries, or a mapping with a
    ``servers`` list. The format is picked from the file extension.
    """
    path = Path(path)
    data = _decode(path)

    if isinstance(data, dict) and "servers" in data:
        data = data["servers"]
    if not isinstance(data, list):
        raise ConfigLoadError(
            f"{path}: expected a list of servers, got {type(data).__name__}",
            path=str(path),
        )

    servers = []
    for index, entry in enumerate(data):
        if not isinstance(entry, dict):
            raise ConfigLoadError(
                f"{path}: entry {index} must be a mapping, got {type(entry).__name__}",
                path=str(path),
            )
        label = entry.get("name", "<unnamed>")
        try:
            servers.append(create_server(entry))
        except KeyError as e:
            raise ConfigLoadError(f"{path}: entry {index} ({label}): {e.args[0]}", path=str(path)) from e
        except (ValidationError, TypeError) as e:
            raise ConfigLoadError(f"{path}: entry {index} ({label}) is invalid: {e}", path=str(path)) from e

    logger.debug("Loaded configuration", path=str(path), servers=[s.name for s in servers])
    return servers


def _decode(path: Path) -> Any:
    suffix = path.suffix.lower()
    if suffix not in YAML_SUFFIXES | JSON_SUFFIXES:
        raise ConfigLoadError(f"{path}: unsupported configuration format {suffix or '(none)'}", path=str(path))

    try:
        with open(path, encoding="utf-8") as f:
            if suffix in YAML_SUFFIXES:
                return yaml.safe_load(f)
            return json.load(f)
    except OSError as e:
        raise ConfigLoadError(f"Could not read configuration {path}: {e.strerror or e}", path=str(path)) from e
    except (yaml.YAMLError, json.JSONDecodeError, UnicodeDecodeError) as e:
        raise ConfigLoadError(f"Could not parse configuration {path}: {e}", path=str(path)) from e
