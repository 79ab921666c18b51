"""Runtime configuration: defaults, YAML config file and CLI overrides.

Precedence, lowest to highest: Constants defaults, the config file
(``-c PATH``, or ``modupgrade.yml`` in the module directory), CLI flags.
The GOPROXY environment variable is consulted by the proxy client when no
proxy is configured here.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, fields, replace
from typing import Any, Dict, Optional

import yaml

from .constants import Constants
from .errors import InvalidConfiguration

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UpgradeConfig:
    """Settings threaded explicitly through every component."""

    directory: str = "."
    verbose: bool = False
    dry_run: bool = False
    proxy: Optional[str] = None
    batch_size: int = Constants.BATCH_SIZE
    max_workers: int = Constants.MAX_WORKERS
    timeout: float = Constants.REQUEST_TIMEOUT
    lookup: str = Constants.LOOKUP_MODES[0]

    def validate(self) -> "UpgradeConfig":
        if self.batch_size < 1:
            raise InvalidConfiguration(f"batch_size must be at least 1, got {self.batch_size}")
        if self.max_workers < 1:
            raise InvalidConfiguration(f"max_workers must be at least 1, got {self.max_workers}")
        if self.timeout <= 0:
            raise InvalidConfiguration(f"timeout must be positive, got {self.timeout}")
        if self.lookup not in Constants.LOOKUP_MODES:
            raise InvalidConfiguration(
                f"lookup must be one of {', '.join(Constants.LOOKUP_MODES)}, got {self.lookup!r}"
            )
        return self


# Keys accepted in the config file, with the type their value is coerced to.
FILE_KEYS = {
    "proxy": str,
    "batch_size": int,
    "max_workers": int,
    "timeout": float,
    "lookup": str,
}

# CLI attribute -> config field.
CLI_OVERRIDES = {
    "PROXY": "proxy",
    "BATCH_SIZE": "batch_size",
    "MAX_WORKERS": "max_workers",
    "TIMEOUT": "timeout",
    "LOOKUP": "lookup",
}


def load_config_file(config_path: str) -> Dict[str, Any]:
    """Load the ``upgrade`` section (or the whole document) of a YAML config file.

    Raises:
        InvalidConfiguration: the file cannot be read or parsed, or holds
            values of the wrong type.
    """
    try:
        with open(config_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except OSError as e:
        raise InvalidConfiguration(f"cannot read config file {config_path}: {e}") from e
    except yaml.YAMLError as e:
        raise InvalidConfiguration(f"cannot parse config file {config_path}: {e}") from e

    if not isinstance(data, dict):
        raise InvalidConfiguration(f"config file {config_path} must contain a mapping")
    section = data.get("upgrade", data)
    if not isinstance(section, dict):
        raise InvalidConfiguration(f"'upgrade' section of {config_path} must be a mapping")

    values: Dict[str, Any] = {}
    for key, raw in section.items():
        if key not in FILE_KEYS:
            logger.warning("Ignoring unknown config key %r in %s", key, config_path)
            continue
        try:
            values[key] = FILE_KEYS[key](raw)
        except (TypeError, ValueError) as e:
            raise InvalidConfiguration(f"invalid value for {key!r} in {config_path}: {raw!r}") from e
    return values


def build_config(args: Any) -> UpgradeConfig:
    """Combine defaults, config file and parsed CLI arguments."""
    directory = getattr(args, "DIRECTORY", None) or "."
    config = UpgradeConfig(
        directory=directory,
        verbose=bool(getattr(args, "VERBOSE", False)),
        dry_run=bool(getattr(args, "DRY_RUN", False)),
    )

    config_path = getattr(args, "CONFIG", None)
    if config_path is None:
        default_path = os.path.join(directory, Constants.CONFIG_FILE)
        if os.path.isfile(default_path):
            config_path = default_path
    if config_path:
        logger.debug("Loading config file %s", config_path)
        config = replace(config, **load_config_file(config_path))

    overrides = {}
    for attr, name in CLI_OVERRIDES.items():
        value = getattr(args, attr, None)
        if value is not None:
            overrides[name] = value
    if overrides:
        config = replace(config, **overrides)

    return config.validate()


def describe(config: UpgradeConfig) -> str:
    """One-line summary of the effective configuration, for debug logs."""
    return ", ".join(f"{f.name}={getattr(config, f.name)!r}" for f in fields(config))
