"""Load configuration from the environment, a YAML file and defaults."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from .exceptions import ConfigError

logger = logging.getLogger(__name__)

CONFIG_DIR_NAME = ".fussy-git"
CONFIG_FILE_NAME = "config.yaml"
STATE_FILE_NAME = "repos.json"
DEFAULT_HOME_DIR_NAME = "git"

ENV_HOME = "FUSSY_GIT_HOME"
ENV_STATE_FILE = "FUSSY_GIT_STATE_FILE_PATH"

KEY_HOME = "fussy_git_home"
KEY_STATE_FILE = "state_file_path"


@dataclass(frozen=True)
class Config:
    """Resolved runtime configuration."""

    home: Path
    state_file: Path
    config_file: Path | None = None


def default_config_dir() -> Path:
    return Path.home() / CONFIG_DIR_NAME


def default_config_file() -> Path:
    return default_config_dir() / CONFIG_FILE_NAME


def load_config(config_file: Path | None = None) -> Config:
    """Resolve settings: environment first, then the config file, then defaults."""

    if config_file is not None:
        config_file = config_file.expanduser()
        if not config_file.is_file():
            raise ConfigError(f"Config file not found: {config_file}")
        settings = _read_config_file(config_file)
    else:
        candidate = default_config_file()
        config_file = candidate if candidate.is_file() else None
        settings = _read_config_file(config_file) if config_file else {}

    home = _resolve(ENV_HOME, settings.get(KEY_HOME), Path.home() / DEFAULT_HOME_DIR_NAME)
    state_file = _resolve(ENV_STATE_FILE, settings.get(KEY_STATE_FILE), default_config_dir() / STATE_FILE_NAME)

    _ensure_dir(home, ENV_HOME)
    _ensure_dir(state_file.parent, "state file directory")
    logger.debug("Using %s=%s, state file %s", ENV_HOME, home, state_file)
    return Config(home=home, state_file=state_file, config_file=config_file)


def _read_config_file(path: Path) -> dict[str, Any]:
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise ConfigError(f"Error reading config file {path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise ConfigError(f"Config file {path} is not valid YAML: {exc}") from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a mapping of settings.")
    logger.debug("Loaded config file %s", path)
    return data


def _resolve(env_var: str, configured: Any, default: Path) -> Path:
    raw = os.environ.get(env_var) or configured
    if not raw:
        return default
    return Path(str(raw)).expanduser().resolve()


def _ensure_dir(path: Path, label: str) -> None:
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise ConfigError(f"Failed to create {label} {path}: {exc}") from exc


__all__ = ["Config", "load_config", "default_config_file"]
