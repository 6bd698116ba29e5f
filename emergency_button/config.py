"""
Emergency Button Configuration
Explicit run configuration, optionally loaded from a YAML file.
"""

import logging
import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml

from emergency_button.core.errors import ConfigError

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "EMERGENCY_BUTTON_CONFIG"
DEFAULT_CONFIG_PATH = Path("~/.config/emergency-button/config.yaml")

DEFAULT_HANDOFF_TOOLS = ["incident-triage", "incident-analyzer"]
VALID_OS_TAGS = ("linux", "macos", "windows", "other")


def _default_version() -> str:
    from emergency_button import __version__

    return __version__


def _string_list(name: str, value: Any) -> List[str]:
    """A bare string becomes a one-item list; anything else must be a list of strings."""
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if not isinstance(value, (list, tuple)) or not all(isinstance(v, str) for v in value):
        raise ConfigError(f"{name} must be a list of strings, got {value!r}")
    return list(value)


@dataclass
class AppConfig:
    """Values shared by the incident manager, capture orchestrator and actions."""

    version: str = field(default_factory=_default_version)
    base_dir: str = "."
    color: bool = True
    command_timeout_s: Optional[float] = 60.0
    shell: Optional[str] = None
    os_override: Optional[str] = None
    backup_sources: List[str] = field(default_factory=list)
    backup_dest: Optional[str] = None
    handoff_enabled: bool = True
    handoff_tools: List[str] = field(default_factory=lambda: list(DEFAULT_HANDOFF_TOOLS))

    def __post_init__(self):
        if self.os_override is not None and self.os_override not in VALID_OS_TAGS:
            raise ConfigError(
                f"Invalid OS tag {self.os_override!r}, expected one of {', '.join(VALID_OS_TAGS)}"
            )

        timeout = self.command_timeout_s
        if timeout is not None:
            if isinstance(timeout, bool) or not isinstance(timeout, (int, float)):
                raise ConfigError(f"command_timeout_s must be a number, got {timeout!r}")
            if timeout < 0:
                raise ConfigError(f"command_timeout_s must be >= 0, got {timeout}")
        if not timeout:
            self.command_timeout_s = None

        self.base_dir = str(self.base_dir)
        for name in ("color", "handoff_enabled"):
            if not isinstance(getattr(self, name), bool):
                raise ConfigError(f"{name} must be true or false, got {getattr(self, name)!r}")
        for name in ("shell", "backup_dest"):
            value = getattr(self, name)
            if value is not None and not isinstance(value, str):
                raise ConfigError(f"{name} must be a string, got {value!r}")

        self.backup_sources = _string_list("backup_sources", self.backup_sources)
        self.handoff_tools = _string_list("handoff_tools", self.handoff_tools)

    def to_dict(self) -> Dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


def _resolve_config_path(config_path: Optional[Union[str, Path]]) -> Optional[Path]:
    if config_path:
        return Path(config_path).expanduser()

    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        return Path(env_path).expanduser()

    default = DEFAULT_CONFIG_PATH.expanduser()
    return default if default.exists() else None


def load_config(config_path: Optional[Union[str, Path]] = None, **overrides) -> AppConfig:
    """
    Load configuration from YAML, then apply keyword overrides.

    Overrides whose value is ``None`` are ignored so CLI options that were not
    given do not clobber file values.
    """
    values: Dict[str, Any] = {}
    path = _resolve_config_path(config_path)

    if path is not None:
        if not path.exists():
            logger.warning(f"Config not found: {path}")
        else:
            try:
                with open(path, "r") as f:
                    data = yaml.safe_load(f)
            except (OSError, yaml.YAMLError) as e:
                raise ConfigError(f"Cannot read config {path}: {e}") from e

            if data is None:
                data = {}
            if not isinstance(data, dict):
                raise ConfigError(f"Config {path} must be a mapping, got {type(data).__name__}")

            known = {f.name for f in fields(AppConfig)}
            for key, value in data.items():
                if key in known:
                    values[key] = value
                else:
                    logger.debug(f"Ignoring unknown config key: {key}")
            logger.debug(f"Loaded config from {path}")

    for key, value in overrides.items():
        if value is not None:
            values[key] = value

    try:
        return AppConfig(**values)
    except TypeError as e:
        raise ConfigError(f"Invalid configuration: {e}") from e
