"""
Configuration loader.

Reads app.yaml and the per-portal override files under
<config_dir>/portals/ into validated pydantic models.
"""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Any, TypeVar

import yaml
from pydantic import BaseModel, ValidationError

from bidwatch.core.errors import BidWatchError

from .models import AppConfig, PortalConfig

CONFIG_ENV_VAR = "BIDWATCH_CONFIG"
DEFAULT_CONFIG_PATH = Path("configs/app.yaml")

# ${VAR} or ${VAR:-default}
ENV_REFERENCE = re.compile(r"\$\{(?P<name>[^}:]+)(?::-(?P<default>[^}]*))?\}")

ModelT = TypeVar("ModelT", bound=BaseModel)


class ConfigError(BidWatchError):
    """Configuration file missing, unreadable or invalid."""

    def __init__(self, message: str, path: Path | None = None, details: str | None = None):
        self.path = path
        self.details = details
        super().__init__(message)


# =============================================================================
# Helpers
# =============================================================================


def read_yaml(path: Path) -> dict[str, Any]:
    """Parse a YAML file whose top level is a mapping (empty file -> {}).

    Raises:
        ConfigError: If the file is missing, unreadable, not YAML or not a mapping
    """
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        raise ConfigError(f"Configuration file not found: {path}", path=path) from None
    except OSError as e:
        raise ConfigError(f"Cannot read {path}", path=path, details=str(e)) from e

    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}", path=path, details=str(e)) from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Expected a mapping at the top of {path}", path=path)
    return data


def expand_env(value: Any) -> Any:
    """Substitute ${VAR} and ${VAR:-default} in every string of a YAML tree.

    Unset variables without a default become empty strings.
    """
    if isinstance(value, str):
        return ENV_REFERENCE.sub(
            lambda m: os.environ.get(m.group("name"), m.group("default") or ""),
            value,
        )
    if isinstance(value, dict):
        return {key: expand_env(item) for key, item in value.items()}
    if isinstance(value, list):
        return [expand_env(item) for item in value]
    return value


def _describe_errors(error: ValidationError) -> str:
    """One "field.path: message" line per validation error."""
    lines = []
    for item in error.errors():
        location = ".".join(str(part) for part in item["loc"]) or "(root)"
        lines.append(f"{location}: {item['msg']}")
    return "\n".join(lines)


def _validate(model: type[ModelT], data: dict[str, Any], path: Path, what: str) -> ModelT:
    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid {what} in {path}", path=path, details=_describe_errors(e)) from e


# =============================================================================
# Loaders
# =============================================================================


def config_path(path: Path | str | None = None) -> Path:
    """The app.yaml to use: explicit path, then $BIDWATCH_CONFIG, then configs/app.yaml."""
    if path is not None:
        return Path(path)
    return Path(os.environ.get(CONFIG_ENV_VAR) or DEFAULT_CONFIG_PATH)


def load_app_config(path: Path | str | None = None, expand_env_vars: bool = True) -> AppConfig:
    """Load app.yaml; a missing file yields the built-in defaults.

    Raises:
        ConfigError: If the file exists but cannot be parsed or validated
    """
    path = config_path(path)
    if not path.exists():
        return AppConfig()

    data = read_yaml(path)
    if expand_env_vars:
        data = expand_env(data)
    return _validate(AppConfig, data, path, "app configuration")


def load_portal_config(path: Path | str, expand_env_vars: bool = True) -> PortalConfig:
    """Load one portal override file.

    Raises:
        ConfigError: If the file cannot be parsed or validated
    """
    path = Path(path)
    data = read_yaml(path)
    if expand_env_vars:
        data = expand_env(data)
    return _validate(PortalConfig, data, path, "portal configuration")


def load_all_portal_configs(portal_dir: Path | str | None = None) -> dict[str, PortalConfig]:
    """Load every *.yaml / *.yml portal file in a directory, keyed by portal name.

    Files whose name starts with an underscore are templates and skipped.
    A missing directory yields no overrides.

    Raises:
        ConfigError: If a file is invalid or two files declare the same portal
    """
    portal_dir = Path(portal_dir) if portal_dir is not None else DEFAULT_CONFIG_PATH.parent / "portals"
    if not portal_dir.is_dir():
        return {}

    configs: dict[str, PortalConfig] = {}
    sources: dict[str, Path] = {}

    for path in sorted([*portal_dir.glob("*.yaml"), *portal_dir.glob("*.yml")]):
        if path.name.startswith("_"):
            continue
        config = load_portal_config(path)
        if config.name in configs:
            raise ConfigError(
                f"Portal '{config.name}' is defined twice",
                path=path,
                details=f"also defined in {sources[config.name]}",
            )
        configs[config.name] = config
        sources[config.name] = path

    return configs


def portal_overrides(config: AppConfig) -> dict[str, PortalConfig]:
    """Portal configs from <config_dir>/portals/, then app.yaml's portals section on top."""
    return {**load_all_portal_configs(config.portals_dir), **config.portals}
