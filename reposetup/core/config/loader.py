"""
Configuration loader — defaults, optional YAML file, environment.

The settings file is optional. When REPOSETUP_CONFIG names one it must
exist; otherwise /etc/reposetup.yml is used if present. Environment
variables always win over the file.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from pathlib import Path

import yaml
from pydantic import ValidationError

from reposetup.core.errors import ConfigError
from reposetup.core.models.settings import Settings

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "REPOSETUP_CONFIG"
DEFAULT_CONFIG_PATH = Path("/etc/reposetup.yml")

# Environment variable → Settings field
ENV_OVERRIDES: dict[str, str] = {
    "DOWNLOAD_URL": "download_url",
    "SETUP_URL": "setup_url",
    "CHANNEL": "channel",
    "DRY_RUN": "dry_run",
    "REPOSETUP_LOG_LEVEL": "log_level",
    "REPOSETUP_LOG_FILE": "log_file",
    "REPOSETUP_LOG_FILE_LEVEL": "log_file_level",
}

__all__ = ["ConfigError", "find_config_file", "load_settings"]


def find_config_file(environ: Mapping[str, str] | None = None) -> Path | None:
    """Locate the settings file.

    Args:
        environ: Environment mapping (default: ``os.environ``).

    Returns:
        Path to the settings file, or None if there is none.

    Raises:
        ConfigError: If REPOSETUP_CONFIG points at a missing file.
    """
    env = os.environ if environ is None else environ
    explicit = env.get(CONFIG_ENV_VAR, "")
    if explicit:
        path = Path(explicit)
        if not path.is_file():
            raise ConfigError(f"Config file not found: {path}")
        return path

    if DEFAULT_CONFIG_PATH.is_file():
        return DEFAULT_CONFIG_PATH
    return None


def _read_yaml(path: Path) -> dict:
    logger.debug("Loading settings from %s", path)

    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Expected a YAML mapping in {path}, got {type(data).__name__}")
    return data


def load_settings(
    path: Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> Settings:
    """Load and validate the run settings.

    Args:
        path: Explicit settings file. If None, searched via
            :func:`find_config_file`.
        environ: Environment mapping (default: ``os.environ``).

    Returns:
        Validated Settings model.

    Raises:
        ConfigError: If the file is unreadable or any value is invalid.
    """
    env = os.environ if environ is None else environ

    if path is None:
        path = find_config_file(env)

    data: dict = _read_yaml(path) if path is not None else {}

    # Empty variables fall back to the file/default, like ${VAR:-default}
    for var, field in ENV_OVERRIDES.items():
        value = env.get(var, "")
        if value:
            data[field] = value

    try:
        settings = Settings.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid settings: {e}") from e

    logger.debug(
        "Settings: download_url=%s setup_url=%s channel=%s dry_run=%s",
        settings.download_url,
        settings.setup_url,
        settings.channel,
        settings.dry_run,
    )
    return settings
