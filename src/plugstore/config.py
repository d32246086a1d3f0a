"""
Configuration loading for Plugstore.

Settings live in a YAML file inside the platform configuration directory. A
missing file means defaults; the file only needs to list the keys it changes.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import platformdirs
import yaml

from plugstore.constants import (
    APP_NAME,
    CONFIG_FILE_NAME,
    DEFAULT_DATA_SOURCE_URL,
    DEFAULT_INSTALL_CATALOGUE_URLS,
    EDITOR_APP_NAME,
    LOCK_FILE_NAME,
    LOG_LEVEL_ENV_VAR,
    SUPPORTED_MANAGERS,
)
from plugstore.exceptions import ConfigurationError
from plugstore.log_utils import logger


def get_config_file() -> Path:
    """Return the default configuration file path."""
    return Path(platformdirs.user_config_dir(APP_NAME)) / CONFIG_FILE_NAME


def get_default_cache_dir() -> Path:
    """Return the platform user cache directory used for Plugstore caches."""
    return Path(platformdirs.user_cache_dir(APP_NAME))


def get_default_log_dir() -> Path:
    return Path(platformdirs.user_log_dir(APP_NAME))


def get_default_lock_file() -> Path:
    """Return the editor's plugin lock file path (`<config dir of nvim>/lazy-lock.json`)."""
    return Path(platformdirs.user_config_dir(EDITOR_APP_NAME)) / LOCK_FILE_NAME


@dataclass
class StoreConfig:
    """Resolved Plugstore settings."""

    data_source_url: str = DEFAULT_DATA_SOURCE_URL
    """URL of the JSON repository index"""

    install_catalogue_urls: Dict[str, str] = field(
        default_factory=lambda: dict(DEFAULT_INSTALL_CATALOGUE_URLS)
    )
    """Install catalogue URL per supported plugin manager"""

    cache_dir: Path = field(default_factory=get_default_cache_dir)
    """Directory holding db.json, catalogues and README files"""

    lock_file: Path = field(default_factory=get_default_lock_file)
    """Lock file listing installed plugins"""

    log_level: str = "INFO"

    log_file: bool = False
    """Whether to also log to a rotating file in the user log directory"""

    def catalogue_url(self, manager: str) -> str:
        try:
            return self.install_catalogue_urls[manager]
        except KeyError:
            raise ConfigurationError(
                f"No install catalogue URL configured for manager '{manager}'"
            ) from None


_STRING_KEYS = ("data_source_url", "log_level")
_PATH_KEYS = ("cache_dir", "lock_file")


def _build_config(raw: Dict[str, Any], source: Optional[Path]) -> StoreConfig:
    config = StoreConfig()
    source_str = str(source) if source else None

    for key, value in raw.items():
        if key in _STRING_KEYS:
            if not isinstance(value, str) or not value.strip():
                raise ConfigurationError(
                    f"'{key}' must be a non-empty string", path=source_str
                )
            setattr(config, key, value.strip())
        elif key in _PATH_KEYS:
            if not isinstance(value, str) or not value.strip():
                raise ConfigurationError(
                    f"'{key}' must be a path string", path=source_str
                )
            setattr(config, key, Path(os.path.expanduser(value.strip())))
        elif key == "log_file":
            if not isinstance(value, bool):
                raise ConfigurationError("'log_file' must be a boolean", path=source_str)
            config.log_file = value
        elif key == "install_catalogue_urls":
            if not isinstance(value, dict):
                raise ConfigurationError(
                    "'install_catalogue_urls' must be a mapping", path=source_str
                )
            for manager, url in value.items():
                if manager not in SUPPORTED_MANAGERS:
                    raise ConfigurationError(
                        f"Unknown plugin manager '{manager}'",
                        path=source_str,
                        details=f"supported: {', '.join(SUPPORTED_MANAGERS)}",
                    )
                if not isinstance(url, str) or not url.strip():
                    raise ConfigurationError(
                        f"Install catalogue URL for '{manager}' must be a string",
                        path=source_str,
                    )
                config.install_catalogue_urls[manager] = url.strip()
        else:
            logger.warning(f"Ignoring unknown configuration key '{key}'")

    return config


def load_config(path: Optional[Path] = None) -> StoreConfig:
    """
    Load the Plugstore configuration.

    Reads `path` (or the default configuration file) with yaml.safe_load and
    merges its keys over the defaults. The PLUGSTORE_LOG_LEVEL environment
    variable takes precedence over the file's `log_level`.

    Parameters:
        path (Optional[Path]): Explicit configuration file to read.

    Returns:
        StoreConfig: Defaults when the file does not exist, otherwise the merged settings.

    Raises:
        ConfigurationError: If the file cannot be read, is not valid YAML, or holds invalid values.
    """
    config_path = Path(path) if path else get_config_file()

    raw: Dict[str, Any] = {}
    if config_path.exists():
        try:
            with open(config_path, "r", encoding="utf-8") as f:
                loaded = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            raise ConfigurationError(
                "Failed to load configuration", path=str(config_path), details=str(e)
            ) from e
        if loaded is None:
            loaded = {}
        if not isinstance(loaded, dict):
            raise ConfigurationError(
                "Configuration file must contain a mapping", path=str(config_path)
            )
        raw = loaded
        logger.debug(f"Loaded configuration from {config_path}")
    else:
        logger.debug(f"No configuration file at {config_path}; using defaults")

    config = _build_config(raw, config_path if raw else None)

    env_level = os.environ.get(LOG_LEVEL_ENV_VAR)
    if env_level:
        config.log_level = env_level.strip().upper()

    return config
