from datetime import timedelta
from pathlib import Path
from typing import Optional
import logging
import os

from pydantic import ValidationError

from remote_config.domain.models import ClientSettings
from remote_config.services.downloader import ServerConfigDownloader
from remote_config.services.provider import FileConfigProvider

logger = logging.getLogger(__name__)

SERVER_URL_ENV_VAR = "REMOTE_CONFIG_SERVER_URL"
DATA_ROOT_ENV_VAR = "REMOTE_CONFIG_DATA_DIR"
HTTP_TIMEOUT_ENV_VAR = "REMOTE_CONFIG_HTTP_TIMEOUT"
CACHE_TTL_ENV_VAR = "REMOTE_CONFIG_CACHE_TTL"
CACHE_MAX_LIFETIME_ENV_VAR = "REMOTE_CONFIG_CACHE_MAX_LIFETIME"
SERVE_ROOT_ENV_VAR = "REMOTE_CONFIG_SERVE_ROOT"
LOG_LEVEL_ENV_VAR = "REMOTE_CONFIG_LOG_LEVEL"

_ENV_FIELDS = {
    SERVER_URL_ENV_VAR: "server_url",
    DATA_ROOT_ENV_VAR: "data_dir",
    HTTP_TIMEOUT_ENV_VAR: "http_timeout",
    CACHE_TTL_ENV_VAR: "cache_entry_ttl",
    CACHE_MAX_LIFETIME_ENV_VAR: "cache_max_lifetime",
    SERVE_ROOT_ENV_VAR: "serve_root",
    LOG_LEVEL_ENV_VAR: "log_level",
}

_settings: Optional[ClientSettings] = None

def get_settings() -> ClientSettings:
    """
    Build settings from REMOTE_CONFIG_* environment variables (once per process).
    Unset variables keep the model defaults; malformed ones raise ValidationError.
    """
    global _settings
    if _settings is None:
        values = {
            field: os.environ[name]
            for name, field in _ENV_FIELDS.items()
            if os.environ.get(name)
        }
        try:
            _settings = ClientSettings(**values)
        except ValidationError as e:
            logger.error(f"Invalid REMOTE_CONFIG_* environment settings: {e}")
            raise
    return _settings

def get_data_dir() -> Path:
    d = get_settings().data_dir.expanduser()
    d.mkdir(parents=True, exist_ok=True)
    return d

def create_downloader() -> ServerConfigDownloader:
    """A new downloader with its own HTTP client; the caller disposes it."""
    return ServerConfigDownloader(
        data_dir=get_data_dir(),
        timeout=get_settings().http_timeout,
    )

def create_provider(root_directory: Path) -> FileConfigProvider:
    settings = get_settings()
    return FileConfigProvider(
        root_directory,
        entry_ttl=timedelta(seconds=settings.cache_entry_ttl),
        max_lifetime=timedelta(seconds=settings.cache_max_lifetime),
    )

def reset_dependencies() -> None:
    """Forget cached settings (used by tests after changing the environment)."""
    global _settings
    _settings = None
