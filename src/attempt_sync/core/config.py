"""Configuration loading and validation."""

import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .profiles import ProfileCatalog

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path("config/attempt-sync.yaml")
PROFILES_CONFIG_PATH = Path("config/profiles.yaml")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class ServerConfig(BaseModel):
    """Task server connection settings."""
    base_url: str = "http://127.0.0.1:3000"
    timeout_seconds: float = 30.0
    auth_token: Optional[str] = None

    @field_validator('base_url')
    @classmethod
    def validate_base_url(cls, v: str) -> str:
        if not v.startswith(("http://", "https://")):
            raise ValueError(
                f"base_url must start with http:// or https://, got '{v}'"
            )
        return v.rstrip("/")

    @field_validator('timeout_seconds')
    @classmethod
    def validate_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError(f"timeout_seconds must be positive, got {v}")
        return v


class PollingConfig(BaseModel):
    """Attempt polling settings."""
    interval_seconds: float = 5.0

    @field_validator('interval_seconds')
    @classmethod
    def validate_interval(cls, v: float) -> float:
        if v <= 0:
            raise ValueError(f"interval_seconds must be positive, got {v}")
        if v < 1.0:
            logger.warning(
                f"Polling interval is very short ({v}s). "
                "This may put noticeable load on the task server."
            )
        return v


class FollowUpConfig(BaseModel):
    """Follow-up submission settings."""
    # Used when neither an explicit selection nor the attempt names a profile
    default_profile: Optional[str] = "claude-code"


class LoggingConfig(BaseModel):
    """Logging settings."""
    level: str = "INFO"
    use_file: bool = False
    log_dir: Path = Field(default=Path("logs"))

    @field_validator('level')
    @classmethod
    def validate_level(cls, v: str) -> str:
        level = v.upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"Unknown log level '{v}'")
        return level


class SyncConfig(BaseSettings):
    """Main attempt-sync configuration."""
    model_config = SettingsConfigDict(
        env_prefix="ATTEMPT_SYNC_",
        env_nested_delimiter="__",
        env_file=".env",
        extra="ignore",
    )

    server: ServerConfig = Field(default_factory=ServerConfig)
    polling: PollingConfig = Field(default_factory=PollingConfig)
    follow_up: FollowUpConfig = Field(default_factory=FollowUpConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    profiles_path: Path = Field(default=PROFILES_CONFIG_PATH)


# Module-level mtime-based config cache: path -> (parsed_config, file_mtime)
_config_cache: Dict[str, tuple] = {}


def _get_cached_or_load(resolved_path: Path, loader):
    """Return cached config if file mtime unchanged, else reload.

    Works for any config loader that takes a Path and returns a parsed object.
    """
    key = str(resolved_path)
    try:
        current_mtime = resolved_path.stat().st_mtime
    except FileNotFoundError:
        _config_cache.pop(key, None)
        return None

    cached = _config_cache.get(key)
    if cached is not None:
        cached_result, cached_mtime = cached
        if cached_mtime == current_mtime:
            return cached_result

    result = loader(resolved_path)
    _config_cache[key] = (result, current_mtime)
    return result


def clear_config_cache() -> None:
    """Clear the module-level config cache. Useful for tests."""
    _config_cache.clear()


def _load_config_from_file(config_path: Path) -> SyncConfig:
    """Internal loader for sync config (no caching)."""
    with open(config_path) as f:
        data = yaml.safe_load(f) or {}
    data = _expand_env_vars(data)
    return SyncConfig(**data)


def load_config(config_path: Path = DEFAULT_CONFIG_PATH) -> SyncConfig:
    """Load sync configuration from YAML file.

    Uses mtime-based caching: returns cached config if the file hasn't changed.
    """
    if not config_path.exists():
        logger.warning(
            f"Config file not found: {config_path}. Using default configuration."
        )
        return SyncConfig()

    result = _get_cached_or_load(config_path.resolve(), _load_config_from_file)
    return result if result is not None else SyncConfig()


def _load_profiles_from_file(profiles_path: Path) -> ProfileCatalog:
    """Internal loader for the profile catalog (no caching)."""
    with open(profiles_path) as f:
        data = yaml.safe_load(f) or {}
    return ProfileCatalog(**data)


def load_profile_catalog(profiles_path: Path = PROFILES_CONFIG_PATH) -> Optional[ProfileCatalog]:
    """Load the local profile catalog.

    Returns None when the file doesn't exist (callers fall back to the
    server's catalog).
    """
    if not profiles_path.exists():
        return None
    return _get_cached_or_load(profiles_path.resolve(), _load_profiles_from_file)


def _expand_env_vars(data: Any, _path: str = "") -> Any:
    """Recursively expand ``${VAR}`` references in config data.

    Args:
        data: Config data to process
        _path: Internal tracking for error messages (e.g., "server.auth_token")
    """
    if isinstance(data, dict):
        return {k: _expand_env_vars(v, f"{_path}.{k}" if _path else k) for k, v in data.items()}
    elif isinstance(data, list):
        return [_expand_env_vars(item, f"{_path}[{i}]") for i, item in enumerate(data)]
    elif isinstance(data, str) and data.startswith("${") and data.endswith("}"):
        env_var = data[2:-1]
        value = os.environ.get(env_var)
        if value is None:
            logger.warning(
                f"Environment variable '{env_var}' not set (referenced at config path: {_path or 'root'}). "
                f"The literal string '{data}' will be used, which may cause errors."
            )
            return data
        return value
    return data
