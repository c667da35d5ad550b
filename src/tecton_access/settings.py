"""Runtime settings for tecton-access."""

from __future__ import annotations

from collections.abc import Callable
from functools import lru_cache

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

ALLOWED_LOG_LEVELS = frozenset({"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"})
ALLOWED_LOG_FORMATS = frozenset({"console", "json"})


def tecton_access_settings_config() -> SettingsConfigDict:
    """Return the standard ``BaseSettings`` config dict."""

    return SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="TECTON_ACCESS_",
        case_sensitive=False,
        extra="ignore",
        env_ignore_empty=True,
        str_strip_whitespace=True,
    )


def create_settings_accessors[T](
    settings_type: type[T],
) -> tuple[Callable[[], T], Callable[[], T]]:
    """Create ``get_settings`` and ``reload_settings`` helpers for a settings class."""

    @lru_cache(maxsize=1)
    def _build() -> T:
        return settings_type()

    def get_settings() -> T:
        return _build()

    def reload_settings() -> T:
        _build.cache_clear()
        return _build()

    return get_settings, reload_settings


def normalize_log_format(value: str, *, env_var: str = "TECTON_ACCESS_LOG_FORMAT") -> str:
    normalized = value.strip().lower()
    if normalized not in ALLOWED_LOG_FORMATS:
        allowed = ", ".join(sorted(ALLOWED_LOG_FORMATS))
        raise ValueError(f"{env_var} must be one of: {allowed}.")
    return normalized


def normalize_log_level(value: str | None, *, env_var: str) -> str | None:
    if value is None:
        return None
    normalized = value.strip().upper()
    if normalized not in ALLOWED_LOG_LEVELS:
        allowed = ", ".join(sorted(ALLOWED_LOG_LEVELS))
        raise ValueError(f"{env_var} must be one of: {allowed}.")
    return normalized


class Settings(BaseSettings):
    """Backend connection and logging settings."""

    model_config = tecton_access_settings_config()

    url: str | None = Field(default=None, description="Tecton cluster URL.")
    api_key: SecretStr | None = Field(default=None, description="Tecton API key.")
    cli_path: str = Field(default="tecton", description="Name or path of the tecton executable.")
    timeout_seconds: float | None = Field(default=None, gt=0)
    direct_grants_only: bool = False

    log_level: str = "INFO"
    log_format: str = "console"

    @field_validator("url", mode="after")
    @classmethod
    def _strip_trailing_slash(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return value.rstrip("/") or None

    @field_validator("log_level", mode="before")
    @classmethod
    def _normalize_log_level(cls, value: object) -> object:
        if value is None:
            return "INFO"
        return normalize_log_level(str(value), env_var="TECTON_ACCESS_LOG_LEVEL")

    @field_validator("log_format", mode="before")
    @classmethod
    def _normalize_log_format(cls, value: object) -> object:
        if value is None:
            return "console"
        return normalize_log_format(str(value))

    def command_env(self, base: dict[str, str] | None = None) -> dict[str, str]:
        """Environment for ``tecton`` invocations: ``base`` plus credentials."""

        env = dict(base or {})
        if self.api_key is not None:
            env["TECTON_API_KEY"] = self.api_key.get_secret_value()
        if self.url:
            env["API_SERVICE"] = f"{self.url}/api"
        return env


get_settings, reload_settings = create_settings_accessors(Settings)


__all__ = [
    "ALLOWED_LOG_FORMATS",
    "ALLOWED_LOG_LEVELS",
    "Settings",
    "create_settings_accessors",
    "get_settings",
    "normalize_log_format",
    "normalize_log_level",
    "reload_settings",
    "tecton_access_settings_config",
]
