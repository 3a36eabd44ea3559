"""Application configuration."""

import os
import re

from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")

_PLACEHOLDER_MARKERS = ("example", "placeholder", "your-", "changeme")
_URL_PATTERN = re.compile(r"^https?://.+")


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Supabase values are optional so an unconfigured deployment can still
    report itself as misconfigured instead of failing to boot.
    """

    supabase_url: str | None = None
    supabase_anon_key: str | None = None
    supabase_service_role_key: str | None = None
    sessions_table: str = "sessions"
    session_code_max_attempts: int = 10
    reconcile_max_attempts: int = 3
    health_probe_timeout_seconds: float = 5.0
    log_level: str = "INFO"
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )


def is_placeholder(value: str) -> bool:
    """Return true for template values copied from an example env file."""
    lowered = value.lower()
    return any(marker in lowered for marker in _PLACEHOLDER_MARKERS)


def missing_supabase_settings(settings: Settings) -> list[str]:
    """List required env variables that are unset, placeholders or malformed."""
    required = {
        "SUPABASE_URL": settings.supabase_url,
        "SUPABASE_ANON_KEY": settings.supabase_anon_key,
    }
    missing = []
    for name, value in required.items():
        if value is None or not value.strip() or is_placeholder(value):
            missing.append(name)
        elif name == "SUPABASE_URL" and not _URL_PATTERN.match(value):
            missing.append(name)
    return missing


def environment_flags(settings: Settings) -> dict[str, bool]:
    """Per-variable presence flags reported by the health endpoint."""
    return {
        "supabase_url_configured": bool(settings.supabase_url),
        "supabase_anon_key_configured": bool(settings.supabase_anon_key),
        "supabase_service_role_configured": bool(settings.supabase_service_role_key),
    }
