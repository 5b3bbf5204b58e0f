"""Client configuration."""

import os

from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class Settings(BaseSettings):
    """Transport settings loaded from environment variables."""

    request_timeout_seconds: float = 10.0
    verify_tls: bool = True
    log_level: str = "INFO"
    preferred_media_types: str | None = None
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_prefix="VERAISON_",
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )


def parse_media_types(raw: str | None) -> list[str]:
    """Parse a comma-separated media type preference list."""
    if raw is None:
        return []
    types: list[str] = []
    for chunk in raw.split(","):
        value = chunk.strip()
        if value and value not in types:
            types.append(value)
    return types
