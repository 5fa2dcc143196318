"""Session Configuration - environment-driven settings via pydantic-settings.

Invariants:
    - Every setting has a default: the library works without any environment
    - default_service_url is an absolute http(s) URL; request timeout is positive
    - get_settings() is cached (lru_cache) - single instance per process

Design Decisions:
    - pydantic-settings over raw os.environ: validation, type coercion, .env file support
    - ATP_SESSION_ prefix: settings never collide with the host application's env vars
"""

from functools import lru_cache
from urllib.parse import urlsplit

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Session core settings from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env", env_prefix="ATP_SESSION_", case_sensitive=False,
    )

    # Account service
    default_service_url: str = "https://bsky.social"

    @field_validator("default_service_url")
    @classmethod
    def check_service_url(cls, v: str) -> str:
        parts = urlsplit(v)
        if parts.scheme not in ("http", "https") or not parts.netloc:
            raise ValueError("default_service_url must be an absolute http(s) URL")
        return v.rstrip("/")

    # Transport
    request_timeout_seconds: float = 30.0
    user_agent: str = "atp-session/0.1.0"

    @field_validator("request_timeout_seconds")
    @classmethod
    def check_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("request_timeout_seconds must be positive")
        return v

    # Credentials
    raise_on_missing_credentials: bool = True
    auto_refresh_tokens: bool = True

    # Observability
    log_level: str = "INFO"
    log_format: str = "json"


@lru_cache
def get_settings() -> Settings:
    return Settings()
