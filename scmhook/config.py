"""Application configuration loaded from environment variables."""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from scmhook.schemas.shortener import DEFAULT_SHORTENERS, ShortenerRule

VERSION = "0.4.0"


class Settings(BaseSettings):
    """Application settings with environment variable loading and sensible defaults.

    Values are read once at startup and never mutated afterwards; command line
    flags derive a new, re-validated instance.
    """

    model_config = SettingsConfigDict(
        env_prefix="SCMHOOK_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        frozen=True,
    )

    app_name: str = "scmhook"
    debug: bool = False
    log_level: str = "INFO"
    host: str = "0.0.0.0"
    port: int = 8080
    tls_cert_file: str | None = None
    tls_key_file: str | None = None

    # Downstream notification endpoint; empty keeps events in memory only
    notification_url: str = ""
    http_timeout: float = Field(default=10.0, gt=0)

    # Event extraction
    merge_threshold: int = Field(default=5, ge=0)
    commit_id_size: int = Field(default=7, ge=1, le=40)
    detect_renames: bool = True
    rename_threshold: int = Field(default=50, ge=0, le=100)
    detect_copies: bool = False
    copy_threshold: int = Field(default=50, ge=0, le=100)

    # URL shortening
    use_shortener: bool = False
    shorteners: list[ShortenerRule] = Field(default_factory=lambda: list(DEFAULT_SHORTENERS))

    # Webhook authentication: None disables verification entirely
    webhook_secrets: dict[str, str] | None = None
    # Extra headers for enrichment lookups, keyed by project name or group
    api_headers: dict[str, dict[str, str]] = Field(default_factory=dict)


@lru_cache
def get_settings() -> Settings:
    """Return the process-wide settings, built on first use."""
    return Settings()
