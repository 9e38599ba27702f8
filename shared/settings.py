"""Centralised application configuration.

Settings are loaded from environment variables or the `.env` file in the
project root. Using pydantic's BaseSettings provides convenient parsing
and type checking. The bot process instantiates one Settings object at
startup and hands it to the collaborators that need it (synthesizer,
keep-alive server, Discord client) instead of letting each of them read
the environment on its own.
"""

from __future__ import annotations

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from shared.models import RetryPolicy


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    # Secrets (bot token is required to start, API key only to synthesize)
    discord_bot_token: str | None = Field(
        default=None,
        validation_alias=AliasChoices("DISCORD_BOT_TOKEN", "discord_bot_token"),
    )
    gemini_api_key: str | None = Field(
        default=None, validation_alias=AliasChoices("GEMINI_API_KEY", "gemini_api_key")
    )

    # Gemini
    gemini_model: str = Field(
        default="gemini-2.5-flash-preview-09-2025",
        validation_alias=AliasChoices("GEMINI_MODEL", "gemini_model"),
    )
    gemini_api_base: str = Field(
        default="https://generativelanguage.googleapis.com/v1beta",
        validation_alias=AliasChoices("GEMINI_API_BASE", "gemini_api_base"),
    )

    # Site the grounded model is asked to analyse
    loot_source_url: str = Field(
        default="https://arcraidersmap.app/",
        validation_alias=AliasChoices("LOOT_SOURCE_URL", "loot_source_url"),
    )

    # Discord
    command_prefix: str = Field(
        default="!",
        min_length=1,
        validation_alias=AliasChoices("COMMAND_PREFIX", "command_prefix"),
    )

    # Keep-alive HTTP server (Render and friends inject PORT)
    port: int = Field(default=3000, validation_alias=AliasChoices("PORT", "port"))
    host: str = Field(default="0.0.0.0", validation_alias=AliasChoices("HOST", "host"))

    # Retry policy for the upstream call
    fetch_max_attempts: int = Field(
        default=5,
        ge=1,
        le=10,
        validation_alias=AliasChoices("FETCH_MAX_ATTEMPTS", "fetch_max_attempts"),
    )
    fetch_base_delay_seconds: float = Field(
        default=1.0,
        gt=0,
        validation_alias=AliasChoices(
            "FETCH_BASE_DELAY_SECONDS", "fetch_base_delay_seconds"
        ),
    )
    fetch_jitter_seconds: float = Field(
        default=1.0,
        ge=0,
        validation_alias=AliasChoices("FETCH_JITTER_SECONDS", "fetch_jitter_seconds"),
    )
    fetch_timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        validation_alias=AliasChoices("FETCH_TIMEOUT_SECONDS", "fetch_timeout_seconds"),
    )
    # Unset means no deadline across the whole synthesis (per-attempt timeout only)
    synthesis_deadline_seconds: float | None = Field(
        default=None,
        gt=0,
        validation_alias=AliasChoices(
            "SYNTHESIS_DEADLINE_SECONDS", "synthesis_deadline_seconds"
        ),
    )

    # Logging/observability
    log_level: str = Field("INFO", validation_alias=AliasChoices("LOG_LEVEL", "log_level"))
    langfuse_enabled: bool = Field(False)
    langfuse_host: str = Field("")
    langfuse_public_key: str = Field("")
    langfuse_secret_key: str = Field("")
    tracing_backend: str = Field("langfuse")

    def retry_policy(self) -> RetryPolicy:
        """Build the immutable retry policy used by the fetcher."""
        return RetryPolicy(
            max_attempts=self.fetch_max_attempts,
            base_delay=self.fetch_base_delay_seconds,
            jitter=self.fetch_jitter_seconds,
            timeout_seconds=self.fetch_timeout_seconds,
        )

    def generate_url(self) -> str:
        """Return the generateContent endpoint for the configured model.

        The API key is not part of the returned URL; callers attach it as a
        query parameter so it never ends up in log lines.
        """
        base = self.gemini_api_base.rstrip("/")
        return f"{base}/models/{self.gemini_model}:generateContent"
