"""Application configuration using Pydantic Settings."""

from functools import lru_cache
from typing import Literal

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Analysis webhook
    webhook_url: str = Field(
        default="https://hook.integrator.boost.space/0w7dejdvm21p78a4lf4wdjkfi8dlvk25",
        description="Keyword analysis webhook endpoint",
    )
    webhook_max_attempts: int = Field(default=3, description="Delivery attempts before giving up")
    webhook_retry_delay: float = Field(
        default=1.0, description="Base retry delay in seconds (multiplied by attempt number)"
    )

    # Google autocomplete
    autosuggest_url: str = Field(
        default="https://suggestqueries.google.com/complete/search",
        description="Search suggestion endpoint",
    )
    autosuggest_delay: float = Field(
        default=0.2, description="Pause between suggestion requests in seconds"
    )

    # Hosted record store (Supabase / PostgREST)
    supabase_url: str = Field(default="", description="Supabase project URL")
    supabase_key: SecretStr = Field(default="", description="Supabase API key")
    keywords_table: str = Field(default="keywords", description="Hosted keywords table")

    # Database
    database_url: str = Field(
        default="sqlite:///data/keyword_tiers.db",
        description="Database connection URL",
    )

    # Defaults
    default_language: str = Field(default="en-US", description="Default locale tag")

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", description="Logging level"
    )
    log_format: Literal["json", "text"] = Field(default="text", description="Log output format")

    @property
    def supabase_configured(self) -> bool:
        """Check if the hosted record store is configured."""
        return bool(self.supabase_url and self.supabase_key.get_secret_value())


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
