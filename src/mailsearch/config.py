"""Configuration management for mailsearch.

This module handles application configuration using Pydantic settings.
Configuration can be loaded from environment variables or .env files.
"""

from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

FORMAT_VERSION_MIN = 1
FORMAT_VERSION_CURRENT = 2


class Settings(BaseSettings):
    """Application settings with environment variable support.

    All settings can be overridden via environment variables with
    the MAILSEARCH_ prefix (e.g., MAILSEARCH_DATABASE_PATH).
    """

    model_config = SettingsConfigDict(
        env_prefix="MAILSEARCH_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Index configuration
    database_path: Path = Field(
        default=Path("mail_index.sqlite3"),
        description="Path to the local SQLite mail index",
    )

    # Search configuration
    search_exclude_tags: list[str] = Field(
        default_factory=lambda: ["deleted", "spam"],
        description=(
            "Tags whose messages are excluded from search results unless the "
            "query names them explicitly"
        ),
    )
    default_format_version: int = Field(
        default=FORMAT_VERSION_CURRENT,
        description="Structured output format version used when --format-version is not given",
    )

    # Application Configuration
    log_level: str = Field(
        default="WARNING",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )
    debug: bool = Field(
        default=False,
        description="Enable debug mode",
    )


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings.

    Returns:
        Settings: Application settings instance.
    """
    return Settings()
