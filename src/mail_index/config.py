"""Configuration management for mail-index.

This module handles application configuration using Pydantic settings.
Configuration can be loaded from environment variables or .env files.
"""

import os
from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings with environment variable support.

    All settings can be overridden via environment variables with
    the MAIL_INDEX_ prefix (e.g., MAIL_INDEX_ZINC_URL).
    """

    model_config = SettingsConfigDict(
        env_prefix="MAIL_INDEX_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ZincSearch Configuration
    zinc_url: str = Field(
        default="http://localhost:4081",
        description="Base URL of the ZincSearch-compatible index service",
    )
    zinc_username: str = Field(
        default="admin",
        description="Basic Auth username for the index service",
    )
    zinc_password: str = Field(
        default="admin",
        description="Basic Auth password for the index service",
    )
    index_name: str = Field(
        default="enron",
        description="Name of the index that bulk documents are written to",
    )
    batch_size: int = Field(
        default=1000,
        ge=1,
        description="Number of records accumulated before a bulk request is sent",
    )
    http_timeout: float = Field(
        default=30.0,
        gt=0,
        description="Timeout for index service requests in seconds",
    )

    # Corpus / pipeline configuration
    emails_root: Path = Field(
        default=Path("database/maildir"),
        description="Root directory of the maildir corpus to ingest",
    )
    workers: int = Field(
        default_factory=lambda: os.cpu_count() or 1,
        ge=1,
        description="Number of parallel parser workers",
    )
    queue_size: int = Field(
        default=1000,
        ge=1,
        description="Capacity of the path and parsed-record queues",
    )
    max_content_length: int = Field(
        default=50000,
        ge=1,
        description="Maximum number of body characters kept per email",
    )
    report_interval: int = Field(
        default=1000,
        ge=1,
        description="Log a progress line every N parsed records",
    )

    # Application Configuration
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )
    debug: bool = Field(
        default=False,
        description="Enable debug mode",
    )
    max_retries: int = Field(
        default=3,
        ge=0,
        description="Maximum number of retries for index creation on transport failure",
    )


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings.

    Returns:
        Settings: Application settings instance.
    """
    return Settings()
