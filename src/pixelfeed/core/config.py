"""Configuration management for Pixelfeed.

This module provides centralized configuration management using Pydantic Settings.
All configuration is loaded from environment variables with the PIXELFEED_ prefix,
allowing easy customization without code changes.

Environment Variable Loading
-----------------------------
Configuration values are loaded in the following priority order:
1. Environment variables (PIXELFEED_* prefix)
2. .env file in the project root
3. Default values defined in PixelfeedConfig

The OpenAI key is the one exception to the prefix rule: it is also read from
the conventional ``OPENAI_API_KEY`` variable so an existing shell setup works
unchanged.

Example .env file:
    PIXELFEED_DATABASE_PATH=data/pixelfeed.db
    PIXELFEED_IMAGE_MODEL=dall-e-2
    PIXELFEED_GENERATE_COOLDOWN_SECONDS=30
    OPENAI_API_KEY=sk-...

Global Configuration Instance
------------------------------
A global `config` instance is created automatically at module import time and
is what the ``pixelfeed`` console script serves with.  Tests build their own
``PixelfeedConfig`` and pass it to :func:`pixelfeed.api.main.create_app`.

Usage Example
-------------
    from pixelfeed.core.config import config

    print(config.database_path)
    print(config.generate_cooldown_seconds)
"""

from pathlib import Path
from typing import Literal

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class PixelfeedConfig(BaseSettings):
    """Main configuration for Pixelfeed.

    Attributes
    ----------
    Storage:
        database_path : Path
            SQLite database file holding published images and user profiles

    Image Provider:
        openai_api_key : str
            API key for the OpenAI Images API (empty means not configured)
        image_model : str
            Model name passed to ``images.generate``
        image_size : str
            Requested image size
        provider_timeout : float
            Request timeout in seconds for a single provider call

    Generation Cooldown:
        generate_cooldown_seconds : int
            Minimum time between two admitted generations of one caller

    Feed Pagination:
        feed_default_limit : int
            Page size used when the caller omits or garbles ``limit``
        feed_max_limit : int
            Largest page size a caller may request; larger values are clamped

    Server:
        server_host : str
            Bind address for uvicorn
        server_port : int
            Port for uvicorn (1024-65535)
        log_level : str
            Root logging level used by the CLI entry point
        cors_allow_origins : list[str]
            Origins allowed by the CORS middleware
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="PIXELFEED_",
        case_sensitive=False,
        extra="ignore",
    )

    # Storage
    database_path: Path = Field(
        default=Path("data/pixelfeed.db"),
        description="SQLite database file for published images and users",
    )

    # Image provider
    openai_api_key: str = Field(
        default="",
        validation_alias=AliasChoices(
            "PIXELFEED_OPENAI_API_KEY", "OPENAI_API_KEY", "openai_api_key"
        ),
        description="OpenAI API key (empty = provider not configured)",
    )
    image_model: str = Field(
        default="dall-e-2",
        description="OpenAI image model name",
    )
    image_size: Literal["256x256", "512x512", "1024x1024"] = Field(
        default="512x512",
        description="Requested image size",
    )
    provider_timeout: float = Field(
        default=60.0,
        description="Timeout in seconds for one provider request",
        gt=0,
    )

    # Generation cooldown
    generate_cooldown_seconds: int = Field(
        default=30,
        description="Seconds a caller must wait between generations",
        ge=0,
    )

    # Feed pagination
    feed_default_limit: int = Field(default=10, ge=1)
    feed_max_limit: int = Field(default=50, ge=1)

    # Server
    server_host: str = Field(
        default="0.0.0.0",
        description="Server bind address",
    )
    server_port: int = Field(
        default=7860,
        description="Server port",
        ge=1024,
        le=65535,
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Root logging level",
    )
    cors_allow_origins: list[str] = Field(
        default_factory=lambda: ["*"],
        description="Origins allowed to call the API from a browser",
    )

    def __init__(self, **kwargs):
        """Initialize configuration and create the database directory.

        Args:
            **kwargs: Configuration overrides (typically from environment variables)
        """
        super().__init__(**kwargs)

        self.database_path.parent.mkdir(parents=True, exist_ok=True)

    @property
    def generate_cooldown_ms(self) -> int:
        """Cooldown window in milliseconds."""
        return self.generate_cooldown_seconds * 1000

    def has_openai_key(self) -> bool:
        """Check if an OpenAI API key is configured."""
        return bool(self.openai_api_key)


# Global configuration instance
# Loads values from environment variables (PIXELFEED_* prefix) and .env file.
config = PixelfeedConfig()
