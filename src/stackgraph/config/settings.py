"""
Application settings using Pydantic.

Provides environment-based configuration loading with STACKGRAPH_ prefix.
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="STACKGRAPH_",
        extra="ignore",
    )

    # Logging
    log_level: str = "INFO"
    log_format: Literal["console", "json"] = "console"

    # Provider used by apply/destroy when none is given on the command line
    provider: str = "memory"

    # Executor
    max_concurrency: int = Field(default=1, ge=1)
    provider_timeout: float | None = 300.0

    # Where apply/destroy persist provisioned attributes
    state_file: str = "stackgraph.state.json"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
