"""Lightweight configuration for the diceconquest tools."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings, overridable through ``DICECONQUEST_*`` variables."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", env_prefix="DICECONQUEST_", extra="ignore"
    )

    data_dir: Path = Field(default=Path("games"), description="Where saved games live")
    log_level: str = Field(default="INFO", description="Root logging level for the CLI and server")
    strict_invariants: bool = Field(
        default=False,
        description="Raise on broken game invariants instead of logging and clamping",
    )
    ai_max_steps: int = Field(
        default=20_000,
        description="Upper bound on AI moves applied by one autoplay request",
        gt=0,
    )
    cors_origins: list[str] = Field(
        default_factory=lambda: ["http://localhost:5173", "http://127.0.0.1:5173"],
        description="Origins allowed to call the HTTP API",
    )


@lru_cache
def get_settings() -> Settings:
    """Return a cached Settings instance."""

    settings = Settings()
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    return settings
