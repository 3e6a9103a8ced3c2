"""Process-level settings for npcsync.

Per-game values (API key, budget, player) live in the data directory's
config.json; these settings describe the environment the process runs in.
"""

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="NPCSYNC_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Mantella game data folder (contains conversations/ and character_overrides/)
    data_dir: Path = Field(default=Path("."))

    # JSONL run logs; None disables the event log file
    log_dir: Path | None = None

    # Worker pool size override; None defers to config.json
    concurrency: int | None = Field(default=None, ge=1)

    # LLM record/replay
    cassette_mode: str = "off"
    cassette_dir: Path | None = None


_settings: Settings | None = None


def get_settings() -> Settings:
    """Get cached settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reset_settings() -> None:
    """Reset settings cache (useful for testing)."""
    global _settings
    _settings = None
