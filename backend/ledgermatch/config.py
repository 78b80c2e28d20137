"""Application configuration."""

from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

_BACKEND_DIR = Path(__file__).resolve().parents[1]


class Settings(BaseSettings):
    """Runtime settings loaded from environment variables."""

    app_name: str = "Ledgermatch API"
    database_url: str = f"sqlite+pysqlite:///{_BACKEND_DIR / 'ledgermatch.db'}"
    match_threshold: float = 0.55
    suggestion_limit: int = 3
    suggestion_min_score: float = 0.4
    snapshot_retention: int = 5
    history_default_limit: int = 50

    model_config = SettingsConfigDict(
        env_file=str(_BACKEND_DIR / ".env"),
        env_file_encoding="utf-8",
        extra="ignore",
    )


@lru_cache
def get_settings() -> Settings:
    """Return a cached settings instance."""

    return Settings()
