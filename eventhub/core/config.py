"""Environment-driven settings for the EventHub API.

Values are read once, at import, from the process environment and an optional
``.env`` file. Every field has a development default so the service boots with
no configuration at all.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-driven application configuration."""

    model_config = SettingsConfigDict(
        env_file=(".env", ".env.local"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    APP_NAME: str = "EventHub"
    APP_ENV: str = "dev"

    DATA_DIR: Path = Field(default_factory=lambda: Path(__file__).resolve().parents[2] / "data")

    # Empty means "SQLite file under DATA_DIR", see ``database_url``.
    DB_URL: str = Field(default="", validation_alias=AliasChoices("DB_URL", "DATABASE_URL"))

    # Shared secret for machine-to-machine calls (X-API-Key).
    API_KEY: str = Field(default="", validation_alias=AliasChoices("API_KEY", "API_TOKEN"))
    JWT_SECRET: str = "change-me"
    JWT_ACCESS_TTL_MIN: int = 15
    JWT_REFRESH_TTL_DAYS: int = 7
    AUTH_ALLOW_API_KEY: bool = True

    # Comma separated; empty disables CORS.
    ALLOWED_ORIGINS: str = ""

    LOG_LEVEL: str = "INFO"

    # Turning this off leaves the ORM hooks detached (bulk imports, seeding).
    AUDIT_ENABLED: bool = True

    HOST: str = "0.0.0.0"
    PORT: int = 8089

    @property
    def database_url(self) -> str:
        return self.DB_URL or f"sqlite:///{self.DATA_DIR}/eventhub.db"

    @property
    def allowed_origins(self) -> list[str]:
        return [origin.strip() for origin in self.ALLOWED_ORIGINS.split(",") if origin.strip()]


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    settings = Settings()
    if not settings.DB_URL:
        # Only the default SQLite location needs the folder to exist.
        settings.DATA_DIR.mkdir(parents=True, exist_ok=True)
    return settings


settings = get_settings()
