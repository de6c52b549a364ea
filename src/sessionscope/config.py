"""Application settings, loaded from the environment and ``.env``."""
from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Registered under DEFAULT_BACKEND ("default").
    DATABASE_URL: str = "sqlite:///data/sessionscope.db"
    # Additional named backends, e.g. EXTRA_BACKENDS='{"audit": "sqlite:///data/audit.db"}'
    EXTRA_BACKENDS: dict[str, str] = Field(default_factory=dict)
    SQL_ECHO: bool = False

    LOG_LEVEL: str = "INFO"
    API_TITLE: str = "sessionscope people API"


settings = Settings()
