"""Application settings loaded from the environment."""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration for the Task Manager API."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    app_name: str = "Task Manager API"
    version: str = "1.0.0"

    # MongoDB; when no URI is configured tasks are kept in memory
    mongodb_uri: str | None = None
    mongodb_database: str = "task_manager"
    mongodb_collection: str = "tasks"
    mongodb_timeout_ms: int = Field(default=5000, gt=0)

    cors_origins: list[str] = Field(default_factory=lambda: ["*"])
    log_level: str = "INFO"

    host: str = "0.0.0.0"
    port: int = 3000


@lru_cache()
def get_settings() -> Settings:
    return Settings()
