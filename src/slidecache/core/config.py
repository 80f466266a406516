# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Application configuration via environment variables and .env files."""

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from slidecache.core.constants import BackendType


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="SLIDECACHE_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_ignore_empty=True,
    )

    # Backing store
    backend: BackendType = BackendType.MEMORY
    redis_url: str = "redis://localhost:6379/0"
    database: int = 0
    server_name: str = "default"
    script_cache: bool = True  # EVALSHA with EVAL fallback

    @field_validator("database")
    @classmethod
    def _check_database(cls, v: int) -> int:
        if v < 0:
            raise ValueError("database index must be >= 0")
        return v

    # Expiration
    sliding_expiration: bool = True

    # Logging
    log_level: str = "INFO"
    log_format: str = "json"


def get_settings() -> Settings:
    return Settings()
