"""
Configuration settings for sheetorm.

Uses Pydantic Settings to load environment variables for the workbook location,
result caching, pagination defaults, and logging.
"""
from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Store
    store_path: str = Field("data", alias="SHEETORM_STORE_PATH")
    schema_file: Optional[str] = Field(None, alias="SHEETORM_SCHEMA_FILE")
    write_access: bool = Field(True, alias="SHEETORM_WRITE_ACCESS")

    # Result cache
    cache_enabled: bool = Field(False, alias="SHEETORM_CACHE_ENABLED")
    cache_ttl_seconds: float = Field(300.0, alias="SHEETORM_CACHE_TTL_SECONDS")

    # Pagination
    default_per_page: int = Field(20, alias="SHEETORM_DEFAULT_PER_PAGE")
    max_per_page: int = Field(100, alias="SHEETORM_MAX_PER_PAGE")

    # Application
    app_env: str = Field("development", alias="APP_ENV")
    log_level: str = Field("INFO", alias="LOG_LEVEL")
    json_logs: bool = Field(False, alias="LOG_JSON")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Retrieve a cached instance of Settings to avoid repeated env parsing.
    """
    return Settings()


__all__ = ["Settings", "get_settings"]
