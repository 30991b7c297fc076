"""
Docbase - Configuration and settings.

Settings are read from DOCBASE_* environment variables and an optional
.env file. Credentials are only required for the backend in use and are
checked when the adapter chain is built (see docbase.factory).
"""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from docbase.database.reach import Reach


class DocbaseSettings(BaseSettings):
    """
    Settings for building a database adapter chain.

    Chain order (outermost first): cache -> schema enforcement ->
    search promotion -> backend.
    """

    model_config = SettingsConfigDict(
        env_prefix="DOCBASE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Backend
    backend: Literal["memory", "supabase", "cosmos"] = "memory"

    # Application
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    default_reach: Reach | None = None

    # Cache layer
    cache_enabled: bool = False
    cache_ttl_seconds: float | None = Field(default=None, gt=0)  # None = no expiry

    # Schema layer (JSON file: collection id -> schema)
    schema_file: Path | None = None

    # Search promotion layer
    promote_search: bool = False
    search_chunk_size: int = Field(default=100, gt=0)

    # Supabase
    supabase_url: str | None = None
    supabase_key: str | None = None

    # Azure Cosmos DB
    cosmos_service_id: str | None = None
    cosmos_api_key: str | None = None
    cosmos_key_type: Literal["master", "resource"] = "master"

    @field_validator("default_reach", mode="before")
    @classmethod
    def _parse_reach(cls, value):
        # Names ("server") as well as numeric values
        if isinstance(value, str) and not value.isdigit():
            return Reach.parse(value)
        return value

    @property
    def is_memory(self) -> bool:
        return self.backend == "memory"


@lru_cache
def get_settings() -> DocbaseSettings:
    """Get cached settings instance."""
    return DocbaseSettings()


# Convenience singleton - lazy loaded
class _SettingsProxy:
    """Lazy proxy for settings to avoid loading .env at import time."""

    _instance: DocbaseSettings | None = None

    def __getattr__(self, name: str):
        if self._instance is None:
            self._instance = get_settings()
        return getattr(self._instance, name)


settings = _SettingsProxy()
