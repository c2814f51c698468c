"""Application configuration."""

import os
from datetime import timedelta
from pathlib import Path
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")
_DEFAULT_STORE_PATH = Path.home() / ".cache" / "product_cache" / "products.store"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    product_store_backend: Literal["file", "supabase"] = "file"
    product_store_path: Path = _DEFAULT_STORE_PATH
    supabase_url: str | None = None
    supabase_service_key: str | None = None
    cache_max_age_days: int = 7
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )

    @property
    def cache_max_age(self) -> timedelta:
        """Maximum age of a cached snapshot before it is considered stale."""
        return timedelta(days=self.cache_max_age_days)
