"""Configuration for FastAPI application."""

import json
from typing import List, Optional, Union

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # API Configuration
    api_prefix: str = "/api/v1"
    api_title: str = "bizsnap API"
    api_version: str = "1.0.0"
    allowed_origins: Union[str, List[str]] = ["*"]

    @field_validator("allowed_origins", mode="before")
    @classmethod
    def parse_allowed_origins(cls, v):
        """Parse allowed_origins from string or list."""
        if isinstance(v, str):
            if v.startswith("["):
                try:
                    return json.loads(v)
                except json.JSONDecodeError:
                    return [v]
            return [v]
        return v

    # Uploads
    max_upload_size: int = Field(default=50 * 1024 * 1024, description="Largest accepted import upload in bytes")

    # Storage overrides; unset values keep the STORAGE_* / REDIS_* environment config
    storage_backend: Optional[str] = None
    storage_namespace: Optional[str] = None
    working_dir: Optional[str] = None
    redis_url: Optional[str] = None
    redis_password: Optional[str] = None

    # Exports written by the file channel
    export_dir: Optional[str] = None

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")


settings = Settings()
