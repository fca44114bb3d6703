from __future__ import annotations

from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings with environment variable support."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="APP_",
        extra="ignore",
        case_sensitive=False,
    )

    # Application
    debug: bool = False
    log_level: str = "INFO"

    # API
    api_prefix: str = "/api/v1"
    cors_origins: list[str] = [
        "http://localhost:3000",
        "http://localhost:8000",
        "http://127.0.0.1:3000",
        "http://127.0.0.1:8000",
    ]

    cors_origin_regex: str | None = None
    trusted_hosts: list[str] = ["*"]
    root_path: str = ""

    # Storage
    storage_backend: Literal["supabase", "memory"] = "supabase"

    # Supabase (required only when storage_backend is "supabase" or for the session gate)
    supabase_url: str = ""
    supabase_anon_key: str = ""
    supabase_service_role_key: str = ""

    # Documents and tags
    max_document_bytes: int = 512 * 1024
    max_document_depth: int = 32
    max_title_length: int = 255
    max_tag_title_length: int = 50
    default_tag_color: str = "gray"

    # Document sync client
    sync_debounce_seconds: float = 1.0
    sync_max_retries: int = 3
    sync_backoff_base_seconds: float = 0.5
    sync_request_timeout_seconds: float = 10.0


settings = Settings()
