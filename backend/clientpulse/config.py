"""Configuration settings for the application."""
from functools import lru_cache
from pathlib import Path
from typing import List, Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

BASE_DIR = Path(__file__).resolve().parent
ROOT_DIR = BASE_DIR.parent.parent

DEFAULT_CORS_ORIGINS = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
    "http://localhost:5173",
    "http://127.0.0.1:5173",
]


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_file=str((ROOT_DIR / ".env").resolve()),
        case_sensitive=False,
        extra="ignore",
    )

    # Supabase configuration
    supabase_url: str = ""
    supabase_service_role_key: str = ""
    companies_table: str = "companies"

    # Text generation
    generation_provider: Literal["headoffice", "gemini"] = "headoffice"
    headoffice_api_url: str = "https://api.headoffice.ai/v1"
    headoffice_api_key: str = ""
    gemini_api_key: str = ""
    gemini_model: str = "gemini-2.5-flash"
    generation_timeout: int = Field(
        default=60,
        ge=5,
        le=300,
        description="Seconds allowed for a single generation round-trip"
    )
    generation_max_retries: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Maximum attempts for rate-limited generation requests"
    )
    generation_initial_wait: int = Field(default=1, ge=1, le=10)
    generation_max_wait: int = Field(default=30, ge=5, le=300)

    # Google Docs / Sheets access
    google_service_account_file: str = ""
    document_source: Literal["docs_api", "export"] = "docs_api"
    companies_sheet_id: str = ""
    companies_sheet_range: str = "A:Z"
    companies_sheet_csv_url: str = ""

    # Summarization budgets (characters)
    max_payload_chars: int = Field(
        default=1700,
        ge=200,
        description="Ceiling for a compressed section handed to the generator"
    )
    carry_memory_chars: int = Field(default=1200, ge=100)
    final_memory_chars: int = Field(default=700, ge=100)
    degraded_context_chars: int = Field(default=600, ge=100)
    score_history_limit: int = Field(default=30, ge=1, le=365)

    # Background jobs
    redis_url: str = "redis://localhost:6379/0"
    task_mode: Literal["celery", "inline"] = "celery"
    refresh_hour: int = Field(default=6, ge=0, le=23, description="UTC hour of the daily bulk refresh")

    # CORS configuration
    cors_origins: List[str] = Field(default_factory=lambda: DEFAULT_CORS_ORIGINS.copy())
    cors_origin_regex: Optional[str] = None
    cors_allow_all: bool = False

    # API configuration
    api_version: str = "v1"
    debug: bool = False
    log_level: str = "INFO"

    # Local fallback storage
    data_dir: str = "./data"


def supabase_configured(settings: Settings) -> bool:
    """Return True when Supabase keys are present and not placeholders."""
    key = (settings.supabase_service_role_key or "").strip()
    url = (settings.supabase_url or "").strip()
    if not key or not url:
        return False
    if key.lower().startswith("your_"):
        return False
    return True


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
