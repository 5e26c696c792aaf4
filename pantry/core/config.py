"""
Core configuration module using Pydantic Settings.
Supports environment variables and .env files.
"""
from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field


class Settings(BaseSettings):
    """Application settings with environment variable support."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="allow"
    )

    # Application
    app_name: str = Field(default="Pantry Receipt Scanner", alias="APP_NAME")
    app_version: str = Field(default="1.0.0", alias="APP_VERSION")
    debug: bool = Field(default=False, alias="DEBUG")

    # Database
    database_url: str = Field(
        default="sqlite+aiosqlite:///./data/pantry.db",
        alias="DATABASE_URL"
    )
    db_echo: bool = Field(default=False, alias="DB_ECHO")
    db_pool_size: int = Field(default=10, alias="DB_POOL_SIZE")
    db_max_overflow: int = Field(default=20, alias="DB_MAX_OVERFLOW")

    # Product catalog (read-only search API)
    catalog_base_url: str = Field(
        default="https://mobileapi.jumbo.com/v17",
        alias="CATALOG_BASE_URL"
    )
    catalog_search_limit: int = Field(default=20, alias="CATALOG_SEARCH_LIMIT")
    catalog_timeout: float = Field(default=10.0, alias="CATALOG_TIMEOUT")

    # Shelf-life inference (chat completions)
    inference_url: str = Field(
        default="https://openrouter.ai/api/v1/chat/completions",
        alias="INFERENCE_URL"
    )
    inference_api_key: Optional[str] = Field(default=None, alias="INFERENCE_API_KEY")
    inference_model: str = Field(
        default="mistralai/mistral-small-3.1-24b-instruct:free",
        alias="INFERENCE_MODEL"
    )
    inference_timeout: float = Field(default=20.0, alias="INFERENCE_TIMEOUT")

    # Reconciliation
    default_shelf_life_days: int = Field(default=7, alias="DEFAULT_SHELF_LIFE_DAYS")
    commit_concurrency: int = Field(default=4, alias="COMMIT_CONCURRENCY")
    resolve_concurrency: int = Field(default=8, alias="RESOLVE_CONCURRENCY")
    auto_select_score: float = Field(default=90.0, alias="AUTO_SELECT_SCORE")
    scan_session_ttl: float = Field(default=1800.0, alias="SCAN_SESSION_TTL")  # seconds idle

    # Receipt markers (lower-case substrings)
    receipt_start_markers: list[str] = Field(
        default=["=", "omschrijving", "bedrag"],
        alias="RECEIPT_START_MARKERS"
    )
    receipt_end_markers: list[str] = Field(
        default=["totaal", "te betalen", "betaald", "pinnen", "maestro", "mastercard", "visa", "v pay"],
        alias="RECEIPT_END_MARKERS"
    )
    receipt_abort_keywords: list[str] = Field(
        default=["kopie", "akkoord"],
        alias="RECEIPT_ABORT_KEYWORDS"
    )
    receipt_denylist: list[str] = Field(default=["statie"], alias="RECEIPT_DENYLIST")

    # Security
    cors_origins: list[str] = Field(
        default=["http://localhost:3000", "http://localhost:8000"],
        alias="CORS_ORIGINS"
    )

    # Logging
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_dir: str = Field(default="./logs", alias="LOG_DIR")
    log_max_bytes: int = Field(default=10 * 1024 * 1024, alias="LOG_MAX_BYTES")  # 10MB
    log_backup_count: int = Field(default=5, alias="LOG_BACKUP_COUNT")


# Global settings instance
settings = Settings()


def get_settings() -> Settings:
    """Dependency injection for FastAPI."""
    return settings
