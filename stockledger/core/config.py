"""
Stockledger Configuration
Core settings for the inventory ledger service
"""
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional
from pathlib import Path


class Settings(BaseSettings):
    """Application settings"""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True)

    # Application Info
    APP_NAME: str = "Stockledger API"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False

    # Database Configuration
    DATABASE_URL: str = "postgresql://stockledger@localhost:5432/stockledger"
    DATABASE_POOL_SIZE: int = 10
    DATABASE_MAX_OVERFLOW: int = 20

    # CORS
    CORS_ORIGINS: list = [
        "http://localhost:3000",  # Next.js frontend
    ]

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_DIR: Path = Path("logs")
    LOG_FILE: str = "app.log"
    ERROR_LOG_FILE: str = "error.log"
    LOG_TO_FILE: bool = True

    # API Configuration
    API_V1_STR: str = "/api/v1"
    DOCS_URL: str = "/docs"
    OPENAPI_URL: str = "/openapi.json"

    # Kit expansion
    KIT_MAX_DEPTH: int = 8

    # Replenishment defaults (used when a product has no stored config)
    SALES_WINDOW_DAYS: int = 30
    REPLENISHMENT_AVG_DELIVERY_DAYS: int = 7
    REPLENISHMENT_FULL_RELEASE_DAYS: int = 3
    REPLENISHMENT_MIN_COVERAGE_DAYS: int = 30
    REPLENISHMENT_SAFETY_STOCK: Optional[int] = None

    # External marketplace calls
    MARKETPLACE_BATCH_SIZE: int = 5
    MARKETPLACE_BATCH_DELAY_SECONDS: float = 0.2

    # Transient storage failures (lock contention, timeouts)
    STORAGE_RETRY_ATTEMPTS: int = 3
    STORAGE_RETRY_BACKOFF_SECONDS: float = 0.05

    @field_validator("LOG_DIR", mode="before")
    @classmethod
    def coerce_log_dir(cls, v):
        """Accept plain strings for the log directory"""
        return Path(v) if isinstance(v, str) else v

    @field_validator("KIT_MAX_DEPTH")
    @classmethod
    def validate_kit_depth(cls, v: int) -> int:
        if v < 1:
            raise ValueError("KIT_MAX_DEPTH must be at least 1")
        return v


# Global settings instance
settings = Settings()
