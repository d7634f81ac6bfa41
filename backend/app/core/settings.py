# backend/app/core/settings.py
"""
FactoryFlow - Configuration Management with pydantic-settings

- Loads from environment and root .env
- Validates and normalizes values
- Cached singleton via get_settings()
"""
from functools import lru_cache
from pathlib import Path
from typing import Optional, List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# backend/app/core/settings.py -> <repo>/.env
_ENV_FILE = Path(__file__).resolve().parent.parent.parent.parent / ".env"


class Settings(BaseSettings):
    """
    Application settings with validation.

    Environment variables take precedence over .env file values.
    """

    model_config = SettingsConfigDict(
        env_file=_ENV_FILE,
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ===================
    # Application Settings
    # ===================
    PROJECT_NAME: str = "FactoryFlow"
    VERSION: str = "1.0.0"
    API_V1_STR: str = "/api/v1"
    DEBUG: bool = Field(default=False, description="Enable debug mode")
    ENVIRONMENT: str = Field(default="development", description="Deployment environment")

    # ===================
    # Database Settings
    # ===================
    DB_HOST: str = Field(default="localhost", description="PostgreSQL host")
    DB_PORT: int = Field(default=5432, description="PostgreSQL port")
    DB_NAME: str = Field(default="factoryflow", description="Database name")
    DB_USER: str = Field(default="postgres", description="Database user")
    DB_PASSWORD: str = Field(default="postgres", description="Database password")
    DATABASE_URL: Optional[str] = Field(
        default=None, description="Full database URL (overrides DB_* settings)"
    )

    @property
    def database_url(self) -> str:
        """Build PostgreSQL database URL from components or use explicit URL."""
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return (
            f"postgresql+psycopg://{self.DB_USER}:{self.DB_PASSWORD}"
            f"@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}"
        )

    # ===================
    # CORS Settings
    # ===================
    ALLOWED_ORIGINS: List[str] = Field(
        default=[
            "http://localhost:5173",
            "http://127.0.0.1:5173",
            "http://localhost:3000",
            "http://127.0.0.1:3000",
        ],
        description="Allowed CORS origins",
    )

    @field_validator("ALLOWED_ORIGINS", mode="before")
    @classmethod
    def parse_cors_origins(cls, v):
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(",") if origin.strip()]
        return v

    # ===================
    # Logging
    # ===================
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "json"  # json or text
    LOG_FILE: Optional[str] = None

    @field_validator("LOG_FORMAT")
    @classmethod
    def normalize_log_format(cls, v: str) -> str:
        v = (v or "json").lower()
        if v not in ("json", "text"):
            raise ValueError("LOG_FORMAT must be 'json' or 'text'")
        return v

    # ===================
    # Collaborating Services
    # ===================
    STOCK_SERVICE_URL: str = Field(
        default="http://localhost:8014/api", description="Inventory/stock service base URL"
    )
    MASTERDATA_SERVICE_URL: str = Field(
        default="http://localhost:8013/api", description="Master data (BOM) service base URL"
    )
    SCHEDULING_SERVICE_URL: str = Field(
        default="http://localhost:8016/api", description="SimAL scheduling service base URL"
    )
    HTTP_TIMEOUT_SECONDS: float = Field(default=10.0, description="Timeout for collaborator calls")
    WEBHOOK_TIMEOUT_SECONDS: float = Field(default=5.0, description="Timeout for webhook delivery")
    WEBHOOK_WORKER_COUNT: int = Field(default=2, ge=1, description="Webhook delivery threads")

    @field_validator("STOCK_SERVICE_URL", "MASTERDATA_SERVICE_URL", "SCHEDULING_SERVICE_URL")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    # ===================
    # Factory Topology
    # ===================
    PLANT_WAREHOUSE_ID: int = Field(default=7, description="Finished goods store (PRODUCT)")
    MODULES_SUPERMARKET_ID: int = Field(default=8, description="Module store (MODULE)")
    PARTS_SUPPLY_ID: int = Field(default=9, description="Raw parts store (PART)")
    FINAL_ASSEMBLY_WORKSTATION_ID: int = Field(default=6, description="Final assembly workstation")

    # ===================
    # Fulfillment
    # ===================
    LOT_SIZE_THRESHOLD: int = Field(
        default=3, ge=1, description="Default total quantity at which orders go straight to production"
    )

    # ===================
    # Background Jobs
    # ===================
    ASYNC_WORKER_COUNT: int = Field(default=4, ge=1, description="Async operation worker threads")

    # ===================
    # Rate Limiting
    # ===================
    CUSTOMER_ORDER_RATE_LIMIT: str = Field(
        default="30/minute", description="slowapi limit for customer order creation"
    )

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT.lower() == "production"


@lru_cache
def get_settings() -> Settings:
    """Singleton settings loader (cached)."""
    return Settings()


settings = get_settings()
