# backend/lotflow/core/settings.py
"""
LotFlow - Configuration Management with pydantic-settings

- Loads from environment and root .env
- Validates and normalizes values
- Cached singleton via get_settings()
"""
import re
from functools import lru_cache
from pathlib import Path
from typing import Optional, List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# backend/lotflow/core/settings.py -> <repo>/.env
_ENV_FILE = Path(__file__).resolve().parent.parent.parent.parent / ".env"

SHA256_PATTERN = re.compile(r"^[a-f0-9]{64}$", re.IGNORECASE)


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
    PROJECT_NAME: str = "LotFlow"
    VERSION: str = "1.0.0"
    API_V1_STR: str = "/api/v1"
    DEBUG: bool = Field(default=False, description="Enable debug mode")
    ENVIRONMENT: str = Field(default="development", description="Deployment environment")

    # ===================
    # Firebase / Firestore
    # ===================
    FIREBASE_PROJECT_ID: Optional[str] = Field(default=None, description="GCP project id")
    FIREBASE_CREDENTIALS: Optional[str] = Field(
        default=None, description="Path to a service-account JSON file"
    )
    FUNCTION_REGION: str = Field(default="southamerica-east1", description="Deploy region")

    DASHBOARDS_COLLECTION: str = "dashboards"
    STOCK_PRODUCTS_COLLECTION: str = "stock/data/products"
    STOCK_MOVEMENTS_COLLECTION: str = "stock/data/movements"
    ROLES_COLLECTION: str = "roles"

    # ===================
    # Lot migration
    # ===================
    DASHBOARD_ORDER_CACHE_TTL_SECONDS: int = Field(
        default=300, description="How long the ordered dashboard list is reused"
    )
    MIGRATION_SYSTEM_USER_ID: Optional[str] = Field(
        default="system", description="Movement author when the lot has no audit user"
    )
    MIGRATION_SYSTEM_USER_EMAIL: Optional[str] = None
    TRIGGER_API_KEY: Optional[str] = Field(
        default=None, description="Shared secret required on the trigger endpoint"
    )

    # ===================
    # Security Settings
    # ===================
    ADMIN_PASSWORD_HASH: Optional[str] = Field(
        default=None, description="SHA-256 hex digest of the admin password"
    )
    ADMIN_PASSWORD_RATE_LIMIT: str = "10/minute"

    # ===================
    # CORS Settings
    # ===================
    ALLOWED_ORIGINS: List[str] = Field(
        default=[
            "http://localhost:3000",
            "http://127.0.0.1:3000",
            "http://localhost:5000",
            "http://127.0.0.1:5000",
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

    @field_validator("DASHBOARD_ORDER_CACHE_TTL_SECONDS")
    @classmethod
    def non_negative_ttl(cls, v: int) -> int:
        if v < 0:
            raise ValueError("DASHBOARD_ORDER_CACHE_TTL_SECONDS must be >= 0")
        return v

    @property
    def admin_password_hash(self) -> Optional[str]:
        """Configured digest, or None when missing or not a SHA-256 hex string."""
        value = (self.ADMIN_PASSWORD_HASH or "").strip()
        if value and SHA256_PATTERN.match(value):
            return value.lower()
        return None

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT.lower() == "production"


@lru_cache
def get_settings() -> Settings:
    """Singleton settings loader (cached)."""
    return Settings()


settings = get_settings()
