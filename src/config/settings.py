"""
Laundry Operations Dashboard
Centralized Configuration Management

Pydantic settings with environment variable support, validation and type safety.
"""

from functools import lru_cache
from typing import Dict, List, Optional
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from src.domain.models import TimeFrame


class FirestoreSettings(BaseSettings):
    """Firestore Document Store Configuration"""

    model_config = SettingsConfigDict(env_prefix="FIRESTORE_")

    project_id: Optional[str] = Field(default=None, description="Google Cloud project id")
    database: str = Field(default="(default)", description="Firestore database id")
    orders_collection: str = Field(default="orders", description="Orders collection name")


class StoreSettings(BaseSettings):
    """Order Store Backend Configuration"""

    model_config = SettingsConfigDict(env_prefix="STORE_")

    backend: str = Field(default="firestore", description="Store backend: firestore or memory")
    demo_orders: int = Field(default=0, ge=0, description="Demo orders seeded into the memory backend")
    demo_seed: int = Field(default=42, description="Random seed for demo orders")

    @field_validator("backend")
    @classmethod
    def validate_backend(cls, v: str) -> str:
        """Validate backend value"""
        allowed = ["firestore", "memory"]
        if v.lower() not in allowed:
            raise ValueError(f"Store backend must be one of: {allowed}")
        return v.lower()


class SecuritySettings(BaseSettings):
    """Security and Authentication Configuration"""

    model_config = SettingsConfigDict(env_prefix="")

    # Maps operator API key -> operator uid
    operator_api_keys: Dict[str, str] = Field(default_factory=dict, description="Operator API keys")
    api_key_header: str = Field(default="X-API-Key", description="Header carrying the operator API key")

    # CORS
    cors_origins: List[str] = Field(
        default=["http://localhost:3000"],
        description="Allowed CORS origins"
    )


class MonitoringSettings(BaseSettings):
    """Monitoring and Observability Configuration"""

    model_config = SettingsConfigDict(env_prefix="")

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")
    log_format: str = Field(default="json", description="Log format: json or text")


class DashboardSettings(BaseSettings):
    """Sales Overview Configuration"""

    model_config = SettingsConfigDict(env_prefix="DASHBOARD_")

    timezone: str = Field(default="Africa/Kigali", description="Timezone used to bucket order timestamps")
    currency: str = Field(default="RWF", description="Currency shown next to amounts")
    default_timeframe: TimeFrame = Field(default=TimeFrame.DAILY, description="Timeframe used when none is requested")
    stream_keepalive_seconds: float = Field(default=15.0, gt=0, description="SSE keep-alive interval")


class Settings(BaseSettings):
    """
    Main Application Settings

    Aggregates all configuration sections and provides a single entry point
    for accessing application configuration.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = Field(default="laundry-dashboard", description="Application name")
    app_env: str = Field(default="development", description="Environment")
    debug: bool = Field(default=False, description="Debug mode")

    # API Server
    api_host: str = Field(default="0.0.0.0", description="API host")
    api_port: int = Field(default=8000, description="API port")

    # Version
    version: str = Field(default="1.0.0", description="Application version")

    # Subsystem configurations
    firestore: FirestoreSettings = Field(default_factory=FirestoreSettings)
    store: StoreSettings = Field(default_factory=StoreSettings)
    security: SecuritySettings = Field(default_factory=SecuritySettings)
    monitoring: MonitoringSettings = Field(default_factory=MonitoringSettings)
    dashboard: DashboardSettings = Field(default_factory=DashboardSettings)

    @field_validator("app_env")
    @classmethod
    def validate_env(cls, v: str) -> str:
        """Validate environment value"""
        allowed = ["development", "staging", "production", "testing"]
        if v.lower() not in allowed:
            raise ValueError(f"Environment must be one of: {allowed}")
        return v.lower()

    @property
    def is_production(self) -> bool:
        """Check if running in production"""
        return self.app_env == "production"

    @property
    def is_development(self) -> bool:
        """Check if running in development"""
        return self.app_env == "development"


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached application settings.

    Uses LRU cache to ensure settings are only loaded once.

    Returns:
        Settings: Application settings instance
    """
    return Settings()
