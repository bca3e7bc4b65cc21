"""SB0 Pay Merchant Portal - Core Configuration."""

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Application
    app_name: str = "SB0 Pay Merchant Portal"
    debug: bool = False
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    allowed_origins: str = Field(
        default="http://localhost:5173",
        description="Comma-separated list of allowed CORS origins",
    )

    # Database
    database_url: str = Field(
        ...,
        description="SQLAlchemy async connection string (postgresql+asyncpg://...)",
    )

    # Clerk Authentication
    clerk_secret_key: str = Field(..., description="Clerk secret key")
    clerk_publishable_key: str = Field(default="", description="Clerk publishable key")

    # API keys
    api_key_bcrypt_rounds: int = Field(
        default=12,
        ge=4,
        le=31,
        description="bcrypt cost factor used when hashing API keys",
    )
    api_key_usage_window_days: int = Field(
        default=30,
        ge=1,
        le=365,
        description="Default trailing window for API key usage statistics",
    )

    # Public API
    public_api_max_page_size: int = Field(
        default=100,
        description="Maximum number of payments returned by one public API list call",
    )

    @property
    def cors_origins(self) -> list[str]:
        """Allowed CORS origins with trailing slashes stripped."""
        return [
            origin.strip().rstrip("/")
            for origin in self.allowed_origins.split(",")
            if origin.strip()
        ]


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings."""
    return Settings()  # type: ignore[call-arg]
