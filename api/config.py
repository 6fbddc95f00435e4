"""
Configuration management for the FuelEU compliance API.
Loads environment variables and provides typed configuration.
"""
from typing import List
from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # ========================================================================
    # Database Configuration
    # ========================================================================
    database_url: str = "sqlite:///./fueleu.db"
    db_echo: bool = False
    seed_on_startup: bool = True

    # ========================================================================
    # Redis Configuration (rate limit storage)
    # ========================================================================
    redis_url: str = "redis://localhost:6379/0"
    redis_enabled: bool = True

    # ========================================================================
    # API Configuration
    # ========================================================================
    api_host: str = "0.0.0.0"
    api_port: int = 8000

    # ========================================================================
    # CORS Configuration
    # ========================================================================
    cors_origins: str = "http://localhost:3000,http://localhost:5173"
    cors_credentials: bool = True

    @property
    def cors_origins_list(self) -> List[str]:
        """Parse CORS origins from comma-separated string."""
        return [origin.strip() for origin in self.cors_origins.split(",")]

    # ========================================================================
    # Rate Limiting
    # ========================================================================
    rate_limit_enabled: bool = True
    rate_limit_per_minute: int = 60

    # ========================================================================
    # Application Configuration
    # ========================================================================
    environment: str = "development"
    log_level: str = "info"
    debug: bool = False

    @property
    def is_production(self) -> bool:
        """Check if running in production."""
        return self.environment.lower() == "production"

    @property
    def is_development(self) -> bool:
        """Check if running in development."""
        return self.environment.lower() == "development"

    # ========================================================================
    # Compliance Configuration
    # ========================================================================
    # Restrict the net banked sum to ledger rows of the requested year.
    # Off by default: all rows of the route identifier are netted.
    ledger_scope_by_year: bool = False

    # ========================================================================
    # Pydantic Settings Configuration
    # ========================================================================
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Returns:
        Settings: Application settings
    """
    return Settings()


# Convenience exports
settings = get_settings()

# Validate critical settings in production
if settings.is_production:
    if "localhost" in settings.cors_origins.lower():
        raise ValueError(
            "CORS_ORIGINS must not include localhost in production!"
        )
