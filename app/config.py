"""
Application configuration using Pydantic settings.
"""
from typing import Optional
from pydantic_settings import BaseSettings
from pydantic import Field


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Statistics Service Configuration
    stats_service_base_url: str = Field(
        default="http://localhost:3000",
        description="Base URL for the remote point statistics service"
    )
    stats_service_api_key: str = Field(
        default="",
        description="Optional bearer token for the statistics service"
    )
    stats_service_timeout: float = Field(
        default=60.0,
        description="Request timeout in seconds for statistics extraction"
    )

    # Retry Configuration (caller-level, the client itself never retries)
    extraction_max_attempts: int = Field(
        default=1,
        description="Maximum number of attempts for a statistics extraction"
    )
    retry_backoff_multiplier: int = Field(
        default=1,
        description="Multiplier for exponential backoff"
    )
    retry_min_wait: int = Field(
        default=4,
        description="Minimum wait time in seconds between retries"
    )
    retry_max_wait: int = Field(
        default=10,
        description="Maximum wait time in seconds between retries"
    )

    # Sample Grid Parameters
    grid_meters_per_degree: float = Field(
        default=111000.0,
        description="Meters per degree of latitude used for spacing conversion"
    )
    grid_tolerance: float = Field(
        default=1e-9,
        description="Tolerance (in steps) when enumerating lattice rows and columns"
    )
    grid_fallback_spacing_m: Optional[float] = Field(
        default=50.0,
        description="Spacing retried once when the requested spacing yields no points"
    )
    grid_max_points: int = Field(
        default=250000,
        description="Maximum number of lattice candidates allowed for one grid"
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR)"
    )

    # CORS Configuration
    cors_origins: list[str] = Field(
        default=["*"],
        description="Allowed CORS origins (use specific origins in production)"
    )

    # Rate Limiting
    rate_limit_enabled: bool = Field(
        default=True,
        description="Whether to rate limit statistics extraction"
    )
    rate_limit_requests: int = Field(
        default=30,
        description="Maximum extraction requests per minute per client"
    )

    # Application Settings
    app_name: str = Field(
        default="Sample Grid Service",
        description="Application name"
    )
    app_version: str = Field(
        default="1.0.0",
        description="Application version"
    )
    debug: bool = Field(
        default=False,
        description="Debug mode"
    )

    class Config:
        env_file = ".env"
        case_sensitive = False


# Global settings instance
settings = Settings()
