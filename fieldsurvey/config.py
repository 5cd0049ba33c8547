"""Application configuration management using Pydantic Settings.

This module loads and validates environment variables using Pydantic Settings.
All configuration is loaded from environment variables or a .env file.
"""

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Attributes:
        database_url: SQLAlchemy connection string
        database_pool_size: Number of connections to maintain in pool
        database_max_overflow: Maximum overflow connections beyond pool_size
        environment: Application environment (development, staging, production)
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        secret_key: Secret used to sign and verify bearer tokens
        jwt_algorithm: Signing algorithm for bearer tokens
        access_token_ttl_minutes: Lifetime of issued bearer tokens
        media_dir: Directory where uploaded audio recordings are written
        media_base_url: Public URL prefix for stored media
        max_audio_bytes: Upper bound for a single audio upload
        surveys_dir: Directory of YAML survey definitions imported at startup
        git_commit_sha: Build identifier reported at startup
    """

    # Database Configuration
    database_url: str = Field(
        description="SQLAlchemy connection string"
    )
    database_pool_size: int = Field(
        default=5,
        description="Number of database connections in pool"
    )
    database_max_overflow: int = Field(
        default=10,
        description="Maximum overflow connections beyond pool size"
    )

    # Application Configuration
    environment: str = Field(
        default="development",
        description="Application environment"
    )
    log_level: str = Field(
        default="INFO",
        description="Logging level"
    )
    surveys_dir: str = Field(
        default="./surveys",
        description="Path to YAML survey definitions"
    )
    git_commit_sha: str = Field(
        default="local",
        description="Git commit SHA for versioning"
    )

    # Security Configuration
    secret_key: str = Field(
        description="Secret key for signing bearer tokens"
    )
    jwt_algorithm: str = Field(
        default="HS256",
        description="Bearer token signing algorithm"
    )
    access_token_ttl_minutes: int = Field(
        default=720,
        ge=1,
        description="Lifetime of issued bearer tokens in minutes"
    )

    # Media Configuration
    media_dir: str = Field(
        default="./media",
        description="Directory for stored audio recordings"
    )
    media_base_url: str = Field(
        default="/media",
        description="Public URL prefix for stored media"
    )
    max_audio_bytes: int = Field(
        default=20 * 1024 * 1024,
        ge=1,
        description="Maximum size of an audio upload in bytes"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Validate environment is one of the allowed values."""
        allowed = {"development", "staging", "production"}
        if v.lower() not in allowed:
            raise ValueError(f"Environment must be one of {allowed}")
        return v.lower()

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is one of the allowed values."""
        allowed = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        v_upper = v.upper()
        if v_upper not in allowed:
            raise ValueError(f"Log level must be one of {allowed}")
        return v_upper

    @field_validator("media_base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == "production"

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.environment == "development"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance.

    Returns:
        Settings: Application settings singleton
    """
    return Settings()
