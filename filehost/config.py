"""Configuration management for the application."""

from functools import lru_cache

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_JWT_SECRET = "change-me-in-production"  # noqa: S105


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Database
    database_url: str = Field(default="sqlite:///./filehost.db")

    # Redis (Celery broker for the storage sweep)
    redis_url: str = Field(default="redis://localhost:6379/0")

    # JWT
    jwt_secret: str = Field(default=DEFAULT_JWT_SECRET)
    jwt_algorithm: str = Field(default="HS256")
    jwt_expiration_minutes: int = Field(default=60, gt=0)

    # Uploads
    upload_dir: str = Field(default="uploads")
    max_upload_bytes: int = Field(default=100 * 1024 * 1024, gt=0)  # 100 MiB
    upload_chunk_size: int = Field(default=64 * 1024, gt=0)
    allowed_extensions: list[str] | None = Field(default=None)
    orphan_grace_minutes: int = Field(default=60, ge=0)

    # Server
    host: str = Field(default="127.0.0.1")
    port: int = Field(default=8080)
    cors_origins: list[str] = Field(default=["http://localhost:3000"])

    # API
    environment: str = Field(default="development")
    log_level: str = Field(default="INFO")

    @model_validator(mode="after")
    def validate_production_settings(self) -> "Settings":
        """Validate that production has secure settings."""
        if self.environment == "production":
            if self.jwt_secret == DEFAULT_JWT_SECRET:
                raise ValueError("JWT_SECRET must be changed in production")
            if self.database_url.startswith("sqlite:///./"):
                raise ValueError("DATABASE_URL should point at a persistent location in production")
        return self

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.environment == "development"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
