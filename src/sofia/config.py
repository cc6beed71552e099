"""Configuration for the Sofia API."""

from typing import List

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Sofia API configuration settings."""

    # Database (SQLite for development, PostgreSQL in production)
    DATABASE_URL: str = "sqlite+aiosqlite:///./data/sofia.db"

    # JWT
    JWT_SECRET: str = "dev_secret_change_in_production"
    JWT_EXPIRES_DAYS: int = 7

    # Session transcripts are encrypted with a key derived from this value
    ENCRYPTION_KEY: str = "dev_encryption_key_change_in_production"

    # Comma-separated CORS allowlist
    CORS_ORIGINS: str = "http://localhost:3000,http://localhost:8080"

    # Optional clinician webhook for high-severity safety events
    CLINICIAN_WEBHOOK_URL: str = ""

    ENVIRONMENT: str = "development"

    # Uploads
    MAX_UPLOAD_BYTES: int = 10 * 1024 * 1024

    # Server
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 3001

    LOG_LEVEL: str = "INFO"

    @property
    def cors_origins(self) -> List[str]:
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT == "production"

    class Config:
        env_file = ".env"
        extra = "ignore"


# Global settings instance
settings = Settings()
