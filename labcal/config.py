"""
Application Configuration

Centralized configuration management using Pydantic settings.
Loads from environment variables with fallback to .env file.
"""
from pathlib import Path
from typing import List

from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Note: get_settings() is cached, so tests that need a different data
    directory should override the store dependency instead of mutating
    settings at runtime.
    """

    # Storage settings
    # The whole store is a single JSON document: tenantId -> tenant record
    DATA_DIR: str = "./data"
    DATA_FILE: str = "tenant-data.json"

    # Security settings
    SECRET_KEY: str = "dev-secret-key-change-in-production"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60
    ADMIN_PASSWORD: str = "admin123"

    # Application settings
    DEBUG: bool = False
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"
    HOST: str = "0.0.0.0"
    PORT: int = 3001
    CORS_ORIGINS: List[str] = ["http://localhost:3000"]

    # Calendar behaviour
    # Event posts for an unknown tenant provision it on the fly (name = id)
    AUTO_CREATE_TENANTS: bool = True
    SEED_DEMO_TENANT: bool = False

    class Config:
        env_file = ".env"
        case_sensitive = True

    @property
    def data_path(self) -> Path:
        return Path(self.DATA_DIR) / self.DATA_FILE


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
