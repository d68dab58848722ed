"""
Configuration module for the property listings service.

This module defines application settings and environment-specific configurations
using Pydantic for validation and type checking.
"""
import os
import logging
from enum import Enum
from typing import List, Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .environment import initialize_environment


class EnvironmentType(str, Enum):
    """
    Environment types for the application.

    Enum for different deployment environments.
    """
    LOCAL = "local"
    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"
    TEST = "test"


class LogLevel(str, Enum):
    """
    Logging levels supported by the application.

    Maps string representations to Python's logging levels.
    """
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class Settings(BaseSettings):
    """
    Application settings.

    This class defines all configuration settings for the application,
    loaded from environment variables.
    """
    # Environment Configuration
    ENVIRONMENT: EnvironmentType = EnvironmentType.DEVELOPMENT

    # API Configuration
    API_PREFIX: str = "/api"
    PROJECT_NAME: str = "Property Listings API"
    VERSION: str = "1.0.0"
    DEBUG: bool = True

    # CORS Configuration
    BACKEND_CORS_ORIGINS: List[str] = ["http://localhost:3000", "http://localhost:8000"]

    # Datastore Configuration (hosted PostgREST endpoint)
    SUPABASE_URL: Optional[str] = None
    SUPABASE_KEY: Optional[str] = None
    DATASTORE_TIMEOUT: float = 30.0

    @field_validator("SUPABASE_URL")
    @classmethod
    def strip_trailing_slash(cls, v: Optional[str]) -> Optional[str]:
        if isinstance(v, str):
            return v.rstrip("/")
        return v

    # Cache Configuration
    REDIS_URL: Optional[str] = None
    CACHE_ENABLED: bool = True
    CACHE_KEY_PREFIX: str = "properties"
    SEARCH_CACHE_TTL: int = 300  # 5 minutes
    DETAIL_CACHE_TTL: int = 900  # 15 minutes
    AGGREGATE_CACHE_TTL: int = 3600  # 1 hour
    LOCAL_CACHE_MAX_SIZE: int = 1000

    # Search settings
    DEFAULT_PAGE_SIZE: int = 20
    MAX_PAGE_SIZE: int = 50
    PUBLIC_LISTING_STATUS: str = "available"

    # Rate Limiting
    SEARCH_RATE_LIMIT: str = "120/minute"

    # Logging Configuration
    LOG_LEVEL: LogLevel = LogLevel.INFO
    LOG_FORMAT: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore"
    )


# Load .env before settings are read
initialize_environment()

# Create settings instance
settings = Settings()

# Update DEBUG based on environment if not explicitly set
if os.getenv("DEBUG") is None:
    settings.DEBUG = settings.ENVIRONMENT in [
        EnvironmentType.LOCAL,
        EnvironmentType.DEVELOPMENT,
        EnvironmentType.TEST,
    ]

# Set log level in Python's logging module
log_level_map = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}

# Get logger for this module
logger = logging.getLogger(__name__)
logger.setLevel(log_level_map.get(settings.LOG_LEVEL.value, logging.INFO))
