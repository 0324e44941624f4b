"""
Configuration Module

This module handles the configuration settings for the registration sheet service,
including database, cache, rendering and output locations.

Key components:
- Settings: Pydantic BaseSettings class for managing configuration
- Environment variable loading
- Logging setup

Dependencies:
- os for environment variable access
- pydantic_settings for settings management
- dotenv for .env file loading
- logging for application logging
"""

import os
from pydantic_settings import BaseSettings
from dotenv import load_dotenv
from typing import Optional
import logging
from urllib.parse import quote_plus

# Load environment variables from .env file
load_dotenv(override=True)

logger = logging.getLogger("app_logger")


class Settings(BaseSettings):
    """
    Settings class to manage application configuration.

    This class uses Pydantic's BaseSettings to handle configuration variables,
    including environment variables and default values.
    """

    # Basic configurations
    APP_NAME: str = "Registration Sheet Service"
    DEBUG: bool = False
    SHEETS_LOG_DIR: str = os.getenv('SHEETS_LOG_DIR', './logs')

    # Database (Mapas Culturais, read only)
    DB_HOST: str = os.getenv('DB_HOST', 'localhost')
    DB_PORT: str = os.getenv('DB_PORT', '5432')
    DB_NAME: str = os.getenv('DB_NAME', 'mapas')
    DB_USER: str = os.getenv('DB_USER', 'mapas')
    DB_PASSWORD: str = os.getenv('DB_PASSWORD', 'mapas')
    DATABASE_URL: Optional[str] = os.getenv('DATABASE_URL')
    DB_POOL_SIZE: int = int(os.getenv('DB_POOL_SIZE', 25))
    DB_POOL_TIMEOUT: int = int(os.getenv('DB_POOL_TIMEOUT', 5))

    # Redis
    USE_REDIS: bool = os.getenv('USE_REDIS', 'false').lower() == 'true'
    REDIS_HOST: str = os.getenv('REDIS_HOST', 'localhost')
    REDIS_PORT: str = os.getenv('REDIS_PORT', '6379')
    REDIS_DB: str = os.getenv('REDIS_DB', '0')
    REDIS_PASSWORD: Optional[str] = os.getenv('REDIS_PASSWORD')

    # Rendering
    PDFKIT_PATH: Optional[str] = os.getenv('PDFKIT_PATH')
    LOGO_PATH: str = os.getenv('LOGO_PATH', './assets/logo.png')
    BOOTSTRAP_CSS_PATH: str = os.getenv('BOOTSTRAP_CSS_PATH', './assets/css/bootstrap.min.css')
    RENDER_CONCURRENCY: int = int(os.getenv('RENDER_CONCURRENCY', 10))
    RENDER_WORKERS: int = int(os.getenv('RENDER_WORKERS', 4))

    # Files
    OUTPUT_DIR: str = os.getenv('OUTPUT_DIR', './output')
    FILES_DIR: str = os.getenv('FILES_DIR', '/srv/mapas/docker-data/private-files/registration')

    # Cache TTLs (seconds)
    PHASE_CACHE_TTL: int = int(os.getenv('PHASE_CACHE_TTL', 3600))
    PARENT_LIST_CACHE_TTL: int = int(os.getenv('PARENT_LIST_CACHE_TTL', 1800))
    BATCH_CACHE_TTL: int = int(os.getenv('BATCH_CACHE_TTL', 0))
    EVAL_CONFIG_CACHE_TTL: int = int(os.getenv('EVAL_CONFIG_CACHE_TTL', 86400))

    @property
    def DB_URI(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        encoded_password = quote_plus(self.DB_PASSWORD)
        uri = f"postgresql+psycopg2://{self.DB_USER}:{encoded_password}@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}"
        logger.debug(f"Database URI (password masked): {uri.replace(encoded_password, '****')}")
        return uri

    class Config:
        """
        Inner configuration class for Pydantic settings.
        Specifies the .env file location and encoding.
        """
        env_file = r".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


# Create an instance of the Settings class
settings = Settings()
