"""
Configuration module for the application.
This module handles loading environment variables and defining application
settings using Pydantic.

The module provides a Settings class that encapsulates all configuration
parameters needed by the service on the server, where every connection
parameter must come from the environment.
"""

"""<-----------------------SERVER CONFIGURATION FILE [NOT FOR DEV]------------------------>"""

import os
from pydantic_settings import BaseSettings
from pydantic import Field
from typing import Optional
import logging
from urllib.parse import quote_plus

logger = logging.getLogger("app_logger")


class Settings(BaseSettings):
    """
    Settings class that manages all application configuration.

    Inherits from Pydantic BaseSettings to provide environment variable parsing
    and validation. Loads configuration from environment variables.

    Attributes:
        DB_HOST (str): Host of the Mapas Culturais database
        REDIS_HOST (str): Host of the shared cache
        FILES_DIR (str): Root of the per-registration attachment folders
        OUTPUT_DIR (str): Where rendered sheets and archives are written
    """

    APP_NAME: str = Field("Registration Sheet Service", env="APP_NAME")
    DEBUG: bool = Field(False, env="DEBUG")
    SHEETS_LOG_DIR: str = Field(..., env="SHEETS_LOG_DIR")

    DB_HOST: str = Field(..., env="DB_HOST")
    DB_PORT: str = Field(..., env="DB_PORT")
    DB_NAME: str = Field(..., env="DB_NAME")
    DB_USER: str = Field(..., env="DB_USER")
    DB_PASSWORD: str = Field(..., env="DB_PASSWORD")
    DATABASE_URL: Optional[str] = Field(None, env="DATABASE_URL")
    DB_POOL_SIZE: int = Field(25, env="DB_POOL_SIZE")
    DB_POOL_TIMEOUT: int = Field(5, env="DB_POOL_TIMEOUT")

    USE_REDIS: bool = Field(True, env="USE_REDIS")
    REDIS_HOST: str = Field(..., env="REDIS_HOST")
    REDIS_PORT: str = Field(..., env="REDIS_PORT")
    REDIS_DB: str = Field("0", env="REDIS_DB")
    REDIS_PASSWORD: Optional[str] = Field(None, env="REDIS_PASSWORD")

    PDFKIT_PATH: Optional[str] = Field(None, env="PDFKIT_PATH")
    LOGO_PATH: str = Field(..., env="LOGO_PATH")
    BOOTSTRAP_CSS_PATH: str = Field(..., env="BOOTSTRAP_CSS_PATH")
    RENDER_CONCURRENCY: int = Field(10, env="RENDER_CONCURRENCY")
    RENDER_WORKERS: int = Field(4, env="RENDER_WORKERS")

    OUTPUT_DIR: str = Field(..., env="OUTPUT_DIR")
    FILES_DIR: str = Field(default_factory=lambda: os.getenv("FILES_DIR", "/srv/mapas/docker-data/private-files/registration"), env="FILES_DIR")

    PHASE_CACHE_TTL: int = Field(3600, env="PHASE_CACHE_TTL")
    PARENT_LIST_CACHE_TTL: int = Field(1800, env="PARENT_LIST_CACHE_TTL")
    BATCH_CACHE_TTL: int = Field(1800, env="BATCH_CACHE_TTL")
    EVAL_CONFIG_CACHE_TTL: int = Field(86400, env="EVAL_CONFIG_CACHE_TTL")

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
        Specifies the environment variable prefix and validation behavior.
        """
        env_prefix = ""  # No prefix for environment variables
        extra = "ignore"


try:
    settings = Settings()
    logger.info("Configuration loaded successfully.")
except Exception as e:
    logger.error(f"Error occurred while loading configuration: {e}")
    raise
