"""
Database Configuration Module

This module handles database connection setup and configuration
for the Registration Sheet Service. The service only reads from the
Mapas Culturais database.
"""

from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker
from sheets_service.core import settings
import logging

logger = logging.getLogger("app_logger")


def _engine_options(uri: str) -> dict:
    options = {
        "echo": settings.DEBUG,  # Set to True for SQL query logging
        "pool_pre_ping": True,   # Verify connections before use
    }
    if not uri.startswith("sqlite"):
        options.update(
            pool_size=settings.DB_POOL_SIZE,
            pool_timeout=settings.DB_POOL_TIMEOUT,
            pool_recycle=3600,    # Recycle connections every hour
            connect_args={"connect_timeout": settings.DB_POOL_TIMEOUT},
        )
    return options


# Create the SQLAlchemy engine
try:
    engine = create_engine(settings.DB_URI, **_engine_options(settings.DB_URI))
    logger.info("Database engine created successfully")
except Exception as e:
    logger.error(f"Failed to create database engine: {e}")
    raise

# Create the SessionLocal class
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Create the Base class for declarative models
Base = declarative_base()


def get_db():
    """
    Dependency function to get database session.
    This function provides a database session and ensures it's properly closed.

    Yields:
        Session: SQLAlchemy database session
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
