"""
Logging Configuration Module

This module sets up logging for the entire service. It configures logging from a
YAML file when one is present and falls back to a basic configuration otherwise,
so every module can log through the shared "app_logger" logger.

Key components:
- setup_logging: Function to configure logging based on a YAML file or default settings

Dependencies:
- logging: Python's built-in logging module
- yaml: For parsing YAML configuration files
- pathlib: For file path handling
"""

import logging
import logging.config
import os
import yaml
from pathlib import Path

ENV = os.getenv("APP_ENV", "dev")  # Default to 'dev'

if ENV == "prod":
    from .config_prod import settings
else:
    from .config_dev import settings


def setup_logging(
    default_path='logging.yaml',
    default_level=logging.INFO,
    log_dir=settings.SHEETS_LOG_DIR
):
    """
    Sets up logging configuration for the application.

    This function attempts to load a YAML configuration file for logging.
    If the file is not found, it falls back to basic logging configuration.

    Args:
        default_path (str): Path to the YAML logging configuration file.
        default_level (int): Default logging level to use if config file is not found.
        log_dir (str): Directory where logs should be stored.

    Returns:
        None
    """
    try:
        os.makedirs(log_dir, exist_ok=True)
        log_file_path = os.path.join(log_dir, "registration_sheets.log")

        path = Path(default_path)
        if path.exists():
            with open(path, 'rt') as f:
                config = yaml.safe_load(f.read())

                # Dynamically update the file handler's filename
                if 'handlers' in config and 'file' in config['handlers']:
                    config['handlers']['file']['filename'] = log_file_path

                logging.config.dictConfig(config)
                logging.info(f"Logging configured using YAML file at {path}")
        else:
            logging.basicConfig(
                level=default_level,
                format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
                handlers=[
                    logging.FileHandler(log_file_path),
                    logging.StreamHandler()
                ]
            )
            logging.info(f"Logging configuration file not found at {path}. Using basic config.")

    except Exception as e:
        logging.basicConfig(level=default_level)
        logging.error(f"Error occurred during logging setup: {str(e)}", exc_info=True)


log = setup_logging()
