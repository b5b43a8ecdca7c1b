"""
API Initialization - Logging Module.

Module: logging.py
Configures loguru logger for the API server.
Sets up log rotation and retention policies.
"""

from loguru import logger

from app.config.settings import settings


def setup_logging(log_file: str = "logs/remit.log") -> None:
    """Configure logger with file rotation."""
    logger.add(
        log_file,
        rotation="1 day",
        retention="7 days",
        level=settings.log_level,
        encoding="utf-8",
    )

    logger.info(f"Starting remittance API ({settings.environment})...")
