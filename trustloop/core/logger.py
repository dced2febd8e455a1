"""
Logging configuration
"""
from loguru import logger
import sys
from trustloop.core.config import settings


def setup_logger():
    """Configure logger with appropriate settings"""
    logger.remove()  # Remove default handler

    # Console logging
    logger.add(
        sys.stdout,
        colorize=True,
        format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan> - <level>{message}</level>",
        level=settings.LOG_LEVEL
    )

    # File logging
    if settings.LOG_FILE:
        logger.add(
            settings.LOG_FILE,
            rotation="00:00",
            retention="30 days",
            compression="zip",
            level="INFO"
        )

    return logger


# Initialize logger
log = setup_logger()
