"""
Logging configuration.

Configures loguru logger for the settlement service.
Sets up log rotation and retention policies.
"""

from loguru import logger

from settlement.config.settings import settings


def setup_logging(log_path: str = "logs/settlement.log") -> None:
    """Configure logger with file rotation."""
    logger.add(
        log_path,
        rotation="1 day",
        retention="7 days",
        level=settings.log_level,
        encoding="utf-8",
    )

    logger.info(
        f"Settlement service logging configured (environment={settings.environment})"
    )
