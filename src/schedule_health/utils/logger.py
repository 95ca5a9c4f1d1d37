"""Logging configuration for schedule_health."""
import logging

from schedule_health.config.settings import settings

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def configure_logging(name: str = 'schedule_health', level: str | None = None) -> logging.Logger:
    """
    Configure logging for an entry point (CLI, dashboard).

    Library modules only call logging.getLogger(__name__); this attaches a
    console handler to the package logger once.

    Args:
        name: Logger name (typically the package name)
        level: Optional override for settings.LOG_LEVEL

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)
    logger.setLevel(level or settings.LOG_LEVEL)

    if not any(getattr(h, '_schedule_health', False) for h in logger.handlers):
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        console_handler._schedule_health = True
        logger.addHandler(console_handler)

    return logger
