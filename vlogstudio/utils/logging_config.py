"""Logging configuration for the application."""

import sys
from pathlib import Path
from typing import Optional, Union

from loguru import logger

DEFAULT_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan> - <level>{message}</level>"
)


def setup_logging(
    level: str = "INFO",
    log_file: Optional[Union[str, Path]] = None,
    log_format: str = DEFAULT_FORMAT,
    rotation: str = "1 day",
    retention: str = "7 days"
) -> None:
    """Set up logging configuration for the application.

    Args:
        level: Minimum level to emit.
        log_file: Path to the log file. If None, logs to stderr only.
        log_format: loguru format string for log messages.
        rotation: When to start a new log file.
        retention: How long rotated files are kept.
    """
    # Replace the default sink
    logger.remove()
    logger.add(sys.stderr, level=level.upper(), format=log_format)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            log_path,
            rotation=rotation,
            retention=retention,
            level=level.upper(),
            format=log_format,
            backtrace=True,
            diagnose=False
        )


def setup_logging_from_settings(settings) -> None:
    """Configure logging from a Settings instance."""
    setup_logging(
        level=settings.LOG_LEVEL,
        log_file=settings.LOG_FILE or None,
        log_format=settings.LOG_FORMAT,
    )
