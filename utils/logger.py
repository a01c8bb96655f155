"""
============================================================================
SLOT WATCH - LOGGING UTILITY
============================================================================
Loguru sinks for the console and optional rotating log files.

Author: Professional Development Team
Version: 1.0.0
License: MIT
============================================================================
"""

import sys
from typing import Optional

from loguru import logger

from config.settings import LoggingSettings


CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{extra[name]}</cyan> - <level>{message}</level>"
)

FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {extra[name]}:{function}:{line} - {message}"


# ============================================================================
# LOGGER CONFIGURATION
# ============================================================================

def setup_logging(settings: Optional[LoggingSettings] = None) -> None:
    """
    Configure loguru sinks.

    Removes the default handler, then adds a console sink and, when file
    logging is enabled, a rotating log file plus an errors-only file
    next to it.
    """
    settings = settings or LoggingSettings()

    logger.remove()
    logger.configure(extra={"name": "SlotWatch"})

    log_level = settings.level.value

    # Console Handler
    if settings.console_enabled:
        logger.add(
            sys.stdout,
            format=CONSOLE_FORMAT,
            level=log_level,
            colorize=settings.colorize,
            backtrace=True,
            diagnose=False,
        )

    # File Handlers
    if settings.file_enabled:
        log_file_path = settings.file_path
        log_file_path.parent.mkdir(parents=True, exist_ok=True)

        logger.add(
            log_file_path,
            format=FILE_FORMAT,
            level=log_level,
            rotation=settings.file_rotation,
            retention=settings.file_retention,
            compression="zip",
            backtrace=True,
            diagnose=False,
        )

        logger.add(
            log_file_path.with_name("errors.log"),
            format=FILE_FORMAT,
            level="ERROR",
            rotation="1 day",
            retention="7 days",
            compression="zip",
            backtrace=True,
            diagnose=False,
        )

    logger.debug(
        f"Logging initialized — level={log_level}, "
        f"console={settings.console_enabled}, file={settings.file_enabled}"
    )


def get_logger(name: Optional[str] = None):
    """
    Get logger instance with optional name.

    Args:
        name: Component name shown in every record

    Returns:
        Logger instance
    """
    if name:
        return logger.bind(name=name)
    return logger
