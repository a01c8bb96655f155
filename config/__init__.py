"""
Configuration Package for Slot Watch

This package contains settings management with environment variable
and .env file support.
"""

from config.settings import (
    Settings,
    MonitorSettings,
    EmailSettings,
    TelegramSettings,
    LoggingSettings,
    LogLevel,
    REQUIRED_ENV_VARS,
    load_settings,
)

__all__ = [
    "Settings",
    "MonitorSettings",
    "EmailSettings",
    "TelegramSettings",
    "LoggingSettings",
    "LogLevel",
    "REQUIRED_ENV_VARS",
    "load_settings",
]
