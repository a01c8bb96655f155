"""
Exceptions Package for Slot Watch

Provides the exception hierarchy used for error handling
throughout the application.
"""

from exceptions.base import (
    SlotWatchException,
    ConfigurationError,
    describe_error,
)

from exceptions.monitoring import (
    MonitoringException,
    NetworkError,
    ChannelSendError,
    EmailAuthError,
    AllChannelsFailedError,
)

__all__ = [
    # Base exceptions
    "SlotWatchException",
    "ConfigurationError",
    "describe_error",

    # Monitoring exceptions
    "MonitoringException",
    "NetworkError",
    "ChannelSendError",
    "EmailAuthError",
    "AllChannelsFailedError",
]
