"""
Utilities Package for Slot Watch

Logging setup and small time/string helpers.
"""

from utils.helpers import StringHelper, TimeHelper
from utils.logger import get_logger, setup_logging

__all__ = [
    "StringHelper",
    "TimeHelper",
    "get_logger",
    "setup_logging",
]
