"""
============================================================================
SLOT WATCH - HELPERS UTILITY
============================================================================
Time and string helpers shared by the notification channels.

Author: Professional Development Team
Version: 1.0.0
License: MIT
============================================================================
"""

import html
from datetime import datetime, timezone
from typing import Optional


# ============================================================================
# TIME UTILITIES
# ============================================================================

class TimeHelper:
    """
    Time and date utilities.
    """

    @staticmethod
    def get_utc_now() -> datetime:
        """Get current timezone-aware UTC datetime."""
        return datetime.now(timezone.utc)

    @staticmethod
    def to_iso(dt: Optional[datetime] = None) -> str:
        """
        Format a datetime as ISO-8601 with millisecond precision.

        Naive datetimes are assumed to be local time.
        """
        dt = dt or TimeHelper.get_utc_now()
        if dt.tzinfo is None:
            dt = dt.astimezone()
        return dt.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


# ============================================================================
# STRING UTILITIES
# ============================================================================

class StringHelper:
    """
    String manipulation utilities.
    """

    # Characters with meaning in each Telegram parse mode
    _MARKDOWN_CHARS = "_*`["
    _MARKDOWN_V2_CHARS = r"_*[]()~`>#+-=|{}.!"

    @staticmethod
    def truncate(text: str, max_length: int = 100, suffix: str = "...") -> str:
        """Truncate string to maximum length."""
        if len(text) <= max_length:
            return text

        return text[:max_length - len(suffix)] + suffix

    @staticmethod
    def escape_for_parse_mode(text: str, parse_mode: Optional[str]) -> str:
        """
        Escape ``text`` so Telegram renders it literally under ``parse_mode``.

        Args:
            text: Text to escape
            parse_mode: "Markdown", "MarkdownV2", "HTML" or None

        Returns:
            Escaped text
        """
        mode = (parse_mode or "").lower()

        if mode == "html":
            return html.escape(text)
        if mode == "markdownv2":
            chars = StringHelper._MARKDOWN_V2_CHARS
        elif mode == "markdown":
            chars = StringHelper._MARKDOWN_CHARS
        else:
            return text

        return "".join(f"\\{char}" if char in chars else char for char in text)

    @staticmethod
    def redact(text: str, secret: str, placeholder: str = "***") -> str:
        """Replace every occurrence of ``secret`` in ``text``."""
        if not secret:
            return text
        return text.replace(secret, placeholder)
