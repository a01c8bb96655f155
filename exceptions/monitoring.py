"""
Monitoring Exception Classes for Slot Watch

Errors raised while probing the target page and while delivering
notifications through the email and Telegram channels.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from exceptions.base import SlotWatchException


class MonitoringException(SlotWatchException):
    """
    Base Monitoring Exception

    Parent class for every error the control loop recovers from.
    """

    default_error_code = 4000
    default_recoverable = True


class NetworkError(MonitoringException):
    """
    Network Error

    Raised when the probe request fails: timeout, DNS failure,
    connection reset, too many redirects or a non-2xx final status.
    """

    default_error_code = 4100

    def __init__(
        self,
        message: str,
        url: Optional[str] = None,
        status_code: Optional[int] = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, **kwargs)

        self.url = url
        self.status_code = status_code

        if url:
            self.details["url"] = url

        if status_code is not None:
            self.details["status_code"] = status_code


class ChannelSendError(MonitoringException):
    """
    Channel Send Error

    Raised by a single notification channel when its send fails.
    The dispatcher records it in the delivery summary; it never ends
    an iteration by itself.
    """

    default_error_code = 4200

    def __init__(self, message: str, channel: str = "unknown", **kwargs: Any) -> None:
        super().__init__(message, **kwargs)

        self.channel = channel
        self.details["channel"] = channel


class EmailAuthError(ChannelSendError):
    """
    Email Authentication Error

    The mail provider rejected the sender credentials. The message is
    rewritten into an operator-facing instruction.
    """

    default_error_code = 4201

    DIAGNOSTIC = (
        "Email credentials rejected by the mail provider: regenerate the "
        "application password and update EMAIL_PASS"
    )

    def __init__(self, message: Optional[str] = None, **kwargs: Any) -> None:
        kwargs.setdefault("channel", "email")
        super().__init__(message or self.DIAGNOSTIC, **kwargs)


class AllChannelsFailedError(MonitoringException):
    """
    All Channels Failed Error

    Raised by the dispatcher when every channel failed to deliver the
    same notification.
    """

    default_error_code = 4300

    def __init__(
        self,
        errors: Dict[str, str],
        message: Optional[str] = None,
        **kwargs: Any,
    ) -> None:
        if message is None:
            joined = "; ".join(f"{channel}: {error}" for channel, error in errors.items())
            message = f"All notification channels failed ({joined})"

        super().__init__(message, **kwargs)

        self.errors = dict(errors)
        self.details["errors"] = self.errors
