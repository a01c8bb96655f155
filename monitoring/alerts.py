"""
============================================================================
SLOT WATCH - NOTIFICATION DISPATCHER
============================================================================
Fans one notification event out to the email and Telegram channels.

Design
------
Both sends are started together with ``asyncio.gather(...,
return_exceptions=True)``: every channel settles (success or failure)
before any outcome is inspected, so a failing channel never cancels or
delays the other one.

Outcome rules
-------------
• Both channels delivered  → summary, no error
• One channel failed       → failure logged, summary returned, no error
• Both channels failed     → AllChannelsFailedError raised to the caller

Author: Professional Development Team
Version: 1.0.0
License: MIT
============================================================================
"""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from config.settings import Settings
from exceptions import AllChannelsFailedError, ChannelSendError, describe_error
from monitoring.channels import EmailChannel, NotificationMessage, TelegramChannel
from utils.helpers import TimeHelper
from utils.logger import get_logger


logger = get_logger("Dispatcher")

HEADLINE = "Possible appointment slot available!"


# ============================================================================
# DELIVERY SUMMARY
# ============================================================================

@dataclass(frozen=True)
class DeliverySummary:
    """Per-channel result of one notification event."""

    email: bool
    telegram: bool
    errors: Dict[str, str] = field(default_factory=dict)

    @property
    def delivered(self) -> bool:
        return self.email or self.telegram

    @property
    def succeeded_channels(self) -> List[str]:
        return [name for name, ok in (("email", self.email), ("telegram", self.telegram)) if ok]

    @property
    def failed_channels(self) -> List[str]:
        return [name for name, ok in (("email", self.email), ("telegram", self.telegram)) if not ok]


# ============================================================================
# DISPATCHER
# ============================================================================

class NotificationDispatcher:
    """
    Builds the notification message and delivers it on both channels.

    Parameters
    ----------
    settings : Settings
        Full application settings; the monitored URL and both channel
        configurations are read from it.
    email_channel, telegram_channel : optional
        Channel overrides, mainly for tests. Anything with a ``name``
        attribute and an ``async send(message)`` method works.
    clock : callable, optional
        Returns the detection timestamp; defaults to the current time.
    """

    def __init__(
        self,
        settings: Settings,
        email_channel: Any = None,
        telegram_channel: Any = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.target_url = settings.monitor.target_url
        self.email_channel = email_channel or EmailChannel(settings.email)
        self.telegram_channel = telegram_channel or TelegramChannel(settings.telegram)
        self._clock = clock or TimeHelper.get_utc_now

    def build_message(
        self,
        final_url: str,
        *,
        self_test: bool = False,
        probe_error: Optional[str] = None,
    ) -> NotificationMessage:
        return NotificationMessage(
            headline=HEADLINE,
            target_url=self.target_url,
            final_url=final_url,
            detected_at=TimeHelper.to_iso(self._clock()),
            self_test=self_test,
            probe_error=probe_error,
        )

    async def notify(
        self,
        final_url: str,
        *,
        self_test: bool = False,
        probe_error: Optional[str] = None,
    ) -> DeliverySummary:
        """
        Send one notification about ``final_url`` on every channel.

        ``probe_error`` is set by a self-test whose probe failed; the
        message then reports it instead of a detected change.

        Returns
        -------
        DeliverySummary
            Per-channel success flags, when at least one channel delivered.

        Raises
        ------
        AllChannelsFailedError
            When every channel failed.
        """
        message = self.build_message(final_url, self_test=self_test, probe_error=probe_error)
        channels = (self.email_channel, self.telegram_channel)

        results = await asyncio.gather(
            *(channel.send(message) for channel in channels),
            return_exceptions=True,
        )

        outcomes: Dict[str, bool] = {}
        errors: Dict[str, str] = {}

        for channel, result in zip(channels, results):
            if isinstance(result, asyncio.CancelledError):
                raise result
            if isinstance(result, BaseException):
                errors[channel.name] = describe_error(result)
                outcomes[channel.name] = False
                # unexpected errors keep their traceback on the same record
                exc_info = None if isinstance(result, ChannelSendError) else result
                logger.opt(exception=exc_info).error(
                    f"[{channel.name}] Notification failed: {errors[channel.name]}"
                )
            else:
                outcomes[channel.name] = True

        summary = DeliverySummary(
            email=outcomes.get("email", False),
            telegram=outcomes.get("telegram", False),
            errors=errors,
        )

        if not summary.delivered:
            raise AllChannelsFailedError(errors)

        logger.info(
            f"Notifications sent ({', '.join(summary.succeeded_channels)})"
            + (f"; failed: {', '.join(summary.failed_channels)}" if summary.failed_channels else "")
        )
        return summary
