"""
============================================================================
SLOT WATCH - NOTIFICATION CHANNELS
============================================================================
The two independent delivery mechanisms used by the dispatcher:

    EmailChannel     ← SMTP over implicit TLS (Gmail by default)
    TelegramChannel  ← Bot API sendMessage via httpx

Each channel exposes ``name`` and ``async send(message)``. A failed send
always surfaces as ``ChannelSendError`` (or its ``EmailAuthError``
variant); nothing else escapes ``send``.

Author: Professional Development Team
Version: 1.0.0
License: MIT
============================================================================
"""

import asyncio
import re
import smtplib
from dataclasses import dataclass
from email.message import EmailMessage
from typing import Any, Callable, Optional

import httpx

from config.settings import EmailSettings, TelegramSettings
from exceptions import ChannelSendError, EmailAuthError, describe_error
from utils.helpers import StringHelper
from utils.logger import get_logger


logger = get_logger("Channels")


# ============================================================================
# MESSAGE
# ============================================================================

@dataclass(frozen=True)
class NotificationMessage:
    """Content of one notification event, shared by every channel."""

    headline: str
    target_url: str
    final_url: str
    detected_at: str
    self_test: bool = False
    probe_error: Optional[str] = None

    @property
    def subject(self) -> str:
        prefix = "[TEST] " if self.self_test else ""
        return f"{prefix}🚨 {self.headline}"

    @property
    def summary_line(self) -> str:
        if self.probe_error:
            return f"The check of the monitored URL failed: {self.probe_error}"
        return "The final URL returned was different from the blocked URL."

    def email_body(self) -> str:
        lines = []
        if self.self_test:
            lines += ["This is a self-test notification.", ""]
        lines += [
            self.summary_line,
            "",
            f"Monitored URL: {self.target_url}",
            f"Final URL: {self.final_url}",
            "",
            f"Detected at: {self.detected_at}",
        ]
        return "\n".join(lines)

    def telegram_text(self, parse_mode: Optional[str] = None) -> str:
        def esc(text: str) -> str:
            return StringHelper.escape_for_parse_mode(text, parse_mode)

        mode = (parse_mode or "").lower()
        if mode == "html":
            title = f"<b>{esc(self.subject)}</b>"
        elif mode in ("markdown", "markdownv2"):
            title = f"*{esc(self.subject)}*"
        else:
            title = self.subject

        return "\n".join([
            title,
            "",
            esc(self.summary_line),
            f"{esc('Monitored URL:')} {esc(self.target_url)}",
            f"{esc('Final URL:')} {esc(self.final_url)}",
            f"{esc('Detected at:')} {esc(self.detected_at)}",
        ])


# ============================================================================
# EMAIL CHANNEL
# ============================================================================

class EmailChannel:
    """
    Sends the notification as a plain-text email.

    smtplib is blocking, so the whole SMTP conversation runs in a worker
    thread via ``asyncio.to_thread`` and the event loop stays free for
    the concurrent Telegram send.
    """

    name = "email"

    # Provider replies that mean the username/password pair was rejected
    AUTH_FAILURE_PATTERN = re.compile(
        r"\b535\b|5\.7\.8|username and password not accepted|badcredentials|"
        r"authentication failed|invalid login|\beauth\b",
        re.IGNORECASE,
    )

    def __init__(
        self,
        settings: EmailSettings,
        smtp_factory: Callable[..., Any] = smtplib.SMTP_SSL,
    ):
        self.settings = settings
        self._smtp_factory = smtp_factory

    def build_email(self, message: NotificationMessage) -> EmailMessage:
        email = EmailMessage()
        email["From"] = self.settings.user
        email["To"] = self.settings.to
        email["Subject"] = message.subject
        email.set_content(message.email_body())
        return email

    def _send_sync(self, message: NotificationMessage) -> None:
        email = self.build_email(message)
        with self._smtp_factory(
            self.settings.smtp_host,
            self.settings.smtp_port,
            timeout=self.settings.timeout,
        ) as server:
            server.login(self.settings.user, self.settings.password.get_secret_value())
            server.send_message(email)

    @classmethod
    def is_auth_failure(cls, error: BaseException) -> bool:
        """Recognize a rejected-credentials reply from the mail provider."""
        if isinstance(error, smtplib.SMTPAuthenticationError):
            return True
        if getattr(error, "smtp_code", None) == 535:
            return True
        return bool(cls.AUTH_FAILURE_PATTERN.search(describe_error(error)))

    async def send(self, message: NotificationMessage) -> None:
        try:
            await asyncio.to_thread(self._send_sync, message)
        except Exception as e:
            if self.is_auth_failure(e):
                raise EmailAuthError(cause=e) from e
            raise ChannelSendError(
                f"Email send failed: {describe_error(e)}",
                channel=self.name,
                cause=e,
            ) from e

        logger.debug(f"Email delivered to {self.settings.to}")


# ============================================================================
# TELEGRAM CHANNEL
# ============================================================================

class TelegramChannel:
    """
    Posts the notification to a chat through the Telegram Bot API.

    The bot token is part of the request URL, so it is scrubbed from
    every error message before the error leaves this class.
    """

    name = "telegram"

    def __init__(
        self,
        settings: TelegramSettings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.settings = settings
        self._transport = transport

    def build_payload(self, message: NotificationMessage) -> dict:
        return {
            "chat_id": self.settings.chat_id,
            "text": message.telegram_text(self.settings.parse_mode),
            "parse_mode": self.settings.parse_mode,
        }

    def _redact(self, text: str) -> str:
        return StringHelper.redact(text, self.settings.token.get_secret_value())

    def _fail(self, text: str, cause: BaseException) -> ChannelSendError:
        return ChannelSendError(self._redact(text), channel=self.name, cause=cause)

    @staticmethod
    def _api_description(response: httpx.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            return StringHelper.truncate(response.text, 200)
        if isinstance(body, dict) and body.get("description"):
            return str(body["description"])
        return StringHelper.truncate(response.text, 200)

    async def send(self, message: NotificationMessage) -> None:
        payload = self.build_payload(message)

        try:
            async with httpx.AsyncClient(
                timeout=httpx.Timeout(self.settings.timeout),
                transport=self._transport,
            ) as client:
                response = await client.post(self.settings.send_message_url, json=payload)
                response.raise_for_status()
                body = response.json()

        except httpx.HTTPStatusError as e:
            raise self._fail(
                f"Telegram API returned HTTP {e.response.status_code}: "
                f"{self._api_description(e.response)}",
                e,
            ) from e
        except httpx.HTTPError as e:
            raise self._fail(f"Telegram request failed: {describe_error(e)}", e) from e
        except ValueError as e:
            raise self._fail(f"Telegram returned a non-JSON response: {describe_error(e)}", e) from e

        if not isinstance(body, dict) or not body.get("ok", False):
            description = body.get("description") if isinstance(body, dict) else None
            raise ChannelSendError(
                self._redact(f"Telegram API rejected the message: {description or body}"),
                channel=self.name,
            )

        logger.debug(f"Telegram message delivered to chat {self.settings.chat_id}")
