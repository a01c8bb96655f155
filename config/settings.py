"""
Settings Module for Slot Watch

Configuration management using Pydantic Settings.
Values come from environment variables or a .env file, are validated
once at startup and are immutable afterwards.
"""

from __future__ import annotations

import re
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Type

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    SecretStr,
    ValidationError,
    field_validator,
    model_validator,
)
from pydantic_settings import BaseSettings, SettingsConfigDict

from exceptions.base import ConfigurationError


DEFAULT_TARGET_URL = "https://titulosvalidez.educacion.gob.ar/validez/detitulos/"

DEFAULT_BLOCKED_URL = (
    "https://titulosvalidez.educacion.gob.ar/validez/detitulos/noaccess.php"
    "?sinT=1&msj=Lamentablemente+no+hay+turnos+disponibles+debido+al+alto+nivel"
    "+de+demanda.%0APor+favor%2C+vuelva+a+intentar+en+otro+momento."
)

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/131.0.0.0 Safari/537.36"
)

# Environment variables that have no default and must be provided.
REQUIRED_ENV_VARS = (
    "EMAIL_USER",
    "EMAIL_PASS",
    "EMAIL_TO",
    "TELEGRAM_TOKEN",
    "TELEGRAM_CHAT_ID",
)

MIN_APP_PASSWORD_LENGTH = 16


class LogLevel(str, Enum):
    """Logging level enumeration."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class BaseSettingsConfig(BaseSettings):
    """Base configuration class with common settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        frozen=True,
        validate_default=True,
    )


def _require_text(value: Any) -> Any:
    """Reject blank strings so they are reported like missing values."""
    raw = value.get_secret_value() if isinstance(value, SecretStr) else value
    if raw is None or (isinstance(raw, str) and not raw.strip()):
        raise ValueError("value is empty")
    return value


class MonitorSettings(BaseSettingsConfig):
    """
    Monitoring Configuration Settings

    What to poll, what counts as "blocked", and how often to poll.
    """

    model_config = SettingsConfigDict(env_prefix="MONITOR_")

    # Target
    target_url: str = Field(
        default=DEFAULT_TARGET_URL,
        description="Page polled on every iteration"
    )
    blocked_url: str = Field(
        default=DEFAULT_BLOCKED_URL,
        description="Final URL that means no appointment slots are available"
    )

    # HTTP client settings
    request_timeout: float = Field(
        default=20.0,
        gt=0,
        le=300,
        description="Probe request timeout in seconds"
    )
    max_redirects: int = Field(
        default=10,
        ge=0,
        le=50,
        description="Maximum number of redirects followed by one probe"
    )
    user_agent: str = Field(
        default=DEFAULT_USER_AGENT,
        description="User-Agent header presented to the target"
    )
    accept: str = Field(
        default=(
            "text/html,application/xhtml+xml,application/xml;q=0.9,"
            "image/avif,image/webp,image/apng,*/*;q=0.8"
        ),
        description="Accept header presented to the target"
    )
    accept_language: str = Field(
        default="pt-BR,pt;q=0.9,en-US;q=0.8,en;q=0.7,es;q=0.6",
        description="Accept-Language header presented to the target"
    )

    # Polling cadence
    day_interval: int = Field(
        default=600,
        ge=1,
        le=86400,
        description="Seconds between polls during the day"
    )
    night_interval: int = Field(
        default=60,
        ge=1,
        le=86400,
        description="Seconds between polls during the night window"
    )
    night_start_hour: int = Field(
        default=0,
        ge=0,
        le=23,
        description="First local hour of the night window (inclusive)"
    )
    night_end_hour: int = Field(
        default=7,
        ge=1,
        le=24,
        description="Local hour at which the night window ends (exclusive)"
    )
    error_retry_interval: int = Field(
        default=60,
        ge=1,
        le=3600,
        description="Seconds to wait after a failed iteration"
    )

    @model_validator(mode="after")
    def validate_night_window(self) -> "MonitorSettings":
        """Validate night window boundaries."""
        if self.night_start_hour >= self.night_end_hour:
            raise ValueError("night_start_hour must be lower than night_end_hour")
        return self

    @property
    def headers(self) -> Dict[str, str]:
        """Browser-like headers sent with every probe."""
        return {
            "Accept": self.accept,
            "Accept-Language": self.accept_language,
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "Pragma": "no-cache",
            "Upgrade-Insecure-Requests": "1",
            "User-Agent": self.user_agent,
        }


class EmailSettings(BaseSettingsConfig):
    """
    Email Channel Configuration Settings

    Sender account, application password and recipient. Defaults target
    Gmail over implicit TLS.
    """

    user: str = Field(
        ...,
        validation_alias="EMAIL_USER",
        description="Sender account, also used as the From address"
    )
    password: SecretStr = Field(
        ...,
        validation_alias="EMAIL_PASS",
        description="Sender application password"
    )
    to: str = Field(
        ...,
        validation_alias="EMAIL_TO",
        description="Recipient address"
    )
    smtp_host: str = Field(
        default="smtp.gmail.com",
        validation_alias="EMAIL_SMTP_HOST",
        description="SMTP server host"
    )
    smtp_port: int = Field(
        default=465,
        ge=1,
        le=65535,
        validation_alias="EMAIL_SMTP_PORT",
        description="SMTP server port (implicit TLS)"
    )
    timeout: float = Field(
        default=20.0,
        gt=0,
        le=300,
        validation_alias="EMAIL_TIMEOUT",
        description="SMTP connection timeout in seconds"
    )

    @field_validator("user", "to", mode="before")
    @classmethod
    def validate_present(cls, v: Any) -> Any:
        return _require_text(v)

    @field_validator("user")
    @classmethod
    def validate_user(cls, v: str) -> str:
        """The sender identity must be an email address."""
        v = v.strip()
        if "@" not in v:
            raise ValueError("EMAIL_USER must be a full email address")
        return v

    @field_validator("password", mode="before")
    @classmethod
    def sanitize_password(cls, v: Any) -> str:
        """
        Clean up an application password pasted from the provider UI.

        Literal backslash-n sequences, surrounding whitespace and the
        spaces between the four-letter groups are removed before the
        length is checked.
        """
        _require_text(v)
        raw = v.get_secret_value() if isinstance(v, SecretStr) else str(v)
        cleaned = re.sub(r"\s+", "", raw.replace("\\n", "").strip())

        if len(cleaned) < MIN_APP_PASSWORD_LENGTH:
            raise ValueError(
                f"EMAIL_PASS must be at least {MIN_APP_PASSWORD_LENGTH} characters "
                "once whitespace is removed (use an application password)"
            )
        return cleaned


class TelegramSettings(BaseSettingsConfig):
    """
    Telegram Channel Configuration Settings
    """

    token: SecretStr = Field(
        ...,
        validation_alias="TELEGRAM_TOKEN",
        description="Telegram Bot API token from @BotFather"
    )
    chat_id: str = Field(
        ...,
        validation_alias="TELEGRAM_CHAT_ID",
        description="Chat or channel that receives the notification"
    )
    api_base: str = Field(
        default="https://api.telegram.org",
        validation_alias="TELEGRAM_API_BASE",
        description="Bot API base URL"
    )
    parse_mode: str = Field(
        default="Markdown",
        validation_alias="TELEGRAM_PARSE_MODE",
        description="Message parse mode (Markdown, MarkdownV2, HTML)"
    )
    timeout: float = Field(
        default=20.0,
        gt=0,
        le=300,
        validation_alias="TELEGRAM_TIMEOUT",
        description="Bot API request timeout in seconds"
    )

    @field_validator("token", "chat_id", mode="before")
    @classmethod
    def validate_present(cls, v: Any) -> Any:
        _require_text(v)
        return v.strip() if isinstance(v, str) else v

    @property
    def send_message_url(self) -> str:
        return f"{self.api_base.rstrip('/')}/bot{self.token.get_secret_value()}/sendMessage"


class LoggingSettings(BaseSettingsConfig):
    """
    Logging Configuration Settings
    """

    model_config = SettingsConfigDict(env_prefix="LOG_")

    level: LogLevel = Field(
        default=LogLevel.INFO,
        description="Minimum logging level"
    )
    console_enabled: bool = Field(
        default=True,
        description="Enable console logging"
    )
    colorize: bool = Field(
        default=True,
        description="Enable colored console output"
    )
    file_enabled: bool = Field(
        default=False,
        description="Enable file logging"
    )
    file_path: Path = Field(
        default=Path("logs/slot_watch.log"),
        description="Log file path"
    )
    file_rotation: str = Field(
        default="10 MB",
        description="Log rotation size (e.g., '10 MB', '1 day')"
    )
    file_retention: str = Field(
        default="30 days",
        description="Log retention period"
    )

    @field_validator("level", mode="before")
    @classmethod
    def normalize_level(cls, v: Any) -> Any:
        return v.upper() if isinstance(v, str) else v


class Settings(BaseModel):
    """
    Main Settings Class

    Aggregates all settings sections. Built once by ``load_settings()``
    and passed explicitly to every component.
    """

    model_config = ConfigDict(frozen=True)

    monitor: MonitorSettings
    email: EmailSettings
    telegram: TelegramSettings
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    def to_dict(self, *, exclude_secrets: bool = True) -> Dict[str, Any]:
        """Convert settings to dictionary."""
        data = self.model_dump(mode="json")

        if exclude_secrets:
            def remove_secrets(obj: Any) -> Any:
                if isinstance(obj, dict):
                    return {
                        k: remove_secrets(v)
                        for k, v in obj.items()
                        if "password" not in k.lower()
                        and "token" not in k.lower()
                    }
                return obj

            data = remove_secrets(data)

        return data


_SECTIONS: Tuple[Tuple[str, Type[BaseSettingsConfig]], ...] = (
    ("monitor", MonitorSettings),
    ("email", EmailSettings),
    ("telegram", TelegramSettings),
    ("logging", LoggingSettings),
)


def _env_name(section_cls: Type[BaseSettingsConfig], loc: Tuple[Any, ...]) -> str:
    """Map a pydantic error location back to the environment variable name."""
    if not loc:
        return section_cls.__name__

    key = str(loc[0])
    field = section_cls.model_fields.get(key)
    if field is not None and isinstance(field.validation_alias, str):
        return field.validation_alias.upper()
    if field is not None:
        return f"{section_cls.model_config.get('env_prefix', '')}{key}".upper()
    return key.upper()


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def load_settings(env_file: Optional[str] = ".env") -> Settings:
    """
    Load and validate every settings section.

    All problems are collected before failing so the operator sees every
    missing or invalid variable in one diagnostic.

    Args:
        env_file: Path of the dotenv file to read, or None to use only
            the process environment.

    Raises:
        ConfigurationError: if a required variable is missing or invalid.
    """
    sections: Dict[str, BaseSettingsConfig] = {}
    missing: List[str] = []
    invalid: Dict[str, str] = {}

    for name, section_cls in _SECTIONS:
        try:
            sections[name] = section_cls(_env_file=env_file)
        except ValidationError as exc:
            for error in exc.errors():
                env_name = _env_name(section_cls, error.get("loc", ()))
                if error["type"] == "missing" or _is_blank(error.get("input")):
                    if env_name not in missing:
                        missing.append(env_name)
                else:
                    invalid[env_name] = error["msg"].removeprefix("Value error, ")

    if missing or invalid:
        parts = []
        if missing:
            parts.append(f"missing environment variables: {', '.join(missing)}")
        if invalid:
            parts.append(
                "invalid values: "
                + "; ".join(f"{key} ({reason})" for key, reason in invalid.items())
            )
        raise ConfigurationError(
            "Configuration error: " + " | ".join(parts),
            missing=missing,
            invalid=invalid,
        )

    return Settings(**sections)
