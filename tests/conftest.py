from __future__ import annotations

from typing import Any, List, Optional, Sequence, Union

import pytest
from loguru import logger

from config.settings import (
    REQUIRED_ENV_VARS,
    EmailSettings,
    LoggingSettings,
    MonitorSettings,
    Settings,
    TelegramSettings,
)
from monitoring.alerts import DeliverySummary


TARGET_URL = "https://appointments.example.org/validez/"
BLOCKED_URL = "https://appointments.example.org/validez/noaccess.php?sinT=1&msj=no+slots"
TELEGRAM_TOKEN = "123456:TESTTOKEN-abcdefghijklmnopqrstuvwxyz"


def make_settings(**monitor_overrides: Any) -> Settings:
    monitor_values = {"target_url": TARGET_URL, "blocked_url": BLOCKED_URL}
    monitor_values.update(monitor_overrides)
    return Settings(
        monitor=MonitorSettings(_env_file=None, **monitor_values),
        email=EmailSettings(
            _env_file=None,
            EMAIL_USER="sender@example.com",
            EMAIL_PASS="abcd efgh ijkl mnop",
            EMAIL_TO="operator@example.com",
        ),
        telegram=TelegramSettings(
            _env_file=None,
            TELEGRAM_TOKEN=TELEGRAM_TOKEN,
            TELEGRAM_CHAT_ID="42",
        ),
        logging=LoggingSettings(_env_file=None),
    )


@pytest.fixture
def settings() -> Settings:
    return make_settings()


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch, tmp_path) -> pytest.MonkeyPatch:
    """Empty working directory (no .env) and no required variables set."""
    monkeypatch.chdir(tmp_path)
    for name in REQUIRED_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


@pytest.fixture
def full_env(clean_env: pytest.MonkeyPatch) -> pytest.MonkeyPatch:
    clean_env.setenv("EMAIL_USER", "sender@example.com")
    clean_env.setenv("EMAIL_PASS", "abcd efgh ijkl mnop")
    clean_env.setenv("EMAIL_TO", "operator@example.com")
    clean_env.setenv("TELEGRAM_TOKEN", TELEGRAM_TOKEN)
    clean_env.setenv("TELEGRAM_CHAT_ID", "42")
    return clean_env


class FakeProber:
    """Returns (or raises) the queued results in order, repeating the last one."""

    def __init__(self, results: Sequence[Union[str, BaseException]]):
        self.results = list(results)
        self.calls = 0

    async def probe(self) -> str:
        index = min(self.calls, len(self.results) - 1)
        self.calls += 1
        result = self.results[index]
        if isinstance(result, BaseException):
            raise result
        return result


class FakeDispatcher:
    def __init__(self, error: Optional[BaseException] = None):
        self.error = error
        self.calls: List[tuple] = []
        self.probe_errors: List[Optional[str]] = []

    async def notify(
        self, final_url: str, *, self_test: bool = False, probe_error: Optional[str] = None
    ) -> DeliverySummary:
        self.calls.append((final_url, self_test))
        self.probe_errors.append(probe_error)
        if self.error is not None:
            raise self.error
        return DeliverySummary(email=True, telegram=True)


class FakeChannel:
    def __init__(self, name: str, error: Optional[BaseException] = None):
        self.name = name
        self.error = error
        self.messages: list = []

    async def send(self, message) -> None:
        self.messages.append(message)
        if self.error is not None:
            raise self.error


class RecordingSleep:
    """Records requested delays and stops the monitor after ``limit`` calls."""

    def __init__(self, limit: int = 1):
        self.limit = limit
        self.delays: List[float] = []
        self.monitor = None

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)
        if len(self.delays) >= self.limit and self.monitor is not None:
            self.monitor.stop()


@pytest.fixture
def log_records():
    """Loguru records emitted while the test runs."""
    records: list = []
    handler_id = logger.add(lambda message: records.append(message.record), level="DEBUG")
    yield records
    logger.remove(handler_id)
