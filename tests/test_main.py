from __future__ import annotations

import asyncio

import pytest

import main
from exceptions import NetworkError
from monitoring.monitor import IterationOutcome, RunMode, SlotMonitor
from tests.conftest import BLOCKED_URL, FakeDispatcher, FakeProber


class FakeMonitor:
    instances: list = []

    def __init__(self, settings, outcome=None):
        self.settings = settings
        self.modes = []
        self.outcome = outcome or IterationOutcome(final_url="x")
        FakeMonitor.instances.append(self)

    async def run(self, mode):
        self.modes.append(mode)
        return self.outcome

    def stop(self):
        pass


@pytest.fixture(autouse=True)
def _reset_fake_monitor():
    FakeMonitor.instances = []
    yield


@pytest.mark.parametrize(
    ("argv", "mode"),
    [
        ([], RunMode.CONTINUOUS),
        (["--check-once"], RunMode.CHECK_ONCE),
        (["--self-test"], RunMode.SELF_TEST),
        (["--check-once", "--self-test"], RunMode.SELF_TEST),
    ],
)
def test_select_mode(argv, mode) -> None:
    assert main.select_mode(main.parse_args(argv)) is mode


@pytest.mark.asyncio
async def test_missing_configuration_exits_before_probing(clean_env, monkeypatch) -> None:
    monkeypatch.setattr(main, "SlotMonitor", FakeMonitor)

    exit_code = await main.main([])

    assert exit_code == 1
    assert FakeMonitor.instances == []


@pytest.mark.asyncio
@pytest.mark.parametrize("missing", ["EMAIL_USER", "EMAIL_PASS", "EMAIL_TO", "TELEGRAM_TOKEN", "TELEGRAM_CHAT_ID"])
async def test_each_required_variable_is_enforced(full_env, monkeypatch, missing) -> None:
    monkeypatch.setattr(main, "SlotMonitor", FakeMonitor)
    full_env.delenv(missing)

    assert await main.main(["--check-once"]) == 1
    assert FakeMonitor.instances == []


@pytest.mark.asyncio
async def test_malformed_email_credentials_exit_1(full_env, monkeypatch) -> None:
    monkeypatch.setattr(main, "SlotMonitor", FakeMonitor)
    full_env.setenv("EMAIL_PASS", "short")

    assert await main.main(["--self-test"]) == 1
    assert FakeMonitor.instances == []


@pytest.mark.asyncio
async def test_check_once_success_exits_0(full_env, monkeypatch) -> None:
    monkeypatch.setattr(main, "SlotMonitor", FakeMonitor)

    assert await main.main(["--check-once"]) == 0
    assert FakeMonitor.instances[0].modes == [RunMode.CHECK_ONCE]


@pytest.mark.asyncio
async def test_failed_single_pass_exits_0(full_env, monkeypatch) -> None:
    failed = IterationOutcome(error=NetworkError("timeout"))
    monkeypatch.setattr(main, "SlotMonitor", lambda settings: FakeMonitor(settings, failed))

    assert await main.main(["--self-test"]) == 0


@pytest.mark.asyncio
async def test_check_once_network_error_is_logged_not_fatal(full_env, monkeypatch) -> None:
    dispatcher = FakeDispatcher()
    monkeypatch.setattr(
        main,
        "SlotMonitor",
        lambda settings: SlotMonitor(
            settings, prober=FakeProber([NetworkError("dns failure")]), dispatcher=dispatcher
        ),
    )

    assert await main.main(["--check-once"]) == 0
    assert dispatcher.calls == []


@pytest.mark.asyncio
async def test_request_stop_during_sleep_exits_0(settings, log_records) -> None:
    sleeping = asyncio.Event()

    async def blocking_sleep(seconds: float) -> None:
        sleeping.set()
        await asyncio.sleep(3600)

    monitor = SlotMonitor(
        settings,
        prober=FakeProber([BLOCKED_URL]),
        dispatcher=FakeDispatcher(),
        sleep=blocking_sleep,
    )
    app = main.SlotWatchApplication(settings, RunMode.CONTINUOUS, monitor)
    task = asyncio.create_task(app.run())
    await sleeping.wait()

    app.request_stop(task)

    assert await task == 0
    assert not monitor.is_running
    assert any(record["message"] == "Slot monitor stopped" for record in log_records)


def test_cli_turns_fatal_errors_into_exit_1(monkeypatch) -> None:
    async def explode(argv=None):
        raise RuntimeError("unexpected")

    monkeypatch.setattr(main, "main", explode)

    assert main.cli([]) == 1
