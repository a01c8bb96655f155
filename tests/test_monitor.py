from __future__ import annotations

import asyncio
from datetime import datetime

import pytest

from exceptions import AllChannelsFailedError, NetworkError
from monitoring.monitor import MonitorState, RunMode, SlotMonitor
from tests.conftest import BLOCKED_URL, TARGET_URL, FakeDispatcher, FakeProber, RecordingSleep

OPEN_URL = "https://appointments.example.org/validez/form.php"
NOON = datetime(2025, 3, 14, 12, 0)
NIGHT = datetime(2025, 3, 14, 3, 0)


def _monitor(settings, prober, dispatcher=None, sleep=None, clock=NOON) -> SlotMonitor:
    monitor = SlotMonitor(
        settings,
        prober=prober,
        dispatcher=dispatcher or FakeDispatcher(),
        sleep=sleep or RecordingSleep(),
        clock=lambda: clock,
    )
    if isinstance(monitor._sleep, RecordingSleep):
        monitor._sleep.monitor = monitor
    return monitor


# ============================================================================
# COMPARISON
# ============================================================================

@pytest.mark.asyncio
async def test_blocked_url_does_not_notify(settings) -> None:
    dispatcher = FakeDispatcher()
    monitor = _monitor(settings, FakeProber([BLOCKED_URL]), dispatcher)

    outcome = await monitor.run_iteration()

    assert outcome.ok
    assert outcome.final_url == BLOCKED_URL
    assert outcome.notified is False
    assert dispatcher.calls == []
    assert monitor.state is MonitorState.IDLE


@pytest.mark.asyncio
async def test_one_character_difference_notifies(settings) -> None:
    almost_blocked = BLOCKED_URL[:-1] + "S"
    dispatcher = FakeDispatcher()
    monitor = _monitor(settings, FakeProber([almost_blocked]), dispatcher)

    outcome = await monitor.run_iteration()

    assert outcome.notified is True
    assert outcome.summary.email and outcome.summary.telegram
    assert dispatcher.calls == [(almost_blocked, False)]


@pytest.mark.asyncio
async def test_probe_failure_moves_to_backoff(settings) -> None:
    dispatcher = FakeDispatcher()
    monitor = _monitor(settings, FakeProber([NetworkError("connection reset")]), dispatcher)

    outcome = await monitor.run_iteration()

    assert not outcome.ok
    assert isinstance(outcome.error, NetworkError)
    assert dispatcher.calls == []
    assert monitor.state is MonitorState.ERROR_BACKOFF


@pytest.mark.asyncio
async def test_aggregate_notification_failure_moves_to_backoff(settings) -> None:
    dispatcher = FakeDispatcher(error=AllChannelsFailedError({"email": "x", "telegram": "y"}))
    monitor = _monitor(settings, FakeProber([OPEN_URL]), dispatcher)

    outcome = await monitor.run_iteration()

    assert isinstance(outcome.error, AllChannelsFailedError)
    assert monitor.state is MonitorState.ERROR_BACKOFF


# ============================================================================
# SINGLE-PASS MODES
# ============================================================================

@pytest.mark.asyncio
async def test_self_test_notifies_even_when_blocked(settings) -> None:
    prober = FakeProber([BLOCKED_URL])
    dispatcher = FakeDispatcher()
    sleep = RecordingSleep()
    monitor = _monitor(settings, prober, dispatcher, sleep)

    outcome = await monitor.run(RunMode.SELF_TEST)

    assert outcome.ok
    assert prober.calls == 1
    assert dispatcher.calls == [(BLOCKED_URL, True)]
    assert sleep.delays == []
    assert monitor.state is MonitorState.DONE


@pytest.mark.asyncio
async def test_self_test_still_notifies_when_probe_fails(settings) -> None:
    prober = FakeProber([NetworkError("timeout")])
    dispatcher = FakeDispatcher()
    sleep = RecordingSleep()
    monitor = _monitor(settings, prober, dispatcher, sleep)

    outcome = await monitor.run(RunMode.SELF_TEST)

    assert prober.calls == 1
    assert len(dispatcher.calls) == 1
    assert dispatcher.calls == [(TARGET_URL, True)]
    assert dispatcher.probe_errors == ["timeout"]
    assert outcome.notified
    assert isinstance(outcome.error, NetworkError)
    assert sleep.delays == []
    assert monitor.state is MonitorState.ERROR_BACKOFF


@pytest.mark.asyncio
async def test_self_test_probe_and_delivery_failure_keeps_probe_error(settings) -> None:
    dispatcher = FakeDispatcher(AllChannelsFailedError({"email": "x", "telegram": "y"}))
    monitor = _monitor(settings, FakeProber([NetworkError("timeout")]), dispatcher)

    outcome = await monitor.run(RunMode.SELF_TEST)

    assert len(dispatcher.calls) == 1
    assert isinstance(outcome.error, NetworkError)


@pytest.mark.asyncio
async def test_check_once_probe_failure_does_not_notify(settings) -> None:
    dispatcher = FakeDispatcher()
    monitor = _monitor(settings, FakeProber([NetworkError("timeout")]), dispatcher)

    await monitor.run(RunMode.CHECK_ONCE)

    assert dispatcher.calls == []


@pytest.mark.asyncio
async def test_check_once_blocked(settings) -> None:
    prober = FakeProber([BLOCKED_URL])
    dispatcher = FakeDispatcher()
    sleep = RecordingSleep()
    monitor = _monitor(settings, prober, dispatcher, sleep)

    outcome = await monitor.run(RunMode.CHECK_ONCE)

    assert outcome.ok
    assert prober.calls == 1
    assert dispatcher.calls == []
    assert sleep.delays == []
    assert monitor.state is MonitorState.DONE


@pytest.mark.asyncio
async def test_check_once_open(settings) -> None:
    prober = FakeProber([OPEN_URL])
    dispatcher = FakeDispatcher()
    sleep = RecordingSleep()
    monitor = _monitor(settings, prober, dispatcher, sleep)

    outcome = await monitor.run(RunMode.CHECK_ONCE)

    assert prober.calls == 1
    assert dispatcher.calls == [(OPEN_URL, False)]
    assert sleep.delays == []


@pytest.mark.asyncio
async def test_check_once_failure_is_reported(settings) -> None:
    monitor = _monitor(settings, FakeProber([NetworkError("dns failure")]))

    outcome = await monitor.run(RunMode.CHECK_ONCE)

    assert not outcome.ok
    assert monitor.state is MonitorState.ERROR_BACKOFF


# ============================================================================
# CONTINUOUS MODE
# ============================================================================

@pytest.mark.asyncio
async def test_continuous_uses_day_interval(settings) -> None:
    sleep = RecordingSleep(limit=2)
    monitor = _monitor(settings, FakeProber([BLOCKED_URL]), sleep=sleep, clock=NOON)

    await monitor.run(RunMode.CONTINUOUS)

    assert sleep.delays == [600, 600]
    assert monitor.iterations == 2


@pytest.mark.asyncio
async def test_continuous_uses_night_interval(settings) -> None:
    sleep = RecordingSleep(limit=1)
    monitor = _monitor(settings, FakeProber([BLOCKED_URL]), sleep=sleep, clock=NIGHT)

    await monitor.run_forever()

    assert sleep.delays == [60]


@pytest.mark.asyncio
async def test_probe_failure_waits_error_interval_and_keeps_running(settings) -> None:
    prober = FakeProber([NetworkError("timeout"), BLOCKED_URL])
    sleep = RecordingSleep(limit=2)
    monitor = _monitor(settings, prober, sleep=sleep, clock=NOON)

    await monitor.run_forever()

    assert sleep.delays == [60, 600]
    assert prober.calls == 2


@pytest.mark.asyncio
async def test_notification_failure_waits_error_interval(settings) -> None:
    dispatcher = FakeDispatcher(error=AllChannelsFailedError({"email": "a", "telegram": "b"}))
    sleep = RecordingSleep(limit=1)
    monitor = _monitor(settings, FakeProber([OPEN_URL]), dispatcher, sleep, clock=NIGHT)

    await monitor.run_forever()

    assert sleep.delays == [60]
    assert len(dispatcher.calls) == 1


@pytest.mark.asyncio
async def test_persistent_open_state_notifies_every_cycle(settings) -> None:
    dispatcher = FakeDispatcher()
    sleep = RecordingSleep(limit=3)
    monitor = _monitor(settings, FakeProber([OPEN_URL]), dispatcher, sleep)

    await monitor.run_forever()

    assert dispatcher.calls == [(OPEN_URL, False)] * 3


@pytest.mark.asyncio
async def test_stop_before_sleep_exits_immediately(settings) -> None:
    sleep = RecordingSleep(limit=99)

    class StoppingProber(FakeProber):
        async def probe(self) -> str:
            monitor.stop()
            return await super().probe()

    monitor = _monitor(settings, StoppingProber([BLOCKED_URL]), sleep=sleep)

    await monitor.run_forever()

    assert sleep.delays == []
    assert monitor.is_running is False


@pytest.mark.asyncio
async def test_cancelled_sleep_still_logs_stop(settings, log_records) -> None:
    sleeping = asyncio.Event()

    async def blocking_sleep(seconds: float) -> None:
        sleeping.set()
        await asyncio.sleep(3600)

    monitor = _monitor(settings, FakeProber([BLOCKED_URL]), sleep=blocking_sleep)
    task = asyncio.create_task(monitor.run_forever())
    await sleeping.wait()

    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    assert not monitor.is_running
    assert any(record["message"] == "Slot monitor stopped" for record in log_records)
