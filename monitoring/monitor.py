"""
============================================================================
SLOT WATCH - CONTROL LOOP
============================================================================
Drives the probe → compare → notify → sleep cycle.

State machine
-------------
    POLLING ──ok──► COMPARING ──equal──► IDLE ─────┐
       │                 │                         ├─► SLEEPING ─► POLLING
       │                 └──differs──► NOTIFYING ──┘
       │                                   │
       └──NetworkError──► ERROR_BACKOFF ◄──┘ AllChannelsFailedError
                              │
                              └─► (error-retry interval) ─► POLLING

Single-pass modes stop at DONE instead of SLEEPING. Self-test still
notifies after a NetworkError, reporting the target URL and the probe error.

No memory is kept between iterations: while the final URL differs from
the blocked URL, every poll sends a new notification.

Author: Professional Development Team
Version: 1.0.0
License: MIT
============================================================================
"""

import asyncio
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Awaitable, Callable, Optional

from config.settings import Settings
from exceptions import AllChannelsFailedError, MonitoringException, NetworkError, describe_error
from monitoring.alerts import DeliverySummary, NotificationDispatcher
from monitoring.prober import HTTPProber
from monitoring.schedule import SchedulePolicy
from utils.logger import get_logger


logger = get_logger("SlotMonitor")


class MonitorState(str, Enum):
    POLLING = "polling"
    COMPARING = "comparing"
    IDLE = "idle"
    NOTIFYING = "notifying"
    SLEEPING = "sleeping"
    ERROR_BACKOFF = "error_backoff"
    DONE = "done"


class RunMode(str, Enum):
    """Invocation mode, chosen once at startup."""
    CONTINUOUS = "continuous"
    CHECK_ONCE = "check_once"
    SELF_TEST = "self_test"


@dataclass
class IterationOutcome:
    """What happened during one pass through the state machine."""

    final_url: Optional[str] = None
    notified: bool = False
    summary: Optional[DeliverySummary] = None
    error: Optional[MonitoringException] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class SlotMonitor:
    """
    Sequential polling loop.

    Parameters
    ----------
    settings : Settings
        Immutable application settings.
    prober, dispatcher, schedule : optional
        Component overrides; built from ``settings`` when omitted.
    sleep : coroutine function, optional
        Called with a number of seconds; defaults to ``asyncio.sleep``.
    clock : callable, optional
        Returns the local time fed to the schedule policy.
    """

    def __init__(
        self,
        settings: Settings,
        prober: Any = None,
        dispatcher: Any = None,
        schedule: Optional[SchedulePolicy] = None,
        sleep: Optional[Callable[[float], Awaitable[Any]]] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.settings = settings
        self.blocked_url = settings.monitor.blocked_url
        self.prober = prober or HTTPProber(settings.monitor)
        self.dispatcher = dispatcher or NotificationDispatcher(settings)
        self.schedule = schedule or SchedulePolicy(settings.monitor)
        self._sleep = sleep or asyncio.sleep
        self._clock = clock or datetime.now

        self.state = MonitorState.POLLING
        self.iterations = 0
        self._running = False

    # ------------------------------------------------------------------
    # ONE PASS
    # ------------------------------------------------------------------

    async def run_iteration(self, *, force_notify: bool = False) -> IterationOutcome:
        """
        Run POLLING → COMPARING → (IDLE | NOTIFYING) once.

        Recoverable errors are caught, logged and returned in the outcome
        with the state set to ERROR_BACKOFF. With ``force_notify`` a failed
        probe still leads to one notification attempt about the target URL,
        carrying the probe error, so the channels are exercised either way.
        """
        self.iterations += 1
        outcome = IterationOutcome()

        self.state = MonitorState.POLLING
        try:
            outcome.final_url = await self.prober.probe()
        except NetworkError as e:
            self._record_error(outcome, e)
            if not force_notify:
                return outcome

        if outcome.final_url is not None:
            self.state = MonitorState.COMPARING
            if outcome.final_url == self.blocked_url and not force_notify:
                self.state = MonitorState.IDLE
                logger.debug("Final URL matches the blocked URL — no slots")
                return outcome

        if force_notify:
            logger.info("Self-test: sending notification regardless of the final URL")
        else:
            logger.warning(
                "Final URL differs from the blocked URL. Sending notifications now."
            )

        self.state = MonitorState.NOTIFYING
        outcome.notified = True
        probe_error = describe_error(outcome.error) if outcome.error is not None else None
        try:
            outcome.summary = await self.dispatcher.notify(
                outcome.final_url or self.settings.monitor.target_url,
                self_test=force_notify,
                probe_error=probe_error,
            )
        except AllChannelsFailedError as e:
            self._record_error(outcome, e)

        if outcome.error is not None:
            self.state = MonitorState.ERROR_BACKOFF
        return outcome

    def _record_error(self, outcome: IterationOutcome, error: MonitoringException) -> None:
        # the first error of the pass is the one reported
        if outcome.error is None:
            outcome.error = error
        self.state = MonitorState.ERROR_BACKOFF
        logger.error(f"Network/execution error: {error}")

    # ------------------------------------------------------------------
    # MODES
    # ------------------------------------------------------------------

    async def check_once(self) -> IterationOutcome:
        """One probe, conditional notification, no sleep."""
        outcome = await self.run_iteration()
        if outcome.ok:
            self.state = MonitorState.DONE
        return outcome

    async def self_test(self) -> IterationOutcome:
        """One probe and one notification attempt, even if the probe failed; no sleep."""
        outcome = await self.run_iteration(force_notify=True)
        if outcome.ok:
            self.state = MonitorState.DONE
        return outcome

    async def run_forever(self) -> None:
        """Loop until ``stop()`` is called or the task is cancelled."""
        self._running = True
        logger.info(
            f"Slot monitor started — target={self.settings.monitor.target_url}, "
            f"day={self.schedule.day_interval.total_seconds():g}s, "
            f"night={self.schedule.night_interval.total_seconds():g}s"
        )
        logger.info("Notifications repeat on every poll while the final URL differs from the blocked URL")

        try:
            while self._running:
                outcome = await self.run_iteration()

                if outcome.ok:
                    self.state = MonitorState.SLEEPING
                    delay = self.schedule.next_interval(self._clock()).total_seconds()
                else:
                    delay = self.schedule.error_retry_interval.total_seconds()
                    logger.info(f"Waiting {delay:g} seconds before the next attempt.")

                if not self._running:
                    break

                logger.debug(f"Next check in {delay:g}s")
                await self._sleep(delay)
        finally:
            self._running = False
            logger.info("Slot monitor stopped")

    async def run(self, mode: RunMode) -> IterationOutcome:
        """Run in ``mode``; continuous mode returns only once stopped."""
        if mode is RunMode.SELF_TEST:
            return await self.self_test()
        if mode is RunMode.CHECK_ONCE:
            return await self.check_once()
        await self.run_forever()
        return IterationOutcome()

    def stop(self) -> None:
        """Ask the continuous loop to exit after the current step."""
        self._running = False

    @property
    def is_running(self) -> bool:
        return self._running
