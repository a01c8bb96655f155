"""
============================================================================
SLOT WATCH - MONITORING PACKAGE
============================================================================
Runtime monitoring components:
    • HTTPProber              — follows the redirect chain of the target page
    • SchedulePolicy          — night/day polling cadence
    • NotificationDispatcher  — email + Telegram fan-out with partial failure
    • SlotMonitor             — the probe → compare → notify → sleep loop

File layout
-----------
monitoring/
├── __init__.py          ← this file
├── prober.py            ← HTTPProber
├── schedule.py          ← SchedulePolicy
├── channels.py          ← EmailChannel + TelegramChannel + NotificationMessage
├── alerts.py            ← NotificationDispatcher + DeliverySummary
└── monitor.py           ← SlotMonitor state machine
============================================================================
"""

from monitoring.prober import HTTPProber
from monitoring.schedule import SchedulePolicy
from monitoring.channels import EmailChannel, NotificationMessage, TelegramChannel
from monitoring.alerts import DeliverySummary, NotificationDispatcher
from monitoring.monitor import IterationOutcome, MonitorState, RunMode, SlotMonitor

__all__ = [
    # Probe & schedule
    "HTTPProber",
    "SchedulePolicy",

    # Notifications
    "EmailChannel",
    "TelegramChannel",
    "NotificationMessage",
    "NotificationDispatcher",
    "DeliverySummary",

    # Control loop
    "SlotMonitor",
    "MonitorState",
    "RunMode",
    "IterationOutcome",
]
