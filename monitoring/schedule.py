"""
============================================================================
SLOT WATCH - SCHEDULE POLICY
============================================================================
Chooses the polling cadence from the local hour: a short interval during
the night window, when cancelled appointments tend to be released, and a
longer one during the day.
============================================================================
"""

from datetime import datetime, timedelta

from config.settings import MonitorSettings


class SchedulePolicy:
    """Pure mapping from wall-clock time to the next polling interval."""

    def __init__(self, settings: MonitorSettings):
        self.night_start_hour = settings.night_start_hour
        self.night_end_hour = settings.night_end_hour
        self.night_interval = timedelta(seconds=settings.night_interval)
        self.day_interval = timedelta(seconds=settings.day_interval)
        self.error_retry_interval = timedelta(seconds=settings.error_retry_interval)

    def is_night(self, current_time: datetime) -> bool:
        return self.night_start_hour <= current_time.hour < self.night_end_hour

    def next_interval(self, current_time: datetime) -> timedelta:
        """Return the wait before the next poll, given the current local time."""
        if self.is_night(current_time):
            return self.night_interval
        return self.day_interval
