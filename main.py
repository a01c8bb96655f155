"""
============================================================================
SLOT WATCH - MAIN APPLICATION
============================================================================
Polls the degree-validation appointment page and notifies by email and
Telegram as soon as it stops redirecting to the "no appointments" notice.

Usage
-----
    python main.py                 # continuous monitoring
    python main.py --check-once    # one check, notify if needed, exit
    python main.py --self-test     # one check + unconditional notification

Startup Order
-------------
1.  Configure logging from LOG_* variables
2.  Load and validate the remaining settings (exit 1 on failure)
3.  Build the SlotMonitor (prober, schedule policy, dispatcher)
4.  Install SIGINT / SIGTERM handlers
5.  Run the selected mode

Exit codes
----------
0  single pass ran to completion (probe or delivery failures are only
   logged), or continuous mode was stopped by a signal
1  invalid configuration or an unhandled fatal error

Author: Professional Development Team
Version: 1.0.0
License: MIT
============================================================================
"""

import argparse
import asyncio
import signal
import sys
from pathlib import Path
from typing import List, Optional

# ---------------------------------------------------------------------------
# Path setup: make the project root importable regardless of CWD
# ---------------------------------------------------------------------------
sys.path.insert(0, str(Path(__file__).parent))

from pydantic import ValidationError

from config.settings import LoggingSettings, Settings, load_settings
from exceptions import ConfigurationError, describe_error
from monitoring.monitor import IterationOutcome, RunMode, SlotMonitor
from utils.logger import get_logger, setup_logging


logger = get_logger("Main")


# ============================================================================
# COMMAND LINE
# ============================================================================

def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="slot-watch",
        description="Watch the appointment page and notify when slots may be open.",
    )
    parser.add_argument(
        "--self-test",
        action="store_true",
        help="probe once, always send a test notification, then exit",
    )
    parser.add_argument(
        "--check-once",
        action="store_true",
        help="probe once, notify only if slots look available, then exit",
    )
    return parser.parse_args(argv)


def select_mode(args: argparse.Namespace) -> RunMode:
    """First match wins: self-test, then check-once, then continuous."""
    if args.self_test:
        return RunMode.SELF_TEST
    if args.check_once:
        return RunMode.CHECK_ONCE
    return RunMode.CONTINUOUS


# ============================================================================
# APPLICATION CLASS
# ============================================================================

class SlotWatchApplication:
    """
    Top-level application orchestrator.

    Owns the monitor and is the single place that knows the startup and
    shutdown order.
    """

    def __init__(self, settings: Settings, mode: RunMode, monitor: Optional[SlotMonitor] = None):
        self.settings = settings
        self.mode = mode
        self.monitor = monitor or SlotMonitor(settings)

    def _print_banner(self) -> None:
        monitor = self.settings.monitor
        logger.info("=" * 74)
        logger.info(f"  SLOT WATCH — mode: {self.mode.value}")
        logger.info(f"  Target  : {monitor.target_url}")
        logger.info(
            f"  Cadence : {monitor.night_interval}s between "
            f"{monitor.night_start_hour:02d}:00-{monitor.night_end_hour:02d}:00, "
            f"{monitor.day_interval}s otherwise, {monitor.error_retry_interval}s after errors"
        )
        logger.info(f"  Notify  : {self.settings.email.to} + Telegram chat {self.settings.telegram.chat_id}")
        logger.info("=" * 74)

    def request_stop(self, task: Optional[asyncio.Task] = None) -> None:
        """Stop the loop; cancel ``task`` so a pending sleep ends immediately."""
        logger.info("  ⚡ Signal received — initiating graceful shutdown…")
        self.monitor.stop()
        if task is not None and not task.done():
            task.cancel()

    async def run(self) -> int:
        """
        Run the selected mode.

        A single pass that ran to completion exits 0 even when its probe or
        delivery failed; that failure is logged, not fatal.
        """
        self._print_banner()

        try:
            outcome: IterationOutcome = await self.monitor.run(self.mode)
        except asyncio.CancelledError:
            logger.info("  ✓ Monitor cancelled")
            return 0

        if self.mode is RunMode.CONTINUOUS:
            return 0

        if outcome.ok:
            logger.info(f"  ✓ {self.mode.value} finished")
        else:
            logger.warning(f"  ✗ {self.mode.value} finished with an error: {outcome.error}")
        return 0


# ============================================================================
# SIGNAL HANDLER SETUP
# ============================================================================

def _install_signal_handlers(loop: asyncio.AbstractEventLoop, app: SlotWatchApplication) -> None:
    """
    Install SIGTERM / SIGINT handlers so that a container stop or Ctrl+C
    ends the loop cleanly.
    """
    task = asyncio.current_task()

    for sig in (signal.SIGTERM, signal.SIGINT):
        try:
            loop.add_signal_handler(sig, app.request_stop, task)
        except (NotImplementedError, RuntimeError):
            # Not supported on Windows; KeyboardInterrupt still works
            pass


# ============================================================================
# MAIN ENTRY POINT
# ============================================================================

async def main(argv: Optional[List[str]] = None) -> int:
    """
    Async main — loads settings, builds the app and runs it.

    Returns the process exit code.
    """
    mode = select_mode(parse_args(argv))

    try:
        settings = load_settings()
    except ConfigurationError as e:
        logger.error(f"[ERROR] {e}")
        return 1

    setup_logging(settings.logging)

    app = SlotWatchApplication(settings, mode)
    if mode is RunMode.CONTINUOUS:
        _install_signal_handlers(asyncio.get_running_loop(), app)

    return await app.run()


def _bootstrap_logging_settings() -> LoggingSettings:
    try:
        return LoggingSettings()
    except ValidationError:
        # load_settings() reports the bad LOG_* value properly
        return LoggingSettings.model_construct()


def cli(argv: Optional[List[str]] = None) -> int:
    """Console-script entry point."""
    setup_logging(_bootstrap_logging_settings())

    try:
        return asyncio.run(main(argv))
    except KeyboardInterrupt:
        return 0
    except Exception as e:
        logger.opt(exception=e).critical(f"Fatal error: {describe_error(e)}")
        return 1


# ============================================================================
# SCRIPT ENTRY POINT
# ============================================================================

if __name__ == "__main__":
    sys.exit(cli())
