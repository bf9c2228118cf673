import asyncio
import signal
import logging
from datetime import datetime
from typing import Callable, Dict, Optional
from rich.live import Live
from productivity_tracker.config.settings import settings
from productivity_tracker.services.database import DatabaseManager
from productivity_tracker.services.display import TerminalDisplay
from productivity_tracker.services.metrics import MetricsCollector
from productivity_tracker.services.notifications import (
    ConsoleNotifier,
    NotificationDispatcher,
    NotificationSink,
)
from productivity_tracker.services.calculator import ProductivityCalculator
from productivity_tracker.services.shortcuts import ShortcutHandler
from productivity_tracker.services.tracking import SessionStateMachine

logger = logging.getLogger(__name__)

class ProductivityTracker:
    """Wires storage, the state machine and its consumers together"""

    def __init__(self, db: Optional[DatabaseManager] = None,
                 clock: Callable[[], datetime] = datetime.now,
                 notifier: Optional[NotificationSink] = None,
                 display: Optional[TerminalDisplay] = None):
        logger.debug("Initializing ProductivityTracker...")
        self.db = db or DatabaseManager(settings.DEFAULT_DB_PATH)
        self.clock = clock
        self.display = display or TerminalDisplay()
        self.metrics = MetricsCollector(
            self.db,
            clock=clock,
            current_session=lambda: self.machine.current_session
        )

        self.machine = SessionStateMachine(self.db, clock=clock, recover=False)
        self.notifications = NotificationDispatcher(
            notifier or ConsoleNotifier(self.display.console),
            self.db.get_settings
        )
        self.machine.subscribe(self.notifications)
        self.machine.recover()

        self.shortcuts = ShortcutHandler(self.machine)
        self.running = False

    def shutdown(self, signum=None, frame=None):
        """Handle shutdown signals"""
        logger.info("Received shutdown signal. Stopping refresh loop...")
        self.running = False

    def close(self):
        self.db.close()

    def snapshot(self) -> Dict:
        """Everything the status view needs, computed for a single instant"""
        now = self.clock()
        session = self.machine.current_session
        today = self.metrics.sessions_for_date(now.date())
        penalty = self.metrics.penalty_minutes()
        return {
            "now": now,
            "state": self.machine.state,
            "session": session,
            "interruption": self.machine.current_interruption,
            "metrics": ProductivityCalculator.calculate(today, penalty, now),
            "segments": self.metrics.timeline(session, now) if session else [],
        }

    def render(self):
        snap = self.snapshot()
        try:
            show_time = self.db.get_settings().show_time_in_menu_bar
        except Exception as e:
            logger.error(f"Could not read display settings: {e}")
            show_time = True
        return self.display.render_status(
            snap["state"], snap["session"], snap["metrics"], snap["segments"],
            now=snap["now"], show_time=show_time
        )

    async def run(self, max_ticks: Optional[int] = None):
        """Redraw the status view once per tick until stopped

        The loop only reads state; transitions happen elsewhere.
        """
        self.running = True
        ticks = 0
        previous_handlers = {}
        try:
            for sig in (signal.SIGINT, signal.SIGTERM):
                previous_handlers[sig] = signal.signal(sig, self.shutdown)
        except ValueError:
            # Not on the main thread
            logger.debug("Signal handlers not installed")

        logger.info("Starting refresh loop...")
        try:
            with Live(self.render(), console=self.display.console, auto_refresh=False) as live:
                while self.running:
                    try:
                        live.update(self.render(), refresh=True)
                    except Exception as e:
                        logger.error(f"Error refreshing display: {e}", exc_info=True)
                    ticks += 1
                    if max_ticks is not None and ticks >= max_ticks:
                        break
                    await asyncio.sleep(settings.REFRESH_INTERVAL_SECONDS)
        finally:
            self.running = False
            for sig, handler in previous_handlers.items():
                signal.signal(sig, handler)
            logger.info("Refresh loop stopped")
        return ticks

async def main():
    tracker = ProductivityTracker()
    try:
        await tracker.run()
    finally:
        tracker.close()

if __name__ == "__main__":
    asyncio.run(main())
