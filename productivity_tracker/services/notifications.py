"""Human-readable notifications for tracking events"""
import logging
from typing import Callable, Optional, Tuple

from rich.console import Console

from productivity_tracker.models.app_settings import AppSettings
from productivity_tracker.services.tracking import EventKind, TrackingEvent

logger = logging.getLogger(__name__)


class NotificationSink:
    """Delivers (title, body) pairs; subclasses decide how"""

    def notify(self, title: str, body: str) -> None:
        raise NotImplementedError


class ConsoleNotifier(NotificationSink):
    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console()

    def notify(self, title: str, body: str) -> None:
        self.console.print(f"[bold cyan]🔔 {title}[/bold cyan] [dim]{body}[/dim]")


class LogNotifier(NotificationSink):
    def notify(self, title: str, body: str) -> None:
        logger.info(f"{title}: {body}")


def describe_event(event: TrackingEvent) -> Optional[Tuple[str, str]]:
    """Title and body for an event, or None if it is not worth announcing"""
    session = event.session
    interruption = event.interruption
    at = event.timestamp.strftime("%H:%M")

    if event.kind == EventKind.SESSION_STARTED:
        return "Focus session started", f"Tracking since {at}. Stay on task!"
    if event.kind == EventKind.SESSION_ENDED and session:
        count = session.interruption_count
        noun = "interruption" if count == 1 else "interruptions"
        body = f"Worked {session.duration_formatted(event.timestamp)} with {count} {noun}."
        if session.interruption_reason:
            body += f" Stopped for: {session.interruption_reason}."
        return "Focus session ended", body
    if event.kind == EventKind.INTERRUPTION_STARTED:
        reason = interruption.reason if interruption and interruption.reason else "No reason given"
        return "Interruption started", f"{reason}. Come back when you can."
    if event.kind == EventKind.INTERRUPTION_ENDED and interruption:
        return "Back to focus", f"Interrupted for {interruption.duration_formatted(event.timestamp)}."
    if event.kind == EventKind.SESSION_RECOVERED and session:
        return "Session resumed", f"Continuing the session started at {session.start_time.strftime('%H:%M')}."
    if event.kind == EventKind.SESSION_DELETED and session:
        return "Session deleted", "The running session was removed."
    return None


class NotificationDispatcher:
    """Tracking-event subscriber that forwards to a NotificationSink"""

    def __init__(self, sink: NotificationSink, settings_provider: Callable[[], AppSettings]):
        self.sink = sink
        self.settings_provider = settings_provider

    def _enabled(self) -> bool:
        try:
            return self.settings_provider().enable_notifications
        except Exception as e:
            logger.error(f"Could not read notification settings: {e}")
            return True

    def __call__(self, event: TrackingEvent) -> None:
        message = describe_event(event)
        if message is None or not self._enabled():
            return
        title, body = message
        self.sink.notify(title, body)
