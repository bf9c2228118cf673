import pytest
from datetime import datetime
from io import StringIO
from unittest.mock import Mock
from rich.console import Console
from productivity_tracker.models.app_settings import AppSettings
from productivity_tracker.models.work_session import WorkSession, Interruption
from productivity_tracker.services.notifications import (
    ConsoleNotifier,
    NotificationDispatcher,
    NotificationSink,
    describe_event,
)
from productivity_tracker.services.tracking import EventKind, TrackingEvent, TrackingState

AT = datetime(2025, 12, 10, 9, 30)

def event(kind, state=TrackingState.TRACKING, session=None, interruption=None):
    return TrackingEvent(kind=kind, state=state, timestamp=AT, session=session, interruption=interruption)

def test_describe_session_started():
    title, body = describe_event(event(EventKind.SESSION_STARTED))
    assert title == "Focus session started"
    assert "09:30" in body

def test_describe_session_ended():
    session = WorkSession(start_time=datetime(2025, 12, 10, 8, 0), end_time=AT)
    session.add_interruption(Interruption(start_time=datetime(2025, 12, 10, 8, 30), end_time=datetime(2025, 12, 10, 8, 35)))

    title, body = describe_event(event(EventKind.SESSION_ENDED, TrackingState.IDLE, session=session))

    assert title == "Focus session ended"
    assert body == "Worked 1h 30m with 1 interruption."

def test_describe_interruption_started_without_reason():
    interruption = Interruption(start_time=AT)
    title, body = describe_event(event(EventKind.INTERRUPTION_STARTED, TrackingState.INTERRUPTED, interruption=interruption))
    assert title == "Interruption started"
    assert body.startswith("No reason given")

def test_describe_interruption_ended():
    interruption = Interruption(start_time=datetime(2025, 12, 10, 9, 18), end_time=AT)
    title, body = describe_event(event(EventKind.INTERRUPTION_ENDED, interruption=interruption))
    assert title == "Back to focus"
    assert body == "Interrupted for 12m."

def test_deleting_finished_session_is_not_announced():
    assert describe_event(event(EventKind.SESSION_DELETED, TrackingState.IDLE)) is None

def test_dispatcher_forwards_to_sink():
    sink = Mock(spec=NotificationSink)
    dispatcher = NotificationDispatcher(sink, lambda: AppSettings())

    dispatcher(event(EventKind.SESSION_STARTED))

    sink.notify.assert_called_once()
    assert sink.notify.call_args[0][0] == "Focus session started"

def test_dispatcher_respects_disabled_notifications():
    sink = Mock(spec=NotificationSink)
    dispatcher = NotificationDispatcher(sink, lambda: AppSettings(enable_notifications=False))

    dispatcher(event(EventKind.SESSION_STARTED))

    sink.notify.assert_not_called()

def test_dispatcher_defaults_to_enabled_when_settings_fail():
    sink = Mock(spec=NotificationSink)
    dispatcher = NotificationDispatcher(sink, Mock(side_effect=RuntimeError("locked")))

    dispatcher(event(EventKind.SESSION_STARTED))

    sink.notify.assert_called_once()

def test_machine_notifications_end_to_end(machine, db, clock):
    """Test that a subscribed dispatcher announces each transition"""
    sink = Mock(spec=NotificationSink)
    machine.subscribe(NotificationDispatcher(sink, db.get_settings))

    machine.start_session()
    clock.advance(minutes=5)
    machine.start_interruption("door")
    clock.advance(minutes=2)
    machine.end_interruption()
    db.update_settings(enable_notifications=False)
    machine.end_session()

    titles = [call.args[0] for call in sink.notify.call_args_list]
    assert titles == ["Focus session started", "Interruption started", "Back to focus"]

def test_console_notifier_prints():
    output = StringIO()
    ConsoleNotifier(Console(file=output, width=100)).notify("Back to focus", "Interrupted for 2m.")
    assert "Back to focus" in output.getvalue()
    assert "Interrupted for 2m." in output.getvalue()

def test_describe_session_ended_with_reason():
    session = WorkSession(start_time=datetime(2025, 12, 10, 9, 0), end_time=AT, interruption_reason="standup")

    title, body = describe_event(event(EventKind.SESSION_ENDED, TrackingState.IDLE, session=session))

    assert body == "Worked 30m with 0 interruptions. Stopped for: standup."
