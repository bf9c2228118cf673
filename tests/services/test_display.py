from datetime import datetime, date
from io import StringIO
import pytest
from rich.console import Console
from productivity_tracker.models.metrics import DayProductivity, ProductivityMetrics
from productivity_tracker.models.timeline import SegmentType, TimelineSegment
from productivity_tracker.models.work_session import WorkSession
from productivity_tracker.services.display import TerminalDisplay
from productivity_tracker.services.tracking import TrackingState, TransitionOutcome, TransitionResult

@pytest.fixture
def output():
    return StringIO()

@pytest.fixture
def display(output):
    return TerminalDisplay(Console(file=output, width=120, color_system=None))

def segments():
    return [
        TimelineSegment(type=SegmentType.FOCUS, start_time=datetime(2025, 12, 10, 9, 0), end_time=datetime(2025, 12, 10, 9, 10)),
        TimelineSegment(type=SegmentType.INTERRUPTION, start_time=datetime(2025, 12, 10, 9, 10), end_time=datetime(2025, 12, 10, 9, 15)),
        TimelineSegment(type=SegmentType.PENALTY, start_time=datetime(2025, 12, 10, 9, 15), end_time=datetime(2025, 12, 10, 9, 20)),
        TimelineSegment(type=SegmentType.FOCUS, start_time=datetime(2025, 12, 10, 9, 20), end_time=datetime(2025, 12, 10, 9, 30)),
    ]

def test_timeline_bar_fills_width(display):
    bar = display.render_timeline(segments(), width=30)
    assert len(bar.plain) == 30
    assert bar.plain == "█" * 30

def test_empty_timeline(display):
    assert display.render_timeline([]).plain == ""

def test_status_shows_state_and_time(display, output):
    session = WorkSession(start_time=datetime(2025, 12, 10, 9, 0))
    display.show_status(
        TrackingState.TRACKING, session, ProductivityMetrics(focused_minutes=30, productivity_score=1.0, session_count=1),
        segments(), now=datetime(2025, 12, 10, 9, 30)
    )
    text = output.getvalue()
    assert "Tracking" in text
    assert "30m" in text
    assert "since 09:00" in text
    assert "Recovery" in text

def test_status_can_hide_time(display, output):
    session = WorkSession(start_time=datetime(2025, 12, 10, 9, 0))
    display.show_status(TrackingState.TRACKING, session, ProductivityMetrics(), segments(),
                        now=datetime(2025, 12, 10, 9, 30), show_time=False)
    assert "since 09:00" not in output.getvalue()

def test_show_result_for_rejected_transition(display, output):
    display.show_result("Start session", TransitionResult(
        TransitionOutcome.INVALID_TRANSITION, TrackingState.TRACKING, message="Session already in progress"
    ))
    assert "Start session ignored: Session already in progress" in output.getvalue()

def test_show_result_warns_when_not_persisted(display, output):
    display.show_result("Start session", TransitionResult(TransitionOutcome.OK, TrackingState.TRACKING, persisted=False))
    assert "could not be saved" in output.getvalue()

def test_history_groups_by_day(display, output):
    display.show_history([
        WorkSession(start_time=datetime(2025, 12, 9, 9, 0), end_time=datetime(2025, 12, 9, 10, 0)),
        WorkSession(start_time=datetime(2025, 12, 10, 9, 0), end_time=datetime(2025, 12, 10, 9, 45)),
    ], penalty_minutes=5, now=datetime(2025, 12, 10, 12, 0))
    text = output.getvalue()
    assert "Wed 10 Dec 2025" in text
    assert "Tue 09 Dec 2025" in text
    assert text.index("Wed 10 Dec 2025") < text.index("Tue 09 Dec 2025")

def test_empty_history(display, output):
    display.show_history([], penalty_minutes=5)
    assert "No work sessions recorded" in output.getvalue()

def test_show_week(display, output):
    display.show_week([DayProductivity(date=date(2025, 12, 10), day="Wed", productivity=80.0)], 0.8)
    assert "80%" in output.getvalue()
    assert "Weekly average: 80%" in output.getvalue()
