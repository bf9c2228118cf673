import pytest
from datetime import datetime, timedelta
from productivity_tracker.models.timeline import SegmentType
from productivity_tracker.models.work_session import WorkSession, Interruption
from productivity_tracker.services.timeline import TimelineSegmenter, segment_session

FOCUS, INTERRUPTION, PENALTY = SegmentType.FOCUS, SegmentType.INTERRUPTION, SegmentType.PENALTY

def at(hour, minute=0):
    return datetime(2025, 12, 10, hour, minute)

def spans(segments):
    """Compact (type, start, end) view for assertions"""
    return [(s.type, s.start_time.strftime("%H:%M"), s.end_time.strftime("%H:%M")) for s in segments]

def assert_contiguous(segments, start, end):
    assert segments[0].start_time == start
    assert segments[-1].end_time == end
    for previous, current in zip(segments, segments[1:]):
        assert previous.end_time == current.start_time
    assert sum(s.duration_seconds for s in segments) == (end - start).total_seconds()
    assert all(s.duration_seconds > 0 for s in segments)

@pytest.fixture
def segmenter():
    return TimelineSegmenter(recovery_minutes=5)

def test_uninterrupted_session_is_all_focus(segmenter):
    session = WorkSession(start_time=at(9), end_time=at(9, 30))

    segments = segmenter.segment(session)

    assert spans(segments) == [(FOCUS, "09:00", "09:30")]
    assert segments[0].duration_seconds == 30 * 60

def test_single_interruption_adds_recovery_penalty(segmenter):
    session = WorkSession(start_time=at(9), end_time=at(9, 30))
    session.add_interruption(Interruption(start_time=at(9, 10), end_time=at(9, 15)))

    segments = segmenter.segment(session)

    assert spans(segments) == [
        (FOCUS, "09:00", "09:10"),
        (INTERRUPTION, "09:10", "09:15"),
        (PENALTY, "09:15", "09:20"),
        (FOCUS, "09:20", "09:30"),
    ]
    assert_contiguous(segments, at(9), at(9, 30))

def test_interruption_inside_penalty_window_truncates_it(segmenter):
    session = WorkSession(start_time=at(9), end_time=at(9, 30))
    session.add_interruption(Interruption(start_time=at(9, 10), end_time=at(9, 15)))
    session.add_interruption(Interruption(start_time=at(9, 18), end_time=at(9, 19)))

    segments = segmenter.segment(session)

    assert spans(segments) == [
        (FOCUS, "09:00", "09:10"),
        (INTERRUPTION, "09:10", "09:15"),
        (PENALTY, "09:15", "09:18"),
        (INTERRUPTION, "09:18", "09:19"),
        (PENALTY, "09:19", "09:24"),
        (FOCUS, "09:24", "09:30"),
    ]
    assert_contiguous(segments, at(9), at(9, 30))

def test_ongoing_interruption_has_no_trailing_penalty(segmenter):
    session = WorkSession(start_time=at(9))
    session.interruptions.append(Interruption(start_time=at(9, 5)))

    segments = segmenter.segment(session, now=at(9, 12))

    assert spans(segments) == [
        (FOCUS, "09:00", "09:05"),
        (INTERRUPTION, "09:05", "09:12"),
    ]
    assert_contiguous(segments, at(9), at(9, 12))

def test_session_end_truncates_penalty(segmenter):
    session = WorkSession(start_time=at(9), end_time=at(9, 17))
    session.add_interruption(Interruption(start_time=at(9, 10), end_time=at(9, 15)))

    segments = segmenter.segment(session)

    assert spans(segments)[-1] == (PENALTY, "09:15", "09:17")
    assert_contiguous(segments, at(9), at(9, 17))

def test_unsorted_interruptions_are_sorted(segmenter):
    session = WorkSession(start_time=at(9), end_time=at(10))
    session.interruptions = [
        Interruption(start_time=at(9, 40), end_time=at(9, 45)),
        Interruption(start_time=at(9, 10), end_time=at(9, 15)),
    ]

    segments = segmenter.segment(session)

    assert [s.type for s in segments] == [FOCUS, INTERRUPTION, PENALTY, FOCUS, INTERRUPTION, PENALTY, FOCUS]
    assert_contiguous(segments, at(9), at(10))

def test_interruption_at_session_start(segmenter):
    session = WorkSession(start_time=at(9), end_time=at(9, 30))
    session.add_interruption(Interruption(start_time=at(9), end_time=at(9, 2)))

    segments = segmenter.segment(session)

    assert spans(segments) == [
        (INTERRUPTION, "09:00", "09:02"),
        (PENALTY, "09:02", "09:07"),
        (FOCUS, "09:07", "09:30"),
    ]

def test_back_to_back_interruptions(segmenter):
    session = WorkSession(start_time=at(9), end_time=at(9, 30))
    session.add_interruption(Interruption(start_time=at(9, 10), end_time=at(9, 12)))
    session.add_interruption(Interruption(start_time=at(9, 12), end_time=at(9, 14)))

    segments = segmenter.segment(session)

    assert spans(segments) == [
        (FOCUS, "09:00", "09:10"),
        (INTERRUPTION, "09:10", "09:12"),
        (INTERRUPTION, "09:12", "09:14"),
        (PENALTY, "09:14", "09:19"),
        (FOCUS, "09:19", "09:30"),
    ]

def test_zero_length_interruption_emits_nothing_but_schedules_penalty(segmenter):
    session = WorkSession(start_time=at(9), end_time=at(9, 30))
    session.add_interruption(Interruption(start_time=at(9, 10), end_time=at(9, 10), reason="phone"))

    segments = segmenter.segment(session)

    assert spans(segments) == [
        (FOCUS, "09:00", "09:10"),
        (PENALTY, "09:10", "09:15"),
        (FOCUS, "09:15", "09:30"),
    ]

def test_interruption_closing_the_session_has_no_visible_penalty(segmenter):
    session = WorkSession(start_time=at(9), end_time=at(9, 30))
    session.add_interruption(Interruption(start_time=at(9, 30), end_time=at(9, 30), reason="meeting"))

    assert spans(segmenter.segment(session)) == [(FOCUS, "09:00", "09:30")]

def test_zero_length_session_has_no_segments(segmenter):
    session = WorkSession(start_time=at(9), end_time=at(9))
    assert segmenter.segment(session) == []

def test_overlapping_records_stay_non_overlapping(segmenter):
    session = WorkSession(start_time=at(9), end_time=at(9, 30))
    session.interruptions = [
        Interruption(start_time=at(9, 5), end_time=at(9, 15)),
        Interruption(start_time=at(9, 10), end_time=at(9, 12)),
    ]

    segments = segmenter.segment(session)

    assert_contiguous(segments, at(9), at(9, 30))

def test_penalty_never_exceeds_recovery_window():
    session = WorkSession(start_time=at(9), end_time=at(12))
    for minute in (10, 40, 55):
        start = at(9, minute)
        session.add_interruption(Interruption(start_time=start, end_time=start + timedelta(minutes=3)))

    segments = segment_session(session, recovery_minutes=7)

    penalties = [s for s in segments if s.type == PENALTY]
    assert penalties
    assert all(s.duration_seconds <= 7 * 60 for s in penalties)
    assert_contiguous(segments, at(9), at(12))

def test_totals_by_type(segmenter):
    session = WorkSession(start_time=at(9), end_time=at(9, 30))
    session.add_interruption(Interruption(start_time=at(9, 10), end_time=at(9, 15)))

    totals = TimelineSegmenter.totals(segmenter.segment(session))

    assert totals[FOCUS] == 20 * 60
    assert totals[INTERRUPTION] == 5 * 60
    assert totals[PENALTY] == 5 * 60

def test_interruption_after_session_end_is_ignored(segmenter):
    session = WorkSession(start_time=at(9), end_time=at(9, 30))
    session.interruptions = [Interruption(start_time=at(9, 45), end_time=at(9, 50))]

    segments = segmenter.segment(session)

    assert spans(segments) == [(FOCUS, "09:00", "09:30")]
    assert_contiguous(segments, at(9), at(9, 30))
