"""Reconstruct focus, interruption and recovery-penalty spans of a session"""
import logging
from datetime import datetime, timedelta
from typing import Dict, List, Optional

from productivity_tracker.config.settings import settings
from productivity_tracker.models.timeline import SegmentType, TimelineSegment
from productivity_tracker.models.work_session import WorkSession

logger = logging.getLogger(__name__)


class TimelineSegmenter:
    """Splits one session into contiguous, non-overlapping typed segments

    After an interruption ends, the next `recovery_minutes` of session time
    count as a recovery penalty. A later interruption or the end of the
    session truncates that window.
    """

    def __init__(self, recovery_minutes: float = settings.RECOVERY_MINUTES):
        self.recovery = timedelta(minutes=recovery_minutes)

    def segment(self, session: WorkSession, now: Optional[datetime] = None) -> List[TimelineSegment]:
        now = now or datetime.now()
        session_end = session.end_time or now
        segments: List[TimelineSegment] = []
        current_time = session.start_time
        penalty_until: Optional[datetime] = None

        for interruption in session.sorted_interruptions():
            current_time = self._fill_gap(
                segments, current_time, min(interruption.start_time, session_end), penalty_until
            )

            # Clamp to the cursor and the session end
            interruption_end = min(interruption.end_time or now, session_end)
            self._emit(segments, SegmentType.INTERRUPTION,
                       max(interruption.start_time, current_time), interruption_end)
            current_time = max(current_time, interruption_end)

            if interruption.end_time is not None:
                penalty_until = interruption_end + self.recovery
            else:
                # Ongoing: recovery is not scheduled yet
                penalty_until = None

        self._fill_gap(segments, current_time, session_end, penalty_until)
        return segments

    def _fill_gap(self, segments: List[TimelineSegment], start: datetime, end: datetime,
                  penalty_until: Optional[datetime]) -> datetime:
        """Classify [start, end) as penalty then focus; returns the new cursor"""
        if start >= end:
            return start
        cursor = start
        if penalty_until is not None and cursor < penalty_until:
            boundary = min(penalty_until, end)
            self._emit(segments, SegmentType.PENALTY, cursor, boundary)
            cursor = boundary
        if cursor < end:
            self._emit(segments, SegmentType.FOCUS, cursor, end)
            cursor = end
        return cursor

    @staticmethod
    def _emit(segments: List[TimelineSegment], kind: SegmentType, start: datetime, end: datetime):
        if end <= start:
            return
        segments.append(TimelineSegment(type=kind, start_time=start, end_time=end))

    @staticmethod
    def totals(segments: List[TimelineSegment]) -> Dict[SegmentType, float]:
        """Seconds spent in each segment type"""
        totals = {kind: 0.0 for kind in SegmentType}
        for segment in segments:
            totals[segment.type] += segment.duration_seconds
        return totals


def segment_session(session: WorkSession,
                    recovery_minutes: float = settings.RECOVERY_MINUTES,
                    now: Optional[datetime] = None) -> List[TimelineSegment]:
    """Convenience wrapper around TimelineSegmenter.segment"""
    return TimelineSegmenter(recovery_minutes).segment(session, now)
