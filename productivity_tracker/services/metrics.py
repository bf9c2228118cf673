"""Collect and format productivity metrics for display"""
import logging
from datetime import datetime, timedelta, time, date
from typing import Callable, Dict, List, Optional
from productivity_tracker.config.settings import settings
from productivity_tracker.models.timeline import SegmentType, TimelineSegment
from productivity_tracker.models.work_session import WorkSession
from productivity_tracker.services.calculator import ProductivityCalculator
from productivity_tracker.services.database import DatabaseManager
from productivity_tracker.services.timeline import TimelineSegmenter

logger = logging.getLogger(__name__)

class MetricsCollector:
    """Builds read-only metric and timeline reports from stored sessions"""

    def __init__(self, db: DatabaseManager, clock: Callable[[], datetime] = datetime.now,
                 recovery_minutes: float = settings.RECOVERY_MINUTES,
                 current_session: Optional[Callable[[], Optional[WorkSession]]] = None):
        self.db = db
        self.clock = clock
        self.current_session = current_session
        self.segmenter = TimelineSegmenter(recovery_minutes)

    def penalty_minutes(self) -> int:
        """Current penalty setting, falling back to the configured default"""
        try:
            return self.db.get_settings().penalty_per_interruption_minutes
        except Exception as e:
            logger.error(f"Error reading penalty setting: {e}")
            return settings.DEFAULT_PENALTY_MINUTES

    def sessions_between(self, start: datetime, end: datetime) -> List[WorkSession]:
        """Stored sessions starting in [start, end), with the live session in place of its row"""
        sessions = self.db.fetch_sessions_between(start, end)
        current = self.current_session() if self.current_session else None
        if current is None:
            return sessions

        sessions = [s for s in sessions if s.id != current.id]
        if start <= current.start_time < end:
            sessions.append(current)
            sessions.sort(key=lambda s: s.start_time, reverse=True)
        return sessions

    def sessions_for_date(self, day: date) -> List[WorkSession]:
        start = datetime.combine(day, time.min)
        return self.sessions_between(start, start + timedelta(days=1))

    def get_daily_metrics(self, day: Optional[date] = None) -> Dict:
        """Get metrics for a specific date"""
        now = self.clock()
        if day is None:
            day = now.date()
        elif isinstance(day, datetime):
            day = day.date()

        sessions = self.sessions_for_date(day)
        metrics = ProductivityCalculator.calculate(sessions, self.penalty_minutes(), now)
        return {
            "date": day.isoformat(),
            "summary": metrics.model_dump(mode="json"),
            "sessions": [self.session_report(s, now) for s in sessions],
            "hourly_patterns": self._get_hourly_patterns(sessions, now)
        }

    def get_weekly_metrics(self) -> Dict:
        """Per-day productivity for the last seven days plus their average"""
        now = self.clock()
        start = datetime.combine(now.date() - timedelta(days=6), time.min)
        sessions = self.sessions_between(start, datetime.combine(now.date() + timedelta(days=1), time.min))
        penalty = self.penalty_minutes()
        return {
            "average_score": ProductivityCalculator.calculate_weekly_average(sessions, penalty, now),
            "days": [
                d.model_dump(mode="json")
                for d in ProductivityCalculator.weekly_breakdown(sessions, penalty, now)
            ]
        }

    def export_timeframe(self, start: datetime, end: datetime) -> Dict:
        """Export all metrics for a given timeframe"""
        now = self.clock()
        sessions = self.sessions_between(start, end + timedelta(days=1))
        penalty = self.penalty_minutes()

        daily_metrics = []
        current = start.date()
        while current <= end.date():
            day_sessions = ProductivityCalculator.sessions_on(current, sessions)
            daily_metrics.append({
                "date": current.isoformat(),
                "summary": ProductivityCalculator.calculate(day_sessions, penalty, now).model_dump(mode="json")
            })
            current += timedelta(days=1)

        return {
            "timeframe": {
                "start": start.isoformat(),
                "end": end.isoformat()
            },
            "daily_metrics": daily_metrics,
            "aggregate_metrics": ProductivityCalculator.calculate(sessions, penalty, now).model_dump(mode="json")
        }

    def timeline(self, session: WorkSession, now: Optional[datetime] = None) -> List[TimelineSegment]:
        return self.segmenter.segment(session, now or self.clock())

    def session_report(self, session: WorkSession, now: Optional[datetime] = None) -> Dict:
        """Serializable view of one session with its timeline"""
        now = now or self.clock()
        segments = self.timeline(session, now)
        totals = TimelineSegmenter.totals(segments)
        return {
            "id": session.id,
            "start_time": session.start_time.isoformat(),
            "end_time": session.end_time.isoformat() if session.end_time else None,
            "is_active": session.is_active,
            "interruption_reason": session.interruption_reason,
            "duration_minutes": round(session.duration(now) / 60, 2),
            "duration_formatted": session.duration_formatted(now),
            "interruptions": [
                {
                    "id": i.id,
                    "start_time": i.start_time.isoformat(),
                    "end_time": i.end_time.isoformat() if i.end_time else None,
                    "reason": i.reason,
                    "duration_formatted": i.duration_formatted(now)
                }
                for i in session.sorted_interruptions()
            ],
            "timeline": [s.model_dump(mode="json") for s in segments],
            "totals_minutes": {kind.value: round(seconds / 60, 2) for kind, seconds in totals.items()}
        }

    def _get_hourly_patterns(self, sessions: List[WorkSession], now: datetime) -> Dict[int, Dict[str, float]]:
        """Minutes of each segment type falling in each hour of the day"""
        patterns = {hour: {kind.value: 0.0 for kind in SegmentType} for hour in range(24)}
        for session in sessions:
            for segment in self.timeline(session, now):
                cursor = segment.start_time
                while cursor < segment.end_time:
                    next_hour = cursor.replace(minute=0, second=0, microsecond=0) + timedelta(hours=1)
                    boundary = min(next_hour, segment.end_time)
                    # Sessions running past midnight wrap into the early hours
                    patterns[cursor.hour][segment.type.value] += (boundary - cursor).total_seconds() / 60
                    cursor = boundary

        for hour in patterns:
            for kind in patterns[hour]:
                patterns[hour][kind] = round(patterns[hour][kind], 2)
        return patterns
