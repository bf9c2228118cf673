"""Productivity scoring

Productivity = FocusedTime / (FocusedTime + Penalty), where
Penalty = Interruptions x PenaltyPerInterruption. Focused time is the
wall-clock span of each session, interruptions included.
"""
import logging
from datetime import date, datetime, timedelta
from typing import Iterable, List, Optional

from productivity_tracker.config.settings import settings
from productivity_tracker.models.metrics import DayProductivity, ProductivityMetrics
from productivity_tracker.models.work_session import WorkSession

logger = logging.getLogger(__name__)


class ProductivityCalculator:
    """Pure functions turning work sessions into productivity metrics"""

    @staticmethod
    def calculate(sessions: Iterable[WorkSession],
                  penalty_minutes: int = settings.DEFAULT_PENALTY_MINUTES,
                  now: Optional[datetime] = None) -> ProductivityMetrics:
        """Calculate metrics for a set of sessions

        Active sessions and interruptions are measured up to `now`.
        """
        now = now or datetime.now()
        sessions = list(sessions)

        focused_minutes = sum(s.duration(now) for s in sessions) / 60.0
        interruption_count = sum(s.interruption_count for s in sessions)
        interruption_minutes = sum(s.interruption_duration(now) for s in sessions) / 60.0
        penalty = float(interruption_count * penalty_minutes)

        denominator = focused_minutes + penalty
        if denominator > 0:
            score = focused_minutes / denominator
        else:
            score = 0.0
        score = min(max(score, 0.0), 1.0)

        return ProductivityMetrics(
            focused_minutes=max(focused_minutes, 0.0),
            interruption_count=interruption_count,
            interruption_duration_minutes=max(interruption_minutes, 0.0),
            penalty_minutes=penalty,
            productivity_score=score,
            session_count=len(sessions)
        )

    @staticmethod
    def sessions_on(day: date, sessions: Iterable[WorkSession]) -> List[WorkSession]:
        """Sessions that started on the given calendar day"""
        return [s for s in sessions if s.start_time.date() == day]

    @classmethod
    def calculate_for_date(cls, day, sessions: Iterable[WorkSession],
                           penalty_minutes: int = settings.DEFAULT_PENALTY_MINUTES,
                           now: Optional[datetime] = None) -> ProductivityMetrics:
        """Calculate metrics for sessions started on the same day as `day`"""
        if isinstance(day, datetime):
            day = day.date()
        return cls.calculate(cls.sessions_on(day, sessions), penalty_minutes, now)

    @classmethod
    def calculate_weekly_average(cls, sessions: Iterable[WorkSession],
                                 penalty_minutes: int = settings.DEFAULT_PENALTY_MINUTES,
                                 now: Optional[datetime] = None) -> float:
        """Average daily score over today and the six preceding days

        Days without sessions are left out of the average.
        """
        now = now or datetime.now()
        sessions = list(sessions)
        daily_scores = []
        for offset in range(7):
            day = now.date() - timedelta(days=offset)
            day_sessions = cls.sessions_on(day, sessions)
            if day_sessions:
                daily_scores.append(cls.calculate(day_sessions, penalty_minutes, now).productivity_score)

        if not daily_scores:
            return 0.0
        return sum(daily_scores) / len(daily_scores)

    @classmethod
    def weekly_breakdown(cls, sessions: Iterable[WorkSession],
                         penalty_minutes: int = settings.DEFAULT_PENALTY_MINUTES,
                         now: Optional[datetime] = None) -> List[DayProductivity]:
        """Per-day productivity for the last seven days, oldest first"""
        now = now or datetime.now()
        sessions = list(sessions)
        week = []
        for offset in reversed(range(7)):
            day = now.date() - timedelta(days=offset)
            metrics = cls.calculate(cls.sessions_on(day, sessions), penalty_minutes, now)
            week.append(DayProductivity(
                date=day,
                day=day.strftime("%a"),
                productivity=metrics.productivity_percentage
            ))
        return week
