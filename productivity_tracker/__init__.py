"""
Productivity Tracker - focus sessions, interruptions and recovery penalties
"""

__version__ = "0.1.0"

from .models.work_session import WorkSession, Interruption
from .services.database import DatabaseManager
from .services.tracking import SessionStateMachine, TrackingState, TransitionOutcome
from .services.calculator import ProductivityCalculator
from .services.timeline import TimelineSegmenter

__all__ = [
    'WorkSession',
    'Interruption',
    'DatabaseManager',
    'SessionStateMachine',
    'TrackingState',
    'TransitionOutcome',
    'ProductivityCalculator',
    'TimelineSegmenter',
]
