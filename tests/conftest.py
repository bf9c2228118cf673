import pytest
from datetime import datetime, timedelta
from productivity_tracker.services.database import DatabaseManager
from productivity_tracker.services.tracking import SessionStateMachine

class FakeClock:
    """Controllable replacement for datetime.now"""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, minutes: float = 0, seconds: float = 0) -> datetime:
        self.now += timedelta(minutes=minutes, seconds=seconds)
        return self.now

@pytest.fixture
def clock():
    """Clock starting at 09:00 on a fixed day"""
    return FakeClock(datetime(2025, 12, 10, 9, 0))

@pytest.fixture
def db():
    """Provide a test database instance"""
    db = DatabaseManager(":memory:")  # Use in-memory database for testing
    yield db
    db.close()

@pytest.fixture
def machine(db, clock):
    """State machine over the in-memory database"""
    return SessionStateMachine(db, clock=clock)
