import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional


def new_id() -> str:
    return str(uuid.uuid4())


def format_duration(seconds: float) -> str:
    """Format a duration as "2h 30m", or "45m" when under an hour"""
    minutes = int(seconds / 60)
    hours = minutes // 60
    remaining_minutes = minutes % 60
    if hours > 0:
        return f"{hours}h {remaining_minutes}m"
    return f"{minutes}m"


@dataclass
class Interruption:
    start_time: datetime
    end_time: Optional[datetime] = None  # None while the interruption is ongoing
    reason: Optional[str] = None
    id: str = field(default_factory=new_id)

    @property
    def is_active(self) -> bool:
        return self.end_time is None

    def duration(self, now: Optional[datetime] = None) -> float:
        """Duration in seconds, measured up to `now` while still ongoing"""
        end = self.end_time or now or datetime.now()
        return (end - self.start_time).total_seconds()

    def duration_formatted(self, now: Optional[datetime] = None) -> str:
        return format_duration(self.duration(now))


@dataclass
class WorkSession:
    start_time: datetime
    end_time: Optional[datetime] = None  # None while the session is active
    interruptions: List[Interruption] = field(default_factory=list)
    interruption_reason: Optional[str] = None  # Why the session was stopped, if given
    id: str = field(default_factory=new_id)

    @property
    def is_active(self) -> bool:
        return self.end_time is None

    @property
    def was_interrupted(self) -> bool:
        return bool(self.interruptions) or self.interruption_reason is not None

    @property
    def interruption_count(self) -> int:
        return len(self.interruptions)

    @property
    def active_interruption(self) -> Optional[Interruption]:
        """The most recently started interruption that has not ended"""
        active = [i for i in self.interruptions if i.is_active]
        if not active:
            return None
        return max(active, key=lambda i: i.start_time)

    def duration(self, now: Optional[datetime] = None) -> float:
        """Wall-clock span in seconds, measured up to `now` while active"""
        end = self.end_time or now or datetime.now()
        return (end - self.start_time).total_seconds()

    def duration_formatted(self, now: Optional[datetime] = None) -> str:
        return format_duration(self.duration(now))

    def interruption_duration(self, now: Optional[datetime] = None) -> float:
        return sum(i.duration(now) for i in self.interruptions)

    def sorted_interruptions(self) -> List[Interruption]:
        return sorted(self.interruptions, key=lambda i: i.start_time)

    def add_interruption(self, interruption: Interruption):
        """Append an interruption, keeping the list ordered by start time"""
        self.interruptions.append(interruption)
        self.interruptions.sort(key=lambda i: i.start_time)

    def validate(self) -> List[str]:
        """Return a list of invariant violations (empty when consistent)"""
        problems = []
        active = [i for i in self.interruptions if i.is_active]
        if len(active) > 1:
            problems.append(f"{len(active)} interruptions are active at once")
        for interruption in self.interruptions:
            if interruption.start_time < self.start_time:
                problems.append(f"interruption {interruption.id} starts before the session")
            if interruption.end_time and interruption.end_time < interruption.start_time:
                problems.append(f"interruption {interruption.id} ends before it starts")
            if self.end_time and interruption.end_time and interruption.end_time > self.end_time:
                problems.append(f"interruption {interruption.id} ends after the session")
        if self.end_time and self.end_time < self.start_time:
            problems.append("session ends before it starts")
        return problems
