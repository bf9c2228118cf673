from datetime import datetime
from enum import Enum
from pydantic import BaseModel, ConfigDict, Field, computed_field


class SegmentType(str, Enum):
    """Classification of a span of session time"""
    FOCUS = "focus"
    INTERRUPTION = "interruption"
    PENALTY = "penalty"


class TimelineSegment(BaseModel):
    """A half-open span [start_time, end_time) of one session"""
    model_config = ConfigDict(frozen=True)

    type: SegmentType = Field(description="What the time was spent on")
    start_time: datetime = Field(description="Inclusive start of the segment")
    end_time: datetime = Field(description="Exclusive end of the segment")

    @computed_field
    @property
    def duration_seconds(self) -> float:
        return (self.end_time - self.start_time).total_seconds()

    @property
    def duration_string(self) -> str:
        return f"{int(self.duration_seconds / 60)}m"
