from datetime import date
from pydantic import BaseModel, ConfigDict, Field, computed_field


class ProductivityMetrics(BaseModel):
    """Summary of productivity over a set of work sessions"""
    model_config = ConfigDict(frozen=True)

    focused_minutes: float = Field(default=0.0, ge=0.0, description="Total session span in minutes")
    interruption_count: int = Field(default=0, ge=0, description="Number of logged interruptions")
    interruption_duration_minutes: float = Field(
        default=0.0,
        ge=0.0,
        description="Total time spent interrupted in minutes"
    )
    penalty_minutes: float = Field(default=0.0, ge=0.0, description="Recovery penalty in minutes")
    productivity_score: float = Field(
        default=0.0,
        ge=0.0,
        le=1.0,
        description="focused / (focused + penalty)"
    )
    session_count: int = Field(default=0, ge=0)

    @computed_field
    @property
    def productivity_percentage(self) -> float:
        return self.productivity_score * 100.0

    @computed_field
    @property
    def grade(self) -> str:
        percentage = self.productivity_percentage
        if percentage >= 90:
            return "A+"
        if percentage >= 80:
            return "A"
        if percentage >= 70:
            return "B"
        if percentage >= 60:
            return "C"
        if percentage >= 50:
            return "D"
        return "F"

    @computed_field
    @property
    def focused_time_formatted(self) -> str:
        hours = int(self.focused_minutes) // 60
        minutes = int(self.focused_minutes) % 60
        if hours > 0:
            return f"{hours}h {minutes}m"
        return f"{minutes}m"


class DayProductivity(BaseModel):
    """One bar of the weekly productivity chart"""
    date: date
    day: str = Field(description="Short weekday name, e.g. Mon")
    productivity: float = Field(ge=0.0, le=100.0, description="Productivity percentage")
