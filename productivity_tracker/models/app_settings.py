from datetime import datetime
from pydantic import BaseModel, Field

from productivity_tracker.config.settings import settings


class AppSettings(BaseModel):
    """User preferences persisted alongside the session data"""
    penalty_per_interruption_minutes: int = Field(
        default=settings.DEFAULT_PENALTY_MINUTES,
        ge=0,
        le=240,
        description="Recovery penalty charged for each interruption"
    )
    enable_notifications: bool = Field(
        default=True,
        description="Deliver a notification on every state change"
    )
    show_time_in_menu_bar: bool = Field(
        default=True,
        description="Show the running session time in the status line"
    )
    last_modified: datetime = Field(default_factory=datetime.now)
