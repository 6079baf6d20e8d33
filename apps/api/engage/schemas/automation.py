from pydantic import BaseModel, Field
from typing import List, Optional


class RunResult(BaseModel):
    processed: int = 0
    errors: List[str] = Field(default_factory=list)
    # Items not created because this run (or an earlier one today) already did
    skipped: int = 0


class AllTriggersResult(BaseModel):
    birthdays: RunResult
    anniversaries: RunResult
    custom_events: RunResult


class AutomationSettingsUpdate(BaseModel):
    birthday_notifications_enabled: Optional[bool] = None
    anniversary_notifications_enabled: Optional[bool] = None
