from pydantic import BaseModel, ConfigDict, Field
from datetime import date, datetime
from typing import Any, Dict, List, Optional
from uuid import UUID


class TimelineItemOut(BaseModel):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    item_id: UUID
    employee_id: UUID
    template_id: Optional[UUID] = None
    type: str
    title: Optional[str] = None
    content: Optional[str] = None
    message: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = Field(default=None, validation_alias="meta")
    created_at: Optional[datetime] = None


class EmployeeAutomationOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    employee_id: UUID
    name: str
    birthday: Optional[date] = None
    hire_date: Optional[date] = None
    birthday_notifications_enabled: bool
    anniversary_notifications_enabled: bool


class EmployeeTimelineOut(BaseModel):
    employee: EmployeeAutomationOut
    timeline_url: str
    timeline_items: List[TimelineItemOut]
