from datetime import date, datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator


class EmployeeEventCreate(BaseModel):
    employee_id: UUID
    name: str
    event_date: date
    description: Optional[str] = None
    is_recurring: bool = True
    reminder_days_before: int = Field(default=0, ge=0)
    template_id: Optional[UUID] = None
    company_id: Optional[UUID] = None  # defaults to the employee's company

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("name is required")
        return v


class EmployeeEventUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    event_date: Optional[date] = None
    is_recurring: Optional[bool] = None
    reminder_days_before: Optional[int] = Field(default=None, ge=0)
    template_id: Optional[UUID] = None


class EmployeeEventOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    event_id: UUID
    employee_id: UUID
    company_id: Optional[UUID] = None
    name: str
    description: Optional[str] = None
    event_date: date
    is_recurring: bool
    reminder_days_before: int
    template_id: Optional[UUID] = None
    is_active: bool
    created_at: Optional[datetime] = None


class UpcomingEventOut(EmployeeEventOut):
    # the day the event falls on inside the lookahead window
    occurs_on: date
