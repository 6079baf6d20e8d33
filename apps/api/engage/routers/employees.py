from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from engage.core.config import settings
from engage.core.database import get_db
from engage.schemas.automation import AutomationSettingsUpdate
from engage.schemas.timeline import EmployeeAutomationOut, EmployeeTimelineOut, TimelineItemOut
from engage.services import timeline

router = APIRouter()


@router.put("/{employee_id}/automation", response_model=EmployeeAutomationOut)
def update_employee_automation(
    employee_id: UUID,
    payload: AutomationSettingsUpdate,
    db: Session = Depends(get_db),
):
    try:
        return timeline.update_automation_settings(
            db,
            employee_id,
            birthday_notifications_enabled=payload.birthday_notifications_enabled,
            anniversary_notifications_enabled=payload.anniversary_notifications_enabled,
        )
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.get("/by-token/{token}/timeline", response_model=EmployeeTimelineOut)
def get_employee_timeline(token: str, db: Session = Depends(get_db)):
    """Landing endpoint behind the employee's NFC tag / QR code."""
    try:
        emp = timeline.get_employee_by_token(db, token)
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))

    items = timeline.list_timeline_items(db, emp.employee_id)
    return EmployeeTimelineOut(
        employee=EmployeeAutomationOut.model_validate(emp),
        timeline_url=f"{settings.timeline_base_url}/timeline/{emp.nfc_token}",
        timeline_items=[TimelineItemOut.model_validate(i) for i in items],
    )
