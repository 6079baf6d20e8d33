from datetime import date
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from engage.core.database import get_db
from engage.schemas.employee_events import (
    EmployeeEventCreate,
    EmployeeEventOut,
    EmployeeEventUpdate,
    UpcomingEventOut,
)
from engage.services import employee_events as events

router = APIRouter()


def _http_error(e: Exception) -> HTTPException:
    if isinstance(e, LookupError):
        return HTTPException(status_code=404, detail=str(e))
    return HTTPException(status_code=400, detail=str(e))


@router.post("", response_model=EmployeeEventOut)
def create_employee_event(payload: EmployeeEventCreate, db: Session = Depends(get_db)):
    try:
        return events.create_event(db, payload)
    except (LookupError, ValueError) as e:
        raise _http_error(e)


@router.get("/employee/{employee_id}", response_model=list[EmployeeEventOut])
def list_employee_events(employee_id: UUID, db: Session = Depends(get_db)):
    return events.list_events_by_employee(db, employee_id)


@router.get("/company/{company_id}", response_model=list[EmployeeEventOut])
def list_company_events(company_id: UUID, db: Session = Depends(get_db)):
    return events.list_events_by_company(db, company_id)


@router.get("/upcoming", response_model=list[UpcomingEventOut])
def list_upcoming_events(
    company_id: UUID = Query(...),
    days: int = Query(default=30, ge=0),
    today: Optional[date] = Query(default=None, description="defaults to the server's date"),
    db: Session = Depends(get_db),
):
    pairs = events.get_upcoming_events(db, company_id, days_ahead=days, today=today)
    return [
        UpcomingEventOut(**EmployeeEventOut.model_validate(ev).model_dump(), occurs_on=when)
        for ev, when in pairs
    ]


@router.get("/{event_id}", response_model=EmployeeEventOut)
def get_employee_event(event_id: UUID, db: Session = Depends(get_db)):
    try:
        return events.get_event(db, event_id)
    except LookupError as e:
        raise _http_error(e)


@router.put("/{event_id}", response_model=EmployeeEventOut)
def update_employee_event(event_id: UUID, payload: EmployeeEventUpdate, db: Session = Depends(get_db)):
    try:
        return events.update_event(db, event_id, payload)
    except (LookupError, ValueError) as e:
        raise _http_error(e)


@router.delete("/{event_id}")
def delete_employee_event(event_id: UUID, db: Session = Depends(get_db)):
    try:
        events.delete_event(db, event_id)
    except LookupError as e:
        raise _http_error(e)
    return {"message": "Employee event deleted"}
