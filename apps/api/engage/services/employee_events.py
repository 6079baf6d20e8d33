from __future__ import annotations

from datetime import date
from typing import List, Literal, Optional, Tuple
from uuid import UUID

from sqlalchemy import and_, extract, select
from sqlalchemy.orm import Session

from engage.core.config import settings
from engage.models.employee import Employee
from engage.models.employee_event import EmployeeEvent
from engage.models.template import Template
from engage.schemas.employee_events import EmployeeEventCreate, EmployeeEventUpdate
from engage.services.recurrence import LeapDayPolicy, occurrence_in_year, upcoming_date

WindowMode = Literal["rolling", "same_month"]


def _require_template(db: Session, template_id: UUID, company_id: Optional[UUID]) -> Template:
    t = db.get(Template, template_id)
    if not t:
        raise LookupError("Template not found")
    if company_id is not None and t.company_id != company_id:
        raise ValueError("Template belongs to a different company")
    return t


def create_event(db: Session, payload: EmployeeEventCreate) -> EmployeeEvent:
    emp = db.get(Employee, payload.employee_id)
    if not emp:
        raise LookupError("Employee not found")

    company_id = payload.company_id or emp.company_id
    if company_id != emp.company_id:
        raise ValueError("Employee belongs to a different company")

    if payload.template_id is not None:
        _require_template(db, payload.template_id, company_id)

    ev = EmployeeEvent(
        employee_id=payload.employee_id,
        company_id=company_id,
        name=payload.name,
        description=payload.description,
        event_date=payload.event_date,
        is_recurring=payload.is_recurring,
        reminder_days_before=payload.reminder_days_before,
        template_id=payload.template_id,
        is_active=True,
    )
    db.add(ev)
    db.commit()
    db.refresh(ev)
    return ev


def get_event(db: Session, event_id: UUID) -> EmployeeEvent:
    """Direct lookup; soft-deleted events are returned too (audit trail)."""
    ev = db.get(EmployeeEvent, event_id)
    if not ev:
        raise LookupError("Employee event not found")
    return ev


def list_events_by_employee(db: Session, employee_id: UUID) -> List[EmployeeEvent]:
    return (
        db.execute(
            select(EmployeeEvent)
            .where(
                and_(
                    EmployeeEvent.employee_id == employee_id,
                    EmployeeEvent.is_active == True,  # noqa: E712
                )
            )
            .order_by(EmployeeEvent.event_date.desc())
        )
        .scalars()
        .all()
    )


def list_events_by_company(db: Session, company_id: UUID) -> List[EmployeeEvent]:
    return (
        db.execute(
            select(EmployeeEvent)
            .where(
                and_(
                    EmployeeEvent.company_id == company_id,
                    EmployeeEvent.is_active == True,  # noqa: E712
                )
            )
            .order_by(EmployeeEvent.event_date.desc())
        )
        .scalars()
        .all()
    )


def update_event(db: Session, event_id: UUID, payload: EmployeeEventUpdate) -> EmployeeEvent:
    ev = get_event(db, event_id)

    updates = payload.model_dump(exclude_unset=True)
    if "name" in updates:
        name = (updates["name"] or "").strip()
        if not name:
            raise ValueError("name is required")
        updates["name"] = name
    if "event_date" in updates and updates["event_date"] is None:
        raise ValueError("event_date is required")
    if updates.get("template_id") is not None:
        _require_template(db, updates["template_id"], ev.company_id)

    for field, value in updates.items():
        setattr(ev, field, value)

    db.commit()
    db.refresh(ev)
    return ev


def delete_event(db: Session, event_id: UUID) -> EmployeeEvent:
    ev = get_event(db, event_id)
    ev.is_active = False
    db.commit()
    db.refresh(ev)
    return ev


def get_upcoming_events(
    db: Session,
    company_id: UUID,
    days_ahead: int = 30,
    today: Optional[date] = None,
    mode: Optional[WindowMode] = None,
    leap_day_policy: Optional[LeapDayPolicy] = None,
) -> List[Tuple[EmployeeEvent, date]]:
    """Active company events that fall within the lookahead window.

    Returns (event, date it falls on) pairs, soonest first.

    mode="rolling" looks `days_ahead` days forward across month and year
    boundaries. mode="same_month" keeps the legacy rule: same month as today
    and day-of-month >= today's, regardless of `days_ahead`.
    """
    if days_ahead < 0:
        raise ValueError("days_ahead must be >= 0")

    today = today or date.today()
    mode = mode or settings.upcoming_window_mode
    leap_day_policy = leap_day_policy or settings.leap_day_policy

    base = and_(
        EmployeeEvent.company_id == company_id,
        EmployeeEvent.is_active == True,  # noqa: E712
    )

    if mode == "same_month":
        rows = (
            db.execute(
                select(EmployeeEvent)
                .where(
                    and_(
                        base,
                        extract("month", EmployeeEvent.event_date) == today.month,
                        extract("day", EmployeeEvent.event_date) >= today.day,
                    )
                )
                .order_by(EmployeeEvent.event_date)
            )
            .scalars()
            .all()
        )
        return [
            (ev, occurrence_in_year(ev.event_date, today.year, leap_day_policy) if ev.is_recurring else ev.event_date)
            for ev in rows
        ]

    rows = db.execute(select(EmployeeEvent).where(base)).scalars().all()

    out: List[Tuple[EmployeeEvent, date]] = []
    for ev in rows:
        when = upcoming_date(ev.event_date, ev.is_recurring, today, days_ahead, leap_day_policy)
        if when is not None:
            out.append((ev, when))

    out.sort(key=lambda pair: (pair[1], pair[0].name))
    return out
