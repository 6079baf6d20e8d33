from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy import and_, select
from sqlalchemy.orm import Session

from engage.models.automation_marker import AutomationMarker
from engage.models.employee import Employee
from engage.models.timeline_item import TimelineItem


# ---------- timeline items ----------
def create_timeline_item(
    db: Session,
    employee_id: UUID,
    title: Optional[str],
    content: Optional[str],
    type: str,
    template_id: Optional[UUID] = None,
    metadata: Optional[Dict[str, Any]] = None,
    message: Optional[str] = None,
) -> TimelineItem:
    """Stage a timeline item in `db`. The caller owns the commit."""
    item = TimelineItem(
        employee_id=employee_id,
        template_id=template_id,
        type=type,
        title=title,
        content=content,
        message=message,
        is_visible=True,
        meta=metadata,
    )
    db.add(item)
    db.flush()
    return item


def list_timeline_items(db: Session, employee_id: UUID) -> List[TimelineItem]:
    return (
        db.execute(
            select(TimelineItem)
            .where(
                and_(
                    TimelineItem.employee_id == employee_id,
                    TimelineItem.is_visible == True,  # noqa: E712
                )
            )
            .order_by(TimelineItem.created_at.desc())
        )
        .scalars()
        .all()
    )


def list_automation_items(
    db: Session,
    trigger: str,
    on_date: Optional[date] = None,
    employee_id: Optional[UUID] = None,
) -> List[TimelineItem]:
    """Items produced by the automation engine, filtered on their metadata."""
    conditions = [TimelineItem.meta["automationTrigger"].as_string() == trigger]
    if on_date is not None:
        conditions.append(TimelineItem.meta["date"].as_string() == on_date.isoformat())
    if employee_id is not None:
        conditions.append(TimelineItem.employee_id == employee_id)

    return (
        db.execute(select(TimelineItem).where(and_(*conditions)).order_by(TimelineItem.created_at))
        .scalars()
        .all()
    )


# ---------- idempotency markers ----------
def marker_exists(
    db: Session,
    employee_id: UUID,
    template_id: UUID,
    trigger_type: str,
    occurrence_date: date,
) -> bool:
    row = db.execute(
        select(AutomationMarker.marker_id).where(
            and_(
                AutomationMarker.employee_id == employee_id,
                AutomationMarker.template_id == template_id,
                AutomationMarker.trigger_type == trigger_type,
                AutomationMarker.occurrence_date == occurrence_date,
            )
        )
    ).first()
    return row is not None


def add_marker(
    db: Session,
    employee_id: UUID,
    template_id: UUID,
    trigger_type: str,
    occurrence_date: date,
    timeline_item_id: UUID,
) -> AutomationMarker:
    marker = AutomationMarker(
        employee_id=employee_id,
        template_id=template_id,
        trigger_type=trigger_type,
        occurrence_date=occurrence_date,
        timeline_item_id=timeline_item_id,
    )
    db.add(marker)
    db.flush()
    return marker


# ---------- employees ----------
def get_employee_by_token(db: Session, token: str) -> Employee:
    """Resolve an NFC/QR token and stamp the employee's last visit."""
    emp = db.execute(select(Employee).where(Employee.nfc_token == token)).scalars().first()
    if not emp or not emp.is_active:
        raise LookupError("Employee not found")

    emp.last_active = datetime.now(timezone.utc)
    db.commit()
    db.refresh(emp)
    return emp


def update_automation_settings(
    db: Session,
    employee_id: UUID,
    birthday_notifications_enabled: Optional[bool] = None,
    anniversary_notifications_enabled: Optional[bool] = None,
) -> Employee:
    emp = db.get(Employee, employee_id)
    if not emp:
        raise LookupError("Employee not found")

    if birthday_notifications_enabled is not None:
        emp.birthday_notifications_enabled = birthday_notifications_enabled
    if anniversary_notifications_enabled is not None:
        emp.anniversary_notifications_enabled = anniversary_notifications_enabled

    db.commit()
    db.refresh(emp)
    return emp
