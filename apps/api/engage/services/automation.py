"""Daily automation run: birthdays, work anniversaries and custom employee events.

For a run date the engine finds employees with a qualifying event, resolves the
company's templates for it and writes one timeline item per (employee, template).

Writes are idempotent: every item is paired with an AutomationMarker keyed on
(employee, template, trigger, run date), so calling the same run twice on one
day creates nothing the second time.

Nothing here raises to the caller. Failures end up as strings in
RunResult.errors; one bad employee never stops the rest of the run.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor, wait
from dataclasses import dataclass
from datetime import date, timedelta
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple
from uuid import UUID

from sqlalchemy import and_, extract, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from engage.core.config import settings
from engage.core.database import SessionLocal
from engage.models.employee import Employee
from engage.models.employee_event import EmployeeEvent
from engage.models.template import Template
from engage.schemas.automation import AllTriggersResult, RunResult
from engage.services.recurrence import (
    LeapDayPolicy,
    event_fires_on,
    matching_month_days,
    years_of_service,
)
from engage.services.timeline import add_marker, create_timeline_item, marker_exists

logger = logging.getLogger(__name__)


class TriggerKind(str, Enum):
    BIRTHDAY = "birthday"
    ANNIVERSARY = "anniversary"
    CUSTOM = "custom"


@dataclass(frozen=True)
class Candidate:
    """One qualifying occurrence, detached from the session that found it."""

    employee_id: UUID
    company_id: UUID
    employee_name: str
    trigger_key: str  # AutomationMarker.trigger_type
    hire_date: Optional[date] = None
    event_id: Optional[UUID] = None
    event_name: Optional[str] = None
    event_template_id: Optional[UUID] = None
    event_occurs_on: Optional[date] = None


Rendered = Tuple[str, str, Dict[str, Any]]


@dataclass(frozen=True)
class TriggerSpec:
    kind: TriggerKind
    find_candidates: Callable[[Session, date, LeapDayPolicy], List[Candidate]]
    resolve_templates: Callable[[Session, Candidate], List[Template]]
    render: Callable[[Candidate, Template, date], Rendered]
    missing_templates: Callable[[Candidate], str]


# ---------- selection ----------
def _month_day_filter(column, run_date: date, leap_day_policy: LeapDayPolicy):
    return or_(
        *[
            and_(extract("month", column) == m, extract("day", column) == d)
            for m, d in matching_month_days(run_date, leap_day_policy)
        ]
    )


def _birthday_candidates(db: Session, run_date: date, leap_day_policy: LeapDayPolicy) -> List[Candidate]:
    rows = db.execute(
        select(Employee.employee_id, Employee.company_id, Employee.name)
        .where(
            and_(
                Employee.is_active == True,  # noqa: E712
                Employee.birthday_notifications_enabled == True,  # noqa: E712
                Employee.birthday.is_not(None),
                _month_day_filter(Employee.birthday, run_date, leap_day_policy),
            )
        )
        .order_by(Employee.name, Employee.employee_id)
    ).all()

    return [
        Candidate(
            employee_id=r.employee_id,
            company_id=r.company_id,
            employee_name=r.name,
            trigger_key=TriggerKind.BIRTHDAY.value,
        )
        for r in rows
    ]


def _anniversary_candidates(db: Session, run_date: date, leap_day_policy: LeapDayPolicy) -> List[Candidate]:
    rows = db.execute(
        select(Employee.employee_id, Employee.company_id, Employee.name, Employee.hire_date)
        .where(
            and_(
                Employee.is_active == True,  # noqa: E712
                Employee.anniversary_notifications_enabled == True,  # noqa: E712
                Employee.hire_date.is_not(None),
                Employee.hire_date < run_date,
                _month_day_filter(Employee.hire_date, run_date, leap_day_policy),
            )
        )
        .order_by(Employee.name, Employee.employee_id)
    ).all()

    return [
        Candidate(
            employee_id=r.employee_id,
            company_id=r.company_id,
            employee_name=r.name,
            trigger_key=TriggerKind.ANNIVERSARY.value,
            hire_date=r.hire_date,
        )
        for r in rows
    ]


def _custom_event_candidates(db: Session, run_date: date, leap_day_policy: LeapDayPolicy) -> List[Candidate]:
    rows = db.execute(
        select(
            EmployeeEvent.event_id,
            EmployeeEvent.name.label("event_name"),
            EmployeeEvent.event_date,
            EmployeeEvent.is_recurring,
            EmployeeEvent.reminder_days_before,
            EmployeeEvent.template_id,
            Employee.employee_id,
            Employee.company_id,
            Employee.name,
        )
        .join(Employee, Employee.employee_id == EmployeeEvent.employee_id)
        .where(
            and_(
                EmployeeEvent.is_active == True,  # noqa: E712
                Employee.is_active == True,  # noqa: E712
            )
        )
        .order_by(Employee.name, EmployeeEvent.event_date)
    ).all()

    out: List[Candidate] = []
    for r in rows:
        lead = r.reminder_days_before or 0
        if not event_fires_on(r.event_date, r.is_recurring, lead, run_date, leap_day_policy):
            continue
        out.append(
            Candidate(
                employee_id=r.employee_id,
                company_id=r.company_id,
                employee_name=r.name,
                trigger_key=f"{TriggerKind.CUSTOM.value}:{r.event_id}",
                event_id=r.event_id,
                event_name=r.event_name,
                event_template_id=r.template_id,
                event_occurs_on=run_date + timedelta(days=lead),
            )
        )
    return out


# ---------- templates ----------
def templates_for_tag(db: Session, company_id: UUID, tag: str) -> List[Template]:
    rows = (
        db.execute(
            select(Template)
            .where(
                and_(
                    Template.company_id == company_id,
                    Template.is_active == True,  # noqa: E712
                )
            )
            .order_by(Template.created_at, Template.name)
        )
        .scalars()
        .all()
    )
    return [t for t in rows if t.has_tag(tag)]


def _bound_template(db: Session, c: Candidate) -> List[Template]:
    if c.event_template_id is None:
        return []
    t = db.get(Template, c.event_template_id)
    if not t or not t.is_active:
        return []
    return [t]


# ---------- content ----------
def _render_birthday(c: Candidate, t: Template, run_date: date) -> Rendered:
    return (
        f"🎉 Happy birthday, {c.employee_name}!",
        "Happy birthday! Today is your special day.",
        {
            "automationTrigger": TriggerKind.BIRTHDAY.value,
            "templateId": str(t.template_id),
            "date": run_date.isoformat(),
        },
    )


def _render_anniversary(c: Candidate, t: Template, run_date: date) -> Rendered:
    years = years_of_service(c.hire_date, run_date)
    unit = "year" if years == 1 else "years"
    return (
        f"🏆 {years} {unit} with us!",
        f"Congratulations {c.employee_name}! Today we celebrate your {years}-year anniversary with the company.",
        {
            "automationTrigger": TriggerKind.ANNIVERSARY.value,
            "templateId": str(t.template_id),
            "yearsOfService": years,
            "date": run_date.isoformat(),
        },
    )


def _render_custom(c: Candidate, t: Template, run_date: date) -> Rendered:
    if c.event_occurs_on == run_date:
        content = f"Congratulations {c.employee_name}! Today we celebrate: {c.event_name}."
    else:
        content = f"Coming up on {c.event_occurs_on.isoformat()} for {c.employee_name}: {c.event_name}."
    return (
        c.event_name,
        content,
        {
            "automationTrigger": TriggerKind.CUSTOM.value,
            "eventId": str(c.event_id),
            "templateId": str(t.template_id),
            "eventDate": c.event_occurs_on.isoformat(),
            "date": run_date.isoformat(),
        },
    )


TRIGGERS: Dict[TriggerKind, TriggerSpec] = {
    TriggerKind.BIRTHDAY: TriggerSpec(
        kind=TriggerKind.BIRTHDAY,
        find_candidates=_birthday_candidates,
        resolve_templates=lambda db, c: templates_for_tag(db, c.company_id, "birthday"),
        render=_render_birthday,
        missing_templates=lambda c: f"No birthday templates found for company {c.company_id}",
    ),
    TriggerKind.ANNIVERSARY: TriggerSpec(
        kind=TriggerKind.ANNIVERSARY,
        find_candidates=_anniversary_candidates,
        resolve_templates=lambda db, c: templates_for_tag(db, c.company_id, "anniversary"),
        render=_render_anniversary,
        missing_templates=lambda c: f"No anniversary templates found for company {c.company_id}",
    ),
    TriggerKind.CUSTOM: TriggerSpec(
        kind=TriggerKind.CUSTOM,
        find_candidates=_custom_event_candidates,
        resolve_templates=_bound_template,
        render=_render_custom,
        missing_templates=lambda c: f"No active template bound to event {c.event_id}",
    ),
}


# ---------- core ----------
MARKER_CONSTRAINT = "uq_automation_marker_occurrence"


def _is_duplicate_marker(exc: IntegrityError) -> bool:
    """True when the marker's idempotency key was already taken."""
    msg = str(exc.orig)
    # Postgres names the constraint; SQLite lists the marker columns
    return MARKER_CONSTRAINT in msg or "UNIQUE constraint failed: automation_markers." in msg


@dataclass
class Progress:
    created: int = 0


def _materialize(db: Session, spec: TriggerSpec, c: Candidate, run_date: date, result: RunResult, progress: Progress) -> None:
    """Create the candidate's items, one per template.

    `progress.created` counts committed items even if a later template raises.
    """
    templates = spec.resolve_templates(db, c)
    if not templates:
        msg = spec.missing_templates(c)
        result.errors.append(msg)
        logger.warning(msg, extra={"trigger": spec.kind.value, "employee_id": str(c.employee_id)})
        return

    template_ids = [t.template_id for t in templates]
    for template, template_id in zip(templates, template_ids):
        if marker_exists(db, c.employee_id, template_id, c.trigger_key, run_date):
            result.skipped += 1
            logger.debug(
                "timeline item already created",
                extra={"trigger": c.trigger_key, "employee_id": str(c.employee_id), "template_id": str(template_id)},
            )
            continue

        title, content, metadata = spec.render(c, template, run_date)
        try:
            item = create_timeline_item(
                db,
                employee_id=c.employee_id,
                template_id=template_id,
                title=title,
                content=content,
                type=spec.kind.value,
                metadata=metadata,
            )
            add_marker(db, c.employee_id, template_id, c.trigger_key, run_date, item.item_id)
            db.commit()
        except IntegrityError as e:
            db.rollback()
            if not _is_duplicate_marker(e):
                raise
            # A concurrent run claimed the same idempotency key first.
            result.skipped += 1
            logger.debug(
                "timeline item created by a concurrent run",
                extra={"trigger": c.trigger_key, "employee_id": str(c.employee_id), "error": str(e.orig)},
            )
            continue
        progress.created += 1


def run_trigger(
    kind: TriggerKind,
    run_date: Optional[date] = None,
    session_factory: sessionmaker = SessionLocal,
    leap_day_policy: Optional[LeapDayPolicy] = None,
) -> RunResult:
    spec = TRIGGERS[kind]
    run_date = run_date or date.today()
    leap_day_policy = leap_day_policy or settings.leap_day_policy
    result = RunResult()

    db = session_factory()
    try:
        try:
            candidates = spec.find_candidates(db, run_date, leap_day_policy)
        except Exception as e:
            db.rollback()
            result.errors.append(f"Error processing {kind.value} triggers: {e}")
            logger.exception("automation candidate query failed", extra={"trigger": kind.value})
            return result

        for c in candidates:
            progress = Progress()
            try:
                _materialize(db, spec, c, run_date, result, progress)
            except Exception as e:
                db.rollback()
                result.errors.append(f"Error processing {kind.value} for employee {c.employee_id}: {e}")
                logger.warning(
                    "automation failed for employee",
                    exc_info=True,
                    extra={"trigger": kind.value, "employee_id": str(c.employee_id)},
                )
            # an employee counts once any of their items was committed
            if progress.created:
                result.processed += 1
    finally:
        db.close()

    logger.info(
        "automation triggers processed",
        extra={
            "trigger": kind.value,
            "run_date": run_date.isoformat(),
            "processed": result.processed,
            "skipped": result.skipped,
            "error_count": len(result.errors),
        },
    )
    return result


def process_birthday_triggers(
    run_date: Optional[date] = None,
    session_factory: sessionmaker = SessionLocal,
    leap_day_policy: Optional[LeapDayPolicy] = None,
) -> RunResult:
    return run_trigger(TriggerKind.BIRTHDAY, run_date, session_factory, leap_day_policy)


def process_anniversary_triggers(
    run_date: Optional[date] = None,
    session_factory: sessionmaker = SessionLocal,
    leap_day_policy: Optional[LeapDayPolicy] = None,
) -> RunResult:
    return run_trigger(TriggerKind.ANNIVERSARY, run_date, session_factory, leap_day_policy)


def process_custom_event_triggers(
    run_date: Optional[date] = None,
    session_factory: sessionmaker = SessionLocal,
    leap_day_policy: Optional[LeapDayPolicy] = None,
) -> RunResult:
    return run_trigger(TriggerKind.CUSTOM, run_date, session_factory, leap_day_policy)


def process_all_triggers(
    run_date: Optional[date] = None,
    session_factory: sessionmaker = SessionLocal,
    timeout: Optional[float] = None,
    leap_day_policy: Optional[LeapDayPolicy] = None,
) -> AllTriggersResult:
    """Run every trigger kind concurrently, each in its own session.

    A branch still running when `timeout` expires is reported as timed out;
    its worker thread is left to finish on its own and any item it commits
    afterwards stays protected by the idempotency markers. The interpreter
    still joins that thread at exit, so a process that must stop on time
    (see run_automation.py) has to leave with os._exit.
    """
    run_date = run_date or date.today()
    timeout = settings.automation_timeout_seconds if timeout is None else timeout

    logger.info("processing automation triggers", extra={"run_date": run_date.isoformat()})

    pool = ThreadPoolExecutor(max_workers=len(TRIGGERS), thread_name_prefix="automation")
    try:
        futures = {
            kind: pool.submit(run_trigger, kind, run_date, session_factory, leap_day_policy)
            for kind in TRIGGERS
        }
        done, _ = wait(futures.values(), timeout=timeout)

        results: Dict[TriggerKind, RunResult] = {}
        for kind, fut in futures.items():
            if fut not in done:
                msg = f"{kind.value} triggers timed out after {timeout:g}s"
                logger.error(msg, extra={"trigger": kind.value})
                results[kind] = RunResult(errors=[msg])
                continue
            exc = fut.exception()
            if exc is not None:
                logger.error("automation branch crashed", exc_info=exc, extra={"trigger": kind.value})
                results[kind] = RunResult(errors=[f"Error processing {kind.value} triggers: {exc}"])
                continue
            results[kind] = fut.result()
    finally:
        pool.shutdown(wait=False, cancel_futures=True)

    return AllTriggersResult(
        birthdays=results[TriggerKind.BIRTHDAY],
        anniversaries=results[TriggerKind.ANNIVERSARY],
        custom_events=results[TriggerKind.CUSTOM],
    )
