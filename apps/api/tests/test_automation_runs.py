import dataclasses
import time
from datetime import date

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError

from engage.models.automation_marker import AutomationMarker
from engage.models.timeline_item import TimelineItem
from engage.schemas.automation import RunResult
from engage.services import automation
from engage.services.timeline import list_automation_items


def _count(db, model):
    return db.execute(select(func.count()).select_from(model)).scalar()


def _seed(factory):
    acme = factory.company()
    factory.template(acme, name="Cake", tags=["birthday"])
    factory.template(acme, name="Confetti", tags=["birthday"])
    factory.template(acme, name="Work anniversary", tags=["anniversary"])
    bday = factory.employee(acme, name="Bea", birthday=date(1990, 3, 15))
    anniv = factory.employee(acme, name="Ann", hire_date=date(2020, 3, 15))
    return acme, bday, anniv


def test_process_all_runs_every_trigger(db, factory, session_factory):
    _seed(factory)

    results = automation.process_all_triggers(run_date=date(2024, 3, 15), session_factory=session_factory)

    assert results.birthdays.processed == 1
    assert results.anniversaries.processed == 1
    assert results.custom_events.processed == 0
    assert results.birthdays.errors == []
    assert results.anniversaries.errors == []
    assert _count(db, TimelineItem) == 3


def test_rerunning_the_same_day_creates_nothing(db, factory, session_factory):
    _seed(factory)
    run_date = date(2024, 3, 15)

    automation.process_all_triggers(run_date=run_date, session_factory=session_factory)
    second = automation.process_all_triggers(run_date=run_date, session_factory=session_factory)

    assert second.birthdays.processed == 0
    assert second.birthdays.skipped == 2
    assert second.anniversaries.processed == 0
    assert second.anniversaries.skipped == 1
    assert _count(db, TimelineItem) == 3
    assert _count(db, AutomationMarker) == 3


def test_next_year_produces_new_items(db, factory, session_factory):
    _seed(factory)

    automation.process_all_triggers(run_date=date(2024, 3, 15), session_factory=session_factory)
    results = automation.process_all_triggers(run_date=date(2025, 3, 15), session_factory=session_factory)

    assert results.birthdays.processed == 1
    assert results.anniversaries.processed == 1
    assert _count(db, TimelineItem) == 6

    anniversaries = list_automation_items(db, "anniversary")
    assert sorted(i.meta["yearsOfService"] for i in anniversaries) == [4, 5]


def test_generated_items_are_queryable_by_metadata(db, factory, session_factory):
    _, bday, _ = _seed(factory)

    automation.process_all_triggers(run_date=date(2024, 3, 15), session_factory=session_factory)

    items = list_automation_items(db, "birthday", on_date=date(2024, 3, 15), employee_id=bday.employee_id)
    assert len(items) == 2
    assert list_automation_items(db, "birthday", on_date=date(2024, 3, 16)) == []


def test_custom_event_fires_on_its_date_and_on_reminder_day(db, factory, session_factory):
    acme = factory.company()
    tpl = factory.template(acme, name="Milestone", tags=["custom"])
    emp = factory.employee(acme, name="Kai")
    on_day = factory.event(emp, "Promotion to manager", date(2022, 5, 10), template=tpl)
    reminder = factory.event(emp, "5 years of service", date(2019, 5, 13), template=tpl, reminder_days_before=3)
    factory.event(emp, "Old news", date(2022, 5, 10), template=tpl, is_active=False)
    factory.event(emp, "Go-live", date(2023, 5, 10), template=tpl, is_recurring=False)

    result = automation.process_custom_event_triggers(run_date=date(2024, 5, 10), session_factory=session_factory)

    assert result.errors == []
    assert result.processed == 2

    items = list_automation_items(db, "custom", employee_id=emp.employee_id)
    by_event = {i.meta["eventId"]: i for i in items}
    assert set(by_event) == {str(on_day.event_id), str(reminder.event_id)}
    assert by_event[str(on_day.event_id)].title == "Promotion to manager"
    assert by_event[str(reminder.event_id)].meta["eventDate"] == "2024-05-13"
    assert all(i.type == "custom" for i in items)


def test_custom_event_without_template_is_reported(factory, session_factory):
    acme = factory.company()
    emp = factory.employee(acme)
    ev = factory.event(emp, "Promotion", date(2022, 5, 10))

    result = automation.process_custom_event_triggers(run_date=date(2024, 5, 10), session_factory=session_factory)

    assert result.processed == 0
    assert result.errors == [f"No active template bound to event {ev.event_id}"]


def test_two_events_sharing_a_template_both_fire(db, factory, session_factory):
    acme = factory.company()
    tpl = factory.template(acme, name="Milestone", tags=["custom"])
    emp = factory.employee(acme)
    factory.event(emp, "Promotion", date(2022, 5, 10), template=tpl)
    factory.event(emp, "Team lead", date(2023, 5, 10), template=tpl)

    first = automation.process_custom_event_triggers(run_date=date(2024, 5, 10), session_factory=session_factory)
    again = automation.process_custom_event_triggers(run_date=date(2024, 5, 10), session_factory=session_factory)

    assert first.processed == 2
    assert again.processed == 0
    assert again.skipped == 2
    assert _count(db, TimelineItem) == 2


def test_query_failure_is_contained_to_its_branch(factory, session_factory, monkeypatch):
    _seed(factory)

    def unreachable(db, run_date, leap_day_policy):
        raise RuntimeError("employee directory unreachable")

    spec = automation.TRIGGERS[automation.TriggerKind.BIRTHDAY]
    monkeypatch.setitem(
        automation.TRIGGERS,
        automation.TriggerKind.BIRTHDAY,
        dataclasses.replace(spec, find_candidates=unreachable),
    )

    results = automation.process_all_triggers(run_date=date(2024, 3, 15), session_factory=session_factory)

    assert results.birthdays.processed == 0
    assert results.birthdays.errors == ["Error processing birthday triggers: employee directory unreachable"]
    assert results.anniversaries.processed == 1
    assert results.anniversaries.errors == []


def test_slow_branch_times_out_without_raising(session_factory, monkeypatch):
    real_run_trigger = automation.run_trigger

    def slow_birthdays(kind, *args, **kwargs):
        if kind is automation.TriggerKind.BIRTHDAY:
            time.sleep(1.5)
            return RunResult()
        return real_run_trigger(kind, *args, **kwargs)

    monkeypatch.setattr(automation, "run_trigger", slow_birthdays)

    results = automation.process_all_triggers(
        run_date=date(2024, 3, 15),
        session_factory=session_factory,
        timeout=0.5,
    )

    assert results.birthdays.processed == 0
    assert results.birthdays.errors == ["birthday triggers timed out after 0.5s"]
    assert results.anniversaries.errors == []
    assert results.custom_events.errors == []


def test_marker_race_is_a_skip_not_an_error(db, factory, session_factory, monkeypatch):
    acme = factory.company()
    factory.template(acme, name="Cake", tags=["birthday"])
    factory.employee(acme, birthday=date(1990, 3, 15))
    run_date = date(2024, 3, 15)

    # both runs miss the pre-check, as two overlapping runs would
    monkeypatch.setattr(automation, "marker_exists", lambda *args, **kwargs: False)

    first = automation.process_birthday_triggers(run_date=run_date, session_factory=session_factory)
    second = automation.process_birthday_triggers(run_date=run_date, session_factory=session_factory)

    assert first.processed == 1
    assert second.processed == 0
    assert second.skipped == 1
    assert second.errors == []
    assert _count(db, TimelineItem) == 1
    assert _count(db, AutomationMarker) == 1


def test_other_integrity_errors_are_reported(db, factory, session_factory, monkeypatch):
    acme = factory.company()
    factory.template(acme, name="Cake", tags=["birthday"])
    emp = factory.employee(acme, birthday=date(1990, 3, 15))

    def broken_marker(*args, **kwargs):
        raise IntegrityError(
            "INSERT INTO automation_markers",
            {},
            Exception("NOT NULL constraint failed: automation_markers.trigger_type"),
        )

    monkeypatch.setattr(automation, "add_marker", broken_marker)

    result = automation.process_birthday_triggers(run_date=date(2024, 3, 15), session_factory=session_factory)

    assert result.processed == 0
    assert result.skipped == 0
    assert len(result.errors) == 1
    assert "NOT NULL constraint failed" in result.errors[0]
    assert str(emp.employee_id) in result.errors[0]
    assert _count(db, TimelineItem) == 0
