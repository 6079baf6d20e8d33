from datetime import date

from sqlalchemy import select

from engage.models.timeline_item import TimelineItem
from engage.services import automation


def _items(db, employee_id):
    return db.execute(select(TimelineItem).where(TimelineItem.employee_id == employee_id)).scalars().all()


def test_birthday_creates_one_item_per_template(db, factory, session_factory):
    acme = factory.company()
    emp = factory.employee(acme, name="Jamie", birthday=date(1990, 3, 15))
    tpl = factory.template(acme, name="Happy Birthday", tags=["birthday"])

    result = automation.process_birthday_triggers(run_date=date(2024, 3, 15), session_factory=session_factory)

    assert result.processed == 1
    assert result.errors == []

    items = _items(db, emp.employee_id)
    assert len(items) == 1
    item = items[0]
    assert item.type == "birthday"
    assert item.template_id == tpl.template_id
    assert "Jamie" in item.title
    assert item.meta == {
        "automationTrigger": "birthday",
        "templateId": str(tpl.template_id),
        "date": "2024-03-15",
    }


def test_birthday_fans_out_over_all_tagged_templates(db, factory, session_factory):
    acme = factory.company()
    emp = factory.employee(acme, birthday=date(1985, 7, 1))
    t1 = factory.template(acme, name="Cake", tags=["birthday"])
    t2 = factory.template(acme, name="Balloons", tags=["birthday", "fun"])
    factory.template(acme, name="Welcome", tags=["onboarding"])
    factory.template(acme, name="Retired card", tags=["birthday"], is_active=False)

    result = automation.process_birthday_triggers(run_date=date(2024, 7, 1), session_factory=session_factory)

    assert result.processed == 1
    items = _items(db, emp.employee_id)
    assert len(items) == 2
    assert {i.template_id for i in items} == {t1.template_id, t2.template_id}


def test_birthday_respects_opt_out_and_inactive(db, factory, session_factory):
    acme = factory.company()
    factory.template(acme)
    opted_out = factory.employee(acme, name="Opted", birthday=date(1990, 3, 15), birthday_notifications_enabled=False)
    inactive = factory.employee(acme, name="Gone", birthday=date(1990, 3, 15), is_active=False)
    other_day = factory.employee(acme, name="Later", birthday=date(1990, 3, 16))

    result = automation.process_birthday_triggers(run_date=date(2024, 3, 15), session_factory=session_factory)

    assert result.processed == 0
    assert result.errors == []
    for emp in (opted_out, inactive, other_day):
        assert _items(db, emp.employee_id) == []


def test_missing_templates_is_a_soft_error(db, factory, session_factory):
    no_content = factory.company("No Content Inc")
    ready = factory.company("Ready Inc")
    factory.template(ready)
    skipped = factory.employee(no_content, name="Alex", birthday=date(1990, 3, 15))
    served = factory.employee(ready, name="Sam", birthday=date(1991, 3, 15))

    result = automation.process_birthday_triggers(run_date=date(2024, 3, 15), session_factory=session_factory)

    assert result.processed == 1
    assert result.errors == [f"No birthday templates found for company {no_content.company_id}"]
    assert _items(db, skipped.employee_id) == []
    assert len(_items(db, served.employee_id)) == 1


def test_one_failing_employee_does_not_stop_the_run(db, factory, session_factory, monkeypatch):
    acme = factory.company()
    factory.template(acme)
    alice = factory.employee(acme, name="Alice", birthday=date(1990, 3, 15))
    bob = factory.employee(acme, name="Bob", birthday=date(1992, 3, 15))
    alice_id = alice.employee_id

    real_create = automation.create_timeline_item

    def flaky_create(db, employee_id, **kwargs):
        if employee_id == alice_id:
            raise RuntimeError("storage hiccup")
        return real_create(db, employee_id=employee_id, **kwargs)

    monkeypatch.setattr(automation, "create_timeline_item", flaky_create)

    result = automation.process_birthday_triggers(run_date=date(2024, 3, 15), session_factory=session_factory)

    assert result.processed == 1
    assert len(result.errors) == 1
    assert "storage hiccup" in result.errors[0]
    assert str(alice_id) in result.errors[0]
    assert _items(db, alice_id) == []
    assert len(_items(db, bob.employee_id)) == 1


def test_feb_29_birthday_is_celebrated_on_feb_28_in_common_years(db, factory, session_factory):
    acme = factory.company()
    factory.template(acme)
    leapling = factory.employee(acme, birthday=date(2000, 2, 29))

    on_mar_1 = automation.process_birthday_triggers(run_date=date(2023, 3, 1), session_factory=session_factory)
    assert on_mar_1.processed == 0

    on_feb_28 = automation.process_birthday_triggers(run_date=date(2023, 2, 28), session_factory=session_factory)
    assert on_feb_28.processed == 1

    in_leap_year = automation.process_birthday_triggers(run_date=date(2024, 2, 29), session_factory=session_factory)
    assert in_leap_year.processed == 1
    assert len(_items(db, leapling.employee_id)) == 2


def test_feb_29_birthday_can_move_to_mar_1(factory, session_factory):
    acme = factory.company()
    factory.template(acme)
    factory.employee(acme, birthday=date(2000, 2, 29))

    result = automation.process_birthday_triggers(
        run_date=date(2023, 3, 1),
        session_factory=session_factory,
        leap_day_policy="mar1",
    )
    assert result.processed == 1


def test_partial_fan_out_still_counts_the_employee(db, factory, session_factory, monkeypatch):
    acme = factory.company()
    factory.template(acme, name="Cake", tags=["birthday"])
    factory.template(acme, name="Balloons", tags=["birthday"])
    emp = factory.employee(acme, birthday=date(1990, 3, 15))

    real_create = automation.create_timeline_item
    calls = []

    def second_template_fails(db, employee_id, **kwargs):
        calls.append(kwargs["template_id"])
        if len(calls) == 2:
            raise RuntimeError("template storage offline")
        return real_create(db, employee_id=employee_id, **kwargs)

    monkeypatch.setattr(automation, "create_timeline_item", second_template_fails)

    result = automation.process_birthday_triggers(run_date=date(2024, 3, 15), session_factory=session_factory)

    assert result.processed == 1
    assert len(result.errors) == 1
    assert "template storage offline" in result.errors[0]
    assert len(_items(db, emp.employee_id)) == 1
