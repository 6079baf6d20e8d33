"""Calendar math for yearly recurring dates (birthdays, anniversaries, custom events).

Only month/day of a recurring date is significant. Feb 29 has no occurrence in
non-leap years and is moved by `leap_day_policy`:
  - "feb28": celebrate on Feb 28
  - "mar1":  celebrate on Mar 1
"""

from __future__ import annotations

import calendar
from datetime import date, timedelta
from typing import List, Literal, Optional, Tuple

LeapDayPolicy = Literal["feb28", "mar1"]

MonthDay = Tuple[int, int]


def occurrence_in_year(d: date, year: int, leap_day_policy: LeapDayPolicy = "feb28") -> date:
    """The date on which the month/day of `d` is observed in `year`."""
    if d.month == 2 and d.day == 29 and not calendar.isleap(year):
        if leap_day_policy == "mar1":
            return date(year, 3, 1)
        return date(year, 2, 28)
    return date(year, d.month, d.day)


def matching_month_days(run_date: date, leap_day_policy: LeapDayPolicy = "feb28") -> List[MonthDay]:
    """Stored (month, day) pairs that are observed on `run_date`.

    Usually just run_date's own month/day; in a non-leap year the Feb 28 or
    Mar 1 run (depending on policy) also picks up Feb 29 dates.
    """
    pairs: List[MonthDay] = [(run_date.month, run_date.day)]
    if not calendar.isleap(run_date.year):
        leap_target = occurrence_in_year(date(2000, 2, 29), run_date.year, leap_day_policy)
        if leap_target == run_date:
            pairs.append((2, 29))
    return pairs


def recurs_on(d: date, run_date: date, leap_day_policy: LeapDayPolicy = "feb28") -> bool:
    return occurrence_in_year(d, run_date.year, leap_day_policy) == run_date


def next_occurrence(d: date, today: date, leap_day_policy: LeapDayPolicy = "feb28") -> date:
    """First observance of `d`'s month/day on or after `today`."""
    this_year = occurrence_in_year(d, today.year, leap_day_policy)
    if this_year >= today:
        return this_year
    return occurrence_in_year(d, today.year + 1, leap_day_policy)


def years_of_service(hire_date: date, run_date: date) -> int:
    return run_date.year - hire_date.year


def event_fires_on(
    event_date: date,
    is_recurring: bool,
    reminder_days_before: int,
    run_date: date,
    leap_day_policy: LeapDayPolicy = "feb28",
) -> bool:
    """A custom event fires `reminder_days_before` days ahead of its (next) date."""
    target = run_date + timedelta(days=reminder_days_before or 0)
    if is_recurring:
        return recurs_on(event_date, target, leap_day_policy)
    return event_date == target


def upcoming_date(
    event_date: date,
    is_recurring: bool,
    today: date,
    days_ahead: int,
    leap_day_policy: LeapDayPolicy = "feb28",
) -> Optional[date]:
    """The date the event falls on inside [today, today + days_ahead], or None."""
    horizon = today + timedelta(days=days_ahead)
    if is_recurring:
        when = next_occurrence(event_date, today, leap_day_policy)
    else:
        when = event_date
    if today <= when <= horizon:
        return when
    return None

