"""Calendar helpers: business-day rolling and pay/bill date generation."""

from __future__ import annotations

from datetime import date, timedelta
from typing import FrozenSet, List, Optional, Union

from dateutil.relativedelta import relativedelta

from .models import DAY_STEPS, PAY_FREQUENCIES, Frequency, as_frequency

# Irish public holidays, including the substitute days when a holiday falls
# on a weekend. Extend yearly.
IRISH_BANK_HOLIDAYS: FrozenSet[date] = frozenset(
    date.fromisoformat(day)
    for day in (
        '2025-01-01', '2025-02-03', '2025-03-17', '2025-04-21', '2025-05-05',
        '2025-06-02', '2025-08-04', '2025-10-27', '2025-12-25', '2025-12-26',
        '2026-01-01', '2026-02-02', '2026-03-17', '2026-04-06', '2026-05-04',
        '2026-06-01', '2026-08-03', '2026-10-26', '2026-12-25', '2026-12-28',
        '2027-01-01', '2027-02-01', '2027-03-17', '2027-03-29', '2027-05-03',
        '2027-06-07', '2027-08-02', '2027-10-25', '2027-12-27', '2027-12-28',
    )
)


def is_business_day(day: date, holidays: FrozenSet[date] = IRISH_BANK_HOLIDAYS) -> bool:
    return day.weekday() < 5 and day not in holidays


def roll_to_business_day(day: date, holidays: FrozenSet[date] = IRISH_BANK_HOLIDAYS) -> date:
    """Return ``day`` or the first business day after it."""
    current = day
    while not is_business_day(current, holidays):
        current += timedelta(days=1)
    return current


def add_months(day: date, months: int, day_of_month: Optional[int] = None) -> date:
    """Step ``months`` calendar months, clamping the day to the month length.

    ``day_of_month`` overrides the day to aim for, so repeated steps from an
    anchor on the 31st land on the 31st again once a long month comes round.
    """
    return day + relativedelta(months=months, day=day_of_month or day.day)


def months_between(first: date, last: date) -> int:
    """Inclusive count of calendar months touched between two dates."""
    span = relativedelta(last.replace(day=1), first.replace(day=1))
    return span.years * 12 + span.months + 1


def horizon_end(start: date, horizon_months: int) -> date:
    """Exclusive end of a horizon of ``horizon_months`` starting at ``start``."""
    if horizon_months < 0:
        raise ValueError(f'horizon_months must be non-negative, got {horizon_months}')
    return add_months(start, horizon_months)


def generate_pay_dates(
    frequency: Union[str, Frequency],
    anchor: date,
    horizon_months: int,
    start: Optional[date] = None,
) -> List[date]:
    """Generate every occurrence of a schedule inside ``[start, start + horizon)``.

    Args:
        frequency: weekly, fortnightly, four_weekly or monthly.
        anchor: any date that is a real occurrence of the schedule.
        horizon_months: length of the window in calendar months.
        start: first day of the window, defaults to ``anchor``. Occurrences
            are projected forwards or backwards from the anchor to reach it.

    Returns:
        Strictly increasing list of dates. Dates are not business-day rolled.
    """
    freq = as_frequency(frequency)
    if freq not in PAY_FREQUENCIES:
        raise ValueError(f"'{freq.value}' is not a pay frequency")
    window_start = start or anchor
    end = horizon_end(window_start, horizon_months)

    dates: List[date] = []
    if freq in DAY_STEPS:
        step = DAY_STEPS[freq]
        offset = (window_start - anchor).days
        steps_to_start = -((-offset) // step)
        current = anchor + timedelta(days=steps_to_start * step)
        while current < end:
            dates.append(current)
            current += timedelta(days=step)
        return dates

    index = (window_start.year - anchor.year) * 12 + (window_start.month - anchor.month)
    current = add_months(anchor, index)
    if current < window_start:
        index += 1
        current = add_months(anchor, index)
    while current < end:
        dates.append(current)
        index += 1
        current = add_months(anchor, index)
    return dates


def next_monthly_on_or_after(from_day: date, due_day: int) -> date:
    """Next date on or after ``from_day`` falling on ``due_day`` (clamped)."""
    this_month = add_months(from_day, 0, due_day)
    if this_month >= from_day:
        return this_month
    return add_months(from_day.replace(day=1), 1, due_day)


def next_weekday_on_or_after(from_day: date, weekday: int) -> date:
    """Next date on or after ``from_day`` with ``weekday`` (0 = Monday)."""
    return from_day + timedelta(days=(weekday - from_day.weekday()) % 7)
