"""Bill helpers: expansion of detected items, roll-forward and windowing."""

from __future__ import annotations

from dataclasses import replace
from datetime import date
from typing import FrozenSet, Iterable, List, Sequence

from dateutil.relativedelta import relativedelta

from .calendar_utils import (
    IRISH_BANK_HOLIDAYS,
    add_months,
    generate_pay_dates,
    horizon_end,
    months_between,
    next_monthly_on_or_after,
    next_weekday_on_or_after,
    roll_to_business_day,
)
from .models import DAY_STEPS, Bill, Frequency, RecurringItem


def rolled_due_date(bill: Bill, holidays: FrozenSet[date] = IRISH_BANK_HOLIDAYS) -> date:
    return roll_to_business_day(bill.due_date, holidays)


def expand_recurring_item(
    item: RecurringItem,
    start: date,
    months: int,
    id_prefix: str = 'rec',
    movable: bool = True,
) -> List[Bill]:
    """Turn a detected recurring item into dated bills over ``months``.

    Monthly items land on their day-of-month, day-step items keep the phase
    of their most recent sample date (or the next matching weekday when no
    sample is known). Items without any anchor become a single bill on
    their latest sample date.
    """
    end = horizon_end(start, months)
    dates: List[date] = []

    if item.frequency is Frequency.MONTHLY and item.day_of_month:
        first = next_monthly_on_or_after(start, item.day_of_month)
        index = 0
        current = first
        while current < end:
            dates.append(current)
            index += 1
            current = add_months(first, index, item.day_of_month)
    elif item.frequency in DAY_STEPS and (item.sample_dates or item.day_of_week is not None):
        if item.sample_dates:
            anchor = item.sample_dates[-1]
        else:
            anchor = next_weekday_on_or_after(start, item.day_of_week)
        dates = generate_pay_dates(item.frequency, anchor, months, start)
    elif item.sample_dates:
        dates = [item.sample_dates[-1]]

    return [
        Bill(
            id=f'{id_prefix}-{index}',
            name=item.description,
            amount=item.amount,
            due_date=due,
            source='imported',
            movable=movable,
        )
        for index, due in enumerate(dates)
    ]


def expand_recurring(
    items: Iterable[RecurringItem],
    start: date,
    months: int,
    prefix: str = 'rec',
) -> List[Bill]:
    bills: List[Bill] = []
    for index, item in enumerate(items):
        bills.extend(expand_recurring_item(item, start, months, f'{prefix}{index}'))
    return sorted(bills, key=lambda bill: bill.due_date)


def roll_forward_past_bills(bills: Iterable[Bill], reference: date) -> List[Bill]:
    """Move bills dated before ``reference`` forward by whole months.

    The issue date moves by the same number of months so the lead time
    between issue and due date is kept.
    """
    rolled = []
    for bill in bills:
        if bill.due_date >= reference:
            rolled.append(bill)
            continue
        gap = relativedelta(reference, bill.due_date)
        months = gap.years * 12 + gap.months
        due = add_months(bill.due_date, months)
        if due < reference:
            months += 1
            due = add_months(bill.due_date, months)
        rolled.append(replace(bill, due_date=due, issue_date=add_months(bill.issue_date, months)))
    return rolled


def bills_in_window(
    bills: Iterable[Bill],
    start: date,
    end: date,
    holidays: FrozenSet[date] = IRISH_BANK_HOLIDAYS,
) -> List[Bill]:
    """Bills whose rolled due date falls inside ``[start, end)``."""
    return [bill for bill in bills if start <= rolled_due_date(bill, holidays) < end]


def ideal_monthly_cost(bills: Sequence[Bill]) -> float:
    """Average monthly outflow: total over the inclusive month span of due dates."""
    if not bills:
        return 0.0
    total = sum(bill.amount for bill in bills)
    first = min(bill.due_date for bill in bills)
    last = max(bill.due_date for bill in bills)
    return total / max(1, months_between(first, last))
