from datetime import date

import pytest

from deposit_planner.bills import (
    bills_in_window,
    expand_recurring,
    expand_recurring_item,
    ideal_monthly_cost,
    roll_forward_past_bills,
    rolled_due_date,
)
from deposit_planner.calendar_utils import add_months
from deposit_planner.models import Bill, Frequency, RecurringItem


def _monthly_bills(name, amount, first_due, count):
    return [
        Bill(id=f'{name}-{index}', name=name, amount=amount, due_date=add_months(first_due, index))
        for index in range(count)
    ]


def test_expand_monthly_item_on_day_of_month():
    item = RecurringItem('Netflix', 15.99, Frequency.MONTHLY, day_of_month=15)

    bills = expand_recurring_item(item, date(2025, 9, 1), 12)

    assert len(bills) == 12
    assert bills[0].due_date == date(2025, 9, 15)
    assert bills[-1].due_date == date(2026, 8, 15)
    assert {bill.source for bill in bills} == {'imported'}
    assert len({bill.id for bill in bills}) == 12


def test_expand_monthly_item_keeps_day_31_across_short_months():
    item = RecurringItem('Rent', 1200.0, Frequency.MONTHLY, day_of_month=31)

    bills = expand_recurring_item(item, date(2025, 1, 1), 3)

    assert [bill.due_date for bill in bills] == [date(2025, 1, 31), date(2025, 2, 28), date(2025, 3, 31)]


def test_expand_weekly_item_keeps_sample_phase():
    item = RecurringItem('Gym', 12.0, Frequency.WEEKLY, day_of_week=2, sample_dates=(date(2025, 8, 27),))

    bills = expand_recurring_item(item, date(2025, 9, 1), 1)

    assert [bill.due_date for bill in bills] == [
        date(2025, 9, 3), date(2025, 9, 10), date(2025, 9, 17), date(2025, 9, 24),
    ]


def test_expand_weekly_item_without_samples_uses_weekday():
    item = RecurringItem('Gym', 12.0, Frequency.FORTNIGHTLY, day_of_week=4)

    bills = expand_recurring_item(item, date(2025, 9, 1), 1)

    assert [bill.due_date for bill in bills] == [date(2025, 9, 5), date(2025, 9, 19)]


def test_expand_recurring_sorts_and_prefixes():
    items = [
        RecurringItem('Netflix', 15.99, Frequency.MONTHLY, day_of_month=20),
        RecurringItem('Spotify', 10.99, Frequency.MONTHLY, day_of_month=5),
    ]

    bills = expand_recurring(items, date(2025, 9, 1), 2)

    assert [bill.name for bill in bills] == ['Spotify', 'Netflix', 'Spotify', 'Netflix']
    assert len({bill.id for bill in bills}) == 4


def test_roll_forward_past_bills():
    bills = [
        Bill('a', 'Phone', 40.0, date(2025, 7, 10), issue_date=date(2025, 7, 1)),
        Bill('b', 'Bins', 25.0, date(2025, 8, 3)),
        Bill('c', 'Gym', 30.0, date(2025, 9, 20)),
    ]

    rolled = roll_forward_past_bills(bills, date(2025, 9, 5))

    assert [bill.due_date for bill in rolled] == [date(2025, 9, 10), date(2025, 10, 3), date(2025, 9, 20)]
    assert rolled[0].issue_date == date(2025, 9, 1)
    assert rolled[2] is bills[2]


def test_roll_forward_clamps_month_end_dates():
    bills = [
        Bill('a', 'Insurance', 60.0, date(2025, 1, 31), issue_date=date(2025, 1, 25)),
        Bill('b', 'Broadband', 45.0, date(2024, 11, 30)),
    ]

    rolled = roll_forward_past_bills(bills, date(2025, 2, 10))

    assert rolled[0].due_date == date(2025, 2, 28)
    assert rolled[0].issue_date == date(2025, 2, 25)
    assert rolled[1].due_date == date(2025, 2, 28)


def test_bills_in_window_uses_rolled_due_dates():
    bills = [
        Bill('early', 'Early', 10.0, date(2025, 8, 31)),  # Sunday, rolls into the window
        Bill('last', 'Last', 10.0, date(2026, 8, 29)),  # Saturday, rolls to Monday 31st
        Bill('out', 'Out', 10.0, date(2026, 9, 1)),
        Bill('before', 'Before', 10.0, date(2025, 8, 29)),
    ]

    inside = bills_in_window(bills, date(2025, 9, 1), date(2026, 9, 1))

    assert [bill.id for bill in inside] == ['early', 'last']
    assert rolled_due_date(bills[0]) == date(2025, 9, 1)


def test_ideal_monthly_cost():
    bills = _monthly_bills('Bills', 1746.24, date(2025, 9, 15), 12)

    assert ideal_monthly_cost(bills) == pytest.approx(1746.24)
    assert ideal_monthly_cost([]) == 0.0
    assert ideal_monthly_cost(bills[:1]) == pytest.approx(1746.24)


def test_bill_amounts_are_unsigned_and_source_checked():
    assert Bill('x', 'Refunded', -50.0, '2025-09-01').amount == 50.0
    with pytest.raises(ValueError):
        Bill('x', 'Odd', 5.0, '2025-09-01', source='guess')
