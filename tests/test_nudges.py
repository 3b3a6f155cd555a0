from datetime import date

from deposit_planner.calendar_utils import add_months
from deposit_planner.models import Bill, PaySchedule, SingleEarner
from deposit_planner.nudges import candidate_dates, find_offenders, is_eligible, should_nudge, suggest_bill_moves
from deposit_planner.solver import solve_deposits

START = date(2025, 9, 1)
EARNER = SingleEarner(PaySchedule('monthly', START))


def _gym_bills():
    return [
        Bill(f'gym-{index}', 'Gym', 100.0, add_months(date(2025, 9, 5), index))
        for index in range(12)
    ]


def _suggest(bills):
    plan = solve_deposits(EARNER, bills, START)
    return plan, suggest_bill_moves(EARNER, bills, START, plan)


def test_moving_early_one_off_past_payday_lowers_deposit():
    bills = [Bill('holiday', 'Holiday', 1200.0, date(2025, 9, 3))] + _gym_bills()

    plan, suggestions = _suggest(bills)

    assert plan.monthly_total > 1250
    assert suggestions, "moving the holiday past the next payday should help"
    first = suggestions[0]
    assert first.bill_id == 'holiday'
    assert first.current_date == date(2025, 9, 3)
    assert first.suggested_date == date(2025, 10, 1)
    assert first.monthly_saving > 500
    assert first.min_balance >= 0
    assert 'later' in first.reason


def test_awkward_bills_are_never_moved():
    bills = [Bill('insurance', 'Car Insurance', 1200.0, date(2025, 9, 3))] + _gym_bills()

    _, suggestions = _suggest(bills)

    assert {suggestion.bill_name for suggestion in suggestions} <= {'Gym'}
    assert all(suggestion.min_balance >= 0 for suggestion in suggestions)


def test_fixed_bills_are_never_moved():
    bills = [Bill('holiday', 'Holiday', 1200.0, date(2025, 9, 3), movable=False)] + _gym_bills()

    _, suggestions = _suggest(bills)

    assert 'holiday' not in {suggestion.bill_id for suggestion in suggestions}
    assert len(suggestions) <= 3


def test_no_suggestions_when_deposit_is_already_ideal():
    bills = [Bill(f'b{index}', 'Phone', 100.0, add_months(date(2025, 9, 15), index)) for index in range(12)]

    _, suggestions = _suggest(bills)

    assert suggestions == []


def test_no_suggestions_without_bills():
    plan = solve_deposits(EARNER, [], START)

    assert suggest_bill_moves(EARNER, [], START, plan) == []


def test_gate():
    plan = solve_deposits(EARNER, _gym_bills(), START)

    assert not should_nudge(plan, 100.0, joint=False, opening_balance=0.0)
    assert should_nudge(plan, 80.0, joint=False, opening_balance=0.0)
    assert should_nudge(plan, 100.0, joint=False, opening_balance=-500.0)


def test_eligibility():
    assert is_eligible(Bill('a', 'Netflix', 10.0, START))
    assert not is_eligible(Bill('b', 'Mortgage payment', 10.0, START))
    assert not is_eligible(Bill('c', 'RENT', 10.0, START))
    assert is_eligible(Bill('d', 'Parental leave top up', 10.0, START))
    assert not is_eligible(Bill('e', 'Netflix', 10.0, START, movable=False))


def test_candidate_dates_include_next_payday():
    bill = Bill('holiday', 'Holiday', 1200.0, date(2025, 9, 3))

    assert candidate_dates(bill, EARNER) == [
        date(2025, 9, 1), date(2025, 9, 8), date(2025, 9, 15), date(2025, 9, 22), date(2025, 9, 28),
        date(2025, 10, 1),
    ]


def test_offenders_ranked_by_amount_before_trough():
    bills = [Bill('holiday', 'Holiday', 1200.0, date(2025, 9, 3))] + _gym_bills()
    plan = solve_deposits(EARNER, bills, START)

    assert plan.forecast.trough_date == date(2025, 9, 5)
    assert find_offenders(bills, plan, START) == ['Holiday', 'Gym']
