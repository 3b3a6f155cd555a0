from datetime import date

from deposit_planner.calendar_utils import add_months
from deposit_planner.models import Bill, DepositPlan, ForecastResult, JointEarners, PaySchedule, SingleEarner
from deposit_planner.start_dates import candidate_start_dates, choose_start_date, is_better_plan

HINT = date(2025, 9, 1)


def _plan(start, monthly, end_balance=0.0, min_balance=0.0, target=0.0):
    return DepositPlan(
        deposits=(monthly,),
        monthly_equivalents=(monthly,),
        forecast=ForecastResult(min_balance=min_balance, end_balance=end_balance),
        start_date=start,
        target=target,
    )


def test_candidates_per_frequency():
    weekly = SingleEarner(PaySchedule('weekly', date(2025, 9, 5)))
    monthly = SingleEarner(PaySchedule('monthly', date(2025, 8, 28)))

    assert candidate_start_dates(weekly, HINT) == [
        date(2025, 9, 5), date(2025, 9, 12), date(2025, 9, 19), date(2025, 9, 26),
    ]
    assert candidate_start_dates(monthly, HINT) == [date(2025, 9, 28), date(2025, 10, 28)]


def test_candidates_are_merged_and_sorted_for_couples():
    earners = JointEarners(PaySchedule('monthly', HINT), PaySchedule('fortnightly', HINT), 0.6)

    assert candidate_start_dates(earners, HINT) == [
        date(2025, 9, 1), date(2025, 9, 15), date(2025, 9, 29), date(2025, 10, 1),
    ]


def test_feasible_plan_beats_cheaper_infeasible_one():
    feasible = _plan(date(2025, 9, 8), 900.0)
    infeasible = _plan(date(2025, 9, 1), 500.0, min_balance=-10.0)

    assert is_better_plan(feasible, infeasible, 0.0)
    assert not is_better_plan(infeasible, feasible, 0.0)


def test_clearly_cheaper_plan_wins():
    assert is_better_plan(_plan(date(2025, 9, 8), 900.0), _plan(date(2025, 9, 1), 1000.0), 0.0)


def test_near_ties_prefer_ending_balance_close_to_opening():
    lean = _plan(date(2025, 9, 15), 1000.5, end_balance=120.0)
    hoarding = _plan(date(2025, 9, 1), 1000.0, end_balance=900.0)

    assert is_better_plan(lean, hoarding, 100.0)
    assert not is_better_plan(hoarding, lean, 100.0)


def test_exact_ties_keep_the_earlier_date():
    early = _plan(date(2025, 9, 1), 1000.0, end_balance=50.0)
    late = _plan(date(2025, 9, 15), 1000.0, end_balance=50.0)

    assert not is_better_plan(late, early, 0.0)
    assert is_better_plan(early, late, 0.0)


def test_choose_start_date_picks_cheapest_feasible_scenario():
    earners = SingleEarner(PaySchedule('fortnightly', HINT))
    bills = [
        Bill(f'b{index}', 'Bills', 1000.0, add_months(date(2025, 9, 10), index))
        for index in range(12)
    ]

    choice = choose_start_date(earners, bills, HINT)

    assert len(choice.scenarios) == 3
    assert choice.plan in choice.scenarios
    assert choice.start == choice.plan.start_date
    assert choice.plan.feasible
    cheapest = min(plan.monthly_total for plan in choice.scenarios if plan.feasible)
    assert choice.plan.monthly_total <= cheapest * 1.01 + 2.0
