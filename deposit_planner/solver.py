"""Deposit solver: smallest recurring deposits that keep the balance above target.

Both the single and the joint case run through :func:`solve_deposits`. The
monthly baseline (average monthly bill cost inside the horizon) is scaled by
a multiplier found by bisection, split across earners by their shares and
converted to per-pay deposits rounded up to cents. Without bills in the
horizon the shortfall below target takes the place of the baseline.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import date
from typing import Callable, FrozenSet, Iterable, Sequence, Tuple

from .bills import bills_in_window, ideal_monthly_cost
from .calendar_utils import IRISH_BANK_HOLIDAYS, horizon_end
from .models import (
    Bill,
    DepositPlan,
    Earners,
    JointEarners,
    PaySchedule,
    SavingsCommitment,
    SingleEarner,
)
from .settings import DEFAULT_SETTINGS, SolverSettings
from .timeline import DepositStream, simulate_timeline

logger = logging.getLogger(__name__)

WEEKS_PER_MONTH = 52 / 12


def fairness_ratio(
    income_a: float,
    income_b: float,
    weekly_allowance_a: float = 0.0,
    weekly_allowance_b: float = 0.0,
    savings: Iterable[SavingsCommitment] = (),
) -> float:
    """Earner A's share of joint bills, from disposable income.

    Each earner's net is income minus weekly allowance (as monthly), own
    savings commitments and their income share of joint commitments,
    floored at zero. Returns 0.5 when there is nothing to divide.
    """
    income_a = max(0.0, float(income_a))
    income_b = max(0.0, float(income_b))
    combined = income_a + income_b
    preliminary = income_a / combined if combined > 0 else 0.5

    commitments = {'A': 0.0, 'B': 0.0, 'JOINT': 0.0}
    for commitment in savings:
        commitments[commitment.owner] += max(0.0, float(commitment.monthly))

    net_a = income_a - weekly_allowance_a * WEEKS_PER_MONTH - commitments['A'] - preliminary * commitments['JOINT']
    net_b = income_b - weekly_allowance_b * WEEKS_PER_MONTH - commitments['B'] - (1 - preliminary) * commitments['JOINT']
    net_a = max(0.0, net_a)
    net_b = max(0.0, net_b)
    if net_a + net_b <= 0:
        return 0.5
    return net_a / (net_a + net_b)


def ceil_cents(value: float) -> float:
    # round first so 12.300000000001 stays 12.30
    return math.ceil(round(value * 100, 6)) / 100


# ---------------------------------------------------------------------------
# Bisection
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SearchBounds:
    """Multiplier interval; ``high`` is always a feasible multiplier."""

    low: float
    high: float
    iterations: int = 0

    @property
    def width(self) -> float:
        return self.high - self.low


def bisect_step(bounds: SearchBounds, is_feasible: Callable[[float], bool]) -> SearchBounds:
    mid = (bounds.low + bounds.high) / 2
    if is_feasible(mid):
        return SearchBounds(bounds.low, mid, bounds.iterations + 1)
    return SearchBounds(mid, bounds.high, bounds.iterations + 1)


# ---------------------------------------------------------------------------
# Solver
# ---------------------------------------------------------------------------


def solve_deposits(
    earners: Earners,
    bills: Sequence[Bill],
    start: date,
    horizon_months: int = 12,
    target: float = 0.0,
    initial_balance: float = 0.0,
    buffer: float = 0.0,
    settings: SolverSettings = DEFAULT_SETTINGS.solver,
    holidays: FrozenSet[date] = IRISH_BANK_HOLIDAYS,
) -> DepositPlan:
    """Find the smallest deposits keeping the minimum balance at or above ``target``.

    Args:
        earners: ``SingleEarner`` or ``JointEarners``.
        bills: Candidate bills; only those rolled into the horizon count.
        start: First day of the horizon.
        horizon_months: Horizon length in months.
        target: Minimum balance the plan has to hold.
        initial_balance: Balance on ``start``.
        buffer: Safety margin subtracted from the simulated minimum.
        settings: Search bounds and iteration limits.

    Returns:
        The plan. When no multiplier within the search limits reaches the
        target, the best plan found is returned with ``feasible`` False.
    """
    end = horizon_end(start, horizon_months)
    window = bills_in_window(bills, start, end, holidays)
    baseline = ideal_monthly_cost(window)
    schedules = earners.schedules
    shares = earners.shares
    ratio = earners.fairness_ratio
    if len(schedules) == 1:
        labels: Tuple[str, ...] = ('Deposit',)
    else:
        labels = ('Deposit A', 'Deposit B')

    def build(deposits: Tuple[float, ...], factor: float) -> DepositPlan:
        streams = [
            DepositStream(schedule, amount, label)
            for schedule, amount, label in zip(schedules, deposits, labels)
        ]
        forecast = simulate_timeline(
            initial_balance, streams, window, start, horizon_months, ratio, buffer, holidays,
        )
        return DepositPlan(
            deposits=deposits,
            monthly_equivalents=tuple(
                round(amount * schedule.cycles_per_month, 2)
                for amount, schedule in zip(deposits, schedules)
            ),
            forecast=forecast,
            start_date=start,
            fairness_ratio=ratio,
            factor=factor,
            baseline_monthly=round(baseline, 2),
            target=target,
        )

    zero_plan = build(tuple(0.0 for _ in schedules), 0.0)
    if zero_plan.feasible:
        return zero_plan
    # No bills to scale: search on the opening shortfall instead.
    scale = baseline if baseline > 0 else target - zero_plan.forecast.min_balance

    def evaluate(multiplier: float) -> DepositPlan:
        monthly = scale * multiplier
        deposits = tuple(
            ceil_cents(monthly * share / schedule.cycles_per_month)
            for share, schedule in zip(shares, schedules)
        )
        return build(deposits, multiplier)

    low, high = settings.lower_multiplier, settings.upper_multiplier
    low_plan = evaluate(low)
    if low_plan.feasible:
        low, high = 0.0, low
    else:
        high_plan = evaluate(high)
        expansions = 0
        while not high_plan.feasible and expansions < settings.max_expansions:
            low, high = high, high * 2
            high_plan = evaluate(high)
            expansions += 1
        if not high_plan.feasible:
            plan = _apply_rounding_guard(high_plan, build, shares, schedules, horizon_months, settings)
            logger.warning(
                'No feasible deposit up to %.1fx of %.2f; min balance %.2f',
                high, scale, plan.forecast.min_balance,
            )
            return plan

    bounds = SearchBounds(low, high)
    while bounds.iterations < settings.max_iterations and bounds.width * scale >= settings.tolerance:
        bounds = bisect_step(bounds, lambda multiplier: evaluate(multiplier).feasible)

    plan = _apply_rounding_guard(evaluate(bounds.high), build, shares, schedules, horizon_months, settings)
    logger.debug(
        'Solved deposits %s (factor %.4f over %.2f) in %d iterations',
        plan.deposits, bounds.high, scale, bounds.iterations,
    )
    return plan


def _apply_rounding_guard(
    plan: DepositPlan,
    build: Callable[[Tuple[float, ...], float], DepositPlan],
    shares: Tuple[float, ...],
    schedules: Tuple[PaySchedule, ...],
    horizon_months: int,
    settings: SolverSettings,
) -> DepositPlan:
    """Top up deposits by the spread shortfall until the plan holds."""
    rounds = 0
    while not plan.feasible and rounds < settings.guard_iterations:
        shortfall = (plan.target - plan.forecast.min_balance) / max(1, horizon_months)
        deposits = tuple(
            round(amount + max(0.01, ceil_cents(shortfall * share / schedule.cycles_per_month)), 2)
            if share > 0 else amount
            for amount, share, schedule in zip(plan.deposits, shares, schedules)
        )
        plan = build(deposits, plan.factor)
        rounds += 1
    return plan


def find_deposit_single(
    schedule: PaySchedule,
    bills: Sequence[Bill],
    start: date,
    horizon_months: int = 12,
    target: float = 0.0,
    initial_balance: float = 0.0,
    buffer: float = 0.0,
    settings: SolverSettings = DEFAULT_SETTINGS.solver,
) -> DepositPlan:
    return solve_deposits(
        SingleEarner(schedule), bills, start, horizon_months, target, initial_balance, buffer, settings,
    )


def find_deposit_joint(
    schedule_a: PaySchedule,
    schedule_b: PaySchedule,
    bills: Sequence[Bill],
    start: date,
    fairness_ratio: float,
    horizon_months: int = 12,
    target: float = 0.0,
    initial_balance: float = 0.0,
    buffer: float = 0.0,
    settings: SolverSettings = DEFAULT_SETTINGS.solver,
) -> DepositPlan:
    return solve_deposits(
        JointEarners(schedule_a, schedule_b, fairness_ratio),
        bills, start, horizon_months, target, initial_balance, buffer, settings,
    )

