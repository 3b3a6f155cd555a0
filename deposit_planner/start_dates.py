"""Pick the start date that needs the lowest monthly deposit."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import FrozenSet, List, Sequence, Tuple

from .calendar_utils import IRISH_BANK_HOLIDAYS, generate_pay_dates
from .models import Bill, DepositPlan, Earners
from .settings import DEFAULT_SETTINGS, EngineSettings, StartDateSettings
from .solver import solve_deposits

logger = logging.getLogger(__name__)

# Three months always covers the first few pay dates of any schedule.
_LOOKAHEAD_MONTHS = 3


@dataclass(frozen=True)
class StartDateChoice:
    start: date
    plan: DepositPlan
    scenarios: Tuple[DepositPlan, ...]


def candidate_start_dates(
    earners: Earners,
    hint: date,
    settings: StartDateSettings = DEFAULT_SETTINGS.start_dates,
) -> List[date]:
    """First few pay dates on or after ``hint`` for every earner, sorted."""
    candidates = set()
    for schedule in earners.schedules:
        count = settings.candidates_per_frequency.get(schedule.frequency.value, 2)
        upcoming = generate_pay_dates(schedule.frequency, schedule.anchor, _LOOKAHEAD_MONTHS, hint)
        candidates.update(upcoming[:count])
    return sorted(candidates) or [hint]


def is_better_plan(challenger: DepositPlan, incumbent: DepositPlan, opening_balance: float,
                   settings: StartDateSettings = DEFAULT_SETTINGS.start_dates) -> bool:
    if challenger.feasible != incumbent.feasible:
        return challenger.feasible
    new_total, old_total = challenger.monthly_total, incumbent.monthly_total
    tolerance = max(settings.tie_absolute, settings.tie_relative * min(new_total, old_total))
    if abs(new_total - old_total) > tolerance:
        return new_total < old_total
    new_drift = abs(challenger.forecast.end_balance - opening_balance)
    old_drift = abs(incumbent.forecast.end_balance - opening_balance)
    if new_drift != old_drift:
        return new_drift < old_drift
    return challenger.start_date < incumbent.start_date


def choose_start_date(
    earners: Earners,
    bills: Sequence[Bill],
    hint: date,
    horizon_months: int = 12,
    target: float = 0.0,
    initial_balance: float = 0.0,
    buffer: float = 0.0,
    settings: EngineSettings = DEFAULT_SETTINGS,
    holidays: FrozenSet[date] = IRISH_BANK_HOLIDAYS,
) -> StartDateChoice:
    """Solve deposits for every candidate start date and keep the cheapest.

    Feasible plans beat infeasible ones. Among those, the lowest monthly
    total wins; totals within the tie tolerance go to the plan whose ending
    balance is closest to the opening balance, then to the earlier date.
    """
    scenarios = []
    for start in candidate_start_dates(earners, hint, settings.start_dates):
        scenarios.append(solve_deposits(
            earners, bills, start, horizon_months, target, initial_balance, buffer, settings.solver, holidays,
        ))

    best = scenarios[0]
    for plan in scenarios[1:]:
        if is_better_plan(plan, best, initial_balance, settings.start_dates):
            best = plan
    logger.debug(
        'Start date %s chosen from %d candidates (monthly total %.2f)',
        best.start_date, len(scenarios), best.monthly_total,
    )
    return StartDateChoice(start=best.start_date, plan=best, scenarios=tuple(scenarios))
