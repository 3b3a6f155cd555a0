"""Suggest bill-date moves that lower the required deposit.

Moves are chosen greedily: every step tries each offending bill's next
unmoved occurrence on a handful of candidate days, re-solves the deposits
and keeps the single best move. Each step returns a new :class:`NudgeState`.
"""

from __future__ import annotations

import logging
import re
from collections import defaultdict
from dataclasses import dataclass, replace
from datetime import date
from typing import Callable, Dict, FrozenSet, List, Optional, Sequence, Tuple

from .bills import bills_in_window, ideal_monthly_cost, rolled_due_date
from .calendar_utils import IRISH_BANK_HOLIDAYS, add_months, generate_pay_dates, horizon_end
from .models import Bill, BillSuggestion, DepositPlan, Earners, JointEarners
from .settings import DEFAULT_SETTINGS, EngineSettings, NudgeSettings
from .solver import solve_deposits

logger = logging.getLogger(__name__)

Evaluator = Callable[[Tuple[Bill, ...]], DepositPlan]


@dataclass(frozen=True)
class NudgeState:
    bills: Tuple[Bill, ...]
    plan: DepositPlan
    moved: FrozenSet[str] = frozenset()
    suggestions: Tuple[BillSuggestion, ...] = ()
    steps: int = 0


def should_nudge(plan: DepositPlan, ideal_monthly: float, joint: bool, opening_balance: float,
                 settings: NudgeSettings = DEFAULT_SETTINGS.nudges) -> bool:
    """Only bother when the deposit is well above the ideal or piles up a surplus."""
    factor = settings.gate_factor_joint if joint else settings.gate_factor_single
    if plan.monthly_total > ideal_monthly * factor:
        return True
    surplus = plan.forecast.end_balance - opening_balance
    return surplus > ideal_monthly * settings.surplus_months


def is_eligible(bill: Bill, settings: NudgeSettings = DEFAULT_SETTINGS.nudges) -> bool:
    return bill.movable and not re.search(settings.awkward_pattern, bill.name, re.IGNORECASE)


def find_offenders(
    bills: Sequence[Bill],
    plan: DepositPlan,
    start: date,
    settings: NudgeSettings = DEFAULT_SETTINGS.nudges,
    holidays: FrozenSet[date] = IRISH_BANK_HOLIDAYS,
) -> List[str]:
    """Names of the bills most responsible for the balance trough.

    Bills are ranked by the total they take out up to the trough. With
    nothing eligible before the trough the first months of the horizon are
    used instead, and failing that the earliest eligible bills.
    """
    eligible = sorted(
        (bill for bill in bills if is_eligible(bill, settings)),
        key=lambda bill: (rolled_due_date(bill, holidays), bill.id),
    )
    if not eligible:
        return []

    trough = plan.forecast.trough_date
    if trough is not None:
        ranked = _rank_by_amount([bill for bill in eligible if rolled_due_date(bill, holidays) <= trough])
        if ranked:
            return ranked[:settings.max_offenders]

    cutoff = add_months(start, settings.widen_months)
    ranked = _rank_by_amount([bill for bill in eligible if rolled_due_date(bill, holidays) < cutoff])
    if ranked:
        return ranked[:settings.max_offenders]

    names: List[str] = []
    for bill in eligible:
        if bill.name not in names:
            names.append(bill.name)
    return names[:settings.max_offenders]


def _rank_by_amount(bills: List[Bill]) -> List[str]:
    totals: Dict[str, float] = defaultdict(float)
    for bill in bills:
        totals[bill.name] += bill.amount
    return sorted(totals, key=lambda name: (-totals[name], name))


def candidate_dates(
    bill: Bill,
    earners: Earners,
    settings: NudgeSettings = DEFAULT_SETTINGS.nudges,
) -> List[date]:
    """Anchor days in the bill's month plus the next payday on or after it."""
    due = bill.due_date
    options = {add_months(due, 0, day) for day in settings.anchor_days}
    paydays = [
        dates[0]
        for dates in (
            generate_pay_dates(schedule.frequency, schedule.anchor, 2, due)
            for schedule in earners.schedules
        )
        if dates
    ]
    if paydays:
        options.add(min(paydays))
    options.discard(due)
    return sorted(options)


def nudge_step(
    state: NudgeState,
    offenders: Sequence[str],
    evaluate: Evaluator,
    earners: Earners,
    start: date,
    end: date,
    floor: float,
    settings: NudgeSettings = DEFAULT_SETTINGS.nudges,
    holidays: FrozenSet[date] = IRISH_BANK_HOLIDAYS,
) -> Optional[NudgeState]:
    """Apply the single best move, or return None when no move is worth it."""
    best = None
    for name in offenders:
        occurrence = _next_unmoved(state, name, settings, holidays)
        if occurrence is None:
            continue
        for new_due in candidate_dates(occurrence, earners, settings):
            if not start <= rolled_due_date(replace(occurrence, due_date=new_due), holidays) < end:
                continue
            moved = replace(occurrence, due_date=new_due, issue_date=min(occurrence.issue_date, new_due))
            trial_bills = tuple(moved if bill.id == occurrence.id else bill for bill in state.bills)
            trial = evaluate(trial_bills)
            if not trial.feasible or trial.forecast.min_balance < floor:
                continue
            saving = state.plan.monthly_total - trial.monthly_total
            if best is None or saving > best[0]:
                best = (saving, occurrence, moved, trial_bills, trial)

    if best is None:
        return None
    saving, original, moved, trial_bills, trial = best
    if saving < settings.min_step_improvement * state.plan.monthly_total:
        return None

    shift = (moved.due_date - original.due_date).days
    direction = 'later' if shift > 0 else 'earlier'
    suggestion = BillSuggestion(
        bill_id=original.id,
        bill_name=original.name,
        current_date=original.due_date,
        suggested_date=moved.due_date,
        monthly_saving=round(saving, 2),
        min_balance=trial.forecast.min_balance,
        reason=f'Moving {abs(shift)} days {direction} lowers the monthly deposit by {saving:.2f}',
    )
    return NudgeState(
        bills=trial_bills,
        plan=trial,
        moved=state.moved | {original.id},
        suggestions=state.suggestions + (suggestion,),
        steps=state.steps + 1,
    )


def _next_unmoved(state: NudgeState, name: str, settings: NudgeSettings,
                  holidays: FrozenSet[date]) -> Optional[Bill]:
    pending = [
        bill for bill in state.bills
        if bill.name == name and bill.id not in state.moved and is_eligible(bill, settings)
    ]
    if not pending:
        return None
    return min(pending, key=lambda bill: (rolled_due_date(bill, holidays), bill.id))


def suggest_bill_moves(
    earners: Earners,
    bills: Sequence[Bill],
    start: date,
    plan: DepositPlan,
    horizon_months: int = 12,
    target: float = 0.0,
    initial_balance: float = 0.0,
    buffer: float = 0.0,
    settings: EngineSettings = DEFAULT_SETTINGS,
    holidays: FrozenSet[date] = IRISH_BANK_HOLIDAYS,
) -> List[BillSuggestion]:
    """Suggest up to a few bill moves that lower ``plan``'s monthly total.

    Every suggestion keeps the simulated minimum balance at or above
    ``max(target, 0)`` and saves at least the configured absolute and
    relative amounts.
    """
    nudges = settings.nudges
    end = horizon_end(start, horizon_months)
    window = tuple(bills_in_window(bills, start, end, holidays))
    ideal = ideal_monthly_cost(window)
    if ideal <= 0:
        return []
    if not should_nudge(plan, ideal, isinstance(earners, JointEarners), initial_balance, nudges):
        logger.debug('Deposit %.2f close enough to ideal %.2f, no nudges', plan.monthly_total, ideal)
        return []

    offenders = find_offenders(window, plan, start, nudges, holidays)
    if not offenders:
        return []

    def evaluate(candidate_bills: Tuple[Bill, ...]) -> DepositPlan:
        return solve_deposits(
            earners, candidate_bills, start, horizon_months, target, initial_balance, buffer,
            settings.solver, holidays,
        )

    floor = max(target, 0.0)
    state = NudgeState(bills=window, plan=plan)
    while state.steps < nudges.max_steps:
        next_state = nudge_step(state, offenders, evaluate, earners, start, end, floor, nudges, holidays)
        if next_state is None:
            break
        state = next_state

    minimum_saving = max(nudges.min_saving_absolute, nudges.min_saving_relative * plan.monthly_total)
    kept = [
        suggestion for suggestion in state.suggestions
        if suggestion.monthly_saving >= minimum_saving and suggestion.min_balance >= floor
    ]
    logger.debug('Nudge advisor: %d steps, %d suggestions kept', state.steps, len(kept))
    return kept[:nudges.max_suggestions]
