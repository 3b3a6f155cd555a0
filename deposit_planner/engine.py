"""Entry points for hosts: history analysis and plan simulation."""

from __future__ import annotations

import logging
from typing import Iterable

from .income import detect_salary_candidates
from .logging_setup import log_plan
from .models import (
    AnalysisResult,
    Earners,
    JointEarners,
    PlanInputs,
    PlanResult,
    SingleEarner,
    Transaction,
)
from .nudges import suggest_bill_moves
from .recurring import detect_recurring_bills
from .settings import DEFAULT_SETTINGS, EngineSettings
from .solver import fairness_ratio
from .start_dates import choose_start_date

logger = logging.getLogger(__name__)


def analyze_transactions(
    transactions: Iterable[Transaction],
    settings: EngineSettings = DEFAULT_SETTINGS,
) -> AnalysisResult:
    """Detect salaries and recurring bills in a transaction history."""
    history = list(transactions)
    salaries = detect_salary_candidates(history, settings.detection)
    recurring = detect_recurring_bills(history, settings.detection)
    logger.info(
        'Analysed %d transactions: %d salary candidates, %d recurring bills',
        len(history), len(salaries), len(recurring),
    )
    return AnalysisResult(salaries=tuple(salaries), recurring=tuple(recurring))


def build_earners(plan_inputs: PlanInputs) -> Earners:
    """Single earner, or a joint pair with a fairness ratio from net incomes."""
    earner_a = plan_inputs.earner_a
    if not plan_inputs.is_joint:
        return SingleEarner(earner_a.schedule)
    earner_b = plan_inputs.earner_b
    ratio = fairness_ratio(
        earner_a.monthly_income,
        earner_b.monthly_income,
        earner_a.weekly_allowance,
        earner_b.weekly_allowance,
        plan_inputs.savings,
    )
    return JointEarners(earner_a.schedule, earner_b.schedule, ratio)


def simulate(
    plan_inputs: PlanInputs,
    include_suggestions: bool = False,
    settings: EngineSettings = DEFAULT_SETTINGS,
) -> PlanResult:
    """Compute the deposit plan for ``plan_inputs``.

    Args:
        plan_inputs: Earners, bills, horizon, targets and the start-date hint.
        include_suggestions: Also run the bill nudge advisor.
        settings: Engine thresholds.

    Returns:
        The chosen plan. Check ``feasible`` (or ``min_balance``) to see
        whether the target could be held.

    Raises:
        ValueError: If the horizon is negative.
    """
    if plan_inputs.horizon_months < 0:
        raise ValueError(f'horizon_months must be non-negative, got {plan_inputs.horizon_months}')

    earners = build_earners(plan_inputs)
    choice = choose_start_date(
        earners,
        plan_inputs.bills,
        plan_inputs.start_date,
        plan_inputs.horizon_months,
        plan_inputs.min_balance_target,
        plan_inputs.initial_balance,
        plan_inputs.buffer,
        settings,
    )
    plan = choice.plan

    suggestions = None
    if include_suggestions:
        suggestions = tuple(suggest_bill_moves(
            earners,
            plan_inputs.bills,
            plan.start_date,
            plan,
            plan_inputs.horizon_months,
            plan_inputs.min_balance_target,
            plan_inputs.initial_balance,
            plan_inputs.buffer,
            settings,
        ))

    log_plan(
        start_date=plan.start_date.isoformat(),
        joint=isinstance(earners, JointEarners),
        monthly_total=plan.monthly_total,
        min_balance=plan.forecast.min_balance,
        feasible=plan.feasible,
        suggestions=None if suggestions is None else len(suggestions),
    )
    return PlanResult(
        min_balance=plan.forecast.min_balance,
        end_balance=plan.forecast.end_balance,
        required_deposits=plan.deposits,
        start_date=plan.start_date,
        timeline=plan.forecast.timeline,
        monthly_total=plan.monthly_total,
        feasible=plan.feasible,
        fairness_ratio=plan.fairness_ratio,
        bill_suggestions=suggestions,
    )
