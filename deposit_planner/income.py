"""Salary detection from inflows.

This module finds the regular pay deposits in a transaction history and
turns the best candidate into a :class:`PaySchedule`.
"""

from __future__ import annotations

import logging
import re
from typing import Iterable, List, Optional

import pandas as pd

from .models import PAY_FREQUENCIES, PaySchedule, SalaryCandidate, Transaction
from .recurring import GapMemo, analyse_date_pattern, normalize_description, round_half_up
from .settings import DEFAULT_SETTINGS, DetectionSettings

logger = logging.getLogger(__name__)

SALARY_KEYWORDS = ('payroll', 'salary', 'wages', 'wage', 'paye', 'remittance', 'net pay', 'hr')
SALARY_PATTERN = re.compile(r'\b(' + '|'.join(re.escape(word) for word in SALARY_KEYWORDS) + r')\b')


def detect_salary_candidates(
    transactions: Iterable[Transaction],
    settings: DetectionSettings = DEFAULT_SETTINGS.detection,
) -> List[SalaryCandidate]:
    """Detect likely salary deposits.

    Inflows are grouped by normalized description first. When no group looks
    like pay, inflows are bucketed by amount instead so salaries paid under
    changing references are still found.

    Args:
        transactions: Transaction history, inflows are positive amounts.
        settings: Detection thresholds.

    Returns:
        Candidates ordered by amount, largest first.
    """
    frame = _inflow_frame(transactions)
    if frame.empty:
        return []

    memo: GapMemo = {}
    candidates: List[SalaryCandidate] = []
    for payee, group in frame.groupby('payee', sort=True):
        candidate = _candidate_from_group(group, payee, settings, memo, (payee, None))
        if candidate is not None:
            candidates.append(candidate)

    if not candidates:
        bucket_size = settings.salary_bucket
        frame['bucket'] = frame['amount'].map(lambda amount: round_half_up(amount / bucket_size) * bucket_size)
        for bucket, group in frame.groupby('bucket', sort=True):
            candidate = _candidate_from_group(group, 'inflow cluster', settings, memo, ('inflow cluster', float(bucket)))
            if candidate is not None:
                candidates.append(candidate)

    result = _dedupe(candidates, settings)
    logger.debug('Salary detection: %d inflows, %d candidates', len(frame), len(result))
    return result


def _inflow_frame(transactions: Iterable[Transaction]) -> pd.DataFrame:
    columns = ['date', 'amount', 'payee']
    rows = [
        {'date': txn.date, 'amount': txn.amount, 'payee': normalize_description(txn.text)}
        for txn in transactions
        if txn.amount > 0
    ]
    frame = pd.DataFrame(rows, columns=columns)
    if frame.empty:
        return frame
    return frame.sort_values('date', kind='stable').reset_index(drop=True)


def _candidate_from_group(group, description, settings, memo, key) -> Optional[SalaryCandidate]:
    dates = sorted(group['date'])
    if len(dates) < 2:
        return None
    analysis = analyse_date_pattern(dates, settings, memo, key)
    if analysis.frequency not in PAY_FREQUENCIES:
        return None
    average = float(group['amount'].mean())
    if average < settings.salary_min_amount and not SALARY_PATTERN.search(description):
        return None
    return SalaryCandidate(
        amount=round(average, 2),
        frequency=analysis.frequency,
        description=description,
        first_seen=dates[0],
    )


def _dedupe(candidates: List[SalaryCandidate], settings: DetectionSettings) -> List[SalaryCandidate]:
    ordered = sorted(candidates, key=lambda c: (-c.amount, c.description))
    seen = set()
    kept = []
    for candidate in ordered:
        bucket = round_half_up(candidate.amount / settings.salary_dedupe_bucket)
        key = (candidate.frequency, bucket)
        if key in seen:
            continue
        seen.add(key)
        kept.append(candidate)
    return kept


def schedule_from_salary(candidate: SalaryCandidate) -> PaySchedule:
    """Pay schedule anchored on the first time the salary was seen."""
    return PaySchedule(candidate.frequency, candidate.first_seen)
