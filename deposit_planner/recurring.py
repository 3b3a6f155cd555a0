"""Helpers for detecting recurring bills like direct debits or subscriptions."""

from __future__ import annotations

import logging
import math
import re
from collections import Counter
from dataclasses import dataclass, replace
from datetime import date
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd
from dateutil.relativedelta import relativedelta

from .calendar_utils import roll_to_business_day
from .models import Frequency, RecurringItem, Transaction
from .settings import DEFAULT_SETTINGS, DetectionSettings

logger = logging.getLogger(__name__)

RECURRING_HINT = re.compile(r'\b(dd|direct ?debit|standing ?order|sepa|s/?o)\b', re.IGNORECASE)
RECURRING_BANK_CODES = {
    'DD', 'DIRECT_DEBIT', 'DIRECTDEBIT', 'SO', 'STANDING_ORDER', 'STANDINGORDER', 'SEPA_DD',
}
NOISE_WORDS = re.compile(r'\b(sepa|dd|direct debit|standing order|so|pos|ref|card)\b')
EMITTED_FREQUENCIES = {Frequency.WEEKLY, Frequency.FORTNIGHTLY, Frequency.MONTHLY}

MemoKey = Tuple[str, Optional[float]]


@dataclass(frozen=True)
class GapAnalysis:
    """Outcome of classifying the gaps between observed dates."""

    frequency: Frequency
    gaps: Tuple[int, ...] = ()
    rule: str = 'none'

    @property
    def found(self) -> bool:
        return self.frequency is not Frequency.UNKNOWN


GapMemo = Dict[MemoKey, GapAnalysis]


def normalize_description(value: Any) -> str:
    """Normalize narrative text so detection groups the same payee together."""
    if not isinstance(value, str):
        return 'unknown'
    text = value.lower()
    text = re.sub(r'^pos\s*\d{2}[a-z]{3}\s*', '', text)
    text = re.sub(r'\d{6,}', ' ', text)
    text = re.sub(r'[^a-z0-9 ]+', ' ', text)
    text = NOISE_WORDS.sub(' ', text)
    tokens = re.sub(r'\s+', ' ', text).strip().split(' ')
    # trailing reference codes such as "ab12"
    if len(tokens) > 1 and len(tokens[-1]) <= 4 and any(ch.isdigit() for ch in tokens[-1]):
        tokens = tokens[:-1]
    return ' '.join(tokens).strip() or 'unknown'


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


# ---------------------------------------------------------------------------
# Gap classification
# ---------------------------------------------------------------------------


def analyse_date_pattern(
    dates: Sequence[date],
    settings: DetectionSettings = DEFAULT_SETTINGS.detection,
    memo: Optional[GapMemo] = None,
    key: Optional[MemoKey] = None,
) -> GapAnalysis:
    """Classify the cadence of ``dates``.

    Rules are tried in order: exact-fortnight override, bucket majority,
    bucket plurality, median gap, then the two-observation heuristic. When
    ``memo`` and ``key`` are given the result is cached in ``memo``.
    """
    if memo is not None and key is not None and key in memo:
        return memo[key]
    result = _classify_gaps(sorted(dates), settings)
    if memo is not None and key is not None:
        memo[key] = result
    return result


def _gap_windows(settings: DetectionSettings) -> List[Tuple[Frequency, Tuple[int, int]]]:
    return [
        (Frequency.WEEKLY, settings.weekly_gap),
        (Frequency.FORTNIGHTLY, settings.fortnightly_gap),
        (Frequency.MONTHLY, settings.monthly_gap),
        (Frequency.YEARLY, settings.yearly_gap),
    ]


def _classify_gaps(ordered: List[date], settings: DetectionSettings) -> GapAnalysis:
    if len(ordered) < 2:
        return GapAnalysis(Frequency.UNKNOWN)
    gaps = tuple((later - earlier).days for earlier, later in zip(ordered, ordered[1:]))
    total = len(gaps)

    exact_fortnights = sum(1 for gap in gaps if gap == 14)
    if (
        exact_fortnights >= settings.exact_fortnight_min_gaps
        and exact_fortnights / total >= settings.exact_fortnight_share
    ):
        return GapAnalysis(Frequency.FORTNIGHTLY, gaps, 'exact-fortnight')

    windows = _gap_windows(settings)
    counts = [(freq, sum(1 for gap in gaps if low <= gap <= high)) for freq, (low, high) in windows]
    for freq, count in counts:
        if count / total >= settings.majority_share:
            return GapAnalysis(freq, gaps, 'majority')

    best_freq, best_count = max(counts, key=lambda item: item[1])
    if best_count >= settings.plurality_min_gaps and best_count / total >= settings.plurality_share:
        return GapAnalysis(best_freq, gaps, 'plurality')

    median = sorted(gaps)[total // 2]
    for freq, (low, high) in windows:
        if low <= median <= high:
            return GapAnalysis(freq, gaps, 'median')

    if len(ordered) == 2:
        gap = gaps[0]
        centre, slack = settings.two_point_monthly_gap
        if abs(gap - centre) <= slack and abs(ordered[0].day - ordered[1].day) <= settings.two_point_monthly_dom_slack:
            return GapAnalysis(Frequency.MONTHLY, gaps, 'two-point')
        centre, slack = settings.two_point_fortnight_gap
        if abs(gap - centre) <= slack and ordered[0].weekday() == ordered[1].weekday():
            return GapAnalysis(Frequency.FORTNIGHTLY, gaps, 'two-point')

    return GapAnalysis(Frequency.UNKNOWN, gaps, 'none')


# ---------------------------------------------------------------------------
# Anchors
# ---------------------------------------------------------------------------


def infer_monthly_anchor(observed: Sequence[date]) -> Optional[int]:
    """Infer the scheduled day-of-month behind business-day rolled dates.

    For each observation, collect the days of its month that roll onto the
    observed date. A single common day wins outright, several common days
    resolve to the smallest. With no common day the most supported day wins,
    ties going to the day seen first.
    """
    if len(observed) < 2:
        return None
    per_month = []
    for seen in observed:
        last_day = (seen + relativedelta(day=31)).day
        per_month.append([
            dom for dom in range(1, last_day + 1)
            if roll_to_business_day(date(seen.year, seen.month, dom)) == seen
        ])

    common = set.intersection(*(set(candidates) for candidates in per_month))
    if common:
        return min(common)

    votes = Counter(dom for candidates in per_month for dom in candidates)
    if not votes:
        return None
    return max(votes, key=votes.get)


def infer_day_of_week(observed: Sequence[date]) -> int:
    weekdays = pd.Series([seen.weekday() for seen in observed], dtype=int)
    return int(weekdays.mode().iloc[0])


# ---------------------------------------------------------------------------
# Bill detection
# ---------------------------------------------------------------------------


def detect_recurring_bills(
    transactions: Iterable[Transaction],
    settings: DetectionSettings = DEFAULT_SETTINGS.detection,
) -> List[RecurringItem]:
    """Identify recurring outgoing payments in a transaction history."""
    frame = _outflow_frame(transactions)
    if frame.empty:
        return []

    memo: GapMemo = {}
    items: List[RecurringItem] = []
    matched = set()

    grouped = frame.groupby(['payee', 'amount_key'], sort=True)
    for (payee, amount_key), group in grouped:
        item = _strict_item(payee, float(amount_key), group, settings, memo)
        if item is not None:
            items.append(item)
            matched.add(payee)

    for payee, group in frame.groupby('payee', sort=True):
        if payee in matched:
            continue
        item = _loose_item(payee, group, settings, memo)
        if item is not None:
            items.append(item)

    merged = _merge_items(items, settings)
    logger.debug('Recurring detection: %d outflows, %d groups analysed, %d bills', len(frame), len(memo), len(merged))
    return merged


def _outflow_frame(transactions: Iterable[Transaction]) -> pd.DataFrame:
    columns = ['id', 'observed', 'amount', 'raw', 'payee', 'bank_code']
    rows = [
        {
            'id': txn.id,
            'observed': roll_to_business_day(txn.date),
            'amount': abs(txn.amount),
            'raw': txn.text or 'unknown',
            'payee': normalize_description(txn.text),
            'bank_code': (txn.bank_code or '').upper(),
        }
        for txn in transactions
        if txn.amount < 0
    ]
    frame = pd.DataFrame(rows, columns=columns)
    if frame.empty:
        return frame
    frame['amount_key'] = frame['amount'].apply(round_half_up)
    return frame.sort_values('observed', kind='stable').reset_index(drop=True)


def _strict_item(
    payee: str,
    amount_key: float,
    group: pd.DataFrame,
    settings: DetectionSettings,
    memo: GapMemo,
) -> Optional[RecurringItem]:
    observed = list(group['observed'])
    analysis = analyse_date_pattern(observed, settings, memo, (payee, amount_key))
    if not analysis.found:
        return None
    if analysis.frequency in (Frequency.MONTHLY, Frequency.FORTNIGHTLY):
        min_hits = settings.strict_min_hits_monthly
    else:
        min_hits = settings.strict_min_hits
    if len(group) < min_hits:
        return None
    latest = group.iloc[-1]
    return _build_item(latest['raw'], float(latest['amount']), analysis.frequency, observed)


def _loose_item(
    payee: str,
    group: pd.DataFrame,
    settings: DetectionSettings,
    memo: GapMemo,
) -> Optional[RecurringItem]:
    if len(group) < settings.loose_min_hits:
        return None
    observed = list(group['observed'])
    analysis = analyse_date_pattern(observed, settings, memo, (payee, None))
    if not analysis.found:
        return None

    amounts = group['amount'].to_numpy(dtype=float)
    median = float(np.sort(amounts)[len(amounts) // 2])
    if median <= 0:
        return None
    in_band = np.abs(amounts - median) / median <= settings.loose_amount_tolerance
    if in_band.mean() < settings.loose_majority_share:
        return None
    if not _has_recurring_hint(group):
        return None

    latest = group.iloc[-1]
    return _build_item(latest['raw'], float(latest['amount']), analysis.frequency, observed)


def _has_recurring_hint(group: pd.DataFrame) -> bool:
    if group['raw'].map(lambda raw: bool(RECURRING_HINT.search(raw or ''))).any():
        return True
    return bool(group['bank_code'].isin(RECURRING_BANK_CODES).any())


def _build_item(description: str, amount: float, frequency: Frequency, observed: List[date]) -> Optional[RecurringItem]:
    if frequency not in EMITTED_FREQUENCIES:
        return None
    name = (description or '').strip() or 'bill'
    if frequency is Frequency.MONTHLY:
        dom = infer_monthly_anchor(observed)
        if dom is None:
            return None
        return RecurringItem(
            description=name,
            amount=round(amount, 2),
            frequency=frequency,
            day_of_month=dom,
            sample_dates=tuple(observed[-3:]),
            occurrences=len(observed),
        )
    return RecurringItem(
        description=name,
        amount=round(amount, 2),
        frequency=frequency,
        day_of_week=infer_day_of_week(observed),
        sample_dates=tuple(observed[-3:]),
        occurrences=len(observed),
    )


def _merge_items(items: List[RecurringItem], settings: DetectionSettings) -> List[RecurringItem]:
    merged: Dict[Tuple[str, Optional[int], str], RecurringItem] = {}
    for item in items:
        anchor = item.day_of_month if item.frequency is Frequency.MONTHLY else item.day_of_week
        key = (item.frequency.value, anchor, normalize_description(item.description))
        existing = merged.get(key)
        if existing is None:
            merged[key] = item
            continue
        if item.occurrences > existing.occurrences:
            merged[key] = item
            continue
        if abs(item.amount - existing.amount) <= settings.merge_amount_slack:
            merged[key] = replace(existing, amount=round((existing.amount + item.amount) / 2, 2))
    return sorted(merged.values(), key=lambda it: (it.description.lower(), it.frequency.value, it.amount))
