"""Chronological balance simulation over a forecast horizon."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import FrozenSet, Iterable, List, Optional, Sequence, Tuple

import pandas as pd

from .bills import bills_in_window, rolled_due_date
from .calendar_utils import IRISH_BANK_HOLIDAYS, generate_pay_dates, horizon_end
from .models import Bill, ForecastResult, PaySchedule, TimelineEvent


@dataclass(frozen=True)
class DepositStream:
    """A fixed deposit paid on every date of a pay schedule."""

    schedule: PaySchedule
    amount: float
    label: str = 'Deposit'


def simulate_timeline(
    initial_balance: float,
    deposits: Sequence[DepositStream],
    bills: Iterable[Bill],
    start: date,
    horizon_months: int = 12,
    fairness_ratio: Optional[float] = None,
    buffer: float = 0.0,
    holidays: FrozenSet[date] = IRISH_BANK_HOLIDAYS,
) -> ForecastResult:
    """Replay deposits and bills in date order and track the balance.

    Deposits fall on their unrolled pay dates; bills fall on their
    business-day rolled due dates and only count when that date is inside
    the horizon. With a ``fairness_ratio`` each bill is split into an A
    share and a B share event. Events on the same date keep insertion
    order, so deposits land before bills.

    The minimum only looks at balances on or after the first deposit date,
    then ``buffer`` is subtracted from it.
    """
    if fairness_ratio is not None and not 0.0 <= fairness_ratio <= 1.0:
        raise ValueError(f'fairness ratio must be within [0, 1], got {fairness_ratio}')
    end = horizon_end(start, horizon_months)

    events: List[Tuple[date, float, str]] = []
    for stream in deposits:
        schedule = stream.schedule
        for pay_date in generate_pay_dates(schedule.frequency, schedule.anchor, horizon_months, start):
            events.append((pay_date, stream.amount, stream.label))
    first_deposit = min((when for when, _, _ in events), default=None)

    for bill in bills_in_window(bills, start, end, holidays):
        due = rolled_due_date(bill, holidays)
        if fairness_ratio is None:
            events.append((due, -bill.amount, bill.name))
        else:
            events.append((due, -bill.amount * fairness_ratio, f'{bill.name} (A share)'))
            events.append((due, -bill.amount * (1.0 - fairness_ratio), f'{bill.name} (B share)'))

    events.sort(key=lambda event: event[0])

    balance = float(initial_balance)
    minimum = None if first_deposit is not None else balance
    trough = None
    timeline = []
    for when, delta, label in events:
        balance += delta
        timeline.append(TimelineEvent(when, round(delta, 2), label, round(balance, 2)))
        if first_deposit is not None and when < first_deposit:
            continue
        if minimum is None or balance < minimum:
            minimum = balance
            trough = when

    if minimum is None:
        minimum = balance
    return ForecastResult(
        min_balance=round(minimum - buffer, 2),
        end_balance=round(balance, 2),
        timeline=tuple(timeline),
        trough_date=trough,
        first_deposit_date=first_deposit,
    )


def timeline_frame(result: ForecastResult) -> pd.DataFrame:
    """Tabular view of a forecast timeline for hosts that chart it."""
    frame = pd.DataFrame(
        [(event.date, event.delta, event.label, event.balance) for event in result.timeline],
        columns=['date', 'delta', 'label', 'balance'],
    )
    frame['date'] = pd.to_datetime(frame['date'])
    return frame
