"""Data models shared by the detector, simulator and solvers.

Every record is a frozen dataclass so results can be handed across process
boundaries and compared by value. Constructors accept ISO strings for dates
and plain strings for enums, the same way the income and bill models coerce
their fields on load.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Tuple, Union


class Frequency(Enum):
    WEEKLY = 'weekly'
    FORTNIGHTLY = 'fortnightly'
    FOUR_WEEKLY = 'four_weekly'
    MONTHLY = 'monthly'
    YEARLY = 'yearly'
    UNKNOWN = 'unknown'


PAY_FREQUENCIES = (
    Frequency.WEEKLY,
    Frequency.FORTNIGHTLY,
    Frequency.FOUR_WEEKLY,
    Frequency.MONTHLY,
)

CYCLES_PER_MONTH: Dict[Frequency, float] = {
    Frequency.WEEKLY: 52 / 12,
    Frequency.FORTNIGHTLY: 26 / 12,
    Frequency.FOUR_WEEKLY: 13 / 12,
    Frequency.MONTHLY: 1.0,
    Frequency.YEARLY: 1 / 12,
}

DAY_STEPS: Dict[Frequency, int] = {
    Frequency.WEEKLY: 7,
    Frequency.FORTNIGHTLY: 14,
    Frequency.FOUR_WEEKLY: 28,
}

BILL_SOURCES = {'manual', 'predicted', 'imported'}
OWNERS = {'A', 'B', 'JOINT'}


def as_frequency(value: Union[str, Frequency]) -> Frequency:
    if isinstance(value, Frequency):
        return value
    text = str(value).strip().lower().replace('-', '_')
    if text == 'biweekly':
        return Frequency.FORTNIGHTLY
    return Frequency(text)


def as_date(value: Union[str, date, datetime]) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return datetime.strptime(str(value)[:10], '%Y-%m-%d').date()


def cycles_per_month(frequency: Union[str, Frequency]) -> float:
    """Return how many cycles of ``frequency`` fall in an average month."""
    freq = as_frequency(frequency)
    if freq not in CYCLES_PER_MONTH:
        raise ValueError(f"No cycles-per-month factor for frequency '{freq.value}'")
    return CYCLES_PER_MONTH[freq]


# ---------------------------------------------------------------------------
# Transaction history and detection output
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Transaction:
    id: str
    date: date
    amount: float
    description: str
    narrative: Optional[str] = None
    bank_code: Optional[str] = None

    def __post_init__(self):
        object.__setattr__(self, 'date', as_date(self.date))
        object.__setattr__(self, 'amount', float(self.amount))

    @property
    def text(self) -> str:
        """Narrative when the bank supplied one, otherwise the description."""
        return self.narrative or self.description or ''

    @classmethod
    def from_record(cls, record: Mapping[str, Any], *, fallback_date: Optional[date] = None) -> Optional['Transaction']:
        """Build a transaction from a loose mapping.

        Unparseable amounts become ``0.0``. Unparseable dates use
        ``fallback_date`` when given, otherwise the row is skipped and
        ``None`` is returned.
        """
        try:
            when = as_date(record.get('date'))
        except (TypeError, ValueError):
            if fallback_date is None:
                return None
            when = fallback_date
        try:
            amount = float(record.get('amount'))
        except (TypeError, ValueError):
            amount = 0.0
        if amount != amount:  # NaN
            amount = 0.0
        description = record.get('description')
        return cls(
            id=str(record.get('id', '')),
            date=when,
            amount=amount,
            description=str(description) if description is not None else '',
            narrative=record.get('narrative') or None,
            bank_code=record.get('bank_code') or None,
        )


@dataclass(frozen=True)
class RecurringItem:
    description: str
    amount: float
    frequency: Frequency
    day_of_month: Optional[int] = None
    day_of_week: Optional[int] = None  # 0 = Monday
    sample_dates: Tuple[date, ...] = ()
    occurrences: int = 0

    def __post_init__(self):
        object.__setattr__(self, 'frequency', as_frequency(self.frequency))
        object.__setattr__(self, 'sample_dates', tuple(as_date(d) for d in self.sample_dates[-3:]))

    @property
    def confidence(self) -> str:
        if self.occurrences >= 6:
            return 'High'
        if self.occurrences >= 3:
            return 'Medium'
        return 'Low'


@dataclass(frozen=True)
class SalaryCandidate:
    amount: float
    frequency: Frequency
    description: str
    first_seen: date

    def __post_init__(self):
        object.__setattr__(self, 'frequency', as_frequency(self.frequency))
        object.__setattr__(self, 'first_seen', as_date(self.first_seen))

    @property
    def monthly_amount(self) -> float:
        return round(self.amount * cycles_per_month(self.frequency), 2)


@dataclass(frozen=True)
class AnalysisResult:
    salaries: Tuple[SalaryCandidate, ...]
    recurring: Tuple[RecurringItem, ...]


# ---------------------------------------------------------------------------
# Schedules, bills and the simulated ledger
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PaySchedule:
    frequency: Frequency
    anchor: date

    def __post_init__(self):
        freq = as_frequency(self.frequency)
        if freq not in PAY_FREQUENCIES:
            raise ValueError(f"'{freq.value}' is not a pay frequency")
        object.__setattr__(self, 'frequency', freq)
        object.__setattr__(self, 'anchor', as_date(self.anchor))

    @property
    def cycles_per_month(self) -> float:
        return CYCLES_PER_MONTH[self.frequency]


@dataclass(frozen=True)
class Bill:
    id: str
    name: str
    amount: float
    due_date: date
    issue_date: Optional[date] = None
    source: str = 'manual'
    movable: bool = True

    def __post_init__(self):
        object.__setattr__(self, 'due_date', as_date(self.due_date))
        issue = self.issue_date if self.issue_date is not None else self.due_date
        object.__setattr__(self, 'issue_date', as_date(issue))
        object.__setattr__(self, 'amount', abs(float(self.amount)))
        if self.source not in BILL_SOURCES:
            raise ValueError(f"Unknown bill source '{self.source}'")


@dataclass(frozen=True)
class TimelineEvent:
    date: date
    delta: float
    label: str
    balance: float = 0.0


@dataclass(frozen=True)
class ForecastResult:
    min_balance: float
    end_balance: float
    timeline: Tuple[TimelineEvent, ...] = ()
    trough_date: Optional[date] = None
    first_deposit_date: Optional[date] = None


# ---------------------------------------------------------------------------
# Earner coupling
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SingleEarner:
    schedule: PaySchedule

    @property
    def schedules(self) -> Tuple[PaySchedule, ...]:
        return (self.schedule,)

    @property
    def shares(self) -> Tuple[float, ...]:
        return (1.0,)

    @property
    def fairness_ratio(self) -> Optional[float]:
        return None


@dataclass(frozen=True)
class JointEarners:
    schedule_a: PaySchedule
    schedule_b: PaySchedule
    ratio: float = 0.5

    def __post_init__(self):
        if not 0.0 <= self.ratio <= 1.0:
            raise ValueError(f'fairness ratio must be within [0, 1], got {self.ratio}')

    @property
    def schedules(self) -> Tuple[PaySchedule, ...]:
        return (self.schedule_a, self.schedule_b)

    @property
    def shares(self) -> Tuple[float, ...]:
        return (self.ratio, 1.0 - self.ratio)

    @property
    def fairness_ratio(self) -> Optional[float]:
        return self.ratio


Earners = Union[SingleEarner, JointEarners]


# ---------------------------------------------------------------------------
# Solver, optimizer and advisor output
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DepositPlan:
    deposits: Tuple[float, ...]
    monthly_equivalents: Tuple[float, ...]
    forecast: ForecastResult
    start_date: date
    fairness_ratio: Optional[float] = None
    factor: float = 0.0
    baseline_monthly: float = 0.0
    target: float = 0.0

    @property
    def monthly_total(self) -> float:
        return round(sum(self.monthly_equivalents), 2)

    @property
    def feasible(self) -> bool:
        return self.forecast.min_balance >= self.target


@dataclass(frozen=True)
class BillSuggestion:
    bill_id: str
    bill_name: str
    current_date: date
    suggested_date: date
    monthly_saving: float
    min_balance: float
    reason: str


# ---------------------------------------------------------------------------
# Entry-point inputs and result
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class EarnerInputs:
    schedule: PaySchedule
    monthly_income: float = 0.0
    weekly_allowance: float = 0.0


@dataclass(frozen=True)
class SavingsCommitment:
    name: str
    monthly: float
    owner: str = 'JOINT'

    def __post_init__(self):
        owner = str(self.owner).upper()
        if owner not in OWNERS:
            raise ValueError(f"Savings owner must be one of {sorted(OWNERS)}, got '{self.owner}'")
        object.__setattr__(self, 'owner', owner)


@dataclass(frozen=True)
class PlanInputs:
    earner_a: EarnerInputs
    start_date: date
    bills: Tuple[Bill, ...] = ()
    earner_b: Optional[EarnerInputs] = None
    horizon_months: int = 12
    min_balance_target: float = 0.0
    initial_balance: float = 0.0
    buffer: float = 0.0
    savings: Tuple[SavingsCommitment, ...] = ()
    mode: str = 'auto'

    def __post_init__(self):
        object.__setattr__(self, 'start_date', as_date(self.start_date))
        object.__setattr__(self, 'bills', tuple(self.bills))
        object.__setattr__(self, 'savings', tuple(self.savings))
        if self.mode not in {'auto', 'single', 'joint'}:
            raise ValueError(f"mode must be 'auto', 'single' or 'joint', got '{self.mode}'")
        if self.mode == 'joint' and self.earner_b is None:
            raise ValueError('joint mode needs earner_b')

    @property
    def is_joint(self) -> bool:
        return self.earner_b is not None and self.mode != 'single'


@dataclass(frozen=True)
class PlanResult:
    min_balance: float
    end_balance: float
    required_deposits: Tuple[float, ...]
    start_date: date
    timeline: Tuple[TimelineEvent, ...]
    monthly_total: float
    feasible: bool
    fairness_ratio: Optional[float] = None
    bill_suggestions: Optional[Tuple[BillSuggestion, ...]] = field(default=None)
