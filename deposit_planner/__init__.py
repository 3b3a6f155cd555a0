"""Top-level package for the household deposit planner.

The primary modules are:

* ``recurring`` and ``income`` – detection of recurring bills and salaries
  in a transaction history
* ``timeline`` – day-by-day balance simulation over a horizon
* ``solver`` – the smallest deposits that keep the balance above target
* ``start_dates`` and ``nudges`` – start-date selection and bill-date
  suggestions built on top of the solver
* ``engine`` – the two entry points hosts call

Everything is a pure computation over frozen dataclasses, so calls can be
run in a worker process and their results passed back as plain data.
"""

from .engine import analyze_transactions, build_earners, simulate  # noqa: F401
from .models import (  # noqa: F401
    AnalysisResult,
    Bill,
    BillSuggestion,
    DepositPlan,
    EarnerInputs,
    Frequency,
    JointEarners,
    PaySchedule,
    PlanInputs,
    PlanResult,
    RecurringItem,
    SalaryCandidate,
    SavingsCommitment,
    SingleEarner,
    Transaction,
)

__version__ = '0.1.0'
