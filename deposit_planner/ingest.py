"""Convert canonical transaction tables into :class:`Transaction` records.

The frame is expected to already use the canonical column names
(``Transaction Date``, ``Amount``, ``Description`` and optionally
``Narrative``, ``Bank Code`` and ``id``). Bank specific exports have to be
mapped onto these columns before they reach the planner.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, List, Mapping, Optional

import pandas as pd

from .models import Transaction

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = ['Transaction Date', 'Amount']


def _clean_text(value: Any) -> Optional[str]:
    if value is None or (not isinstance(value, str) and pd.isna(value)):
        return None
    text = str(value).strip()
    return text or None


def transactions_from_frame(df: pd.DataFrame) -> List[Transaction]:
    """Build transactions from a canonical DataFrame.

    Rows whose date can't be parsed are skipped; amounts that can't be
    parsed become ``0.0``.

    Raises:
        ValueError: If a required column is missing.
    """
    if df is None or df.empty:
        return []
    missing = [column for column in REQUIRED_COLUMNS if column not in df.columns]
    if missing:
        raise ValueError(f"Missing required columns: {', '.join(missing)}")

    data = df.copy()
    issues: List[str] = []

    parsed = pd.to_datetime(data['Transaction Date'], errors='coerce')
    invalid = parsed.isna()
    if invalid.any():
        issues.append(f"Skipped {invalid.sum()} rows with unparseable 'Transaction Date'.")
    data['Transaction Date'] = parsed

    amounts = pd.to_numeric(data['Amount'], errors='coerce')
    bad_amounts = amounts.isna() & ~invalid
    if bad_amounts.any():
        issues.append(f"Replaced {bad_amounts.sum()} unparseable amounts with 0.0.")
    data['Amount'] = amounts.fillna(0.0)

    data = data[~invalid]
    transactions = []
    for index, row in data.iterrows():
        identifier = _clean_text(row.get('id'))
        transactions.append(Transaction(
            id=identifier or f'txn-{index}',
            date=row['Transaction Date'].date(),
            amount=float(row['Amount']),
            description=_clean_text(row.get('Description')) or '',
            narrative=_clean_text(row.get('Narrative')),
            bank_code=_clean_text(row.get('Bank Code')),
        ))

    for issue in issues:
        logger.warning(issue)
    return transactions


def transactions_from_records(rows: Iterable[Mapping[str, Any]]) -> List[Transaction]:
    """Build transactions from plain dicts keyed ``date``, ``amount``, ``description``..."""
    transactions = []
    skipped = 0
    for index, row in enumerate(rows):
        record = dict(row)
        record.setdefault('id', f'txn-{index}')
        txn = Transaction.from_record(record)
        if txn is None:
            skipped += 1
            continue
        transactions.append(txn)
    if skipped:
        logger.warning('Skipped %d records with unparseable dates.', skipped)
    return transactions
