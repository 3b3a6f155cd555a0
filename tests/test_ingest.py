from datetime import date

import numpy as np
import pandas as pd
import pytest

from deposit_planner.ingest import transactions_from_frame, transactions_from_records
from deposit_planner.models import Transaction


def test_frame_skips_bad_dates_and_zeroes_bad_amounts():
    df = pd.DataFrame([
        {'Transaction Date': '2025-09-01', 'Amount': -12.5, 'Description': 'Spotify', 'Narrative': np.nan, 'Bank Code': 'DD'},
        {'Transaction Date': 'not a date', 'Amount': -5.0, 'Description': 'Broken', 'Narrative': None, 'Bank Code': None},
        {'Transaction Date': '2025-09-03', 'Amount': 'n/a', 'Description': '  ', 'Narrative': 'POS CAFE', 'Bank Code': None},
    ])

    txns = transactions_from_frame(df)

    assert len(txns) == 2, "rows with unparseable dates are skipped"
    first, second = txns
    assert first == Transaction('txn-0', date(2025, 9, 1), -12.5, 'Spotify', None, 'DD')
    assert second.amount == 0.0
    assert second.description == ''
    assert second.text == 'POS CAFE'


def test_frame_ids_are_kept():
    df = pd.DataFrame([{'Transaction Date': '2025-09-01', 'Amount': 10, 'Description': 'Refund', 'id': 'abc'}])

    assert transactions_from_frame(df)[0].id == 'abc'


def test_frame_requires_core_columns():
    with pytest.raises(ValueError):
        transactions_from_frame(pd.DataFrame([{'Amount': 1.0}]))
    assert transactions_from_frame(pd.DataFrame()) == []


def test_records_skip_bad_dates_and_zero_bad_amounts():
    rows = [
        {'date': '2025-09-01', 'amount': '-20.00', 'description': 'Bins'},
        {'date': 'yesterday', 'amount': -1, 'description': 'Broken'},
        {'date': '2025-09-02', 'amount': 'abc', 'description': 'Odd', 'narrative': 'SO RENT'},
    ]

    txns = transactions_from_records(rows)

    assert [txn.id for txn in txns] == ['txn-0', 'txn-2']
    assert txns[0].amount == -20.0
    assert txns[1].amount == 0.0
    assert txns[1].text == 'SO RENT'


def test_from_record_fallback_date():
    txn = Transaction.from_record({'date': None, 'amount': 5}, fallback_date=date(2025, 1, 1))

    assert txn.date == date(2025, 1, 1)
    assert Transaction.from_record({'date': None, 'amount': 5}) is None
