"""Mini README: Tests for transaction records and feed filters.

Structure:
    * Transaction - row conversion and feed-wide identifiers.
    * TransactionFilters - coercion, blank handling, and range validation.
"""

from __future__ import annotations

from datetime import datetime

import pytest

from feeledger.errors import ValidationFailed
from feeledger.finance import Transaction, TransactionFilters, TransactionKind


def test_transaction_from_row_builds_prefixed_identifier() -> None:
    row = {
        "source_id": 7,
        "kind": "income",
        "payment_type": "fee",
        "category": "Tuition",
        "amount": 1500,
        "date": "2024-06-01T10:00:00",
        "description": "Semester fee",
        "student_name": "Asha Patil",
        "student_prn": "PRN001",
        "sender_name": None,
        "receiver_name": None,
        "receipt_number": "RCP-20240601-12345",
    }

    transaction = Transaction.from_row(row)
    exported = transaction.as_dict()

    assert transaction.kind is TransactionKind.INCOME
    assert transaction.occurred_on == datetime(2024, 6, 1, 10, 0)
    assert exported["id"] == "income-7"
    assert exported["amount"] == pytest.approx(1500.0)
    assert exported["studentPrn"] == "PRN001"


def test_filters_ignore_blank_and_all_values() -> None:
    filters = TransactionFilters.from_query(
        {"kind": "all", "payment_type": "", "category": None, "year": "2024"}
    )

    assert filters.kind is None
    assert filters.payment_type is None
    assert filters.year == 2024
    assert filters.includes_income and filters.includes_expenditure


def test_payment_type_filter_excludes_expenditures() -> None:
    filters = TransactionFilters.from_query({"payment_type": "FEE"})

    assert filters.payment_type == "fee"
    assert filters.includes_income
    assert not filters.includes_expenditure


def test_bare_end_date_covers_whole_day() -> None:
    filters = TransactionFilters.from_query({"from_date": "2024-01-01", "to_date": "2024-01-31"})

    assert filters.from_date == datetime(2024, 1, 1)
    assert filters.to_date.date() == datetime(2024, 1, 31).date()
    assert filters.to_date.hour == 23


def test_invalid_filters_report_every_field() -> None:
    with pytest.raises(ValidationFailed) as excinfo:
        TransactionFilters.from_query({"kind": "refund", "month": "13", "min_amount": "-5"})

    assert set(excinfo.value.errors) == {"kind", "month", "min_amount"}


def test_inverted_ranges_are_rejected() -> None:
    with pytest.raises(ValidationFailed) as excinfo:
        TransactionFilters.from_query(
            {
                "min_amount": "500",
                "max_amount": "100",
                "from_date": "2024-02-01",
                "to_date": "2024-01-01",
            }
        )

    assert "max_amount" in excinfo.value.errors
    assert "to_date" in excinfo.value.errors
