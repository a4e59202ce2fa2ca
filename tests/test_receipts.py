"""Mini README: Tests for receipt number generation and allocation."""

from __future__ import annotations

from datetime import datetime, timezone
from itertools import cycle

import pytest

from feeledger.database import Fine, Student
from feeledger.finance import allocate_receipt_number, generate_receipt_number
from feeledger.finance.receipts import RECEIPT_PATTERN
from feeledger.students import FineRepository


def test_generated_receipt_uses_utc_date_and_five_digits() -> None:
    number = generate_receipt_number(
        datetime(2024, 3, 9, 23, 30, tzinfo=timezone.utc), randint=lambda low, high: 10000
    )

    assert number == "RCP-20240309-10000"
    assert RECEIPT_PATTERN.match(generate_receipt_number())


def test_allocation_retries_past_taken_numbers(session) -> None:
    student = Student(prn="PRN100", name="Ravi Kumar")
    student.fines.append(Fine(amount=100.0, receipt_number="RCP-20240101-11111"))
    session.add(student)
    session.flush()

    candidates = iter(["RCP-20240101-11111", "RCP-20240101-22222"])

    allocated = allocate_receipt_number(
        FineRepository(session).receipt_taken, generator=lambda: next(candidates)
    )

    assert allocated == "RCP-20240101-22222"


def test_allocation_gives_up_after_bounded_attempts(session) -> None:
    student = Student(prn="PRN101", name="Meera Joshi")
    student.fines.append(Fine(amount=50.0, receipt_number="RCP-20240101-33333"))
    session.add(student)
    session.flush()

    taken = cycle(["RCP-20240101-33333"])

    with pytest.raises(RuntimeError):
        allocate_receipt_number(
            FineRepository(session).receipt_taken, generator=lambda: next(taken), attempts=3
        )
