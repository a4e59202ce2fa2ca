"""Mini README: Unified transaction records spanning income and expenditure.

Structure:
    * TransactionKind - enum separating income (student fines/fees) from
      expenditures.
    * Transaction - uniformly shaped record built from either source.
    * TransactionFilters - validated filter set applied to both sources.

Fines and expenditures are stored in different tables with different
columns. The report engine selects both into one column layout and turns
each row into a ``Transaction`` so callers page through a single feed.
Filters are coerced once, up front, so the same constraints reach both
halves of the query.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Dict, Mapping, Optional

from ..errors import ValidationFailed
from ..utils.parsing import clean_text, parse_amount, parse_datetime

ALL = "all"


class TransactionKind(str, Enum):
    """Enumerate the two sources merged into the transaction feed."""

    INCOME = "income"
    EXPENDITURE = "expenditure"

    @classmethod
    def from_str(cls, value: str) -> "TransactionKind":
        """Coerce arbitrary casing into a valid transaction kind."""

        try:
            normalised = value.strip().lower()
            return cls(normalised)
        except (ValueError, AttributeError) as error:
            raise ValueError(f"Unsupported transaction type: {value}") from error


@dataclass(slots=True)
class Transaction:
    """Represent one feed entry regardless of its source table."""

    source_id: int
    kind: TransactionKind
    payment_type: Optional[str]
    category: Optional[str]
    amount: float
    occurred_on: datetime
    description: Optional[str] = None
    student_name: Optional[str] = None
    student_prn: Optional[str] = None
    sender_name: Optional[str] = None
    receiver_name: Optional[str] = None
    receipt_number: Optional[str] = None

    @property
    def transaction_id(self) -> str:
        """Feed-wide identifier; fine and expenditure ids overlap on their own."""

        return f"{self.kind.value}-{self.source_id}"

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Transaction":
        """Build a transaction from a row of the unified feed query."""

        occurred_on = row["date"]
        if not isinstance(occurred_on, datetime):
            occurred_on = parse_datetime(occurred_on)
        return cls(
            source_id=int(row["source_id"]),
            kind=TransactionKind.from_str(row["kind"]),
            payment_type=row["payment_type"],
            category=row["category"],
            amount=float(row["amount"]),
            occurred_on=occurred_on,
            description=row["description"],
            student_name=row["student_name"],
            student_prn=row["student_prn"],
            sender_name=row["sender_name"],
            receiver_name=row["receiver_name"],
            receipt_number=row["receipt_number"],
        )

    def as_dict(self) -> Dict[str, object]:
        """Export the transaction with serialisable values."""

        return {
            "id": self.transaction_id,
            "sourceId": self.source_id,
            "kind": self.kind.value,
            "paymentType": self.payment_type,
            "category": self.category,
            "amount": self.amount,
            "date": self.occurred_on.isoformat(),
            "description": self.description,
            "studentName": self.student_name,
            "studentPrn": self.student_prn,
            "senderName": self.sender_name,
            "receiverName": self.receiver_name,
            "receiptNumber": self.receipt_number,
        }


@dataclass(frozen=True, slots=True)
class TransactionFilters:
    """Constraints shared by the income and expenditure halves of the feed."""

    kind: Optional[TransactionKind] = None
    payment_type: Optional[str] = None
    category: Optional[str] = None
    year: Optional[int] = None
    month: Optional[int] = None
    from_date: Optional[datetime] = None
    to_date: Optional[datetime] = None
    min_amount: Optional[float] = None
    max_amount: Optional[float] = None

    @property
    def includes_income(self) -> bool:
        return self.kind in (None, TransactionKind.INCOME)

    @property
    def includes_expenditure(self) -> bool:
        # Expenditures carry no payment type, so a fee/fine filter excludes them.
        return self.kind in (None, TransactionKind.EXPENDITURE) and self.payment_type is None

    @classmethod
    def from_query(cls, params: Mapping[str, Any]) -> "TransactionFilters":
        """Validate raw query parameters, collecting every field error."""

        coerced, errors = _coerce_filters(params)
        if errors:
            raise ValidationFailed.for_fields(errors)
        return cls(**coerced)


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    return isinstance(value, str) and value.strip().lower() in ("", ALL)


def _coerce_filters(params: Mapping[str, Any]) -> tuple[Dict[str, Any], Dict[str, str]]:
    coerced: Dict[str, Any] = {}
    errors: Dict[str, str] = {}

    for key, value in params.items():
        if _is_blank(value):
            continue
        try:
            if key == "kind":
                coerced[key] = TransactionKind.from_str(str(value))
            elif key == "payment_type":
                lowered = str(value).strip().lower()
                if lowered not in {"fine", "fee"}:
                    raise ValueError("Payment type must be 'fee', 'fine' or 'all'")
                coerced[key] = lowered
            elif key == "category":
                coerced[key] = clean_text(value)
            elif key == "year":
                coerced[key] = int(value)
            elif key == "month":
                month = int(value)
                if not 1 <= month <= 12:
                    raise ValueError("Month must be between 1 and 12")
                coerced[key] = month
            elif key == "from_date":
                coerced[key] = parse_datetime(value)
            elif key == "to_date":
                coerced[key] = _end_of_day_if_date_only(value)
            elif key in {"min_amount", "max_amount"}:
                coerced[key] = parse_amount(value)
            else:
                raise ValueError(f"Filtering by '{key}' is not supported.")
        except (TypeError, ValueError) as error:
            errors[key] = str(error)

    if (
        "min_amount" in coerced
        and "max_amount" in coerced
        and coerced["min_amount"] > coerced["max_amount"]
    ):
        errors["max_amount"] = "Maximum amount must not be below the minimum amount"
    if (
        "from_date" in coerced
        and "to_date" in coerced
        and coerced["from_date"] > coerced["to_date"]
    ):
        errors["to_date"] = "End date must not be before the start date"
    return coerced, errors


def _end_of_day_if_date_only(value: Any) -> datetime:
    """Treat a bare ``YYYY-MM-DD`` upper bound as inclusive of that whole day."""

    parsed = parse_datetime(value)
    if isinstance(value, str) and len(value.strip()) == 10:
        return parsed + timedelta(days=1) - timedelta(microseconds=1)
    return parsed
