"""Mini README: Departmental expenditure records and their aggregations.

Structure:
    * ExpenditureService - validated create/read/update/delete and listing.
    * Aggregations - total spend plus summaries grouped by category,
      department, and calendar month, all computed by the database.
    * expenditure_to_dict - JSON representation used by the routers.

Validation mirrors the storage limits: a non-negative amount, a required
description of at most 500 characters, and notes of at most 1000
characters. A missing record raises ``NotFoundError`` which is reported
separately from ``ValidationFailed``.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional, Tuple

from sqlalchemy import extract, func, or_, select
from sqlalchemy.orm import Session

from ..database.models import Expenditure
from ..errors import NotFoundError, ValidationFailed
from ..logging_utils import get_logger
from ..utils.pagination import PageRequest
from ..utils.parsing import clean_text, parse_amount, parse_datetime
from .categories import category_label, parse_category

LOGGER = get_logger(__name__)

MAX_DESCRIPTION_LENGTH = 500
MAX_NOTES_LENGTH = 1000
MAX_NAME_LENGTH = 100

_TEXT_FIELDS = ("sender_name", "receiver_name", "department", "receipt_number")


def expenditure_to_dict(expenditure: Expenditure) -> Dict[str, Any]:
    return {
        "id": expenditure.id,
        "amount": expenditure.amount,
        "description": expenditure.description,
        "category": expenditure.category,
        "senderName": expenditure.sender_name,
        "receiverName": expenditure.receiver_name,
        "department": expenditure.department,
        "date": expenditure.date.isoformat(),
        "receiptNumber": expenditure.receipt_number,
        "notes": expenditure.notes,
        "addedBy": expenditure.added_by_id,
        "createdAt": expenditure.created_at.isoformat() if expenditure.created_at else None,
        "updatedAt": expenditure.updated_at.isoformat() if expenditure.updated_at else None,
    }


class ExpenditureService:
    """Expenditure persistence and reporting bound to one session."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def create(self, data: Mapping[str, Any], *, added_by_id: Optional[int] = None) -> Expenditure:
        """Validate ``data`` and persist a new expenditure."""

        expenditure = Expenditure(added_by_id=added_by_id)
        self._apply(expenditure, data, partial=False)
        self.session.add(expenditure)
        self.session.flush()
        LOGGER.info(
            "Recorded expenditure %s: %.2f (%s)",
            expenditure.id,
            expenditure.amount,
            expenditure.category,
        )
        return expenditure

    def get(self, expenditure_id: int) -> Expenditure:
        expenditure = self.session.get(Expenditure, expenditure_id)
        if expenditure is None:
            raise NotFoundError("Expenditure not found")
        return expenditure

    def update(self, expenditure_id: int, data: Mapping[str, Any]) -> Expenditure:
        """Apply the provided fields to an existing expenditure."""

        expenditure = self.get(expenditure_id)
        self._apply(expenditure, data, partial=True)
        self.session.flush()
        LOGGER.info("Updated expenditure %s", expenditure_id)
        return expenditure

    def delete(self, expenditure_id: int) -> None:
        expenditure = self.get(expenditure_id)
        self.session.delete(expenditure)
        self.session.flush()
        LOGGER.info("Deleted expenditure %s", expenditure_id)

    def list_expenditures(
        self,
        page: PageRequest,
        *,
        search: Optional[str] = None,
        category: Optional[str] = None,
        department: Optional[str] = None,
        from_date: Optional[datetime] = None,
        to_date: Optional[datetime] = None,
    ) -> Tuple[List[Expenditure], int]:
        """Return one page of expenditures (newest first) and the total count."""

        conditions = []
        term = clean_text(search)
        if term:
            needle = term.lower()
            conditions.append(
                or_(
                    *(
                        func.lower(func.coalesce(column, "")).contains(needle, autoescape=True)
                        for column in (
                            Expenditure.description,
                            Expenditure.sender_name,
                            Expenditure.receiver_name,
                            Expenditure.receipt_number,
                        )
                    )
                )
            )
        if clean_text(category):
            conditions.append(func.lower(Expenditure.category) == category.strip().lower())
        if clean_text(department):
            conditions.append(func.lower(Expenditure.department) == department.strip().lower())
        if from_date is not None:
            conditions.append(Expenditure.date >= from_date)
        if to_date is not None:
            conditions.append(Expenditure.date <= to_date)

        total = self.session.scalar(
            select(func.count()).select_from(Expenditure).where(*conditions)
        )
        query = (
            select(Expenditure)
            .where(*conditions)
            .order_by(Expenditure.date.desc(), Expenditure.id.desc())
            .offset(page.offset)
            .limit(page.limit)
        )
        LOGGER.debug("Listing expenditures page=%s limit=%s total=%s", page.page, page.limit, total)
        return list(self.session.scalars(query)), int(total or 0)

    # Aggregations -----------------------------------------------------

    def total_expenditure(self) -> float:
        total = self.session.scalar(select(func.coalesce(func.sum(Expenditure.amount), 0.0)))
        return float(total or 0.0)

    def summary_by_category(self) -> List[Dict[str, Any]]:
        """Spend per category, largest first."""

        total = func.sum(Expenditure.amount).label("total_amount")
        rows = self.session.execute(
            select(Expenditure.category, total, func.count(Expenditure.id))
            .group_by(Expenditure.category)
            .order_by(total.desc(), Expenditure.category)
        )
        return [
            {"category": category, "totalAmount": float(amount), "count": count}
            for category, amount, count in rows
        ]

    def summary_by_department(self) -> List[Dict[str, Any]]:
        """Spend per department, largest first. Unassigned spend groups under ``None``."""

        total = func.sum(Expenditure.amount).label("total_amount")
        rows = self.session.execute(
            select(Expenditure.department, total, func.count(Expenditure.id))
            .group_by(Expenditure.department)
            .order_by(total.desc(), Expenditure.department)
        )
        return [
            {"department": department, "totalAmount": float(amount), "count": count}
            for department, amount, count in rows
        ]

    def monthly_summary(self) -> List[Dict[str, Any]]:
        """Spend per (year, month), most recent month first."""

        year = extract("year", Expenditure.date).label("year")
        month = extract("month", Expenditure.date).label("month")
        rows = self.session.execute(
            select(year, month, func.sum(Expenditure.amount), func.count(Expenditure.id))
            .group_by(year, month)
            .order_by(year.desc(), month.desc())
        )
        return [
            {"year": int(y), "month": int(m), "totalAmount": float(amount), "count": count}
            for y, m, amount, count in rows
        ]

    # Validation -------------------------------------------------------

    def _apply(self, expenditure: Expenditure, data: Mapping[str, Any], *, partial: bool) -> None:
        errors: Dict[str, str] = {}
        updates: Dict[str, Any] = {}

        if "amount" in data or not partial:
            try:
                updates["amount"] = parse_amount(data.get("amount"))
            except ValueError as error:
                errors["amount"] = str(error)

        if "description" in data or not partial:
            description = clean_text(data.get("description"))
            if description is None:
                errors["description"] = "Description is required"
            elif len(description) > MAX_DESCRIPTION_LENGTH:
                errors["description"] = (
                    f"Description cannot exceed {MAX_DESCRIPTION_LENGTH} characters"
                )
            else:
                updates["description"] = description

        if "category" in data or not partial:
            try:
                updates["category"] = category_label(parse_category(data.get("category")))
            except ValueError as error:
                errors["category"] = str(error)

        if "notes" in data:
            notes = clean_text(data.get("notes"))
            if notes is not None and len(notes) > MAX_NOTES_LENGTH:
                errors["notes"] = f"Notes cannot exceed {MAX_NOTES_LENGTH} characters"
            else:
                updates["notes"] = notes

        if "date" in data and data.get("date") not in (None, ""):
            try:
                updates["date"] = parse_datetime(data["date"])
            except ValueError as error:
                errors["date"] = str(error)

        for field_name in _TEXT_FIELDS:
            if field_name in data:
                value = clean_text(data.get(field_name))
                if value is not None and len(value) > MAX_NAME_LENGTH:
                    errors[field_name] = f"{field_name} cannot exceed {MAX_NAME_LENGTH} characters"
                else:
                    updates[field_name] = value

        if errors:
            raise ValidationFailed.for_fields(errors)
        for field_name, value in updates.items():
            setattr(expenditure, field_name, value)
