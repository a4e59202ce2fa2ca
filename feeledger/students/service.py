"""Mini README: Student records and the fines/fees recorded against them.

Structure:
    * StudentService - create, search, update, and delete students; add,
      update, and delete individual fines; total income aggregation.
    * student_to_dict / fine_to_dict - JSON representations with the derived
      ``totalFines``, ``unpaidFines``, and ``fineCount`` values.

Fines are cash events: ``isPaid`` defaults to true and ``paidDate`` to the
recording time. Every new fine gets a receipt number unless one is supplied.
Concurrent writers to the same student are not serialised here; each
request's transaction is the unit of atomicity.
"""

from __future__ import annotations

import re
from typing import Any, Dict, List, Mapping, Optional, Tuple

from sqlalchemy.orm import Session

from ..database.models import PAYMENT_TYPES, Fine, Student, utcnow
from ..errors import ConflictError, NotFoundError, ValidationFailed
from ..finance.categories import PaymentCategoryService
from ..finance.receipts import allocate_receipt_number
from ..logging_utils import get_logger
from ..utils.pagination import PageRequest
from ..utils.parsing import clean_text, parse_amount, parse_datetime
from .repository import FineRepository, StudentRepository, normalise_prn

LOGGER = get_logger(__name__)

EMAIL_PATTERN = re.compile(r"^\w+([.-]?\w+)*@\w+([.-]?\w+)*(\.\w{2,3})+$")

_STUDENT_TEXT_LIMITS = {
    "name": 100,
    "department": 100,
    "academic_year": 20,
    "semester": 20,
    "year": 20,
    "division": 20,
    "roll_no": 30,
    "phone": 30,
}
MAX_PRN_LENGTH = 50
MAX_REASON_LENGTH = 500


def fine_to_dict(fine: Fine) -> Dict[str, Any]:
    return {
        "id": fine.id,
        "amount": fine.amount,
        "reason": fine.reason,
        "type": fine.type,
        "category": fine.category,
        "receiptNumber": fine.receipt_number,
        "date": fine.date.isoformat(),
        "isPaid": fine.is_paid,
        "paidDate": fine.paid_date.isoformat() if fine.paid_date else None,
    }


def student_to_dict(student: Student, *, include_fines: bool = True) -> Dict[str, Any]:
    payload: Dict[str, Any] = {
        "id": student.id,
        "prn": student.prn,
        "name": student.name,
        "department": student.department,
        "academicYear": student.academic_year,
        "semester": student.semester,
        "year": student.year,
        "division": student.division,
        "rollNo": student.roll_no,
        "email": student.email,
        "phone": student.phone,
        "isActive": student.is_active,
        "totalFines": student.total_fines,
        "unpaidFines": student.unpaid_fines,
        "fineCount": student.fine_count,
        "createdAt": student.created_at.isoformat() if student.created_at else None,
    }
    if include_fines:
        payload["fines"] = [fine_to_dict(fine) for fine in student.fines]
    return payload


class StudentService:
    """Student and fine mutations bound to one session."""

    def __init__(self, session: Session, *, enforce_payment_categories: bool = False) -> None:
        self.session = session
        self.students = StudentRepository(session)
        self.fines = FineRepository(session)
        self.categories = PaymentCategoryService(session)
        self.enforce_payment_categories = enforce_payment_categories

    # Students ---------------------------------------------------------

    def create_student(self, data: Mapping[str, Any]) -> Student:
        """Validate ``data`` and create a student with a unique PRN."""

        fields = self._validate_student(data, partial=False)
        if self.students.exists(fields["prn"]):
            raise ConflictError("Student with this PRN already exists")
        student = self.students.add(Student(**fields))
        LOGGER.info("Created student %s (%s)", student.prn, student.name)
        return student

    def find_student(self, prn: Optional[str]) -> Optional[Student]:
        """Search helper: return ``None`` instead of raising when missing."""

        if not clean_text(prn):
            return None
        return self.students.get_by_prn(prn)

    def get_student(self, prn: str) -> Student:
        student = self.find_student(prn)
        if student is None:
            raise NotFoundError("Student not found")
        return student

    def list_students(
        self,
        page: PageRequest,
        *,
        search: Optional[str] = None,
        academic_year: Optional[str] = None,
        division: Optional[str] = None,
        department: Optional[str] = None,
    ) -> Tuple[List[Student], int]:
        return self.students.list_students(
            page,
            search=search,
            academic_year=academic_year,
            division=division,
            department=department,
        )

    def update_student(self, prn: str, data: Mapping[str, Any]) -> Student:
        student = self.get_student(prn)
        fields = self._validate_student(data, partial=True)
        new_prn = fields.get("prn")
        if new_prn and new_prn != student.prn and self.students.exists(new_prn):
            raise ConflictError("Student with this PRN already exists")
        for key, value in fields.items():
            setattr(student, key, value)
        self.session.flush()
        LOGGER.info("Updated student %s", student.prn)
        return student

    def delete_student(self, prn: str) -> int:
        """Delete a student and their fines, returning how many fines went with them."""

        student = self.get_student(prn)
        removed_fines = student.fine_count
        self.students.delete(student)
        LOGGER.info("Deleted student %s with %s fines", student.prn, removed_fines)
        return removed_fines

    # Fines ------------------------------------------------------------

    def add_fine(self, prn: str, data: Mapping[str, Any]) -> Fine:
        """Append a fine or fee to the student identified by ``prn``."""

        student = self.get_student(prn)
        return self.add_fine_to(student, data)

    def add_fine_to(self, student: Student, data: Mapping[str, Any]) -> Fine:
        fields = self.validate_fine(data, partial=False)
        now = utcnow()
        fields.setdefault("date", now)
        fields.setdefault("is_paid", True)
        if fields["is_paid"]:
            fields.setdefault("paid_date", now)
        if not fields.get("receipt_number"):
            fields["receipt_number"] = allocate_receipt_number(self.fines.receipt_taken)
        elif self.fines.receipt_taken(fields["receipt_number"]):
            raise ConflictError("Receipt number already exists")
        fine = self.fines.add(student, Fine(**fields))
        LOGGER.info(
            "Recorded %s of %.2f for %s (receipt %s)",
            fine.type,
            fine.amount,
            student.prn,
            fine.receipt_number,
        )
        return fine

    def update_fine(self, prn: str, fine_id: int, data: Mapping[str, Any]) -> Fine:
        student = self.get_student(prn)
        fine = self.fines.get(fine_id, student_id=student.id)
        if fine is None:
            raise NotFoundError("Payment record not found")
        fields = self.validate_fine(data, partial=True)
        if fields.get("receipt_number") and self.fines.receipt_taken(
            fields["receipt_number"], exclude_id=fine.id
        ):
            raise ConflictError("Receipt number already exists")
        if fields.get("is_paid") and not fine.is_paid and "paid_date" not in fields:
            fields["paid_date"] = utcnow()
        for key, value in fields.items():
            setattr(fine, key, value)
        self.session.flush()
        LOGGER.info("Updated payment %s for %s", fine_id, student.prn)
        return fine

    def delete_fine(self, prn: str, fine_id: int) -> None:
        student = self.get_student(prn)
        fine = self.fines.get(fine_id, student_id=student.id)
        if fine is None:
            raise NotFoundError("Payment record not found")
        self.fines.delete(fine)
        LOGGER.info("Deleted payment %s for %s", fine_id, student.prn)

    def total_income(self) -> float:
        """Sum of every fine and fee across all students."""

        return self.fines.total_amount()

    # Validation -------------------------------------------------------

    def _validate_student(self, data: Mapping[str, Any], *, partial: bool) -> Dict[str, Any]:
        errors: Dict[str, str] = {}
        fields: Dict[str, Any] = {}

        if "prn" in data or not partial:
            prn = clean_text(data.get("prn"))
            if prn is None:
                errors["prn"] = "PRN is required"
            elif len(prn) > MAX_PRN_LENGTH:
                errors["prn"] = f"PRN cannot exceed {MAX_PRN_LENGTH} characters"
            else:
                fields["prn"] = normalise_prn(prn)

        if "name" in data or not partial:
            if clean_text(data.get("name")) is None:
                errors["name"] = "Student name is required"

        for key, limit in _STUDENT_TEXT_LIMITS.items():
            if key not in data:
                continue
            value = clean_text(data.get(key))
            if value is not None and len(value) > limit:
                errors[key] = f"{key} cannot exceed {limit} characters"
            elif key != "name" or value is not None:
                fields[key] = value

        if "email" in data:
            email = clean_text(data.get("email"))
            if email is not None:
                email = email.lower()
                if not EMAIL_PATTERN.match(email):
                    errors["email"] = "Please provide a valid email address"
            fields["email"] = email

        if "is_active" in data and data.get("is_active") is not None:
            fields["is_active"] = bool(data["is_active"])

        if errors:
            raise ValidationFailed.for_fields(errors)
        return fields

    def validate_fine(self, data: Mapping[str, Any], *, partial: bool) -> Dict[str, Any]:
        errors: Dict[str, str] = {}
        fields: Dict[str, Any] = {}

        if "amount" in data or not partial:
            try:
                fields["amount"] = parse_amount(data.get("amount"))
            except ValueError as error:
                errors["amount"] = (
                    "Payment amount is required" if data.get("amount") is None else str(error)
                )

        if "reason" in data:
            reason = clean_text(data.get("reason")) or ""
            if len(reason) > MAX_REASON_LENGTH:
                errors["reason"] = f"Reason cannot exceed {MAX_REASON_LENGTH} characters"
            else:
                fields["reason"] = reason

        if clean_text(data.get("type")) is not None:
            payment_type = str(data["type"]).strip().lower()
            if payment_type not in PAYMENT_TYPES:
                errors["type"] = "Type must be either 'fine' or 'fee'"
            else:
                fields["type"] = payment_type

        if "category" in data or not partial:
            try:
                fields["category"] = self.categories.resolve_fine_category(
                    data.get("category"), enforce=self.enforce_payment_categories
                )
            except ValidationFailed as error:
                errors.update(error.errors)

        for key in ("date", "paid_date"):
            if data.get(key) not in (None, ""):
                try:
                    fields[key] = parse_datetime(data[key])
                except ValueError as error:
                    errors[key] = str(error)

        if data.get("is_paid") is not None:
            fields["is_paid"] = bool(data["is_paid"])

        receipt_number = clean_text(data.get("receipt_number"))
        if receipt_number is not None:
            fields["receipt_number"] = receipt_number

        if errors:
            raise ValidationFailed.for_fields(errors)
        return fields
