"""Mini README: Bulk import of students (and optional payments) from CSV.

Structure:
    * ImportReport - counters plus per-row errors returned to the caller.
    * import_students_csv - parse an uploaded CSV and apply every row.

Headers are matched case-insensitively and ignore spaces, underscores, and
dashes, so ``PRN``, ``Roll No`` and ``academic_year`` are all recognised.
A row whose PRN already exists updates the non-empty student columns; a new
PRN creates a student. When the row carries an ``Amount`` a payment is
appended as well. Each row runs inside its own savepoint, so a bad row is
reported and rolled back as a whole; it never aborts the rows after it.
"""

from __future__ import annotations

import csv
import io
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from ..errors import FeeLedgerError, ValidationFailed
from ..logging_utils import get_logger
from ..utils.parsing import clean_text
from .service import StudentService

LOGGER = get_logger(__name__)

HEADER_ALIASES: Dict[str, str] = {
    "prn": "prn",
    "prnno": "prn",
    "prnnumber": "prn",
    "name": "name",
    "studentname": "name",
    "fullname": "name",
    "department": "department",
    "branch": "department",
    "academicyear": "academic_year",
    "semester": "semester",
    "sem": "semester",
    "year": "year",
    "division": "division",
    "div": "division",
    "rollno": "roll_no",
    "rollnumber": "roll_no",
    "email": "email",
    "phone": "phone",
    "mobile": "phone",
    "amount": "amount",
    "reason": "reason",
    "type": "type",
    "paymenttype": "type",
    "category": "category",
    "date": "date",
    "receiptnumber": "receipt_number",
    "receiptno": "receipt_number",
}

STUDENT_FIELDS = (
    "prn",
    "name",
    "department",
    "academic_year",
    "semester",
    "year",
    "division",
    "roll_no",
    "email",
    "phone",
)
FINE_FIELDS = ("amount", "reason", "type", "category", "date", "receipt_number")


@dataclass(slots=True)
class ImportReport:
    """Outcome of a CSV import."""

    total_rows: int = 0
    created: int = 0
    updated: int = 0
    payments_added: int = 0
    errors: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def failed(self) -> int:
        return len(self.errors)

    def as_dict(self) -> Dict[str, Any]:
        return {
            "totalRows": self.total_rows,
            "created": self.created,
            "updated": self.updated,
            "paymentsAdded": self.payments_added,
            "failed": self.failed,
            "errors": list(self.errors),
        }


def _normalise_header(header: Optional[str]) -> str:
    if not header:
        return ""
    return "".join(ch for ch in header.strip().lower() if ch not in " _-.")


def _decode(content: bytes) -> str:
    try:
        return content.decode("utf-8-sig")
    except UnicodeDecodeError:
        return content.decode("latin-1")


def import_students_csv(service: StudentService, content: bytes) -> ImportReport:
    """Apply every row of ``content`` through ``service``."""

    reader = csv.DictReader(io.StringIO(_decode(content)))
    if not reader.fieldnames:
        raise ValidationFailed("CSV file is empty")

    columns = {
        name: HEADER_ALIASES[_normalise_header(name)]
        for name in reader.fieldnames
        if _normalise_header(name) in HEADER_ALIASES
    }
    if "prn" not in columns.values() or "name" not in columns.values():
        raise ValidationFailed("CSV must contain PRN and Name columns")

    report = ImportReport()
    # Row 1 is the header line.
    for line_number, raw in enumerate(reader, start=2):
        row = {target: clean_text(raw.get(source)) for source, target in columns.items()}
        if not any(row.values()):
            continue
        report.total_rows += 1
        try:
            with service.session.begin_nested():
                created, paid = _apply_row(service, row)
        except FeeLedgerError as error:
            report.errors.append(
                {"row": line_number, "prn": row.get("prn"), "message": error.message}
            )
            LOGGER.debug("Skipping CSV row %s: %s", line_number, error.message)
            continue
        if created:
            report.created += 1
        else:
            report.updated += 1
        if paid:
            report.payments_added += 1

    LOGGER.info(
        "CSV import finished: %s rows, %s created, %s updated, %s payments, %s failed",
        report.total_rows,
        report.created,
        report.updated,
        report.payments_added,
        report.failed,
    )
    return report


def _apply_row(service: StudentService, row: Dict[str, Optional[str]]) -> Tuple[bool, bool]:
    """Write one row and return ``(student_created, payment_added)``."""

    student_data = {key: row[key] for key in STUDENT_FIELDS if row.get(key) is not None}
    fine_data = {key: row[key] for key in FINE_FIELDS if row.get(key) is not None}

    if fine_data and "amount" not in fine_data:
        raise ValidationFailed("Payment columns require an Amount")
    if fine_data:
        service.validate_fine(fine_data, partial=False)

    student = service.find_student(row.get("prn"))
    created = student is None
    if created:
        student = service.create_student(student_data)
    else:
        updates = {key: value for key, value in student_data.items() if key != "prn"}
        if updates:
            student = service.update_student(student.prn, updates)

    if fine_data:
        service.add_fine_to(student, fine_data)
    return created, bool(fine_data)
