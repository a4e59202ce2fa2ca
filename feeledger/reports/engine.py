"""Mini README: Aggregated and paginated financial reports.

Structure:
    * ReportEngine.student_payments - per-student payment subtotals.
    * ReportEngine.transactions - one feed merging income and expenditure.
    * ReportEngine.bulk_delete_income - partial-failure deletion of fines.
    * ReportEngine.summary - dashboard totals and expenditure breakdowns.

All grouping, filtering, ordering, and paging happens in SQL. Every
ordering ends in a unique key so a fixed filter and page always return the
same slice and consecutive pages never overlap.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from sqlalchemy import String, case, cast, extract, func, literal, null, or_, select, union_all
from sqlalchemy.orm import Session

from ..database.models import Expenditure, Fine, Student
from ..errors import ValidationFailed
from ..finance.expenditures import ExpenditureService
from ..finance.ledger import Transaction, TransactionFilters, TransactionKind
from ..logging_utils import get_logger
from ..students.repository import FineRepository, StudentRepository, normalise_prn
from ..students.service import fine_to_dict
from ..utils.pagination import PageRequest, page_metadata
from ..utils.parsing import clean_text

LOGGER = get_logger(__name__)

PAYMENT_SCOPES = {"both", "fee", "fine"}


def _coerce_fine_id(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        return None


class ReportEngine:
    """Read models over fines and expenditures bound to one session."""

    def __init__(self, session: Session) -> None:
        self.session = session
        self.students = StudentRepository(session)
        self.fines = FineRepository(session)
        self.expenditures = ExpenditureService(session)

    # Student payments -------------------------------------------------

    def student_payments(
        self,
        page: PageRequest,
        *,
        payment_type: Optional[str] = "both",
        academic_year: Optional[str] = None,
        division: Optional[str] = None,
        search: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Group matching fines per student and return one page of students.

        Only students with at least one matching fine appear. Results are
        ordered by name, then PRN, then id.
        """

        scope = (clean_text(payment_type) or "both").lower()
        if scope == "all":
            scope = "both"
        if scope not in PAYMENT_SCOPES:
            raise ValidationFailed.for_fields({"type": "Type must be 'fee', 'fine' or 'both'"})

        fine_conditions = [] if scope == "both" else [Fine.type == scope]
        student_conditions = []
        if clean_text(academic_year):
            student_conditions.append(Student.academic_year == academic_year.strip())
        if clean_text(division):
            student_conditions.append(func.upper(Student.division) == division.strip().upper())
        if clean_text(search):
            needle = search.strip().lower()
            student_conditions.append(
                or_(
                    func.lower(Student.name).contains(needle, autoescape=True),
                    func.lower(Student.prn).contains(needle, autoescape=True),
                )
            )

        total_amount = func.sum(Fine.amount).label("total_amount")
        payment_count = func.count(Fine.id).label("payment_count")
        grouped = (
            select(
                Student.id.label("student_id"),
                Student.prn,
                Student.name,
                Student.department,
                Student.academic_year,
                Student.year,
                Student.division,
                total_amount,
                payment_count,
                func.sum(case((Fine.type == "fee", Fine.amount), else_=0.0)).label("fee_amount"),
                func.sum(case((Fine.type == "fine", Fine.amount), else_=0.0)).label("fine_amount"),
                func.max(Fine.date).label("last_payment_date"),
            )
            .join(Fine, Fine.student_id == Student.id)
            .where(*fine_conditions, *student_conditions)
            .group_by(
                Student.id,
                Student.prn,
                Student.name,
                Student.department,
                Student.academic_year,
                Student.year,
                Student.division,
            )
        )

        grouped_subquery = grouped.subquery()
        totals = self.session.execute(
            select(
                func.count(),
                func.coalesce(func.sum(grouped_subquery.c.total_amount), 0.0),
                func.coalesce(func.sum(grouped_subquery.c.payment_count), 0),
            ).select_from(grouped_subquery)
        ).one()
        total_students, grand_total, grand_count = int(totals[0]), float(totals[1]), int(totals[2])

        rows = self.session.execute(
            grouped.order_by(Student.name, Student.prn, Student.id)
            .offset(page.offset)
            .limit(page.limit)
        ).all()

        payments_by_student = self._payments_for(
            [row.student_id for row in rows], fine_conditions
        )
        students = [
            {
                "prn": row.prn,
                "name": row.name,
                "department": row.department,
                "academicYear": row.academic_year,
                "year": row.year,
                "division": row.division,
                "totalAmount": float(row.total_amount),
                "feeAmount": float(row.fee_amount or 0.0),
                "fineAmount": float(row.fine_amount or 0.0),
                "paymentCount": int(row.payment_count),
                "lastPaymentDate": row.last_payment_date.isoformat()
                if row.last_payment_date
                else None,
                "payments": payments_by_student.get(row.student_id, []),
            }
            for row in rows
        ]
        LOGGER.debug(
            "Student payments report type=%s page=%s matched=%s", scope, page.page, total_students
        )
        return {
            "students": students,
            "summary": {
                "totalAmount": grand_total,
                "totalPayments": grand_count,
                "totalStudents": total_students,
            },
            "pagination": page_metadata(total_students, page),
        }

    def _payments_for(
        self, student_ids: List[int], fine_conditions: List[Any]
    ) -> Dict[int, List[Dict[str, Any]]]:
        if not student_ids:
            return {}
        query = (
            select(Fine)
            .where(Fine.student_id.in_(student_ids), *fine_conditions)
            .order_by(Fine.date.desc(), Fine.id.desc())
        )
        grouped: Dict[int, List[Dict[str, Any]]] = {}
        for fine in self.session.scalars(query):
            grouped.setdefault(fine.student_id, []).append(fine_to_dict(fine))
        return grouped

    # Transaction feed -------------------------------------------------

    def transactions(self, filters: TransactionFilters, page: PageRequest) -> Dict[str, Any]:
        """Return one page of the merged income/expenditure feed, newest first."""

        sources = []
        if filters.includes_income:
            sources.append(self._income_source(filters))
        if filters.includes_expenditure:
            sources.append(self._expenditure_source(filters))

        if not sources:
            return self._empty_feed(page)
        feed = (sources[0] if len(sources) == 1 else union_all(*sources)).subquery("feed")

        totals = {kind: (0.0, 0) for kind in TransactionKind}
        for kind, amount, count in self.session.execute(
            select(feed.c.kind, func.sum(feed.c.amount), func.count()).group_by(feed.c.kind)
        ):
            totals[TransactionKind.from_str(kind)] = (float(amount or 0.0), int(count))
        total_items = sum(count for _, count in totals.values())

        rows = self.session.execute(
            select(feed)
            .order_by(feed.c.date.desc(), feed.c.kind, feed.c.source_id.desc())
            .offset(page.offset)
            .limit(page.limit)
        )
        transactions = [Transaction.from_row(row._mapping) for row in rows]
        income_total = totals[TransactionKind.INCOME][0]
        expenditure_total = totals[TransactionKind.EXPENDITURE][0]
        LOGGER.debug(
            "Transaction feed page=%s limit=%s matched=%s", page.page, page.limit, total_items
        )
        return {
            "transactions": [transaction.as_dict() for transaction in transactions],
            "summary": {
                "totalIncome": income_total,
                "incomeCount": totals[TransactionKind.INCOME][1],
                "totalExpenditure": expenditure_total,
                "expenditureCount": totals[TransactionKind.EXPENDITURE][1],
                "netBalance": income_total - expenditure_total,
            },
            "pagination": page_metadata(total_items, page),
        }

    @staticmethod
    def _empty_feed(page: PageRequest) -> Dict[str, Any]:
        return {
            "transactions": [],
            "summary": {
                "totalIncome": 0.0,
                "incomeCount": 0,
                "totalExpenditure": 0.0,
                "expenditureCount": 0,
                "netBalance": 0.0,
            },
            "pagination": page_metadata(0, page),
        }

    @staticmethod
    def _shared_conditions(
        filters: TransactionFilters, *, date_column: Any, amount_column: Any, category_column: Any
    ) -> List[Any]:
        conditions: List[Any] = []
        if filters.category:
            conditions.append(func.lower(category_column) == filters.category.lower())
        if filters.year is not None:
            conditions.append(extract("year", date_column) == filters.year)
        if filters.month is not None:
            conditions.append(extract("month", date_column) == filters.month)
        if filters.from_date is not None:
            conditions.append(date_column >= filters.from_date)
        if filters.to_date is not None:
            conditions.append(date_column <= filters.to_date)
        if filters.min_amount is not None:
            conditions.append(amount_column >= filters.min_amount)
        if filters.max_amount is not None:
            conditions.append(amount_column <= filters.max_amount)
        return conditions

    def _income_source(self, filters: TransactionFilters):
        conditions = self._shared_conditions(
            filters, date_column=Fine.date, amount_column=Fine.amount, category_column=Fine.category
        )
        if filters.payment_type:
            conditions.append(Fine.type == filters.payment_type)
        return (
            select(
                Fine.id.label("source_id"),
                literal(TransactionKind.INCOME.value, String).label("kind"),
                Fine.type.label("payment_type"),
                Fine.category.label("category"),
                Fine.amount.label("amount"),
                Fine.date.label("date"),
                Fine.reason.label("description"),
                Student.name.label("student_name"),
                Student.prn.label("student_prn"),
                cast(null(), String).label("sender_name"),
                cast(null(), String).label("receiver_name"),
                Fine.receipt_number.label("receipt_number"),
            )
            .join(Student, Fine.student_id == Student.id)
            .where(*conditions)
        )

    def _expenditure_source(self, filters: TransactionFilters):
        conditions = self._shared_conditions(
            filters,
            date_column=Expenditure.date,
            amount_column=Expenditure.amount,
            category_column=Expenditure.category,
        )
        return select(
            Expenditure.id.label("source_id"),
            literal(TransactionKind.EXPENDITURE.value, String).label("kind"),
            cast(null(), String).label("payment_type"),
            Expenditure.category.label("category"),
            Expenditure.amount.label("amount"),
            Expenditure.date.label("date"),
            Expenditure.description.label("description"),
            cast(null(), String).label("student_name"),
            cast(null(), String).label("student_prn"),
            Expenditure.sender_name.label("sender_name"),
            Expenditure.receiver_name.label("receiver_name"),
            Expenditure.receipt_number.label("receipt_number"),
        ).where(*conditions)

    # Bulk deletion ----------------------------------------------------

    def bulk_delete_income(self, items: Iterable[Mapping[str, Any]]) -> Dict[str, Any]:
        """Delete each ``{studentPRN, fineId}`` pair independently.

        A missing PRN or fine id is recorded in ``notFound`` and processing
        continues; deletions that succeeded are kept.
        """

        deleted: List[Dict[str, Any]] = []
        not_found: List[Dict[str, Any]] = []
        for item in items:
            raw_prn = clean_text(item.get("studentPRN", item.get("student_prn")))
            raw_fine_id = item.get("fineId", item.get("fine_id"))
            outcome, reason = self._delete_one(raw_prn, _coerce_fine_id(raw_fine_id))
            record = {"studentPRN": raw_prn, "fineId": raw_fine_id}
            if outcome:
                deleted.append(record)
            else:
                not_found.append({**record, "reason": reason})

        LOGGER.info(
            "Bulk income delete: %s deleted, %s not found", len(deleted), len(not_found)
        )
        return {
            "deletedCount": len(deleted),
            "notFoundCount": len(not_found),
            "deleted": deleted,
            "notFound": not_found,
        }

    def _delete_one(self, prn: Optional[str], fine_id: Optional[int]) -> Tuple[bool, Optional[str]]:
        if not prn:
            return False, "Student PRN is required"
        student = self.students.get_by_prn(normalise_prn(prn))
        if student is None:
            return False, "Student not found"
        if fine_id is None:
            return False, "Payment record not found"
        fine = self.fines.get(fine_id, student_id=student.id)
        if fine is None:
            return False, "Payment record not found"
        self.fines.delete(fine)
        return True, None

    # Dashboard --------------------------------------------------------

    def summary(self) -> Dict[str, Any]:
        """Headline totals plus the expenditure breakdowns."""

        total_income = self.fines.total_amount()
        total_expenditure = self.expenditures.total_expenditure()
        income_by_type = {
            payment_type: float(amount or 0.0)
            for payment_type, amount in self.session.execute(
                select(Fine.type, func.sum(Fine.amount)).group_by(Fine.type)
            )
        }
        return {
            "totalIncome": total_income,
            "totalExpenditure": total_expenditure,
            "netBalance": total_income - total_expenditure,
            "incomeByType": {
                "fee": income_by_type.get("fee", 0.0),
                "fine": income_by_type.get("fine", 0.0),
            },
            "studentCount": self.students.count(),
            "paymentCount": self.fines.count(),
            "expenditureByCategory": self.expenditures.summary_by_category(),
            "expenditureByDepartment": self.expenditures.summary_by_department(),
            "monthlyExpenditure": self.expenditures.monthly_summary(),
        }
