"""Mini README: Repository interfaces over student and fine tables.

Structure:
    * StudentRepository - lookups by PRN, filtered listing, add/delete.
    * FineRepository - fine rows addressed by id, optionally scoped to a student.

Services go through these classes rather than issuing queries inline, which
keeps the PRN normalisation rule (trimmed, uppercase) in one place.
"""

from __future__ import annotations

from typing import List, Optional, Tuple

from sqlalchemy import delete, func, or_, select
from sqlalchemy.orm import Session, selectinload

from ..database.models import Fine, Student
from ..utils.pagination import PageRequest


def normalise_prn(prn: str) -> str:
    return prn.strip().upper()


class StudentRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def get_by_prn(self, prn: str) -> Optional[Student]:
        query = (
            select(Student)
            .where(Student.prn == normalise_prn(prn))
            .options(selectinload(Student.fines))
        )
        return self.session.scalars(query).first()

    def exists(self, prn: str) -> bool:
        query = select(Student.id).where(Student.prn == normalise_prn(prn))
        return self.session.scalar(query) is not None

    def list_students(
        self,
        page: PageRequest,
        *,
        search: Optional[str] = None,
        academic_year: Optional[str] = None,
        division: Optional[str] = None,
        department: Optional[str] = None,
    ) -> Tuple[List[Student], int]:
        conditions = []
        if search and search.strip():
            needle = search.strip().lower()
            conditions.append(
                or_(
                    func.lower(Student.name).contains(needle, autoescape=True),
                    func.lower(Student.prn).contains(needle, autoescape=True),
                )
            )
        if academic_year:
            conditions.append(Student.academic_year == academic_year.strip())
        if division:
            conditions.append(func.upper(Student.division) == division.strip().upper())
        if department:
            conditions.append(func.lower(Student.department) == department.strip().lower())

        total = self.session.scalar(select(func.count()).select_from(Student).where(*conditions))
        query = (
            select(Student)
            .where(*conditions)
            .options(selectinload(Student.fines))
            .order_by(Student.name, Student.prn)
            .offset(page.offset)
            .limit(page.limit)
        )
        return list(self.session.scalars(query)), int(total or 0)

    def count(self) -> int:
        return int(self.session.scalar(select(func.count(Student.id))) or 0)

    def add(self, student: Student) -> Student:
        self.session.add(student)
        self.session.flush()
        return student

    def delete(self, student: Student) -> None:
        self.session.delete(student)
        self.session.flush()

    def delete_all(self) -> int:
        result = self.session.execute(delete(Student))
        return int(result.rowcount or 0)


class FineRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def get(self, fine_id: int, *, student_id: Optional[int] = None) -> Optional[Fine]:
        query = select(Fine).where(Fine.id == fine_id)
        if student_id is not None:
            query = query.where(Fine.student_id == student_id)
        return self.session.scalars(query).first()

    def receipt_taken(self, receipt_number: str, *, exclude_id: Optional[int] = None) -> bool:
        query = select(Fine.id).where(Fine.receipt_number == receipt_number)
        if exclude_id is not None:
            query = query.where(Fine.id != exclude_id)
        return self.session.scalar(query) is not None

    def add(self, student: Student, fine: Fine) -> Fine:
        student.fines.append(fine)
        self.session.flush()
        return fine

    def delete(self, fine: Fine) -> None:
        student = fine.student
        if student is not None and fine in student.fines:
            student.fines.remove(fine)
        else:
            self.session.delete(fine)
        self.session.flush()

    def count(self) -> int:
        return int(self.session.scalar(select(func.count(Fine.id))) or 0)

    def total_amount(self) -> float:
        total = self.session.scalar(select(func.coalesce(func.sum(Fine.amount), 0.0)))
        return float(total or 0.0)

    def delete_all(self) -> int:
        result = self.session.execute(delete(Fine))
        return int(result.rowcount or 0)
