"""Mini README: SQLAlchemy ORM tables for FeeLedger.

Structure:
    * Admin - privileged account, source of JWT identity.
    * Student - student record keyed by an uppercase PRN.
    * Fine - a fine or fee payment belonging to one student.
    * Expenditure - departmental spending independent of students.
    * PaymentCategory - named category for fines/fees.

Fines live in their own table with a foreign key to ``students`` so each
payment can be indexed, updated, and deleted on its own. The student exposes
derived totals (``total_fines``, ``unpaid_fines``, ``fine_count``) computed
from the loaded relationship; they are never stored.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import List, Literal, Optional

from sqlalchemy import (
    Boolean,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    func,
)
from sqlalchemy.orm import Mapped, declarative_base, mapped_column, relationship

Base = declarative_base()

PaymentType = Literal["fine", "fee"]
PAYMENT_TYPES = ("fine", "fee")
DEFAULT_FINE_CATEGORY = "Others"
DEFAULT_EXPENDITURE_CATEGORY = "other"


def utcnow() -> datetime:
    """Naive UTC timestamp, the storage convention for every DateTime column."""

    return datetime.now(timezone.utc).replace(tzinfo=None)


class TimestampMixin:
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=utcnow, onupdate=utcnow, nullable=False
    )


class Admin(TimestampMixin, Base):
    __tablename__ = "admins"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False, default="Admin")
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    password_hash: Mapped[str] = mapped_column(String(128), nullable=False)
    otp_hash: Mapped[Optional[str]] = mapped_column(String(128))
    otp_expires_at: Mapped[Optional[datetime]] = mapped_column(DateTime)
    reset_authorized_until: Mapped[Optional[datetime]] = mapped_column(DateTime)


class Student(TimestampMixin, Base):
    __tablename__ = "students"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    prn: Mapped[str] = mapped_column(String(50), nullable=False, unique=True, index=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    department: Mapped[Optional[str]] = mapped_column(String(100))
    academic_year: Mapped[Optional[str]] = mapped_column(String(20))
    semester: Mapped[Optional[str]] = mapped_column(String(20))
    year: Mapped[Optional[str]] = mapped_column(String(20))
    division: Mapped[Optional[str]] = mapped_column(String(20))
    roll_no: Mapped[Optional[str]] = mapped_column(String(30))
    email: Mapped[Optional[str]] = mapped_column(String(255))
    phone: Mapped[Optional[str]] = mapped_column(String(30))
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    fines: Mapped[List["Fine"]] = relationship(
        back_populates="student",
        cascade="all, delete-orphan",
        order_by="Fine.id",
    )

    @property
    def total_fines(self) -> float:
        return sum(fine.amount for fine in self.fines)

    @property
    def unpaid_fines(self) -> float:
        return sum(fine.amount for fine in self.fines if not fine.is_paid)

    @property
    def fine_count(self) -> int:
        return len(self.fines)


class Fine(TimestampMixin, Base):
    __tablename__ = "fines"
    __table_args__ = (
        Index("ix_fines_student_date", "student_id", "date"),
        Index("ix_fines_type_date", "type", "date"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    student_id: Mapped[int] = mapped_column(
        ForeignKey("students.id", ondelete="CASCADE"), nullable=False
    )
    amount: Mapped[float] = mapped_column(Float, nullable=False)
    reason: Mapped[str] = mapped_column(String(500), nullable=False, default="")
    type: Mapped[str] = mapped_column(String(10), nullable=False, default="fine")
    category: Mapped[str] = mapped_column(
        String(100), nullable=False, default=DEFAULT_FINE_CATEGORY
    )
    receipt_number: Mapped[Optional[str]] = mapped_column(String(40), unique=True)
    date: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)
    is_paid: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    paid_date: Mapped[Optional[datetime]] = mapped_column(DateTime)

    student: Mapped[Student] = relationship(back_populates="fines")


class Expenditure(TimestampMixin, Base):
    __tablename__ = "expenditures"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    amount: Mapped[float] = mapped_column(Float, nullable=False)
    description: Mapped[str] = mapped_column(String(500), nullable=False)
    category: Mapped[str] = mapped_column(
        String(100), nullable=False, default=DEFAULT_EXPENDITURE_CATEGORY
    )
    sender_name: Mapped[Optional[str]] = mapped_column(String(100))
    receiver_name: Mapped[Optional[str]] = mapped_column(String(100))
    department: Mapped[Optional[str]] = mapped_column(String(100))
    date: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow, index=True)
    receipt_number: Mapped[Optional[str]] = mapped_column(String(40))
    notes: Mapped[Optional[str]] = mapped_column(Text)
    added_by_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("admins.id", ondelete="SET NULL")
    )

    added_by: Mapped[Optional[Admin]] = relationship()


class PaymentCategory(TimestampMixin, Base):
    __tablename__ = "payment_categories"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    type: Mapped[str] = mapped_column(String(10), nullable=False, default="fine")
    description: Mapped[Optional[str]] = mapped_column(String(500))
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)


Index("ix_payment_categories_name_lower", func.lower(PaymentCategory.name), unique=True)
