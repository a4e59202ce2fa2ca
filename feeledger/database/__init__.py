"""Mini README: Persistence layer for FeeLedger.

Exports the ORM tables and the helpers that build engines and sessions.
"""

from .connection import build_engine, build_session_factory, init_database, session_scope
from .models import (
    Admin,
    Base,
    Expenditure,
    Fine,
    PaymentCategory,
    Student,
    utcnow,
)

__all__ = [
    "Admin",
    "Base",
    "Expenditure",
    "Fine",
    "PaymentCategory",
    "Student",
    "build_engine",
    "build_session_factory",
    "init_database",
    "session_scope",
    "utcnow",
]
