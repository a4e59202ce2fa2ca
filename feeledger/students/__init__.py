"""Mini README: Student records, their fines/fees, and CSV import.

Exports the repositories, the service used by routers and the importer,
and the JSON helpers that expose derived totals.
"""

from .importer import ImportReport, import_students_csv
from .repository import FineRepository, StudentRepository, normalise_prn
from .service import StudentService, fine_to_dict, student_to_dict

__all__ = [
    "FineRepository",
    "ImportReport",
    "StudentRepository",
    "StudentService",
    "fine_to_dict",
    "import_students_csv",
    "normalise_prn",
    "student_to_dict",
]
