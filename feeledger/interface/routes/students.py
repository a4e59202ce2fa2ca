"""Mini README: ``/api/students`` endpoints.

Structure:
    * Student CRUD keyed by PRN, plus ``/search/{prn}`` which answers with
      ``null`` data instead of 404 when the PRN is unknown.
    * Fine sub-resources under ``/{prn}/fines``.
    * ``/upload`` - multipart CSV import of students and optional payments.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from fastapi import APIRouter, Depends, File, Query, UploadFile
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from ...configuration import FeeLedgerSettings
from ...errors import ValidationFailed
from ...logging_utils import get_logger
from ...students import StudentService, fine_to_dict, import_students_csv, student_to_dict
from ...utils.pagination import PageRequest, page_metadata
from ..dependencies import get_current_admin, get_session, get_settings, page_request
from ..responses import respond
from ..schemas import FineRequest, StudentRequest

LOGGER = get_logger(__name__)

router = APIRouter(
    prefix="/api/students", tags=["students"], dependencies=[Depends(get_current_admin)]
)

CSV_CONTENT_TYPES = {"text/csv", "application/csv"}


def _service(
    session: Session = Depends(get_session),
    settings: FeeLedgerSettings = Depends(get_settings),
) -> StudentService:
    return StudentService(session, enforce_payment_categories=settings.enforce_payment_categories)


@router.get("")
def list_students(
    search: Optional[str] = Query(None),
    year: Optional[str] = Query(None),
    division: Optional[str] = Query(None),
    department: Optional[str] = Query(None),
    page: PageRequest = Depends(page_request),
    service: StudentService = Depends(_service),
) -> JSONResponse:
    students, total = service.list_students(
        page, search=search, academic_year=year, division=division, department=department
    )
    return respond(
        {
            "students": [student_to_dict(student) for student in students],
            "pagination": page_metadata(total, page),
        }
    )


@router.post("")
def create_student(
    body: StudentRequest, service: StudentService = Depends(_service)
) -> JSONResponse:
    student = service.create_student(body.payload())
    return respond(student_to_dict(student), message="Student added successfully", status_code=201)


@router.post("/upload")
def upload_students(
    file: UploadFile = File(...),
    settings: FeeLedgerSettings = Depends(get_settings),
    service: StudentService = Depends(_service),
) -> JSONResponse:
    """Import students (and optional payments) from an uploaded CSV file."""

    filename = file.filename or ""
    content_type = (file.content_type or "").split(";")[0].strip().lower()
    if Path(filename).suffix.lower() != ".csv" and content_type not in CSV_CONTENT_TYPES:
        raise ValidationFailed("Only CSV files are allowed")
    content = file.file.read(settings.max_upload_bytes + 1)
    if len(content) > settings.max_upload_bytes:
        limit_mb = settings.max_upload_bytes / (1024 * 1024)
        raise ValidationFailed(f"File too large. Maximum size is {limit_mb:g} MB")
    LOGGER.info("Received CSV upload %s (%s bytes)", filename, len(content))
    report = import_students_csv(service, content)
    return respond(report.as_dict(), message="CSV processed successfully")


@router.get("/search/{prn}")
def search_student(prn: str, service: StudentService = Depends(_service)) -> JSONResponse:
    student = service.find_student(prn)
    if student is None:
        return JSONResponse({"success": True, "message": "Student not found", "data": None})
    return respond(student_to_dict(student))


@router.get("/{prn}")
def get_student(prn: str, service: StudentService = Depends(_service)) -> JSONResponse:
    return respond(student_to_dict(service.get_student(prn)))


@router.put("/{prn}")
def update_student(
    prn: str, body: StudentRequest, service: StudentService = Depends(_service)
) -> JSONResponse:
    student = service.update_student(prn, body.payload())
    return respond(student_to_dict(student), message="Student updated successfully")


@router.delete("/{prn}")
def delete_student(prn: str, service: StudentService = Depends(_service)) -> JSONResponse:
    removed = service.delete_student(prn)
    return respond({"deletedFines": removed}, message="Student deleted successfully")


@router.post("/{prn}/fines")
def add_fine(
    prn: str, body: FineRequest, service: StudentService = Depends(_service)
) -> JSONResponse:
    fine = service.add_fine(prn, body.payload())
    student = service.get_student(prn)
    return respond(
        {"fine": fine_to_dict(fine), "student": student_to_dict(student)},
        message="Payment recorded successfully",
        status_code=201,
    )


@router.put("/{prn}/fines/{fine_id}")
def update_fine(
    prn: str, fine_id: int, body: FineRequest, service: StudentService = Depends(_service)
) -> JSONResponse:
    fine = service.update_fine(prn, fine_id, body.payload())
    return respond(fine_to_dict(fine), message="Payment updated successfully")


@router.delete("/{prn}/fines/{fine_id}")
def delete_fine(
    prn: str, fine_id: int, service: StudentService = Depends(_service)
) -> JSONResponse:
    service.delete_fine(prn, fine_id)
    return respond(message="Payment deleted successfully")
