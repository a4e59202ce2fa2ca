"""Mini README: Tests for CSV student import (service and upload endpoint)."""

from __future__ import annotations

import pytest

from feeledger.errors import ValidationFailed
from feeledger.students import StudentService, import_students_csv

CSV_ROWS = (
    "PRN,Student Name,Academic Year,Div,Amount,Type,Reason\n"
    "prn001,Asha,2024-25,A,500,fine,Late submission\n"
    "PRN002,Kiran,2024-25,B,,,\n"
    ",Missing Prn,2024-25,A,,,\n"
    "PRN003,Bad Amount,2024-25,A,abc,fee,\n"
    "PRN001,,,,1000,fee,Tuition\n"
)


def test_import_creates_updates_and_reports_bad_rows(session) -> None:
    service = StudentService(session)

    report = import_students_csv(service, CSV_ROWS.encode("utf-8"))

    assert report.total_rows == 5
    assert report.created == 2
    assert report.updated == 1
    assert report.payments_added == 2
    assert [error["row"] for error in report.errors] == [4, 5]
    asha = service.get_student("PRN001")
    assert asha.total_fines == pytest.approx(1500.0)
    assert asha.division == "A"
    assert service.find_student("PRN003") is None


def test_row_with_rejected_payment_leaves_no_student_behind(session) -> None:
    service = StudentService(session)
    service.create_student({"prn": "P1", "name": "Asha"})
    service.add_fine_to(
        service.get_student("P1"), {"amount": 100, "receipt_number": "RCP-20240101-11111"}
    )

    report = import_students_csv(
        service,
        b"PRN,Name,Amount,Receipt Number\n"
        b"P2,Ravi,50,RCP-20240101-11111\n"
        b"P3,Meera,75,\n",
    )

    assert report.created == 1
    assert report.payments_added == 1
    assert [error["prn"] for error in report.errors] == ["P2"]
    assert service.find_student("P2") is None
    assert service.get_student("P3").total_fines == pytest.approx(75.0)


def test_import_requires_identifying_columns(session) -> None:
    with pytest.raises(ValidationFailed):
        import_students_csv(StudentService(session), b"Name,Amount\nAsha,10\n")
    with pytest.raises(ValidationFailed):
        import_students_csv(StudentService(session), b"")


def test_upload_endpoint(client, auth_headers) -> None:
    response = client.post(
        "/api/students/upload",
        files={"file": ("students.csv", CSV_ROWS.encode("utf-8"), "text/csv")},
        headers=auth_headers,
    )

    assert response.status_code == 200, response.text
    data = response.json()["data"]
    assert data["created"] == 2
    assert data["failed"] == 2

    listing = client.get("/api/students", headers=auth_headers).json()["data"]
    assert listing["pagination"]["totalItems"] == 2


def test_upload_rejects_other_file_types_and_large_files(client, auth_headers) -> None:
    wrong_type = client.post(
        "/api/students/upload",
        files={"file": ("students.xlsx", b"PRN,Name\n", "application/octet-stream")},
        headers=auth_headers,
    )
    assert wrong_type.status_code == 400
    assert wrong_type.json()["message"] == "Only CSV files are allowed"

    client.app.state.settings.max_upload_bytes = 16
    too_large = client.post(
        "/api/students/upload",
        files={"file": ("students.csv", b"PRN,Name\n" + b"X,Y\n" * 10, "text/csv")},
        headers=auth_headers,
    )
    assert too_large.status_code == 400
    assert too_large.json()["message"].startswith("File too large")
