"""Mini README: Tests for student records and their fines/fees.

Structure:
    * StudentService - PRN uniqueness, running totals, fine edits.
    * /api/students - search semantics and the fine sub-resources.
"""

from __future__ import annotations

import pytest

from feeledger.errors import ConflictError, NotFoundError, ValidationFailed
from feeledger.finance import PaymentCategoryService
from feeledger.finance.receipts import RECEIPT_PATTERN
from feeledger.students import StudentService, student_to_dict
from feeledger.utils.pagination import PageRequest


def test_totals_track_every_added_payment(session) -> None:
    service = StudentService(session)
    service.create_student({"prn": "prn001", "name": "Asha"})

    first = service.add_fine("PRN001", {"amount": 500, "category": "Late Fine"})
    student = service.get_student("PRN001")
    assert student.prn == "PRN001"
    assert student.total_fines == pytest.approx(500.0)
    assert first.category == "Late Fine"
    assert first.type == "fine"
    assert first.is_paid is True
    assert first.paid_date is not None
    assert RECEIPT_PATTERN.match(first.receipt_number)

    service.add_fine("PRN001", {"amount": 1000, "type": "fee"})
    payload = student_to_dict(service.get_student("PRN001"))
    assert payload["totalFines"] == pytest.approx(1500.0)
    assert payload["fineCount"] == 2
    assert payload["unpaidFines"] == pytest.approx(0.0)


def test_duplicate_prn_is_a_conflict(session) -> None:
    service = StudentService(session)
    service.create_student({"prn": "PRN002", "name": "Kiran"})

    with pytest.raises(ConflictError):
        service.create_student({"prn": " prn002 ", "name": "Someone Else"})


def test_search_treats_wildcards_literally(session) -> None:
    service = StudentService(session)
    service.create_student({"prn": "PRN010", "name": "Asha"})
    service.create_student({"prn": "PRN011", "name": "Ravi_K"})
    page = PageRequest(page=1, limit=10)

    underscore, total = service.list_students(page, search="_")
    percent, _ = service.list_students(page, search="%")
    partial, _ = service.list_students(page, search="SHA")

    assert total == 1
    assert [student.prn for student in underscore] == ["PRN011"]
    assert percent == []
    assert [student.prn for student in partial] == ["PRN010"]


def test_student_validation_reports_each_field(session) -> None:
    service = StudentService(session)

    with pytest.raises(ValidationFailed) as excinfo:
        service.create_student({"prn": "", "name": " ", "email": "not-an-email"})

    assert set(excinfo.value.errors) == {"prn", "name", "email"}


def test_fine_validation_rejects_bad_values(session) -> None:
    service = StudentService(session)
    service.create_student({"prn": "PRN003", "name": "Neha"})

    with pytest.raises(ValidationFailed) as excinfo:
        service.add_fine("PRN003", {"amount": -10, "type": "donation"})

    assert set(excinfo.value.errors) == {"amount", "type"}
    assert service.get_student("PRN003").fine_count == 0


def test_supplied_receipt_numbers_must_be_unique(session) -> None:
    service = StudentService(session)
    service.create_student({"prn": "PRN004", "name": "Omkar"})
    service.add_fine("PRN004", {"amount": 100, "receipt_number": "RCP-20240101-12345"})

    with pytest.raises(ConflictError):
        service.add_fine("PRN004", {"amount": 200, "receipt_number": "RCP-20240101-12345"})


def test_update_and_delete_individual_fines(session) -> None:
    service = StudentService(session)
    service.create_student({"prn": "PRN005", "name": "Sana"})
    fine = service.add_fine("PRN005", {"amount": 300, "is_paid": False})
    assert service.get_student("PRN005").unpaid_fines == pytest.approx(300.0)

    updated = service.update_fine("PRN005", fine.id, {"is_paid": True, "amount": 250})
    assert updated.is_paid is True
    assert updated.paid_date is not None
    assert service.get_student("PRN005").total_fines == pytest.approx(250.0)

    service.delete_fine("PRN005", fine.id)
    assert service.get_student("PRN005").fine_count == 0
    with pytest.raises(NotFoundError):
        service.delete_fine("PRN005", fine.id)


def test_enforced_categories_must_exist(session) -> None:
    PaymentCategoryService(session).create("Library Fine")
    service = StudentService(session, enforce_payment_categories=True)
    service.create_student({"prn": "PRN006", "name": "Tanvi"})

    fine = service.add_fine("PRN006", {"amount": 20, "category": "library fine"})
    assert fine.category == "Library Fine"

    with pytest.raises(ValidationFailed):
        service.add_fine("PRN006", {"amount": 20, "category": "Parking"})


def test_deleting_student_removes_their_fines(session) -> None:
    service = StudentService(session)
    service.create_student({"prn": "PRN007", "name": "Yash"})
    service.add_fine("PRN007", {"amount": 10})
    service.add_fine("PRN007", {"amount": 20})

    assert service.delete_student("PRN007") == 2
    assert service.find_student("PRN007") is None
    assert service.total_income() == pytest.approx(0.0)


def test_student_endpoints(client, auth_headers) -> None:
    created = client.post(
        "/api/students",
        json={"prn": "PRN001", "name": "Asha", "academicYear": "2024-25", "division": "A"},
        headers=auth_headers,
    )
    assert created.status_code == 201
    assert created.json()["data"]["academicYear"] == "2024-25"

    fine = client.post(
        "/api/students/PRN001/fines",
        json={"amount": 500, "category": "Late Fine"},
        headers=auth_headers,
    )
    assert fine.status_code == 201
    assert fine.json()["data"]["student"]["totalFines"] == 500

    fee = client.post(
        "/api/students/prn001/fines", json={"amount": "1,000", "type": "fee"}, headers=auth_headers
    )
    student = fee.json()["data"]["student"]
    assert student["totalFines"] == 1500
    assert student["fineCount"] == 2

    listing = client.get("/api/students", params={"search": "ash"}, headers=auth_headers)
    assert listing.json()["data"]["pagination"]["totalItems"] == 1

    missing = client.get("/api/students/search/UNKNOWN", headers=auth_headers)
    assert missing.status_code == 200
    assert missing.json()["data"] is None

    not_found = client.get("/api/students/UNKNOWN", headers=auth_headers)
    assert not_found.status_code == 404
    assert not_found.json() == {"success": False, "message": "Student not found"}

    fine_id = fine.json()["data"]["fine"]["id"]
    removed = client.delete(f"/api/students/PRN001/fines/{fine_id}", headers=auth_headers)
    assert removed.status_code == 200
    remaining = client.get("/api/students/PRN001", headers=auth_headers).json()["data"]
    assert remaining["totalFines"] == 1000


def test_invalid_amount_returns_field_errors(client, auth_headers) -> None:
    client.post("/api/students", json={"prn": "PRN009", "name": "Dev"}, headers=auth_headers)

    response = client.post(
        "/api/students/PRN009/fines", json={"amount": "abc"}, headers=auth_headers
    )

    assert response.status_code == 400
    body = response.json()
    assert body["success"] is False
    assert body["errors"] == {"amount": "Amount must be a number"}
