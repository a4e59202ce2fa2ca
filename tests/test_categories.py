"""Mini README: Tests for payment categories and the category tagged value.

Structure:
    * parse_category - predefined versus custom classification.
    * PaymentCategoryService - case-insensitive uniqueness and listing.
    * /api/categories - envelope shape and error statuses.
"""

from __future__ import annotations

import pytest

from feeledger.errors import ConflictError, NotFoundError, ValidationFailed
from feeledger.finance import (
    CustomCategory,
    PaymentCategoryService,
    PredefinedCategory,
    category_label,
    parse_category,
)


def test_parse_category_distinguishes_predefined_and_custom() -> None:
    assert parse_category("  Equipment ") is PredefinedCategory.EQUIPMENT
    assert parse_category(None) is PredefinedCategory.OTHER
    custom = parse_category("Guest lectures")
    assert custom == CustomCategory("Guest lectures")
    assert category_label(custom) == "Guest lectures"
    assert category_label(PredefinedCategory.EVENTS) == "events"


def test_category_names_are_unique_ignoring_case(session) -> None:
    service = PaymentCategoryService(session)
    service.create("Library Fine")

    with pytest.raises(ConflictError):
        service.create("library fine")

    other = service.create("Lab Fee", type="fee")
    with pytest.raises(ConflictError):
        service.update(other.id, name="LIBRARY FINE")


def test_category_can_change_case_of_its_own_name(session) -> None:
    service = PaymentCategoryService(session)
    category = service.create("hostel fee", type="fee")

    renamed = service.update(category.id, name="Hostel Fee")

    assert renamed.name == "Hostel Fee"


def test_list_categories_filters_and_sorts(session) -> None:
    service = PaymentCategoryService(session)
    service.create("uniform", type="fine")
    service.create("Exam Fee", type="fee")
    late = service.create("Late Submission")
    service.update(late.id, is_active=False)

    names = [category.name for category in service.list_categories()]
    assert names == ["Exam Fee", "Late Submission", "uniform"]

    fines_only = [category.name for category in service.list_categories(type="fine", active_only=True)]
    assert fines_only == ["uniform"]


def test_category_validation_and_missing_records(session) -> None:
    service = PaymentCategoryService(session)

    with pytest.raises(ValidationFailed):
        service.create("   ")
    with pytest.raises(ValidationFailed):
        service.create("Sports", type="donation")
    with pytest.raises(NotFoundError):
        service.delete(999)


def test_category_endpoints(client, auth_headers) -> None:
    created = client.post(
        "/api/categories",
        json={"name": "Library Fine", "description": "Late book returns"},
        headers=auth_headers,
    )
    assert created.status_code == 201
    body = created.json()
    assert body["success"] is True
    assert body["data"]["type"] == "fine"

    duplicate = client.post("/api/categories", json={"name": "LIBRARY fine"}, headers=auth_headers)
    assert duplicate.status_code == 400
    assert duplicate.json() == {
        "success": False,
        "message": "Category with this name already exists",
    }

    listing = client.get("/api/categories", params={"type": "fine"}, headers=auth_headers)
    assert listing.json()["data"]["count"] == 1

    category_id = body["data"]["id"]
    updated = client.put(
        f"/api/categories/{category_id}", json={"isActive": False}, headers=auth_headers
    )
    assert updated.json()["data"]["isActive"] is False
    active = client.get("/api/categories", params={"activeOnly": "true"}, headers=auth_headers)
    assert active.json()["data"]["categories"] == []

    assert client.delete(f"/api/categories/{category_id}", headers=auth_headers).status_code == 200
    missing = client.delete(f"/api/categories/{category_id}", headers=auth_headers)
    assert missing.status_code == 404
    assert missing.json()["message"] == "Category not found"


def test_category_endpoints_require_token(client) -> None:
    response = client.get("/api/categories")

    assert response.status_code == 401
    assert response.json() == {"success": False, "message": "Not authorized. No token provided."}
