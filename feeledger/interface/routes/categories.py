"""Mini README: ``/api/categories`` endpoints for payment categories."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from ...finance.categories import PaymentCategoryService, category_to_dict
from ..dependencies import get_current_admin, get_session
from ..responses import respond
from ..schemas import CategoryRequest

router = APIRouter(
    prefix="/api/categories", tags=["categories"], dependencies=[Depends(get_current_admin)]
)


def _service(session: Session = Depends(get_session)) -> PaymentCategoryService:
    return PaymentCategoryService(session)


@router.get("")
def list_categories(
    type: Optional[str] = Query(None),
    active_only: bool = Query(False, alias="activeOnly"),
    service: PaymentCategoryService = Depends(_service),
) -> JSONResponse:
    categories = service.list_categories(type=type, active_only=active_only)
    return respond(
        {"categories": [category_to_dict(item) for item in categories], "count": len(categories)}
    )


@router.post("")
def create_category(
    body: CategoryRequest, service: PaymentCategoryService = Depends(_service)
) -> JSONResponse:
    category = service.create(body.name, body.type, body.description)
    return respond(
        category_to_dict(category), message="Category created successfully", status_code=201
    )


@router.put("/{category_id}")
def update_category(
    category_id: int, body: CategoryRequest, service: PaymentCategoryService = Depends(_service)
) -> JSONResponse:
    category = service.update(
        category_id,
        name=body.name,
        type=body.type,
        description=body.description,
        is_active=body.is_active,
    )
    return respond(category_to_dict(category), message="Category updated successfully")


@router.delete("/{category_id}")
def delete_category(
    category_id: int, service: PaymentCategoryService = Depends(_service)
) -> JSONResponse:
    service.delete(category_id)
    return respond(message="Category deleted successfully")
