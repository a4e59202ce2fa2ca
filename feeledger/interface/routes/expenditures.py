"""Mini README: ``/api/expenditures`` endpoints.

Listing supports ``search``, ``category``, ``department``, ``fromDate`` and
``toDate`` filters with pagination; ``/summary`` returns the totals and
breakdowns used by the dashboard charts.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from ...database.models import Admin
from ...errors import ValidationFailed
from ...finance.expenditures import ExpenditureService, expenditure_to_dict
from ...utils.pagination import PageRequest, page_metadata
from ...utils.parsing import clean_text, parse_datetime
from ..dependencies import get_current_admin, get_session, page_request
from ..responses import respond
from ..schemas import ExpenditureRequest

router = APIRouter(
    prefix="/api/expenditures", tags=["expenditures"], dependencies=[Depends(get_current_admin)]
)


def _service(session: Session = Depends(get_session)) -> ExpenditureService:
    return ExpenditureService(session)


def _optional_date(field: str, value: Optional[str]):
    if clean_text(value) is None:
        return None
    try:
        return parse_datetime(value)
    except ValueError as error:
        raise ValidationFailed.for_fields({field: str(error)}) from error


@router.get("")
def list_expenditures(
    search: Optional[str] = Query(None),
    category: Optional[str] = Query(None),
    department: Optional[str] = Query(None),
    from_date: Optional[str] = Query(None, alias="fromDate"),
    to_date: Optional[str] = Query(None, alias="toDate"),
    page: PageRequest = Depends(page_request),
    service: ExpenditureService = Depends(_service),
) -> JSONResponse:
    items, total = service.list_expenditures(
        page,
        search=search,
        category=category,
        department=department,
        from_date=_optional_date("fromDate", from_date),
        to_date=_optional_date("toDate", to_date),
    )
    return respond(
        {
            "expenditures": [expenditure_to_dict(item) for item in items],
            "pagination": page_metadata(total, page),
        }
    )


@router.get("/summary")
def expenditure_summary(service: ExpenditureService = Depends(_service)) -> JSONResponse:
    return respond(
        {
            "totalExpenditure": service.total_expenditure(),
            "byCategory": service.summary_by_category(),
            "byDepartment": service.summary_by_department(),
            "monthly": service.monthly_summary(),
        }
    )


@router.post("")
def create_expenditure(
    body: ExpenditureRequest,
    admin: Admin = Depends(get_current_admin),
    service: ExpenditureService = Depends(_service),
) -> JSONResponse:
    expenditure = service.create(body.payload(), added_by_id=admin.id)
    return respond(
        expenditure_to_dict(expenditure),
        message="Expenditure added successfully",
        status_code=201,
    )


@router.get("/{expenditure_id}")
def get_expenditure(
    expenditure_id: int, service: ExpenditureService = Depends(_service)
) -> JSONResponse:
    return respond(expenditure_to_dict(service.get(expenditure_id)))


@router.put("/{expenditure_id}")
def update_expenditure(
    expenditure_id: int,
    body: ExpenditureRequest,
    service: ExpenditureService = Depends(_service),
) -> JSONResponse:
    expenditure = service.update(expenditure_id, body.payload())
    return respond(expenditure_to_dict(expenditure), message="Expenditure updated successfully")


@router.delete("/{expenditure_id}")
def delete_expenditure(
    expenditure_id: int, service: ExpenditureService = Depends(_service)
) -> JSONResponse:
    service.delete(expenditure_id)
    return respond(message="Expenditure deleted successfully")
