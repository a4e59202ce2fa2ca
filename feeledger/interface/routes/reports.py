"""Mini README: ``/api/reports`` endpoints backed by ``ReportEngine``."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from ...finance.ledger import TransactionFilters
from ...reports import ReportEngine
from ...utils.pagination import PageRequest
from ..dependencies import get_current_admin, get_session, page_request
from ..responses import respond
from ..schemas import BulkDeleteRequest

router = APIRouter(
    prefix="/api/reports", tags=["reports"], dependencies=[Depends(get_current_admin)]
)


def _engine(session: Session = Depends(get_session)) -> ReportEngine:
    return ReportEngine(session)


@router.get("/student-payments")
def student_payments(
    type: Optional[str] = Query("both"),
    year: Optional[str] = Query(None),
    division: Optional[str] = Query(None),
    search: Optional[str] = Query(None),
    page: PageRequest = Depends(page_request),
    engine: ReportEngine = Depends(_engine),
) -> JSONResponse:
    report = engine.student_payments(
        page, payment_type=type, academic_year=year, division=division, search=search
    )
    return respond(report)


@router.get("/transactions")
def transactions(
    type: Optional[str] = Query(None),
    payment_type: Optional[str] = Query(None, alias="paymentType"),
    category: Optional[str] = Query(None),
    year: Optional[str] = Query(None),
    month: Optional[str] = Query(None),
    from_date: Optional[str] = Query(None, alias="fromDate"),
    to_date: Optional[str] = Query(None, alias="toDate"),
    min_amount: Optional[str] = Query(None, alias="minAmount"),
    max_amount: Optional[str] = Query(None, alias="maxAmount"),
    page: PageRequest = Depends(page_request),
    engine: ReportEngine = Depends(_engine),
) -> JSONResponse:
    filters = TransactionFilters.from_query(
        {
            "kind": type,
            "payment_type": payment_type,
            "category": category,
            "year": year,
            "month": month,
            "from_date": from_date,
            "to_date": to_date,
            "min_amount": min_amount,
            "max_amount": max_amount,
        }
    )
    return respond(engine.transactions(filters, page))


@router.delete("/income/bulk-delete")
def bulk_delete_income(
    body: BulkDeleteRequest, engine: ReportEngine = Depends(_engine)
) -> JSONResponse:
    result = engine.bulk_delete_income(item.payload() for item in body.items)
    message = f"Deleted {result['deletedCount']} transaction(s)"
    if result["notFoundCount"]:
        message += f", {result['notFoundCount']} not found"
    return respond(result, message=message)


@router.get("/summary")
def summary(engine: ReportEngine = Depends(_engine)) -> JSONResponse:
    return respond(engine.summary())
