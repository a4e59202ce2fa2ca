"""Mini README: Finance domain helpers for FeeLedger.

This package groups everything about money that is not tied to a single
student: payment categories, departmental expenditures, receipt numbers,
and the unified transaction record used by the reporting feed.
"""

from .categories import (
    CategoryValue,
    CustomCategory,
    PaymentCategoryService,
    PredefinedCategory,
    category_label,
    parse_category,
)
from .expenditures import ExpenditureService
from .ledger import Transaction, TransactionFilters, TransactionKind
from .receipts import allocate_receipt_number, generate_receipt_number

__all__ = [
    "CategoryValue",
    "CustomCategory",
    "ExpenditureService",
    "PaymentCategoryService",
    "PredefinedCategory",
    "Transaction",
    "TransactionFilters",
    "TransactionKind",
    "allocate_receipt_number",
    "category_label",
    "generate_receipt_number",
    "parse_category",
]
