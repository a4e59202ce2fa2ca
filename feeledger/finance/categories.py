"""Mini README: Category values and payment-category management.

Structure:
    * PredefinedCategory - enum of the built-in expenditure categories.
    * CustomCategory - free-text category supplied by an operator.
    * parse_category / category_label - convert between stored strings and
      the tagged ``CategoryValue``.
    * PaymentCategoryService - CRUD for ``PaymentCategory`` rows with
      case-insensitive name uniqueness.

Expenditures may use any category: predefined values are normalised to their
lowercase identifier and everything else is kept verbatim as a custom
category. Fine categories are checked against active payment categories only
when the service is configured to enforce them.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Union

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from ..database.models import DEFAULT_FINE_CATEGORY, PAYMENT_TYPES, PaymentCategory
from ..errors import ConflictError, NotFoundError, ValidationFailed
from ..logging_utils import get_logger
from ..utils.parsing import clean_text

LOGGER = get_logger(__name__)

MAX_NAME_LENGTH = 100
MAX_DESCRIPTION_LENGTH = 500


class PredefinedCategory(str, Enum):
    """Built-in expenditure categories offered by the entry form."""

    INFRASTRUCTURE = "infrastructure"
    EQUIPMENT = "equipment"
    STATIONERY = "stationery"
    EVENTS = "events"
    MAINTENANCE = "maintenance"
    OTHER = "other"

    @classmethod
    def from_str(cls, value: str) -> "PredefinedCategory":
        """Coerce arbitrary casing into a predefined category."""

        try:
            return cls(value.strip().lower())
        except (ValueError, AttributeError) as error:
            raise ValueError(f"Unknown predefined category: {value}") from error


@dataclass(frozen=True, slots=True)
class CustomCategory:
    """Operator supplied category outside the predefined set."""

    name: str


CategoryValue = Union[PredefinedCategory, CustomCategory]


def parse_category(
    value: Optional[str], default: PredefinedCategory = PredefinedCategory.OTHER
) -> CategoryValue:
    """Classify a raw category string, falling back to ``default`` when blank."""

    text = clean_text(value)
    if text is None:
        return default
    try:
        return PredefinedCategory.from_str(text)
    except ValueError:
        if len(text) > MAX_NAME_LENGTH:
            raise ValueError(f"Category cannot exceed {MAX_NAME_LENGTH} characters")
        return CustomCategory(text)


def category_label(value: CategoryValue) -> str:
    """Return the string stored for a category value."""

    if isinstance(value, PredefinedCategory):
        return value.value
    return value.name


def normalise_payment_type(value: Optional[str], default: str = "fine") -> str:
    text = clean_text(value)
    if text is None:
        return default
    lowered = text.lower()
    if lowered not in PAYMENT_TYPES:
        raise ValidationFailed.for_fields({"type": "Type must be either 'fine' or 'fee'"})
    return lowered


def category_to_dict(category: PaymentCategory) -> Dict[str, object]:
    return {
        "id": category.id,
        "name": category.name,
        "type": category.type,
        "description": category.description or "",
        "isActive": category.is_active,
        "createdAt": category.created_at.isoformat() if category.created_at else None,
        "updatedAt": category.updated_at.isoformat() if category.updated_at else None,
    }


class PaymentCategoryService:
    """CRUD operations for payment categories bound to one session."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def list_categories(
        self, *, type: Optional[str] = None, active_only: bool = False
    ) -> List[PaymentCategory]:
        """Return categories sorted by name, optionally filtered."""

        query = select(PaymentCategory)
        if type:
            query = query.where(PaymentCategory.type == normalise_payment_type(type))
        if active_only:
            query = query.where(PaymentCategory.is_active.is_(True))
        query = query.order_by(func.lower(PaymentCategory.name), PaymentCategory.id)
        return list(self.session.scalars(query))

    def get(self, category_id: int) -> PaymentCategory:
        category = self.session.get(PaymentCategory, category_id)
        if category is None:
            raise NotFoundError("Category not found")
        return category

    def find_by_name(
        self, name: str, *, exclude_id: Optional[int] = None
    ) -> Optional[PaymentCategory]:
        """Case-insensitive lookup, optionally ignoring one record."""

        query = select(PaymentCategory).where(
            func.lower(PaymentCategory.name) == name.strip().lower()
        )
        if exclude_id is not None:
            query = query.where(PaymentCategory.id != exclude_id)
        return self.session.scalars(query).first()

    def create(
        self,
        name: Optional[str],
        type: Optional[str] = None,
        description: Optional[str] = None,
    ) -> PaymentCategory:
        clean_name = self._validate_name(name)
        if self.find_by_name(clean_name) is not None:
            raise ConflictError("Category with this name already exists")
        category = PaymentCategory(
            name=clean_name,
            type=normalise_payment_type(type),
            description=self._validate_description(description),
            is_active=True,
        )
        self.session.add(category)
        self.session.flush()
        LOGGER.info("Created payment category %s (%s)", category.name, category.type)
        return category

    def update(
        self,
        category_id: int,
        *,
        name: Optional[str] = None,
        type: Optional[str] = None,
        description: Optional[str] = None,
        is_active: Optional[bool] = None,
    ) -> PaymentCategory:
        category = self.get(category_id)
        if clean_text(name) is not None and name.strip() != category.name:
            clean_name = self._validate_name(name)
            if self.find_by_name(clean_name, exclude_id=category.id) is not None:
                raise ConflictError("Category with this name already exists")
            category.name = clean_name
        if clean_text(type) is not None:
            category.type = normalise_payment_type(type)
        if description is not None:
            category.description = self._validate_description(description)
        if is_active is not None:
            category.is_active = bool(is_active)
        self.session.flush()
        LOGGER.info("Updated payment category %s", category.id)
        return category

    def delete(self, category_id: int) -> None:
        category = self.get(category_id)
        self.session.delete(category)
        self.session.flush()
        LOGGER.info("Deleted payment category %s (%s)", category_id, category.name)

    def resolve_fine_category(self, value: Optional[str], *, enforce: bool) -> str:
        """Return the category to store on a fine.

        With ``enforce`` the value must name an active payment category (the
        default ``Others`` is always accepted) and the stored spelling is the
        category's own. Without it the trimmed text is kept as given.
        """

        text = clean_text(value)
        if text is None:
            return DEFAULT_FINE_CATEGORY
        if len(text) > MAX_NAME_LENGTH:
            raise ValidationFailed.for_fields(
                {"category": f"Category cannot exceed {MAX_NAME_LENGTH} characters"}
            )
        if not enforce or text.lower() == DEFAULT_FINE_CATEGORY.lower():
            return text
        category = self.find_by_name(text)
        if category is None or not category.is_active:
            raise ValidationFailed.for_fields(
                {"category": f"Unknown payment category: {text}"}
            )
        return category.name

    @staticmethod
    def _validate_name(name: Optional[str]) -> str:
        text = clean_text(name)
        if text is None:
            raise ValidationFailed.for_fields({"name": "Category name is required"})
        if len(text) > MAX_NAME_LENGTH:
            raise ValidationFailed.for_fields(
                {"name": f"Category name cannot exceed {MAX_NAME_LENGTH} characters"}
            )
        return text

    @staticmethod
    def _validate_description(description: Optional[str]) -> Optional[str]:
        text = clean_text(description)
        if text is not None and len(text) > MAX_DESCRIPTION_LENGTH:
            raise ValidationFailed.for_fields(
                {"description": f"Description cannot exceed {MAX_DESCRIPTION_LENGTH} characters"}
            )
        return text
