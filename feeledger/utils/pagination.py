"""Mini README: Pagination helpers for list and report endpoints.

``PageRequest.build`` clamps user supplied ``page``/``limit`` values, and
``page_metadata`` produces the block returned next to every page of results.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Dict, Optional


@dataclass(frozen=True, slots=True)
class PageRequest:
    """A validated 1-based page request."""

    page: int
    limit: int

    @classmethod
    def build(
        cls,
        page: Optional[int],
        limit: Optional[int],
        *,
        default_limit: int = 10,
        max_limit: int = 100,
    ) -> "PageRequest":
        """Clamp page to >= 1 and limit to [1, max_limit]."""

        page_number = max(int(page or 1), 1)
        page_size = int(limit or default_limit)
        page_size = min(max(page_size, 1), max_limit)
        return cls(page=page_number, limit=page_size)

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


def page_metadata(total: int, request: PageRequest) -> Dict[str, Any]:
    """Describe where a page sits within ``total`` matching items."""

    total_pages = math.ceil(total / request.limit) if total else 0
    return {
        "currentPage": request.page,
        "totalPages": total_pages,
        "totalItems": total,
        "limit": request.limit,
        "hasNextPage": request.page < total_pages,
        "hasPrevPage": request.page > 1,
    }
