"""Mini README: Small helpers shared by services and routers.

* pagination - page/limit normalisation and page metadata.
* parsing - tolerant coercion of dates, amounts, and free text.
"""

from .pagination import PageRequest, page_metadata
from .parsing import clean_text, parse_amount, parse_datetime

__all__ = ["PageRequest", "clean_text", "page_metadata", "parse_amount", "parse_datetime"]
