"""Mini README: Receipt numbers for recorded payments.

Format: ``RCP-<YYYYMMDD>-<NNNNN>`` where the date is the UTC generation date
and the suffix is drawn uniformly from 10000..99999. ``allocate_receipt_number``
checks candidates with a caller-supplied lookup (normally
``FineRepository.receipt_taken``) and retries a bounded number of times
before giving up.
"""

from __future__ import annotations

import random
import re
from datetime import datetime, timezone
from typing import Callable, Optional

from ..logging_utils import get_logger

LOGGER = get_logger(__name__)

RECEIPT_PATTERN = re.compile(r"^RCP-\d{8}-\d{5}$")
MAX_ALLOCATION_ATTEMPTS = 5


def generate_receipt_number(
    now: Optional[datetime] = None,
    randint: Callable[[int, int], int] = random.randint,
) -> str:
    """Return a receipt number for ``now`` (defaults to the current UTC time)."""

    moment = now or datetime.now(timezone.utc)
    if moment.tzinfo is not None:
        moment = moment.astimezone(timezone.utc)
    return f"RCP-{moment:%Y%m%d}-{randint(10000, 99999)}"


def allocate_receipt_number(
    is_taken: Callable[[str], bool],
    *,
    generator: Callable[[], str] = generate_receipt_number,
    attempts: int = MAX_ALLOCATION_ATTEMPTS,
) -> str:
    """Generate a receipt number for which ``is_taken`` returns False."""

    for attempt in range(1, attempts + 1):
        candidate = generator()
        if not is_taken(candidate):
            return candidate
        LOGGER.warning("Receipt number %s already issued (attempt %s)", candidate, attempt)
    raise RuntimeError(f"Could not allocate a unique receipt number after {attempts} attempts")
