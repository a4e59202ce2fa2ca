"""Mini README: Guarded full-database reset.

Structure:
    * ResetState - idle -> awaiting_password -> awaiting_phrase -> completed.
    * ResetFlow - one admin's progress through the confirmation steps.
    * ResetChallengeStore - short-lived flows keyed by an opaque token.
    * reset_database - delete every student, fine, expenditure and
      payment category, leaving admin accounts in place.

The server, not the client, owns the current step. Verifying the password
creates a flow already in ``awaiting_phrase`` and hands back its token; the
reset request must present that token, the exact phrase, and the same
password again. Failed checks leave the flow where it was so the admin can
retry until the challenge expires.
"""

from __future__ import annotations

import secrets
import time
from dataclasses import dataclass
from enum import Enum
from threading import Lock
from typing import Callable, Dict, Optional, Tuple

from sqlalchemy import delete
from sqlalchemy.orm import Session

from ..database.models import Expenditure, PaymentCategory
from ..errors import ValidationFailed
from ..logging_utils import get_logger
from ..students.repository import FineRepository, StudentRepository

LOGGER = get_logger(__name__)

CONFIRMATION_PHRASE = "DELETE EVERYTHING"
INVALID_CHALLENGE = "Reset challenge is invalid or has expired. Please verify your password again."


class ResetState(str, Enum):
    IDLE = "idle"
    AWAITING_PASSWORD = "awaiting_password"
    AWAITING_PHRASE = "awaiting_phrase"
    COMPLETED = "completed"


class InvalidResetTransition(ValidationFailed):
    """Raised when a step is attempted from the wrong state."""


@dataclass(slots=True)
class ResetFlow:
    """Confirmation progress for one admin."""

    admin_id: int
    state: ResetState = ResetState.IDLE
    result: Optional[Dict[str, int]] = None

    def _require(self, expected: ResetState) -> None:
        if self.state is not expected:
            raise InvalidResetTransition(
                f"Reset cannot proceed from '{self.state.value}'; expected '{expected.value}'"
            )

    def acknowledge(self) -> None:
        self._require(ResetState.IDLE)
        self.state = ResetState.AWAITING_PASSWORD

    def submit_password(self, password_ok: bool) -> None:
        self._require(ResetState.AWAITING_PASSWORD)
        if not password_ok:
            raise ValidationFailed("Incorrect password")
        self.state = ResetState.AWAITING_PHRASE

    def confirm(
        self,
        phrase: Optional[str],
        password_ok: bool,
        executor: Callable[[], Dict[str, int]],
    ) -> Dict[str, int]:
        """Run ``executor`` once the phrase and password both check out."""

        self._require(ResetState.AWAITING_PHRASE)
        if phrase != CONFIRMATION_PHRASE:
            raise ValidationFailed(f'Please type "{CONFIRMATION_PHRASE}" exactly to confirm')
        if not password_ok:
            raise ValidationFailed("Incorrect password")
        self.result = executor()
        self.state = ResetState.COMPLETED
        return self.result

    def cancel(self) -> None:
        self.state = ResetState.IDLE
        self.result = None


@dataclass(slots=True)
class _Challenge:
    flow: ResetFlow
    expires_at: float


class ResetChallengeStore:
    """Thread-safe map of challenge tokens to in-progress reset flows."""

    def __init__(self, ttl_seconds: float, *, clock: Callable[[], float] = time.monotonic) -> None:
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._challenges: Dict[str, _Challenge] = {}
        self._lock = Lock()

    def open(self, admin_id: int, password_ok: bool) -> Tuple[str, ResetFlow]:
        """Start a flow for ``admin_id`` and advance it past password verification.

        A wrong password raises before anything is stored.
        """

        flow = ResetFlow(admin_id=admin_id)
        flow.acknowledge()
        flow.submit_password(password_ok)
        token = secrets.token_urlsafe(32)
        now = self._clock()
        with self._lock:
            self._purge(now)
            self._challenges[token] = _Challenge(flow=flow, expires_at=now + self.ttl_seconds)
        LOGGER.info("Issued database reset challenge for admin %s", admin_id)
        return token, flow

    def get(self, token: Optional[str], admin_id: int) -> ResetFlow:
        """Return the live flow for ``token``; foreign or expired tokens are rejected."""

        if not token:
            raise ValidationFailed(INVALID_CHALLENGE)
        with self._lock:
            self._purge(self._clock())
            challenge = self._challenges.get(token)
        if challenge is None or challenge.flow.admin_id != admin_id:
            raise ValidationFailed(INVALID_CHALLENGE)
        return challenge.flow

    def confirm(
        self,
        token: Optional[str],
        admin_id: int,
        phrase: Optional[str],
        password_ok: bool,
        executor: Callable[[], Dict[str, int]],
    ) -> Tuple[ResetFlow, Dict[str, int]]:
        """Claim the challenge and run the final step at most once.

        The challenge leaves the store before ``executor`` runs, so a second
        request with the same token is rejected. A wrong phrase or password
        puts it back unchanged for another attempt.
        """

        challenge = self._claim(token, admin_id)
        try:
            result = challenge.flow.confirm(phrase, password_ok, executor)
        except ValidationFailed:
            if challenge.flow.state is ResetState.AWAITING_PHRASE:
                with self._lock:
                    self._challenges[token] = challenge
            raise
        LOGGER.info("Database reset challenge completed by admin %s", admin_id)
        return challenge.flow, result

    def discard(self, token: Optional[str]) -> bool:
        if not token:
            return False
        with self._lock:
            return self._challenges.pop(token, None) is not None

    def cancel(self, token: Optional[str], admin_id: int) -> ResetFlow:
        flow = self.get(token, admin_id)
        flow.cancel()
        self.discard(token)
        LOGGER.info("Database reset challenge cancelled by admin %s", admin_id)
        return flow

    def expires_in(self, token: str) -> float:
        with self._lock:
            challenge = self._challenges.get(token)
        if challenge is None:
            return 0.0
        return max(challenge.expires_at - self._clock(), 0.0)

    def __len__(self) -> int:
        with self._lock:
            return len(self._challenges)

    def _claim(self, token: Optional[str], admin_id: int) -> _Challenge:
        if not token:
            raise ValidationFailed(INVALID_CHALLENGE)
        with self._lock:
            self._purge(self._clock())
            challenge = self._challenges.get(token)
            if challenge is None or challenge.flow.admin_id != admin_id:
                raise ValidationFailed(INVALID_CHALLENGE)
            del self._challenges[token]
        return challenge

    def _purge(self, now: float) -> None:
        expired = [token for token, item in self._challenges.items() if item.expires_at <= now]
        for token in expired:
            del self._challenges[token]


def reset_database(session: Session) -> Dict[str, int]:
    """Delete all bookkeeping data in one transaction and return per-table counts."""

    fines = FineRepository(session).delete_all()
    students = StudentRepository(session).delete_all()
    expenditures = int(session.execute(delete(Expenditure)).rowcount or 0)
    categories = int(session.execute(delete(PaymentCategory)).rowcount or 0)
    session.expire_all()
    counts = {
        "students": students,
        "fines": fines,
        "expenditures": expenditures,
        "categories": categories,
    }
    LOGGER.warning("Database reset removed %s", counts)
    return counts
