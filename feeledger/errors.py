"""Mini README: Exception taxonomy shared by services and the HTTP boundary.

Structure:
    * FeeLedgerError - base class carrying the HTTP status used when formatting.
    * ValidationFailed - bad input, optionally with per-field messages (400).
    * ConflictError - uniqueness violations such as duplicate PRNs (400).
    * NotFoundError - a referenced record does not exist (404).
    * AuthenticationError - missing or invalid credentials (401).
    * RateLimitExceeded - too many attempts within the limiter window (429).

Services raise these and never build responses themselves; the exception
handlers in ``feeledger.interface.web_app`` turn them into the
``{"success": false, "message": ...}`` envelope.
"""

from __future__ import annotations

from typing import Dict, Optional


class FeeLedgerError(Exception):
    """Base class for expected, client-visible failures."""

    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationFailed(FeeLedgerError):
    status_code = 400

    def __init__(self, message: str, errors: Optional[Dict[str, str]] = None) -> None:
        super().__init__(message)
        self.errors: Dict[str, str] = dict(errors or {})

    @classmethod
    def for_fields(cls, errors: Dict[str, str]) -> "ValidationFailed":
        """Build an error whose message joins the individual field messages."""

        return cls("; ".join(errors.values()), errors)


class ConflictError(FeeLedgerError):
    status_code = 400


class NotFoundError(FeeLedgerError):
    status_code = 404


class AuthenticationError(FeeLedgerError):
    status_code = 401


class RateLimitExceeded(FeeLedgerError):
    status_code = 429

    def __init__(self, message: str, retry_after_seconds: int) -> None:
        super().__init__(message)
        self.retry_after_seconds = retry_after_seconds
