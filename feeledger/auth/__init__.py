"""Mini README: Admin authentication, recovery, rate limiting, and the guarded reset."""

from .rate_limit import RateLimiter
from .reset import (
    CONFIRMATION_PHRASE,
    ResetChallengeStore,
    ResetFlow,
    ResetState,
    reset_database,
)
from .security import TokenCodec, hash_secret, verify_secret
from .service import AuthService, LoggingOtpNotifier, OtpNotifier, admin_to_dict

__all__ = [
    "AuthService",
    "CONFIRMATION_PHRASE",
    "LoggingOtpNotifier",
    "OtpNotifier",
    "RateLimiter",
    "ResetChallengeStore",
    "ResetFlow",
    "ResetState",
    "TokenCodec",
    "admin_to_dict",
    "hash_secret",
    "reset_database",
    "verify_secret",
]
