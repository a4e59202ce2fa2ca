"""Mini README: Password hashing and access-token helpers.

Structure:
    * hash_secret / verify_secret - bcrypt wrappers for passwords and OTPs.
    * TokenCodec - issue and decode HS256 admin access tokens.

bcrypt only considers the first 72 bytes of a secret; longer inputs are
truncated explicitly so newer bcrypt releases do not reject them.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import bcrypt
from jose import ExpiredSignatureError, JWTError, jwt

from ..errors import AuthenticationError

BCRYPT_MAX_BYTES = 72
BCRYPT_ROUNDS = 12

TOKEN_EXPIRED = "Not authorized. Token has expired."
TOKEN_INVALID = "Not authorized. Invalid token."


def _encode_secret(secret: str) -> bytes:
    return secret.encode("utf-8")[:BCRYPT_MAX_BYTES]


def hash_secret(secret: str, *, rounds: int = BCRYPT_ROUNDS) -> str:
    return bcrypt.hashpw(_encode_secret(secret), bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def verify_secret(secret: Optional[str], hashed: Optional[str]) -> bool:
    """Return ``True`` when ``secret`` matches ``hashed``; malformed hashes never match."""

    if not secret or not hashed:
        return False
    try:
        return bcrypt.checkpw(_encode_secret(secret), hashed.encode("utf-8"))
    except ValueError:
        return False


class TokenCodec:
    """Sign and verify admin access tokens."""

    def __init__(self, secret: str, *, algorithm: str = "HS256", expires_minutes: int = 60) -> None:
        self.secret = secret
        self.algorithm = algorithm
        self.expires_minutes = expires_minutes

    def issue(self, admin_id: int, *, now: Optional[datetime] = None) -> str:
        issued_at = now or datetime.now(timezone.utc)
        claims: Dict[str, Any] = {
            "sub": str(admin_id),
            "iat": issued_at,
            "exp": issued_at + timedelta(minutes=self.expires_minutes),
        }
        return jwt.encode(claims, self.secret, algorithm=self.algorithm)

    def decode(self, token: str) -> int:
        """Return the admin id carried by ``token`` or raise ``AuthenticationError``."""

        try:
            claims = jwt.decode(token, self.secret, algorithms=[self.algorithm])
        except ExpiredSignatureError as error:
            raise AuthenticationError(TOKEN_EXPIRED) from error
        except JWTError as error:
            raise AuthenticationError(TOKEN_INVALID) from error
        try:
            return int(claims["sub"])
        except (KeyError, TypeError, ValueError) as error:
            raise AuthenticationError(TOKEN_INVALID) from error
