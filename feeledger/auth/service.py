"""Mini README: Admin account lifecycle and password recovery.

Structure:
    * OtpNotifier - delivery hook for one-time recovery codes.
    * LoggingOtpNotifier - default notifier that writes the code to the log.
    * AuthService - setup, login, profile, password changes, and the
      forgot-password -> verify-otp -> reset-password recovery flow.

FeeLedger is a single-admin system: registration only succeeds while no
admin exists. Recovery requests may omit the email, in which case the
first admin account is used.
"""

from __future__ import annotations

import secrets
from datetime import datetime, timedelta
from typing import Any, Dict, Optional, Protocol, Tuple

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from ..configuration import FeeLedgerSettings
from ..database.models import Admin, utcnow
from ..errors import AuthenticationError, ValidationFailed
from ..logging_utils import get_logger
from ..utils.parsing import clean_text
from .security import TokenCodec, hash_secret, verify_secret

LOGGER = get_logger(__name__)

MIN_PASSWORD_LENGTH = 6
OTP_DIGITS = 6
ADMIN_NOT_FOUND = "Not authorized. Admin not found."
INVALID_CREDENTIALS = "Invalid email or password"
INCORRECT_PASSWORD = "Incorrect password"
INVALID_OTP = "Invalid or expired OTP"


class OtpNotifier(Protocol):
    def send(self, admin: Admin, code: str, expires_at: datetime) -> None:
        ...


class LoggingOtpNotifier:
    """Write recovery codes to the application log instead of sending email."""

    def send(self, admin: Admin, code: str, expires_at: datetime) -> None:
        LOGGER.info(
            "Password reset OTP for %s: %s (valid until %s UTC)", admin.email, code, expires_at
        )


def admin_to_dict(admin: Admin) -> Dict[str, Any]:
    return {
        "id": admin.id,
        "name": admin.name,
        "email": admin.email,
        "createdAt": admin.created_at.isoformat() if admin.created_at else None,
    }


def _check_new_password(password: Optional[str], field: str = "password") -> str:
    if not password:
        raise ValidationFailed.for_fields({field: "Password is required"})
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationFailed.for_fields(
            {field: f"Password must be at least {MIN_PASSWORD_LENGTH} characters"}
        )
    return password


class AuthService:
    """Admin authentication bound to one session."""

    def __init__(
        self,
        session: Session,
        settings: FeeLedgerSettings,
        tokens: TokenCodec,
        notifier: Optional[OtpNotifier] = None,
    ) -> None:
        self.session = session
        self.settings = settings
        self.tokens = tokens
        self.notifier = notifier or LoggingOtpNotifier()

    # Setup and login --------------------------------------------------

    def admin_count(self) -> int:
        return int(self.session.scalar(select(func.count(Admin.id))) or 0)

    def setup_status(self) -> Dict[str, Any]:
        exists = self.admin_count() > 0
        return {"setupRequired": not exists, "adminExists": exists}

    def register(
        self, email: Optional[str], password: Optional[str], name: Optional[str] = None
    ) -> Tuple[Admin, str]:
        """Create the first admin; refused once any admin exists."""

        if self.admin_count() > 0:
            raise ValidationFailed("Admin already exists. Registration is disabled.")
        address = clean_text(email)
        if address is None:
            raise ValidationFailed.for_fields({"email": "Email is required"})
        _check_new_password(password)
        admin = Admin(
            name=clean_text(name) or "Admin",
            email=address.lower(),
            password_hash=self._hash(password),
        )
        self.session.add(admin)
        self.session.flush()
        LOGGER.info("Registered admin %s", admin.email)
        return admin, self.tokens.issue(admin.id)

    def login(self, email: Optional[str], password: Optional[str]) -> Tuple[Admin, str]:
        address = clean_text(email)
        if address is None or not password:
            raise ValidationFailed("Please provide email and password")
        admin = self._find_by_email(address)
        if admin is None or not verify_secret(password, admin.password_hash):
            LOGGER.warning("Failed login for %s", address.lower())
            raise AuthenticationError(INVALID_CREDENTIALS)
        LOGGER.info("Admin %s logged in", admin.email)
        return admin, self.tokens.issue(admin.id)

    def authenticate(self, token: str) -> Admin:
        """Resolve a bearer token to its admin or raise ``AuthenticationError``."""

        admin = self.session.get(Admin, self.tokens.decode(token))
        if admin is None:
            raise AuthenticationError(ADMIN_NOT_FOUND)
        return admin

    # Profile ----------------------------------------------------------

    def password_matches(self, admin: Admin, password: Optional[str]) -> bool:
        return verify_secret(password, admin.password_hash)

    def verify_password(self, admin: Admin, password: Optional[str]) -> None:
        if not password:
            raise ValidationFailed.for_fields({"password": "Password is required"})
        if not self.password_matches(admin, password):
            raise ValidationFailed(INCORRECT_PASSWORD)

    def change_password(
        self, admin: Admin, current_password: Optional[str], new_password: Optional[str]
    ) -> None:
        if not current_password:
            raise ValidationFailed.for_fields({"currentPassword": "Current password is required"})
        _check_new_password(new_password, field="newPassword")
        if not self.password_matches(admin, current_password):
            raise ValidationFailed("Current password is incorrect")
        admin.password_hash = self._hash(new_password)
        self.session.flush()
        LOGGER.info("Admin %s changed password", admin.email)

    def update_profile(self, admin: Admin, name: Optional[str]) -> Admin:
        new_name = clean_text(name)
        if new_name is None:
            raise ValidationFailed.for_fields({"name": "Name is required"})
        if len(new_name) > 100:
            raise ValidationFailed.for_fields({"name": "Name cannot exceed 100 characters"})
        admin.name = new_name
        self.session.flush()
        LOGGER.info("Admin %s updated profile", admin.email)
        return admin

    # Recovery ---------------------------------------------------------

    def forgot_password(
        self, email: Optional[str] = None, *, now: Optional[datetime] = None
    ) -> None:
        """Issue a fresh OTP; unknown addresses are ignored without telling the caller."""

        admin = self._recovery_admin(email)
        if admin is None:
            LOGGER.warning("Password recovery requested for unknown admin %s", email)
            return
        issued_at = now or utcnow()
        code = "".join(secrets.choice("0123456789") for _ in range(OTP_DIGITS))
        admin.otp_hash = self._hash(code)
        admin.otp_expires_at = issued_at + timedelta(minutes=self.settings.otp_ttl_minutes)
        admin.reset_authorized_until = None
        self.session.flush()
        self.notifier.send(admin, code, admin.otp_expires_at)

    def verify_otp(
        self, otp: Optional[str], email: Optional[str] = None, *, now: Optional[datetime] = None
    ) -> None:
        """Consume a valid OTP and open the password-reset window."""

        current = now or utcnow()
        admin = self._recovery_admin(email)
        code = clean_text(otp)
        if (
            admin is None
            or code is None
            or admin.otp_expires_at is None
            or admin.otp_expires_at < current
            or not verify_secret(code, admin.otp_hash)
        ):
            raise ValidationFailed(INVALID_OTP)
        admin.otp_hash = None
        admin.otp_expires_at = None
        admin.reset_authorized_until = current + timedelta(minutes=self.settings.otp_ttl_minutes)
        self.session.flush()
        LOGGER.info("OTP verified for %s", admin.email)

    def reset_password(
        self,
        new_password: Optional[str],
        email: Optional[str] = None,
        *,
        now: Optional[datetime] = None,
    ) -> None:
        current = now or utcnow()
        admin = self._recovery_admin(email)
        if (
            admin is None
            or admin.reset_authorized_until is None
            or admin.reset_authorized_until < current
        ):
            raise ValidationFailed("Please verify the OTP before resetting the password")
        _check_new_password(new_password, field="newPassword")
        admin.password_hash = self._hash(new_password)
        admin.reset_authorized_until = None
        self.session.flush()
        LOGGER.info("Password reset completed for %s", admin.email)

    # Helpers ----------------------------------------------------------

    def _hash(self, secret: str) -> str:
        return hash_secret(secret, rounds=self.settings.password_hash_rounds)

    def _find_by_email(self, email: str) -> Optional[Admin]:
        return self.session.scalars(
            select(Admin).where(func.lower(Admin.email) == email.strip().lower())
        ).first()

    def _recovery_admin(self, email: Optional[str]) -> Optional[Admin]:
        address = clean_text(email)
        if address is not None:
            return self._find_by_email(address)
        return self.session.scalars(select(Admin).order_by(Admin.id)).first()
