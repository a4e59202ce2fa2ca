"""Mini README: ``/api/auth`` endpoints.

Covers first-run setup, login, the OTP password-recovery flow, profile
changes, and the challenge-gated database reset. Login and the recovery
endpoints are rate limited per client address.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from ...auth import AuthService, ResetChallengeStore, admin_to_dict, reset_database
from ...database.models import Admin
from ...logging_utils import get_logger
from ..dependencies import (
    client_key,
    get_auth_service,
    get_current_admin,
    get_session,
    rate_limit,
)
from ..responses import respond
from ..schemas import (
    ChangePasswordRequest,
    ForgotPasswordRequest,
    LoginRequest,
    RegisterRequest,
    ResetDatabaseRequest,
    ResetPasswordRequest,
    UpdateProfileRequest,
    VerifyOtpRequest,
    VerifyPasswordRequest,
)

LOGGER = get_logger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])

OTP_SENT = "If the account exists, a one-time code has been sent to the registered email."


def _challenges(request: Request) -> ResetChallengeStore:
    return request.app.state.reset_challenges


@router.get("/setup-status")
def setup_status(auth: AuthService = Depends(get_auth_service)) -> JSONResponse:
    return respond(auth.setup_status())


@router.post("/register")
def register(body: RegisterRequest, auth: AuthService = Depends(get_auth_service)) -> JSONResponse:
    admin, token = auth.register(body.email, body.password, body.name)
    return respond(
        {"admin": admin_to_dict(admin), "token": token},
        message="Admin account created successfully",
        status_code=201,
    )


@router.post("/login", dependencies=[Depends(rate_limit("login"))])
def login(
    body: LoginRequest, request: Request, auth: AuthService = Depends(get_auth_service)
) -> JSONResponse:
    admin, token = auth.login(body.email, body.password)
    request.app.state.rate_limiters["login"].reset(client_key(request))
    return respond({"admin": admin_to_dict(admin), "token": token}, message="Login successful")


@router.post("/forgot-password", dependencies=[Depends(rate_limit("forgot_password"))])
def forgot_password(
    body: ForgotPasswordRequest, auth: AuthService = Depends(get_auth_service)
) -> JSONResponse:
    auth.forgot_password(body.email)
    return respond(message=OTP_SENT)


@router.post("/verify-otp", dependencies=[Depends(rate_limit("otp"))])
def verify_otp(
    body: VerifyOtpRequest, auth: AuthService = Depends(get_auth_service)
) -> JSONResponse:
    auth.verify_otp(body.otp, body.email)
    return respond(message="OTP verified. You can now reset your password.")


@router.post("/reset-password")
def reset_password(
    body: ResetPasswordRequest, auth: AuthService = Depends(get_auth_service)
) -> JSONResponse:
    auth.reset_password(body.new_password, body.email)
    return respond(message="Password reset successfully. Please log in.")


@router.get("/profile")
def profile(admin: Admin = Depends(get_current_admin)) -> JSONResponse:
    return respond(admin_to_dict(admin))


@router.put("/change-password")
def change_password(
    body: ChangePasswordRequest,
    admin: Admin = Depends(get_current_admin),
    auth: AuthService = Depends(get_auth_service),
) -> JSONResponse:
    auth.change_password(admin, body.current_password, body.new_password)
    return respond(message="Password changed successfully")


@router.put("/update-profile")
def update_profile(
    body: UpdateProfileRequest,
    admin: Admin = Depends(get_current_admin),
    auth: AuthService = Depends(get_auth_service),
) -> JSONResponse:
    auth.update_profile(admin, body.name)
    return respond(admin_to_dict(admin), message="Profile updated successfully")


@router.post("/verify-password")
def verify_password(
    body: VerifyPasswordRequest,
    request: Request,
    admin: Admin = Depends(get_current_admin),
    auth: AuthService = Depends(get_auth_service),
) -> JSONResponse:
    """Check the admin's password and open a database-reset challenge."""

    auth.verify_password(admin, body.password)
    store = _challenges(request)
    token, flow = store.open(admin.id, password_ok=True)
    return respond(
        {
            "verified": True,
            "challengeToken": token,
            "state": flow.state.value,
            "expiresInSeconds": int(store.expires_in(token)),
        },
        message="Password verified",
    )


@router.post("/reset-database")
def reset_database_route(
    body: ResetDatabaseRequest,
    request: Request,
    admin: Admin = Depends(get_current_admin),
    auth: AuthService = Depends(get_auth_service),
    session: Session = Depends(get_session),
) -> JSONResponse:
    """Delete all bookkeeping data once the challenge, phrase, and password agree."""

    flow, counts = _challenges(request).confirm(
        body.challenge_token,
        admin.id,
        body.confirmation_phrase,
        auth.password_matches(admin, body.password),
        lambda: reset_database(session),
    )
    LOGGER.warning("Admin %s reset the database", admin.email)
    return respond(
        {"deleted": counts, "state": flow.state.value},
        message="Database reset successfully. All data has been deleted.",
    )


@router.delete("/reset-database/challenge")
def cancel_reset(
    request: Request,
    challenge_token: Optional[str] = Query(None, alias="challengeToken"),
    admin: Admin = Depends(get_current_admin),
) -> JSONResponse:
    flow = _challenges(request).cancel(challenge_token, admin.id)
    return respond({"state": flow.state.value}, message="Database reset cancelled")
