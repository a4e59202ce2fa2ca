"""Mini README: FastAPI dependencies wiring services to the request.

Structure:
    * get_settings / get_session - per-application settings and a
      per-request SQLAlchemy session (commit on success, rollback on error).
    * get_auth_service / get_current_admin - bearer-token authentication.
    * rate_limit - dependency factory guarding sensitive endpoints.
    * page_request - clamps ``page``/``limit`` query parameters.

Everything stateful (engine, limiters, token codec, reset challenges) lives
on ``app.state`` and is reached through ``request.app``.
"""

from __future__ import annotations

from typing import Callable, Iterator, Optional

from fastapi import Depends, Query, Request
from sqlalchemy.orm import Session

from ..auth import AuthService
from ..configuration import FeeLedgerSettings
from ..database.connection import session_scope
from ..database.models import Admin
from ..errors import AuthenticationError
from ..utils.pagination import PageRequest

NO_TOKEN = "Not authorized. No token provided."


def get_settings(request: Request) -> FeeLedgerSettings:
    return request.app.state.settings


def get_session(request: Request) -> Iterator[Session]:
    with session_scope(request.app.state.session_factory) as session:
        yield session


def get_auth_service(request: Request, session: Session = Depends(get_session)) -> AuthService:
    state = request.app.state
    return AuthService(session, state.settings, state.tokens, state.otp_notifier)


def get_current_admin(
    request: Request, auth: AuthService = Depends(get_auth_service)
) -> Admin:
    """Return the admin named by the ``Authorization: Bearer`` header."""

    scheme, _, token = request.headers.get("Authorization", "").partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise AuthenticationError(NO_TOKEN)
    return auth.authenticate(token.strip())


def client_key(request: Request) -> str:
    return request.client.host if request.client else "unknown"


def rate_limit(name: str) -> Callable[[Request], None]:
    """Build a dependency that counts one attempt against limiter ``name``."""

    def _dependency(request: Request) -> None:
        request.app.state.rate_limiters[name].hit(client_key(request))

    return _dependency


def page_request(
    page: Optional[int] = Query(None),
    limit: Optional[int] = Query(None),
    settings: FeeLedgerSettings = Depends(get_settings),
) -> PageRequest:
    return PageRequest.build(
        page,
        limit,
        default_limit=settings.default_page_limit,
        max_limit=settings.max_page_limit,
    )
