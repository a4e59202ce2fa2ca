"""Mini README: FastAPI application factory for FeeLedger.

Structure:
    * create_application - builds the engine, session factory, and the
      per-application state objects, registers the exception handlers, and
      mounts every router.
    * Exception handlers - the single place where errors become
      ``{"success": false, "message": ...}`` responses.

Routes are plain ``def`` functions, so FastAPI runs them in its worker
thread pool and a request waiting on the database never blocks the others.
"""

from __future__ import annotations

from typing import Dict, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .. import __version__
from ..auth import LoggingOtpNotifier, RateLimiter, ResetChallengeStore, TokenCodec
from ..configuration import FeeLedgerSettings, get_settings
from ..database.connection import (
    build_engine,
    build_session_factory,
    engine_label,
    init_database,
)
from ..errors import FeeLedgerError, RateLimitExceeded, ValidationFailed
from ..logging_utils import configure_root_logger, get_logger, level_for_environment
from .responses import failure, respond
from .routes import ROUTERS

LOGGER = get_logger(__name__)


def _build_rate_limiters(settings: FeeLedgerSettings) -> Dict[str, RateLimiter]:
    window = settings.rate_limit_window_seconds
    return {
        "login": RateLimiter(
            settings.login_rate_limit,
            window,
            message="Too many login attempts. Please try again later.",
        ),
        "otp": RateLimiter(
            settings.otp_rate_limit,
            window,
            message="Too many OTP attempts. Please try again later.",
        ),
        "forgot_password": RateLimiter(
            settings.forgot_password_rate_limit,
            window,
            message="Too many password reset requests. Please try again later.",
        ),
    }


def _field_errors(error: RequestValidationError) -> Dict[str, str]:
    errors: Dict[str, str] = {}
    for item in error.errors():
        location = [
            str(part) for part in item.get("loc", ()) if part not in ("body", "query", "path")
        ]
        field = ".".join(location) or "request"
        message = str(item.get("msg", "Invalid value"))
        errors[field] = message.removeprefix("Value error, ")
    return errors


def _register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(FeeLedgerError)
    async def handle_feeledger_error(request: Request, error: FeeLedgerError) -> JSONResponse:
        headers: Optional[Dict[str, str]] = None
        errors = None
        if isinstance(error, RateLimitExceeded):
            headers = {"Retry-After": str(error.retry_after_seconds)}
        if isinstance(error, ValidationFailed):
            errors = error.errors
        if error.status_code >= 500:
            LOGGER.error("%s %s failed: %s", request.method, request.url.path, error.message)
        else:
            LOGGER.debug(
                "%s %s -> %s %s", request.method, request.url.path, error.status_code, error.message
            )
        return failure(
            error.message, status_code=error.status_code, errors=errors, headers=headers
        )

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(
        request: Request, error: RequestValidationError
    ) -> JSONResponse:
        errors = _field_errors(error)
        return failure("; ".join(errors.values()), status_code=400, errors=errors)

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_exception(
        request: Request, error: StarletteHTTPException
    ) -> JSONResponse:
        message = error.detail if isinstance(error.detail, str) else "Request failed"
        if error.status_code == 404 and message == "Not Found":
            message = f"Route {request.url.path} not found"
        return failure(message, status_code=error.status_code, headers=error.headers)

    @app.exception_handler(Exception)
    async def handle_unexpected(request: Request, error: Exception) -> JSONResponse:
        LOGGER.exception("Unhandled error on %s %s", request.method, request.url.path)
        return failure("Internal server error", status_code=500)


def create_application(settings: Optional[FeeLedgerSettings] = None) -> FastAPI:
    """Create the FastAPI application with routes and dependencies."""

    settings = settings or get_settings()
    configure_root_logger(level_for_environment(settings.environment))

    database_url = settings.resolved_database_url
    engine = build_engine(database_url)
    init_database(engine)
    LOGGER.info("Connected to database %s", engine_label(database_url))

    app = FastAPI(
        title="FeeLedger",
        version=__version__,
        docs_url=None if settings.is_production else "/docs",
    )
    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = build_session_factory(engine)
    app.state.tokens = TokenCodec(
        settings.jwt_secret,
        algorithm=settings.jwt_algorithm,
        expires_minutes=settings.jwt_expires_minutes,
    )
    app.state.otp_notifier = LoggingOtpNotifier()
    app.state.rate_limiters = _build_rate_limiters(settings)
    app.state.reset_challenges = ResetChallengeStore(settings.reset_challenge_ttl_minutes * 60)

    _register_exception_handlers(app)
    for router in ROUTERS:
        app.include_router(router)

    @app.get("/health")
    def health() -> JSONResponse:
        """Report liveness and the running environment."""

        return respond(
            {"status": "ok", "environment": settings.environment, "version": __version__},
            message="FeeLedger API is running",
        )

    LOGGER.info("FeeLedger application ready (%s)", settings.environment)
    return app

