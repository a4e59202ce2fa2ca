"""Mini README: Centralised configuration models and helpers for FeeLedger.

Structure:
    * FeeLedgerSettings - Pydantic model describing runtime configuration.
    * get_settings - cached accessor for environment-aware settings.

Usage:
    The CLI reads ``get_settings()``; the web application factory accepts a
    settings instance explicitly so tests can inject an in-memory database,
    a fixed JWT secret, and tight rate limits without touching the
    environment. Values are read from ``FEELEDGER_*`` variables or ``.env``.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field, validator
from pydantic_settings import BaseSettings


class FeeLedgerSettings(BaseSettings):
    """Runtime configuration for the FeeLedger service."""

    environment: str = Field(
        "development",
        description="Environment label controlling debug toggles and logging levels.",
    )
    data_directory: Path = Field(
        Path("data"),
        description="Directory holding the default SQLite database file.",
        validate_default=True,
    )
    database_url: Optional[str] = Field(
        None,
        description=(
            "SQLAlchemy database URL. Defaults to a SQLite file inside"
            " ``data_directory`` when unset."
        ),
    )
    interface_host: str = Field(
        "0.0.0.0",
        description="Network interface for the API server to bind to.",
    )
    interface_port: int = Field(
        5000,
        description="Port the API server listens on.",
        ge=1,
        le=65535,
    )
    jwt_secret: str = Field(
        "change-me",
        description="Secret used to sign admin access tokens and reset challenges.",
        min_length=1,
    )
    jwt_algorithm: str = Field("HS256", description="JWT signing algorithm.")
    jwt_expires_minutes: int = Field(
        7 * 24 * 60,
        description="Lifetime of admin access tokens in minutes.",
        ge=1,
    )
    password_hash_rounds: int = Field(
        12,
        description="bcrypt cost factor for admin passwords and OTP codes.",
        ge=4,
        le=31,
    )
    otp_ttl_minutes: int = Field(
        10,
        description="Validity of password-recovery OTP codes and the reset window they open.",
        ge=1,
    )
    reset_challenge_ttl_minutes: int = Field(
        5,
        description=(
            "Lifetime of the challenge issued after password verification"
            " for a database reset."
        ),
        ge=1,
    )
    login_rate_limit: int = Field(5, description="Login attempts allowed per window.", ge=1)
    otp_rate_limit: int = Field(5, description="OTP verifications allowed per window.", ge=1)
    forgot_password_rate_limit: int = Field(
        3, description="Password-recovery requests allowed per window.", ge=1
    )
    rate_limit_window_seconds: int = Field(
        15 * 60,
        description="Length of the sliding window used by every rate limiter.",
        ge=1,
    )
    max_upload_bytes: int = Field(
        5 * 1024 * 1024,
        description="Largest accepted CSV upload.",
        ge=1,
    )
    enforce_payment_categories: bool = Field(
        False,
        description=(
            "Reject fine categories that are not an active payment category."
            " When disabled any free-text category is stored as-is."
        ),
    )
    default_page_limit: int = Field(10, description="Page size used when none is requested.", ge=1)
    max_page_limit: int = Field(100, description="Upper bound for requested page sizes.", ge=1)

    class Config:
        env_prefix = "FEELEDGER_"
        env_file = ".env"
        case_sensitive = False

    @validator("data_directory", pre=True)
    def _expand_path(cls, value: Optional[str | Path]) -> Path:
        """Ensure configured paths expand user directories and exist."""

        path = Path(value).expanduser().resolve()
        path.mkdir(parents=True, exist_ok=True)
        return path

    @property
    def resolved_database_url(self) -> str:
        """Return the configured database URL or the SQLite default."""

        if self.database_url:
            if self.database_url.startswith("postgres://"):
                return self.database_url.replace("postgres://", "postgresql://", 1)
            return self.database_url
        return f"sqlite:///{self.data_directory / 'feeledger.db'}"

    @property
    def is_production(self) -> bool:
        return self.environment.strip().lower() == "production"


@lru_cache()
def get_settings() -> FeeLedgerSettings:
    """Return cached settings, ensuring consistent configuration across modules."""

    return FeeLedgerSettings()
