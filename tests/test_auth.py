"""Mini README: Tests for admin authentication and password recovery.

Structure:
    * Bearer-token failures - each 401 carries its own reason.
    * Setup, login, and profile endpoints.
    * OTP recovery through a capturing notifier.
    * RateLimiter - sliding-window behaviour.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from feeledger.auth import AuthService, RateLimiter, TokenCodec, verify_secret
from feeledger.errors import RateLimitExceeded, ValidationFailed


class CapturingNotifier:
    def __init__(self) -> None:
        self.codes = []

    def send(self, admin, code, expires_at) -> None:
        self.codes.append(code)


def _codec(settings) -> TokenCodec:
    return TokenCodec(settings.jwt_secret, algorithm=settings.jwt_algorithm, expires_minutes=5)


@pytest.mark.parametrize(
    "header, message",
    [
        (None, "Not authorized. No token provided."),
        ("Basic abc", "Not authorized. No token provided."),
        ("Bearer not-a-jwt", "Not authorized. Invalid token."),
    ],
)
def test_missing_or_malformed_tokens_are_rejected(client, header, message) -> None:
    headers = {"Authorization": header} if header else {}

    response = client.get("/api/auth/profile", headers=headers)

    assert response.status_code == 401
    assert response.json() == {"success": False, "message": message}


def test_expired_and_orphaned_tokens_are_rejected(client, settings, auth_headers) -> None:
    codec = _codec(settings)
    expired = codec.issue(1, now=datetime.now(timezone.utc) - timedelta(hours=1))
    orphan = codec.issue(999)

    expired_response = client.get("/api/auth/profile", headers={"Authorization": f"Bearer {expired}"})
    orphan_response = client.get("/api/auth/profile", headers={"Authorization": f"Bearer {orphan}"})

    assert expired_response.json()["message"] == "Not authorized. Token has expired."
    assert orphan_response.status_code == 401
    assert orphan_response.json()["message"] == "Not authorized. Admin not found."


def test_setup_registration_and_profile(client, auth_headers, admin_credentials) -> None:
    status = client.get("/api/auth/setup-status").json()["data"]
    assert status == {"setupRequired": False, "adminExists": True}

    second = client.post(
        "/api/auth/register", json={"email": "other@college.edu", "password": "another-pass"}
    )
    assert second.status_code == 400

    profile = client.get("/api/auth/profile", headers=auth_headers).json()["data"]
    assert profile["email"] == admin_credentials["email"]
    assert profile["name"] == "Registrar"

    renamed = client.put(
        "/api/auth/update-profile", json={"name": "Chief Registrar"}, headers=auth_headers
    )
    assert renamed.json()["data"]["name"] == "Chief Registrar"


def test_setup_status_before_registration(client) -> None:
    assert client.get("/api/auth/setup-status").json()["data"]["setupRequired"] is True


def test_login_and_change_password(client, auth_headers, admin_credentials) -> None:
    bad = client.post(
        "/api/auth/login", json={"email": admin_credentials["email"], "password": "wrong-pass"}
    )
    assert bad.status_code == 401
    assert bad.json()["message"] == "Invalid email or password"

    good = client.post(
        "/api/auth/login",
        json={"email": admin_credentials["email"].upper(), "password": admin_credentials["password"]},
    )
    assert good.status_code == 200
    assert good.json()["data"]["token"]

    mismatch = client.put(
        "/api/auth/change-password",
        json={"currentPassword": "wrong-pass", "newPassword": "brand-new-pass"},
        headers=auth_headers,
    )
    assert mismatch.status_code == 400

    changed = client.put(
        "/api/auth/change-password",
        json={"currentPassword": admin_credentials["password"], "newPassword": "brand-new-pass"},
        headers=auth_headers,
    )
    assert changed.status_code == 200
    relogin = client.post(
        "/api/auth/login",
        json={"email": admin_credentials["email"], "password": "brand-new-pass"},
    )
    assert relogin.status_code == 200


def test_login_is_rate_limited(client, auth_headers, admin_credentials) -> None:
    payload = {"email": admin_credentials["email"], "password": "wrong-pass"}
    for _ in range(3):
        assert client.post("/api/auth/login", json=payload).status_code == 401

    blocked = client.post("/api/auth/login", json=payload)

    assert blocked.status_code == 429
    assert int(blocked.headers["Retry-After"]) > 0
    assert blocked.json()["success"] is False


def test_successful_login_clears_failed_attempts(
    client, auth_headers, admin_credentials
) -> None:
    wrong = {"email": admin_credentials["email"], "password": "wrong-pass"}
    for _ in range(2):
        assert client.post("/api/auth/login", json=wrong).status_code == 401
    assert client.post("/api/auth/login", json=admin_credentials).status_code == 200

    for _ in range(3):
        assert client.post("/api/auth/login", json=wrong).status_code == 401
    assert client.post("/api/auth/login", json=wrong).status_code == 429


def test_otp_recovery_flow(client, auth_headers, admin_credentials) -> None:
    notifier = CapturingNotifier()
    client.app.state.otp_notifier = notifier

    assert client.post("/api/auth/forgot-password", json={}).status_code == 200
    assert len(notifier.codes) == 1
    code = notifier.codes[0]
    assert len(code) == 6 and code.isdigit()

    early = client.post("/api/auth/reset-password", json={"newPassword": "recovered-pass"})
    assert early.status_code == 400

    wrong_code = "000000" if code != "000000" else "111111"
    assert client.post("/api/auth/verify-otp", json={"otp": wrong_code}).status_code == 400
    assert client.post("/api/auth/verify-otp", json={"otp": code}).status_code == 200

    reset = client.post("/api/auth/reset-password", json={"newPassword": "recovered-pass"})
    assert reset.status_code == 200

    login = client.post(
        "/api/auth/login",
        json={"email": admin_credentials["email"], "password": "recovered-pass"},
    )
    assert login.status_code == 200


def test_expired_otp_is_refused(session, settings) -> None:
    notifier = CapturingNotifier()
    service = AuthService(session, settings, _codec(settings), notifier)
    admin, _ = service.register("bursar@college.edu", "bursar-pass")
    issued = datetime(2024, 1, 1, 12, 0)

    service.forgot_password(now=issued)
    assert verify_secret(notifier.codes[0], admin.otp_hash)

    with pytest.raises(ValidationFailed):
        later = issued + timedelta(minutes=settings.otp_ttl_minutes + 1)
        service.verify_otp(notifier.codes[0], now=later)


def test_unknown_recovery_email_is_silent(session, settings) -> None:
    notifier = CapturingNotifier()
    service = AuthService(session, settings, _codec(settings), notifier)
    service.register("bursar@college.edu", "bursar-pass")

    service.forgot_password("someone@else.edu")

    assert notifier.codes == []


def test_rate_limiter_window_slides() -> None:
    now = [0.0]
    limiter = RateLimiter(2, 10, clock=lambda: now[0])

    limiter.hit("client")
    limiter.hit("client")
    with pytest.raises(RateLimitExceeded) as excinfo:
        limiter.hit("client")
    assert excinfo.value.retry_after_seconds == 10

    limiter.hit("other-client")
    now[0] = 10.5
    limiter.hit("client")
