"""Mini README: Shared pytest fixtures.

Structure:
    * settings - isolated configuration backed by in-memory SQLite.
    * client / auth_headers - FastAPI TestClient with a registered admin.
    * session - plain SQLAlchemy session for service-level tests.
"""

from __future__ import annotations

from typing import Dict, Iterator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from feeledger.configuration import FeeLedgerSettings
from feeledger.database import build_engine, build_session_factory, init_database
from feeledger.interface import create_application

ADMIN_EMAIL = "admin@college.edu"
ADMIN_PASSWORD = "s3cret-pass"


@pytest.fixture()
def settings(tmp_path) -> FeeLedgerSettings:
    return FeeLedgerSettings(
        _env_file=None,
        environment="test",
        data_directory=tmp_path,
        database_url="sqlite://",
        jwt_secret="test-secret",
        password_hash_rounds=4,
        login_rate_limit=3,
        otp_rate_limit=3,
        forgot_password_rate_limit=3,
    )


@pytest.fixture()
def client(settings: FeeLedgerSettings) -> Iterator[TestClient]:
    app = create_application(settings)
    with TestClient(app) as test_client:
        yield test_client
    app.state.engine.dispose()


@pytest.fixture()
def admin_credentials() -> Dict[str, str]:
    return {"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD}


@pytest.fixture()
def auth_headers(client: TestClient, admin_credentials: Dict[str, str]) -> Dict[str, str]:
    response = client.post("/api/auth/register", json={**admin_credentials, "name": "Registrar"})
    assert response.status_code == 201, response.text
    return {"Authorization": f"Bearer {response.json()['data']['token']}"}


@pytest.fixture()
def session() -> Iterator[Session]:
    engine = build_engine("sqlite://")
    init_database(engine)
    db_session = build_session_factory(engine)()
    try:
        yield db_session
    finally:
        db_session.close()
        engine.dispose()
