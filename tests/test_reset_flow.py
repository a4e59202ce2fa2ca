"""Mini README: Tests for the guarded database reset.

Structure:
    * ResetFlow / ResetChallengeStore - state transitions and token rules.
    * /api/auth/verify-password + /api/auth/reset-database - end to end.
"""

from __future__ import annotations

import pytest

from feeledger.auth import CONFIRMATION_PHRASE, ResetChallengeStore, ResetFlow, ResetState
from feeledger.errors import ValidationFailed


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


def test_flow_requires_every_step_in_order() -> None:
    flow = ResetFlow(admin_id=1)
    calls = []

    with pytest.raises(ValidationFailed):
        flow.confirm(CONFIRMATION_PHRASE, True, lambda: calls.append("ran") or {})

    flow.acknowledge()
    with pytest.raises(ValidationFailed):
        flow.submit_password(False)
    assert flow.state is ResetState.AWAITING_PASSWORD

    flow.submit_password(True)
    with pytest.raises(ValidationFailed):
        flow.confirm("delete everything", True, lambda: calls.append("ran") or {})
    with pytest.raises(ValidationFailed):
        flow.confirm(CONFIRMATION_PHRASE, False, lambda: calls.append("ran") or {})
    assert flow.state is ResetState.AWAITING_PHRASE
    assert calls == []

    assert flow.confirm(CONFIRMATION_PHRASE, True, lambda: {"students": 3}) == {"students": 3}
    assert flow.state is ResetState.COMPLETED

    flow.cancel()
    assert flow.state is ResetState.IDLE


def test_challenges_are_bound_to_admin_and_expire() -> None:
    clock = FakeClock()
    store = ResetChallengeStore(ttl_seconds=60, clock=clock)

    with pytest.raises(ValidationFailed):
        store.open(admin_id=1, password_ok=False)
    assert len(store) == 0

    token, flow = store.open(admin_id=1, password_ok=True)
    assert flow.state is ResetState.AWAITING_PHRASE
    assert store.get(token, admin_id=1) is flow
    with pytest.raises(ValidationFailed):
        store.get(token, admin_id=2)
    with pytest.raises(ValidationFailed):
        store.get("forged-token", admin_id=1)

    clock.now += 61
    with pytest.raises(ValidationFailed):
        store.get(token, admin_id=1)


def test_store_confirm_runs_the_reset_once_per_challenge() -> None:
    store = ResetChallengeStore(ttl_seconds=60, clock=FakeClock())
    token, _ = store.open(admin_id=1, password_ok=True)
    runs = []

    with pytest.raises(ValidationFailed):
        store.confirm(token, 1, "DELETE", True, lambda: runs.append("early") or {})
    assert len(store) == 1

    def executor():
        runs.append("reset")
        with pytest.raises(ValidationFailed):
            store.confirm(token, 1, CONFIRMATION_PHRASE, True, lambda: runs.append("again") or {})
        return {"students": 2}

    flow, counts = store.confirm(token, 1, CONFIRMATION_PHRASE, True, executor)

    assert counts == {"students": 2}
    assert flow.state is ResetState.COMPLETED
    assert runs == ["reset"]
    assert len(store) == 0
    with pytest.raises(ValidationFailed):
        store.confirm(token, 1, CONFIRMATION_PHRASE, True, lambda: runs.append("late") or {})


def _seed_data(client, headers) -> None:
    client.post("/api/categories", json={"name": "Library Fine"}, headers=headers)
    client.post("/api/students", json={"prn": "PRN001", "name": "Asha"}, headers=headers)
    client.post("/api/students/PRN001/fines", json={"amount": 500}, headers=headers)
    client.post(
        "/api/expenditures", json={"amount": 75, "description": "Markers"}, headers=headers
    )


def _counts(client, headers):
    return (
        client.get("/api/categories", headers=headers).json()["data"]["count"],
        client.get("/api/students", headers=headers).json()["data"]["pagination"]["totalItems"],
        client.get("/api/expenditures", headers=headers).json()["data"]["pagination"]["totalItems"],
    )


def test_wrong_password_and_wrong_phrase_delete_nothing(
    client, auth_headers, admin_credentials
) -> None:
    password = admin_credentials["password"]
    _seed_data(client, auth_headers)

    wrong = client.post(
        "/api/auth/verify-password", json={"password": "nope-nope"}, headers=auth_headers
    )
    assert wrong.status_code == 400
    assert "challengeToken" not in wrong.text

    skipped = client.post(
        "/api/auth/reset-database",
        json={"password": password, "confirmationPhrase": CONFIRMATION_PHRASE},
        headers=auth_headers,
    )
    assert skipped.status_code == 400

    verified = client.post(
        "/api/auth/verify-password", json={"password": password}, headers=auth_headers
    )
    challenge = verified.json()["data"]
    assert challenge["state"] == "awaiting_phrase"

    wrong_phrase = client.post(
        "/api/auth/reset-database",
        json={
            "password": password,
            "confirmationPhrase": "delete everything",
            "challengeToken": challenge["challengeToken"],
        },
        headers=auth_headers,
    )
    assert wrong_phrase.status_code == 400
    assert _counts(client, auth_headers) == (1, 1, 1)

    cancelled = client.delete(
        "/api/auth/reset-database/challenge",
        params={"challengeToken": challenge["challengeToken"]},
        headers=auth_headers,
    )
    assert cancelled.json()["data"]["state"] == "idle"
    assert _counts(client, auth_headers) == (1, 1, 1)


def test_completed_reset_empties_data_but_keeps_admin(
    client, auth_headers, admin_credentials
) -> None:
    password = admin_credentials["password"]
    _seed_data(client, auth_headers)
    token = client.post(
        "/api/auth/verify-password", json={"password": password}, headers=auth_headers
    ).json()["data"]["challengeToken"]

    reset = client.post(
        "/api/auth/reset-database",
        json={
            "password": password,
            "confirmationPhrase": CONFIRMATION_PHRASE,
            "challengeToken": token,
        },
        headers=auth_headers,
    )

    assert reset.status_code == 200, reset.text
    assert reset.json()["data"]["deleted"] == {
        "students": 1,
        "fines": 1,
        "expenditures": 1,
        "categories": 1,
    }
    assert _counts(client, auth_headers) == (0, 0, 0)

    login = client.post("/api/auth/login", json=admin_credentials)
    assert login.status_code == 200

    replay = client.post(
        "/api/auth/reset-database",
        json={
            "password": password,
            "confirmationPhrase": CONFIRMATION_PHRASE,
            "challengeToken": token,
        },
        headers=auth_headers,
    )
    assert replay.status_code == 400
