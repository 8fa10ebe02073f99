"""
API integration tests.
Uses TestClient to avoid starting a server.
Requires: pip install httpx (for TestClient)
"""
from __future__ import annotations

from pathlib import Path

import pytest

try:
    from fastapi.testclient import TestClient
    HAS_HTTPX = True
except (ImportError, RuntimeError):
    HAS_HTTPX = False

# Ensure project root on path
import sys
sys.path.insert(0, str(Path(__file__).resolve().parent.parent.parent))

pytestmark = pytest.mark.skipif(not HAS_HTTPX, reason="httpx required for TestClient")

from bolao.api import app
from bolao.persistence.db import init_db, set_db_path
from bolao.settings import get_settings


@pytest.fixture(autouse=True)
def isolated_db(tmp_path):
    """Use a temporary DB for each test."""
    db_path = tmp_path / "test.db"
    set_db_path(db_path)
    init_db(db_path=db_path)
    yield db_path


@pytest.fixture
def client():
    return TestClient(app)


def _signup(client, username: str, password: str = "secret123") -> dict:
    resp = client.post("/signup", json={"username": username, "password": password, "name": username.title()})
    assert resp.status_code == 200
    return resp.json()


def _auth(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin(client, monkeypatch):
    """Signs up through the configured admin usernames."""
    monkeypatch.setenv("BOLAO_ADMIN_USERNAMES", "admin")
    get_settings.cache_clear()
    try:
        data = _signup(client, "admin")
    finally:
        monkeypatch.delenv("BOLAO_ADMIN_USERNAMES")
        get_settings.cache_clear()
    assert data["role"] == "admin"
    return data


@pytest.fixture
def participant(client):
    return _signup(client, "ana")


def _create_match(client, admin, **extra) -> dict:
    body = {
        "competition_name": "Copa do Brasil",
        "opponent": "Rival FC",
        "scheduled_at": "2026-08-01T22:00:00Z",
        "phase": "final",
    }
    body.update(extra)
    resp = client.post("/matches", json=body, headers=_auth(admin["token"]))
    assert resp.status_code == 200
    return resp.json()


# ---------- Auth ----------


def test_signup_and_login(client):
    data = _signup(client, "bia")
    assert data["role"] == "participant"
    resp = client.post("/login", json={"username": "bia", "password": "secret123"})
    assert resp.status_code == 200
    assert resp.json()["user_id"] == data["user_id"]


def test_duplicate_username(client):
    _signup(client, "bia")
    resp = client.post("/signup", json={"username": "bia", "password": "another1"})
    assert resp.status_code == 400


def test_login_wrong_password(client):
    _signup(client, "bia")
    resp = client.post("/login", json={"username": "bia", "password": "wrong-pass"})
    assert resp.status_code == 401


# ---------- Matches ----------


def test_create_match_auto_creates_competition(client, admin):
    match = _create_match(client, admin)
    assert match["competition_id"] == "copa_do_brasil"
    assert match["status"] == "upcoming"
    assert match["phase"] == "final"
    comps = client.get("/competitions").json()["competitions"]
    assert {"id": "copa_do_brasil", "name": "Copa do Brasil"} in comps


def test_create_match_requires_admin(client, participant):
    resp = client.post(
        "/matches",
        json={"competition_id": "x", "opponent": "Rival", "scheduled_at": "2026-08-01T22:00:00Z"},
        headers=_auth(participant["token"]),
    )
    assert resp.status_code == 403


def test_create_match_requires_login(client):
    resp = client.post(
        "/matches",
        json={"competition_id": "x", "opponent": "Rival", "scheduled_at": "2026-08-01T22:00:00Z"},
    )
    assert resp.status_code == 401


def test_invalid_transition(client, admin):
    match = _create_match(client, admin)
    resp = client.post(f"/matches/{match['id']}/status", json={"status": "finished"}, headers=_auth(admin["token"]))
    # no score yet
    assert resp.status_code == 400


def test_result_with_too_many_scorers(client, admin):
    match = _create_match(client, admin)
    client.post(f"/matches/{match['id']}/status", json={"status": "live"}, headers=_auth(admin["token"]))
    resp = client.put(
        f"/matches/{match['id']}/result",
        json={"club_score": 1, "opponent_score": 0, "scorers": ["p1", "p2"]},
        headers=_auth(admin["token"]),
    )
    assert resp.status_code == 400


def test_match_not_found(client):
    assert client.get("/matches/nope").status_code == 404
    assert client.get("/matches/nope/predictions").status_code == 404


# ---------- Predictions ----------


def test_prediction_requires_login(client, admin):
    match = _create_match(client, admin)
    resp = client.put(f"/matches/{match['id']}/prediction", json={"club_score": 1, "opponent_score": 0})
    assert resp.status_code == 401


def test_prediction_validation_error(client, admin, participant):
    match = _create_match(client, admin)
    resp = client.put(
        f"/matches/{match['id']}/prediction",
        json={"club_score": "abc", "opponent_score": 0},
        headers=_auth(participant["token"]),
    )
    assert resp.status_code == 400


def test_full_match_flow(client, admin, participant):
    """create → predict → live (409 on predict) → result → finished → ranking."""
    match = _create_match(client, admin)
    mid = match["id"]
    headers = _auth(participant["token"])

    resp = client.put(f"/matches/{mid}/prediction", json={"club_score": 2, "opponent_score": 1}, headers=headers)
    assert resp.status_code == 200
    assert resp.json()["id"] == f"{participant['user_id']}_{mid}"

    # hidden from others while upcoming, visible to the owner
    assert client.get(f"/matches/{mid}/predictions").json()["predictions"] == []
    own = client.get(f"/matches/{mid}/predictions", headers=headers).json()["predictions"]
    assert [p["user_id"] for p in own] == [participant["user_id"]]

    admin_headers = _auth(admin["token"])
    assert client.post(f"/matches/{mid}/status", json={"status": "live"}, headers=admin_headers).status_code == 200

    resp = client.put(f"/matches/{mid}/prediction", json={"club_score": 0, "opponent_score": 0}, headers=headers)
    assert resp.status_code == 409
    assert resp.json()["detail"] == "Match no longer available for predictions"

    resp = client.put(
        f"/matches/{mid}/result",
        json={"club_score": 2, "opponent_score": 1, "scorers": []},
        headers=admin_headers,
    )
    assert resp.status_code == 200
    resp = client.post(f"/matches/{mid}/status", json={"status": "finished"}, headers=admin_headers)
    assert resp.json()["status"] == "finished"

    ranking = client.get("/ranking").json()
    assert [c["id"] for c in ranking["columns"]] == ["copa_do_brasil"]
    top = ranking["rows"][0]
    assert top["user_id"] == participant["user_id"]
    # unknown competition: multiplier 1.0
    assert top["total"] == 10
    assert top["exact_score_count"] == 1
    assert ranking["rows"][1]["total"] == 0

    rows = client.get(f"/matches/{mid}/predictions").json()["predictions"]
    assert rows[0]["score"]["points"] == 10

    summary = client.get(f"/users/{participant['user_id']}/summary").json()
    assert summary["name"] == "Ana"
    assert summary["total"] == 10

    mine = client.get("/me/predictions", headers=headers).json()["predictions"]
    assert mine[0]["club_score"] == 2


def test_unknown_user_summary(client):
    assert client.get("/users/ghost/summary").status_code == 404


# ---------- Configuration ----------


def test_get_default_config(client):
    data = client.get("/config").json()
    assert data["maxGoals"] == 20
    assert data["weights"]["exactScore"] == 10
    assert data["championshipPhaseWeights"]["carioca"]["regular"] == 0.5


def test_put_config(client, admin, participant):
    body = {
        "maxGoals": 5,
        "weights": {"exactScore": 12, "correctResult": 4, "correctGoals": 1, "correctScorers": 6},
        "championshipPhaseWeights": {"copa_do_brasil": {"regular": 2, "final": 4}},
    }
    assert client.put("/config", json=body, headers=_auth(participant["token"])).status_code == 403
    resp = client.put("/config", json=body, headers=_auth(admin["token"]))
    assert resp.status_code == 200
    data = resp.json()
    assert data["maxGoals"] == 5
    assert data["championshipPhaseWeights"] == {"copa_do_brasil": {"regular": 2.0, "final": 4.0}}

    match = _create_match(client, admin)
    resp = client.put(
        f"/matches/{match['id']}/prediction",
        json={"club_score": 6, "opponent_score": 0},
        headers=_auth(participant["token"]),
    )
    assert resp.status_code == 400


# ---------- Outcome lifecycle ----------


def test_no_result_on_upcoming_match(client, admin, participant):
    match = _create_match(client, admin)
    resp = client.put(
        f"/matches/{match['id']}/result",
        json={"club_score": 2, "opponent_score": 1},
        headers=_auth(admin["token"]),
    )
    assert resp.status_code == 409
    assert client.get(f"/matches/{match['id']}").json()["club_score"] is None


def test_finished_result_cannot_be_cleared(client, admin):
    match = _create_match(client, admin)
    admin_headers = _auth(admin["token"])
    resp = client.post(
        f"/matches/{match['id']}/status",
        json={"status": "finished", "club_score": 1, "opponent_score": 0},
        headers=admin_headers,
    )
    assert resp.status_code == 200
    assert resp.json()["status"] == "finished"
    resp = client.put(
        f"/matches/{match['id']}/result",
        json={"club_score": None, "opponent_score": None},
        headers=admin_headers,
    )
    assert resp.status_code == 400
    stored = client.get(f"/matches/{match['id']}").json()
    assert (stored["club_score"], stored["opponent_score"]) == (1, 0)


def test_non_finite_score_is_a_validation_error(client, admin, participant):
    match = _create_match(client, admin)
    headers = dict(_auth(participant["token"]), **{"Content-Type": "application/json"})
    resp = client.put(
        f"/matches/{match['id']}/prediction",
        content='{"club_score": 1e999, "opponent_score": 0}',
        headers=headers,
    )
    assert resp.status_code == 400


# ---------- Roles ----------


def test_admin_promotes_participant(client, admin, participant):
    resp = client.patch(
        f"/users/{participant['user_id']}/role", json={"role": "admin"}, headers=_auth(admin["token"])
    )
    assert resp.status_code == 200
    assert resp.json()["role"] == "admin"
    # new role applies to the existing token
    assert client.post(
        "/players", json={"name": "Striker", "number": 9}, headers=_auth(participant["token"])
    ).status_code == 200


def test_role_change_requires_admin(client, participant):
    resp = client.patch(
        f"/users/{participant['user_id']}/role", json={"role": "admin"}, headers=_auth(participant["token"])
    )
    assert resp.status_code == 403


def test_admin_cannot_demote_self(client, admin):
    resp = client.patch(
        f"/users/{admin['user_id']}/role", json={"role": "participant"}, headers=_auth(admin["token"])
    )
    assert resp.status_code == 400
