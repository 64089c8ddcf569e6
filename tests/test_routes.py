"""
HTTP tests through FastAPI's TestClient

The app is built without its lifespan; the in-memory database and a
loaded SettingsService are placed on app.state and the election service
dependency is overridden to use the test clock.
"""

from datetime import timedelta

import pytest
from fastapi.testclient import TestClient

from auth.jwt import generate_access_token
from config import config
from database.models import Role
from elections.service import ElectionService
from server.dependencies import get_election_service
from server.main import create_app


def bearer(user_id, role=Role.USER):
    return {"Authorization": f"Bearer {generate_access_token(user_id, role)}"}


ADMIN_HEADERS = bearer("admin-1", Role.ADMIN)
ROOT_HEADERS = bearer("root-1", Role.SYSADMIN)
VOTER_HEADERS = bearer("voter-1")


@pytest.fixture
def client(db, settings_service, clock):
    app = create_app(use_lifespan=False)
    app.state.db = db
    app.state.settings = settings_service
    app.dependency_overrides[get_election_service] = lambda: ElectionService(
        db, settings_service, clock=clock, removal_policy="reject"
    )
    return TestClient(app)


def election_body(start=timedelta(hours=-1), end=timedelta(hours=1), clock_now=None):
    return {
        "title": "Board Vote",
        "description": "Annual board election",
        "startDate": (clock_now + start).isoformat(),
        "endDate": (clock_now + end).isoformat(),
        "candidates": [
            {"name": "Ada Lovelace", "party": "Analytical"},
            {"name": "Grace Hopper", "party": "Compiler", "gender": "female"},
        ],
    }


@pytest.fixture
def created(client, clock):
    response = client.post("/api/v1/elections", json=election_body(clock_now=clock.now), headers=ADMIN_HEADERS)
    assert response.status_code == 201
    return response.json()["data"]


class TestMonitoring:
    def test_root(self, client):
        response = client.get("/")
        assert response.status_code == 200
        assert response.json()["service"] == "evote API"

    def test_health(self, client, created):
        body = client.get("/api/v1/health").json()
        assert body["status"] == "healthy"
        assert body["checks"]["database"]["by_status"] == {"active": 1}

    def test_metrics(self, client):
        response = client.get("/metrics")
        assert response.status_code == 200
        assert "evote_votes_cast_total" in response.text

    def test_request_id_echoed(self, client):
        response = client.get("/", headers={"X-Request-ID": "abc-123"})
        assert response.headers["X-Request-ID"] == "abc-123"


class TestElectionRoutes:
    def test_create_draft(self, client):
        response = client.post("/api/v1/elections", json={"title": "Board Vote"}, headers=ADMIN_HEADERS)
        assert response.status_code == 201
        body = response.json()
        assert body["success"] is True
        assert body["data"]["status"] == "draft"

    def test_create_active(self, created):
        assert created["status"] == "active"
        assert created["startDate"].startswith("2026-03-01T11:00")
        assert [c["name"] for c in created["candidates"]] == ["Ada Lovelace", "Grace Hopper"]
        assert created["results"] == {}

    def test_create_requires_token(self, client):
        response = client.post("/api/v1/elections", json={"title": "Board Vote"})
        assert response.status_code == 401
        assert response.json() == {"success": False, "message": "Not authenticated", "kind": "UnauthenticatedError"}

    def test_create_requires_admin(self, client):
        response = client.post("/api/v1/elections", json={"title": "Board Vote"}, headers=VOTER_HEADERS)
        assert response.status_code == 403

    def test_token_from_cookie(self, client):
        client.cookies.set(config.AUTH_COOKIE, generate_access_token("admin-1", Role.ADMIN))
        response = client.post("/api/v1/elections", json={"title": "Board Vote"})
        assert response.status_code == 201

    def test_invalid_token(self, client):
        response = client.post("/api/v1/elections", json={"title": "x"}, headers={"Authorization": "Bearer junk"})
        assert response.status_code == 401

    def test_missing_title(self, client):
        response = client.post("/api/v1/elections", json={"description": "No title"}, headers=ADMIN_HEADERS)
        assert response.status_code == 422
        assert response.json()["message"] == "Please provide election title"
        assert response.json()["kind"] == "ValidationError"

    def test_end_before_start(self, client, clock):
        body = election_body(start=timedelta(hours=2), end=timedelta(hours=1), clock_now=clock.now)
        response = client.post("/api/v1/elections", json=body, headers=ADMIN_HEADERS)
        assert response.status_code == 422
        assert response.json()["message"] == "End date must be after start date"

    def test_unknown_fields_rejected(self, client):
        response = client.post(
            "/api/v1/elections", json={"title": "x", "voters": ["v"]}, headers=ADMIN_HEADERS
        )
        assert response.status_code == 422
        assert response.json()["success"] is False

    def test_public_read_hides_ledger(self, client, created):
        body = client.get(f"/api/v1/elections/{created['id']}").json()
        assert body["data"]["id"] == created["id"]
        assert "voters" not in body["data"]
        assert "results" not in body["data"]

        admin_body = client.get(f"/api/v1/elections/{created['id']}", headers=ADMIN_HEADERS).json()
        assert admin_body["data"]["voters"] == []

    def test_get_unknown(self, client):
        response = client.get("/api/v1/elections/" + "0" * 24)
        assert response.status_code == 404
        assert response.json()["kind"] == "NotFoundError"

    def test_list_and_filter(self, client, created):
        client.post("/api/v1/elections", json={"title": "Draft"}, headers=ADMIN_HEADERS)

        assert client.get("/api/v1/elections").json()["total"] == 2
        active = client.get("/api/v1/elections", params={"status": "active"}).json()
        assert [e["id"] for e in active["data"]] == [created["id"]]
        drafts = client.get("/api/v1/elections/status/draft").json()
        assert drafts["total"] == 1

    def test_invalid_status_filter(self, client):
        assert client.get("/api/v1/elections/status/archived").status_code == 422

    def test_patch(self, client, created):
        response = client.patch(
            f"/api/v1/elections/{created['id']}", json={"title": "Renamed"}, headers=ADMIN_HEADERS
        )
        assert response.status_code == 200
        assert response.json()["data"]["title"] == "Renamed"
        assert response.json()["data"]["status"] == "active"

    def test_patch_dropping_candidate_fails(self, client, created):
        keep = [{"id": created["candidates"][0]["id"]}]
        response = client.patch(
            f"/api/v1/elections/{created['id']}", json={"candidates": keep}, headers=ADMIN_HEADERS
        )
        assert response.status_code == 422

    def test_patch_illegal_status(self, client, created):
        response = client.patch(
            f"/api/v1/elections/{created['id']}", json={"status": "completed"}, headers=ADMIN_HEADERS
        )
        assert response.status_code == 422
        assert response.json()["message"] == "invalid status transition"

    def test_cancel(self, client, created):
        url = f"/api/v1/elections/{created['id']}/status"
        response = client.patch(url, json={"status": "cancelled"}, headers=ADMIN_HEADERS)
        assert response.status_code == 200
        assert response.json()["data"]["status"] == "cancelled"

        # Only cancellation can be requested on this endpoint
        assert client.patch(url, json={"status": "active"}, headers=ADMIN_HEADERS).status_code == 422

    def test_delete(self, client, created):
        url = f"/api/v1/elections/{created['id']}"
        assert client.delete(url, headers=ADMIN_HEADERS).status_code == 200
        assert client.get(url).status_code == 404
        assert client.delete(url, headers=ADMIN_HEADERS).status_code == 404

    def test_purge_requires_sysadmin(self, client, created):
        assert client.delete("/api/v1/elections/purge/all", headers=ADMIN_HEADERS).status_code == 403
        response = client.delete("/api/v1/elections/purge/all", headers=ROOT_HEADERS)
        assert response.status_code == 200
        assert response.json()["data"] == {"deleted": 1}


class TestCandidateRoutes:
    def test_list(self, client, created):
        body = client.get(f"/api/v1/candidates/election/{created['id']}").json()
        assert body["total"] == 2
        assert body["data"][1]["gender"] == "female"

    def test_add_update_remove(self, client, created):
        base = f"/api/v1/candidates/election/{created['id']}"
        added = client.post(base, json={"name": "Alan Turing", "party": "Bletchley"}, headers=ADMIN_HEADERS)
        assert added.status_code == 201
        candidate_id = added.json()["data"]["id"]

        updated = client.put(f"{base}/{candidate_id}", json={"party": "Manchester"}, headers=ADMIN_HEADERS)
        assert updated.json()["data"]["party"] == "Manchester"
        assert updated.json()["data"]["name"] == "Alan Turing"

        removed = client.delete(f"{base}/{candidate_id}", headers=ADMIN_HEADERS)
        assert removed.status_code == 200
        assert len(removed.json()["data"]["election"]["candidates"]) == 2

    def test_add_requires_name(self, client, created):
        response = client.post(
            f"/api/v1/candidates/election/{created['id']}",
            json={"name": "  ", "party": "P"},
            headers=ADMIN_HEADERS,
        )
        assert response.status_code == 422
        assert response.json()["message"] == "Please provide candidate name"

    def test_add_when_registration_disabled(self, client, created):
        client.patch("/api/v1/settings", json={"registrationEnabled": False}, headers=ADMIN_HEADERS)
        response = client.post(
            f"/api/v1/candidates/election/{created['id']}",
            json={"name": "Alan", "party": "P"},
            headers=ADMIN_HEADERS,
        )
        assert response.status_code == 400

    def test_remove_with_votes_rejected(self, client, created):
        base = f"/api/v1/candidates/election/{created['id']}"
        candidate_id = client.post(base, json={"name": "Alan", "party": "P"}, headers=ADMIN_HEADERS).json()["data"]["id"]
        client.post(f"/api/v1/voters/election/{created['id']}", json={"candidateId": candidate_id}, headers=VOTER_HEADERS)

        response = client.delete(f"{base}/{candidate_id}", headers=ADMIN_HEADERS)
        assert response.status_code == 400


class TestVotingRoutes:
    def test_vote_then_duplicate(self, client, created):
        url = f"/api/v1/voters/election/{created['id']}"
        c1 = created["candidates"][0]["id"]

        first = client.post(url, json={"candidateId": c1}, headers=VOTER_HEADERS)
        assert first.status_code == 200
        assert first.json()["data"]["voted"] == 1
        assert first.json()["data"]["candidate"] == {"id": c1, "name": "Ada Lovelace", "votes": 1}

        second = client.post(url, json={"candidateId": c1}, headers=VOTER_HEADERS)
        assert second.status_code == 400
        assert second.json()["message"] == "already voted"

    def test_vote_requires_authentication(self, client, created):
        url = f"/api/v1/voters/election/{created['id']}"
        assert client.post(url, json={"candidateId": "x"}).status_code == 401

    def test_vote_requires_candidate(self, client, created):
        url = f"/api/v1/voters/election/{created['id']}"
        assert client.post(url, json={}, headers=VOTER_HEADERS).status_code == 422

    def test_vote_unknown_voter(self, client, created):
        url = f"/api/v1/voters/election/{created['id']}"
        response = client.post(
            url, json={"candidateId": created["candidates"][0]["id"]}, headers=bearer("stranger")
        )
        assert response.status_code == 404

    def test_vote_outside_window(self, client, created, clock):
        clock.advance(hours=2)
        url = f"/api/v1/voters/election/{created['id']}"
        response = client.post(url, json={"candidateId": created["candidates"][0]["id"]}, headers=VOTER_HEADERS)
        assert response.status_code == 400
        assert response.json()["message"] == "election not active"

    def test_maintenance_mode(self, client, created):
        client.patch("/api/v1/settings", json={"maintenanceMode": True}, headers=ADMIN_HEADERS)
        url = f"/api/v1/voters/election/{created['id']}"
        response = client.post(url, json={"candidateId": created["candidates"][0]["id"]}, headers=VOTER_HEADERS)
        assert response.status_code == 503

    def test_results(self, client, created):
        c1, c2 = (c["id"] for c in created["candidates"])
        url = f"/api/v1/voters/election/{created['id']}"
        client.post(url, json={"candidateId": c2}, headers=VOTER_HEADERS)
        client.post(url, json={"candidateId": c2}, headers=bearer("voter-2"))
        client.post(url, json={"candidateId": c1}, headers=bearer("voter-3"))

        body = client.get(f"{url}/results").json()["data"]
        assert body["election"]["voted"] == 3
        assert body["election"]["totalVoters"] == 3
        assert [(r["id"], r["votes"], r["percentage"]) for r in body["results"]] == [
            (c2, 2, 66.67),
            (c1, 1, 33.33),
        ]

    def test_results_hidden_for_draft(self, client):
        draft = client.post("/api/v1/elections", json={"title": "Draft"}, headers=ADMIN_HEADERS).json()["data"]
        response = client.get(f"/api/v1/voters/election/{draft['id']}/results")
        assert response.status_code == 403
        assert response.json()["kind"] == "ForbiddenError"


class TestSettingsRoutes:
    def test_read_requires_authentication(self, client):
        assert client.get("/api/v1/settings").status_code == 401
        body = client.get("/api/v1/settings", headers=VOTER_HEADERS).json()
        assert body["data"] == {"maintenanceMode": False, "registrationEnabled": True}

    def test_update_requires_admin(self, client):
        response = client.patch("/api/v1/settings", json={"maintenanceMode": True}, headers=VOTER_HEADERS)
        assert response.status_code == 403

    def test_update(self, client, settings_service):
        response = client.patch("/api/v1/settings", json={"maintenanceMode": True}, headers=ADMIN_HEADERS)
        assert response.json()["data"] == {"maintenanceMode": True, "registrationEnabled": True}
        assert settings_service.get().maintenance_mode is True


class TestErrorHandling:
    def test_unexpected_errors_become_500(self, db, settings_service):
        app = create_app(use_lifespan=False)
        app.state.db = db
        app.state.settings = settings_service

        async def broken(*args, **kwargs):
            raise RuntimeError("boom")

        db.elections.get_elections = broken
        response = TestClient(app, raise_server_exceptions=False).get("/api/v1/elections")
        assert response.status_code == 500
        body = response.json()
        assert body["success"] is False
        assert body["message"] == "Internal server error"
        # Non-production configuration exposes details
        assert body["type"] == "RuntimeError"


class TestElectionVoteAlias:
    def test_vote_through_election_path(self, client, created):
        c1 = created["candidates"][0]["id"]
        url = f"/api/v1/elections/{created['id']}/vote"

        response = client.post(url, json={"candidateId": c1}, headers=VOTER_HEADERS)
        assert response.status_code == 200
        assert response.json()["data"]["candidate"] == {"id": c1, "name": "Ada Lovelace", "votes": 1}

        # Both paths share one ledger
        again = client.post(
            f"/api/v1/voters/election/{created['id']}", json={"candidateId": c1}, headers=VOTER_HEADERS
        )
        assert again.status_code == 400
        assert again.json()["message"] == "already voted"

    def test_vote_alias_requires_authentication(self, client, created):
        url = f"/api/v1/elections/{created['id']}/vote"
        assert client.post(url, json={"candidateId": "x"}).status_code == 401


class TestElectionPatchRules:
    def test_patch_cannot_add_candidates_when_registration_disabled(self, client, created):
        client.patch("/api/v1/settings", json={"registrationEnabled": False}, headers=ADMIN_HEADERS)
        entries = [{"id": c["id"]} for c in created["candidates"]] + [{"name": "Alan", "party": "P"}]

        response = client.patch(
            f"/api/v1/elections/{created['id']}", json={"candidates": entries}, headers=ADMIN_HEADERS
        )
        assert response.status_code == 400
        assert response.json()["message"] == "Candidate registration is disabled"

        stored = client.get(f"/api/v1/elections/{created['id']}").json()["data"]
        assert len(stored["candidates"]) == 2

    def test_cancel_patch_cannot_strip_fields(self, client, created):
        body = {"status": "cancelled", "description": None, "candidates": []}
        response = client.patch(f"/api/v1/elections/{created['id']}", json=body, headers=ADMIN_HEADERS)
        assert response.status_code == 422

        stored = client.get(f"/api/v1/elections/{created['id']}").json()["data"]
        assert stored["status"] == "active"
        assert stored["description"] == "Annual board election"
        assert len(stored["candidates"]) == 2
