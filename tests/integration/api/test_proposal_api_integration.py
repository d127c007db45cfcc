import pytest
from fastapi.testclient import TestClient

from src.api.main import app
from src.api.routers.proposals_config import reset_proposal_store_for_tests
from src.core.proposals import ProposalStore

PROPOSAL_ID = "val_abc123def"


def _create(client: TestClient, **overrides):
    payload = {
        "proposal_id": PROPOSAL_ID,
        "proposer_name": "Sam",
        "proposer_gender": "male",
        "partner_name": "Ari",
        "partner_gender": "female",
    }
    payload.update(overrides)
    return client.post("/proposals", json=payload)


def test_create_get_and_links_workflow():
    with TestClient(app) as client:
        created = _create(client, proposer_name="<b>Sam</b><script>x()</script>")
        assert created.status_code == 201
        body = created.json()
        assert body["proposal"]["proposer_name"] == "Sam"
        assert body["proposal"]["status"] == "pending"
        assert body["links"]["respond_url"] == (
            "https://valentine.example/proposal.html?id=val_abc123def"
        )

        fetched = client.get(f"/proposals/{PROPOSAL_ID}")
        assert fetched.status_code == 200
        assert fetched.json() == body["proposal"]

        links = client.get(f"/proposals/{PROPOSAL_ID}/links")
        assert links.status_code == 200
        assert links.json()["track_url"].endswith("tracking.html?id=val_abc123def")


def test_create_generates_id_when_omitted():
    with TestClient(app) as client:
        created = client.post(
            "/proposals",
            json={"proposer_name": "Sam", "partner_name": "Ari"},
        )
    assert created.status_code == 201
    proposal = created.json()["proposal"]
    assert proposal["proposal_id"].startswith("val_")
    assert proposal["proposer_gender"] == "male"


def test_create_error_mapping():
    with TestClient(app) as client:
        assert _create(client).status_code == 201

        duplicate = _create(client)
        assert duplicate.status_code == 409
        assert duplicate.json()["detail"] == "PROPOSAL_ALREADY_EXISTS"

        invalid = _create(client, proposal_id="val_x")
        assert invalid.status_code == 422
        assert invalid.json()["detail"] == "PROPOSAL_ID_INVALID"

        empty = _create(client, proposal_id="val_other12345", partner_name="<i></i>")
        assert empty.status_code == 422
        assert empty.json()["detail"] == "PROPOSAL_NAME_EMPTY"


def test_create_reports_store_unavailable():
    class _Offline:
        def read(self, *, path):
            raise ConnectionError("offline")

    reset_proposal_store_for_tests(ProposalStore(repository=_Offline()))
    with TestClient(app) as client:
        response = _create(client)
    assert response.status_code == 503
    assert response.json()["detail"] == "PROPOSAL_STORE_UNAVAILABLE"


def test_get_missing_and_invalid_proposals_are_404():
    with TestClient(app) as client:
        assert client.get(f"/proposals/{PROPOSAL_ID}").status_code == 404
        assert client.get("/proposals/not-valid").status_code == 404
        assert client.get(f"/proposals/{PROPOSAL_ID}/links").status_code == 404


def test_status_update_filters_and_rejects():
    with TestClient(app) as client:
        _create(client)

        updated = client.patch(
            f"/proposals/{PROPOSAL_ID}/status",
            json={"status": "opened", "opened_at": 1_771_065_060_000},
        )
        assert updated.status_code == 200
        assert updated.json() == {"proposal_id": PROPOSAL_ID, "updated": True}
        proposal = client.get(f"/proposals/{PROPOSAL_ID}").json()
        assert proposal["status"] == "opened"
        assert proposal["opened_at"] == 1_771_065_060_000

        rejected = client.patch(f"/proposals/{PROPOSAL_ID}/status", json={"status": "pending"})
        assert rejected.status_code == 422
        assert rejected.json()["detail"] == "PROPOSAL_STATUS_UPDATE_REJECTED"

        non_numeric = client.patch(
            f"/proposals/{PROPOSAL_ID}/status", json={"accepted_at": "tomorrow"}
        )
        assert non_numeric.status_code == 422


def test_lifespan_refuses_in_memory_store_in_production(monkeypatch):
    monkeypatch.setenv("APP_PERSISTENCE_PROFILE", "PRODUCTION")
    with pytest.raises(RuntimeError) as exc:
        with TestClient(app):
            pass
    assert str(exc.value) == "PERSISTENCE_PROFILE_REQUIRES_DURABLE_PROPOSAL_STORE"


def test_proposals_persist_in_sqlite_backend(monkeypatch, tmp_path):
    monkeypatch.setenv("PROPOSAL_STORE_BACKEND", "SQLITE")
    monkeypatch.setenv("PROPOSAL_SQLITE_PATH", str(tmp_path / "proposals.sqlite"))
    with TestClient(app) as client:
        assert _create(client).status_code == 201

    reset_proposal_store_for_tests()
    with TestClient(app) as client:
        assert client.get(f"/proposals/{PROPOSAL_ID}").json()["partner_name"] == "Ari"
