"""
Tests for the Web API

Tests covering:
1. Health endpoints
2. Starting prediction runs (201 / 404 / 503)
3. Reading predictions for the latest or a given run
4. Listing runs
5. Report PDF download
"""

import pytest
from fastapi.testclient import TestClient

from core.prediction_engine import PredictionRunOrchestrator
from core.store import InMemoryPredictionStore, StoreError
from web.app import create_app
from web.prediction_routes import get_orchestrator, get_store


class UnavailableStore(InMemoryPredictionStore):
    """Store whose hosted backend is down."""

    def load_snapshots(self, address_id):
        raise StoreError("connection refused")

    def list_run_ids(self, address_id):
        raise StoreError("connection refused")


@pytest.fixture
def seeded_store(store, florida_home, make_snapshot, hvac_permit_payload):
    store.add_property(florida_home)
    store.add_snapshot(make_snapshot("shovels", hvac_permit_payload, "addr-fl"))
    return store


def _client(store, reference_date):
    app = create_app()
    orchestrator = PredictionRunOrchestrator(store, reference_date=reference_date)
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_orchestrator] = lambda: orchestrator
    return TestClient(app)


@pytest.fixture
def client(seeded_store, reference_date):
    return _client(seeded_store, reference_date)


# =============================================================================
# Health
# =============================================================================

class TestHealth:

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}

    def test_api_health(self, client):
        data = client.get("/api/health").json()
        assert data["status"] == "healthy"
        assert data["version"] == "1.0"


# =============================================================================
# Prediction Runs
# =============================================================================

class TestStartRun:
    """POST /api/properties/{id}/prediction-runs"""

    def test_created(self, client):
        response = client.post("/api/properties/addr-fl/prediction-runs")

        assert response.status_code == 201
        data = response.json()
        assert data["state"] == "complete"
        assert data["climate_zone"] == "florida"
        assert len(data["predictions"]) == 6
        assert {p["run_id"] for p in data["predictions"]} == {data["run_id"]}

    def test_unknown_property(self, client):
        response = client.post("/api/properties/nope/prediction-runs")
        assert response.status_code == 404

    def test_store_unavailable(self, florida_home, reference_date):
        store = UnavailableStore()
        store.add_property(florida_home)
        client = _client(store, reference_date)

        response = client.post("/api/properties/addr-fl/prediction-runs")

        assert response.status_code == 503
        assert "Traceback" not in response.text
        assert "connection refused" not in response.text


class TestReadPredictions:
    """GET predictions and run listings."""

    def test_latest_run(self, client):
        client.post("/api/properties/addr-fl/prediction-runs")
        latest = client.post("/api/properties/addr-fl/prediction-runs").json()

        data = client.get("/api/properties/addr-fl/predictions").json()

        assert data["run_id"] == latest["run_id"]
        fields = [p["field"] for p in data["predictions"]]
        assert fields == [
            "roof_age_bucket",
            "hvac_present",
            "hvac_system_type",
            "hvac_age_bucket",
            "water_heater_type",
            "water_heater_age_bucket",
        ]

    def test_specific_run(self, client):
        first = client.post("/api/properties/addr-fl/prediction-runs").json()
        client.post("/api/properties/addr-fl/prediction-runs")

        data = client.get(
            "/api/properties/addr-fl/predictions", params={"run_id": first["run_id"]},
        ).json()

        assert data["run_id"] == first["run_id"]
        assert len(data["predictions"]) == 6

    def test_provenance_included(self, client):
        client.post("/api/properties/addr-fl/prediction-runs")
        predictions = client.get("/api/properties/addr-fl/predictions").json()["predictions"]
        hvac_age = next(p for p in predictions if p["field"] == "hvac_age_bucket")
        assert hvac_age["provenance"]["source"] == "permit"
        assert hvac_age["provenance"]["evidence"][0]["reference"] == "M-2023-0042"

    def test_no_runs_yet(self, client):
        data = client.get("/api/properties/addr-fl/predictions").json()
        assert data["predictions"] == []
        assert data["run_id"] is None

    def test_list_runs_newest_first(self, client):
        first = client.post("/api/properties/addr-fl/prediction-runs").json()
        second = client.post("/api/properties/addr-fl/prediction-runs").json()

        data = client.get("/api/properties/addr-fl/prediction-runs").json()

        assert data["run_ids"] == [second["run_id"], first["run_id"]]

    def test_store_unavailable(self, reference_date):
        client = _client(UnavailableStore(), reference_date)
        assert client.get("/api/properties/addr-fl/predictions").status_code == 503
        assert client.get("/api/properties/addr-fl/prediction-runs").status_code == 503


# =============================================================================
# Report
# =============================================================================

class TestReportDownload:
    """GET /api/properties/{id}/report.pdf"""

    def test_pdf(self, client):
        client.post("/api/properties/addr-fl/prediction-runs")

        response = client.get("/api/properties/addr-fl/report.pdf")

        assert response.status_code == 200
        assert response.headers["content-type"] == "application/pdf"
        assert "home-systems-addr-fl.pdf" in response.headers["content-disposition"]
        assert response.content.startswith(b"%PDF")

    def test_no_runs(self, client):
        assert client.get("/api/properties/addr-fl/report.pdf").status_code == 404

    def test_unknown_property(self, client):
        assert client.get("/api/properties/nope/report.pdf").status_code == 404
