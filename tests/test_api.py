"""Tests for the FastAPI matching endpoints."""

import pytest
from fastapi import HTTPException
from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError

from appetite_matcher import __version__
from appetite_matcher.api import routes
from appetite_matcher.api.routes import app, get_matching_engine, get_store
from appetite_matcher.config import settings
from appetite_matcher.matching import MatchingEngine, ScoringWeights

HEADERS = {"X-API-Key": settings.api_key}

CLIENT_PROFILE = {
    "industry": "Technology",
    "requested_coverage_amount": 5_000_000,
    "jurisdictions": ["UK"],
    "insurance_product": "Cyber",
}


class FakeStore:
    def __init__(self, candidates=None, stored=None, fail=False):
        self.candidates = candidates or []
        self.stored = stored or []
        self.fail = fail
        self.saved = []

    async def load_candidates(self, product_type):
        if self.fail:
            raise OperationalError("SELECT", {}, Exception("database is locked"))
        return [c for c in self.candidates if product_type == "Cyber"]

    async def save_matches(self, client_document_id, matches):
        self.saved.append((client_document_id, [m.underwriter_id for m in matches]))
        return len(matches)

    async def list_matches(self, client_document_id):
        return [row for row in self.stored if row["client_document_id"] == client_document_id]


@pytest.fixture
def fake_store():
    return FakeStore()


@pytest.fixture
def client(fake_store):
    engine = MatchingEngine(weights=ScoringWeights(), store=fake_store)
    app.dependency_overrides[get_store] = lambda: fake_store
    app.dependency_overrides[get_matching_engine] = lambda: engine
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


class TestAuth:
    def test_bad_key_is_forbidden(self, client):
        response = client.get("/v1/health", headers={"X-API-Key": "wrong"})

        assert response.status_code == 403

    def test_missing_key_is_rejected(self, client):
        response = client.get("/v1/health")

        assert response.status_code == 422

    def test_health(self, client):
        response = client.get("/v1/health", headers=HEADERS)

        assert response.status_code == 200
        assert response.json() == {"status": "ok", "version": __version__}


class TestStatelessMatch:
    def test_scores_supplied_appetites(self, client):
        body = {
            "client_profile": CLIENT_PROFILE,
            "underwriter_appetites": [
                {
                    "underwriter_id": "uw-1",
                    "underwriter_name": "Harbour Specialty",
                    "coverage_amount_min": 1_000_000,
                    "coverage_amount_max": 10_000_000,
                    "jurisdictions": ["United Kingdom"],
                },
                {"underwriter_id": "uw-2", "underwriter_name": "Plain Re"},
                {
                    "underwriter_id": "uw-3",
                    "underwriter_name": "Asbestos Avoiders",
                    "exclusions": ["technology"],
                },
            ],
        }

        response = client.post("/v1/match", json=body, headers=HEADERS)

        assert response.status_code == 200
        data = response.json()
        assert data["total_evaluated"] == 3
        assert [m["underwriter_id"] for m in data["top_matches"]] == ["uw-1"]
        assert [m["underwriter_id"] for m in data["nearest_misses"]] == ["uw-2"]
        top = data["top_matches"][0]
        assert top["confidence_score"] == 80
        assert top["confidence_band"] == "strong"
        assert top["coverage_fit"] == "within-range"
        assert top["jurisdiction_fit"] is True
        assert top["last_guide_update"] == "Unknown"
        assert "reasons" not in top
        assert "failed_criteria" not in top

    def test_no_appetites(self, client):
        response = client.post("/v1/match", json={"client_profile": CLIENT_PROFILE}, headers=HEADERS)

        assert response.status_code == 200
        data = response.json()
        assert data["top_matches"] == []
        assert data["nearest_misses"] == []
        assert data["total_evaluated"] == 0

    def test_missing_client_profile(self, client):
        response = client.post("/v1/match", json={"underwriter_appetites": []}, headers=HEADERS)

        assert response.status_code == 422

    def test_non_finite_amount_rejected(self, client):
        response = client.post(
            "/v1/match",
            content='{"client_profile": {"industry": "Technology", "requested_coverage_amount": Infinity}}',
            headers={**HEADERS, "Content-Type": "application/json"},
        )

        assert response.status_code == 422
        errors = response.json()["detail"]
        assert [e["loc"] for e in errors] == [["body", "client_profile", "requested_coverage_amount"]]
        assert all("input" not in e for e in errors)

    def test_blank_industry_rejected(self, client):
        profile = {**CLIENT_PROFILE, "industry": "   "}

        response = client.post("/v1/match", json={"client_profile": profile}, headers=HEADERS)

        assert response.status_code == 422
        assert response.json()["detail"][0]["loc"] == ["body", "client_profile", "industry"]


class TestDocumentMatch:
    def test_matches_and_saves_top_matches(self, client, fake_store, make_appetite):
        fake_store.candidates = [
            make_appetite(underwriter_id="uw-1", coverage_amount_min=1_000_000, coverage_amount_max=10_000_000),
            make_appetite(underwriter_id="uw-2"),
        ]

        response = client.post("/v1/documents/doc-7/match", json=CLIENT_PROFILE, headers=HEADERS)

        assert response.status_code == 200
        data = response.json()
        assert [m["underwriter_id"] for m in data["top_matches"]] == ["uw-1"]
        assert [m["underwriter_id"] for m in data["nearest_misses"]] == ["uw-2"]
        assert fake_store.saved == [("doc-7", ["uw-1"])]

    def test_no_guides_for_product(self, client):
        profile = {**CLIENT_PROFILE, "insurance_product": "Marine"}

        response = client.post("/v1/documents/doc-7/match", json=profile, headers=HEADERS)

        assert response.status_code == 200
        data = response.json()
        assert data["message"] == "No appetite guides available for Marine"
        assert data["top_matches"] == []

    def test_database_failure_is_a_server_error(self, client, fake_store):
        fake_store.fail = True

        response = client.post("/v1/documents/doc-7/match", json=CLIENT_PROFILE, headers=HEADERS)

        assert response.status_code == 500
        assert response.json()["detail"] == "Appetite matching failed: OperationalError"

    def test_list_matches(self, client, fake_store):
        fake_store.stored = [
            {"client_document_id": "doc-7", "carrier_id": "uw-1", "confidence_score": 70},
            {"client_document_id": "doc-8", "carrier_id": "uw-2", "confidence_score": 65},
        ]

        response = client.get("/v1/documents/doc-7/matches", headers=HEADERS)

        assert response.status_code == 200
        data = response.json()
        assert data["client_document_id"] == "doc-7"
        assert [m["carrier_id"] for m in data["matches"]] == ["uw-1"]

    def test_unknown_document_has_no_matches(self, client):
        response = client.get("/v1/documents/missing/matches", headers=HEADERS)

        assert response.status_code == 200
        assert response.json()["matches"] == []


@pytest.mark.parametrize("dependency", [get_store, get_matching_engine])
def test_unavailable_outside_lifespan(dependency):
    with pytest.raises(HTTPException) as excinfo:
        dependency()

    assert excinfo.value.status_code == 503


def test_engine_built_once_per_application(monkeypatch):
    built = []

    class CountingEngine(MatchingEngine):
        def __init__(self, *args, **kwargs):
            built.append(self)
            super().__init__(*args, **kwargs)

    monkeypatch.setattr(routes, "MatchingEngine", CountingEngine)
    body = {"client_profile": CLIENT_PROFILE, "underwriter_appetites": [{"underwriter_id": "uw-1", "underwriter_name": "Plain"}]}

    with TestClient(app) as c:
        for _ in range(3):
            assert c.post("/v1/match", json=body, headers=HEADERS).status_code == 200

    assert len(built) == 1
