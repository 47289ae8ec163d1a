import pytest
from fastapi.testclient import TestClient

from backend.api.deps import get_http_session, get_settings
from backend.app import app
from backend.settings import Settings
from backend.tests.fakes import FakeSession, award_row


@pytest.fixture
def client():
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


def test_health(client):
    r = client.get("/health")
    assert r.status_code == 200
    body = r.json()
    assert body["status"] == "ok"
    assert len(body["reference_sha256"]) == 64


def test_ping(client):
    assert client.get("/api/ping").json() == {"message": "pong"}


def test_search_with_stubbed_usaspending(client):
    rows = [award_row("NAVFAC WASHINGTON", 500_000.0, offers=2), award_row("NAVFAC WASHINGTON", 250_000.0)]
    session = FakeSession(lambda payload: rows)
    app.dependency_overrides[get_http_session] = lambda: session
    app.dependency_overrides[get_settings] = lambda: Settings(page_delay_seconds=0.0)

    r = client.post("/api/government-contracts/search", json={})
    assert r.status_code == 200
    body = r.json()
    assert body["success"] is True
    assert body["summary"]["total_awards"] == 2
    assert body["agencies"][0]["contracting_office"] == "NAVFAC Washington"
    assert len(session.calls) == 1


def test_invalid_criteria_is_a_400(client):
    session = FakeSession(lambda payload: [])
    app.dependency_overrides[get_http_session] = lambda: session

    r = client.post("/api/government-contracts/search", json={"naics_code": "54A512"})
    assert r.status_code == 400
    assert r.json()["success"] is False
    assert r.json()["error"] == "invalid_naics"
    assert session.calls == []

    r = client.get("/api/contractors/primes", params={"naics": "54A"})
    assert r.status_code == 400
    assert r.json()["error"] == "invalid_naics"


def test_enrichment(client):
    r = client.get(
        "/api/agencies/enrichment",
        params={"office_name": "NAVFAC Washington", "parent_agency": "Department of Defense"},
    )
    assert r.status_code == 200
    body = r.json()
    assert body["command"] == "NAVFAC"
    assert body["contact_source"] == "office_name"


def test_pain_points_requires_a_target(client):
    assert client.get("/api/agencies/pain-points").status_code == 400
    r = client.get("/api/agencies/pain-points", params={"agency": "NAVFAC", "action": "categorize"})
    assert r.status_code == 200
    assert r.json()["count"] == len(r.json()["pain_points"])
    assert "categories" in r.json()


def test_budget_endpoints(client):
    assert client.get("/api/agencies/budget", params={"agency": "Department of Defense"}).json()["toptier_code"] == "097"
    assert client.get("/api/agencies/budget", params={"agency": "Bureau of Nothing"}).status_code == 404
    ranked = client.get("/api/agencies/budget", params={"limit": 2}).json()
    assert ranked["winners"][0]["agency"] == "Department of Homeland Security"
    assert len(ranked["losers"]) == 2


def test_forecasts_and_contractors(client):
    forecasts = client.get("/api/forecasts", params={"naics": "541330"}).json()
    assert forecasts["statistics"]["total_forecasts"] == 3

    primes = client.get("/api/contractors/primes", params={"naics": "541330"}).json()
    assert primes["total"] == len(primes["items"]) > 0
    tier2 = client.get("/api/contractors/tier2", params={"psc": "d302"}).json()
    assert tier2["total"] > 0


def test_normalize_office(client):
    body = client.get("/api/offices/normalize", params={"name": "NAVFAC WASHINGTON"}).json()
    assert body["normalized"] == "NAVFAC Washington"
    assert body["command"] == "NAVFAC"
