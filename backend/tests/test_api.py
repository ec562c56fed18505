import pytest
from fastapi.testclient import TestClient

from app.config import settings
from app.dependencies import get_booking_orchestrator, get_discovery_engine
from app.main import app
from app.services.layover.booking import BookingOrchestrator
from app.services.layover.engine import LayoverDiscoveryEngine
from tests.factories import (
    HUB,
    FakeCandidateSource,
    FakeExperienceSource,
    FakeWeatherSource,
    SlowCandidateSource,
    make_candidate,
    make_experience,
    make_window,
)

DISCOVER = "/api/v1/layovers/discover"
BOOKINGS = "/api/v1/bookings"

BOOKING_BODY = {
    "flight": {
        "id": "F1",
        "price": "500.00",
        "currency": "USD",
        "layover_airport": HUB,
        "arrival": "2026-03-14T08:00:00+00:00",
        "departure": "2026-03-14T16:00:00+00:00",
    },
    "passengers": {"adults": 2},
    "experiences": [
        {"experience_id": "A", "start": "2026-03-14T08:30:00+00:00", "travelers": 2},
        {"experience_id": "B", "start": "2026-03-14T11:20:00+00:00", "travelers": 2},
    ],
    "payment_method": "card",
}


@pytest.fixture
def client():
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def use_engine(transit):
    def install(sources):
        engine = LayoverDiscoveryEngine(
            sources,
            experience_source=FakeExperienceSource({HUB: [make_experience("A", 120)]}),
            weather_source=FakeWeatherSource(),
            transit=transit,
        )
        app.dependency_overrides[get_discovery_engine] = lambda: engine
        return engine
    return install


@pytest.fixture
def use_orchestrator(transit, store):
    def install(availability):
        orchestrator = BookingOrchestrator(
            FakeExperienceSource(availability=availability), store=store, transit=transit
        )
        app.dependency_overrides[get_booking_orchestrator] = lambda: orchestrator
        return orchestrator
    return install


def test_health(client):
    resp = client.get("/api/health")

    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"


def test_discover_returns_ranked_opportunities(client, use_engine):
    use_engine([FakeCandidateSource("offers", [make_candidate(HUB, windows=[make_window(300)])])])

    resp = client.post(DISCOVER, json={"origin": "jfk", "departure_date": "2026-03-14"})

    assert resp.status_code == 200
    body = resp.json()
    assert set(body) == {"opportunities", "insights", "market", "metadata", "failures", "used_fallback"}
    assert body["opportunities"][0]["airport"] == HUB
    assert body["opportunities"][0]["experiences"][0]["id"] == "A"
    assert body["insights"]["best"]["id"] == body["opportunities"][0]["id"]
    assert body["metadata"]["total_opportunities"] == 1


def test_discover_physical_demand_vocabulary(client, use_engine):
    use_engine([])
    body = {"origin": "JFK", "departure_date": "2026-03-14"}

    ok = client.post(DISCOVER, json={**body, "preferences": {"physical_demand": "moderate"}})
    bad = client.post(DISCOVER, json={**body, "preferences": {"physical_demand": "extreme"}})

    assert ok.status_code == 200
    assert bad.status_code == 400


def test_discover_rejects_bad_airport_code(client, use_engine):
    use_engine([])

    resp = client.post(DISCOVER, json={"origin": "JF", "departure_date": "2026-03-14"})

    assert resp.status_code == 400
    assert resp.json()["error"] == "invalid_request"


def test_discover_timeout_is_retryable(client, use_engine, monkeypatch):
    monkeypatch.setattr(settings, "layover_request_timeout_seconds", 0.05)
    use_engine([SlowCandidateSource(delay=1.0)])

    resp = client.post(DISCOVER, json={"origin": "JFK", "departure_date": "2026-03-14"})

    assert resp.status_code == 504
    assert resp.json()["retryable"] is True


def test_booking_created(client, use_orchestrator, store):
    use_orchestrator({
        "A": make_experience("A", 120, price="50.00"),
        "B": make_experience("B", 120, price="80.00", offset=200),
    })

    resp = client.post(BOOKINGS, json=BOOKING_BODY)

    assert resp.status_code == 201
    body = resp.json()
    assert body["confirmation_code"].startswith("LHQ")
    assert body["commission_summary"]["total_commission"]["amount"] == 26.0
    assert len(body["experiences"]) == 2
    assert len(store) == 1


def test_booking_returns_user_id(client, use_orchestrator):
    use_orchestrator({
        "A": make_experience("A", 120, price="50.00"),
        "B": make_experience("B", 120, price="80.00", offset=200),
    })

    resp = client.post(BOOKINGS, json={**BOOKING_BODY, "user_id": "traveler-7"})

    assert resp.status_code == 201
    assert resp.json()["user_id"] == "traveler-7"


def test_booking_partial_unavailability_is_conflict(client, use_orchestrator, store):
    use_orchestrator({"A": make_experience("A", 120, price="50.00"), "B": None})

    resp = client.post(BOOKINGS, json=BOOKING_BODY)

    assert resp.status_code == 409
    assert resp.json()["error"] == "experiences_unavailable"
    assert resp.json()["unavailable_experiences"] == ["B"]
    assert len(store) == 0


def test_booking_rejects_naive_timestamps(client, use_orchestrator):
    use_orchestrator({})
    body = {**BOOKING_BODY, "flight": {**BOOKING_BODY["flight"], "arrival": "2026-03-14T08:00:00"}}

    resp = client.post(BOOKINGS, json=body)

    assert resp.status_code == 400
    assert resp.json()["error"] == "invalid_request"


def test_booking_too_many_travelers_is_bad_request(client, use_orchestrator):
    use_orchestrator({})
    body = {
        **BOOKING_BODY,
        "experiences": [{"experience_id": "A", "start": "2026-03-14T08:30:00+00:00", "travelers": 5}],
    }

    resp = client.post(BOOKINGS, json=body)

    assert resp.status_code == 400
