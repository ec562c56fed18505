from datetime import datetime, timedelta, timezone
from decimal import Decimal
from zoneinfo import ZoneInfo

import httpx

from app.services.layover.adapters import (
    CandidateSet,
    FallbackCandidateStrategy,
    classify_experience,
    collect_candidates,
    infer_physical_demand,
    parse_flight_offers,
    parse_openweather,
    parse_viator_product,
)
from app.services.layover.engine import count_flights
from app.services.layover.models import Money
from tests.factories import FakeCandidateSource, make_candidate, make_query, make_window


def test_candidate_set_merge_rules():
    first_window = make_window(240, airport="DXB")
    second_window = make_window(360, airport="DXB", flight_id="F2")

    candidates = CandidateSet()
    candidates.add(make_candidate("dxb", "689.00", windows=[first_window], source="offers"))
    merged = candidates.add(
        make_candidate("DXB", "420.00", windows=[first_window, second_window], trending=True, source="inspiration")
    )

    assert len(candidates) == 1
    assert merged.price == Money("689.00")
    assert merged.trending is True
    assert merged.windows == [first_window, second_window]
    assert merged.sources == ["offers", "inspiration"]
    assert merged.city == "Dubai"
    assert count_flights(candidates.values()) == 2


def test_trending_is_or_combined():
    candidates = CandidateSet()
    candidates.add(make_candidate("IST", trending=True))
    candidates.add(make_candidate("IST", trending=False))

    assert candidates.get("IST").trending is True


async def test_failing_source_becomes_provider_failure():
    healthy = FakeCandidateSource("healthy", [make_candidate("DXB"), make_candidate("IST")])
    broken = FakeCandidateSource("broken", error=httpx.ConnectError("connection refused"))

    merged, failures = await collect_candidates([healthy, broken], make_query())

    assert sorted(c.code for c in merged.values()) == ["DXB", "IST"]
    assert len(failures) == 1
    assert failures[0].source == "broken"
    assert failures[0].operation == "fetch_candidates"
    assert "connection refused" in failures[0].message


async def test_origin_is_never_a_candidate():
    source = FakeCandidateSource("offers", [make_candidate("JFK"), make_candidate("DOH")])

    merged, _ = await collect_candidates([source], make_query(origin="JFK"))

    assert "JFK" not in merged
    assert "DOH" in merged


async def test_trend_source_only_flags_known_candidates():
    # Trend feed listed first; it must still not introduce candidates
    trend = FakeCandidateSource(
        "trending", [make_candidate("DXB", "0"), make_candidate("CDG", "0")], kind="trend"
    )
    prices = FakeCandidateSource("prices", [make_candidate("DXB", "700.00")])

    merged, failures = await collect_candidates([trend, prices], make_query())

    assert failures == []
    assert [c.code for c in merged.values()] == ["DXB"]
    assert merged.get("DXB").trending is True
    assert merged.get("DXB").price == Money("700.00")
    assert "trending" in merged.get("DXB").sources


def _offer(offer_id, total, arrive_at, depart_at, hub="DXB"):
    return {
        "id": offer_id,
        "price": {"grandTotal": total, "currency": "USD"},
        "validatingAirlineCodes": ["EK"],
        "itineraries": [{
            "segments": [
                {"departure": {"iataCode": "JFK", "at": "2026-03-13T22:00:00"},
                 "arrival": {"iataCode": hub, "at": arrive_at}},
                {"departure": {"iataCode": hub, "at": depart_at},
                 "arrival": {"iataCode": "BKK", "at": "2026-03-15T11:00:00"}},
            ],
        }],
    }


def test_parse_flight_offers_builds_local_layover_windows():
    payload = {
        "data": [
            _offer("1", "812.40", "2026-03-14T19:30:00", "2026-03-15T01:30:00"),
            _offer("2", "640.00", "2026-03-14T06:00:00", "2026-03-15T08:00:00"),
        ],
        "dictionaries": {"carriers": {"EK": "Emirates"}},
    }

    candidates = parse_flight_offers(payload, max_layover_minutes=1440)

    # Offer 2 waits 26 hours, too long to count as a layover
    assert len(candidates) == 1
    candidate = candidates[0]
    window = candidate.windows[0]
    assert candidate.code == "DXB"
    assert candidate.price == Money("812.40")
    assert window.duration_minutes == 360
    assert window.arrival.tzinfo == ZoneInfo("Asia/Dubai")
    assert window.airline == "Emirates"
    assert window.flight_id == "1"
    assert window.price == Money("812.40")


def test_parse_flight_offers_skips_direct_and_unpriced_offers():
    direct = _offer("3", "500.00", "2026-03-14T19:30:00", "2026-03-15T01:30:00")
    direct["itineraries"][0]["segments"] = direct["itineraries"][0]["segments"][:1]
    unpriced = _offer("4", None, "2026-03-14T19:30:00", "2026-03-15T01:30:00")
    unpriced["price"] = {}

    assert parse_flight_offers({"data": [direct, unpriced]}) == []


def test_classify_experience_titles():
    assert classify_experience("Desert Safari with Dinner") == (["outdoor"], "outdoor")
    assert classify_experience("Grand Bazaar Food Tasting") == (["food", "shopping"], "indoor")
    assert classify_experience("Museum of the Future Entry") == (["culture"], "indoor")
    assert classify_experience("Private Transfer") == ([], "mixed")


def test_infer_physical_demand_from_title():
    assert infer_physical_demand("Hajar Mountains Hiking Day") == "high"
    assert infer_physical_demand("Old Town Walking Tour") == "moderate"
    assert infer_physical_demand("Museum of the Future Entry") == "low"


def test_parse_viator_product():
    start = datetime(2026, 3, 14, 15, 0, tzinfo=timezone.utc)
    product = {
        "productCode": "5521P7",
        "title": "Old Dubai Food Tour",
        "duration": {"fixedDurationInMinutes": 180},
        "pricing": {"summary": {"fromPrice": 79.0}, "currency": "USD"},
        "reviews": {"combinedAverageRating": 4.8},
    }

    experience = parse_viator_product(product, "DXB", start, "USD")

    assert experience.id == "5521P7"
    assert experience.price == Money("79.00")
    assert experience.end == start + timedelta(minutes=180)
    assert "food" in experience.categories
    assert experience.rating == 4.8
    assert experience.physical_demand == "moderate"


def test_parse_viator_product_without_duration():
    product = {"productCode": "X", "title": "Flexible pass", "pricing": {"summary": {"fromPrice": 10}}}

    assert parse_viator_product(product, "DXB", datetime.now(timezone.utc), "USD") is None


def test_parse_openweather():
    rainy = parse_openweather({"weather": [{"main": "Rain"}], "main": {"temp": 18.26}, "rain": {"1h": 6.2}})
    clear = parse_openweather({"weather": [{"main": "Clear"}], "main": {"temp": 27.0}})

    assert rainy.is_good_for_outdoor is False
    assert rainy.label == "poor"
    assert rainy.temperature_c == 18.3
    assert clear.is_good_for_outdoor is True
    assert clear.label == "good"


def test_fallback_strategy_skips_origin():
    strategy = FallbackCandidateStrategy()

    candidates = strategy.candidates(make_query(origin="DXB"))

    codes = [c.code for c in candidates]
    assert "DXB" not in codes
    assert "IST" in codes
    assert all(c.sources == ["fallback_sample_hubs"] for c in candidates)
    assert all(c.price.amount > Decimal("0") for c in candidates)
