from datetime import datetime, timezone
from decimal import Decimal

import httpx

from app.services.layover.adapters import FallbackCandidateStrategy, OpenWeatherSource
from app.services.layover.config import EngineConfig
from app.services.layover.engine import LayoverDiscoveryEngine, planned_window
from app.services.layover.models import Money
from app.services.layover.scoring import blend_overall
from app.services.weather_client import WeatherClient
from tests.factories import (
    HUB,
    STORMY,
    FakeCandidateSource,
    FakeExperienceSource,
    FakeWeatherSource,
    make_candidate,
    make_experience,
    make_query,
    make_window,
)


def _engine(sources, transit, **kwargs):
    kwargs.setdefault("experience_source", FakeExperienceSource())
    kwargs.setdefault("weather_source", FakeWeatherSource())
    return LayoverDiscoveryEngine(sources, transit=transit, **kwargs)


async def test_short_layover_kept_as_infeasible(transit):
    experiences = FakeExperienceSource({HUB: [make_experience("A", 30)]})
    source = FakeCandidateSource("offers", [make_candidate(HUB, windows=[make_window(90)])])

    result = await _engine([source], transit, experience_source=experiences).discover(make_query())

    assert len(result.opportunities) == 1
    opp = result.opportunities[0]
    assert opp.feasible is False
    assert opp.experiences == []
    assert opp.bundle is None
    assert "Insufficient time to leave the airport safely" in opp.warnings
    assert experiences.searches == []
    assert result.to_dict()["opportunities"][0]["feasible"] is False


async def test_eight_hour_layover_matches_and_bundles(transit):
    experiences = FakeExperienceSource({
        HUB: [make_experience("SHORT", 180, price="60.00"), make_experience("LONG", 450, price="40.00")],
    })
    source = FakeCandidateSource("offers", [make_candidate(HUB, "500.00", windows=[make_window(480)])])

    result = await _engine([source], transit, experience_source=experiences).discover(make_query())

    opp = result.opportunities[0]
    assert opp.id == "F1_XYZ_202603140800"
    assert opp.feasibility.available_city_minutes == 420
    assert [e.id for e in opp.experiences] == ["SHORT"]
    assert opp.bundle.experience_id == "SHORT"
    assert opp.bundle.savings_amount.amount >= 0
    assert "Book flight + experience together and save $84" in opp.recommendations
    assert result.insights.best is opp


async def test_overall_is_reproducible_from_sub_scores(transit):
    source = FakeCandidateSource("offers", [
        make_candidate(HUB, "450.00", windows=[make_window(300)], trending=True),
        make_candidate("DXB", "900.00", windows=[make_window(200, airport="DXB", flight_id="F2")]),
    ])
    query = make_query(budget="economy", preferred_destinations=["DXB"])

    result = await _engine([source], transit).discover(query)

    for opp in result.opportunities:
        s = opp.scores
        assert 0 <= s.overall <= 100
        assert s.overall == blend_overall(s.feasibility, s.experience, s.weather, s.boost)


async def test_failing_source_degrades_but_returns_the_rest(transit):
    healthy = FakeCandidateSource("offers", [make_candidate(HUB, windows=[make_window(300)])])
    broken = FakeCandidateSource("inspiration", error=httpx.ReadTimeout("timed out"))

    result = await _engine([healthy, broken], transit).discover(make_query())

    assert [o.code for o in result.opportunities] == [HUB]
    assert result.degraded is True
    assert result.used_fallback is False
    assert result.metadata["degraded"] is True
    assert [f.source for f in result.failures] == ["inspiration"]


async def test_fallback_used_only_when_nothing_came_back(transit):
    empty = FakeCandidateSource("offers", [])
    fallback = FallbackCandidateStrategy(prices={"DXB": "689.00"})

    result = await _engine([empty], transit, fallback=fallback).discover(make_query())

    assert result.used_fallback is True
    assert result.degraded is True
    opp = result.opportunities[0]
    assert opp.id == "DXB_planned"
    assert opp.window.arrival == datetime(2026, 3, 14, 10, 0, tzinfo=timezone.utc)
    assert opp.duration_minutes == 480


async def test_empty_without_fallback_is_not_degraded(transit):
    result = await _engine([FakeCandidateSource("offers", [])], transit).discover(make_query())

    assert result.opportunities == []
    assert result.insights.best is None
    assert result.degraded is False
    assert result.metadata["total_opportunities"] == 0


async def test_weather_failure_uses_default_report(transit):
    source = FakeCandidateSource("offers", [make_candidate(HUB, windows=[make_window(300)])])
    weather = FakeWeatherSource(error=httpx.ConnectError("no route"))

    result = await _engine([source], transit, weather_source=weather).discover(make_query())

    opp = result.opportunities[0]
    assert opp.weather.source == "default"
    assert "Weather data unavailable" in opp.warnings
    assert [(f.source, f.operation) for f in result.failures] == [("fake_weather", "fetch_weather")]


async def test_experience_failure_keeps_the_opportunity(transit):
    source = FakeCandidateSource("offers", [make_candidate(HUB, windows=[make_window(300)])])
    experiences = FakeExperienceSource(error=httpx.HTTPError("503"))

    result = await _engine([source], transit, experience_source=experiences).discover(make_query())

    assert result.opportunities[0].experiences == []
    assert result.opportunities[0].feasible is True
    assert result.failures[0].operation == "search_experiences"


async def test_bad_weather_warning(transit):
    source = FakeCandidateSource("offers", [make_candidate(HUB, windows=[make_window(300)])])

    result = await _engine([source], transit, weather_source=FakeWeatherSource(STORMY)).discover(make_query())

    assert "Weather may limit outdoor activities" in result.opportunities[0].warnings


async def test_hub_without_coordinates_uses_default_weather_without_failure(transit):
    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError("no weather call expected for a hub without coordinates")

    http = httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url="https://weather.test")
    weather = OpenWeatherSource(WeatherClient("key", http_client=http))
    source = FakeCandidateSource("offers", [make_candidate(HUB, windows=[make_window(300)])])

    result = await _engine([source], transit, weather_source=weather).discover(make_query())

    assert result.opportunities[0].weather.source == "default"
    assert result.failures == []
    assert result.degraded is False


async def test_windows_grouped_by_hour_keep_longest(transit):
    windows = [
        make_window(240, flight_id="F1"),
        make_window(250, flight_id="F2"),
        make_window(360, flight_id="F3"),
    ]
    source = FakeCandidateSource("offers", [make_candidate(HUB, windows=windows)])

    result = await _engine([source], transit).discover(make_query())

    assert sorted(o.duration_minutes for o in result.opportunities) == [250, 360]
    assert result.metadata["total_flights"] == 3
    assert result.metadata["total_candidates"] == 1


async def test_search_time_comes_from_injected_clock(transit):
    ticks = iter([100.0, 100.25])
    source = FakeCandidateSource("offers", [make_candidate(HUB, windows=[make_window(300)])])

    result = await _engine([source], transit, clock=lambda: next(ticks)).discover(make_query())

    assert result.metadata["search_time_ms"] == 250


async def test_candidates_served_from_cache_on_repeat(transit, candidate_cache):
    source = FakeCandidateSource("offers", [make_candidate(HUB, windows=[make_window(300)])])
    engine = _engine([source], transit, cache=candidate_cache)

    first = await engine.discover(make_query())
    second = await engine.discover(make_query())

    assert first.metadata["cached"] is False
    assert second.metadata["cached"] is True
    assert source.calls == 1
    assert [o.id for o in second.opportunities] == [o.id for o in first.opportunities]


async def test_degraded_candidates_are_not_cached(transit, candidate_cache, fake_redis):
    healthy = FakeCandidateSource("offers", [make_candidate(HUB, windows=[make_window(300)])])
    broken = FakeCandidateSource("inspiration", error=httpx.ConnectError("down"))

    await _engine([healthy, broken], transit, cache=candidate_cache).discover(make_query())

    assert fake_redis.store == {}


async def test_concurrency_limit_of_one_still_evaluates_everything(transit):
    codes = ["DXB", "IST", "DOH", "SIN"]
    source = FakeCandidateSource("offers", [make_candidate(code) for code in codes])
    config = EngineConfig(concurrency_limit=1)

    result = await _engine([source], transit, config=config).discover(make_query())

    assert sorted(o.code for o in result.opportunities) == sorted(codes)


def test_planned_window_respects_max_layover():
    window = planned_window("DXB", make_query(max_layover_duration=300))

    assert window.duration_minutes == 300
    assert window.airport == "DXB"
    assert window.flight_id is None


async def test_each_offer_is_priced_with_its_own_fare(transit):
    cheap = make_candidate("DXB", "300.00", windows=[make_window(240, airport="DXB", flight_id="1", price="300.00")])
    dear = make_candidate("DXB", "900.00", windows=[make_window(480, airport="DXB", flight_id="2", price="900.00")])
    experiences = FakeExperienceSource({"DXB": [make_experience("A", 120, city="DXB")]})

    result = await _engine(
        [FakeCandidateSource("offers", [cheap, dear])], transit, experience_source=experiences
    ).discover(make_query())

    by_flight = {o.window.flight_id: o for o in result.opportunities}
    assert by_flight["1"].flight_price == Money("300.00")
    assert by_flight["2"].flight_price == Money("900.00")
    assert by_flight["2"].bundle.flight_price == Money("900.00")
    assert by_flight["2"].to_dict()["flight_price"] == {"amount": 900.0, "currency": "USD"}
    assert result.insights.market.price_range == (Decimal("300.00"), Decimal("900.00"))
