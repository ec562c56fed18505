"""Layover discovery engine — sources → feasibility → scoring → matching → insights."""

import asyncio
import logging
import time
from collections.abc import Callable
from datetime import date, datetime, time as dtime, timedelta, timezone

from app.data.currency import format_price
from app.services.cache_service import CandidateCache
from app.services.layover.adapters import (
    DEFAULT_WEATHER,
    CandidateSet,
    CandidateSource,
    ExperienceSource,
    FallbackCandidateStrategy,
    WeatherSource,
    collect_candidates,
)
from app.services.layover.config import EngineConfig, default_engine_config
from app.services.layover.feasibility import TransitDirectory, evaluate, feasibility_score
from app.services.layover.insights import aggregate
from app.services.layover.matching import build_bundle, match_experiences
from app.services.layover.models import (
    BundlePricing,
    Candidate,
    DiscoveryQuery,
    DiscoveryResult,
    ExperienceCandidate,
    FeasibilityResult,
    Opportunity,
    ProviderFailure,
    Scores,
    TimingWindow,
    WeatherReport,
)
from app.services.layover.scoring import score

logger = logging.getLogger(__name__)


class LayoverDiscoveryEngine:
    """Discovers, scores and ranks layover opportunities for one search.

    Every collaborator is passed in; the engine holds no per-request state,
    so one instance serves concurrent requests.
    """

    def __init__(
        self,
        sources: list[CandidateSource],
        experience_source: ExperienceSource | None = None,
        weather_source: WeatherSource | None = None,
        transit: TransitDirectory | None = None,
        config: EngineConfig = default_engine_config,
        clock: Callable[[], float] = time.monotonic,
        cache: CandidateCache | None = None,
        fallback: FallbackCandidateStrategy | None = None,
    ):
        self._sources = list(sources)
        self._experiences = experience_source
        self._weather = weather_source
        self._transit = transit or TransitDirectory()
        self.config = config
        self._clock = clock
        self._cache = cache
        self._fallback = fallback

    async def discover(self, query: DiscoveryQuery) -> DiscoveryResult:
        """
        Execute full discovery for one search.

        Sources are queried in parallel and all awaited before any scoring.
        Candidates are then evaluated concurrently under the configured limit.
        """
        start_time = self._clock()
        cfg = self.config

        # 1. Candidates (cache → live sources → fallback)
        failures: list[ProviderFailure] = []
        cached = False
        candidates: list[Candidate] | None = None

        if self._cache:
            candidates = await self._cache.get(query)
            cached = candidates is not None

        if candidates is None:
            merged, failures = await collect_candidates(self._sources, query, cfg.scoring.base_score)
            candidates = merged.values()
            if candidates and self._cache and not failures:
                await self._cache.set(query, candidates)

        used_fallback = False
        if not candidates and self._fallback:
            logger.warning(
                f"No live candidates for {query.origin} ({len(failures)} source failures), "
                f"using {self._fallback.name}"
            )
            fallback_set = CandidateSet(base_score=cfg.scoring.base_score)
            for candidate in self._fallback.candidates(query):
                fallback_set.add(candidate)
            candidates = fallback_set.values()
            used_fallback = True

        # 2. Per-candidate evaluation, bounded
        semaphore = asyncio.Semaphore(max(cfg.concurrency_limit, 1))
        evaluated = await asyncio.gather(
            *(self._evaluate_candidate(c, query, semaphore) for c in candidates)
        )

        opportunities: list[Opportunity] = []
        for opps, candidate_failures in evaluated:
            opportunities.extend(opps)
            failures.extend(candidate_failures)

        # 3. Insights over the full set
        insights = aggregate(opportunities, cfg.categories)
        elapsed_ms = int((self._clock() - start_time) * 1000)

        logger.info(
            f"Discovery {query.origin}->{query.destination or '*'} on {query.departure_date}: "
            f"{len(candidates)} candidates, {len(opportunities)} opportunities, "
            f"{len(failures)} provider failures, {elapsed_ms}ms"
        )

        return DiscoveryResult(
            opportunities=insights.ranked,
            insights=insights,
            metadata={
                "total_opportunities": len(opportunities),
                "total_flights": count_flights(candidates),
                "total_candidates": len(candidates),
                "search_time_ms": elapsed_ms,
                "cached": cached,
                "degraded": bool(failures) or used_fallback,
            },
            failures=failures,
            used_fallback=used_fallback,
        )

    # --- Private helpers ---

    async def _evaluate_candidate(
        self,
        candidate: Candidate,
        query: DiscoveryQuery,
        semaphore: asyncio.Semaphore,
    ) -> tuple[list[Opportunity], list[ProviderFailure]]:
        async with semaphore:
            failures: list[ProviderFailure] = []
            weather = await self._fetch_weather(candidate.code, failures)

            opportunities = []
            for window in self.windows_for(candidate, query):
                opportunities.append(
                    await self._evaluate_window(candidate, window, weather, query, failures)
                )
            return opportunities, failures

    async def _evaluate_window(
        self,
        candidate: Candidate,
        window: TimingWindow,
        weather: WeatherReport,
        query: DiscoveryQuery,
        failures: list[ProviderFailure],
    ) -> Opportunity:
        cfg = self.config
        flight_price = window.price or candidate.price
        transit = self._transit.lookup(candidate.code)
        feasibility = evaluate(window, transit, cfg.feasibility, query.min_layover_duration)

        experiences: list[ExperienceCandidate] = []
        if feasibility.can_leave_airport and self._experiences:
            try:
                found = await self._experiences.search_experiences(
                    candidate.code, window, transit.transit_minutes, flight_price.currency
                )
            except Exception as e:
                logger.warning(f"Experience source {self._experiences.name} failed for {candidate.code}: {e}")
                failures.append(ProviderFailure(self._experiences.name, "search_experiences", str(e)))
                found = []
            experiences = match_experiences(found, window, feasibility)

        bundle = build_bundle(flight_price, experiences, cfg.bundle.discount_rate)
        scores = score(
            candidate,
            feasibility_score(window, feasibility, cfg.feasibility_score),
            experiences,
            weather,
            query,
            cfg,
            flight_price,
        )
        candidate.score = scores.destination

        return Opportunity(
            id=opportunity_id(candidate, window),
            candidate=candidate,
            window=window,
            feasibility=feasibility,
            scores=scores,
            weather=weather,
            experiences=experiences,
            bundle=bundle,
            recommendations=_recommendations(candidate, scores, bundle),
            warnings=_warnings(window, feasibility, weather),
        )

    async def _fetch_weather(self, airport: str, failures: list[ProviderFailure]) -> WeatherReport:
        if not self._weather:
            return DEFAULT_WEATHER
        try:
            return await self._weather.fetch_weather(airport)
        except Exception as e:
            logger.warning(f"Weather source {self._weather.name} failed for {airport}: {e}")
            failures.append(ProviderFailure(self._weather.name, "fetch_weather", str(e)))
            return DEFAULT_WEATHER

    def windows_for(self, candidate: Candidate, query: DiscoveryQuery) -> list[TimingWindow]:
        """
        Layover windows to evaluate for one candidate.

        Scheduled connections are grouped by city and whole hours, keeping the
        longest in each group. Candidates with no scheduled connection get a
        planned stopover on the departure date.
        """
        if not candidate.windows:
            return [planned_window(candidate.code, query, self.config)]

        by_hour: dict[int, TimingWindow] = {}
        for window in candidate.windows:
            bucket = window.duration_minutes // 60
            kept = by_hour.get(bucket)
            if kept is None or window.duration_minutes > kept.duration_minutes:
                by_hour[bucket] = window
        return sorted(by_hour.values(), key=lambda w: (w.arrival, w.duration_minutes))


def planned_window(code: str, query: DiscoveryQuery, config: EngineConfig = default_engine_config) -> TimingWindow:
    policy = config.feasibility
    minutes = min(query.max_layover_duration or policy.planned_stopover_minutes, policy.max_layover_minutes)
    arrival = datetime.combine(
        date.fromisoformat(query.departure_date),
        dtime(hour=policy.planned_arrival_hour),
        tzinfo=timezone.utc,
    )
    return TimingWindow(arrival=arrival, departure=arrival + timedelta(minutes=minutes), airport=code)


def opportunity_id(candidate: Candidate, window: TimingWindow) -> str:
    if window.flight_id:
        return f"{window.flight_id}_{candidate.code}_{window.arrival.strftime('%Y%m%d%H%M')}"
    return f"{candidate.code}_planned"


def count_flights(candidates: list[Candidate]) -> int:
    return len({w.flight_id for c in candidates for w in c.windows if w.flight_id})


def _recommendations(candidate: Candidate, scores: Scores, bundle: BundlePricing | None) -> list[str]:
    city = candidate.city or candidate.code
    parts = []

    if scores.feasibility >= 80:
        parts.append(f"Excellent opportunity to explore {city}")
    elif scores.feasibility >= 60:
        parts.append(f"Possible to explore {city} with careful planning")
    else:
        parts.append(f"Better to stay at the airport in {city}")

    if scores.weather >= 70:
        parts.append("Great weather for outdoor activities")
    elif scores.weather <= 40:
        parts.append("Good conditions for indoor experiences")

    if scores.experience >= 70:
        parts.append("High-quality experiences available")

    if candidate.trending:
        parts.append(f"{city} is trending with travelers from your origin")

    if bundle and bundle.savings_amount.amount > 0:
        savings = format_price(bundle.savings_amount.amount, bundle.savings_amount.currency)
        parts.append(f"Book flight + experience together and save {savings}")

    return parts


def _warnings(window: TimingWindow, feasibility: FeasibilityResult, weather: WeatherReport) -> list[str]:
    warnings = []
    if window.duration_minutes < 180:
        warnings.append("Short layover - stay close to the airport")
    if not feasibility.can_leave_airport:
        warnings.append("Insufficient time to leave the airport safely")
        warnings.extend(feasibility.reasons)
    if weather.source == "default":
        warnings.append("Weather data unavailable")
    elif not weather.is_good_for_outdoor:
        warnings.append("Weather may limit outdoor activities")
    return warnings
