"""Shared service instances, built once from settings and handed to routers via Depends."""

from functools import lru_cache

from app.config import settings
from app.services.amadeus_client import AmadeusClient
from app.services.cache_service import CacheService, CandidateCache
from app.services.layover.adapters import (
    AmadeusFlightOfferSource,
    AmadeusInspirationSource,
    AmadeusTrendingSource,
    FallbackCandidateStrategy,
    OpenWeatherSource,
    ViatorExperienceSource,
)
from app.services.layover.booking import BookingOrchestrator, BookingStore, InMemoryBookingStore
from app.services.layover.commission import CommissionCalculator
from app.services.layover.config import EngineConfig
from app.services.layover.engine import LayoverDiscoveryEngine
from app.services.layover.feasibility import TransitDirectory
from app.services.viator_client import ViatorClient
from app.services.weather_client import WeatherClient


@lru_cache
def get_engine_config() -> EngineConfig:
    return EngineConfig.from_settings(settings)


@lru_cache
def get_amadeus_client() -> AmadeusClient:
    return AmadeusClient(
        client_id=settings.amadeus_client_id,
        client_secret=settings.amadeus_client_secret,
        base_url=settings.amadeus_base_url,
        timeout=settings.layover_request_timeout_seconds,
    )


@lru_cache
def get_viator_client() -> ViatorClient:
    return ViatorClient(
        api_key=settings.viator_api_key,
        base_url=settings.viator_base_url,
        timeout=settings.layover_request_timeout_seconds,
        max_concurrency=settings.layover_concurrency_limit,
    )


@lru_cache
def get_weather_client() -> WeatherClient:
    return WeatherClient(
        api_key=settings.openweather_api_key,
        base_url=settings.openweather_base_url,
        timeout=settings.layover_request_timeout_seconds,
    )


@lru_cache
def get_cache_service() -> CacheService:
    return CacheService(settings.redis_url)


@lru_cache
def get_transit_directory() -> TransitDirectory:
    return TransitDirectory()


@lru_cache
def get_discovery_engine() -> LayoverDiscoveryEngine:
    config = get_engine_config()
    amadeus = get_amadeus_client()

    sources = [
        AmadeusFlightOfferSource(amadeus, config.feasibility.max_layover_minutes),
        AmadeusInspirationSource(amadeus, config.scoring.budget_tiers),
        AmadeusTrendingSource(amadeus),
    ]

    cache = None
    if settings.candidate_cache_enabled:
        cache = CandidateCache(get_cache_service(), settings.candidate_cache_ttl_seconds)

    return LayoverDiscoveryEngine(
        sources=sources,
        experience_source=ViatorExperienceSource(get_viator_client()),
        weather_source=OpenWeatherSource(get_weather_client()),
        transit=get_transit_directory(),
        config=config,
        cache=cache,
        fallback=FallbackCandidateStrategy() if settings.fallback_candidates_enabled else None,
    )


@lru_cache
def get_booking_store() -> BookingStore:
    return InMemoryBookingStore()


@lru_cache
def get_booking_orchestrator() -> BookingOrchestrator:
    config = get_engine_config()
    return BookingOrchestrator(
        experience_source=ViatorExperienceSource(get_viator_client()),
        store=get_booking_store(),
        transit=get_transit_directory(),
        commission=CommissionCalculator(config.commission),
        config=config,
        weather_source=OpenWeatherSource(get_weather_client()),
    )


async def close_clients():
    """Release pooled HTTP and redis connections."""
    await get_amadeus_client().close()
    await get_viator_client().close()
    await get_weather_client().close()
    await get_cache_service().close()
