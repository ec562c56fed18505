"""Candidate source adapters — normalize provider feeds into candidates and experiences.

Adapters reshape data only. Upstream errors propagate out of each source and
are turned into ProviderFailure records by `collect_candidates`, so one
failing feed never fails a discovery request.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from datetime import date, datetime, timedelta, timezone
from zoneinfo import ZoneInfo

from app.data.airport_transit import get_coordinates, get_hub, get_timezone_name
from app.services.amadeus_client import AmadeusClient
from app.services.layover.config import BudgetTiers
from app.services.layover.models import (
    Candidate,
    DiscoveryQuery,
    ExperienceCandidate,
    ExperienceSelection,
    Money,
    ProviderFailure,
    TimingWindow,
    WeatherReport,
)
from app.services.viator_client import ViatorClient
from app.services.weather_client import WeatherClient

logger = logging.getLogger(__name__)

# Keyword → category, used to classify free-text experience titles
CATEGORY_KEYWORDS: dict[str, tuple] = {
    "culture": ("museum", "gallery", "temple", "mosque", "palace", "history", "heritage"),
    "food": ("food", "tasting", "culinary", "cooking", "street food", "wine"),
    "outdoor": ("walking", "bike", "boat", "cruise", "park", "hike", "desert", "garden", "kayak"),
    "shopping": ("market", "shopping", "souk", "bazaar"),
    "wellness": ("spa", "massage", "hammam", "onsen"),
    "sightseeing": ("tour", "city", "skyline", "observation", "landmark"),
}
INDOOR_CATEGORIES = {"culture", "food", "shopping", "wellness"}

# Checked in order; first match wins
DEMAND_KEYWORDS: tuple = (
    ("high", ("hiking", "hike", "adventure", "climbing", "kayak")),
    ("moderate", ("walking", "cycling", "bike", "tour")),
)

BAD_WEATHER_CONDITIONS = {"Rain", "Thunderstorm", "Snow", "Drizzle", "Squall", "Tornado"}

DEFAULT_WEATHER = WeatherReport(
    condition="unknown",
    temperature_c=20.0,
    precipitation_mm=0.0,
    is_good_for_outdoor=True,
    source="default",
)


def parse_local_time(value: str, airport: str) -> datetime:
    """Parse a provider timestamp; naive wall-clock times get the hub's zone."""
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=ZoneInfo(get_timezone_name(airport)))
    return parsed


def classify_experience(title: str) -> tuple[list[str], str]:
    """(categories, activity_type) inferred from an experience title."""
    text = title.lower()
    categories = [name for name, words in CATEGORY_KEYWORDS.items() if any(w in text for w in words)]
    if "outdoor" in categories:
        activity = "outdoor"
    elif INDOOR_CATEGORIES.intersection(categories):
        activity = "indoor"
    else:
        activity = "mixed"
    return categories, activity


def infer_physical_demand(title: str) -> str:
    text = title.lower()
    for level, words in DEMAND_KEYWORDS:
        if any(w in text for w in words):
            return level
    return "low"


# ---------- Source interfaces ----------


class CandidateSource(ABC):
    """A feed of destination candidates.

    kind "price" sources introduce candidates; kind "trend" sources can only
    flag candidates another source already reported.
    """

    name: str = "source"
    kind: str = "price"

    @abstractmethod
    async def fetch_candidates(self, query: DiscoveryQuery) -> list[Candidate]:
        ...


class ExperienceSource(ABC):
    name: str = "experiences"

    @abstractmethod
    async def search_experiences(
        self, city_code: str, window: TimingWindow, transit_minutes: int, currency: str
    ) -> list[ExperienceCandidate]:
        ...

    @abstractmethod
    async def check_availability(
        self, selection: ExperienceSelection, city_code: str, currency: str
    ) -> ExperienceCandidate | None:
        """Refreshed experience for a selected slot, or None when it can no longer be booked."""
        ...


class WeatherSource(ABC):
    name: str = "weather"

    @abstractmethod
    async def fetch_weather(self, airport: str) -> WeatherReport:
        ...


# ---------- Keyed candidate collection ----------


class CandidateSet:
    """
    Destination code → Candidate.

    Merge rules: first-seen price wins; trending is OR-ed; windows and source
    names are unioned; city/country come from the first source that has them.
    """

    def __init__(self, base_score: float = 50.0):
        self._by_code: dict[str, Candidate] = {}
        self._base_score = base_score

    def __len__(self) -> int:
        return len(self._by_code)

    def __contains__(self, code: str) -> bool:
        return code.upper() in self._by_code

    def get(self, code: str) -> Candidate | None:
        return self._by_code.get(code.upper())

    def add(self, incoming: Candidate) -> Candidate:
        code = incoming.code.upper()
        existing = self._by_code.get(code)
        if existing is None:
            hub = get_hub(code) or {}
            merged = Candidate(
                code=code,
                price=incoming.price,
                score=self._base_score,
                trending=incoming.trending,
                city=incoming.city or hub.get("city", ""),
                country=incoming.country or hub.get("country", ""),
                windows=list(incoming.windows),
                sources=list(incoming.sources),
            )
            self._by_code[code] = merged
            return merged

        existing.trending = existing.trending or incoming.trending
        existing.city = existing.city or incoming.city
        existing.country = existing.country or incoming.country
        for window in incoming.windows:
            if window not in existing.windows:
                existing.windows.append(window)
        for source in incoming.sources:
            if source not in existing.sources:
                existing.sources.append(source)
        return existing

    def mark_trending(self, code: str, source: str = "trending") -> bool:
        candidate = self.get(code)
        if candidate is None:
            return False
        candidate.trending = True
        if source not in candidate.sources:
            candidate.sources.append(source)
        return True

    def values(self) -> list[Candidate]:
        return list(self._by_code.values())


async def _safe_fetch(source: CandidateSource, query: DiscoveryQuery) -> tuple[list[Candidate], ProviderFailure | None]:
    try:
        return await source.fetch_candidates(query), None
    except Exception as e:
        logger.warning(f"Candidate source {source.name} failed for {query.origin}: {e}")
        return [], ProviderFailure(source=source.name, operation="fetch_candidates", message=str(e))


async def collect_candidates(
    sources: list[CandidateSource],
    query: DiscoveryQuery,
    base_score: float = 50.0,
) -> tuple[CandidateSet, list[ProviderFailure]]:
    """Query every source in parallel, wait for all, merge in declared order."""
    results = await asyncio.gather(*(_safe_fetch(s, query) for s in sources))

    merged = CandidateSet(base_score=base_score)
    failures: list[ProviderFailure] = []

    for source, (candidates, failure) in zip(sources, results):
        if failure:
            failures.append(failure)
        if source.kind == "trend":
            continue
        for candidate in candidates:
            if candidate.code.upper() == query.origin.upper():
                continue
            merged.add(candidate)

    for source, (candidates, _) in zip(sources, results):
        if source.kind != "trend":
            continue
        for candidate in candidates:
            merged.mark_trending(candidate.code, source.name)

    return merged, failures


# ---------- Amadeus sources ----------


def parse_flight_offers(
    payload: dict,
    max_layover_minutes: int = 1440,
    source_name: str = "amadeus_flight_offers",
) -> list[Candidate]:
    """One candidate per connection airport per offer, carrying its layover window."""
    candidates = []
    carriers = payload.get("dictionaries", {}).get("carriers", {})

    for offer in payload.get("data", []):
        price_info = offer.get("price", {})
        total = price_info.get("grandTotal") or price_info.get("total")
        if total is None:
            continue
        price = Money(total, price_info.get("currency", "USD"))
        if price.amount <= 0:
            continue
        flight_id = str(offer.get("id", ""))
        airline_codes = offer.get("validatingAirlineCodes") or []

        for itinerary in offer.get("itineraries", []):
            segments = itinerary.get("segments", [])
            for inbound, outbound in zip(segments, segments[1:]):
                airport = inbound.get("arrival", {}).get("iataCode")
                if not airport:
                    continue
                try:
                    window = TimingWindow(
                        arrival=parse_local_time(inbound["arrival"]["at"], airport),
                        departure=parse_local_time(outbound["departure"]["at"], airport),
                        airport=airport,
                        flight_id=flight_id,
                        airline=carriers.get(airline_codes[0], airline_codes[0]) if airline_codes else inbound.get("carrierCode"),
                        price=price,
                    )
                except (KeyError, ValueError) as e:
                    logger.debug(f"Skipping malformed connection in offer {flight_id}: {e}")
                    continue
                if window.duration_minutes > max_layover_minutes:
                    continue
                candidates.append(Candidate(
                    code=airport,
                    price=price,
                    windows=[window],
                    sources=[source_name],
                ))

    return candidates


class AmadeusFlightOfferSource(CandidateSource):
    """Connecting itineraries origin → destination; each connection is a candidate."""

    name = "amadeus_flight_offers"

    def __init__(self, client: AmadeusClient, max_layover_minutes: int = 1440, currency: str = "USD"):
        self._client = client
        self._max_layover = max_layover_minutes
        self._currency = currency

    async def fetch_candidates(self, query: DiscoveryQuery) -> list[Candidate]:
        if not query.destination:
            return []
        payload = await self._client.search_flight_offers(
            origin=query.origin,
            destination=query.destination,
            departure_date=date.fromisoformat(query.departure_date),
            adults=query.adults,
            children=query.children,
            infants=query.infants,
            currency=self._currency,
        )
        max_layover = query.max_layover_duration or self._max_layover
        return parse_flight_offers(payload, max_layover, self.name)


class AmadeusInspirationSource(CandidateSource):
    """Cheapest destinations from the origin within the traveler's budget tier."""

    name = "amadeus_inspiration"

    def __init__(self, client: AmadeusClient, budget_tiers: BudgetTiers | None = None, currency: str = "USD"):
        self._client = client
        self._tiers = budget_tiers or BudgetTiers()
        self._currency = currency

    async def fetch_candidates(self, query: DiscoveryQuery) -> list[Candidate]:
        items = await self._client.get_flight_destinations(
            origin=query.origin,
            max_price=self._tiers.max_price_for(query.budget),
        )
        candidates = []
        for item in items:
            code = item.get("destination")
            total = item.get("price", {}).get("total")
            if not code or total is None:
                continue
            candidates.append(Candidate(
                code=code,
                price=Money(total, self._currency),
                sources=[self.name],
            ))
        return candidates


class AmadeusTrendingSource(CandidateSource):
    """Most-traveled destinations from the origin over the previous month."""

    name = "amadeus_trending"
    kind = "trend"

    def __init__(self, client: AmadeusClient, today=None):
        self._client = client
        self._today = today or (lambda: datetime.now(timezone.utc).date())

    async def fetch_candidates(self, query: DiscoveryQuery) -> list[Candidate]:
        last_month = self._today().replace(day=1) - timedelta(days=1)
        items = await self._client.get_traveled_destinations(query.origin, last_month.strftime("%Y-%m"))
        return [
            Candidate(code=item["destination"], price=Money(0), trending=True, sources=[self.name])
            for item in items
            if item.get("destination")
        ]


# ---------- Viator experiences ----------


def parse_viator_product(
    product: dict,
    city_code: str,
    start: datetime,
    currency: str,
) -> ExperienceCandidate | None:
    """Normalize one Viator product into an experience scheduled at `start`."""
    code = product.get("productCode")
    duration = product.get("duration", {}).get("fixedDurationInMinutes")
    price = product.get("pricing", {}).get("summary", {}).get("fromPrice")
    if not code or not duration or price is None:
        return None

    title = product.get("title", "")
    categories, activity = classify_experience(title)
    rating = product.get("reviews", {}).get("combinedAverageRating")

    return ExperienceCandidate(
        id=code,
        title=title,
        duration_minutes=int(duration),
        price=Money(price, product.get("pricing", {}).get("currency", currency)),
        rating=float(rating) if rating is not None else None,
        start=start,
        end=start + timedelta(minutes=int(duration)),
        city_code=city_code,
        categories=categories,
        activity_type=activity,
        physical_demand=infer_physical_demand(title),
    )


class ViatorExperienceSource(ExperienceSource):
    """Viator products, scheduled to start as soon as the traveler reaches the city."""

    name = "viator"

    def __init__(self, client: ViatorClient):
        self._client = client

    async def search_experiences(
        self, city_code: str, window: TimingWindow, transit_minutes: int, currency: str
    ) -> list[ExperienceCandidate]:
        start = window.arrival + timedelta(minutes=transit_minutes)
        products = await self._client.search_products(
            destination_code=city_code,
            travel_date=start.date(),
            max_duration_minutes=max(window.duration_minutes - 2 * transit_minutes, 0) or None,
            currency=currency,
        )
        experiences = []
        for product in products:
            experience = parse_viator_product(product, city_code, start, currency)
            if experience:
                experiences.append(experience)
        return experiences

    async def check_availability(
        self, selection: ExperienceSelection, city_code: str, currency: str
    ) -> ExperienceCandidate | None:
        product, availability = await asyncio.gather(
            self._client.get_product(selection.experience_id),
            self._client.check_availability(
                product_code=selection.experience_id,
                travel_date=selection.start.date(),
                start_time=selection.start.strftime("%H:%M"),
                travelers=selection.travelers,
                currency=currency,
            ),
        )
        items = availability.get("bookableItems", [])
        bookable = next((i for i in items if i.get("available")), None)
        if bookable is None:
            return None

        experience = parse_viator_product(product, city_code, selection.start, currency)
        if experience is None:
            return None
        retail = bookable.get("totalPrice", {}).get("price", {}).get("recommendedRetailPrice")
        if retail is not None:
            experience.price = Money(retail, availability.get("currency", currency))
        vacancies = bookable.get("vacancies")
        if vacancies is not None:
            experience.inventory = int(vacancies)
        return experience


# ---------- Weather ----------


def parse_openweather(payload: dict) -> WeatherReport:
    condition = (payload.get("weather") or [{}])[0].get("main", "unknown")
    temperature = float(payload.get("main", {}).get("temp", 20.0))
    precipitation = float(payload.get("rain", {}).get("1h", 0.0)) + float(payload.get("snow", {}).get("1h", 0.0))
    good = condition not in BAD_WEATHER_CONDITIONS and 10.0 <= temperature <= 32.0 and precipitation < 1.0
    return WeatherReport(
        condition=condition,
        temperature_c=round(temperature, 1),
        precipitation_mm=round(precipitation, 1),
        is_good_for_outdoor=good,
    )


class OpenWeatherSource(WeatherSource):
    name = "openweather"

    def __init__(self, client: WeatherClient):
        self._client = client

    async def fetch_weather(self, airport: str) -> WeatherReport:
        coordinates = get_coordinates(airport)
        if coordinates is None:
            logger.info(f"No coordinates for {airport}, using default weather")
            return DEFAULT_WEATHER
        payload = await self._client.current(*coordinates)
        return parse_openweather(payload)


# ---------- Fallback ----------


class FallbackCandidateStrategy:
    """Sample hub candidates used only when every live source came back empty."""

    name = "fallback_sample_hubs"

    SAMPLE_PRICES: dict[str, str] = {
        "DXB": "689.00",
        "IST": "512.00",
        "DOH": "645.00",
        "SIN": "934.00",
        "AMS": "458.00",
        "KEF": "399.00",
    }

    def __init__(self, prices: dict[str, str] | None = None, currency: str = "USD"):
        self._prices = prices or self.SAMPLE_PRICES
        self._currency = currency

    def candidates(self, query: DiscoveryQuery) -> list[Candidate]:
        return [
            Candidate(code=code, price=Money(price, self._currency), sources=[self.name])
            for code, price in self._prices.items()
            if code != query.origin.upper()
        ]
