"""Domain types for layover discovery, bundling, and booking."""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal

from app.data.currency import convert_to_usd, quantize


@dataclass(frozen=True)
class Money:
    """Currency-qualified amount, always held at cent precision."""
    amount: Decimal
    currency: str = "USD"

    def __post_init__(self):
        object.__setattr__(self, "amount", quantize(self.amount))
        object.__setattr__(self, "currency", self.currency.upper())

    @property
    def usd(self) -> Decimal:
        return convert_to_usd(self.amount, self.currency)

    def to_dict(self) -> dict:
        return {"amount": float(self.amount), "currency": self.currency}


@dataclass(frozen=True)
class TimingWindow:
    """Time on the ground between an inbound arrival and the onward departure."""
    arrival: datetime
    departure: datetime
    airport: str = ""
    flight_id: str | None = None
    airline: str | None = None
    price: Money | None = None     # fare of the offer this connection belongs to

    def __post_init__(self):
        if self.arrival.tzinfo is None or self.departure.tzinfo is None:
            raise ValueError("TimingWindow timestamps must be timezone-aware")
        if self.departure < self.arrival:
            raise ValueError(
                f"Layover at {self.airport or '?'} departs before it arrives "
                f"({self.departure.isoformat()} < {self.arrival.isoformat()})"
            )

    @property
    def duration_minutes(self) -> int:
        return int((self.departure - self.arrival).total_seconds() // 60)

    def contains(self, start: datetime, end: datetime) -> bool:
        return self.arrival <= start and end <= self.departure

    def to_dict(self) -> dict:
        return {
            "airport": self.airport,
            "arrival": self.arrival.isoformat(),
            "departure": self.departure.isoformat(),
            "duration_minutes": self.duration_minutes,
            "flight_id": self.flight_id,
            "airline": self.airline,
            "price": self.price.to_dict() if self.price else None,
        }


@dataclass(frozen=True)
class TransitProfile:
    """Airport → city transit for one hub."""
    airport: str
    transit_minutes: int       # one way
    modes: tuple = ()


@dataclass
class FeasibilityResult:
    can_leave_airport: bool
    available_city_minutes: int
    transit_mode: str | None
    transit_minutes: int
    reasons: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "can_leave_airport": self.can_leave_airport,
            "available_city_minutes": self.available_city_minutes,
            "transit_mode": self.transit_mode,
            "transit_minutes": self.transit_minutes,
            "reasons": list(self.reasons),
        }


@dataclass
class WeatherReport:
    condition: str
    temperature_c: float
    precipitation_mm: float
    is_good_for_outdoor: bool
    source: str = "provider"   # "provider" | "default"

    @property
    def label(self) -> str:
        """good | fair | poor, as used by pricing strategies."""
        if self.is_good_for_outdoor:
            return "good"
        return "poor" if self.precipitation_mm > 5 else "fair"

    def to_dict(self) -> dict:
        return {
            "condition": self.condition,
            "temperature_c": self.temperature_c,
            "precipitation_mm": self.precipitation_mm,
            "is_good_for_outdoor": self.is_good_for_outdoor,
            "source": self.source,
        }


@dataclass
class Candidate:
    """One destination reported by one or more feeds."""
    code: str
    price: Money
    score: float = 50.0
    trending: bool = False
    city: str = ""
    country: str = ""
    windows: list[TimingWindow] = field(default_factory=list)
    sources: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "code": self.code,
            "city": self.city,
            "country": self.country,
            "price": self.price.to_dict(),
            "score": self.score,
            "trending": self.trending,
            "sources": list(self.sources),
        }


@dataclass
class ExperienceCandidate:
    id: str
    title: str
    duration_minutes: int
    price: Money
    rating: float | None
    start: datetime
    end: datetime
    city_code: str = ""
    categories: list[str] = field(default_factory=list)
    activity_type: str = "mixed"   # "indoor" | "outdoor" | "mixed"
    available: bool = True
    physical_demand: str = "low"   # "low" | "moderate" | "high"
    inventory: int | None = None   # open slots, when the provider reports them

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "duration_minutes": self.duration_minutes,
            "price": self.price.to_dict(),
            "rating": self.rating,
            "start": self.start.isoformat(),
            "end": self.end.isoformat(),
            "city_code": self.city_code,
            "categories": list(self.categories),
            "activity_type": self.activity_type,
            "physical_demand": self.physical_demand,
        }


@dataclass
class Scores:
    """Sub-scores and overall, each 0-100."""
    overall: float
    feasibility: float
    experience: float
    weather: float
    destination: float = 50.0   # base + boosts, clamped
    boost: float = 0.0          # raw boost sum folded into overall

    def to_dict(self) -> dict:
        return {
            "overall": self.overall,
            "feasibility": self.feasibility,
            "experience": self.experience,
            "weather": self.weather,
            "destination": self.destination,
            "boost": self.boost,
        }


@dataclass
class BundlePricing:
    total_price: Money
    savings_amount: Money
    savings_percentage: float
    price_without_bundle: Money
    flight_price: Money
    experience_price: Money
    experience_id: str

    def to_dict(self) -> dict:
        return {
            "total_price": self.total_price.to_dict(),
            "savings_amount": self.savings_amount.to_dict(),
            "savings_percentage": self.savings_percentage,
            "price_without_bundle": self.price_without_bundle.to_dict(),
            "flight_price": self.flight_price.to_dict(),
            "experience_price": self.experience_price.to_dict(),
            "experience_id": self.experience_id,
        }


@dataclass
class Opportunity:
    id: str
    candidate: Candidate
    window: TimingWindow
    feasibility: FeasibilityResult
    scores: Scores
    weather: WeatherReport
    experiences: list[ExperienceCandidate] = field(default_factory=list)
    bundle: BundlePricing | None = None
    recommendations: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def code(self) -> str:
        return self.candidate.code

    @property
    def city(self) -> str:
        return self.candidate.city or self.candidate.code

    @property
    def feasible(self) -> bool:
        return self.feasibility.can_leave_airport

    @property
    def duration_minutes(self) -> int:
        return self.window.duration_minutes

    @property
    def flight_price(self) -> Money:
        """Fare of this window's own offer; the destination price for planned stopovers."""
        return self.window.price or self.candidate.price

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "airport": self.candidate.code,
            "city": self.city,
            "country": self.candidate.country,
            "trending": self.candidate.trending,
            "flight_price": self.flight_price.to_dict(),
            "window": self.window.to_dict(),
            "feasible": self.feasible,
            "feasibility": self.feasibility.to_dict(),
            "scores": self.scores.to_dict(),
            "weather": self.weather.to_dict(),
            "experiences": [e.to_dict() for e in self.experiences],
            "bundle": self.bundle.to_dict() if self.bundle else None,
            "recommendations": list(self.recommendations),
            "warnings": list(self.warnings),
        }


@dataclass
class CommissionResult:
    experience_id: str
    experience_price: Money
    commission_rate: float
    commission_amount: Money
    platform_revenue: Money
    partner_payout: Money
    applied_strategies: list[str]
    booking_probability: float

    def to_dict(self) -> dict:
        return {
            "experience_id": self.experience_id,
            "experience_price": self.experience_price.to_dict(),
            "commission_rate": self.commission_rate,
            "commission_amount": self.commission_amount.to_dict(),
            "platform_revenue": self.platform_revenue.to_dict(),
            "partner_payout": self.partner_payout.to_dict(),
            "applied_strategies": list(self.applied_strategies),
            "booking_probability": self.booking_probability,
        }


@dataclass
class BookingSummary:
    currency: str
    total_price: Money
    total_commission: Money
    platform_revenue: Money
    partner_payout: Money
    average_commission_rate: float
    experience_count: int

    def to_dict(self) -> dict:
        return {
            "currency": self.currency,
            "total_price": self.total_price.to_dict(),
            "total_commission": self.total_commission.to_dict(),
            "platform_revenue": self.platform_revenue.to_dict(),
            "partner_payout": self.partner_payout.to_dict(),
            "average_commission_rate": self.average_commission_rate,
            "experience_count": self.experience_count,
        }


@dataclass
class ProviderFailure:
    """One upstream feed failed; the feed was treated as empty."""
    source: str
    operation: str
    message: str
    retryable: bool = True

    def to_dict(self) -> dict:
        return {
            "source": self.source,
            "operation": self.operation,
            "message": self.message,
            "retryable": self.retryable,
        }


@dataclass
class MarketStats:
    average_duration_minutes: int
    price_range: tuple[Decimal, Decimal]   # USD
    cities: list[str]
    most_popular_cities: list[str]

    def to_dict(self) -> dict:
        low, high = self.price_range
        return {
            "average_duration_minutes": self.average_duration_minutes,
            "price_range": {"min": float(low), "max": float(high), "currency": "USD"},
            "cities": list(self.cities),
            "most_popular_cities": list(self.most_popular_cities),
        }


@dataclass
class Insights:
    ranked: list[Opportunity]
    best: Opportunity | None
    categories: dict[str, list[Opportunity]]
    market: MarketStats

    def category_ids(self) -> dict[str, list[str]]:
        return {name: [o.id for o in opps] for name, opps in self.categories.items()}

    def to_dict(self) -> dict:
        return {
            "best": self.best.to_dict() if self.best else None,
            "categories": {
                name: [o.to_dict() for o in opps] for name, opps in self.categories.items()
            },
        }


@dataclass
class DiscoveryQuery:
    origin: str
    departure_date: str                 # YYYY-MM-DD
    destination: str | None = None
    return_date: str | None = None
    adults: int = 1
    children: int = 0
    infants: int = 0
    min_layover_duration: int | None = None
    max_layover_duration: int | None = None
    preferred_activities: list[str] = field(default_factory=list)
    physical_demand: str | None = None
    budget: str | None = None
    preferred_destinations: list[str] = field(default_factory=list)
    avoid_destinations: list[str] = field(default_factory=list)

    def cache_fingerprint(self) -> dict:
        return {
            "origin": self.origin,
            "destination": self.destination,
            "departure_date": self.departure_date,
            "return_date": self.return_date,
            "passengers": [self.adults, self.children, self.infants],
            "min": self.min_layover_duration,
            "max": self.max_layover_duration,
            "budget": self.budget,
        }


@dataclass
class DiscoveryResult:
    """Opportunities plus everything that went wrong fetching them."""
    opportunities: list[Opportunity]
    insights: Insights
    metadata: dict
    failures: list[ProviderFailure] = field(default_factory=list)
    used_fallback: bool = False

    @property
    def degraded(self) -> bool:
        return bool(self.failures) or self.used_fallback

    def to_dict(self) -> dict:
        return {
            "opportunities": [o.to_dict() for o in self.opportunities],
            "insights": self.insights.to_dict(),
            "market": self.insights.market.to_dict(),
            "metadata": dict(self.metadata),
            "failures": [f.to_dict() for f in self.failures],
            "used_fallback": self.used_fallback,
        }


@dataclass
class ExperienceSelection:
    experience_id: str
    start: datetime
    travelers: int = 1


@dataclass
class BookingQuery:
    flight_id: str
    flight_price: Money
    window: TimingWindow
    selections: list[ExperienceSelection]
    adults: int = 1
    children: int = 0
    infants: int = 0
    payment_method: str = ""
    loyalty_tier: str | None = None
    promo_codes: list[str] = field(default_factory=list)
    min_layover_duration: int | None = None
    user_id: str | None = None


@dataclass
class ExperienceConfirmation:
    experience: ExperienceCandidate
    travelers: int
    confirmation_number: str
    voucher_code: str
    commission: CommissionResult

    def to_dict(self) -> dict:
        return {
            "experience_id": self.experience.id,
            "title": self.experience.title,
            "start": self.experience.start.isoformat(),
            "end": self.experience.end.isoformat(),
            "travelers": self.travelers,
            "confirmation_number": self.confirmation_number,
            "voucher": {"code": self.voucher_code},
            "commission": self.commission.to_dict(),
        }


@dataclass
class BookingConfirmation:
    booking_id: str
    confirmation_code: str
    flight_id: str
    window: TimingWindow
    experiences: list[ExperienceConfirmation]
    summary: BookingSummary
    created_at: datetime
    payment_method: str = ""
    user_id: str | None = None

    def to_dict(self) -> dict:
        return {
            "booking_id": self.booking_id,
            "confirmation_code": self.confirmation_code,
            "flight_id": self.flight_id,
            "layover": self.window.to_dict(),
            "experiences": [e.to_dict() for e in self.experiences],
            "commission_summary": self.summary.to_dict(),
            "created_at": self.created_at.isoformat(),
            "user_id": self.user_id,
        }
