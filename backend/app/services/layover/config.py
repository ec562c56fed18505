"""Layover engine configuration — single source for all thresholds and weights."""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class FeasibilityPolicy:
    """When a traveler may leave the airport."""
    min_layover_minutes: int = 120          # below this = never leave the airport
    max_layover_minutes: int = 1440         # longer connections are not layovers
    mode_preference: tuple = ("train", "metro", "taxi", "bus", "shuttle")
    planned_stopover_minutes: int = 480     # window for candidates with no scheduled connection
    planned_arrival_hour: int = 10          # UTC hour a planned stopover starts


@dataclass(frozen=True)
class FeasibilityScoreConfig:
    """Feasibility sub-score contributions (0-100 scale)."""
    base: float = 50.0
    can_leave_bonus: float = 30.0
    high_city_ratio: float = 0.6            # city minutes / layover minutes
    high_city_ratio_bonus: float = 20.0
    mid_city_ratio: float = 0.4
    mid_city_ratio_bonus: float = 10.0
    fast_transit_minutes: int = 30
    fast_transit_bonus: float = 10.0
    rail_bonus: float = 5.0
    rail_modes: tuple = ("train", "metro")


@dataclass(frozen=True)
class BudgetTiers:
    """USD flight-price bands per declared budget tier."""
    economy_max: float = 500.0
    premium_max: float = 1500.0
    # Max price passed to the inspiration feed per tier
    inspiration_max_price: dict = field(default_factory=lambda: {
        "economy": 800,
        "premium": 2000,
        "luxury": 10000,
    })
    inspiration_default_max_price: int = 1500

    def matches(self, budget: str | None, price_usd: float) -> bool:
        if budget == "economy":
            return price_usd < self.economy_max
        if budget == "premium":
            return self.economy_max <= price_usd < self.premium_max
        if budget == "luxury":
            return price_usd >= self.premium_max
        return False

    def max_price_for(self, budget: str | None) -> int:
        return self.inspiration_max_price.get(budget or "", self.inspiration_default_max_price)


@dataclass(frozen=True)
class ScoringConfig:
    """Destination boosts. Applied additively, clamped once at the end."""
    base_score: float = 50.0
    trending_boost: float = 20.0
    budget_match_boost: float = 15.0
    preferred_boost: float = 25.0
    avoid_penalty: float = -50.0
    min_score: float = 0.0
    max_score: float = 100.0
    budget_tiers: BudgetTiers = field(default_factory=BudgetTiers)


@dataclass(frozen=True)
class BlendWeights:
    """overall = feasibility·0.4 + experience·0.35 + weather·0.25 (+ boosts)."""
    feasibility: float = 0.4
    experience: float = 0.35
    weather: float = 0.25


@dataclass(frozen=True)
class ExperienceScoreConfig:
    """Experience sub-score contributions (0-100 scale)."""
    no_experiences: float = 30.0
    base: float = 50.0
    rating_pivot: float = 3.0
    rating_weight: float = 10.0
    default_rating: float = 3.5
    category_bonus: float = 5.0
    category_cap: float = 20.0
    preference_weight: float = 20.0
    # physical demand: fit 1.0 at or below the traveler's level, then per level above
    demand_fit_one_above: float = 0.7
    demand_fit_beyond: float = 0.4
    demand_mismatch_weight: float = 20.0


@dataclass(frozen=True)
class WeatherScoreConfig:
    """Weather sub-score contributions (0-100 scale)."""
    base: float = 50.0
    good_outdoor_bonus: float = 30.0
    outdoor_share_weight: float = 20.0
    indoor_share_weight: float = 30.0


@dataclass(frozen=True)
class BundleConfig:
    discount_rate: float = 0.15


@dataclass(frozen=True)
class CategoryThresholds:
    """Insight buckets."""
    weather_friendly_min: float = 70.0
    quick_explore_min: int = 120
    quick_explore_max: int = 300            # inclusive
    extended_stay_over: int = 300
    popular_cities_limit: int = 5


@dataclass(frozen=True)
class CommissionConfig:
    """Commission rates and strategy adjustments."""
    base_rate: float = 0.20                 # used when strategy data is missing
    min_rate: float = 0.10
    max_rate: float = 0.30
    max_adjustment: float = 0.10            # per-strategy bound, either direction
    affiliate_share: float = 0.0            # share of commission passed to a referring affiliate
    tier_rates: dict = field(default_factory=lambda: {
        "bronze": 0.15,
        "silver": 0.17,
        "gold": 0.19,
        "platinum": 0.21,
        "enterprise": 0.23,
    })
    loyalty_bonus_tiers: tuple = ("gold", "platinum", "enterprise")
    surge_adjustment: float = 0.02
    surge_booking_velocity: float = 2.0     # bookings per hour
    surge_inventory_below: int = 20
    weather_discount_adjustment: float = -0.01
    last_minute_adjustment: float = 0.01
    last_minute_under_minutes: int = 180
    extended_layover_adjustment: float = 0.0
    extended_layover_over_minutes: int = 480
    loyalty_adjustment: float = 0.01
    # campaign code → commission adjustment
    promotions: dict = field(default_factory=lambda: {
        "LAYOVER10": -0.02,
        "PARTNERBOOST": 0.03,
    })


@dataclass(frozen=True)
class EngineConfig:
    """Top-level config aggregating all sub-configs."""
    feasibility: FeasibilityPolicy = field(default_factory=FeasibilityPolicy)
    feasibility_score: FeasibilityScoreConfig = field(default_factory=FeasibilityScoreConfig)
    scoring: ScoringConfig = field(default_factory=ScoringConfig)
    weights: BlendWeights = field(default_factory=BlendWeights)
    experience_score: ExperienceScoreConfig = field(default_factory=ExperienceScoreConfig)
    weather_score: WeatherScoreConfig = field(default_factory=WeatherScoreConfig)
    bundle: BundleConfig = field(default_factory=BundleConfig)
    categories: CategoryThresholds = field(default_factory=CategoryThresholds)
    commission: CommissionConfig = field(default_factory=CommissionConfig)
    concurrency_limit: int = 8
    max_connections: int = 2

    @classmethod
    def from_settings(cls, settings) -> "EngineConfig":
        return cls(
            bundle=BundleConfig(discount_rate=settings.bundle_discount_rate),
            commission=CommissionConfig(
                base_rate=settings.commission_base_rate,
                affiliate_share=settings.affiliate_share,
            ),
            concurrency_limit=settings.layover_concurrency_limit,
        )


default_engine_config = EngineConfig()
