"""Insights aggregator — ranking, best pick, categories, and market stats."""

from collections import Counter
from decimal import Decimal

from app.services.layover.config import CategoryThresholds, default_engine_config
from app.services.layover.models import Insights, MarketStats, Opportunity
from app.services.layover.scoring import rank

WEATHER_FRIENDLY = "weather_friendly"
QUICK_EXPLORE = "quick_explore"
EXTENDED_STAY = "extended_stay"


def categorize(
    opportunity: Opportunity,
    thresholds: CategoryThresholds = default_engine_config.categories,
) -> list[str]:
    """Categories one opportunity belongs to (zero or more)."""
    names = []
    if opportunity.feasible and opportunity.scores.weather >= thresholds.weather_friendly_min:
        names.append(WEATHER_FRIENDLY)
    duration = opportunity.duration_minutes
    if thresholds.quick_explore_min <= duration <= thresholds.quick_explore_max:
        names.append(QUICK_EXPLORE)
    if duration > thresholds.extended_stay_over:
        names.append(EXTENDED_STAY)
    return names


def market_stats(
    opportunities: list[Opportunity],
    thresholds: CategoryThresholds = default_engine_config.categories,
) -> MarketStats:
    """Stats over every opportunity, feasible or not."""
    if not opportunities:
        return MarketStats(0, (Decimal("0"), Decimal("0")), [], [])

    durations = [o.duration_minutes for o in opportunities]
    prices = [o.flight_price.usd for o in opportunities if o.flight_price.amount > 0]
    counts = Counter(o.city for o in opportunities)

    popular = sorted(counts, key=lambda city: (-counts[city], city))

    return MarketStats(
        average_duration_minutes=round(sum(durations) / len(durations)),
        price_range=(min(prices), max(prices)) if prices else (Decimal("0"), Decimal("0")),
        cities=sorted(counts),
        most_popular_cities=popular[: thresholds.popular_cities_limit],
    )


def aggregate(
    opportunities: list[Opportunity],
    thresholds: CategoryThresholds = default_engine_config.categories,
) -> Insights:
    ranked = rank(opportunities)

    categories: dict[str, list[Opportunity]] = {
        WEATHER_FRIENDLY: [],
        QUICK_EXPLORE: [],
        EXTENDED_STAY: [],
    }
    for opp in ranked:
        for name in categorize(opp, thresholds):
            categories[name].append(opp)

    return Insights(
        ranked=ranked,
        best=ranked[0] if ranked else None,
        categories=categories,
        market=market_stats(opportunities, thresholds),
    )
