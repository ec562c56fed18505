"""Experience matcher & bundler — fits experiences into a layover and prices the bundle."""

import logging
from decimal import Decimal

from app.data.currency import convert, quantize
from app.services.layover.errors import ensure
from app.services.layover.models import (
    BundlePricing,
    ExperienceCandidate,
    FeasibilityResult,
    Money,
    TimingWindow,
)

logger = logging.getLogger(__name__)


def match_experiences(
    experiences: list[ExperienceCandidate],
    window: TimingWindow,
    feasibility: FeasibilityResult,
) -> list[ExperienceCandidate]:
    """
    Keep experiences that start and end inside the layover and fit the city time.

    No feasibility, no experiences. Result is ordered cheapest first
    (USD-normalized), then best rated, then id.
    """
    if not feasibility.can_leave_airport:
        return []

    matched = [
        e for e in experiences
        if e.available
        and window.contains(e.start, e.end)
        and e.duration_minutes <= feasibility.available_city_minutes
    ]
    matched.sort(key=lambda e: (e.price.usd, -(e.rating or 0.0), e.id))
    return matched


def build_bundle(
    flight_price: Money,
    experiences: list[ExperienceCandidate],
    discount_rate: float = 0.15,
) -> BundlePricing | None:
    """
    Price flight + cheapest matched experience with a fixed bundle discount.

    The experience price is converted into the flight's currency. Returns
    None when there is nothing to bundle.
    """
    if not experiences:
        return None

    ensure(0 <= discount_rate < 1, f"Bundle discount rate out of range: {discount_rate}")

    cheapest = min(experiences, key=lambda e: (e.price.usd, e.id))
    currency = flight_price.currency
    experience_amount = convert(cheapest.price.amount, cheapest.price.currency, currency)

    without = quantize(flight_price.amount + experience_amount)
    savings = quantize(without * Decimal(str(discount_rate)))
    total = without - savings

    ensure(savings >= 0, f"Negative bundle savings: {savings}")
    ensure(total >= 0, f"Negative bundle total: {total}")
    ensure(total <= without, "Bundling increased the price")

    return BundlePricing(
        total_price=Money(total, currency),
        savings_amount=Money(savings, currency),
        savings_percentage=round(discount_rate * 100, 2),
        price_without_bundle=Money(without, currency),
        flight_price=flight_price,
        experience_price=Money(experience_amount, currency),
        experience_id=cheapest.id,
    )
