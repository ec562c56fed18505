"""Commission & revenue calculator — splits an experience price between platform and partner.

Rate = tier base rate + bounded strategy adjustments, clamped to [min, max].
Strategies only move the commission rate; the price the traveler committed
to is never changed. booking_probability is reported for analytics only.
"""

import logging
from dataclasses import dataclass, field
from decimal import Decimal

from app.data.currency import quantize
from app.services.layover.config import CommissionConfig, default_engine_config
from app.services.layover.errors import ensure
from app.services.layover.models import BookingSummary, CommissionResult, Money

logger = logging.getLogger(__name__)


@dataclass
class StrategyContext:
    """Signals the pricing strategies look at. Every field is optional."""
    loyalty_tier: str | None = None
    layover_minutes: int | None = None
    experience_minutes: int | None = None
    experience_type: str | None = None       # "indoor" | "outdoor" | "mixed"
    rating: float | None = None
    weather_good: bool | None = None
    weather_label: str | None = None         # "good" | "fair" | "poor"
    booking_velocity: float | None = None    # bookings per hour, last 24h
    inventory_level: int | None = None       # remaining slots
    promo_codes: list[str] = field(default_factory=list)


class CommissionCalculator:
    """Computes per-experience commission and booking-level summaries."""

    def __init__(self, config: CommissionConfig = default_engine_config.commission):
        self.config = config

    def calculate(
        self,
        experience_price: Money,
        context: StrategyContext | None = None,
        experience_id: str = "",
    ) -> CommissionResult:
        cfg = self.config

        if context is None:
            logger.info(f"No strategy data for {experience_id or 'experience'}, using base rate {cfg.base_rate}")
            rate = self._bound_rate(cfg.base_rate)
            applied = ["base_rate"]
            probability = 0.5
        else:
            rate, applied = self._strategy_rate(context)
            probability = self.booking_probability(context)

        price = experience_price.amount
        commission = quantize(price * Decimal(str(rate)))
        payout = price - commission
        platform = quantize(commission * (Decimal("1") - Decimal(str(cfg.affiliate_share))))

        ensure(commission <= price, f"Commission {commission} exceeds price {price}")
        ensure(payout >= 0, f"Negative partner payout {payout}")
        ensure(platform <= commission, "Platform revenue exceeds commission")
        ensure(payout + commission == price, "Commission split does not reconcile")

        currency = experience_price.currency
        return CommissionResult(
            experience_id=experience_id,
            experience_price=experience_price,
            commission_rate=rate,
            commission_amount=Money(commission, currency),
            platform_revenue=Money(platform, currency),
            partner_payout=Money(payout, currency),
            applied_strategies=applied,
            booking_probability=probability,
        )

    def summarize(self, results: list[CommissionResult]) -> BookingSummary:
        """Sum commission results of one booking. All results must share a currency."""
        currency = results[0].experience_price.currency if results else "USD"
        ensure(
            all(r.experience_price.currency == currency for r in results),
            "Booking summary mixes currencies",
        )

        total_price = sum((r.experience_price.amount for r in results), Decimal("0"))
        total_commission = sum((r.commission_amount.amount for r in results), Decimal("0"))
        platform = sum((r.platform_revenue.amount for r in results), Decimal("0"))
        payout = sum((r.partner_payout.amount for r in results), Decimal("0"))

        average_rate = float(total_commission / total_price) if total_price else 0.0

        return BookingSummary(
            currency=currency,
            total_price=Money(total_price, currency),
            total_commission=Money(total_commission, currency),
            platform_revenue=Money(platform, currency),
            partner_payout=Money(payout, currency),
            average_commission_rate=round(average_rate, 4),
            experience_count=len(results),
        )

    # --- Private helpers ---

    def _bound_rate(self, rate: float) -> float:
        cfg = self.config
        return round(min(max(rate, cfg.min_rate), cfg.max_rate, 1.0), 4)

    def _bound_adjustment(self, value: float) -> float:
        limit = self.config.max_adjustment
        return min(max(value, -limit), limit)

    def _strategy_rate(self, ctx: StrategyContext) -> tuple[float, list[str]]:
        cfg = self.config
        tier = (ctx.loyalty_tier or "").lower()

        if tier in cfg.tier_rates:
            base = cfg.tier_rates[tier]
            applied = [f"tier:{tier}"]
        else:
            base = cfg.base_rate
            applied = ["base_rate"]

        adjustments: list[tuple[str, float]] = []

        if (ctx.booking_velocity is not None and ctx.booking_velocity > cfg.surge_booking_velocity) or (
            ctx.inventory_level is not None and ctx.inventory_level < cfg.surge_inventory_below
        ):
            adjustments.append(("high-demand-surge", cfg.surge_adjustment))

        poor_weather = ctx.weather_label == "poor" or (
            ctx.weather_label is None and ctx.weather_good is False
        )
        if poor_weather and ctx.experience_type == "outdoor":
            adjustments.append(("weather-discount", cfg.weather_discount_adjustment))

        if ctx.layover_minutes is not None:
            if ctx.layover_minutes < cfg.last_minute_under_minutes:
                adjustments.append(("last-minute-premium", cfg.last_minute_adjustment))
            if ctx.layover_minutes > cfg.extended_layover_over_minutes:
                adjustments.append(("extended-layover-discount", cfg.extended_layover_adjustment))

        if tier in cfg.loyalty_bonus_tiers:
            adjustments.append(("loyalty-tier-bonus", cfg.loyalty_adjustment))

        for code in ctx.promo_codes:
            key = code.upper()
            if key in cfg.promotions:
                adjustments.append((f"promo:{key}", cfg.promotions[key]))
            else:
                logger.info(f"Ignoring unknown promotion code {code}")

        rate = base
        for name, value in adjustments:
            rate += self._bound_adjustment(value)
            applied.append(name)

        return self._bound_rate(rate), applied

    @staticmethod
    def booking_probability(ctx: StrategyContext) -> float:
        """Likelihood the traveler completes the booking, 0.1-0.9."""
        probability = 0.5

        if ctx.weather_good is True and ctx.experience_type == "outdoor":
            probability += 0.2
        elif ctx.weather_good is False and ctx.experience_type == "indoor":
            probability += 0.15

        if ctx.experience_minutes and ctx.layover_minutes:
            fit = ctx.experience_minutes / ctx.layover_minutes
            if 0.3 <= fit <= 0.6:
                probability += 0.15
            elif fit > 0.8:
                probability -= 0.2

        if ctx.rating is not None and ctx.rating >= 4.0:
            probability += 0.1

        return round(min(max(probability, 0.1), 0.9), 2)
