"""Feasibility evaluator — can the traveler leave the airport, for how long, and how."""

import logging

from app.data.airport_transit import (
    DEFAULT_TRANSIT_MINUTES,
    DEFAULT_TRANSIT_MODES,
    get_hub,
)
from app.services.layover.config import (
    FeasibilityPolicy,
    FeasibilityScoreConfig,
    default_engine_config,
)
from app.services.layover.models import FeasibilityResult, TimingWindow, TransitProfile

logger = logging.getLogger(__name__)


class TransitDirectory:
    """Transit lookup per airport, with a conservative default for unknown hubs."""

    def __init__(
        self,
        overrides: dict[str, TransitProfile] | None = None,
        default_minutes: int = DEFAULT_TRANSIT_MINUTES,
        default_modes: tuple = DEFAULT_TRANSIT_MODES,
    ):
        self._overrides = {k.upper(): v for k, v in (overrides or {}).items()}
        self._default_minutes = default_minutes
        self._default_modes = default_modes

    def lookup(self, airport: str) -> TransitProfile:
        code = airport.upper()
        if code in self._overrides:
            return self._overrides[code]
        hub = get_hub(code)
        if hub:
            return TransitProfile(code, hub["transit_minutes"], tuple(hub["modes"]))
        return TransitProfile(code, self._default_minutes, tuple(self._default_modes))


def evaluate(
    window: TimingWindow,
    transit: TransitProfile,
    policy: FeasibilityPolicy = default_engine_config.feasibility,
    min_layover_minutes: int | None = None,
) -> FeasibilityResult:
    """
    Decide whether a layover allows leaving the airport.

    Pure: identical inputs always give identical results. The effective
    minimum is the policy minimum or the traveler's own, whichever is larger.
    """
    duration = window.duration_minutes
    minimum = max(policy.min_layover_minutes, min_layover_minutes or 0)
    transit_minutes = max(0, transit.transit_minutes)

    mode = next((m for m in policy.mode_preference if m in transit.modes), None)

    if duration < minimum:
        return FeasibilityResult(
            can_leave_airport=False,
            available_city_minutes=0,
            transit_mode=mode,
            transit_minutes=transit_minutes,
            reasons=[f"Layover of {duration} min is below the {minimum} min minimum"],
        )

    available = max(0, duration - 2 * transit_minutes)
    reasons = []
    if mode is None:
        reasons.append(f"No usable transit from {transit.airport} to the city")
    if available == 0:
        reasons.append("Round-trip transit uses the whole layover")

    return FeasibilityResult(
        can_leave_airport=mode is not None and available > 0,
        available_city_minutes=available if mode is not None else 0,
        transit_mode=mode,
        transit_minutes=transit_minutes,
        reasons=reasons,
    )


def feasibility_score(
    window: TimingWindow,
    result: FeasibilityResult,
    cfg: FeasibilityScoreConfig = default_engine_config.feasibility_score,
) -> float:
    """Feasibility sub-score, 0-100."""
    score = cfg.base

    if result.can_leave_airport:
        score += cfg.can_leave_bonus

        duration = window.duration_minutes
        ratio = result.available_city_minutes / duration if duration > 0 else 0.0
        if ratio >= cfg.high_city_ratio:
            score += cfg.high_city_ratio_bonus
        elif ratio >= cfg.mid_city_ratio:
            score += cfg.mid_city_ratio_bonus

        if result.transit_minutes <= cfg.fast_transit_minutes:
            score += cfg.fast_transit_bonus
        if result.transit_mode in cfg.rail_modes:
            score += cfg.rail_bonus

    return round(min(max(score, 0.0), 100.0), 1)
