"""Multi-factor scorer — ranks layover opportunities on feasibility, experiences, weather.

overall = clamp(0.4·feasibility + 0.35·experience + 0.25·weather + boost)

boost is the raw sum of destination boosts (trending, budget fit, preferred,
avoided). Clamping happens once, after every term is added.
"""

from app.services.layover.config import (
    BlendWeights,
    ExperienceScoreConfig,
    ScoringConfig,
    WeatherScoreConfig,
    default_engine_config,
)
from app.services.layover.models import (
    Candidate,
    DiscoveryQuery,
    ExperienceCandidate,
    Money,
    Opportunity,
    Scores,
    WeatherReport,
)


# "medium" is accepted as a synonym for "moderate"
DEMAND_LEVELS = {"low": 1, "moderate": 2, "medium": 2, "high": 3}


def _clamp(value: float, low: float = 0.0, high: float = 100.0) -> float:
    return min(max(value, low), high)


def destination_boost(
    candidate: Candidate,
    query: DiscoveryQuery,
    cfg: ScoringConfig = default_engine_config.scoring,
    price: Money | None = None,
) -> float:
    """Raw (unclamped) sum of boosts for one destination.

    `price` is the fare being scored; the candidate's price when omitted.
    """
    boost = 0.0
    if candidate.trending:
        boost += cfg.trending_boost
    if cfg.budget_tiers.matches(query.budget, float((price or candidate.price).usd)):
        boost += cfg.budget_match_boost
    if candidate.code in query.preferred_destinations:
        boost += cfg.preferred_boost
    if candidate.code in query.avoid_destinations:
        boost += cfg.avoid_penalty
    return boost


def destination_score(
    candidate: Candidate,
    query: DiscoveryQuery,
    cfg: ScoringConfig = default_engine_config.scoring,
    price: Money | None = None,
) -> float:
    """Base score plus boosts, clamped once at the end."""
    raw = cfg.base_score + destination_boost(candidate, query, cfg, price)
    return _clamp(raw, cfg.min_score, cfg.max_score)


def physical_demand_fit(
    experience_demand: str,
    traveler_demand: str,
    cfg: ExperienceScoreConfig = default_engine_config.experience_score,
) -> float:
    """1.0 when the experience is within the traveler's capability, less the further above it is."""
    over = DEMAND_LEVELS.get(experience_demand, 1) - DEMAND_LEVELS.get(traveler_demand, 2)
    if over <= 0:
        return 1.0
    return cfg.demand_fit_one_above if over == 1 else cfg.demand_fit_beyond


def experience_score(
    experiences: list[ExperienceCandidate],
    preferred_activities: list[str] | None = None,
    cfg: ExperienceScoreConfig = default_engine_config.experience_score,
    physical_demand: str | None = None,
) -> float:
    """Quality, variety, preference and physical-demand fit of the matched experiences, 0-100."""
    if not experiences:
        return cfg.no_experiences

    score = cfg.base

    ratings = [e.rating if e.rating is not None else cfg.default_rating for e in experiences]
    avg_rating = sum(ratings) / len(ratings)
    score += (avg_rating - cfg.rating_pivot) * cfg.rating_weight

    categories = {c.lower() for e in experiences for c in e.categories}
    score += min(len(categories) * cfg.category_bonus, cfg.category_cap)

    if preferred_activities:
        prefs = [p.lower() for p in preferred_activities]
        matching = [
            e for e in experiences
            if any(pref in cat.lower() for cat in e.categories for pref in prefs)
        ]
        score += (len(matching) / len(experiences)) * cfg.preference_weight

    if physical_demand:
        fit = sum(physical_demand_fit(e.physical_demand, physical_demand, cfg) for e in experiences)
        score -= (1.0 - fit / len(experiences)) * cfg.demand_mismatch_weight

    return round(_clamp(score), 1)


def weather_score(
    weather: WeatherReport,
    experiences: list[ExperienceCandidate],
    cfg: WeatherScoreConfig = default_engine_config.weather_score,
) -> float:
    """How well the weather suits what there is to do, 0-100."""
    score = cfg.base
    total = max(len(experiences), 1)

    if weather.is_good_for_outdoor:
        score += cfg.good_outdoor_bonus
        outdoor = sum(1 for e in experiences if e.activity_type == "outdoor")
        score += (outdoor / total) * cfg.outdoor_share_weight
    else:
        indoor = sum(1 for e in experiences if e.activity_type == "indoor")
        score += (indoor / total) * cfg.indoor_share_weight

    return round(_clamp(score), 1)


def blend_overall(
    feasibility: float,
    experience: float,
    weather: float,
    boost: float = 0.0,
    weights: BlendWeights = default_engine_config.weights,
) -> float:
    """Weighted blend of sub-scores plus boosts, clamped once to 0-100."""
    composite = (
        weights.feasibility * feasibility
        + weights.experience * experience
        + weights.weather * weather
        + boost
    )
    return round(_clamp(composite), 1)


def score(
    candidate: Candidate,
    feasibility: float,
    experiences: list[ExperienceCandidate],
    weather: WeatherReport,
    query: DiscoveryQuery,
    config=default_engine_config,
    price: Money | None = None,
) -> Scores:
    """Compute all sub-scores and the overall for one opportunity."""
    boost = destination_boost(candidate, query, config.scoring, price)
    exp = experience_score(
        experiences, query.preferred_activities, config.experience_score, query.physical_demand
    )
    wx = weather_score(weather, experiences, config.weather_score)

    return Scores(
        overall=blend_overall(feasibility, exp, wx, boost, config.weights),
        feasibility=feasibility,
        experience=exp,
        weather=wx,
        destination=destination_score(candidate, query, config.scoring, price),
        boost=boost,
    )


def sort_key(opportunity: Opportunity) -> tuple:
    """Higher overall first, then cheaper (USD), then city name, then code."""
    return (
        -opportunity.scores.overall,
        opportunity.flight_price.usd,
        opportunity.city,
        opportunity.code,
    )


def rank(opportunities: list[Opportunity]) -> list[Opportunity]:
    return sorted(opportunities, key=sort_key)
