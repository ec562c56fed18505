"""Layover engine — discovers, scores, bundles and books layover opportunities.

Modules:
    config       Centralized thresholds, weights and commission rates
    models       Domain types (Money, TimingWindow, Candidate, Opportunity, ...)
    errors       Typed engine failures, mapped to HTTP status by the routers
    adapters     Candidate, experience and weather sources + candidate merging
    feasibility  Can the traveler leave the airport, for how long, and how
    scoring      Sub-scores, destination boosts, overall blend and ranking
    matching     Experience filtering and flight + experience bundle pricing
    insights     Best pick, categories and market stats
    commission   Commission rate strategies and revenue split
    engine       LayoverDiscoveryEngine, one discovery request end to end
    booking      BookingOrchestrator, all-or-nothing re-validation and commit

Pipeline:
    collect_candidates → evaluate → match_experiences → build_bundle
    → score → aggregate
"""
