from decimal import Decimal

import pytest

from app.services.layover.errors import ComputationInvariantViolation
from app.services.layover.feasibility import evaluate
from app.services.layover.matching import build_bundle, match_experiences
from app.services.layover.models import Money
from tests.factories import FAST_TRAIN, make_experience, make_window


@pytest.fixture
def eight_hours():
    window = make_window(480)
    return window, evaluate(window, FAST_TRAIN)


def test_fits_short_experience_rejects_long_one(eight_hours):
    window, feasibility = eight_hours
    short = make_experience("SHORT", 180)
    long = make_experience("LONG", 450)

    matched = match_experiences([short, long], window, feasibility)

    assert [e.id for e in matched] == ["SHORT"]


def test_rejects_experience_ending_after_departure(eight_hours):
    window, feasibility = eight_hours
    late = make_experience("LATE", 180, offset=400)

    assert match_experiences([late], window, feasibility) == []


def test_rejects_unavailable_experience(eight_hours):
    window, feasibility = eight_hours
    sold_out = make_experience("GONE", 60, available=False)

    assert match_experiences([sold_out], window, feasibility) == []


def test_no_experiences_when_infeasible():
    window = make_window(90)
    feasibility = evaluate(window, FAST_TRAIN)

    assert match_experiences([make_experience("A", 30)], window, feasibility) == []


def test_matched_cheapest_first_then_rating(eight_hours):
    window, feasibility = eight_hours
    experiences = [
        make_experience("C", 60, price="80.00"),
        make_experience("B", 60, price="50.00", rating=4.0),
        make_experience("A", 60, price="50.00", rating=4.8),
    ]

    matched = match_experiences(experiences, window, feasibility)

    assert [e.id for e in matched] == ["A", "B", "C"]


def test_bundle_prices_cheapest_experience():
    experiences = [make_experience("A", 60, price="80.00"), make_experience("B", 60, price="50.00")]

    bundle = build_bundle(Money("500.00"), experiences)

    assert bundle.experience_id == "B"
    assert bundle.price_without_bundle.amount == Decimal("550.00")
    assert bundle.savings_amount.amount == Decimal("82.50")
    assert bundle.total_price.amount == Decimal("467.50")
    assert bundle.savings_percentage == 15.0
    assert bundle.savings_amount.amount >= 0
    assert bundle.total_price.amount >= 0


def test_bundle_converts_experience_into_flight_currency():
    experiences = [make_experience("EU", 60, price="100.00", currency="EUR")]

    bundle = build_bundle(Money("400.00", "USD"), experiences, discount_rate=0.10)

    assert bundle.experience_price == Money("108.00", "USD")
    assert bundle.price_without_bundle.amount == Decimal("508.00")
    assert bundle.savings_amount.amount == Decimal("50.80")
    assert bundle.total_price.currency == "USD"


def test_no_bundle_without_experiences():
    assert build_bundle(Money("500.00"), []) is None


def test_zero_discount_bundle_saves_nothing():
    bundle = build_bundle(Money("500.00"), [make_experience("A", 60)], discount_rate=0.0)

    assert bundle.savings_amount.amount == Decimal("0.00")
    assert bundle.total_price == bundle.price_without_bundle


def test_out_of_range_discount_is_an_invariant_violation():
    with pytest.raises(ComputationInvariantViolation):
        build_bundle(Money("500.00"), [make_experience("A", 60)], discount_rate=1.5)
