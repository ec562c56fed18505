from datetime import datetime, timezone

import pytest

from app.services.cache_service import CacheService, CandidateCache
from app.services.layover.booking import InMemoryBookingStore
from app.services.layover.feasibility import TransitDirectory
from tests.factories import FAST_TRAIN, HUB, FakeRedis


@pytest.fixture
def transit() -> TransitDirectory:
    return TransitDirectory({HUB: FAST_TRAIN})


@pytest.fixture
def store() -> InMemoryBookingStore:
    return InMemoryBookingStore()


@pytest.fixture
def fixed_now():
    moment = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)
    return lambda: moment


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
def candidate_cache(fake_redis) -> CandidateCache:
    return CandidateCache(CacheService(client=fake_redis), ttl=900)
