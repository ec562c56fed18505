"""Redis cache for merged discovery candidates."""

import hashlib
import json
import logging
from datetime import datetime
from typing import Any

import redis.asyncio as redis

from app.services.layover.models import Candidate, DiscoveryQuery, Money, TimingWindow

logger = logging.getLogger(__name__)

# TTLs in seconds
TTL_CANDIDATES = 15 * 60       # 15 minutes


class CacheService:
    """Redis-backed cache with typed TTLs. Every failure degrades to a miss."""

    def __init__(self, redis_url: str | None = None, client: Any = None):
        self._redis_url = redis_url
        self._redis = client

    async def _get_redis(self):
        if self._redis is None:
            if not self._redis_url:
                return None
            try:
                self._redis = redis.from_url(
                    self._redis_url,
                    encoding="utf-8",
                    decode_responses=True,
                )
                await self._redis.ping()
            except Exception as e:
                logger.warning(f"Redis unavailable, cache disabled: {e}")
                self._redis = None
                return None
        return self._redis

    async def get(self, key: str) -> Any | None:
        """Get a value from cache. Returns None on miss or error."""
        try:
            r = await self._get_redis()
            if r is None:
                return None
            raw = await r.get(key)
            if raw is None:
                return None
            return json.loads(raw)
        except Exception as e:
            logger.debug(f"Cache get failed for {key}: {e}")
            return None

    async def set(self, key: str, value: Any, ttl: int = TTL_CANDIDATES) -> bool:
        """Set a value in cache with TTL. Returns False on error."""
        try:
            r = await self._get_redis()
            if r is None:
                return False
            await r.set(key, json.dumps(value, default=str), ex=ttl)
            return True
        except Exception as e:
            logger.debug(f"Cache set failed for {key}: {e}")
            return False

    async def delete(self, key: str) -> bool:
        try:
            r = await self._get_redis()
            if r is None:
                return False
            await r.delete(key)
            return True
        except Exception:
            return False

    async def close(self):
        if self._redis:
            await self._redis.aclose()
            self._redis = None


class CandidateCache:
    """Merged candidates keyed by origin + search fingerprint."""

    def __init__(self, cache: CacheService, ttl: int = TTL_CANDIDATES):
        self._cache = cache
        self._ttl = ttl

    @staticmethod
    def key(query: DiscoveryQuery) -> str:
        digest = hashlib.sha256(
            json.dumps(query.cache_fingerprint(), sort_keys=True).encode("utf-8")
        ).hexdigest()[:16]
        return f"candidates:{query.origin}:{digest}"

    async def get(self, query: DiscoveryQuery) -> list[Candidate] | None:
        raw = await self._cache.get(self.key(query))
        if raw is None:
            return None
        try:
            return [_candidate_from_cache(item) for item in raw]
        except (KeyError, ValueError, TypeError) as e:
            logger.warning(f"Discarding unreadable candidate cache entry: {e}")
            await self._cache.delete(self.key(query))
            return None

    async def set(self, query: DiscoveryQuery, candidates: list[Candidate]) -> bool:
        return await self._cache.set(
            self.key(query), [_candidate_to_cache(c) for c in candidates], self._ttl
        )


def _candidate_to_cache(c: Candidate) -> dict:
    return {
        "code": c.code,
        "price": str(c.price.amount),
        "currency": c.price.currency,
        "score": c.score,
        "trending": c.trending,
        "city": c.city,
        "country": c.country,
        "sources": c.sources,
        "windows": [
            {
                "arrival": w.arrival.isoformat(),
                "departure": w.departure.isoformat(),
                "airport": w.airport,
                "flight_id": w.flight_id,
                "airline": w.airline,
                "price": str(w.price.amount) if w.price else None,
                "price_currency": w.price.currency if w.price else None,
            }
            for w in c.windows
        ],
    }


def _candidate_from_cache(d: dict) -> Candidate:
    return Candidate(
        code=d["code"],
        price=Money(d["price"], d["currency"]),
        score=d["score"],
        trending=d["trending"],
        city=d.get("city", ""),
        country=d.get("country", ""),
        sources=list(d.get("sources", [])),
        windows=[
            TimingWindow(
                arrival=datetime.fromisoformat(w["arrival"]),
                departure=datetime.fromisoformat(w["departure"]),
                airport=w.get("airport", ""),
                flight_id=w.get("flight_id"),
                airline=w.get("airline"),
                price=Money(w["price"], w["price_currency"]) if w.get("price") else None,
            )
            for w in d.get("windows", [])
        ],
    )
