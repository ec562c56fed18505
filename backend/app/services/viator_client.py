"""Viator partner API client — experience search and availability checks."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from datetime import date
from typing import Any

import httpx

logger = logging.getLogger(__name__)

MAX_ATTEMPTS = 3


class ViatorClient:
    """Adapter for the Viator Partner API (v2)."""

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://api.sandbox.viator.com/partner",
        timeout: float = 10.0,
        max_concurrency: int = 8,
        http_client: httpx.AsyncClient | None = None,
    ):
        self._api_key = api_key
        self._base_url = base_url
        self._timeout = timeout
        self._semaphore = asyncio.Semaphore(max_concurrency)
        self._client = http_client

    @property
    def configured(self) -> bool:
        return bool(self._api_key)

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self._base_url,
                timeout=self._timeout,
                headers={
                    "exp-api-key": self._api_key,
                    "Accept": "application/json;version=2.0",
                    "Accept-Language": "en-US",
                },
            )
        return self._client

    async def _send(self, label: str, send: Callable[[], Awaitable[httpx.Response]]) -> dict:
        """Send with retry on 429 and transport errors; any other error status is raised."""
        if not self.configured:
            raise RuntimeError("Viator API key is not set")

        async with self._semaphore:
            for attempt in range(MAX_ATTEMPTS):
                last = attempt == MAX_ATTEMPTS - 1
                try:
                    resp = await send()
                except httpx.RequestError as e:
                    logger.error(f"Viator {label} request error: {e}")
                    if last:
                        raise
                    await asyncio.sleep(2 ** attempt)
                    continue

                if resp.status_code == 429 and not last:
                    await asyncio.sleep(2 ** attempt)
                    continue
                if resp.is_error:
                    logger.error(f"Viator {label} error: {resp.status_code}")
                resp.raise_for_status()
                return resp.json()

        raise RuntimeError(f"Viator {label}: retries exhausted")

    async def _post(self, path: str, payload: dict[str, Any]) -> dict:
        client = await self._get_client()
        return await self._send(path, lambda: client.post(path, json=payload))

    async def get_product(self, product_code: str) -> dict:
        """Product detail (title, duration, tags, reviews)."""
        path = f"/products/{product_code}"
        client = await self._get_client()
        return await self._send(path, lambda: client.get(path))

    async def search_products(
        self,
        destination_code: str,
        travel_date: date,
        max_duration_minutes: int | None = None,
        currency: str = "USD",
        count: int = 30,
    ) -> list[dict]:
        """Products bookable in a destination on a given date."""
        filtering: dict[str, Any] = {
            "destination": destination_code,
            "startDate": travel_date.isoformat(),
            "endDate": travel_date.isoformat(),
        }
        if max_duration_minutes:
            filtering["durationInMinutes"] = {"from": 0, "to": max_duration_minutes}

        data = await self._post(
            "/products/search",
            {
                "filtering": filtering,
                "sorting": {"sort": "TRAVELER_RATING", "order": "DESCENDING"},
                "pagination": {"start": 1, "count": count},
                "currency": currency,
            },
        )
        return data.get("products", [])

    async def check_availability(
        self,
        product_code: str,
        travel_date: date,
        start_time: str,
        travelers: int,
        currency: str = "USD",
    ) -> dict:
        """Real-time availability + price for one product slot."""
        return await self._post(
            "/availability/check",
            {
                "productCode": product_code,
                "travelDate": travel_date.isoformat(),
                "startTime": start_time,
                "currency": currency,
                "paxMix": [{"ageBand": "ADULT", "numberOfTravelers": travelers}],
            },
        )

    async def close(self):
        if self._client:
            await self._client.aclose()
            self._client = None
