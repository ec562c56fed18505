"""Amadeus API client — flight offers, inspiration, and traveled-destination feeds.

OAuth2 client-credentials with token refresh and bounded retries. Errors are
raised to the caller; the layover source adapters decide how to degrade.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from datetime import date, datetime, timedelta, timezone
from typing import Any

import httpx

logger = logging.getLogger(__name__)

MAX_ATTEMPTS = 3


class AmadeusNotConfigured(RuntimeError):
    pass


class AmadeusClient:
    """Thin async adapter for the Amadeus Self-Service API."""

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        base_url: str = "https://test.api.amadeus.com",
        timeout: float = 10.0,
        max_concurrency: int = 10,
        http_client: httpx.AsyncClient | None = None,
    ):
        self._client_id = client_id
        self._client_secret = client_secret
        self._base_url = base_url
        self._timeout = timeout
        self._token: str | None = None
        self._token_expires: datetime | None = None
        self._semaphore = asyncio.Semaphore(max_concurrency)  # 10 req/s rate limit
        self._client = http_client

    @property
    def configured(self) -> bool:
        return bool(self._client_id and self._client_secret)

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(base_url=self._base_url, timeout=self._timeout)
        return self._client

    async def _send(self, label: str, send: Callable[[], Awaitable[httpx.Response]]) -> httpx.Response:
        """Send with retry on 429 and transport errors; any other error status is raised."""
        for attempt in range(MAX_ATTEMPTS):
            last = attempt == MAX_ATTEMPTS - 1
            try:
                resp = await send()
            except httpx.RequestError as e:
                logger.error(f"Amadeus {label} request error: {e}")
                if last:
                    raise
                await asyncio.sleep(2 ** attempt)
                continue

            if resp.status_code == 429 and not last:
                await asyncio.sleep(2 ** attempt)
                continue
            if resp.is_error:
                logger.error(f"Amadeus {label} error: {resp.status_code}")
            resp.raise_for_status()
            return resp

        raise RuntimeError(f"Amadeus {label}: retries exhausted")

    async def _ensure_token(self):
        """Get or refresh OAuth2 token."""
        if not self.configured:
            raise AmadeusNotConfigured("Amadeus credentials are not set")

        if self._token and self._token_expires and datetime.now(timezone.utc) < self._token_expires:
            return

        client = await self._get_client()
        resp = await self._send(
            "token",
            lambda: client.post(
                "/v1/security/oauth2/token",
                data={
                    "grant_type": "client_credentials",
                    "client_id": self._client_id,
                    "client_secret": self._client_secret,
                },
                headers={"Content-Type": "application/x-www-form-urlencoded"},
            ),
        )
        data = resp.json()
        self._token = data["access_token"]
        self._token_expires = datetime.now(timezone.utc) + timedelta(
            seconds=data.get("expires_in", 1799) - 60
        )
        logger.info("Amadeus token refreshed")

    async def _get(self, path: str, params: dict[str, Any]) -> dict:
        """Authenticated GET with retry on 429 and transport errors."""
        async with self._semaphore:
            await self._ensure_token()
            client = await self._get_client()
            resp = await self._send(
                path,
                lambda: client.get(
                    path,
                    params=params,
                    headers={"Authorization": f"Bearer {self._token}"},
                ),
            )
            return resp.json()

    async def search_flight_offers(
        self,
        origin: str,
        destination: str,
        departure_date: date,
        adults: int = 1,
        children: int = 0,
        infants: int = 0,
        max_results: int = 50,
        currency: str = "USD",
    ) -> dict:
        """Connecting flight offers for one date. Returns the raw payload (data + dictionaries)."""
        params = {
            "originLocationCode": origin,
            "destinationLocationCode": destination,
            "departureDate": departure_date.isoformat(),
            "adults": adults,
            "nonStop": "false",
            "max": max_results,
            "currencyCode": currency,
        }
        if children:
            params["children"] = children
        if infants:
            params["infants"] = infants
        return await self._get("/v2/shopping/flight-offers", params)

    async def get_flight_destinations(
        self,
        origin: str,
        max_price: int | None = None,
        departure_date: date | None = None,
    ) -> list[dict]:
        """Flight inspiration: cheapest destinations from an origin."""
        params: dict[str, Any] = {"origin": origin}
        if max_price:
            params["maxPrice"] = max_price
        if departure_date:
            params["departureDate"] = departure_date.isoformat()
        data = await self._get("/v1/shopping/flight-destinations", params)
        return data.get("data", [])

    async def get_traveled_destinations(self, origin: str, period: str, max_results: int = 20) -> list[dict]:
        """Most-traveled destinations from an origin city for a YYYY-MM period."""
        data = await self._get(
            "/v1/travel/analytics/air-traffic/traveled",
            {
                "originCityCode": origin,
                "period": period,
                "max": max_results,
                "sort": "analytics.travelers.score",
            },
        )
        return data.get("data", [])

    async def close(self):
        if self._client:
            await self._client.aclose()
            self._client = None
