"""OpenWeather client — current conditions at a layover hub."""

import logging

import httpx

logger = logging.getLogger(__name__)


class WeatherClient:
    def __init__(
        self,
        api_key: str,
        base_url: str = "https://api.openweathermap.org/data/2.5",
        timeout: float = 5.0,
        http_client: httpx.AsyncClient | None = None,
    ):
        self._api_key = api_key
        self._base_url = base_url
        self._timeout = timeout
        self._client = http_client

    @property
    def configured(self) -> bool:
        return bool(self._api_key)

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(base_url=self._base_url, timeout=self._timeout)
        return self._client

    async def current(self, lat: float, lng: float) -> dict:
        """Raw current-weather payload (metric units)."""
        if not self.configured:
            raise RuntimeError("OpenWeather API key is not set")
        client = await self._get_client()
        resp = await client.get(
            "/weather",
            params={"lat": lat, "lon": lng, "units": "metric", "appid": self._api_key},
        )
        resp.raise_for_status()
        return resp.json()

    async def close(self):
        if self._client:
            await self._client.aclose()
            self._client = None
