"""HTTP client for the point-based active alert feed."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import httpx

LOGGER = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.weather.gov"
DEFAULT_USER_AGENT = "(stormwatch, stormwatch@example.com)"


class FeedError(RuntimeError):
    """Base class for upstream feed failures."""


class FeedUnavailableError(FeedError):
    """The feed could not be reached, timed out, or answered with an error status."""


class FeedPayloadError(FeedError):
    """The feed answered but the body is not a feature collection."""


class AlertFeedClient:
    """Fetch raw alert features for a point from the upstream feed."""

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        user_agent: str = DEFAULT_USER_AGENT,
        timeout_seconds: float = 10.0,
        health_timeout_seconds: float = 5.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if not base_url:
            raise ValueError("base_url must be provided for AlertFeedClient")
        self.base_url = base_url.rstrip("/")
        self.user_agent = user_agent
        self.timeout_seconds = timeout_seconds
        self.health_timeout_seconds = health_timeout_seconds
        self._transport = transport

    @property
    def headers(self) -> dict[str, str]:
        return {"User-Agent": self.user_agent, "Accept": "application/geo+json"}

    def _client(self, timeout: float) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=timeout,
            headers=self.headers,
            transport=self._transport,
            follow_redirects=True,
        )

    async def fetch_features(self, lat: float, lon: float) -> list[dict[str, Any]]:
        """Fetch features for a point; the timeout bounds the whole request."""
        url = f"{self.base_url}/alerts/active"
        try:
            payload = await asyncio.wait_for(
                self._get_json(url, {"point": f"{lat},{lon}"}), self.timeout_seconds
            )
        except asyncio.TimeoutError as exc:
            raise FeedUnavailableError(
                f"{url} timed out after {self.timeout_seconds}s for {lat},{lon}"
            ) from exc
        except httpx.HTTPError as exc:
            raise FeedUnavailableError(f"{url} failed for {lat},{lon}: {exc}") from exc
        except ValueError as exc:
            raise FeedPayloadError(f"{url} returned invalid JSON: {exc}") from exc
        return extract_features(payload)

    async def _get_json(self, url: str, params: dict[str, str]) -> Any:
        async with self._client(self.timeout_seconds) as client:
            response = await client.get(url, params=params)
            response.raise_for_status()
            return response.json()

    async def check_health(self) -> bool:
        """Request the feed root with the short health timeout; never raises."""
        try:
            async with self._client(self.health_timeout_seconds) as client:
                response = await client.get(f"{self.base_url}/")
        except httpx.HTTPError as exc:
            LOGGER.warning("Feed health check failed: %s", exc)
            return False
        return response.status_code == httpx.codes.OK


def extract_features(payload: Any) -> list[dict[str, Any]]:
    if isinstance(payload, dict) and isinstance(payload.get("features"), list):
        records = payload["features"]
    elif isinstance(payload, list):
        records = payload
    else:
        raise FeedPayloadError("Feed payload has no feature list")
    return [dict(record) for record in records if isinstance(record, dict)]
