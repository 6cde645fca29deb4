from __future__ import annotations

import asyncio
import logging

import aiohttp

import config

logger = logging.getLogger("weatherish.geocode")


class GeocodeClient:
    """Reverse geocoding through OpenStreetMap Nominatim."""

    def __init__(self, session: aiohttp.ClientSession | None = None) -> None:
        self._session = session
        self._owns_session = session is None

    async def _ensure_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                headers={"User-Agent": config.HTTP_USER_AGENT}
            )
            self._owns_session = True
        return self._session

    async def close(self) -> None:
        if self._owns_session and self._session and not self._session.closed:
            await self._session.close()

    @staticmethod
    def coordinate_label(lat: float, lon: float) -> str:
        return f"{lat:.4f}, {lon:.4f}"

    async def reverse(self, lat: float, lon: float) -> str:
        """Place name for a coordinate, or the formatted coordinate on failure."""
        fallback = self.coordinate_label(lat, lon)
        session = await self._ensure_session()

        try:
            async with session.get(
                config.NOMINATIM_REVERSE_URL,
                params={"format": "json", "lat": f"{lat}", "lon": f"{lon}", "zoom": "10"},
                timeout=aiohttp.ClientTimeout(total=10),
            ) as resp:
                if resp.status != 200:
                    logger.warning("Reverse geocode failed: HTTP %d", resp.status)
                    return fallback
                data = await resp.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as exc:
            logger.warning("Reverse geocode error: %s", exc)
            return fallback

        if not isinstance(data, dict):
            return fallback
        return str(data.get("display_name") or fallback)
