from __future__ import annotations

import asyncio
import logging
from typing import Any

import aiohttp

import config
from models.errors import DataFetchError
from models.observation import RawObservationSeries

logger = logging.getLogger("weatherish.power")


class PowerClient:
    """Async client for the NASA POWER daily point API (no API key)."""

    PROVIDER = "NASA POWER"

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

    async def get_daily_series(
        self,
        lat: float,
        lon: float,
        variables: list[str],
        start_year: int = config.DEFAULT_START_YEAR,
        end_year: int = config.DEFAULT_END_YEAR,
    ) -> dict[str, RawObservationSeries]:
        """
        Fetch daily observations for every variable in one request.

        Returns {variable_key: {"YYYYMMDD": value}} with the provider's fill
        values left in place.  A variable the provider did not return maps
        to an empty series.  Raises DataFetchError if the request fails.
        """
        codes = {config.VARIABLES[name]["code"]: name for name in variables}
        params = {
            "latitude": f"{lat:.4f}",
            "longitude": f"{lon:.4f}",
            "start": f"{start_year}0101",
            "end": f"{end_year}1231",
            "parameters": ",".join(codes),
            "community": config.POWER_COMMUNITY,
            "format": "JSON",
        }

        session = await self._ensure_session()
        url = config.POWER_DAILY_URL

        try:
            async with session.get(
                url,
                params=params,
                timeout=aiohttp.ClientTimeout(total=config.POWER_REQUEST_TIMEOUT_SECONDS),
            ) as resp:
                if resp.status != 200:
                    detail = await self._error_detail(resp)
                    logger.error(
                        "NASA POWER request failed for (%.4f, %.4f): HTTP %d %s",
                        lat, lon, resp.status, detail,
                    )
                    raise DataFetchError(
                        detail or "request failed",
                        self.PROVIDER,
                        status_code=resp.status,
                        url=url,
                    )
                data = await resp.json(content_type=None)
        except ValueError as exc:
            logger.error("NASA POWER returned non-JSON body for (%.4f, %.4f): %s", lat, lon, exc)
            raise DataFetchError("response body is not valid JSON", self.PROVIDER, url=url) from exc
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            logger.error("NASA POWER request error for (%.4f, %.4f): %s", lat, lon, exc)
            raise DataFetchError(str(exc) or type(exc).__name__, self.PROVIDER, url=url) from exc

        result = self._parse_daily_response(data, codes)
        for name, series in result.items():
            logger.info(
                "NASA POWER OK (%.4f, %.4f) [%s]: %d daily values %s-%s",
                lat, lon, name, len(series), start_year, end_year,
            )
        return result

    @staticmethod
    async def _error_detail(resp: aiohttp.ClientResponse) -> str:
        """Best-effort message from an error response body."""
        try:
            body = await resp.json(content_type=None)
        except (aiohttp.ClientError, ValueError):
            return ""
        if isinstance(body, dict):
            messages = body.get("messages") or body.get("detail") or []
            if isinstance(messages, list):
                return "; ".join(str(m) for m in messages)
            return str(messages)
        return ""

    @staticmethod
    def _parse_daily_response(
        data: Any,
        codes: dict[str, str],
    ) -> dict[str, RawObservationSeries]:
        """
        Pull properties.parameter.<CODE> out of the POWER JSON payload.

        codes maps POWER parameter code → variable key.
        """
        if not isinstance(data, dict):
            raise DataFetchError("unexpected response payload", PowerClient.PROVIDER)

        properties = data.get("properties")
        parameters = properties.get("parameter") if isinstance(properties, dict) else None
        if not isinstance(parameters, dict):
            raise DataFetchError(
                "response has no properties.parameter block", PowerClient.PROVIDER
            )

        result: dict[str, RawObservationSeries] = {}
        for code, name in codes.items():
            series = parameters.get(code)
            if not isinstance(series, dict):
                logger.warning("NASA POWER returned no %s series", code)
                series = {}
            result[name] = dict(series)
        return result
