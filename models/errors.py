"""
Error hierarchy for the query and provider layers.

The statistics core never raises for any series shape; these errors belong
to the code around it (argument parsing, the NASA POWER fetch).
"""
from __future__ import annotations

from typing import Any


class WeatherishError(Exception):
    """Base class for all application errors."""


class QueryError(WeatherishError):
    """The user's query is malformed (unknown variable, bad date or threshold)."""


class DataFetchError(WeatherishError):
    """The upstream data provider request failed or returned an unusable payload."""

    def __init__(
        self,
        message: str,
        provider: str,
        status_code: int | None = None,
        url: str | None = None,
    ) -> None:
        self.message = message
        self.provider = provider
        self.status_code = status_code
        self.url = url

        parts = [f"[{provider}] {message}"]
        if status_code:
            parts.append(f"(HTTP {status_code})")
        if url:
            parts.append(f"(URL: {url})")
        super().__init__(" ".join(parts))

    def to_dict(self) -> dict[str, Any]:
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "provider": self.provider,
            "status_code": self.status_code,
            "url": self.url,
        }
