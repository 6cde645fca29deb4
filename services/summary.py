from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timezone

import config
from models.analysis import AnalysisResult, Requested
from models.query import Location

logger = logging.getLogger("weatherish.summary")

_RISK_LABELS = {
    "low": "Low Risk",
    "medium": "Medium Risk",
    "high": "High Risk",
}


def _format_trend(trend: float | None, unit: str) -> str:
    if trend is None:
        return "no trend"
    return f"{trend:+.2f}{unit} per decade"


def format_variable_line(name: str, outcome: Requested) -> str:
    """One summary sentence for a requested variable."""
    info = config.VARIABLES.get(name, {})
    label = info.get("label", name)
    unit = info.get("unit", "")
    stats = outcome.statistics

    if stats is None:
        return f"{label}: insufficient data for this date and location."

    return (
        f"{label}: {outcome.probability:.0%} probability of exceeding "
        f"{outcome.threshold:g}{unit} ({_RISK_LABELS.get(outcome.risk, outcome.risk)}). "
        f"Historical average {stats.spread_label}, "
        f"range {stats.min:.1f} to {stats.max:.1f}{unit}, n={stats.sample_count}; "
        f"{_format_trend(outcome.trend_per_decade, unit)}."
    )


def format_summary(
    result: AnalysisResult,
    location: Location,
    target_date: date,
    years_analyzed: str = f"{config.DEFAULT_START_YEAR}-{config.DEFAULT_END_YEAR}",
) -> str:
    """Plain-text analysis summary, as shown in the dashboard and sent to the chat panel."""
    lines = [
        f"Weather analysis for {location.label} on {target_date.strftime('%B %d')}",
        f"Based on {config.DATA_SOURCE_NAME} daily data, {years_analyzed}.",
    ]
    requested = result.requested
    if not requested:
        lines.append("No weather parameters were selected.")
    for name, outcome in requested.items():
        lines.append(format_variable_line(name, outcome))
    return "\n".join(lines)


# ── Chat hand-off ─────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class ChatRequest:
    """A message for the chat explainer, built from one analysis result."""

    location: Location
    target_date: date
    summary: str
    result: AnalysisResult
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def from_result(
        cls,
        result: AnalysisResult,
        location: Location,
        target_date: date,
        years_analyzed: str = f"{config.DEFAULT_START_YEAR}-{config.DEFAULT_END_YEAR}",
    ) -> ChatRequest:
        return cls(
            location=location,
            target_date=target_date,
            summary=format_summary(result, location, target_date, years_analyzed),
            result=result,
        )

    @property
    def prompt(self) -> str:
        """Opening message for the chat panel."""
        return f"Explain this weather analysis:\n{self.summary}"


class ChatInbox:
    """Queue of ChatRequests handed from the summary producer to the chat component."""

    def __init__(self, maxsize: int = 0) -> None:
        self._queue: asyncio.Queue[ChatRequest] = asyncio.Queue(maxsize=maxsize)

    async def submit(self, request: ChatRequest) -> None:
        await self._queue.put(request)
        logger.info("Chat request queued for %s", request.location.label)

    def submit_nowait(self, request: ChatRequest) -> bool:
        """Queue without waiting.  Returns False if the inbox is full."""
        try:
            self._queue.put_nowait(request)
        except asyncio.QueueFull:
            logger.warning("Chat inbox full, dropping request for %s", request.location.label)
            return False
        return True

    async def get(self) -> ChatRequest:
        return await self._queue.get()

    def get_nowait(self) -> ChatRequest | None:
        try:
            return self._queue.get_nowait()
        except asyncio.QueueEmpty:
            return None

    @property
    def pending(self) -> int:
        return self._queue.qsize()
