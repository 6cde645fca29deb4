from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Union

from models.statistics import VariableStatistics


@dataclass(frozen=True)
class YearlyRecord:
    """One point of the multi-year trend chart."""

    year: int
    means: dict[str, float] = field(default_factory=dict)  # 0.0 when the year has no data
    sample_counts: dict[str, int] = field(default_factory=dict)

    def has_data(self, variable: str) -> bool:
        """False when the mean for *variable* is the zero fallback, not an observation."""
        return self.sample_counts.get(variable, 0) > 0

    def to_dict(self) -> dict[str, Any]:
        row: dict[str, Any] = {"year": self.year}
        row.update(self.means)
        row["sampleCounts"] = dict(self.sample_counts)
        return row


@dataclass(frozen=True)
class Requested:
    """Outcome for a variable the caller asked about."""

    statistics: VariableStatistics | None  # None → insufficient data
    probability: float
    threshold: float
    risk: str  # "low", "medium", "high"
    trend_per_decade: float | None = None

    @property
    def insufficient_data(self) -> bool:
        return self.statistics is None


@dataclass(frozen=True)
class NotRequested:
    """Placeholder for a variable the caller did not ask about."""


VariableOutcome = Union[Requested, NotRequested]


@dataclass
class AnalysisResult:
    """Merged statistics, probabilities and yearly series for one query."""

    outcomes: dict[str, VariableOutcome]
    historical_data: list[YearlyRecord] = field(default_factory=list)

    @property
    def requested(self) -> dict[str, Requested]:
        return {
            name: outcome
            for name, outcome in self.outcomes.items()
            if isinstance(outcome, Requested)
        }

    @property
    def statistics(self) -> dict[str, VariableStatistics | None]:
        return {name: o.statistics for name, o in self.requested.items()}

    @property
    def probabilities(self) -> dict[str, float]:
        return {name: o.probability for name, o in self.requested.items()}

    def to_dict(self) -> dict[str, Any]:
        """Export shape: {statistics, probabilities, historicalData, thresholds, risk, trends}."""
        requested = self.requested
        return {
            "statistics": {
                name: (stats.to_dict() if stats is not None else None)
                for name, stats in self.statistics.items()
            },
            "probabilities": self.probabilities,
            "thresholds": {name: o.threshold for name, o in requested.items()},
            "risk": {name: o.risk for name, o in requested.items()},
            "trends": {name: o.trend_per_decade for name, o in requested.items()},
            "historicalData": [record.to_dict() for record in self.historical_data],
        }
