from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date

import config


@dataclass(frozen=True)
class Location:
    lat: float
    lon: float
    name: str = ""

    @property
    def label(self) -> str:
        coords = f"{self.lat:.4f}, {self.lon:.4f}"
        return f"{self.name} ({coords})" if self.name else coords


@dataclass
class AnalysisQuery:
    """What the user asked for: a point, a calendar date and the variables of interest."""

    location: Location
    target_date: date
    variables: list[str] = field(default_factory=lambda: list(config.DEFAULT_VARIABLES))
    thresholds: dict[str, float] = field(default_factory=dict)
    start_year: int = config.DEFAULT_START_YEAR
    end_year: int = config.DEFAULT_END_YEAR
    window_days: int = config.DEFAULT_WINDOW_DAYS

    def threshold_for(self, variable: str) -> float:
        """User threshold for *variable*, or the configured default."""
        if variable in self.thresholds:
            return self.thresholds[variable]
        return config.VARIABLES[variable]["threshold"]

    @property
    def years_analyzed(self) -> str:
        return f"{self.start_year}-{self.end_year}"
