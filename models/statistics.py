"""
Descriptive statistics for one climate variable over the analysed years.

All numeric fields are rounded for display; the rounding happens once, after
the full-precision computation in services.statistics_computer.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class VariableStatistics:
    """Summary of a non-empty CleanedSeries."""

    mean: float
    std_dev: float  # population standard deviation
    min: float
    max: float
    unit: str  # display unit, e.g. "°C"
    sample_count: int = 0

    @property
    def spread_label(self) -> str:
        """Human-readable "mean ± std" string."""
        return f"{self.mean:.1f}{self.unit} (±{self.std_dev:.1f}{self.unit})"

    def to_dict(self) -> dict[str, Any]:
        return {
            "mean": self.mean,
            "stdDev": self.std_dev,
            "min": self.min,
            "max": self.max,
            "unit": self.unit,
            "sampleCount": self.sample_count,
        }
