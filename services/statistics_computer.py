"""
Statistics computer: reduces a cleaned series to the numbers the dashboard shows.

Descriptive statistics treat the analysed years as the full population
(variance divisor = n, not n-1).  Computation runs in float64; rounding to
display precision happens once, at the end.

Also provides:
  - threshold-exceedance probability (strictly greater than the threshold)
  - risk level for an exceedance probability, per variable
  - a least-squares trend of the yearly means, per decade
"""
from __future__ import annotations

import logging
from typing import Iterable

import numpy as np
from scipy import stats

import config
from models.analysis import YearlyRecord
from models.observation import CleanedSeries
from models.statistics import VariableStatistics

logger = logging.getLogger("weatherish.statistics")

RISK_LOW = "low"
RISK_MEDIUM = "medium"
RISK_HIGH = "high"


def _scaled_std(values: np.ndarray, mean: float) -> float:
    """Population std for values near the float64 limit, where squaring overflows."""
    half = values * 0.5 - mean * 0.5
    scale = float(np.max(np.abs(half)))
    if scale == 0.0:
        return 0.0
    ratio = float(np.sqrt(np.mean((half / scale) ** 2)))
    return scale * (2.0 * ratio)


def summarize(series: CleanedSeries, unit: str) -> VariableStatistics | None:
    """
    Mean, population standard deviation, min and max of *series*.

      mean     = Σv / n
      variance = Σ(v - mean)² / n
      std      = sqrt(variance)

    Returns None for an empty series ("insufficient data", not an error).
    """
    if not series:
        return None

    values = np.asarray(series.values, dtype=np.float64)
    lo, hi = float(values.min()), float(values.max())
    with np.errstate(over="ignore", invalid="ignore"):
        mean = float(values.mean())
        variance = float(np.mean((values - mean) ** 2))
        if not np.isfinite(mean):
            mean = float(np.sum(values / values.size))
            variance = float("inf")
        std = float(np.sqrt(variance))
        if not np.isfinite(std):
            std = _scaled_std(values, mean)
    mean = min(max(mean, lo), hi)

    return VariableStatistics(
        mean=round(mean, config.STAT_DECIMALS),
        std_dev=round(std, config.STAT_DECIMALS),
        min=round(lo, config.STAT_DECIMALS),
        max=round(hi, config.STAT_DECIMALS),
        unit=unit,
        sample_count=int(values.size),
    )


def exceedance_probability(series: CleanedSeries, threshold: float) -> float:
    """
    Fraction of observations strictly greater than *threshold*.

    A value equal to the threshold does not exceed it.  An empty series
    yields exactly 0.0.
    """
    if not series:
        return 0.0

    values = np.asarray(series.values, dtype=np.float64)
    exceed = int(np.count_nonzero(values > threshold))
    return round(exceed / values.size, config.PROBABILITY_DECIMALS)


def classify_risk(variable: str, probability: float) -> str:
    """
    Map an exceedance probability to "low" / "medium" / "high".

    Cut-offs come from config.VARIABLES[variable]["risk"] as (medium, high);
    a probability must be strictly above a cut-off to reach that level.
    Unknown variables use (0.3, 0.5).
    """
    medium_cut, high_cut = config.VARIABLES.get(variable, {}).get("risk", (0.3, 0.5))
    if probability > high_cut:
        return RISK_HIGH
    if probability > medium_cut:
        return RISK_MEDIUM
    return RISK_LOW


def trend_per_decade(records: Iterable[YearlyRecord], variable: str) -> float | None:
    """
    Least-squares slope of the yearly means against year, scaled to 10 years.

    Years whose mean is the zero fallback (no valid samples) are skipped.
    Returns None with fewer than two usable years.
    """
    points = [
        (record.year, record.means[variable])
        for record in records
        if record.has_data(variable) and variable in record.means
    ]
    if len(points) < 2:
        return None

    years = np.array([p[0] for p in points], dtype=np.float64)
    means = np.array([p[1] for p in points], dtype=np.float64)
    if np.ptp(years) == 0:
        return None

    fit = stats.linregress(years, means)
    slope = float(fit.slope)
    if not np.isfinite(slope):
        logger.debug("Trend for %s undefined (slope=%s)", variable, slope)
        return None
    return round(slope * 10.0, config.TREND_DECIMALS)
