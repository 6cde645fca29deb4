"""
Series extraction: turns a provider's raw daily series into clean observations.

NASA POWER returns one mapping per parameter, {"YYYYMMDD": value}, where a
day without an observation carries the fill value -999.  Everything here is
pure: the same raw series always yields the same result and nothing is
mutated.
"""
from __future__ import annotations

import calendar
import logging
import math
import numbers
from datetime import date, datetime
from decimal import Decimal
from typing import Any

import config
from models.observation import CleanedSeries, RawObservationSeries

logger = logging.getLogger("weatherish.series_extractor")


def _as_valid_value(value: Any) -> float | None:
    """
    Coerce a raw entry to a float, or return None if it is a sentinel or
    malformed (non-numeric, NaN, ±inf, bool, None).

    Accepts any real number (including numpy scalars), Decimal, or a
    numeric string.
    """
    if value is None or isinstance(value, bool):
        return None
    if not isinstance(value, (numbers.Real, Decimal, str)):
        return None
    try:
        number = float(value)
    except (ValueError, OverflowError):
        return None

    if not math.isfinite(number) or number <= config.SENTINEL_THRESHOLD:
        return None
    return number


def _year_of(date_key: str) -> int | None:
    prefix = str(date_key)[:4]
    if len(prefix) != 4 or not prefix.isdigit():
        return None
    return int(prefix)


def extract(raw: RawObservationSeries) -> CleanedSeries:
    """Drop sentinel and malformed entries; return the rest in date-key order."""
    points: list[tuple[str, float]] = []
    for key in sorted(raw, key=str):
        value = _as_valid_value(raw[key])
        if value is not None:
            points.append((str(key), value))

    dropped = len(raw) - len(points)
    if dropped:
        logger.debug("Dropped %d/%d invalid entries", dropped, len(raw))
    return CleanedSeries(tuple(points))


def bucket_by_year(raw: RawObservationSeries) -> list[int]:
    """Distinct years present in the date keys, ascending.  Gaps are not padded."""
    years = {year for year in (_year_of(key) for key in raw) if year is not None}
    return sorted(years)


def _values_in_year(raw: RawObservationSeries, year: int) -> list[float]:
    prefix = f"{year:04d}"
    values: list[float] = []
    for key, raw_value in raw.items():
        if not str(key).startswith(prefix):
            continue
        value = _as_valid_value(raw_value)
        if value is not None:
            values.append(value)
    return values


def yearly_mean(raw: RawObservationSeries, year: int) -> float:
    """
    Mean of the valid observations in *year*, or 0.0 if there are none.

    The zero fallback keeps one plottable point per year; use yearly_count()
    to tell an empty year from a genuine mean of zero.
    """
    values = _values_in_year(raw, year)
    if not values:
        return 0.0
    n = len(values)
    mean = sum(values) / n
    if not math.isfinite(mean):
        # sum overflowed; divide each term first
        mean = sum(v / n for v in values)
    return min(max(mean, min(values)), max(values))


def yearly_count(raw: RawObservationSeries, year: int) -> int:
    """Number of valid observations in *year*."""
    return len(_values_in_year(raw, year))


# ── Calendar window ───────────────────────────────────────────────────────────

def _anchor(year: int, month: int, day: int) -> date:
    """The target month/day in *year*; Feb 29 falls back to Feb 28 in non-leap years."""
    if month == 2 and day == 29 and not calendar.isleap(year):
        day = 28
    return date(year, month, day)


def select_calendar_window(
    raw: RawObservationSeries,
    month: int,
    day: int,
    window_days: int = 0,
) -> RawObservationSeries:
    """
    Keep entries within ±window_days of month/day in each entry's own year.

    The window wraps across year ends (Dec 30 is 2 days from Jan 1).  Keys
    that do not parse as YYYYMMDD dates are dropped; values are left as-is
    for extract() to judge.
    """
    window = max(int(window_days), 0)
    selected: RawObservationSeries = {}

    for key, value in raw.items():
        try:
            observed = datetime.strptime(str(key), "%Y%m%d").date()
        except ValueError:
            continue

        distance = min(
            abs((observed - _anchor(year, month, day)).days)
            for year in (observed.year - 1, observed.year, observed.year + 1)
            if date.min.year <= year <= date.max.year
        )
        if distance <= window:
            selected[key] = value

    logger.debug(
        "Calendar window %02d-%02d ±%d: kept %d/%d entries",
        month, day, window, len(selected), len(raw),
    )
    return selected
