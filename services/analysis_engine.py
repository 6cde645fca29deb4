"""
Analysis engine: merges per-variable statistics into one result.

Pipeline per query:
  1. Fetch one raw daily series per requested variable from NASA POWER
  2. Narrow each series to the calendar window around the requested date
  3. Clean each series (drop -999 fill values and malformed entries)
  4. Summarize: mean / std / min / max
  5. Exceedance probability against the user's threshold, plus risk level
  6. Bucket by year for the trend chart and fit a per-decade trend
  7. Return an AnalysisResult with every known variable either Requested
     or NotRequested
"""
from __future__ import annotations

import logging
from typing import Iterable

import config
from models.analysis import AnalysisResult, NotRequested, Requested, VariableOutcome, YearlyRecord
from models.errors import QueryError
from models.observation import RawObservationSeries
from models.query import AnalysisQuery
from services import series_extractor, statistics_computer
from utils.power_client import PowerClient

logger = logging.getLogger("weatherish.analysis_engine")


def build_yearly_aggregate(
    raw_by_variable: dict[str, RawObservationSeries],
) -> list[YearlyRecord]:
    """
    One record per distinct year across all series, ascending.

    A variable with no valid samples in a year gets a mean of 0.0 and a
    sample count of 0.
    """
    years: set[int] = set()
    for raw in raw_by_variable.values():
        years.update(series_extractor.bucket_by_year(raw))

    records: list[YearlyRecord] = []
    for year in sorted(years):
        means = {
            name: series_extractor.yearly_mean(raw, year)
            for name, raw in raw_by_variable.items()
        }
        counts = {
            name: series_extractor.yearly_count(raw, year)
            for name, raw in raw_by_variable.items()
        }
        records.append(YearlyRecord(year=year, means=means, sample_counts=counts))
    return records


def validate_variables(variables: Iterable[str]) -> list[str]:
    """Resolve variable names/aliases to config.VARIABLES keys, preserving order."""
    resolved: list[str] = []
    for name in variables:
        key = config.variable_key_from_text(name)
        if key is None:
            raise QueryError(
                f"Unknown variable {name!r} (expected one of: {', '.join(config.VARIABLES)})"
            )
        if key not in resolved:
            resolved.append(key)
    return resolved


class AnalysisEngine:
    """Runs the statistics core over the series supplied for one query."""

    def __init__(self, power: PowerClient | None = None) -> None:
        self._power = power

    @staticmethod
    def analyze(
        raw_by_variable: dict[str, RawObservationSeries],
        thresholds: dict[str, float] | None = None,
        requested: Iterable[str] | None = None,
    ) -> AnalysisResult:
        """
        Reduce each requested variable's raw series to statistics and an
        exceedance probability, and build the yearly aggregate.

        *requested* defaults to the variables present in *raw_by_variable*.
        A requested variable with no series is treated as empty.
        """
        thresholds = thresholds or {}
        wanted = list(requested) if requested is not None else list(raw_by_variable)
        wanted_series = {name: raw_by_variable.get(name, {}) for name in wanted}

        historical = build_yearly_aggregate(wanted_series)

        outcomes: dict[str, VariableOutcome] = {}
        for name in [*config.VARIABLES, *(n for n in wanted_series if n not in config.VARIABLES)]:
            if name not in wanted_series:
                outcomes[name] = NotRequested()
                continue
            outcomes[name] = AnalysisEngine._analyze_variable(
                name, wanted_series[name], thresholds, historical
            )

        return AnalysisResult(outcomes=outcomes, historical_data=historical)

    @staticmethod
    def _analyze_variable(
        name: str,
        raw: RawObservationSeries,
        thresholds: dict[str, float],
        historical: list[YearlyRecord],
    ) -> Requested:
        info = config.VARIABLES.get(name, {})
        unit = info.get("unit", "")
        threshold = thresholds.get(name, info.get("threshold", 0.0))

        series = series_extractor.extract(raw)
        summary = statistics_computer.summarize(series, unit)
        probability = statistics_computer.exceedance_probability(series, threshold)

        if summary is None:
            logger.info("%s: insufficient data (0/%d valid entries)", name, len(raw))
        else:
            logger.info(
                "%s: n=%d mean=%.2f%s P(>%.1f)=%.3f",
                name, summary.sample_count, summary.mean, unit, threshold, probability,
            )

        return Requested(
            statistics=summary,
            probability=probability,
            threshold=threshold,
            risk=statistics_computer.classify_risk(name, probability),
            trend_per_decade=statistics_computer.trend_per_decade(historical, name),
        )

    async def run_query(self, query: AnalysisQuery) -> AnalysisResult:
        """Fetch, window and analyze the series for *query*."""
        if self._power is None:
            raise RuntimeError("AnalysisEngine.run_query needs a PowerClient")

        variables = validate_variables(query.variables)
        if not variables:
            raise QueryError("No variables requested")
        if query.start_year > query.end_year:
            raise QueryError(
                f"start year {query.start_year} is after end year {query.end_year}"
            )

        raw_by_variable = await self._power.get_daily_series(
            query.location.lat,
            query.location.lon,
            variables,
            start_year=query.start_year,
            end_year=query.end_year,
        )

        windowed = {
            name: series_extractor.select_calendar_window(
                raw,
                query.target_date.month,
                query.target_date.day,
                query.window_days,
            )
            for name, raw in raw_by_variable.items()
        }

        thresholds = {name: query.threshold_for(name) for name in variables}
        return self.analyze(windowed, thresholds, requested=variables)
