#!/usr/bin/env python3
"""
Weatherish: Unit test suite.
Tests every component in isolation without hitting live APIs.

Run with pytest, or directly: python test_all.py
"""
import asyncio
import json
import math
import sys
import tempfile
import traceback
from datetime import date, datetime, timezone
from decimal import Decimal
from pathlib import Path

import numpy as np

import config
from models.analysis import AnalysisResult, NotRequested, Requested, YearlyRecord
from models.errors import DataFetchError, QueryError, WeatherishError
from models.observation import CleanedSeries
from models.query import AnalysisQuery, Location
from models.statistics import VariableStatistics
from services import series_extractor, statistics_computer
from services.analysis_engine import AnalysisEngine, build_yearly_aggregate, validate_variables
from services.exporter import build_export_payload, export_to_file
from services.summary import ChatInbox, ChatRequest, format_summary, format_variable_line


def _series(values) -> CleanedSeries:
    """Series from bare values, keyed by ordinal position."""
    return CleanedSeries(tuple((f"{i:08d}", float(v)) for i, v in enumerate(values)))


# ═══════════════════════════════════════════════════════════════════════════════
# 1. Config
# ═══════════════════════════════════════════════════════════════════════════════


def test_config_variables():
    for key in ("temperature", "precipitation", "windSpeed", "humidity"):
        assert key in config.VARIABLES, f"Missing variable {key}"
        info = config.VARIABLES[key]
        assert {"code", "unit", "label", "threshold", "risk"} <= set(info)


def test_variable_aliases():
    assert config.variable_key_from_text("Wind") == "windSpeed"
    assert config.variable_key_from_text("T2M") == "temperature"
    assert config.variable_key_from_text(" rain ") == "precipitation"
    assert config.variable_key_from_text("Humidity") == "humidity"
    assert config.variable_key_from_text("snowfall") is None


# ═══════════════════════════════════════════════════════════════════════════════
# 2. Series extraction
# ═══════════════════════════════════════════════════════════════════════════════


def test_extract_drops_sentinel():
    """{"20040101": 25, "20040102": -999, "20040103": 30} → two points"""
    raw = {"20040101": 25.0, "20040102": -999, "20040103": 30.0}
    series = series_extractor.extract(raw)
    assert list(series) == [("20040101", 25.0), ("20040103", 30.0)], f"Got {list(series)}"


def test_extract_drops_malformed():
    raw = {
        "20040101": float("nan"),
        "20040102": float("inf"),
        "20040103": "abc",
        "20040104": None,
        "20040105": True,
        "20040106": "12.5",
        "20040107": -999.0,
        "20040108": -1000,
        "20040109": -998.9,
        "20040110": float("-inf"),
    }
    series = series_extractor.extract(raw)
    assert list(series) == [("20040106", 12.5), ("20040109", -998.9)], f"Got {list(series)}"
    for value in series.values:
        assert math.isfinite(value) and value > -999


def test_extract_accepts_numpy_and_decimal():
    raw = {
        "20040101": np.int64(25),
        "20040102": np.float32(30.0),
        "20040103": np.float64(-999.0),
        "20040104": Decimal("12.5"),
        "20040105": np.float64("nan"),
        "20040106": Decimal("NaN"),
    }
    series = series_extractor.extract(raw)
    assert list(series) == [("20040101", 25.0), ("20040102", 30.0), ("20040104", 12.5)], f"Got {list(series)}"
    assert all(type(v) is float for v in series.values)
    assert series_extractor.yearly_count(raw, 2004) == 3


def test_extract_orders_chronologically():
    raw = {"20050101": 3.0, "20040101": 1.0, "20040601": 2.0}
    series = series_extractor.extract(raw)
    assert series.date_keys == ["20040101", "20040601", "20050101"]
    assert series.values == [1.0, 2.0, 3.0]


def test_extract_never_grows():
    raw = {"20040101": 1.0, "20040102": -999, "20040103": float("nan")}
    assert len(series_extractor.extract(raw)) <= len(raw)
    assert len(series_extractor.extract({})) == 0


def test_extract_idempotent():
    raw = {"20040103": 30.0, "20040101": 25.0, "20040102": -999}
    first = series_extractor.extract(raw)
    second = series_extractor.extract(raw)
    assert first == second
    assert raw == {"20040103": 30.0, "20040101": 25.0, "20040102": -999}, "Input mutated"


def test_extract_all_sentinel_is_empty():
    series = series_extractor.extract({"20040101": -999, "20040102": -999.0})
    assert not series
    assert len(series) == 0


def test_bucket_by_year_skips_gaps():
    raw = {"20100101": 1.0, "20040101": 2.0, "20040505": -999, "20070303": 3.0}
    assert series_extractor.bucket_by_year(raw) == [2004, 2007, 2010]


def test_bucket_by_year_ignores_bad_keys():
    raw = {"20040101": 1.0, "abcd0101": 2.0, "": 3.0}
    assert series_extractor.bucket_by_year(raw) == [2004]


def test_yearly_mean_zero_fallback():
    """Valid values in 2004 only → years [2004, 2005], 2005 mean is 0"""
    raw = {"20040101": 10.0, "20040601": 20.0, "20041231": -999, "20050101": -999}
    assert series_extractor.bucket_by_year(raw) == [2004, 2005]
    assert series_extractor.yearly_mean(raw, 2004) == 15.0
    assert series_extractor.yearly_mean(raw, 2005) == 0
    assert series_extractor.yearly_count(raw, 2005) == 0
    assert series_extractor.yearly_count(raw, 2004) == 2


def test_yearly_mean_absent_year():
    assert series_extractor.yearly_mean({"20040101": 5.0}, 1999) == 0


def test_yearly_mean_near_float_limit():
    big = 1.7e308
    assert series_extractor.yearly_mean({"20040101": big, "20040102": big}, 2004) == big
    mean = series_extractor.yearly_mean({"20040101": big, "20040102": big, "20040103": 0.0}, 2004)
    assert math.isfinite(mean) and 0.0 <= mean <= big


def test_calendar_window_exact_day():
    raw = {"20040715": 1.0, "20050716": 2.0, "20050714": 3.0, "20060101": 4.0, "bad": 5.0}
    selected = series_extractor.select_calendar_window(raw, 7, 15)
    assert selected == {"20040715": 1.0}, f"Got {selected}"


def test_calendar_window_plus_minus():
    raw = {"20040715": 1.0, "20050716": 2.0, "20050714": 3.0, "20050718": 4.0}
    selected = series_extractor.select_calendar_window(raw, 7, 15, window_days=1)
    assert set(selected) == {"20040715", "20050716", "20050714"}


def test_calendar_window_wraps_year_end():
    raw = {"20041231": 1.0, "20050101": 2.0, "20050103": 3.0}
    selected = series_extractor.select_calendar_window(raw, 1, 1, window_days=1)
    assert set(selected) == {"20041231", "20050101"}, f"Got {selected}"


def test_calendar_window_leap_day():
    raw = {"20040229": 1.0, "20050228": 2.0, "20040228": 3.0}
    selected = series_extractor.select_calendar_window(raw, 2, 29)
    assert set(selected) == {"20040229", "20050228"}, f"Got {selected}"


def test_calendar_window_keeps_sentinels_for_extract():
    raw = {"20040715": -999, "20050715": 20.0}
    selected = series_extractor.select_calendar_window(raw, 7, 15)
    assert selected == raw


# ═══════════════════════════════════════════════════════════════════════════════
# 3. Statistics
# ═══════════════════════════════════════════════════════════════════════════════


def test_summarize_example():
    """cleaned [25, 30] → mean 27.5, std 2.5 (population), min 25, max 30"""
    series = series_extractor.extract({"20040101": 25.0, "20040102": -999, "20040103": 30.0})
    stats = statistics_computer.summarize(series, "°C")
    assert stats is not None
    assert stats.mean == 27.5, f"mean {stats.mean}"
    assert stats.std_dev == 2.5, f"std {stats.std_dev}"
    assert stats.min == 25.0 and stats.max == 30.0
    assert stats.unit == "°C"
    assert stats.sample_count == 2


def test_summarize_population_variance():
    """[2, 4, 4, 4, 5, 5, 7, 9] has population std 2.0 (sample std would be ~2.14)"""
    stats = statistics_computer.summarize(_series([2, 4, 4, 4, 5, 5, 7, 9]), "mm")
    assert stats.std_dev == 2.0, f"std {stats.std_dev}"
    assert stats.mean == 5.0


def test_summarize_rounds_to_two_places():
    stats = statistics_computer.summarize(_series([1.0, 2.0, 2.0]), "m/s")
    assert stats.mean == 1.67, f"mean {stats.mean}"
    assert stats.std_dev == 0.47, f"std {stats.std_dev}"


def test_summarize_empty_is_none():
    assert statistics_computer.summarize(CleanedSeries(), "°C") is None


def test_summarize_min_mean_max_order():
    for values in ([0.1, 0.1, 0.1], [-5.0, 3.3, 12.7, 0.0], [42.0], [1e-9, 2e-9]):
        stats = statistics_computer.summarize(_series(values), "")
        assert stats.min <= stats.mean <= stats.max, f"{values}: {stats}"


def test_summarize_near_float_limit():
    big = 1.7e308
    for values in ([big, big], [big, big, 0.0], [-big, big], [-big, big, big], [big] * 5 + [-big]):
        stats = statistics_computer.summarize(_series(values), "")
        assert stats.min <= stats.mean <= stats.max, f"{values}: {stats}"
        assert math.isfinite(stats.std_dev) and stats.std_dev >= 0.0, f"{values}: {stats}"

    stats = statistics_computer.summarize(_series([big, big]), "")
    assert stats.mean == big and stats.std_dev == 0.0
    stats = statistics_computer.summarize(_series([-1e308, 1e308]), "")
    assert stats.mean == 0.0
    assert math.isclose(stats.std_dev, 1e308, rel_tol=1e-12)


def test_summarize_single_value():
    stats = statistics_computer.summarize(_series([12.0]), "%")
    assert stats.mean == stats.min == stats.max == 12.0
    assert stats.std_dev == 0.0


def test_exceedance_example():
    """[25, 30, 35] over 30 → 1/3 → 0.333"""
    p = statistics_computer.exceedance_probability(_series([25, 30, 35]), 30)
    assert p == 0.333, f"Got {p}"


def test_exceedance_equal_does_not_count():
    series = _series([30.0, 30.0, 30.0])
    assert statistics_computer.exceedance_probability(series, 30.0) == 0.0
    assert statistics_computer.exceedance_probability(series, 29.999) == 1.0


def test_exceedance_empty_is_zero():
    for threshold in (-1e9, 0.0, 30.0, 1e9):
        assert statistics_computer.exceedance_probability(CleanedSeries(), threshold) == 0


def test_exceedance_monotonic():
    series = _series([3.1, -2.0, 7.5, 7.5, 0.0, 12.2, 4.4, 9.9])
    previous = 1.0
    for step in range(-40, 160):
        p = statistics_computer.exceedance_probability(series, step / 10.0)
        assert 0.0 <= p <= 1.0
        assert p <= previous, f"Not monotonic at {step / 10.0}: {p} > {previous}"
        previous = p


def test_classify_risk():
    assert statistics_computer.classify_risk("temperature", 0.3) == "low"
    assert statistics_computer.classify_risk("temperature", 0.35) == "medium"
    assert statistics_computer.classify_risk("temperature", 0.5) == "medium"
    assert statistics_computer.classify_risk("temperature", 0.51) == "high"
    assert statistics_computer.classify_risk("precipitation", 0.16) == "medium"
    assert statistics_computer.classify_risk("humidity", 0.61) == "high"
    assert statistics_computer.classify_risk("unknown", 0.4) == "medium"


def test_trend_per_decade():
    records = [
        YearlyRecord(2004, {"temperature": 10.0}, {"temperature": 3}),
        YearlyRecord(2005, {"temperature": 0.0}, {"temperature": 0}),
        YearlyRecord(2006, {"temperature": 10.2}, {"temperature": 3}),
        YearlyRecord(2008, {"temperature": 10.4}, {"temperature": 3}),
    ]
    trend = statistics_computer.trend_per_decade(records, "temperature")
    assert trend == 0.5, f"Expected +0.5 per decade, got {trend}"


def test_trend_needs_two_years():
    records = [
        YearlyRecord(2004, {"temperature": 10.0}, {"temperature": 3}),
        YearlyRecord(2005, {"temperature": 0.0}, {"temperature": 0}),
    ]
    assert statistics_computer.trend_per_decade(records, "temperature") is None
    assert statistics_computer.trend_per_decade([], "temperature") is None


# ═══════════════════════════════════════════════════════════════════════════════
# 4. Analysis engine
# ═══════════════════════════════════════════════════════════════════════════════


def test_yearly_aggregate_union_of_years():
    raw = {
        "temperature": {"20040101": 20.0, "20050101": 22.0},
        "precipitation": {"20050101": 4.0, "20060101": -999},
    }
    records = build_yearly_aggregate(raw)
    assert [r.year for r in records] == [2004, 2005, 2006]
    assert records[0].means == {"temperature": 20.0, "precipitation": 0.0}
    assert records[0].sample_counts == {"temperature": 1, "precipitation": 0}
    assert records[2].means["precipitation"] == 0.0
    assert not records[2].has_data("precipitation")
    assert records[1].has_data("precipitation")


def test_analyze_tags_every_variable():
    raw = {"temperature": {"20040101": 25.0, "20040102": 30.0, "20040103": 35.0}}
    result = AnalysisEngine.analyze(raw, {"temperature": 30.0})
    assert isinstance(result.outcomes["temperature"], Requested)
    for name in ("precipitation", "windSpeed", "humidity"):
        assert isinstance(result.outcomes[name], NotRequested), name
    assert list(result.outcomes) == list(config.VARIABLES)
    assert result.probabilities == {"temperature": 0.333}
    assert result.statistics["temperature"].mean == 30.0


def test_analyze_empty_series_is_insufficient_data():
    result = AnalysisEngine.analyze(
        {"humidity": {"20040101": -999}},
        requested=["humidity", "windSpeed"],
    )
    humidity = result.outcomes["humidity"]
    wind = result.outcomes["windSpeed"]
    assert humidity.insufficient_data and humidity.probability == 0.0
    assert wind.insufficient_data and wind.probability == 0.0
    assert result.statistics == {"humidity": None, "windSpeed": None}
    assert humidity.risk == "low"
    assert humidity.threshold == config.VARIABLES["humidity"]["threshold"]


def test_analyze_default_thresholds():
    raw = {"precipitation": {"20040101": 10.0, "20040102": 10.5}}
    result = AnalysisEngine.analyze(raw)
    assert result.outcomes["precipitation"].threshold == 10.0
    assert result.probabilities["precipitation"] == 0.5


def test_result_to_dict_shape():
    raw = {"temperature": {"20040101": 25.0, "20050101": 35.0}}
    result = AnalysisEngine.analyze(raw, {"temperature": 30.0})
    data = result.to_dict()
    assert set(data) >= {"statistics", "probabilities", "historicalData"}
    assert data["statistics"]["temperature"]["stdDev"] == 5.0
    assert data["historicalData"][0] == {
        "year": 2004,
        "temperature": 25.0,
        "sampleCounts": {"temperature": 1},
    }
    assert data["trends"]["temperature"] == 100.0
    json.dumps(data)


def test_validate_variables():
    assert validate_variables(["temp", "Wind", "temperature"]) == ["temperature", "windSpeed"]
    try:
        validate_variables(["snow"])
    except QueryError:
        pass
    else:
        raise AssertionError("Expected QueryError for unknown variable")


# ═══════════════════════════════════════════════════════════════════════════════
# 5. Summary, chat hand-off, export
# ═══════════════════════════════════════════════════════════════════════════════


def _sample_result() -> AnalysisResult:
    raw = {
        "temperature": {"20040715": 25.0, "20050715": 30.0, "20060715": 35.0},
        "precipitation": {"20040715": -999},
    }
    return AnalysisEngine.analyze(raw, {"temperature": 30.0, "precipitation": 10.0})


def _sample_query() -> AnalysisQuery:
    return AnalysisQuery(
        location=Location(lat=40.7829, lon=-73.9654, name="New York"),
        target_date=date(2025, 7, 15),
        variables=["temperature", "precipitation"],
        thresholds={"temperature": 30.0},
    )


def test_variable_line():
    result = _sample_result()
    line = format_variable_line("temperature", result.outcomes["temperature"])
    assert "33% probability of exceeding 30°C" in line, line
    assert "Medium Risk" in line, line
    assert "n=3" in line, line
    empty = format_variable_line("precipitation", result.outcomes["precipitation"])
    assert "insufficient data" in empty, empty


def test_format_summary():
    result = _sample_result()
    text = format_summary(result, Location(40.7829, -73.9654, "New York"), date(2025, 7, 15))
    assert text.startswith("Weather analysis for New York (40.7829, -73.9654) on July 15")
    assert "Temperature:" in text and "Precipitation:" in text
    assert "Wind Speed" not in text


def test_chat_inbox_roundtrip():
    async def _go():
        inbox = ChatInbox()
        request = ChatRequest.from_result(
            _sample_result(), Location(1.0, 2.0, "Somewhere"), date(2025, 1, 1)
        )
        await inbox.submit(request)
        assert inbox.pending == 1
        received = await inbox.get()
        assert received is request
        assert inbox.get_nowait() is None
        assert received.prompt.startswith("Explain this weather analysis:")
        assert "Somewhere" in received.summary

    asyncio.run(_go())


def test_chat_inbox_full():
    async def _go():
        inbox = ChatInbox(maxsize=1)
        request = ChatRequest.from_result(_sample_result(), Location(1.0, 2.0), date(2025, 1, 1))
        assert inbox.submit_nowait(request)
        assert not inbox.submit_nowait(request)

    asyncio.run(_go())


def test_export_payload():
    ts = datetime(2025, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
    payload = build_export_payload(_sample_query(), _sample_result(), timestamp=ts)
    assert payload["query"]["location"]["name"] == "New York"
    assert payload["query"]["date"] == "2025-07-15"
    assert payload["query"]["parameters"] == ["temperature", "precipitation"]
    assert payload["query"]["thresholds"] == {"temperature": 30.0, "precipitation": 10.0}
    assert payload["metadata"]["data_source"] == "NASA POWER API"
    assert payload["metadata"]["query_date"] == ts.isoformat()
    assert payload["metadata"]["years_analyzed"] == "2004-2024"
    assert payload["data"]["statistics"]["precipitation"] is None


def test_export_to_file():
    with tempfile.TemporaryDirectory() as tmp:
        written = export_to_file(_sample_query(), _sample_result(), tmp)
        assert written is not None and written.parent == Path(tmp)
        assert written.name.startswith("weatherish-data-") and written.suffix == ".json"
        with open(written, encoding="utf-8") as f:
            data = json.load(f)
        assert data["data"]["probabilities"]["temperature"] == 0.333

        explicit = export_to_file(_sample_query(), _sample_result(), Path(tmp) / "out" / "a.json")
        assert explicit == Path(tmp) / "out" / "a.json" and explicit.exists()


# ═══════════════════════════════════════════════════════════════════════════════
# 6. Models & errors
# ═══════════════════════════════════════════════════════════════════════════════


def test_statistics_to_dict():
    stats = VariableStatistics(mean=1.0, std_dev=0.5, min=0.0, max=2.0, unit="mm", sample_count=4)
    assert stats.to_dict() == {
        "mean": 1.0, "stdDev": 0.5, "min": 0.0, "max": 2.0, "unit": "mm", "sampleCount": 4,
    }
    assert stats.spread_label == "1.0mm (±0.5mm)"


def test_query_threshold_fallback():
    query = _sample_query()
    assert query.threshold_for("temperature") == 30.0
    assert query.threshold_for("windSpeed") == config.VARIABLES["windSpeed"]["threshold"]
    assert query.years_analyzed == "2004-2024"


def test_location_label():
    assert Location(1.23456, -2.5).label == "1.2346, -2.5000"
    assert Location(1.0, 2.0, "X").label == "X (1.0000, 2.0000)"


def test_error_hierarchy():
    err = DataFetchError("boom", "NASA POWER", status_code=503, url="https://example")
    assert isinstance(err, WeatherishError)
    assert "[NASA POWER] boom (HTTP 503)" in str(err)
    assert err.to_dict()["status_code"] == 503
    assert issubclass(QueryError, WeatherishError)


# ═══════════════════════════════════════════════════════════════════════════════
# Script runner
# ═══════════════════════════════════════════════════════════════════════════════

if __name__ == "__main__":
    passed = 0
    failed = 0
    for name, fn in list(globals().items()):
        if not name.startswith("test_") or not callable(fn):
            continue
        try:
            fn()
            print(f"  PASS: {name}")
            passed += 1
        except Exception:
            print(f"  FAIL: {name}")
            traceback.print_exc()
            failed += 1

    print(f"\n{passed} passed, {failed} failed")
    sys.exit(1 if failed else 0)
