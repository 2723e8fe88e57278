"""
Tests for forecasting: column detection, SES / Holt, trend strength and
confidence.
"""

from __future__ import annotations

import pandas as pd
import pytest

from prepcast.services.forecasting import (
    ForecastingError,
    auto_forecast,
    calculate_confidence,
    calculate_trend_strength,
    detect_time_series_column,
    double_exponential_smoothing,
    simple_exponential_smoothing,
    validate_forecasting_suitability,
)

LINEAR = [2.0 * i for i in range(1, 11)]       # 2, 4, ... 20
ALTERNATING = [5, 6] * 5


class TestSmoothing:

    def test_holt_tracks_a_line(self):
        assert double_exponential_smoothing(LINEAR, steps=3) == pytest.approx([22, 24, 26])

    def test_ses_adds_recent_slope(self):
        result = simple_exponential_smoothing([1, 1, 1, 1, 1], steps=2)
        assert result == pytest.approx([1, 1])

    def test_too_few_points(self):
        with pytest.raises(ForecastingError):
            simple_exponential_smoothing([1, 2])
        with pytest.raises(ForecastingError):
            double_exponential_smoothing([1, 2])


class TestTrendAndConfidence:

    def test_perfect_line(self):
        assert calculate_trend_strength(LINEAR) == pytest.approx(1.0)

    def test_falling_line_is_absolute(self):
        assert calculate_trend_strength(LINEAR[::-1]) == pytest.approx(1.0)

    def test_constant_series(self):
        assert calculate_trend_strength([3] * 10) == 0.0

    def test_confidence_bounds(self):
        assert calculate_confidence([5] * 10) == 90.0
        assert calculate_confidence([0, 0]) == 60.0
        assert calculate_confidence([1, 100, 1, 100]) == 60.0
        assert 60.0 <= calculate_confidence(LINEAR) <= 95.0


class TestAutoForecast:

    def test_linear_series_selects_holt(self):
        result = auto_forecast(LINEAR, steps=5)
        assert result.method == "Double Exponential Smoothing (Holt)"
        assert result.trend_strength == pytest.approx(100.0)
        assert result.predictions == pytest.approx([22, 24, 26, 28, 30])

    def test_flat_series_selects_ses(self):
        result = auto_forecast(ALTERNATING, steps=3)
        assert result.method == "Simple Exponential Smoothing"
        assert len(result.predictions) == 3

    def test_needs_ten_points(self):
        with pytest.raises(ForecastingError):
            auto_forecast(LINEAR[:9])


class TestColumnDetection:

    def test_first_qualifying_column_wins(self):
        df = pd.DataFrame({
            "name": [f"r{i}" for i in range(10)],
            "flat": [1] * 10,
            "sales": LINEAR,
            "cost": ALTERNATING,
        })
        candidate = detect_time_series_column(df, list(df.columns))
        assert candidate.column == "sales"
        assert candidate.values == LINEAR
        assert candidate.has_date is False
        assert candidate.original_length == 10

    def test_date_column_noticed(self):
        df = pd.DataFrame({"order_date": [f"2024-01-{i:02d}" for i in range(1, 11)], "sales": LINEAR})
        assert detect_time_series_column(df, list(df.columns)).has_date is True

    def test_short_table(self):
        df = pd.DataFrame({"sales": LINEAR[:5]})
        assert detect_time_series_column(df, ["sales"]) is None

    def test_suitability_report(self):
        good = validate_forecasting_suitability(pd.DataFrame({"sales": LINEAR}), ["sales"])
        assert good.suitable is True
        assert good.column == "sales"
        assert good.data_points == 10

        bad = validate_forecasting_suitability(pd.DataFrame({"sales": LINEAR[:5]}), ["sales"])
        assert bad.suitable is False
        assert bad.reason
