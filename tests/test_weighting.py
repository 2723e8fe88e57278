"""
Tests for weighted statistics (Kish effective sample size, SE, 95% MoE).
"""

from __future__ import annotations

import math

import pandas as pd
import pytest

from prepcast.schemas.cleaning import WeightConfig
from prepcast.services.weighting import compute_weighted_stats, weighted_column_stats


class TestWeightedColumnStats:

    def test_weighted_mean(self):
        result = weighted_column_stats([10, 20], [1, 3])
        assert result.mean == pytest.approx(17.5)
        assert result.effective_sample_size == pytest.approx(1.6)
        assert result.standard_error == pytest.approx(math.sqrt(18.75 / 1.6))
        assert result.margin_of_error == pytest.approx(1.96 * math.sqrt(18.75 / 1.6))
        assert result.sample_size == 2

    def test_zero_weights_yield_none(self):
        assert weighted_column_stats([1, 2], [0, 0]) is None

    def test_empty_values(self):
        assert weighted_column_stats([], []) is None

    def test_margin_of_error_disabled(self):
        result = weighted_column_stats([10, 20], [1, 3], compute_margin_of_error=False)
        assert result.margin_of_error is None


class TestComputeWeightedStats:

    def test_weight_column_excluded_from_results(self):
        df = pd.DataFrame({"val": [10, 20], "w": [1, 3]})
        result = compute_weighted_stats(df, ["val", "w"], WeightConfig(weight_column="w"))
        assert list(result) == ["val"]
        assert result["val"].mean == pytest.approx(17.5)

    def test_unit_weights_without_weight_column(self):
        df = pd.DataFrame({"val": [10, 20]})
        result = compute_weighted_stats(df, ["val"], WeightConfig())
        assert result["val"].mean == pytest.approx(15.0)
        assert result["val"].effective_sample_size == pytest.approx(2.0)

    def test_negative_weight_clamped_to_zero(self):
        df = pd.DataFrame({"val": [10, 20], "w": [-5, 1]})
        result = compute_weighted_stats(df, ["val"], WeightConfig(weight_column="w"))
        assert result["val"].mean == pytest.approx(20.0)

    def test_non_numeric_weight_keeps_unit_weight(self):
        df = pd.DataFrame({"val": [10, 20], "w": ["abc", 3]})
        result = compute_weighted_stats(df, ["val"], WeightConfig(weight_column="w"))
        assert result["val"].mean == pytest.approx(17.5)

    def test_text_cells_dropped_with_their_weights(self):
        df = pd.DataFrame({"val": [10, "n/a", 20], "w": [1, 100, 3]})
        result = compute_weighted_stats(df, ["val"], WeightConfig(weight_column="w"))
        assert result["val"].mean == pytest.approx(17.5)
        assert result["val"].sample_size == 2

    def test_text_column_skipped(self):
        df = pd.DataFrame({"name": ["a", "b"], "val": [1, 2]})
        result = compute_weighted_stats(df, ["name", "val"], WeightConfig())
        assert "name" not in result
