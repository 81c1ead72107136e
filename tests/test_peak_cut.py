"""
Peak-Cut Tests
"""

import pytest

from netchart.formatting import peak_cut, robust_estimate, smooth_column
from netchart.schemas import OFFLINE_KEY


def _rows(values, key="a"):
    return [{"created_at": i * 60_000, key: v, OFFLINE_KEY: None} for i, v in enumerate(values)]


class TestRobustEstimate:

    def test_empty_window(self):
        assert robust_estimate([], 0.3) is None

    def test_outlier_rejected(self):
        assert robust_estimate([50.0] * 10 + [5000.0], 0.3) == pytest.approx(50.0)

    def test_ewma_of_survivors(self):
        assert robust_estimate([10.0, 20.0], 0.5) == pytest.approx(15.0)

    def test_median_when_nothing_survives(self):
        assert robust_estimate([-4.0, -2.0], 0.3) == pytest.approx(-3.0)


class TestPeakCut:
    """Tests for the sliding-window filter over formatted rows."""

    def test_warmup_rows_unchanged(self):
        values = [50.0, 900.0] + [50.0] * 18
        result = peak_cut(_rows(values), ["a"], window=11, alpha=0.3)

        assert [row["a"] for row in result[:10]] == values[:10]

    def test_spike_suppressed(self):
        values = [50.0] * 15 + [500.0] + [50.0] * 4
        result = peak_cut(_rows(values), ["a"], window=11, alpha=0.3)

        assert result[15]["a"] == pytest.approx(50.0)
        assert all(row["a"] == pytest.approx(50.0) for row in result[10:])

    def test_nulls_stay_null(self):
        values = [50.0] * 12 + [None] + [50.0] * 5
        result = peak_cut(_rows(values), ["a"], window=11, alpha=0.3)

        assert result[12]["a"] is None
        assert result[13]["a"] == pytest.approx(50.0)

    def test_input_not_mutated(self):
        rows = _rows([50.0] * 15 + [500.0])
        before = [dict(row) for row in rows]
        peak_cut(rows, ["a"], window=11, alpha=0.3)

        assert rows == before

    def test_short_column_passthrough(self):
        assert smooth_column([1.0, 200.0, 3.0], window=11, alpha=0.3) == [1.0, 200.0, 3.0]

    def test_state_fresh_per_call(self):
        rows = _rows([float(i % 7 + 40) for i in range(30)])
        assert peak_cut(rows, ["a"], window=11, alpha=0.3) == peak_cut(rows, ["a"], window=11, alpha=0.3)

    def test_columns_independent(self):
        rows = [
            {"created_at": i, "a": 50.0, "b": 500.0 if i == 12 else 80.0}
            for i in range(15)
        ]
        result = peak_cut(rows, ["a", "b"], window=11, alpha=0.3)

        assert result[12]["a"] == pytest.approx(50.0)
        assert result[12]["b"] == pytest.approx(80.0)

    def test_missing_key_not_added(self):
        result = peak_cut(_rows([1.0] * 12), ["other"], window=11, alpha=0.3)
        assert "other" not in result[0]

    def test_settings_defaults(self):
        values = [50.0] * 15 + [500.0]
        assert peak_cut(_rows(values), ["a"]) == peak_cut(_rows(values), ["a"], window=11, alpha=0.3)
