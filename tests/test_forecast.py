"""
Tests for time bucketing and linear-trend forecasting.
"""
import pytest
import pandas as pd
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))
sys.path.insert(0, str(Path(__file__).parent))

from builders import activity, report, worker
from obra_dashboard.modeling.forecast import (
    bucket_reports, describe_trend, fit_linear_trend, forecast_buckets,
)


@pytest.fixture
def reports():
    return [
        report("r1", "2024-05-06", [activity("A", 10, 5)], [worker(horas=[8])]),
        report("r2", "2024-05-08", [activity("A", 10, 10)], [worker(horas=[4])]),
        report("r3", "2024-05-13", [activity("A", 10, 2)]),
        report("r4", "fecha inválida", [activity("A", 10, 10)]),
    ]


class TestBucketReports:

    def test_daily_buckets_chronological(self, reports):
        df = bucket_reports(reports, freq="day")

        assert df["label"].tolist() == ["06/05/2024", "08/05/2024", "13/05/2024"]
        assert df["avance"].tolist() == pytest.approx([50.0, 100.0, 20.0])

    def test_iso_week_buckets(self, reports):
        df = bucket_reports(reports, freq="week")

        assert df["label"].tolist() == ["Sem 19 (2024)", "Sem 20 (2024)"]
        week = df.iloc[0]
        assert week["reportes"] == 2
        assert week["avance"] == pytest.approx(75.0)
        assert week["metrado_e"] == pytest.approx(15.0)
        assert week["costo"] == pytest.approx(12 * 23.00)

    def test_month_bucket(self, reports):
        df = bucket_reports(reports, freq="month")

        assert df["label"].tolist() == ["mayo 2024"]
        assert df["period_start"].iloc[0] == pd.Timestamp("2024-05-01")

    def test_unparseable_dates_left_out(self, reports):
        assert bucket_reports(reports, freq="month")["reportes"].sum() == 3

    def test_bucket_without_labor_has_zero_cost(self, reports):
        df = bucket_reports(reports, freq="day")
        assert df["costo"].iloc[-1] == 0.0

    def test_unknown_frequency(self, reports):
        with pytest.raises(ValueError):
            bucket_reports(reports, freq="year")

    def test_empty(self):
        assert len(bucket_reports([])) == 0


class TestLinearTrend:

    def test_recovers_exact_line(self):
        values = [2 * x + 3 for x in range(10)]
        trend = fit_linear_trend(values)

        assert trend.slope == pytest.approx(2.0)
        assert trend.intercept == pytest.approx(3.0)
        assert trend.forecast(1) == pytest.approx([23.0])

    def test_too_few_points(self):
        assert fit_linear_trend([1, 2, 3, 4]) is None
        assert fit_linear_trend([1, 2, 3, 4], min_points=3) is not None

    def test_single_point_never_fits(self):
        assert fit_linear_trend([5], min_points=1) is None

    def test_forecast_clamped_at_zero(self):
        trend = fit_linear_trend([10, 8, 6, 4, 2])

        assert trend.forecast(3) == pytest.approx([0.0, 0.0, 0.0])


class TestForecastBuckets:

    def _buckets(self, values):
        starts = pd.date_range("2024-05-01", periods=len(values), freq="D")
        return pd.DataFrame({"period_start": starts, "avance": values})

    def test_dates_follow_last_bucket(self):
        df = forecast_buckets(self._buckets([10, 20, 30, 40, 50]), horizon_days=3)

        assert df["fecha"].tolist() == list(pd.date_range("2024-05-06", periods=3, freq="D"))
        assert df["label"].iloc[0] == "06/05/2024"
        assert df["valor"].tolist() == pytest.approx([60.0, 70.0, 80.0])

    def test_disabled_below_minimum(self):
        assert len(forecast_buckets(self._buckets([10, 20]), horizon_days=7)) == 0

    def test_empty_buckets(self):
        assert len(forecast_buckets(pd.DataFrame(columns=["period_start", "avance"]))) == 0


class TestDescribeTrend:

    @pytest.mark.parametrize("values,rising,recent", [
        ([1, 2, 3, 4], True, True),
        ([1, 2, 3], True, False),
        ([5, 4, 3, 2], False, False),
        ([1, 5, 3, 3], True, False),
        ([], False, False),
    ])
    def test_flags(self, values, rising, recent):
        assert describe_trend(values) == {"rising": rising, "recent_non_decreasing": recent}
