"""
Time bucketing and linear-trend forecasting.
"""
from __future__ import annotations

import pandas as pd
import numpy as np
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

from obra_dashboard.config import config
from obra_dashboard.data.models import ReportDetail
from obra_dashboard.data.semantic import activity_frame, labor_frame

BUCKET_COLUMNS = ["period_start", "label", "avance", "metrado_e", "costo", "reportes"]

MONTH_NAMES = [
    "enero", "febrero", "marzo", "abril", "mayo", "junio",
    "julio", "agosto", "septiembre", "octubre", "noviembre", "diciembre",
]


# =============================================================================
# BUCKETING
# =============================================================================

def _period_start(dates: pd.Series, freq: str) -> pd.Series:
    dates = dates.dt.normalize()
    if freq == "day":
        return dates
    if freq == "week":
        # ISO weeks start on Monday
        return dates - pd.to_timedelta(dates.dt.weekday, unit="D")
    if freq == "month":
        return dates.dt.to_period("M").dt.to_timestamp()
    raise ValueError(f"Unknown bucket frequency: {freq}")


def _label(period_start: pd.Timestamp, freq: str) -> str:
    if freq == "week":
        iso = period_start.isocalendar()
        return f"Sem {iso[1]} ({iso[0]})"
    if freq == "month":
        return f"{MONTH_NAMES[period_start.month - 1]} {period_start.year}"
    return period_start.strftime("%d/%m/%Y")


def bucket_reports(reports: List[ReportDetail], freq: str = "day") -> pd.DataFrame:
    """
    Group reports by day, ISO week or month.

    Per bucket:
    - avance: mean progress over activity rows with planned > 0
    - metrado_e: executed quantity
    - costo: labor cost
    - reportes: report count

    Buckets are sorted chronologically ascending. Reports with an
    unparseable date are left out.
    """
    if not reports:
        return pd.DataFrame(columns=BUCKET_COLUMNS)

    df_rep = pd.DataFrame({
        "report_id": [r.id for r in reports],
        "fecha": pd.to_datetime([r.fecha for r in reports], errors="coerce"),
    }).dropna(subset=["fecha"])

    if len(df_rep) == 0:
        return pd.DataFrame(columns=BUCKET_COLUMNS)

    df_rep["period_start"] = _period_start(df_rep["fecha"], freq)
    period_of = dict(zip(df_rep["report_id"], df_rep["period_start"]))

    result = df_rep.groupby("period_start").agg(reportes=("report_id", "count"))

    df_act = activity_frame(reports)
    df_act["period_start"] = df_act["report_id"].map(period_of)
    df_act = df_act.dropna(subset=["period_start"])
    planned = df_act[df_act["metrado_p"] > 0]
    avance = (planned["metrado_e"] / planned["metrado_p"] * 100).groupby(planned["period_start"]).mean()
    executed = df_act.groupby("period_start")["metrado_e"].sum()

    df_lab = labor_frame(reports)
    df_lab["period_start"] = df_lab["report_id"].map(period_of)
    df_lab = df_lab.dropna(subset=["period_start"])
    cost = df_lab.groupby("period_start")["costo"].sum()

    result["avance"] = avance
    result["metrado_e"] = executed
    result["costo"] = cost
    result[["avance", "metrado_e", "costo"]] = result[["avance", "metrado_e", "costo"]].astype(float).fillna(0.0)

    result = result.sort_index().reset_index()
    result["label"] = [_label(ts, freq) for ts in result["period_start"]]
    return result[BUCKET_COLUMNS]


# =============================================================================
# LINEAR TREND
# =============================================================================

@dataclass
class LinearTrend:
    """Ordinary least squares line over x = 0..n-1."""
    slope: float
    intercept: float
    n: int

    def predict(self, x: float) -> float:
        return self.slope * x + self.intercept

    def forecast(self, horizon: int) -> List[float]:
        """Values for 1..horizon steps past the last point, clamped to >= 0."""
        return [max(self.predict(self.n - 1 + h), 0.0) for h in range(1, horizon + 1)]


def fit_linear_trend(values: Sequence[float], min_points: Optional[int] = None) -> Optional[LinearTrend]:
    """
    Fit y = m x + b with x = 0..n-1 using the closed-form sums.

    Returns None (forecasting disabled) with fewer than ``min_points`` values.
    """
    if min_points is None:
        min_points = config.min_forecast_points

    y = np.asarray(values, dtype=float)
    n = len(y)
    if n < max(min_points, 2):
        return None

    x = np.arange(n, dtype=float)
    sum_x = x.sum()
    sum_y = y.sum()
    sum_xy = (x * y).sum()
    sum_x2 = (x * x).sum()

    denominator = n * sum_x2 - sum_x * sum_x
    if denominator == 0:
        return None

    slope = (n * sum_xy - sum_x * sum_y) / denominator
    intercept = (sum_y - slope * sum_x) / n
    return LinearTrend(slope=float(slope), intercept=float(intercept), n=n)


def forecast_buckets(buckets: pd.DataFrame,
                     metric: str = "avance",
                     horizon_days: Optional[int] = None,
                     min_points: Optional[int] = None) -> pd.DataFrame:
    """
    Forecast ``metric`` for the days following the last bucket.

    Returns columns: fecha, label, valor. Empty when there are too few buckets.
    """
    columns = ["fecha", "label", "valor"]
    if horizon_days is None:
        horizon_days = config.default_forecast_days

    if len(buckets) == 0:
        return pd.DataFrame(columns=columns)

    trend = fit_linear_trend(buckets[metric].tolist(), min_points=min_points)
    if trend is None:
        return pd.DataFrame(columns=columns)

    last = pd.Timestamp(buckets["period_start"].iloc[-1])
    dates = [last + pd.Timedelta(days=i) for i in range(1, horizon_days + 1)]
    return pd.DataFrame({
        "fecha": dates,
        "label": [d.strftime("%d/%m/%Y") for d in dates],
        "valor": trend.forecast(horizon_days),
    }, columns=columns)


def describe_trend(values: Sequence[float]) -> Dict[str, bool]:
    """
    Direction flags for the conclusions panel.

    - rising: last value above the first
    - recent_non_decreasing: more than three values and the last three never drop
    """
    values = list(values)
    rising = len(values) > 1 and values[-1] > values[0]
    tail = values[-3:]
    recent = len(values) > 3 and all(b >= a for a, b in zip(tail, tail[1:]))
    return {"rising": rising, "recent_non_decreasing": recent}
