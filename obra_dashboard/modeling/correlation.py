"""
Pairwise Pearson correlation between per-report variables.
"""
from __future__ import annotations

import itertools
import math
from typing import List, Optional, Sequence

import numpy as np
import pandas as pd

from obra_dashboard.config import config
from obra_dashboard.data.models import ReportDetail
from obra_dashboard.metrics.kpi import report_cost, report_hours, report_progress

VARIABLE_LABELS = {
    "num_trabajadores": "Num. Trabajadores",
    "horas_totales": "Horas Totales",
    "avance": "Avance",
    "costo": "Costo",
}


def report_variables(reports: List[ReportDetail]) -> pd.DataFrame:
    """
    Returns DataFrame with one row per report:
    - report_id
    - num_trabajadores: distinct named workers on the report
    - horas_totales
    - avance: average activity progress
    - costo: labor cost
    """
    rows = [{
        "report_id": r.id,
        "num_trabajadores": float(len({w.trabajador for w in r.mano_obra if w.trabajador})),
        "horas_totales": report_hours(r),
        "avance": report_progress(r),
        "costo": report_cost(r),
    } for r in reports]
    return pd.DataFrame(rows, columns=["report_id"] + list(VARIABLE_LABELS))


def pearson(x: Sequence[float], y: Sequence[float]) -> float:
    """
    Pearson coefficient; 0 when undefined (fewer than two points or zero variance).
    """
    x = np.asarray(x, dtype=float)
    y = np.asarray(y, dtype=float)
    n = len(x)
    if n < 2 or n != len(y):
        return 0.0

    dx = x - x.mean()
    dy = y - y.mean()
    denominator = math.sqrt(float((dx * dx).sum()) * float((dy * dy).sum()))
    if denominator == 0:
        return 0.0

    r = float((dx * dy).sum()) / denominator
    return 0.0 if math.isnan(r) else r


def compute_correlations(reports: List[ReportDetail], min_reports: Optional[int] = None) -> pd.DataFrame:
    """
    Returns DataFrame with one row per variable pair:
    - var1, var2: display labels
    - correlation: in [-1, 1]

    Sorted by descending absolute correlation. Empty below ``min_reports``.
    """
    columns = ["var1", "var2", "correlation"]
    if min_reports is None:
        min_reports = config.min_correlation_reports

    if len(reports) < min_reports:
        return pd.DataFrame(columns=columns)

    df = report_variables(reports)
    rows = []
    for a, b in itertools.combinations(VARIABLE_LABELS, 2):
        rows.append({
            "var1": VARIABLE_LABELS[a],
            "var2": VARIABLE_LABELS[b],
            "correlation": pearson(df[a], df[b]),
        })

    result = pd.DataFrame(rows, columns=columns)
    order = result["correlation"].abs().sort_values(ascending=False, kind="stable").index
    return result.loc[order].reset_index(drop=True)


def correlation_strength(r: float) -> str:
    """Spanish qualitative label for a coefficient."""
    magnitude = abs(r)
    if magnitude >= 0.7:
        return "fuerte"
    if magnitude >= 0.4:
        return "moderada"
    return "débil"
