"""
Labor rollups: hours and cost per category, top workers, productivity and
efficiency per category.

Only worker-hours entries with a category are counted; uncategorised
entries carry no rate and are left out everywhere in this module.
"""
from __future__ import annotations

from typing import List

import numpy as np
import pandas as pd

from obra_dashboard.data.models import ReportDetail
from obra_dashboard.data.semantic import hourly_rate, labor_activity_frame, labor_frame
from obra_dashboard.modeling.allocation import add_allocation


CATEGORY_SUMMARY_COLUMNS = ["categoria", "trabajadores", "horas", "promedio_horas", "costo"]

WORKER_COLUMNS = [
    "trabajador",
    "categoria",
    "horas",
    "costo",
    "reportes",
    "actividad_principal",
    "metrado_asignado",
    "productividad",
]

EFFICIENCY_COLUMNS = ["categoria", "horas", "metrado_asignado", "productividad", "avance_promedio", "eficiencia"]

NO_ACTIVITY = "N/A"


def _categorised_labor(reports: List[ReportDetail]) -> pd.DataFrame:
    df = labor_frame(reports)
    return df[df["categoria"].fillna("") != ""]


def _categorised_labor_activity(reports: List[ReportDetail]) -> pd.DataFrame:
    la = labor_activity_frame(reports)
    la = la[la["categoria"].fillna("") != ""]
    return add_allocation(la)


def _safe_div(numerator: pd.Series, denominator: pd.Series) -> pd.Series:
    return pd.Series(
        np.where(denominator > 0, numerator / denominator.where(denominator > 0, 1.0), 0.0),
        index=numerator.index,
    )


# =============================================================================
# CATEGORY TOTALS
# =============================================================================

def category_hours(reports: List[ReportDetail]) -> pd.DataFrame:
    """Returns DataFrame with categoria, horas; sorted by hours descending."""
    df = _categorised_labor(reports)
    if len(df) == 0:
        return pd.DataFrame(columns=["categoria", "horas"])

    result = df.groupby("categoria", sort=False)["total_horas"].sum().rename("horas").reset_index()
    return result.sort_values("horas", ascending=False, kind="stable").reset_index(drop=True)


def category_summary(reports: List[ReportDetail]) -> pd.DataFrame:
    """
    Returns DataFrame with:
    - categoria
    - trabajadores: distinct named workers
    - horas
    - promedio_horas: hours per distinct worker (0 when none are named)
    - costo

    Sorted by cost descending.
    """
    df = _categorised_labor(reports)
    if len(df) == 0:
        return pd.DataFrame(columns=CATEGORY_SUMMARY_COLUMNS)

    named = df["trabajador"].where(df["trabajador"] != "")
    result = df.assign(_named=named).groupby("categoria", sort=False).agg(
        trabajadores=("_named", "nunique"),
        horas=("total_horas", "sum"),
        costo=("costo", "sum"),
    ).reset_index()

    result["promedio_horas"] = _safe_div(result["horas"], result["trabajadores"])
    result = result.sort_values("costo", ascending=False, kind="stable").reset_index(drop=True)
    return result[CATEGORY_SUMMARY_COLUMNS]


# =============================================================================
# WORKERS
# =============================================================================

def worker_rollup(reports: List[ReportDetail], top_n: int = 20) -> pd.DataFrame:
    """
    Top ``top_n`` named workers by hours.

    - categoria: first category the worker appears with; cost uses its rate
    - actividad_principal: activity with the most hours ("N/A" if none)
    - productividad: proportionally allocated executed quantity per hour
    """
    df = _categorised_labor(reports)
    df = df[df["trabajador"] != ""]
    if len(df) == 0:
        return pd.DataFrame(columns=WORKER_COLUMNS)

    result = df.groupby("trabajador", sort=False).agg(
        categoria=("categoria", "first"),
        horas=("total_horas", "sum"),
        reportes=("report_id", "nunique"),
    ).reset_index()
    result["costo"] = result["horas"] * result["categoria"].map(hourly_rate)

    la = _categorised_labor_activity(reports)
    la = la[(la["trabajador"] != "") & (la["proceso"] != "") & (la["horas"] > 0)]

    allocated = la.groupby("trabajador")["metrado_asignado"].sum()
    main = (
        la.groupby(["trabajador", "proceso"], sort=False)["horas"].sum().reset_index()
        .sort_values("horas", ascending=False, kind="stable")
        .drop_duplicates("trabajador")
        .set_index("trabajador")["proceso"]
    )

    result["metrado_asignado"] = result["trabajador"].map(allocated).fillna(0.0).astype(float)
    result["actividad_principal"] = result["trabajador"].map(main).fillna(NO_ACTIVITY)
    result["productividad"] = _safe_div(result["metrado_asignado"], result["horas"])

    result = result.sort_values("horas", ascending=False, kind="stable").head(top_n)
    return result[WORKER_COLUMNS].reset_index(drop=True)


# =============================================================================
# PRODUCTIVITY / EFFICIENCY
# =============================================================================

def category_productivity(reports: List[ReportDetail]) -> pd.DataFrame:
    """
    Executed quantity per hour for each category.

    Hours are the workers' full totals; executed quantity is allocated per
    activity in proportion to each worker's share of the activity's hours.
    """
    columns = ["categoria", "horas", "metrado_asignado", "productividad"]
    df = _categorised_labor(reports)
    if len(df) == 0:
        return pd.DataFrame(columns=columns)

    hours = df.groupby("categoria", sort=False)["total_horas"].sum()
    la = _categorised_labor_activity(reports)
    allocated = la.groupby("categoria")["metrado_asignado"].sum()

    result = hours.rename("horas").reset_index()
    result["metrado_asignado"] = result["categoria"].map(allocated).fillna(0.0).astype(float)
    result["productividad"] = _safe_div(result["metrado_asignado"], result["horas"])
    return result[columns]


def category_efficiency(reports: List[ReportDetail]) -> pd.DataFrame:
    """
    Efficiency index per category: avance / (rate x productivity) x 10.

    Computed over hours logged against named activities only:
    - productividad: allocated executed quantity / those hours
    - avance_promedio: mean progress of the activities the hours went to
      (activities with no plan or zero progress are not averaged)
    - eficiencia: 0 when progress or productivity is 0

    Sorted by efficiency descending.
    """
    la = _categorised_labor_activity(reports)
    la = la[(la["proceso"] != "") & (la["horas"] > 0)].copy()
    if len(la) == 0:
        return pd.DataFrame(columns=EFFICIENCY_COLUMNS)

    la["avance"] = np.where(
        la["metrado_p"] > 0,
        la["metrado_e"] / la["metrado_p"].where(la["metrado_p"] > 0, 1.0) * 100,
        0.0,
    )
    la["avance"] = la["avance"].where(la["avance"] > 0)

    result = la.groupby("categoria", sort=False).agg(
        horas=("horas", "sum"),
        metrado_asignado=("metrado_asignado", "sum"),
        avance_promedio=("avance", "mean"),
    ).reset_index()
    result["avance_promedio"] = result["avance_promedio"].fillna(0.0)
    result["productividad"] = _safe_div(result["metrado_asignado"], result["horas"])

    rate = result["categoria"].map(hourly_rate)
    denominator = rate * result["productividad"]
    result["eficiencia"] = np.where(
        (result["avance_promedio"] > 0) & (denominator > 0),
        result["avance_promedio"] / denominator.where(denominator > 0, 1.0) * 10,
        0.0,
    )

    result = result.sort_values("eficiencia", ascending=False, kind="stable").reset_index(drop=True)
    return result[EFFICIENCY_COLUMNS]
