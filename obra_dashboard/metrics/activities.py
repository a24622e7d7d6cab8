"""
Activity rollups for the Activities and Overview tabs.
"""
from __future__ import annotations

from typing import List

import numpy as np
import pandas as pd

from obra_dashboard.data.models import ReportDetail
from obra_dashboard.data.semantic import activity_frame, labor_activity_frame


ROLLUP_COLUMNS = [
    "proceso",
    "und",
    "metrado_p",
    "metrado_e",
    "avance",
    "costo",
    "costo_por_unidad",
    "reportes",
    "trabajadores",
    "horas",
    "productividad",
]

DETAIL_COLUMNS = ["report_id", "fecha", "metrado_p", "metrado_e", "avance", "horas", "costo", "causas"]


def _attributable_hours(reports: List[ReportDetail]) -> pd.DataFrame:
    """Worker x activity rows that carry cost: a category and positive hours."""
    la = labor_activity_frame(reports)
    return la[(la["categoria"].fillna("") != "") & (la["horas"] > 0)]


def activity_lines(reports: List[ReportDetail]) -> pd.DataFrame:
    """
    Named activity lines with the labor logged against them.

    Returns DataFrame with activity_frame columns plus:
    - horas: hours of categorised workers on this line
    - costo: hours x category rate
    """
    df_act = activity_frame(reports)
    df_act = df_act[df_act["proceso"] != ""].copy()

    la = _attributable_hours(reports)
    if len(la) == 0:
        df_act["horas"] = 0.0
        df_act["costo"] = 0.0
        return df_act

    per_line = la.groupby(["report_id", "act_index"], as_index=False).agg(
        horas=("horas", "sum"),
        costo=("costo", "sum"),
    )
    df_act = df_act.merge(per_line, on=["report_id", "act_index"], how="left")
    df_act[["horas", "costo"]] = df_act[["horas", "costo"]].astype(float).fillna(0.0)
    return df_act


def _ratio(numerator: pd.Series, denominator: pd.Series, scale: float = 1.0) -> pd.Series:
    return pd.Series(
        np.where(denominator > 0, numerator / denominator.where(denominator > 0, 1.0) * scale, 0.0),
        index=numerator.index,
    )


def activity_rollup(reports: List[ReportDetail]) -> pd.DataFrame:
    """
    One row per activity name, sorted by executed quantity descending.

    - avance: total executed / total planned x 100 (0 without a plan)
    - costo_por_unidad: cost / executed (0 without execution)
    - trabajadores: distinct named workers with hours on the activity
    - productividad: executed units per hour
    """
    lines = activity_lines(reports)
    if len(lines) == 0:
        return pd.DataFrame(columns=ROLLUP_COLUMNS)

    rollup = lines.groupby("proceso", sort=False).agg(
        und=("und", "first"),
        metrado_p=("metrado_p", "sum"),
        metrado_e=("metrado_e", "sum"),
        costo=("costo", "sum"),
        horas=("horas", "sum"),
        reportes=("report_id", "nunique"),
    ).reset_index()

    la = _attributable_hours(reports)
    named = la[(la["trabajador"] != "") & (la["proceso"] != "")]
    workers = named.groupby("proceso")["trabajador"].nunique()

    rollup["avance"] = _ratio(rollup["metrado_e"], rollup["metrado_p"], 100)
    rollup["costo_por_unidad"] = _ratio(rollup["costo"], rollup["metrado_e"])
    rollup["trabajadores"] = rollup["proceso"].map(workers).fillna(0).astype(int)
    rollup["productividad"] = _ratio(rollup["metrado_e"], rollup["horas"])

    rollup = rollup.sort_values("metrado_e", ascending=False, kind="stable").reset_index(drop=True)
    return rollup[ROLLUP_COLUMNS]


def top_activities(reports: List[ReportDetail], n: int = 5) -> pd.DataFrame:
    """Top ``n`` activities by executed quantity."""
    return activity_rollup(reports).head(n).reset_index(drop=True)


def activity_detail(reports: List[ReportDetail], proceso: str) -> pd.DataFrame:
    """
    Per-report lines of one activity, newest first.

    ``avance`` is the line's own executed / planned x 100 (0 without a plan).
    """
    lines = activity_lines(reports)
    lines = lines[lines["proceso"] == proceso].copy()
    if len(lines) == 0:
        return pd.DataFrame(columns=DETAIL_COLUMNS)

    lines["avance"] = _ratio(lines["metrado_e"], lines["metrado_p"], 100)
    lines["_sort_date"] = pd.to_datetime(lines["fecha"], errors="coerce")
    lines = lines.sort_values("_sort_date", ascending=False, kind="stable", na_position="last")
    return lines[DETAIL_COLUMNS].reset_index(drop=True)
