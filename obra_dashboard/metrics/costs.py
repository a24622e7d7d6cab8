"""
Cost rollups for the Costs and Overview tabs.
"""
from __future__ import annotations

from typing import List

import numpy as np
import pandas as pd

from obra_dashboard.config import UNSPECIFIED_CONTRACTOR
from obra_dashboard.data.models import ReportDetail
from obra_dashboard.data.semantic import activity_frame, hourly_rate, labor_frame, progress_by
from obra_dashboard.metrics.activities import activity_lines
from obra_dashboard.metrics.kpi import report_cost, report_progress
from obra_dashboard.modeling.forecast import bucket_reports


SHORT_MONTHS = ["ene", "feb", "mar", "abr", "may", "jun", "jul", "ago", "sept", "oct", "nov", "dic"]


def _share(values: pd.Series) -> pd.Series:
    total = values.sum()
    if total <= 0:
        return pd.Series(0.0, index=values.index)
    return values / total * 100


def cost_by_month(reports: List[ReportDetail]) -> pd.DataFrame:
    """Returns DataFrame with period_start, label, costo; months ascending."""
    buckets = bucket_reports(reports, freq="month")
    return buckets[["period_start", "label", "costo"]]


def cost_by_category(reports: List[ReportDetail]) -> pd.DataFrame:
    """Returns DataFrame with categoria, costo for the distribution chart."""
    df = labor_frame(reports)
    df = df[df["categoria"].fillna("") != ""]
    if len(df) == 0:
        return pd.DataFrame(columns=["categoria", "costo"])
    return df.groupby("categoria", sort=False)["costo"].sum().reset_index()


def activity_costs(reports: List[ReportDetail], n: int = 10) -> pd.DataFrame:
    """
    Top ``n`` activities by labor cost.

    Returns DataFrame with:
    - proceso, metrado_e, costo
    - costo_por_unidad: 0 without executed quantity
    - porcentaje: share of the cost of all activities, not just the top ``n``
    """
    columns = ["proceso", "metrado_e", "costo", "costo_por_unidad", "porcentaje"]
    lines = activity_lines(reports)
    if len(lines) == 0:
        return pd.DataFrame(columns=columns)

    result = lines.groupby("proceso", sort=False).agg(
        metrado_e=("metrado_e", "sum"),
        costo=("costo", "sum"),
    ).reset_index()
    result["costo_por_unidad"] = np.where(
        result["metrado_e"] > 0,
        result["costo"] / result["metrado_e"].where(result["metrado_e"] > 0, 1.0),
        0.0,
    )
    result["porcentaje"] = _share(result["costo"])

    result = result.sort_values("costo", ascending=False, kind="stable").head(n)
    return result[columns].reset_index(drop=True)


def category_cost_table(reports: List[ReportDetail]) -> pd.DataFrame:
    """Returns DataFrame with categoria, tarifa, horas, costo, porcentaje; cost descending."""
    columns = ["categoria", "tarifa", "horas", "costo", "porcentaje"]
    df = labor_frame(reports)
    df = df[df["categoria"].fillna("") != ""]
    if len(df) == 0:
        return pd.DataFrame(columns=columns)

    result = df.groupby("categoria", sort=False).agg(
        horas=("total_horas", "sum"),
        costo=("costo", "sum"),
    ).reset_index()
    result["tarifa"] = result["categoria"].map(hourly_rate)
    result["porcentaje"] = _share(result["costo"])

    result = result.sort_values("costo", ascending=False, kind="stable")
    return result[columns].reset_index(drop=True)


def _short_period(fecha: str) -> str:
    ts = pd.to_datetime(fecha, errors="coerce")
    if pd.isna(ts):
        return "?"
    return f"{SHORT_MONTHS[ts.month - 1]} {ts.year}"


def cost_vs_progress(reports: List[ReportDetail]) -> pd.DataFrame:
    """One row per report: label "<contractor> (<month> <year>)", avance, costo."""
    columns = ["report_id", "fecha", "label", "avance", "costo"]
    rows = [{
        "report_id": r.id,
        "fecha": r.fecha,
        "label": f"{r.subcontratista_bloque or 'N/A'} ({_short_period(r.fecha)})",
        "avance": report_progress(r),
        "costo": report_cost(r),
    } for r in reports]
    return pd.DataFrame(rows, columns=columns)


def contractor_summary(reports: List[ReportDetail]) -> pd.DataFrame:
    """
    Returns DataFrame with:
    - subcontratista: "Sin especificar" for reports without one
    - avance: mean row progress over the contractor's activities
    - reportes: report count
    - costo: labor cost

    Sorted by progress descending.
    """
    columns = ["subcontratista", "avance", "reportes", "costo"]
    if not reports:
        return pd.DataFrame(columns=columns)

    df_act = activity_frame(reports)
    df_act["subcontratista"] = df_act["subcontratista"].replace("", UNSPECIFIED_CONTRACTOR)
    df_lab = labor_frame(reports)
    df_lab["subcontratista"] = df_lab["subcontratista"].replace("", UNSPECIFIED_CONTRACTOR)

    names = pd.Series([r.subcontratista_bloque or UNSPECIFIED_CONTRACTOR for r in reports])
    result = names.value_counts(sort=False).rename_axis("subcontratista").rename("reportes").reset_index()

    avance = progress_by(df_act, ["subcontratista"]).set_index("subcontratista")["avance"]
    cost = df_lab.groupby("subcontratista")["costo"].sum()

    result["avance"] = result["subcontratista"].map(avance).fillna(0.0).astype(float)
    result["costo"] = result["subcontratista"].map(cost).fillna(0.0).astype(float)

    result = result.sort_values("avance", ascending=False, kind="stable")
    return result[columns].reset_index(drop=True)
