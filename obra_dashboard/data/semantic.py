"""
Semantic layer: flat fact tables built from report lists, plus labor cost helpers.

CRITICAL: All rollups must start from these frames so the positional
activity <-> hours pairing is resolved in exactly one place.
"""
import pandas as pd
import numpy as np
from typing import Iterable, List

from obra_dashboard.config import CATEGORY_RATES, FALLBACK_RATE
from obra_dashboard.data.models import ReportDetail


ACTIVITY_COLUMNS = [
    "report_id", "fecha", "subcontratista", "act_index", "proceso", "und",
    "metrado_p", "metrado_e", "precio", "causas",
]

LABOR_COLUMNS = [
    "report_id", "fecha", "subcontratista", "worker_index", "dni", "trabajador",
    "categoria", "total_horas", "tarifa", "costo",
]

LABOR_ACTIVITY_COLUMNS = [
    "report_id", "fecha", "worker_index", "trabajador", "categoria", "tarifa",
    "act_index", "proceso", "metrado_p", "metrado_e", "horas",
]


# =============================================================================
# LABOR RATES
# =============================================================================

def hourly_rate(categoria: str) -> float:
    """Hourly cost for a worker category; unknown categories use the fallback rate."""
    return CATEGORY_RATES.get(categoria, FALLBACK_RATE)


def rate_series(categories: pd.Series) -> pd.Series:
    return categories.map(CATEGORY_RATES).fillna(FALLBACK_RATE).astype(float)


# =============================================================================
# FACT FRAMES
# =============================================================================

def _frame(rows: List[dict], columns: List[str]) -> pd.DataFrame:
    if not rows:
        return pd.DataFrame(columns=columns)
    return pd.DataFrame(rows, columns=columns)


def activity_frame(reports: Iterable[ReportDetail]) -> pd.DataFrame:
    """One row per activity line."""
    rows = []
    for report in reports:
        for idx, act in enumerate(report.actividades):
            rows.append({
                "report_id": report.id,
                "fecha": report.fecha,
                "subcontratista": report.subcontratista_bloque,
                "act_index": idx,
                "proceso": act.proceso,
                "und": act.und,
                "metrado_p": act.metrado_p,
                "metrado_e": act.metrado_e,
                "precio": act.precio,
                "causas": act.causas,
            })
    df = _frame(rows, ACTIVITY_COLUMNS)
    df[["metrado_p", "metrado_e", "precio"]] = df[["metrado_p", "metrado_e", "precio"]].astype(float)
    return df


def labor_frame(reports: Iterable[ReportDetail]) -> pd.DataFrame:
    """
    One row per worker-hours entry.

    ``costo`` is total hours x category rate. Entries without a category
    carry no cost (they are not attributable to a rate).
    """
    rows = []
    for report in reports:
        for idx, worker in enumerate(report.mano_obra):
            rows.append({
                "report_id": report.id,
                "fecha": report.fecha,
                "subcontratista": report.subcontratista_bloque,
                "worker_index": idx,
                "dni": worker.dni,
                "trabajador": worker.trabajador,
                "categoria": worker.categoria,
                "total_horas": worker.total_horas,
            })
    df = _frame(rows, LABOR_COLUMNS)
    df["total_horas"] = df["total_horas"].astype(float)
    df["tarifa"] = rate_series(df["categoria"])
    df["costo"] = np.where(df["categoria"].fillna("") != "", df["total_horas"] * df["tarifa"], 0.0)
    df["costo"] = df["costo"].astype(float)
    return df


def labor_activity_frame(reports: Iterable[ReportDetail]) -> pd.DataFrame:
    """
    One row per (worker, activity) pair within each report.

    Hours are read in lock-step: ``horas[i]`` belongs to ``actividades[i]``.
    A worker with fewer hour entries than activities gets zero hours on the
    missing positions; surplus hour entries have no activity and are left
    out here (they still count in ``labor_frame.total_horas``).

    Adds ``horas_actividad`` (all workers' hours on the activity in that
    report) for proportional allocation.
    """
    rows = []
    for report in reports:
        for w_idx, worker in enumerate(report.mano_obra):
            for a_idx, act in enumerate(report.actividades):
                rows.append({
                    "report_id": report.id,
                    "fecha": report.fecha,
                    "worker_index": w_idx,
                    "trabajador": worker.trabajador,
                    "categoria": worker.categoria,
                    "act_index": a_idx,
                    "proceso": act.proceso,
                    "metrado_p": act.metrado_p,
                    "metrado_e": act.metrado_e,
                    "horas": worker.hours_on(a_idx),
                })
    df = _frame(rows, [c for c in LABOR_ACTIVITY_COLUMNS if c != "tarifa"])
    df[["metrado_p", "metrado_e", "horas"]] = df[["metrado_p", "metrado_e", "horas"]].astype(float)
    df["tarifa"] = rate_series(df["categoria"])
    df["costo"] = np.where(df["categoria"].fillna("") != "", df["horas"] * df["tarifa"], 0.0)
    df["costo"] = df["costo"].astype(float)
    df["horas_actividad"] = df.groupby(["report_id", "act_index"])["horas"].transform("sum") if len(df) else 0.0
    return df


# =============================================================================
# PROGRESS HELPERS
# =============================================================================

def progress_rows(df_act: pd.DataFrame) -> pd.Series:
    """
    Per-row progress % for rows with planned > 0 (others are dropped, not zeroed).
    """
    planned = df_act[df_act["metrado_p"] > 0]
    return planned["metrado_e"] / planned["metrado_p"] * 100


def mean_progress(df_act: pd.DataFrame) -> float:
    values = progress_rows(df_act)
    return float(values.mean()) if len(values) else 0.0


def progress_by(df_act: pd.DataFrame, keys: List[str]) -> pd.DataFrame:
    """Average row progress per group (planned > 0 rows only)."""
    planned = df_act[df_act["metrado_p"] > 0].copy()
    planned["avance"] = planned["metrado_e"] / planned["metrado_p"] * 100
    return planned.groupby(keys)["avance"].mean().reset_index()
