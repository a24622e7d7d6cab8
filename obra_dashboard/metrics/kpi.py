"""
Headline KPI pack.

Single source of truth for: report/activity/worker counts, average
progress, labor cost, cost per executed unit, efficiency index.
"""
from typing import List

import pandas as pd

from obra_dashboard.data.models import KPIMetrics, ReportDetail
from obra_dashboard.data.semantic import activity_frame, labor_frame, mean_progress


def compute_metrics(reports: List[ReportDetail]) -> KPIMetrics:
    """
    Compute KPIs over the given report list, from scratch.

    - avance_promedio: mean of executed/planned x 100 over rows with planned > 0
    - costo_mano_obra: sum of hours x category rate
    - costo_promedio_por_unidad: cost / total executed quantity
    - indice_eficiencia: avance_promedio / costo_promedio_por_unidad x 10

    Returns an all-zero KPIMetrics for an empty list.
    """
    if not reports:
        return KPIMetrics()

    df_act = activity_frame(reports)
    df_lab = labor_frame(reports)

    actividades = df_act.loc[df_act["proceso"] != "", "proceso"].nunique()
    trabajadores = df_lab.loc[df_lab["trabajador"] != "", "trabajador"].nunique()

    avance = mean_progress(df_act)
    costo_mano_obra = float(df_lab["costo"].sum())
    # Labor is the only cost component so far
    costo_total = costo_mano_obra

    total_ejecutado = float(df_act["metrado_e"].sum())
    costo_por_unidad = costo_total / total_ejecutado if total_ejecutado > 0 else 0.0

    return KPIMetrics(
        total_reportes=len(reports),
        total_actividades=int(actividades),
        total_trabajadores=int(trabajadores),
        avance_promedio=avance,
        costo_total=costo_total,
        costo_mano_obra=costo_mano_obra,
        costo_promedio_por_unidad=costo_por_unidad,
        indice_eficiencia=efficiency_index(avance, costo_por_unidad),
    )


def efficiency_index(avance: float, costo_por_unidad: float) -> float:
    """
    (avance / cost per unit) x 10.

    Unbounded as cost per unit approaches zero; reported as 0 when cost per
    unit is exactly zero (no cost or no executed quantity).
    """
    if avance <= 0 or costo_por_unidad <= 0:
        return 0.0
    return avance / costo_por_unidad * 10


# =============================================================================
# PER-REPORT HELPERS
# =============================================================================

def report_progress(report: ReportDetail) -> float:
    """Average progress of one report."""
    return mean_progress(activity_frame([report]))


def report_cost(report: ReportDetail) -> float:
    """Labor cost of one report."""
    return float(labor_frame([report])["costo"].sum())


def report_hours(report: ReportDetail) -> float:
    return float(sum(w.total_horas for w in report.mano_obra))


def report_summary(reports: List[ReportDetail]) -> pd.DataFrame:
    """
    Returns DataFrame with one row per report, in the given order:
    - report_id, fecha, elaborado_por, subcontratista
    - actividades, trabajadores: line counts
    - horas, avance, costo
    """
    columns = [
        "report_id", "fecha", "elaborado_por", "subcontratista",
        "actividades", "trabajadores", "horas", "avance", "costo",
    ]
    rows = [{
        "report_id": r.id,
        "fecha": r.fecha,
        "elaborado_por": r.elaborado_por,
        "subcontratista": r.subcontratista_bloque,
        "actividades": len(r.actividades),
        "trabajadores": len(r.mano_obra),
        "horas": report_hours(r),
        "avance": report_progress(r),
        "costo": report_cost(r),
    } for r in reports]
    return pd.DataFrame(rows, columns=columns)
