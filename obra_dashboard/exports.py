"""
Export utilities for dashboard tables and report details.

Every exporter returns ``(bytes, filename)`` for ``st.download_button``.
Empty frames export as header-only files.
"""
import pandas as pd
from typing import Dict, Optional, Tuple
from datetime import datetime
from io import BytesIO

from obra_dashboard.data.models import ReportDetail

# Excel caps sheet names at 31 characters
MAX_SHEET_NAME = 31


def format_export_filename(base_name: str, extension: str = "csv",
                           include_timestamp: bool = True) -> str:
    """Generate formatted export filename."""
    if include_timestamp:
        timestamp = datetime.now().strftime('%Y%m%d_%H%M%S')
        return f"{base_name}_{timestamp}.{extension}"
    return f"{base_name}.{extension}"


def export_dataframe_csv(df: pd.DataFrame, base_name: str = "export") -> Tuple[bytes, str]:
    """
    Export dataframe to CSV bytes.

    Encoded as UTF-8 with BOM so spreadsheet tools read accented labels.
    """
    csv_bytes = df.to_csv(index=False).encode("utf-8-sig")
    return csv_bytes, format_export_filename(base_name, "csv")


def export_dataframe_excel(df: pd.DataFrame, base_name: str = "export",
                           sheet_name: str = "Datos") -> Tuple[bytes, str]:
    """Export dataframe to a single-sheet workbook."""
    return export_sheets_excel({sheet_name: df}, base_name)


def export_sheets_excel(sheets: Dict[str, pd.DataFrame], base_name: str = "dashboard") -> Tuple[bytes, str]:
    """
    Export several frames, one sheet each, in insertion order.
    """
    buffer = BytesIO()
    with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
        if not sheets:
            pd.DataFrame().to_excel(writer, sheet_name="Datos", index=False)
        for name, df in sheets.items():
            df.to_excel(writer, sheet_name=name[:MAX_SHEET_NAME], index=False)

    return buffer.getvalue(), format_export_filename(base_name, "xlsx")


def report_detail_frames(report: ReportDetail) -> Dict[str, pd.DataFrame]:
    """
    Summary, activity and labor sheets for one report.

    Labor rows carry one column per activity with the hours logged on it.
    """
    summary = pd.DataFrame([{
        "Fecha": report.fecha,
        "Elaborado por": report.elaborado_por,
        "Subcontratista / Bloque": report.subcontratista_bloque,
        "Revisado por": report.revisado_por or "",
        "Usuario": report.usuario_email or "",
    }])

    activities = pd.DataFrame([{
        "Proceso": act.proceso,
        "Und": act.und,
        "Metrado P": act.metrado_p,
        "Metrado E": act.metrado_e,
        "Avance %": act.avance if act.avance is not None else 0.0,
        "Precio": act.precio,
        "Ubicación": act.ubicacion or "",
        "Causas": act.causas or "",
    } for act in report.actividades], columns=[
        "Proceso", "Und", "Metrado P", "Metrado E", "Avance %", "Precio", "Ubicación", "Causas",
    ])

    labels = [f"{i + 1}. {act.proceso}" for i, act in enumerate(report.actividades)]
    labor_rows = []
    for worker in report.mano_obra:
        row = {
            "DNI": worker.dni,
            "Trabajador": worker.trabajador,
            "Categoría": worker.categoria,
        }
        for i, label in enumerate(labels):
            row[label] = worker.hours_on(i)
        row["Total horas"] = worker.total_horas
        labor_rows.append(row)
    labor = pd.DataFrame(labor_rows, columns=["DNI", "Trabajador", "Categoría"] + labels + ["Total horas"])

    return {"Resumen": summary, "Actividades": activities, "Mano de obra": labor}


def export_report_excel(report: ReportDetail) -> Tuple[bytes, str]:
    """Export one report (summary, activities, labor) to Excel."""
    data, _ = export_sheets_excel(report_detail_frames(report))
    filename = f"reporte_{report.fecha}_{report.id}.xlsx"
    return data, filename


def export_report_csv(report: ReportDetail, section: Optional[str] = None) -> Tuple[bytes, str]:
    """Export one section of a report ("Actividades" by default) to CSV."""
    frames = report_detail_frames(report)
    section = section or "Actividades"
    csv_bytes = frames[section].to_csv(index=False).encode("utf-8-sig")
    slug = section.lower().replace(" ", "_")
    return csv_bytes, f"reporte_{report.fecha}_{report.id}_{slug}.csv"
