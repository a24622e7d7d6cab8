"""
Consistent number and display formatting (soles, Spanish labels).
"""
import pandas as pd
from typing import Dict, Union

from obra_dashboard.config import FORMAT_COUNT, FORMAT_CURRENCY, FORMAT_HOURS, FORMAT_PERCENT


# =============================================================================
# NUMBER FORMATTERS
# =============================================================================

def fmt_currency(value: Union[float, int, None]) -> str:
    """Format as soles: S/ 1,234.56"""
    if value is None or pd.isna(value):
        return "—"
    return FORMAT_CURRENCY.format(value)


def fmt_hours(value: Union[float, int, None]) -> str:
    """Format hours: 1,234.5"""
    if value is None or pd.isna(value):
        return "—"
    return FORMAT_HOURS.format(value)


def fmt_percent(value: Union[float, int, None]) -> str:
    """Format percentage: 12.3%"""
    if value is None or pd.isna(value):
        return "—"
    return FORMAT_PERCENT.format(value)


def fmt_count(value: Union[float, int, None]) -> str:
    if value is None or pd.isna(value):
        return "—"
    return FORMAT_COUNT.format(int(value))


def fmt_number(value: Union[float, int, None], decimals: int = 2) -> str:
    if value is None or pd.isna(value):
        return "—"
    return f"{value:,.{decimals}f}"


def fmt_productivity(value: Union[float, int, None]) -> str:
    """Executed units per hour: 0.42 u/h"""
    if value is None or pd.isna(value):
        return "—"
    return f"{value:.2f} u/h"


def fmt_date(value: str) -> str:
    """ISO date string to dd/mm/yyyy; unparseable input is returned unchanged."""
    ts = pd.to_datetime(value, errors="coerce")
    if pd.isna(ts):
        return value or "—"
    return ts.strftime("%d/%m/%Y")


# =============================================================================
# STATUS CLASSES
# =============================================================================

def progress_status(avance: float) -> str:
    """good >= 90%, warning >= 70%, bad otherwise."""
    if avance >= 90:
        return "good"
    if avance >= 70:
        return "warning"
    return "bad"


def productivity_status(productividad: float) -> str:
    if productividad > 0.5:
        return "good"
    if productividad > 0.2:
        return "warning"
    return "bad"


STATUS_EMOJI = {"good": "🟢", "warning": "🟡", "bad": "🔴"}


# =============================================================================
# DATAFRAME FORMATTING
# =============================================================================

COLUMN_FORMATS: Dict[str, str] = {
    "metrado_p": "number",
    "metrado_e": "number",
    "metrado_asignado": "number",
    "avance": "percent",
    "avance_promedio": "percent",
    "porcentaje": "percent",
    "costo": "currency",
    "costo_por_unidad": "currency",
    "tarifa": "currency",
    "horas": "hours",
    "promedio_horas": "hours",
    "productividad": "productivity",
    "eficiencia": "number",
    "reportes": "count",
    "trabajadores": "count",
}

COLUMN_LABELS = {
    "proceso": "Actividad",
    "und": "Und",
    "metrado_p": "Metrado P",
    "metrado_e": "Metrado E",
    "metrado_asignado": "Metrado asignado",
    "avance": "Avance",
    "avance_promedio": "Avance prom.",
    "costo": "Costo",
    "costo_por_unidad": "Costo/Und",
    "reportes": "Reportes",
    "trabajadores": "Trabajadores",
    "horas": "Horas",
    "promedio_horas": "HH/Trab",
    "productividad": "Productividad",
    "eficiencia": "Eficiencia",
    "categoria": "Categoría",
    "trabajador": "Trabajador",
    "actividad_principal": "Actividad principal",
    "subcontratista": "Subcontratista",
    "tarifa": "Costo/Hora",
    "porcentaje": "% del total",
    "fecha": "Fecha",
    "causas": "Causas",
    "elaborado_por": "Elaborado por",
    "label": "Periodo",
}

_FORMATTERS = {
    "currency": fmt_currency,
    "hours": fmt_hours,
    "percent": fmt_percent,
    "count": fmt_count,
    "number": fmt_number,
    "productivity": fmt_productivity,
}


def format_metric_df(df: pd.DataFrame) -> pd.DataFrame:
    """Format known metric columns as display strings and relabel headers."""
    df = df.copy()
    for col, fmt_type in COLUMN_FORMATS.items():
        if col in df.columns:
            df[col] = df[col].apply(_FORMATTERS[fmt_type])
    if "fecha" in df.columns:
        df["fecha"] = df["fecha"].apply(fmt_date)
    return df.rename(columns=COLUMN_LABELS)
