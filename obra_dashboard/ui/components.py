"""
Reusable UI components and blocks.
"""
import streamlit as st
import pandas as pd
from typing import Optional

from obra_dashboard.data.filters import page_window
from obra_dashboard.data.models import KPIMetrics, PaginationInfo
from obra_dashboard.exports import export_dataframe_csv, export_dataframe_excel
from obra_dashboard.ui.formatting import fmt_count, fmt_currency, fmt_number, fmt_percent

NO_DATA_MESSAGE = "No hay datos disponibles para el período seleccionado. Intente modificar los filtros."


def kpi_cards(metrics: KPIMetrics):
    """
    Render the two KPI rows: volume and cost/progress.
    """
    c1, c2, c3, c4 = st.columns(4)
    with c1:
        st.metric("Reportes", fmt_count(metrics.total_reportes))
    with c2:
        st.metric("Actividades", fmt_count(metrics.total_actividades))
    with c3:
        st.metric("Trabajadores", fmt_count(metrics.total_trabajadores))
    with c4:
        st.metric("Avance promedio", fmt_percent(metrics.avance_promedio))

    c5, c6, c7, c8 = st.columns(4)
    with c5:
        st.metric("Costo total", fmt_currency(metrics.costo_total))
    with c6:
        st.metric("Costo mano de obra", fmt_currency(metrics.costo_mano_obra))
    with c7:
        st.metric("Costo por unidad", fmt_currency(metrics.costo_promedio_por_unidad))
    with c8:
        st.metric(
            "Índice de eficiencia",
            fmt_number(metrics.indice_eficiencia),
            help="(Avance promedio / costo por unidad) x 10",
        )


def error_banner(message: Optional[str]):
    if message:
        st.error(message)


def empty_state() -> None:
    st.info(NO_DATA_MESSAGE)


def download_buttons(df: pd.DataFrame, base_name: str, key: str):
    """
    CSV and Excel download buttons for a table.
    """
    c1, c2 = st.columns(2)

    csv_bytes, csv_name = export_dataframe_csv(df, base_name)
    with c1:
        st.download_button(
            "Descargar CSV",
            data=csv_bytes,
            file_name=csv_name,
            mime="text/csv",
            key=f"{key}_csv",
        )

    xlsx_bytes, xlsx_name = export_dataframe_excel(df, base_name)
    with c2:
        st.download_button(
            "Descargar Excel",
            data=xlsx_bytes,
            file_name=xlsx_name,
            mime="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
            key=f"{key}_xlsx",
        )


def pagination_controls(pagination: PaginationInfo, page_size: int, key: str = "pager") -> Optional[object]:
    """
    Render the pager.

    Returns "prev", "next", a page number, or None when nothing was clicked.
    """
    if pagination.total_items == 0:
        return None

    first = (pagination.current_page - 1) * page_size + 1
    last = min(pagination.current_page * page_size, pagination.total_items)
    st.caption(f"Mostrando {first}-{last} de {pagination.total_items} reportes")

    pages = page_window(pagination.current_page, pagination.total_pages)
    if not pages:
        return None

    action = None
    cols = st.columns(len(pages) + 2)

    with cols[0]:
        if st.button("«", key=f"{key}_prev", disabled=not pagination.has_prev_page):
            action = "prev"

    for i, number in enumerate(pages, start=1):
        with cols[i]:
            kind = "primary" if number == pagination.current_page else "secondary"
            if st.button(str(number), key=f"{key}_{number}", type=kind):
                action = number

    with cols[-1]:
        if st.button("»", key=f"{key}_next", disabled=not pagination.has_next_page):
            action = "next"

    return action
