"""
Standard table components.
"""
import streamlit as st
import pandas as pd
from typing import List, Optional

from obra_dashboard.data.models import ReportDetail
from obra_dashboard.exports import export_report_excel, report_detail_frames
from obra_dashboard.ui.components import download_buttons
from obra_dashboard.ui.formatting import fmt_date, format_metric_df


def metric_table(df: pd.DataFrame,
                 display_cols: Optional[List[str]] = None,
                 export_name: Optional[str] = None,
                 key: str = "table"):
    """
    Render a formatted metrics table with optional CSV/Excel downloads.

    Downloads carry the raw numbers, not the display strings.
    """
    if len(df) == 0:
        st.info("Sin datos para mostrar.")
        return

    cols = [c for c in (display_cols or list(df.columns)) if c in df.columns]
    st.dataframe(format_metric_df(df[cols]), use_container_width=True, hide_index=True)

    if export_name:
        download_buttons(df[cols], export_name, key=key)


def selectable_table(df: pd.DataFrame, id_col: str,
                     display_cols: List[str], key: str) -> Optional[str]:
    """
    Table with single-row selection.

    Returns the ``id_col`` value of the selected row, or None.
    """
    if len(df) == 0:
        st.info("Sin datos para mostrar.")
        return None

    display_df = format_metric_df(df[[c for c in display_cols if c in df.columns]])
    selection = st.dataframe(
        display_df,
        use_container_width=True,
        hide_index=True,
        on_select="rerun",
        selection_mode="single-row",
        key=key,
    )

    rows = selection.selection.rows if selection is not None else []
    if rows:
        return df.iloc[rows[0]][id_col]
    return None


def report_detail(report: ReportDetail):
    """Header fields, activities and the worker x activity hours grid of one report."""
    st.subheader(f"Reporte del {fmt_date(report.fecha)}")

    c1, c2, c3 = st.columns(3)
    with c1:
        st.markdown(f"**Elaborado por:** {report.elaborado_por or '—'}")
    with c2:
        st.markdown(f"**Subcontratista / Bloque:** {report.subcontratista_bloque or '—'}")
    with c3:
        st.markdown(f"**Revisado por:** {report.revisado_por or '—'}")

    frames = report_detail_frames(report)
    st.markdown("**Actividades**")
    st.dataframe(frames["Actividades"], use_container_width=True, hide_index=True)
    st.markdown("**Mano de obra**")
    st.dataframe(frames["Mano de obra"], use_container_width=True, hide_index=True)

    data, filename = export_report_excel(report)
    st.download_button(
        "Descargar reporte (Excel)",
        data=data,
        file_name=filename,
        mime="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        key=f"report_{report.id}_xlsx",
    )
