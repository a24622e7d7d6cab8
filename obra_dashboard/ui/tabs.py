"""
Dashboard tabs: Overview, Activities, Labor, Costs, Analysis, Reports.

Analytics tabs render from the full filtered report set; the Reports tab
renders the current page.
"""
import streamlit as st
import pandas as pd
from typing import List

from obra_dashboard.config import config
from obra_dashboard.data.dashboard import DashboardData
from obra_dashboard.data.models import ReportDetail
from obra_dashboard.metrics.activities import activity_detail, activity_rollup, top_activities
from obra_dashboard.metrics.costs import (
    activity_costs, category_cost_table, contractor_summary, cost_by_category,
    cost_by_month, cost_vs_progress,
)
from obra_dashboard.metrics.kpi import report_summary
from obra_dashboard.metrics.labor import (
    category_efficiency, category_hours, category_productivity, category_summary, worker_rollup,
)
from obra_dashboard.modeling.correlation import compute_correlations
from obra_dashboard.modeling.forecast import bucket_reports, describe_trend, forecast_buckets
from obra_dashboard.ui import charts
from obra_dashboard.ui.components import empty_state
from obra_dashboard.ui.formatting import fmt_productivity
from obra_dashboard.ui.state import get_state, set_state
from obra_dashboard.ui.tables import metric_table, report_detail, selectable_table

TREND_METRICS = {
    "avance": "Avance (%)",
    "metrado_e": "Metrado ejecutado",
    "costo": "Costo (S/)",
}

FORECAST_DAY_OPTIONS = [7, 15, 30, 60, 90]


# =============================================================================
# OVERVIEW
# =============================================================================

def render_overview(reports: List[ReportDetail]):
    if not reports:
        empty_state()
        return

    col1, col2 = st.columns([2, 1])
    with col1:
        weekly = bucket_reports(reports, freq="week")
        st.plotly_chart(
            charts.vertical_bar(weekly, "label", "avance", title="Avance por semana", y_title="Avance (%)"),
            use_container_width=True,
        )
    with col2:
        hours = category_hours(reports)
        if len(hours):
            st.plotly_chart(charts.doughnut(hours, "categoria", "horas", title="Horas por categoría"),
                            use_container_width=True)

    contractors = contractor_summary(reports)
    st.plotly_chart(
        charts.vertical_bar(contractors, "subcontratista", "avance",
                            title="Avance por subcontratista", y_title="Avance (%)", color="success"),
        use_container_width=True,
    )
    metric_table(contractors, export_name="subcontratistas", key="overview_contractors")

    st.markdown("#### Actividades principales")
    metric_table(
        top_activities(reports, n=5),
        display_cols=["proceso", "und", "metrado_p", "metrado_e", "avance", "costo_por_unidad"],
        key="overview_top",
    )


# =============================================================================
# ACTIVITIES
# =============================================================================

def render_activities(reports: List[ReportDetail]):
    if not reports:
        empty_state()
        return

    rollup = activity_rollup(reports)
    top10 = rollup.head(10)

    col1, col2 = st.columns(2)
    with col1:
        st.plotly_chart(
            charts.dual_axis_bar_line(top10, "proceso", "costo_por_unidad", "avance",
                                      bar_name="Costo/Und (S/)", line_name="Avance (%)",
                                      title="Avance vs costo por unidad"),
            use_container_width=True,
        )
    with col2:
        st.plotly_chart(
            charts.horizontal_bar(rollup.head(8), "metrado_e", "proceso", title="Metrado ejecutado"),
            use_container_width=True,
        )

    st.markdown("#### Detalle por actividad")
    selected = selectable_table(
        rollup, "proceso",
        ["proceso", "und", "metrado_p", "metrado_e", "avance", "costo", "costo_por_unidad",
         "reportes", "trabajadores", "horas", "productividad"],
        key="activities_table",
    )

    if selected:
        set_state("selected_activity", selected)

    selected = get_state("selected_activity")
    if selected and selected in set(rollup["proceso"]):
        st.markdown(f"##### {selected}")
        metric_table(activity_detail(reports, selected),
                     display_cols=["fecha", "metrado_p", "metrado_e", "avance", "horas", "costo", "causas"],
                     export_name=f"actividad_{selected}", key="activity_detail")


# =============================================================================
# LABOR
# =============================================================================

def render_labor(reports: List[ReportDetail]):
    if not reports:
        empty_state()
        return

    col1, col2 = st.columns(2)
    with col1:
        st.plotly_chart(charts.category_bar(category_hours(reports), "horas",
                                            title="Horas por categoría", y_title="Horas"),
                        use_container_width=True)
    with col2:
        efficiency = category_efficiency(reports)
        st.plotly_chart(
            charts.grouped_bar(efficiency, "categoria", ["eficiencia", "productividad"],
                               names=["Eficiencia", "Productividad"], title="Eficiencia por categoría"),
            use_container_width=True,
        )

    st.markdown("#### Resumen por categoría")
    metric_table(category_summary(reports), export_name="categorias", key="labor_categories")

    st.markdown("#### Top 20 trabajadores")
    metric_table(
        worker_rollup(reports, top_n=20),
        display_cols=["trabajador", "categoria", "horas", "costo", "reportes",
                      "actividad_principal", "productividad"],
        export_name="trabajadores",
        key="labor_workers",
    )


# =============================================================================
# COSTS
# =============================================================================

def render_costs(reports: List[ReportDetail]):
    if not reports:
        empty_state()
        return

    col1, col2 = st.columns([2, 1])
    with col1:
        st.plotly_chart(charts.vertical_bar(cost_by_month(reports), "label", "costo",
                                            title="Evolución de costos", y_title="Costo (S/)"),
                        use_container_width=True)
    with col2:
        by_category = cost_by_category(reports)
        if len(by_category):
            st.plotly_chart(charts.doughnut(by_category, "categoria", "costo", title="Distribución de costos"),
                            use_container_width=True)

    st.markdown("#### Top 10 actividades por costo")
    metric_table(activity_costs(reports, n=10), export_name="costos_actividades", key="costs_activities")

    st.markdown("#### Costo por categoría")
    metric_table(category_cost_table(reports), export_name="costos_categorias", key="costs_categories")

    st.plotly_chart(
        charts.dual_axis_bar_line(cost_vs_progress(reports), "label", "costo", "avance",
                                  bar_name="Costo (S/)", line_name="Avance (%)",
                                  title="Costos vs avance por reporte"),
        use_container_width=True,
    )


# =============================================================================
# ANALYSIS
# =============================================================================

def _conclusions(metric: str, values: List[float], forecast: pd.DataFrame,
                 productivity: pd.DataFrame, correlations: pd.DataFrame, days: int) -> List[str]:
    label = TREND_METRICS[metric].lower()
    trend = describe_trend(values)
    lines = []

    text = f"La tendencia general muestra {'un aumento' if trend['rising'] else 'una disminución'} en {label}."
    if len(forecast) > 1:
        rising = forecast["valor"].iloc[-1] > forecast["valor"].iloc[0]
        text += f" Se proyecta que continuará {'al alza' if rising else 'a la baja'} durante los próximos {days} días."
    lines.append(text)

    if len(productivity):
        best = productivity.loc[productivity["productividad"].idxmax()]
        lines.append(
            f"La categoría con mayor productividad es \"{best['categoria']}\" "
            f"con {fmt_productivity(best['productividad'])}."
        )

    if len(correlations) and correlations["correlation"].iloc[0] > 0.6:
        top = correlations.iloc[0]
        lines.append(
            f"Se observa una fuerte correlación entre {top['var1']} y {top['var2']} ({top['correlation']:.2f})."
        )

    if trend["recent_non_decreasing"]:
        lines.append("Mantenga la estrategia actual: los últimos periodos no muestran retrocesos.")
    else:
        lines.append("Evalúe ajustar la estrategia: los indicadores muestran posibles áreas de mejora.")

    return lines


def render_analysis(reports: List[ReportDetail]):
    if not reports:
        empty_state()
        return

    col1, col2 = st.columns(2)
    with col1:
        metric = st.radio("Métrica", list(TREND_METRICS.keys()), format_func=TREND_METRICS.get,
                          horizontal=True, key="trend_metric")
    with col2:
        days = st.selectbox("Días a predecir", FORECAST_DAY_OPTIONS, key="forecast_days")

    daily = bucket_reports(reports, freq="day")
    forecast = forecast_buckets(daily, metric=metric, horizon_days=days)
    st.plotly_chart(charts.trend_line(daily, "label", metric, title="Tendencia",
                                      y_title=TREND_METRICS[metric], forecast=forecast),
                    use_container_width=True)
    if len(forecast) == 0:
        st.caption(f"Se necesitan al menos {config.min_forecast_points} periodos para proyectar la tendencia.")

    correlations = compute_correlations(reports)
    productivity = category_productivity(reports)

    col3, col4 = st.columns(2)
    with col3:
        if len(correlations):
            st.plotly_chart(charts.correlation_bar(correlations, title="Correlaciones"),
                            use_container_width=True)
        else:
            st.info(f"Se necesitan al menos {config.min_correlation_reports} reportes para calcular correlaciones.")
    with col4:
        if len(productivity):
            st.plotly_chart(charts.category_bar(productivity, "productividad",
                                                title="Productividad por categoría", y_title="u/h"),
                            use_container_width=True)

    st.markdown("#### Conclusiones")
    for line in _conclusions(metric, daily[metric].tolist(), forecast, productivity, correlations, days):
        st.markdown(f"- {line}")


# =============================================================================
# REPORTS
# =============================================================================

def render_reports(data: DashboardData):
    """Current page of reports; selecting one shows its detail."""
    if not data.reports:
        empty_state()
        return

    summary = report_summary(data.reports)
    selected = selectable_table(
        summary, "report_id",
        ["fecha", "elaborado_por", "subcontratista", "actividades", "trabajadores", "horas", "avance", "costo"],
        key=f"reports_table_{data.filters.page}",
    )
    if selected:
        set_state("selected_report_id", selected)

    selected_id = get_state("selected_report_id")
    report = next((r for r in data.reports if r.id == selected_id), None)
    if report is not None:
        st.divider()
        report_detail(report)
