"""
Construction Site Reporting Dashboard

Main entry point for Streamlit app.
"""
import streamlit as st
from pathlib import Path

# Page config must be first Streamlit command
st.set_page_config(
    page_title="Dashboard de Obra",
    page_icon="🏗️",
    layout="wide",
    initial_sidebar_state="expanded",
)

# Add project root to path
import sys
sys.path.insert(0, str(Path(__file__).parent))

from obra_dashboard.config import config
from obra_dashboard.data.store import StoreError
from obra_dashboard.ui.components import error_banner, kpi_cards, pagination_controls
from obra_dashboard.ui.layout import render_filter_bar, render_header, render_login
from obra_dashboard.ui.runtime import run
from obra_dashboard.ui.state import (
    current_session, filters_from_state, get_controller, get_session_provider, init_state,
)
from obra_dashboard.ui import tabs


def main():
    """Main app entry point."""

    # Initialize session state
    init_state()
    get_session_provider()

    session = current_session()
    if session is None:
        render_login()
        return

    render_header(session)

    try:
        controller = get_controller()
    except StoreError as e:
        st.error("No se encontraron datos de reportes.")
        st.markdown(f"""
        ### Configuración requerida

        Coloque la exportación de reportes en: `{config.store_path}`

        **Para generar datos de ejemplo:**
        `python scripts/generate_sample_store.py --output {config.store_path}`

        Detalle: {e}
        """)
        return

    if not controller.data.loaded:
        with st.spinner("Cargando datos..."):
            run(controller.apply_filters(filters_from_state()))

    if render_filter_bar(controller.data.filter_options):
        with st.spinner("Cargando datos..."):
            run(controller.apply_filters(filters_from_state()))
        st.rerun()

    data = controller.data
    error_banner(data.error)
    kpi_cards(data.metrics)

    overview, activities, labor, costs, analysis, reports = st.tabs([
        "Visión general", "Actividades", "Mano de obra", "Costos", "Análisis", "Reportes",
    ])

    with overview:
        tabs.render_overview(data.all_reports)
    with activities:
        tabs.render_activities(data.all_reports)
    with labor:
        tabs.render_labor(data.all_reports)
    with costs:
        tabs.render_costs(data.all_reports)
    with analysis:
        tabs.render_analysis(data.all_reports)
    with reports:
        tabs.render_reports(data)
        action = pagination_controls(data.pagination, data.filters.page_size)
        if action is not None:
            with st.spinner("Cargando página..."):
                if action == "next":
                    run(controller.next_page())
                elif action == "prev":
                    run(controller.prev_page())
                else:
                    run(controller.go_to_page(action))
            st.rerun()


if __name__ == "__main__":
    main()
