"""
Layout components: header, login form, filter sidebar.
"""
import streamlit as st
from typing import List

from obra_dashboard.auth import AuthError, Session
from obra_dashboard.config import CUSTOM_PERIOD, PREDEFINED_PERIODS
from obra_dashboard.data.models import FilterOptions
from obra_dashboard.ui.state import get_session_provider, get_state, reset_filters


# =============================================================================
# HEADER AND LOGIN
# =============================================================================

def render_header(session: Session):
    """Title plus the signed-in identity and logout button."""
    col1, col2 = st.columns([4, 1])

    with col1:
        st.title("Dashboard de Reportes de Obra")

    with col2:
        st.caption(session.email)
        if st.button("Cerrar sesión", key="logout"):
            try:
                get_session_provider().logout()
            except AuthError as exc:
                st.error(str(exc))
                return
            st.rerun()


def render_login():
    """Email/password form; errors are shown inline and the form stays usable."""
    st.title("Iniciar sesión")

    with st.form("login_form"):
        email = st.text_input("Correo electrónico")
        password = st.text_input("Contraseña", type="password")
        submitted = st.form_submit_button("Ingresar")

    if submitted:
        try:
            get_session_provider().login(email, password)
        except AuthError as exc:
            st.error(str(exc))
            return
        st.rerun()


# =============================================================================
# FILTERS
# =============================================================================

def _options(values: List[str], current: str) -> List[str]:
    options = [""] + list(values)
    if current and current not in options:
        options.append(current)
    return options


def _all_label(value: str) -> str:
    return value or "Todos"


def render_filter_bar(options: FilterOptions) -> bool:
    """
    Render filter widgets in the sidebar.

    Widgets are keyed on the filter state keys. Returns True when the user
    applied or cleared the filters.
    """
    st.sidebar.header("Filtros")

    with st.sidebar.form("filter_form"):
        st.selectbox(
            "Período",
            options=list(PREDEFINED_PERIODS.keys()),
            format_func=lambda v: PREDEFINED_PERIODS[v],
            key="period",
        )

        custom = get_state("period") == CUSTOM_PERIOD
        st.date_input("Desde", key="custom_start", disabled=not custom, format="DD/MM/YYYY")
        st.date_input("Hasta", key="custom_end", disabled=not custom, format="DD/MM/YYYY")

        st.selectbox(
            "Subcontratista / Bloque",
            options=_options(options.subcontratistas, get_state("subcontratista")),
            format_func=_all_label,
            key="subcontratista",
        )
        st.selectbox(
            "Elaborado por",
            options=_options(options.elaboradores, get_state("elaborado_por")),
            format_func=_all_label,
            key="elaborado_por",
        )
        st.selectbox(
            "Categoría",
            options=_options(options.categorias, get_state("categoria")),
            format_func=_all_label,
            key="categoria",
        )

        c1, c2 = st.columns(2)
        with c1:
            applied = st.form_submit_button("Aplicar")
        with c2:
            cleared = st.form_submit_button("Limpiar", on_click=reset_filters)

    return bool(applied or cleared)
