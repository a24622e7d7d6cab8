"""
Session state management for Streamlit app.
"""
import streamlit as st
from datetime import date
from typing import Any, Optional

from obra_dashboard.auth import Session, SessionProvider
from obra_dashboard.config import config
from obra_dashboard.data.dashboard import DashboardController
from obra_dashboard.data.filters import build_filters
from obra_dashboard.data.models import FilterValues
from obra_dashboard.ui.runtime import get_credentials, get_query_service


# =============================================================================
# DEFAULT VALUES
# =============================================================================

DEFAULTS = {
    # Filters
    "period": config.default_period,
    "custom_start": None,
    "custom_end": None,
    "subcontratista": "",
    "elaborado_por": "",
    "categoria": "",

    # Analysis tab
    "trend_metric": "avance",
    "forecast_days": config.default_forecast_days,

    # Reports tab
    "selected_report_id": None,
    "selected_activity": None,

    # Auth
    "session": None,
}


# =============================================================================
# STATE HELPERS
# =============================================================================

def init_state():
    """Initialize all session state keys with defaults."""
    for key, default in DEFAULTS.items():
        if key not in st.session_state:
            st.session_state[key] = default


def get_state(key: str) -> Any:
    """Get state value with default fallback."""
    init_state()
    return st.session_state.get(key, DEFAULTS.get(key))


def set_state(key: str, value: Any):
    st.session_state[key] = value


def reset_filters():
    """Back to the last 30 days with no other filters."""
    for key in ["period", "custom_start", "custom_end", "subcontratista", "elaborado_por", "categoria"]:
        st.session_state[key] = DEFAULTS[key]


def filters_from_state(page: int = 1, today: Optional[date] = None) -> FilterValues:
    """Build FilterValues from the filter widgets' state."""
    return build_filters(
        period=get_state("period"),
        today=today,
        custom_start=get_state("custom_start"),
        custom_end=get_state("custom_end"),
        subcontratista=get_state("subcontratista"),
        elaborado_por=get_state("elaborado_por"),
        categoria=get_state("categoria"),
        page=page,
    )


# =============================================================================
# PER-SESSION OBJECTS
# =============================================================================

def get_session_provider() -> SessionProvider:
    """One provider per browser session; mirrors the session into state."""
    if "session_provider" not in st.session_state:
        provider = SessionProvider(get_credentials())
        provider.on_session_change(lambda session: set_state("session", session))
        st.session_state["session_provider"] = provider
    return st.session_state["session_provider"]


def current_session() -> Optional[Session]:
    return get_state("session")


def get_controller() -> DashboardController:
    if "controller" not in st.session_state:
        st.session_state["controller"] = DashboardController(get_query_service(), filters_from_state())
    return st.session_state["controller"]
