"""
Process-wide resources for the Streamlit app.

Streamlit reruns the script on every interaction, so coroutines run on one
long-lived event loop in a daemon thread. Background cache refreshes
scheduled by one rerun keep running after it returns.
"""
import asyncio
import threading
from typing import Any, Coroutine, Optional

import streamlit as st
import structlog

from obra_dashboard.auth import LocalCredentialService
from obra_dashboard.config import config
from obra_dashboard.data.cache import PersistentCache
from obra_dashboard.data.loader import ReportQueryService
from obra_dashboard.data.store import InMemoryDocumentStore
from obra_dashboard.data.swr import StaleWhileRevalidate
from obra_dashboard.logging import configure_logging

logger = structlog.get_logger(__name__)


class AsyncRunner:
    """Runs coroutines on a dedicated event loop thread."""

    def __init__(self):
        self.loop = asyncio.new_event_loop()
        self._thread = threading.Thread(target=self._serve, name="obra-dashboard-loop", daemon=True)
        self._thread.start()

    def _serve(self) -> None:
        asyncio.set_event_loop(self.loop)
        self.loop.run_forever()

    def run(self, coro: Coroutine[Any, Any, Any], timeout: Optional[float] = None) -> Any:
        """Block the calling thread until ``coro`` finishes on the loop."""
        future = asyncio.run_coroutine_threadsafe(coro, self.loop)
        return future.result(timeout)


@st.cache_resource(show_spinner=False)
def get_runner() -> AsyncRunner:
    configure_logging(config.app_env)
    logger.info("runtime_started", env=config.app_env)
    return AsyncRunner()


def run(coro: Coroutine[Any, Any, Any], timeout: Optional[float] = 60) -> Any:
    return get_runner().run(coro, timeout)


@st.cache_resource(show_spinner=False)
def get_query_service() -> ReportQueryService:
    """Store, cache and SWR wrapper shared by every session."""
    store = InMemoryDocumentStore.from_json(config.store_path)
    swr = StaleWhileRevalidate(PersistentCache())
    return ReportQueryService(store, swr)


@st.cache_resource(show_spinner=False)
def get_credentials() -> LocalCredentialService:
    return LocalCredentialService(config.users_path)
