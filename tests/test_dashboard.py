"""
Tests for the dashboard controller: paging, stale-result discarding and
error handling, end to end over the in-memory store.
"""
import asyncio
import pytest
import sys
from datetime import date
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))
sys.path.insert(0, str(Path(__file__).parent))

from builders import export_doc, store_from
from obra_dashboard.config import FETCH_ERROR_MESSAGE
from obra_dashboard.data.dashboard import DashboardController
from obra_dashboard.data.filters import build_filters
from obra_dashboard.data.loader import ReportQueryService
from obra_dashboard.data.models import FilterOptions, FilterValues, ReportPage
from obra_dashboard.data.store import StoreError

TODAY = date(2024, 5, 31)


def _site_docs():
    """Three reports in the window; one OPERARIO logs 8h on a half-done activity."""
    return [
        export_doc("r1", "2024-05-10",
                   actividades=[{"proceso": "Encofrado", "metradoP": "10", "metradoE": "5"}],
                   mano_obra=[{"trabajador": "Juan Pérez", "categoria": "OPERARIO", "horas": ["8"]}]),
        export_doc("r2", "2024-05-12",
                   actividades=[{"proceso": "Encofrado", "metradoP": 10, "metradoE": 5}],
                   mano_obra=[{"trabajador": "Juan Pérez", "categoria": "OPERARIO", "horas": ["0"]}]),
        export_doc("r3", "2024-05-14", subcontratista="Bloque B"),
        # Outside the 30-day window
        export_doc("r0", "2024-03-15",
                   mano_obra=[{"trabajador": "Ana", "categoria": "PEON", "horas": ["8"]}]),
    ]


def _paged_docs(n):
    return [export_doc(f"r{i:02d}", f"2024-05-{i:02d}") for i in range(1, n + 1)]


@pytest.fixture
def store():
    return store_from(_site_docs())


@pytest.fixture
def controller(store, swr):
    return DashboardController(ReportQueryService(store, swr), build_filters("30", today=TODAY))


class TestEndToEnd:

    @pytest.mark.asyncio
    async def test_site_metrics(self, controller):
        data = await controller.apply_filters(build_filters("30", today=TODAY))

        assert data.loaded is True
        assert data.error is None
        assert data.metrics.total_reportes == 3
        assert data.metrics.avance_promedio == pytest.approx(50.0)
        assert data.metrics.costo_mano_obra == pytest.approx(184.0)
        assert data.metrics.total_trabajadores == 1

    @pytest.mark.asyncio
    async def test_filter_options_from_full_scan(self, controller):
        data = await controller.apply_filters(build_filters("30", today=TODAY))

        assert data.filter_options.subcontratistas == ["Bloque A", "Bloque B"]
        assert data.filter_options.categorias == ["OPERARIO"]

    @pytest.mark.asyncio
    async def test_wider_window_includes_older_report(self, controller):
        data = await controller.apply_filters(build_filters("90", today=TODAY))

        assert data.metrics.total_reportes == 4
        assert "PEON" in data.filter_options.categorias


class TestPaging:

    @pytest.fixture
    def paged(self, swr):
        service = ReportQueryService(store_from(_paged_docs(25)), swr)
        return DashboardController(service, build_filters("30", today=TODAY, page_size=10))

    @pytest.mark.asyncio
    async def test_pagination_info(self, paged):
        data = await paged.refresh()

        assert data.pagination.total_pages == 3
        assert data.pagination.has_prev_page is False
        assert [r.id for r in data.reports][:2] == ["r25", "r24"]
        # KPIs cover the whole filtered set, not just the page
        assert data.metrics.total_reportes == 25

    @pytest.mark.asyncio
    async def test_next_and_prev(self, paged):
        await paged.refresh()
        second = await paged.next_page()

        assert second.filters.page == 2
        assert second.reports[0].id == "r15"

        third = await paged.next_page()
        assert [r.id for r in third.reports] == ["r05", "r04", "r03", "r02", "r01"]
        assert third.pagination.has_next_page is False

        back = await paged.prev_page()
        assert back.filters.page == 2
        assert back.reports[0].id == "r15"

    @pytest.mark.asyncio
    async def test_next_on_last_page_is_noop(self, paged):
        await paged.refresh()
        await paged.go_to_page(3)
        generation = paged.generation

        await paged.next_page()
        assert paged.generation == generation
        assert paged.data.filters.page == 3

    @pytest.mark.asyncio
    async def test_go_to_page_is_clamped(self, paged):
        await paged.refresh()
        data = await paged.go_to_page(99)

        assert data.filters.page == 3
        assert len(data.reports) == 5


class TestErrors:

    @pytest.mark.asyncio
    async def test_store_error_keeps_previous_data(self, controller, store):
        before = await controller.refresh()
        store.fail_with = StoreError("unavailable")
        controller.service.swr.cache.clear()

        after = await controller.refresh()

        assert after.error == FETCH_ERROR_MESSAGE
        assert [r.id for r in after.reports] == [r.id for r in before.reports]
        assert after.metrics == before.metrics

    @pytest.mark.asyncio
    async def test_transport_failure_shows_error_banner(self, controller, store):
        store.fail_with = OSError("connection reset")

        failed = await controller.refresh()

        assert failed.error == FETCH_ERROR_MESSAGE
        assert failed.loaded is False

    @pytest.mark.asyncio
    async def test_success_clears_error(self, controller, store):
        store.fail_with = StoreError("unavailable")
        failed = await controller.refresh()
        assert failed.error == FETCH_ERROR_MESSAGE
        assert failed.loaded is False

        store.fail_with = None
        recovered = await controller.refresh()
        assert recovered.error is None
        assert recovered.loaded is True


class GatedService:
    """Query service stand-in whose fetches wait until released, per contractor."""

    def __init__(self):
        self.gates = {}

    def gate(self, filters: FilterValues) -> asyncio.Event:
        return self.gates.setdefault(filters.subcontratista, asyncio.Event())

    async def fetch_reports(self, filters, cursor=None, direction="next"):
        await self.gate(filters).wait()
        return ReportPage(filter_options=FilterOptions(subcontratistas=[filters.subcontratista]))

    async def fetch_all_reports(self, filters):
        await self.gate(filters).wait()
        return ReportPage(filter_options=FilterOptions(subcontratistas=[filters.subcontratista]))


class TestGenerationToken:
    """A fetch that finishes after a newer one started never overwrites it."""

    @pytest.mark.asyncio
    async def test_stale_result_discarded(self):
        service = GatedService()
        controller = DashboardController(service, build_filters("30", today=TODAY))
        slow = build_filters("30", today=TODAY, subcontratista="Bloque A")
        fast = build_filters("30", today=TODAY, subcontratista="Bloque B")

        first = asyncio.ensure_future(controller.apply_filters(slow))
        await asyncio.sleep(0)
        second = asyncio.ensure_future(controller.apply_filters(fast))
        await asyncio.sleep(0)

        service.gate(fast).set()
        await second
        service.gate(slow).set()
        await first

        assert controller.generation == 2
        assert controller.data.filters == fast
        assert controller.data.filter_options.subcontratistas == ["Bloque B"]
