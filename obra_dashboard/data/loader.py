"""
Report query service: paged, filtered reads from the document store.

All reads go through the stale-while-revalidate wrapper, keyed on every
filter field plus page and page size.
"""
from __future__ import annotations

import asyncio
from typing import List, Optional, Sequence, Tuple

import structlog

from obra_dashboard.config import config, REPORTS_COLLECTION, ACTIVITIES_COLLECTION, LABOR_COLLECTION
from obra_dashboard.data.models import FilterOptions, FilterValues, PageCursor, ReportDetail, ReportPage
from obra_dashboard.data.store import DocumentSnapshot, DocumentStore, FieldFilter, GuardedStore
from obra_dashboard.data.swr import StaleWhileRevalidate

logger = structlog.get_logger(__name__)

NEXT = "next"
PREV = "prev"


def build_constraints(filters: FilterValues) -> List[FieldFilter]:
    """
    Date window plus equality filters.

    Equality constraints are only added for filters that are set, so unset
    filters never require a composite index. Category is never sent: it
    lives on the worker-hours child collection and is applied client-side.
    """
    constraints = [
        FieldFilter("fecha", ">=", filters.start.isoformat()),
        FieldFilter("fecha", "<=", filters.end.isoformat()),
    ]
    if filters.subcontratista:
        constraints.append(FieldFilter("subcontratistaBloque", "==", filters.subcontratista))
    if filters.elaborado_por:
        constraints.append(FieldFilter("elaboradoPor", "==", filters.elaborado_por))
    return constraints


def _cursor(doc: DocumentSnapshot) -> PageCursor:
    return PageCursor(fecha=str(doc.data.get("fecha", "")), doc_id=doc.id)


class ReportQueryService:
    """Builds and runs report queries, resolving child collections and facets."""

    def __init__(self,
                 store: DocumentStore,
                 swr: StaleWhileRevalidate,
                 reports_ttl: Optional[float] = None,
                 count_ttl: Optional[float] = None):
        self.store = store if isinstance(store, GuardedStore) else GuardedStore(store)
        self.swr = swr
        self.reports_ttl = reports_ttl if reports_ttl is not None else config.reports_cache_ttl_seconds
        self.count_ttl = count_ttl if count_ttl is not None else config.count_cache_ttl_seconds

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    async def fetch_reports(self,
                            filters: FilterValues,
                            cursor: Optional[PageCursor] = None,
                            direction: str = NEXT) -> ReportPage:
        """
        Fetch one page of fully materialised reports.

        ``cursor`` is the last document of the current page when moving
        forward, or its first document when moving back. Without a cursor the
        page position is located from ``filters.page``. ``total_items`` is
        read from the count cache on every call, not from the page entry.
        """
        async def produce():
            page = await self._scan_page(filters, cursor, direction)
            return page.to_dict()

        page = await self._cached_page(filters.cache_key(), produce)
        page.total_items = await self.count_reports(filters)
        return page

    async def fetch_all_reports(self, filters: FilterValues) -> ReportPage:
        """Unpaged scan of the whole filtered set (used for KPIs and analytics)."""
        async def produce():
            docs = await self.store.query(REPORTS_COLLECTION, build_constraints(filters), order_by="fecha")
            page = await self._materialize_page(docs, filters)
            page.total_items = len(docs)
            return page.to_dict()

        return await self._cached_page(filters.cache_key(prefix="reports_all", paged=False), produce)

    async def count_reports(self, filters: FilterValues) -> int:
        """Count matching reports (category excluded), cached for a shorter time."""
        async def produce():
            return await self.store.count(REPORTS_COLLECTION, build_constraints(filters))

        key = filters.count_key()
        value = await self.swr.get_with_swr(key, produce, ttl=self.count_ttl)
        try:
            return int(value)
        except (TypeError, ValueError) as exc:
            logger.warning("cached_count_malformed", key=key, error=str(exc))
            value = await produce()
            self.swr.cache.set(key, value, self.count_ttl)
            return int(value)

    async def _cached_page(self, key: str, produce) -> ReportPage:
        """Page from the SWR cache; a payload that no longer parses counts as a miss."""
        payload = await self.swr.get_with_swr(key, produce, ttl=self.reports_ttl)
        try:
            return ReportPage.from_dict(payload)
        except (AttributeError, KeyError, TypeError, ValueError) as exc:
            logger.warning("cached_page_malformed", key=key, error=str(exc))
            self.swr.cache.remove(key)
            payload = await produce()
            self.swr.cache.set(key, payload, self.reports_ttl)
            return ReportPage.from_dict(payload)

    # -------------------------------------------------------------------------
    # Scanning
    # -------------------------------------------------------------------------

    async def _scan_page(self,
                         filters: FilterValues,
                         cursor: Optional[PageCursor],
                         direction: str) -> ReportPage:
        constraints = build_constraints(filters)

        if cursor is None and filters.page > 1:
            cursor = await self._locate_page_start(constraints, filters)
            direction = NEXT

        if direction == PREV and cursor is not None:
            # Exact reverse read: ascending from the first document of the current page.
            docs = await self.store.query(
                REPORTS_COLLECTION, constraints, order_by="fecha",
                descending=False, limit=filters.page_size, start_after=cursor,
            )
            docs.reverse()
        else:
            docs = await self.store.query(
                REPORTS_COLLECTION, constraints, order_by="fecha",
                descending=True, limit=filters.page_size, start_after=cursor,
            )

        return await self._materialize_page(docs, filters)

    async def _locate_page_start(self, constraints: Sequence[FieldFilter],
                                 filters: FilterValues) -> Optional[PageCursor]:
        """Cursor after the last document of the previous page."""
        skip = (filters.page - 1) * filters.page_size
        docs = await self.store.query(REPORTS_COLLECTION, constraints, order_by="fecha",
                                      descending=True, limit=skip)
        return _cursor(docs[-1]) if docs else None

    async def _materialize(self, doc: DocumentSnapshot) -> ReportDetail:
        activity_docs, labor_docs = await asyncio.gather(
            self.store.children(REPORTS_COLLECTION, doc.id, ACTIVITIES_COLLECTION),
            self.store.children(REPORTS_COLLECTION, doc.id, LABOR_COLLECTION),
        )
        return ReportDetail.from_document(doc.id, doc.data, activity_docs, labor_docs)

    async def _materialize_page(self, docs: List[DocumentSnapshot], filters: FilterValues) -> ReportPage:
        details = await asyncio.gather(*(self._materialize(doc) for doc in docs))
        reports, options = apply_category_filter(list(details), filters.categoria)

        page = ReportPage(
            reports=reports,
            first_cursor=_cursor(docs[0]) if docs else None,
            last_cursor=_cursor(docs[-1]) if docs else None,
            filter_options=options,
        )
        logger.info(
            "reports_fetched",
            scanned=len(docs),
            returned=len(reports),
            page=filters.page,
            categoria=filters.categoria or None,
        )
        return page


def apply_category_filter(reports: List[ReportDetail], categoria: str) -> Tuple[List[ReportDetail], FilterOptions]:
    """
    Keep only worker-hours of ``categoria`` and drop reports left with none.

    Also collects the facets: contractors and authors over every scanned
    report, categories over the worker-hours that survive the filter. Each
    facet is de-duplicated, non-empty and sorted ascending.
    """
    contractors = set()
    authors = set()
    categories = set()
    kept = []

    for report in reports:
        if report.subcontratista_bloque:
            contractors.add(report.subcontratista_bloque)
        if report.elaborado_por:
            authors.add(report.elaborado_por)

        if categoria:
            workers = [w for w in report.mano_obra if w.categoria == categoria]
            if not workers:
                continue
            report.mano_obra = workers

        for worker in report.mano_obra:
            if worker.categoria:
                categories.add(worker.categoria)
        kept.append(report)

    options = FilterOptions(
        subcontratistas=sorted(contractors),
        elaboradores=sorted(authors),
        categorias=sorted(categories),
    )
    return kept, options
