"""
Dashboard controller: owns the current filters, page and loaded data.

Every load bumps a generation counter; a fetch that completes after a newer
one was started is discarded instead of overwriting fresher state.
"""
from __future__ import annotations

import asyncio
from dataclasses import dataclass, field, replace
from typing import List, Optional

import structlog

from obra_dashboard.config import FETCH_ERROR_MESSAGE
from obra_dashboard.data.filters import compute_pagination, default_filters
from obra_dashboard.data.loader import NEXT, PREV, ReportQueryService
from obra_dashboard.data.models import (
    FilterOptions, FilterValues, KPIMetrics, PageCursor, PaginationInfo, ReportDetail,
)
from obra_dashboard.data.store import StoreError
from obra_dashboard.metrics.kpi import compute_metrics

logger = structlog.get_logger(__name__)


@dataclass
class DashboardData:
    """Everything the presentation layer renders."""
    filters: FilterValues
    reports: List[ReportDetail] = field(default_factory=list)
    all_reports: List[ReportDetail] = field(default_factory=list)
    metrics: KPIMetrics = field(default_factory=KPIMetrics)
    pagination: PaginationInfo = field(default_factory=lambda: compute_pagination(0, 1, 1))
    filter_options: FilterOptions = field(default_factory=FilterOptions)
    first_cursor: Optional[PageCursor] = None
    last_cursor: Optional[PageCursor] = None
    error: Optional[str] = None
    loaded: bool = False


class DashboardController:
    """
    Applies filters and paging against a ReportQueryService.

    ``reports`` holds the current page; ``all_reports`` the whole filtered
    set, which KPIs and tab analytics are computed from.
    """

    def __init__(self, service: ReportQueryService, filters: Optional[FilterValues] = None):
        self.service = service
        self.data = DashboardData(filters=filters or default_filters())
        self._generation = 0

    @property
    def generation(self) -> int:
        return self._generation

    # -------------------------------------------------------------------------
    # Commands
    # -------------------------------------------------------------------------

    async def apply_filters(self, filters: FilterValues) -> DashboardData:
        """Load page ``filters.page`` of a new filter set."""
        return await self._load(filters)

    async def refresh(self) -> DashboardData:
        return await self._load(self.data.filters)

    async def next_page(self) -> DashboardData:
        if not self.data.pagination.has_next_page:
            return self.data
        filters = replace(self.data.filters, page=self.data.filters.page + 1)
        return await self._load(filters, cursor=self.data.last_cursor, direction=NEXT)

    async def prev_page(self) -> DashboardData:
        if not self.data.pagination.has_prev_page:
            return self.data
        filters = replace(self.data.filters, page=self.data.filters.page - 1)
        return await self._load(filters, cursor=self.data.first_cursor, direction=PREV)

    async def go_to_page(self, page: int) -> DashboardData:
        """Jump to an arbitrary page (located by position, without a cursor)."""
        total = max(self.data.pagination.total_pages, 1)
        page = min(max(int(page), 1), total)
        if page == self.data.filters.page and self.data.loaded:
            return self.data
        return await self._load(replace(self.data.filters, page=page))

    # -------------------------------------------------------------------------
    # Loading
    # -------------------------------------------------------------------------

    async def _load(self,
                    filters: FilterValues,
                    cursor: Optional[PageCursor] = None,
                    direction: str = NEXT) -> DashboardData:
        self._generation += 1
        generation = self._generation

        try:
            page, full = await asyncio.gather(
                self.service.fetch_reports(filters, cursor=cursor, direction=direction),
                self.service.fetch_all_reports(filters),
            )
        except StoreError as exc:
            if generation != self._generation:
                logger.info("stale_error_discarded", generation=generation, current=self._generation)
                return self.data
            logger.error("reports_fetch_failed", error=str(exc), generation=generation)
            self.data = replace(self.data, error=FETCH_ERROR_MESSAGE)
            return self.data

        if generation != self._generation:
            logger.info("stale_result_discarded", generation=generation, current=self._generation)
            return self.data

        self.data = DashboardData(
            filters=filters,
            reports=page.reports,
            all_reports=full.reports,
            metrics=compute_metrics(full.reports),
            pagination=compute_pagination(page.total_items, filters.page, filters.page_size),
            filter_options=full.filter_options,
            first_cursor=page.first_cursor,
            last_cursor=page.last_cursor,
            error=None,
            loaded=True,
        )
        return self.data
