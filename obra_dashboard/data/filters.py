"""
Period shortcuts, filter construction and pagination math.
"""
import math
from datetime import date, timedelta
from typing import List, Optional, Tuple

from obra_dashboard.config import config, ALL_TIME_PERIOD, ALL_TIME_START, CUSTOM_PERIOD, PREDEFINED_PERIODS
from obra_dashboard.data.models import FilterValues, PaginationInfo


# =============================================================================
# PERIODS
# =============================================================================

def resolve_period(period: str,
                   today: Optional[date] = None,
                   custom_start: Optional[date] = None,
                   custom_end: Optional[date] = None) -> Tuple[date, date]:
    """
    Get start and end dates for a predefined period.

    Args:
        period: 'custom', '0' (all time) or a number of days ('30', '90', ...)
        today: Reference date (defaults to today)
        custom_start / custom_end: Dates used when period is 'custom'

    Returns:
        (start_date, end_date) tuple
    """
    if today is None:
        today = date.today()

    if period == CUSTOM_PERIOD:
        start = custom_start or ALL_TIME_START
        end = custom_end or today
        return start, end

    if period == ALL_TIME_PERIOD:
        return ALL_TIME_START, today

    try:
        days = int(period)
    except (TypeError, ValueError):
        days = int(config.default_period)

    return today - timedelta(days=days), today


def build_filters(period: Optional[str] = None,
                  today: Optional[date] = None,
                  custom_start: Optional[date] = None,
                  custom_end: Optional[date] = None,
                  subcontratista: str = "",
                  elaborado_por: str = "",
                  categoria: str = "",
                  page: int = 1,
                  page_size: Optional[int] = None) -> FilterValues:
    """Build FilterValues, deriving the date window from the period shortcut."""
    if period is None or period not in PREDEFINED_PERIODS:
        period = config.default_period

    start, end = resolve_period(period, today, custom_start, custom_end)
    if start > end:
        start, end = end, start

    return FilterValues(
        start=start,
        end=end,
        predefined_period=period,
        subcontratista=subcontratista or "",
        elaborado_por=elaborado_por or "",
        categoria=categoria or "",
        page=max(int(page), 1),
        page_size=page_size or config.default_page_size,
    )


def default_filters(today: Optional[date] = None) -> FilterValues:
    """Last 30 days, no other filters."""
    return build_filters(config.default_period, today=today)


# =============================================================================
# PAGINATION
# =============================================================================

def compute_pagination(total_items: int, page: int, page_size: int) -> PaginationInfo:
    """Derive paging state; total_pages = ceil(total_items / page_size)."""
    total_items = max(int(total_items), 0)
    total_pages = math.ceil(total_items / page_size) if page_size > 0 else 0
    return PaginationInfo(
        current_page=page,
        total_pages=total_pages,
        total_items=total_items,
        has_next_page=page < total_pages,
        has_prev_page=page > 1,
    )


def page_window(current_page: int, total_pages: int, max_pages: int = 5) -> List[int]:
    """
    Page numbers to show as buttons, centred on the current page where possible.
    """
    if total_pages <= 1:
        return []

    if total_pages <= max_pages:
        return list(range(1, total_pages + 1))

    before = max_pages // 2
    after = math.ceil(max_pages / 2) - 1

    if current_page <= before:
        start, end = 1, max_pages
    elif current_page + after >= total_pages:
        start, end = total_pages - max_pages + 1, total_pages
    else:
        start, end = current_page - before, current_page + after

    return list(range(start, end + 1))
