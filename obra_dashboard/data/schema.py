"""
Validation of report store exports.
"""
from typing import Any, Dict, List

from obra_dashboard.config import (
    ACTIVITIES_COLLECTION, LABOR_COLLECTION, OPTIONAL_REPORT_FIELDS, REPORTS_COLLECTION,
    REQUIRED_REPORT_FIELDS,
)
from obra_dashboard.data.models import ReportDetail


class SchemaValidationError(Exception):
    """Raised when a strict validation finds required fields missing."""
    pass


def validate_report_document(doc: Dict[str, Any]) -> Dict[str, Any]:
    """
    Validate one exported report with its child lists.

    Returns dict with:
    - missing_required / missing_optional: report fields absent from the
      document (blank values are allowed, e.g. no contractor)
    - activities, workers: child counts
    - hour_mismatches: worker entries whose hour list length differs from
      the activity count (aggregation tolerates these, zero-filling)
    - bad_date: fecha is not an ISO day
    """
    data = doc.get("data", {}) or {}
    activities = doc.get(ACTIVITIES_COLLECTION, []) or []
    workers = doc.get(LABOR_COLLECTION, []) or []

    mismatches = []
    for worker in workers:
        hours = (worker.get("data") or {}).get("horas")
        count = len(hours) if isinstance(hours, list) else 0
        if count != len(activities):
            mismatches.append(str(worker.get("id", "?")))

    report = ReportDetail.from_document(str(doc.get("id", "")), data)

    return {
        "id": str(doc.get("id", "")),
        "missing_required": [f for f in REQUIRED_REPORT_FIELDS if f not in data],
        "missing_optional": [f for f in OPTIONAL_REPORT_FIELDS if f not in data],
        "activities": len(activities),
        "workers": len(workers),
        "hour_mismatches": mismatches,
        "bad_date": report.report_date is None,
    }


def validate_export(payload: Dict[str, Any], strict: bool = False) -> Dict[str, Any]:
    """
    Full validation of a store export.

    Args:
        payload: parsed export (see InMemoryDocumentStore)
        strict: If True, raise on any report missing required fields

    Returns:
        Dict with per-report results and totals
    """
    docs: List[Dict[str, Any]] = payload.get(REPORTS_COLLECTION, []) or []
    reports = [validate_report_document(doc) for doc in docs]

    invalid = [r for r in reports if r["missing_required"] or r["bad_date"]]
    result = {
        "is_valid": REPORTS_COLLECTION in payload and not invalid,
        "has_collection": REPORTS_COLLECTION in payload,
        "total_reports": len(reports),
        "total_activities": sum(r["activities"] for r in reports),
        "total_workers": sum(r["workers"] for r in reports),
        "invalid_reports": invalid,
        "mismatched_reports": [r for r in reports if r["hour_mismatches"]],
    }

    if strict and not result["is_valid"]:
        ids = [r["id"] for r in invalid]
        raise SchemaValidationError(f"Invalid reports in export: {ids}")

    return result
