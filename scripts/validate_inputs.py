#!/usr/bin/env python
"""
Validate a report store export before pointing the dashboard at it.

Usage:
    python scripts/validate_inputs.py
    python scripts/validate_inputs.py --store /path/to/reports.json
"""
import argparse
import json
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from obra_dashboard.config import config
from obra_dashboard.data.schema import validate_export


def main():
    parser = argparse.ArgumentParser(description="Validate a report store export")
    parser.add_argument(
        "--store",
        type=str,
        default=None,
        help="Override store export path"
    )

    args = parser.parse_args()
    store_path = Path(args.store) if args.store else config.store_path

    print("=" * 60)
    print("Report Store Validation")
    print("=" * 60)
    print(f"Source: {store_path}")
    print()

    if not store_path.exists():
        print(f"✗ Not found: {store_path}")
        sys.exit(1)

    try:
        payload = json.loads(store_path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        print(f"✗ Failed to load: {e}")
        sys.exit(1)

    result = validate_export(payload)

    if not result["has_collection"]:
        print("✗ Missing 'Reportes' collection")
        sys.exit(1)

    print(f"  ✓ Reports: {result['total_reports']:,}")
    print(f"    Activities: {result['total_activities']:,}")
    print(f"    Worker entries: {result['total_workers']:,}")
    print()

    for report in result["invalid_reports"]:
        print(f"  ✗ Report {report['id']}")
        if report["missing_required"]:
            print(f"    Missing required: {report['missing_required']}")
        if report["bad_date"]:
            print("    fecha is not an ISO date (YYYY-MM-DD)")

    for report in result["mismatched_reports"]:
        print(f"  ⚠ Report {report['id']}: hour lists not aligned with "
              f"{report['activities']} activities for workers {report['hour_mismatches']}")

    print()
    print("=" * 60)
    if result["is_valid"]:
        print("✓ All validations passed")
        sys.exit(0)
    else:
        print("✗ Validation failed - see errors above")
        sys.exit(1)


if __name__ == "__main__":
    main()
