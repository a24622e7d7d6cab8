"""
Tests for the headline KPI pack.
"""
import pytest
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))
sys.path.insert(0, str(Path(__file__).parent))

from builders import activity, report, worker
from obra_dashboard.config import FALLBACK_RATE
from obra_dashboard.data.models import KPIMetrics
from obra_dashboard.metrics.kpi import compute_metrics, efficiency_index, report_summary


def _site_reports():
    """One OPERARIO logs 8h on a half-done activity; the worker appears again with no hours."""
    return [
        report("r1", "2024-05-10", [activity("Encofrado", 10, 5)], [worker("Juan Pérez", "OPERARIO", [8])]),
        report("r2", "2024-05-12", [activity("Encofrado", 10, 5)], [worker("Juan Pérez", "OPERARIO", [0])]),
        report("r3", "2024-05-14"),
    ]


class TestComputeMetrics:

    def test_empty_input_is_all_zero(self):
        assert compute_metrics([]) == KPIMetrics()

    def test_site_scenario(self):
        metrics = compute_metrics(_site_reports())

        assert metrics.total_reportes == 3
        assert metrics.total_actividades == 1
        # Same worker in two reports counts once
        assert metrics.total_trabajadores == 1
        assert metrics.avance_promedio == pytest.approx(50.0)
        assert metrics.costo_mano_obra == pytest.approx(8 * 23.00)
        assert metrics.costo_total == metrics.costo_mano_obra

    def test_cost_per_unit_and_efficiency(self):
        metrics = compute_metrics(_site_reports())

        assert metrics.costo_promedio_por_unidad == pytest.approx(184.0 / 10.0)
        assert metrics.indice_eficiencia == pytest.approx(50.0 / 18.4 * 10)

    def test_unplanned_rows_excluded_from_progress(self):
        reports = [report("r1", actividades=[activity("A", 10, 10), activity("B", 0, 7)])]

        # B has no plan: dropped, not counted as 0%
        assert compute_metrics(reports).avance_promedio == pytest.approx(100.0)

    def test_unknown_category_uses_fallback_rate(self):
        reports = [report("r1", mano_obra=[worker("Raúl", "CAPATAZ", [2, 3])])]

        assert compute_metrics(reports).costo_mano_obra == pytest.approx(5 * FALLBACK_RATE)

    def test_cost_grows_with_hours(self):
        base = compute_metrics([report("r1", mano_obra=[worker(horas=[4])])]).costo_total
        more = compute_metrics([report("r1", mano_obra=[worker(horas=[4, 1])])]).costo_total

        assert more > base

    def test_no_executed_quantity_means_zero_cost_per_unit(self):
        reports = [report("r1", "2024-05-10", [activity("A", 10, 0)], [worker(horas=[8])])]
        metrics = compute_metrics(reports)

        assert metrics.costo_promedio_por_unidad == 0.0
        assert metrics.indice_eficiencia == 0.0

    def test_recomputed_from_scratch(self):
        reports = _site_reports()
        first = compute_metrics(reports)
        second = compute_metrics(reports)

        assert first == second


class TestEfficiencyIndex:

    @pytest.mark.parametrize("avance,cpu,expected", [
        (50.0, 10.0, 50.0),
        (0.0, 10.0, 0.0),
        (50.0, 0.0, 0.0),
    ])
    def test_values(self, avance, cpu, expected):
        assert efficiency_index(avance, cpu) == pytest.approx(expected)


class TestReportSummary:

    def test_one_row_per_report_in_order(self):
        df = report_summary(_site_reports())

        assert df["report_id"].tolist() == ["r1", "r2", "r3"]
        assert df.loc[0, "costo"] == pytest.approx(184.0)
        assert df.loc[0, "avance"] == pytest.approx(50.0)
        assert df.loc[2, "actividades"] == 0

    def test_empty(self):
        df = report_summary([])
        assert len(df) == 0
        assert "costo" in df.columns
