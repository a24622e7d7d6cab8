"""
Tests for activity, labor and cost rollups.

Fixture site: two reports, two activities, one OPERARIO and one PEON.
Hours are read positionally against each report's activity list.
"""
import pytest
import pandas as pd
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))
sys.path.insert(0, str(Path(__file__).parent))

from builders import activity, report, worker
from obra_dashboard.config import UNSPECIFIED_CONTRACTOR
from obra_dashboard.metrics.activities import (
    activity_detail, activity_lines, activity_rollup, top_activities,
)
from obra_dashboard.metrics.costs import (
    activity_costs, category_cost_table, contractor_summary, cost_by_category, cost_by_month,
    cost_vs_progress,
)
from obra_dashboard.metrics.labor import (
    category_efficiency, category_hours, category_productivity, category_summary, worker_rollup,
)

OPERARIO_RATE = 23.00
PEON_RATE = 16.38


@pytest.fixture
def reports():
    return [
        report(
            "r1", "2024-05-10",
            actividades=[activity("Encofrado", 10, 5, "m2"), activity("Vaciado", 20, 20, "m3")],
            mano_obra=[worker("Juan", "OPERARIO", [4, 4]), worker("Ana", "PEON", [0, 6])],
            subcontratista="Bloque A",
        ),
        report(
            "r2", "2024-05-12",
            actividades=[activity("Encofrado", 10, 10, "m2")],
            mano_obra=[worker("Juan", "OPERARIO", [8])],
            subcontratista="",
        ),
    ]


# =============================================================================
# ACTIVITIES
# =============================================================================

class TestActivityLines:

    def test_hours_and_cost_per_line(self, reports):
        lines = activity_lines(reports).set_index(["report_id", "proceso"])

        assert lines.loc[("r1", "Encofrado"), "horas"] == pytest.approx(4.0)
        assert lines.loc[("r1", "Vaciado"), "costo"] == pytest.approx(4 * OPERARIO_RATE + 6 * PEON_RATE)

    def test_unnamed_activities_dropped(self):
        lines = activity_lines([report("r1", actividades=[activity(""), activity("A")])])
        assert lines["proceso"].tolist() == ["A"]

    def test_no_labor_means_zero_hours(self):
        lines = activity_lines([report("r1", actividades=[activity("A")])])

        assert lines["horas"].tolist() == [0.0]
        assert lines["costo"].tolist() == [0.0]


class TestActivityRollup:

    def test_sorted_by_executed_quantity(self, reports):
        rollup = activity_rollup(reports)
        assert rollup["proceso"].tolist() == ["Vaciado", "Encofrado"]

    def test_aggregates(self, reports):
        row = activity_rollup(reports).set_index("proceso").loc["Encofrado"]

        assert row["und"] == "m2"
        assert row["metrado_p"] == pytest.approx(20.0)
        assert row["metrado_e"] == pytest.approx(15.0)
        # Total executed over total planned
        assert row["avance"] == pytest.approx(75.0)
        assert row["costo"] == pytest.approx(12 * OPERARIO_RATE)
        assert row["costo_por_unidad"] == pytest.approx(12 * OPERARIO_RATE / 15.0)
        assert row["reportes"] == 2
        assert row["trabajadores"] == 1
        assert row["productividad"] == pytest.approx(15.0 / 12.0)

    def test_workers_counted_per_activity(self, reports):
        rollup = activity_rollup(reports).set_index("proceso")
        assert rollup.loc["Vaciado", "trabajadores"] == 2

    def test_top_activities(self, reports):
        assert top_activities(reports, n=1)["proceso"].tolist() == ["Vaciado"]

    def test_empty(self):
        assert len(activity_rollup([])) == 0


class TestActivityDetail:

    def test_newest_first_with_line_progress(self, reports):
        detail = activity_detail(reports, "Encofrado")

        assert detail["report_id"].tolist() == ["r2", "r1"]
        assert detail["avance"].tolist() == pytest.approx([100.0, 50.0])

    def test_unknown_activity(self, reports):
        assert len(activity_detail(reports, "Pintura")) == 0


# =============================================================================
# LABOR
# =============================================================================

class TestCategoryTotals:

    def test_category_hours_sorted(self, reports):
        df = category_hours(reports)

        assert df["categoria"].tolist() == ["OPERARIO", "PEON"]
        assert df["horas"].tolist() == pytest.approx([16.0, 6.0])

    def test_category_summary(self, reports):
        df = category_summary(reports).set_index("categoria")

        assert df.loc["OPERARIO", "trabajadores"] == 1
        assert df.loc["OPERARIO", "promedio_horas"] == pytest.approx(16.0)
        assert df.loc["PEON", "costo"] == pytest.approx(6 * PEON_RATE)

    def test_uncategorised_entries_ignored(self):
        reports = [report("r1", mano_obra=[worker("Pedro", "", [5]), worker("Ana", "PEON", [2])])]

        assert category_hours(reports)["categoria"].tolist() == ["PEON"]
        assert category_summary(reports)["horas"].sum() == pytest.approx(2.0)


class TestWorkerRollup:

    def test_sorted_by_hours(self, reports):
        assert worker_rollup(reports)["trabajador"].tolist() == ["Juan", "Ana"]

    def test_worker_row(self, reports):
        juan = worker_rollup(reports).set_index("trabajador").loc["Juan"]

        assert juan["horas"] == pytest.approx(16.0)
        assert juan["costo"] == pytest.approx(16 * OPERARIO_RATE)
        assert juan["reportes"] == 2
        assert juan["actividad_principal"] == "Encofrado"
        # 5 (all of r1 Encofrado) + 8 of 20 Vaciado + 10 (all of r2 Encofrado)
        assert juan["metrado_asignado"] == pytest.approx(23.0)
        assert juan["productividad"] == pytest.approx(23.0 / 16.0)

    def test_worker_without_activity_hours(self):
        reports = [report("r1", mano_obra=[worker("Raúl", "OFICIAL", [3])])]
        row = worker_rollup(reports).iloc[0]

        assert row["actividad_principal"] == "N/A"
        assert row["productividad"] == 0.0

    def test_top_n(self, reports):
        assert len(worker_rollup(reports, top_n=1)) == 1


class TestProductivityEfficiency:

    def test_category_productivity(self, reports):
        df = category_productivity(reports).set_index("categoria")

        assert df.loc["OPERARIO", "metrado_asignado"] == pytest.approx(23.0)
        assert df.loc["PEON", "productividad"] == pytest.approx(12.0 / 6.0)

    def test_category_efficiency(self, reports):
        df = category_efficiency(reports)

        assert df["categoria"].tolist() == ["PEON", "OPERARIO"]
        peon = df.set_index("categoria").loc["PEON"]
        assert peon["avance_promedio"] == pytest.approx(100.0)
        assert peon["eficiencia"] == pytest.approx(100.0 / (PEON_RATE * 2.0) * 10)

    def test_efficiency_zero_without_execution(self):
        reports = [report("r1", "2024-05-10", [activity("A", 10, 0)], [worker("Juan", "OPERARIO", [8])])]

        assert category_efficiency(reports)["eficiencia"].tolist() == [0.0]


# =============================================================================
# COSTS
# =============================================================================

class TestCosts:

    def test_cost_by_month(self, reports):
        df = cost_by_month(reports)

        assert df["label"].tolist() == ["mayo 2024"]
        assert df["costo"].iloc[0] == pytest.approx(16 * OPERARIO_RATE + 6 * PEON_RATE)

    def test_cost_by_category_totals(self, reports):
        df = cost_by_category(reports)
        assert df["costo"].sum() == pytest.approx(16 * OPERARIO_RATE + 6 * PEON_RATE)

    def test_activity_cost_share_over_all_activities(self, reports):
        df = activity_costs(reports, n=1)
        total = 16 * OPERARIO_RATE + 6 * PEON_RATE

        assert df["proceso"].tolist() == ["Encofrado"]
        assert df["porcentaje"].iloc[0] == pytest.approx(12 * OPERARIO_RATE / total * 100)

    def test_category_cost_table(self, reports):
        df = category_cost_table(reports)

        assert df["tarifa"].tolist() == pytest.approx([OPERARIO_RATE, PEON_RATE])
        assert df["porcentaje"].sum() == pytest.approx(100.0)

    def test_cost_vs_progress_labels(self, reports):
        df = cost_vs_progress(reports)

        assert df["label"].tolist() == ["Bloque A (may 2024)", "N/A (may 2024)"]
        assert df["avance"].tolist() == pytest.approx([75.0, 100.0])

    def test_contractor_summary(self, reports):
        df = contractor_summary(reports)

        assert df["subcontratista"].tolist() == [UNSPECIFIED_CONTRACTOR, "Bloque A"]
        assert df["reportes"].tolist() == [1, 1]
        bloque = df.set_index("subcontratista").loc["Bloque A"]
        assert bloque["costo"] == pytest.approx(8 * OPERARIO_RATE + 6 * PEON_RATE)

    def test_empty_inputs(self):
        assert len(cost_by_month([])) == 0
        assert len(activity_costs([])) == 0
        assert len(contractor_summary([])) == 0
        assert isinstance(category_cost_table([]), pd.DataFrame)
