"""Export tests: CSV formula-injection sanitizing, funnel/team CSV layout, PDF rendering."""

import os
import sys

# Ensure the backend package is importable
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import csv
from io import StringIO

import pytest

from funnel_analytics.schemas.funnel import StageCounts
from funnel_analytics.services.funnel import compute_funnel
from funnel_analytics.services.reports import funnel_csv, funnel_pdf, manager_stats_csv, sanitize_csv_value
from funnel_analytics.services.stats import compute_manager_stats

RESULT = compute_funnel(
    StageCounts(zoom_booked=100, zoom1_held=50, zoom2_held=25, contract_review=10, push=5, deals=2, refusals=4)
)


def _rows(text: str) -> list[list[str]]:
    return list(csv.reader(StringIO(text)))


class TestSanitize:
    @pytest.mark.parametrize("value", ["=SUM(A1:A2)", "+1", "-2", "@cmd", "\tx", "\rx"])
    def test_formula_prefixes_escaped(self, value):
        assert sanitize_csv_value(value) == f"'{value}"

    def test_plain_values_untouched(self):
        assert sanitize_csv_value("Anna") == "Anna"
        assert sanitize_csv_value(42) == "42"
        assert sanitize_csv_value(1.5) == "1.5"

    def test_none(self):
        assert sanitize_csv_value(None) == ""


class TestFunnelCsv:
    def test_layout(self):
        rows = _rows(funnel_csv(RESULT))
        assert rows[0][0] == "section"
        sections = [r[0] for r in rows[1:]]
        assert sections == ["funnel"] * 6 + ["refusals"] * 5 + ["north_star"]

    def test_stage_rows(self):
        rows = _rows(funnel_csv(RESULT))
        assert rows[1][:5] == ["funnel", "zoom_booked", "Booked for Zoom", "100", "100.0"]
        assert rows[2][6] == "yes"
        assert rows[3][6] == "no"

    def test_refusal_rows(self):
        rows = _rows(funnel_csv(RESULT))
        assert rows[7][:5] == ["refusals", "zoom_booked", "Booked for Zoom", "4", "4.0"]


class TestManagerStatsCsv:
    def test_injection_in_name(self):
        stats = compute_manager_stats([], employee_id="u1", name="=HYPERLINK(\"http://x\")")
        rows = _rows(manager_stats_csv([stats]))
        assert rows[0][0] == "id"
        assert rows[1][1].startswith("'=")

    def test_one_row_per_employee(self):
        stats = [compute_manager_stats([], employee_id=str(i), name=f"e{i}") for i in range(3)]
        assert len(_rows(manager_stats_csv(stats))) == 4


class TestFunnelPdf:
    def test_renders_pdf(self):
        pdf = funnel_pdf(RESULT)
        assert pdf.startswith(b"%PDF")
        assert len(pdf) > 500
