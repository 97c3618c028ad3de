from io import StringIO, BytesIO
import csv
import re

from reportlab.lib.pagesizes import letter
from reportlab.pdfgen import canvas

from funnel_analytics.schemas.funnel import FunnelResult
from funnel_analytics.schemas.report import ManagerStats

# Excel and friends evaluate cells starting with these as formulas.
_FORMULA_PREFIX = re.compile(r"^[=+\-@\t\r]")


def sanitize_csv_value(value) -> str:
    if value is None:
        return ""
    text = str(value)
    if _FORMULA_PREFIX.match(text):
        return f"'{text}"
    return text


def _writerow(writer, row: list) -> None:
    writer.writerow([sanitize_csv_value(v) for v in row])


def funnel_csv(result: FunnelResult) -> str:
    out = StringIO()
    writer = csv.writer(out)
    _writerow(writer, ["section", "stage_id", "label", "value", "conversion", "benchmark", "is_red_zone"])

    for stage in result.funnel:
        _writerow(writer, [
            "funnel",
            stage.id,
            stage.label,
            stage.value,
            stage.conversion,
            stage.benchmark,
            "yes" if stage.is_red_zone else "no",
        ])

    for item in result.side_flow.refusals.by_stage:
        _writerow(writer, ["refusals", item.stage_id, item.label, item.count, item.rate, "", ""])

    kpi = result.north_star_kpi
    _writerow(writer, ["north_star", "", kpi.label, "", kpi.value, kpi.target, "no" if kpi.is_on_track else "yes"])

    return out.getvalue()


def manager_stats_csv(stats: list[ManagerStats]) -> str:
    out = StringIO()
    writer = csv.writer(out)
    _writerow(writer, [
        "id",
        "name",
        "zoom_booked",
        "zoom1_held",
        "zoom2_held",
        "contract_review",
        "push",
        "deals",
        "sales_amount",
        "booked_to_zoom1",
        "zoom1_to_zoom2",
        "zoom2_to_contract",
        "contract_to_push",
        "push_to_deal",
        "north_star",
        "plan_sales",
        "activity_score",
        "trend",
    ])

    for s in stats:
        _writerow(writer, [
            s.id,
            s.name,
            s.zoom_booked,
            s.zoom1_held,
            s.zoom2_held,
            s.contract_review,
            s.push,
            s.deals,
            s.sales_amount,
            s.booked_to_zoom1,
            s.zoom1_to_zoom2,
            s.zoom2_to_contract,
            s.contract_to_push,
            s.push_to_deal,
            s.north_star,
            s.plan_sales,
            s.activity_score,
            s.trend,
        ])

    return out.getvalue()


def funnel_pdf(result: FunnelResult, title: str = "Sales Funnel Report") -> bytes:
    buffer = BytesIO()
    p = canvas.Canvas(buffer, pagesize=letter)
    y = 760
    p.setFont("Helvetica-Bold", 16)
    p.drawString(50, y, title)
    y -= 40
    p.setFont("Helvetica", 11)

    lines = [
        f"{stage.label}: {stage.value} ({stage.conversion}% vs {stage.benchmark}% target)"
        + (" - RED ZONE" if stage.is_red_zone else "")
        for stage in result.funnel
    ]
    refusals = result.side_flow.refusals
    lines.append(f"Refusals: {refusals.total} ({refusals.rate_from_first_zoom}% of first-meeting volume)")
    lines.append(f"Warming: {result.side_flow.warming.count}")
    kpi = result.north_star_kpi
    lines.append(f"{kpi.label}: {kpi.value}% (target {kpi.target}%, delta {kpi.delta})")

    for line in lines:
        p.drawString(50, y, line)
        y -= 22

    p.showPage()
    p.save()
    buffer.seek(0)
    return buffer.read()
