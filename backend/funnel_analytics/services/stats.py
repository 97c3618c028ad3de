from collections.abc import Iterable, Mapping

from funnel_analytics.schemas.funnel import StageCounts
from funnel_analytics.schemas.report import DailyReport, ManagerStats, ReportTotals
from funnel_analytics.services.funnel import compute_funnel
from funnel_analytics.services.rounding import round_half_up, round_money, safe_rate

DEFAULT_SALES_PER_DEAL = 100_000

# ManagerStats field -> funnel stage whose stage-over-previous conversion it holds.
TRANSITIONS: dict[str, str] = {
    "booked_to_zoom1": "zoom1_held",
    "zoom1_to_zoom2": "zoom2_held",
    "zoom2_to_contract": "contract_review",
    "contract_to_push": "push",
    "push_to_deal": "deals",
}


def aggregate_reports(reports: Iterable[DailyReport]) -> ReportTotals:
    totals = ReportTotals()
    refusals_by_stage: dict[str, int] = {}

    for report in reports:
        push = report.push if report.push is not None else report.contract_review
        totals.zoom_booked += report.zoom_booked
        totals.zoom1_held += report.zoom1_held
        totals.zoom2_held += report.zoom2_held
        totals.contract_review += report.contract_review
        totals.push += push
        totals.deals += report.deals
        totals.sales_amount += report.sales_amount
        totals.refusals += report.refusals or 0
        totals.warming += report.warming or 0
        for stage_id, count in (report.refusals_by_stage or {}).items():
            refusals_by_stage[stage_id] = refusals_by_stage.get(stage_id, 0) + int(count or 0)

    totals.refusals_by_stage = refusals_by_stage or None
    return totals


def _activity_score(totals: StageCounts) -> int:
    expected = 100 if totals.zoom_booked > 0 else 0
    actual = min(100, int(round_half_up(totals.zoom1_held / max(1, totals.zoom_booked) * 100, 0)))
    return int(round_half_up((expected + actual) / 2, 0))


def _trend(sales_amount: float, plan_sales: float) -> str:
    progress = sales_amount / plan_sales * 100 if plan_sales > 0 else 0
    if progress >= 80:
        return "up"
    if progress >= 50:
        return "flat"
    return "down"


def compute_manager_stats(
    reports: Iterable[DailyReport],
    plan_sales: float = 0,
    plan_deals: int = 0,
    benchmarks: Mapping[str, float] | None = None,
    sales_per_deal: float = DEFAULT_SALES_PER_DEAL,
    employee_id: str | None = None,
    name: str | None = None,
) -> ManagerStats:
    totals = aggregate_reports(reports)
    result = compute_funnel(totals, benchmarks)
    conversions = {stage.id: stage.conversion for stage in result.funnel}

    if not plan_deals:
        plan_deals = max(1, int(round_half_up(plan_sales / sales_per_deal, 0))) if sales_per_deal > 0 else 1

    return ManagerStats(
        id=employee_id,
        name=name,
        zoom_booked=totals.zoom_booked,
        zoom1_held=totals.zoom1_held,
        zoom2_held=totals.zoom2_held,
        contract_review=totals.contract_review,
        push=totals.push,
        deals=totals.deals,
        sales_amount=round_money(totals.sales_amount),
        refusals=totals.refusals,
        warming=totals.warming,
        **{field: conversions[stage_id] for field, stage_id in TRANSITIONS.items()},
        north_star=safe_rate(totals.deals, totals.zoom1_held or totals.zoom_booked),
        total_conversion=result.north_star_kpi.value,
        plan_sales=plan_sales,
        plan_deals=plan_deals,
        activity_score=_activity_score(totals),
        trend=_trend(totals.sales_amount, plan_sales),
    )


def team_average(stats: list[ManagerStats]) -> dict[str, float]:
    if not stats:
        return {field: 0.0 for field in TRANSITIONS}
    return {
        field: round_half_up(sum(getattr(s, field) for s in stats) / len(stats))
        for field in TRANSITIONS
    }


def rank_performers(stats: list[ManagerStats], n: int = 3) -> tuple[list[ManagerStats], list[ManagerStats]]:
    """Top and bottom ``n`` by push-to-deal conversion; bottom list is worst first."""
    ordered = sorted(stats, key=lambda s: s.push_to_deal, reverse=True)
    top = ordered[:n]
    bottom = list(reversed(ordered[-n:])) if n > 0 else []
    return top, bottom
