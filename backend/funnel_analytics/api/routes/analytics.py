from fastapi import APIRouter, Depends
from fastapi.responses import Response

from funnel_analytics.core.config import Settings, get_settings
from funnel_analytics.schemas.analytics import EmployeeAnalysis, FunnelRequest, TeamAnalytics, TeamRequest
from funnel_analytics.schemas.funnel import FunnelResult
from funnel_analytics.schemas.report import ManagerStats
from funnel_analytics.services.funnel import compute_funnel
from funnel_analytics.services.recommendations import analyze_red_zones
from funnel_analytics.services.reports import funnel_csv, funnel_pdf, manager_stats_csv
from funnel_analytics.services.stats import aggregate_reports, compute_manager_stats, rank_performers, team_average

router = APIRouter(prefix="/analytics", tags=["analytics"])


def _benchmarks(settings: Settings, overrides: dict[str, float]) -> dict[str, float]:
    return {**settings.conversion_benchmarks(), **overrides}


def _funnel(payload: FunnelRequest, settings: Settings) -> FunnelResult:
    return compute_funnel(
        payload.counts,
        _benchmarks(settings, payload.benchmarks),
        north_star_target=settings.NORTH_STAR_TARGET,
    )


def _employee_stats(payload: TeamRequest, settings: Settings) -> list[ManagerStats]:
    benchmarks = _benchmarks(settings, payload.benchmarks)
    return [
        compute_manager_stats(
            emp.reports,
            plan_sales=emp.plan_sales,
            plan_deals=emp.plan_deals,
            benchmarks=benchmarks,
            sales_per_deal=settings.SALES_PER_DEAL,
            employee_id=emp.id,
            name=emp.name,
        )
        for emp in payload.employees
    ]


@router.post("/funnel", response_model=FunnelResult)
def funnel(payload: FunnelRequest, settings: Settings = Depends(get_settings)):
    return _funnel(payload, settings)


@router.post("/funnel.csv")
def export_funnel_csv(payload: FunnelRequest, settings: Settings = Depends(get_settings)):
    csv_data = funnel_csv(_funnel(payload, settings))
    return Response(
        content=csv_data,
        media_type="text/csv",
        headers={"Content-Disposition": "attachment; filename=funnel.csv"},
    )


@router.post("/funnel.pdf")
def export_funnel_pdf(payload: FunnelRequest, settings: Settings = Depends(get_settings)):
    pdf = funnel_pdf(_funnel(payload, settings), title=f"{settings.PROJECT_NAME} - Sales Funnel")
    return Response(
        content=pdf,
        media_type="application/pdf",
        headers={"Content-Disposition": "attachment; filename=funnel.pdf"},
    )


@router.post("/team", response_model=TeamAnalytics)
def team_analytics(payload: TeamRequest, settings: Settings = Depends(get_settings)):
    benchmarks = _benchmarks(settings, payload.benchmarks)
    stats = _employee_stats(payload, settings)
    averages = team_average(stats)
    top, bottom = rank_performers(stats)

    all_reports = [report for emp in payload.employees for report in emp.reports]
    team = compute_funnel(aggregate_reports(all_reports), benchmarks, north_star_target=settings.NORTH_STAR_TARGET)

    return TeamAnalytics(
        team=team,
        team_average=averages,
        employees=[
            EmployeeAnalysis(
                stats=s,
                red_zones=analyze_red_zones(s, averages, benchmarks, tolerance=settings.REDZONE_TOLERANCE),
            )
            for s in stats
        ],
        top_performers=top,
        bottom_performers=bottom,
    )


@router.post("/team.csv")
def export_team_csv(payload: TeamRequest, settings: Settings = Depends(get_settings)):
    csv_data = manager_stats_csv(_employee_stats(payload, settings))
    return Response(
        content=csv_data,
        media_type="text/csv",
        headers={"Content-Disposition": "attachment; filename=team.csv"},
    )
