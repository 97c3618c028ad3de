from collections.abc import Iterable
from datetime import date
import logging
from typing import Literal

from funnel_analytics.schemas.forecast import DepartmentForecast, SalesObservation
from funnel_analytics.schemas.report import DailyReport
from funnel_analytics.services.forecast import (
    DEFAULT_HALF_LIFE_DAYS,
    DEFAULT_PACING_TOLERANCE,
    forecast_monthly,
    forecast_weighted,
)

logger = logging.getLogger(__name__)


def build_cumulative_observations(reports: Iterable[DailyReport], as_of: date) -> list[SalesObservation]:
    """Turn per-day report rows into the cumulative series the forecast engine expects.

    Sales are summed per date across all reports in ``as_of``'s month up to and
    including ``as_of``, then accumulated in date order.
    """
    daily: dict[date, float] = {}
    for report in reports:
        if report.date.year != as_of.year or report.date.month != as_of.month or report.date > as_of:
            continue
        daily[report.date] = daily.get(report.date, 0.0) + report.sales_amount

    running = 0.0
    series: list[SalesObservation] = []
    for day in sorted(daily):
        running += daily[day]
        series.append(SalesObservation(date=day, amount=running))
    return series


def department_forecast(
    reports: Iterable[DailyReport],
    goals: Iterable[float],
    as_of: date,
    strategy: Literal["linear", "weighted"] = "linear",
    half_life_days: float | None = None,
    pacing_tolerance: float = DEFAULT_PACING_TOLERANCE,
) -> DepartmentForecast:
    reports = list(reports)
    goals = list(goals)
    team_goal = sum(g for g in goals if g and g > 0)
    observations = build_cumulative_observations(reports, as_of)
    team_size = len(goals) or len({r.user_id for r in reports})

    logger.debug(
        "Department forecast: strategy=%s team_size=%s observations=%s goal=%s",
        strategy,
        team_size,
        len(observations),
        team_goal,
    )

    if strategy == "weighted":
        forecast = forecast_weighted(
            observations,
            team_goal,
            as_of,
            half_life_days=half_life_days or DEFAULT_HALF_LIFE_DAYS,
            pacing_tolerance=pacing_tolerance,
        )
    else:
        forecast = forecast_monthly(observations, team_goal, as_of, pacing_tolerance=pacing_tolerance)

    return DepartmentForecast(team_size=team_size, forecast=forecast)
