"""Month-end sales forecasting.

Both strategies take *cumulative* month-to-date observations: each
``SalesObservation.amount`` is the running total on that date, not the sales
booked that day. ``services.department.build_cumulative_observations`` turns
per-day report rows into this shape.

- ``forecast_monthly``: run-rate over the calendar days elapsed, extrapolated
  to the whole month.
- ``forecast_weighted``: per-day sales rates weighted by recency
  (``0.5 ** (days_ago / half_life_days)``), extrapolated over the days left.

The two projections are not ordered relative to each other, but both equal
``current`` on the last day of the month.
"""

import calendar
from collections.abc import Iterable
from datetime import date
import logging

from funnel_analytics.schemas.forecast import ForecastPoint, ForecastResult, SalesObservation
from funnel_analytics.services.rounding import round_half_up, round_money, safe_rate

logger = logging.getLogger(__name__)

DEFAULT_HALF_LIFE_DAYS = 7.0
DEFAULT_PACING_TOLERANCE = -5.0


def days_in_month(day: date) -> int:
    return calendar.monthrange(day.year, day.month)[1]


def month_series(observations: Iterable[SalesObservation], as_of: date) -> list[SalesObservation]:
    """Observations of ``as_of``'s month up to ``as_of``, oldest first, one per date.

    A repeated date keeps the observation that came last in the input.
    """
    by_date: dict[date, SalesObservation] = {}
    for obs in observations:
        if obs.date.year == as_of.year and obs.date.month == as_of.month and obs.date <= as_of:
            by_date[obs.date] = obs
    return [by_date[d] for d in sorted(by_date)]


def _chart_data(
    series: list[SalesObservation],
    goal: float,
    as_of: date,
    current: float,
    daily_average: float,
) -> list[ForecastPoint]:
    total_days = days_in_month(as_of)
    daily_plan = goal / total_days if goal > 0 else 0.0
    points: list[ForecastPoint] = []
    latest = 0.0
    idx = 0

    for day in range(1, total_days + 1):
        point_date = as_of.replace(day=day)
        point = ForecastPoint(date=point_date, day=day, plan=round_money(daily_plan * day))
        if day <= as_of.day:
            while idx < len(series) and series[idx].date <= point_date:
                latest = series[idx].amount
                idx += 1
            point.actual = round_money(latest)
        else:
            point.projected = round_money(current + daily_average * (day - as_of.day))
        points.append(point)

    return points


def _build_result(
    strategy: str,
    series: list[SalesObservation],
    goal: float,
    as_of: date,
    current: float,
    daily_average: float,
    projected: float,
    pacing_tolerance: float,
    half_life_days: float | None = None,
) -> ForecastResult:
    total_days = days_in_month(as_of)
    elapsed = as_of.day
    remaining = total_days - elapsed

    expected_by_now = goal / total_days * elapsed if goal > 0 else 0.0
    pacing = (current - expected_by_now) / expected_by_now * 100 if expected_by_now > 0 else 0.0
    daily_required = max(goal - current, 0.0) / remaining if remaining > 0 else 0.0

    return ForecastResult(
        strategy=strategy,
        current=round_money(current),
        projected=round_money(projected),
        goal=round_money(goal),
        completion_percent=safe_rate(current, goal),
        projected_completion_percent=safe_rate(projected, goal),
        daily_average=round_money(daily_average),
        daily_required=round_money(daily_required),
        expected_by_now=round_money(expected_by_now),
        pacing=round_half_up(pacing),
        is_pacing_good=expected_by_now > 0 and pacing >= pacing_tolerance,
        days_in_month=total_days,
        days_elapsed=elapsed,
        days_remaining=remaining,
        half_life_days=half_life_days,
        chart_data=_chart_data(series, goal, as_of, current, daily_average),
    )


def forecast_monthly(
    observations: Iterable[SalesObservation],
    goal: float,
    as_of: date,
    pacing_tolerance: float = DEFAULT_PACING_TOLERANCE,
) -> ForecastResult:
    series = month_series(observations, as_of)
    if not series:
        logger.debug("No observations for %s; forecasting from zero", as_of.strftime("%Y-%m"))

    current = series[-1].amount if series else 0.0
    remaining = days_in_month(as_of) - as_of.day
    daily_average = current / max(as_of.day, 1)
    projected = current if remaining == 0 else daily_average * days_in_month(as_of)

    return _build_result("linear", series, goal, as_of, current, daily_average, projected, pacing_tolerance)


def weighted_daily_rate(series: list[SalesObservation], as_of: date, half_life_days: float) -> float:
    """Recency-weighted average of per-day sales rates between observations.

    The first observation covers the days since the month opened.
    """
    weighted_sum = 0.0
    weight_total = 0.0
    prev_amount = 0.0
    prev_date: date | None = None

    for obs in series:
        gap = (obs.date - prev_date).days if prev_date else obs.date.day
        rate = (obs.amount - prev_amount) / max(gap, 1)
        weight = 0.5 ** ((as_of - obs.date).days / half_life_days)
        weighted_sum += weight * rate
        weight_total += weight
        prev_amount = obs.amount
        prev_date = obs.date

    return weighted_sum / weight_total if weight_total > 0 else 0.0


def forecast_weighted(
    observations: Iterable[SalesObservation],
    goal: float,
    as_of: date,
    half_life_days: float | None = DEFAULT_HALF_LIFE_DAYS,
    pacing_tolerance: float = DEFAULT_PACING_TOLERANCE,
) -> ForecastResult:
    if half_life_days is None or half_life_days <= 0:
        half_life_days = DEFAULT_HALF_LIFE_DAYS

    series = month_series(observations, as_of)
    current = series[-1].amount if series else 0.0
    daily_rate = weighted_daily_rate(series, as_of, half_life_days)
    projected = current + daily_rate * (days_in_month(as_of) - as_of.day)

    return _build_result(
        "weighted",
        series,
        goal,
        as_of,
        current,
        daily_rate,
        projected,
        pacing_tolerance,
        half_life_days=half_life_days,
    )
