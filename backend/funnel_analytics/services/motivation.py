"""Commission grades and income forecasts.

A grade applies when ``min_turnover <= turnover < max_turnover``; turnover
above every bounded grade falls into the last (highest) one. Non-finite
turnover counts as 0.
"""

from collections.abc import Iterable, Sequence
from datetime import date
import logging
import math

from funnel_analytics.schemas.forecast import SalesObservation
from funnel_analytics.schemas.motivation import IncomeForecast, IncomeScenario, MotivationGrade, MotivationResult
from funnel_analytics.services.forecast import forecast_monthly
from funnel_analytics.services.rounding import round_money

logger = logging.getLogger(__name__)

DEFAULT_FORECAST_WEIGHT = 0.5

DEFAULT_GRADES: tuple[MotivationGrade, ...] = (
    MotivationGrade(min_turnover=0, max_turnover=600_000, commission_rate=0),
    MotivationGrade(min_turnover=600_000, max_turnover=1_000_000, commission_rate=0.05),
    MotivationGrade(min_turnover=1_000_000, max_turnover=2_000_000, commission_rate=0.07),
    MotivationGrade(min_turnover=2_000_000, max_turnover=3_500_000, commission_rate=0.08),
    MotivationGrade(min_turnover=3_500_000, max_turnover=4_000_000, commission_rate=0.09),
    MotivationGrade(min_turnover=4_000_000, max_turnover=None, commission_rate=0.1),
)


def _finite(value: float) -> float:
    return value if math.isfinite(value) else 0.0


def _sorted_grades(grades: Sequence[MotivationGrade] | None) -> list[MotivationGrade]:
    return sorted(grades or DEFAULT_GRADES, key=lambda g: g.min_turnover)


def resolve_commission_rate(turnover: float, grades: Sequence[MotivationGrade] | None = None) -> float:
    ordered = _sorted_grades(grades)
    for grade in ordered:
        upper = grade.max_turnover if grade.max_turnover is not None else math.inf
        if grade.min_turnover <= turnover < upper:
            return grade.commission_rate
    return ordered[-1].commission_rate if ordered else 0.0


def calculate_motivation(
    fact_turnover: float,
    hot_turnover: float,
    grades: Sequence[MotivationGrade] | None = None,
    forecast_weight: float = DEFAULT_FORECAST_WEIGHT,
) -> MotivationResult:
    """Salary on booked turnover vs. salary if a weighted share of the hot pipeline closes."""
    fact = _finite(fact_turnover)
    hot = _finite(hot_turnover)

    forecast_turnover = hot * forecast_weight
    total = fact + forecast_turnover
    fact_rate = resolve_commission_rate(fact, grades)
    forecast_rate = resolve_commission_rate(total, grades)
    salary_fact = fact * fact_rate
    salary_forecast = total * forecast_rate

    return MotivationResult(
        fact_turnover=round_money(fact),
        hot_turnover=round_money(hot),
        forecast_turnover=round_money(forecast_turnover),
        total_potential_turnover=round_money(total),
        fact_rate=fact_rate,
        forecast_rate=forecast_rate,
        salary_fact=round_money(salary_fact),
        salary_forecast=round_money(salary_forecast),
        potential_gain=round_money(salary_forecast - salary_fact),
    )


def _scenario(turnover: float, grades: Sequence[MotivationGrade] | None) -> tuple[IncomeScenario, float]:
    rate = resolve_commission_rate(turnover, grades)
    income = turnover * rate
    return IncomeScenario(turnover=round_money(turnover), rate=rate, income=round_money(income)), income


def income_forecast(
    observations: Iterable[SalesObservation],
    goal: float,
    as_of: date,
    hot_turnover: float = 0,
    grades: Sequence[MotivationGrade] | None = None,
) -> IncomeForecast:
    """Commission now, at the linear month-end projection, and with open focus deals closed on top."""
    forecast = forecast_monthly(observations, goal, as_of)
    hot = _finite(hot_turnover)
    current_sales = _finite(forecast.current)
    projected_sales = _finite(forecast.projected)

    current, current_income = _scenario(current_sales, grades)
    projected, projected_income = _scenario(projected_sales, grades)
    optimistic, optimistic_income = _scenario(projected_sales + hot, grades)

    logger.debug(
        "Income forecast: current=%s projected=%s hot=%s",
        current_sales,
        projected_sales,
        hot,
    )

    return IncomeForecast(
        goal=forecast.goal,
        hot_turnover=round_money(hot),
        current=current,
        projected=projected,
        optimistic=optimistic,
        projected_growth=round_money(projected_income - current_income),
        potential_growth=round_money(optimistic_income - projected_income),
        grades=_sorted_grades(grades),
    )
