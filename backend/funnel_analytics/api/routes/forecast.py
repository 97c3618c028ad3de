from datetime import date

from fastapi import APIRouter, Depends

from funnel_analytics.core.config import Settings, get_settings
from funnel_analytics.schemas.forecast import (
    DepartmentForecast,
    DepartmentForecastRequest,
    ForecastRequest,
    ForecastResult,
)
from funnel_analytics.schemas.motivation import (
    IncomeForecast,
    IncomeForecastRequest,
    MotivationRequest,
    MotivationResult,
)
from funnel_analytics.services.department import department_forecast
from funnel_analytics.services.forecast import forecast_monthly, forecast_weighted
from funnel_analytics.services.motivation import calculate_motivation, income_forecast

router = APIRouter(prefix="/forecast", tags=["forecast"])


@router.post("/monthly", response_model=ForecastResult, response_model_exclude_none=True)
def monthly_forecast(payload: ForecastRequest, settings: Settings = Depends(get_settings)):
    return forecast_monthly(
        payload.observations,
        payload.goal,
        payload.as_of or date.today(),
        pacing_tolerance=settings.PACING_TOLERANCE,
    )


@router.post("/weighted", response_model=ForecastResult, response_model_exclude_none=True)
def weighted_forecast(payload: ForecastRequest, settings: Settings = Depends(get_settings)):
    return forecast_weighted(
        payload.observations,
        payload.goal,
        payload.as_of or date.today(),
        half_life_days=payload.half_life_days or settings.FORECAST_HALF_LIFE_DAYS,
        pacing_tolerance=settings.PACING_TOLERANCE,
    )


@router.post("/department", response_model=DepartmentForecast, response_model_exclude_none=True)
def department(payload: DepartmentForecastRequest, settings: Settings = Depends(get_settings)):
    return department_forecast(
        payload.reports,
        payload.goals,
        payload.as_of or date.today(),
        strategy=payload.strategy,
        half_life_days=payload.half_life_days or settings.FORECAST_HALF_LIFE_DAYS,
        pacing_tolerance=settings.PACING_TOLERANCE,
    )


@router.post("/income", response_model=IncomeForecast)
def income(payload: IncomeForecastRequest, settings: Settings = Depends(get_settings)):
    return income_forecast(
        payload.observations,
        payload.goal,
        payload.as_of or date.today(),
        hot_turnover=payload.hot_turnover,
        grades=payload.grades or settings.MOTIVATION_GRADES,
    )


@router.post("/motivation", response_model=MotivationResult)
def motivation(payload: MotivationRequest, settings: Settings = Depends(get_settings)):
    weight = payload.forecast_weight
    return calculate_motivation(
        payload.fact_turnover,
        payload.hot_turnover,
        grades=payload.grades or settings.MOTIVATION_GRADES,
        forecast_weight=settings.MOTIVATION_FORECAST_WEIGHT if weight is None else weight,
    )
