from datetime import date
import math
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

from funnel_analytics.schemas.report import DailyReport


class SalesObservation(BaseModel):
    date: date
    # Cumulative month-to-date sales as of `date`.
    amount: float


class ForecastPoint(BaseModel):
    date: date
    day: int
    plan: float
    actual: float | None = None
    projected: float | None = None


class ForecastResult(BaseModel):
    strategy: str
    current: float
    projected: float
    goal: float
    completion_percent: float
    projected_completion_percent: float
    daily_average: float
    daily_required: float
    expected_by_now: float
    pacing: float
    is_pacing_good: bool
    days_in_month: int
    days_elapsed: int
    days_remaining: int
    half_life_days: float | None = None
    chart_data: list[ForecastPoint]


class DepartmentForecast(BaseModel):
    team_size: int
    forecast: ForecastResult


def _check_amount(name: str, value: float, where: str) -> None:
    if not math.isfinite(value):
        raise ValueError(f"{name} must be a finite number ({where})")
    if value < 0:
        raise ValueError(f"{name} must be >= 0 ({where})")


class ForecastRequest(BaseModel):
    model_config = ConfigDict(allow_inf_nan=False)

    observations: list[SalesObservation] = Field(default_factory=list)
    goal: float = Field(default=0, ge=0)
    # Defaults to today when omitted.
    as_of: date | None = None
    half_life_days: float | None = Field(default=None, gt=0)

    @model_validator(mode="after")
    def _non_negative(self):
        for obs in self.observations:
            _check_amount("amount", obs.amount, f"observation {obs.date.isoformat()}")
        return self


class DepartmentForecastRequest(BaseModel):
    model_config = ConfigDict(allow_inf_nan=False)

    reports: list[DailyReport] = Field(default_factory=list)
    goals: list[float] = Field(default_factory=list)
    as_of: date | None = None
    strategy: Literal["linear", "weighted"] = "linear"
    half_life_days: float | None = Field(default=None, gt=0)

    @model_validator(mode="after")
    def _non_negative(self):
        if any(g < 0 for g in self.goals):
            raise ValueError("goals must be >= 0")
        for report in self.reports:
            _check_amount("sales_amount", report.sales_amount, f"report {report.date.isoformat()}")
        return self
