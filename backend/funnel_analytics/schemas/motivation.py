from datetime import date
import math

from pydantic import BaseModel, ConfigDict, Field, model_validator

from funnel_analytics.schemas.forecast import SalesObservation


class MotivationGrade(BaseModel):
    min_turnover: float = Field(ge=0)
    # None means open-ended.
    max_turnover: float | None = None
    # Share of turnover, 0.05 = 5%.
    commission_rate: float = Field(ge=0, le=1)

    @model_validator(mode="after")
    def _range(self):
        if self.max_turnover is not None and self.max_turnover <= self.min_turnover:
            raise ValueError("max_turnover must be greater than min_turnover")
        return self


class MotivationResult(BaseModel):
    fact_turnover: float
    hot_turnover: float
    forecast_turnover: float
    total_potential_turnover: float
    fact_rate: float
    forecast_rate: float
    salary_fact: float
    salary_forecast: float
    potential_gain: float


class IncomeScenario(BaseModel):
    turnover: float
    rate: float
    income: float


class IncomeForecast(BaseModel):
    goal: float
    hot_turnover: float
    current: IncomeScenario
    projected: IncomeScenario
    optimistic: IncomeScenario
    projected_growth: float
    potential_growth: float
    grades: list[MotivationGrade]


class MotivationRequest(BaseModel):
    model_config = ConfigDict(allow_inf_nan=False)

    fact_turnover: float = Field(default=0, ge=0)
    hot_turnover: float = Field(default=0, ge=0)
    forecast_weight: float | None = Field(default=None, ge=0, le=1)
    grades: list[MotivationGrade] | None = None


class IncomeForecastRequest(BaseModel):
    model_config = ConfigDict(allow_inf_nan=False)

    # Cumulative month-to-date sales, as for /forecast/monthly.
    observations: list[SalesObservation] = Field(default_factory=list)
    goal: float = Field(default=0, ge=0)
    as_of: date | None = None
    # Budget of open focus deals.
    hot_turnover: float = Field(default=0, ge=0)
    grades: list[MotivationGrade] | None = None

    @model_validator(mode="after")
    def _finite_amounts(self):
        for obs in self.observations:
            if not math.isfinite(obs.amount) or obs.amount < 0:
                raise ValueError(f"amount must be a finite number >= 0 (observation {obs.date.isoformat()})")
        return self
