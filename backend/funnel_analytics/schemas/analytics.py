import math

from pydantic import BaseModel, ConfigDict, Field, model_validator

from funnel_analytics.schemas.funnel import FunnelResult, StageCounts
from funnel_analytics.schemas.report import DailyReport, ManagerStats, RedZone


def _reject_negative_counts(counts: StageCounts) -> None:
    for name, value in counts.model_dump(exclude={"refusals_by_stage"}).items():
        if value < 0:
            raise ValueError(f"{name} must be >= 0")
    for stage_id, value in (counts.refusals_by_stage or {}).items():
        if value < 0:
            raise ValueError(f"refusals_by_stage.{stage_id} must be >= 0")


class FunnelRequest(BaseModel):
    model_config = ConfigDict(allow_inf_nan=False)

    counts: StageCounts
    # Stage id -> expected conversion percent; unset stages use the configured benchmarks.
    benchmarks: dict[str, float] = Field(default_factory=dict)

    @model_validator(mode="after")
    def _non_negative(self):
        _reject_negative_counts(self.counts)
        return self


class EmployeeReports(BaseModel):
    model_config = ConfigDict(allow_inf_nan=False)

    id: str
    name: str
    plan_sales: float = Field(default=0, ge=0)
    plan_deals: int = Field(default=0, ge=0)
    reports: list[DailyReport] = Field(default_factory=list)

    @model_validator(mode="after")
    def _non_negative(self):
        for report in self.reports:
            fields = report.model_dump(include={
                "zoom_booked",
                "zoom1_held",
                "zoom2_held",
                "contract_review",
                "push",
                "deals",
                "sales_amount",
                "refusals",
                "warming",
            })
            for name, value in fields.items():
                if value is None:
                    continue
                if not math.isfinite(value):
                    raise ValueError(f"{name} must be a finite number (report {report.date.isoformat()})")
                if value < 0:
                    raise ValueError(f"{name} must be >= 0 (report {report.date.isoformat()})")
        return self


class TeamRequest(BaseModel):
    model_config = ConfigDict(allow_inf_nan=False)

    employees: list[EmployeeReports]
    benchmarks: dict[str, float] = Field(default_factory=dict)


class EmployeeAnalysis(BaseModel):
    stats: ManagerStats
    red_zones: list[RedZone]


class TeamAnalytics(BaseModel):
    team: FunnelResult
    team_average: dict[str, float]
    employees: list[EmployeeAnalysis]
    top_performers: list[ManagerStats]
    bottom_performers: list[ManagerStats]
