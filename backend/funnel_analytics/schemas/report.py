from datetime import date
from typing import Literal

from pydantic import BaseModel

from funnel_analytics.schemas.funnel import StageCounts


class DailyReport(BaseModel):
    user_id: str
    date: date
    zoom_booked: int = 0
    zoom1_held: int = 0
    zoom2_held: int = 0
    contract_review: int = 0
    # Older reports predate the push stage; aggregation falls back to contract_review.
    push: int | None = None
    deals: int = 0
    # Incremental sales booked on `date`, not a running total.
    sales_amount: float = 0
    refusals: int = 0
    warming: int = 0
    refusals_by_stage: dict[str, int] | None = None


class ReportTotals(StageCounts):
    sales_amount: float = 0


class ManagerStats(BaseModel):
    id: str | None = None
    name: str | None = None

    zoom_booked: int
    zoom1_held: int
    zoom2_held: int
    contract_review: int
    push: int
    deals: int
    sales_amount: float
    refusals: int
    warming: int

    booked_to_zoom1: float
    zoom1_to_zoom2: float
    zoom2_to_contract: float
    contract_to_push: float
    push_to_deal: float

    north_star: float
    total_conversion: float

    plan_sales: float
    plan_deals: int
    activity_score: int
    trend: Literal["up", "flat", "down"]


class RedZone(BaseModel):
    stage: str
    severity: Literal["critical", "warning"]
    title: str
    description: str
    current: float
    team_average: float
    benchmark: float
    recommendation: str
