from pydantic import BaseModel


class StageCounts(BaseModel):
    # Unbounded; request schemas in schemas/analytics.py reject negatives.
    zoom_booked: int = 0
    zoom1_held: int = 0
    zoom2_held: int = 0
    contract_review: int = 0
    push: int = 0
    deals: int = 0
    refusals: int = 0
    warming: int = 0
    refusals_by_stage: dict[str, int] | None = None


class FunnelStage(BaseModel):
    id: str
    label: str
    value: int
    conversion: float
    benchmark: float
    is_red_zone: bool
    drop_off: int = 0


class RefusalBreakdown(BaseModel):
    stage_id: str
    label: str
    count: int
    rate: float


class RefusalFlow(BaseModel):
    total: int
    rate_from_first_zoom: float
    by_stage: list[RefusalBreakdown]


class WarmingFlow(BaseModel):
    count: int


class SideFlow(BaseModel):
    refusals: RefusalFlow
    warming: WarmingFlow


class NorthStarKpi(BaseModel):
    value: float
    label: str
    target: float
    delta: float
    is_on_track: bool


class FunnelResult(BaseModel):
    funnel: list[FunnelStage]
    side_flow: SideFlow
    north_star_kpi: NorthStarKpi
