"""Funnel conversion engine.

Turns raw per-stage counts into the six ordered stage records used by the
dashboard charts, the refusal side flow and the north-star KPI.

Pure and deterministic: no settings lookups, no I/O. Callers that want
configured benchmarks pass them in (see ``Settings.conversion_benchmarks``).

An explicit ``refusals_by_stage`` is taken as complete: stages it leaves out
count 0 and the plain ``refusals`` total is not spread over them.
"""

from collections.abc import Mapping
from dataclasses import dataclass
import logging

from funnel_analytics.schemas.funnel import (
    FunnelResult,
    FunnelStage,
    NorthStarKpi,
    RefusalBreakdown,
    RefusalFlow,
    SideFlow,
    StageCounts,
    WarmingFlow,
)
from funnel_analytics.services.rounding import round_half_up, safe_rate

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StageMeta:
    id: str
    label: str
    description: str


FUNNEL_STAGES: tuple[StageMeta, ...] = (
    StageMeta("zoom_booked", "Booked for Zoom", "Funnel entry. The lead is booked for a first meeting."),
    StageMeta("zoom1_held", "1st Zoom held", "The first Zoom meeting took place."),
    StageMeta("zoom2_held", "2nd Zoom held", "The follow-up Zoom meeting took place."),
    StageMeta("contract_review", "Contract review", "The client went through the contract terms."),
    StageMeta("push", "Push", "Closing push after the contract review."),
    StageMeta("deals", "Deal closed", "Paid deal."),
)

STAGE_IDS: tuple[str, ...] = tuple(stage.id for stage in FUNNEL_STAGES)

# Every stage except the last can lose leads.
REFUSAL_STAGE_IDS: tuple[str, ...] = STAGE_IDS[:-1]

DEFAULT_BENCHMARKS: dict[str, float] = {
    "zoom1_held": 60,
    "zoom2_held": 50,
    "contract_review": 40,
    "push": 60,
    "deals": 70,
}

DEFAULT_NORTH_STAR_TARGET = 5.0
NORTH_STAR_LABEL = "Booked to deal conversion"


def stage_label(stage_id: str) -> str:
    for stage in FUNNEL_STAGES:
        if stage.id == stage_id:
            return stage.label
    return stage_id


def resolve_benchmarks(overrides: Mapping[str, float] | None = None) -> dict[str, float]:
    merged = dict(DEFAULT_BENCHMARKS)
    for stage_id, value in (overrides or {}).items():
        if stage_id in merged and value is not None:
            merged[stage_id] = float(value)
    return merged


def stage_values(counts: StageCounts) -> dict[str, int]:
    return {stage_id: getattr(counts, stage_id) or 0 for stage_id in STAGE_IDS}


def _build_stages(values: dict[str, int], benchmarks: dict[str, float]) -> list[FunnelStage]:
    first = STAGE_IDS[0]
    stages = [
        FunnelStage(
            id=first,
            label=stage_label(first),
            value=values[first],
            conversion=100.0 if values[first] > 0 else 0.0,
            benchmark=100.0,
            is_red_zone=False,
        )
    ]
    # Without funnel entries there is nothing to convert, whatever later stages report.
    has_entries = values[first] > 0
    for prev_id, stage_id in zip(STAGE_IDS, STAGE_IDS[1:]):
        conversion = safe_rate(values[stage_id], values[prev_id]) if has_entries else 0.0
        benchmark = benchmarks[stage_id]
        stages.append(
            FunnelStage(
                id=stage_id,
                label=stage_label(stage_id),
                value=values[stage_id],
                conversion=conversion,
                benchmark=benchmark,
                is_red_zone=conversion < benchmark,
                drop_off=max(values[prev_id] - values[stage_id], 0),
            )
        )
    return stages


def fallback_refusal_stage(values: dict[str, int]) -> str:
    """Stage that absorbs refusals when no per-stage breakdown exists.

    The stage with the largest positive drop to its successor wins; ties go to
    the earliest stage. A flat or inverted funnel falls back to the first stage.
    """
    best_stage = REFUSAL_STAGE_IDS[0]
    best_drop = 0
    for stage_id, next_id in zip(STAGE_IDS, STAGE_IDS[1:]):
        drop = values[stage_id] - values[next_id]
        if drop > best_drop:
            best_stage = stage_id
            best_drop = drop
    return best_stage


def _refusal_counts(counts: StageCounts, values: dict[str, int]) -> dict[str, int]:
    if counts.refusals_by_stage:
        return {stage_id: int(counts.refusals_by_stage.get(stage_id) or 0) for stage_id in REFUSAL_STAGE_IDS}

    attributed = {stage_id: 0 for stage_id in REFUSAL_STAGE_IDS}
    if counts.refusals > 0:
        target = fallback_refusal_stage(values)
        logger.debug("No refusal breakdown supplied; attributing %s refusals to %s", counts.refusals, target)
        attributed[target] = counts.refusals
    return attributed


def _build_side_flow(counts: StageCounts, values: dict[str, int]) -> SideFlow:
    per_stage = _refusal_counts(counts, values)
    by_stage = [
        RefusalBreakdown(
            stage_id=stage_id,
            label=stage_label(stage_id),
            count=count,
            rate=safe_rate(count, values[stage_id]),
        )
        for stage_id, count in per_stage.items()
    ]
    total = sum(per_stage.values()) or max(counts.refusals, 0)
    return SideFlow(
        refusals=RefusalFlow(
            total=total,
            rate_from_first_zoom=safe_rate(total, max(values["zoom1_held"], values["zoom_booked"])),
            by_stage=by_stage,
        ),
        warming=WarmingFlow(count=counts.warming or 0),
    )


def north_star_kpi(values: dict[str, int], target: float = DEFAULT_NORTH_STAR_TARGET) -> NorthStarKpi:
    value = safe_rate(values["deals"], values["zoom_booked"])
    return NorthStarKpi(
        value=value,
        label=NORTH_STAR_LABEL,
        target=target,
        delta=round_half_up(value - target),
        is_on_track=value >= target,
    )


def compute_funnel(
    counts: StageCounts,
    benchmarks: Mapping[str, float] | None = None,
    north_star_target: float | None = None,
) -> FunnelResult:
    values = stage_values(counts)
    resolved = resolve_benchmarks(benchmarks)
    target = DEFAULT_NORTH_STAR_TARGET if north_star_target is None else north_star_target

    return FunnelResult(
        funnel=_build_stages(values, resolved),
        side_flow=_build_side_flow(counts, values),
        north_star_kpi=north_star_kpi(values, target),
    )
