from collections.abc import Mapping

from funnel_analytics.schemas.report import ManagerStats, RedZone
from funnel_analytics.services.funnel import resolve_benchmarks
from funnel_analytics.services.stats import TRANSITIONS

DEFAULT_REDZONE_TOLERANCE = 10.0

# (title, description, recommendation) per transition field.
_PLAYBOOK: dict[str, tuple[str, str, str]] = {
    "booked_to_zoom1": (
        "Low show-up for the 1st Zoom",
        "Many booked clients never reach the first meeting.",
        "Confirm every booking and send a reminder 2-3 hours before the slot.",
    ),
    "zoom1_to_zoom2": (
        "Few 1st → 2nd Zoom transitions",
        "Clients do not come back for the follow-up meeting.",
        "Pin down value on the first call and put the next step in the calendar before hanging up.",
    ),
    "zoom2_to_contract": (
        "Contract review is rarely reached",
        "The second meeting ends without the client looking at the contract.",
        "Send the draft contract right after the 2nd Zoom and book the review together.",
    ),
    "contract_to_push": (
        "Contracts stall before the push",
        "Clients read the contract but the closing push never starts.",
        "Follow up within 24 hours of the review and collect objections in writing.",
    ),
    "push_to_deal": (
        "Final close is sagging",
        "Clients reach the push stage but do not pay.",
        "Review objection handling after the contract; add deadlines and limited offers.",
    ),
}


def analyze_red_zones(
    stats: ManagerStats,
    team_average: Mapping[str, float] | None = None,
    benchmarks: Mapping[str, float] | None = None,
    tolerance: float = DEFAULT_REDZONE_TOLERANCE,
) -> list[RedZone]:
    """Transitions where ``stats`` converts below benchmark, in funnel order."""
    resolved = resolve_benchmarks(benchmarks)
    team_average = team_average or {}
    zones: list[RedZone] = []

    for field, stage_id in TRANSITIONS.items():
        current = getattr(stats, field)
        benchmark = resolved[stage_id]
        if current >= benchmark:
            continue
        title, description, recommendation = _PLAYBOOK[field]
        zones.append(
            RedZone(
                stage=stage_id,
                severity="critical" if current < benchmark - tolerance else "warning",
                title=title,
                description=description,
                current=current,
                team_average=team_average.get(field, 0.0),
                benchmark=benchmark,
                recommendation=recommendation,
            )
        )

    return zones
