"""Funnel engine tests: stage conversions, red zones, refusal attribution, north-star KPI."""

import os
import sys

# Ensure the backend package is importable
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import math

import pytest

from funnel_analytics.schemas.funnel import StageCounts
from funnel_analytics.services.funnel import (
    DEFAULT_BENCHMARKS,
    STAGE_IDS,
    compute_funnel,
    fallback_refusal_stage,
    resolve_benchmarks,
)
from funnel_analytics.services.rounding import round_half_up, safe_rate


def _counts(zb=0, z1=0, z2=0, cr=0, push=0, deals=0, **extra) -> StageCounts:
    return StageCounts(
        zoom_booked=zb,
        zoom1_held=z1,
        zoom2_held=z2,
        contract_review=cr,
        push=push,
        deals=deals,
        **extra,
    )


REFERENCE = _counts(100, 50, 25, 10, 5, 2, refusals=4)


# ===================================================================== #
#  Rounding helpers                                                       #
# ===================================================================== #

class TestRounding:
    def test_half_up(self):
        assert round_half_up(2.25, 1) == 2.3
        assert round_half_up(2.35, 1) == 2.4
        assert round_half_up(62.5, 0) == 63.0

    def test_float_noise_is_removed(self):
        assert round_half_up(2 / 5 * 100) == 40.0

    def test_safe_rate_zero_base(self):
        assert safe_rate(5, 0) == 0.0
        assert safe_rate(5, -3) == 0.0

    def test_safe_rate(self):
        assert safe_rate(1, 3) == 33.3
        assert safe_rate(2, 3) == 66.7

    @pytest.mark.parametrize("value", [1e27, 1e29, 10**30, 1.7e308])
    def test_large_values(self, value):
        assert round_half_up(value) == float(value)
        assert round_half_up(value, 2) == float(value)

    def test_non_finite_passthrough(self):
        assert round_half_up(math.inf) == math.inf
        assert round_half_up(-math.inf, 2) == -math.inf
        assert math.isnan(round_half_up(math.nan))


# ===================================================================== #
#  Stages & conversions                                                   #
# ===================================================================== #

class TestStages:
    def test_reference_conversions(self):
        result = compute_funnel(REFERENCE)
        assert [s.conversion for s in result.funnel] == [100, 50, 50, 40, 50, 40]
        assert result.side_flow.refusals.total == 4

    def test_fixed_order_and_length(self):
        for counts in (REFERENCE, _counts(), _counts(1, 2, 3, 4, 5, 6), StageCounts()):
            result = compute_funnel(counts)
            assert [s.id for s in result.funnel] == list(STAGE_IDS)
            assert len(result.funnel) == 6

    def test_values_are_passed_through(self):
        result = compute_funnel(REFERENCE)
        assert [s.value for s in result.funnel] == [100, 50, 25, 10, 5, 2]

    def test_drop_off(self):
        result = compute_funnel(REFERENCE)
        assert [s.drop_off for s in result.funnel] == [0, 50, 25, 15, 5, 3]

    def test_inverted_stage_has_no_negative_drop_off(self):
        result = compute_funnel(_counts(10, 12, 3, 0, 0, 0))
        assert result.funnel[1].drop_off == 0
        assert result.funnel[1].conversion == 120.0

    def test_first_stage(self):
        first = compute_funnel(REFERENCE).funnel[0]
        assert first.conversion == 100
        assert first.benchmark == 100
        assert first.is_red_zone is False

    def test_one_decimal_rounding(self):
        result = compute_funnel(_counts(3, 2, 1, 0, 0, 0))
        assert result.funnel[1].conversion == 66.7
        assert result.funnel[2].conversion == 50.0

    def test_all_zero(self):
        result = compute_funnel(_counts())
        assert all(s.value == 0 for s in result.funnel)
        assert all(s.conversion == 0 for s in result.funnel)
        assert result.side_flow.refusals.total == 0
        assert result.north_star_kpi.value == 0

    def test_no_entries_means_no_conversion(self):
        result = compute_funnel(_counts(0, 5, 4, 3, 2, 1))
        assert all(s.conversion == 0 for s in result.funnel)
        assert result.north_star_kpi.value == 0

    def test_zero_previous_stage(self):
        result = compute_funnel(_counts(10, 0, 3, 1, 1, 1))
        assert result.funnel[2].conversion == 0

    def test_huge_counts_do_not_raise(self):
        result = compute_funnel(_counts(1, 10**27, 10**27, 0, 0, 0, refusals=10**27))
        assert result.funnel[1].conversion == pytest.approx(1e29)
        assert result.funnel[2].conversion == 100.0
        assert result.side_flow.refusals.total == 10**27

    def test_negative_input_does_not_raise(self):
        result = compute_funnel(_counts(-5, 3, 1, 0, 0, 0, refusals=-2))
        assert [s.conversion for s in result.funnel] == [0, 0, 0, 0, 0, 0]
        assert result.side_flow.refusals.total == 0


# ===================================================================== #
#  Benchmarks & red zones                                                 #
# ===================================================================== #

class TestBenchmarks:
    def test_default_red_zones(self):
        flags = {s.id: s.is_red_zone for s in compute_funnel(REFERENCE).funnel}
        assert flags == {
            "zoom_booked": False,
            "zoom1_held": True,
            "zoom2_held": False,
            "contract_review": False,
            "push": True,
            "deals": True,
        }

    def test_defaults_applied(self):
        result = compute_funnel(REFERENCE)
        assert {s.id: s.benchmark for s in result.funnel[1:]} == DEFAULT_BENCHMARKS

    def test_partial_override(self):
        result = compute_funnel(REFERENCE, {"zoom1_held": 40})
        zoom1 = result.funnel[1]
        assert zoom1.benchmark == 40
        assert zoom1.is_red_zone is False
        assert result.funnel[5].benchmark == DEFAULT_BENCHMARKS["deals"]

    def test_unknown_keys_ignored(self):
        assert resolve_benchmarks({"bogus": 1, "zoom_booked": 99}) == DEFAULT_BENCHMARKS

    def test_defaults_not_mutated(self):
        resolve_benchmarks({"push": 1})
        assert DEFAULT_BENCHMARKS["push"] == 60


# ===================================================================== #
#  Refusal side flow                                                      #
# ===================================================================== #

class TestRefusals:
    def test_by_stage_lists_every_non_final_stage(self):
        by_stage = compute_funnel(REFERENCE).side_flow.refusals.by_stage
        assert [item.stage_id for item in by_stage] == list(STAGE_IDS[:-1])

    def test_fallback_goes_to_largest_drop(self):
        by_stage = compute_funnel(REFERENCE).side_flow.refusals.by_stage
        counts = {item.stage_id: item.count for item in by_stage}
        assert counts["zoom_booked"] == 4
        assert sum(counts.values()) == 4
        assert by_stage[0].rate == 4.0

    def test_fallback_later_stage(self):
        values = {"zoom_booked": 10, "zoom1_held": 9, "zoom2_held": 3, "contract_review": 2, "push": 1, "deals": 1}
        assert fallback_refusal_stage(values) == "zoom1_held"

    def test_fallback_tie_goes_to_earliest_stage(self):
        result = compute_funnel(_counts(10, 7, 4, 4, 4, 4, refusals=3))
        counts = {item.stage_id: item.count for item in result.side_flow.refusals.by_stage}
        assert counts["zoom_booked"] == 3
        assert counts["zoom1_held"] == 0

    @pytest.mark.parametrize("counts", [_counts(5, 5, 5, 5, 5, 5, refusals=2), _counts(1, 2, 3, 4, 5, 6, refusals=2)])
    def test_flat_or_inverted_funnel_falls_back_to_first_stage(self, counts):
        by_stage = compute_funnel(counts).side_flow.refusals.by_stage
        assert by_stage[0].stage_id == "zoom_booked"
        assert by_stage[0].count == 2

    def test_explicit_breakdown(self):
        counts = _counts(100, 50, 25, 10, 5, 2, refusals=10, refusals_by_stage={"zoom1_held": 2, "push": 1})
        refusals = compute_funnel(counts).side_flow.refusals
        by_id = {item.stage_id: item for item in refusals.by_stage}
        assert refusals.total == 3
        assert by_id["zoom1_held"].count == 2
        assert by_id["zoom1_held"].rate == 4.0
        assert by_id["push"].rate == 20.0
        assert by_id["zoom_booked"].count == 0

    def test_empty_breakdown_falls_back_to_total(self):
        counts = _counts(10, 5, 2, 1, 1, 1, refusals=4, refusals_by_stage={"unknown": 7})
        refusals = compute_funnel(counts).side_flow.refusals
        assert refusals.total == 4
        assert all(item.count == 0 for item in refusals.by_stage)

    def test_rate_from_first_zoom(self):
        refusals = compute_funnel(_counts(20, 40, 10, 0, 0, 0, refusals=8)).side_flow.refusals
        assert refusals.rate_from_first_zoom == 20.0

    def test_warming_passthrough(self):
        assert compute_funnel(_counts(warming=6)).side_flow.warming.count == 6


# ===================================================================== #
#  North-star KPI                                                         #
# ===================================================================== #

class TestNorthStar:
    def test_value(self):
        kpi = compute_funnel(REFERENCE).north_star_kpi
        assert kpi.value == 2.0
        assert kpi.label
        assert kpi.target == 5.0
        assert kpi.delta == -3.0
        assert kpi.is_on_track is False

    def test_rounding(self):
        assert compute_funnel(_counts(3, 3, 3, 3, 3, 1)).north_star_kpi.value == 33.3

    def test_custom_target(self):
        kpi = compute_funnel(REFERENCE, north_star_target=2).north_star_kpi
        assert kpi.is_on_track is True
        assert kpi.delta == 0.0


class TestPurity:
    def test_idempotent(self):
        first = compute_funnel(REFERENCE, {"push": 55}).model_dump_json()
        second = compute_funnel(REFERENCE, {"push": 55}).model_dump_json()
        assert first == second

    def test_input_not_mutated(self):
        counts = _counts(10, 5, 2, 1, 1, 1, refusals=3)
        before = counts.model_dump()
        compute_funnel(counts)
        assert counts.model_dump() == before
