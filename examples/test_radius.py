#!/usr/bin/env python3
"""Test per-connection radius computation."""

from lanegraph_ir.radius import connection_radius
from lanegraph_ir.settings import AutoRadiusMode


def test_disabled_uses_base_radius():
    assert connection_radius(2.0, AutoRadiusMode.DISABLED, 5.0, 14.0) == 2.0


def test_widest_lane_and_half_profile():
    assert connection_radius(2.0, AutoRadiusMode.WIDEST_LANE, 5.0, 14.0) == 5.0
    assert connection_radius(2.0, AutoRadiusMode.HALF_PROFILE, 5.0, 14.0) == 7.0
    # Unclamped modes may go below the base radius
    assert connection_radius(10.0, AutoRadiusMode.WIDEST_LANE, 5.0, 14.0) == 5.0


def test_min_modes_never_below_either_operand():
    for base in (0.0, 1.0, 2.5, 6.0, 50.0):
        for max_lane, total in ((0.0, 0.0), (3.5, 7.0), (5.0, 14.0), (12.0, 12.0)):
            widest = connection_radius(base, AutoRadiusMode.WIDEST_LANE_MIN, max_lane, total)
            assert widest >= base
            assert widest >= max_lane

            half = connection_radius(base, AutoRadiusMode.HALF_PROFILE_MIN, max_lane, total)
            assert half >= base
            assert half >= total * 0.5


def test_widest_lane_min_picks_lane_over_small_base():
    assert connection_radius(2.0, AutoRadiusMode.WIDEST_LANE_MIN, 5.0, 14.0) == 5.0
    assert connection_radius(8.0, AutoRadiusMode.WIDEST_LANE_MIN, 5.0, 14.0) == 8.0
