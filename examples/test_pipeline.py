#!/usr/bin/env python3
"""Test the four-phase synthesis pipeline on small clusters."""

import numpy as np
import pytest
from lanegraph_ir.chains import build_chains
from lanegraph_ir.cluster import build_cluster_graph
from lanegraph_ir.lane_profiles import LaneProfileRegistry
from lanegraph_ir.pipeline import synthesize_cluster, synthesize_clusters
from lanegraph_ir.schemas import ClusterBatchIR, ClusterIR, LaneProfileIR
from lanegraph_ir.settings import AutoRadiusMode, PointType, SynthesisSettings
from generate_y_junction import LANE_PROFILES, make_batch, make_ring_cluster, make_y_junction_cluster


def make_registry(default_name=None) -> LaneProfileRegistry:
    return LaneProfileRegistry.from_ir([LaneProfileIR.model_validate(p) for p in LANE_PROFILES], default_name)


def run(cluster: dict, settings: SynthesisSettings, default_profile=None):
    G = build_cluster_graph(ClusterIR.model_validate(cluster))
    return synthesize_cluster(G, build_chains(G), settings, make_registry(default_profile))


def positions(points):
    return np.array([p.position for p in points])


Y_LEAVES = {1: [10.0, 0.0, 0.0], 2: [-5.0, 8.66, 0.0], 3: [-5.0, -8.66, 0.0]}


def scenario_b_cluster() -> dict:
    nodes = [{"id": 0, "position": [0.0, 0.0, 0.0]}]
    nodes += [{"id": i, "position": p} for i, p in Y_LEAVES.items()]
    return {"cluster_id": "y", "nodes": nodes, "edges": [{"u": 0, "v": i} for i in Y_LEAVES]}


def unit(v):
    v = np.asarray(v, dtype=float)
    return v / np.linalg.norm(v)


def test_scenario_a_single_edge_between_leaves():
    cluster = {
        "cluster_id": "a",
        "nodes": [{"id": 0, "position": [0, 0, 0]}, {"id": 1, "position": [10, 0, 0]}],
        "edges": [{"u": 0, "v": 1}],
    }
    state = run(cluster, SynthesisSettings())

    assert len(state.polygons) == 0
    assert len(state.roads) == 1
    road = state.roads[0]
    assert not road.degenerate
    assert np.allclose(positions(road.points), [[0, 0, 0], [10, 0, 0]])


def test_scenario_b_y_junction():
    settings = SynthesisSettings(polygon_radius=2.0, auto_radius_mode=AutoRadiusMode.DISABLED, trim_road_endpoints=True)
    state = run(scenario_b_cluster(), settings)

    assert len(state.polygons) == 1
    polygon = state.polygons[0]
    assert polygon.node == 0
    assert len(polygon.points) == 3
    for point in polygon.points:
        assert np.linalg.norm(point.position) == pytest.approx(2.0)

    # Descending signed angle against +X: lower leg, +X leg, upper leg
    expected = [2.0 * unit(Y_LEAVES[3]), 2.0 * unit(Y_LEAVES[1]), 2.0 * unit(Y_LEAVES[2])]
    assert np.allclose(positions(polygon.points), expected)

    # Boundary points face the junction center
    for point in polygon.points:
        assert np.allclose(point.forward, -unit(point.position))

    assert len(state.roads) == 3
    for road in state.roads:
        assert not road.degenerate
        assert len(road.points) == 2
        leaf = road.start_node
        assert road.end_node == 0
        assert np.allclose(road.points[0].position, Y_LEAVES[leaf])
        assert np.allclose(road.points[1].position, 2.0 * unit(Y_LEAVES[leaf]))
        assert road.end_endpoint.valid
        assert not road.start_endpoint.valid


def test_scenario_c_widest_lane_min_radius():
    settings = SynthesisSettings(polygon_radius=2.0, auto_radius_mode=AutoRadiusMode.WIDEST_LANE_MIN)
    state = run(scenario_b_cluster(), settings, default_profile="Avenue")

    polygon = state.polygons[0]
    assert polygon.radius == 2.0
    assert polygon.radii == [5.0, 5.0, 5.0]
    for road in state.roads:
        assert road.max_lane_width == 5.0
        assert road.end_radius == 5.0
        assert np.linalg.norm(road.points[-1].position) == pytest.approx(5.0)


def test_per_connection_radii_follow_each_road_profile():
    cluster = scenario_b_cluster()
    cluster["edges"][0]["attributes"] = {"LaneProfile": "Avenue"}
    settings = SynthesisSettings(
        polygon_radius=2.0,
        auto_radius_mode=AutoRadiusMode.HALF_PROFILE_MIN,
        lane_profile_attribute="LaneProfile"
    )
    state = run(cluster, settings)

    # Connection order is insertion order: the Avenue leg first
    assert state.polygons[0].radii == [7.0, 3.5, 3.5]
    half_widths = sorted(state.polygons[0].point_half_widths)
    assert half_widths == [3.5, 3.5, 7.0]


def test_scenario_d_binary_ring_is_road_only():
    cluster = make_ring_cluster(count=8)
    state = run(cluster, SynthesisSettings())

    assert len(state.polygons) == 0
    assert len(state.roads) == 1
    road = state.roads[0]
    assert not road.degenerate
    assert len(road.points) == 9
    assert np.allclose(road.points[0].position, road.points[-1].position)


def test_closed_loop_reversal_keeps_seed_first():
    cluster = make_ring_cluster(count=6)
    forward = run(cluster, SynthesisSettings())
    inverted = run(cluster, SynthesisSettings(invert_orientation=True))

    a = positions(forward.roads[0].points)
    b = positions(inverted.roads[0].points)
    assert np.allclose(a[0], b[0])
    assert np.allclose(a[::-1], b)


def test_offset_instead_of_trim():
    settings = SynthesisSettings(polygon_radius=2.0, trim_road_endpoints=False)
    state = run(scenario_b_cluster(), settings)

    for road in state.roads:
        assert len(road.points) == 2
        assert road.end_radius == 2.0
        assert np.allclose(road.points[1].position, 2.0 * unit(Y_LEAVES[road.start_node]))


def test_trim_consuming_whole_road_is_degenerate():
    settings = SynthesisSettings(polygon_radius=20.0)
    state = run(scenario_b_cluster(), settings)

    assert len(state.polygons) == 1
    assert all(road.degenerate for road in state.roads)
    assert all(road.points == [] for road in state.roads)


def test_trim_with_buffer_on_sampled_legs():
    cluster = make_y_junction_cluster(leg_len=40.0, samples_per_leg=8)
    settings = SynthesisSettings(polygon_radius=6.0, endpoint_trim_buffer=3.0)
    state = run(cluster, settings)

    for road in state.roads:
        assert not road.degenerate
        end = road.points[-1].position
        assert np.linalg.norm(end) == pytest.approx(6.0)
        # Sample at 10 is 4 away from the snap point, so it survives the 3.0 buffer
        assert np.linalg.norm(road.points[-2].position) == pytest.approx(10.0)
        # Points run leaf -> junction: 40, 35, ..., 10, snap
        assert len(road.points) == 8


def test_lollipop_gets_polygon_but_loop_is_not_trimmed():
    cluster = {
        "cluster_id": "lollipop",
        "nodes": [
            {"id": 0, "position": [0.0, 0.0, 0.0]},
            {"id": 1, "position": [-10.0, 0.0, 0.0]},
            {"id": 2, "position": [10.0, 5.0, 0.0]},
            {"id": 3, "position": [10.0, -5.0, 0.0]},
        ],
        "edges": [{"u": 0, "v": 1}, {"u": 0, "v": 2}, {"u": 2, "v": 3}, {"u": 3, "v": 0}],
    }
    state = run(cluster, SynthesisSettings(polygon_radius=1.0))

    assert len(state.polygons) == 1
    polygon = state.polygons[0]
    assert len(polygon.connections) == 3

    loop = next(r for r in state.roads if r.chain.is_closed_loop)
    assert loop.start_endpoint.valid and loop.end_endpoint.valid
    assert loop.start_endpoint.direction[1] > 0
    assert loop.end_endpoint.direction[1] < 0
    assert len(loop.points) == 4

    stem = next(r for r in state.roads if not r.chain.is_closed_loop)
    assert np.allclose(stem.points[-1].position, [-1.0, 0.0, 0.0])


def test_point_type_overrides_are_clamped():
    cluster = make_y_junction_cluster(samples_per_leg=2)
    cluster["nodes"][1]["attributes"] = {"RoadPointType": 9}
    cluster["nodes"][0]["attributes"] = {"PolygonPointType": -3, "PolygonRoutingType": 4, "IntersectionTags": 6}
    settings = SynthesisSettings(
        polygon_radius=1.0,
        road_point_type_attribute="RoadPointType",
        polygon_point_type_attribute="PolygonPointType",
        polygon_routing_type_attribute="PolygonRoutingType",
        intersection_tags_attribute="IntersectionTags"
    )
    state = run(cluster, settings)

    polygon = state.polygons[0]
    assert polygon.point_type == PointType.SHARP
    assert int(polygon.routing_type) == 1
    assert polygon.tags == 6

    road = state.roads[0]
    # Leaf 2 -> binary 1 -> snap point; node 1 carries the override
    assert road.points[1].type == PointType.LANE_PROFILE
    assert road.points[0].type == PointType.AUTO_BEZIER


def test_road_tangent_lengths():
    state = run(make_ring_cluster(count=4, radius=10.0), SynthesisSettings(road_point_type=PointType.SHARP))
    assert all(p.tangent_length == 0.0 for p in state.roads[0].points)

    state = run(make_ring_cluster(count=4, radius=10.0), SynthesisSettings())
    side = 10.0 * np.sqrt(2.0)
    assert all(p.tangent_length == pytest.approx(side / 3.0) for p in state.roads[0].points)


def test_failed_cluster_does_not_stop_others():
    broken = {"cluster_id": "broken", "nodes": [{"id": 0, "position": [0, 0]}], "edges": [{"u": 0, "v": 5}]}
    empty = {"cluster_id": "empty", "nodes": [{"id": 0, "position": [0, 0]}], "edges": []}
    batch = ClusterBatchIR.model_validate(make_batch(make_y_junction_cluster(), broken, empty, make_ring_cluster()))

    results = synthesize_clusters(batch, SynthesisSettings(polygon_radius=2.0), max_workers=2)

    assert [r.cluster_id for r in results] == ["y_junction", "broken", "empty", "ring"]
    assert [r.status for r in results] == ["ok", "failed", "empty", "ok"]
    assert "unknown node" in results[1].error
    assert results[1].shapes == []
    assert results[2].shapes == []
    assert len(results[0].shapes) == 4
    assert len(results[3].shapes) == 1


def test_bad_override_value_fails_only_its_cluster():
    bad = make_y_junction_cluster()
    bad["nodes"][0]["attributes"] = {"ZG.PolygonRadius": [1, 2]}
    batch = ClusterBatchIR.model_validate(make_batch(bad, make_ring_cluster()))
    settings = SynthesisSettings(polygon_radius=2.0, polygon_radius_attribute="ZG.PolygonRadius")

    results = synthesize_clusters(batch, settings, max_workers=2)

    assert [r.status for r in results] == ["failed", "ok"]
    assert "ZG.PolygonRadius" in results[0].error
    assert results[0].shapes == []
    assert len(results[1].shapes) == 1


def two_junction_cluster() -> dict:
    """Junctions 0 and 1 ten apart on X, each with two leaves."""
    return {
        "cluster_id": "two_junctions",
        "nodes": [
            {"id": 0, "position": [0.0, 0.0, 0.0]},
            {"id": 1, "position": [10.0, 0.0, 0.0]},
            {"id": 2, "position": [-5.0, 5.0, 0.0]},
            {"id": 3, "position": [-5.0, -5.0, 0.0]},
            {"id": 4, "position": [15.0, 5.0, 0.0]},
            {"id": 5, "position": [15.0, -5.0, 0.0]},
        ],
        "edges": [{"u": 0, "v": 1}, {"u": 0, "v": 2}, {"u": 0, "v": 3}, {"u": 1, "v": 4}, {"u": 1, "v": 5}],
    }


def connector(state):
    return next(r for r in state.roads if set(r.chain.nodes) == {0, 1})


def test_junction_to_junction_road_trimmed_at_both_ends():
    state = run(two_junction_cluster(), SynthesisSettings(polygon_radius=2.0))

    assert len(state.polygons) == 2
    road = connector(state)
    assert (road.start_node, road.end_node) == (0, 1)
    assert road.start_endpoint.valid and road.end_endpoint.valid
    assert not road.degenerate
    assert np.allclose(positions(road.points), [[2, 0, 0], [8, 0, 0]])


def test_junction_to_junction_road_offset_at_both_ends():
    state = run(two_junction_cluster(), SynthesisSettings(polygon_radius=2.0, trim_road_endpoints=False))

    road = connector(state)
    assert (road.start_radius, road.end_radius) == (2.0, 2.0)
    assert np.allclose(positions(road.points), [[2, 0, 0], [8, 0, 0]])


def test_overlapping_polygons_make_connecting_road_degenerate():
    state = run(two_junction_cluster(), SynthesisSettings(polygon_radius=6.0))

    road = connector(state)
    assert road.degenerate
    assert road.points == []
    # Leaf roads are about 7.07 long and survive the 6.0 radius
    assert all(not r.degenerate for r in state.roads if r is not road)
