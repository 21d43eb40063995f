#!/usr/bin/env python3
"""Test cluster graph construction and chain decomposition."""

import pytest
from lanegraph_ir.chains import Chain, build_chains
from lanegraph_ir.cluster import ClusterContextError, NodeKind, NodeOverride, build_cluster_graph, classify_node
from lanegraph_ir.schemas import ClusterIR
from generate_y_junction import make_ring_cluster, make_y_junction_cluster


def graph_from(cluster: dict):
    return build_cluster_graph(ClusterIR.model_validate(cluster))


def lollipop_cluster() -> dict:
    """Junction 0 with a stem leaf 1 and a loop through 2 and 3."""
    return {
        "cluster_id": "lollipop",
        "nodes": [
            {"id": 0, "position": [0.0, 0.0, 0.0]},
            {"id": 1, "position": [-10.0, 0.0, 0.0]},
            {"id": 2, "position": [10.0, 5.0, 0.0]},
            {"id": 3, "position": [10.0, -5.0, 0.0]},
        ],
        "edges": [{"u": 0, "v": 1}, {"u": 0, "v": 2}, {"u": 2, "v": 3}, {"u": 3, "v": 0}],
    }


def test_node_classification():
    G = graph_from(make_y_junction_cluster(samples_per_leg=2))
    assert classify_node(G, 0) == NodeKind.JUNCTION
    assert classify_node(G, 1) == NodeKind.BINARY
    assert classify_node(G, 2) == NodeKind.LEAF


def test_flagged_break_splits_chain():
    G = graph_from({
        "cluster_id": "path",
        "nodes": [
            {"id": 0, "position": [0, 0]},
            {"id": 1, "position": [5, 0], "is_break": True},
            {"id": 2, "position": [10, 0]},
        ],
        "edges": [{"u": 0, "v": 1}, {"u": 1, "v": 2}],
    })
    assert classify_node(G, 1) == NodeKind.JUNCTION

    chains = build_chains(G)
    assert [c.nodes for c in chains] == [(0, 1), (1, 2)]


def test_y_junction_chains():
    G = graph_from(make_y_junction_cluster(samples_per_leg=3))
    chains = build_chains(G)

    assert len(chains) == 3
    assert [c.nodes for c in chains] == [(0, 1, 2, 3), (0, 4, 5, 6), (0, 7, 8, 9)]
    for chain in chains:
        assert chain.seed == 0
        assert not chain.is_closed_loop
        assert not chain.single_edge
        assert chain.num_edges == 3


def test_single_edge_chain_reports_edge_topology():
    G = graph_from({
        "cluster_id": "edge",
        "nodes": [{"id": 0, "position": [0, 0]}, {"id": 1, "position": [10, 0]}],
        "edges": [{"u": 1, "v": 0}],
    })
    chains = build_chains(G)
    assert len(chains) == 1

    chain = chains[0]
    assert chain.single_edge
    assert (chain.seed, chain.last) == (0, 1)
    # Stored topology runs 1 -> 0, opposite to the seed/last order
    assert chain.get_nodes(G) == [1, 0]
    assert chain.get_nodes(G, reversed=True) == [0, 1]


def test_ring_is_closed_loop():
    G = graph_from(make_ring_cluster(count=8))
    chains = build_chains(G)

    assert len(chains) == 1
    chain = chains[0]
    assert chain.is_closed_loop
    assert chain.seed == chain.last == 0
    assert len(chain.nodes) == 8
    assert chain.num_edges == 8
    assert chain.edge_pairs()[-1] == (7, 0)


def test_closed_loop_double_reversal_round_trip():
    G = graph_from(make_ring_cluster(count=6))
    chain = build_chains(G)[0]

    once = chain.get_nodes(G, reversed=True)
    assert once == [0, 5, 4, 3, 2, 1]

    twice = Chain(nodes=tuple(once), is_closed_loop=True).get_nodes(G, reversed=True)
    assert twice == list(chain.nodes)


def test_lollipop_chain():
    G = graph_from(lollipop_cluster())
    chains = build_chains(G)

    assert len(chains) == 2
    stem, loop = chains
    assert stem.nodes == (0, 1)
    assert loop.is_closed_loop
    assert loop.nodes == (0, 2, 3)
    assert loop.seed == loop.last == 0

    # First edge leaves toward node 2, last edge arrives from node 3
    assert loop.get_edge_dir(G, from_seed=True)[1] > 0
    assert loop.get_edge_dir(G, from_seed=False)[1] < 0


def test_unknown_node_is_context_error():
    with pytest.raises(ClusterContextError):
        graph_from({
            "cluster_id": "broken",
            "nodes": [{"id": 0, "position": [0, 0]}],
            "edges": [{"u": 0, "v": 7}],
        })


def test_empty_graph_has_no_chains():
    G = graph_from({"cluster_id": "empty", "nodes": [{"id": 0, "position": [0, 0]}], "edges": []})
    assert build_chains(G) == []


def test_node_override_rejects_unconvertible_value():
    cluster = make_y_junction_cluster()
    cluster["nodes"][0]["attributes"] = {"ZG.PolygonRadius": [1, 2]}
    cluster["nodes"][1]["attributes"] = {"ZG.PolygonRadius": "4.5"}
    G = graph_from(cluster)

    override = NodeOverride("ZG.PolygonRadius", 2.0, float)
    assert override.read(G, 1) == 4.5
    assert override.read(G, 2) == 2.0
    with pytest.raises(ClusterContextError, match="ZG.PolygonRadius"):
        override.read(G, 0)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
