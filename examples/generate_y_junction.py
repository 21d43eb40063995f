from __future__ import annotations

import json
import math
from pathlib import Path
from typing import Any


LANE_PROFILES = [
    {"name": "TwoLane", "lanes": [
        {"width": 3.5, "direction": "forward"},
        {"width": 3.5, "direction": "backward"},
    ]},
    {"name": "Avenue", "lanes": [
        {"width": 3.0, "direction": "forward"},
        {"width": 5.0, "direction": "forward"},
        {"width": 3.0, "direction": "backward"},
        {"width": 3.0, "direction": "backward"},
    ]},
]


def make_y_junction_cluster(
    cluster_id: str = "y_junction",
    leg_len: float = 10.0,
    samples_per_leg: int = 1,
    edge_attributes: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """
    Builds a Y-shaped cluster: junction node 0 at the origin, three legs at 0°, 120° and 240°.

    - leg_len: distance from the junction to each leaf
    - samples_per_leg: nodes per leg, the last one being the leaf (1 gives single-edge legs)
    - edge_attributes: attributes copied onto every edge
    """
    nodes = [{"id": 0, "position": [0.0, 0.0, 0.0]}]
    edges = []
    next_id = 1

    for angle_deg in (0.0, 120.0, 240.0):
        ang = math.radians(angle_deg)
        prev = 0
        for k in range(1, samples_per_leg + 1):
            t = leg_len * k / samples_per_leg
            nodes.append({"id": next_id, "position": [round(t * math.cos(ang), 6), round(t * math.sin(ang), 6), 0.0]})
            edges.append({"u": prev, "v": next_id, "attributes": dict(edge_attributes or {})})
            prev = next_id
            next_id += 1

    return {"cluster_id": cluster_id, "nodes": nodes, "edges": edges}


def make_ring_cluster(cluster_id: str = "ring", radius: float = 20.0, count: int = 8) -> dict[str, Any]:
    """Closed loop of binary nodes on a circle."""
    nodes = []
    for i in range(count):
        ang = 2.0 * math.pi * i / count
        nodes.append({"id": i, "position": [radius * math.cos(ang), radius * math.sin(ang), 0.0]})
    edges = [{"u": i, "v": (i + 1) % count} for i in range(count)]
    return {"cluster_id": cluster_id, "nodes": nodes, "edges": edges}


def make_batch(*clusters: dict[str, Any]) -> dict[str, Any]:
    return {"version": "0.1.0", "lane_profiles": LANE_PROFILES, "clusters": list(clusters)}


def main():
    out_path = Path(__file__).parent / "y_junction_clusters.json"
    out_path.parent.mkdir(parents=True, exist_ok=True)

    batch = make_batch(
        make_y_junction_cluster(leg_len=40.0, samples_per_leg=4, edge_attributes={"LaneProfile": "TwoLane"}),
        make_ring_cluster(),
    )
    with open(out_path, "w") as f:
        json.dump(batch, f, indent=2)
    print(f"Wrote: {out_path.resolve()}")

    # Parameters picked up by run_pipeline
    param_path = out_path.parent / f"{out_path.stem}_param.txt"
    with open(param_path, "w") as f:
        f.write("# Synthesis parameters\n")
        f.write("polygon_radius = 6.0\n")
        f.write("auto_radius_mode = half_profile_min\n")
        f.write("lane_profile_attribute = 'LaneProfile'\n")
        f.write("output_road_paths = True\n")
        f.write("output_polygon_paths = True\n")
    print(f"Wrote: {param_path.resolve()}")


if __name__ == "__main__":
    main()
