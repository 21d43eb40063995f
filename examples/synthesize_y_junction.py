#!/usr/bin/env python3
"""Synthesize roads and intersections from examples/y_junction_clusters.json with logging + sanity checks."""

from __future__ import annotations

import logging
import sys
import time
from contextlib import contextmanager
from pathlib import Path

# ---------------------------------------------------------------------
# Import setup (dev fallback)
# ---------------------------------------------------------------------
# Preferred: install package via `pip install -e .`
# Fallback: add ./core to sys.path for local dev runs.
CORE_DIR = Path(__file__).resolve().parent.parent / "core"
if str(CORE_DIR) not in sys.path:
    sys.path.insert(0, str(CORE_DIR))

from lanegraph_ir.pipeline import run_pipeline  # noqa: E402


# ---------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------
LOG_FILE = Path(__file__).with_suffix(".log")

logging.basicConfig(
    level=logging.DEBUG,
    format="%(levelname)s: %(name)s: %(message)s",
    handlers=[logging.FileHandler(LOG_FILE, mode="w"), logging.StreamHandler()],
)
logger = logging.getLogger(__name__)
logger.info("Logging to: %s", LOG_FILE)


@contextmanager
def log_step(name: str):
    """Log step entry/exit + duration."""
    logger.info("→ %s", name)
    start = time.time()
    try:
        yield
    finally:
        logger.info("← %s (%.2fs)", name, time.time() - start)


# ---------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------
def main() -> int:
    logger.info("=" * 70)
    logger.info("Synthesizing lane graph from y_junction_clusters.json")
    logger.info("=" * 70)

    cluster_path = Path(__file__).resolve().parent / "y_junction_clusters.json"
    if not cluster_path.exists():
        logger.error("Cluster file not found: %s (run generate_y_junction.py first)", cluster_path)
        return 1

    try:
        with log_step("Synthesis"):
            result = run_pipeline(str(cluster_path))
    except Exception:
        logger.exception("Error running pipeline")
        return 1

    zone_graph = result["zone_graph"]
    for cluster in zone_graph.clusters:
        roads = [s for s in cluster.shapes if s.shape_type == "spline"]
        polygons = [s for s in cluster.shapes if s.shape_type == "polygon"]
        logger.info(
            "  %s: %s, %d roads, %d polygons, %d degenerate",
            cluster.cluster_id, cluster.status, len(roads), len(polygons), len(cluster.degenerate_roads)
        )

        for polygon in polygons:
            radii = [
                sum(c * c for c in p.position) ** 0.5
                for p in polygon.points
            ]
            logger.info(
                "    polygon @%d: %d connections, routing=%s, profiles=%s, radii=%s",
                polygon.source_node, len(polygon.points), polygon.routing_type,
                polygon.per_point_lane_profiles, ", ".join(f"{r:.2f}" for r in radii)
            )

        # Sanity: no emitted road may have fewer than 2 points
        short = [r.source_node for r in roads if len(r.points) < 2]
        if short:
            logger.warning("    roads with fewer than 2 points: %s", short)
        else:
            logger.info("    all roads have at least 2 points")

    logger.info("Zone graph saved to: %s", result["output_file"])
    if result["road_paths_file"]:
        logger.info("Road paths saved to: %s", result["road_paths_file"])
    if result["polygon_paths_file"]:
        logger.info("Polygon paths saved to: %s", result["polygon_paths_file"])
    logger.info("=" * 70)
    logger.info("Lane graph synthesis completed successfully")
    logger.info("Full log saved to: %s", LOG_FILE)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
