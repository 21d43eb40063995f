"""Synthesis pipeline: orientation, lane profiles, polygons, radius sync, roads, compile."""

from typing import Callable, Dict, Any, List, Optional, Tuple
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
import networkx as nx
import logging
import time

from .chains import Chain, build_chains
from .cluster import ClusterContextError, build_cluster_graph, is_binary, is_leaf, load_cluster_batch
from .compile import ShapeContainer, TimeSlicedCompileLoop
from .context import SynthesisContext
from .export_ir import export_zone_graph_ir
from .export_paths import export_paths_json
from .lane_profiles import LaneProfileRegistry
from .orientation import resolve_orientation
from .polygons import Polygon
from .roads import Road
from .schemas import ClusterBatchIR, ClusterIR, ClusterResultIR, ZoneGraphIR
from .settings import SynthesisSettings, apply_parameters, load_synthesis_parameters

logger = logging.getLogger(__name__)

IR_VERSION = "0.1.0"


@dataclass(frozen=True)
class ClusterState:
    """Roads and polygons of one cluster at some point of the pipeline."""
    context: SynthesisContext
    roads: List[Road]
    polygons: List[Polygon]


@dataclass(frozen=True)
class RoadsWithProfiles(ClusterState):
    """Phase 1 done: every road has its lane profile and cached widths."""


@dataclass(frozen=True)
class PolygonsPrecomputed(ClusterState):
    """Phase 2 done: polygon radii and boundary points known, road endpoints recorded."""


@dataclass(frozen=True)
class RadiiSynced(ClusterState):
    """Phase 3 done: every road end carries its polygon's final radius."""


@dataclass(frozen=True)
class RoadsFinalized(ClusterState):
    """Phase 4 done: road points trimmed or offset, degenerate roads flagged."""


def build_roads_and_polygons(ctx: SynthesisContext, chains: List[Chain]) -> Tuple[List[Road], List[Polygon]]:
    """
    One road per chain, one polygon per non-leaf road end.

    A closed loop whose both ends are binary nodes becomes a road only.
    Polygons are listed in creation order.
    """
    G = ctx.graph
    reversed_flags = resolve_orientation(G, chains, ctx.settings)

    roads = []
    polygon_map: Dict[int, Polygon] = {}

    for i, (chain, reverse) in enumerate(zip(chains, reversed_flags)):
        road = Road(index=i, chain=chain, reversed=reverse)
        roads.append(road)

        start, end = road.start_node, road.end_node
        if chain.is_closed_loop and is_binary(G, start) and is_binary(G, end):
            continue

        if not is_leaf(G, start):
            polygon_map.setdefault(start, Polygon(node=start)).add(road, True)
        if not is_leaf(G, end):
            polygon_map.setdefault(end, Polygon(node=end)).add(road, False)

    return roads, list(polygon_map.values())


def resolve_lane_profiles(ctx: SynthesisContext, chains: List[Chain]) -> RoadsWithProfiles:
    """Phase 1: build roads/polygons and resolve road lane profiles."""
    roads, polygons = build_roads_and_polygons(ctx, chains)
    for road in roads:
        road.resolve_lane_profile(ctx)
    return RoadsWithProfiles(context=ctx, roads=roads, polygons=polygons)


def precompute_polygons(state: RoadsWithProfiles) -> PolygonsPrecomputed:
    """Phase 2: polygon radii and boundary points."""
    for polygon in state.polygons:
        polygon.precompute(state.context)
    return PolygonsPrecomputed(context=state.context, roads=state.roads, polygons=state.polygons)


def sync_radii(state: PolygonsPrecomputed) -> RadiiSynced:
    """Phase 3: push final polygon radii back onto road ends."""
    for polygon in state.polygons:
        polygon.sync_radius_to_roads()
    return RadiiSynced(context=state.context, roads=state.roads, polygons=state.polygons)


def finalize_roads(state: RadiiSynced) -> RoadsFinalized:
    """Phase 4: road points against synced radii and polygon boundaries."""
    for road in state.roads:
        road.precompute(state.context)
    return RoadsFinalized(context=state.context, roads=state.roads, polygons=state.polygons)


def synthesize_cluster(
    G: nx.Graph,
    chains: List[Chain],
    settings: SynthesisSettings,
    registry: LaneProfileRegistry
) -> RoadsFinalized:
    """
    Run the four synthesis phases on one cluster.

    Args:
        G: Cluster graph
        chains: Chain decomposition of G
        settings: Synthesis settings
        registry: Lane profile registry

    Returns:
        Final state; empty roads/polygons when there are no chains
    """
    ctx = SynthesisContext.create(G, settings, registry)

    state = resolve_lane_profiles(ctx, chains)
    state = precompute_polygons(state)
    state = sync_radii(state)
    state = finalize_roads(state)

    degenerate = sum(1 for r in state.roads if r.degenerate)
    logger.info(
        f"synthesize_cluster: {G.graph.get('cluster_id')}: {len(state.roads)} roads "
        f"({degenerate} degenerate), {len(state.polygons)} polygons"
    )
    return state


def prepare_cluster(cluster: ClusterIR, settings: SynthesisSettings, registry: LaneProfileRegistry) -> RoadsFinalized:
    """Graph, chains and phases 1-4 for one cluster. Safe to run off the main thread."""
    G = build_cluster_graph(cluster)
    chains = build_chains(G)
    return synthesize_cluster(G, chains, settings, registry)


def compile_cluster(
    cluster_id: str,
    state: RoadsFinalized,
    cluster_index: int,
    target_provider: Optional[Callable[[], Optional[ShapeContainer]]] = None
) -> ClusterResultIR:
    """
    Compile a finalized cluster into shapes on the calling thread.

    Raises:
        ClusterContextError: if the output target cannot be resolved
    """
    settings = state.context.settings
    if not state.roads:
        logger.info(f"Cluster {cluster_id}: no chains, nothing to synthesize")
        return ClusterResultIR(cluster_id=cluster_id, status="empty")

    if target_provider is None:
        target_provider = lambda: ShapeContainer(owner=cluster_id)

    loop = TimeSlicedCompileLoop(
        state.polygons,
        state.roads,
        settings,
        target_provider,
        cluster_index=cluster_index,
        on_complete=lambda l: logger.debug(f"Cluster {cluster_id}: compiled {len(l.target.components)} shapes")
    )
    ticks = loop.run_to_completion()
    logger.debug(f"Cluster {cluster_id}: compile finished in {ticks} ticks")

    return ClusterResultIR(
        cluster_id=cluster_id,
        status="ok",
        shapes=[c.to_ir() for c in loop.target.components],
        road_paths=loop.road_paths,
        polygon_paths=loop.polygon_paths,
        degenerate_roads=[r.chain.seed for r in loop.skipped_roads]
    )


def synthesize_clusters(
    batch: ClusterBatchIR,
    settings: SynthesisSettings,
    max_workers: Optional[int] = None,
    target_provider_factory: Optional[Callable[[str], Callable[[], Optional[ShapeContainer]]]] = None
) -> List[ClusterResultIR]:
    """
    Synthesize every cluster of a batch.

    Phases 1-4 run on a thread pool, one task per cluster; compile runs on the
    calling thread in cluster order. A fatal error only fails its own cluster.

    Args:
        batch: Validated input batch
        settings: Synthesis settings
        max_workers: Thread pool size (None = executor default)
        target_provider_factory: cluster_id -> output target provider, for callers that own the targets

    Returns:
        One result per cluster, in input order
    """
    registry = LaneProfileRegistry.from_ir(batch.lane_profiles, settings.lane_profile)
    results = []

    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        futures = [executor.submit(prepare_cluster, cluster, settings, registry) for cluster in batch.clusters]

        for index, (cluster, future) in enumerate(zip(batch.clusters, futures)):
            provider = target_provider_factory(cluster.cluster_id) if target_provider_factory else None
            try:
                state = future.result()
                results.append(compile_cluster(cluster.cluster_id, state, index, provider))
            except ValueError as e:
                logger.error(f"Cluster {cluster.cluster_id}: synthesis failed: {e}", exc_info=True)
                results.append(ClusterResultIR(cluster_id=cluster.cluster_id, status="failed", error=str(e)))

    return results


def build_zone_graph_ir(
    results: List[ClusterResultIR],
    source_filename: str,
    settings: SynthesisSettings
) -> ZoneGraphIR:
    return ZoneGraphIR(
        version=IR_VERSION,
        source_filename=source_filename,
        import_timestamp=datetime.now().isoformat(),
        settings=settings.model_dump(mode='json'),
        clusters=results
    )


def run_pipeline(
    cluster_path: str,
    settings: Optional[SynthesisSettings] = None,
    output_dir: Optional[str] = None,
    max_workers: Optional[int] = None
) -> Dict[str, Any]:
    """
    Run the full pipeline: load clusters → synthesize → compile → export.

    Parameters from FILENAME_param.txt next to the input override settings.

    Args:
        cluster_path: Path to the cluster JSON file
        settings: Base settings (None = defaults)
        output_dir: Where outputs go (None = next to the input)
        max_workers: Thread pool size for cluster synthesis

    Returns:
        Dictionary with:
        - zone_graph: ZoneGraphIR
        - output_file: Path to the exported zone graph JSON
        - road_paths_file / polygon_paths_file: Path outputs, None when disabled
        - log_file: Path to the log file that was created
    """
    cluster_file_path = Path(cluster_path)
    cluster_filename = cluster_file_path.stem
    out_dir = Path(output_dir) if output_dir else cluster_file_path.parent
    out_dir.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    log_file_path = out_dir / f"{cluster_filename}_{timestamp}.log"

    # Create file handler for logging
    file_handler = logging.FileHandler(log_file_path, mode='w', encoding='utf-8')
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(logging.Formatter('%(asctime)s - %(levelname)s - %(name)s - %(message)s'))

    # Add file handler to root logger (affects all loggers in the hierarchy)
    root_logger = logging.getLogger()
    original_level = root_logger.level if root_logger.level else logging.WARNING
    root_logger.setLevel(logging.INFO)
    root_logger.addHandler(file_handler)

    try:
        pipeline_start_time = time.time()
        logger.info("=" * 70)
        logger.info(f"Pipeline started for: {cluster_path}")
        logger.info(f"Log file: {log_file_path}")
        logger.info("=" * 70)

        settings = apply_parameters(settings or SynthesisSettings(), load_synthesis_parameters(cluster_path))
        logger.info(
            f"Orientation: {settings.orientation_mode.value}, auto radius: {settings.auto_radius_mode.value}, "
            f"trim: {settings.trim_road_endpoints}"
        )

        logger.info("Step 1: Loading clusters...")
        step_start = time.time()
        batch = load_cluster_batch(cluster_path)
        load_time = time.time() - step_start
        logger.info(f"Step 1: Completed in {load_time:.2f}s")

        logger.info("Step 2: Synthesizing roads and polygons...")
        step_start = time.time()
        results = synthesize_clusters(batch, settings, max_workers=max_workers)
        synth_time = time.time() - step_start
        logger.info(f"Step 2: Completed in {synth_time:.2f}s")

        logger.info("Step 3: Exporting...")
        step_start = time.time()
        zone_graph = build_zone_graph_ir(results, cluster_file_path.name, settings)
        output_file = out_dir / f"{cluster_filename}_zonegraph.json"
        export_zone_graph_ir(zone_graph, str(output_file))

        road_paths_file = None
        if settings.output_road_paths:
            road_paths_file = out_dir / f"{cluster_filename}_road_paths.json"
            export_paths_json([p for r in results for p in r.road_paths], str(road_paths_file))

        polygon_paths_file = None
        if settings.output_polygon_paths:
            polygon_paths_file = out_dir / f"{cluster_filename}_polygon_paths.json"
            export_paths_json([p for r in results for p in r.polygon_paths], str(polygon_paths_file))
        export_time = time.time() - step_start
        logger.info(f"Step 3: Completed in {export_time:.2f}s")

        failed = [r.cluster_id for r in results if r.status == "failed"]
        if failed:
            logger.warning(f"{len(failed)} clusters failed: {', '.join(failed)}")

        # Timing summary
        pipeline_total_time = time.time() - pipeline_start_time
        logger.info("=" * 70)
        logger.info("Pipeline Timing Summary")
        logger.info("=" * 70)
        logger.info(f"Step 1 (Load): {load_time:.2f}s")
        logger.info(f"Step 2 (Synthesis + Compile): {synth_time:.2f}s")
        logger.info(f"Step 3 (Export): {export_time:.2f}s")
        logger.info(f"Total pipeline time: {pipeline_total_time:.2f}s")
        logger.info(f"Pipeline completed. Output: {output_file}")
        logger.info("=" * 70)
    finally:
        # Remove file handler from root logger and restore original level
        root_logger.removeHandler(file_handler)
        root_logger.setLevel(original_level)
        file_handler.close()

    return {
        'zone_graph': zone_graph,
        'output_file': str(output_file),
        'road_paths_file': str(road_paths_file) if road_paths_file else None,
        'polygon_paths_file': str(polygon_paths_file) if polygon_paths_file else None,
        'log_file': str(log_file_path)
    }
