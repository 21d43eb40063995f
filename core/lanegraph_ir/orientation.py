"""Chain orientation: which endpoint of each chain is the road start."""

from typing import Dict, List, Tuple
import networkx as nx
import numpy as np
import logging

from .chains import Chain
from .cluster import is_leaf, node_position
from .direction import sort_extrapolation
from .geometry import safe_normal
from .settings import OrientationMode, SynthesisSettings

logger = logging.getLogger(__name__)


def junction_depths(G: nx.Graph, chains: List[Chain]) -> Dict[int, int]:
    """
    BFS depth of every non-leaf chain endpoint.

    Adjacency comes only from chains whose endpoints are both non-leaf. Each
    connected component is rooted at its first node in chain discovery order.
    """
    H = nx.Graph()
    for chain in chains:
        seed, last = chain.seed, chain.last
        seed_open, last_open = not is_leaf(G, seed), not is_leaf(G, last)
        if seed_open:
            H.add_node(seed)
        if last_open:
            H.add_node(last)
        if seed_open and last_open and seed != last:
            H.add_edge(seed, last)

    depths: Dict[int, int] = {}
    for root in H.nodes():
        if root in depths:
            continue
        depths.update(nx.single_source_shortest_path_length(H, root))

    logger.debug(f"junction_depths: {len(depths)} nodes in {nx.number_connected_components(H) if len(H) else 0} components")
    return depths


def compute_depth_first_orientation(G: nx.Graph, chains: List[Chain]) -> Tuple[List[bool], Dict[int, int]]:
    """
    Reversal flag per chain for DepthFirst mode, before inversion.

    Leaf-terminated chains flow toward the junction; junction pairs flow from
    lower to higher depth, equal depths from the smaller node id.

    Returns:
        (reversed flags in chain order, depth per non-leaf endpoint)
    """
    depths = junction_depths(G, chains)
    reversed_flags = []

    for chain in chains:
        seed, last = chain.seed, chain.last
        seed_leaf, last_leaf = is_leaf(G, seed), is_leaf(G, last)

        if seed_leaf and last_leaf:
            reverse = False
        elif seed_leaf:
            reverse = False
        elif last_leaf:
            reverse = True
        else:
            seed_depth, last_depth = depths[seed], depths[last]
            if seed_depth != last_depth:
                reverse = seed_depth > last_depth
            else:
                reverse = seed > last

        reversed_flags.append(reverse)

    return reversed_flags, depths


def global_direction_reversed(G: nx.Graph, chain: Chain, direction: np.ndarray) -> bool:
    """True when the seed-to-last vector points against direction."""
    road_dir = safe_normal(node_position(G, chain.last) - node_position(G, chain.seed))
    return float(np.dot(road_dir, direction)) < 0


def resolve_orientation(G: nx.Graph, chains: List[Chain], settings: SynthesisSettings) -> List[bool]:
    """
    Reversal flag for every chain under the configured orientation mode.

    The invert flag applies to DepthFirst and GlobalDirection only.
    """
    mode = settings.orientation_mode

    if mode == OrientationMode.DEPTH_FIRST:
        flags, _ = compute_depth_first_orientation(G, chains)
        flags = [f != settings.invert_orientation for f in flags]
    elif mode == OrientationMode.GLOBAL_DIRECTION:
        direction = np.asarray(settings.orientation_direction, dtype=float)
        flags = [global_direction_reversed(G, c, direction) != settings.invert_orientation for c in chains]
    else:
        flags = [sort_extrapolation(G, c, settings.direction) for c in chains]

    logger.debug(f"resolve_orientation: mode={mode.value}, {sum(flags)}/{len(flags)} chains reversed")
    return flags
