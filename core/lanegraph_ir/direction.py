"""Edge-direction rules used by SortDirection orientation."""

from typing import Tuple
import networkx as nx
import logging

from .chains import Chain
from .cluster import ClusterContextError, node_position
from .settings import EdgeDirectionSettings

logger = logging.getLogger(__name__)

POSITION_COMPONENTS = {"$position.x": 0, "$position.y": 1, "$position.z": 2}


def _rule_value(G: nx.Graph, node: int, rule: str) -> float:
    if rule in POSITION_COMPONENTS:
        return float(node_position(G, node)[POSITION_COMPONENTS[rule]])
    value = G.nodes[node].get('attributes', {}).get(rule)
    if value is None:
        return 0.0
    return float(value)


def compare_by_rules(G: nx.Graph, a: int, b: int, settings: EdgeDirectionSettings) -> int:
    """
    Compare two nodes by the ordered sort rules.

    Returns -1 if a sorts first, 1 if b sorts first. Values within the tolerance
    fall through to the next rule; a full tie is broken by node id.
    """
    for i, rule in enumerate(settings.sort_rules):
        value_a = _rule_value(G, a, rule)
        value_b = _rule_value(G, b, rule)
        if abs(value_a - value_b) <= settings.sort_tolerance:
            continue
        descending = settings.sort_descending[i] if i < len(settings.sort_descending) else False
        result = -1 if value_a < value_b else 1
        return -result if descending else result
    if a == b:
        return 0
    return -1 if a < b else 1


def sort_extrapolation(G: nx.Graph, chain: Chain, settings: EdgeDirectionSettings) -> bool:
    """
    Decide whether a chain must be reversed so that it runs in the configured edge direction.

    Methods:
        endpoints_order: follow the seed edge's own start/end topology
        endpoints_indices: run from the smaller node id to the greater
        endpoints_sort: run from the endpoint that sorts first under sort_rules

    direction_choice 'greatest_to_smallest' flips the outcome.

    Raises:
        ClusterContextError: for an unknown method or direction choice
    """
    start, end = chain.seed, chain.last

    if settings.method == "endpoints_order":
        seed_from, seed_to = chain.edge_pairs()[0]
        data = G.edges[seed_from, seed_to]
        reverse = data['start'] != seed_from
    elif settings.method == "endpoints_indices":
        reverse = start > end
    elif settings.method == "endpoints_sort":
        reverse = compare_by_rules(G, start, end, settings) > 0
    else:
        raise ClusterContextError(f"Unknown edge direction method: {settings.method}")

    if settings.direction_choice == "greatest_to_smallest":
        reverse = not reverse
    elif settings.direction_choice != "smallest_to_greatest":
        raise ClusterContextError(f"Unknown direction choice: {settings.direction_choice}")

    return reverse


def oriented_endpoints(chain: Chain, reverse: bool) -> Tuple[int, int]:
    """(start, end) node ids of a chain after applying its reversal flag."""
    if reverse:
        return chain.last, chain.seed
    return chain.seed, chain.last
