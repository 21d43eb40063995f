"""Cluster graph construction, node classification and attribute overrides."""

from typing import Any, Callable, Dict, Optional
from dataclasses import dataclass
from enum import Enum
from pydantic import ValidationError
import networkx as nx
import numpy as np
import json
import logging

from .geometry import as_vector
from .schemas import ClusterBatchIR, ClusterIR

logger = logging.getLogger(__name__)


class ClusterContextError(ValueError):
    """Fatal configuration/context problem. Aborts the whole cluster, no partial output."""


class NodeKind(str, Enum):
    LEAF = "leaf"
    BINARY = "binary"
    JUNCTION = "junction"


def parse_cluster_batch(data: Dict[str, Any]) -> ClusterBatchIR:
    """
    Validate a decoded cluster file.

    Raises:
        ClusterContextError: if the content does not match the input schema
    """
    try:
        return ClusterBatchIR.model_validate(data)
    except ValidationError as e:
        raise ClusterContextError(f"Invalid cluster file: {e}") from e


def load_cluster_batch(cluster_path: str) -> ClusterBatchIR:
    """Load and validate a cluster JSON file."""
    logger.info(f"Loading clusters from: {cluster_path}")
    with open(cluster_path, 'r') as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError as e:
            raise ClusterContextError(f"Cluster file is not valid JSON: {e}") from e
    batch = parse_cluster_batch(data)
    logger.info(f"Loaded {len(batch.clusters)} clusters, {len(batch.lane_profiles)} lane profiles")
    return batch


def build_cluster_graph(cluster: ClusterIR) -> nx.Graph:
    """
    Build the cluster graph from its IR.

    Node data: 'pos' (3-vector), 'is_break', 'attributes'.
    Edge data: 'start', 'end' (the edge's own topology), 'attributes'.

    Raises:
        ClusterContextError: if an edge references an unknown node or is a self loop
    """
    G = nx.Graph(cluster_id=cluster.cluster_id)

    for node in cluster.nodes:
        if node.id in G:
            raise ClusterContextError(f"Cluster {cluster.cluster_id}: duplicate node id {node.id}")
        G.add_node(
            node.id,
            pos=as_vector(node.position),
            is_break=node.is_break,
            attributes=dict(node.attributes)
        )

    for edge in cluster.edges:
        if edge.u not in G or edge.v not in G:
            raise ClusterContextError(
                f"Cluster {cluster.cluster_id}: edge {edge.u}-{edge.v} references an unknown node"
            )
        if edge.u == edge.v:
            raise ClusterContextError(f"Cluster {cluster.cluster_id}: self loop on node {edge.u}")
        if G.has_edge(edge.u, edge.v):
            logger.warning(f"Cluster {cluster.cluster_id}: duplicate edge {edge.u}-{edge.v} ignored")
            continue
        G.add_edge(edge.u, edge.v, start=edge.u, end=edge.v, attributes=dict(edge.attributes))

    logger.debug(f"build_cluster_graph: {cluster.cluster_id} has {G.number_of_nodes()} nodes, {G.number_of_edges()} edges")
    return G


def classify_node(G: nx.Graph, node: int) -> NodeKind:
    """Leaf (degree <= 1), Junction (degree >= 3 or flagged break), Binary otherwise."""
    degree = G.degree(node)
    if degree <= 1:
        return NodeKind.LEAF
    if degree >= 3 or G.nodes[node].get('is_break', False):
        return NodeKind.JUNCTION
    return NodeKind.BINARY


def is_leaf(G: nx.Graph, node: int) -> bool:
    return G.degree(node) <= 1


def is_binary(G: nx.Graph, node: int) -> bool:
    return classify_node(G, node) == NodeKind.BINARY


def node_position(G: nx.Graph, node: int) -> np.ndarray:
    return G.nodes[node]['pos']


def has_node_attribute(G: nx.Graph, name: Optional[str]) -> bool:
    """True if any node carries the attribute."""
    if not name:
        return False
    return any(name in data.get('attributes', {}) for _, data in G.nodes(data=True))


def has_edge_attribute(G: nx.Graph, name: Optional[str]) -> bool:
    """True if any edge carries the attribute."""
    if not name:
        return False
    return any(name in data.get('attributes', {}) for _, _, data in G.edges(data=True))


@dataclass(frozen=True)
class NodeOverride:
    """
    Optional per-node attribute override with a defined fallback.

    A disabled override (attribute is None), or a node without the attribute,
    reads as the default. Present values go through convert. A value convert
    rejects is a ClusterContextError for the cluster.
    """
    attribute: Optional[str]
    default: Any
    convert: Callable[[Any], Any] = lambda value: value

    def read(self, G: nx.Graph, node: int) -> Any:
        if not self.attribute:
            return self.default
        value = G.nodes[node].get('attributes', {}).get(self.attribute)
        if value is None:
            return self.default
        try:
            return self.convert(value)
        except (TypeError, ValueError) as e:
            raise ClusterContextError(
                f"Node {node}: attribute '{self.attribute}' has unusable value {value!r}"
            ) from e
