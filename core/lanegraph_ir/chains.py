"""Chain decomposition: maximal paths between break nodes, and closed loops."""

from typing import List, Tuple, Set
from dataclasses import dataclass
import networkx as nx
import numpy as np
import logging

from .cluster import NodeKind, classify_node, node_position
from .geometry import safe_normal

logger = logging.getLogger(__name__)


def edge_key(u: int, v: int) -> Tuple[int, int]:
    return (u, v) if u <= v else (v, u)


@dataclass(frozen=True)
class Chain:
    """
    Ordered node sequence between two break endpoints, or a closed loop.

    Open chains list every node from seed to last. Closed loops list each node
    once, starting at the seed; the closing edge runs from nodes[-1] back to the seed.
    """
    nodes: Tuple[int, ...]
    is_closed_loop: bool = False

    @property
    def seed(self) -> int:
        return self.nodes[0]

    @property
    def last(self) -> int:
        return self.nodes[0] if self.is_closed_loop else self.nodes[-1]

    @property
    def single_edge(self) -> bool:
        return not self.is_closed_loop and len(self.nodes) == 2

    @property
    def num_edges(self) -> int:
        return len(self.nodes) if self.is_closed_loop else len(self.nodes) - 1

    def node_ring(self) -> List[int]:
        """Nodes in seed-to-last order, with the seed repeated at the end of a closed loop."""
        ring = list(self.nodes)
        if self.is_closed_loop:
            ring.append(self.nodes[0])
        return ring

    def edge_pairs(self) -> List[Tuple[int, int]]:
        """Edges in chain order, each as (from, to) along the chain."""
        ring = self.node_ring()
        return [(ring[i], ring[i + 1]) for i in range(len(ring) - 1)]

    def get_nodes(self, G: nx.Graph, reversed: bool = False) -> List[int]:
        """
        Node ids in traversal order.

        A single-edge chain reports its edge's own start/end topology, which
        can disagree with the seed/last order. Reversing a closed loop keeps the
        seed first and walks the loop the other way.
        """
        if self.single_edge:
            data = G.edges[self.nodes[0], self.nodes[1]]
            nodes = [data['start'], data['end']]
        else:
            nodes = list(self.nodes)

        if not reversed:
            return nodes
        if self.is_closed_loop:
            return [nodes[0]] + nodes[:0:-1]
        return nodes[::-1]

    def get_edge_dir(self, G: nx.Graph, from_seed: bool) -> np.ndarray:
        """Normalized direction leaving the seed along the first edge, or leaving last along the final edge."""
        ring = self.node_ring()
        if from_seed:
            origin, toward = ring[0], ring[1]
        else:
            origin, toward = ring[-1], ring[-2]
        return safe_normal(node_position(G, toward) - node_position(G, origin))


def build_chains(G: nx.Graph) -> List[Chain]:
    """
    Decompose the cluster graph into chains.

    A chain is a maximal path between terminals: leaves, junctions and flagged
    break nodes. A walk that returns to its own terminal is a closed loop seeded
    at that terminal. Edges left over once every terminal is exhausted belong to
    cycles of binary nodes; each becomes a closed loop seeded at its first node
    in graph order.

    Args:
        G: Cluster graph from build_cluster_graph

    Returns:
        Chains in discovery order
    """
    if len(G) == 0:
        return []

    def is_terminal(node: int) -> bool:
        return classify_node(G, node) != NodeKind.BINARY

    terminals = [n for n in G.nodes() if G.degree(n) > 0 and is_terminal(n)]
    logger.debug(f"build_chains: found {len(terminals)} terminals")

    chains = []
    visited_edges: Set[Tuple[int, int]] = set()

    def walk(start_node: int, first_neighbor: int) -> List[int]:
        """Walk from start_node through first_neighbor until a terminal or the start is reached."""
        path_nodes = [start_node, first_neighbor]
        visited_edges.add(edge_key(start_node, first_neighbor))
        prev, current = start_node, first_neighbor

        while current != start_node and not is_terminal(current):
            next_node = next(n for n in G.neighbors(current) if n != prev)
            edge = edge_key(current, next_node)
            if edge in visited_edges:
                break
            visited_edges.add(edge)
            path_nodes.append(next_node)
            prev, current = current, next_node

        return path_nodes

    for terminal in terminals:
        for neighbor in G.neighbors(terminal):
            if edge_key(terminal, neighbor) in visited_edges:
                continue
            path_nodes = walk(terminal, neighbor)
            if len(path_nodes) > 2 and path_nodes[-1] == path_nodes[0]:
                chains.append(Chain(nodes=tuple(path_nodes[:-1]), is_closed_loop=True))
            else:
                chains.append(Chain(nodes=tuple(path_nodes)))

    # Whatever remains are cycles made only of binary nodes
    for node in G.nodes():
        for neighbor in G.neighbors(node):
            if edge_key(node, neighbor) in visited_edges:
                continue
            path_nodes = walk(node, neighbor)
            if path_nodes[-1] == path_nodes[0]:
                path_nodes = path_nodes[:-1]
            chains.append(Chain(nodes=tuple(path_nodes), is_closed_loop=True))

    logger.info(f"build_chains: extracted {len(chains)} chains ({sum(c.is_closed_loop for c in chains)} closed loops)")
    return chains
