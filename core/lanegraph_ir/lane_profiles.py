"""Lane profile registry and road/junction lane profile resolution."""

from typing import Dict, List, Optional, Tuple, Any
from collections import Counter
from dataclasses import dataclass, field
import networkx as nx
import logging

from .chains import Chain
from .schemas import LaneProfileIR

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LaneDesc:
    width: float
    direction: str = "forward"
    tags: int = 0


@dataclass(frozen=True)
class LaneProfile:
    """Named, ordered lane set."""
    name: str
    lanes: Tuple[LaneDesc, ...] = ()

    @property
    def total_width(self) -> float:
        return float(sum(lane.width for lane in self.lanes))

    @property
    def max_lane_width(self) -> float:
        return float(max((lane.width for lane in self.lanes), default=0.0))


# Zero-width placeholder used when no profile is registered at all
EMPTY_PROFILE = LaneProfile(name="")


@dataclass
class LaneProfileRegistry:
    """Registered lane profiles, looked up by name, with a default fallback."""
    profiles: Dict[str, LaneProfile] = field(default_factory=dict)
    default_name: Optional[str] = None

    @classmethod
    def from_ir(cls, profiles: List[LaneProfileIR], default_name: Optional[str] = None) -> "LaneProfileRegistry":
        registry = cls(default_name=default_name)
        for profile in profiles:
            if profile.name in registry.profiles:
                logger.warning(f"Lane profile '{profile.name}' registered twice, keeping the first")
                continue
            registry.profiles[profile.name] = LaneProfile(
                name=profile.name,
                lanes=tuple(LaneDesc(width=l.width, direction=l.direction, tags=l.tags) for l in profile.lanes)
            )
        if default_name and default_name not in registry.profiles:
            logger.warning(f"Default lane profile '{default_name}' is not registered")
        return registry

    @property
    def default(self) -> LaneProfile:
        """Configured default, else the first registered profile, else an empty profile."""
        if self.default_name and self.default_name in self.profiles:
            return self.profiles[self.default_name]
        if self.profiles:
            return next(iter(self.profiles.values()))
        return EMPTY_PROFILE

    def resolve(self, name: Optional[str]) -> LaneProfile:
        """Look up a profile by name. Empty or unknown names fall back to the default."""
        if not name:
            return self.default
        profile = self.profiles.get(name)
        if profile is None:
            logger.debug(f"Lane profile '{name}' not registered, using default")
            return self.default
        return profile


def majority_vote(names: List[Any]) -> Optional[str]:
    """
    Most frequent name. Ties go to the name seen first.

    Empty/None names are counted like any other value, so a chain whose edges
    are mostly unset resolves to the default.
    """
    counts = Counter(str(name) if name is not None else "" for name in names)
    if not counts:
        return None
    # most_common is stable: equal counts keep first-seen order
    return counts.most_common(1)[0][0]


def resolve_road_lane_profile(
    G: nx.Graph,
    chain: Chain,
    registry: LaneProfileRegistry,
    attribute: Optional[str],
    source: str = "edges"
) -> LaneProfile:
    """
    Resolve a road's lane profile.

    Args:
        G: Cluster graph
        chain: Chain the road follows
        registry: Lane profile registry
        attribute: Lane profile name attribute, None when no override is configured
        source: 'edges' votes over the chain's edges, 'nodes' over its nodes

    Returns:
        Resolved profile, never None
    """
    if not attribute:
        return registry.default

    if source == "nodes":
        names = [G.nodes[n]['attributes'].get(attribute) for n in chain.nodes]
    else:
        names = [G.edges[u, v]['attributes'].get(attribute) for u, v in chain.edge_pairs()]

    return registry.resolve(majority_vote(names))


def resolve_point_lane_profile(
    G: nx.Graph,
    node: int,
    registry: LaneProfileRegistry,
    attribute: Optional[str]
) -> LaneProfile:
    """Lane profile for a junction node, read directly from its attribute."""
    if not attribute:
        return registry.default
    return registry.resolve(G.nodes[node]['attributes'].get(attribute))
