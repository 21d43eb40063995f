"""Read-only per-cluster synthesis context shared by roads and polygons."""

from dataclasses import dataclass
import networkx as nx
import logging

from .cluster import NodeOverride, has_edge_attribute, has_node_attribute
from .lane_profiles import LaneProfileRegistry
from .settings import SynthesisSettings, clamp_point_type, clamp_routing_type

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SynthesisContext:
    """
    Everything a road or polygon needs to read while precomputing.

    Passed explicitly to each step; roads and polygons never hold on to it.
    """
    graph: nx.Graph
    settings: SynthesisSettings
    registry: LaneProfileRegistry
    polygon_radius: NodeOverride
    polygon_routing_type: NodeOverride
    polygon_point_type: NodeOverride
    road_point_type: NodeOverride
    intersection_tags: NodeOverride
    lane_profile_source: str = "edges"  # 'edges' or 'nodes'

    @classmethod
    def create(cls, G: nx.Graph, settings: SynthesisSettings, registry: LaneProfileRegistry) -> "SynthesisContext":
        lane_profile_source = "edges"
        attribute = settings.lane_profile_attribute
        if attribute and not has_edge_attribute(G, attribute) and has_node_attribute(G, attribute):
            logger.debug(f"No edge carries '{attribute}', voting lane profiles over chain nodes")
            lane_profile_source = "nodes"

        return cls(
            graph=G,
            settings=settings,
            registry=registry,
            polygon_radius=NodeOverride(settings.polygon_radius_attribute, settings.polygon_radius, float),
            polygon_routing_type=NodeOverride(
                settings.polygon_routing_type_attribute, settings.polygon_routing_type, clamp_routing_type
            ),
            polygon_point_type=NodeOverride(
                settings.polygon_point_type_attribute, settings.polygon_point_type, clamp_point_type
            ),
            road_point_type=NodeOverride(settings.road_point_type_attribute, settings.road_point_type, clamp_point_type),
            intersection_tags=NodeOverride(
                settings.intersection_tags_attribute, settings.additional_intersection_tags, int
            ),
            lane_profile_source=lane_profile_source
        )
