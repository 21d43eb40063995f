"""Junction polygon construction."""

from typing import List, Optional, Tuple
from dataclasses import dataclass, field
from shapely.geometry import Polygon as ShapelyPolygon
from shapely.validation import explain_validity
import numpy as np
import logging

from .cluster import node_position
from .context import SynthesisContext
from .geometry import FORWARD, UP, signed_angle
from .lane_profiles import EMPTY_PROFILE, LaneProfile, resolve_point_lane_profile
from .radius import connection_radius
from .roads import PolygonEndpoint, Road, ShapePoint
from .settings import PointType, RoutingType

logger = logging.getLogger(__name__)


@dataclass
class Polygon:
    """
    Intersection polygon around one junction node.

    connections holds (road, from_start) pairs in insertion order, where
    from_start means the junction is that road's start node. radii is parallel
    to connections; points and the per-point caches follow the angular order.
    """
    node: int
    connections: List[Tuple[Road, bool]] = field(default_factory=list)

    radius: float = 0.0
    routing_type: RoutingType = RoutingType.ARCS
    point_type: PointType = PointType.LANE_PROFILE
    tags: int = 0
    lane_profile: LaneProfile = EMPTY_PROFILE
    radii: List[float] = field(default_factory=list)

    points: List[ShapePoint] = field(default_factory=list)
    point_lane_profiles: List[LaneProfile] = field(default_factory=list)
    point_half_widths: List[float] = field(default_factory=list)

    def add(self, road: Road, from_start: bool) -> None:
        self.connections.append((road, from_start))

    def connection_direction(self, ctx: SynthesisContext, road: Road, from_start: bool) -> np.ndarray:
        """
        Outward direction of one connection, from the junction toward the chain's next node.

        A chain that starts and ends at this junction is told apart by which
        road end the connection is, mapped back onto the chain's own order.
        """
        chain = road.chain
        at_seed = self.node == chain.seed
        at_last = self.node == chain.last
        if at_seed and at_last:
            from_seed = from_start != road.reversed
        else:
            from_seed = at_seed
        return chain.get_edge_dir(ctx.graph, from_seed)

    def precompute(self, ctx: SynthesisContext) -> None:
        """Resolve attributes, compute per-connection radii and emit the boundary points."""
        G = ctx.graph
        settings = ctx.settings
        center = node_position(G, self.node)

        self.radius = ctx.polygon_radius.read(G, self.node)
        self.routing_type = ctx.polygon_routing_type.read(G, self.node)
        self.point_type = ctx.polygon_point_type.read(G, self.node)
        self.tags = ctx.intersection_tags.read(G, self.node)
        self.lane_profile = resolve_point_lane_profile(G, self.node, ctx.registry, settings.lane_profile_attribute)

        self.radii = [
            connection_radius(self.radius, settings.auto_radius_mode, road.max_lane_width, road.total_profile_width)
            for road, _ in self.connections
        ]

        directions = [self.connection_direction(ctx, road, from_start) for road, from_start in self.connections]
        angles = [signed_angle(d, FORWARD, UP) for d in directions]
        order = sorted(range(len(self.connections)), key=lambda i: angles[i], reverse=True)

        self.points = []
        self.point_lane_profiles = []
        self.point_half_widths = []

        for i in order:
            road, from_start = self.connections[i]
            direction = directions[i]
            radius = self.radii[i]

            endpoint = PolygonEndpoint(center=center, direction=direction, radius=radius, valid=True)
            if from_start:
                road.start_endpoint = endpoint
            else:
                road.end_endpoint = endpoint

            half_width = road.total_profile_width * 0.5
            point = ShapePoint.facing(center + direction * radius, -direction, self.point_type)
            point.tangent_length = half_width

            self.points.append(point)
            self.point_lane_profiles.append(road.lane_profile)
            self.point_half_widths.append(half_width)

        self.check_boundary()
        logger.debug(f"Polygon {self.node}: {len(self.points)} connections, radii={self.radii}")

    def check_boundary(self) -> Optional[str]:
        """Warn when the xy footprint of the boundary ring is not a valid polygon. Returns the reason."""
        if len(self.points) < 3:
            return None
        ring = [(float(p.position[0]), float(p.position[1])) for p in self.points]
        footprint = ShapelyPolygon(ring)
        if footprint.is_valid:
            return None
        reason = explain_validity(footprint)
        logger.warning(f"Polygon {self.node}: boundary is not a simple polygon ({reason})")
        return reason

    def sync_radius_to_roads(self) -> None:
        """Copy each connection's final radius onto the connected road end."""
        for (road, from_start), radius in zip(self.connections, self.radii):
            if from_start:
                road.start_radius = radius
            else:
                road.end_radius = radius
