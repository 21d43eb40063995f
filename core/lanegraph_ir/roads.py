"""Road construction: point materialization, endpoint trimming and offsets."""

from typing import List, Optional
from dataclasses import dataclass, field
from scipy.spatial.transform import Rotation
import numpy as np
import logging

from .chains import Chain
from .cluster import is_leaf, node_position
from .context import SynthesisContext
from .geometry import FORWARD, UP, rotation_from_forward_and_up
from .lane_profiles import EMPTY_PROFILE, LaneProfile, resolve_road_lane_profile
from .settings import PointType
from .trim import HalfSpace, trim_end, trim_start

logger = logging.getLogger(__name__)


@dataclass
class ShapePoint:
    """Zone shape point. tangent_length holds the half-width on polygon points."""
    position: np.ndarray
    rotation: Rotation
    type: PointType
    tangent_length: float = 0.0
    lane_profile: int = 0

    @classmethod
    def facing(cls, position: np.ndarray, forward: np.ndarray, point_type: PointType) -> "ShapePoint":
        return cls(
            position=np.array(position, dtype=float),
            rotation=rotation_from_forward_and_up(forward, UP),
            type=point_type
        )

    @property
    def forward(self) -> np.ndarray:
        return self.rotation.apply(FORWARD)


@dataclass
class PolygonEndpoint:
    """Boundary of the polygon a road end connects to."""
    center: np.ndarray = field(default_factory=lambda: np.zeros(3))
    direction: np.ndarray = field(default_factory=lambda: np.zeros(3))
    radius: float = 0.0
    valid: bool = False

    def half_space(self) -> HalfSpace:
        return HalfSpace(center=self.center, direction=self.direction, radius=self.radius)


def update_tangent_lengths(points: List[ShapePoint]) -> None:
    """Auto tangents: a third of the shorter adjacent segment, zero on sharp points."""
    count = len(points)
    for i, point in enumerate(points):
        if point.type == PointType.SHARP:
            point.tangent_length = 0.0
            continue
        lengths = []
        if i > 0:
            lengths.append(float(np.linalg.norm(point.position - points[i - 1].position)))
        if i < count - 1:
            lengths.append(float(np.linalg.norm(points[i + 1].position - point.position)))
        point.tangent_length = min(lengths) / 3.0 if lengths else 0.0


@dataclass
class Road:
    """One chain turned into a spline, in orientation order."""
    index: int
    chain: Chain
    reversed: bool = False

    lane_profile: LaneProfile = EMPTY_PROFILE
    max_lane_width: float = 0.0
    total_profile_width: float = 0.0

    start_endpoint: PolygonEndpoint = field(default_factory=PolygonEndpoint)
    end_endpoint: PolygonEndpoint = field(default_factory=PolygonEndpoint)
    start_radius: float = 0.0
    end_radius: float = 0.0

    points: List[ShapePoint] = field(default_factory=list)
    degenerate: bool = False

    @property
    def start_node(self) -> int:
        return self.chain.last if self.reversed else self.chain.seed

    @property
    def end_node(self) -> int:
        return self.chain.seed if self.reversed else self.chain.last

    def resolve_lane_profile(self, ctx: SynthesisContext) -> None:
        """Resolve the lane profile and cache the widths the radius engine needs."""
        self.lane_profile = resolve_road_lane_profile(
            ctx.graph,
            self.chain,
            ctx.registry,
            ctx.settings.lane_profile_attribute,
            source=ctx.lane_profile_source
        )
        self.total_profile_width = self.lane_profile.total_width
        self.max_lane_width = self.lane_profile.max_lane_width

    def ordered_nodes(self, ctx: SynthesisContext) -> List[int]:
        """Chain nodes in travel order, closing point included for loops."""
        nodes = self.chain.get_nodes(ctx.graph, self.reversed)

        # Single-edge chains report their edge topology, which may disagree with seed/last
        if self.chain.single_edge:
            expected_first = self.chain.last if self.reversed else self.chain.seed
            if nodes[0] != expected_first:
                nodes[0], nodes[1] = nodes[1], nodes[0]

        if self.chain.is_closed_loop:
            nodes.append(nodes[0])
        return nodes

    def precompute(self, ctx: SynthesisContext) -> None:
        """
        Build the final point sequence.

        Non-leaf endpoints are trimmed against their polygon boundary when
        trimming is enabled and the boundary is known, otherwise pulled inward
        by the synced radius. Closed loops keep every point.
        """
        G = ctx.graph
        nodes = self.ordered_nodes(ctx)
        positions = [node_position(G, n) for n in nodes]

        points = []
        for i, (node, position) in enumerate(zip(nodes, positions)):
            if i == len(nodes) - 1:
                next_position = position + (position - positions[i - 1])
            else:
                next_position = positions[i + 1]
            points.append(ShapePoint.facing(position, next_position - position, ctx.road_point_type.read(G, node)))

        if not self.chain.is_closed_loop:
            points = self._handle_endpoints(ctx, nodes, points)
            if points is None:
                self.degenerate = True
                self.points = []
                logger.warning(f"Road {self.index} ({self.start_node}->{self.end_node}) lies inside its polygon, skipped")
                return

            if len(points) < 2:
                self.degenerate = True
                self.points = []
                logger.warning(f"Road {self.index} ({self.start_node}->{self.end_node}) has fewer than 2 points, skipped")
                return

        update_tangent_lengths(points)
        self.points = points
        logger.debug(f"Road {self.index}: {len(points)} points, reversed={self.reversed}")

    def _handle_endpoints(self, ctx: SynthesisContext, nodes: List[int], points: List[ShapePoint]) -> Optional[List[ShapePoint]]:
        settings = ctx.settings
        default_type = settings.road_point_type

        def make_point(position: np.ndarray, forward: np.ndarray) -> ShapePoint:
            return ShapePoint.facing(position, forward, default_type)

        def position_of(point: ShapePoint) -> np.ndarray:
            return point.position

        if not is_leaf(ctx.graph, nodes[0]):
            if settings.trim_road_endpoints and self.start_endpoint.valid:
                points = trim_start(
                    points, self.start_endpoint.half_space(), settings.endpoint_trim_buffer, make_point, position_of
                )
                if points is None:
                    return None
            else:
                # Always inward, whatever the reversal flag
                points[0].position = points[0].position + points[0].forward * self.start_radius

        if not is_leaf(ctx.graph, nodes[-1]):
            if settings.trim_road_endpoints and self.end_endpoint.valid:
                points = trim_end(
                    points, self.end_endpoint.half_space(), settings.endpoint_trim_buffer, make_point, position_of
                )
                if points is None:
                    return None
            else:
                # Always inward, whatever the reversal flag
                points[-1].position = points[-1].position - points[-1].forward * self.end_radius

        return points
