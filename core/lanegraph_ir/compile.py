"""Compile precomputed roads and polygons into zone shapes on a time-sliced loop."""

from typing import Callable, List, Optional
import time
import logging

from .cluster import ClusterContextError
from .export_paths import build_polygon_path, build_road_path
from .polygons import Polygon
from .roads import Road, ShapePoint
from .schemas import PathIR, ShapePointIR, ZoneShapeIR
from .settings import POINT_TYPE_NAMES, ROUTING_TYPE_NAMES, RoutingType, SynthesisSettings

logger = logging.getLogger(__name__)

# io_index = (cluster_index + 1) * IO_INDEX_STRIDE + node id
IO_INDEX_STRIDE = 100000


class ZoneShapeComponent:
    """Output zone shape: a road spline or an intersection polygon."""

    def __init__(self, name: str, component_tags: List[str]):
        self.name = name
        self.component_tags = list(component_tags)
        self.shape_type = "spline"
        self.source_node = -1
        self.tags = 0
        self.routing_type: Optional[RoutingType] = None
        self.lane_profile: Optional[str] = None
        self.per_point_lane_profiles: List[str] = []
        self.points: List[ShapePoint] = []

    def add_unique_per_point_lane_profile(self, profile_name: str) -> int:
        """Index of profile_name in the per-point table, appending it if new."""
        if profile_name not in self.per_point_lane_profiles:
            self.per_point_lane_profiles.append(profile_name)
        return self.per_point_lane_profiles.index(profile_name)

    def to_ir(self) -> ZoneShapeIR:
        return ZoneShapeIR(
            shape_type=self.shape_type,
            source_node=self.source_node,
            tags=self.tags,
            component_tags=self.component_tags,
            lane_profile=self.lane_profile,
            per_point_lane_profiles=self.per_point_lane_profiles,
            routing_type=ROUTING_TYPE_NAMES[self.routing_type] if self.routing_type is not None else None,
            points=[
                ShapePointIR(
                    position=[float(v) for v in p.position],
                    rotation=[float(v) for v in p.rotation.as_quat()],
                    type=POINT_TYPE_NAMES[p.type],
                    tangent_length=float(p.tangent_length),
                    lane_profile=p.lane_profile
                )
                for p in self.points
            ]
        )


class ShapeContainer:
    """Output target that owns the compiled components of one cluster."""

    def __init__(self, owner: str):
        self.owner = owner
        self.components: List[ZoneShapeComponent] = []

    def create_component(self, component_tags: List[str]) -> ZoneShapeComponent:
        component = ZoneShapeComponent(f"{self.owner}_ZoneShape_{len(self.components)}", component_tags)
        self.components.append(component)
        return component


def compile_polygon(polygon: Polygon, component: ZoneShapeComponent) -> None:
    component.shape_type = "polygon"
    component.source_node = polygon.node
    component.routing_type = polygon.routing_type
    component.tags |= polygon.tags
    component.lane_profile = polygon.lane_profile.name or None

    # Each connection uses its own road's profile
    for point, profile in zip(polygon.points, polygon.point_lane_profiles):
        point.lane_profile = component.add_unique_per_point_lane_profile(profile.name)
    component.points = polygon.points


def compile_road(road: Road, component: ZoneShapeComponent) -> None:
    component.shape_type = "spline"
    component.source_node = road.chain.seed
    component.lane_profile = road.lane_profile.name or None
    component.points = road.points


class TimeSlicedCompileLoop:
    """
    Resumable compile of one cluster's shapes, bounded per tick.

    Iterations cover polygons first, then roads. The output target is resolved
    on the first iteration; degenerate roads are skipped. on_complete runs once
    after the last iteration.
    """

    def __init__(
        self,
        polygons: List[Polygon],
        roads: List[Road],
        settings: SynthesisSettings,
        target_provider: Callable[[], Optional[ShapeContainer]],
        cluster_index: int = 0,
        on_complete: Optional[Callable[["TimeSlicedCompileLoop"], None]] = None,
        clock: Callable[[], float] = time.perf_counter
    ):
        self.polygons = polygons
        self.roads = roads
        self.settings = settings
        self.target_provider = target_provider
        self.io_base = (cluster_index + 1) * IO_INDEX_STRIDE
        self.on_complete = on_complete
        self.clock = clock

        self.target: Optional[ShapeContainer] = None
        self.road_paths: List[PathIR] = []
        self.polygon_paths: List[PathIR] = []
        self.skipped_roads: List[Road] = []
        self.ticks = 0
        self.index = 0
        self.done = False

    @property
    def total(self) -> int:
        return len(self.polygons) + len(self.roads)

    def tick(self) -> bool:
        """
        Run one bounded slice of work.

        Returns:
            True once every iteration has run

        Raises:
            ClusterContextError: if no output target can be resolved
        """
        if self.done:
            return True

        self.ticks += 1
        budget = self.settings.compile_time_budget
        max_items = self.settings.compile_max_items_per_tick
        started = self.clock()
        processed = 0

        while self.index < self.total:
            self._iterate(self.index)
            self.index += 1
            processed += 1
            if max_items and processed >= max_items:
                break
            if budget > 0 and self.clock() - started >= budget:
                break

        logger.debug(f"Compile tick {self.ticks}: {processed} items, {self.index}/{self.total}")

        if self.index >= self.total:
            self.done = True
            if self.on_complete:
                self.on_complete(self)
        return self.done

    def run_to_completion(self) -> int:
        """Drive ticks until done. Returns the number of ticks used."""
        while not self.tick():
            pass
        return self.ticks

    def _iterate(self, index: int) -> None:
        if index == 0:
            self.target = self.target_provider()
            if self.target is None:
                self.done = True
                raise ClusterContextError("Invalid output target, nothing compiled")

        num_polygons = len(self.polygons)
        if index < num_polygons:
            polygon = self.polygons[index]
            component = self.target.create_component(self.settings.component_tags)
            compile_polygon(polygon, component)
            if self.settings.output_polygon_paths:
                self.polygon_paths.append(build_polygon_path(component, self.io_base + polygon.node))
            return

        road = self.roads[index - num_polygons]
        if road.degenerate:
            self.skipped_roads.append(road)
            return
        component = self.target.create_component(self.settings.component_tags)
        compile_road(road, component)
        if self.settings.output_road_paths:
            self.road_paths.append(build_road_path(
                component,
                self.io_base + road.chain.seed,
                self.settings.arrive_name,
                self.settings.leave_name
            ))
