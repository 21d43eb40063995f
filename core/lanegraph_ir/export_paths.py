"""Road and polygon path outputs."""

from typing import List, TYPE_CHECKING
from shapely.geometry import LineString, Polygon, mapping
import json
import logging

from .geometry import LEFT, RIGHT
from .schemas import PathIR, PathPointIR

if TYPE_CHECKING:
    from .compile import ZoneShapeComponent

logger = logging.getLogger(__name__)


def _to_list(vector) -> List[float]:
    return [float(v) for v in vector]


def _geometry(coords: List[List[float]], closed: bool) -> dict:
    if closed and len(coords) >= 3:
        geometry = Polygon(coords)
    else:
        geometry = LineString(coords)
    # Round-trip through JSON turns shapely's nested tuples into plain lists
    return json.loads(json.dumps(mapping(geometry)))


def build_road_path(component: "ZoneShapeComponent", io_index: int, arrive_name: str, leave_name: str) -> PathIR:
    """
    Road spline as an open path.

    Each point carries arrive/leave tangents: -forward and +forward scaled by
    its tangent length.
    """
    points = []
    for pt in component.points:
        tangent = pt.forward * pt.tangent_length
        points.append(PathPointIR(
            position=_to_list(pt.position),
            rotation=_to_list(pt.rotation.as_quat()),
            attributes={arrive_name: _to_list(-tangent), leave_name: _to_list(tangent)}
        ))

    return PathIR(
        io_index=io_index,
        closed_loop=False,
        geometry=_geometry([p.position for p in points], closed=False),
        points=points
    )


def build_polygon_path(component: "ZoneShapeComponent", io_index: int) -> PathIR:
    """
    Polygon outline as a closed path: two points per connection, right edge
    first, then left, each at the connection's half-width.
    """
    points = []
    for pt in component.points:
        half_width = pt.tangent_length
        rotation = _to_list(pt.rotation.as_quat())
        right = pt.position + pt.rotation.apply(RIGHT) * half_width
        left = pt.position + pt.rotation.apply(LEFT) * half_width
        points.append(PathPointIR(position=_to_list(right), rotation=rotation))
        points.append(PathPointIR(position=_to_list(left), rotation=rotation))

    return PathIR(
        io_index=io_index,
        closed_loop=True,
        geometry=_geometry([p.position for p in points], closed=True),
        points=points
    )


def export_paths_json(paths: List[PathIR], output_path: str) -> None:
    """Export paths to a JSON file."""
    logger.info("Exporting %d paths to: %s", len(paths), output_path)
    with open(output_path, 'w') as f:
        json.dump([p.model_dump() for p in paths], f, indent=2)
