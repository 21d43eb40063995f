"""Synthesis settings, enumerations and parameter file loading."""

from typing import Dict, Any, List, Optional, Tuple
from enum import Enum, IntEnum
from pathlib import Path
from pydantic import BaseModel, Field
import ast
import logging

logger = logging.getLogger(__name__)


class OrientationMode(str, Enum):
    """How road orientation is determined."""
    SORT_DIRECTION = "sort_direction"
    DEPTH_FIRST = "depth_first"
    GLOBAL_DIRECTION = "global_direction"


class AutoRadiusMode(str, Enum):
    """Policy for deriving a connection radius from lane profile widths."""
    DISABLED = "disabled"
    WIDEST_LANE = "widest_lane"
    HALF_PROFILE = "half_profile"
    WIDEST_LANE_MIN = "widest_lane_min"
    HALF_PROFILE_MIN = "half_profile_min"


class PointType(IntEnum):
    """Zone shape point type. Integer values match the override attribute encoding."""
    SHARP = 0
    BEZIER = 1
    AUTO_BEZIER = 2
    LANE_PROFILE = 3


class RoutingType(IntEnum):
    """Polygon lane routing. Integer values match the override attribute encoding."""
    BEZIER = 0
    ARCS = 1


POINT_TYPE_NAMES = {
    PointType.SHARP: "sharp",
    PointType.BEZIER: "bezier",
    PointType.AUTO_BEZIER: "auto_bezier",
    PointType.LANE_PROFILE: "lane_profile",
}

ROUTING_TYPE_NAMES = {
    RoutingType.BEZIER: "bezier",
    RoutingType.ARCS: "arcs",
}


def clamp_point_type(value: Any) -> PointType:
    """Interpret an attribute value as a point type, clamped to the valid range."""
    return PointType(min(max(int(value), 0), 3))


def clamp_routing_type(value: Any) -> RoutingType:
    """Interpret an attribute value as a routing type, clamped to the valid range."""
    return RoutingType(min(max(int(value), 0), 1))


class EdgeDirectionSettings(BaseModel):
    """Rules used by SortDirection orientation to pick a chain's start endpoint."""
    method: str = "endpoints_order"  # endpoints_order | endpoints_indices | endpoints_sort
    direction_choice: str = "smallest_to_greatest"  # or greatest_to_smallest
    sort_rules: List[str] = Field(default_factory=list)  # Node attribute names or "$position.x|y|z"
    sort_descending: List[bool] = Field(default_factory=list)  # Per-rule, defaults to ascending
    sort_tolerance: float = 1e-4


class SynthesisSettings(BaseModel):
    """Options recognized by the synthesis pipeline."""

    # Direction
    direction: EdgeDirectionSettings = Field(default_factory=EdgeDirectionSettings)
    orientation_mode: OrientationMode = OrientationMode.DEPTH_FIRST
    invert_orientation: bool = False
    orientation_direction: Tuple[float, float, float] = (1.0, 0.0, 0.0)

    # Polygons
    polygon_radius: float = 100.0
    polygon_radius_attribute: Optional[str] = None  # e.g. "ZG.PolygonRadius"
    auto_radius_mode: AutoRadiusMode = AutoRadiusMode.DISABLED
    polygon_routing_type: RoutingType = RoutingType.ARCS
    polygon_routing_type_attribute: Optional[str] = None  # e.g. "PolygonRoutingType"
    polygon_point_type: PointType = PointType.LANE_PROFILE
    polygon_point_type_attribute: Optional[str] = None  # e.g. "PolygonPointType"
    additional_intersection_tags: int = 0
    intersection_tags_attribute: Optional[str] = None  # e.g. "IntersectionTags"

    # Roads
    trim_road_endpoints: bool = True
    endpoint_trim_buffer: float = Field(default=0.0, ge=0.0)
    road_point_type: PointType = PointType.AUTO_BEZIER
    road_point_type_attribute: Optional[str] = None  # e.g. "RoadPointType"

    # Lane profiles
    lane_profile: Optional[str] = None  # None = first registered profile
    lane_profile_attribute: Optional[str] = None  # e.g. "LaneProfile"

    # Output
    component_tags: List[str] = Field(default_factory=lambda: ["LaneGraph"])
    output_road_paths: bool = False
    output_polygon_paths: bool = False
    arrive_name: str = "ArriveTangent"
    leave_name: str = "LeaveTangent"

    # Compile loop
    compile_time_budget: float = 0.005  # Seconds of compile work per tick
    compile_max_items_per_tick: int = 0  # 0 = no item cap, time budget only


def load_synthesis_parameters(cluster_path: str) -> Dict[str, Any]:
    """
    Load synthesis parameters from FILENAME_param.txt file if it exists.

    Args:
        cluster_path: Path to the cluster JSON file

    Returns:
        Dictionary of parameter name -> value. Only includes parameters that were found in the file.
    """
    params = {}
    cluster_file_path = Path(cluster_path)
    param_file_path = cluster_file_path.parent / f"{cluster_file_path.stem}_param.txt"

    if not param_file_path.exists():
        logger.debug(f"Parameter file not found: {param_file_path}")
        return params

    logger.info(f"Loading parameters from: {param_file_path}")
    with open(param_file_path, 'r') as f:
        for line_num, line in enumerate(f, 1):
            line = line.strip()
            # Skip empty lines and comments
            if not line or line.startswith('#'):
                continue

            # Parse "parameter_name = value" format
            if '=' not in line:
                logger.warning(f"  Ignoring line {line_num} without '=': {line}")
                continue

            param_name, param_value_str = (part.strip() for part in line.split('=', 1))
            try:
                # Literals only (numbers, strings, tuples, booleans, None)
                param_value = ast.literal_eval(param_value_str)
            except (ValueError, SyntaxError):
                # Bare words are taken as strings, e.g. orientation_mode = depth_first
                param_value = param_value_str

            if param_name not in SynthesisSettings.model_fields:
                logger.warning(f"  Unknown parameter on line {line_num}: {param_name}")
                continue

            params[param_name] = param_value
            logger.debug(f"  Loaded {param_name} = {param_value!r}")

    return params


def apply_parameters(settings: SynthesisSettings, params: Dict[str, Any]) -> SynthesisSettings:
    """Return a validated copy of settings with params overlaid."""
    if not params:
        return settings
    merged = settings.model_dump()
    merged.update(params)
    return SynthesisSettings.model_validate(merged)
