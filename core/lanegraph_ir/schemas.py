"""Pydantic models for the cluster input and the compiled lane-graph IR."""

from pydantic import BaseModel, Field
from typing import Literal, Optional, List, Dict, Any


# Input schemas
class LaneDescIR(BaseModel):
    """Single lane of a lane profile."""
    width: float
    direction: Literal["forward", "backward", "none"] = "forward"
    tags: int = 0


class LaneProfileIR(BaseModel):
    """Named, ordered set of lanes."""
    name: str
    lanes: List[LaneDescIR] = Field(default_factory=list)


class ClusterNodeIR(BaseModel):
    """Cluster vertex."""
    id: int
    position: List[float]  # [x, y, z]; z defaults to 0 when only [x, y] is given
    is_break: bool = False  # Explicit break point, terminates chains even at degree 2
    attributes: Dict[str, Any] = Field(default_factory=dict)


class ClusterEdgeIR(BaseModel):
    """Cluster edge. u/v order is the edge's own start/end topology."""
    u: int
    v: int
    attributes: Dict[str, Any] = Field(default_factory=dict)


class ClusterIR(BaseModel):
    """One connected graph instance."""
    cluster_id: str
    nodes: List[ClusterNodeIR]
    edges: List[ClusterEdgeIR]


class ClusterBatchIR(BaseModel):
    """Input file: lane profile registry plus clusters to synthesize."""
    version: str = "0.1.0"
    lane_profiles: List[LaneProfileIR] = Field(default_factory=list)
    clusters: List[ClusterIR] = Field(default_factory=list)


# Output schemas
class ShapePointIR(BaseModel):
    """Compiled zone shape point."""
    position: List[float]
    rotation: List[float]  # Quaternion [x, y, z, w]
    type: Literal["sharp", "bezier", "auto_bezier", "lane_profile"]
    tangent_length: float
    lane_profile: int  # Index into the owning shape's per_point_lane_profiles


class ZoneShapeIR(BaseModel):
    """Compiled road spline or intersection polygon."""
    shape_type: Literal["spline", "polygon"]
    source_node: int  # Polygon center node, or road seed node
    tags: int
    component_tags: List[str]
    lane_profile: Optional[str] = None
    per_point_lane_profiles: List[str] = Field(default_factory=list)
    routing_type: Optional[Literal["bezier", "arcs"]] = None
    points: List[ShapePointIR]


class PathPointIR(BaseModel):
    """Point of an exported path."""
    position: List[float]
    rotation: List[float]
    attributes: Dict[str, List[float]] = Field(default_factory=dict)


class PathIR(BaseModel):
    """Road spline or polygon outline exported as a path."""
    io_index: int
    closed_loop: bool
    geometry: Dict[str, Any]  # GeoJSON-like
    points: List[PathPointIR]


class ClusterResultIR(BaseModel):
    """Synthesis result for one cluster."""
    cluster_id: str
    status: Literal["ok", "empty", "failed"]
    error: Optional[str] = None
    shapes: List[ZoneShapeIR] = Field(default_factory=list)
    road_paths: List[PathIR] = Field(default_factory=list)
    polygon_paths: List[PathIR] = Field(default_factory=list)
    degenerate_roads: List[int] = Field(default_factory=list)  # Seed node ids of skipped roads


class ZoneGraphIR(BaseModel):
    """Canonical output of a synthesis run."""
    version: str
    source_filename: str
    import_timestamp: str
    settings: Dict[str, Any]
    clusters: List[ClusterResultIR]
