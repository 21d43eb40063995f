"""Half-space trimming of road point sequences against polygon boundaries."""

from typing import Callable, List, Optional, Sequence, TypeVar
from dataclasses import dataclass
import numpy as np

from .geometry import is_nearly_zero, project_onto_axis, safe_normal

T = TypeVar("T")


@dataclass(frozen=True)
class HalfSpace:
    """Region beyond radius along direction, measured from center."""
    center: np.ndarray
    direction: np.ndarray
    radius: float

    def projection(self, position: np.ndarray) -> float:
        return project_onto_axis(position, self.center, self.direction)

    def contains(self, position: np.ndarray) -> bool:
        """True when position lies outside the polygon, on or past the boundary plane."""
        return self.projection(position) >= self.radius

    @property
    def snap_position(self) -> np.ndarray:
        return self.center + self.direction * self.radius


def find_start_crossing(positions: Sequence[np.ndarray], half_space: HalfSpace) -> Optional[int]:
    """
    Outermost index j where the road leaves the polygon when walked from its start.

    Scanned from the far end so an intermediate dip back inside the polygon on
    a curved road does not cut off valid outside points. Returns j such that
    positions[j - 1] is inside and positions[j] is outside, or None.
    """
    for j in range(len(positions) - 1, 0, -1):
        if half_space.contains(positions[j]) and not half_space.contains(positions[j - 1]):
            return j
    return None


def find_end_crossing(positions: Sequence[np.ndarray], half_space: HalfSpace) -> Optional[int]:
    """
    Outermost index j where the road enters the polygon near its end.

    Returns j such that positions[j - 1] is outside and positions[j] is inside, or None.
    """
    for j in range(len(positions) - 1, 0, -1):
        if not half_space.contains(positions[j]) and half_space.contains(positions[j - 1]):
            return j
    return None


def trim_start(
    points: List[T],
    half_space: HalfSpace,
    buffer: float,
    make_point: Callable[[np.ndarray, np.ndarray], T],
    position: Callable[[T], np.ndarray]
) -> Optional[List[T]]:
    """
    Trim the start of a point sequence against a polygon half-space.

    Points before the crossing are dropped and a snap point is inserted at the
    exact boundary, facing the next retained point. Points closer than buffer
    to the snap point are then removed while more than two remain.

    Args:
        points: Road points in travel order
        half_space: Polygon boundary at the road start
        buffer: Clean-up distance around the snap point, 0 disables it
        make_point: Builds a point from (position, forward)
        position: Reads a point's position

    Returns:
        Trimmed points, the input unchanged when it never enters the polygon,
        or None when the whole road lies inside the polygon
    """
    positions = [position(p) for p in points]
    j = find_start_crossing(positions, half_space)

    if j is None:
        if positions and not half_space.contains(positions[0]):
            return None
        return points

    trimmed = points[j:]
    snap = half_space.snap_position
    forward = safe_normal(position(trimmed[0]) - snap)
    if is_nearly_zero(forward):
        forward = half_space.direction
    trimmed.insert(0, make_point(snap, forward))

    buffer_sq = buffer * buffer
    if buffer_sq > 0:
        while len(trimmed) > 2 and float(np.sum((position(trimmed[1]) - position(trimmed[0])) ** 2)) < buffer_sq:
            del trimmed[1]

    return trimmed


def trim_end(
    points: List[T],
    half_space: HalfSpace,
    buffer: float,
    make_point: Callable[[np.ndarray, np.ndarray], T],
    position: Callable[[T], np.ndarray]
) -> Optional[List[T]]:
    """
    Trim the end of a point sequence against a polygon half-space.

    Mirror of trim_start: the snap point is appended, facing away from the
    previous retained point.
    """
    positions = [position(p) for p in points]
    j = find_end_crossing(positions, half_space)

    if j is None:
        if positions and not half_space.contains(positions[-1]):
            return None
        return points

    trimmed = points[:j]
    snap = half_space.snap_position
    forward = safe_normal(snap - position(trimmed[-1]))
    if is_nearly_zero(forward):
        forward = -half_space.direction
    trimmed.append(make_point(snap, forward))

    buffer_sq = buffer * buffer
    if buffer_sq > 0:
        while len(trimmed) > 2 and float(np.sum((position(trimmed[-2]) - position(trimmed[-1])) ** 2)) < buffer_sq:
            del trimmed[-2]

    return trimmed
