"""Vector and orientation-frame utilities."""

import numpy as np
from scipy.spatial.transform import Rotation
from typing import Sequence

# Axis names follow the authoring tool's convention: X forward, Y right, Z up.
FORWARD = np.array([1.0, 0.0, 0.0])
RIGHT = np.array([0.0, 1.0, 0.0])
LEFT = -RIGHT
UP = np.array([0.0, 0.0, 1.0])

SMALL_NUMBER = 1e-8


def as_vector(values: Sequence[float]) -> np.ndarray:
    """Convert [x, y] or [x, y, z] to a float 3-vector."""
    v = np.zeros(3)
    arr = np.asarray(values, dtype=float)
    v[:min(3, arr.shape[0])] = arr[:3]
    return v


def safe_normal(v: np.ndarray, tolerance: float = SMALL_NUMBER) -> np.ndarray:
    """Normalized copy of v, or the zero vector if v is too short to normalize."""
    length_sq = float(np.dot(v, v))
    if length_sq < tolerance:
        return np.zeros(3)
    return v / np.sqrt(length_sq)


def is_nearly_zero(v: np.ndarray, tolerance: float = 1e-4) -> bool:
    return bool(np.all(np.abs(v) <= tolerance))


def rotation_from_forward_and_up(forward: np.ndarray, up: np.ndarray = UP) -> Rotation:
    """
    Build an orientation frame whose X axis is forward and whose Z axis is as close to up as possible.

    A zero forward vector yields the identity frame. When forward is parallel to up,
    the world forward axis is used as the secondary reference instead.
    """
    x_axis = safe_normal(np.asarray(forward, dtype=float))
    if not x_axis.any():
        return Rotation.identity()

    y_axis = safe_normal(np.cross(np.asarray(up, dtype=float), x_axis))
    if not y_axis.any():
        y_axis = safe_normal(np.cross(FORWARD, x_axis))

    z_axis = np.cross(x_axis, y_axis)
    return Rotation.from_matrix(np.column_stack([x_axis, y_axis, z_axis]))


def signed_angle(a: np.ndarray, b: np.ndarray, up: np.ndarray = UP) -> float:
    """
    Angle in radians between a and b, negative when cross(a, b) points away from up.

    Both vectors are expected to be normalized.
    """
    radians = float(np.arccos(np.clip(np.dot(a, b), -1.0, 1.0)))
    return -radians if float(np.dot(np.cross(a, b), up)) < 0 else radians


def project_onto_axis(point: np.ndarray, origin: np.ndarray, axis: np.ndarray) -> float:
    """Signed distance of point along axis, measured from origin."""
    return float(np.dot(point - origin, axis))
