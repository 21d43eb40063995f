"""Per-connection polygon radius computation."""

from .settings import AutoRadiusMode


def connection_radius(
    base_radius: float,
    mode: AutoRadiusMode,
    max_lane_width: float,
    total_profile_width: float
) -> float:
    """
    Distance from a junction center to one connection's boundary point.

    Args:
        base_radius: Node radius (override or configured default)
        mode: Auto-radius mode
        max_lane_width: Widest lane of the connected road's profile
        total_profile_width: Summed lane widths of the connected road's profile

    Returns:
        Radius for this connection
    """
    half_profile = total_profile_width * 0.5

    if mode == AutoRadiusMode.WIDEST_LANE:
        return max_lane_width
    if mode == AutoRadiusMode.HALF_PROFILE:
        return half_profile
    if mode == AutoRadiusMode.WIDEST_LANE_MIN:
        return max(base_radius, max_lane_width)
    if mode == AutoRadiusMode.HALF_PROFILE_MIN:
        return max(base_radius, half_profile)
    return base_radius
