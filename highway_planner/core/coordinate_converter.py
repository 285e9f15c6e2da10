"""Coordinate conversion between Cartesian map coordinates and the Frenet frame.

The Frenet frame here is defined by the piecewise linear track centerline of a
``WaypointMap``:
- s: arc length along the centerline
- d: lateral offset, positive to the right of the direction of travel
"""

import math
from typing import Optional, Tuple, Union

import numpy as np
from loguru import logger

from .waypoint_map import WaypointMap


def normalize_angle(angle: Union[float, np.ndarray]) -> Union[float, np.ndarray]:
    """Normalize angle to [-pi, pi] range.

    Args:
        angle: Input angle in radians

    Returns:
        Normalized angle in [-pi, pi]
    """
    two_pi = 2.0 * np.pi
    n = np.round(angle / two_pi)
    a = angle - n * two_pi

    if np.isscalar(a):
        if abs(a + np.pi) < 1e-9 and angle > 0:
            return -np.pi
        return a

    mask = (np.abs(a + np.pi) < 1e-9) & (angle > 0)
    if np.any(mask):
        a[mask] = -np.pi
    return a


def lane_center(lane: int, lane_width: float = 4.0) -> float:
    """Lateral offset of a lane center [m]."""
    return lane_width * (lane + 0.5)


def is_in_lane(d: float, lane: int, lane_width: float = 4.0) -> bool:
    """Whether ``d`` lies strictly inside the band of ``lane``."""
    half = lane_width / 2.0
    center = lane_center(lane, lane_width)
    return center - half < d < center + half


def lane_of(d: float, lane_width: float = 4.0, lane_count: int = 3) -> Optional[int]:
    """Lane index containing ``d``, or None when outside every lane band."""
    for lane in range(lane_count):
        if is_in_lane(d, lane, lane_width):
            return lane
    return None


def closest_waypoint(wmap: WaypointMap, x: float, y: float) -> int:
    """Index of the nearest waypoint by Euclidean distance (first minimum on ties)."""
    dist = np.hypot(wmap.x - x, wmap.y - y)
    return int(np.argmin(dist))


def next_waypoint(wmap: WaypointMap, x: float, y: float, theta: float) -> int:
    """Index of the first waypoint ahead of a pose.

    The closest waypoint is advanced by one when it lies more than 45 degrees
    off the heading ``theta``, i.e. behind the vehicle.
    """
    closest = closest_waypoint(wmap, x, y)
    heading = math.atan2(wmap.y[closest] - y, wmap.x[closest] - x)
    angle = abs(normalize_angle(theta - heading))
    if angle > np.pi / 4:
        closest = (closest + 1) % len(wmap)
    return closest


def cartesian_to_frenet(wmap: WaypointMap, x: float, y: float, theta: float) -> Tuple[float, float]:
    """Convert a Cartesian pose to Frenet (s, d).

    The offset from the waypoint preceding ``next_waypoint`` is projected onto
    that segment. The lateral sign comes from the cross product between the
    segment direction and the projection residual, so it does not depend on
    where the track sits in map coordinates. s is the table arc length of that
    waypoint plus the signed projection, which makes the result the exact
    inverse of ``frenet_to_cartesian`` within a segment.

    Args:
        wmap: Waypoint map
        x, y: Position [m]
        theta: Heading [rad]

    Returns:
        (s, d) with s in [0, max_s)
    """
    next_wp = next_waypoint(wmap, x, y, theta)
    prev_wp = next_wp - 1 if next_wp > 0 else len(wmap) - 1

    n_x = wmap.x[next_wp] - wmap.x[prev_wp]
    n_y = wmap.y[next_wp] - wmap.y[prev_wp]
    x_x = x - wmap.x[prev_wp]
    x_y = y - wmap.y[prev_wp]

    seg_len_sq = n_x * n_x + n_y * n_y
    proj_norm = (x_x * n_x + x_y * n_y) / seg_len_sq
    proj_x = proj_norm * n_x
    proj_y = proj_norm * n_y

    res_x = x_x - proj_x
    res_y = x_y - proj_y
    d = math.hypot(res_x, res_y)

    # Residual to the left of travel gives negative d
    cross = n_x * res_y - n_y * res_x
    if cross > 0:
        d = -d

    s = wmap.s[prev_wp] + proj_norm * math.sqrt(seg_len_sq)
    return float(wmap.normalize_s(s)), float(d)


def frenet_to_cartesian(wmap: WaypointMap, s: float, d: float) -> Tuple[float, float]:
    """Convert Frenet (s, d) to Cartesian (x, y).

    Out of range s is wrapped into [0, max_s) before the segment lookup.
    """
    s = wmap.normalize_s(s)
    n = len(wmap)

    prev_wp = int(np.searchsorted(wmap.s, s, side='right')) - 1
    if prev_wp < 0:
        # Before the first waypoint: still on the closing segment
        prev_wp = n - 1
        seg_s = s + wmap.max_s - wmap.s[prev_wp]
    else:
        seg_s = s - wmap.s[prev_wp]
    wp2 = (prev_wp + 1) % n

    heading = math.atan2(wmap.y[wp2] - wmap.y[prev_wp], wmap.x[wp2] - wmap.x[prev_wp])
    seg_x = wmap.x[prev_wp] + seg_s * math.cos(heading)
    seg_y = wmap.y[prev_wp] + seg_s * math.sin(heading)

    perp_heading = heading - np.pi / 2
    return (float(seg_x + d * math.cos(perp_heading)),
            float(seg_y + d * math.sin(perp_heading)))


class FrenetConverter:
    """Frenet transform bound to one waypoint map.

    Args:
        waypoint_map: Map defining the reference centerline
    """

    def __init__(self, waypoint_map: WaypointMap):
        self.waypoint_map = waypoint_map
        logger.info("Frenet converter initialized with waypoint map")

    @property
    def max_s(self) -> float:
        return self.waypoint_map.max_s

    def closest_waypoint(self, x: float, y: float) -> int:
        return closest_waypoint(self.waypoint_map, x, y)

    def next_waypoint(self, x: float, y: float, theta: float) -> int:
        return next_waypoint(self.waypoint_map, x, y, theta)

    def cartesian_to_frenet(self, x: float, y: float, theta: float) -> Tuple[float, float]:
        return cartesian_to_frenet(self.waypoint_map, x, y, theta)

    def frenet_to_cartesian(self, s: float, d: float) -> Tuple[float, float]:
        return frenet_to_cartesian(self.waypoint_map, s, d)

    def s_distance(self, s_from: float, s_to: float) -> float:
        """Signed arc length from ``s_from`` to ``s_to`` across the wrap point.

        Result lies in [-max_s/2, max_s/2).
        """
        half = self.max_s / 2.0
        return (s_to - s_from + half) % self.max_s - half
