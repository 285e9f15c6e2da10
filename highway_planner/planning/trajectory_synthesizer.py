"""Spline based trajectory synthesis toward a target lane and speed.

New points are appended to the unconsumed tail of the previous path. The
curve is fitted in a local frame anchored at the end of that tail, so it stays
a single-valued function of local x even on strongly curving road.
"""

import math
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

import numpy as np
from loguru import logger

from ..config import PlannerConfig
from ..core.coordinate_converter import FrenetConverter, lane_center
from ..core.data_structures import EgoState, PlannedPath
from .cubic_spline import CubicSpline1D

# Below this spacing two path points count as the same point [m]
MIN_POINT_SPACING = 1e-6


@dataclass
class ReferenceFrame:
    """Local frame used for curve fitting.

    Attributes:
        x, y: Origin in map frame [m]
        yaw: Orientation of the local x-axis [rad]
        prev_x, prev_y: Point just behind the origin, used as heading anchor
    """
    x: float
    y: float
    yaw: float
    prev_x: float
    prev_y: float

    def to_local(self, xs: np.ndarray, ys: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        """Map frame -> local frame."""
        shift_x = np.asarray(xs, dtype=float) - self.x
        shift_y = np.asarray(ys, dtype=float) - self.y
        cos_yaw = math.cos(-self.yaw)
        sin_yaw = math.sin(-self.yaw)
        return (shift_x * cos_yaw - shift_y * sin_yaw,
                shift_x * sin_yaw + shift_y * cos_yaw)

    def to_map(self, xs: np.ndarray, ys: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        """Local frame -> map frame."""
        xs = np.asarray(xs, dtype=float)
        ys = np.asarray(ys, dtype=float)
        cos_yaw = math.cos(self.yaw)
        sin_yaw = math.sin(self.yaw)
        return (xs * cos_yaw - ys * sin_yaw + self.x,
                xs * sin_yaw + ys * cos_yaw + self.y)


class TrajectorySynthesizer:
    """Builds the emitted path for one planning cycle.

    Args:
        converter: Frenet transform of the track
        config: Planner configuration
    """

    def __init__(self, converter: FrenetConverter, config: PlannerConfig):
        self.converter = converter
        self.config = config
        self.last_anchors: Optional[np.ndarray] = None

    def reference_frame(
        self,
        ego: EgoState,
        previous_path_x: Sequence[float],
        previous_path_y: Sequence[float]
    ) -> ReferenceFrame:
        """Anchor the local frame at the end of the unconsumed path.

        With fewer than two unconsumed points the current pose is used and a
        heading anchor is back-projected one meter behind it.
        """
        prev_size = min(len(previous_path_x), len(previous_path_y))

        if prev_size >= 2:
            ref_x = float(previous_path_x[prev_size - 1])
            ref_y = float(previous_path_y[prev_size - 1])
            ref_x_prev = float(previous_path_x[prev_size - 2])
            ref_y_prev = float(previous_path_y[prev_size - 2])
            if math.hypot(ref_x - ref_x_prev, ref_y - ref_y_prev) > MIN_POINT_SPACING:
                ref_yaw = math.atan2(ref_y - ref_y_prev, ref_x - ref_x_prev)
                return ReferenceFrame(ref_x, ref_y, ref_yaw, ref_x_prev, ref_y_prev)
            # Stationary tail: its heading is undefined, use the vehicle yaw
            return ReferenceFrame(
                ref_x, ref_y, ego.yaw,
                ref_x - math.cos(ego.yaw), ref_y - math.sin(ego.yaw)
            )

        return ReferenceFrame(
            ego.x, ego.y, ego.yaw,
            ego.x - math.cos(ego.yaw), ego.y - math.sin(ego.yaw)
        )

    def build_anchors(self, frame: ReferenceFrame, anchor_s: float, lane: int) -> np.ndarray:
        """Anchor points in map frame [n, 2]: two heading anchors then the forward ones."""
        d = lane_center(lane, self.config.lane_width)
        points = [(frame.prev_x, frame.prev_y), (frame.x, frame.y)]
        for offset in self.config.anchor_offsets:
            points.append(self.converter.frenet_to_cartesian(anchor_s + offset, d))
        return np.array(points, dtype=float)

    def synthesize(
        self,
        ego: EgoState,
        previous_path_x: Sequence[float],
        previous_path_y: Sequence[float],
        anchor_s: float,
        lane: int,
        ref_speed: float
    ) -> PlannedPath:
        """Build the path for this cycle.

        Args:
            ego: Current ego pose
            previous_path_x, previous_path_y: Unconsumed tail of the last path
            anchor_s: Arc length the forward anchors are measured from [m]
            lane: Target lane
            ref_speed: Reference speed [m/s]

        Returns:
            Path of exactly ``horizon`` points starting with the unconsumed tail
        """
        horizon = self.config.horizon
        prev_size = min(len(previous_path_x), len(previous_path_y))
        if prev_size > horizon:
            logger.warning(f"Unconsumed path has {prev_size} points, keeping the first {horizon}")
            prev_size = horizon

        path = PlannedPath(
            x=[float(v) for v in previous_path_x[:prev_size]],
            y=[float(v) for v in previous_path_y[:prev_size]],
            n_reused=prev_size,
        )
        n_new = horizon - prev_size
        if n_new == 0:
            self.last_anchors = None
            return path

        frame = self.reference_frame(ego, previous_path_x[:prev_size], previous_path_y[:prev_size])
        anchors = self.build_anchors(frame, anchor_s, lane)
        self.last_anchors = anchors

        local_x, local_y = self._sample_spline(frame, anchors, ref_speed, n_new)
        if local_x is None:
            logger.warning(
                f"Degenerate anchors for lane {lane}, continuing in a straight line"
            )
            step = self.config.cycle_interval * max(ref_speed, 0.0)
            local_x = step * np.arange(1, n_new + 1)
            local_y = np.zeros(n_new)
            path.fallback = True

        map_x, map_y = frame.to_map(local_x, local_y)
        path.x.extend(map_x.tolist())
        path.y.extend(map_y.tolist())
        return path

    def _sample_spline(
        self,
        frame: ReferenceFrame,
        anchors: np.ndarray,
        ref_speed: float,
        n_new: int
    ) -> Tuple[Optional[np.ndarray], Optional[np.ndarray]]:
        """Sample ``n_new`` local points spaced for travel at ``ref_speed``.

        Returns (None, None) when no valid spline can be fitted.
        """
        pts_x, pts_y = frame.to_local(anchors[:, 0], anchors[:, 1])
        if np.any(np.diff(pts_x) <= 0):
            return None, None

        spline = CubicSpline1D(pts_x, pts_y)

        target_x = self.config.lookahead_x
        target_y = spline(target_x)
        if target_y is None:
            return None, None
        target_dist = math.hypot(target_x, target_y)

        # N points cover target_dist at ref_speed; step = target_x / N
        if ref_speed > 0:
            step = target_x * self.config.cycle_interval * ref_speed / target_dist
        else:
            step = 0.0

        local_x = step * np.arange(1, n_new + 1)
        local_y = spline(local_x)
        if not np.all(np.isfinite(local_y)):
            return None, None
        return local_x, local_y
