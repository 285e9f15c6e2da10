"""Highway planner: one telemetry update in, one path out.

Each cycle runs perception, behavior selection and trajectory synthesis in
that order, and reads and writes the planner context exactly once.
"""

import math
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

from loguru import logger

from ..config import PlannerConfig, validate_config
from ..core.coordinate_converter import FrenetConverter
from ..core.data_structures import (
    CycleResult,
    EgoState,
    PlannerContext,
    TrackedVehicle,
)
from ..core.waypoint_map import WaypointMap, WaypointMapError
from .behavior import decide_behavior
from .perception import perceive_traffic
from .trajectory_synthesizer import TrajectorySynthesizer


class TelemetryError(ValueError):
    """Raised when an inbound telemetry payload cannot be planned on."""
    pass


@dataclass
class Telemetry:
    """Deserialized inbound update for one planning cycle."""
    ego: EgoState
    previous_path_x: List[float] = field(default_factory=list)
    previous_path_y: List[float] = field(default_factory=list)
    end_path_s: float = 0.0
    end_path_d: float = 0.0
    vehicles: List[TrackedVehicle] = field(default_factory=list)

    @property
    def prev_size(self) -> int:
        return min(len(self.previous_path_x), len(self.previous_path_y))

    @classmethod
    def from_dict(cls, payload: Optional[Mapping[str, Any]], yaw_in_degrees: bool = True) -> 'Telemetry':
        """Parse a telemetry payload.

        Args:
            payload: Mapping with x, y, s, d, yaw, speed, previous_path_x,
                previous_path_y, end_path_s, end_path_d and either
                ``vehicles`` or ``sensor_fusion``
            yaw_in_degrees: Convert yaw from degrees to radians

        Raises:
            TelemetryError: If the payload is absent or malformed
        """
        if not payload:
            raise TelemetryError("Telemetry payload is empty")
        if not isinstance(payload, Mapping):
            raise TelemetryError(f"Telemetry payload must be a mapping, got {type(payload).__name__}")

        try:
            yaw = float(payload['yaw'])
            if yaw_in_degrees:
                yaw = math.radians(yaw)
            ego = EgoState(
                x=float(payload['x']),
                y=float(payload['y']),
                yaw=yaw,
                speed=float(payload['speed']),
                s=float(payload['s']),
                d=float(payload['d']),
            )
            previous_path_x = [float(v) for v in payload.get('previous_path_x') or []]
            previous_path_y = [float(v) for v in payload.get('previous_path_y') or []]
            end_path_s = float(payload.get('end_path_s', ego.s))
            end_path_d = float(payload.get('end_path_d', ego.d))
            records = payload.get('vehicles', payload.get('sensor_fusion')) or []
            vehicles = [TrackedVehicle.from_record(r) for r in records]
        except (KeyError, TypeError, ValueError, IndexError) as e:
            raise TelemetryError(f"Malformed telemetry payload: {e!r}") from e

        if len(previous_path_x) != len(previous_path_y):
            raise TelemetryError(
                f"previous_path_x ({len(previous_path_x)}) and previous_path_y "
                f"({len(previous_path_y)}) must have the same length"
            )
        values = [ego.x, ego.y, ego.yaw, ego.speed, ego.s, ego.d]
        if not all(math.isfinite(v) for v in values):
            raise TelemetryError("Telemetry pose contains non-finite values")

        return cls(
            ego=ego,
            previous_path_x=previous_path_x,
            previous_path_y=previous_path_y,
            end_path_s=end_path_s,
            end_path_d=end_path_d,
            vehicles=vehicles,
        )


class HighwayPlanner:
    """Behavior and trajectory planner for a multi-lane highway.

    Args:
        waypoint_map: Track centerline
        config: Planner configuration
        context: Long-lived lane/speed state; a fresh one is created if omitted
    """

    def __init__(
        self,
        waypoint_map: WaypointMap,
        config: Optional[PlannerConfig] = None,
        context: Optional[PlannerContext] = None
    ):
        self.config = config or PlannerConfig()
        validate_config(self.config)
        if waypoint_map is None or len(waypoint_map) < 2:
            logger.error("Highway planner needs a waypoint map with at least 2 waypoints")
            raise WaypointMapError("A waypoint map with at least 2 waypoints is required")

        self.waypoint_map = waypoint_map
        self.converter = FrenetConverter(waypoint_map)
        self.synthesizer = TrajectorySynthesizer(self.converter, self.config)
        if context is None:
            context = PlannerContext(
                lane=self.config.default_lane,
                default_lane=self.config.default_lane
            )
        self.context = context
        self.cycle_count = 0

        logger.info(
            f"Highway planner initialized with horizon={self.config.horizon}, "
            f"max_speed={self.config.max_speed}m/s, lanes={self.config.lane_count}, "
            f"cycle_interval={self.config.cycle_interval}s"
        )

    def reset(self):
        """Drop the long-lived state, as after a process restart."""
        self.context.reset()
        self.cycle_count = 0

    def plan(self, telemetry: Telemetry) -> CycleResult:
        """Run one planning cycle.

        Args:
            telemetry: Parsed inbound update

        Returns:
            Cycle result with the emitted path and the updated targets
        """
        t_start = time.perf_counter()
        prev_size = telemetry.prev_size
        ego_s = telemetry.end_path_s if prev_size > 0 else telemetry.ego.s

        occupancy = perceive_traffic(
            telemetry.vehicles,
            ego_s=ego_s,
            lane=self.context.lane,
            prev_size=prev_size,
            config=self.config,
            max_s=self.waypoint_map.max_s,
        )

        behavior = decide_behavior(
            occupancy, self.context.lane, self.context.ref_speed, self.config
        )
        self.context.lane = behavior.lane
        self.context.ref_speed = behavior.ref_speed

        path = self.synthesizer.synthesize(
            telemetry.ego,
            telemetry.previous_path_x,
            telemetry.previous_path_y,
            anchor_s=ego_s,
            lane=behavior.lane,
            ref_speed=behavior.ref_speed,
        )

        planning_time = time.perf_counter() - t_start
        self.cycle_count += 1

        logger.debug(
            f"Cycle {self.cycle_count}: {behavior.decision.name}, lane={behavior.lane}, "
            f"ref_speed={behavior.ref_speed:.2f}m/s, reused={path.n_reused}, "
            f"t={planning_time * 1000:.2f}ms"
        )
        if planning_time > self.config.cycle_interval:
            logger.warning(
                f"Cycle {self.cycle_count} took {planning_time * 1000:.1f}ms, "
                f"longer than the {self.config.cycle_interval * 1000:.0f}ms interval"
            )

        return CycleResult(
            path=path,
            decision=behavior.decision,
            occupancy=occupancy,
            lane=behavior.lane,
            ref_speed=behavior.ref_speed,
            planning_time=planning_time,
            anchors=self.synthesizer.last_anchors,
        )

    def handle_message(self, payload: Optional[Mapping[str, Any]]) -> Dict[str, List[float]]:
        """Plan on a raw telemetry payload.

        Returns the control message ``{"next_x": [...], "next_y": [...]}``, or
        an empty mapping when the payload carries no usable directive.
        """
        try:
            telemetry = Telemetry.from_dict(payload, self.config.telemetry_yaw_in_degrees)
        except TelemetryError as e:
            logger.warning(f"No planning this cycle: {e}")
            return {}

        return self.plan(telemetry).path.to_message()
