"""Traffic perception: reduce sensor fusion snapshots to lane occupancy flags."""

from typing import Iterable, Optional

from loguru import logger

from ..config import PlannerConfig
from ..core.coordinate_converter import lane_of
from ..core.data_structures import LaneOccupancy, TrackedVehicle


def perceive_traffic(
    vehicles: Iterable[TrackedVehicle],
    ego_s: float,
    lane: int,
    prev_size: int,
    config: PlannerConfig,
    max_s: Optional[float] = None
) -> LaneOccupancy:
    """Compute occupancy of the ego lane and its neighbours.

    Every vehicle is extrapolated at constant speed to the time the ego
    vehicle reaches the end of its unconsumed path, then compared against
    ``ego_s`` (the s at that same point).

    Args:
        vehicles: Sensor fusion snapshot
        ego_s: Ego evaluation arc length [m]
        lane: Current target lane of the ego vehicle
        prev_size: Number of unconsumed path points
        config: Planner configuration
        max_s: Track length; when given, gaps are measured across the wrap point

    Returns:
        Lane occupancy for this cycle
    """
    occupancy = LaneOccupancy()
    horizon_t = prev_size * config.cycle_interval
    front = config.front_detection_distance
    back = config.rear_detection_distance

    for vehicle in vehicles:
        vehicle_lane = lane_of(vehicle.d, config.lane_width, config.lane_count)
        if vehicle_lane is None:
            logger.debug(f"Vehicle {vehicle.id} at d={vehicle.d:.2f}m is outside every lane, ignored")
            continue

        speed = vehicle.speed
        gap = vehicle.s + horizon_t * speed - ego_s
        if max_s is not None:
            half = max_s / 2.0
            gap = (gap + half) % max_s - half

        if vehicle_lane == lane:
            if 0 < gap < front:
                occupancy.front_blocked = True
                occupancy.front_vehicle_speed = speed
        elif vehicle_lane == lane - 1:
            if -back < gap < front:
                occupancy.left_blocked = True
        elif vehicle_lane == lane + 1:
            if -back < gap < front:
                occupancy.right_blocked = True

    return occupancy
