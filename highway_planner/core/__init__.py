"""Core module for fundamental data structures and road geometry."""

from .data_structures import (
    BehaviorDecision,
    EgoState,
    TrackedVehicle,
    LaneOccupancy,
    PlannerContext,
    PlannedPath,
    CycleResult,
    SimulationResult,
)
from .waypoint_map import (
    WaypointMap,
    WaypointMapError,
    load_waypoint_map,
    make_circular_track,
    make_straight_track,
)
from .coordinate_converter import (
    FrenetConverter,
    cartesian_to_frenet,
    closest_waypoint,
    frenet_to_cartesian,
    is_in_lane,
    lane_center,
    lane_of,
    next_waypoint,
    normalize_angle,
)

__all__ = [
    'BehaviorDecision',
    'EgoState',
    'TrackedVehicle',
    'LaneOccupancy',
    'PlannerContext',
    'PlannedPath',
    'CycleResult',
    'SimulationResult',
    'WaypointMap',
    'WaypointMapError',
    'load_waypoint_map',
    'make_circular_track',
    'make_straight_track',
    'FrenetConverter',
    'cartesian_to_frenet',
    'closest_waypoint',
    'frenet_to_cartesian',
    'is_in_lane',
    'lane_center',
    'lane_of',
    'next_waypoint',
    'normalize_angle',
]
