"""Core data structures for the highway path planner.

This module defines the per-cycle and long-lived data structures shared by
perception, behavior selection and trajectory synthesis.
"""

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Optional, List, Dict
import math

import numpy as np


class BehaviorDecision(Enum):
    """Behavior chosen for one planning cycle."""
    HOLD = auto()
    ACCELERATE = auto()
    DECELERATE = auto()
    CHANGE_LEFT = auto()
    CHANGE_RIGHT = auto()


@dataclass
class EgoState:
    """Instantaneous pose of the ego vehicle.

    Attributes:
        x: X coordinate in map frame [m]
        y: Y coordinate in map frame [m]
        yaw: Heading angle [rad]
        speed: Speed [m/s]
        s: Longitudinal Frenet coordinate [m]
        d: Lateral Frenet coordinate [m]
    """
    x: float
    y: float
    yaw: float
    speed: float
    s: float = 0.0
    d: float = 0.0

    def to_array(self) -> np.ndarray:
        """Convert to numpy array [x, y, yaw, speed, s, d]."""
        return np.array([self.x, self.y, self.yaw, self.speed, self.s, self.d])


@dataclass
class TrackedVehicle:
    """Snapshot of one nearby vehicle reported by sensor fusion.

    No identity is tracked across cycles; each snapshot stands alone.
    """
    id: int
    x: float
    y: float
    vx: float
    vy: float
    s: float
    d: float

    @property
    def speed(self) -> float:
        """Speed magnitude [m/s]."""
        return math.hypot(self.vx, self.vy)

    @classmethod
    def from_record(cls, record) -> 'TrackedVehicle':
        """Create from a dict record or a positional row [id, x, y, vx, vy, s, d]."""
        if isinstance(record, dict):
            return cls(
                id=int(record['id']),
                x=float(record['x']),
                y=float(record['y']),
                vx=float(record['vx']),
                vy=float(record['vy']),
                s=float(record['s']),
                d=float(record['d']),
            )
        if len(record) < 7:
            raise ValueError(f"Vehicle row must have 7 fields, got {len(record)}")
        return cls(
            id=int(record[0]),
            x=float(record[1]),
            y=float(record[2]),
            vx=float(record[3]),
            vy=float(record[4]),
            s=float(record[5]),
            d=float(record[6]),
        )


@dataclass
class LaneOccupancy:
    """Per-cycle occupancy signals around the ego vehicle."""
    front_blocked: bool = False
    left_blocked: bool = False
    right_blocked: bool = False
    front_vehicle_speed: float = 0.0


@dataclass
class PlannerContext:
    """Long-lived planner state carried from one cycle to the next.

    Attributes:
        lane: Target lane index
        ref_speed: Reference speed [m/s]
    """
    lane: int = 1
    ref_speed: float = 0.0
    default_lane: int = 1

    def reset(self):
        """Return to the startup state."""
        self.lane = self.default_lane
        self.ref_speed = 0.0


@dataclass
class PlannedPath:
    """Ordered path points emitted for the downstream tracker."""
    x: List[float] = field(default_factory=list)
    y: List[float] = field(default_factory=list)
    n_reused: int = 0
    fallback: bool = False

    def __len__(self) -> int:
        return min(len(self.x), len(self.y))

    def to_message(self) -> Dict[str, List[float]]:
        """Outbound control message."""
        return {'next_x': list(self.x), 'next_y': list(self.y)}

    def to_array(self) -> np.ndarray:
        """Points as array [n, 2]."""
        if len(self) == 0:
            return np.empty((0, 2))
        return np.column_stack([self.x[:len(self)], self.y[:len(self)]])


@dataclass
class CycleResult:
    """Outcome of one planning cycle."""
    path: PlannedPath
    decision: BehaviorDecision
    occupancy: LaneOccupancy
    lane: int
    ref_speed: float
    planning_time: float = 0.0
    anchors: Optional[np.ndarray] = None


@dataclass
class SimulationResult:
    """Results from one closed-loop simulation step.

    Attributes:
        time: Simulation time after the step [s]
        ego_state: Ego pose after consuming path points
        decision: Behavior chosen this cycle
        lane: Target lane after the cycle
        ref_speed: Reference speed after the cycle [m/s]
        occupancy: Perceived lane occupancy
        planned_path: Path emitted this cycle
        vehicle_positions: Traffic positions [n_vehicles, 2]
        planning_time: Wall time spent planning [s]
        metrics: Per-step metrics ('front_gap', 'collision')
    """
    time: float
    ego_state: EgoState
    decision: BehaviorDecision
    lane: int
    ref_speed: float
    occupancy: LaneOccupancy
    planned_path: PlannedPath
    vehicle_positions: np.ndarray = field(default_factory=lambda: np.empty((0, 2)))
    planning_time: float = 0.0
    metrics: dict = field(default_factory=dict)
