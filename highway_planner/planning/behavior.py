"""Per-cycle behavior selection.

The decision is a flat function of the current perception, lane and
reference speed; nothing is remembered between cycles apart from the lane and
speed it returns.
"""

from dataclasses import dataclass

from ..config import PlannerConfig
from ..core.data_structures import BehaviorDecision, LaneOccupancy


@dataclass
class BehaviorOutput:
    """Decision together with the updated lane and speed targets."""
    decision: BehaviorDecision
    lane: int
    ref_speed: float


def select_behavior(
    occupancy: LaneOccupancy,
    lane: int,
    ref_speed: float,
    lane_count: int = 3
) -> BehaviorDecision:
    """Choose a behavior from lane occupancy."""
    if not occupancy.front_blocked:
        return BehaviorDecision.ACCELERATE
    if lane > 0 and not occupancy.left_blocked:
        return BehaviorDecision.CHANGE_LEFT
    if lane < lane_count - 1 and not occupancy.right_blocked:
        return BehaviorDecision.CHANGE_RIGHT
    if ref_speed > occupancy.front_vehicle_speed:
        return BehaviorDecision.DECELERATE
    return BehaviorDecision.HOLD


def decide_behavior(
    occupancy: LaneOccupancy,
    lane: int,
    ref_speed: float,
    config: PlannerConfig
) -> BehaviorOutput:
    """Choose a behavior and apply it to the lane and speed targets.

    Args:
        occupancy: Perceived lane occupancy
        lane: Current target lane
        ref_speed: Current reference speed [m/s]
        config: Planner configuration

    Returns:
        BehaviorOutput with the new lane in [0, lane_count) and the new
        reference speed in [0, max_speed]
    """
    decision = select_behavior(occupancy, lane, ref_speed, config.lane_count)

    if decision == BehaviorDecision.CHANGE_LEFT:
        lane -= 1
    elif decision == BehaviorDecision.CHANGE_RIGHT:
        lane += 1
    elif decision == BehaviorDecision.ACCELERATE:
        ref_speed = min(ref_speed + config.speed_increment, config.max_speed)
    elif decision == BehaviorDecision.DECELERATE:
        ref_speed = max(ref_speed - config.speed_decrement, 0.0)

    return BehaviorOutput(decision=decision, lane=lane, ref_speed=ref_speed)
