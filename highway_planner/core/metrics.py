
import numpy as np
from typing import List, Dict
from .data_structures import SimulationResult


def calculate_motion_profile(history: List[SimulationResult], dt: float) -> Dict[str, np.ndarray]:
    """Speed, longitudinal acceleration and jerk along the driven trace.

    Args:
        history: List of simulation results
        dt: Time between consecutive results [s]

    Returns:
        Dictionary with 'speed', 'accel' and 'jerk' arrays
    """
    speed = np.array([r.ego_state.speed for r in history], dtype=float)
    accel = np.diff(speed) / dt if len(speed) > 1 else np.empty(0)
    jerk = np.diff(accel) / dt if len(accel) > 1 else np.empty(0)
    return {'speed': speed, 'accel': accel, 'jerk': jerk}


def count_lane_changes(history: List[SimulationResult]) -> int:
    """Number of cycles in which the target lane changed."""
    lanes = [r.lane for r in history]
    return sum(1 for a, b in zip(lanes, lanes[1:]) if a != b)


def calculate_aggregate_metrics(history: List[SimulationResult], dt: float) -> Dict[str, float]:
    """Calculate aggregate metrics for the entire simulation."""
    profile = calculate_motion_profile(history, dt)
    speed, accel, jerk = profile['speed'], profile['accel'], profile['jerk']

    # Safety
    gaps = [r.metrics.get('front_gap', float('inf')) for r in history]

    # Timing
    planning_times = [r.planning_time for r in history]

    metrics = {
        "mean_speed": float(np.mean(speed)) if len(speed) else 0.0,
        "max_speed": float(np.max(speed)) if len(speed) else 0.0,
        "max_accel": float(np.max(np.abs(accel))) if len(accel) else 0.0,
        "max_jerk": float(np.max(np.abs(jerk))) if len(jerk) else 0.0,
        "lane_changes": count_lane_changes(history),
        "min_front_gap": min(gaps) if gaps else float('inf'),
        "collision_count": sum(1 for r in history if r.metrics.get('collision', False)),
        "fallback_count": sum(1 for r in history if r.planned_path.fallback),
        "mean_planning_time": float(np.mean(planning_times)) if planning_times else 0.0,
        "max_planning_time": max(planning_times) if planning_times else 0.0,
    }

    return metrics
