"""Tests for run metrics."""

import sys
from pathlib import Path

import numpy as np
import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from highway_planner.core.data_structures import (
    BehaviorDecision,
    EgoState,
    LaneOccupancy,
    PlannedPath,
    SimulationResult,
)
from highway_planner.core.metrics import (
    calculate_aggregate_metrics,
    calculate_motion_profile,
    count_lane_changes,
)


def make_history(speeds, lanes, gaps=None, collisions=None, fallbacks=None):
    n = len(speeds)
    gaps = gaps or [float('inf')] * n
    collisions = collisions or [False] * n
    fallbacks = fallbacks or [False] * n
    history = []
    for i in range(n):
        history.append(SimulationResult(
            time=0.1 * (i + 1),
            ego_state=EgoState(x=float(i), y=0.0, yaw=0.0, speed=speeds[i]),
            decision=BehaviorDecision.ACCELERATE,
            lane=lanes[i],
            ref_speed=speeds[i],
            occupancy=LaneOccupancy(),
            planned_path=PlannedPath(x=[0.0], y=[0.0], fallback=fallbacks[i]),
            planning_time=0.001 * (i + 1),
            metrics={'front_gap': gaps[i], 'collision': collisions[i]},
        ))
    return history


def test_motion_profile():
    history = make_history([0.0, 1.0, 3.0, 6.0], [1, 1, 1, 1])
    profile = calculate_motion_profile(history, dt=0.5)
    np.testing.assert_allclose(profile['speed'], [0.0, 1.0, 3.0, 6.0])
    np.testing.assert_allclose(profile['accel'], [2.0, 4.0, 6.0])
    np.testing.assert_allclose(profile['jerk'], [4.0, 4.0])


def test_motion_profile_single_sample():
    profile = calculate_motion_profile(make_history([5.0], [1]), dt=0.1)
    assert len(profile['accel']) == 0
    assert len(profile['jerk']) == 0


def test_count_lane_changes():
    history = make_history([1.0] * 6, [1, 1, 0, 0, 1, 2])
    assert count_lane_changes(history) == 3


def test_aggregate_metrics():
    history = make_history(
        [0.0, 1.0, 2.0, 2.0],
        [1, 0, 0, 0],
        gaps=[float('inf'), 25.0, 12.5, 40.0],
        collisions=[False, False, True, False],
        fallbacks=[False, True, False, False],
    )
    metrics = calculate_aggregate_metrics(history, dt=0.1)

    assert metrics['mean_speed'] == pytest.approx(1.25)
    assert metrics['max_speed'] == pytest.approx(2.0)
    assert metrics['max_accel'] == pytest.approx(10.0)
    assert metrics['max_jerk'] == pytest.approx(100.0)
    assert metrics['lane_changes'] == 1
    assert metrics['min_front_gap'] == pytest.approx(12.5)
    assert metrics['collision_count'] == 1
    assert metrics['fallback_count'] == 1
    assert metrics['mean_planning_time'] == pytest.approx(0.0025)
    assert metrics['max_planning_time'] == pytest.approx(0.004)


def test_aggregate_metrics_empty_history():
    metrics = calculate_aggregate_metrics([], dt=0.1)
    assert metrics['mean_speed'] == 0.0
    assert metrics['lane_changes'] == 0
    assert metrics['min_front_gap'] == float('inf')


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
