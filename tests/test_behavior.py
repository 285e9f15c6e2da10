"""Tests for behavior selection."""

import sys
from pathlib import Path

import numpy as np
import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from highway_planner.config import PlannerConfig
from highway_planner.core.data_structures import BehaviorDecision, LaneOccupancy
from highway_planner.planning.behavior import decide_behavior, select_behavior


@pytest.fixture
def config():
    return PlannerConfig()


def test_clear_road_accelerates(config):
    out = decide_behavior(LaneOccupancy(), lane=1, ref_speed=0.0, config=config)
    assert out.decision == BehaviorDecision.ACCELERATE
    assert out.lane == 1
    assert out.ref_speed == pytest.approx(config.speed_increment)
    assert out.ref_speed == pytest.approx(0.1)


def test_accelerate_clamped_at_max_speed(config):
    out = decide_behavior(LaneOccupancy(), 1, config.max_speed - 0.01, config)
    assert out.ref_speed == config.max_speed
    out = decide_behavior(LaneOccupancy(), 1, config.max_speed, config)
    assert out.decision == BehaviorDecision.ACCELERATE
    assert out.ref_speed == config.max_speed


def test_blocked_front_prefers_left(config):
    occ = LaneOccupancy(front_blocked=True, front_vehicle_speed=10.0)
    out = decide_behavior(occ, 1, 20.0, config)
    assert out.decision == BehaviorDecision.CHANGE_LEFT
    assert out.lane == 0
    assert out.ref_speed == 20.0


def test_left_blocked_changes_right(config):
    occ = LaneOccupancy(front_blocked=True, left_blocked=True, front_vehicle_speed=10.0)
    out = decide_behavior(occ, 1, 20.0, config)
    assert out.decision == BehaviorDecision.CHANGE_RIGHT
    assert out.lane == 2
    assert out.ref_speed == 20.0


def test_leftmost_lane_cannot_change_left(config):
    occ = LaneOccupancy(front_blocked=True, front_vehicle_speed=10.0)
    out = decide_behavior(occ, 0, 20.0, config)
    assert out.decision == BehaviorDecision.CHANGE_RIGHT
    assert out.lane == 1


def test_rightmost_lane_cannot_change_right(config):
    occ = LaneOccupancy(front_blocked=True, left_blocked=True, front_vehicle_speed=10.0)
    out = decide_behavior(occ, 2, 20.0, config)
    assert out.decision == BehaviorDecision.DECELERATE
    assert out.lane == 2


def test_boxed_in_decelerates_by_fixed_amount(config):
    """Slower leader with both neighbours blocked."""
    occ = LaneOccupancy(
        front_blocked=True, left_blocked=True, right_blocked=True,
        front_vehicle_speed=10.0
    )
    out = decide_behavior(occ, 1, 20.0, config)
    assert out.decision == BehaviorDecision.DECELERATE
    assert out.lane == 1
    assert out.ref_speed < 20.0
    assert 20.0 - out.ref_speed == pytest.approx(0.14)


def test_decelerate_clamped_at_zero(config):
    occ = LaneOccupancy(
        front_blocked=True, left_blocked=True, right_blocked=True,
        front_vehicle_speed=-1.0
    )
    out = decide_behavior(occ, 1, 0.05, config)
    assert out.decision == BehaviorDecision.DECELERATE
    assert out.ref_speed == 0.0


def test_boxed_in_behind_faster_vehicle_holds(config):
    occ = LaneOccupancy(
        front_blocked=True, left_blocked=True, right_blocked=True,
        front_vehicle_speed=15.0
    )
    out = decide_behavior(occ, 1, 15.0, config)
    assert out.decision == BehaviorDecision.HOLD
    assert out.lane == 1
    assert out.ref_speed == 15.0


def test_vehicle_ahead_with_left_clear_changes_left(config):
    occ = LaneOccupancy(front_blocked=True, right_blocked=True, front_vehicle_speed=15.0)
    out = decide_behavior(occ, 1, 20.0, config)
    assert out.decision == BehaviorDecision.CHANGE_LEFT
    assert out.lane == 0


def test_select_behavior_respects_lane_count():
    occ = LaneOccupancy(front_blocked=True, left_blocked=True, front_vehicle_speed=10.0)
    assert select_behavior(occ, 2, 20.0, lane_count=4) == BehaviorDecision.CHANGE_RIGHT
    assert select_behavior(occ, 3, 20.0, lane_count=4) == BehaviorDecision.DECELERATE


def test_ramp_is_monotonic_and_bounded(config):
    lane, ref_speed = 1, 0.0
    for _ in range(500):
        out = decide_behavior(LaneOccupancy(), lane, ref_speed, config)
        assert out.ref_speed >= ref_speed
        assert out.ref_speed <= config.max_speed
        lane, ref_speed = out.lane, out.ref_speed
    assert ref_speed == config.max_speed


def test_repeated_deceleration_steps(config):
    occ = LaneOccupancy(
        front_blocked=True, left_blocked=True, right_blocked=True,
        front_vehicle_speed=0.0
    )
    ref_speed = 1.0
    speeds = []
    for _ in range(10):
        ref_speed = decide_behavior(occ, 1, ref_speed, config).ref_speed
        speeds.append(ref_speed)
    np.testing.assert_allclose(np.diff(speeds[:7]), -0.14, atol=1e-9)
    assert speeds[-1] == 0.0


def test_lane_stays_in_range_under_random_occupancy(config):
    rng = np.random.default_rng(42)
    lane, ref_speed = config.default_lane, 0.0
    for _ in range(2000):
        occ = LaneOccupancy(
            front_blocked=bool(rng.integers(2)),
            left_blocked=bool(rng.integers(2)),
            right_blocked=bool(rng.integers(2)),
            front_vehicle_speed=float(rng.uniform(0.0, 25.0)),
        )
        out = decide_behavior(occ, lane, ref_speed, config)
        assert 0 <= out.lane < config.lane_count
        assert abs(out.lane - lane) <= 1
        assert 0.0 <= out.ref_speed <= config.max_speed
        lane, ref_speed = out.lane, out.ref_speed


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
