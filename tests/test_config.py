"""Tests for configuration loading and validation."""

import sys
from pathlib import Path

import pytest
import yaml

sys.path.insert(0, str(Path(__file__).parent.parent))

from highway_planner.config import (
    ConfigValidationError,
    PlannerConfig,
    SimulationConfig,
    load_config,
    save_config,
    validate_config,
)

SCENARIO_DIR = Path(__file__).parent.parent / 'scenarios'


def test_planner_defaults():
    config = PlannerConfig()
    assert config.horizon == 50
    assert config.anchor_offsets == [30.0, 60.0, 90.0]
    assert config.lane_width == 4.0
    assert config.lane_count == 3
    assert config.default_lane == 1
    assert config.cycle_interval == 0.02
    assert config.speed_increment == pytest.approx(0.1)
    assert config.speed_decrement == pytest.approx(0.14)
    validate_config(config)


def test_simulation_defaults_are_valid():
    validate_config(SimulationConfig())


@pytest.mark.parametrize("field,value", [
    ('max_speed', 0.0),
    ('acceleration_rate', -1.0),
    ('horizon', 0),
    ('anchor_offsets', [60.0, 30.0]),
    ('anchor_offsets', []),
    ('lane_count', 0),
    ('default_lane', 3),
    ('rear_detection_distance', -1.0),
    ('lookahead_x', 120.0),
])
def test_invalid_planner_values(field, value):
    config = PlannerConfig(**{field: value})
    with pytest.raises(ConfigValidationError):
        validate_config(config)


def test_lookahead_within_anchor_reach():
    validate_config(PlannerConfig(lookahead_x=90.0))
    with pytest.raises(ConfigValidationError, match='lookahead_x'):
        validate_config(PlannerConfig(lookahead_x=45.0, anchor_offsets=[20.0, 40.0]))


def test_invalid_simulation_values_are_all_reported():
    config = SimulationConfig(
        track_type='oval',
        ego_initial_lane=5,
        traffic=[[1, 10.0], [4, 50.0, 10.0], [0, 50.0, -3.0]],
        points_per_cycle=60,
    )
    with pytest.raises(ConfigValidationError) as excinfo:
        validate_config(config)
    message = str(excinfo.value)
    assert 'track_type' in message
    assert 'ego_initial_lane' in message
    assert 'traffic[0]' in message
    assert 'traffic[1]' in message
    assert 'traffic[2]' in message
    assert 'points_per_cycle' in message


def test_file_track_requires_map(tmp_path):
    config = SimulationConfig(track_type='file', map_file=str(tmp_path / 'missing.txt'))
    with pytest.raises(ConfigValidationError):
        validate_config(config)


@pytest.mark.parametrize("name", ['highway_traffic.yaml', 'empty_road.yaml', 'boxed_in.yaml'])
def test_bundled_scenarios_load(name):
    config = load_config(SCENARIO_DIR / name)
    assert isinstance(config.planner, PlannerConfig)
    assert config.config_path.endswith(name)


def test_load_nested_planner_section(tmp_path):
    path = tmp_path / 'scenario.yaml'
    path.write_text(yaml.safe_dump({
        'planner': {'max_speed': 15.0, 'horizon': 40},
        'track_type': 'straight',
        'traffic': [[0, 50.0, 10.0]],
    }))
    config = load_config(path)
    assert config.planner.max_speed == 15.0
    assert config.planner.horizon == 40
    assert config.planner.lane_count == 3
    assert config.track_type == 'straight'
    assert config.traffic == [[0, 50.0, 10.0]]


def test_load_errors(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_config(tmp_path / 'nope.yaml')

    empty = tmp_path / 'empty.yaml'
    empty.write_text('')
    with pytest.raises(ValueError):
        load_config(empty)

    unknown = tmp_path / 'unknown.yaml'
    unknown.write_text('not_a_field: 1\n')
    with pytest.raises(ValueError):
        load_config(unknown)

    broken = tmp_path / 'broken.yaml'
    broken.write_text('planner: [1, 2\n')
    with pytest.raises(ValueError):
        load_config(broken)

    invalid = tmp_path / 'invalid.yaml'
    invalid.write_text('n_steps: -5\n')
    with pytest.raises(ConfigValidationError):
        load_config(invalid)


def test_save_and_reload(tmp_path):
    config = SimulationConfig(track_type='straight', n_steps=42)
    config.planner.max_speed = 18.0
    path = tmp_path / 'out' / 'saved.yaml'
    save_config(config, path)

    loaded = load_config(path)
    assert loaded.n_steps == 42
    assert loaded.track_type == 'straight'
    assert loaded.planner.max_speed == 18.0


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
