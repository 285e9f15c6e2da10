"""Configuration management module."""

import yaml
from pathlib import Path
from typing import Any, Dict, Optional, List
from dataclasses import dataclass, field, asdict
from loguru import logger


@dataclass
class PlannerConfig:
    """Tunable parameters of the highway planner.

    Attributes:
        # Speed control
        max_speed: Upper bound of the reference speed [m/s]
        acceleration_rate: Reference speed ramp-up rate [m/s²]
        deceleration_rate: Reference speed ramp-down rate [m/s²]

        # Timing
        cycle_interval: Time between consecutive path points [s]
        horizon: Number of points in every emitted path

        # Trajectory synthesis
        anchor_offsets: Arc length offsets of the forward anchors [m]
        lookahead_x: Local-frame x used to size the sampling step [m]

        # Traffic perception
        front_detection_distance: Forward detection window [m]
        rear_detection_distance: Backward detection window for side lanes [m]

        # Road layout
        lane_width: Lane width [m]
        lane_count: Number of lanes in the travel direction
        default_lane: Lane used at startup and after a reset

        # Telemetry
        telemetry_yaw_in_degrees: Whether inbound yaw is reported in degrees
    """
    # Speed control
    max_speed: float = 21.9  # ~49 mph
    acceleration_rate: float = 5.0
    deceleration_rate: float = 7.0

    # Timing
    cycle_interval: float = 0.02
    horizon: int = 50

    # Trajectory synthesis
    anchor_offsets: list = field(default_factory=lambda: [30.0, 60.0, 90.0])
    lookahead_x: float = 30.0

    # Traffic perception
    front_detection_distance: float = 30.0
    rear_detection_distance: float = 10.0

    # Road layout
    lane_width: float = 4.0
    lane_count: int = 3
    default_lane: int = 1

    # Telemetry
    telemetry_yaw_in_degrees: bool = True

    @property
    def speed_increment(self) -> float:
        """Reference speed gained per cycle on ACCELERATE [m/s]."""
        return self.acceleration_rate * self.cycle_interval

    @property
    def speed_decrement(self) -> float:
        """Reference speed lost per cycle on DECELERATE [m/s]."""
        return self.deceleration_rate * self.cycle_interval


@dataclass
class SimulationConfig:
    """Configuration for the closed-loop highway simulation.

    Attributes:
        planner: Planner parameters

        # Track
        track_type: 'circular', 'straight' or 'file'
        track_radius: Radius of the circular track [m]
        track_length: Length of the straight track [m]
        n_waypoints: Number of waypoints of a synthetic track
        map_file: Waypoint table used when track_type is 'file'
        map_max_s: Track length of the waypoint table [m]

        # Ego vehicle
        ego_initial_lane: Starting lane
        ego_initial_s: Starting arc length [m]

        # Traffic
        traffic: List of [lane, s, speed] for constant-speed vehicles

        # Run
        n_steps: Number of planning cycles
        points_per_cycle: Path points the vehicle consumes between cycles
        collision_distance: Same-lane gap below which a collision is flagged [m]

        # Output
        visualization_enabled: Render dashboard after the run
        output_path: Output directory for results
    """
    planner: PlannerConfig = field(default_factory=PlannerConfig)

    # Track
    track_type: str = 'circular'
    track_radius: float = 300.0
    track_length: float = 2000.0
    n_waypoints: int = 240
    map_file: Optional[str] = None
    map_max_s: Optional[float] = None

    # Ego vehicle
    ego_initial_lane: int = 1
    ego_initial_s: float = 0.0

    # Traffic
    traffic: list = field(default_factory=list)

    # Run
    n_steps: int = 500
    points_per_cycle: int = 5
    collision_distance: float = 4.0

    # Output
    visualization_enabled: bool = True
    output_path: str = 'output'

    # Internal: loaded from
    config_path: Optional[str] = None


class ConfigValidationError(ValueError):
    """Raised when configuration validation fails."""
    pass


def _validate_planner(config: PlannerConfig, errors: List[str]) -> None:
    if config.max_speed <= 0:
        errors.append(f"max_speed must be positive, got {config.max_speed}")
    if config.acceleration_rate <= 0:
        errors.append(f"acceleration_rate must be positive, got {config.acceleration_rate}")
    if config.deceleration_rate <= 0:
        errors.append(f"deceleration_rate must be positive, got {config.deceleration_rate}")

    if config.cycle_interval <= 0:
        errors.append(f"cycle_interval must be positive, got {config.cycle_interval}")
    if config.horizon <= 0:
        errors.append(f"horizon must be positive, got {config.horizon}")

    if len(config.anchor_offsets) == 0:
        errors.append("anchor_offsets must not be empty")
    elif any(b <= a for a, b in zip(config.anchor_offsets, config.anchor_offsets[1:])):
        errors.append(f"anchor_offsets must be strictly increasing, got {config.anchor_offsets}")
    elif config.anchor_offsets[0] <= 0:
        errors.append(f"anchor_offsets must be positive, got {config.anchor_offsets}")
    if config.lookahead_x <= 0:
        errors.append(f"lookahead_x must be positive, got {config.lookahead_x}")
    elif config.anchor_offsets and config.lookahead_x > config.anchor_offsets[-1]:
        errors.append(
            f"lookahead_x ({config.lookahead_x}) must not exceed the last anchor offset "
            f"({config.anchor_offsets[-1]})"
        )

    if config.front_detection_distance <= 0:
        errors.append(f"front_detection_distance must be positive, got {config.front_detection_distance}")
    if config.rear_detection_distance < 0:
        errors.append(f"rear_detection_distance must be non-negative, got {config.rear_detection_distance}")

    if config.lane_width <= 0:
        errors.append(f"lane_width must be positive, got {config.lane_width}")
    if config.lane_count <= 0:
        errors.append(f"lane_count must be positive, got {config.lane_count}")
    if not 0 <= config.default_lane < config.lane_count:
        errors.append(f"default_lane must be in [0, {config.lane_count - 1}], got {config.default_lane}")


def validate_config(config) -> None:
    """Validate configuration values for consistency and correctness.

    Args:
        config: SimulationConfig or PlannerConfig to validate

    Raises:
        ConfigValidationError: If validation fails
    """
    errors: List[str] = []

    if isinstance(config, PlannerConfig):
        _validate_planner(config, errors)
    else:
        _validate_planner(config.planner, errors)
        lane_count = config.planner.lane_count

        # Track
        if config.track_type not in ['circular', 'straight', 'file']:
            errors.append(f"track_type must be one of ['circular', 'straight', 'file'], got '{config.track_type}'")
        if config.track_radius <= 0:
            errors.append(f"track_radius must be positive, got {config.track_radius}")
        if config.track_length <= 0:
            errors.append(f"track_length must be positive, got {config.track_length}")
        if config.n_waypoints < 2:
            errors.append(f"n_waypoints must be at least 2, got {config.n_waypoints}")
        if config.track_type == 'file':
            if not config.map_file:
                errors.append("map_file is required when track_type is 'file'")
            elif not Path(config.map_file).exists():
                errors.append(f"map_file does not exist: {config.map_file}")
            if config.map_max_s is None or config.map_max_s <= 0:
                errors.append(f"map_max_s must be positive when track_type is 'file', got {config.map_max_s}")

        # Ego vehicle
        if not 0 <= config.ego_initial_lane < lane_count:
            errors.append(f"ego_initial_lane must be in [0, {lane_count - 1}], got {config.ego_initial_lane}")

        # Traffic
        for i, vehicle in enumerate(config.traffic):
            if len(vehicle) != 3:
                errors.append(f"traffic[{i}] must have 3 elements [lane, s, speed], got {len(vehicle)}")
                continue
            lane, _, speed = vehicle
            if not 0 <= lane < lane_count:
                errors.append(f"traffic[{i}] lane must be in [0, {lane_count - 1}], got {lane}")
            if speed < 0:
                errors.append(f"traffic[{i}] speed must be non-negative, got {speed}")

        # Run
        if config.n_steps <= 0:
            errors.append(f"n_steps must be positive, got {config.n_steps}")
        if not 0 < config.points_per_cycle <= config.planner.horizon:
            errors.append(
                f"points_per_cycle must be in [1, {config.planner.horizon}], got {config.points_per_cycle}"
            )
        if config.collision_distance <= 0:
            errors.append(f"collision_distance must be positive, got {config.collision_distance}")

    if errors:
        error_msg = "Configuration validation failed:\n" + "\n".join(f"  - {e}" for e in errors)
        raise ConfigValidationError(error_msg)


def load_config(config_path: str) -> SimulationConfig:
    """Load configuration from YAML file.

    Args:
        config_path: Path to YAML configuration file

    Returns:
        Loaded configuration
    """
    config_path = Path(config_path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    try:
        with open(config_path, 'r') as f:
            config_dict = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ValueError(f"Failed to parse YAML file {config_path}: {e}") from e

    if config_dict is None:
        raise ValueError(f"YAML file {config_path} is empty or contains no valid content")

    try:
        planner_dict = config_dict.pop('planner', None) or {}
        config = SimulationConfig(planner=PlannerConfig(**planner_dict), **config_dict)
    except TypeError as e:
        raise ValueError(f"Invalid configuration structure in {config_path}: {e}") from e

    config.config_path = str(config_path)

    try:
        validate_config(config)
    except ConfigValidationError:
        logger.error(f"Configuration validation failed for {config_path}")
        raise

    logger.info(f"Configuration loaded and validated from {config_path}")

    return config


def save_config(config: SimulationConfig, config_path: str):
    """Save configuration to YAML file.

    Args:
        config: Configuration to save
        config_path: Path to save YAML file
    """
    config_path = Path(config_path)
    config_path.parent.mkdir(parents=True, exist_ok=True)

    config_dict: Dict[str, Any] = asdict(config)
    config_dict.pop('config_path', None)

    with open(config_path, 'w') as f:
        yaml.safe_dump(config_dict, f, default_flow_style=False, indent=2)

    logger.info(f"Configuration saved to {config_path}")
