"""Closed-loop highway simulator.

Stands in for the external driving simulator: it emits telemetry, lets the ego
vehicle follow part of each emitted path and moves constant-speed traffic.
"""

import csv
import math
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import numpy as np
from loguru import logger

from ..config import SimulationConfig, validate_config
from ..core.coordinate_converter import lane_center, lane_of
from ..core.data_structures import EgoState, PlannedPath, SimulationResult
from ..core.waypoint_map import (
    WaypointMap,
    load_waypoint_map,
    make_circular_track,
    make_straight_track,
)
from ..planning import HighwayPlanner, Telemetry


def build_track(config: SimulationConfig) -> WaypointMap:
    """Create the waypoint map described by the configuration."""
    if config.track_type == 'circular':
        return make_circular_track(config.track_radius, config.n_waypoints)
    if config.track_type == 'straight':
        return make_straight_track(config.track_length, config.n_waypoints)
    return load_waypoint_map(config.map_file, config.map_max_s)


class HighwaySimulator:
    """Closed-loop simulation of the highway planner.

    Args:
        config: Simulation configuration
        waypoint_map: Track to drive on; built from the configuration if omitted
    """

    def __init__(self, config: SimulationConfig, waypoint_map: Optional[WaypointMap] = None):
        validate_config(config)
        self.config = config
        self.time = 0.0
        self.step_count = 0
        self.history: List[SimulationResult] = []

        logger.info("Initializing highway simulator...")

        # 1. Track and planner
        self.waypoint_map = waypoint_map or build_track(config)
        self.planner = HighwayPlanner(self.waypoint_map, config.planner)
        self.planner.context.lane = config.ego_initial_lane
        self.converter = self.planner.converter
        self.lane_width = config.planner.lane_width
        self.dt = config.planner.cycle_interval

        # 2. Ego vehicle, at rest in the middle of its lane
        s0 = self.waypoint_map.normalize_s(config.ego_initial_s)
        d0 = lane_center(config.ego_initial_lane, self.lane_width)
        x0, y0 = self.converter.frenet_to_cartesian(s0, d0)
        self.ego_state = EgoState(x=x0, y=y0, yaw=self._track_heading(s0, d0), speed=0.0, s=s0, d=d0)

        self.previous_path_x: List[float] = []
        self.previous_path_y: List[float] = []
        self.end_path_s = s0
        self.end_path_d = d0

        # 3. Traffic [lane, s, speed]
        traffic = np.array(config.traffic, dtype=float).reshape(-1, 3)
        self.traffic_lanes = traffic[:, 0].astype(int)
        self.traffic_s = np.array([self.waypoint_map.normalize_s(s) for s in traffic[:, 1]])
        self.traffic_speed = traffic[:, 2].copy()

        logger.info(
            f"Simulator ready: track max_s={self.waypoint_map.max_s:.1f}m, "
            f"{len(self.traffic_s)} traffic vehicles, ego lane {config.ego_initial_lane}"
        )

    def _track_heading(self, s: float, d: float) -> float:
        x1, y1 = self.converter.frenet_to_cartesian(s, d)
        x2, y2 = self.converter.frenet_to_cartesian(s + 1.0, d)
        return math.atan2(y2 - y1, x2 - x1)

    def traffic_states(self) -> List[List[float]]:
        """Sensor fusion rows [id, x, y, vx, vy, s, d] for the current traffic."""
        rows = []
        for i, (lane, s, speed) in enumerate(zip(self.traffic_lanes, self.traffic_s, self.traffic_speed)):
            d = lane_center(int(lane), self.lane_width)
            x, y = self.converter.frenet_to_cartesian(s, d)
            heading = self._track_heading(s, d)
            rows.append([i, x, y, speed * math.cos(heading), speed * math.sin(heading), s, d])
        return rows

    def telemetry_payload(self) -> Dict:
        """Telemetry message as the driving simulator would send it."""
        yaw = self.ego_state.yaw
        if self.config.planner.telemetry_yaw_in_degrees:
            yaw = math.degrees(yaw)
        return {
            'x': self.ego_state.x,
            'y': self.ego_state.y,
            's': self.ego_state.s,
            'd': self.ego_state.d,
            'yaw': yaw,
            'speed': self.ego_state.speed,
            'previous_path_x': list(self.previous_path_x),
            'previous_path_y': list(self.previous_path_y),
            'end_path_s': self.end_path_s,
            'end_path_d': self.end_path_d,
            'sensor_fusion': self.traffic_states(),
        }

    def step(self) -> SimulationResult:
        """Execute one planning cycle and advance the world.

        Returns:
            Simulation result for this step
        """
        # 1. Plan
        telemetry = Telemetry.from_dict(
            self.telemetry_payload(), self.config.planner.telemetry_yaw_in_degrees
        )
        cycle = self.planner.plan(telemetry)
        path = cycle.path

        # 2. Ego follows the first points of the path
        n_consumed = min(self.config.points_per_cycle, len(path))
        self._advance_ego(path, n_consumed)

        # 3. Traffic drives on at constant speed
        elapsed = n_consumed * self.dt
        self.traffic_s = (self.traffic_s + self.traffic_speed * elapsed) % self.waypoint_map.max_s
        self.time += elapsed

        # 4. Record
        front_gap, collision = self._gap_metrics()
        vehicle_positions = np.array(
            [row[1:3] for row in self.traffic_states()], dtype=float
        ).reshape(-1, 2)

        result = SimulationResult(
            time=self.time,
            ego_state=EgoState(**vars(self.ego_state)),
            decision=cycle.decision,
            lane=cycle.lane,
            ref_speed=cycle.ref_speed,
            occupancy=cycle.occupancy,
            planned_path=path,
            vehicle_positions=vehicle_positions,
            planning_time=cycle.planning_time,
            metrics={'front_gap': front_gap, 'collision': collision},
        )
        self.history.append(result)
        self.step_count += 1
        return result

    def _advance_ego(self, path: PlannedPath, n_consumed: int):
        """Move the ego along consumed points and keep the rest as unconsumed path."""
        if n_consumed == 0:
            return

        last_x, last_y = path.x[n_consumed - 1], path.y[n_consumed - 1]
        if n_consumed >= 2:
            before_x, before_y = path.x[n_consumed - 2], path.y[n_consumed - 2]
        else:
            before_x, before_y = self.ego_state.x, self.ego_state.y

        step_len = math.hypot(last_x - before_x, last_y - before_y)
        yaw = self.ego_state.yaw
        if step_len > 1e-6:
            yaw = math.atan2(last_y - before_y, last_x - before_x)
        s, d = self.converter.cartesian_to_frenet(last_x, last_y, yaw)
        self.ego_state = EgoState(x=last_x, y=last_y, yaw=yaw, speed=step_len / self.dt, s=s, d=d)

        self.previous_path_x = path.x[n_consumed:]
        self.previous_path_y = path.y[n_consumed:]
        if self.previous_path_x:
            self.end_path_s, self.end_path_d = self._path_end_frenet(
                self.previous_path_x, self.previous_path_y, yaw
            )
        else:
            self.end_path_s, self.end_path_d = s, d

    def _path_end_frenet(self, xs: List[float], ys: List[float], yaw: float) -> Tuple[float, float]:
        if len(xs) >= 2 and math.hypot(xs[-1] - xs[-2], ys[-1] - ys[-2]) > 1e-6:
            yaw = math.atan2(ys[-1] - ys[-2], xs[-1] - xs[-2])
        return self.converter.cartesian_to_frenet(xs[-1], ys[-1], yaw)

    def _gap_metrics(self) -> Tuple[float, bool]:
        """Nearest same-lane gap ahead and whether any same-lane vehicle is too close."""
        ego_lane = lane_of(self.ego_state.d, self.lane_width, self.config.planner.lane_count)
        front_gap = float('inf')
        collision = False
        if ego_lane is None:
            return front_gap, collision

        for lane, s in zip(self.traffic_lanes, self.traffic_s):
            if lane != ego_lane:
                continue
            gap = self.converter.s_distance(self.ego_state.s, s)
            if gap >= 0:
                front_gap = min(front_gap, gap)
            if abs(gap) < self.config.collision_distance:
                collision = True
        return front_gap, collision

    def run(self, n_steps: Optional[int] = None) -> List[SimulationResult]:
        """Run simulation for multiple steps.

        Args:
            n_steps: Number of steps to run (if None, use config.n_steps)

        Returns:
            List of simulation results
        """
        if n_steps is None:
            n_steps = self.config.n_steps

        logger.info(f"Running simulation for {n_steps} planning cycles")

        for i in range(n_steps):
            result = self.step()

            if i % 50 == 0:
                logger.info(
                    f"Step {i}/{n_steps}, t={self.time:.1f}s, s={self.ego_state.s:.1f}m, "
                    f"lane={result.lane}, v={self.ego_state.speed:.1f}m/s, "
                    f"decision={result.decision.name}"
                )

            if result.metrics.get('collision', False):
                logger.error(f"Collision detected at t={self.time:.1f}s!")
                break

        logger.info(f"Simulation complete: {len(self.history)} steps")
        return self.history

    def save_results(self, output_path: Optional[str] = None) -> Dict[str, float]:
        """Save simulation results to ``output_path``.

        Writes trajectory.npz, metrics_summary.csv, metrics_report.txt and, if
        visualization is enabled, dashboard.png.

        Returns:
            Aggregate metrics
        """
        from ..core.metrics import calculate_aggregate_metrics

        if output_path is None:
            output_path = self.config.output_path
        output_dir = Path(output_path)
        output_dir.mkdir(parents=True, exist_ok=True)

        # [n, 6] rows of x, y, yaw, speed, s, d and [n, horizon, 2] paths
        ego = np.array([r.ego_state.to_array() for r in self.history]).reshape(-1, 6)
        planned = np.array(
            [r.planned_path.to_array() for r in self.history]
        ).reshape(-1, self.config.planner.horizon, 2)

        np.savez(
            output_dir / "trajectory.npz",
            times=np.array([r.time for r in self.history]),
            ego_x=ego[:, 0],
            ego_y=ego[:, 1],
            ego_yaw=ego[:, 2],
            ego_speed=ego[:, 3],
            ego_s=ego[:, 4],
            ego_d=ego[:, 5],
            ref_speed=np.array([r.ref_speed for r in self.history]),
            lane=np.array([r.lane for r in self.history]),
            decision=np.array([r.decision.name for r in self.history]),
            planning_time=np.array([r.planning_time for r in self.history]),
            planned_x=planned[:, :, 0],
            planned_y=planned[:, :, 1],
        )

        metrics = calculate_aggregate_metrics(
            self.history, self.dt * self.config.points_per_cycle
        )

        context = {
            "scenario_file": str(self.config.config_path or 'unknown'),
            "track_type": self.config.track_type,
            "max_speed": self.config.planner.max_speed,
            "total_time": self.time,
            "steps": len(self.history),
        }
        csv_data = context.copy()
        csv_data.update(metrics)

        csv_path = output_dir / "metrics_summary.csv"
        with open(csv_path, 'w', newline='') as f:
            writer = csv.DictWriter(f, fieldnames=csv_data.keys())
            writer.writeheader()
            writer.writerow(csv_data)
        logger.info(f"Saved metrics summary to {csv_path}")

        txt_path = output_dir / "metrics_report.txt"
        with open(txt_path, 'w') as f:
            f.write("=" * 40 + "\n")
            f.write("       SIMULATION REPORT\n")
            f.write("=" * 40 + "\n\n")
            f.write("--- Configuration ---\n")
            for k, v in context.items():
                f.write(f"{k}: {v}\n")
            f.write("\n--- Metrics ---\n")
            for k, v in metrics.items():
                f.write(f"{k}: {v}\n")
            f.write("=" * 40 + "\n")
        logger.info(f"Saved metrics report to {txt_path}")

        if self.config.visualization_enabled:
            from ..visualization.dashboard import create_dashboard
            create_dashboard(
                self.history,
                str(output_dir / "dashboard.png"),
                metrics=metrics,
                waypoint_map=self.waypoint_map,
                lane_width=self.lane_width,
                lane_count=self.config.planner.lane_count,
                dt=self.dt * self.config.points_per_cycle,
            )
        else:
            logger.debug("Visualization disabled, skipping dashboard generation.")

        return metrics
