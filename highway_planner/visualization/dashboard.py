"""Static dashboard of a closed-loop highway run."""

import os
import numpy as np
import matplotlib

if os.environ.get("MPLBACKEND") is None:
    matplotlib.use("Agg")

import matplotlib.pyplot as plt
import matplotlib.gridspec as gridspec
from pathlib import Path
from typing import List, Optional
from loguru import logger

from ..core.coordinate_converter import frenet_to_cartesian
from ..core.data_structures import SimulationResult
from ..core.metrics import calculate_motion_profile
from ..core.waypoint_map import WaypointMap


class DashboardGenerator:
    """Generates a static dashboard report of the simulation."""

    def __init__(self, history: List[SimulationResult]):
        self.history = history
        if not history:
            raise ValueError("History is empty")

    def generate(
        self,
        output_path: str,
        summary_metrics: Optional[dict] = None,
        waypoint_map: Optional[WaypointMap] = None,
        lane_width: float = 4.0,
        lane_count: int = 3,
        dt: Optional[float] = None
    ):
        """Create and save the dashboard image.

        Args:
            output_path: Path to save the image
            summary_metrics: Optional dictionary of aggregate metrics
            waypoint_map: Track drawn under the driven trace
        """
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)

        times = [r.time for r in self.history]
        speeds = [r.ego_state.speed for r in self.history]
        ref_speeds = [r.ref_speed for r in self.history]
        lanes = [r.lane for r in self.history]
        gaps = [min(r.metrics.get('front_gap', np.inf), 100.0) for r in self.history]
        if dt is None:
            dt = times[1] - times[0] if len(times) > 1 else 1.0
        accel = calculate_motion_profile(self.history, dt)['accel']

        fig = plt.figure(figsize=(18, 10), constrained_layout=True)
        gs = gridspec.GridSpec(3, 3, figure=fig)

        # 1. Track map (left, spans all rows)
        ax_map = fig.add_subplot(gs[:, 0:2])
        self._plot_map(ax_map, waypoint_map, lane_width, lane_count)

        # 2. Speed
        ax_speed = fig.add_subplot(gs[0, 2])
        ax_speed.plot(times, speeds, label='Speed', color='blue')
        ax_speed.plot(times, ref_speeds, label='Reference', color='gray', linestyle='--')
        if len(accel):
            ax_acc = ax_speed.twinx()
            ax_acc.plot(times[1:], accel, color='green', alpha=0.4)
            ax_acc.set_ylabel('Accel [m/s²]', color='green')
        ax_speed.set_ylabel('Speed [m/s]')
        ax_speed.set_title("Speed")
        ax_speed.legend(loc='lower right', fontsize=8)
        ax_speed.grid(True, alpha=0.3)

        # 3. Lane
        ax_lane = fig.add_subplot(gs[1, 2])
        ax_lane.step(times, lanes, where='post', color='purple')
        ax_lane.set_yticks(range(lane_count))
        ax_lane.invert_yaxis()
        ax_lane.set_title("Target Lane")
        ax_lane.grid(True, alpha=0.3)

        # 4. Front gap + summary
        ax_gap = fig.add_subplot(gs[2, 2])
        ax_gap.plot(times, gaps, color='orange')
        ax_gap.set_title("Front Gap (clipped at 100m)")
        ax_gap.set_xlabel("Time [s]")
        ax_gap.set_ylabel("Gap [m]")
        ax_gap.grid(True)
        if summary_metrics:
            text = "\n".join([
                f"Lane changes: {summary_metrics.get('lane_changes', 0)}",
                f"Collisions: {summary_metrics.get('collision_count', 0)}",
                f"Max accel: {summary_metrics.get('max_accel', 0.0):.2f} m/s²",
                f"Max planning: {summary_metrics.get('max_planning_time', 0.0) * 1000:.2f} ms",
            ])
            ax_gap.text(0.02, 0.95, text, transform=ax_gap.transAxes, va='top', fontsize=8,
                        bbox=dict(facecolor='white', alpha=0.7))

        fig.suptitle("Highway Planner Report", fontsize=16)
        plt.savefig(output_path, dpi=120)
        plt.close(fig)
        logger.info(f"Dashboard saved to {output_path}")

    def _plot_map(self, ax, waypoint_map: Optional[WaypointMap], lane_width: float, lane_count: int):
        if waypoint_map is not None:
            # Open tracks (long closing segment) stop at the last waypoint
            closing = np.hypot(waypoint_map.x[0] - waypoint_map.x[-1], waypoint_map.y[0] - waypoint_map.y[-1])
            spacing = np.median(np.diff(waypoint_map.segment_s))
            s_end = waypoint_map.max_s if closing <= 2.0 * spacing else waypoint_map.s[-1]
            s_samples = np.linspace(0.0, s_end, 400, endpoint=False)
            for k in range(lane_count + 1):
                d = k * lane_width
                pts = np.array([frenet_to_cartesian(waypoint_map, s, d) for s in s_samples])
                style = 'k-' if k in (0, lane_count) else 'k--'
                ax.plot(pts[:, 0], pts[:, 1], style, linewidth=1.0, alpha=0.5, zorder=1)

        ego_x = [r.ego_state.x for r in self.history]
        ego_y = [r.ego_state.y for r in self.history]
        ax.plot(ego_x, ego_y, 'b-', linewidth=2, label='Ego', zorder=2)
        ax.plot(ego_x[0], ego_y[0], 'go', label='Start', zorder=3)
        ax.plot(ego_x[-1], ego_y[-1], 'ro', label='End', zorder=3)

        last_path = self.history[-1].planned_path
        if len(last_path) > 0:
            ax.plot(last_path.x, last_path.y, 'c-', linewidth=1.5, label='Last plan', zorder=3)

        for r in self.history[::10]:
            if r.vehicle_positions.size > 0:
                ax.plot(r.vehicle_positions[:, 0], r.vehicle_positions[:, 1],
                        'r.', markersize=2, alpha=0.3, zorder=2)

        ax.set_title("Trajectory Map")
        ax.set_aspect('equal')
        ax.grid(True)
        ax.legend(loc='upper right', fontsize=9)


def create_dashboard(
    history: List[SimulationResult],
    output_path: str,
    metrics: Optional[dict] = None,
    waypoint_map: Optional[WaypointMap] = None,
    **kwargs
):
    """Convenience function."""
    gen = DashboardGenerator(history)
    gen.generate(output_path, metrics, waypoint_map, **kwargs)
