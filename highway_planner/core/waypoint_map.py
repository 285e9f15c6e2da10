"""Static waypoint table describing the track centerline."""

import math
from pathlib import Path
from typing import Iterable, Optional, Sequence, Union

import numpy as np
from loguru import logger


class WaypointMapError(ValueError):
    """Raised when a waypoint table cannot be used for planning."""
    pass


def _read_only(values) -> np.ndarray:
    arr = np.array(values, dtype=float)
    arr.flags.writeable = False
    return arr


class WaypointMap:
    """Immutable, cyclic table of centerline samples.

    Each waypoint carries its map position (x, y), its arc length s and the
    unit normal (dx, dy) pointing to the right of the direction of travel.
    The track wraps at ``max_s``.

    Args:
        x, y: Waypoint positions [m]
        s: Arc length of each waypoint [m], strictly increasing
        dx, dy: Lateral unit normal components
        max_s: Total track length [m]
    """

    def __init__(
        self,
        x: Sequence[float],
        y: Sequence[float],
        s: Sequence[float],
        dx: Sequence[float],
        dy: Sequence[float],
        max_s: float
    ):
        lengths = {len(x), len(y), len(s), len(dx), len(dy)}
        if len(lengths) != 1:
            raise WaypointMapError(
                f"Waypoint columns must have equal length, got {sorted(lengths)}"
            )
        if len(x) < 2:
            raise WaypointMapError(f"Waypoint table needs at least 2 entries, got {len(x)}")

        s_arr = np.asarray(s, dtype=float)
        if np.any(np.diff(s_arr) <= 0):
            raise WaypointMapError("Waypoint arc length must be strictly increasing")
        if max_s <= s_arr[-1]:
            raise WaypointMapError(
                f"max_s ({max_s}) must exceed the last waypoint s ({s_arr[-1]})"
            )

        self.x = _read_only(x)
        self.y = _read_only(y)
        self.s = _read_only(s_arr)
        self.dx = _read_only(dx)
        self.dy = _read_only(dy)
        self.max_s = float(max_s)

        # Cumulative chord length up to each waypoint, for spacing diagnostics
        chords = np.hypot(np.diff(self.x), np.diff(self.y))
        self.segment_s = _read_only(np.concatenate([[0.0], np.cumsum(chords)]))

        logger.info(f"Waypoint map loaded with {len(self)} waypoints, max_s={self.max_s:.3f}m")

    def __len__(self) -> int:
        return len(self.x)

    @property
    def positions(self) -> np.ndarray:
        """Waypoint positions [n, 2]."""
        return np.column_stack([self.x, self.y])

    def normalize_s(self, s: float) -> float:
        """Wrap arc length into [0, max_s)."""
        return s % self.max_s

    @classmethod
    def from_rows(cls, rows: Iterable[Sequence[float]], max_s: float) -> 'WaypointMap':
        """Create from rows of (x, y, s, dx, dy)."""
        table = np.asarray(list(rows), dtype=float)
        if table.ndim != 2 or table.shape[0] < 2 or table.shape[1] < 5:
            raise WaypointMapError(
                f"Waypoint rows must form an (n>=2, 5) table, got shape {table.shape}"
            )
        return cls(table[:, 0], table[:, 1], table[:, 2], table[:, 3], table[:, 4], max_s)


def load_waypoint_map(path: Union[str, Path], max_s: float) -> WaypointMap:
    """Load a whitespace separated ``x y s dx dy`` table.

    Args:
        path: Path to the map file
        max_s: Track length at which s wraps back to 0 [m]

    Returns:
        Loaded waypoint map
    """
    path = Path(path)
    if not path.exists():
        logger.error(f"Waypoint map not found: {path}")
        raise WaypointMapError(f"Waypoint map not found: {path}")

    try:
        table = np.loadtxt(path, ndmin=2)
    except ValueError as e:
        raise WaypointMapError(f"Failed to parse waypoint map {path}: {e}") from e

    return WaypointMap.from_rows(table, max_s)


def make_circular_track(radius: float = 200.0, n_waypoints: int = 180) -> WaypointMap:
    """Build a counter-clockwise circular track.

    The centerline is the circle itself, so lanes (positive d) lie outside it.
    Arc length is measured along the chords so it matches the polyline exactly.
    """
    theta = np.linspace(0.0, 2.0 * np.pi, n_waypoints, endpoint=False)
    x = radius * np.cos(theta)
    y = radius * np.sin(theta)
    chord = 2.0 * radius * math.sin(np.pi / n_waypoints)
    s = chord * np.arange(n_waypoints)
    # Outward normal is to the right of counter-clockwise travel
    dx = np.cos(theta)
    dy = np.sin(theta)
    return WaypointMap(x, y, s, dx, dy, max_s=chord * n_waypoints)


def make_straight_track(
    length: float = 1000.0,
    n_waypoints: int = 101,
    heading: float = 0.0,
    origin: Optional[Sequence[float]] = None
) -> WaypointMap:
    """Build a straight track along ``heading``.

    ``max_s`` is set one segment past the last waypoint. The closing segment
    joins the last waypoint back to the first, so queries are only meaningful
    for s in [0, length].
    """
    x0, y0 = (0.0, 0.0) if origin is None else origin
    spacing = length / (n_waypoints - 1)
    s = spacing * np.arange(n_waypoints)
    x = x0 + s * math.cos(heading)
    y = y0 + s * math.sin(heading)
    dx = np.full(n_waypoints, math.sin(heading))
    dy = np.full(n_waypoints, -math.cos(heading))
    return WaypointMap(x, y, s, dx, dy, max_s=length + spacing)
