"""Tests for the waypoint table."""

import math
import sys
from pathlib import Path

import numpy as np
import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from highway_planner.core.waypoint_map import (
    WaypointMap,
    WaypointMapError,
    load_waypoint_map,
    make_circular_track,
    make_straight_track,
)


def test_from_rows():
    rows = [
        (0.0, 0.0, 0.0, 0.0, -1.0),
        (10.0, 0.0, 10.0, 0.0, -1.0),
        (20.0, 0.0, 20.0, 0.0, -1.0),
    ]
    wmap = WaypointMap.from_rows(rows, max_s=30.0)
    assert len(wmap) == 3
    np.testing.assert_allclose(wmap.segment_s, [0.0, 10.0, 20.0])
    assert wmap.positions.shape == (3, 2)


def test_arrays_are_read_only():
    wmap = make_straight_track()
    with pytest.raises(ValueError):
        wmap.x[0] = 5.0


def test_normalize_s():
    wmap = make_circular_track(radius=100.0, n_waypoints=50)
    assert wmap.normalize_s(wmap.max_s + 3.0) == pytest.approx(3.0)
    assert wmap.normalize_s(-3.0) == pytest.approx(wmap.max_s - 3.0)


@pytest.mark.parametrize("kwargs", [
    dict(x=[0.0], y=[0.0], s=[0.0], dx=[0.0], dy=[-1.0], max_s=10.0),
    dict(x=[0.0, 1.0], y=[0.0], s=[0.0, 1.0], dx=[0.0, 0.0], dy=[-1.0, -1.0], max_s=10.0),
    dict(x=[0.0, 1.0], y=[0.0, 0.0], s=[1.0, 1.0], dx=[0.0, 0.0], dy=[-1.0, -1.0], max_s=10.0),
    dict(x=[0.0, 1.0], y=[0.0, 0.0], s=[0.0, 1.0], dx=[0.0, 0.0], dy=[-1.0, -1.0], max_s=1.0),
])
def test_rejects_invalid_tables(kwargs):
    with pytest.raises(WaypointMapError):
        WaypointMap(**kwargs)


def test_load_waypoint_map(tmp_path):
    path = tmp_path / 'map.txt'
    path.write_text(
        "784.6001 1135.571 0 -0.02359831 -0.9997216\n"
        "815.2679 1134.93 30.6744785308838 -0.01099479 -0.9999396\n"
        "844.6398 1134.911 60.0463714599609 -0.002048373 -0.9999979\n"
    )
    wmap = load_waypoint_map(path, max_s=6945.554)
    assert len(wmap) == 3
    assert wmap.x[1] == pytest.approx(815.2679)
    assert wmap.max_s == pytest.approx(6945.554)


def test_load_rejects_short_or_missing_tables(tmp_path):
    with pytest.raises(WaypointMapError):
        load_waypoint_map(tmp_path / 'missing.txt', max_s=100.0)

    single = tmp_path / 'single.txt'
    single.write_text("0 0 0 0 -1\n")
    with pytest.raises(WaypointMapError):
        load_waypoint_map(single, max_s=100.0)

    garbage = tmp_path / 'garbage.txt'
    garbage.write_text("a b c d e\n")
    with pytest.raises(WaypointMapError):
        load_waypoint_map(garbage, max_s=100.0)


def test_circular_track_geometry():
    wmap = make_circular_track(radius=200.0, n_waypoints=180)
    np.testing.assert_allclose(np.hypot(wmap.x, wmap.y), 200.0)
    # Unit normals point outward
    np.testing.assert_allclose(np.hypot(wmap.dx, wmap.dy), 1.0)
    np.testing.assert_allclose(wmap.dx * wmap.x + wmap.dy * wmap.y, 200.0)
    # Chord-length arc length closes the loop
    chord = 2.0 * 200.0 * math.sin(math.pi / 180)
    assert wmap.max_s == pytest.approx(chord * 180)
    np.testing.assert_allclose(wmap.segment_s, wmap.s, atol=1e-9)


def test_straight_track_geometry():
    wmap = make_straight_track(length=500.0, n_waypoints=51, heading=math.pi / 2, origin=(10.0, 20.0))
    np.testing.assert_allclose(wmap.x, 10.0, atol=1e-9)
    assert wmap.y[-1] == pytest.approx(520.0)
    # Right of +y travel is +x
    np.testing.assert_allclose(wmap.dx, 1.0, atol=1e-9)
    np.testing.assert_allclose(wmap.dy, 0.0, atol=1e-9)
    assert wmap.max_s == pytest.approx(510.0)


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
