"""Behavior and trajectory planning module."""

from .cubic_spline import CubicSpline1D
from .perception import perceive_traffic
from .behavior import BehaviorOutput, decide_behavior, select_behavior
from .trajectory_synthesizer import ReferenceFrame, TrajectorySynthesizer
from .highway_planner import HighwayPlanner, Telemetry, TelemetryError

__all__ = [
    'CubicSpline1D',
    'perceive_traffic',
    'BehaviorOutput',
    'decide_behavior',
    'select_behavior',
    'ReferenceFrame',
    'TrajectorySynthesizer',
    'HighwayPlanner',
    'Telemetry',
    'TelemetryError',
]
