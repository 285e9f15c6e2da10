"""Closed-loop simulation module."""

from .highway_simulator import HighwaySimulator, build_track

__all__ = ['HighwaySimulator', 'build_track']
