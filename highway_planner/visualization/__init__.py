"""Visualization module for highway planner runs."""

from .dashboard import DashboardGenerator, create_dashboard

__all__ = ['DashboardGenerator', 'create_dashboard']
