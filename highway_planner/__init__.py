"""Real-time behavior and trajectory planning for a multi-lane highway."""

__version__ = "0.1.0"
