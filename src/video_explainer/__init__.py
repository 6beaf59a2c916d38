"""Multi-platform explainer video production planner."""

__version__ = "0.1.0"
