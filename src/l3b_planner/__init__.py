"""Task-graph planner and dispatcher for L3B vegetation indicator production."""

__version__ = "0.1.0"
