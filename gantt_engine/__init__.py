"""Scheduling core for Gantt charts: task tree, links, scales, timeline mapping and auto-scheduling."""

__version__ = "0.1.0"
