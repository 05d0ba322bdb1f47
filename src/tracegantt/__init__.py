"""Gantt-style timelines for distributed-trace span trees."""

__version__ = "0.1.0"
