"""Tallies - personal counter tracking with goals, history and statistics."""

__version__ = "0.1.0"
