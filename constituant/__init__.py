"""Constituant: legislative bill aggregation and citizen voting."""

__version__ = "1.0.0"
