"""Spatial (grid reference) aggregation of catches."""
from __future__ import annotations

from models.catch import is_valid_grid_reference, normalize_grid_reference

from .aggregator import GridStatistic, aggregate_by_grid, top_grid

__all__ = [
    "GridStatistic",
    "aggregate_by_grid",
    "top_grid",
    "is_valid_grid_reference",
    "normalize_grid_reference",
]
