"""
Reports Package for Fish Log Application.

Builds exportable reports from the Excel catch log.

Modules:
    grid_report: Per-grid catch performance with a per-species summary
    catch_summary: Catch count, distinct species and the latest catches

Features:
    - Grid statistics computed by the grid aggregator
    - Species summary over grid-tagged catches
    - xlsx export with one sheet per table
"""

from __future__ import annotations

from .catch_summary import CatchSummary, summarize_catches
from .grid_report import GridReportGenerator

__all__ = [
    "CatchSummary",
    "GridReportGenerator",
    "summarize_catches",
]
