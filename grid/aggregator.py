"""Per-grid catch statistics.

Statistics are recomputed from a full catch snapshot on every call. There is
no incremental cache, so results always match the latest data.
"""
from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Hashable, Iterable, List, Optional, Set

from loguru import logger

from models.catch import Catch


@dataclass(frozen=True)
class GridStatistic:
    """Catch performance for one grid reference.

    Attributes:
        grid_reference: Five-digit grid code
        total_catches: Number of catches in the grid
        total_weight: Sum of known weights in kg
        species_count: Distinct species caught
        session_count: Distinct sessions with catches in the grid
        first_catch: Earliest catch timestamp
        last_catch: Latest catch timestamp
        avg_weight: ``total_weight / total_catches``
        cpue: Catches per session, treating session-less grids as one session
    """
    grid_reference: str
    total_catches: int
    total_weight: float
    species_count: int
    session_count: int
    first_catch: datetime
    last_catch: datetime
    avg_weight: float
    cpue: float

    def to_dict(self) -> dict:
        return {
            "grid_reference": self.grid_reference,
            "total_catches": self.total_catches,
            "total_weight": self.total_weight,
            "species_count": self.species_count,
            "session_count": self.session_count,
            "first_catch": self.first_catch,
            "last_catch": self.last_catch,
            "avg_weight": self.avg_weight,
            "cpue": self.cpue,
        }


@dataclass
class _GridAccumulator:
    count: int = 0
    weights: List[float] = field(default_factory=list)
    species: Set[Hashable] = field(default_factory=set)
    sessions: Set[Hashable] = field(default_factory=set)
    first_catch: Optional[datetime] = None
    last_catch: Optional[datetime] = None

    def add(self, catch: Catch) -> None:
        self.count += 1
        if catch.weight_kg is not None:
            self.weights.append(float(catch.weight_kg))
        self.species.add(catch.species_id)
        if catch.session_id:
            self.sessions.add(catch.session_id)
        if self.first_catch is None or catch.caught_at < self.first_catch:
            self.first_catch = catch.caught_at
        if self.last_catch is None or catch.caught_at > self.last_catch:
            self.last_catch = catch.caught_at

    def finish(self, grid_reference: str) -> GridStatistic:
        # fsum keeps the total independent of input order
        total_weight = math.fsum(self.weights)
        return GridStatistic(
            grid_reference=grid_reference,
            total_catches=self.count,
            total_weight=total_weight,
            species_count=len(self.species),
            session_count=len(self.sessions),
            first_catch=self.first_catch,
            last_catch=self.last_catch,
            avg_weight=total_weight / self.count,
            cpue=self.count / max(len(self.sessions), 1),
        )


def aggregate_by_grid(catches: Iterable[Catch]) -> List[GridStatistic]:
    """Group catches by grid reference and derive per-grid statistics.

    Catches without a grid reference are ignored. Results are ordered by
    descending catch count, ties by grid reference.
    """
    groups: Dict[str, _GridAccumulator] = {}
    skipped = 0
    for catch in catches:
        if not catch.grid_reference:
            skipped += 1
            continue
        groups.setdefault(catch.grid_reference, _GridAccumulator()).add(catch)

    stats = [acc.finish(grid) for grid, acc in groups.items()]
    stats.sort(key=lambda s: (-s.total_catches, s.grid_reference))
    logger.debug(f"[grid] aggregated {len(stats)} grids, skipped {skipped} catches without grid")
    return stats


def top_grid(stats: Iterable[GridStatistic]) -> Optional[GridStatistic]:
    """Best performing grid (most catches), or None for an empty snapshot."""
    return next(iter(sorted(stats, key=lambda s: (-s.total_catches, s.grid_reference))), None)
