"""Dashboard summary: catch count, distinct species and the latest catches."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, List

from models.catch import Catch
from weights.calculator import format_weight

RECENT_CATCHES = 5


@dataclass(frozen=True)
class CatchSummary:
    total_catches: int = 0
    species_count: int = 0
    recent: List[Catch] = field(default_factory=list)

    def lines(self) -> List[str]:
        """Plain-text rendering used by the command line."""
        out = [f"Catches: {self.total_catches}", f"Species: {self.species_count}"]
        if not self.recent:
            out.append("No catches logged yet")
            return out
        out.append("Recent catches:")
        for c in self.recent:
            detail = format_weight(c.weight_kg) if c.weight_kg else "no weight"
            if c.length_cm:
                detail += f", {c.length_cm:g} cm {c.length_type.value}"
            grid = f" @ {c.grid_reference}" if c.grid_reference else ""
            out.append(f"  {c.caught_at:%Y-%m-%d %H:%M}  {c.species_id}: {detail}{grid}")
        return out


def summarize_catches(catches: Iterable[Catch], recent: int = RECENT_CATCHES) -> CatchSummary:
    """Summarize an owner's catches; the newest ``recent`` catches come first."""
    rows = list(catches)
    newest = sorted(rows, key=lambda c: (c.caught_at, c.id), reverse=True)
    return CatchSummary(
        total_catches=len(rows),
        species_count=len({c.species_id for c in rows}),
        recent=newest[: max(0, recent)],
    )
