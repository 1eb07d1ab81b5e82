"""Derived session statistics (duration, totals, CPUE)."""
from __future__ import annotations

import math
from typing import Any, Dict, Iterable

from models.catch import Catch
from models.session import FishingSession


def duration_minutes(session: FishingSession) -> int:
    """Whole minutes between start and end, floored and never negative."""
    if session.end_time is None:
        return 0
    seconds = (session.end_time - session.start_time).total_seconds()
    return max(0, int(seconds // 60))


def per_hour(amount: float, minutes: int) -> float:
    """Rate per hour; zero for a zero-length session instead of NaN/inf."""
    if minutes <= 0:
        return 0.0
    return amount / (minutes / 60.0)


def calculate_session_stats(session: FishingSession, catches: Iterable[Catch]) -> Dict[str, Any]:
    """Compute the fields the statistics aggregator publishes for a session.

    Only catches linked to ``session`` are counted; unknown weights count
    as zero.

    Returns:
        Patch dictionary for the session row
    """
    linked = [c for c in catches if c.session_id == session.id]
    minutes = duration_minutes(session)
    total_weight = math.fsum(c.weight_kg for c in linked if c.weight_kg is not None)
    return {
        "duration_minutes": minutes,
        "total_catches": len(linked),
        "total_weight_kg": total_weight,
        "species_count": len({c.species_id for c in linked}),
        "cpue_catches_per_hour": per_hour(len(linked), minutes),
        "cpue_kg_per_hour": per_hour(total_weight, minutes),
    }


def format_elapsed(seconds: int) -> str:
    """Live timer display: ``1h 5m``, ``4m 12s`` or ``37s``."""
    seconds = max(0, int(seconds))
    hours, rest = divmod(seconds, 3600)
    minutes, secs = divmod(rest, 60)
    if hours > 0:
        return f"{hours}h {minutes}m"
    if minutes > 0:
        return f"{minutes}m {secs}s"
    return f"{secs}s"


def format_duration_minutes(minutes) -> str:
    """Settled duration display: ``1h 30m``, ``45m`` or ``N/A``."""
    if not minutes:
        return "N/A"
    hours, mins = divmod(int(minutes), 60)
    return f"{hours}h {mins}m" if hours > 0 else f"{mins}m"


def describe_session(session: FishingSession) -> str:
    """One-line session history entry."""
    started = f"{session.start_time:%Y-%m-%d %H:%M}"
    where = session.location_description or session.grid_reference or "-"
    if session.is_active:
        return f"{started}  {where}  in progress"
    if not session.is_settled:
        return f"{started}  {where}  ended, statistics pending"
    text = (
        f"{started}  {where}  {format_duration_minutes(session.duration_minutes)}  "
        f"{session.total_catches} catches  {session.total_weight_kg:.2f} kg"
    )
    if session.cpue_catches_per_hour:
        text += f"  CPUE {session.cpue_catches_per_hour:.2f}/hr"
    return text
