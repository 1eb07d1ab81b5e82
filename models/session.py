"""Fishing session records and their caller-supplied conditions."""
from __future__ import annotations

import math
from dataclasses import asdict, dataclass, field, fields, replace
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, Optional

from core.exceptions import ValidationError
from models.catch import normalize_grid_reference

WIND_DIRECTIONS = ("N", "NE", "E", "SE", "S", "SW", "W", "NW")

# Populated by the statistics aggregator after a session ends
DERIVED_FIELDS = (
    "duration_minutes",
    "total_catches",
    "total_weight_kg",
    "species_count",
    "cpue_catches_per_hour",
    "cpue_kg_per_hour",
)


class SessionType(str, Enum):
    RECREATIONAL = "recreational"
    COMPETITION = "competition"
    CHARTER = "charter"


def _optional_number(value: Any, field_name: str) -> Optional[float]:
    if value is None or value == "":
        return None
    try:
        number = float(value)
    except (TypeError, ValueError) as e:
        raise ValidationError(f"{field_name} must be numeric, got {value!r}") from e
    if not math.isfinite(number):
        raise ValidationError(f"{field_name} must be finite, got {value!r}")
    return number


@dataclass(frozen=True)
class SessionDetails:
    """Conditions an angler records when starting a session.

    All fields are optional free-form observations; only the grid code,
    wind direction, and numeric fields are validated.
    """
    location_description: str = ""
    grid_reference: Optional[str] = None
    weather_conditions: Optional[str] = None
    sea_state: Optional[str] = None
    water_temp_c: Optional[float] = None
    wind_direction: Optional[str] = None
    wind_speed_knots: Optional[float] = None
    boat_name: Optional[str] = None
    session_type: SessionType = SessionType.RECREATIONAL
    notes: Optional[str] = None

    def __post_init__(self):
        object.__setattr__(self, "grid_reference", normalize_grid_reference(self.grid_reference))
        object.__setattr__(self, "water_temp_c", _optional_number(self.water_temp_c, "water_temp_c"))
        speed = _optional_number(self.wind_speed_knots, "wind_speed_knots")
        if speed is not None and speed < 0:
            raise ValidationError(f"wind_speed_knots must not be negative, got {speed}")
        object.__setattr__(self, "wind_speed_knots", speed)
        if self.wind_direction:
            direction = str(self.wind_direction).strip().upper()
            if direction not in WIND_DIRECTIONS:
                raise ValidationError(f"Unknown wind direction: {self.wind_direction!r}")
            object.__setattr__(self, "wind_direction", direction)
        else:
            object.__setattr__(self, "wind_direction", None)
        try:
            object.__setattr__(self, "session_type", SessionType(self.session_type))
        except ValueError as e:
            raise ValidationError(f"Unknown session type: {self.session_type!r}") from e

    @classmethod
    def from_mapping(cls, data: Dict[str, Any]) -> "SessionDetails":
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})

    def to_fields(self) -> Dict[str, Any]:
        values = asdict(self)
        values["session_type"] = self.session_type.value
        return values


@dataclass(frozen=True)
class FishingSession:
    """A timed fishing trip owned by one angler.

    Derived statistics stay ``None`` until the statistics aggregator has
    settled the session after it ends.
    """
    id: str
    owner_id: str
    start_time: datetime
    end_time: Optional[datetime] = None
    is_active: bool = True
    session_date: Optional[date] = None
    details: SessionDetails = field(default_factory=SessionDetails)
    duration_minutes: Optional[int] = None
    total_catches: Optional[int] = None
    total_weight_kg: Optional[float] = None
    species_count: Optional[int] = None
    cpue_catches_per_hour: Optional[float] = None
    cpue_kg_per_hour: Optional[float] = None

    def __post_init__(self):
        if self.session_date is None:
            object.__setattr__(self, "session_date", self.start_time.date())

    @property
    def grid_reference(self) -> Optional[str]:
        return self.details.grid_reference

    @property
    def location_description(self) -> str:
        return self.details.location_description

    @property
    def is_settled(self) -> bool:
        """True once every aggregator-derived field is populated."""
        return all(getattr(self, name) is not None for name in DERIVED_FIELDS)

    def apply(self, patch: Dict[str, Any]) -> "FishingSession":
        """Return a copy with ``patch`` applied; unknown keys are rejected."""
        known = {f.name for f in fields(self)} - {"id", "owner_id"}
        unknown = set(patch) - known
        if unknown:
            raise ValidationError(f"Cannot update session fields: {sorted(unknown)}")
        return replace(self, **patch)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "id": self.id,
            "owner_id": self.owner_id,
            "start_time": self.start_time.isoformat(),
            "end_time": self.end_time.isoformat() if self.end_time else None,
            "is_active": self.is_active,
            "session_date": self.session_date.isoformat() if self.session_date else None,
        }
        data.update(self.details.to_fields())
        for name in DERIVED_FIELDS:
            data[name] = getattr(self, name)
        return data
