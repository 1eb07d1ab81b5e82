"""Catch records logged by an angler."""
from __future__ import annotations

import math
import re
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Any, Optional

from core.exceptions import ValidationError
from models.formula import MeasureType

_GRID_PATTERN = re.compile(r"^[0-9]{5}$")


class WeightSource(str, Enum):
    MANUAL = "manual"
    CALCULATED = "calculated"


def is_valid_grid_reference(code: Any) -> bool:
    """True for a five-digit chart grid code such as ``15217``."""
    return isinstance(code, str) and bool(_GRID_PATTERN.match(code))


def normalize_grid_reference(code: Any) -> Optional[str]:
    """Strip and validate a grid code; blank values mean "no grid"."""
    if code is None:
        return None
    text = str(code).strip()
    if not text:
        return None
    if not is_valid_grid_reference(text):
        raise ValidationError(f"Grid code must be exactly 5 digits (e.g., 15217), got {code!r}")
    return text


def _optional_positive(value: Any, field_name: str) -> Optional[float]:
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise ValidationError(f"{field_name} must be numeric, got {value!r}")
    try:
        number = float(value)
    except (TypeError, ValueError) as e:
        raise ValidationError(f"{field_name} must be numeric, got {value!r}") from e
    if not math.isfinite(number) or number <= 0:
        raise ValidationError(f"{field_name} must be greater than 0, got {value!r}")
    return number


@dataclass(frozen=True)
class NewCatch:
    """Validated catch fields, before the store assigns an identity.

    Attributes:
        owner_id: Angler who landed the fish
        species_id: Species catalogue identifier
        caught_at: When the fish was landed
        weight_kg: Weight in kilograms, manual or calculated
        length_cm: Measured length in centimeters
        length_type: How ``length_cm`` was measured
        grid_reference: Five-digit chart grid code
        session_id: Fishing session the catch belongs to, if any
        released: Whether the fish was released
    """
    owner_id: str
    species_id: str
    caught_at: datetime
    weight_kg: Optional[float] = None
    length_cm: Optional[float] = None
    length_type: MeasureType = MeasureType.TL
    grid_reference: Optional[str] = None
    session_id: Optional[str] = None
    released: bool = False
    weight_source: WeightSource = WeightSource.MANUAL
    notes: Optional[str] = None
    gps_lat: Optional[float] = None
    gps_lon: Optional[float] = None

    def __post_init__(self):
        if not self.owner_id:
            raise ValidationError("owner_id is required")
        if self.species_id is None or self.species_id == "":
            raise ValidationError("species_id is required")
        object.__setattr__(self, "weight_kg", _optional_positive(self.weight_kg, "weight_kg"))
        object.__setattr__(self, "length_cm", _optional_positive(self.length_cm, "length_cm"))
        object.__setattr__(self, "length_type", MeasureType.parse(self.length_type))
        object.__setattr__(self, "grid_reference", normalize_grid_reference(self.grid_reference))
        object.__setattr__(self, "weight_source", WeightSource(self.weight_source))

    def without_session(self) -> "NewCatch":
        return replace(self, session_id=None)


@dataclass(frozen=True)
class Catch(NewCatch):
    """A stored catch. Immutable once created."""
    id: str = field(default="", kw_only=True)

    @classmethod
    def from_new(cls, catch_id: str, new: NewCatch) -> "Catch":
        return cls(**{f: getattr(new, f) for f in new.__dataclass_fields__}, id=catch_id)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "owner_id": self.owner_id,
            "species_id": self.species_id,
            "caught_at": self.caught_at.isoformat(),
            "weight_kg": self.weight_kg,
            "length_cm": self.length_cm,
            "length_type": self.length_type.value,
            "grid_reference": self.grid_reference,
            "session_id": self.session_id,
            "released": self.released,
            "weight_source": self.weight_source.value,
            "notes": self.notes,
            "gps_lat": self.gps_lat,
            "gps_lon": self.gps_lon,
        }
