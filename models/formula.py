"""Length-weight formula reference data.

Formulas follow the allometric model ``W = a * L^b``. The unit the exponent
model expects for ``L`` and the unit of ``W`` are closed enumerations, so a
malformed catalogue row is rejected when the formula is built rather than
when a weight is calculated.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping, Optional

from core.exceptions import ValidationError


class MeasureType(str, Enum):
    """How a fish length was measured."""
    TL = "TL"      # total length
    FL = "FL"      # fork length
    DW = "DW"      # disk width (rays)
    PCL = "PCL"    # pre-caudal length (sharks)
    LBFL = "LBFL"  # lower-jaw fork length (billfish)

    @property
    def description(self) -> str:
        return MEASURE_DESCRIPTIONS[self]

    @classmethod
    def parse(cls, value: Any) -> "MeasureType":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().upper())
        except ValueError as e:
            raise ValidationError(f"Unknown measurement type: {value!r}") from e


MEASURE_DESCRIPTIONS = {
    MeasureType.TL: "Total Length - Snout tip to tail tip",
    MeasureType.FL: "Fork Length - Snout tip to tail fork",
    MeasureType.DW: "Disk Width - Widest part of disk (rays)",
    MeasureType.PCL: "Pre-Caudal Length - Snout to precaudal pit (sharks)",
    MeasureType.LBFL: "Lower Jaw Fork Length - Lower jaw to tail fork (billfish)",
}


class FormulaType(str, Enum):
    """Length unit the formula's exponent model expects."""
    CM = "cm"
    MM = "mm"
    LOG = "log"  # log-linear fit, evaluated on lengths in cm


class ResultUnit(str, Enum):
    G = "g"
    KG = "kg"


class Sex(str, Enum):
    FEMALE = "F"
    MALE = "M"

    @classmethod
    def parse(cls, value: Any) -> "Sex":
        if value is None or value == "":
            return cls.FEMALE
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().upper()[:1])
        except ValueError as e:
            raise ValidationError(f"Unknown sex tag: {value!r}") from e


def sex_variant_name(catalogue_name: str, sex: Sex) -> str:
    """Catalogue name of a sex-differentiated formula row, e.g. ``Geelbek (F)``."""
    return f"{catalogue_name} ({sex.value})"


def _coerce_enum(enum_cls, value, field_name: str):
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(str(value).strip().lower())
    except ValueError as e:
        raise ValidationError(f"Invalid {field_name}: {value!r}") from e


def _coerce_number(value, field_name: str) -> float:
    if isinstance(value, bool):
        raise ValidationError(f"{field_name} must be numeric, got {value!r}")
    try:
        number = float(value)
    except (TypeError, ValueError) as e:
        raise ValidationError(f"{field_name} must be numeric, got {value!r}") from e
    if not math.isfinite(number):
        raise ValidationError(f"{field_name} must be finite, got {value!r}")
    return number


@dataclass(frozen=True)
class WeightFormula:
    """One row of the length-weight formula catalogue.

    Identity is the ``(catalogue_name, measure_type)`` pair; sex-variant rows
    carry an ``" (F)"`` or ``" (M)"`` suffix on the catalogue name.

    Attributes:
        catalogue_name: Species catalogue name, optionally sex-suffixed
        measure_type: Measurement the formula was fitted on
        coefficient: Allometric coefficient ``a``
        exponent: Allometric exponent ``b``
        formula_type: Length unit the model expects
        result_unit: Unit of the raw result
        scientific_name: Optional binomial name
    """
    catalogue_name: str
    measure_type: MeasureType
    coefficient: float
    exponent: float
    formula_type: FormulaType = FormulaType.CM
    result_unit: ResultUnit = ResultUnit.G
    scientific_name: Optional[str] = None

    def __post_init__(self):
        if not self.catalogue_name or not str(self.catalogue_name).strip():
            raise ValidationError("catalogue_name is required")
        object.__setattr__(self, "measure_type", MeasureType.parse(self.measure_type))
        object.__setattr__(self, "formula_type", _coerce_enum(FormulaType, self.formula_type, "formula_type"))
        object.__setattr__(self, "result_unit", _coerce_enum(ResultUnit, self.result_unit, "result_unit"))
        object.__setattr__(self, "coefficient", _coerce_number(self.coefficient, "coefficient"))
        object.__setattr__(self, "exponent", _coerce_number(self.exponent, "exponent"))

    @property
    def key(self) -> tuple[str, MeasureType]:
        return self.catalogue_name, self.measure_type

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "WeightFormula":
        """Build a formula from a catalogue row (JSON object or DB record)."""
        try:
            return cls(
                catalogue_name=row["catalogue_name"],
                measure_type=row["measure_type"],
                coefficient=row["coefficient"],
                exponent=row["exponent"],
                formula_type=row.get("formula_type") or FormulaType.CM,
                result_unit=row.get("result_unit") or ResultUnit.G,
                scientific_name=row.get("scientific_name"),
            )
        except KeyError as e:
            raise ValidationError(f"Formula row missing field {e.args[0]!r}") from e

    def to_dict(self) -> dict:
        return {
            "catalogue_name": self.catalogue_name,
            "measure_type": self.measure_type.value,
            "coefficient": self.coefficient,
            "exponent": self.exponent,
            "formula_type": self.formula_type.value,
            "result_unit": self.result_unit.value,
            "scientific_name": self.scientific_name,
        }
