"""Domain records: sessions, catches, and length-weight formulas."""
from __future__ import annotations

from .catch import Catch, NewCatch, WeightSource, is_valid_grid_reference, normalize_grid_reference
from .formula import FormulaType, MeasureType, ResultUnit, Sex, WeightFormula, sex_variant_name
from .session import DERIVED_FIELDS, FishingSession, SessionDetails, SessionType

__all__ = [
    "Catch",
    "NewCatch",
    "WeightSource",
    "is_valid_grid_reference",
    "normalize_grid_reference",
    "FormulaType",
    "MeasureType",
    "ResultUnit",
    "Sex",
    "WeightFormula",
    "sex_variant_name",
    "DERIVED_FIELDS",
    "FishingSession",
    "SessionDetails",
    "SessionType",
]
