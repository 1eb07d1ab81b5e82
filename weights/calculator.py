"""Length to weight calculation using allometric formulas.

All functions here are pure and never raise for bad input: a missing or
unusable value simply yields no estimate (``None``) so manual weight entry
always remains possible.
"""
from __future__ import annotations

import math
from typing import Any, Optional

from loguru import logger

from models.formula import FormulaType, MeasureType, ResultUnit, WeightFormula

# Plausible lengths in cm per measurement type
LENGTH_RANGES = {
    MeasureType.TL: (5.0, 500.0),
    MeasureType.FL: (5.0, 400.0),
    MeasureType.DW: (10.0, 300.0),
    MeasureType.PCL: (10.0, 200.0),
    MeasureType.LBFL: (5.0, 400.0),
}
DEFAULT_LENGTH_RANGE = (0.0, 1000.0)


def to_number(value: Any) -> Optional[float]:
    """Parse a finite float from numbers or numeric strings, else ``None``."""
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def calculate_weight(length_cm: Any, formula: Optional[WeightFormula]) -> Optional[float]:
    """Estimate weight in kilograms for a length measured in centimeters.

    Args:
        length_cm: Measured length in cm
        formula: Resolved length-weight formula

    Returns:
        Weight in kg, or None when no valid estimate can be made
    """
    if formula is None:
        return None

    length = to_number(length_cm)
    if length is None or length <= 0:
        return None

    a = to_number(formula.coefficient)
    b = to_number(formula.exponent)
    if a is None or b is None:
        return None

    # mm formulas expect millimeters; cm and log formulas take cm as-is
    if formula.formula_type is FormulaType.MM:
        length = length * 10.0

    try:
        raw = a * math.pow(length, b)
    except (OverflowError, ValueError):
        return None

    weight_kg = raw / 1000.0 if formula.result_unit is ResultUnit.G else raw

    if not math.isfinite(weight_kg) or weight_kg < 0:
        return None

    logger.debug(
        f"[weight] {formula.catalogue_name} {formula.measure_type.value} "
        f"L={length:g}{'mm' if formula.formula_type is FormulaType.MM else 'cm'} "
        f"a={a:g} b={b:g} raw={raw:g}{formula.result_unit.value} -> {weight_kg:.3f} kg"
    )
    return weight_kg


def validate_length(length_cm: Any, measure_type: Any = MeasureType.TL) -> Optional[str]:
    """Advisory check of a length against typical ranges.

    Returns:
        A warning message, or None when the length looks plausible
    """
    length = to_number(length_cm)
    if length is None or length <= 0:
        return "Please enter a valid length greater than 0"

    try:
        mtype = MeasureType(str(getattr(measure_type, "value", measure_type)).upper())
        low, high = LENGTH_RANGES[mtype]
        label = mtype.value
    except ValueError:
        low, high = DEFAULT_LENGTH_RANGE
        label = str(measure_type)

    if length < low:
        return f"Length seems very small for {label} measurement"
    if length > high:
        return f"Length seems very large for {label} measurement - please verify"
    return None


def format_weight(weight_kg: Any) -> str:
    """Format a weight for display, always in kg with two decimals."""
    weight = to_number(weight_kg)
    if weight is None or weight <= 0:
        return "0.00 kg"
    return f"{weight:.2f} kg"
