"""Length to weight estimation.

Main components:
- calculator.py: pure ``W = a * L^b`` evaluation with unit normalization
- resolver.py: formula lookup with sex-variant tie-breaking
"""
from __future__ import annotations

from .calculator import calculate_weight, format_weight, validate_length
from .resolver import FormulaMatch, FormulaResolver, FormulaSource, WeightEstimate

__all__ = [
    "calculate_weight",
    "format_weight",
    "validate_length",
    "FormulaMatch",
    "FormulaResolver",
    "FormulaSource",
    "WeightEstimate",
]
