"""Formula lookup with sex-variant tie-breaking.

Some species have separate growth curves for females and males. Their
catalogue rows are stored as ``"<name> (F)"`` and ``"<name> (M)"``, and the
measurement type stored on those rows is authoritative: once a sex variant
is found, the caller's selected measurement type is overridden.

Lookup never substitutes another measurement type or another species'
formula. A missing formula is a normal outcome, reported as "no estimate".
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional, Protocol

from loguru import logger

from core.exceptions import FishLogException, ValidationError
from models.formula import MeasureType, Sex, WeightFormula, sex_variant_name
from weights.calculator import calculate_weight


class FormulaSource(Protocol):
    """Anything that can look up formula rows, typically the session store."""

    async def fetch_formula(
        self, catalogue_name: str, measure_type: Optional[MeasureType] = None
    ) -> Optional[WeightFormula]:
        ...


@dataclass(frozen=True)
class FormulaMatch:
    """Outcome of a formula lookup.

    Attributes:
        formula: Matching formula row, if any
        measure_type: Measurement type to use from now on (may be overridden)
        has_sex_variants: Species has sex-differentiated formulas
        sex: Sex tag used for the lookup, when sex variants exist
    """
    formula: Optional[WeightFormula]
    measure_type: MeasureType
    has_sex_variants: bool = False
    sex: Optional[Sex] = None

    @property
    def found(self) -> bool:
        return self.formula is not None

    @property
    def measure_type_overridden(self) -> bool:
        return self.has_sex_variants


@dataclass(frozen=True)
class WeightEstimate:
    """Estimated weight plus the lookup details that produced it."""
    weight_kg: Optional[float]
    match: FormulaMatch

    @property
    def available(self) -> bool:
        return self.weight_kg is not None

    @property
    def measure_type(self) -> MeasureType:
        return self.match.measure_type


class FormulaResolver:
    """Resolves species formulas and estimates weights from lengths."""

    def __init__(self, source: FormulaSource):
        self.source = source

    async def detect_sex_variants(
        self, species_name: str, measure_type: MeasureType
    ) -> tuple[Optional[WeightFormula], Optional[WeightFormula]]:
        """Probe for the female and male rows of a species.

        A row at the caller's measurement type is preferred; otherwise any
        stored measurement type is accepted, since the variant rows decide
        which measurement applies.
        """
        variants = []
        for sex in (Sex.FEMALE, Sex.MALE):
            name = sex_variant_name(species_name, sex)
            row = await self.source.fetch_formula(name, measure_type)
            if row is None:
                row = await self.source.fetch_formula(name, None)
            variants.append(row)
        return variants[0], variants[1]

    async def find_formula(
        self,
        species_name: str,
        measure_type: Any = MeasureType.TL,
        sex: Any = None,
    ) -> FormulaMatch:
        """Find the formula to use for a species, measurement type, and sex.

        Never raises: invalid input or a failing store yields an empty match.
        """
        try:
            selected = MeasureType.parse(measure_type)
            sex_tag = Sex.parse(sex)
        except ValidationError as e:
            logger.warning(f"[weight] invalid lookup input for {species_name!r}: {e}")
            return FormulaMatch(formula=None, measure_type=MeasureType.TL)

        name = (species_name or "").strip()
        if not name:
            return FormulaMatch(formula=None, measure_type=selected)

        try:
            female, male = await self.detect_sex_variants(name, selected)
            if female is not None or male is not None:
                effective = (female or male).measure_type
                if effective is not selected:
                    logger.info(
                        f"[weight] {name}: measurement type {selected.value} -> "
                        f"{effective.value} to match sex-variant formula"
                    )
                formula = await self.source.fetch_formula(sex_variant_name(name, sex_tag), effective)
                return FormulaMatch(
                    formula=formula,
                    measure_type=effective,
                    has_sex_variants=True,
                    sex=sex_tag,
                )

            formula = await self.source.fetch_formula(name, selected)
            return FormulaMatch(formula=formula, measure_type=selected)
        except FishLogException as e:
            logger.warning(f"[weight] formula lookup failed for {name!r}: {e}")
            return FormulaMatch(formula=None, measure_type=selected)
        except Exception as e:
            logger.error(f"[weight] formula source error for {name!r}: {type(e).__name__}: {e}")
            return FormulaMatch(formula=None, measure_type=selected)

    async def resolve_weight(
        self,
        length_cm: Any,
        species_name: str,
        measure_type: Any = MeasureType.TL,
        sex: Any = None,
    ) -> WeightEstimate:
        """Estimate a catch weight from its length.

        Args:
            length_cm: Measured length in cm
            species_name: Species catalogue name (without sex suffix)
            measure_type: Caller's selected measurement type
            sex: Optional sex tag (F/M); female when unspecified

        Returns:
            WeightEstimate whose ``weight_kg`` is None when no estimate exists
        """
        match = await self.find_formula(species_name, measure_type, sex)
        if not match.found:
            logger.info(f"[weight] no formula for {species_name!r} ({match.measure_type.value})")
            return WeightEstimate(weight_kg=None, match=match)
        return WeightEstimate(weight_kg=calculate_weight(length_cm, match.formula), match=match)
