"""Tests for the length-weight calculator."""
import math

import pytest

from core.exceptions import ValidationError
from models.formula import FormulaType, MeasureType, ResultUnit, Sex, WeightFormula, sex_variant_name
from weights.calculator import calculate_weight, format_weight, validate_length


def _formula(a=0.015, b=3.0, formula_type="cm", result_unit="g", measure_type="FL"):
    return WeightFormula(
        catalogue_name="Shad",
        measure_type=measure_type,
        coefficient=a,
        exponent=b,
        formula_type=formula_type,
        result_unit=result_unit,
    )


class TestCalculateWeight:
    def test_grams_formula_converted_to_kg(self):
        # 0.015 * 40^3 = 960 g
        assert calculate_weight(40, _formula()) == pytest.approx(0.96)

    def test_mm_formula_scales_length(self):
        # 40 cm -> 400 mm; 0.000015 * 400^3 = 960 g
        weight = calculate_weight(40, _formula(a=0.000015, formula_type="mm"))
        assert weight == pytest.approx(0.96)

    def test_kg_formula_used_directly(self):
        weight = calculate_weight(10, _formula(a=0.002, b=2.0, result_unit="kg"))
        assert weight == pytest.approx(0.2)

    def test_log_formula_takes_cm(self):
        weight = calculate_weight(200, _formula(a=0.0000063, b=3.2, formula_type="log", result_unit="kg"))
        assert weight == pytest.approx(0.0000063 * 200 ** 3.2)

    def test_numeric_string_length_accepted(self):
        assert calculate_weight("40", _formula()) == pytest.approx(0.96)

    @pytest.mark.parametrize("length", [None, "", "abc", 0, -5, float("nan"), float("inf"), True])
    def test_invalid_length_gives_no_estimate(self, length):
        assert calculate_weight(length, _formula()) is None

    def test_missing_formula_gives_no_estimate(self):
        assert calculate_weight(40, None) is None

    def test_overflow_gives_no_estimate(self):
        assert calculate_weight(1e10, _formula(b=400.0)) is None

    def test_monotonic_in_length(self):
        formula = _formula()
        weights = [calculate_weight(length, formula) for length in (10, 20, 30, 40, 50)]
        assert all(w >= 0 for w in weights)
        assert weights == sorted(weights)
        assert len(set(weights)) == len(weights)


class TestWeightFormula:
    def test_enums_are_coerced(self):
        formula = _formula(formula_type="MM", result_unit="KG", measure_type="fl")
        assert formula.formula_type is FormulaType.MM
        assert formula.result_unit is ResultUnit.KG
        assert formula.measure_type is MeasureType.FL
        assert formula.key == ("Shad", MeasureType.FL)

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"a": "abc"},
            {"b": None},
            {"a": math.nan},
            {"formula_type": "inch"},
            {"result_unit": "lb"},
            {"measure_type": "XL"},
        ],
    )
    def test_invalid_rows_rejected_at_construction(self, kwargs):
        with pytest.raises(ValidationError):
            _formula(**kwargs)

    def test_from_row_defaults(self):
        formula = WeightFormula.from_row(
            {"catalogue_name": "Shad", "measure_type": "FL", "coefficient": "0.0137", "exponent": 3}
        )
        assert formula.formula_type is FormulaType.CM
        assert formula.result_unit is ResultUnit.G
        assert formula.coefficient == pytest.approx(0.0137)

    def test_from_row_missing_field(self):
        with pytest.raises(ValidationError, match="exponent"):
            WeightFormula.from_row({"catalogue_name": "Shad", "measure_type": "FL", "coefficient": 1})

    def test_sex_variant_name(self):
        assert sex_variant_name("Geelbek", Sex.FEMALE) == "Geelbek (F)"
        assert sex_variant_name("Geelbek", Sex.MALE) == "Geelbek (M)"


class TestValidateLength:
    def test_plausible_length(self):
        assert validate_length(40, "TL") is None

    def test_invalid_length(self):
        assert validate_length(0) == "Please enter a valid length greater than 0"

    def test_small_disk_width(self):
        assert "very small" in validate_length(5, MeasureType.DW)

    def test_large_pre_caudal_length(self):
        assert "very large" in validate_length(250, "PCL")


class TestFormatWeight:
    @pytest.mark.parametrize(
        "value, expected",
        [(0.96, "0.96 kg"), (12.346, "12.35 kg"), (None, "0.00 kg"), (0, "0.00 kg"), ("x", "0.00 kg")],
    )
    def test_format(self, value, expected):
        assert format_weight(value) == expected
