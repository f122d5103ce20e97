"""
Tests for input validation utilities and precision tiers.

Validates:
    - check_int_bounds: integer conversion and inclusive bounds
    - check_choice: membership test with ConfigurationError
    - check_probabilities: non-negative vectors summing to one
    - select_precision: LOW / MED / HIGH lookup
    - Timer: accumulating sections
"""

import numpy as np
import pytest

from phyloboot.core.compute.timing import Timer
from phyloboot.core.compute.tolerances import HIGH, LOW, MED, select_precision
from phyloboot.core.exceptions import ConfigurationError, ValidationError
from phyloboot.core.validation import (
    check_choice,
    check_int_bounds,
    check_probabilities,
)


# ═══════════════════════════════════════════════════════════════════════
# check_int_bounds
# ═══════════════════════════════════════════════════════════════════════


class TestCheckIntBounds:
    """check_int_bounds converts and enforces inclusive bounds."""

    def test_passthrough(self):
        assert check_int_bounds(10, "nsites", 10) == 10

    def test_numeric_string(self):
        assert check_int_bounds("25", "nreps", 1) == 25

    def test_below_minimum(self):
        with pytest.raises(ValidationError, match="nsites: must be >= 10"):
            check_int_bounds(9, "nsites", 10)

    def test_above_maximum(self):
        with pytest.raises(ValidationError, match="must be <= 5"):
            check_int_bounds(6, "k", 1, 5)

    def test_non_integer_string(self):
        with pytest.raises(ValidationError, match="expected an integer"):
            check_int_bounds("ten", "nreps", 1)

    def test_fractional_float(self):
        with pytest.raises(ValidationError):
            check_int_bounds(2.5, "nreps", 1)

    def test_bool_rejected(self):
        with pytest.raises(ValidationError):
            check_int_bounds(True, "nreps", 0)


# ═══════════════════════════════════════════════════════════════════════
# check_choice
# ═══════════════════════════════════════════════════════════════════════


class TestCheckChoice:
    """check_choice raises ConfigurationError for unknown values."""

    def test_valid(self):
        assert check_choice("em", "algorithm", ("bfgs", "em")) == "em"

    def test_invalid(self):
        with pytest.raises(ConfigurationError, match="algorithm"):
            check_choice("newton", "algorithm", ("bfgs", "em"))


# ═══════════════════════════════════════════════════════════════════════
# check_probabilities
# ═══════════════════════════════════════════════════════════════════════


class TestCheckProbabilities:
    """check_probabilities accepts only proper distributions."""

    def test_valid(self):
        p = check_probabilities([0.1, 0.2, 0.3, 0.4], "freqs")
        np.testing.assert_array_equal(p, [0.1, 0.2, 0.3, 0.4])

    def test_does_not_sum_to_one(self):
        with pytest.raises(ValidationError, match="must sum to 1"):
            check_probabilities([0.5, 0.6], "freqs")

    def test_negative(self):
        with pytest.raises(ValidationError, match="negative"):
            check_probabilities([1.5, -0.5], "freqs")

    def test_nan(self):
        with pytest.raises(ValidationError, match="non-finite"):
            check_probabilities([np.nan, 1.0], "freqs")

    def test_empty(self):
        with pytest.raises(ValidationError):
            check_probabilities([], "freqs")


# ═══════════════════════════════════════════════════════════════════════
# Precision tiers
# ═══════════════════════════════════════════════════════════════════════


class TestSelectPrecision:
    """select_precision maps names to tiers."""

    @pytest.mark.parametrize("name,tier", [("LOW", LOW), ("med", MED), ("HIGH", HIGH)])
    def test_lookup(self, name, tier):
        assert select_precision(name) is tier

    def test_tier_passthrough(self):
        assert select_precision(MED) is MED

    def test_tiers_tighten(self):
        assert LOW.ftol > MED.ftol > HIGH.ftol
        assert LOW.em_tol > MED.em_tol > HIGH.em_tol

    def test_unknown(self):
        with pytest.raises(ConfigurationError, match="LOW, MED, or HIGH"):
            select_precision("ULTRA")


# ═══════════════════════════════════════════════════════════════════════
# Timer
# ═══════════════════════════════════════════════════════════════════════


class TestTimer:
    """Timer sections accumulate across repeated entries."""

    def test_sections_accumulate(self):
        timer = Timer()
        timer.start()
        for _ in range(3):
            with timer.section("estimation"):
                pass
        timer.stop()
        result = timer.result()
        assert set(result) == {"total_seconds", "estimation"}
        assert result["estimation"] <= result["total_seconds"]

    def test_result_before_stop(self):
        timer = Timer()
        timer.start()
        with pytest.raises(RuntimeError):
            timer.result()
