"""
Tests for the phyloboot exception hierarchy.

Validates:
    - Inheritance chain (all exceptions catchable via PhyloBootError)
    - Diagnostic attributes on InvalidDistributionError, IngestionError,
      OptimizationFailure
    - Default attribute values (None for optional attributes)
"""

import pytest

from phyloboot.core.exceptions import (
    ConfigurationError,
    ConsistencyFault,
    IngestionError,
    InvalidDistributionError,
    NumericalError,
    OptimizationFailure,
    PhyloBootError,
    ValidationError,
)


# ═══════════════════════════════════════════════════════════════════════
# Inheritance hierarchy
# ═══════════════════════════════════════════════════════════════════════


class TestInheritance:
    """Every exception is catchable via PhyloBootError."""

    @pytest.mark.parametrize("exc_type", [
        ValidationError,
        ConfigurationError,
        InvalidDistributionError,
        IngestionError,
        NumericalError,
        ConsistencyFault,
    ])
    def test_is_phyloboot_error(self, exc_type):
        with pytest.raises(PhyloBootError):
            raise exc_type("failed")

    def test_configuration_error_is_validation_error(self):
        with pytest.raises(ValidationError):
            raise ConfigurationError("illegal substitution model")

    def test_optimization_failure_is_numerical_error(self):
        with pytest.raises(NumericalError):
            raise OptimizationFailure("did not converge", iterations=10)

    def test_ingestion_error_is_not_validation_error(self):
        err = IngestionError("bad model file")
        assert not isinstance(err, ValidationError)


# ═══════════════════════════════════════════════════════════════════════
# Diagnostic attributes
# ═══════════════════════════════════════════════════════════════════════


class TestInvalidDistributionError:
    """InvalidDistributionError carries the distribution's shape."""

    def test_all_attributes(self):
        err = InvalidDistributionError("no patterns", n_tuples=0, total=0.0)
        assert str(err) == "no patterns"
        assert err.n_tuples == 0
        assert err.total == 0.0

    def test_defaults_are_none(self):
        err = InvalidDistributionError("bad")
        assert err.n_tuples is None
        assert err.total is None


class TestIngestionError:
    """IngestionError records which model disagreed and how."""

    def test_all_attributes(self):
        err = IngestionError(
            "input models have different numbers of parameters",
            source="rep.2.mod",
            expected=11,
            actual=18,
        )
        assert err.source == "rep.2.mod"
        assert err.expected == 11
        assert err.actual == 18

    def test_defaults_are_none(self):
        err = IngestionError("unreadable")
        assert err.source is None
        assert err.expected is None
        assert err.actual is None


class TestOptimizationFailure:
    """OptimizationFailure carries iteration diagnostics."""

    def test_all_attributes(self):
        err = OptimizationFailure(
            "EM did not converge",
            iterations=200,
            reason="max_iterations",
            loglik=-1234.5,
        )
        assert str(err) == "EM did not converge"
        assert err.iterations == 200
        assert err.reason == "max_iterations"
        assert err.loglik == -1234.5

    def test_catchable_with_attributes(self):
        with pytest.raises(OptimizationFailure) as exc_info:
            raise OptimizationFailure("nan", iterations=3, reason="non_finite")
        assert exc_info.value.reason == "non_finite"
        assert exc_info.value.loglik is None
