"""
Exception hierarchy for phyloboot.

All exceptions inherit from PhyloBootError so callers (and the CLI) can
catch any library-specific failure in one place. Every error is terminal
for a bootstrap run: the library raises where the problem is detected and
never retries or skips a replicate.

Design principles:
    - Exceptions carry diagnostic information as attributes
    - Error messages are actionable with actual vs expected values
    - Never catch and re-raise with less information
"""


class PhyloBootError(Exception):
    """Base exception for all phyloboot errors."""
    pass


class ValidationError(PhyloBootError):
    """
    Input validation failed.

    Raised when user-provided values fail validation checks
    (out-of-range counts, malformed tree strings, bad alignments).
    """
    pass


class ConfigurationError(ValidationError):
    """
    Run configuration is invalid or inconsistent.

    Raised for an illegal substitution model name, an unknown alignment
    format or precision tier, a missing tree topology, a tree whose size
    does not match the alignment, or conflicting options.
    """
    pass


class InvalidDistributionError(PhyloBootError):
    """
    Empirical site-pattern distribution is malformed.

    Attributes:
        n_tuples: Number of distinct site patterns
        total: Total pattern count (mass) before normalization
    """

    def __init__(
        self,
        message: str,
        n_tuples: int | None = None,
        total: float | None = None,
    ):
        super().__init__(message)
        self.n_tuples = n_tuples
        self.total = total


class IngestionError(PhyloBootError):
    """
    Externally fitted models could not be ingested.

    Raised when a model file is unreadable or unparsable, or when the
    supplied models disagree on parameter-vector length.

    Attributes:
        source: File name or description of the offending model
        expected: Parameter count established by the first model
        actual: Parameter count of the offending model
    """

    def __init__(
        self,
        message: str,
        source: str | None = None,
        expected: int | None = None,
        actual: int | None = None,
    ):
        super().__init__(message)
        self.source = source
        self.expected = expected
        self.actual = actual


class NumericalError(PhyloBootError):
    """
    Numerical computation failed.

    Base class for errors arising from numerical issues during fitting.
    """
    pass


class OptimizationFailure(NumericalError):
    """
    Parameter optimization failed.

    Raised when a fitter exhausts its iteration budget or produces a
    non-finite likelihood or parameter vector. Not retried.

    Attributes:
        iterations: Number of iterations completed
        reason: Why the fit failed (e.g., 'max_iterations', 'non_finite')
        loglik: Last log-likelihood seen, if any
    """

    def __init__(
        self,
        message: str,
        iterations: int,
        reason: str | None = None,
        loglik: float | None = None,
    ):
        super().__init__(message)
        self.iterations = iterations
        self.reason = reason
        self.loglik = loglik


class ConsistencyFault(PhyloBootError):
    """
    Internal invariant violated.

    Indicates a defect rather than bad input, e.g. the number of parameter
    descriptions differs from the model's free-parameter count.
    """
    pass
