"""
Precision tiers for model fitting.

The three tiers mirror the LOW / MED / HIGH precision levels a user can
request on the command line. One tier is selected for the whole run and
handed to whichever fitter is in use:

- ftol, gtol: L-BFGS-B relative function and projected-gradient tolerances
- em_tol: EM stops once the log-likelihood gain per iteration drops below this
- max_iter: iteration cap; exceeding it is an OptimizationFailure
"""

from dataclasses import dataclass

from phyloboot.core.exceptions import ConfigurationError


@dataclass(frozen=True)
class PrecisionTier:
    """Convergence specification for one precision level."""
    name: str
    ftol: float
    gtol: float
    em_tol: float
    max_iter: int


LOW = PrecisionTier(
    name='LOW',
    ftol=1e-5,
    gtol=1e-3,
    em_tol=1e-2,
    max_iter=200,
)

MED = PrecisionTier(
    name='MED',
    ftol=1e-7,
    gtol=1e-4,
    em_tol=1e-4,
    max_iter=500,
)

HIGH = PrecisionTier(
    name='HIGH',
    ftol=1e-10,
    gtol=1e-6,
    em_tol=1e-6,
    max_iter=1000,
)

PRECISION_TIERS = {tier.name: tier for tier in (LOW, MED, HIGH)}


def select_precision(name: 'str | PrecisionTier') -> PrecisionTier:
    """Look up a precision tier by name ('LOW', 'MED' or 'HIGH')."""
    if isinstance(name, PrecisionTier):
        return name
    try:
        return PRECISION_TIERS[str(name).upper()]
    except KeyError:
        raise ConfigurationError(
            f"precision must be LOW, MED, or HIGH, got {name!r}"
        ) from None
