"""
Generic result container for phyloboot computations.

Both the model fitters and the bootstrap driver return a Result, so
timing, warnings and backend identity are reported the same way whether
one replicate was fitted or a whole run was summarized.

Design decisions:
    - Generic over parameter payload P
    - info dict for flexible metadata (converged, iterations, mode)
    - timing is optional
    - Immutable (frozen=True)
"""

from dataclasses import dataclass, field
from typing import TypeVar, Generic, Any

P = TypeVar('P')  # Parameter payload type


@dataclass(frozen=True)
class Result(Generic[P]):
    """
    Immutable result envelope.

    Type Parameters:
        P: The payload type (FitParams, BootParams, ...)

    Attributes:
        params: Payload produced by the backend
        info: Structured metadata (algorithm, convergence, run mode)
        timing: Execution timing breakdown, or None if not measured
        backend_name: Identifier of the backend that produced this result
        warnings: Non-fatal issues encountered during computation

    Examples:
        >>> Result(
        ...     params=FitParams(params=v, loglik=-1234.5, n_iter=12, converged=True),
        ...     info={'algorithm': 'bfgs', 'precision': 'HIGH'},
        ...     timing={'total_seconds': 0.4},
        ...     backend_name='cpu_bfgs'
        ... )
    """
    params: P
    info: dict[str, Any]
    timing: dict[str, float] | None
    backend_name: str
    warnings: tuple[str, ...] = field(default_factory=tuple)

    def has_warning(self, substring: str) -> bool:
        """Check if any warning contains the given substring."""
        return any(substring in w for w in self.warnings)
