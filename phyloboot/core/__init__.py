"""
Core infrastructure for phyloboot.

Shared abstractions used by the phylo collaborators and the bootstrap
engine.

Key components:
    protocols: Fitter, Backend protocols
    result: Generic Result[P] envelope
    exceptions: Exception hierarchy
    validation: Input validators
    compute: Timing and precision tiers
"""

from phyloboot.core.protocols import Fitter, Backend
from phyloboot.core.result import Result
from phyloboot.core.exceptions import (
    PhyloBootError,
    ValidationError,
    ConfigurationError,
    InvalidDistributionError,
    IngestionError,
    NumericalError,
    OptimizationFailure,
    ConsistencyFault,
)

__all__ = [
    # Protocols
    "Fitter",
    "Backend",
    # Result
    "Result",
    # Exceptions
    "PhyloBootError",
    "ValidationError",
    "ConfigurationError",
    "InvalidDistributionError",
    "IngestionError",
    "NumericalError",
    "OptimizationFailure",
    "ConsistencyFault",
]
