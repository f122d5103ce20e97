"""
Core protocols for phyloboot.

Structural interfaces for the two pluggable seams: the model fitter
invoked once per replicate, and the backend that runs a whole bootstrap
design. Protocol (structural typing) is used instead of ABC so that an
external fitter only has to provide the right methods.
"""

from __future__ import annotations

from typing import Protocol, TypeVar, Any, runtime_checkable, TYPE_CHECKING

import numpy as np
from numpy.typing import NDArray

if TYPE_CHECKING:
    from phyloboot.core.compute.tolerances import PrecisionTier
    from phyloboot.core.result import Result
    from phyloboot.phylo.alignment import Alignment
    from phyloboot.phylo.model import TreeModel

P = TypeVar('P')  # Parameter payload type
D = TypeVar('D')  # Design type


@runtime_checkable
class Fitter(Protocol):
    """
    Protocol for numerical parameter optimizers.

    A fitter starts from an initial parameter vector, mutates the model in
    place to the converged estimate, and reports the converged vector in
    the Result payload. It must raise OptimizationFailure rather than
    return a non-converged estimate.
    """

    @property
    def name(self) -> str:
        """
        Fitter identifier.

        Convention: '{device}_{algorithm}', e.g. 'cpu_bfgs', 'cpu_em'.
        """
        ...

    def fit(
        self,
        model: 'TreeModel',
        alignment: 'Alignment',
        params: NDArray[np.floating[Any]],
        precision: 'PrecisionTier',
    ) -> 'Result[Any]':
        """
        Fit model parameters to an alignment.

        Args:
            model: Tree model to optimize (mutated in place)
            alignment: Site-pattern counts to fit
            params: Initial parameter vector in canonical slot order
            precision: Convergence tolerances

        Returns:
            Result whose payload carries the converged parameter vector

        Raises:
            OptimizationFailure: If the fit does not converge
        """
        ...


@runtime_checkable
class Backend(Protocol[D, P]):
    """
    Protocol for bootstrap backends.

    Backends are stateless; everything they need comes from the design.
    """

    @property
    def name(self) -> str:
        """Backend identifier, e.g. 'cpu_bootstrap'."""
        ...

    def solve(self, design: D) -> 'Result[P]':
        """
        Execute the bootstrap run described by the design.

        Raises:
            PhyloBootError: Any failure is fatal to the whole run
        """
        ...
