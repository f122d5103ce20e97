"""
Common data structures and helpers for the model fitters.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, TYPE_CHECKING

import numpy as np
from numpy.typing import NDArray

if TYPE_CHECKING:
    from phyloboot.phylo.model import TreeModel

# Box constraints, applied on the log scale by both fitters
BRANCH_BOUNDS = (1e-6, 20.0)
ALPHA_BOUNDS = (1e-2, 1e2)
RATE_BOUNDS = (1e-4, 1e4)


@dataclass(frozen=True)
class FitParams:
    """
    Parameter payload for a fitted tree model.

    - params: converged parameter vector in canonical slot order
    - loglik: log-likelihood at params
    - n_iter: optimizer (or EM) iterations used
    - converged: always True; failures raise instead
    """
    params: NDArray[np.floating[Any]]
    loglik: float
    n_iter: int
    converged: bool


def log_bounds(model: 'TreeModel') -> list[tuple[float, float]]:
    """Per-slot (lower, upper) bounds on log-parameters."""
    bounds = [BRANCH_BOUNDS] * model.n_branch_params
    bounds += [ALPHA_BOUNDS] * model.n_rate_var_params
    bounds += [RATE_BOUNDS] * model.n_rate_mat_params
    return [(np.log(lo), np.log(hi)) for lo, hi in bounds]


def to_log_space(
    params: NDArray[np.floating[Any]],
    bounds: list[tuple[float, float]],
) -> NDArray[np.floating[Any]]:
    """Log-transform a starting vector, clipped into the bounds."""
    lo = np.array([b[0] for b in bounds])
    hi = np.array([b[1] for b in bounds])
    with np.errstate(divide='ignore'):
        x = np.log(np.asarray(params, dtype=np.float64))
    return np.clip(x, lo, hi)
