"""
Solver dispatch for tree-model fitting.

Public API: fit_model(model, alignment, params, ...) -> Result[FitParams]
"""

from __future__ import annotations

import logging
from typing import Literal

import numpy as np

from phyloboot.core.compute.tolerances import PrecisionTier, select_precision
from phyloboot.core.exceptions import ConfigurationError
from phyloboot.core.protocols import Fitter
from phyloboot.core.result import Result
from phyloboot.phylo._common import FitParams
from phyloboot.phylo.alignment import Alignment
from phyloboot.phylo.backends.bfgs import QuasiNewtonFitter
from phyloboot.phylo.backends.em import EMFitter
from phyloboot.phylo.model import TreeModel

logger = logging.getLogger(__name__)

AlgorithmChoice = Literal['bfgs', 'em']


def get_fitter(algorithm: AlgorithmChoice | Fitter) -> Fitter:
    """Select a fitter by name, or pass a Fitter instance through."""
    if isinstance(algorithm, Fitter):
        return algorithm
    if algorithm == 'bfgs':
        return QuasiNewtonFitter()
    if algorithm == 'em':
        return EMFitter()
    raise ConfigurationError(
        f"Unknown algorithm: {algorithm!r}. Use 'bfgs' or 'em'."
    )


def fit_model(
    model: TreeModel,
    alignment: Alignment,
    params: np.ndarray,
    *,
    algorithm: AlgorithmChoice | Fitter = 'bfgs',
    precision: str | PrecisionTier = 'HIGH',
) -> Result[FitParams]:
    """
    Maximum likelihood fit of a tree model's free parameters.

    The model is mutated in place and left at the estimate. If it has no
    background frequencies they are first set from the alignment's base
    composition.

    Parameters
    ----------
    model : TreeModel
        Model to fit; its tree leaves must all appear in the alignment.
    alignment : Alignment
        Site-pattern counts.
    params : ndarray
        Initial parameter vector, length model.n_params.
    algorithm : str or Fitter
        - 'bfgs' (default): L-BFGS-B quasi-Newton on the log-likelihood.
        - 'em': Expectation-Maximization with numerical M-step.
        A Fitter instance is used as given.
    precision : str or PrecisionTier
        'LOW', 'MED' or 'HIGH' (default).

    Returns
    -------
    Result[FitParams]

    Raises
    ------
    OptimizationFailure
        If the fitter does not converge.
    """
    tier = select_precision(precision)
    fitter = get_fitter(algorithm)

    if model.backgd_freqs is None and not model.family.uniform_freqs:
        model.backgd_freqs = alignment.base_frequencies()

    result = fitter.fit(model, alignment, params, tier)
    for message in result.warnings:
        logger.warning("%s: %s", fitter.name, message)
    return result
