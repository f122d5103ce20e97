"""
Quasi-Newton fitter for tree models.

Maximizes the pruning log-likelihood with scipy's L-BFGS-B on
log-parameters (which keeps branch lengths and rates positive) using
finite-difference gradients.
"""

from __future__ import annotations

import logging

import numpy as np
from scipy.optimize import minimize

from phyloboot.core.compute.timing import Timer
from phyloboot.core.compute.tolerances import PrecisionTier
from phyloboot.core.exceptions import OptimizationFailure
from phyloboot.core.result import Result
from phyloboot.phylo._common import FitParams, log_bounds, to_log_space
from phyloboot.phylo.alignment import Alignment
from phyloboot.phylo.likelihood import log_likelihood
from phyloboot.phylo.model import TreeModel

logger = logging.getLogger(__name__)


class QuasiNewtonFitter:
    """
    CPU fitter using L-BFGS-B.

    The model is left at the converged parameters.
    """

    @property
    def name(self) -> str:
        return 'cpu_bfgs'

    def fit(
        self,
        model: TreeModel,
        alignment: Alignment,
        params: np.ndarray,
        precision: PrecisionTier,
    ) -> Result[FitParams]:
        """
        Fit model to alignment starting from params.

        Raises:
            OptimizationFailure: On a non-finite likelihood or when the
                iteration cap of the precision tier is hit
        """
        timer = Timer()
        timer.start()
        warnings_list = []
        bounds = log_bounds(model)
        n_evals = 0

        def objective(x: np.ndarray) -> float:
            nonlocal n_evals
            n_evals += 1
            model.unpack_params(np.exp(x))
            ll = log_likelihood(model, alignment)
            if not np.isfinite(ll):
                raise OptimizationFailure(
                    f"non-finite log-likelihood ({ll}) during optimization",
                    iterations=n_evals,
                    reason='non_finite',
                    loglik=ll,
                )
            return -ll

        with timer.section('optimization'):
            opt_result = minimize(
                objective,
                to_log_space(params, bounds),
                method='L-BFGS-B',
                bounds=bounds,
                options={
                    'maxiter': precision.max_iter,
                    'ftol': precision.ftol,
                    'gtol': precision.gtol,
                },
            )

        if opt_result.status == 1:
            raise OptimizationFailure(
                f"L-BFGS-B did not converge in {precision.max_iter} iterations",
                iterations=int(opt_result.nit),
                reason='max_iterations',
                loglik=-float(opt_result.fun),
            )
        if not opt_result.success:
            warnings_list.append(
                f"L-BFGS-B stopped early: {opt_result.message}"
            )

        with timer.section('parameter_extraction'):
            model.unpack_params(np.exp(opt_result.x))
            loglik = log_likelihood(model, alignment)

        timer.stop()
        logger.debug(
            "L-BFGS-B finished after %d iterations, loglik %.6f",
            opt_result.nit, loglik,
        )

        return Result(
            params=FitParams(
                params=model.params(),
                loglik=loglik,
                n_iter=int(opt_result.nit),
                converged=True,
            ),
            info={
                'algorithm': 'bfgs',
                'precision': precision.name,
                'n_function_evals': n_evals,
                'message': str(opt_result.message),
            },
            timing=timer.result(),
            backend_name=self.name,
            warnings=tuple(warnings_list),
        )
