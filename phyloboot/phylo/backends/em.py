"""
EM (Expectation-Maximization) fitter for tree models.

E-step: posterior expected transition counts for every branch and rate
category, from an inside/outside pass over the tree
(likelihood.expected_transitions).

M-step: maximize the expected complete-data log-likelihood

    sum over branches b, categories k, states i, j of
        E[b, k, i, j] * log P_ij(t_b * r_k)

over all free parameters with L-BFGS-B on log-parameters. Equilibrium
frequencies and category weights are fixed, so their terms are constant.

Iteration stops once the log-likelihood gain per iteration falls below
the precision tier's em_tol.
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
from phyloboot.phylo.likelihood import expected_transitions
from phyloboot.phylo.model import TreeModel

logger = logging.getLogger(__name__)

# Iterations allowed to each numerical M-step
M_STEP_MAX_ITER = 100


class EMFitter:
    """
    CPU fitter using EM with a numerical M-step.

    The model is left at the converged parameters.
    """

    @property
    def name(self) -> str:
        return 'cpu_em'

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
            OptimizationFailure: On a non-finite likelihood or when
                precision.max_iter EM iterations do not converge
        """
        timer = Timer()
        timer.start()
        warnings_list = []
        bounds = log_bounds(model)
        model.unpack_params(np.exp(to_log_space(params, bounds)))

        loglik_history = []
        converged = False
        n_iter = 0
        loglik = -np.inf

        for iteration in range(precision.max_iter):
            with timer.section('e_step'):
                E, loglik = expected_transitions(model, alignment)
            if not np.isfinite(loglik):
                raise OptimizationFailure(
                    f"non-finite log-likelihood ({loglik}) in EM iteration {iteration + 1}",
                    iterations=iteration,
                    reason='non_finite',
                    loglik=loglik,
                )
            n_iter = iteration + 1

            if loglik_history and loglik - loglik_history[-1] < precision.em_tol:
                converged = True
                if loglik < loglik_history[-1]:
                    warnings_list.append(
                        f"EM log-likelihood decreased by "
                        f"{loglik_history[-1] - loglik:.3g} in the last iteration"
                    )
                loglik_history.append(loglik)
                break
            loglik_history.append(loglik)

            with timer.section('m_step'):
                self._m_step(model, E, bounds, precision)

        if not converged:
            raise OptimizationFailure(
                f"EM did not converge in {precision.max_iter} iterations",
                iterations=n_iter,
                reason='max_iterations',
                loglik=loglik,
            )

        timer.stop()
        logger.debug("EM converged after %d iterations, loglik %.6f", n_iter, loglik)

        return Result(
            params=FitParams(
                params=model.params(),
                loglik=float(loglik),
                n_iter=n_iter,
                converged=True,
            ),
            info={
                'algorithm': 'em',
                'precision': precision.name,
                'convergence_criterion': 'loglik_gain',
                'loglik_history': loglik_history,
            },
            timing=timer.result(),
            backend_name=self.name,
            warnings=tuple(warnings_list),
        )

    # ------------------------------------------------------------------
    # M-step
    # ------------------------------------------------------------------

    def _m_step(
        self,
        model: TreeModel,
        E: np.ndarray,
        bounds: list[tuple[float, float]],
        precision: PrecisionTier,
    ) -> None:
        """Maximize the expected complete-data log-likelihood in place."""

        def objective(x: np.ndarray) -> float:
            model.unpack_params(np.exp(x))
            return -self._expected_complete_loglik(model, E)

        opt_result = minimize(
            objective,
            to_log_space(model.params(), bounds),
            method='L-BFGS-B',
            bounds=bounds,
            options={
                'maxiter': M_STEP_MAX_ITER,
                'ftol': precision.ftol,
                'gtol': precision.gtol,
            },
        )
        model.unpack_params(np.exp(opt_result.x))

    @staticmethod
    def _expected_complete_loglik(model: TreeModel, E: np.ndarray) -> float:
        rates, _ = model.rate_categories()
        Q = model.rate_matrix()
        total = 0.0
        for b, node in enumerate(model.tree.iter_branches()):
            for k, rate in enumerate(rates):
                P = model.transition_matrix(node.dparent * rate, Q)
                total += float(np.sum(E[b, k] * np.log(np.maximum(P, 1e-300))))
        return total
