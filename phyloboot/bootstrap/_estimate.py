"""
Per-replicate parameter estimation.

A replicate's vector comes from one of two places: a fresh maximum
likelihood fit on the replicate alignment, or a model fitted elsewhere
and ingested from a file, in which case its parameters are read back
without any optimization.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Sequence, TYPE_CHECKING

import numpy as np
from numpy.typing import NDArray

from phyloboot.core.exceptions import ConfigurationError, IngestionError, ValidationError
from phyloboot.phylo.alignment import Alignment
from phyloboot.phylo.model import TreeModel, read_model
from phyloboot.phylo.solvers import fit_model
from phyloboot.phylo.tree import TreeNode

if TYPE_CHECKING:
    from phyloboot.bootstrap.design import FitSettings

logger = logging.getLogger(__name__)

# Heuristic starting point of the default initialization
DEFAULT_BRANCH_LENGTH = 0.1
DEFAULT_KAPPA = 5.0
DEFAULT_ALPHA = 1.0


def read_models(paths: Sequence[str | Path]) -> tuple[TreeModel, ...]:
    """
    Read externally fitted models.

    Raises:
        IngestionError: If a file cannot be read or parsed
    """
    models = []
    for path in paths:
        try:
            models.append(read_model(path))
        except ValidationError as e:
            raise IngestionError(
                f"cannot ingest model {path}: {e}",
                source=str(path),
            ) from e
    return tuple(models)


def dump_path(root: str | Path, rep: int, suffix: str) -> Path:
    """Artifact name for replicate rep (1-based): <root>.<rep>.<suffix>."""
    return Path(f"{root}.{rep}.{suffix}")


class ReplicateEstimator:
    """
    Produces one parameter vector per replicate.

    Args:
        settings: How models are built, initialized and fitted
        tree: Topology for freshly built models (unused with a seed model)
        rng: Generator for random initialization
        dump_models: Root name for per-replicate .mod files, or None
    """

    def __init__(
        self,
        settings: FitSettings | None,
        tree: TreeNode | None,
        rng: np.random.Generator,
        dump_models: str | Path | None = None,
    ):
        self.settings = settings
        self.tree = tree
        self.rng = rng
        self.dump_models = dump_models
        self.expected_params: int | None = None

    # ------------------------------------------------------------------
    # Fit path
    # ------------------------------------------------------------------

    def new_model(self) -> tuple[TreeModel, NDArray[np.floating[Any]]]:
        """
        Build a replicate model and its starting parameter vector.

        A seed model is copied and switched to the configured family and
        rate categories; its background frequencies are dropped so they
        are re-estimated from the replicate.

        Raises:
            ConfigurationError: If there is neither a tree nor a seed model
        """
        settings = self.settings
        if settings.init_model is not None:
            model = settings.init_model.copy()
            model.reinit(settings.family, settings.n_rate_cats)
        elif self.tree is not None:
            model = TreeModel(
                self.tree.copy(),
                settings.family,
                n_rate_cats=settings.n_rate_cats,
            )
        else:
            raise ConfigurationError("must specify tree topology")

        if settings.init == 'random':
            params = model.random_params(self.rng)
        elif settings.init == 'model':
            params = model.params()
        else:
            params = model.init_params(DEFAULT_BRANCH_LENGTH, DEFAULT_KAPPA, DEFAULT_ALPHA)

        if settings.init_model is not None:
            model.backgd_freqs = None
        return model, params

    def fit(
        self,
        alignment: Alignment,
        rep: int,
    ) -> tuple[NDArray[np.floating[Any]], TreeModel]:
        """
        Fit a fresh model to a replicate alignment.

        Args:
            alignment: Replicate data
            rep: 1-based replicate number, used for dump names

        Returns:
            (converged parameter vector, fitted model)

        Raises:
            OptimizationFailure: If the fitter does not converge
        """
        model, params = self.new_model()
        result = fit_model(
            model,
            alignment,
            params,
            algorithm=self.settings.algorithm,
            precision=self.settings.precision,
        )
        if self.dump_models is not None:
            path = dump_path(self.dump_models, rep, 'mod')
            logger.info("Dumping model to %s...", path)
            model.write(path)
        return result.params.params, model

    # ------------------------------------------------------------------
    # Ingest path
    # ------------------------------------------------------------------

    def ingest(
        self,
        model: TreeModel,
        source: str | None = None,
    ) -> tuple[NDArray[np.floating[Any]], TreeModel]:
        """
        Read the parameter vector out of an already fitted model.

        Raises:
            IngestionError: If the vector length differs from the first
                ingested model
        """
        params = model.params()
        if self.expected_params is None:
            self.expected_params = params.size
        elif params.size != self.expected_params:
            raise IngestionError(
                f"input models have different numbers of parameters "
                f"({source or 'model'} has {params.size}, expected "
                f"{self.expected_params})",
                source=source,
                expected=self.expected_params,
                actual=params.size,
            )
        return params, model
