"""
Solver dispatch for the parameter bootstrap.

Public API: bootstrap(source, ...) -> BootstrapSolution
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Literal, Sequence

from phyloboot.bootstrap.backends.cpu import CPUBootstrapBackend
from phyloboot.bootstrap.design import DEFAULT_NREPS, BootstrapDesign, FitSettings
from phyloboot.bootstrap.solution import BootstrapSolution
from phyloboot.core.exceptions import ConfigurationError, ValidationError
from phyloboot.phylo.alignment import Alignment
from phyloboot.phylo.model import TreeModel
from phyloboot.phylo.tree import TreeNode

logger = logging.getLogger(__name__)

BackendChoice = Literal['auto', 'cpu']


def _get_backend(backend: BackendChoice):
    """Select backend based on preference."""
    if backend in ('auto', 'cpu'):
        return CPUBootstrapBackend()
    raise ValidationError(f"Unknown backend: {backend!r}")


def bootstrap(
    source: TreeModel | Alignment | Sequence[str | Path | TreeModel] | BootstrapDesign,
    *,
    n_reps: int | None = None,
    n_sites: int | None = None,
    tree: TreeNode | str | None = None,
    subst_model: str = 'REV',
    n_rate_cats: int = 1,
    algorithm: str = 'bfgs',
    precision: str = 'HIGH',
    init_random: bool = False,
    init_model: TreeModel | None = None,
    estimate: bool = True,
    dump_models: str | Path | None = None,
    dump_samples: str | Path | None = None,
    seed: int | None = None,
    backend: BackendChoice = 'auto',
) -> BootstrapSolution:
    """
    Bootstrap the substitution-model parameters on a fixed topology.

    Parameters
    ----------
    source : TreeModel, Alignment, sequence, or BootstrapDesign
        - TreeModel: parametric bootstrap, replicates simulated from it.
        - Alignment: non-parametric bootstrap over its site patterns.
        - Sequence of file names or TreeModels: ingest models fitted
          elsewhere, one replicate each.
        - BootstrapDesign: used as given; other options are ignored.
    n_reps : int, optional
        Number of replicates (default 100). Not allowed when ingesting.
    n_sites : int, optional
        Columns per replicate. Defaults to 1000 (parametric) or the
        alignment length (non-parametric).
    tree : TreeNode or str, optional
        Topology for the non-parametric case (Newick text allowed).
    subst_model : str
        Family of the fitted models: JC69, F81, HKY85, REV or UNREST.
    n_rate_cats : int
        Discrete-gamma rate categories.
    algorithm : str
        'bfgs' (default) or 'em'.
    precision : str
        'LOW', 'MED' or 'HIGH' (default).
    init_random : bool
        Start each fit from random parameters.
    init_model : TreeModel, optional
        Seed model for initialization.
    estimate : bool
        If False, only generate (and dump) replicates.
    dump_models, dump_samples : str or Path, optional
        Roots for per-replicate <root>.<i>.mod and <root>.<i>.ss files.
    seed : int, optional
        Seed for the run's random generator.
    backend : str
        'auto' or 'cpu'.

    Returns
    -------
    BootstrapSolution

    Raises
    ------
    ConfigurationError
        On invalid or conflicting options.
    InvalidDistributionError
        If the alignment has no usable site-pattern counts.
    IngestionError
        If ingested models are unreadable or disagree in size.
    OptimizationFailure
        If any replicate fit fails.
    """
    if isinstance(source, BootstrapDesign):
        design = source
    elif isinstance(source, TreeModel):
        design = BootstrapDesign.for_parametric(
            source,
            n_reps=DEFAULT_NREPS if n_reps is None else n_reps,
            n_sites=n_sites,
            fit=_fit_settings(subst_model, n_rate_cats, algorithm, precision,
                              init_random, init_model),
            estimate=estimate,
            dump_models=dump_models,
            dump_samples=dump_samples,
            seed=seed,
        )
    elif isinstance(source, Alignment):
        design = BootstrapDesign.for_nonparametric(
            source,
            tree=tree,
            n_reps=DEFAULT_NREPS if n_reps is None else n_reps,
            n_sites=n_sites,
            fit=_fit_settings(subst_model, n_rate_cats, algorithm, precision,
                              init_random, init_model),
            estimate=estimate,
            dump_models=dump_models,
            dump_samples=dump_samples,
            seed=seed,
        )
    else:
        if n_reps is not None:
            raise ConfigurationError("can't use n_reps with read_mods")
        design = BootstrapDesign.for_ingest(list(source))

    be = _get_backend(backend)
    result = be.solve(design)
    for message in result.warnings:
        logger.warning(message)
    return BootstrapSolution(_result=result, _design=design)


def _fit_settings(subst_model, n_rate_cats, algorithm, precision,
                  init_random, init_model) -> FitSettings:
    return FitSettings.create(
        subst_model,
        n_rate_cats,
        algorithm=algorithm,
        precision=precision,
        init_random=init_random,
        init_model=init_model,
    )
