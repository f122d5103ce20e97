"""
Design classes for the parameter bootstrap.

A BootstrapDesign fixes everything a run needs: where replicates come
from, how many there are, how each one is fitted and which artifacts
are written along the way. Immutable, validated at construction.

The replicate source is a tagged variant chosen once per run:
    ParametricSource     simulate from a generative model
    NonparametricSource  resample site patterns of an alignment
    IngestSource         read back models fitted elsewhere
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import ClassVar, Sequence, Union

from phyloboot.bootstrap._estimate import read_models
from phyloboot.bootstrap._resample import EmpiricalDistribution
from phyloboot.core.compute.tolerances import PrecisionTier, select_precision
from phyloboot.core.exceptions import ConfigurationError
from phyloboot.core.validation import check_choice, check_int_bounds
from phyloboot.phylo.alignment import Alignment
from phyloboot.phylo.model import TreeModel
from phyloboot.phylo.substitution import SubstitutionFamily, get_family
from phyloboot.phylo.tree import TreeNode, parse_newick

DEFAULT_NREPS = 100
DEFAULT_PARAMETRIC_NSITES = 1000


@dataclass(frozen=True)
class ParametricSource:
    """Replicates simulated from model."""
    model: TreeModel
    kind: ClassVar[str] = 'parametric'


@dataclass(frozen=True)
class NonparametricSource:
    """Replicates resampled from the site patterns of alignment."""
    alignment: Alignment
    distribution: EmpiricalDistribution
    kind: ClassVar[str] = 'nonparametric'


@dataclass(frozen=True)
class IngestSource:
    """Replicate estimates read from models fitted elsewhere."""
    models: tuple[TreeModel, ...]
    names: tuple[str, ...]
    kind: ClassVar[str] = 'ingest'


ReplicateSource = Union[ParametricSource, NonparametricSource, IngestSource]


@dataclass(frozen=True)
class FitSettings:
    """
    How each replicate model is built and fitted.

    Attributes:
        family: Substitution family of the fitted models
        n_rate_cats: Discrete-gamma rate categories
        algorithm: 'bfgs' or 'em'
        precision: Optimizer tolerance tier
        init: 'default' (heuristic), 'random', or 'model' (seed model)
        init_model: Seed model, or None
    """
    family: SubstitutionFamily
    n_rate_cats: int
    algorithm: str
    precision: PrecisionTier
    init: str
    init_model: TreeModel | None

    @classmethod
    def create(
        cls,
        subst_model: str | SubstitutionFamily = 'REV',
        n_rate_cats: int = 1,
        *,
        algorithm: str = 'bfgs',
        precision: str | PrecisionTier = 'HIGH',
        init_random: bool = False,
        init_model: TreeModel | None = None,
    ) -> FitSettings:
        """
        Create fit settings with validation.

        Random initialization takes precedence over the seed model's
        parameters; the seed model still supplies the tree.

        Raises:
            ConfigurationError: On an unknown family, algorithm or
                precision tier
            ValidationError: If n_rate_cats < 1
        """
        family = get_family(subst_model)
        n_rate_cats = check_int_bounds(n_rate_cats, 'n_rate_cats', 1)
        check_choice(algorithm, 'algorithm', ('bfgs', 'em'))
        tier = select_precision(precision)
        if init_random:
            init = 'random'
        elif init_model is not None:
            init = 'model'
        else:
            init = 'default'
        return cls(
            family=family,
            n_rate_cats=n_rate_cats,
            algorithm=algorithm,
            precision=tier,
            init=init,
            init_model=init_model,
        )


@dataclass(frozen=True)
class BootstrapDesign:
    """
    Frozen design for a bootstrap run.

    Attributes:
        source: Where replicates come from
        n_reps: Number of replicates
        n_sites: Columns per generated replicate (unused for ingest)
        estimate: Fit replicates and report; False only generates
        fit: Fit settings (None for ingest)
        tree: Topology of freshly built replicate models
        dump_models: Root name for per-replicate .mod files
        dump_samples: Root name for per-replicate .ss files
        seed: Seed for the run's random generator
    """
    source: ReplicateSource
    n_reps: int
    n_sites: int | None
    estimate: bool
    fit: FitSettings | None
    tree: TreeNode | None
    dump_models: str | None
    dump_samples: str | None
    seed: int | None

    @property
    def kind(self) -> str:
        return self.source.kind

    @classmethod
    def for_parametric(
        cls,
        model: TreeModel,
        *,
        n_reps: int = DEFAULT_NREPS,
        n_sites: int | None = None,
        fit: FitSettings | None = None,
        estimate: bool = True,
        dump_models: str | Path | None = None,
        dump_samples: str | Path | None = None,
        seed: int | None = None,
    ) -> BootstrapDesign:
        """
        Parametric bootstrap: simulate replicates from model.

        Replicate models are fitted on model's tree. n_sites defaults
        to 1000.

        Raises:
            ValidationError: If model cannot generate data or a count is
                out of range
        """
        model.equilibrium_freqs()
        if n_sites is None:
            n_sites = DEFAULT_PARAMETRIC_NSITES
        return cls._build(
            ParametricSource(model=model),
            tree=model.tree,
            n_reps=n_reps,
            n_sites=n_sites,
            fit=fit,
            estimate=estimate,
            dump_models=dump_models,
            dump_samples=dump_samples,
            seed=seed,
        )

    @classmethod
    def for_nonparametric(
        cls,
        alignment: Alignment,
        *,
        tree: TreeNode | str | None = None,
        n_reps: int = DEFAULT_NREPS,
        n_sites: int | None = None,
        fit: FitSettings | None = None,
        estimate: bool = True,
        dump_models: str | Path | None = None,
        dump_samples: str | Path | None = None,
        seed: int | None = None,
    ) -> BootstrapDesign:
        """
        Non-parametric bootstrap: resample the alignment's site patterns.

        Without a tree, two sequences get "(a,b)" and three sequences
        under a reversible family get "(a,(b,c))". n_sites defaults to the
        alignment length.

        Raises:
            ConfigurationError: If a tree is needed but cannot be derived,
                or the tree (or the seed model's tree) does not match the
                alignment
            InvalidDistributionError: If the alignment has no usable
                site-pattern counts
        """
        fit = fit if fit is not None else FitSettings.create()
        if isinstance(tree, str):
            tree = parse_newick(tree)
        if tree is None:
            tree = _default_tree(alignment, fit.family)
        if tree is None and estimate and fit.init_model is None:
            raise ConfigurationError("must specify tree topology")
        if tree is not None:
            _check_tree_matches(tree, alignment)
        if fit.init_model is not None:
            # replicate models are copied from the seed, tree included
            _check_tree_matches(fit.init_model.tree, alignment)

        distribution = EmpiricalDistribution.from_counts(alignment.counts)
        if n_sites is None:
            n_sites = alignment.length
        return cls._build(
            NonparametricSource(alignment=alignment, distribution=distribution),
            tree=tree,
            n_reps=n_reps,
            n_sites=n_sites,
            fit=fit,
            estimate=estimate,
            dump_models=dump_models,
            dump_samples=dump_samples,
            seed=seed,
        )

    @classmethod
    def for_ingest(
        cls,
        models: Sequence[str | Path | TreeModel],
    ) -> BootstrapDesign:
        """
        Summarize models fitted elsewhere, one per replicate.

        Accepts file names (read immediately) or TreeModel instances.

        Raises:
            ConfigurationError: If no models are given
            IngestionError: If a model file cannot be read
        """
        if not models:
            raise ConfigurationError("read_mods: no model files given")
        loaded = []
        names = []
        for i, item in enumerate(models):
            if isinstance(item, TreeModel):
                loaded.append(item)
                names.append(f"model #{i + 1}")
            else:
                loaded.extend(read_models([item]))
                names.append(str(item))
        return cls(
            source=IngestSource(models=tuple(loaded), names=tuple(names)),
            n_reps=len(loaded),
            n_sites=None,
            estimate=True,
            fit=None,
            tree=None,
            dump_models=None,
            dump_samples=None,
            seed=None,
        )

    @classmethod
    def _build(
        cls,
        source: ReplicateSource,
        *,
        tree: TreeNode | None,
        n_reps: int,
        n_sites: int,
        fit: FitSettings | None,
        estimate: bool,
        dump_models: str | Path | None,
        dump_samples: str | Path | None,
        seed: int | None,
    ) -> BootstrapDesign:
        """Internal builder with validation."""
        n_reps = check_int_bounds(n_reps, 'n_reps', 1)
        n_sites = check_int_bounds(n_sites, 'n_sites', 1)
        if seed is not None:
            seed = check_int_bounds(seed, 'seed', 0)
        return cls(
            source=source,
            n_reps=n_reps,
            n_sites=n_sites,
            estimate=bool(estimate),
            fit=fit if fit is not None else FitSettings.create(),
            tree=tree,
            dump_models=None if dump_models is None else str(dump_models),
            dump_samples=None if dump_samples is None else str(dump_samples),
            seed=seed,
        )


def _default_tree(alignment: Alignment, family: SubstitutionFamily) -> TreeNode | None:
    """Topology implied by a two- or three-sequence alignment, if any."""
    names = alignment.names
    if len(names) == 2:
        return parse_newick(f"({names[0]},{names[1]})")
    if len(names) == 3 and family.reversible:
        return parse_newick(f"({names[0]},({names[1]},{names[2]}))")
    return None


def _check_tree_matches(tree: TreeNode, alignment: Alignment) -> None:
    n = alignment.n_seqs
    if tree.n_nodes != 2 * n - 1:
        raise ConfigurationError(
            f"tree must have 2n-1 nodes, where n is the number of sequences in "
            f"the alignment (n={n}, tree has {tree.n_nodes}). Even with a "
            f"reversible model, specify a rooted tree; the root will be ignored "
            f"in the optimization procedure."
        )
    leaf_names = sorted(leaf.name for leaf in tree.leaves())
    if leaf_names != sorted(alignment.names):
        raise ConfigurationError(
            f"tree leaves {leaf_names} do not match alignment names "
            f"{sorted(alignment.names)}"
        )
