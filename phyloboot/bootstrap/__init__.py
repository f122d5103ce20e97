"""
Parameter bootstrap for phylogenetic substitution models.

Estimates the sampling uncertainty of branch lengths, rate variation
and rate-matrix parameters on a fixed topology, by parametric
simulation, non-parametric site-pattern resampling, or by summarizing
models fitted elsewhere.

Usage:
    from phyloboot.bootstrap import bootstrap

    sol = bootstrap(alignment, tree="(human,(chimp,gorilla))",
                    n_reps=200, subst_model="HKY85", seed=1)
    print(sol.summary())
    sol.average_model.write("average.mod")
"""

from phyloboot.bootstrap.design import (
    BootstrapDesign,
    FitSettings,
    IngestSource,
    NonparametricSource,
    ParametricSource,
)
from phyloboot.bootstrap.solution import BootstrapSolution
from phyloboot.bootstrap.solvers import bootstrap

__all__ = [
    "bootstrap",
    "BootstrapDesign",
    "BootstrapSolution",
    "FitSettings",
    "ParametricSource",
    "NonparametricSource",
    "IngestSource",
]
