"""
phyloboot: bootstrap error estimates for phylogenetic model parameters.

Submodules:
    phylo: Trees, substitution models, alignments, likelihood, fitters
    bootstrap: Parametric / non-parametric parameter bootstrap
    core: Exceptions, Result envelope, validation, timing
"""

__version__ = "0.1.0"

from phyloboot import phylo
from phyloboot import bootstrap

__all__ = [
    "__version__",
    "phylo",
    "bootstrap",
]
