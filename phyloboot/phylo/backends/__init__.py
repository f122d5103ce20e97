"""
Tree-model fitters.
"""

from phyloboot.phylo.backends.bfgs import QuasiNewtonFitter
from phyloboot.phylo.backends.em import EMFitter

__all__ = ['QuasiNewtonFitter', 'EMFitter']
