"""
Phylogenetic model collaborators.

Trees, nucleotide substitution families, tree models, alignments held as
site-pattern counts, the pruning likelihood, simulation, and the
maximum likelihood fitters used by the bootstrap engine.

Usage:
    from phyloboot.phylo import read_model, read_alignment, fit_model

    model = read_model("seed.mod")
    aln = read_alignment("data.fa", "FASTA")
    result = fit_model(model, aln, model.init_params(), algorithm='em')
"""

from phyloboot.phylo.tree import TreeNode, parse_newick, read_tree
from phyloboot.phylo.substitution import SubstitutionFamily, get_family
from phyloboot.phylo.model import TreeModel, parse_model, read_model
from phyloboot.phylo.alignment import (
    Alignment,
    format_from_name,
    read_alignment,
    parse_ss,
    write_ss,
)
from phyloboot.phylo.likelihood import log_likelihood, site_log_likelihoods
from phyloboot.phylo.simulate import simulate_alignment
from phyloboot.phylo.solvers import fit_model, get_fitter

__all__ = [
    "TreeNode",
    "parse_newick",
    "read_tree",
    "SubstitutionFamily",
    "get_family",
    "TreeModel",
    "parse_model",
    "read_model",
    "Alignment",
    "format_from_name",
    "read_alignment",
    "parse_ss",
    "write_ss",
    "log_likelihood",
    "site_log_likelihoods",
    "simulate_alignment",
    "fit_model",
    "get_fitter",
]
