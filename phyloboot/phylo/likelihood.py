"""
Tree likelihood by Felsenstein pruning.

Partial likelihoods are rescaled at every internal node (each site's row
divided by its maximum, the log of the factor accumulated separately), so
deep trees do not underflow. Rate categories are mixed at the root with
logsumexp.

expected_transitions() adds an outside pass and returns the posterior
expected number of (parent state -> child state) transitions per branch
and rate category: the E-step of the EM fitter.
"""

from __future__ import annotations

from typing import Any, TYPE_CHECKING

import numpy as np
from numpy.typing import NDArray
from scipy.special import logsumexp

from phyloboot.core.exceptions import ValidationError
from phyloboot.phylo.alignment import MISSING
from phyloboot.phylo.substitution import N_STATES

if TYPE_CHECKING:
    from phyloboot.phylo.alignment import Alignment
    from phyloboot.phylo.model import TreeModel

Partials = dict[int, NDArray[np.floating[Any]]]


def _observed(aln: 'Alignment') -> 'Alignment':
    """Drop zero-count patterns; they contribute nothing."""
    keep = aln.counts > 0
    if keep.all():
        return aln
    return aln.__class__(aln.names, aln.tuples[keep], aln.counts[keep], aln.length)


def _tip_partials(model: 'TreeModel', aln: 'Alignment') -> Partials:
    column_of = {name: k for k, name in enumerate(aln.names)}
    tips: Partials = {}
    for leaf in model.tree.leaves():
        if leaf.name not in column_of:
            raise ValidationError(
                f"leaf {leaf.name!r} of the tree is not in the alignment "
                f"(names: {aln.names})"
            )
        states = aln.tuples[:, column_of[leaf.name]].astype(np.intp)
        L = np.zeros((aln.n_tuples, N_STATES))
        observed = states != MISSING
        L[observed, states[observed]] = 1.0
        L[~observed] = 1.0
        tips[leaf.id] = L
    return tips


def _branch_matrices(
    model: 'TreeModel',
    rates: NDArray[np.floating[Any]],
) -> list[Partials]:
    """Per rate category, the transition matrix of every branch."""
    Q = model.rate_matrix()
    branches = list(model.tree.iter_branches())
    return [
        {node.id: model.transition_matrix(node.dparent * rate, Q) for node in branches}
        for rate in rates
    ]


def _rescale(L: NDArray[np.floating[Any]]) -> tuple[NDArray, NDArray]:
    m = L.max(axis=1)
    m = np.where(m > 0, m, 1.0)
    return L / m[:, np.newaxis], np.log(m)


def _inside(
    model: 'TreeModel',
    tips: Partials,
    P: Partials,
) -> tuple[Partials, Partials]:
    partials: Partials = {}
    scales: Partials = {}
    for node in model.tree.postorder():
        if node.is_leaf:
            partials[node.id] = tips[node.id]
            scales[node.id] = np.zeros(tips[node.id].shape[0])
            continue
        left, right = node.lchild, node.rchild
        L = (partials[left.id] @ P[left.id].T) * (partials[right.id] @ P[right.id].T)
        L, log_m = _rescale(L)
        partials[node.id] = L
        scales[node.id] = scales[left.id] + scales[right.id] + log_m
    return partials, scales


def _root_log_lik(
    partials: Partials,
    scales: Partials,
    root_id: int,
    pi: NDArray[np.floating[Any]],
) -> NDArray[np.floating[Any]]:
    with np.errstate(divide='ignore'):
        return np.log(partials[root_id] @ pi) + scales[root_id]


def site_log_likelihoods(model: 'TreeModel', aln: 'Alignment') -> NDArray[np.floating[Any]]:
    """
    Log-likelihood of every site pattern, shape (n_tuples,).

    Raises:
        ValidationError: If a tree leaf has no alignment row
    """
    rates, weights = model.rate_categories()
    pi = model.equilibrium_freqs()
    tips = _tip_partials(model, aln)

    per_cat = np.empty((len(rates), aln.n_tuples))
    for k, P in enumerate(_branch_matrices(model, rates)):
        partials, scales = _inside(model, tips, P)
        per_cat[k] = _root_log_lik(partials, scales, model.tree.id, pi)
    return logsumexp(per_cat + np.log(weights)[:, np.newaxis], axis=0)


def log_likelihood(model: 'TreeModel', aln: 'Alignment') -> float:
    """Count-weighted total log-likelihood of the alignment."""
    aln = _observed(aln)
    return float(np.dot(aln.counts, site_log_likelihoods(model, aln)))


def expected_transitions(
    model: 'TreeModel',
    aln: 'Alignment',
) -> tuple[NDArray[np.floating[Any]], float]:
    """
    Posterior expected transition counts.

    Returns:
        (E, loglik) where E has shape (n_branches, n_rate_cats, 4, 4) with
        branches in tree.iter_branches() order, and loglik is the
        log-likelihood at the current parameters.
    """
    aln = _observed(aln)
    rates, weights = model.rate_categories()
    pi = model.equilibrium_freqs()
    tips = _tip_partials(model, aln)
    root = model.tree
    branches = list(root.iter_branches())
    row_of = {node.id: b for b, node in enumerate(branches)}
    n = aln.n_tuples

    matrices = _branch_matrices(model, rates)
    pass_data = []
    per_cat = np.empty((len(rates), n))
    for k, P in enumerate(matrices):
        partials, scales = _inside(model, tips, P)
        pass_data.append((partials, scales))
        per_cat[k] = _root_log_lik(partials, scales, root.id, pi)
    site_ll = logsumexp(per_cat + np.log(weights)[:, np.newaxis], axis=0)

    E = np.zeros((len(branches), len(rates), N_STATES, N_STATES))
    for k, P in enumerate(matrices):
        partials, scales = pass_data[k]
        outside = {root.id: np.broadcast_to(pi, (n, N_STATES))}
        out_scales = {root.id: np.zeros(n)}
        for node in root.preorder():
            if node.is_leaf:
                continue
            for child, sib in ((node.lchild, node.rchild), (node.rchild, node.lchild)):
                A = outside[node.id] * (partials[sib.id] @ P[sib.id].T)
                a_scale = out_scales[node.id] + scales[sib.id]
                log_f = a_scale + scales[child.id] + np.log(weights[k]) - site_ll
                f = aln.counts * np.exp(log_f)
                E[row_of[child.id], k] = (
                    np.einsum('t,ti,tj->ij', f, A, partials[child.id]) * P[child.id]
                )
                O, log_m = _rescale(A @ P[child.id])
                outside[child.id] = O
                out_scales[child.id] = a_scale + log_m

    return E, float(np.dot(aln.counts, site_ll))
