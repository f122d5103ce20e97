"""
Sequence simulation under a tree model.

Sites are generated by a one-state site controller: there is no hidden
process switching between models along the sequence, so columns are
i.i.d. Each column draws a rate category from the category weights and a
root state from the equilibrium frequencies, then states are propagated
down the tree branch by branch. The result is compressed to site-pattern
counts.
"""

from __future__ import annotations

from typing import Any, TYPE_CHECKING

import numpy as np
from numpy.typing import NDArray

from phyloboot.core.validation import check_int_bounds
from phyloboot.phylo.alignment import Alignment

if TYPE_CHECKING:
    from phyloboot.phylo.model import TreeModel


def _draw_rows(
    probs: NDArray[np.floating[Any]],
    rng: np.random.Generator,
) -> NDArray[np.intp]:
    """One categorical draw per row of probs."""
    cum = np.cumsum(probs, axis=1)
    u = rng.random((probs.shape[0], 1)) * cum[:, -1:]
    return np.minimum((u >= cum).sum(axis=1), probs.shape[1] - 1)


def simulate_alignment(
    model: 'TreeModel',
    n_sites: int,
    rng: np.random.Generator,
) -> Alignment:
    """
    Simulate n_sites alignment columns from model.

    Args:
        model: Generative model; needs equilibrium frequencies
        n_sites: Number of columns to generate (>= 1)
        rng: Random generator, the only source of randomness

    Returns:
        Alignment over the tree's leaves (leaf preorder)
    """
    n_sites = check_int_bounds(n_sites, 'n_sites', 1)
    rates, weights = model.rate_categories()
    pi = model.equilibrium_freqs()
    Q = model.rate_matrix()

    cats = rng.choice(len(rates), size=n_sites, p=weights)
    states = {model.tree.id: _draw_rows(np.broadcast_to(pi, (n_sites, len(pi))), rng)}
    for node in model.tree.iter_branches():
        parent_states = states[node.parent.id]
        child_states = np.empty(n_sites, dtype=np.intp)
        for k, rate in enumerate(rates):
            sel = cats == k
            if not sel.any():
                continue
            P = model.transition_matrix(node.dparent * rate, Q)
            child_states[sel] = _draw_rows(P[parent_states[sel]], rng)
        states[node.id] = child_states

    leaves = model.tree.leaves()
    columns = np.column_stack([states[leaf.id] for leaf in leaves]).astype(np.int8)
    tuples, counts = np.unique(columns, axis=0, return_counts=True)
    return Alignment(
        [leaf.name for leaf in leaves],
        tuples,
        counts.astype(np.float64),
        length=n_sites,
    )
