"""
pytest configuration and shared fixtures.
"""

import pytest
import numpy as np

from phyloboot.phylo.alignment import Alignment
from phyloboot.phylo.model import TreeModel
from phyloboot.phylo.simulate import simulate_alignment
from phyloboot.phylo.tree import parse_newick


FOUR_TAXON_NEWICK = "((a:0.1,b:0.2):0.05,(c:0.1,d:0.15):0.05);"


@pytest.fixture
def rng():
    """Seeded random number generator for reproducible tests."""
    return np.random.default_rng(42)


@pytest.fixture
def four_taxon_tree():
    """Balanced rooted tree ((a,b),(c,d)); preorder ids 0..6."""
    return parse_newick(FOUR_TAXON_NEWICK)


@pytest.fixture
def hky_model(four_taxon_tree):
    """HKY85 model with kappa 4 and unequal base composition."""
    return TreeModel(
        four_taxon_tree,
        'HKY85',
        rate_params=[4.0],
        backgd_freqs=[0.3, 0.2, 0.2, 0.3],
    )


@pytest.fixture
def four_taxon_alignment(hky_model):
    """300 columns simulated from hky_model."""
    return simulate_alignment(hky_model, 300, np.random.default_rng(7))


@pytest.fixture
def pair_alignment():
    """Two sequences of 100 sites differing at exactly 20 of them."""
    s1 = "ACGT" * 25
    swap = {"A": "G", "C": "T", "G": "A", "T": "C"}
    s2 = "".join(swap[c] if i < 20 else c for i, c in enumerate(s1))
    return Alignment.from_sequences(["a", "b"], [s1, s2])
