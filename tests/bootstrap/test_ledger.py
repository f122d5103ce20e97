"""
Tests for parameter descriptions and the estimate ledger.
"""

import numpy as np
import pytest

from phyloboot.bootstrap._ledger import ParameterLedger, describe_parameters
from phyloboot.core.exceptions import ConsistencyFault
from phyloboot.phylo.model import TreeModel
from phyloboot.phylo.tree import parse_newick


# ═══════════════════════════════════════════════════════════════════════
# describe_parameters
# ═══════════════════════════════════════════════════════════════════════


class TestDescribeParameters:
    """One label per slot, following the slot layout."""

    def test_reversible_rev(self, four_taxon_tree):
        model = TreeModel(four_taxon_tree, "REV")
        assert describe_parameters(model) == [
            "branch (spans root)",
            "branch (lf_a->anc_1)",
            "branch (lf_b->anc_1)",
            "branch (lf_c->anc_4)",
            "branch (lf_d->anc_4)",
            "rmatrix (1,2) (2,1)",
            "rmatrix (1,3) (3,1)",
            "rmatrix (1,4) (4,1)",
            "rmatrix (2,3) (3,2)",
            "rmatrix (2,4) (4,2)",
            "rmatrix (3,4) (4,3)",
        ]

    def test_nonreversible_keeps_both_root_branches(self, four_taxon_tree):
        model = TreeModel(four_taxon_tree, "UNREST")
        descriptions = describe_parameters(model)
        assert len(descriptions) == 18
        assert descriptions[0] == "branch (anc_1->anc_0)"
        assert descriptions[3] == "branch (anc_4->anc_0)"
        assert "branch (spans root)" not in descriptions
        assert descriptions[6] == "rmatrix (1,2)"

    def test_reversible_merge_removes_one_branch_slot(self, four_taxon_tree):
        rev = describe_parameters(TreeModel(four_taxon_tree, "REV"))
        unrest = describe_parameters(TreeModel(four_taxon_tree.copy(), "UNREST"))
        n_rev = sum(d.startswith("branch") for d in rev)
        n_unrest = sum(d.startswith("branch") for d in unrest)
        assert n_rev == n_unrest - 1
        assert rev.count("branch (spans root)") == 1

    def test_kappa_and_alpha(self, four_taxon_tree):
        model = TreeModel(four_taxon_tree, "HKY85", n_rate_cats=4)
        assert describe_parameters(model)[-2:] == ["alpha", "kappa"]

    def test_no_rate_matrix_params(self):
        model = TreeModel(parse_newick("(a,b)"), "JC69")
        assert describe_parameters(model) == ["branch (spans root)"]

    def test_count_matches_model(self, four_taxon_tree):
        for family in ("JC69", "F81", "HKY85", "REV", "UNREST"):
            model = TreeModel(four_taxon_tree.copy(), family, n_rate_cats=2)
            assert len(describe_parameters(model)) == model.n_params


# ═══════════════════════════════════════════════════════════════════════
# ParameterLedger
# ═══════════════════════════════════════════════════════════════════════


class TestParameterLedger:
    """The ledger fixes its width from the first replicate."""

    def test_records_in_order(self, hky_model):
        ledger = ParameterLedger()
        for r in range(4):
            ledger.record(np.arange(6) + 10.0 * r, hky_model)
        assert ledger.n_params == 6
        assert ledger.n_reps == 4
        np.testing.assert_array_equal(ledger.column(2), [2.0, 12.0, 22.0, 32.0])
        assert ledger.estimates().shape == (4, 6)
        assert ledger.descriptions[0] == "branch (spans root)"

    def test_width_change(self, hky_model):
        ledger = ParameterLedger()
        ledger.record(np.ones(6), hky_model)
        with pytest.raises(ConsistencyFault, match="replicate 2"):
            ledger.record(np.ones(7), hky_model)

    def test_first_vector_must_match_model(self, hky_model):
        with pytest.raises(ConsistencyFault):
            ParameterLedger().record(np.ones(3), hky_model)

    def test_empty(self):
        ledger = ParameterLedger()
        assert ledger.n_params == 0
        assert ledger.n_reps == 0
        assert ledger.estimates().shape == (0, 0)
