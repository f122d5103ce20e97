"""
Tests for rooted binary trees and Newick parsing.
"""

import pytest

from phyloboot.core.exceptions import ValidationError
from phyloboot.phylo.tree import parse_newick, read_tree

FOUR_TAXON_NEWICK = "((a:0.1,b:0.2):0.05,(c:0.1,d:0.15):0.05);"


# ═══════════════════════════════════════════════════════════════════════
# Parsing
# ═══════════════════════════════════════════════════════════════════════


class TestParseNewick:
    """parse_newick builds binary trees with preorder ids."""

    def test_preorder_ids(self, four_taxon_tree):
        nodes = four_taxon_tree.preorder()
        assert [n.id for n in nodes] == list(range(7))
        assert [n.name for n in nodes] == ["", "", "a", "b", "", "c", "d"]

    def test_branch_lengths(self, four_taxon_tree):
        lengths = {n.name: n.dparent for n in four_taxon_tree.leaves()}
        assert lengths == {"a": 0.1, "b": 0.2, "c": 0.1, "d": 0.15}
        assert four_taxon_tree.dparent == 0.0

    def test_node_count(self, four_taxon_tree):
        assert four_taxon_tree.n_nodes == 7
        assert len(four_taxon_tree.leaves()) == 4

    def test_missing_lengths_default_to_zero(self):
        tree = parse_newick("(a,(b,c))")
        assert all(n.dparent == 0.0 for n in tree.preorder())

    def test_round_trip(self, four_taxon_tree):
        assert four_taxon_tree.to_newick() == FOUR_TAXON_NEWICK

    def test_postorder_children_first(self, four_taxon_tree):
        seen = set()
        for node in four_taxon_tree.postorder():
            for child in node.children():
                assert child.id in seen
            seen.add(node.id)

    def test_iter_branches_skips_root(self, four_taxon_tree):
        ids = [n.id for n in four_taxon_tree.iter_branches()]
        assert ids == [1, 2, 3, 4, 5, 6]

    def test_copy_is_independent(self, four_taxon_tree):
        clone = four_taxon_tree.copy()
        clone.lchild.dparent = 9.0
        assert four_taxon_tree.lchild.dparent == 0.05
        assert [n.id for n in clone.preorder()] == list(range(7))


class TestParseNewickErrors:
    """Malformed trees raise ValidationError."""

    @pytest.mark.parametrize("text", [
        "",
        "(a,b",
        "(a,b,c);",
        "(a:x,b);",
        "(a,b)c,d;",
        "a;",
    ])
    def test_malformed(self, text):
        with pytest.raises(ValidationError):
            parse_newick(text)

    def test_duplicate_leaves(self):
        with pytest.raises(ValidationError, match="duplicate"):
            parse_newick("(a,(b,a));")


class TestReadTree:
    """read_tree accepts literal Newick strings or files."""

    def test_literal(self):
        assert read_tree("(x,y);").n_nodes == 3

    def test_file(self, tmp_path):
        path = tmp_path / "tree.nh"
        path.write_text(FOUR_TAXON_NEWICK + "\n")
        assert read_tree(path).n_nodes == 7

    def test_missing_file(self, tmp_path):
        with pytest.raises(ValidationError, match="cannot read"):
            read_tree(tmp_path / "nope.nh")
