"""
End-to-end tests for bootstrap(): design construction, the CPU driver,
dump files, ingestion and the report.
"""

import numpy as np
import pytest

from phyloboot.bootstrap import BootstrapDesign, BootstrapSolution, FitSettings, bootstrap
from phyloboot.bootstrap.backends import CPUBootstrapBackend
from phyloboot.core.compute.tolerances import PrecisionTier
from phyloboot.core.exceptions import (
    ConfigurationError,
    IngestionError,
    InvalidDistributionError,
    OptimizationFailure,
    ValidationError,
)
from phyloboot.core.protocols import Backend
from phyloboot.phylo.alignment import Alignment, parse_ss
from phyloboot.phylo.model import TreeModel, read_model
from phyloboot.phylo.tree import parse_newick

TOPOLOGY = "((a,b),(c,d))"


def _hky_run(alignment, **kwargs):
    options = dict(tree=TOPOLOGY, subst_model='HKY85', n_reps=3,
                   precision='LOW', seed=5)
    options.update(kwargs)
    return bootstrap(alignment, **options)


# ═══════════════════════════════════════════════════════════════════════
# Non-parametric
# ═══════════════════════════════════════════════════════════════════════


class TestNonparametric:
    """Resampling site patterns of an alignment."""

    def test_shapes(self, four_taxon_alignment):
        sol = _hky_run(four_taxon_alignment)
        assert isinstance(sol, BootstrapSolution)
        assert sol.mode == 'nonparametric'
        assert sol.n_reps == 3
        assert sol.estimates.shape == (3, 6)
        assert sol.n_params == 6
        assert [row.index for row in sol.rows] == list(range(6))
        assert sol.descriptions[-1] == "kappa"
        assert sol.backend_name == 'cpu_bootstrap'

    def test_rows_consistent_with_estimates(self, four_taxon_alignment):
        sol = _hky_run(four_taxon_alignment)
        np.testing.assert_allclose(sol.means, sol.estimates.mean(axis=0))
        for j, row in enumerate(sol.rows):
            column = sol.estimates[:, j]
            assert row.min == pytest.approx(column.min())
            assert row.max == pytest.approx(column.max())
            assert row.min <= row.ci95_lower <= row.ci90_lower <= row.median
            assert row.median <= row.ci90_upper <= row.ci95_upper <= row.max

    def test_deterministic_for_seed(self, four_taxon_alignment):
        a = _hky_run(four_taxon_alignment)
        b = _hky_run(four_taxon_alignment)
        np.testing.assert_array_equal(a.estimates, b.estimates)

    def test_different_seeds_differ(self, four_taxon_alignment):
        a = _hky_run(four_taxon_alignment, seed=1)
        b = _hky_run(four_taxon_alignment, seed=2)
        assert not np.array_equal(a.estimates, b.estimates)

    def test_input_alignment_untouched(self, four_taxon_alignment):
        counts = four_taxon_alignment.counts.copy()
        _hky_run(four_taxon_alignment, n_sites=40)
        np.testing.assert_array_equal(four_taxon_alignment.counts, counts)
        assert four_taxon_alignment.length == 300

    def test_average_model_carries_means(self, four_taxon_alignment):
        sol = _hky_run(four_taxon_alignment)
        assert sol.average_model.family.name == 'HKY85'
        np.testing.assert_allclose(sol.average_model.params(), sol.means, rtol=1e-12)

    def test_em_algorithm(self, four_taxon_alignment):
        sol = _hky_run(four_taxon_alignment, n_reps=2, algorithm='em')
        assert sol.estimates.shape == (2, 6)

    def test_rate_categories(self, four_taxon_alignment):
        sol = _hky_run(four_taxon_alignment, n_reps=2, n_rate_cats=4)
        assert sol.descriptions[-2:] == ("alpha", "kappa")

    def test_random_init(self, four_taxon_alignment):
        sol = _hky_run(four_taxon_alignment, n_reps=2, init_random=True)
        assert np.all(np.isfinite(sol.estimates))


class TestDefaultTree:
    """Topologies derived from small alignments."""

    def test_two_sequences(self, pair_alignment):
        sol = bootstrap(pair_alignment, n_reps=2, subst_model='JC69',
                        precision='LOW', seed=3)
        assert sol.descriptions == ("branch (spans root)",)
        assert sol.estimates.shape == (2, 1)

    def test_three_sequences_reversible(self):
        aln = Alignment.from_sequences(
            ["x", "y", "z"], ["ACGTACGTAA", "ACGTACGTTA", "ACCTACGTTA"],
        )
        design = BootstrapDesign.for_nonparametric(aln)
        assert sorted(leaf.name for leaf in design.tree.leaves()) == ["x", "y", "z"]

    def test_three_sequences_nonreversible(self):
        aln = Alignment.from_sequences(["x", "y", "z"], ["ACGT", "ACGA", "ACGC"])
        with pytest.raises(ConfigurationError, match="tree topology"):
            BootstrapDesign.for_nonparametric(aln, fit=FitSettings.create('UNREST'))

    def test_four_sequences_need_tree(self, four_taxon_alignment):
        with pytest.raises(ConfigurationError, match="tree topology"):
            bootstrap(four_taxon_alignment, n_reps=1)

    def test_seed_model_supplies_tree(self, four_taxon_alignment, hky_model):
        sol = bootstrap(four_taxon_alignment, init_model=hky_model,
                        subst_model='HKY85', n_reps=2, precision='LOW', seed=1)
        assert sol.estimates.shape == (2, 6)
        np.testing.assert_array_equal(hky_model.backgd_freqs, [0.3, 0.2, 0.2, 0.3])

    def test_seed_model_tree_checked_before_replicates(self, four_taxon_alignment, tmp_path):
        seed = TreeModel(parse_newick("((a,b),(c,x))"), 'HKY85', backgd_freqs=[0.25] * 4)
        with pytest.raises(ConfigurationError, match="do not match"):
            bootstrap(four_taxon_alignment, init_model=seed, subst_model='HKY85',
                      n_reps=2, dump_samples=tmp_path / "s")
        assert list(tmp_path.iterdir()) == []

    def test_tree_node_count_mismatch(self, four_taxon_alignment):
        with pytest.raises(ConfigurationError, match="2n-1 nodes"):
            bootstrap(four_taxon_alignment, tree="((a,b),c)", n_reps=1)

    def test_tree_leaf_mismatch(self, four_taxon_alignment):
        with pytest.raises(ConfigurationError, match="do not match"):
            bootstrap(four_taxon_alignment, tree="((a,b),(c,e))", n_reps=1)


# ═══════════════════════════════════════════════════════════════════════
# Parametric
# ═══════════════════════════════════════════════════════════════════════


class TestParametric:
    """Simulating replicates from a generative model."""

    def test_run(self, hky_model):
        sol = bootstrap(hky_model, n_reps=2, n_sites=400, subst_model='HKY85',
                        precision='LOW', seed=9)
        assert sol.mode == 'parametric'
        assert sol.info['n_sites'] == 400
        assert sol.estimates.shape == (2, 6)

    def test_default_sites(self, hky_model):
        design = BootstrapDesign.for_parametric(hky_model)
        assert design.n_sites == 1000
        assert design.n_reps == 100
        assert design.tree is hky_model.tree

    def test_generating_model_not_refitted(self, hky_model):
        before = hky_model.params().copy()
        bootstrap(hky_model, n_reps=1, n_sites=200, subst_model='HKY85',
                  precision='LOW', seed=9)
        np.testing.assert_array_equal(hky_model.params(), before)

    def test_model_without_background(self, four_taxon_tree):
        model = TreeModel(four_taxon_tree, 'HKY85')
        with pytest.raises(ValidationError, match="background"):
            bootstrap(model, n_reps=1)


# ═══════════════════════════════════════════════════════════════════════
# Dump files and generate-only runs
# ═══════════════════════════════════════════════════════════════════════


class TestDumps:
    """Per-replicate artifacts are named <root>.<i>.<ext>."""

    def test_dump_models_and_samples(self, four_taxon_alignment, tmp_path):
        root = tmp_path / "rep"
        sol = _hky_run(four_taxon_alignment, n_reps=2,
                       dump_models=root, dump_samples=root)
        for i in (1, 2):
            model = read_model(tmp_path / f"rep.{i}.mod")
            assert model.family.name == 'HKY85'
            np.testing.assert_allclose(model.params(), sol.estimates[i - 1], rtol=1e-4)
            ss = parse_ss((tmp_path / f"rep.{i}.ss").read_text())
            assert ss.length == 300
            assert ss.counts.sum() == 300
        assert not (tmp_path / "rep.3.mod").exists()

    def test_generate_only(self, four_taxon_alignment, tmp_path):
        root = tmp_path / "sample"
        sol = _hky_run(four_taxon_alignment, estimate=False, dump_samples=root)
        assert sol.rows == ()
        assert sol.estimates is None
        assert sol.average_model is None
        assert not sol.estimated
        assert sol.summary().count("\n") == 1
        assert sorted(p.name for p in tmp_path.iterdir()) == [
            "sample.1.ss", "sample.2.ss", "sample.3.ss",
        ]


# ═══════════════════════════════════════════════════════════════════════
# Ingest
# ═══════════════════════════════════════════════════════════════════════


class TestIngest:
    """Summarizing models fitted elsewhere."""

    def _write_models(self, tmp_path, hky_model, kappas):
        paths = []
        for i, kappa in enumerate(kappas):
            model = hky_model.copy()
            model.rate_params = np.array([kappa])
            path = tmp_path / f"fit{i}.mod"
            model.write(path)
            paths.append(str(path))
        return paths

    def test_summarizes_files(self, tmp_path, hky_model):
        paths = self._write_models(tmp_path, hky_model, [2.0, 3.0, 4.0, 5.0])
        sol = bootstrap(paths)
        assert sol.mode == 'ingest'
        assert sol.n_reps == 4
        kappa = sol.rows[-1]
        assert kappa.description == "kappa"
        assert kappa.mean == pytest.approx(3.5, rel=1e-5)
        assert kappa.min == pytest.approx(2.0, rel=1e-5)
        assert kappa.max == pytest.approx(5.0, rel=1e-5)

    def test_models_not_mutated(self, hky_model):
        other = hky_model.copy()
        other.rate_params = np.array([6.0])
        sol = bootstrap([hky_model, other])
        assert hky_model.rate_params[0] == 4.0
        assert sol.average_model is not hky_model
        assert sol.average_model.rate_params[0] == pytest.approx(5.0)

    def test_mismatched_models(self, tmp_path, hky_model):
        paths = self._write_models(tmp_path, hky_model, [2.0])
        rev = TreeModel(parse_newick(TOPOLOGY), 'REV', backgd_freqs=[0.25] * 4)
        rev.write(tmp_path / "rev.mod")
        with pytest.raises(IngestionError) as exc_info:
            bootstrap(paths + [str(tmp_path / "rev.mod")])
        assert exc_info.value.expected == 6
        assert exc_info.value.actual == 11

    def test_unreadable_file(self, tmp_path):
        bad = tmp_path / "bad.mod"
        bad.write_text("this is not a model\n")
        with pytest.raises(IngestionError) as exc_info:
            bootstrap([str(bad)])
        assert exc_info.value.source == str(bad)

    def test_n_reps_rejected(self, hky_model):
        with pytest.raises(ConfigurationError, match="n_reps"):
            bootstrap([hky_model], n_reps=1)

    def test_empty(self):
        with pytest.raises(ConfigurationError):
            bootstrap([])


# ═══════════════════════════════════════════════════════════════════════
# Validation and failures
# ═══════════════════════════════════════════════════════════════════════


class TestValidation:
    """Bad options fail before any replicate is run."""

    def test_unknown_family(self, four_taxon_alignment):
        with pytest.raises(ConfigurationError, match="illegal substitution model"):
            _hky_run(four_taxon_alignment, subst_model='K80')

    def test_higher_order_family(self, four_taxon_alignment):
        with pytest.raises(ConfigurationError, match="higher-order"):
            _hky_run(four_taxon_alignment, subst_model='R2')

    def test_unknown_precision(self, four_taxon_alignment):
        with pytest.raises(ConfigurationError):
            _hky_run(four_taxon_alignment, precision='ULTRA')

    def test_bad_n_reps(self, four_taxon_alignment):
        with pytest.raises(ValidationError):
            _hky_run(four_taxon_alignment, n_reps=0)

    def test_bad_backend(self, four_taxon_alignment):
        with pytest.raises(ValidationError, match="Unknown backend"):
            _hky_run(four_taxon_alignment, backend='gpu')

    def test_empty_distribution(self):
        aln = Alignment(["a", "b"], np.array([[0, 0]]), np.array([0.0]), length=1)
        with pytest.raises(InvalidDistributionError):
            bootstrap(aln, n_reps=1)

    def test_fit_failure_aborts_run(self, four_taxon_alignment):
        tier = PrecisionTier(name='TEST', ftol=1e-12, gtol=1e-12, em_tol=1e-12, max_iter=1)
        with pytest.raises(OptimizationFailure):
            bootstrap(four_taxon_alignment, tree=TOPOLOGY, n_reps=2, precision=tier)


# ═══════════════════════════════════════════════════════════════════════
# Report
# ═══════════════════════════════════════════════════════════════════════


class TestSummaryReport:
    """Fixed-width report layout."""

    def test_layout(self, four_taxon_alignment):
        sol = _hky_run(four_taxon_alignment, n_reps=2)
        lines = sol.summary().splitlines()
        assert lines[0].split() == [
            "param", "description", "mean", "stdev", "median", "min", "max",
            "95%_min", "95%_max", "90%_min", "90%_max",
        ]
        assert len(lines) == 7
        assert lines[1].startswith("0       branch (spans root)")
        assert lines[6].startswith("5       kappa")
        assert len(lines[1]) == len(lines[0])

    def test_backend_protocol(self):
        assert isinstance(CPUBootstrapBackend(), Backend)

    def test_repr(self, four_taxon_alignment):
        sol = _hky_run(four_taxon_alignment, n_reps=2)
        assert repr(sol) == "BootstrapSolution(mode='nonparametric', n_reps=2, n_params=6)"
