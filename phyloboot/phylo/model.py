"""
Tree models: a rooted tree plus a substitution process.

The free parameters of a TreeModel are exposed as one flat vector with a
fixed slot layout:

    1. branch lengths, preorder over non-root nodes. Under a reversible
       family the two branches leaving the root cannot be told apart by
       the likelihood, so they share one slot (at the left child's
       position) holding their sum.
    2. alpha (discrete-gamma shape), present only with > 1 rate category.
    3. the family's rate-matrix parameters.

Background (equilibrium) frequencies are not free parameters; they are
taken from the data before fitting.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import numpy as np
from numpy.typing import NDArray
from scipy import linalg, special
from scipy import stats as sp_stats

from phyloboot.core.exceptions import ConsistencyFault, ValidationError
from phyloboot.core.validation import check_int_bounds, check_probabilities
from phyloboot.phylo.substitution import (
    ALPHABET,
    N_STATES,
    SubstitutionFamily,
    get_family,
)
from phyloboot.phylo.tree import TreeNode, parse_newick

# Bounds used by random initialization
RANDOM_BRANCH_RANGE = (0.01, 0.5)
RANDOM_ALPHA_RANGE = (0.5, 2.0)
RANDOM_RATE_RANGE = (1.0, 5.0)


class TreeModel:
    """
    Tree topology with branch lengths and a substitution process.

    Attributes:
        tree: Root of the tree (owned by the model)
        family: Substitution family
        rate_params: Free rate-matrix parameters, shape (family.n_params,)
        backgd_freqs: Equilibrium frequencies, or None until set from data
        n_rate_cats: Number of discrete-gamma rate categories
        alpha: Gamma shape parameter (used when n_rate_cats > 1)
    """

    def __init__(
        self,
        tree: TreeNode,
        family: SubstitutionFamily | str,
        rate_params: NDArray[np.floating[Any]] | None = None,
        backgd_freqs: NDArray[np.floating[Any]] | None = None,
        n_rate_cats: int = 1,
        alpha: float = 1.0,
    ):
        self.tree = tree
        self.family = get_family(family)
        self.n_rate_cats = check_int_bounds(n_rate_cats, 'n_rate_cats', 1)
        self.alpha = float(alpha)
        if rate_params is None:
            rate_params = self.family.default_rate_params()
        self.rate_params = np.asarray(rate_params, dtype=np.float64).copy()
        if self.rate_params.shape != (self.family.n_params,):
            raise ValidationError(
                f"rate_params: {self.family.name} needs {self.family.n_params} "
                f"values, got {self.rate_params.size}"
            )
        self.backgd_freqs = None
        if backgd_freqs is not None:
            self.backgd_freqs = check_probabilities(backgd_freqs, 'backgd_freqs').copy()

    # ------------------------------------------------------------------
    # Parameter layout
    # ------------------------------------------------------------------

    @property
    def is_reversible(self) -> bool:
        return self.family.reversible

    def branch_slots(self) -> list[TreeNode]:
        """Nodes whose branch owns a parameter slot, in slot order."""
        skip = self.tree.rchild if self.is_reversible else None
        return [n for n in self.tree.iter_branches() if n is not skip]

    @property
    def n_branch_params(self) -> int:
        return len(self.branch_slots())

    @property
    def n_rate_var_params(self) -> int:
        return 1 if self.n_rate_cats > 1 else 0

    @property
    def n_rate_mat_params(self) -> int:
        return self.family.n_params

    @property
    def n_params(self) -> int:
        return self.n_branch_params + self.n_rate_var_params + self.n_rate_mat_params

    def params(self) -> NDArray[np.floating[Any]]:
        """Pack the current free parameters into a vector."""
        values = []
        for node in self.branch_slots():
            if self.is_reversible and node is self.tree.lchild:
                values.append(node.dparent + self.tree.rchild.dparent)
            else:
                values.append(node.dparent)
        if self.n_rate_var_params:
            values.append(self.alpha)
        values.extend(self.rate_params)
        return np.array(values, dtype=np.float64)

    def unpack_params(self, params: NDArray[np.floating[Any]]) -> None:
        """
        Set the free parameters from a vector (inverse of params()).

        A merged root slot is split evenly between the two root branches.

        Raises:
            ConsistencyFault: If the vector length differs from n_params
        """
        params = np.asarray(params, dtype=np.float64)
        if params.shape != (self.n_params,):
            raise ConsistencyFault(
                f"parameter vector has {params.size} entries, model expects "
                f"{self.n_params}"
            )
        idx = 0
        for node in self.branch_slots():
            if self.is_reversible and node is self.tree.lchild:
                node.dparent = self.tree.rchild.dparent = params[idx] / 2.0
            else:
                node.dparent = float(params[idx])
            idx += 1
        if self.n_rate_var_params:
            self.alpha = float(params[idx])
            idx += 1
        self.rate_params = params[idx:].copy()

    def init_params(
        self,
        branch_length: float = 0.1,
        kappa: float = 5.0,
        alpha: float = 1.0,
    ) -> NDArray[np.floating[Any]]:
        """Heuristic starting vector (does not modify the model)."""
        values = [branch_length] * self.n_branch_params
        if self.n_rate_var_params:
            values.append(alpha)
        values.extend(self.family.default_rate_params(kappa))
        return np.array(values, dtype=np.float64)

    def random_params(self, rng: np.random.Generator) -> NDArray[np.floating[Any]]:
        """Random starting vector drawn from rng (does not modify the model)."""
        parts = [rng.uniform(*RANDOM_BRANCH_RANGE, size=self.n_branch_params)]
        if self.n_rate_var_params:
            parts.append(rng.uniform(*RANDOM_ALPHA_RANGE, size=1))
        parts.append(rng.uniform(*RANDOM_RATE_RANGE, size=self.n_rate_mat_params))
        return np.concatenate(parts)

    # ------------------------------------------------------------------
    # Copy / reinitialization
    # ------------------------------------------------------------------

    def copy(self) -> TreeModel:
        return TreeModel(
            self.tree.copy(),
            self.family,
            rate_params=self.rate_params,
            backgd_freqs=self.backgd_freqs,
            n_rate_cats=self.n_rate_cats,
            alpha=self.alpha,
        )

    def reinit(self, family: SubstitutionFamily | str, n_rate_cats: int) -> None:
        """
        Switch substitution family and rate-category count in place.

        Tree, branch lengths and alpha are kept. Rate-matrix parameters are
        kept when the family is unchanged, otherwise reset to defaults.
        """
        family = get_family(family)
        if family != self.family:
            self.rate_params = family.default_rate_params()
        self.family = family
        self.n_rate_cats = check_int_bounds(n_rate_cats, 'n_rate_cats', 1)

    # ------------------------------------------------------------------
    # Process
    # ------------------------------------------------------------------

    def equilibrium_freqs(self) -> NDArray[np.floating[Any]]:
        if self.family.uniform_freqs:
            return np.full(N_STATES, 1.0 / N_STATES)
        if self.backgd_freqs is None:
            raise ValidationError(
                f"{self.family.name} model has no background frequencies"
            )
        return self.backgd_freqs

    def rate_matrix(self) -> NDArray[np.floating[Any]]:
        return self.family.rate_matrix(self.rate_params, self.equilibrium_freqs())

    def rate_categories(self) -> tuple[NDArray[np.floating[Any]], NDArray[np.floating[Any]]]:
        """
        Discrete-gamma rate categories (Yang 1994, mean of each bin).

        Returns:
            (rates, weights), each of length n_rate_cats; weights are equal
            and the weighted mean rate is 1.
        """
        k = self.n_rate_cats
        if k == 1:
            return np.ones(1), np.ones(1)
        a = self.alpha
        cuts = sp_stats.gamma.ppf(np.arange(1, k) / k, a, scale=1.0 / a)
        upper = np.append(special.gammainc(a + 1.0, cuts * a), 1.0)
        lower = np.insert(upper[:-1], 0, 0.0)
        rates = (upper - lower) * k
        return rates, np.full(k, 1.0 / k)

    def transition_matrix(
        self,
        t: float,
        Q: NDArray[np.floating[Any]] | None = None,
    ) -> NDArray[np.floating[Any]]:
        """P(t) = expm(Q t), clipped to be a proper stochastic matrix."""
        if Q is None:
            Q = self.rate_matrix()
        P = linalg.expm(Q * t)
        P = np.clip(P, 0.0, None)
        return P / P.sum(axis=1, keepdims=True)

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    def format(self) -> str:
        """Text representation in .mod style."""
        lines = [
            f"ALPHABET: {' '.join(ALPHABET)} ",
            "ORDER: 0",
            f"SUBST_MOD: {self.family.name}",
        ]
        if self.n_rate_cats > 1:
            lines.append(f"NRATECATS: {self.n_rate_cats}")
            lines.append(f"ALPHA: {self.alpha:.10g}")
        if self.backgd_freqs is not None or self.family.uniform_freqs:
            freqs = self.equilibrium_freqs()
            lines.append("BACKGROUND: " + " ".join(f"{f:.6f}" for f in freqs))
            lines.append("RATE_MAT:")
            for row in self.rate_matrix():
                lines.append("  " + " ".join(f"{q:13.6f}" for q in row))
        if self.n_rate_mat_params:
            lines.append("RATE_PARAMS: " + " ".join(f"{v:.10g}" for v in self.rate_params))
        lines.append(f"TREE: {self.tree.to_newick()}")
        return "\n".join(lines) + "\n"

    def write(self, path: str | Path) -> None:
        Path(path).write_text(self.format())

    def __repr__(self) -> str:
        return (
            f"TreeModel(family={self.family.name!r}, n_rate_cats={self.n_rate_cats}, "
            f"n_params={self.n_params})"
        )


def parse_model(text: str) -> TreeModel:
    """
    Parse a model from its .mod-style text.

    Rate parameters are read from RATE_PARAMS when present, otherwise
    recovered from RATE_MAT.

    Raises:
        ValidationError: If required fields are missing or malformed
    """
    fields: dict[str, str] = {}
    rate_rows: list[list[float]] = []
    lines = text.splitlines()
    i = 0
    while i < len(lines):
        line = lines[i].strip()
        i += 1
        if not line:
            continue
        if ':' not in line:
            raise ValidationError(f"model: unexpected line {line!r}")
        key, value = line.split(':', 1)
        key = key.strip().upper()
        if key == 'RATE_MAT':
            for _ in range(N_STATES):
                if i >= len(lines):
                    raise ValidationError("model: truncated RATE_MAT")
                try:
                    rate_rows.append([float(x) for x in lines[i].split()])
                except ValueError:
                    raise ValidationError(f"model: bad RATE_MAT row {lines[i]!r}") from None
                i += 1
        else:
            fields[key] = value.strip()

    for required in ('SUBST_MOD', 'TREE'):
        if required not in fields:
            raise ValidationError(f"model: missing {required}")

    alphabet = fields.get('ALPHABET', ALPHABET).replace(' ', '')
    if alphabet != ALPHABET:
        raise ValidationError(f"model: unsupported alphabet {alphabet!r}")

    try:
        family = get_family(fields['SUBST_MOD'])
        n_rate_cats = int(fields.get('NRATECATS', '1'))
        alpha = float(fields.get('ALPHA', '1'))
        freqs = None
        if 'BACKGROUND' in fields:
            freqs = np.array([float(x) for x in fields['BACKGROUND'].split()])
            freqs = freqs / freqs.sum()
        rate_params = None
        if 'RATE_PARAMS' in fields:
            rate_params = np.array([float(x) for x in fields['RATE_PARAMS'].split()])
        elif rate_rows and freqs is not None and family.n_params:
            rate_params = family.rate_params_from_matrix(np.array(rate_rows), freqs)
    except ValueError as e:
        raise ValidationError(f"model: {e}") from e

    return TreeModel(
        parse_newick(fields['TREE']),
        family,
        rate_params=rate_params,
        backgd_freqs=freqs,
        n_rate_cats=n_rate_cats,
        alpha=alpha,
    )


def read_model(path: str | Path) -> TreeModel:
    """Read a model file written by TreeModel.write()."""
    path = Path(path)
    try:
        text = path.read_text()
    except OSError as e:
        raise ValidationError(f"model: cannot read {path}: {e}") from e
    return parse_model(text)
