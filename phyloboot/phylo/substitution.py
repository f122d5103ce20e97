"""
Nucleotide substitution model families.

A family fixes the shape of the rate matrix: how many free rate-matrix
parameters it has and which off-diagonal cells each parameter governs.
Cells not governed by any parameter have relative rate 1. Except for
UNREST, the relative rate of a cell (i, j) is multiplied by the
equilibrium frequency of the target base j.

Supported families:
    JC69    0 parameters, uniform frequencies
    F81     0 parameters
    HKY85   1 parameter (kappa, transition/transversion ratio)
    REV     6 exchangeabilities, one per unordered base pair
    UNREST  12 rates, one per ordered base pair (not reversible)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import numpy as np
from numpy.typing import NDArray

from phyloboot.core.exceptions import ConfigurationError

ALPHABET = 'ACGT'
N_STATES = len(ALPHABET)

# A<->G and C<->T
TRANSITIONS = frozenset({(0, 2), (2, 0), (1, 3), (3, 1)})

# Names known from the wider family list that are not nucleotide-level
# models and therefore are not supported here.
HIGHER_ORDER_FAMILIES = frozenset({
    'R2', 'R2S', 'U2', 'U2S', 'R3', 'R3S', 'U3', 'U3S',
})

Cell = tuple[int, int]


@dataclass(frozen=True)
class SubstitutionFamily:
    """
    Shape of a nucleotide rate matrix.

    Attributes:
        name: Family name as used on the command line and in model files
        reversible: Whether the process is time-reversible
        cells: For each free parameter, the (row, col) cells it governs
        uniform_freqs: Equilibrium frequencies are fixed at 1/4
        weight_by_freqs: Relative rates are multiplied by pi_j
    """
    name: str
    reversible: bool
    cells: tuple[tuple[Cell, ...], ...]
    uniform_freqs: bool = False
    weight_by_freqs: bool = True

    @property
    def n_params(self) -> int:
        return len(self.cells)

    def rate_matrix(
        self,
        params: NDArray[np.floating[Any]],
        freqs: NDArray[np.floating[Any]],
    ) -> NDArray[np.floating[Any]]:
        """
        Build the scaled rate matrix Q.

        Rows sum to zero and Q is scaled so that the expected number of
        substitutions per unit time under freqs is one.
        """
        params = np.asarray(params, dtype=np.float64)
        if params.shape != (self.n_params,):
            raise ValueError(
                f"{self.name}: expected {self.n_params} rate parameters, "
                f"got {params.shape}"
            )
        if self.uniform_freqs:
            freqs = np.full(N_STATES, 1.0 / N_STATES)

        rel = np.ones((N_STATES, N_STATES))
        for value, cells in zip(params, self.cells):
            for i, j in cells:
                rel[i, j] = value

        if self.weight_by_freqs:
            Q = rel * freqs[np.newaxis, :]
        else:
            Q = rel.copy()
        np.fill_diagonal(Q, 0.0)
        np.fill_diagonal(Q, -Q.sum(axis=1))

        rate = -float(np.dot(freqs, np.diag(Q)))
        if not np.isfinite(rate) or rate <= 0:
            raise ValueError(f"{self.name}: rate matrix has non-positive total rate")
        return Q / rate

    def default_rate_params(self, kappa: float = 5.0) -> NDArray[np.floating[Any]]:
        """Heuristic start: transition cells at kappa, everything else 1."""
        values = [
            kappa if any(cell in TRANSITIONS for cell in cells) else 1.0
            for cells in self.cells
        ]
        return np.array(values, dtype=np.float64)

    def rate_params_from_matrix(
        self,
        Q: NDArray[np.floating[Any]],
        freqs: NDArray[np.floating[Any]],
    ) -> NDArray[np.floating[Any]]:
        """
        Recover rate parameters from a rate matrix.

        When some cells are not governed by a parameter (HKY85) the result
        is relative to their mean rate; otherwise it is only defined up to
        the matrix scale.
        """
        Q = np.asarray(Q, dtype=np.float64)
        if self.uniform_freqs:
            freqs = np.full(N_STATES, 1.0 / N_STATES)
        rel = Q / freqs[np.newaxis, :] if self.weight_by_freqs else Q.copy()

        governed = {cell for cells in self.cells for cell in cells}
        free = [
            (i, j) for i in range(N_STATES) for j in range(N_STATES)
            if i != j and (i, j) not in governed
        ]
        ref = float(np.mean([rel[c] for c in free])) if free else 1.0
        return np.array(
            [np.mean([rel[c] for c in cells]) / ref for cells in self.cells],
            dtype=np.float64,
        )


def _pairs() -> tuple[tuple[Cell, ...], ...]:
    return tuple(
        ((i, j), (j, i))
        for i in range(N_STATES) for j in range(i + 1, N_STATES)
    )


def _ordered_pairs() -> tuple[tuple[Cell, ...], ...]:
    return tuple(
        ((i, j),)
        for i in range(N_STATES) for j in range(N_STATES) if i != j
    )


FAMILIES = {
    'JC69': SubstitutionFamily('JC69', True, (), uniform_freqs=True),
    'F81': SubstitutionFamily('F81', True, ()),
    'HKY85': SubstitutionFamily('HKY85', True, (tuple(sorted(TRANSITIONS)),)),
    'REV': SubstitutionFamily('REV', True, _pairs()),
    'UNREST': SubstitutionFamily('UNREST', False, _ordered_pairs(), weight_by_freqs=False),
}


def get_family(name: str | SubstitutionFamily) -> SubstitutionFamily:
    """
    Look up a substitution family by name.

    Raises:
        ConfigurationError: For unknown or unsupported names
    """
    if isinstance(name, SubstitutionFamily):
        return name
    key = str(name).upper()
    if key in FAMILIES:
        return FAMILIES[key]
    if key in HIGHER_ORDER_FAMILIES:
        raise ConfigurationError(
            f"substitution model {name!r} is a higher-order model and is not "
            f"supported; use one of {', '.join(FAMILIES)}"
        )
    raise ConfigurationError(
        f"illegal substitution model {name!r}; use one of {', '.join(FAMILIES)}"
    )
