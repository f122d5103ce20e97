"""
Replicate generation.

Parametric replicates are simulated from the generative model.
Non-parametric replicates redraw the site-pattern counts of the input
alignment from a multinomial whose cell probabilities are the observed
pattern frequencies.

numpy's multinomial sampler is exact; its cost grows with the number of
patterns, not with n_sites * n_tuples.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import numpy as np
from numpy.typing import ArrayLike, NDArray

from phyloboot.core.exceptions import ConsistencyFault, InvalidDistributionError
from phyloboot.core.validation import check_int_bounds
from phyloboot.phylo.alignment import Alignment
from phyloboot.phylo.simulate import simulate_alignment


@dataclass(frozen=True)
class EmpiricalDistribution:
    """
    Normalized site-pattern probabilities of an alignment.

    Attributes:
        probs: Probability of each pattern, shape (n_tuples,), sums to 1
    """
    probs: NDArray[np.floating[Any]]

    @classmethod
    def from_counts(cls, counts: ArrayLike) -> EmpiricalDistribution:
        """
        Normalize pattern counts.

        Raises:
            InvalidDistributionError: If there are no patterns, a count is
                negative or non-finite, or the total is not positive
        """
        counts = np.asarray(counts, dtype=np.float64)
        n_tuples = counts.size
        if n_tuples == 0:
            raise InvalidDistributionError(
                "empirical distribution has no site patterns",
                n_tuples=0,
                total=0.0,
            )
        total = float(counts.sum())
        if not np.all(np.isfinite(counts)) or np.any(counts < 0):
            raise InvalidDistributionError(
                "site-pattern counts must be finite and non-negative",
                n_tuples=n_tuples,
                total=total,
            )
        if not total > 0:
            raise InvalidDistributionError(
                f"site-pattern counts sum to {total}, need a positive total",
                n_tuples=n_tuples,
                total=total,
            )
        return cls(probs=counts / total)

    @property
    def n_tuples(self) -> int:
        return self.probs.size


def resample_counts(
    distribution: EmpiricalDistribution,
    n_sites: int,
    rng: np.random.Generator,
) -> NDArray[np.int64]:
    """
    Draw new pattern counts: n_sites multinomial trials over the patterns.

    The returned counts always sum to n_sites.
    """
    n_sites = check_int_bounds(n_sites, 'n_sites', 1)
    return rng.multinomial(n_sites, distribution.probs)


class Resampler:
    """
    Produces one replicate alignment per call to draw().

    Non-parametric replicates reuse a single working copy of the input
    alignment whose counts and length are overwritten on every draw, so a
    replicate is only valid until the next draw.
    """

    def __init__(self, source, n_sites: int, rng: np.random.Generator):
        self.source = source
        self.n_sites = check_int_bounds(n_sites, 'n_sites', 1)
        self.rng = rng
        self._working = None
        if source.kind == 'nonparametric':
            self._working = source.alignment.copy()
        elif source.kind != 'parametric':
            raise ConsistencyFault(f"cannot resample from a {source.kind!r} source")

    def draw(self) -> Alignment:
        if self._working is None:
            return simulate_alignment(self.source.model, self.n_sites, self.rng)
        counts = resample_counts(self.source.distribution, self.n_sites, self.rng)
        self._working.counts[:] = counts
        self._working.length = self.n_sites
        return self._working
