"""
Common data structures for the parameter bootstrap.

SummaryRow is one line of the report; BootParams is the payload wrapped
by Result[P] and exposed through BootstrapSolution.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, TYPE_CHECKING

import numpy as np
from numpy.typing import NDArray

if TYPE_CHECKING:
    from phyloboot.phylo.model import TreeModel


@dataclass(frozen=True)
class SummaryRow:
    """
    Statistics for one parameter slot.

    Interval bounds are the 2.5/97.5 (95%) and 5/95 (90%) percentiles of
    the replicate estimates.
    """
    index: int
    description: str
    mean: float
    stdev: float
    median: float
    min: float
    max: float
    ci95_lower: float
    ci95_upper: float
    ci90_lower: float
    ci90_upper: float

    def values(self) -> tuple[float, ...]:
        """Numeric columns in report order."""
        return (
            self.mean, self.stdev, self.median, self.min, self.max,
            self.ci95_lower, self.ci95_upper, self.ci90_lower, self.ci90_upper,
        )


@dataclass(frozen=True)
class BootParams:
    """
    Parameter payload for a bootstrap run.

    - n_reps: replicates processed
    - estimates: replicate estimates, shape (n_reps, P); None when
      estimation was disabled
    - descriptions: P slot labels
    - rows: one SummaryRow per slot, empty without estimates
    - average_model: representative model holding the per-slot means
    """
    n_reps: int
    estimates: NDArray[np.floating[Any]] | None
    descriptions: tuple[str, ...]
    rows: tuple[SummaryRow, ...]
    average_model: 'TreeModel | None' = None
