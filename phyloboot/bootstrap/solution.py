"""
Solution wrapper for bootstrap results.

BootstrapSolution wraps Result[BootParams] and provides accessors and
the fixed-width parameter report.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, TYPE_CHECKING

import numpy as np
from numpy.typing import NDArray

from phyloboot.bootstrap._common import BootParams, SummaryRow
from phyloboot.core.result import Result

if TYPE_CHECKING:
    from phyloboot.bootstrap.design import BootstrapDesign
    from phyloboot.phylo.model import TreeModel

REPORT_COLUMNS = (
    "mean", "stdev", "median", "min", "max",
    "95%_min", "95%_max", "90%_min", "90%_max",
)


@dataclass
class BootstrapSolution:
    """
    User-facing bootstrap results.

    summary() produces one row per parameter slot: mean, standard
    deviation, median, min, max, then the 95% and 90% interval bounds.
    """
    _result: Result[BootParams]
    _design: 'BootstrapDesign'

    # --- Estimates ---

    @property
    def rows(self) -> tuple[SummaryRow, ...]:
        """Per-slot summary rows (empty when estimation was disabled)."""
        return self._result.params.rows

    @property
    def descriptions(self) -> tuple[str, ...]:
        return self._result.params.descriptions

    @property
    def estimates(self) -> NDArray[np.floating[Any]] | None:
        """Replicate estimates, shape (n_reps, n_params), or None."""
        return self._result.params.estimates

    @property
    def means(self) -> NDArray[np.floating[Any]]:
        return np.array([row.mean for row in self.rows], dtype=np.float64)

    @property
    def n_params(self) -> int:
        return len(self.rows)

    @property
    def average_model(self) -> 'TreeModel | None':
        """Representative model carrying the per-slot means."""
        return self._result.params.average_model

    # --- Metadata ---

    @property
    def n_reps(self) -> int:
        return self._result.params.n_reps

    @property
    def mode(self) -> str:
        """'parametric', 'nonparametric' or 'ingest'."""
        return self._design.kind

    @property
    def estimated(self) -> bool:
        return self._design.estimate

    @property
    def info(self) -> dict[str, Any]:
        return self._result.info

    @property
    def timing(self) -> dict[str, float] | None:
        return self._result.timing

    @property
    def backend_name(self) -> str:
        return self._result.backend_name

    @property
    def warnings(self) -> tuple[str, ...]:
        return self._result.warnings

    # --- Display ---

    def summary(self) -> str:
        """
        Fixed-width parameter report.

        Produces:
            param   description                    mean     stdev ...
            0       branch (spans root)         0.10213   0.01132 ...
        """
        lines = [
            f"{'param':<7s} {'description':<25s} "
            + " ".join(f"{c:>9s}" for c in REPORT_COLUMNS)
        ]
        for row in self.rows:
            lines.append(
                f"{row.index:<7d} {row.description:<25s} "
                + " ".join(f"{v:9.5f}" for v in row.values())
            )
        return "\n".join(lines) + "\n"

    def __repr__(self) -> str:
        return (
            f"BootstrapSolution(mode={self.mode!r}, n_reps={self.n_reps}, "
            f"n_params={self.n_params})"
        )
