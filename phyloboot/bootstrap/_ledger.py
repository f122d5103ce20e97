"""
Per-slot bookkeeping of replicate estimates.

Every replicate yields one parameter vector with the same slot layout.
The ledger fixes the width and the slot descriptions from the first
model it sees and appends each later vector column by column.
"""

from __future__ import annotations

from typing import Any

import numpy as np
from numpy.typing import NDArray

from phyloboot.core.exceptions import ConsistencyFault
from phyloboot.phylo.model import TreeModel


def describe_parameters(model: TreeModel) -> list[str]:
    """
    One human-readable label per free-parameter slot of model.

    Labels follow the slot layout: branches in preorder (the merged root
    slot of a reversible model is "branch (spans root)"), then rate
    variation, then rate-matrix parameters labelled by the 1-based
    (row,col) cells they govern.

    Raises:
        ConsistencyFault: If the label count differs from model.n_params
    """
    tree = model.tree
    descriptions = []
    for node in model.branch_slots():
        if model.is_reversible and node is tree.lchild:
            descriptions.append("branch (spans root)")
        elif node.name:
            descriptions.append(f"branch (lf_{node.name}->anc_{node.parent.id})")
        else:
            descriptions.append(f"branch (anc_{node.id}->anc_{node.parent.id})")

    n_rv = model.n_rate_var_params
    for i in range(n_rv):
        descriptions.append("alpha" if n_rv == 1 else f"rate var #{i + 1}")

    cells = model.family.cells
    if len(cells) == 1:
        descriptions.append("kappa")
    else:
        for param_cells in cells:
            descriptions.append(
                "rmatrix" + "".join(f" ({r + 1},{c + 1})" for r, c in param_cells)
            )

    if len(descriptions) != model.n_params:
        raise ConsistencyFault(
            f"{len(descriptions)} parameter descriptions for a model with "
            f"{model.n_params} free parameters"
        )
    return descriptions


class ParameterLedger:
    """
    Accumulates replicate parameter vectors slot by slot.

    Attributes:
        descriptions: Slot labels, set by the first record() call
    """

    def __init__(self):
        self.descriptions: list[str] | None = None
        self._columns: list[list[float]] = []

    @property
    def n_params(self) -> int:
        return len(self._columns)

    @property
    def n_reps(self) -> int:
        return len(self._columns[0]) if self._columns else 0

    def record(self, params: NDArray[np.floating[Any]], model: TreeModel) -> None:
        """
        Append one replicate's vector.

        On the first call the width and descriptions are derived from
        model; later calls only append.

        Raises:
            ConsistencyFault: If the vector width differs from the first
        """
        params = np.asarray(params, dtype=np.float64)
        if self.descriptions is None:
            self.descriptions = describe_parameters(model)
            if params.size != len(self.descriptions):
                raise ConsistencyFault(
                    f"parameter vector has {params.size} entries but the model "
                    f"describes {len(self.descriptions)}"
                )
            self._columns = [[] for _ in range(params.size)]
        elif params.size != self.n_params:
            raise ConsistencyFault(
                f"replicate {self.n_reps + 1} has {params.size} parameters, "
                f"ledger holds {self.n_params}"
            )
        for column, value in zip(self._columns, params):
            column.append(float(value))

    def column(self, j: int) -> NDArray[np.floating[Any]]:
        """Estimates for slot j in replicate order."""
        return np.array(self._columns[j], dtype=np.float64)

    def estimates(self) -> NDArray[np.floating[Any]]:
        """All estimates, shape (n_reps, n_params)."""
        if not self._columns:
            return np.empty((0, 0))
        return np.array(self._columns, dtype=np.float64).T
