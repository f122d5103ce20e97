"""
Aggregation of replicate estimates.

Quantiles interpolate linearly between adjacent order statistics
(Hyndman & Fan type 7, R's default): the value at probability p of a
sorted sample x[0..n-1] sits at 0-based rank p * (n - 1).

Reference:
    Hyndman, R.J. and Fan, Y. (1996) "Sample Quantiles in Statistical
    Packages", The American Statistician, 50(4), 361-365.
"""

from __future__ import annotations

import math

import numpy as np
from numpy.typing import NDArray

from phyloboot.bootstrap._common import SummaryRow
from phyloboot.bootstrap._ledger import ParameterLedger
from phyloboot.core.exceptions import ValidationError
from phyloboot.phylo.model import TreeModel

# min, 95% lower, 90% lower, median, 90% upper, 95% upper, max
SUMMARY_PROBS = np.array([0.0, 0.025, 0.05, 0.5, 0.95, 0.975, 1.0])


def sorted_quantiles(x: NDArray, probs: NDArray) -> NDArray:
    """
    Type 7 quantiles of an ascending-sorted sample.

    Parameters
    ----------
    x : NDArray
        1D sorted array with no NaN values.
    probs : NDArray
        1D array of probabilities in [0, 1].

    Returns
    -------
    NDArray
        Quantile values, one per probability.
    """
    probs = np.asarray(probs, dtype=np.float64)
    if np.any((probs < 0) | (probs > 1)):
        raise ValidationError(f"probs: must lie in [0, 1], got {probs}")

    n = len(x)
    if n == 0:
        return np.full(len(probs), np.nan)
    if n == 1:
        return np.full(len(probs), x[0])

    # 4 * machine epsilon, so ranks like 0.5 * 9 land exactly on j
    fuzz = 4.0 * np.finfo(np.float64).eps
    result = np.empty(len(probs), dtype=np.float64)
    for i, p in enumerate(probs):
        nppm = 1.0 + p * (n - 1.0)
        j = int(math.floor(nppm + fuzz))
        h = nppm - j
        if abs(h) < fuzz:
            h = 0.0

        if j < 1:
            result[i] = x[0]
        elif j >= n:
            result[i] = x[n - 1]
        else:
            result[i] = (1.0 - h) * x[j - 1] + h * x[j]
    return result


def summarize_values(values: NDArray, index: int = 0, description: str = '') -> SummaryRow:
    """Summary statistics for one slot's estimates."""
    x = np.sort(np.asarray(values, dtype=np.float64))
    n = x.size
    q = sorted_quantiles(x, SUMMARY_PROBS)
    return SummaryRow(
        index=index,
        description=description,
        mean=float(np.mean(x)) if n else float('nan'),
        stdev=float(np.std(x, ddof=1)) if n > 1 else 0.0,
        median=float(q[3]),
        min=float(q[0]),
        max=float(q[6]),
        ci95_lower=float(q[1]),
        ci95_upper=float(q[5]),
        ci90_lower=float(q[2]),
        ci90_upper=float(q[4]),
    )


def summarize(ledger: ParameterLedger) -> list[SummaryRow]:
    """One SummaryRow per ledger slot, in slot order."""
    descriptions = ledger.descriptions or []
    return [
        summarize_values(ledger.column(j), j, descriptions[j])
        for j in range(ledger.n_params)
    ]


def average_model(rows: list[SummaryRow], representative: TreeModel) -> TreeModel:
    """
    Unpack the per-slot means into representative and return it.

    The representative model is modified in place.
    """
    means = np.array([row.mean for row in rows], dtype=np.float64)
    representative.unpack_params(means)
    return representative
