"""
Input validation utilities for phyloboot.

These validators follow the "fail fast, fail loud" principle. They raise
immediately with clear error messages rather than silently correcting
or making assumptions about user intent.

Design principles:
    - Clear, actionable error messages with actual values
    - Each function validates ONE thing
    - Parameter names included in all error messages
"""

from __future__ import annotations

from typing import Any, Iterable

import numpy as np
from numpy.typing import ArrayLike, NDArray

from phyloboot.core.exceptions import ValidationError, ConfigurationError


def check_int_bounds(
    value: Any,
    name: str,
    minimum: int,
    maximum: int | None = None,
) -> int:
    """
    Validate an integer option against inclusive bounds.

    Args:
        value: Value to validate (int or numeric string)
        name: Parameter name for error messages
        minimum: Smallest allowed value
        maximum: Largest allowed value, or None for no upper bound

    Returns:
        The value as int

    Raises:
        ValidationError: If value is not an integer or out of bounds
    """
    if isinstance(value, bool):
        raise ValidationError(f"{name}: expected an integer, got {value!r}")
    try:
        ivalue = int(value)
    except (TypeError, ValueError) as e:
        raise ValidationError(f"{name}: expected an integer, got {value!r}") from e
    if isinstance(value, float) and value != ivalue:
        raise ValidationError(f"{name}: expected an integer, got {value!r}")

    if ivalue < minimum:
        raise ValidationError(f"{name}: must be >= {minimum}, got {ivalue}")
    if maximum is not None and ivalue > maximum:
        raise ValidationError(f"{name}: must be <= {maximum}, got {ivalue}")
    return ivalue


def check_choice(value: str, name: str, choices: Iterable[str]) -> str:
    """
    Verify a string option is one of the allowed values.

    Raises:
        ConfigurationError: If value is not among choices
    """
    choices = tuple(choices)
    if value not in choices:
        allowed = ", ".join(repr(c) for c in choices)
        raise ConfigurationError(f"{name}: must be one of {allowed}, got {value!r}")
    return value


def check_probabilities(p: ArrayLike, name: str) -> NDArray[np.floating[Any]]:
    """
    Validate a probability vector.

    Entries must be finite and non-negative and sum to 1 within 1e-8.

    Returns:
        The vector as a float64 array

    Raises:
        ValidationError: If the vector is not a valid distribution
    """
    arr = np.asarray(p, dtype=np.float64)
    if arr.ndim != 1 or arr.size == 0:
        raise ValidationError(f"{name}: expected a non-empty 1D vector, got shape {arr.shape}")
    if not np.all(np.isfinite(arr)):
        raise ValidationError(f"{name}: contains non-finite values")
    if np.any(arr < 0):
        raise ValidationError(f"{name}: contains negative entries (min {arr.min():.3g})")
    total = float(arr.sum())
    if abs(total - 1.0) > 1e-8:
        raise ValidationError(f"{name}: must sum to 1, sums to {total:.10g}")
    return arr
