"""
Validation helpers shared by the problem inputs and the grid builders.

All failures are reported as
:class:`~fdpde.exceptions.InvalidConfigurationError` with a
:class:`~fdpde.exceptions.ConfigurationIssue` reason, so the same violation
produces the same error on every code path.
"""

from __future__ import annotations

import math

import numpy as np

from ...exceptions import ConfigurationIssue, InvalidConfigurationError
from ...typing import FloatArray

MIN_POINTS = 3


def as_readonly_array(values, name: str) -> FloatArray:
    """Copy ``values`` into a read-only float64 array."""
    try:
        arr = np.array(values, dtype=float, copy=True)
    except (TypeError, ValueError) as e:
        raise InvalidConfigurationError(
            ConfigurationIssue.NON_FINITE_VALUES, f"{name} must be numeric"
        ) from e
    arr.setflags(write=False)
    return arr


def assert_finite(x: np.ndarray, name: str) -> None:
    if not np.all(np.isfinite(x)):
        raise InvalidConfigurationError(
            ConfigurationIssue.NON_FINITE_VALUES, f"{name} contains non-finite values"
        )


def assert_axis_grid(x: np.ndarray, name: str) -> None:
    """A valid axis grid: 1D, at least 3 finite points, strictly increasing."""
    if x.ndim != 1:
        raise InvalidConfigurationError(
            ConfigurationIssue.MISMATCHED_LENGTHS, f"{name} must be 1D"
        )
    if x.size < MIN_POINTS:
        raise InvalidConfigurationError(
            ConfigurationIssue.TOO_FEW_POINTS,
            f"{name} needs at least {MIN_POINTS} points, got {x.size}",
        )
    assert_finite(x, name)
    assert_strictly_increasing(x, name)


def assert_strictly_increasing(x: np.ndarray, name: str) -> None:
    if np.any(np.diff(x) <= 0):
        raise InvalidConfigurationError(
            ConfigurationIssue.GRID_NOT_INCREASING, f"{name} must be strictly increasing"
        )


def assert_same_length(x: np.ndarray, n: int, name: str, ref: str) -> None:
    if x.ndim != 1 or x.size != n:
        raise InvalidConfigurationError(
            ConfigurationIssue.MISMATCHED_LENGTHS,
            f"{name} must have the length of {ref} ({n}), got shape {x.shape}",
        )


def assert_positive_dt(dt: float) -> float:
    try:
        value = float(dt)
    except (TypeError, ValueError) as e:
        raise InvalidConfigurationError(
            ConfigurationIssue.NON_POSITIVE_DT, f"dt must be a real number, got {dt!r}"
        ) from e
    if not math.isfinite(value) or value <= 0.0:
        raise InvalidConfigurationError(
            ConfigurationIssue.NON_POSITIVE_DT, f"dt must be finite and > 0, got {dt!r}"
        )
    return value
