from __future__ import annotations

from enum import Enum


class ConfigurationIssue(str, Enum):
    """Enumerated reasons carried by :class:`InvalidConfigurationError`."""

    TOO_FEW_POINTS = "too_few_points"
    GRID_NOT_INCREASING = "grid_not_increasing"
    NON_POSITIVE_DT = "non_positive_dt"
    MISMATCHED_LENGTHS = "mismatched_lengths"
    NON_FINITE_VALUES = "non_finite_values"
    INCONSISTENT_PERIODIC_PAIRING = "inconsistent_periodic_pairing"
    PERIODIC_SPACING_MISMATCH = "periodic_spacing_mismatch"
    NULL_SOLVER_TYPE = "null_solver_type"
    NULL_DISCRETIZER_TYPE = "null_discretizer_type"
    NULL_BOUNDARY_TYPE = "null_boundary_type"
    INVALID_SETTING = "invalid_setting"


class FiniteDifferenceError(Exception):
    """Base class for every error raised by :mod:`fdpde`."""


class InvalidConfigurationError(FiniteDifferenceError, ValueError):
    """Raised when a problem or solver configuration violates an invariant.

    Always raised at construction time (inputs, boundary conditions,
    :class:`~fdpde.config.SolverConfig`, solver construction), never in the
    middle of a time step.

    Attributes
    ----------
    reason : ConfigurationIssue
        Machine-readable category of the violation.
    """

    def __init__(self, reason: ConfigurationIssue, message: str) -> None:
        super().__init__(message)
        self.reason = ConfigurationIssue(reason)


class UnsupportedSolverError(FiniteDifferenceError, ValueError):
    """Raised when a NULL or out-of-range solver type reaches dispatch."""


class InvalidDiscretizationError(FiniteDifferenceError, ValueError):
    """Raised when a NULL or unknown space discretizer type is requested."""


class InsufficientHistoryError(FiniteDifferenceError, RuntimeError):
    """Raised when a multistep method lacks prior states and fallback is disabled."""


class SolveDidNotConvergeError(FiniteDifferenceError, RuntimeError):
    """Raised when the linear-solve collaborator fails for an implicit step.

    The step is not committed: the solver history and the caller's state are
    left exactly as they were before the call.
    """

    def __init__(
        self,
        message: str,
        *,
        iterations: int | None = None,
        residual: float | None = None,
    ) -> None:
        super().__init__(message)
        self.iterations = iterations
        self.residual = residual
