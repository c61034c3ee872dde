from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from .exceptions import ConfigurationIssue, InvalidConfigurationError
from .types import SolverType

LinearSolverName = Literal["direct", "thomas", "banded", "gmres", "bicgstab"]

_LINEAR_SOLVERS: frozenset[str] = frozenset(
    {"direct", "thomas", "banded", "gmres", "bicgstab"}
)

# Base methods Richardson extrapolation may be built on (both first order).
RICHARDSON_BASES: frozenset[SolverType] = frozenset(
    {SolverType.EXPLICIT_EULER, SolverType.IMPLICIT_EULER}
)


def _invalid(message: str) -> InvalidConfigurationError:
    return InvalidConfigurationError(ConfigurationIssue.INVALID_SETTING, message)


@dataclass(frozen=True, slots=True)
class SolverConfig:
    """Numerical settings of a :class:`~fdpde.pde.FiniteDifferenceSolver`.

    Parameters
    ----------
    linear_solver:
        Linear-solve collaborator used by implicit methods.
        ``"thomas"`` and ``"banded"`` only accept tridiagonal (1D) systems.
    rtol, atol, max_iter:
        Tolerances of the Krylov solvers (``"gmres"``, ``"bicgstab"``).
    multistep_fallback:
        If True (default), a multistep method without enough history takes a
        self-starting single step instead of raising.
    richardson_base:
        First-order base method of Richardson extrapolation.
    """

    linear_solver: LinearSolverName = "direct"
    rtol: float = 1e-10
    atol: float = 0.0
    max_iter: int = 500
    multistep_fallback: bool = True
    richardson_base: SolverType = SolverType.EXPLICIT_EULER

    def __post_init__(self) -> None:
        if self.linear_solver not in _LINEAR_SOLVERS:
            raise _invalid(
                f"Unknown linear solver {self.linear_solver!r}. "
                f"Available: {', '.join(sorted(_LINEAR_SOLVERS))}"
            )
        if self.rtol <= 0:
            raise _invalid("rtol must be > 0")
        if self.atol < 0:
            raise _invalid("atol must be >= 0")
        if self.max_iter <= 0:
            raise _invalid("max_iter must be > 0")
        if self.richardson_base not in RICHARDSON_BASES:
            raise _invalid(
                "richardson_base must be EXPLICIT_EULER or IMPLICIT_EULER, "
                f"got {self.richardson_base!r}"
            )
