"""Linear-solve collaborators for implicit time steppers.

Every implicit step reduces to ``operator @ x = rhs`` over interior unknowns,
with ``operator`` a SciPy sparse matrix. A solver only has to honour

    solve(operator, rhs) -> solution

and report failure as :class:`~fdpde.exceptions.SolveDidNotConvergeError`,
so the dispatcher can refuse to commit the step.
"""

from __future__ import annotations

import warnings
from dataclasses import dataclass
from typing import Literal, Protocol, runtime_checkable

import numpy as np
import scipy.sparse as sp
from scipy.sparse.linalg import MatrixRankWarning, bicgstab, gmres, spsolve

from ..config import SolverConfig
from ..exceptions import SolveDidNotConvergeError
from ..logging import get_logger
from ..typing import FloatArray
from .tridiag import (
    CyclicTridiag,
    solve_cyclic_tridiag,
    solve_tridiag_banded,
    solve_tridiag_thomas,
    split_tridiagonal,
)

logger = get_logger(__name__)


@runtime_checkable
class LinearSolver(Protocol):
    """Solves ``operator @ x = rhs`` for a square sparse operator."""

    @property
    def name(self) -> str:  # pragma: no cover
        ...

    @property
    def tridiagonal_only(self) -> bool:  # pragma: no cover
        ...

    def solve(
        self, operator: sp.spmatrix, rhs: FloatArray
    ) -> FloatArray:  # pragma: no cover
        ...


def _residual(operator: sp.spmatrix, x: FloatArray, rhs: FloatArray) -> float:
    return float(np.linalg.norm(operator @ x - rhs))


def _check_finite(name: str, x: FloatArray) -> FloatArray:
    if not np.all(np.isfinite(x)):
        raise SolveDidNotConvergeError(f"{name} solver produced non-finite values")
    return x


@dataclass(frozen=True, slots=True)
class DirectSolver:
    """Sparse LU through :func:`scipy.sparse.linalg.spsolve`."""

    @property
    def name(self) -> str:
        return "direct"

    @property
    def tridiagonal_only(self) -> bool:
        return False

    def solve(self, operator: sp.spmatrix, rhs: FloatArray) -> FloatArray:
        with warnings.catch_warnings():
            warnings.simplefilter("error", MatrixRankWarning)
            try:
                x = spsolve(sp.csc_matrix(operator), np.asarray(rhs, dtype=float))
            except (MatrixRankWarning, RuntimeError) as e:
                raise SolveDidNotConvergeError(f"Direct solve failed: {e}") from e
        return _check_finite(self.name, np.atleast_1d(np.asarray(x, dtype=float)))


@dataclass(frozen=True, slots=True)
class ThomasSolver:
    """Thomas algorithm; periodic corners go through the cyclic variant."""

    @property
    def name(self) -> str:
        return "thomas"

    @property
    def tridiagonal_only(self) -> bool:
        return True

    def solve(self, operator: sp.spmatrix, rhs: FloatArray) -> FloatArray:
        system = split_tridiagonal(operator)
        try:
            if isinstance(system, CyclicTridiag):
                x = solve_cyclic_tridiag(system, rhs)
            else:
                x = solve_tridiag_thomas(system, rhs)
        except np.linalg.LinAlgError as e:
            raise SolveDidNotConvergeError(f"Thomas solve failed: {e}") from e
        return _check_finite(self.name, x)


@dataclass(frozen=True, slots=True)
class BandedSolver:
    """SciPy banded LU with partial pivoting; no periodic corners."""

    @property
    def name(self) -> str:
        return "banded"

    @property
    def tridiagonal_only(self) -> bool:
        return True

    def solve(self, operator: sp.spmatrix, rhs: FloatArray) -> FloatArray:
        system = split_tridiagonal(operator)
        if isinstance(system, CyclicTridiag):
            raise ValueError("banded solver does not support periodic corners")
        try:
            x = solve_tridiag_banded(system, rhs)
        except np.linalg.LinAlgError as e:
            raise SolveDidNotConvergeError(f"Banded solve failed: {e}") from e
        return _check_finite(self.name, x)


@dataclass(frozen=True, slots=True)
class KrylovSolver:
    """Restarted GMRES or BiCGSTAB with a bounded iteration count."""

    method: Literal["gmres", "bicgstab"] = "gmres"
    rtol: float = 1e-10
    atol: float = 0.0
    max_iter: int = 500

    @property
    def name(self) -> str:
        return self.method

    @property
    def tridiagonal_only(self) -> bool:
        return False

    def solve(self, operator: sp.spmatrix, rhs: FloatArray) -> FloatArray:
        A = sp.csr_matrix(operator)
        b = np.asarray(rhs, dtype=float)
        krylov = gmres if self.method == "gmres" else bicgstab
        x, info = krylov(A, b, rtol=self.rtol, atol=self.atol, maxiter=self.max_iter)
        x = np.asarray(x, dtype=float)
        if info != 0:
            residual = _residual(A, x, b)
            logger.warning(
                "%s stopped with info=%d (residual %.3e)", self.method, info, residual
            )
            raise SolveDidNotConvergeError(
                f"{self.method} did not converge (info={info})",
                iterations=info if info > 0 else None,
                residual=residual,
            )
        return _check_finite(self.name, x)


def get_linear_solver(config: SolverConfig | None = None) -> LinearSolver:
    """Build the linear solver named by ``config.linear_solver``."""
    cfg = config if config is not None else SolverConfig()
    match cfg.linear_solver:
        case "direct":
            return DirectSolver()
        case "thomas":
            return ThomasSolver()
        case "banded":
            return BandedSolver()
        case "gmres" | "bicgstab":
            return KrylovSolver(
                method=cfg.linear_solver,
                rtol=cfg.rtol,
                atol=cfg.atol,
                max_iter=cfg.max_iter,
            )
    raise ValueError(f"Unknown linear solver {cfg.linear_solver!r}")
