# src/fdpde/numerics/tridiag.py
from __future__ import annotations

from dataclasses import dataclass
from typing import cast

import numpy as np
import scipy.sparse as sp
from scipy.linalg import solve_banded

from ..typing import FloatArray

__all__ = [
    "Tridiag",
    "CyclicTridiag",
    "tridiag_mv",
    "split_tridiagonal",
    "solve_tridiag_thomas",
    "solve_cyclic_tridiag",
    "solve_tridiag_banded",
    "tridiag_to_dense",
]


@dataclass(frozen=True, slots=True)
class Tridiag:
    lower: FloatArray
    diag: FloatArray
    upper: FloatArray

    def check(self) -> int:
        """Validate diagonal shapes and return the system size M.

        M == 0 is allowed with three empty diagonals.
        """
        diag = np.asarray(self.diag)
        if diag.ndim != 1:
            raise ValueError("diag must be 1D")

        M = int(diag.shape[0])
        off = (max(M - 1, 0),)
        if np.asarray(self.lower).shape != off or np.asarray(self.upper).shape != off:
            raise ValueError(f"lower/upper must have shape {off}")
        return M

    def mv(self, u: FloatArray) -> FloatArray:
        self.check()
        return tridiag_mv(self.lower, self.diag, self.upper, u)

    def to_sparse(self) -> sp.csr_matrix:
        M = self.check()
        if M == 0:
            return sp.csr_matrix((0, 0))
        return sp.diags(
            [self.lower, self.diag, self.upper],
            offsets=[-1, 0, 1],
            shape=(M, M),
            format="csr",
        )


@dataclass(frozen=True, slots=True)
class CyclicTridiag:
    """Tridiagonal matrix plus the two corner entries of a periodic system.

    ``corner_lower`` sits at (M-1, 0) and ``corner_upper`` at (0, M-1).
    """

    band: Tridiag
    corner_lower: float
    corner_upper: float


def tridiag_mv(
    lower: FloatArray,  # (M-1,)
    diag: FloatArray,  # (M,)
    upper: FloatArray,  # (M-1,)
    u: FloatArray,  # (M,)
) -> FloatArray:
    """y = T u for the tridiagonal T with diagonals (lower, diag, upper)."""
    diag = np.asarray(diag)
    u = np.asarray(u)
    M = int(diag.shape[0])
    if u.shape != (M,):
        raise ValueError(f"u must have shape {(M,)} got {u.shape}")

    y = diag * u
    if M > 1:
        y[1:] += np.asarray(lower) * u[:-1]
        y[:-1] += np.asarray(upper) * u[1:]
    return cast(FloatArray, y)


def split_tridiagonal(operator: sp.spmatrix) -> Tridiag | CyclicTridiag:
    """Extract the band of a sparse matrix that is (cyclic) tridiagonal.

    Raises
    ------
    ValueError
        If the matrix has entries outside the three central diagonals other
        than the two periodic corners.
    """
    A = sp.coo_matrix(operator)
    M, M2 = A.shape
    if M != M2:
        raise ValueError(f"operator must be square, got {A.shape}")

    nz = A.data != 0.0
    rows, cols = A.row[nz], A.col[nz]
    far = np.abs(rows - cols) > 1
    corner = ((rows == M - 1) & (cols == 0)) | ((rows == 0) & (cols == M - 1))
    if np.any(far & ~corner):
        raise ValueError("operator is not tridiagonal (up to periodic corners)")

    csr = A.tocsr()
    band = Tridiag(
        lower=np.asarray(csr.diagonal(-1), dtype=float),
        diag=np.asarray(csr.diagonal(0), dtype=float),
        upper=np.asarray(csr.diagonal(1), dtype=float),
    )
    if not np.any(far):
        return band
    return CyclicTridiag(
        band=band,
        corner_lower=float(csr[M - 1, 0]),
        corner_upper=float(csr[0, M - 1]),
    )


def solve_tridiag_thomas(A: Tridiag, rhs: FloatArray) -> FloatArray:
    """
    Solve A x = rhs with the Thomas algorithm (no pivoting).

    Inputs are never modified. Raises np.linalg.LinAlgError on a
    (near-)zero pivot; diagonally dominant systems never hit one.
    """
    M = A.check()
    rhs = np.asarray(rhs)
    if rhs.shape != (M,):
        raise ValueError(f"rhs must have shape {(M,)} got {rhs.shape}")
    if M == 0:
        return rhs.astype(float, copy=True)

    dtype = np.result_type(A.lower, A.diag, A.upper, rhs, np.float64)
    lower = np.asarray(A.lower, dtype=dtype)
    diag = np.asarray(A.diag, dtype=dtype)
    c = np.array(A.upper, dtype=dtype, copy=True)
    d = np.array(rhs, dtype=dtype, copy=True)
    tol = 100.0 * np.finfo(dtype).eps

    denom = diag[0]
    if abs(denom) < tol:
        raise np.linalg.LinAlgError("Near-zero pivot at row 0")
    if M > 1:
        c[0] = c[0] / denom
    d[0] = d[0] / denom

    for i in range(1, M):
        denom = diag[i] - lower[i - 1] * c[i - 1]
        if abs(denom) < tol:
            raise np.linalg.LinAlgError(f"Near-zero pivot at row {i}")
        if i < M - 1:
            c[i] = c[i] / denom
        d[i] = (d[i] - lower[i - 1] * d[i - 1]) / denom

    x = np.empty(M, dtype=dtype)
    x[M - 1] = d[M - 1]
    for i in range(M - 2, -1, -1):
        x[i] = d[i] - c[i] * x[i + 1]
    return x


def solve_cyclic_tridiag(A: CyclicTridiag, rhs: FloatArray) -> FloatArray:
    """
    Solve a periodic tridiagonal system via Sherman-Morrison.

    The corners are folded into a rank-one update of the band, so two
    Thomas solves on the modified band give the solution.
    """
    band = A.band
    M = band.check()
    if M < 3:
        return solve_tridiag_thomas(band, rhs)

    alpha = float(A.corner_lower)
    beta = float(A.corner_upper)
    gamma = -float(band.diag[0]) if band.diag[0] != 0.0 else -1.0

    diag = np.array(band.diag, dtype=float, copy=True)
    diag[0] -= gamma
    diag[-1] -= alpha * beta / gamma
    modified = Tridiag(lower=band.lower, diag=diag, upper=band.upper)

    x = solve_tridiag_thomas(modified, rhs)

    u = np.zeros(M, dtype=float)
    u[0] = gamma
    u[-1] = alpha
    z = solve_tridiag_thomas(modified, u)

    denom = 1.0 + z[0] + beta * z[-1] / gamma
    if abs(denom) < 100.0 * np.finfo(float).eps:
        raise np.linalg.LinAlgError("Cyclic system is singular (Sherman-Morrison)")
    fact = (x[0] + beta * x[-1] / gamma) / denom
    return cast(FloatArray, x - fact * z)


def solve_tridiag_banded(A: Tridiag, rhs: FloatArray) -> FloatArray:
    """Solve A x = rhs with SciPy's banded LU (partial pivoting)."""
    M = A.check()
    rhs = np.asarray(rhs)
    if rhs.shape != (M,):
        raise ValueError(f"rhs must have shape {(M,)} got {rhs.shape}")
    if M == 0:
        return cast(FloatArray, rhs.astype(float, copy=True))

    ab = np.zeros((3, M), dtype=np.result_type(A.lower, A.diag, A.upper, rhs))
    ab[0, 1:] = np.asarray(A.upper)
    ab[1, :] = np.asarray(A.diag)
    ab[2, :-1] = np.asarray(A.lower)
    return cast(FloatArray, np.asarray(solve_banded((1, 1), ab, rhs)))


def tridiag_to_dense(A: Tridiag | CyclicTridiag) -> FloatArray:
    if isinstance(A, CyclicTridiag):
        dense = tridiag_to_dense(A.band)
        M = dense.shape[0]
        if M >= 3:
            dense[M - 1, 0] += A.corner_lower
            dense[0, M - 1] += A.corner_upper
        return dense

    M = A.check()
    dense = np.zeros((M, M), dtype=np.result_type(A.lower, A.diag, A.upper))
    dense[np.arange(M), np.arange(M)] = A.diag
    dense[np.arange(1, M), np.arange(M - 1)] = A.lower
    dense[np.arange(M - 1), np.arange(1, M)] = A.upper
    return dense
