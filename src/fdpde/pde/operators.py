from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any, cast

import numpy as np
import scipy.sparse as sp

from ..exceptions import InvalidDiscretizationError
from ..numerics.fd.stencils import (
    d1_central_nonuniform_coeffs,
    d1_upwind_coeffs,
    d2_central_nonuniform_coeffs,
)
from ..typing import FloatArray
from ..types import SpaceDiscretizerType, parse_space_discretizer_type
from .boundary import BoundaryClosure
from .types import ReducedOperator


@dataclass(frozen=True, slots=True)
class StencilTerm:
    """Three-point stencil along one array axis, on interior nodes.

    ``lower[k]``, ``diag[k]`` and ``upper[k]`` weight ``u[i-1]``, ``u[i]``
    and ``u[i+1]`` along ``axis``. All three have the interior shape.
    """

    axis: int
    lower: FloatArray
    diag: FloatArray
    upper: FloatArray


@dataclass(frozen=True, slots=True)
class SpatialOperator:
    """Discrete ``-v . grad(u) + D lap(u)`` on the interior of a tensor grid.

    Edge nodes are never evaluated; :meth:`evaluate` leaves them at zero and
    the boundary applier owns them.
    """

    shape: tuple[int, ...]
    terms: tuple[StencilTerm, ...]
    kind: SpaceDiscretizerType

    @property
    def interior_shape(self) -> tuple[int, ...]:
        return tuple(n - 2 for n in self.shape)

    def evaluate(self, u: FloatArray) -> FloatArray:
        u = np.asarray(u, dtype=float)
        if u.shape != self.shape:
            raise ValueError(f"state must have shape {self.shape}, got {u.shape}")

        inner = tuple(slice(1, -1) for _ in self.shape)
        acc = np.zeros(self.interior_shape, dtype=float)
        for term in self.terms:
            lo = list(inner)
            hi = list(inner)
            lo[term.axis] = slice(0, -2)
            hi[term.axis] = slice(2, None)
            acc += term.lower * u[tuple(lo)]
            acc += term.diag * u[inner]
            acc += term.upper * u[tuple(hi)]

        out = np.zeros(self.shape, dtype=float)
        out[inner] = acc
        return cast(FloatArray, out)

    def matrix(self) -> sp.csr_matrix:
        """Sparse ``(n_interior, n_total)`` matrix with ``matrix() @ u.ravel()``
        equal to the flattened interior of :meth:`evaluate`."""
        interior = self.interior_shape
        n_int = int(np.prod(interior))
        n_total = int(np.prod(self.shape))
        idx = [a + 1 for a in np.indices(interior)]
        rows = np.arange(n_int)

        all_rows: list[np.ndarray] = []
        all_cols: list[np.ndarray] = []
        all_data: list[np.ndarray] = []
        for term in self.terms:
            for shift, coeff in ((-1, term.lower), (0, term.diag), (1, term.upper)):
                nb = list(idx)
                nb[term.axis] = idx[term.axis] + shift
                cols = np.ravel_multi_index(tuple(nb), self.shape).ravel()
                all_rows.append(rows)
                all_cols.append(cols)
                all_data.append(np.broadcast_to(coeff, interior).ravel())

        A = sp.coo_matrix(
            (
                np.concatenate(all_data),
                (np.concatenate(all_rows), np.concatenate(all_cols)),
            ),
            shape=(n_int, n_total),
        )
        return A.tocsr()


def _axis_spacings(x: FloatArray, axis: int, ndim: int) -> tuple[Any, Any]:
    x = np.asarray(x, dtype=float)
    hm = x[1:-1] - x[:-2]
    hp = x[2:] - x[1:-1]
    shape = [1] * ndim
    shape[axis] = hm.shape[0]
    return hm.reshape(shape), hp.reshape(shape)


def _axis_term(
    *,
    x: FloatArray,
    axis: int,
    ndim: int,
    velocity: FloatArray,
    diffusion: FloatArray,
    kind: SpaceDiscretizerType,
    dt: float | None,
) -> StencilTerm:
    hm, hp = _axis_spacings(x, axis, ndim)

    d2l, d2d, d2u = d2_central_nonuniform_coeffs(hm, hp)

    if kind == SpaceDiscretizerType.UPWIND:
        d1l, d1d, d1u = d1_upwind_coeffs(hm, hp, velocity)
        diff = diffusion
    elif kind == SpaceDiscretizerType.LAX_WENDROFF:
        if dt is None:
            raise InvalidDiscretizationError("Lax-Wendroff needs the time step dt")
        d1l, d1d, d1u = d1_central_nonuniform_coeffs(hm, hp)
        # second-order correction of the advective term
        diff = diffusion + 0.5 * float(dt) * velocity * velocity
    else:
        d1l, d1d, d1u = d1_central_nonuniform_coeffs(hm, hp)
        diff = diffusion

    shape = velocity.shape
    return StencilTerm(
        axis=axis,
        lower=np.broadcast_to(-velocity * d1l + diff * d2l, shape).copy(),
        diag=np.broadcast_to(-velocity * d1d + diff * d2d, shape).copy(),
        upper=np.broadcast_to(-velocity * d1u + diff * d2u, shape).copy(),
    )


def build_spatial_operator(
    *,
    grids: Sequence[FloatArray],
    velocities: Sequence[FloatArray],
    diffusion: FloatArray,
    kind: SpaceDiscretizerType | int,
    dt: float | None = None,
) -> SpatialOperator:
    """Assemble the interior stencil of the advection-diffusion operator.

    Parameters
    ----------
    grids:
        One strictly increasing coordinate array per axis.
    velocities:
        One full-shape advection field per axis.
    diffusion:
        Full-shape diffusion field, shared by every axis.
    kind:
        CENTERED, UPWIND or LAX_WENDROFF.
    dt:
        Time step; only Lax-Wendroff uses it.

    Raises
    ------
    InvalidDiscretizationError
        If ``kind`` is NULL or not a known discretizer.
    """
    if not isinstance(kind, SpaceDiscretizerType):
        kind = parse_space_discretizer_type(kind)
    if kind == SpaceDiscretizerType.NULL:
        raise InvalidDiscretizationError("Space discretizer type is NULL")

    shape = tuple(int(np.asarray(x).shape[0]) for x in grids)
    ndim = len(shape)
    if len(velocities) != ndim:
        raise ValueError("Need one velocity field per axis")

    inner = tuple(slice(1, -1) for _ in shape)
    D = np.asarray(diffusion, dtype=float).reshape(shape)[inner]

    terms = tuple(
        _axis_term(
            x=x,
            axis=axis,
            ndim=ndim,
            velocity=np.asarray(v, dtype=float).reshape(shape)[inner],
            diffusion=D,
            kind=kind,
            dt=dt,
        )
        for axis, (x, v) in enumerate(zip(grids, velocities))
    )
    return SpatialOperator(shape=shape, terms=terms, kind=kind)


def spatial_operator(problem: Any, dt: float | None = None) -> SpatialOperator:
    """Spatial operator of a ``FiniteDifferenceInput1D``/``2D`` (``dt`` defaults to the problem's)."""
    return build_spatial_operator(
        grids=problem.grids,
        velocities=problem.velocities,
        diffusion=problem.diffusion_field,
        kind=problem.space_discretizer_type,
        dt=problem.dt if dt is None else dt,
    )


def reduce_to_interior(
    operator: SpatialOperator, closure: BoundaryClosure
) -> ReducedOperator:
    """Eliminate the edges: ``F_int(w) = A @ w + forcing`` on interior unknowns."""
    if operator.shape != closure.shape:
        raise ValueError(
            f"operator shape {operator.shape} != boundary shape {closure.shape}"
        )
    L = operator.matrix()
    E, e = closure.extension()
    A = (L @ E).tocsr()
    forcing = np.asarray(L @ e, dtype=float)
    return ReducedOperator(
        A=A, forcing=forcing, extension=E, offset=e, shape=operator.shape
    )
