from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, cast

import numpy as np
import scipy.sparse as sp

from ..exceptions import ConfigurationIssue, InvalidConfigurationError
from ..numerics.fd.stencils import d1_left_edge_coeffs, d1_right_edge_coeffs
from ..typing import FloatArray
from ..types import BoundaryConditionType

# --- Boundary condition model ---


@dataclass(frozen=True, slots=True)
class BoundaryCondition:
    """Condition on one edge: a family plus a scalar value.

    The default is zero-flux Neumann. For Neumann the value is ``u_x`` (or
    ``u_y``) along the positive axis direction at either end; it is ignored
    for Periodic.
    """

    type: BoundaryConditionType = BoundaryConditionType.NEUMANN
    value: float = 0.0

    def __post_init__(self) -> None:
        try:
            kind = BoundaryConditionType(self.type)
        except ValueError as e:
            raise InvalidConfigurationError(
                ConfigurationIssue.NULL_BOUNDARY_TYPE,
                f"Unknown boundary condition type {self.type!r}",
            ) from e
        value = float(self.value)
        if not np.isfinite(value):
            raise InvalidConfigurationError(
                ConfigurationIssue.NON_FINITE_VALUES,
                f"Boundary condition value must be finite, got {value!r}",
            )
        object.__setattr__(self, "type", kind)
        object.__setattr__(self, "value", value)

    @property
    def is_periodic(self) -> bool:
        return self.type == BoundaryConditionType.PERIODIC


def dirichlet(value: float) -> BoundaryCondition:
    """Fixed edge value."""
    return BoundaryCondition(BoundaryConditionType.DIRICHLET, value)


def neumann(value: float = 0.0) -> BoundaryCondition:
    """Fixed edge derivative (zero-flux by default)."""
    return BoundaryCondition(BoundaryConditionType.NEUMANN, value)


def periodic() -> BoundaryCondition:
    """Wrap-around coupling; must be set on both sides of an axis."""
    return BoundaryCondition(BoundaryConditionType.PERIODIC, 0.0)


@dataclass(frozen=True, slots=True)
class BoundaryCondition1D:
    left: BoundaryCondition = field(default_factory=BoundaryCondition)
    right: BoundaryCondition = field(default_factory=BoundaryCondition)

    @property
    def is_periodic(self) -> bool:
        return self.left.is_periodic and self.right.is_periodic

    def validate(self, axis: str = "x") -> None:
        for side, bc in (("lower", self.left), ("upper", self.right)):
            if bc.type == BoundaryConditionType.NULL:
                raise InvalidConfigurationError(
                    ConfigurationIssue.NULL_BOUNDARY_TYPE,
                    f"{axis}-axis {side} boundary condition is NULL",
                )
        if self.left.is_periodic != self.right.is_periodic:
            raise InvalidConfigurationError(
                ConfigurationIssue.INCONSISTENT_PERIODIC_PAIRING,
                f"Periodic boundary on the {axis}-axis must be set on both sides",
            )


class Axis(str, Enum):
    X = "x"
    Y = "y"


@dataclass(frozen=True, slots=True)
class BoundaryCondition2D:
    """Edge conditions of a 2D grid.

    Composed of the x-axis pair (``left``/``right``) and the y-axis edges
    ``down``/``up``. Use :meth:`axis` to get either pair as a
    :class:`BoundaryCondition1D`.
    """

    x: BoundaryCondition1D = field(default_factory=BoundaryCondition1D)
    down: BoundaryCondition = field(default_factory=BoundaryCondition)
    up: BoundaryCondition = field(default_factory=BoundaryCondition)

    @classmethod
    def from_edges(
        cls,
        *,
        left: BoundaryCondition | None = None,
        right: BoundaryCondition | None = None,
        down: BoundaryCondition | None = None,
        up: BoundaryCondition | None = None,
    ) -> BoundaryCondition2D:
        return cls(
            x=BoundaryCondition1D(
                left=left or BoundaryCondition(), right=right or BoundaryCondition()
            ),
            down=down or BoundaryCondition(),
            up=up or BoundaryCondition(),
        )

    @property
    def left(self) -> BoundaryCondition:
        return self.x.left

    @property
    def right(self) -> BoundaryCondition:
        return self.x.right

    @property
    def y(self) -> BoundaryCondition1D:
        return BoundaryCondition1D(left=self.down, right=self.up)

    def axis(self, axis: Axis | str) -> BoundaryCondition1D:
        return self.x if Axis(axis) == Axis.X else self.y

    def validate(self) -> None:
        self.x.validate("x")
        self.y.validate("y")


# --- Edge closures: express an edge value through interior values ---


@dataclass(frozen=True, slots=True)
class EdgeClosure:
    """Affine rule ``u[edge] = sum(weights[k] * u[indices[k]]) + offset``.

    Indices always point at interior nodes (1..n-2) of the same axis line.
    """

    edge: int
    indices: tuple[int, ...] = ()
    weights: tuple[float, ...] = ()
    offset: float = 0.0


def _eliminate_edge(
    g: float, w_edge: float, w_near: float, w_far: float
) -> tuple[float, float, float]:
    """Solve w_edge*u_e + w_near*u_1 + w_far*u_2 = g for u_e.

    Returns (p_near, p_far, q) with u_e = p_near*u_1 + p_far*u_2 + q.
    """
    return -w_near / w_edge, -w_far / w_edge, g / w_edge


def _neumann_closures(
    x: FloatArray, g_lower: float, g_upper: float
) -> tuple[EdgeClosure, EdgeClosure]:
    n = int(x.shape[0])
    if n < 4:
        # first-order one-sided differences; only node 1 is interior
        h_lo = float(x[1] - x[0])
        h_hi = float(x[-1] - x[-2])
        return (
            EdgeClosure(0, (1,), (1.0,), -g_lower * h_lo),
            EdgeClosure(n - 1, (n - 2,), (1.0,), g_upper * h_hi),
        )

    w0, w1, w2 = d1_left_edge_coeffs(float(x[1] - x[0]), float(x[2] - x[1]))
    p1, p2, q = _eliminate_edge(g_lower, w0, w1, w2)
    lower = EdgeClosure(0, (1, 2), (p1, p2), q)

    w_m3, w_m2, w_m1 = d1_right_edge_coeffs(float(x[-1] - x[-2]), float(x[-2] - x[-3]))
    p1, p2, q = _eliminate_edge(g_upper, w_m1, w_m2, w_m3)
    upper = EdgeClosure(n - 1, (n - 2, n - 3), (p1, p2), q)
    return lower, upper


def edge_closures(
    x: FloatArray, bc: BoundaryCondition1D
) -> tuple[EdgeClosure, EdgeClosure]:
    """Closures for the lower and upper edge of one axis.

    - Dirichlet pins the edge to the configured value.
    - Neumann eliminates the edge value from a one-sided derivative estimate
      (second order for n >= 4, first order for n == 3).
    - Periodic copies the interior node next to the opposite edge:
      ``u[0] = u[n-2]`` and ``u[n-1] = u[1]``.
    """
    x = np.asarray(x, dtype=float)
    n = int(x.shape[0])
    if n < 3:
        raise ValueError("Need at least 3 points per axis")

    if bc.is_periodic:
        return EdgeClosure(0, (n - 2,), (1.0,)), EdgeClosure(n - 1, (1,), (1.0,))

    neumann_pair = _neumann_closures(x, bc.left.value, bc.right.value)

    if bc.left.type == BoundaryConditionType.DIRICHLET:
        lower = EdgeClosure(0, offset=bc.left.value)
    else:
        lower = neumann_pair[0]

    if bc.right.type == BoundaryConditionType.DIRICHLET:
        upper = EdgeClosure(n - 1, offset=bc.right.value)
    else:
        upper = neumann_pair[1]
    return lower, upper


def _closure_value(line: np.ndarray, c: EdgeClosure) -> Any:
    value: Any = c.offset
    for idx, w in zip(c.indices, c.weights):
        value = value + w * line[idx]
    return value


def _axis_extension(
    n: int, pair: tuple[EdgeClosure, EdgeClosure]
) -> tuple[sp.csr_matrix, FloatArray]:
    rows = list(range(1, n - 1))
    cols = list(range(n - 2))
    data = [1.0] * (n - 2)
    offset = np.zeros(n, dtype=float)
    for c in pair:
        for idx, w in zip(c.indices, c.weights):
            rows.append(c.edge)
            cols.append(idx - 1)
            data.append(w)
        offset[c.edge] = c.offset
    E = sp.coo_matrix((data, (rows, cols)), shape=(n, n - 2)).tocsr()
    return E, offset


# --- Boundary applier ---


@dataclass(frozen=True, slots=True)
class BoundaryClosure:
    """Boundary applier of one problem.

    ``axes[k]`` holds the (lower, upper) closures of array axis ``k``. Axes
    are applied in order, so for 2D grids the y conditions run last and own
    the corner values.
    """

    shape: tuple[int, ...]
    axes: tuple[tuple[EdgeClosure, EdgeClosure], ...]

    @property
    def interior_shape(self) -> tuple[int, ...]:
        return tuple(n - 2 for n in self.shape)

    @property
    def n_interior(self) -> int:
        return int(np.prod(self.interior_shape))

    def apply(self, u: FloatArray) -> FloatArray:
        """Return a copy of ``u`` with every edge overwritten."""
        out = np.array(u, dtype=float, copy=True)
        if out.shape != self.shape:
            raise ValueError(f"state must have shape {self.shape}, got {out.shape}")
        for axis, pair in enumerate(self.axes):
            lines = np.moveaxis(out, axis, 0)
            for c in pair:
                lines[c.edge] = _closure_value(lines, c)
        return cast(FloatArray, out)

    def interior(self, u: FloatArray) -> FloatArray:
        """Flattened (C order) interior values of a full-shape state."""
        inner = tuple(slice(1, -1) for _ in self.shape)
        return cast(FloatArray, np.asarray(u, dtype=float)[inner].ravel())

    def extension(self) -> tuple[sp.csr_matrix, FloatArray]:
        """Sparse ``E`` and vector ``e`` with ``apply(u).ravel() == E @ interior(u) + e``."""
        E, e = _axis_extension(self.shape[0], self.axes[0])
        for n, pair in zip(self.shape[1:], self.axes[1:]):
            E1, e1 = _axis_extension(n, pair)
            prev_total = E.shape[0]
            e = np.kron(e, E1 @ np.ones(n - 2)) + np.kron(np.ones(prev_total), e1)
            E = sp.kron(E, E1, format="csr")
        return E.tocsr(), cast(FloatArray, np.asarray(e, dtype=float))


def build_boundary_closure(
    grids: Sequence[FloatArray], conditions: Sequence[BoundaryCondition1D]
) -> BoundaryClosure:
    if len(grids) != len(conditions):
        raise ValueError("Need one BoundaryCondition1D per axis")
    axes = tuple(edge_closures(x, bc) for x, bc in zip(grids, conditions))
    shape = tuple(int(np.asarray(x).shape[0]) for x in grids)
    return BoundaryClosure(shape=shape, axes=axes)


def boundary_closure(problem: Any) -> BoundaryClosure:
    """Boundary applier for a ``FiniteDifferenceInput1D``/``2D``."""
    return build_boundary_closure(problem.grids, problem.boundary_axes)
