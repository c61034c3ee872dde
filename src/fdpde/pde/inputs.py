from __future__ import annotations

from dataclasses import dataclass, field
from typing import Protocol, cast

import numpy as np

from ..exceptions import (
    ConfigurationIssue,
    InvalidConfigurationError,
    InvalidDiscretizationError,
    UnsupportedSolverError,
)
from ..numerics.fd.validate import (
    as_readonly_array,
    assert_axis_grid,
    assert_finite,
    assert_positive_dt,
    assert_same_length,
)
from ..typing import FloatArray
from ..types import (
    SolverType,
    SpaceDiscretizerType,
    parse_solver_type,
    parse_space_discretizer_type,
)
from .boundary import BoundaryCondition1D, BoundaryCondition2D


class FiniteDifferenceProblem(Protocol):
    """Read-only view the dispatcher needs from a 1D or 2D input bundle."""

    @property
    def dt(self) -> float: ...  # pragma: no cover

    @property
    def solver_type(self) -> SolverType: ...  # pragma: no cover

    @property
    def space_discretizer_type(self) -> SpaceDiscretizerType: ...  # pragma: no cover

    @property
    def ndim(self) -> int: ...  # pragma: no cover

    @property
    def shape(self) -> tuple[int, ...]: ...  # pragma: no cover

    @property
    def grids(self) -> tuple[FloatArray, ...]: ...  # pragma: no cover

    @property
    def velocities(self) -> tuple[FloatArray, ...]: ...  # pragma: no cover

    @property
    def diffusion_field(self) -> FloatArray: ...  # pragma: no cover

    @property
    def boundary_axes(self) -> tuple[BoundaryCondition1D, ...]: ...  # pragma: no cover


def _coerce_solver_type(value) -> SolverType:
    try:
        solver_type = parse_solver_type(value)
    except UnsupportedSolverError as e:
        raise InvalidConfigurationError(
            ConfigurationIssue.NULL_SOLVER_TYPE, str(e)
        ) from e
    if solver_type == SolverType.NULL:
        raise InvalidConfigurationError(
            ConfigurationIssue.NULL_SOLVER_TYPE, "solver_type must not be NULL"
        )
    return solver_type


def _coerce_discretizer_type(value) -> SpaceDiscretizerType:
    try:
        kind = parse_space_discretizer_type(value)
    except InvalidDiscretizationError as e:
        raise InvalidConfigurationError(
            ConfigurationIssue.NULL_DISCRETIZER_TYPE, str(e)
        ) from e
    if kind == SpaceDiscretizerType.NULL:
        raise InvalidConfigurationError(
            ConfigurationIssue.NULL_DISCRETIZER_TYPE,
            "space_discretizer_type must not be NULL",
        )
    return kind


def _check_periodic_spacing(x: FloatArray, bc: BoundaryCondition1D, name: str) -> None:
    """The wrapped neighbours of nodes 1 and n-2 must sit at the stencil spacing."""
    if not bc.is_periodic:
        return
    lower_ok = np.isclose(x[1] - x[0], x[-2] - x[-3], rtol=1e-9, atol=0.0)
    upper_ok = np.isclose(x[-1] - x[-2], x[2] - x[1], rtol=1e-9, atol=0.0)
    if not (lower_ok and upper_ok):
        raise InvalidConfigurationError(
            ConfigurationIssue.PERIODIC_SPACING_MISMATCH,
            f"Periodic {name} needs matching spacings at both ends of the axis",
        )


def _as_field(values, name: str, shape: tuple[int, int], axis: int) -> FloatArray:
    """Normalize a per-axis or full-grid 2D coefficient to shape ``shape``.

    ``axis`` is the axis a 1D (per-axis) array runs along, or -1 if only full
    fields are accepted.
    """
    arr = np.asarray(as_readonly_array(values, name))
    nx, ny = shape
    if arr.shape == shape:
        full = arr
    elif arr.ndim == 1 and arr.size == nx * ny:
        full = arr.reshape(shape)
    elif axis == 0 and arr.shape == (nx,):
        full = np.repeat(arr[:, None], ny, axis=1)
    elif axis == 1 and arr.shape == (ny,):
        full = np.repeat(arr[None, :], nx, axis=0)
    else:
        expected = f"{nx * ny} or shape {shape}"
        if axis >= 0:
            expected = f"{shape[axis]} (per-axis) or {expected}"
        raise InvalidConfigurationError(
            ConfigurationIssue.MISMATCHED_LENGTHS,
            f"{name} must have length {expected}, got shape {arr.shape}",
        )
    full = np.array(full, dtype=float, copy=True)
    assert_finite(full, name)
    full.setflags(write=False)
    return cast(FloatArray, full)


@dataclass(frozen=True, slots=True)
class FiniteDifferenceInput1D:
    """Immutable 1D advection-diffusion problem ``u_t = -v u_x + D u_xx``.

    Parameters
    ----------
    dt : float
        Time step, > 0.
    grid : array_like
        Strictly increasing spatial coordinates, at least 3 points.
    velocity, diffusion : array_like
        Advection and diffusion coefficients aligned with ``grid``.
    solver_type : SolverType | int | str
        Time integration family (aliases like ``"rk4"`` accepted).
    space_discretizer_type : SpaceDiscretizerType | int | str
        Stencil family.
    boundary_conditions : BoundaryCondition1D
        Left/right edge conditions. Defaults to zero-flux Neumann.

    Raises
    ------
    InvalidConfigurationError
        On any invariant violation. Arrays are copied into read-only buffers,
        so later changes to the caller's arrays do not leak in.
    """

    dt: float
    grid: FloatArray
    velocity: FloatArray
    diffusion: FloatArray
    solver_type: SolverType
    space_discretizer_type: SpaceDiscretizerType
    boundary_conditions: BoundaryCondition1D = field(
        default_factory=BoundaryCondition1D
    )

    def __post_init__(self) -> None:
        object.__setattr__(self, "dt", assert_positive_dt(self.dt))

        grid = as_readonly_array(self.grid, "grid")
        assert_axis_grid(grid, "grid")
        n = int(grid.shape[0])

        velocity = as_readonly_array(self.velocity, "velocity")
        diffusion = as_readonly_array(self.diffusion, "diffusion")
        assert_same_length(velocity, n, "velocity", "grid")
        assert_same_length(diffusion, n, "diffusion", "grid")
        assert_finite(velocity, "velocity")
        assert_finite(diffusion, "diffusion")

        object.__setattr__(self, "grid", grid)
        object.__setattr__(self, "velocity", velocity)
        object.__setattr__(self, "diffusion", diffusion)
        object.__setattr__(self, "solver_type", _coerce_solver_type(self.solver_type))
        object.__setattr__(
            self,
            "space_discretizer_type",
            _coerce_discretizer_type(self.space_discretizer_type),
        )

        self.boundary_conditions.validate("x")
        _check_periodic_spacing(grid, self.boundary_conditions, "x-axis")

    @property
    def ndim(self) -> int:
        return 1

    @property
    def shape(self) -> tuple[int, ...]:
        return (int(self.grid.shape[0]),)

    @property
    def grids(self) -> tuple[FloatArray, ...]:
        return (self.grid,)

    @property
    def velocities(self) -> tuple[FloatArray, ...]:
        return (self.velocity,)

    @property
    def diffusion_field(self) -> FloatArray:
        return self.diffusion

    @property
    def boundary_axes(self) -> tuple[BoundaryCondition1D, ...]:
        return (self.boundary_conditions,)


@dataclass(frozen=True, slots=True)
class FiniteDifferenceInput2D:
    """Immutable 2D problem ``u_t = -vx u_x - vy u_y + D (u_xx + u_yy)``.

    Fields are indexed ``[i, j]`` with ``i`` along ``x_grid`` and ``j`` along
    ``y_grid``; flat buffers of length ``nx*ny`` are read in C order
    (``i*ny + j``).

    ``x_velocity`` may be per-axis (length ``nx``, constant in y) or a full
    field; likewise ``y_velocity`` with length ``ny``. ``diffusion`` must be a
    full field. After construction all three are stored as ``(nx, ny)``
    read-only arrays. Diffusion is isotropic with no cross-derivative term.
    """

    dt: float
    x_grid: FloatArray
    y_grid: FloatArray
    x_velocity: FloatArray
    y_velocity: FloatArray
    diffusion: FloatArray
    solver_type: SolverType
    space_discretizer_type: SpaceDiscretizerType
    boundary_conditions: BoundaryCondition2D = field(
        default_factory=BoundaryCondition2D
    )

    def __post_init__(self) -> None:
        object.__setattr__(self, "dt", assert_positive_dt(self.dt))

        x = as_readonly_array(self.x_grid, "x_grid")
        y = as_readonly_array(self.y_grid, "y_grid")
        assert_axis_grid(x, "x_grid")
        assert_axis_grid(y, "y_grid")
        shape = (int(x.shape[0]), int(y.shape[0]))

        object.__setattr__(self, "x_grid", x)
        object.__setattr__(self, "y_grid", y)
        object.__setattr__(
            self, "x_velocity", _as_field(self.x_velocity, "x_velocity", shape, 0)
        )
        object.__setattr__(
            self, "y_velocity", _as_field(self.y_velocity, "y_velocity", shape, 1)
        )
        object.__setattr__(
            self, "diffusion", _as_field(self.diffusion, "diffusion", shape, -1)
        )
        object.__setattr__(self, "solver_type", _coerce_solver_type(self.solver_type))
        object.__setattr__(
            self,
            "space_discretizer_type",
            _coerce_discretizer_type(self.space_discretizer_type),
        )

        self.boundary_conditions.validate()
        _check_periodic_spacing(x, self.boundary_conditions.x, "x-axis")
        _check_periodic_spacing(y, self.boundary_conditions.y, "y-axis")

    @property
    def ndim(self) -> int:
        return 2

    @property
    def shape(self) -> tuple[int, ...]:
        return (int(self.x_grid.shape[0]), int(self.y_grid.shape[0]))

    @property
    def grids(self) -> tuple[FloatArray, ...]:
        return (self.x_grid, self.y_grid)

    @property
    def velocities(self) -> tuple[FloatArray, ...]:
        return (self.x_velocity, self.y_velocity)

    @property
    def diffusion_field(self) -> FloatArray:
        return self.diffusion

    @property
    def boundary_axes(self) -> tuple[BoundaryCondition1D, ...]:
        bc = self.boundary_conditions
        return (bc.x, bc.y)
