import numpy as np
import pytest

from fdpde.exceptions import ConfigurationIssue, InvalidConfigurationError
from fdpde.numerics.grids import AxisGridConfig, SpacingPolicy, build_axis_grid, uniform_grid
from fdpde.pde.boundary import BoundaryCondition1D, BoundaryCondition2D, dirichlet, periodic
from fdpde.pde.inputs import FiniteDifferenceInput1D, FiniteDifferenceInput2D
from fdpde.types import SolverType, SpaceDiscretizerType


def _input_1d(**overrides) -> FiniteDifferenceInput1D:
    x = np.linspace(0.0, 1.0, 6)
    kwargs = dict(
        dt=0.01,
        grid=x,
        velocity=np.zeros_like(x),
        diffusion=np.ones_like(x),
        solver_type=SolverType.EXPLICIT_EULER,
        space_discretizer_type=SpaceDiscretizerType.CENTERED,
    )
    kwargs.update(overrides)
    return FiniteDifferenceInput1D(**kwargs)


def _reason(**overrides) -> ConfigurationIssue:
    with pytest.raises(InvalidConfigurationError) as exc:
        _input_1d(**overrides)
    return exc.value.reason


def test_valid_input_is_frozen_and_read_only() -> None:
    x = np.linspace(0.0, 1.0, 6)
    inp = _input_1d(grid=x, solver_type="rk4", space_discretizer_type="upwind")

    assert inp.solver_type is SolverType.RUNGE_KUTTA_4
    assert inp.space_discretizer_type is SpaceDiscretizerType.UPWIND
    assert inp.shape == (6,)
    assert inp.ndim == 1
    assert inp.boundary_conditions == BoundaryCondition1D()

    x[0] = -5.0
    assert inp.grid[0] == 0.0
    with pytest.raises(ValueError):
        inp.grid[0] = 1.0
    with pytest.raises(AttributeError):
        inp.dt = 0.5  # type: ignore[misc]


@pytest.mark.parametrize("n", [0, 1, 2])
def test_too_few_points(n: int) -> None:
    x = np.linspace(0.0, 1.0, n)
    reason = _reason(grid=x, velocity=np.zeros(n), diffusion=np.ones(n))
    assert reason is ConfigurationIssue.TOO_FEW_POINTS


@pytest.mark.parametrize("grid", [[0.0, 0.5, 0.5, 1.0, 1.5, 2.0], [0.0, 0.4, 0.2, 1.0, 1.5, 2.0]])
def test_grid_not_increasing(grid) -> None:
    assert _reason(grid=grid) is ConfigurationIssue.GRID_NOT_INCREASING


@pytest.mark.parametrize("dt", [0.0, -0.1, float("nan"), float("inf")])
def test_non_positive_dt(dt: float) -> None:
    assert _reason(dt=dt) is ConfigurationIssue.NON_POSITIVE_DT


def test_mismatched_lengths() -> None:
    assert _reason(velocity=np.zeros(5)) is ConfigurationIssue.MISMATCHED_LENGTHS
    assert _reason(diffusion=np.ones(7)) is ConfigurationIssue.MISMATCHED_LENGTHS


def test_non_finite_coefficients() -> None:
    d = np.ones(6)
    d[2] = np.nan
    assert _reason(diffusion=d) is ConfigurationIssue.NON_FINITE_VALUES


def test_null_types() -> None:
    assert _reason(solver_type=SolverType.NULL) is ConfigurationIssue.NULL_SOLVER_TYPE
    assert _reason(solver_type="leapfrog") is ConfigurationIssue.NULL_SOLVER_TYPE
    assert (
        _reason(space_discretizer_type=SpaceDiscretizerType.NULL)
        is ConfigurationIssue.NULL_DISCRETIZER_TYPE
    )


def test_periodic_pairing_and_spacing() -> None:
    asymmetric = BoundaryCondition1D(left=periodic(), right=dirichlet(0.0))
    assert (
        _reason(boundary_conditions=asymmetric)
        is ConfigurationIssue.INCONSISTENT_PERIODIC_PAIRING
    )

    x = np.array([0.0, 0.1, 0.3, 0.6, 1.0, 1.5])
    reason = _reason(
        grid=x, boundary_conditions=BoundaryCondition1D(periodic(), periodic())
    )
    assert reason is ConfigurationIssue.PERIODIC_SPACING_MISMATCH


def test_2d_fields_are_normalized() -> None:
    x = np.linspace(0.0, 1.0, 5)
    y = np.linspace(0.0, 2.0, 4)
    vx = np.linspace(-1.0, 1.0, 5)
    vy = np.linspace(0.0, 3.0, 4)
    D = np.arange(20, dtype=float)

    inp = FiniteDifferenceInput2D(
        dt=0.01,
        x_grid=x,
        y_grid=y,
        x_velocity=vx,
        y_velocity=vy,
        diffusion=D,
        solver_type=SolverType.CRANK_NICOLSON,
        space_discretizer_type=SpaceDiscretizerType.CENTERED,
    )

    assert inp.shape == (5, 4)
    assert inp.x_velocity.shape == (5, 4)
    np.testing.assert_array_equal(inp.x_velocity[:, 2], vx)
    np.testing.assert_array_equal(inp.y_velocity[3, :], vy)
    # flat buffers are read in C order: [i, j] <- i*ny + j
    assert inp.diffusion[2, 1] == D[2 * 4 + 1]
    assert inp.boundary_axes == (inp.boundary_conditions.x, inp.boundary_conditions.y)


def test_2d_mismatched_field() -> None:
    x = np.linspace(0.0, 1.0, 5)
    y = np.linspace(0.0, 2.0, 4)
    with pytest.raises(InvalidConfigurationError) as exc:
        FiniteDifferenceInput2D(
            dt=0.01,
            x_grid=x,
            y_grid=y,
            x_velocity=np.zeros(4),
            y_velocity=np.zeros(4),
            diffusion=np.ones(20),
            solver_type=SolverType.EXPLICIT_EULER,
            space_discretizer_type=SpaceDiscretizerType.CENTERED,
        )
    assert exc.value.reason is ConfigurationIssue.MISMATCHED_LENGTHS

    with pytest.raises(InvalidConfigurationError) as exc:
        FiniteDifferenceInput2D(
            dt=0.01,
            x_grid=x,
            y_grid=y,
            x_velocity=np.zeros(5),
            y_velocity=np.zeros(4),
            diffusion=np.ones(5),
            solver_type=SolverType.EXPLICIT_EULER,
            space_discretizer_type=SpaceDiscretizerType.CENTERED,
        )
    assert exc.value.reason is ConfigurationIssue.MISMATCHED_LENGTHS


def test_2d_periodic_pairing() -> None:
    x = np.linspace(0.0, 1.0, 5)
    with pytest.raises(InvalidConfigurationError) as exc:
        FiniteDifferenceInput2D(
            dt=0.01,
            x_grid=x,
            y_grid=x,
            x_velocity=np.zeros(5),
            y_velocity=np.zeros(5),
            diffusion=np.ones(25),
            solver_type=SolverType.EXPLICIT_EULER,
            space_discretizer_type=SpaceDiscretizerType.CENTERED,
            boundary_conditions=BoundaryCondition2D.from_edges(down=periodic()),
        )
    assert exc.value.reason is ConfigurationIssue.INCONSISTENT_PERIODIC_PAIRING


def test_axis_grid_builders() -> None:
    x = uniform_grid(-1.0, 1.0, 9)
    np.testing.assert_allclose(x, np.linspace(-1.0, 1.0, 9))

    xc = build_axis_grid(
        AxisGridConfig(
            n=41, lower=0.0, upper=4.0, spacing=SpacingPolicy.CLUSTERED, center=1.0
        )
    )
    assert xc[0] == 0.0
    assert xc[-1] == 4.0
    assert np.all(np.diff(xc) > 0)
    h = np.diff(xc)
    i_center = int(np.argmin(np.abs(xc - 1.0)))
    assert h[i_center] < h[-1]

    with pytest.raises(InvalidConfigurationError) as exc:
        AxisGridConfig(n=2, lower=0.0, upper=1.0).validate()
    assert exc.value.reason is ConfigurationIssue.TOO_FEW_POINTS

    with pytest.raises(InvalidConfigurationError):
        AxisGridConfig(n=5, lower=0.0, upper=1.0, spacing=SpacingPolicy.CLUSTERED).validate()
