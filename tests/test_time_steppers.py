import logging
from dataclasses import dataclass

import numpy as np
import pytest

from fdpde.config import SolverConfig
from fdpde.exceptions import (
    ConfigurationIssue,
    InsufficientHistoryError,
    InvalidConfigurationError,
    SolveDidNotConvergeError,
)
from fdpde.numerics.linear_solve import DirectSolver
from fdpde.pde.boundary import (
    BoundaryCondition1D,
    BoundaryCondition2D,
    dirichlet,
    neumann,
    periodic,
)
from fdpde.pde.inputs import FiniteDifferenceInput1D, FiniteDifferenceInput2D
from fdpde.pde.methods import available_solvers
from fdpde.pde.time_steppers import FiniteDifferenceSolver, advance
from fdpde.types import SolverType, SpaceDiscretizerType


@dataclass
class FlakySolver:
    """Direct solver that can be told to fail."""

    fail: bool = True
    calls: int = 0

    @property
    def name(self) -> str:
        return "flaky"

    @property
    def tridiagonal_only(self) -> bool:
        return False

    def solve(self, operator, rhs):
        self.calls += 1
        if self.fail:
            raise SolveDidNotConvergeError("forced failure", iterations=0)
        return DirectSolver().solve(operator, rhs)


def _sine(n: int) -> np.ndarray:
    """sin(pi x) on [0, 1] with edges exactly zero."""
    u = np.sin(np.pi * np.linspace(0.0, 1.0, n))
    u[0] = u[-1] = 0.0
    return u


def _input_2d(**overrides) -> FiniteDifferenceInput2D:
    x = np.linspace(0.0, 1.0, 7)
    y = np.linspace(0.0, 1.0, 6)
    kwargs = dict(
        dt=0.001,
        x_grid=x,
        y_grid=y,
        x_velocity=np.full(7, 0.3),
        y_velocity=np.full(6, -0.2),
        diffusion=np.full(42, 0.5),
        solver_type=SolverType.EXPLICIT_EULER,
        space_discretizer_type=SpaceDiscretizerType.CENTERED,
        boundary_conditions=BoundaryCondition2D.from_edges(
            left=dirichlet(0.0), right=dirichlet(0.0), down=dirichlet(0.0), up=dirichlet(0.0)
        ),
    )
    kwargs.update(overrides)
    return FiniteDifferenceInput2D(**kwargs)


# --- Single steps ------------------------------------------------------------


def test_explicit_euler_closed_form_step() -> None:
    problem = FiniteDifferenceInput1D(
        dt=0.1,
        grid=[0.0, 1.0, 2.0, 3.0, 4.0],
        velocity=[0.0] * 5,
        diffusion=[1.0] * 5,
        solver_type=SolverType.EXPLICIT_EULER,
        space_discretizer_type=SpaceDiscretizerType.CENTERED,
        boundary_conditions=BoundaryCondition1D(dirichlet(0.0), dirichlet(0.0)),
    )
    u0 = np.array([0.0, 1.0, 0.0, 1.0, 0.0])

    u1 = FiniteDifferenceSolver(problem).advance(u0)

    np.testing.assert_allclose(u1, [0.0, 0.8, 0.2, 0.8, 0.0], rtol=0.0, atol=1e-12)
    np.testing.assert_array_equal(u0, [0.0, 1.0, 0.0, 1.0, 0.0])


@pytest.mark.parametrize("st", available_solvers())
def test_dirichlet_edges_are_pinned(make_problem_1d, st: SolverType) -> None:
    bc = BoundaryCondition1D(dirichlet(1.5), dirichlet(-0.5))
    problem = make_problem_1d(
        n=8, dt=0.001, velocity=0.3, diffusion=0.5, solver_type=st, bc=bc
    )
    solver = FiniteDifferenceSolver(problem)

    u = np.random.default_rng(int(st)).normal(size=8)
    for _ in range(3):
        u = solver.advance(u)
        assert u[0] == 1.5
        assert u[-1] == -0.5
        assert np.all(np.isfinite(u))


@pytest.mark.parametrize("st", available_solvers())
def test_constant_state_is_steady_under_zero_flux(make_problem_1d, st: SolverType) -> None:
    problem = make_problem_1d(
        n=9,
        dt=0.002,
        velocity=0.4,
        diffusion=0.2,
        solver_type=st,
        bc=BoundaryCondition1D(neumann(0.0), neumann(0.0)),
    )
    solver = FiniteDifferenceSolver(problem)
    u = np.full(9, 2.5)
    for _ in range(2):
        u = solver.advance(u)
    np.testing.assert_allclose(u, 2.5, rtol=0.0, atol=1e-12)


def test_periodic_step_matches_rolled_reference() -> None:
    n = 10
    x = np.linspace(0.0, 1.0, n)
    h = x[1] - x[0]
    D, dt = 0.05, 0.01
    problem = FiniteDifferenceInput1D(
        dt=dt,
        grid=x,
        velocity=np.zeros(n),
        diffusion=np.full(n, D),
        solver_type=SolverType.EXPLICIT_EULER,
        space_discretizer_type=SpaceDiscretizerType.CENTERED,
        boundary_conditions=BoundaryCondition1D(periodic(), periodic()),
    )
    rng = np.random.default_rng(21)
    u0 = rng.normal(size=n)

    u1 = FiniteDifferenceSolver(problem).advance(u0)

    p = u0[1:-1]
    expected = p + dt * D * (np.roll(p, 1) - 2.0 * p + np.roll(p, -1)) / h**2
    np.testing.assert_allclose(u1[1:-1], expected, rtol=1e-12, atol=1e-12)
    assert u1[0] == u1[-2]
    assert u1[-1] == u1[1]


def test_periodic_implicit_thomas_matches_direct(make_problem_1d) -> None:
    bc = BoundaryCondition1D(periodic(), periodic())
    problem = make_problem_1d(
        n=12, dt=0.01, velocity=0.8, diffusion=0.1, solver_type=SolverType.CRANK_NICOLSON, bc=bc
    )
    u0 = np.sin(2.0 * np.pi * np.linspace(0.0, 1.0, 12))

    direct = FiniteDifferenceSolver(problem).advance(u0)
    thomas = FiniteDifferenceSolver(problem, config=SolverConfig(linear_solver="thomas")).advance(u0)

    np.testing.assert_allclose(thomas, direct, rtol=1e-10, atol=1e-12)


@pytest.mark.parametrize("name", ["thomas", "banded", "gmres", "bicgstab"])
def test_linear_solvers_agree_on_implicit_euler(make_problem_1d, name: str) -> None:
    problem = make_problem_1d(
        n=15, dt=0.01, velocity=0.5, solver_type=SolverType.IMPLICIT_EULER,
        bc=BoundaryCondition1D(dirichlet(1.0), neumann(0.2)),
    )
    u0 = np.linspace(1.0, 0.0, 15) ** 2

    ref = FiniteDifferenceSolver(problem).advance(u0)
    out = FiniteDifferenceSolver(problem, config=SolverConfig(linear_solver=name)).advance(u0)

    np.testing.assert_allclose(out, ref, rtol=1e-7, atol=1e-9)


# --- Multistep history and fallback -------------------------------------------


@pytest.mark.parametrize(
    "multistep, fallback",
    [
        (SolverType.ADAMS_BASHFORTH_2, SolverType.EXPLICIT_EULER),
        (SolverType.ADAMS_MOULTON_2, SolverType.CRANK_NICOLSON),
    ],
)
def test_first_multistep_step_is_bitwise_fallback(make_problem_1d, multistep, fallback) -> None:
    u0 = np.random.default_rng(5).normal(size=11)
    u0[0] = u0[-1] = 0.0

    a = FiniteDifferenceSolver(make_problem_1d(velocity=0.2, solver_type=multistep)).advance(u0)
    b = FiniteDifferenceSolver(make_problem_1d(velocity=0.2, solver_type=fallback)).advance(u0)

    np.testing.assert_array_equal(a, b)


def test_second_multistep_step_uses_history(make_problem_1d) -> None:
    u0 = _sine(11)
    ab2 = FiniteDifferenceSolver(make_problem_1d(dt=0.001, solver_type=SolverType.ADAMS_BASHFORTH_2))
    ee = FiniteDifferenceSolver(make_problem_1d(dt=0.001, solver_type=SolverType.EXPLICIT_EULER))

    a1 = ab2.advance(u0)
    e1 = ee.advance(u0)
    a2 = ab2.advance(a1)
    e2 = ee.advance(e1)

    assert not np.array_equal(a2, e2)
    assert len(ab2.history) == 2
    np.testing.assert_array_equal(ab2.history[0], u0)
    np.testing.assert_array_equal(ab2.history[1], a1)


def test_no_fallback_raises_and_commits_nothing(make_problem_1d) -> None:
    problem = make_problem_1d(solver_type=SolverType.ADAMS_MOULTON_2)
    solver = FiniteDifferenceSolver(problem, config=SolverConfig(multistep_fallback=False))
    u0 = _sine(11)

    with pytest.raises(InsufficientHistoryError):
        solver.advance(u0)
    assert solver.history == ()

    solver.seed_history([u0])
    u1 = solver.advance(u0)
    assert u1.shape == u0.shape


def test_history_ring_is_bounded_and_resettable(make_problem_1d) -> None:
    solver = FiniteDifferenceSolver(
        make_problem_1d(dt=0.001, solver_type=SolverType.ADAMS_BASHFORTH_2)
    )
    assert solver.step_order == 2

    u = _sine(11)
    for _ in range(5):
        u = solver.advance(u)
    assert len(solver.history) == 2

    # the exposed history is a copy
    solver.history[0][:] = 123.0
    assert not np.any(solver.history[0] == 123.0)

    solver.reset()
    assert solver.history == ()

    single = FiniteDifferenceSolver(make_problem_1d(solver_type=SolverType.RUNGE_KUTTA_4))
    assert single.step_order == 1
    single.advance(u)
    single.advance(u)
    assert len(single.history) == 1


def test_stateless_advance_matches_stateful(make_problem_1d) -> None:
    problem = make_problem_1d(dt=0.001, velocity=0.5, solver_type=SolverType.ADAMS_BASHFORTH_2)
    u0 = _sine(11)

    solver = FiniteDifferenceSolver(problem)
    u1 = solver.advance(u0)
    u2 = solver.advance(u1)

    np.testing.assert_array_equal(advance(u0, problem), u1)
    np.testing.assert_array_equal(advance(u1, problem, history=[u0]), u2)


# --- Failures ---------------------------------------------------------------


def test_failed_solve_is_atomic(make_problem_1d) -> None:
    problem = make_problem_1d(solver_type=SolverType.ADAMS_MOULTON_2)
    flaky = FlakySolver(fail=False)
    solver = FiniteDifferenceSolver(problem, linear_solver=flaky)

    u0 = _sine(11)
    u1 = solver.advance(u0)
    before = solver.history
    u1_copy = u1.copy()

    flaky.fail = True
    with pytest.raises(SolveDidNotConvergeError):
        solver.advance(u1)

    np.testing.assert_array_equal(u1, u1_copy)
    assert len(solver.history) == len(before)
    for h, b in zip(solver.history, before):
        np.testing.assert_array_equal(h, b)


def test_state_shape_mismatch(make_problem_1d) -> None:
    solver = FiniteDifferenceSolver(make_problem_1d())
    with pytest.raises(InvalidConfigurationError) as exc:
        solver.advance(np.zeros(7))
    assert exc.value.reason is ConfigurationIssue.MISMATCHED_LENGTHS


@pytest.mark.parametrize(
    "make, name",
    [
        (lambda: _input_2d(solver_type=SolverType.IMPLICIT_EULER), "thomas"),
        (lambda: _input_2d(solver_type=SolverType.CRANK_NICOLSON), "banded"),
    ],
)
def test_tridiagonal_solvers_rejected_for_2d(make, name: str) -> None:
    with pytest.raises(InvalidConfigurationError) as exc:
        FiniteDifferenceSolver(make(), config=SolverConfig(linear_solver=name))
    assert exc.value.reason is ConfigurationIssue.INVALID_SETTING


def test_tridiagonal_solver_rules(make_problem_1d) -> None:
    thomas = SolverConfig(linear_solver="thomas")

    with pytest.raises(InvalidConfigurationError):
        FiniteDifferenceSolver(
            make_problem_1d(solver_type=SolverType.RUNGE_KUTTA_GAUSS_LEGENDRE_4), config=thomas
        )

    periodic_cn = make_problem_1d(
        solver_type=SolverType.CRANK_NICOLSON, bc=BoundaryCondition1D(periodic(), periodic())
    )
    with pytest.raises(InvalidConfigurationError):
        FiniteDifferenceSolver(periodic_cn, config=SolverConfig(linear_solver="banded"))
    FiniteDifferenceSolver(periodic_cn, config=thomas)

    # explicit methods never call the linear solver
    FiniteDifferenceSolver(_input_2d(solver_type=SolverType.RUNGE_KUTTA_4), config=thomas)

    with pytest.raises(InvalidConfigurationError):
        FiniteDifferenceSolver(
            _input_2d(solver_type=SolverType.RICHARDSON_EXTRAPOLATION_2),
            config=SolverConfig(linear_solver="thomas", richardson_base=SolverType.IMPLICIT_EULER),
        )


def test_lax_wendroff_with_implicit_solver_warns(make_problem_1d, caplog) -> None:
    problem = make_problem_1d(
        velocity=1.0, solver_type=SolverType.IMPLICIT_EULER, kind=SpaceDiscretizerType.LAX_WENDROFF
    )
    with caplog.at_level(logging.WARNING, logger="fdpde"):
        FiniteDifferenceSolver(problem)
    assert any("Lax-Wendroff" in r.getMessage() for r in caplog.records)


def test_lax_wendroff_warning_follows_linear_solves(make_problem_1d, caplog) -> None:
    problem = make_problem_1d(
        velocity=1.0,
        solver_type=SolverType.RICHARDSON_EXTRAPOLATION_2,
        kind=SpaceDiscretizerType.LAX_WENDROFF,
    )
    with caplog.at_level(logging.WARNING, logger="fdpde"):
        FiniteDifferenceSolver(problem)
    assert not any("Lax-Wendroff" in r.getMessage() for r in caplog.records)

    with caplog.at_level(logging.WARNING, logger="fdpde"):
        FiniteDifferenceSolver(
            problem, config=SolverConfig(richardson_base=SolverType.IMPLICIT_EULER)
        )
    assert any("Lax-Wendroff" in r.getMessage() for r in caplog.records)


# --- 2D -----------------------------------------------------------------------


def test_2d_flat_state_round_trip() -> None:
    problem = _input_2d(solver_type=SolverType.RUNGE_KUTTA_3)
    u0 = np.random.default_rng(2).normal(size=42)

    flat = FiniteDifferenceSolver(problem).advance(u0)
    full = FiniteDifferenceSolver(problem).advance(u0.reshape(7, 6))

    assert flat.shape == (42,)
    np.testing.assert_array_equal(flat, full.ravel())


@pytest.mark.parametrize(
    "st",
    [SolverType.CRANK_NICOLSON, SolverType.RUNGE_KUTTA_GAUSS_LEGENDRE_4, SolverType.RUNGE_KUTTA_4],
)
def test_2d_separable_mode_decays_at_discrete_rate(st: SolverType) -> None:
    n = 9
    x = np.linspace(0.0, 1.0, n)
    h = x[1] - x[0]
    D, dt = 0.1, 0.005
    problem = _input_2d(
        dt=dt,
        x_grid=x,
        y_grid=x,
        x_velocity=np.zeros(n),
        y_velocity=np.zeros(n),
        diffusion=np.full((n, n), D),
        solver_type=st,
    )
    X, Y = np.meshgrid(x, x, indexing="ij")
    u = np.sin(np.pi * X) * np.sin(np.pi * Y)

    lam = -2.0 * D * (4.0 / h**2) * np.sin(np.pi * h / 2.0) ** 2
    solver = FiniteDifferenceSolver(problem)
    n_steps = 20
    for _ in range(n_steps):
        u = solver.advance(u)

    expected = np.exp(lam * dt * n_steps) * np.sin(np.pi * X) * np.sin(np.pi * Y)
    np.testing.assert_allclose(u, expected, rtol=0.0, atol=1e-5)


def test_2d_periodic_y_axis() -> None:
    y = np.linspace(0.0, 1.0, 8)
    problem = _input_2d(
        y_grid=y,
        y_velocity=np.full(8, 0.4),
        diffusion=np.full((7, 8), 0.2),
        solver_type=SolverType.IMPLICIT_EULER,
        boundary_conditions=BoundaryCondition2D.from_edges(
            left=dirichlet(1.0), right=neumann(0.0), down=periodic(), up=periodic()
        ),
    )
    u = np.random.default_rng(4).normal(size=(7, 8))
    solver = FiniteDifferenceSolver(problem)
    for _ in range(3):
        u = solver.advance(u)

    np.testing.assert_array_equal(u[:, 0], u[:, -2])
    np.testing.assert_array_equal(u[:, -1], u[:, 1])
    np.testing.assert_array_equal(u[0, 1:-1], 1.0)
