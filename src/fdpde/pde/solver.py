from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Literal, TypeAlias, cast

import numpy as np
from numpy.typing import NDArray

from ..config import SolverConfig
from ..numerics.linear_solve import LinearSolver
from ..types import SolverType, SpaceDiscretizerType
from .inputs import FiniteDifferenceProblem
from .time_steppers import FiniteDifferenceSolver

InitialCondition: TypeAlias = NDArray[np.floating] | Callable[..., NDArray[np.floating]]


@dataclass(frozen=True, slots=True)
class PDESolution:
    times: NDArray[np.floating]  # (Nt,) or (1,) with store="final"
    u: NDArray[np.floating]  # (Nt, *shape)
    solver_type: SolverType
    space_discretizer_type: SpaceDiscretizerType

    @property
    def u_final(self) -> NDArray[np.floating]:
        return cast(NDArray[np.floating], self.u[-1])


def _initial_state(
    problem: FiniteDifferenceProblem, initial: InitialCondition
) -> NDArray[np.floating]:
    if callable(initial):
        coords = np.meshgrid(*problem.grids, indexing="ij")
        u0 = np.asarray(initial(*coords), dtype=float)
        if u0.shape != problem.shape:
            u0 = np.broadcast_to(u0, problem.shape)
    else:
        u0 = np.asarray(initial, dtype=float)
        if u0.ndim == 1 and problem.ndim > 1:
            u0 = u0.reshape(problem.shape)

    if u0.shape != problem.shape:
        raise ValueError(
            f"initial condition must have shape {problem.shape}, got {u0.shape}"
        )
    if not np.all(np.isfinite(u0)):
        raise ValueError("initial condition has non-finite values")
    return np.array(u0, dtype=float, copy=True)


def solve_pde(
    problem: FiniteDifferenceProblem,
    initial: InitialCondition,
    n_steps: int,
    *,
    store: Literal["all", "final"] = "all",
    config: SolverConfig | None = None,
    linear_solver: LinearSolver | None = None,
) -> PDESolution:
    """Take ``n_steps`` steps of size ``problem.dt`` from ``initial``.

    ``initial`` is either an array on the grid or a vectorized callable of the
    grid coordinates (``f(x)`` in 1D, ``f(X, Y)`` with ``indexing="ij"`` in
    2D). The stored initial state is boundary-closed.
    """
    if n_steps < 0:
        raise ValueError("n_steps must be >= 0")
    if store not in ("all", "final"):
        raise ValueError("store must be 'all' or 'final'")

    solver = FiniteDifferenceSolver(
        problem, config=config, linear_solver=linear_solver
    )
    u = solver.apply_boundary(_initial_state(problem, initial))

    dt = float(problem.dt)
    times = dt * np.arange(n_steps + 1, dtype=float)

    if store == "all":
        U = np.empty((n_steps + 1, *problem.shape), dtype=float)
        U[0] = u
    else:
        U = np.empty((1, *problem.shape), dtype=float)
        U[0] = u

    for n in range(n_steps):
        u = solver.advance(u)
        if store == "all":
            U[n + 1] = u
        else:
            U[0] = u

    return PDESolution(
        times=times if store == "all" else times[-1:],
        u=U,
        solver_type=solver.solver_type,
        space_discretizer_type=SpaceDiscretizerType(problem.space_discretizer_type),
    )
