# src/fdpde/pde/time_steppers.py
from __future__ import annotations

from collections import deque
from collections.abc import Iterable
from typing import cast

import numpy as np

from ..config import SolverConfig
from ..exceptions import (
    ConfigurationIssue,
    InsufficientHistoryError,
    InvalidConfigurationError,
)
from ..logging import get_logger
from ..numerics.linear_solve import BandedSolver, LinearSolver, get_linear_solver
from ..typing import FloatArray
from ..types import SolverType, SpaceDiscretizerType, is_implicit, step_order
from .discretization import Discretization
from .inputs import FiniteDifferenceProblem
from .methods import FALLBACK_SOLVERS, coerce_solver_type, resolve_stepper

__all__ = ["FiniteDifferenceSolver", "advance", "needs_linear_solve"]

logger = get_logger(__name__)


def needs_linear_solve(solver_type: SolverType, config: SolverConfig) -> bool:
    """True if stepping ``solver_type`` under ``config`` calls the linear solver."""
    if is_implicit(solver_type):
        return True
    if solver_type in (
        SolverType.RICHARDSON_EXTRAPOLATION_2,
        SolverType.RICHARDSON_EXTRAPOLATION_3,
    ):
        return is_implicit(config.richardson_base)
    return False


def _check_linear_solver(
    problem: FiniteDifferenceProblem,
    solver_type: SolverType,
    config: SolverConfig,
    linear_solver: LinearSolver,
) -> None:
    if not needs_linear_solve(solver_type, config):
        return
    if not getattr(linear_solver, "tridiagonal_only", False):
        return

    name = getattr(linear_solver, "name", type(linear_solver).__name__)
    if problem.ndim != 1:
        raise InvalidConfigurationError(
            ConfigurationIssue.INVALID_SETTING,
            f"Linear solver {name!r} only handles tridiagonal systems; "
            f"{problem.ndim}D problems need 'direct', 'gmres' or 'bicgstab'",
        )
    if solver_type == SolverType.RUNGE_KUTTA_GAUSS_LEGENDRE_4:
        raise InvalidConfigurationError(
            ConfigurationIssue.INVALID_SETTING,
            f"Linear solver {name!r} cannot solve the coupled Gauss-Legendre "
            "stage system",
        )
    if isinstance(linear_solver, BandedSolver) and problem.boundary_axes[0].is_periodic:
        raise InvalidConfigurationError(
            ConfigurationIssue.INVALID_SETTING,
            "Linear solver 'banded' cannot solve periodic (cyclic) systems; "
            "use 'thomas' or 'direct'",
        )


class FiniteDifferenceSolver:
    """Stateful time stepper of one advection-diffusion problem.

    The solver owns the cached discretization of ``problem`` and a bounded
    history of committed states (``step_order`` of them). Callers own the
    grid state: :meth:`advance` never mutates its argument and returns a new
    array of the same shape.

    Parameters
    ----------
    problem:
        A :class:`~fdpde.pde.FiniteDifferenceInput1D` or ``2D``.
    config:
        Numerical settings. Defaults to ``SolverConfig()``.
    linear_solver:
        Linear-solve collaborator. Defaults to ``get_linear_solver(config)``.

    Raises
    ------
    UnsupportedSolverError
        If the problem's solver type is not dispatchable.
    InvalidConfigurationError
        If the linear solver cannot handle the systems this problem produces.
    """

    def __init__(
        self,
        problem: FiniteDifferenceProblem,
        *,
        config: SolverConfig | None = None,
        linear_solver: LinearSolver | None = None,
    ) -> None:
        self._config = config if config is not None else SolverConfig()
        self._solver_type = coerce_solver_type(problem.solver_type)
        self._stepper = resolve_stepper(self._solver_type)
        self._linear_solver = (
            linear_solver
            if linear_solver is not None
            else get_linear_solver(self._config)
        )
        _check_linear_solver(
            problem, self._solver_type, self._config, self._linear_solver
        )

        self._problem = problem
        self._disc = Discretization(
            problem, config=self._config, linear_solver=self._linear_solver
        )
        self._history: deque[FloatArray] = deque(maxlen=step_order(self._solver_type))

        if (
            problem.space_discretizer_type == SpaceDiscretizerType.LAX_WENDROFF
            and needs_linear_solve(self._solver_type, self._config)
        ):
            logger.warning(
                "Lax-Wendroff is built around explicit stepping; combined with "
                "%s its dt-dependent correction only adds numerical diffusion",
                self._solver_type.name,
            )

        logger.debug(
            "Created %s solver: %dD shape=%s, discretizer=%s, linear solver=%s",
            self._solver_type.name,
            problem.ndim,
            problem.shape,
            SpaceDiscretizerType(problem.space_discretizer_type).name,
            getattr(self._linear_solver, "name", type(self._linear_solver).__name__),
        )

    # -----------------------------
    # Read-only views
    # -----------------------------

    @property
    def problem(self) -> FiniteDifferenceProblem:
        return self._problem

    @property
    def config(self) -> SolverConfig:
        return self._config

    @property
    def solver_type(self) -> SolverType:
        return self._solver_type

    @property
    def step_order(self) -> int:
        return cast(int, self._history.maxlen)

    @property
    def linear_solver(self) -> LinearSolver:
        return self._linear_solver

    @property
    def history(self) -> tuple[FloatArray, ...]:
        """Committed states, oldest first (copies; the ring is never exposed)."""
        return tuple(h.copy() for h in self._history)

    # -----------------------------
    # History management
    # -----------------------------

    def reset(self) -> None:
        """Forget every committed state."""
        self._history.clear()

    def seed_history(self, states: Iterable[FloatArray]) -> None:
        """Replace the history by ``states`` (oldest first).

        States are boundary-closed and copied. Only the last ``step_order`` are
        kept.
        """
        closed = [self._disc.close(self._as_grid(s)) for s in states]
        self._history.clear()
        self._history.extend(closed)

    # -----------------------------
    # Stepping
    # -----------------------------

    def _as_grid(self, state: FloatArray) -> FloatArray:
        u = np.asarray(state, dtype=float)
        shape = self._problem.shape
        if u.shape == shape:
            return u
        if u.ndim == 1 and u.size == int(np.prod(shape)):
            return u.reshape(shape)
        raise InvalidConfigurationError(
            ConfigurationIssue.MISMATCHED_LENGTHS,
            f"state must have shape {shape} or {int(np.prod(shape))} values, "
            f"got shape {u.shape}",
        )

    def apply_boundary(self, state: FloatArray) -> FloatArray:
        """Boundary-closed copy of ``state`` (same shape as ``state``)."""
        return self._disc.close(self._as_grid(state)).reshape(np.shape(state))

    def _select_stepper(self):
        st = self._solver_type
        needed = self.step_order - 1
        if len(self._history) >= needed:
            return self._stepper

        if not self._config.multistep_fallback:
            raise InsufficientHistoryError(
                f"{st.name} needs {needed} prior state(s), have {len(self._history)}"
            )
        fallback = FALLBACK_SOLVERS[st]
        logger.debug(
            "%s has %d of %d prior state(s); taking a %s step",
            st.name,
            len(self._history),
            needed,
            fallback.name,
        )
        return resolve_stepper(fallback)

    def advance(self, state: FloatArray) -> FloatArray:
        """Advance ``state`` by one time step ``problem.dt``.

        The incoming state is boundary-closed, stepped, and the result is
        boundary-closed again. The closed incoming state is recorded in the
        history only once the step succeeded; on any error nothing changes.

        Returns
        -------
        numpy.ndarray
            New state with the shape of ``state``.
        """
        in_shape = np.shape(state)
        u = self._disc.close(self._as_grid(state))
        stepper = self._select_stepper()

        dt = float(self._problem.dt)
        prior = tuple(self._history)
        u_next = self._disc.close(stepper(self._disc, u, dt, prior))

        self._history.append(u)
        return u_next.reshape(in_shape)


def advance(
    state: FloatArray,
    problem: FiniteDifferenceProblem,
    *,
    history: Iterable[FloatArray] = (),
    config: SolverConfig | None = None,
    linear_solver: LinearSolver | None = None,
) -> FloatArray:
    """Stateless single step: the caller supplies any prior states.

    ``history`` holds earlier states oldest first; multistep methods use its
    last entry. Nothing is retained between calls.
    """
    solver = FiniteDifferenceSolver(problem, config=config, linear_solver=linear_solver)
    solver.seed_history(history)
    return solver.advance(state)
