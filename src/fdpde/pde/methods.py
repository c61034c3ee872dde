"""Time-integration methods and their dispatch.

Every method is a plain function with the stepper signature

    step(disc, u, dt, history) -> u_next

where ``u`` is the current boundary-closed state, ``history`` holds earlier
boundary-closed states (oldest first; only multistep methods read it) and
the returned state still has to go through the boundary applier. Methods
never mutate ``u`` or the history; every stage writes a fresh array.

:func:`resolve_stepper` maps a :class:`~fdpde.types.SolverType` to its
stepper with an exhaustive ``match``; NULL and out-of-range codes are
rejected there.
"""

from __future__ import annotations

import math
from collections.abc import Callable, Sequence
from dataclasses import dataclass

import numpy as np
import scipy.sparse as sp

from ..exceptions import UnsupportedSolverError
from ..typing import FloatArray
from ..types import (
    SOLVER_TYPE_BEGIN,
    SOLVER_TYPE_END,
    SolverType,
    parse_solver_type,
)
from .discretization import Discretization

Stepper = Callable[[Discretization, FloatArray, float, Sequence[FloatArray]], FloatArray]


# -----------------------------
# Explicit Runge-Kutta family
# -----------------------------


@dataclass(frozen=True, slots=True)
class ButcherTableau:
    """Explicit tableau: ``a[i]`` holds the weights of stages ``0..i-1``."""

    name: str
    a: tuple[tuple[float, ...], ...]
    b: tuple[float, ...]
    order: int

    @property
    def stages(self) -> int:
        return len(self.b)


EXPLICIT_EULER_TABLEAU = ButcherTableau(
    name="explicit-euler",
    a=((),),
    b=(1.0,),
    order=1,
)

RALSTON_TABLEAU = ButcherTableau(
    name="ralston",
    a=((), (2.0 / 3.0,)),
    b=(1.0 / 4.0, 3.0 / 4.0),
    order=2,
)

KUTTA3_TABLEAU = ButcherTableau(
    name="rk3",
    a=((), (1.0 / 2.0,), (-1.0, 2.0)),
    b=(1.0 / 6.0, 2.0 / 3.0, 1.0 / 6.0),
    order=3,
)

RK4_TABLEAU = ButcherTableau(
    name="rk4",
    a=((), (1.0 / 2.0,), (0.0, 1.0 / 2.0), (0.0, 0.0, 1.0)),
    b=(1.0 / 6.0, 1.0 / 3.0, 1.0 / 3.0, 1.0 / 6.0),
    order=4,
)

THREE_EIGHT_TABLEAU = ButcherTableau(
    name="rk-3/8",
    a=((), (1.0 / 3.0,), (-1.0 / 3.0, 1.0), (1.0, -1.0, 1.0)),
    b=(1.0 / 8.0, 3.0 / 8.0, 3.0 / 8.0, 1.0 / 8.0),
    order=4,
)

# Two-stage Gauss-Legendre (implicit, order 4)
_GL_S = math.sqrt(3.0) / 6.0
GAUSS_LEGENDRE_A = ((0.25, 0.25 - _GL_S), (0.25 + _GL_S, 0.25))
GAUSS_LEGENDRE_B = (0.5, 0.5)


def _combine(weights: Sequence[float], ks: Sequence[FloatArray]) -> FloatArray:
    acc = np.zeros_like(ks[0])
    for w, k in zip(weights, ks):
        if w != 0.0:
            acc = acc + w * k
    return acc


def explicit_rk_step(
    disc: Discretization, u: FloatArray, dt: float, tableau: ButcherTableau
) -> FloatArray:
    ks: list[FloatArray] = []
    for i in range(tableau.stages):
        if i == 0:
            stage = u
        else:
            stage = disc.close(u + dt * _combine(tableau.a[i], ks))
        ks.append(disc.rhs(stage, dt))
    return u + dt * _combine(tableau.b, ks)


def _tableau_stepper(tableau: ButcherTableau) -> Stepper:
    def step(
        disc: Discretization, u: FloatArray, dt: float, history: Sequence[FloatArray]
    ) -> FloatArray:
        return explicit_rk_step(disc, u, dt, tableau)

    step.__name__ = f"{tableau.name.replace('-', '_').replace('/', '_')}_step"
    return step


explicit_euler_step = _tableau_stepper(EXPLICIT_EULER_TABLEAU)
ralston_step = _tableau_stepper(RALSTON_TABLEAU)
rk3_step = _tableau_stepper(KUTTA3_TABLEAU)
rk4_step = _tableau_stepper(RK4_TABLEAU)
three_eight_step = _tableau_stepper(THREE_EIGHT_TABLEAU)


# -----------------------------
# Implicit single-step methods
# -----------------------------


def theta_step(disc: Discretization, u: FloatArray, dt: float, theta: float) -> FloatArray:
    """Theta-scheme on interior unknowns.

    Solves ``(I - theta dt A) w1 = w0 + (1 - theta) dt F(w0) + theta dt f``;
    theta=1 is implicit Euler, theta=1/2 Crank-Nicolson.
    """
    red = disc.reduced(dt)
    w0 = disc.interior(u)

    rhs = w0 + theta * dt * red.forcing
    if theta != 1.0:
        rhs = rhs + (1.0 - theta) * dt * red.apply(w0)

    system = disc.identity() - theta * dt * red.A
    return red.expand(disc.solve(system, rhs))


def implicit_euler_step(
    disc: Discretization, u: FloatArray, dt: float, history: Sequence[FloatArray]
) -> FloatArray:
    return theta_step(disc, u, dt, 1.0)


def crank_nicolson_step(
    disc: Discretization, u: FloatArray, dt: float, history: Sequence[FloatArray]
) -> FloatArray:
    return theta_step(disc, u, dt, 0.5)


def gauss_legendre4_step(
    disc: Discretization, u: FloatArray, dt: float, history: Sequence[FloatArray]
) -> FloatArray:
    """Two coupled implicit stages solved as one ``2M x 2M`` linear system."""
    red = disc.reduced(dt)
    w0 = disc.interior(u)
    M = red.size
    I = disc.identity()
    A = red.A
    (a11, a12), (a21, a22) = GAUSS_LEGENDRE_A

    system = sp.bmat(
        [
            [I - dt * a11 * A, -dt * a12 * A],
            [-dt * a21 * A, I - dt * a22 * A],
        ],
        format="csr",
    )
    f0 = red.apply(w0)
    k = disc.solve(system, np.concatenate([f0, f0]))

    b1, b2 = GAUSS_LEGENDRE_B
    w1 = w0 + dt * (b1 * k[:M] + b2 * k[M:])
    return red.expand(w1)


# -----------------------------
# Richardson extrapolation
# -----------------------------


def _base_steps(disc: Discretization, u: FloatArray, dt: float, n: int) -> FloatArray:
    base = resolve_stepper(disc.config.richardson_base)
    h = dt / n
    state = u
    for _ in range(n):
        state = disc.close(base(disc, state, h, ()))
    return state


def richardson2_step(
    disc: Discretization, u: FloatArray, dt: float, history: Sequence[FloatArray]
) -> FloatArray:
    """``2 A(dt/2) - A(dt)`` for a first-order base method (order 2)."""
    a1 = _base_steps(disc, u, dt, 1)
    a2 = _base_steps(disc, u, dt, 2)
    return 2.0 * a2 - a1


def richardson3_step(
    disc: Discretization, u: FloatArray, dt: float, history: Sequence[FloatArray]
) -> FloatArray:
    """``(8 A(dt/4) - 6 A(dt/2) + A(dt)) / 3`` for a first-order base (order 3)."""
    a1 = _base_steps(disc, u, dt, 1)
    a2 = _base_steps(disc, u, dt, 2)
    a4 = _base_steps(disc, u, dt, 4)
    return (8.0 * a4 - 6.0 * a2 + a1) / 3.0


# -----------------------------
# Multistep methods
# -----------------------------


def adams_bashforth2_step(
    disc: Discretization, u: FloatArray, dt: float, history: Sequence[FloatArray]
) -> FloatArray:
    """``u + dt (3/2 F(u_n) - 1/2 F(u_{n-1}))``; needs one prior state."""
    prev = history[-1]
    return u + dt * (1.5 * disc.rhs(u, dt) - 0.5 * disc.rhs(prev, dt))


def adams_moulton2_step(
    disc: Discretization, u: FloatArray, dt: float, history: Sequence[FloatArray]
) -> FloatArray:
    """Two-step Adams-Moulton (order 3); needs one prior state.

    Solves ``(I - 5dt/12 A) w1 = w0 + dt/12 (8 F_n - F_{n-1}) + 5dt/12 f``.
    """
    red = disc.reduced(dt)
    w0 = disc.interior(u)
    wp = disc.interior(history[-1])

    rhs = (
        w0
        + dt / 12.0 * (8.0 * red.apply(w0) - red.apply(wp))
        + 5.0 * dt / 12.0 * red.forcing
    )
    system = disc.identity() - (5.0 * dt / 12.0) * red.A
    return red.expand(disc.solve(system, rhs))


# Self-starting single-step methods used while history is short.
FALLBACK_SOLVERS: dict[SolverType, SolverType] = {
    SolverType.ADAMS_BASHFORTH_2: SolverType.EXPLICIT_EULER,
    SolverType.ADAMS_MOULTON_2: SolverType.CRANK_NICOLSON,
}


# -----------------------------
# Dispatch
# -----------------------------


def coerce_solver_type(solver_type: SolverType | int | str) -> SolverType:
    """Validate that ``solver_type`` is dispatchable.

    Raises
    ------
    UnsupportedSolverError
        For NULL, codes outside ``[SOLVER_TYPE_BEGIN, SOLVER_TYPE_END)`` and
        unknown names.
    """
    if isinstance(solver_type, str):
        solver_type = parse_solver_type(solver_type)
    try:
        code = int(solver_type)
    except (TypeError, ValueError) as e:
        raise UnsupportedSolverError(f"Unsupported solver type {solver_type!r}") from e
    if not (SOLVER_TYPE_BEGIN <= code < SOLVER_TYPE_END):
        raise UnsupportedSolverError(
            f"Solver type {solver_type!r} is outside the dispatchable range "
            f"[{SOLVER_TYPE_BEGIN}, {SOLVER_TYPE_END})"
        )
    return SolverType(code)


def resolve_stepper(solver_type: SolverType | int | str) -> Stepper:
    """Map a solver type to its stepper function."""
    st = coerce_solver_type(solver_type)
    match st:
        case SolverType.EXPLICIT_EULER:
            return explicit_euler_step
        case SolverType.IMPLICIT_EULER:
            return implicit_euler_step
        case SolverType.CRANK_NICOLSON:
            return crank_nicolson_step
        case SolverType.RUNGE_KUTTA_RALSTON:
            return ralston_step
        case SolverType.RUNGE_KUTTA_3:
            return rk3_step
        case SolverType.RUNGE_KUTTA_4:
            return rk4_step
        case SolverType.RUNGE_KUTTA_THREE_EIGHT:
            return three_eight_step
        case SolverType.RUNGE_KUTTA_GAUSS_LEGENDRE_4:
            return gauss_legendre4_step
        case SolverType.RICHARDSON_EXTRAPOLATION_2:
            return richardson2_step
        case SolverType.RICHARDSON_EXTRAPOLATION_3:
            return richardson3_step
        case SolverType.ADAMS_BASHFORTH_2:
            return adams_bashforth2_step
        case SolverType.ADAMS_MOULTON_2:
            return adams_moulton2_step
        case _:
            raise UnsupportedSolverError(f"Unsupported solver type {st!r}")


def available_solvers() -> list[SolverType]:
    """Every dispatchable solver type, in code order."""
    return [SolverType(code) for code in range(SOLVER_TYPE_BEGIN, SOLVER_TYPE_END)]
