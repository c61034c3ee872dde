from __future__ import annotations

import re
from enum import IntEnum

from .exceptions import InvalidDiscretizationError, UnsupportedSolverError


class SolverType(IntEnum):
    """Time-integration family.

    Integer codes are stable and match the engine's historical values, so a
    solver type can be passed around as a plain ``int``.

    Attributes
    ----------
    NULL : int
        Sentinel. Never dispatched.
    EXPLICIT_EULER, IMPLICIT_EULER, CRANK_NICOLSON : int
        Single-step methods.
    RUNGE_KUTTA_RALSTON, RUNGE_KUTTA_3, RUNGE_KUTTA_4, RUNGE_KUTTA_THREE_EIGHT : int
        Explicit Runge-Kutta methods (orders 2, 3, 4, 4).
    RUNGE_KUTTA_GAUSS_LEGENDRE_4 : int
        Two-stage implicit Gauss-Legendre method (order 4).
    RICHARDSON_EXTRAPOLATION_2, RICHARDSON_EXTRAPOLATION_3 : int
        Extrapolated first-order base method (orders 2 and 3).
    ADAMS_BASHFORTH_2, ADAMS_MOULTON_2 : int
        Two-step multistep methods.
    """

    NULL = 0

    EXPLICIT_EULER = 1
    IMPLICIT_EULER = 2
    CRANK_NICOLSON = 3

    RUNGE_KUTTA_RALSTON = 4
    RUNGE_KUTTA_3 = 5
    RUNGE_KUTTA_4 = 6
    RUNGE_KUTTA_THREE_EIGHT = 7
    RUNGE_KUTTA_GAUSS_LEGENDRE_4 = 8

    RICHARDSON_EXTRAPOLATION_2 = 9
    RICHARDSON_EXTRAPOLATION_3 = 10

    ADAMS_BASHFORTH_2 = 11
    ADAMS_MOULTON_2 = 12


# Half-open range [BEGIN, END) of dispatchable solver codes.
SOLVER_TYPE_BEGIN = 1
SOLVER_TYPE_END = 13


class SpaceDiscretizerType(IntEnum):
    """Stencil used for the spatial derivatives."""

    NULL = 0
    CENTERED = 1
    UPWIND = 2
    LAX_WENDROFF = 3


class BoundaryConditionType(IntEnum):
    """Edge condition family."""

    NULL = 0
    DIRICHLET = 1
    NEUMANN = 2
    PERIODIC = 3


_MULTISTEP = frozenset({SolverType.ADAMS_BASHFORTH_2, SolverType.ADAMS_MOULTON_2})

_IMPLICIT = frozenset(
    {
        SolverType.IMPLICIT_EULER,
        SolverType.CRANK_NICOLSON,
        SolverType.RUNGE_KUTTA_GAUSS_LEGENDRE_4,
        SolverType.ADAMS_MOULTON_2,
    }
)


def step_order(solver_type: SolverType) -> int:
    """Number of retained states a solver type needs (2 for multistep, else 1)."""
    if solver_type in _MULTISTEP:
        return 2
    return 1


def is_implicit(solver_type: SolverType) -> bool:
    """True if a step of ``solver_type`` requires a linear solve."""
    return solver_type in _IMPLICIT


# -----------------------------
# Name parsing
# -----------------------------


def _normalize(name: str) -> str:
    return re.sub(r"[\s_\-]", "", name.strip().lower())


_SOLVER_ALIASES: dict[str, SolverType] = {
    "explicit": SolverType.EXPLICIT_EULER,
    "forwardeuler": SolverType.EXPLICIT_EULER,
    "fe": SolverType.EXPLICIT_EULER,
    "implicit": SolverType.IMPLICIT_EULER,
    "backwardeuler": SolverType.IMPLICIT_EULER,
    "be": SolverType.IMPLICIT_EULER,
    "cn": SolverType.CRANK_NICOLSON,
    "crank": SolverType.CRANK_NICOLSON,
    "ralston": SolverType.RUNGE_KUTTA_RALSTON,
    "rk2": SolverType.RUNGE_KUTTA_RALSTON,
    "rk3": SolverType.RUNGE_KUTTA_3,
    "rk4": SolverType.RUNGE_KUTTA_4,
    "rk38": SolverType.RUNGE_KUTTA_THREE_EIGHT,
    "threeeight": SolverType.RUNGE_KUTTA_THREE_EIGHT,
    "gausslegendre": SolverType.RUNGE_KUTTA_GAUSS_LEGENDRE_4,
    "gl4": SolverType.RUNGE_KUTTA_GAUSS_LEGENDRE_4,
    "richardson2": SolverType.RICHARDSON_EXTRAPOLATION_2,
    "re2": SolverType.RICHARDSON_EXTRAPOLATION_2,
    "richardson3": SolverType.RICHARDSON_EXTRAPOLATION_3,
    "re3": SolverType.RICHARDSON_EXTRAPOLATION_3,
    "ab2": SolverType.ADAMS_BASHFORTH_2,
    "adamsbashforth": SolverType.ADAMS_BASHFORTH_2,
    "am2": SolverType.ADAMS_MOULTON_2,
    "adamsmoulton": SolverType.ADAMS_MOULTON_2,
    # historical spelling of the enum member
    "adamsmouldon2": SolverType.ADAMS_MOULTON_2,
}

_DISCRETIZER_ALIASES: dict[str, SpaceDiscretizerType] = {
    "central": SpaceDiscretizerType.CENTERED,
    "upwinding": SpaceDiscretizerType.UPWIND,
    "lw": SpaceDiscretizerType.LAX_WENDROFF,
}


def parse_solver_type(value: SolverType | int | str) -> SolverType:
    """Resolve a member, integer code or (alias) name into a :class:`SolverType`.

    ``NULL`` is returned as-is: rejecting it is the job of the configuration
    layer and of the dispatcher, which raise different errors for it.

    Raises
    ------
    UnsupportedSolverError
        If the value does not name any solver type.
    """
    if isinstance(value, SolverType):
        return value
    if isinstance(value, str):
        key = _normalize(value)
        for member in SolverType:
            if _normalize(member.name) == key:
                return member
        try:
            return _SOLVER_ALIASES[key]
        except KeyError as e:
            raise UnsupportedSolverError(f"Unknown solver type {value!r}") from e
    try:
        return SolverType(int(value))
    except (TypeError, ValueError) as e:
        raise UnsupportedSolverError(f"Unknown solver type {value!r}") from e


def parse_space_discretizer_type(
    value: SpaceDiscretizerType | int | str,
) -> SpaceDiscretizerType:
    """Resolve a member, integer code or name into a :class:`SpaceDiscretizerType`."""
    if isinstance(value, SpaceDiscretizerType):
        return value
    if isinstance(value, str):
        key = _normalize(value)
        for member in SpaceDiscretizerType:
            if _normalize(member.name) == key:
                return member
        try:
            return _DISCRETIZER_ALIASES[key]
        except KeyError as e:
            raise InvalidDiscretizationError(
                f"Unknown space discretizer {value!r}"
            ) from e
    try:
        return SpaceDiscretizerType(int(value))
    except (TypeError, ValueError) as e:
        raise InvalidDiscretizationError(f"Unknown space discretizer {value!r}") from e
