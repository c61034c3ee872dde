"""Finite-difference advection-diffusion solvers on 1D and 2D tensor grids.

Supported PDE form:

    u_t = -v . grad(u) + D lap(u)

with Dirichlet, Neumann or periodic edges, twelve time-integration methods
and centered, upwind or Lax-Wendroff space discretizations.
"""

from .boundary import (
    Axis,
    BoundaryClosure,
    BoundaryCondition,
    BoundaryCondition1D,
    BoundaryCondition2D,
    EdgeClosure,
    boundary_closure,
    build_boundary_closure,
    dirichlet,
    neumann,
    periodic,
)
from .discretization import Discretization
from .inputs import FiniteDifferenceInput1D, FiniteDifferenceInput2D
from .methods import (
    FALLBACK_SOLVERS,
    ButcherTableau,
    available_solvers,
    resolve_stepper,
)
from .operators import (
    SpatialOperator,
    build_spatial_operator,
    reduce_to_interior,
    spatial_operator,
)
from .solver import PDESolution, solve_pde
from .time_steppers import FiniteDifferenceSolver, advance
from .types import ReducedOperator

__all__ = [
    # Boundary conditions
    "BoundaryCondition",
    "BoundaryCondition1D",
    "BoundaryCondition2D",
    "Axis",
    "dirichlet",
    "neumann",
    "periodic",
    "EdgeClosure",
    "BoundaryClosure",
    "build_boundary_closure",
    "boundary_closure",
    # Problems / operators
    "FiniteDifferenceInput1D",
    "FiniteDifferenceInput2D",
    "SpatialOperator",
    "build_spatial_operator",
    "spatial_operator",
    "reduce_to_interior",
    "Discretization",
    # Methods / dispatch
    "ButcherTableau",
    "FALLBACK_SOLVERS",
    "resolve_stepper",
    "available_solvers",
    "FiniteDifferenceSolver",
    "advance",
    # Driver
    "PDESolution",
    "solve_pde",
    # Low-level system container
    "ReducedOperator",
]
