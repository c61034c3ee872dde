"""
fdpde

Finite-difference time stepping of advection-diffusion equations.

The main user-facing names are exposed at the top level, so you can write,
for example:

    from fdpde import FiniteDifferenceInput1D, FiniteDifferenceSolver, SolverType
"""

from .config import SolverConfig
from .exceptions import (
    ConfigurationIssue,
    FiniteDifferenceError,
    InsufficientHistoryError,
    InvalidConfigurationError,
    InvalidDiscretizationError,
    SolveDidNotConvergeError,
    UnsupportedSolverError,
)
from .pde import (
    BoundaryCondition,
    BoundaryCondition1D,
    BoundaryCondition2D,
    FiniteDifferenceInput1D,
    FiniteDifferenceInput2D,
    FiniteDifferenceSolver,
    PDESolution,
    advance,
    dirichlet,
    neumann,
    periodic,
    solve_pde,
)
from .types import (
    SOLVER_TYPE_BEGIN,
    SOLVER_TYPE_END,
    BoundaryConditionType,
    SolverType,
    SpaceDiscretizerType,
    is_implicit,
    step_order,
)

__version__ = "0.1.0"

__all__ = [
    # Types
    "SolverType",
    "SpaceDiscretizerType",
    "BoundaryConditionType",
    "SOLVER_TYPE_BEGIN",
    "SOLVER_TYPE_END",
    "step_order",
    "is_implicit",
    # Configuration
    "SolverConfig",
    "BoundaryCondition",
    "BoundaryCondition1D",
    "BoundaryCondition2D",
    "dirichlet",
    "neumann",
    "periodic",
    "FiniteDifferenceInput1D",
    "FiniteDifferenceInput2D",
    # Solving
    "FiniteDifferenceSolver",
    "advance",
    "PDESolution",
    "solve_pde",
    # Errors
    "FiniteDifferenceError",
    "ConfigurationIssue",
    "InvalidConfigurationError",
    "UnsupportedSolverError",
    "InvalidDiscretizationError",
    "InsufficientHistoryError",
    "SolveDidNotConvergeError",
]
