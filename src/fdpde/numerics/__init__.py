# src/fdpde/numerics/__init__.py
"""
Numerical building blocks (advanced API).

The top-level package exposes the problem/solver API. This subpackage holds
the reusable primitives underneath it: grids, tridiagonal algebra and the
linear-solve collaborators used by implicit methods.
"""

from .grids import AxisGridConfig, SpacingPolicy, build_axis_grid, uniform_grid
from .linear_solve import (
    BandedSolver,
    DirectSolver,
    KrylovSolver,
    LinearSolver,
    ThomasSolver,
    get_linear_solver,
)
from .tridiag import (
    CyclicTridiag,
    Tridiag,
    solve_cyclic_tridiag,
    solve_tridiag_banded,
    solve_tridiag_thomas,
    split_tridiagonal,
    tridiag_mv,
    tridiag_to_dense,
)

__all__ = [
    # Grids
    "SpacingPolicy",
    "AxisGridConfig",
    "build_axis_grid",
    "uniform_grid",
    # Tridiagonal
    "Tridiag",
    "CyclicTridiag",
    "tridiag_mv",
    "split_tridiagonal",
    "solve_tridiag_thomas",
    "solve_cyclic_tridiag",
    "solve_tridiag_banded",
    "tridiag_to_dense",
    # Linear solvers
    "LinearSolver",
    "DirectSolver",
    "ThomasSolver",
    "BandedSolver",
    "KrylovSolver",
    "get_linear_solver",
]
