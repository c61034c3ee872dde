"""Pytest helpers for the fdpde library."""

from __future__ import annotations

import numpy as np
import pytest

from fdpde.pde.boundary import BoundaryCondition1D, dirichlet
from fdpde.pde.inputs import FiniteDifferenceInput1D
from fdpde.types import SolverType, SpaceDiscretizerType


@pytest.fixture
def make_problem_1d():
    """Factory fixture for constant-coefficient 1D problems."""

    def _make(
        *,
        n: int = 11,
        lower: float = 0.0,
        upper: float = 1.0,
        dt: float = 0.01,
        velocity: float = 0.0,
        diffusion: float = 1.0,
        solver_type: SolverType = SolverType.EXPLICIT_EULER,
        kind: SpaceDiscretizerType = SpaceDiscretizerType.CENTERED,
        bc: BoundaryCondition1D | None = None,
        grid: np.ndarray | None = None,
    ) -> FiniteDifferenceInput1D:
        x = np.linspace(lower, upper, n) if grid is None else np.asarray(grid)
        if bc is None:
            bc = BoundaryCondition1D(left=dirichlet(0.0), right=dirichlet(0.0))
        return FiniteDifferenceInput1D(
            dt=dt,
            grid=x,
            velocity=np.full(x.shape, velocity),
            diffusion=np.full(x.shape, diffusion),
            solver_type=solver_type,
            space_discretizer_type=kind,
            boundary_conditions=bc,
        )

    return _make

