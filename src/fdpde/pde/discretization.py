from __future__ import annotations

import numpy as np
import scipy.sparse as sp

from ..config import SolverConfig
from ..numerics.linear_solve import LinearSolver
from ..typing import FloatArray
from ..types import SpaceDiscretizerType
from .boundary import BoundaryClosure, boundary_closure
from .inputs import FiniteDifferenceProblem
from .operators import SpatialOperator, reduce_to_interior, spatial_operator
from .types import ReducedOperator


class Discretization:
    """Everything a stepper needs about one problem, built lazily and cached.

    Operators only depend on ``dt`` for Lax-Wendroff, so the caches are keyed
    by ``dt`` there and shared across time steps otherwise. Richardson
    sub-steps therefore reuse their half/quarter-step operators.
    """

    def __init__(
        self,
        problem: FiniteDifferenceProblem,
        *,
        config: SolverConfig,
        linear_solver: LinearSolver,
    ) -> None:
        self.problem = problem
        self.config = config
        self.linear_solver = linear_solver
        self.closure: BoundaryClosure = boundary_closure(problem)
        self._operators: dict[float | None, SpatialOperator] = {}
        self._reduced: dict[float | None, ReducedOperator] = {}
        self._identity: sp.csr_matrix | None = None

    def _key(self, dt: float) -> float | None:
        if self.problem.space_discretizer_type == SpaceDiscretizerType.LAX_WENDROFF:
            return float(dt)
        return None

    @property
    def shape(self) -> tuple[int, ...]:
        return self.closure.shape

    def operator(self, dt: float) -> SpatialOperator:
        key = self._key(dt)
        op = self._operators.get(key)
        if op is None:
            op = spatial_operator(self.problem, dt=float(dt))
            self._operators[key] = op
        return op

    def reduced(self, dt: float) -> ReducedOperator:
        key = self._key(dt)
        red = self._reduced.get(key)
        if red is None:
            red = reduce_to_interior(self.operator(dt), self.closure)
            self._reduced[key] = red
        return red

    def identity(self) -> sp.csr_matrix:
        if self._identity is None:
            self._identity = sp.identity(self.closure.n_interior, format="csr")
        return self._identity

    def close(self, u: FloatArray) -> FloatArray:
        """Apply the boundary conditions (returns a new array)."""
        return self.closure.apply(u)

    def rhs(self, u: FloatArray, dt: float) -> FloatArray:
        """Spatial operator on a boundary-closed state; edges are zero."""
        return self.operator(dt).evaluate(u)

    def interior(self, u: FloatArray) -> FloatArray:
        return self.closure.interior(u)

    def solve(self, operator: sp.spmatrix, rhs: FloatArray) -> FloatArray:
        return np.asarray(self.linear_solver.solve(operator, rhs), dtype=float)
