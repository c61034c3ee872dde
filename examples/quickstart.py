from __future__ import annotations


def main() -> None:
    # [START README_QUICKSTART]
    import numpy as np

    from fdpde import (
        BoundaryCondition1D,
        FiniteDifferenceInput1D,
        FiniteDifferenceSolver,
        SolverType,
        SpaceDiscretizerType,
        dirichlet,
        solve_pde,
    )
    from fdpde.logging import configure_logging

    configure_logging("INFO")

    x = np.linspace(0.0, 1.0, 51)
    problem = FiniteDifferenceInput1D(
        dt=1e-3,
        grid=x,
        velocity=np.full_like(x, 0.5),
        diffusion=np.full_like(x, 0.05),
        solver_type=SolverType.CRANK_NICOLSON,
        space_discretizer_type=SpaceDiscretizerType.CENTERED,
        boundary_conditions=BoundaryCondition1D(dirichlet(0.0), dirichlet(0.0)),
    )

    # One step at a time, caller owns the state
    solver = FiniteDifferenceSolver(problem)
    u = np.exp(-100.0 * (x - 0.3) ** 2)
    for _ in range(10):
        u = solver.advance(u)
    print("after 10 steps, max u =", u.max())

    # Or let the driver keep the trajectory
    sol = solve_pde(problem, lambda x: np.exp(-100.0 * (x - 0.3) ** 2), 200)
    print("t =", sol.times[-1], "peak at x =", x[np.argmax(sol.u_final)])
    # [END README_QUICKSTART]


if __name__ == "__main__":
    main()
