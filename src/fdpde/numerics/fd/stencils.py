"""
Pure stencil coefficients on nonuniform 1D grids.

Every helper returns weights only; applying them along an axis is the job of
:mod:`fdpde.pde.operators` (interior stencils) and :mod:`fdpde.pde.boundary`
(one-sided edge derivatives). Spacings follow the convention

    hm = x_i - x_{i-1}
    hp = x_{i+1} - x_i

and may be scalars or broadcastable arrays.
"""

from __future__ import annotations

import numpy as np


def d1_central_nonuniform_coeffs(hm, hp):
    """Central 3-point coefficients for the first derivative.

    Returns (dl, dd, du) such that:
        y'(x_i) ≈ dl*y_{i-1} + dd*y_i + du*y_{i+1}

    Second-order accurate on nonuniform grids (exact for quadratics).
    """
    denom = hm * hp * (hm + hp)
    dl = -hp * hp / denom
    dd = (hp * hp - hm * hm) / denom
    du = hm * hm / denom
    return dl, dd, du


def d2_central_nonuniform_coeffs(hm, hp):
    """Central 3-point coefficients for the second derivative.

    Returns (dl, dd, du) such that:
        y''(x_i) ≈ dl*y_{i-1} + dd*y_i + du*y_{i+1}
    """
    dl = 2.0 / (hm * (hm + hp))
    dd = -2.0 / (hm * hp)
    du = 2.0 / (hp * (hm + hp))
    return dl, dd, du


def d1_backward_coeffs(hm):  # (u_i - u_{i-1})/hm
    return -1.0 / hm, 1.0 / hm, 0.0


def d1_forward_coeffs(hp):  # (u_{i+1} - u_i)/hp
    return 0.0, -1.0 / hp, 1.0 / hp


def d1_upwind_coeffs(hm, hp, velocity):
    """One-sided first-derivative coefficients picked by the sign of ``velocity``.

    Backward difference where ``velocity >= 0`` (information travels towards
    +x), forward difference otherwise. The output arrays have the broadcast
    shape of ``hm``, ``hp`` and ``velocity``.
    """
    hm, hp, velocity = np.broadcast_arrays(
        np.asarray(hm, dtype=float),
        np.asarray(hp, dtype=float),
        np.asarray(velocity, dtype=float),
    )
    pos = velocity >= 0.0

    bl, bd, _ = d1_backward_coeffs(hm)
    _, fd, fu = d1_forward_coeffs(hp)

    dl = np.where(pos, bl, 0.0)
    dd = np.where(pos, bd, fd)
    du = np.where(pos, 0.0, fu)
    return dl, dd, du


def d1_left_edge_coeffs(h0: float, h1: float) -> tuple[float, float, float]:
    """Second-order one-sided weights for y'(x_0) from (y_0, y_1, y_2)."""
    w0 = -(2.0 * h0 + h1) / (h0 * (h0 + h1))
    w1 = (h0 + h1) / (h0 * h1)
    w2 = -h0 / (h1 * (h0 + h1))
    return w0, w1, w2


def d1_right_edge_coeffs(h0: float, h1: float) -> tuple[float, float, float]:
    """Second-order one-sided weights for y'(x_{N-1}).

    ``h0 = x_{N-1} - x_{N-2}``, ``h1 = x_{N-2} - x_{N-3}``. Returns weights
    for (y_{N-3}, y_{N-2}, y_{N-1}).
    """
    w_m3 = h0 / (h1 * (h0 + h1))
    w_m2 = -(h0 + h1) / (h0 * h1)
    w_m1 = (2.0 * h0 + h1) / (h0 * (h0 + h1))
    return w_m3, w_m2, w_m1
