# src/fdpde/numerics/grids.py
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

import numpy as np

from ..exceptions import ConfigurationIssue, InvalidConfigurationError
from ..typing import FloatArray
from .fd.validate import MIN_POINTS, assert_strictly_increasing

__all__ = [
    "SpacingPolicy",
    "AxisGridConfig",
    "build_axis_grid",
    "uniform_grid",
]


class SpacingPolicy(str, Enum):
    UNIFORM = "uniform"
    CLUSTERED = "clustered"


def _invalid(message: str) -> InvalidConfigurationError:
    return InvalidConfigurationError(ConfigurationIssue.INVALID_SETTING, message)


@dataclass(frozen=True, slots=True)
class AxisGridConfig:
    """Spatial coordinates of one axis.

    Clustered grids concentrate points around ``center`` with a sinh map;
    larger ``cluster_strength`` means stronger clustering.
    """

    n: int
    lower: float
    upper: float
    spacing: SpacingPolicy = SpacingPolicy.UNIFORM
    center: float | None = None
    cluster_strength: float = 2.0

    def validate(self) -> None:
        if self.n < MIN_POINTS:
            raise InvalidConfigurationError(
                ConfigurationIssue.TOO_FEW_POINTS, f"n must be >= {MIN_POINTS}"
            )
        if not (self.lower < self.upper):
            raise _invalid("Need lower < upper")

        if self.spacing == SpacingPolicy.CLUSTERED:
            if self.center is None:
                raise _invalid("center required for clustered spacing")
            if not (self.lower <= self.center <= self.upper):
                raise _invalid("center must be within [lower, upper]")
            if self.cluster_strength <= 0:
                raise _invalid("cluster_strength must be > 0")


def _clustered(cfg: AxisGridConfig) -> FloatArray:
    s = np.linspace(-1.0, 1.0, cfg.n, dtype=float)
    raw = np.sinh(float(cfg.cluster_strength) * s)
    raw = raw / np.max(np.abs(raw))

    assert cfg.center is not None
    xc = float(cfg.center)

    x = np.where(
        raw <= 0.0,
        xc + raw * (xc - cfg.lower),
        xc + raw * (cfg.upper - xc),
    )
    x[0] = cfg.lower
    x[-1] = cfg.upper
    return x


def build_axis_grid(cfg: AxisGridConfig) -> FloatArray:
    cfg.validate()
    if cfg.spacing == SpacingPolicy.UNIFORM:
        x = np.linspace(cfg.lower, cfg.upper, cfg.n, dtype=float)
    else:
        x = _clustered(cfg)
    assert_strictly_increasing(x, "grid")
    return x


def uniform_grid(lower: float, upper: float, n: int) -> FloatArray:
    """Shortcut for a uniform :class:`AxisGridConfig`."""
    return build_axis_grid(AxisGridConfig(n=int(n), lower=lower, upper=upper))
