from __future__ import annotations

import numpy as np
from numpy.typing import NDArray
from typing import TypeAlias

# typing only
FloatArray: TypeAlias = NDArray[np.floating]
ArrayLike: TypeAlias = float | np.ndarray | np.floating | list[float] | tuple[float, ...]
Shape: TypeAlias = tuple[int, ...]

# Runtime types
FloatDType = np.float64  # runtime dtype only
