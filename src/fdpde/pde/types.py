from dataclasses import dataclass

import numpy as np
import scipy.sparse as sp

from ..typing import FloatArray


@dataclass(frozen=True, slots=True)
class ReducedOperator:
    A: sp.csr_matrix  # interior-interior operator after edge elimination
    forcing: FloatArray  # constant part contributed by the edge conditions
    extension: sp.csr_matrix  # interior -> full state (edges closed)
    offset: FloatArray  # constant part of the extension
    shape: tuple[int, ...]  # full grid shape

    @property
    def size(self) -> int:
        return int(self.A.shape[0])

    def apply(self, w: FloatArray) -> FloatArray:
        """F on interior unknowns: ``A @ w + forcing``."""
        return self.A @ w + self.forcing

    def expand(self, w: FloatArray) -> FloatArray:
        """Full boundary-closed state from interior unknowns."""
        return np.asarray(self.extension @ w + self.offset, dtype=float).reshape(
            self.shape
        )
