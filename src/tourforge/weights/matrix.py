"""Dense weight matrices shared by the problem models and operators.

``WeightMatrix`` validates and freezes a square cost matrix once, exposes a
fast ``weight(from, to)`` lookup for the inner loops of the operators and
measures whole-tour weights.  Euclidean and Manhattan constructors build a
matrix from planar points, which is what the tests and benchmarks use.
"""

from __future__ import annotations

from typing import Callable, Iterable, List, Sequence, Tuple, Union

import numpy as np

from ..core.tour import Tour

MatrixLike = Union[np.ndarray, Sequence[Sequence[float]]]


class WeightMatrix:
    """Precomputed square matrix of travel weights.

    Lookups go through a nested Python list because scalar indexing of a
    numpy array is several times slower inside the operator loops; vectorised
    work (nearest neighbours, symmetry checks) uses the frozen array.
    """

    def __init__(self, weights: MatrixLike) -> None:
        array = np.array(weights, dtype=float)
        if array.ndim != 2 or array.shape[0] != array.shape[1]:
            raise ValueError(f"Weight matrix must be square, got shape {array.shape}")
        if array.shape[0] == 0:
            raise ValueError("Weight matrix must contain at least one visit")
        if np.isnan(array).any():
            raise ValueError("Weight matrix contains NaN entries")
        array.flags.writeable = False
        self._array = array
        self._rows: List[List[float]] = array.tolist()

    @classmethod
    def from_points(cls, points: Iterable[Tuple[float, float]], metric: str = "euclidean") -> "WeightMatrix":
        coords = np.array(list(points), dtype=float)
        if coords.ndim != 2 or coords.shape[1] != 2:
            raise ValueError("Points must be (x, y) pairs")
        diff = coords[:, None, :] - coords[None, :, :]
        if metric == "euclidean":
            return cls(np.sqrt((diff ** 2).sum(axis=2)))
        if metric == "manhattan":
            return cls(np.abs(diff).sum(axis=2))
        raise ValueError(f"Unknown metric: {metric}")

    @property
    def size(self) -> int:
        return len(self._rows)

    @property
    def array(self) -> np.ndarray:
        return self._array

    def weight(self, from_visit: int, to_visit: int) -> float:
        return self._rows[from_visit][to_visit]

    def __call__(self, from_visit: int, to_visit: int) -> float:
        return self._rows[from_visit][to_visit]

    def __getitem__(self, key: Tuple[int, int]) -> float:
        from_visit, to_visit = key
        return self._rows[from_visit][to_visit]

    def __len__(self) -> int:
        return len(self._rows)

    def is_symmetric(self, tolerance: float = 1e-9) -> bool:
        return bool(np.allclose(self._array, self._array.T, atol=tolerance))

    def tour_weight(self, tour: Tour) -> float:
        return tour_weight(tour, self.weight)

    def derive(self, transform: Callable[[np.ndarray], np.ndarray]) -> "WeightMatrix":
        """New matrix from a transformed copy of this one."""

        return WeightMatrix(transform(np.array(self._array)))


def tour_weight(tour: Tour, weight: Callable[[int, int], float]) -> float:
    """Sum of the edge weights of ``tour``, closing edge included when closed."""

    total = 0.0
    for from_visit, to_visit in tour.pairs():
        total += weight(from_visit, to_visit)
    return total
