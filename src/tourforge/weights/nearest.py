"""Nearest-neighbour lists used to prune operator search spaces.

A ``NearestNeighbourArray`` holds, for every visit, its ``n`` cheapest other
visits under one orientation of the weights.  The arrays are immutable once
built; ``NearestNeighbourCache`` builds one per ``(direction, n)`` the first
time it is asked for and hands out the same instance afterwards.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Callable, Dict, FrozenSet, Iterator, Optional, Tuple, Union

import numpy as np

from .matrix import WeightMatrix

logger = logging.getLogger(__name__)

WeightSource = Union[WeightMatrix, Callable[[int, int], float]]


class NeighbourDirection(Enum):
    FORWARD = "forward"
    BACKWARD = "backward"
    BIDIRECTIONAL = "bidirectional"


def _cost_matrix(weights: WeightSource, size: int) -> np.ndarray:
    if isinstance(weights, WeightMatrix):
        return np.array(weights.array)
    return np.array([[weights(i, j) for j in range(size)] for i in range(size)], dtype=float)


class NearestNeighbourArray:
    """Per-visit shortlist of the closest other visits.

    Forward ranks ``w(v, x)``, backward ranks ``w(x, v)`` and bidirectional
    ranks ``w(v, x) + w(x, v)``.  Ties keep id order.
    """

    def __init__(
        self,
        weights: WeightSource,
        size: int,
        n: int,
        direction: NeighbourDirection = NeighbourDirection.BIDIRECTIONAL,
        *,
        costs: Optional[np.ndarray] = None,
    ) -> None:
        if n <= 0:
            raise ValueError(f"n must be positive, got {n}")
        if size <= 0:
            raise ValueError(f"size must be positive, got {size}")
        matrix = costs if costs is not None else _cost_matrix(weights, size)
        if matrix.shape != (size, size):
            raise ValueError(f"Expected a {size}x{size} matrix, got {matrix.shape}")

        if direction == NeighbourDirection.FORWARD:
            ranked = np.array(matrix, dtype=float)
        elif direction == NeighbourDirection.BACKWARD:
            ranked = np.array(matrix.T, dtype=float)
        else:
            ranked = matrix + matrix.T
        np.fill_diagonal(ranked, np.inf)

        width = min(n, size - 1)
        order = np.argsort(ranked, axis=1, kind="stable")[:, :width]
        self._n = n
        self._direction = direction
        self._neighbours: Tuple[Tuple[int, ...], ...] = tuple(tuple(int(x) for x in row) for row in order)
        self._sets: Tuple[FrozenSet[int], ...] = tuple(frozenset(row) for row in self._neighbours)

    @property
    def n(self) -> int:
        return self._n

    @property
    def direction(self) -> NeighbourDirection:
        return self._direction

    def __len__(self) -> int:
        return len(self._neighbours)

    def __getitem__(self, visit: int) -> Tuple[int, ...]:
        return self._neighbours[visit]

    def __iter__(self) -> Iterator[Tuple[int, ...]]:
        return iter(self._neighbours)

    def is_neighbour(self, visit: int, other: int) -> bool:
        return other in self._sets[visit]


class NearestNeighbourCache:
    """Lazily built neighbour arrays keyed by ``(direction, n)``."""

    def __init__(self, weights: WeightSource, size: int) -> None:
        self._weights = weights
        self._size = size
        self._costs: Optional[np.ndarray] = None
        self._arrays: Dict[Tuple[NeighbourDirection, int], NearestNeighbourArray] = {}

    def get(self, n: int, direction: NeighbourDirection = NeighbourDirection.BIDIRECTIONAL) -> NearestNeighbourArray:
        key = (direction, n)
        array = self._arrays.get(key)
        if array is None:
            if self._costs is None:
                self._costs = _cost_matrix(self._weights, self._size)
            logger.debug(f"[NN] building {direction.value} neighbour array with n={n} over {self._size} visits")
            array = NearestNeighbourArray(self._weights, self._size, n, direction, costs=self._costs)
            self._arrays[key] = array
        return array

    def forward(self, n: int) -> NearestNeighbourArray:
        return self.get(n, NeighbourDirection.FORWARD)

    def backward(self, n: int) -> NearestNeighbourArray:
        return self.get(n, NeighbourDirection.BACKWARD)

    def bidirectional(self, n: int) -> NearestNeighbourArray:
        return self.get(n, NeighbourDirection.BIDIRECTIONAL)

    def __len__(self) -> int:
        return len(self._arrays)
