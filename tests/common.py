"""Shared factories for the tour and search tests.

Builds deterministic weight matrices, tours and problems so individual test
modules can focus on assertions instead of setup.
"""
from __future__ import annotations

from typing import List, Optional, Sequence

import numpy as np

from tourforge.core.directed import Turn, encode
from tourforge.core.randomness import RandomGenerator
from tourforge.core.tour import Tour
from tourforge.problems.tsp import TSProblem
from tourforge.problems.tspd import TSPDProblem
from tourforge.weights.matrix import WeightMatrix, tour_weight

SEEDS = [1, 2, 3, 5, 8, 13, 21, 34]
TOLERANCE = 1e-6


def ring_weights(size: int = 5, near: float = 10.0, far: float = 100.0) -> List[List[float]]:
    """Visits on a ring: neighbours on the ring cost ``near``, anything else ``far``."""

    weights = [[0.0] * size for _ in range(size)]
    for i in range(size):
        for j in range(size):
            if i == j:
                continue
            weights[i][j] = near if (j - i) % size in (1, size - 1) else far
    return weights


def uniform_weights(size: int, value: float = 10.0) -> List[List[float]]:
    return [[0.0 if i == j else value for j in range(size)] for i in range(size)]


def random_weights(size: int, seed: int, symmetric: bool = False) -> np.ndarray:
    rng = np.random.default_rng(seed)
    weights = rng.uniform(1.0, 100.0, size=(size, size))
    if symmetric:
        weights = (weights + weights.T) / 2.0
    np.fill_diagonal(weights, 0.0)
    return weights


def random_points(size: int, seed: int) -> np.ndarray:
    return np.random.default_rng(seed).uniform(0.0, 100.0, size=(size, 2))


def euclidean_problem(size: int, seed: int, first: int = 0, last: Optional[int] = 0) -> TSProblem:
    return TSProblem(WeightMatrix.from_points(random_points(size, seed)), first=first, last=last)


def random_tour(size: int, seed: int, closed: bool = True, last: Optional[int] = None) -> Tour:
    """Tour over ``0..size-1`` starting at 0 in a seeded random order."""

    inner = list(range(1, size))
    if last is not None:
        inner.remove(last)
    RandomGenerator(seed).shuffle(inner)
    if closed:
        return Tour.closed([0] + inner)
    sequence = [0] + inner + ([last] if last is not None else [])
    return Tour(sequence, last=last)


def weight_of(tour: Tour, weights: Sequence[Sequence[float]]) -> float:
    return tour_weight(tour, lambda a, b: float(weights[a][b]))


def random_directed_problem(size: int, seed: int, last: Optional[int] = 0) -> TSPDProblem:
    """Directed problem with random weights per direction pair and random turn penalties."""

    rng = np.random.default_rng(seed)
    weights = rng.uniform(1.0, 50.0, size=(2 * size, 2 * size))
    for visit in range(size):
        weights[2 * visit:2 * visit + 2, 2 * visit:2 * visit + 2] = 0.0
    penalties = [0.0] + list(rng.uniform(0.0, 20.0, size=3))
    return TSPDProblem(weights, penalties, first=0, last=last)


def forward_directed_tour(problem: TSPDProblem, order: Sequence[int]) -> Tour:
    sequence = [encode(visit, Turn.FORWARD_FORWARD) for visit in order]
    if problem.is_closed:
        return Tour.closed(sequence)
    return Tour(sequence)


def assert_permutation(tour: Tour, expected: Sequence[int]) -> None:
    visits = tour.to_list()
    assert len(visits) == len(set(visits))
    assert sorted(visits) == sorted(expected)
    assert tour.count == len(expected)
