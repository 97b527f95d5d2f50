"""Weight matrices and nearest-neighbour lists."""

import numpy as np
import pytest

from tourforge.core.tour import Tour
from tourforge.weights.matrix import WeightMatrix, tour_weight
from tourforge.weights.nearest import NearestNeighbourArray, NearestNeighbourCache, NeighbourDirection


def test_weight_matrix_validation():
    with pytest.raises(ValueError):
        WeightMatrix([[0, 1, 2], [1, 0, 2]])
    with pytest.raises(ValueError):
        WeightMatrix(np.zeros((0, 0)))
    with pytest.raises(ValueError):
        WeightMatrix([[0, float("nan")], [1, 0]])


def test_weight_matrix_is_read_only():
    matrix = WeightMatrix([[0, 1], [2, 0]])

    assert matrix.weight(0, 1) == 1.0
    assert matrix(1, 0) == 2.0
    assert matrix[1, 0] == 2.0
    assert len(matrix) == 2
    with pytest.raises(ValueError):
        matrix.array[0, 1] = 5.0


def test_from_points():
    points = [(0.0, 0.0), (3.0, 4.0), (3.0, 0.0)]

    euclidean = WeightMatrix.from_points(points)
    manhattan = WeightMatrix.from_points(points, metric="manhattan")

    assert euclidean.weight(0, 1) == pytest.approx(5.0)
    assert manhattan.weight(0, 1) == pytest.approx(7.0)
    assert euclidean.is_symmetric()
    with pytest.raises(ValueError):
        WeightMatrix.from_points(points, metric="chebyshev")


def test_tour_weight_includes_closing_edge_only_when_closed():
    matrix = WeightMatrix([[0, 1, 5], [5, 0, 2], [3, 5, 0]])

    assert matrix.tour_weight(Tour.closed([0, 1, 2])) == 6.0
    assert tour_weight(Tour([0, 1, 2]), matrix.weight) == 3.0
    assert not matrix.is_symmetric()


def test_derive_builds_an_independent_matrix():
    matrix = WeightMatrix([[0, 1], [2, 0]])

    derived = matrix.derive(lambda array: array * 10)

    assert derived.weight(1, 0) == 20.0
    assert matrix.weight(1, 0) == 2.0


ASYMMETRIC = np.array(
    [
        [0.0, 1.0, 9.0, 4.0],
        [8.0, 0.0, 2.0, 7.0],
        [1.0, 6.0, 0.0, 3.0],
        [5.0, 5.0, 5.0, 0.0],
    ]
)


def test_nearest_neighbour_directions():
    forward = NearestNeighbourArray(WeightMatrix(ASYMMETRIC), 4, 2, NeighbourDirection.FORWARD)
    backward = NearestNeighbourArray(WeightMatrix(ASYMMETRIC), 4, 2, NeighbourDirection.BACKWARD)
    both = NearestNeighbourArray(WeightMatrix(ASYMMETRIC), 4, 2)

    assert forward[0] == (1, 3)
    assert backward[0] == (2, 3)
    # w(0, x) + w(x, 0): 9, 10, 9 -> ties keep id order
    assert both[0] == (1, 3)
    assert forward.is_neighbour(0, 3)
    assert not forward.is_neighbour(0, 2)
    assert len(forward) == 4


def test_nearest_neighbours_never_include_the_visit_itself():
    array = NearestNeighbourArray(lambda a, b: 0.0, 5, 10)

    for visit, neighbours in enumerate(array):
        assert visit not in neighbours
        assert len(neighbours) == 4


def test_nearest_neighbour_array_validation():
    with pytest.raises(ValueError):
        NearestNeighbourArray(WeightMatrix(ASYMMETRIC), 4, 0)
    with pytest.raises(ValueError):
        NearestNeighbourArray(WeightMatrix(ASYMMETRIC), 3, 2)


def test_cache_builds_each_array_once():
    cache = NearestNeighbourCache(WeightMatrix(ASYMMETRIC), 4)

    first = cache.forward(2)
    assert cache.get(2, NeighbourDirection.FORWARD) is first
    assert cache.bidirectional(2) is not first
    assert cache.backward(3) is cache.backward(3)
    assert len(cache) == 3
