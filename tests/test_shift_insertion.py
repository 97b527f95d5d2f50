"""Single-visit relocation and cheapest insertion."""

import pytest

from tourforge.config import InsertionParams
from tourforge.core.candidate import Candidate
from tourforge.core.randomness import RandomGenerator
from tourforge.core.tour import Tour
from tourforge.planner.insertion import (
    CheapestReinsertionOperator,
    build_cheapest_insertion,
    cheapest_position,
    cheapest_reinsertion,
    insert_cheapest,
)
from tourforge.planner.shift import (
    LocalOneShiftOperator,
    RandomShiftPerturber,
    local_one_shift,
    movable_visits,
    random_shift,
    shift_delta,
)
from tourforge.problems.tsp import TSPObjective, TSProblem

from tests.common import SEEDS, TOLERANCE, assert_permutation, random_tour, random_weights, uniform_weights, weight_of


def _lookup(weights):
    return lambda a, b: float(weights[a][b])


def test_shift_scenario_delta_matches_recomputation():
    weights = random_weights(6, seed=11)
    tour = Tour([1, 2, 3, 4, 5])
    before = weight_of(tour, weights)

    old_before, old_after, new_after = tour.shift_after(2, 4)
    delta = shift_delta(_lookup(weights), 2, old_before, old_after, 4, new_after)

    assert tour.to_list() == [1, 3, 4, 2, 5]
    assert weight_of(tour, weights) - before == pytest.approx(delta, abs=TOLERANCE)


def test_movable_visits_exclude_anchors():
    assert movable_visits(Tour([0, 1, 2, 3], last=3)) == [1, 2]
    assert movable_visits(Tour.closed([0, 1, 2])) == [1, 2]
    assert movable_visits(Tour([0, 1, 2])) == [1, 2]


@pytest.mark.parametrize("seed", SEEDS)
@pytest.mark.parametrize("last", [0, None, 9])
def test_random_shift_delta_matches_recomputation(seed, last):
    size = 10
    weights = random_weights(size, seed)
    tour = random_tour(size, seed, closed=last == 0, last=None if last == 0 else last)
    random = RandomGenerator(seed)

    for level in (1, 2, 4):
        before = weight_of(tour, weights)
        improved, delta = random_shift(tour, _lookup(weights), level, random)
        assert weight_of(tour, weights) - before == pytest.approx(delta, abs=TOLERANCE)
        assert improved == (delta < -0.001)
        assert_permutation(tour, range(size))
        assert tour.first == 0
        if last == 9:
            assert tour.tail == 9


def test_random_shift_without_movable_visits_is_a_no_op():
    tour = Tour([0, 1], last=1)
    assert random_shift(tour, _lookup(uniform_weights(2)), 3, RandomGenerator(1)) == (False, 0.0)


@pytest.mark.parametrize("seed", SEEDS)
@pytest.mark.parametrize("closed", [True, False])
def test_local_one_shift_delta_matches_recomputation(seed, closed):
    size = 9
    weights = random_weights(size, seed)
    tour = random_tour(size, seed, closed=closed)

    for _ in range(10):
        before = weight_of(tour, weights)
        improved, delta = local_one_shift(tour, _lookup(weights))
        assert weight_of(tour, weights) - before == pytest.approx(delta, abs=TOLERANCE)
        assert improved == (delta < 0)
        if not improved:
            break
    assert_permutation(tour, range(size))


def test_perturber_and_local_one_shift_operator_keep_fitness_in_sync():
    problem = TSProblem(random_weights(8, seed=3), first=0, last=0)
    candidate = Candidate.build(problem, TSPObjective(), random_tour(8, seed=3))

    RandomShiftPerturber(RandomGenerator(3)).apply(candidate, 3)
    assert candidate.fitness == pytest.approx(candidate.objective.calculate(problem, candidate.solution))

    while LocalOneShiftOperator().apply(candidate):
        pass
    assert candidate.fitness == pytest.approx(candidate.objective.calculate(problem, candidate.solution))


def test_cheapest_position_checks_every_edge_and_the_open_end():
    weights = [
        [0, 1, 9, 9],
        [1, 0, 1, 9],
        [9, 1, 0, 1],
        [9, 9, 1, 0],
    ]
    closed = Tour.closed([0, 2])
    assert cheapest_position(closed, _lookup(weights), 1) == (1 + 1 - 9, 0)

    open_tour = Tour([0, 1, 2])
    assert cheapest_position(open_tour, _lookup(weights), 3) == (1, 2)

    single = Tour.closed([0])
    assert cheapest_position(single, _lookup(weights), 1) == (2, 0)

    lone = Tour([0])
    fixed_end = Tour([0, 3], last=3)
    assert cheapest_position(lone, _lookup(weights), 2) == (9, 0)
    cost, after = cheapest_position(fixed_end, _lookup(weights), 1)
    assert after == 0
    assert cost == 1 + 9 - 9


def test_insert_cheapest_returns_added_weight():
    weights = random_weights(6, seed=2)
    tour = Tour.closed([0, 1, 2])
    before = weight_of(tour, weights)

    added = insert_cheapest(tour, _lookup(weights), 4)

    assert weight_of(tour, weights) - before == pytest.approx(added)
    assert 4 in tour


@pytest.mark.parametrize("last", [0, None, 5])
def test_build_cheapest_insertion_places_every_visit(last):
    weights = random_weights(8, seed=7)
    tour = build_cheapest_insertion(0, last, range(8), _lookup(weights), RandomGenerator(7))

    assert_permutation(tour, range(8))
    assert tour.first == 0
    assert tour.last == last
    if last == 5:
        assert tour.tail == 5


@pytest.mark.parametrize("seed", SEEDS)
@pytest.mark.parametrize("count", [1, 3, 20])
def test_cheapest_reinsertion_delta_matches_recomputation(seed, count):
    size = 10
    weights = random_weights(size, seed)
    tour = random_tour(size, seed)
    before = weight_of(tour, weights)

    delta = cheapest_reinsertion(tour, _lookup(weights), count, RandomGenerator(seed))

    assert weight_of(tour, weights) - before == pytest.approx(delta, abs=TOLERANCE)
    assert_permutation(tour, range(size))


@pytest.mark.parametrize("seed", SEEDS)
def test_reinsertion_operator_never_worsens(seed):
    problem = TSProblem(random_weights(10, seed), first=0, last=0)
    candidate = Candidate.build(problem, TSPObjective(), random_tour(10, seed))
    operator = CheapestReinsertionOperator(InsertionParams(fraction=0.3), RandomGenerator(seed))

    for _ in range(10):
        before_tour = candidate.solution.to_list()
        before = candidate.fitness
        improved = operator.apply(candidate)
        assert candidate.fitness == pytest.approx(candidate.objective.calculate(problem, candidate.solution))
        if improved:
            assert candidate.fitness < before
        else:
            assert candidate.solution.to_list() == before_tour
            assert candidate.fitness == before


def test_reinsertion_removal_count():
    operator = CheapestReinsertionOperator(InsertionParams(fraction=0.5, min_removed=2))

    assert operator.removal_count(Tour.closed(range(11))) == 5
    assert operator.removal_count(Tour.closed([0, 1, 2])) == 2
    assert operator.removal_count(Tour.closed([0])) == 0
