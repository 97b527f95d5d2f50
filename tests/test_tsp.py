"""TSP model, closed equivalents and the default solver pipelines."""

import dataclasses

import pytest

from tourforge.config import GAParams, SolverParams, VNSParams
from tourforge.core.randomness import RandomGenerator
from tourforge.core.tour import Tour
from tourforge.problems import tsp
from tourforge.problems.tsp import BruteForceSolver, CheapestInsertionGenerator, RandomTourGenerator, TSProblem

from tests.common import SEEDS, TOLERANCE, assert_permutation, euclidean_problem, random_weights, weight_of

FAST_PARAMS = SolverParams(
    vns=VNSParams(max_iterations=150),
    ga=GAParams(
        population_size=20,
        elitism_percentage=10.0,
        crossover_percentage=50.0,
        mutation_percentage=50.0,
        stagnation_count=10,
        max_generations=40,
    ),
)


class TestProblem:
    def test_anchors_and_inner_visits(self):
        problem = TSProblem(random_weights(5, seed=1), first=1, last=3)

        assert not problem.is_closed
        assert problem.inner_visits == [0, 2, 4]
        tour = problem.build_tour([4, 0, 2])
        assert tour.to_list() == [1, 4, 0, 2, 3]
        assert tour.last == 3

    def test_closed_build_tour(self):
        problem = TSProblem(random_weights(4, seed=1), first=0, last=0)

        tour = problem.build_tour([2, 1, 3])

        assert problem.is_closed
        assert tour.is_closed
        assert tour.to_list() == [0, 2, 1, 3]

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"first": 7},
            {"last": -1},
            {"visits": [0, 1, 1]},
            {"visits": [1, 2], "first": 0},
        ],
    )
    def test_invalid_problems_raise(self, kwargs):
        with pytest.raises(ValueError):
            TSProblem(random_weights(4, seed=1), **kwargs)


class TestClosedEquivalent:
    """Open problems map onto closed ones without changing any tour weight."""

    @pytest.mark.parametrize("seed", SEEDS)
    def test_open_end_returns_for_free(self, seed):
        weights = random_weights(6, seed)
        problem = TSProblem(weights, first=0, last=None)
        closed = problem.closed_equivalent()
        order = list(range(1, 6))
        RandomGenerator(seed).shuffle(order)

        closed_tour = Tour.closed([0] + order)
        open_tour = problem.from_closed_equivalent(closed_tour)

        assert closed.is_closed
        assert open_tour.to_list() == [0] + order
        assert not open_tour.is_closed
        assert closed.weights.tour_weight(closed_tour) == pytest.approx(weight_of(open_tour, weights), abs=TOLERANCE)

    @pytest.mark.parametrize("seed", SEEDS)
    def test_fixed_end_is_folded_into_the_return_edge(self, seed):
        weights = random_weights(6, seed)
        problem = TSProblem(weights, first=0, last=5)
        closed = problem.closed_equivalent()
        order = [1, 2, 3, 4]
        RandomGenerator(seed).shuffle(order)

        closed_tour = Tour.closed([0] + order)
        fixed_tour = problem.from_closed_equivalent(closed_tour)

        assert 5 not in closed.visits
        assert fixed_tour.to_list() == [0] + order + [5]
        assert fixed_tour.last == 5
        assert closed.weights.tour_weight(closed_tour) == pytest.approx(weight_of(fixed_tour, weights), abs=TOLERANCE)

    def test_closed_problem_is_its_own_equivalent(self):
        problem = TSProblem(random_weights(4, seed=2), first=0, last=0)
        tour = Tour.closed([0, 1, 2, 3])

        assert problem.closed_equivalent() is problem
        copy = problem.from_closed_equivalent(tour)
        assert copy is not tour
        assert copy.to_list() == tour.to_list()


@pytest.mark.parametrize("last", [0, None, 5])
def test_generators_build_permutations(last):
    problem = euclidean_problem(8, seed=3, last=last)

    for generator in (RandomTourGenerator(random=RandomGenerator(3)), CheapestInsertionGenerator(random=RandomGenerator(3))):
        candidate = generator.search(problem)
        assert_permutation(candidate.solution, range(8))
        assert candidate.solution.first == 0
        assert candidate.solution.last == last
        assert candidate.fitness == pytest.approx(problem.weights.tour_weight(candidate.solution))


def test_brute_force_refuses_large_problems():
    with pytest.raises(ValueError):
        BruteForceSolver(max_visits=4).search(euclidean_problem(7, seed=1))


@pytest.mark.parametrize("last", [1, None])
def test_brute_force_without_free_visits_returns_the_anchor_tour(last):
    problem = TSProblem(random_weights(3, seed=2), first=1, last=last, visits=[1])

    best = BruteForceSolver().search(problem)

    assert best.solution.to_list() == [1]
    assert best.fitness == 0.0


@pytest.mark.parametrize("method", ["vns", "adaptive_vns", "ga"])
@pytest.mark.parametrize("seed", [1, 2, 3])
def test_solve_finds_the_optimum_of_small_closed_problems(method, seed):
    problem = euclidean_problem(6, seed)
    optimum = BruteForceSolver().search(problem)

    best = tsp.solve(problem, method, FAST_PARAMS, RandomGenerator(seed))

    assert best.fitness == pytest.approx(optimum.fitness, abs=TOLERANCE)
    assert_permutation(best.solution, range(6))


@pytest.mark.parametrize("last", [None, 5])
@pytest.mark.parametrize("seed", [4, 5])
def test_solve_open_problems_through_the_closed_equivalent(last, seed):
    problem = euclidean_problem(6, seed, last=last)
    optimum = BruteForceSolver().search(problem)

    best = tsp.solve(problem, "vns", FAST_PARAMS, RandomGenerator(seed))

    assert best.problem is problem
    assert best.solution.first == 0
    assert best.solution.last == last
    assert not best.solution.is_closed
    assert best.fitness == pytest.approx(optimum.fitness, abs=TOLERANCE)
    assert best.fitness == pytest.approx(problem.weights.tour_weight(best.solution), abs=TOLERANCE)


@pytest.mark.parametrize("seed", [1, 2])
def test_ga_with_order_crossover_finds_the_optimum(seed):
    problem = euclidean_problem(6, seed)
    optimum = BruteForceSolver().search(problem)
    params = dataclasses.replace(FAST_PARAMS, ga=dataclasses.replace(FAST_PARAMS.ga, crossover_operator="ox"))

    best = tsp.solve(problem, "ga", params, RandomGenerator(seed))

    assert best.fitness == pytest.approx(optimum.fitness, abs=TOLERANCE)


def test_solve_rejects_unknown_methods():
    with pytest.raises(ValueError):
        tsp.solve(euclidean_problem(5, seed=1), "annealing")
