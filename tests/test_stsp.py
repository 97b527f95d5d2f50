"""Selective TSP: budget-constrained objective, operators and solver."""

import math

import pytest

from tourforge.config import GAParams, SolverParams
from tourforge.core.candidate import Candidate
from tourforge.core.randomness import RandomGenerator
from tourforge.core.tour import Tour
from tourforge.planner.strategy import SearchFailedError
from tourforge.problems import stsp
from tourforge.problems.stsp import (
    BudgetInsertionOperator,
    RandomSTSPGenerator,
    STSPFitness,
    STSPObjective,
    STSProblem,
    VisitExchangeCrossover,
)

from tests.common import euclidean_problem, uniform_weights

SMALL_GA = SolverParams(
    ga=GAParams(
        population_size=10,
        elitism_percentage=10.0,
        crossover_percentage=50.0,
        mutation_percentage=50.0,
        stagnation_count=5,
        max_generations=20,
    )
)


def _uniform_problem(budget=40.0, **kwargs):
    return STSProblem(uniform_weights(5, 10.0), budget, **kwargs)


def test_negative_budget_raises():
    with pytest.raises(ValueError):
        _uniform_problem(-1.0)


class TestObjective:
    def test_more_visits_beat_a_shorter_tour(self):
        objective = STSPObjective()

        assert objective.compare(STSPFitness(1, 50.0), STSPFitness(2, 10.0)) < 0
        assert objective.compare(STSPFitness(1, 10.0), STSPFitness(1, 50.0)) < 0
        assert objective.compare(STSPFitness(1, 10.0), STSPFitness(1, 10.0)) == 0
        assert objective.is_zero(objective.zero)
        assert objective.add(STSPFitness(1, 2.0), STSPFitness(-1, 3.0)) == STSPFitness(0, 5.0)

    def test_over_budget_tours_are_infinite(self):
        problem = _uniform_problem(30.0)
        objective = STSPObjective()

        assert objective.calculate(problem, Tour.closed([0, 1, 2])) == STSPFitness(2, 30.0)
        over = objective.calculate(problem, Tour.closed([0, 1, 2, 3]))
        assert over == objective.infinite
        assert math.isinf(over.weight)


def test_generator_fills_the_budget():
    problem = _uniform_problem(40.0)

    candidate = RandomSTSPGenerator(RandomGenerator(2)).search(problem)

    assert candidate.solution.count == 4
    assert candidate.solution.is_closed
    assert candidate.fitness == STSPFitness(1, 40.0)


def test_problem_without_last_returns_to_its_first_visit():
    problem = _uniform_problem(40.0, first=2)

    assert problem.is_closed
    assert problem.last == 2
    assert problem.empty_tour().is_closed
    assert not _uniform_problem(40.0, first=2, closed=False).is_closed
    assert _uniform_problem(40.0, first=2, last=3, closed=False).last == 3

    candidate = RandomSTSPGenerator(RandomGenerator(4)).search(problem)

    assert candidate.solution.first == 2
    assert candidate.solution.is_closed
    assert candidate.solution.count == 4


def test_generator_fails_when_the_anchors_exceed_the_budget():
    problem = _uniform_problem(5.0, first=0, last=1)

    with pytest.raises(SearchFailedError) as info:
        RandomSTSPGenerator(RandomGenerator(1)).search(problem)
    assert "budget" in info.value.reason


def test_budget_insertion_spends_the_remaining_budget():
    problem = _uniform_problem(40.0)
    candidate = Candidate.build(problem, STSPObjective(), Tour.closed([0, 1]))

    assert BudgetInsertionOperator(RandomGenerator(3)).apply(candidate)

    assert candidate.solution.count == 4
    assert candidate.fitness == STSPFitness(1, 40.0)
    assert not BudgetInsertionOperator(RandomGenerator(3)).apply(candidate)


@pytest.mark.parametrize("seed", [1, 2, 3, 4])
def test_visit_exchange_crossover_respects_the_budget(seed):
    problem = _uniform_problem(30.0)
    objective = STSPObjective()
    parent1 = Candidate.build(problem, objective, Tour.closed([0, 1, 2]))
    parent2 = Candidate.build(problem, objective, Tour.closed([0, 3, 4]))

    child = VisitExchangeCrossover(RandomGenerator(seed)).apply(parent1, parent2)

    assert child.solution.first == 0
    assert child.solution.count == 3
    assert child.fitness == STSPFitness(2, 30.0)


@pytest.mark.parametrize("seed", [1, 2, 3])
def test_solve_keeps_as_many_visits_as_the_budget_allows(seed):
    problem = _uniform_problem(40.0)

    best = stsp.solve(problem, SMALL_GA, RandomGenerator(seed))

    assert best.solution.count == 4
    assert problem.weights.tour_weight(best.solution) <= 40.0
    assert best.fitness == STSPFitness(1, 40.0)


@pytest.mark.parametrize("seed", [5, 6])
def test_solve_open_problem_stays_within_budget(seed):
    base = euclidean_problem(10, seed, last=None)
    problem = STSProblem(base.weights, 150.0, first=0, closed=False)

    best = stsp.solve(problem, SMALL_GA, RandomGenerator(seed))

    assert not best.solution.is_closed
    assert best.solution.first == 0
    assert problem.weights.tour_weight(best.solution) <= 150.0
    assert best.fitness.unplaced == 10 - best.solution.count


def test_solve_propagates_generator_failure():
    problem = _uniform_problem(5.0, first=0, last=1)

    with pytest.raises(SearchFailedError):
        stsp.solve(problem, SMALL_GA, RandomGenerator(1))
