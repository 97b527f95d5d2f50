"""Selective TSP: visit as many visits as possible within a weight budget.

Fitness is the pair ``(unplaced, weight)`` compared lexicographically: fewer
unplaced visits always wins, weight breaks ties.  A tour over the budget is
infeasible and scores :attr:`STSPObjective.infinite`, so no operator can keep
an over-budget tour.  Tours are closed unless a different last visit is given.
"""

from __future__ import annotations

import logging
import math
import sys
from typing import Callable, List, NamedTuple, Optional, Sequence, Tuple, Union

from ..config import DEFAULT_LOCAL_SEARCH_PARAMS, DEFAULT_SOLVER_PARAMS, LocalSearchParams, SolverParams
from ..core.candidate import Candidate
from ..core.objective import Objective
from ..core.randomness import RandomGenerator, RandomPool, resolve
from ..core.tour import Tour
from ..planner.ga import GAStrategy, TournamentSelector
from ..planner.insertion import cheapest_position
from ..planner.local_search import OrOptOperator, TwoOptOperator
from ..planner.operators import Concat, CrossOverOperator, ObjectiveGuard, Operator, TourOperator
from ..planner.strategy import NewBestHook, SearchFailedError, Strategy
from ..weights.matrix import MatrixLike, WeightMatrix, tour_weight
from .tsp import TSProblem

logger = logging.getLogger(__name__)


class STSPFitness(NamedTuple):
    unplaced: int
    weight: float


class STSProblem(TSProblem):
    """Budgeted TSP.  Without a ``last`` visit the tour returns to ``first``; pass
    ``closed=False`` for an open path with a free end.
    """

    def __init__(
        self,
        weights: Union[WeightMatrix, MatrixLike],
        max_weight: float,
        first: int = 0,
        last: Optional[int] = None,
        visits: Optional[Sequence[int]] = None,
        closed: bool = True,
    ) -> None:
        if last is None and closed:
            last = first
        super().__init__(weights, first, last, visits)
        if max_weight < 0:
            raise ValueError(f"max_weight must be non-negative, got {max_weight}")
        self.max_weight = max_weight

    def empty_tour(self) -> Tour:
        """Tour holding only the anchors."""

        return self.build_tour([])

    def within_budget(self, weight: float) -> bool:
        return weight <= self.max_weight


class STSPObjective(Objective[STSProblem, Tour, STSPFitness]):
    name = "STSP"

    @property
    def zero(self) -> STSPFitness:
        return STSPFitness(0, 0.0)

    @property
    def infinite(self) -> STSPFitness:
        return STSPFitness(sys.maxsize, math.inf)

    @property
    def is_non_continuous(self) -> bool:
        return True

    def calculate(self, problem: STSProblem, solution: Tour) -> STSPFitness:
        weight = tour_weight(solution, problem.weight)
        if not problem.within_budget(weight):
            return self.infinite
        return STSPFitness(len(problem.visits) - solution.count, weight)

    def add(self, fitness1: STSPFitness, fitness2: STSPFitness) -> STSPFitness:
        return STSPFitness(fitness1.unplaced + fitness2.unplaced, fitness1.weight + fitness2.weight)

    def subtract(self, fitness1: STSPFitness, fitness2: STSPFitness) -> STSPFitness:
        return STSPFitness(fitness1.unplaced - fitness2.unplaced, fitness1.weight - fitness2.weight)

    def compare(self, fitness1: STSPFitness, fitness2: STSPFitness) -> int:
        if fitness1.unplaced != fitness2.unplaced:
            return -1 if fitness1.unplaced < fitness2.unplaced else 1
        if fitness1.weight < fitness2.weight:
            return -1
        if fitness1.weight > fitness2.weight:
            return 1
        return 0

    def is_zero(self, fitness: STSPFitness) -> bool:
        return fitness.unplaced == 0 and fitness.weight == 0.0


def insert_within_budget(
    problem: STSProblem,
    tour: Tour,
    weight: float,
    visits: Sequence[int],
) -> float:
    """Cheapest-insert each of ``visits`` that still fits the budget; return the new weight."""

    for visit in visits:
        if tour.contains(visit):
            continue
        cost, after = cheapest_position(tour, problem.weight, visit)
        if after is not None and problem.within_budget(weight + cost):
            tour.insert_after(after, visit)
            weight += cost
    return weight


class RandomSTSPGenerator(Strategy):
    """Random-order cheapest insertion until nothing else fits the budget."""

    name = "random_insertion"

    def __init__(self, random: Optional[RandomGenerator] = None) -> None:
        super().__init__()
        self._random = resolve(random)
        self._objective = STSPObjective()

    def search(self, problem: STSProblem) -> Candidate:
        tour = problem.empty_tour()
        weight = tour_weight(tour, problem.weight)
        if not problem.within_budget(weight):
            raise SearchFailedError(
                f"Travelling from {problem.first} to {problem.last} alone exceeds the budget of {problem.max_weight}"
            )
        inner = problem.inner_visits
        order = [inner[index] for index in RandomPool(len(inner), self._random)]
        insert_within_budget(problem, tour, weight, order)
        return Candidate.build(problem, self._objective, tour)


class VisitExchangeCrossover(CrossOverOperator):
    """Child built from the visits of both parents, alternating between them.

    Starting from the anchors, visits are taken in turn from each parent's
    shuffled visit list and inserted at their cheapest position whenever they
    still fit the budget.
    """

    name = "visit_exchange"

    def __init__(self, random: Optional[RandomGenerator] = None) -> None:
        self._random = resolve(random)

    def apply(self, parent1: Candidate, parent2: Candidate) -> Candidate:
        problem: STSProblem = parent1.problem
        visits1 = self._shuffled(problem, parent1.solution)
        visits2 = self._shuffled(problem, parent2.solution)
        order: List[int] = []
        for index in range(max(len(visits1), len(visits2))):
            if index < len(visits1):
                order.append(visits1[index])
            if index < len(visits2):
                order.append(visits2[index])

        tour = problem.empty_tour()
        insert_within_budget(problem, tour, tour_weight(tour, problem.weight), order)
        return Candidate.build(problem, parent1.objective, tour)

    def _shuffled(self, problem: STSProblem, tour: Tour) -> List[int]:
        visits = [visit for visit in tour if visit != problem.first and visit != problem.last]
        self._random.shuffle(visits)
        return visits


class BudgetInsertionOperator(TourOperator):
    """Adds unplaced visits while they fit the remaining budget."""

    name = "budget_insertion"

    def __init__(self, random: Optional[RandomGenerator] = None) -> None:
        self._random = resolve(random)

    def apply_to_tour(self, problem: STSProblem, objective: Objective, tour: Tour) -> Tuple[bool, STSPFitness]:
        unplaced = [visit for visit in problem.inner_visits if not tour.contains(visit)]
        if not unplaced:
            return False, STSPFitness(0, 0.0)
        self._random.shuffle(unplaced)
        before_count = tour.count
        weight = tour_weight(tour, problem.weight)
        new_weight = insert_within_budget(problem, tour, weight, unplaced)
        added = tour.count - before_count
        if added == 0:
            return False, STSPFitness(0, 0.0)
        logger.debug(f"[STSP] inserted {added} visits, weight {weight:.2f} -> {new_weight:.2f}")
        return True, STSPFitness(-added, new_weight - weight)


def default_local_search(
    random: Optional[RandomGenerator] = None,
    params: LocalSearchParams = DEFAULT_LOCAL_SEARCH_PARAMS,
) -> Operator:
    """Shorten the tour, then spend the freed budget on more visits."""

    return Concat(
        [
            ObjectiveGuard(TwoOptOperator(params)),
            ObjectiveGuard(OrOptOperator(params)),
            BudgetInsertionOperator(random),
        ],
        until_stable=True,
    )


def build_ga(
    params: SolverParams = DEFAULT_SOLVER_PARAMS,
    random: Optional[RandomGenerator] = None,
    on_new_best: Optional[NewBestHook] = None,
    stopped: Optional[Callable[[], bool]] = None,
) -> GAStrategy:
    random = resolve(random)
    return GAStrategy(
        generator=RandomSTSPGenerator(random),
        crossover=VisitExchangeCrossover(random),
        mutation=default_local_search(random, params.local_search),
        selector=TournamentSelector(params.tournament, random),
        params=params.ga,
        random=random,
        stopped=stopped,
        on_new_best=on_new_best,
    )


def solve(
    problem: STSProblem,
    params: SolverParams = DEFAULT_SOLVER_PARAMS,
    random: Optional[RandomGenerator] = None,
    on_new_best: Optional[NewBestHook] = None,
    stopped: Optional[Callable[[], bool]] = None,
) -> Candidate:
    best = build_ga(params, random, on_new_best, stopped).search(problem)
    improver = default_local_search(random, params.local_search)
    improver.apply(best)
    weight = tour_weight(best.solution, problem.weight)
    if not problem.within_budget(weight):
        raise SearchFailedError(f"Best STSP tour weighs {weight} over the budget of {problem.max_weight}")
    return best
