"""Travelling salesman problem: model, objective, generators and solver pipelines.

A problem has a first visit and an optional last visit.  ``last == first``
asks for a closed tour, a different ``last`` for an open path ending there and
``last=None`` for an open path ending anywhere.  Operators that only work on
cycles (3-opt) run on the closed equivalent of an open problem, whose tours
map one to one onto tours of the original.
"""

from __future__ import annotations

import itertools
import logging
from typing import Callable, List, Optional, Sequence, Union

import numpy as np

from ..config import DEFAULT_SOLVER_PARAMS, SolverParams
from ..core.candidate import Candidate
from ..core.objective import WeightObjective
from ..core.randomness import RandomGenerator, resolve
from ..core.tour import Tour
from ..planner.crossover import EdgeAssemblyCrossover, OrderCrossover
from ..planner.ga import GAStrategy, TournamentSelector
from ..planner.insertion import CheapestReinsertionOperator, build_cheapest_insertion
from ..planner.local_search import OrOptOperator, ThreeOptOperator, TwoOptOperator
from ..planner.operators import AdaptiveOperator, Concat, CrossOverOperator, Operator
from ..planner.shift import RandomShiftPerturber
from ..planner.strategy import NewBestHook, Strategy
from ..planner.vns import VNSStrategy
from ..weights.matrix import MatrixLike, WeightMatrix, tour_weight
from ..weights.nearest import NearestNeighbourCache

logger = logging.getLogger(__name__)


class TSProblem:
    """Dense-matrix TSP over ``visits`` (all matrix rows by default)."""

    def __init__(
        self,
        weights: Union[WeightMatrix, MatrixLike],
        first: int = 0,
        last: Optional[int] = None,
        visits: Optional[Sequence[int]] = None,
    ) -> None:
        self.weights = weights if isinstance(weights, WeightMatrix) else WeightMatrix(weights)
        size = self.weights.size
        self.visits = tuple(visits) if visits is not None else tuple(range(size))
        if len(set(self.visits)) != len(self.visits):
            raise ValueError("visits must not contain duplicates")
        for visit in self.visits:
            if not 0 <= visit < size:
                raise ValueError(f"Visit {visit} is outside the {size}x{size} weight matrix")
        if first not in self.visits:
            raise ValueError(f"First visit {first} is not one of the visits")
        if last is not None and last not in self.visits:
            raise ValueError(f"Last visit {last} is not one of the visits")
        self.first = first
        self.last = last
        self.weight: Callable[[int, int], float] = self.weights.weight
        self.nearest_neighbours = NearestNeighbourCache(self.weights, size)

    @property
    def size(self) -> int:
        return self.weights.size

    @property
    def is_closed(self) -> bool:
        return self.last is not None and self.last == self.first

    @property
    def inner_visits(self) -> List[int]:
        """Visits other than the anchors."""

        return [visit for visit in self.visits if visit != self.first and visit != self.last]

    def build_tour(self, inner: Sequence[int]) -> Tour:
        sequence = [self.first] + list(inner)
        if self.last is not None and self.last != self.first:
            sequence.append(self.last)
        return Tour(sequence, last=self.last)

    def closed_equivalent(self) -> "TSProblem":
        """Closed problem whose tours map onto tours of this one at equal weight.

        Without a last visit the return edge to ``first`` costs nothing.  With a
        fixed last visit, that visit is dropped and returning to ``first``
        costs what travelling to the last visit would.
        """

        if self.is_closed:
            return self
        array = np.array(self.weights.array)
        if self.last is None:
            array[:, self.first] = 0.0
            return TSProblem(array, self.first, self.first, self.visits)
        array[:, self.first] = array[:, self.last]
        visits = [visit for visit in self.visits if visit != self.last]
        return TSProblem(array, self.first, self.first, visits)

    def from_closed_equivalent(self, tour: Tour) -> Tour:
        """Map a tour of :meth:`closed_equivalent` back onto this problem."""

        if self.is_closed:
            return tour.clone()
        sequence = tour.to_list()
        if self.last is not None:
            sequence.append(self.last)
        return Tour(sequence, last=self.last)


class TSPObjective(WeightObjective):
    """Total tour weight."""

    name = "TSP"

    def calculate(self, problem: TSProblem, solution: Tour) -> float:
        return tour_weight(solution, problem.weight)


class RandomTourGenerator(Strategy):
    """Tour through every visit in random order."""

    name = "random"

    def __init__(self, objective: Optional[WeightObjective] = None, random: Optional[RandomGenerator] = None) -> None:
        super().__init__()
        self._objective = objective if objective is not None else TSPObjective()
        self._random = resolve(random)

    def search(self, problem: TSProblem) -> Candidate:
        inner = problem.inner_visits
        self._random.shuffle(inner)
        return Candidate.build(problem, self._objective, problem.build_tour(inner))


class CheapestInsertionGenerator(Strategy):
    """Seeded cheapest insertion in random visit order."""

    name = "cheapest_insertion"

    def __init__(self, objective: Optional[WeightObjective] = None, random: Optional[RandomGenerator] = None) -> None:
        super().__init__()
        self._objective = objective if objective is not None else TSPObjective()
        self._random = resolve(random)

    def search(self, problem: TSProblem) -> Candidate:
        tour = build_cheapest_insertion(problem.first, problem.last, problem.visits, problem.weight, self._random)
        return Candidate.build(problem, self._objective, tour)


class BruteForceSolver(Strategy):
    """Exhaustive search over all orders; only for very small problems."""

    name = "brute_force"

    def __init__(self, objective: Optional[WeightObjective] = None, max_visits: int = 9) -> None:
        super().__init__()
        self._objective = objective if objective is not None else TSPObjective()
        self.max_visits = max_visits

    def search(self, problem: TSProblem) -> Candidate:
        inner = problem.inner_visits
        if len(inner) > self.max_visits:
            raise ValueError(f"Brute force is limited to {self.max_visits} free visits, got {len(inner)}")
        orders = itertools.permutations(inner)
        best = Candidate.build(problem, self._objective, problem.build_tour(next(orders)))
        for order in orders:
            candidate = Candidate.build(problem, self._objective, problem.build_tour(order))
            if candidate.better_than(best):
                best = candidate
        return best


def local_search_operators(
    problem: TSProblem,
    params: SolverParams = DEFAULT_SOLVER_PARAMS,
    random: Optional[RandomGenerator] = None,
) -> List[Operator]:
    """2-opt, Or-opt, remove-and-reinsert and, on closed problems, 3-opt."""

    operators: List[Operator] = [
        TwoOptOperator(params.local_search),
        OrOptOperator(params.local_search),
        CheapestReinsertionOperator(params.insertion, random, params.local_search),
    ]
    if problem.is_closed:
        operators.append(ThreeOptOperator(params.local_search, params.nearest_neighbours))
    return operators


def default_local_search(
    problem: TSProblem,
    params: SolverParams = DEFAULT_SOLVER_PARAMS,
    random: Optional[RandomGenerator] = None,
) -> Operator:
    return Concat(local_search_operators(problem, params, random), until_stable=True)


def build_vns(
    problem: TSProblem,
    params: SolverParams = DEFAULT_SOLVER_PARAMS,
    random: Optional[RandomGenerator] = None,
    on_new_best: Optional[NewBestHook] = None,
    stopped: Optional[Callable[[], bool]] = None,
) -> VNSStrategy:
    random = resolve(random)
    return VNSStrategy(
        generator=RandomTourGenerator(random=random),
        perturber=RandomShiftPerturber(random, params.local_search),
        local_search=default_local_search(problem, params, random),
        params=params.vns,
        stopped=stopped,
        on_new_best=on_new_best,
    )


def build_adaptive_vns(
    problem: TSProblem,
    params: SolverParams = DEFAULT_SOLVER_PARAMS,
    random: Optional[RandomGenerator] = None,
    on_new_best: Optional[NewBestHook] = None,
    stopped: Optional[Callable[[], bool]] = None,
) -> VNSStrategy:
    """VNS whose local search draws its operators from an adaptive roulette wheel."""

    random = resolve(random)
    return VNSStrategy(
        generator=RandomTourGenerator(random=random),
        perturber=RandomShiftPerturber(random, params.local_search),
        local_search=AdaptiveOperator(local_search_operators(problem, params, random), params.adaptive, random),
        params=params.vns,
        stopped=stopped,
        on_new_best=on_new_best,
    )


def _crossover(problem: TSProblem, params: SolverParams, random: RandomGenerator) -> CrossOverOperator:
    # EAX needs closed tours
    if params.ga.crossover_operator == "eax" and problem.is_closed:
        return EdgeAssemblyCrossover(random, params.ga.eax_max_offspring)
    return OrderCrossover(random)


def build_ga(
    problem: TSProblem,
    params: SolverParams = DEFAULT_SOLVER_PARAMS,
    random: Optional[RandomGenerator] = None,
    on_new_best: Optional[NewBestHook] = None,
    stopped: Optional[Callable[[], bool]] = None,
) -> GAStrategy:
    random = resolve(random)
    return GAStrategy(
        generator=CheapestInsertionGenerator(random=random),
        crossover=_crossover(problem, params, random),
        mutation=default_local_search(problem, params, random),
        selector=TournamentSelector(params.tournament, random),
        params=params.ga,
        random=random,
        stopped=stopped,
        on_new_best=on_new_best,
    )


def solve(
    problem: TSProblem,
    method: str = "vns",
    params: SolverParams = DEFAULT_SOLVER_PARAMS,
    random: Optional[RandomGenerator] = None,
    on_new_best: Optional[NewBestHook] = None,
    stopped: Optional[Callable[[], bool]] = None,
) -> Candidate:
    """Solve ``problem`` with the default VNS, adaptive VNS or GA pipeline.

    Open problems are solved through their closed equivalent so that 3-opt
    takes part; the result is mapped back onto ``problem``.
    """

    builders = {"vns": build_vns, "adaptive_vns": build_adaptive_vns, "ga": build_ga}
    if method not in builders:
        raise ValueError(f"Unknown method {method!r}, expected one of {sorted(builders)}")

    working = problem.closed_equivalent()
    strategy = builders[method](working, params, random, on_new_best, stopped)
    best = strategy.search(working)
    if working is problem:
        return best
    tour = problem.from_closed_equivalent(best.solution)
    logger.debug(f"[TSP] mapped closed-equivalent tour back: {tour}")
    return Candidate.build(problem, TSPObjective(), tour)
