"""Directed TSP: every stop is passed in a direction and turns cost extra.

The weight matrix has two rows and two columns per visit (forward and
backward), and four turn penalties price arriving and departing in each
direction combination.  Tours hold encoded directed ids; ``weight(a, b)``
prices travel between two such ids so the generic edge-exchange operators
work on directed tours unchanged.
"""

from __future__ import annotations

import logging
from typing import Callable, List, Optional, Sequence, Union

from ..config import DEFAULT_SOLVER_PARAMS, SolverParams
from ..core.candidate import Candidate
from ..core.directed import Turn, arrival_weight_id, departure_weight_id, directed_weight, encode, visit_of
from ..core.objective import WeightObjective
from ..core.randomness import RandomGenerator, RandomPool, resolve
from ..core.tour import Tour
from ..planner.directed_search import (
    DirectedCheapestReinsertionOperator,
    DirectionLocalSearchOperator,
    TurnOptimizationOperator,
    apply_directed_insertion,
    cheapest_insertion_directed,
    optimize_turns,
)
from ..planner.local_search import TwoOptOperator
from ..planner.operators import Concat, Operator
from ..planner.shift import RandomShiftPerturber
from ..planner.strategy import NewBestHook, SearchFailedError, Strategy
from ..planner.vns import VNSStrategy
from ..weights.matrix import MatrixLike, WeightMatrix

logger = logging.getLogger(__name__)


class TSPDProblem:
    def __init__(
        self,
        weights: Union[WeightMatrix, MatrixLike],
        turn_penalties: Sequence[float],
        first: int = 0,
        last: Optional[int] = None,
    ) -> None:
        self.matrix = weights if isinstance(weights, WeightMatrix) else WeightMatrix(weights)
        if self.matrix.size % 2:
            raise ValueError(f"A directed weight matrix needs two rows per visit, got {self.matrix.size}")
        if len(turn_penalties) != 4:
            raise ValueError(f"Expected four turn penalties, got {len(turn_penalties)}")
        if any(penalty < 0 for penalty in turn_penalties):
            raise ValueError("Turn penalties must be non-negative")
        self.size = self.matrix.size // 2
        for name, visit in (("first", first), ("last", last)):
            if visit is not None and not 0 <= visit < self.size:
                raise ValueError(f"{name} visit {visit} is outside the problem")
        self.turn_penalties = tuple(float(penalty) for penalty in turn_penalties)
        self.first = first
        self.last = last
        self.visits = tuple(range(self.size))
        self.weights: Callable[[int, int], float] = self.matrix.weight

    @property
    def is_closed(self) -> bool:
        return self.last is not None and self.last == self.first

    @property
    def inner_visits(self) -> List[int]:
        return [visit for visit in self.visits if visit != self.first and visit != self.last]

    def turn_penalty(self, turn: Turn) -> float:
        return self.turn_penalties[int(turn)]

    def weight(self, from_id: int, to_id: int) -> float:
        """Travel between two directed ids."""

        return self.weights(departure_weight_id(from_id), arrival_weight_id(to_id))

    def anchor_tour(self) -> Tour:
        """Tour with only the anchors, both passed forward."""

        first = encode(self.first, Turn.FORWARD_FORWARD)
        if self.last is None:
            return Tour([first])
        if self.last == self.first:
            return Tour([first], last=first)
        last = encode(self.last, Turn.FORWARD_FORWARD)
        return Tour([first, last], last=last)

    def build_tour(self, inner: Sequence[int]) -> Tour:
        """Tour through ``inner`` (visit ids) with every stop passed forward."""

        sequence = [encode(self.first, Turn.FORWARD_FORWARD)]
        sequence.extend(encode(visit, Turn.FORWARD_FORWARD) for visit in inner)
        if self.last is not None and self.last != self.first:
            sequence.append(encode(self.last, Turn.FORWARD_FORWARD))
        last = None
        if self.last is not None:
            last = sequence[0] if self.last == self.first else sequence[-1]
        return Tour(sequence, last=last)

    def visit_order(self, tour: Tour) -> List[int]:
        return [visit_of(directed_id) for directed_id in tour]


class DirectedTSPObjective(WeightObjective):
    """Travel weight plus the turn penalty of every stop."""

    name = "TSPD"

    def calculate(self, problem: TSPDProblem, solution: Tour) -> float:
        return directed_weight(solution, problem.weights, problem.turn_penalty)


class RandomDirectedGenerator(Strategy):
    """Random visit order with the cheapest turns for that order."""

    name = "random_directed"

    def __init__(self, random: Optional[RandomGenerator] = None) -> None:
        super().__init__()
        self._random = resolve(random)
        self._objective = DirectedTSPObjective()

    def search(self, problem: TSPDProblem) -> Candidate:
        inner = problem.inner_visits
        self._random.shuffle(inner)
        tour = problem.build_tour(inner)
        optimize_turns(tour, problem.weights, problem.turn_penalty)
        return Candidate.build(problem, self._objective, tour)


class DirectedInsertionGenerator(Strategy):
    """Random-order cheapest insertion choosing turns as it goes."""

    name = "directed_insertion"

    def __init__(self, random: Optional[RandomGenerator] = None) -> None:
        super().__init__()
        self._random = resolve(random)
        self._objective = DirectedTSPObjective()

    def search(self, problem: TSPDProblem) -> Candidate:
        tour = problem.anchor_tour()
        inner = problem.inner_visits
        for index in RandomPool(len(inner), self._random):
            insertion = cheapest_insertion_directed(tour, problem.weights, problem.turn_penalty, inner[index])
            if insertion is None:
                raise SearchFailedError(f"No position to insert visit {inner[index]}")
            apply_directed_insertion(tour, insertion)
        return Candidate.build(problem, self._objective, tour)


def default_local_search(
    params: SolverParams = DEFAULT_SOLVER_PARAMS,
    random: Optional[RandomGenerator] = None,
) -> Operator:
    return Concat(
        [
            TwoOptOperator(params.local_search),
            DirectionLocalSearchOperator(random, params.local_search),
            DirectedCheapestReinsertionOperator(params.insertion, random, params.local_search),
            TurnOptimizationOperator(params.local_search),
        ],
        until_stable=True,
    )


def build_vns(
    params: SolverParams = DEFAULT_SOLVER_PARAMS,
    random: Optional[RandomGenerator] = None,
    on_new_best: Optional[NewBestHook] = None,
    stopped: Optional[Callable[[], bool]] = None,
) -> VNSStrategy:
    random = resolve(random)
    return VNSStrategy(
        generator=DirectedInsertionGenerator(random),
        perturber=RandomShiftPerturber(random, params.local_search),
        local_search=default_local_search(params, random),
        params=params.vns,
        stopped=stopped,
        on_new_best=on_new_best,
    )


def solve(
    problem: TSPDProblem,
    params: SolverParams = DEFAULT_SOLVER_PARAMS,
    random: Optional[RandomGenerator] = None,
    on_new_best: Optional[NewBestHook] = None,
    stopped: Optional[Callable[[], bool]] = None,
) -> Candidate:
    best = build_vns(params, random, on_new_best, stopped).search(problem)
    logger.debug(f"[TSPD] visit order {problem.visit_order(best.solution)}")
    return best
