"""Capacitated vehicle routing without a depot.

The visits are split over closed tours that share no depot.  A tour weighs
its travel weight, closing edge included, plus the cost of every visit on
it.  No tour may weigh more than ``max_weight`` and, for every quantity
constraint, the quantities of its visits may not add up to more than the
constraint's maximum.  The objective is the total weight of all tours.

Every move between tours checks both limits on the tours it changes before it
is applied, so a search that starts from a feasible solution never leaves the
feasible region.
"""

from __future__ import annotations

import logging
from abc import abstractmethod
from dataclasses import dataclass
from typing import Callable, Iterable, List, NamedTuple, Optional, Sequence, Tuple, Union

from ..config import (
    DEFAULT_CVRP_PARAMS,
    DEFAULT_LOCAL_SEARCH_PARAMS,
    DEFAULT_SOLVER_PARAMS,
    CVRPParams,
    LocalSearchParams,
    SolverParams,
)
from ..core.candidate import Candidate
from ..core.multitour import MultiTour
from ..core.objective import WeightObjective
from ..core.randomness import RandomGenerator, resolve
from ..core.tour import Tour
from ..planner.insertion import cheapest_position
from ..planner.local_search import or_opt, two_opt
from ..planner.operators import AdaptiveOperator, Concat, Operator, Perturber
from ..planner.shift import random_shift
from ..planner.strategy import NewBestHook, SearchFailedError, Strategy
from ..planner.vns import VNSStrategy
from ..weights.matrix import MatrixLike, WeightMatrix, tour_weight

logger = logging.getLogger(__name__)

WeightFunc = Callable[[int, int], float]

# absorbs rounding when a tour's weight is predicted from a move's delta
_CAPACITY_TOLERANCE = 1e-9


@dataclass(frozen=True)
class CapacityConstraint:
    """A quantity every visit uses up, limited to ``max`` per tour."""

    name: str
    max: float
    values: Tuple[float, ...]

    def __post_init__(self) -> None:
        object.__setattr__(self, "values", tuple(float(value) for value in self.values))
        if self.max < 0.0:
            raise ValueError(f"Maximum of {self.name} must be non-negative, got {self.max}")
        if any(value < 0.0 for value in self.values):
            raise ValueError(f"Quantities of {self.name} must be non-negative")


class TourContent(NamedTuple):
    weight: float
    quantities: Tuple[float, ...]


class NoDepotCVRProblem:
    """Visits, weights, visit costs and the per-tour limits."""

    def __init__(
        self,
        weights: Union[WeightMatrix, MatrixLike],
        max_weight: float,
        visit_costs: Optional[Sequence[float]] = None,
        constraints: Iterable[CapacityConstraint] = (),
        visits: Optional[Sequence[int]] = None,
    ) -> None:
        self.weights = weights if isinstance(weights, WeightMatrix) else WeightMatrix(weights)
        size = self.weights.size
        self.visits = tuple(visits) if visits is not None else tuple(range(size))
        if not self.visits:
            raise ValueError("A routing problem needs at least one visit")
        if len(set(self.visits)) != len(self.visits):
            raise ValueError("visits must not contain duplicates")
        for visit in self.visits:
            if not 0 <= visit < size:
                raise ValueError(f"Visit {visit} is outside the {size}x{size} weight matrix")
        if max_weight < 0.0:
            raise ValueError(f"max_weight must be non-negative, got {max_weight}")
        self.max_weight = float(max_weight)

        costs = [0.0] * size if visit_costs is None else [float(cost) for cost in visit_costs]
        if len(costs) != size:
            raise ValueError(f"Expected {size} visit costs, got {len(costs)}")
        if any(cost < 0.0 for cost in costs):
            raise ValueError("Visit costs must be non-negative")
        self.visit_costs = tuple(costs)

        self.constraints = tuple(constraints)
        for constraint in self.constraints:
            if len(constraint.values) != size:
                raise ValueError(f"Expected {size} quantities for {constraint.name}, got {len(constraint.values)}")
        self.weight: WeightFunc = self.weights.weight

    @property
    def size(self) -> int:
        return self.weights.size

    def visit_cost(self, visit: int) -> float:
        return self.visit_costs[visit]

    def quantities(self, visits: Iterable[int]) -> Tuple[float, ...]:
        members = list(visits)
        return tuple(sum(constraint.values[visit] for visit in members) for constraint in self.constraints)

    def content(self, tour: Tour) -> TourContent:
        weight = tour_weight(tour, self.weight) + sum(self.visit_costs[visit] for visit in tour)
        return TourContent(weight, self.quantities(tour))

    def fits(self, weight: float, quantities: Sequence[float]) -> bool:
        if weight > self.max_weight + _CAPACITY_TOLERANCE:
            return False
        return all(
            quantity <= constraint.max + _CAPACITY_TOLERANCE
            for quantity, constraint in zip(quantities, self.constraints)
        )

    def exchange_fits(
        self,
        content: TourContent,
        removed: Sequence[int],
        added: Sequence[int],
        weight_change: float,
    ) -> bool:
        """Whether a tour still fits after trading ``removed`` for ``added``.

        ``weight_change`` is the full change of the tour's weight, visit costs
        included.
        """

        quantities = tuple(
            current - out + into
            for current, out, into in zip(content.quantities, self.quantities(removed), self.quantities(added))
        )
        return self.fits(content.weight + weight_change, quantities)

    def is_feasible(self, solution: MultiTour) -> bool:
        if solution.count != len(self.visits) or any(visit not in solution for visit in self.visits):
            return False
        return all(self.fits(*self.content(tour)) for tour in solution)


class NoDepotCVRPObjective(WeightObjective):
    """Total weight of all tours, visit costs included."""

    name = "CVRP"

    def calculate(self, problem: NoDepotCVRProblem, solution: MultiTour) -> float:
        return sum(problem.content(tour).weight for tour in solution)


# ----------------------------------------------------------------------
# Moves between two tours
# ----------------------------------------------------------------------
def _removal_gain(weight: WeightFunc, before: int, visit: int, after: int) -> float:
    if before == visit:
        return 0.0
    gain = weight(before, visit) + weight(visit, after)
    if before != after:
        gain -= weight(before, after)
    return gain


def _replacement_cost(tour: Tour, weight: WeightFunc, old: int, new: int) -> float:
    if tour.count == 1:
        return 0.0
    before = tour.previous(old)
    after = tour.get_neighbour(old)
    return weight(before, new) + weight(new, after) - weight(before, old) - weight(old, after)


def relocate(
    problem: NoDepotCVRProblem,
    solution: MultiTour,
    source: int,
    target: int,
    epsilon: float = DEFAULT_CVRP_PARAMS.epsilon,
) -> Tuple[bool, float]:
    """Move the visit of tour ``source`` that gains most to its cheapest place in ``target``."""

    tour1 = solution.tour(source)
    tour2 = solution.tour(target)
    if tour1.count < 2:
        return False, 0.0
    weight = problem.weight
    content2 = problem.content(tour2)

    best_delta = -epsilon
    best_move: Optional[Tuple[int, int]] = None
    for visit in tour1:
        gain = _removal_gain(weight, tour1.previous(visit), visit, tour1.get_neighbour(visit))
        cost, after = cheapest_position(tour2, weight, visit)
        if after is None or cost - gain >= best_delta:
            continue
        if not problem.exchange_fits(content2, (), (visit,), cost + problem.visit_cost(visit)):
            continue
        best_delta = cost - gain
        best_move = (visit, after)

    if best_move is None:
        return False, 0.0
    visit, after = best_move
    solution.remove(visit)
    solution.insert_after(target, after, visit)
    return True, best_delta


def exchange(
    problem: NoDepotCVRProblem,
    solution: MultiTour,
    index1: int,
    index2: int,
    epsilon: float = DEFAULT_CVRP_PARAMS.epsilon,
) -> Tuple[bool, float]:
    """Swap the pair of visits, one from each tour, that gains most."""

    tour1 = solution.tour(index1)
    tour2 = solution.tour(index2)
    weight = problem.weight
    content1 = problem.content(tour1)
    content2 = problem.content(tour2)

    best_delta = -epsilon
    best_pair: Optional[Tuple[int, int]] = None
    for visit1 in tour1:
        for visit2 in tour2:
            change1 = _replacement_cost(tour1, weight, visit1, visit2)
            change2 = _replacement_cost(tour2, weight, visit2, visit1)
            if change1 + change2 >= best_delta:
                continue
            costs = problem.visit_cost(visit2) - problem.visit_cost(visit1)
            if not problem.exchange_fits(content1, (visit1,), (visit2,), change1 + costs):
                continue
            if not problem.exchange_fits(content2, (visit2,), (visit1,), change2 - costs):
                continue
            best_delta = change1 + change2
            best_pair = (visit1, visit2)

    if best_pair is None:
        return False, 0.0
    solution.swap(*best_pair)
    return True, best_delta


class _Segment(NamedTuple):
    start: int
    visits: Tuple[int, ...]
    before: int
    after: int
    cost: float
    visit_cost: float
    orientations: Tuple[Tuple[Tuple[int, ...], float], ...]


def _path_weight(weight: WeightFunc, visits: Sequence[int]) -> float:
    return sum(weight(visits[index], visits[index + 1]) for index in range(len(visits) - 1))


def _segments(
    problem: NoDepotCVRProblem,
    visits: List[int],
    max_window: int,
    try_reversed: bool,
) -> List[_Segment]:
    """Every run of up to ``max_window`` consecutive visits that leaves one behind."""

    weight = problem.weight
    count = len(visits)
    segments = []
    for start in range(count):
        for length in range(1, min(max_window, count - 1) + 1):
            run = tuple(visits[(start + offset) % count] for offset in range(length))
            before = visits[start - 1]
            after = visits[(start + length) % count]
            path = _path_weight(weight, run)
            orientations = [(run, path)]
            if try_reversed and length > 1:
                backwards = run[::-1]
                orientations.append((backwards, _path_weight(weight, backwards)))
            segments.append(
                _Segment(
                    start=start,
                    visits=run,
                    before=before,
                    after=after,
                    cost=weight(before, run[0]) + path + weight(run[-1], after),
                    visit_cost=sum(problem.visit_cost(visit) for visit in run),
                    orientations=tuple(orientations),
                )
            )
    return segments


def _remainder(visits: List[int], segment: _Segment) -> List[int]:
    count = len(visits)
    length = len(segment.visits)
    return [visits[(segment.start + length + offset) % count] for offset in range(count - length)]


def cross_exchange(
    problem: NoDepotCVRProblem,
    solution: MultiTour,
    index1: int,
    index2: int,
    max_window: int = DEFAULT_CVRP_PARAMS.cross_exchange_window,
    try_reversed: bool = DEFAULT_CVRP_PARAMS.cross_exchange_reversed,
    epsilon: float = DEFAULT_CVRP_PARAMS.epsilon,
) -> Tuple[bool, float]:
    """Swap a run of visits of one tour with a run of the other, either run possibly reversed."""

    visits1 = solution.tour(index1).to_list()
    visits2 = solution.tour(index2).to_list()
    if len(visits1) < 2 or len(visits2) < 2:
        return False, 0.0
    weight = problem.weight
    content1 = problem.content(solution.tour(index1))
    content2 = problem.content(solution.tour(index2))
    segments1 = _segments(problem, visits1, max_window, try_reversed)
    segments2 = _segments(problem, visits2, max_window, try_reversed)

    best_delta = -epsilon
    best_move = None
    for segment1 in segments1:
        for segment2 in segments2:
            for run2, path2 in segment2.orientations:
                into1 = weight(segment1.before, run2[0]) + path2 + weight(run2[-1], segment1.after)
                for run1, path1 in segment1.orientations:
                    into2 = weight(segment2.before, run1[0]) + path1 + weight(run1[-1], segment2.after)
                    delta = into1 - segment1.cost + into2 - segment2.cost
                    if delta >= best_delta:
                        continue
                    change1 = into1 - segment1.cost + segment2.visit_cost - segment1.visit_cost
                    change2 = into2 - segment2.cost + segment1.visit_cost - segment2.visit_cost
                    if not problem.exchange_fits(content1, segment1.visits, segment2.visits, change1):
                        continue
                    if not problem.exchange_fits(content2, segment2.visits, segment1.visits, change2):
                        continue
                    best_delta = delta
                    best_move = (segment1, run1, segment2, run2)

    if best_move is None:
        return False, 0.0
    segment1, run1, segment2, run2 = best_move
    solution.set_tours(
        {
            index1: Tour.closed(_remainder(visits1, segment1) + list(run2)),
            index2: Tour.closed(_remainder(visits2, segment2) + list(run1)),
        }
    )
    logger.debug(f"[CROSS] tours {index1}<->{index2}: {list(segment1.visits)} for {list(segment2.visits)}")
    return True, best_delta


class InterTourOperator(Operator):
    """Tries a move on every pair of tours and stops at the first that improves."""

    symmetric = False

    @abstractmethod
    def apply_to_pair(
        self, problem: NoDepotCVRProblem, solution: MultiTour, index1: int, index2: int
    ) -> Tuple[bool, float]:
        ...

    def apply(self, candidate: Candidate) -> bool:
        solution = candidate.solution
        for index1 in range(len(solution)):
            for index2 in range(len(solution)):
                if index1 == index2 or (self.symmetric and index2 < index1):
                    continue
                improved, delta = self.apply_to_pair(candidate.problem, solution, index1, index2)
                if improved:
                    candidate.apply_delta(delta)
                    logger.debug(f"[CVRP] {self.name} improved tours {index1}<->{index2} by {-delta:.3f}")
                    return True
        return False


class RelocateOperator(InterTourOperator):
    name = "relocate"

    def __init__(self, params: CVRPParams = DEFAULT_CVRP_PARAMS) -> None:
        self.params = params

    def apply_to_pair(self, problem, solution, index1, index2):
        return relocate(problem, solution, index1, index2, self.params.epsilon)


class ExchangeOperator(InterTourOperator):
    name = "exchange"
    symmetric = True

    def __init__(self, params: CVRPParams = DEFAULT_CVRP_PARAMS) -> None:
        self.params = params

    def apply_to_pair(self, problem, solution, index1, index2):
        return exchange(problem, solution, index1, index2, self.params.epsilon)


class CrossExchangeOperator(InterTourOperator):
    name = "cross_exchange"
    symmetric = True

    def __init__(self, params: CVRPParams = DEFAULT_CVRP_PARAMS) -> None:
        self.params = params

    def apply_to_pair(self, problem, solution, index1, index2):
        return cross_exchange(
            problem,
            solution,
            index1,
            index2,
            self.params.cross_exchange_window,
            self.params.cross_exchange_reversed,
            self.params.epsilon,
        )


class IntraTourOperator(Operator):
    """Runs a single-tour improvement once on every tour.

    Reordering a tour leaves its visits, and so its quantities, unchanged and
    only ever lowers its weight, so capacity needs no check here.
    """

    def __init__(self, improve: Callable[[Tour, WeightFunc], Tuple[bool, float]], name: str) -> None:
        self._improve = improve
        self.name = name

    def apply(self, candidate: Candidate) -> bool:
        improved = False
        delta = 0.0
        for tour in candidate.solution:
            tour_improved, tour_delta = self._improve(tour, candidate.problem.weight)
            improved = improved or tour_improved
            delta += tour_delta
        if improved:
            candidate.apply_delta(delta)
        return improved


class RandomRelocatePerturber(Perturber):
    """Moves ``level`` random visits to random places in other tours that can take them."""

    name = "random_relocate"

    def __init__(self, random: Optional[RandomGenerator] = None) -> None:
        self._random = resolve(random)

    def apply(self, candidate: Candidate, level: int) -> bool:
        problem = candidate.problem
        solution = candidate.solution
        if len(solution) == 1:
            improved, delta = random_shift(solution.tour(0), problem.weight, level, self._random)
            candidate.apply_delta(delta)
            return improved

        delta = 0.0
        for _ in range(max(1, level)):
            movable = [visit for tour in solution if tour.count > 1 for visit in tour]
            if not movable:
                break
            visit = self._random.choice(movable)
            source = solution.tour_of(visit)
            move = self._draw_position(problem, solution, visit, source)
            if move is None:
                continue
            target, after, cost = move
            tour1 = solution.tour(source)
            gain = _removal_gain(problem.weight, tour1.previous(visit), visit, tour1.get_neighbour(visit))
            solution.remove(visit)
            solution.insert_after(target, after, visit)
            delta += cost - gain
        candidate.apply_delta(delta)
        return delta < 0.0

    def _draw_position(
        self, problem: NoDepotCVRProblem, solution: MultiTour, visit: int, source: int
    ) -> Optional[Tuple[int, int, float]]:
        targets = [index for index in range(len(solution)) if index != source]
        self._random.shuffle(targets)
        weight = problem.weight
        for target in targets:
            tour = solution.tour(target)
            after = self._random.choice(tour.to_list())
            successor = tour.get_neighbour(after)
            cost = weight(after, visit) + weight(visit, successor)
            if successor != after:
                cost -= weight(after, successor)
            if problem.exchange_fits(problem.content(tour), (), (visit,), cost + problem.visit_cost(visit)):
                return target, after, cost
        return None


# ----------------------------------------------------------------------
# Construction
# ----------------------------------------------------------------------
class SeededCheapestInsertion(Strategy):
    """Builds tours one at a time from a random seed visit.

    Each tour takes the cheapest remaining visit that still fits until none
    does, with 2-opt every ``improvement_interval`` placements.  A full tour is
    improved against every earlier tour with relocate and exchange moves.
    Once only ``remaining_threshold`` of the visits are left, they are first
    tried in any existing tour before another tour is seeded.
    """

    name = "seeded_cheapest_insertion"

    def __init__(
        self,
        random: Optional[RandomGenerator] = None,
        params: CVRPParams = DEFAULT_CVRP_PARAMS,
        local_search: LocalSearchParams = DEFAULT_LOCAL_SEARCH_PARAMS,
    ) -> None:
        super().__init__()
        self._random = resolve(random)
        self.params = params
        self._local_search = local_search

    def search(self, problem: NoDepotCVRProblem) -> Candidate:
        solution = MultiTour()
        unplaced = list(problem.visits)
        self._random.shuffle(unplaced)
        interval = max(1, int(len(problem.visits) * self.params.improvement_interval))
        remaining = int(len(problem.visits) * self.params.remaining_threshold)

        while unplaced:
            if len(solution) and len(unplaced) <= remaining:
                self._place_anywhere(problem, solution, unplaced)
                if not unplaced:
                    break
            seed = unplaced.pop()
            seed_tour = Tour.closed([seed])
            if not problem.fits(*problem.content(seed_tour)):
                raise SearchFailedError(f"Visit {seed} does not fit within the capacity of a tour of its own")
            index = solution.add(seed_tour)
            placed = 0
            while self._place_cheapest(problem, solution, index, unplaced):
                placed += 1
                if placed % interval == 0:
                    two_opt(solution.tour(index), problem.weight, self._local_search.two_opt_epsilon)
            self._improve(problem, solution, index)

        candidate = Candidate.build(problem, NoDepotCVRPObjective(), solution)
        logger.info(f"[CVRP] seeded {len(solution)} tours over {solution.count} visits, weight {candidate.fitness:.2f}")
        return candidate

    def _place_cheapest(
        self, problem: NoDepotCVRProblem, solution: MultiTour, index: int, unplaced: List[int]
    ) -> bool:
        tour = solution.tour(index)
        content = problem.content(tour)
        best: Optional[Tuple[float, int, int]] = None
        for visit in unplaced:
            cost, after = cheapest_position(tour, problem.weight, visit)
            if after is None or (best is not None and cost >= best[0]):
                continue
            if not problem.exchange_fits(content, (), (visit,), cost + problem.visit_cost(visit)):
                continue
            best = (cost, visit, after)
        if best is None:
            return False
        _, visit, after = best
        solution.insert_after(index, after, visit)
        unplaced.remove(visit)
        return True

    def _place_anywhere(self, problem: NoDepotCVRProblem, solution: MultiTour, unplaced: List[int]) -> None:
        for visit in list(unplaced):
            best: Optional[Tuple[float, int, int]] = None
            for index, tour in enumerate(solution):
                cost, after = cheapest_position(tour, problem.weight, visit)
                if after is None or (best is not None and cost >= best[0]):
                    continue
                if problem.exchange_fits(problem.content(tour), (), (visit,), cost + problem.visit_cost(visit)):
                    best = (cost, index, after)
            if best is not None:
                _, index, after = best
                solution.insert_after(index, after, visit)
                unplaced.remove(visit)

    def _improve(self, problem: NoDepotCVRProblem, solution: MultiTour, index: int) -> None:
        epsilon = self.params.epsilon
        while two_opt(solution.tour(index), problem.weight, self._local_search.two_opt_epsilon)[0]:
            pass
        for other in range(index):
            improved = False
            while relocate(problem, solution, other, index, epsilon)[0]:
                improved = True
            while relocate(problem, solution, index, other, epsilon)[0]:
                improved = True
            while exchange(problem, solution, other, index, epsilon)[0]:
                improved = True
            if improved:
                logger.debug(f"[CVRP] inter-tour improvement between tours {other} and {index}")


# ----------------------------------------------------------------------
# Pipelines
# ----------------------------------------------------------------------
def default_local_search(
    params: SolverParams = DEFAULT_SOLVER_PARAMS,
    random: Optional[RandomGenerator] = None,
) -> Operator:
    """2-opt and Or-opt inside tours, then an adaptive choice of inter-tour moves."""

    local = params.local_search
    inter_tour = AdaptiveOperator(
        [RelocateOperator(params.cvrp), ExchangeOperator(params.cvrp), CrossExchangeOperator(params.cvrp)],
        params.adaptive,
        random,
    )
    return Concat(
        [
            IntraTourOperator(lambda tour, weight: two_opt(tour, weight, local.two_opt_epsilon), "2opt"),
            IntraTourOperator(
                lambda tour, weight: or_opt(tour, weight, local.or_opt_max_window, local.or_opt_epsilon), "oropt"
            ),
            inter_tour,
        ],
        until_stable=True,
    )


def build_vns(
    problem: NoDepotCVRProblem,
    params: SolverParams = DEFAULT_SOLVER_PARAMS,
    random: Optional[RandomGenerator] = None,
    on_new_best: Optional[NewBestHook] = None,
    stopped: Optional[Callable[[], bool]] = None,
) -> VNSStrategy:
    random = resolve(random)
    return VNSStrategy(
        generator=SeededCheapestInsertion(random, params.cvrp, params.local_search),
        perturber=RandomRelocatePerturber(random),
        local_search=default_local_search(params, random),
        params=params.vns,
        stopped=stopped,
        on_new_best=on_new_best,
    )


def solve(
    problem: NoDepotCVRProblem,
    params: SolverParams = DEFAULT_SOLVER_PARAMS,
    random: Optional[RandomGenerator] = None,
    on_new_best: Optional[NewBestHook] = None,
    stopped: Optional[Callable[[], bool]] = None,
) -> Candidate:
    best = build_vns(problem, params, random, on_new_best, stopped).search(problem)
    if not problem.is_feasible(best.solution):
        raise SearchFailedError(f"Best solution breaks a tour limit: {best.solution}")
    logger.info(f"[CVRP] best solution uses {len(best.solution)} tours, weight {best.fitness:.2f}")
    return best
