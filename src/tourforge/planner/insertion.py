"""Cheapest insertion: construction and remove-and-reinsert improvement.

``cheapest_position`` scans every edge of a tour (plus the free end of an
open tour) for the cheapest place to put a visit.  The reinsertion operator
removes a random subset of visits, drawn without repetition from a
:class:`~tourforge.core.randomness.RandomPool`, puts each back at its cheapest
position and keeps the result only when the candidate got strictly better.
"""

from __future__ import annotations

import logging
import math
from typing import Any, Callable, Iterable, List, Optional, Tuple

from ..config import DEFAULT_INSERTION_PARAMS, DEFAULT_LOCAL_SEARCH_PARAMS, InsertionParams, LocalSearchParams
from ..core.objective import Objective
from ..core.randomness import RandomGenerator, RandomPool, resolve
from ..core.tour import Tour
from .operators import TourOperator
from .shift import movable_visits

logger = logging.getLogger(__name__)

WeightFunc = Callable[[int, int], float]


def cheapest_position(tour: Tour, weight: WeightFunc, visit: int) -> Tuple[float, Optional[int]]:
    """Return ``(cost increase, visit to insert after)`` for the cheapest position.

    ``(inf, None)`` when the tour offers no position at all.
    """

    best_cost = math.inf
    best_after: Optional[int] = None
    if tour.is_closed and tour.count == 1:
        return weight(tour.first, visit) + weight(visit, tour.first), tour.first
    for from_visit, to_visit in tour.pairs():
        cost = weight(from_visit, visit) + weight(visit, to_visit) - weight(from_visit, to_visit)
        if cost < best_cost:
            best_cost = cost
            best_after = from_visit
    if tour.last is None:
        cost = weight(tour.tail, visit)
        if cost < best_cost:
            best_cost = cost
            best_after = tour.tail
    return best_cost, best_after


def insert_cheapest(tour: Tour, weight: WeightFunc, visit: int) -> float:
    """Insert ``visit`` at its cheapest position and return the added weight."""

    cost, after = cheapest_position(tour, weight, visit)
    if after is None:
        raise ValueError(f"No insertion position for visit {visit} in {tour}")
    tour.insert_after(after, visit)
    return cost


def build_cheapest_insertion(
    first: int,
    last: Optional[int],
    visits: Iterable[int],
    weight: WeightFunc,
    random: Optional[RandomGenerator] = None,
) -> Tour:
    """Seeded cheapest insertion over ``visits`` in random order."""

    if last is not None and last != first:
        tour = Tour([first, last], last=last)
    else:
        tour = Tour([first], last=last)
    remaining = [visit for visit in visits if visit != first and visit != last]
    resolve(random).shuffle(remaining)
    for visit in remaining:
        insert_cheapest(tour, weight, visit)
    return tour


def cheapest_reinsertion(
    tour: Tour,
    weight: WeightFunc,
    count: int,
    random: Optional[RandomGenerator] = None,
) -> float:
    """Remove ``count`` random movable visits and reinsert each cheaply.

    Always performs the move and returns its exact weight change.
    """

    movable = movable_visits(tour)
    count = min(count, len(movable))
    pool = RandomPool(len(movable), random)
    removed: List[int] = []
    delta = 0.0
    for _ in range(count):
        visit = movable[pool.next()]
        before, after = tour.remove(visit)
        delta -= weight(before, visit)
        if after is not None:
            delta -= weight(visit, after)
            delta += weight(before, after)
        removed.append(visit)
    for visit in removed:
        delta += insert_cheapest(tour, weight, visit)
    return delta


class CheapestReinsertionOperator(TourOperator):
    """Remove-and-reinsert, accepted only on strict improvement."""

    name = "reinsertion"

    def __init__(
        self,
        params: InsertionParams = DEFAULT_INSERTION_PARAMS,
        random: Optional[RandomGenerator] = None,
        local_search: LocalSearchParams = DEFAULT_LOCAL_SEARCH_PARAMS,
    ) -> None:
        self.params = params
        self._random = resolve(random)
        self.epsilon = local_search.insertion_epsilon

    def removal_count(self, tour: Tour) -> int:
        movable = len(movable_visits(tour))
        return min(movable, max(self.params.min_removed, int(movable * self.params.fraction)))

    def apply_to_tour(self, problem: Any, objective: Objective, tour: Tour) -> Tuple[bool, Any]:
        count = self.removal_count(tour)
        if count == 0:
            return False, 0.0

        backup = tour.clone()
        if objective.is_non_continuous:
            before = objective.calculate(problem, tour)
            cheapest_reinsertion(tour, problem.weight, count, self._random)
            after = objective.calculate(problem, tour)
            if objective.is_better(after, before):
                return True, objective.subtract(after, before)
            tour.restore(backup)
            return False, 0.0

        delta = cheapest_reinsertion(tour, problem.weight, count, self._random)
        if delta < -self.epsilon:
            logger.debug(f"[INSERT] reinserted {count} visits, delta {delta:.4f}")
            return True, delta
        tour.restore(backup)
        return False, 0.0
