"""Single-visit relocation: the random 1-shift perturber and 1-shift local search.

Moving a visit touches at most six edges, so the weight change of a shift is
computed from those edges alone (:func:`shift_delta`) and never by
re-measuring the tour.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, List, Optional, Tuple

from ..config import DEFAULT_LOCAL_SEARCH_PARAMS, LocalSearchParams
from ..core.objective import Objective
from ..core.randomness import RandomGenerator, resolve
from ..core.tour import Tour
from .operators import TourOperator, TourPerturber

logger = logging.getLogger(__name__)

WeightFunc = Callable[[int, int], float]


def shift_delta(
    weight: WeightFunc,
    visit: int,
    old_before: int,
    old_after: Optional[int],
    new_before: int,
    new_after: Optional[int],
) -> float:
    """Weight change of moving ``visit`` from between ``old_*`` to between ``new_*``.

    ``new_after`` is the successor of ``new_before`` once ``visit`` has been
    taken out; ``None`` stands for the free end of an open tour.
    """

    delta = -weight(old_before, visit)
    if old_after is not None:
        delta -= weight(visit, old_after)
        delta += weight(old_before, old_after)
    if new_after is not None:
        delta -= weight(new_before, new_after)
        delta += weight(visit, new_after)
    delta += weight(new_before, visit)
    return delta


def movable_visits(tour: Tour) -> List[int]:
    """Visits that may be relocated: all but the first and a fixed last."""

    return [visit for visit in tour if visit != tour.first and not (tour.has_fixed_last and visit == tour.last)]


def random_shift(
    tour: Tour,
    weight: WeightFunc,
    level: int = 1,
    random: Optional[RandomGenerator] = None,
    epsilon: float = DEFAULT_LOCAL_SEARCH_PARAMS.shift_epsilon,
) -> Tuple[bool, float]:
    """Move ``level`` random visits after random other visits."""

    random = resolve(random)
    movable = movable_visits(tour)
    targets = [visit for visit in tour if not (tour.has_fixed_last and visit == tour.last)]
    if not movable or len(targets) < 2:
        return False, 0.0

    delta = 0.0
    for _ in range(max(1, level)):
        visit = random.choice(movable)
        new_before = random.choice([target for target in targets if target != visit])
        old_before, old_after, new_after = tour.shift_after(visit, new_before)
        delta += shift_delta(weight, visit, old_before, old_after, new_before, new_after)
    return delta < -epsilon, delta


def local_one_shift(
    tour: Tour,
    weight: WeightFunc,
    epsilon: float = DEFAULT_LOCAL_SEARCH_PARAMS.shift_epsilon,
) -> Tuple[bool, float]:
    """First-improvement search over all single-visit relocations."""

    for visit in movable_visits(tour):
        old_before = tour.previous(visit)
        old_after = tour.get_neighbour(visit)
        for new_before in tour:
            if new_before == visit or new_before == old_before:
                continue
            if tour.has_fixed_last and new_before == tour.last:
                continue
            if new_before == old_after:
                new_after = tour.get_neighbour(old_after)
            else:
                new_after = tour.get_neighbour(new_before)
            delta = shift_delta(weight, visit, old_before, old_after, new_before, new_after)
            if delta < -epsilon:
                tour.shift_after(visit, new_before)
                logger.debug(f"[1SHIFT] moved {visit} after {new_before}, delta {delta:.4f}")
                return True, delta
    return False, 0.0


class RandomShiftPerturber(TourPerturber):
    """Relocates ``level`` random visits."""

    name = "random1shift"

    def __init__(self, random: Optional[RandomGenerator] = None, params: LocalSearchParams = DEFAULT_LOCAL_SEARCH_PARAMS) -> None:
        self._random = resolve(random)
        self.params = params

    def apply_to_tour(self, problem: Any, objective: Objective, tour: Tour, level: int) -> Tuple[bool, float]:
        return random_shift(tour, problem.weight, level, self._random, self.params.shift_epsilon)


class LocalOneShiftOperator(TourOperator):
    name = "local1shift"

    def __init__(self, params: LocalSearchParams = DEFAULT_LOCAL_SEARCH_PARAMS) -> None:
        self.params = params

    def apply_to_tour(self, problem: Any, objective: Objective, tour: Tour) -> Tuple[bool, float]:
        return local_one_shift(tour, problem.weight, self.params.shift_epsilon)
