"""Edge-exchange local search: 2-opt, 3-opt and Or-opt.

Each move function works on a bare :class:`Tour` and a weight function and
returns ``(improved, delta)``, where ``delta`` is the exact change of the tour
weight (negative for an improvement).  A move is only taken when it beats the
current tour by more than the given epsilon, and the first improving move is
applied immediately.  The operator classes bind these functions to a problem
so strategies can use them as :class:`~tourforge.planner.operators.Operator`.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, List, Optional, Tuple

from ..config import (
    DEFAULT_LOCAL_SEARCH_PARAMS,
    DEFAULT_NEAREST_NEIGHBOUR_PARAMS,
    LocalSearchParams,
    NearestNeighbourParams,
)
from ..core.objective import Objective
from ..core.sequences import Seq
from ..core.tour import Tour
from ..weights.nearest import NearestNeighbourArray, NeighbourDirection
from .operators import TourOperator

logger = logging.getLogger(__name__)

WeightFunc = Callable[[int, int], float]


def two_opt(tour: Tour, weight: WeightFunc, epsilon: float = DEFAULT_LOCAL_SEARCH_PARAMS.two_opt_epsilon) -> Tuple[bool, float]:
    """First-improvement 2-opt.

    Replaces edges ``(a, b)`` and ``(c, d)`` by ``(a, c)`` and ``(b, d)`` and
    reverses the path from ``b`` to ``c``.  The reversed path is costed in
    both orientations so asymmetric weights get an exact delta.  The first
    visit and a fixed last visit never move.
    """

    customers = tour.to_list()
    if tour.is_closed:
        customers.append(tour.first)
    length = len(customers)

    for edge1 in range(length - 3):
        a = customers[edge1]
        b = customers[edge1 + 1]
        weight_ab = weight(a, b)
        between_forward = 0.0
        between_backward = 0.0
        for edge2 in range(edge1 + 2, length - 1):
            previous = customers[edge2 - 1]
            c = customers[edge2]
            d = customers[edge2 + 1]
            between_forward += weight(previous, c)
            between_backward += weight(c, previous)

            existing = weight_ab + between_forward + weight(c, d)
            potential = weight(a, c) + between_backward + weight(b, d)
            if existing - potential > epsilon:
                tour.replace_edge_from(a, c)
                tour.replace_edge_from(b, d)
                for index in range(edge1 + 1, edge2):
                    tour.replace_edge_from(customers[index + 1], customers[index])
                logger.debug(f"[2OPT] reversed {b}..{c}, delta {potential - existing:.4f}")
                return True, potential - existing
    return False, 0.0


class DontLookBits:
    """Per-visit flags that suppress re-examination by 3-opt."""

    def __init__(self, size: int) -> None:
        self._bits: List[bool] = [False] * size

    def __getitem__(self, visit: int) -> bool:
        return visit < len(self._bits) and self._bits[visit]

    def __len__(self) -> int:
        return len(self._bits)

    def set(self, visit: int) -> None:
        if visit >= len(self._bits):
            self._bits.extend([False] * (visit + 1 - len(self._bits)))
        self._bits[visit] = True

    def clear(self, visit: int) -> None:
        if visit < len(self._bits):
            self._bits[visit] = False

    def reset(self) -> None:
        self._bits = [False] * len(self._bits)

    def count(self) -> int:
        return sum(self._bits)


def _three_opt_move(
    tour: Tour,
    weight: WeightFunc,
    v1: int,
    nearest: Optional[NearestNeighbourArray],
    epsilon: float,
) -> Optional[Tuple[int, int, float]]:
    v2 = tour.get_neighbour(v1)
    if v2 is None:
        return None
    weight12 = weight(v1, v2)

    v3: Optional[int] = None
    for v4 in tour.segment(v2, v1):
        if v3 is not None and (nearest is None or nearest.is_neighbour(v1, v4)):
            weight34 = weight(v3, v4)
            weight14 = weight(v1, v4)
            v5: Optional[int] = None
            for v6 in tour.segment(v4, v1):
                if v5 is not None:
                    gain = (weight12 + weight34 + weight(v5, v6)) - (weight14 + weight(v3, v6) + weight(v5, v2))
                    if gain > epsilon:
                        tour.replace_edge_from(v1, v4)
                        tour.replace_edge_from(v3, v6)
                        tour.replace_edge_from(v5, v2)
                        return v3, v5, gain
                v5 = v6
        v3 = v4
    return None


def three_opt(
    tour: Tour,
    weight: WeightFunc,
    nearest: Optional[NearestNeighbourArray] = None,
    dont_look_bits: Optional[DontLookBits] = None,
    epsilon: float = DEFAULT_LOCAL_SEARCH_PARAMS.three_opt_epsilon,
) -> Tuple[bool, float]:
    """Segment-exchange 3-opt with don't-look bits.

    For ``v1 -> v2 ... v3 -> v4 ... v5 -> v6 ...`` the edges are rewired to
    ``v1 -> v4 ... v5 -> v2 ... v3 -> v6``, swapping two consecutive segments
    without reversing either.  After a move the bits of ``v3`` and ``v5`` are
    cleared and the scan restarts; a visit without an improving move gets its
    bit set.  When ``nearest`` is given, ``v4`` must be one of its neighbours
    of ``v1``.

    Only closed tours are accepted: any other tour is left untouched and
    ``(False, 0.0)`` is returned.
    """

    if not tour.is_closed:
        logger.warning(f"[3OPT] skipped: tour starting at {tour.first} is not closed")
        return False, 0.0

    bits = dont_look_bits if dont_look_bits is not None else DontLookBits(tour.capacity)
    improved = False
    delta = 0.0
    scanning = True
    while scanning:
        scanning = False
        for v1 in tour:
            if bits[v1]:
                continue
            move = _three_opt_move(tour, weight, v1, nearest, epsilon)
            if move is None:
                bits.set(v1)
                continue
            v3, v5, gain = move
            bits.clear(v3)
            bits.clear(v5)
            logger.debug(f"[3OPT] moved segment after {v1}, gain {gain:.4f}")
            delta -= gain
            improved = True
            scanning = True
            break
    return improved, delta


def or_opt(
    tour: Tour,
    weight: WeightFunc,
    max_window: int = DEFAULT_LOCAL_SEARCH_PARAMS.or_opt_max_window,
    epsilon: float = DEFAULT_LOCAL_SEARCH_PARAMS.or_opt_epsilon,
) -> Tuple[bool, float]:
    """Move a run of 2..max_window visits between two other visits.

    The run may be inserted reversed.  Runs never contain the first visit or a
    fixed last visit, and always have a successor.
    """

    visits = tour.to_list()
    count = len(visits)
    for size in range(2, max_window + 1):
        for start in range(1, count - size + 1):
            segment = visits[start:start + size]
            if tour.has_fixed_last and tour.last in segment:
                continue
            before = visits[start - 1]
            after = tour.get_neighbour(segment[-1])
            if after is None:
                continue

            removal = Seq.build([before] + segment + [after], weight)
            removed = weight(before, after) - removal.between
            members = set(segment)

            positions = [(before, after)]
            for a, b in tour.pairs():
                if a in members or b in members:
                    continue
                positions.append((a, b))

            for a, b in positions:
                insertion = Seq.build([a] + segment + [b], weight)
                reversed_insertion = insertion.reverse()
                chosen = insertion
                if reversed_insertion.between < insertion.between:
                    chosen = reversed_insertion
                delta = removed + chosen.between - weight(a, b)
                if delta < -epsilon:
                    for visit in segment:
                        tour.remove(visit)
                    previous = a
                    for visit in chosen.inner:
                        tour.insert_after(previous, visit)
                        previous = visit
                    logger.debug(f"[OROPT] moved {chosen} delta {delta:.4f}")
                    return True, delta
    return False, 0.0


def _neighbour_direction(name: str) -> NeighbourDirection:
    return NeighbourDirection(name)


class TwoOptOperator(TourOperator):
    name = "2opt"

    def __init__(self, params: LocalSearchParams = DEFAULT_LOCAL_SEARCH_PARAMS) -> None:
        self.params = params

    def apply_to_tour(self, problem: Any, objective: Objective, tour: Tour) -> Tuple[bool, float]:
        return two_opt(tour, problem.weight, self.params.two_opt_epsilon)


class ThreeOptOperator(TourOperator):
    """3-opt with don't-look bits, optionally pruned by the problem's neighbour cache."""

    name = "3opt"

    def __init__(
        self,
        params: LocalSearchParams = DEFAULT_LOCAL_SEARCH_PARAMS,
        nearest: Optional[NearestNeighbourParams] = DEFAULT_NEAREST_NEIGHBOUR_PARAMS,
    ) -> None:
        self.params = params
        self.nearest = nearest

    def apply_to_tour(self, problem: Any, objective: Objective, tour: Tour) -> Tuple[bool, float]:
        neighbours = None
        cache = getattr(problem, "nearest_neighbours", None)
        if self.nearest is not None and self.nearest.use_for_three_opt and cache is not None:
            neighbours = cache.get(self.nearest.n, _neighbour_direction(self.nearest.direction))
        return three_opt(tour, problem.weight, neighbours, DontLookBits(tour.capacity), self.params.three_opt_epsilon)


class OrOptOperator(TourOperator):
    name = "oropt"

    def __init__(self, params: LocalSearchParams = DEFAULT_LOCAL_SEARCH_PARAMS) -> None:
        self.params = params

    def apply_to_tour(self, problem: Any, objective: Objective, tour: Tour) -> Tuple[bool, float]:
        return or_opt(tour, problem.weight, self.params.or_opt_max_window, self.params.or_opt_epsilon)
