"""Operators for tours of directed visits.

Entries of a directed tour are encoded ids (see :mod:`tourforge.core.directed`).
Problems handed to these operators expose ``weights`` (the 2n x 2n directed
weight lookup ``weights(from_weight_id, to_weight_id)``) and
``turn_penalty(turn)``.
"""

from __future__ import annotations

import logging
import math
from typing import Any, Callable, Dict, List, NamedTuple, Optional, Tuple

from ..config import DEFAULT_INSERTION_PARAMS, DEFAULT_LOCAL_SEARCH_PARAMS, InsertionParams, LocalSearchParams
from ..core.directed import (
    Direction,
    Turn,
    arrival_weight_id,
    departure_weight_id,
    encode,
    turn_of,
    visit_of,
    with_turn,
)
from ..core.objective import Objective
from ..core.randomness import RandomGenerator, RandomPool, resolve
from ..core.tour import Tour
from .operators import TourOperator
from .shift import movable_visits

logger = logging.getLogger(__name__)

WeightFunc = Callable[[int, int], float]
PenaltyFunc = Callable[[Turn], float]


def _travel(weights: WeightFunc, from_id: int, to_id: int) -> float:
    return weights(departure_weight_id(from_id), arrival_weight_id(to_id))


def _stop_cost(
    weights: WeightFunc,
    turn_penalty: PenaltyFunc,
    previous: Optional[int],
    current: int,
    following: Optional[int],
) -> float:
    cost = turn_penalty(turn_of(current))
    if previous is not None:
        cost += _travel(weights, previous, current)
    if following is not None:
        cost += _travel(weights, current, following)
    return cost


def direction_local_search(
    tour: Tour,
    weights: WeightFunc,
    turn_penalty: PenaltyFunc,
    random: Optional[RandomGenerator] = None,
    epsilon: float = DEFAULT_LOCAL_SEARCH_PARAMS.direction_epsilon,
) -> Tuple[bool, float]:
    """Try every other turn at each stop, in random order, neighbours fixed.

    A stop switches to its cheapest turn when that beats the current turn by
    more than ``epsilon``.
    """

    entries = tour.to_list()
    count = len(entries)
    wraps = tour.is_closed and count > 1
    improved = False
    delta = 0.0
    for index in RandomPool(count, random):
        current = entries[index]
        previous = entries[index - 1] if index > 0 else (entries[-1] if wraps else None)
        following = entries[index + 1] if index < count - 1 else (entries[0] if wraps else None)

        current_cost = _stop_cost(weights, turn_penalty, previous, current, following)
        best_id = current
        best_cost = current_cost
        for turn in Turn:
            if turn == turn_of(current):
                continue
            candidate = with_turn(current, turn)
            cost = _stop_cost(weights, turn_penalty, previous, candidate, following)
            if cost < best_cost:
                best_id = candidate
                best_cost = cost

        if current_cost - best_cost > epsilon:
            tour.replace(current, best_id)
            entries[index] = best_id
            delta += best_cost - current_cost
            improved = True
    return improved, delta


class DirectedInsertion(NamedTuple):
    """Cheapest way to put a visit between two stops."""

    cost: float
    from_id: int
    directed_id: int
    to_id: Optional[int]
    old_from_id: int
    old_to_id: Optional[int]


def cheapest_insertion_directed(
    tour: Tour,
    weights: WeightFunc,
    turn_penalty: PenaltyFunc,
    visit: int,
) -> Optional[DirectedInsertion]:
    """Cheapest position, turn and neighbour directions for ``visit``.

    Every edge is tried with every turn at the new stop, every departure
    direction at the stop before it and every arrival direction at the stop
    after it; the penalties of changed neighbour turns are included.
    """

    best: Optional[DirectedInsertion] = None
    if tour.is_closed and tour.count == 1:
        anchor = tour.first
        for turn in Turn:
            directed_id = encode(visit, turn)
            cost = (
                turn_penalty(turn)
                + _travel(weights, anchor, directed_id)
                + _travel(weights, directed_id, anchor)
            )
            if best is None or cost < best.cost:
                best = DirectedInsertion(cost, anchor, directed_id, anchor, anchor, anchor)
        return best

    positions: List[Tuple[int, Optional[int]]] = [(a, b) for a, b in tour.pairs()]
    if tour.last is None:
        positions.append((tour.tail, None))

    for from_id, to_id in positions:
        from_turn = turn_of(from_id)
        old_cost = 0.0
        if to_id is not None:
            old_cost = _travel(weights, from_id, to_id)
        for departure in Direction:
            new_from_turn = from_turn.apply_departure(departure)
            new_from = with_turn(from_id, new_from_turn)
            from_penalty = turn_penalty(new_from_turn) - turn_penalty(from_turn)
            for turn in Turn:
                directed_id = encode(visit, turn)
                base = from_penalty + turn_penalty(turn) + _travel(weights, new_from, directed_id) - old_cost
                if to_id is None:
                    if best is None or base < best.cost:
                        best = DirectedInsertion(base, new_from, directed_id, None, from_id, None)
                    continue
                to_turn = turn_of(to_id)
                for arrival in Direction:
                    new_to_turn = to_turn.apply_arrival(arrival)
                    new_to = with_turn(to_id, new_to_turn)
                    cost = (
                        base
                        + turn_penalty(new_to_turn)
                        - turn_penalty(to_turn)
                        + _travel(weights, directed_id, new_to)
                    )
                    if best is None or cost < best.cost:
                        best = DirectedInsertion(cost, new_from, directed_id, new_to, from_id, to_id)
    return best


def apply_directed_insertion(tour: Tour, insertion: DirectedInsertion) -> None:
    tour.replace(insertion.old_from_id, insertion.from_id)
    if insertion.to_id is not None and insertion.old_to_id is not None and insertion.old_to_id != insertion.old_from_id:
        tour.replace(insertion.old_to_id, insertion.to_id)
    tour.insert_after(insertion.from_id, insertion.directed_id)


def _removal_delta(
    weights: WeightFunc,
    turn_penalty: PenaltyFunc,
    before: int,
    directed_id: int,
    after: Optional[int],
) -> float:
    delta = -turn_penalty(turn_of(directed_id)) - _travel(weights, before, directed_id)
    if after is not None:
        delta -= _travel(weights, directed_id, after)
        delta += _travel(weights, before, after)
    return delta


def cheapest_reinsertion_directed(
    tour: Tour,
    weights: WeightFunc,
    turn_penalty: PenaltyFunc,
    count: int,
    random: Optional[RandomGenerator] = None,
) -> float:
    """Remove ``count`` random stops and reinsert each with its cheapest turn."""

    movable = movable_visits(tour)
    count = min(count, len(movable))
    pool = RandomPool(len(movable), random)
    delta = 0.0
    removed: List[int] = []
    for _ in range(count):
        directed_id = movable[pool.next()]
        before, after = tour.remove(directed_id)
        delta += _removal_delta(weights, turn_penalty, before, directed_id, after)
        removed.append(visit_of(directed_id))
    for visit in removed:
        insertion = cheapest_insertion_directed(tour, weights, turn_penalty, visit)
        if insertion is None:
            raise ValueError(f"No insertion position for visit {visit} in {tour}")
        apply_directed_insertion(tour, insertion)
        delta += insertion.cost
    return delta


def optimize_turns(
    tour: Tour,
    weights: WeightFunc,
    turn_penalty: PenaltyFunc,
    epsilon: float = DEFAULT_LOCAL_SEARCH_PARAMS.direction_epsilon,
) -> Tuple[bool, float]:
    """Pick the cheapest turn at every stop for the current visit order.

    Dynamic programme over the stops with one state per turn.  On a closed
    tour each turn of the first stop is fixed in turn so the closing edge can
    be charged at the end.
    """

    entries = tour.to_list()
    count = len(entries)
    visits = [visit_of(entry) for entry in entries]
    closed = tour.is_closed and count > 1

    def travel(from_visit: int, from_turn: Turn, to_visit: int, to_turn: Turn) -> float:
        return _travel(weights, encode(from_visit, from_turn), encode(to_visit, to_turn))

    best_total = math.inf
    best_turns: List[Turn] = []
    first_options: List[Optional[Turn]] = list(Turn) if closed else [None]
    for first_turn in first_options:
        if first_turn is None:
            costs = {turn: turn_penalty(turn) for turn in Turn}
        else:
            costs = {turn: math.inf for turn in Turn}
            costs[first_turn] = turn_penalty(first_turn)
        back: List[Dict[Turn, Optional[Turn]]] = []
        for index in range(1, count):
            step_costs = {}
            step_back = {}
            for turn in Turn:
                best_prev = None
                best_value = math.inf
                for prev_turn, prev_cost in costs.items():
                    if prev_cost == math.inf:
                        continue
                    value = prev_cost + travel(visits[index - 1], prev_turn, visits[index], turn)
                    if value < best_value:
                        best_value = value
                        best_prev = prev_turn
                step_costs[turn] = best_value + turn_penalty(turn)
                step_back[turn] = best_prev
            costs = step_costs
            back.append(step_back)

        for last_turn, cost in costs.items():
            if cost == math.inf:
                continue
            total = cost
            if first_turn is not None:
                total += travel(visits[-1], last_turn, visits[0], first_turn)
            if total < best_total:
                turns = [last_turn]
                for step_back in reversed(back):
                    turns.append(step_back[turns[-1]])
                turns.reverse()
                best_total = total
                best_turns = turns

    current = 0.0
    for entry in entries:
        current += turn_penalty(turn_of(entry))
    for from_id, to_id in tour.pairs():
        current += _travel(weights, from_id, to_id)

    if not best_turns or current - best_total <= epsilon:
        return False, 0.0
    for entry, turn in zip(entries, best_turns):
        tour.replace(entry, with_turn(entry, turn))
    return True, best_total - current


class DirectionLocalSearchOperator(TourOperator):
    name = "direction"

    def __init__(self, random: Optional[RandomGenerator] = None, params: LocalSearchParams = DEFAULT_LOCAL_SEARCH_PARAMS) -> None:
        self._random = resolve(random)
        self.params = params

    def apply_to_tour(self, problem: Any, objective: Objective, tour: Tour) -> Tuple[bool, float]:
        return direction_local_search(tour, problem.weights, problem.turn_penalty, self._random, self.params.direction_epsilon)


class DirectedCheapestReinsertionOperator(TourOperator):
    """Remove-and-reinsert over directed stops, accepted only on strict improvement."""

    name = "directed_reinsertion"

    def __init__(
        self,
        params: InsertionParams = DEFAULT_INSERTION_PARAMS,
        random: Optional[RandomGenerator] = None,
        local_search: LocalSearchParams = DEFAULT_LOCAL_SEARCH_PARAMS,
    ) -> None:
        self.params = params
        self._random = resolve(random)
        self.epsilon = local_search.insertion_epsilon

    def apply_to_tour(self, problem: Any, objective: Objective, tour: Tour) -> Tuple[bool, float]:
        movable = len(movable_visits(tour))
        count = min(movable, max(self.params.min_removed, int(movable * self.params.fraction)))
        if count == 0:
            return False, 0.0
        backup = tour.clone()
        delta = cheapest_reinsertion_directed(tour, problem.weights, problem.turn_penalty, count, self._random)
        if delta < -self.epsilon:
            logger.debug(f"[DINSERT] reinserted {count} stops, delta {delta:.4f}")
            return True, delta
        tour.restore(backup)
        return False, 0.0


class TurnOptimizationOperator(TourOperator):
    name = "turns"

    def __init__(self, params: LocalSearchParams = DEFAULT_LOCAL_SEARCH_PARAMS) -> None:
        self.params = params

    def apply_to_tour(self, problem: Any, objective: Objective, tour: Tour) -> Tuple[bool, float]:
        return optimize_turns(tour, problem.weights, problem.turn_penalty, self.params.direction_epsilon)
