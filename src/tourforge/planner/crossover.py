"""Crossover operators over tours that visit the same set of visits.

Order crossover works on any tour shape.  Edge assembly crossover (EAX) only
works on closed tours; the TSP pipelines give it the closed equivalent of
open problems.
"""

from __future__ import annotations

import logging
from typing import Callable, Dict, List, Optional, Set

from ..core.candidate import Candidate
from ..core.randomness import RandomGenerator, resolve
from ..core.tour import Tour
from ..weights.matrix import tour_weight
from .operators import CrossOverOperator

logger = logging.getLogger(__name__)


def _inner_visits(tour: Tour) -> List[int]:
    visits = tour.to_list()[1:]
    if tour.has_fixed_last:
        visits = visits[:-1]
    return visits


def order_crossover(parent1: Tour, parent2: Tour, cut1: int, cut2: int) -> Tour:
    """Order crossover (OX).

    The child keeps ``parent1`` between the two cuts; the other positions are
    filled with the remaining visits in the order they appear in ``parent2``,
    starting right after the second cut and wrapping around.  Anchors (the
    first visit and a fixed last visit) are kept as they are.
    """

    inner1 = _inner_visits(parent1)
    inner2 = _inner_visits(parent2)
    size = len(inner1)
    if sorted(inner1) != sorted(inner2):
        raise ValueError("Order crossover needs parents over the same visits")
    if not 0 <= cut1 <= cut2 <= size:
        raise ValueError(f"Invalid cuts ({cut1}, {cut2}) for {size} visits")

    child: List[Optional[int]] = [None] * size
    child[cut1:cut2] = inner1[cut1:cut2]
    kept = set(inner1[cut1:cut2])

    position = cut2 % size if size else 0
    for offset in range(size):
        visit = inner2[(cut2 + offset) % size]
        if visit in kept:
            continue
        child[position] = visit
        position = (position + 1) % size

    sequence = [parent1.first] + [visit for visit in child if visit is not None]
    if parent1.has_fixed_last:
        sequence.append(parent1.last)
    return Tour(sequence, last=parent1.last)


class OrderCrossover(CrossOverOperator):
    """OX crossover with random cuts."""

    name = "ox"

    def __init__(self, random: Optional[RandomGenerator] = None) -> None:
        self._random = resolve(random)

    def apply(self, parent1: Candidate, parent2: Candidate) -> Candidate:
        size = len(_inner_visits(parent1.solution))
        if size < 2:
            return parent1.clone()
        cut1, cut2 = sorted(self._random.generate2(size + 1))
        child = order_crossover(parent1.solution, parent2.solution, cut1, cut2)
        return Candidate.build(parent1.problem, parent1.objective, child)


WeightFunc = Callable[[int, int], float]


def ab_cycles(parent1: Tour, parent2: Tour) -> List[List[int]]:
    """Alternating cycles of the two parents' edges.

    Each cycle is the list of visits ``u`` whose edge ``u -> next1(u)`` of
    ``parent1`` is followed, backwards, by the edge of ``parent2`` that
    arrives at ``next1(u)``.  Edges both parents share never take part.
    """

    next1 = {pair.from_visit: pair.to_visit for pair in parent1.pairs()}
    previous2 = {pair.to_visit: pair.from_visit for pair in parent2.pairs()}
    if set(next1) != set(previous2):
        raise ValueError("Edge assembly crossover needs parents over the same visits")

    step: Dict[int, int] = {}
    for visit, successor in next1.items():
        other = previous2[successor]
        if other != visit:
            step[visit] = other

    cycles: List[List[int]] = []
    seen: Set[int] = set()
    for start in parent1:
        if start not in step or start in seen:
            continue
        cycle = [start]
        seen.add(start)
        visit = step[start]
        while visit != start:
            cycle.append(visit)
            seen.add(visit)
            visit = step[visit]
        cycles.append(cycle)
    return cycles


def _subtours(successors: Dict[int, int]) -> List[List[int]]:
    tours: List[List[int]] = []
    seen: Set[int] = set()
    for start in successors:
        if start in seen:
            continue
        tour = [start]
        seen.add(start)
        visit = successors[start]
        while visit != start:
            tour.append(visit)
            seen.add(visit)
            visit = successors[visit]
        tours.append(tour)
    return tours


def _merge_subtours(successors: Dict[int, int], weight: WeightFunc) -> None:
    """Join subtours two at a time, smallest first, with the cheapest 2-exchange."""

    subtours = _subtours(successors)
    while len(subtours) > 1:
        subtours.sort(key=len)
        smallest = subtours[0]
        inside = set(smallest)
        best_cost = None
        best = (-1, -1)
        for from_visit in smallest:
            to_visit = successors[from_visit]
            removed = weight(from_visit, to_visit)
            for other in successors:
                if other in inside:
                    continue
                other_to = successors[other]
                cost = weight(from_visit, other_to) + weight(other, to_visit) - removed - weight(other, other_to)
                if best_cost is None or cost < best_cost:
                    best_cost = cost
                    best = (from_visit, other)
        from_visit, other = best
        successors[from_visit], successors[other] = successors[other], successors[from_visit]
        subtours = _subtours(successors)


def edge_assembly_crossover(
    parent1: Tour,
    parent2: Tour,
    weight: WeightFunc,
    random: Optional[RandomGenerator] = None,
    max_offspring: int = 10,
) -> Tour:
    """EAX with one randomly chosen AB-cycle per offspring.

    Every offspring starts from the edges of ``parent1``, swaps in the
    ``parent2`` edges of one AB-cycle and reconnects the subtours this
    creates.  The lightest of at most ``max_offspring`` offspring is returned;
    identical parents give a copy of ``parent1``.
    """

    if not (parent1.is_closed and parent2.is_closed):
        raise ValueError("Edge assembly crossover needs closed tours")
    if parent1.first != parent2.first:
        raise ValueError("Edge assembly crossover needs parents with the same first visit")
    random = resolve(random)

    cycles = ab_cycles(parent1, parent2)
    next1 = {pair.from_visit: pair.to_visit for pair in parent1.pairs()}
    previous2 = {pair.to_visit: pair.from_visit for pair in parent2.pairs()}

    best: Optional[Tour] = None
    best_weight = 0.0
    generated = 0
    while cycles and generated < max_offspring:
        cycle = cycles.pop(random.generate(len(cycles)))
        successors = dict(next1)
        for visit in cycle:
            successor = next1[visit]
            successors[previous2[successor]] = successor
        _merge_subtours(successors, weight)

        sequence = [parent1.first]
        visit = successors[parent1.first]
        while visit != parent1.first:
            sequence.append(visit)
            visit = successors[visit]
        child = Tour.closed(sequence)
        child_weight = tour_weight(child, weight)
        if best is None or child_weight < best_weight:
            best = child
            best_weight = child_weight
        generated += 1

    if best is None:
        return parent1.clone()
    logger.debug(f"[EAX] best of {generated} offspring weighs {best_weight:.3f}")
    return best


class EdgeAssemblyCrossover(CrossOverOperator):
    """EAX crossover over closed tours."""

    name = "eax"

    def __init__(self, random: Optional[RandomGenerator] = None, max_offspring: int = 10) -> None:
        if max_offspring < 1:
            raise ValueError(f"max_offspring must be at least 1, got {max_offspring}")
        self._random = resolve(random)
        self._max_offspring = max_offspring

    def apply(self, parent1: Candidate, parent2: Candidate) -> Candidate:
        problem = parent1.problem
        child = edge_assembly_crossover(
            parent1.solution, parent2.solution, problem.weight, self._random, self._max_offspring
        )
        return Candidate.build(problem, parent1.objective, child)
