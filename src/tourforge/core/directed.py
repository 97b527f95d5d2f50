"""Encoding of directed visits.

A directed visit is a visit id plus a turn: the direction the vehicle arrives
in and the direction it departs in.  Tours over directed problems store the
encoded id ``visit * 4 + turn``; the directed weight matrix has two rows and
two columns per visit, indexed by ``visit * 2 + direction``.  All of the
integer arithmetic behind both encodings lives in this module.
"""

from __future__ import annotations

from enum import IntEnum
from typing import Callable, NamedTuple

from .tour import Tour


class Direction(IntEnum):
    FORWARD = 0
    BACKWARD = 1

    def flip(self) -> "Direction":
        return Direction.BACKWARD if self == Direction.FORWARD else Direction.FORWARD


class Turn(IntEnum):
    """Arrival/departure direction combination at a stop."""

    FORWARD_FORWARD = 0
    FORWARD_BACKWARD = 1
    BACKWARD_FORWARD = 2
    BACKWARD_BACKWARD = 3

    @classmethod
    def build(cls, arrival: Direction, departure: Direction) -> "Turn":
        return cls(int(arrival) * 2 + int(departure))

    @property
    def arrival(self) -> Direction:
        return Direction(int(self) >> 1)

    @property
    def departure(self) -> Direction:
        return Direction(int(self) & 1)

    def apply_arrival(self, arrival: Direction) -> "Turn":
        return Turn.build(arrival, self.departure)

    def apply_departure(self, departure: Direction) -> "Turn":
        return Turn.build(self.arrival, departure)


class DirectedVisit(NamedTuple):
    visit: int
    turn: Turn = Turn.FORWARD_FORWARD

    def encode(self) -> int:
        return encode(self.visit, self.turn)

    @classmethod
    def decode(cls, directed_id: int) -> "DirectedVisit":
        return cls(visit_of(directed_id), turn_of(directed_id))

    @property
    def arrival_weight_id(self) -> int:
        return weight_id(self.visit, self.turn.arrival)

    @property
    def departure_weight_id(self) -> int:
        return weight_id(self.visit, self.turn.departure)


def encode(visit: int, turn: Turn) -> int:
    if visit < 0:
        raise ValueError(f"Visit ids must be non-negative, got {visit}")
    return visit * 4 + int(turn)


def visit_of(directed_id: int) -> int:
    if directed_id < 0:
        raise ValueError(f"Directed ids must be non-negative, got {directed_id}")
    return directed_id // 4


def turn_of(directed_id: int) -> Turn:
    if directed_id < 0:
        raise ValueError(f"Directed ids must be non-negative, got {directed_id}")
    return Turn(directed_id % 4)


def with_turn(directed_id: int, turn: Turn) -> int:
    return encode(visit_of(directed_id), turn)


def weight_id(visit: int, direction: Direction) -> int:
    return visit * 2 + int(direction)


def arrival_weight_id(directed_id: int) -> int:
    return weight_id(visit_of(directed_id), turn_of(directed_id).arrival)


def departure_weight_id(directed_id: int) -> int:
    return weight_id(visit_of(directed_id), turn_of(directed_id).departure)


def directed_weight(
    tour: Tour,
    weight: Callable[[int, int], float],
    turn_penalty: Callable[[Turn], float],
) -> float:
    """Total weight of a tour of directed ids, turn penalties included.

    Every stop pays the penalty of its turn; travel between two stops is
    weighed from the departure direction of the first to the arrival direction
    of the second.
    """

    total = 0.0
    for directed_id in tour:
        total += turn_penalty(turn_of(directed_id))
    for from_id, to_id in tour.pairs():
        total += weight(departure_weight_id(from_id), arrival_weight_id(to_id))
    return total
