"""Windows of consecutive visits with precomputed costs."""

from __future__ import annotations

from typing import Callable, List, Optional, Sequence

from .tour import Tour


class Seq:
    """A window of two or more consecutive visits.

    The two end visits stay in place; the visits between them form the part
    that can be moved or reversed.  Travel costs run from the first end,
    through the inner visits, to the last end, in both orientations of the
    inner part.
    """

    __slots__ = (
        "_visits",
        "between_travel_cost",
        "between_travel_cost_reversed",
        "between_visit_cost",
        "total_original",
        "reversed",
    )

    def __init__(
        self,
        visits: Sequence[int],
        between_travel_cost: float = 0.0,
        between_travel_cost_reversed: float = 0.0,
        between_visit_cost: float = 0.0,
        total_original: float = 0.0,
        reversed: bool = False,
    ) -> None:
        if len(visits) < 2:
            raise ValueError(f"A sequence needs at least two visits, got {len(visits)}")
        self._visits: List[int] = list(visits)
        self.between_travel_cost = between_travel_cost
        self.between_travel_cost_reversed = between_travel_cost_reversed
        self.between_visit_cost = between_visit_cost
        self.total_original = total_original
        self.reversed = reversed

    @classmethod
    def build(
        cls,
        visits: Sequence[int],
        weight: Callable[[int, int], float],
        visit_cost: Optional[Callable[[int], float]] = None,
    ) -> "Seq":
        visits = list(visits)
        if len(visits) < 2:
            raise ValueError(f"A sequence needs at least two visits, got {len(visits)}")
        forward = 0.0
        for index in range(len(visits) - 1):
            forward += weight(visits[index], visits[index + 1])

        inner = visits[1:-1]
        backward_chain = [visits[0]] + inner[::-1] + [visits[-1]]
        backward = 0.0
        for index in range(len(backward_chain) - 1):
            backward += weight(backward_chain[index], backward_chain[index + 1])

        visit_total = 0.0
        if visit_cost is not None:
            visit_total = sum(visit_cost(visit) for visit in inner)
        return cls(visits, forward, backward, visit_total, forward + visit_total)

    @classmethod
    def from_tour(
        cls,
        tour: Tour,
        start: int,
        end: int,
        weight: Callable[[int, int], float],
        visit_cost: Optional[Callable[[int], float]] = None,
    ) -> "Seq":
        """Window from ``start`` to ``end`` (inclusive) along ``tour``."""

        return cls.build(list(tour.segment(start, end)), weight, visit_cost)

    @property
    def between(self) -> float:
        """Cost from the first to the last visit in the current orientation."""

        if self.reversed:
            return self.between_travel_cost_reversed + self.between_visit_cost
        return self.between_travel_cost + self.between_visit_cost

    @property
    def inner(self) -> List[int]:
        return [self[index] for index in range(1, len(self) - 1)]

    def reverse(self) -> "Seq":
        return Seq(
            self._visits,
            self.between_travel_cost,
            self.between_travel_cost_reversed,
            self.between_visit_cost,
            self.total_original,
            not self.reversed,
        )

    def __len__(self) -> int:
        return len(self._visits)

    def __getitem__(self, index: int) -> int:
        length = len(self._visits)
        if index < 0:
            index += length
        if index < 0 or index >= length:
            raise IndexError(index)
        if not self.reversed or index == 0 or index == length - 1:
            return self._visits[index]
        return self._visits[length - 1 - index]

    def __str__(self) -> str:
        inner = "->".join(str(visit) for visit in self.inner)
        return f"{self[0]}->[{inner}]->{self[len(self) - 1]}"
