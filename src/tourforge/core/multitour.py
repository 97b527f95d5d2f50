"""Several closed tours over disjoint sets of visits.

Routing without a depot splits the visits over a number of tours, each a
closed :class:`Tour` of its own.  The collection keeps track of which tour
owns every visit, so membership changes must go through its methods; moves
that only reorder a tour (2-opt, Or-opt) may work on the tour directly.
"""

from __future__ import annotations

from typing import Dict, Iterable, Iterator, List, Sequence, Tuple

from .tour import Tour


class MultiTour:
    """Ordered collection of closed tours; no visit belongs to two of them."""

    def __init__(self, tours: Iterable[Tour] = ()) -> None:
        self._tours: List[Tour] = []
        self._owner: Dict[int, int] = {}
        for tour in tours:
            self.add(tour)

    @classmethod
    def closed(cls, sequences: Iterable[Sequence[int]]) -> "MultiTour":
        return cls(Tour.closed(sequence) for sequence in sequences)

    def __len__(self) -> int:
        return len(self._tours)

    def __iter__(self) -> Iterator[Tour]:
        return iter(self._tours)

    def __getitem__(self, index: int) -> Tour:
        return self._tours[index]

    def __contains__(self, visit: object) -> bool:
        return visit in self._owner

    def __str__(self) -> str:
        return " | ".join(str(tour) for tour in self._tours)

    def __repr__(self) -> str:
        return f"MultiTour({self.to_lists()!r})"

    @property
    def count(self) -> int:
        """Number of visits over all tours."""

        return len(self._owner)

    def tour(self, index: int) -> Tour:
        return self._tours[index]

    def tour_of(self, visit: int) -> int:
        """Index of the tour holding ``visit``, -1 when no tour does."""

        return self._owner.get(visit, -1)

    def to_lists(self) -> List[List[int]]:
        return [tour.to_list() for tour in self._tours]

    def add(self, tour: Tour) -> int:
        """Append a closed tour and return its index."""

        if not tour.is_closed:
            raise ValueError("Only closed tours can be added")
        for visit in tour:
            if visit in self._owner:
                raise ValueError(f"Visit {visit} already belongs to tour {self._owner[visit]}")
        index = len(self._tours)
        self._tours.append(tour)
        for visit in tour:
            self._owner[visit] = index
        return index

    def insert_after(self, index: int, existing: int, visit: int) -> None:
        if visit in self._owner:
            raise ValueError(f"Visit {visit} already belongs to tour {self._owner[visit]}")
        if self._owner.get(existing) != index:
            raise ValueError(f"Visit {existing} is not part of tour {index}")
        self._tours[index].insert_after(existing, visit)
        self._owner[visit] = index

    def remove(self, visit: int) -> Tuple[int, int]:
        """Take ``visit`` out of its tour and return its former ``(before, after)``.

        The first visit of a tour can be removed too; the tour then starts at
        its successor.  A tour is never left empty.
        """

        index = self._owner.get(visit)
        if index is None:
            raise ValueError(f"Visit {visit} is not part of any tour")
        tour = self._tours[index]
        if tour.count == 1:
            raise ValueError(f"Cannot remove {visit}, the only visit of tour {index}")
        before = tour.previous(visit)
        after = tour.get_neighbour(visit)
        if visit == tour.first:
            self._tours[index] = Tour.closed(tour.to_list()[1:])
        else:
            tour.remove(visit)
        del self._owner[visit]
        return before, after

    def swap(self, visit1: int, visit2: int) -> None:
        """Exchange two visits of different tours, each taking the other's place."""

        index1 = self.tour_of(visit1)
        index2 = self.tour_of(visit2)
        if index1 < 0 or index2 < 0:
            raise ValueError(f"Visits {visit1} and {visit2} must both be part of a tour")
        if index1 == index2:
            raise ValueError(f"Visits {visit1} and {visit2} share tour {index1}")
        self._tours[index1].replace(visit1, visit2)
        self._tours[index2].replace(visit2, visit1)
        self._owner[visit1] = index2
        self._owner[visit2] = index1

    def set_tours(self, tours: Dict[int, Tour]) -> None:
        """Replace the tours at the given indices at once.

        The new tours may trade visits among themselves but not take visits
        from tours left untouched; visits none of them keeps become unowned.
        """

        incoming: Dict[int, int] = {}
        for index, tour in tours.items():
            if not tour.is_closed:
                raise ValueError("Only closed tours can be added")
            for visit in tour:
                owner = self._owner.get(visit, index)
                if owner not in tours:
                    raise ValueError(f"Visit {visit} already belongs to tour {owner}")
                if visit in incoming:
                    raise ValueError(f"Visit {visit} appears in tours {incoming[visit]} and {index}")
                incoming[visit] = index
        for index in tours:
            for visit in self._tours[index]:
                del self._owner[visit]
        for index, tour in tours.items():
            self._tours[index] = tour
        self._owner.update(incoming)

    def clone(self) -> "MultiTour":
        copy = MultiTour.__new__(MultiTour)
        copy._tours = [tour.clone() for tour in self._tours]
        copy._owner = dict(self._owner)
        return copy
