"""Mutable visit sequence with O(1) edge rewiring.

A tour is stored as two arrays indexed by visit id: the successor of every
visit and its predecessor.  The successor chain always starts at ``first`` and
ends with :attr:`Tour.END`; a closed tour keeps the closing edge implicit (its
``last`` equals ``first``), so rewiring an edge to ``first`` stores ``END``.

Three shapes exist:

* closed (``last == first``): a cycle through every visit,
* fixed-end (``last`` set and different): an open path that must end at
  ``last``,
* open (``last is None``): a path with a free end.
"""

from __future__ import annotations

import numbers
from typing import Iterable, Iterator, List, NamedTuple, Optional, Tuple


class Pair(NamedTuple):
    """A directed edge between two consecutive visits."""

    from_visit: int
    to_visit: int


class Triple(NamedTuple):
    """Three consecutive visits."""

    from_visit: int
    via: int
    to_visit: int


class Tour:
    """Successor-array tour over integer visit ids."""

    NOT_SET = -1
    END = -2

    def __init__(self, visits: Iterable[int], last: Optional[int] = None) -> None:
        sequence = list(visits)
        if not sequence:
            raise ValueError("A tour needs at least a first visit")

        size = max(sequence) + 1
        if last is not None:
            size = max(size, last + 1)
        self._next: List[int] = [Tour.NOT_SET] * size
        self._prev: List[int] = [Tour.NOT_SET] * size
        self._first = sequence[0]
        self._last = last

        previous = Tour.NOT_SET
        for visit in sequence:
            if visit < 0:
                raise ValueError(f"Visit ids must be non-negative, got {visit}")
            if self._next[visit] != Tour.NOT_SET:
                raise ValueError(f"Visit {visit} appears more than once")
            if previous != Tour.NOT_SET:
                self._next[previous] = visit
                self._prev[visit] = previous
            self._next[visit] = Tour.END
            previous = visit
        self._tail = previous
        self._count = len(sequence)

        if last is not None and last != self._first and last != self._tail:
            raise ValueError(f"Fixed last visit {last} must end the sequence, got {self._tail}")

    @classmethod
    def closed(cls, visits: Iterable[int]) -> "Tour":
        """Build a cycle through ``visits`` starting at the first of them."""

        sequence = list(visits)
        if not sequence:
            raise ValueError("A tour needs at least a first visit")
        return cls(sequence, last=sequence[0])

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------
    @property
    def first(self) -> int:
        return self._first

    @property
    def last(self) -> Optional[int]:
        return self._last

    @property
    def tail(self) -> int:
        """The final visit of the successor chain (``last`` unless closed)."""

        return self._tail

    @property
    def is_closed(self) -> bool:
        return self._last is not None and self._last == self._first

    @property
    def has_fixed_last(self) -> bool:
        return self._last is not None and self._last != self._first

    @property
    def count(self) -> int:
        return self._count

    @property
    def capacity(self) -> int:
        """Size of the visit id arena."""

        return len(self._next)

    def __len__(self) -> int:
        return self._count

    def __contains__(self, visit: object) -> bool:
        return isinstance(visit, numbers.Integral) and self.contains(int(visit))

    def __iter__(self) -> Iterator[int]:
        current = self._first
        while current >= 0:
            yield current
            current = self._next[current]

    def __str__(self) -> str:
        text = "->".join(str(visit) for visit in self)
        if self.is_closed:
            text += f"->[{self._first}]"
        return text

    def __repr__(self) -> str:
        return f"Tour({self.to_list()}, last={self._last})"

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    def contains(self, visit: int) -> bool:
        return 0 <= visit < len(self._next) and self._next[visit] != Tour.NOT_SET

    def contains_edge(self, from_visit: int, to_visit: int) -> bool:
        return self.contains(from_visit) and self.get_neighbour(from_visit) == to_visit

    def get_neighbour(self, visit: int) -> Optional[int]:
        """Return the successor of ``visit``.

        The closing edge of a closed tour leads back to ``first``; the free end
        of an open tour has no successor and yields ``None``.
        """

        if not self.contains(visit):
            raise ValueError(f"Visit {visit} is not part of the tour")
        return self._resolve(self._next[visit])

    def previous(self, visit: int) -> Optional[int]:
        """Return the predecessor of ``visit`` (wrapping to the tail when closed)."""

        if not self.contains(visit):
            raise ValueError(f"Visit {visit} is not part of the tour")
        if visit == self._first:
            return self._tail if self.is_closed and self._count > 1 else None
        return self._prev[visit]

    def index_of(self, visit: int) -> int:
        for index, current in enumerate(self):
            if current == visit:
                return index
        return -1

    def visit_at(self, index: int) -> int:
        if index < 0 or index >= self._count:
            raise IndexError(f"Index {index} out of range for a tour of {self._count} visits")
        for position, visit in enumerate(self):
            if position == index:
                return visit
        raise IndexError(index)

    def to_list(self) -> List[int]:
        return list(self)

    def between(self, from_visit: int, to_visit: int) -> Iterator[int]:
        """Yield the visits strictly between two visits, walking forward.

        Walks over the closing edge of a closed tour; stops at the free end of
        an open tour when ``to_visit`` is not reached.
        """

        if not self.contains(from_visit):
            raise ValueError(f"Visit {from_visit} is not part of the tour")
        current = self.get_neighbour(from_visit)
        remaining = self._count
        while current is not None and current != to_visit and remaining > 0:
            if current == from_visit:
                return
            yield current
            current = self._resolve(self._next[current])
            remaining -= 1

    def segment(self, from_visit: int, to_visit: int) -> Iterator[int]:
        """Yield the visits from ``from_visit`` to ``to_visit`` inclusive."""

        yield from_visit
        if from_visit == to_visit:
            return
        for visit in self.between(from_visit, to_visit):
            yield visit
        yield to_visit

    def pairs(self) -> Iterator[Pair]:
        """Yield consecutive edges, including the closing edge of a closed tour."""

        previous = Tour.NOT_SET
        for visit in self:
            if previous != Tour.NOT_SET:
                yield Pair(previous, visit)
            previous = visit
        if self.is_closed and self._count > 1:
            yield Pair(previous, self._first)

    def triples(self) -> Iterator[Triple]:
        """Yield every visit that has both a predecessor and a successor."""

        visits = self.to_list()
        if self.is_closed:
            if self._count < 3:
                return
            extended = [visits[-1]] + visits + [visits[0]]
        else:
            extended = visits
        for index in range(1, len(extended) - 1):
            yield Triple(extended[index - 1], extended[index], extended[index + 1])

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------
    def insert_after(self, existing: int, visit: int) -> None:
        """Splice ``visit`` into the chain right after ``existing``."""

        if visit < 0:
            raise ValueError(f"Visit ids must be non-negative, got {visit}")
        if visit == existing:
            raise ValueError(f"Cannot insert visit {visit} after itself")
        if not self.contains(existing):
            raise ValueError(f"Visit {existing} is not part of the tour")
        if self.contains(visit):
            raise ValueError(f"Visit {visit} is already part of the tour")
        if self.has_fixed_last and existing == self._last:
            raise ValueError(f"Cannot insert after the fixed last visit {existing}")

        self._ensure_capacity(visit)
        successor = self._next[existing]
        self._next[existing] = visit
        self._prev[visit] = existing
        self._next[visit] = successor
        if successor >= 0:
            self._prev[successor] = visit
        else:
            self._tail = visit
        self._count += 1

    def remove(self, visit: int) -> Tuple[int, Optional[int]]:
        """Splice ``visit`` out and return its former ``(before, after)`` neighbours."""

        if visit == self._first:
            raise ValueError(f"Cannot remove the first visit {visit}")
        if self.has_fixed_last and visit == self._last:
            raise ValueError(f"Cannot remove the fixed last visit {visit}")
        if not self.contains(visit):
            raise ValueError(f"Visit {visit} is not part of the tour")

        before = self._prev[visit]
        after = self._next[visit]
        self._next[before] = after
        if after >= 0:
            self._prev[after] = before
        else:
            self._tail = before
        self._next[visit] = Tour.NOT_SET
        self._prev[visit] = Tour.NOT_SET
        self._count -= 1
        return before, self._resolve(after)

    def replace_edge_from(self, from_visit: int, to_visit: Optional[int]) -> None:
        """Point the successor of ``from_visit`` at ``to_visit``.

        This is the raw rewiring primitive used by segment reversal; it does not
        validate the resulting chain.  ``None`` (or ``first`` on a closed tour)
        makes ``from_visit`` the end of the chain.
        """

        if to_visit is None or to_visit == Tour.END or (self.is_closed and to_visit == self._first):
            self._next[from_visit] = Tour.END
            self._tail = from_visit
            return
        self._next[from_visit] = to_visit
        self._prev[to_visit] = from_visit

    def shift_after(self, visit: int, new_after: int) -> Tuple[int, Optional[int], Optional[int]]:
        """Move ``visit`` right after ``new_after``.

        Returns:
            ``(old_before, old_after, new_successor)``: the neighbours whose edges
            changed, with ``first`` standing in for the closing edge and ``None``
            for the free end of an open tour.
        """

        if visit == new_after:
            raise ValueError(f"Cannot shift visit {visit} after itself")
        if not self.contains(visit):
            raise ValueError(f"Visit {visit} is not part of the tour")
        if not self.contains(new_after):
            raise ValueError(f"Visit {new_after} is not part of the tour")
        if visit == self._first:
            raise ValueError(f"Cannot shift the first visit {visit}")
        if self.has_fixed_last and visit == self._last:
            raise ValueError(f"Cannot shift the fixed last visit {visit}")
        if self.has_fixed_last and new_after == self._last:
            raise ValueError(f"Cannot shift after the fixed last visit {new_after}")

        old_before = self._prev[visit]
        old_after = self._next[visit]
        if old_before == new_after:
            return old_before, self._resolve(old_after), self._resolve(old_after)

        self._next[old_before] = old_after
        if old_after >= 0:
            self._prev[old_after] = old_before
        else:
            self._tail = old_before

        new_successor = self._next[new_after]
        self._next[new_after] = visit
        self._prev[visit] = new_after
        self._next[visit] = new_successor
        if new_successor >= 0:
            self._prev[new_successor] = visit
        else:
            self._tail = visit
        return old_before, self._resolve(old_after), self._resolve(new_successor)

    def replace(self, old: int, new: int) -> None:
        """Rename ``old`` to ``new`` in place, keeping its position.

        Renaming the first (or last) visit moves the anchor along with it.
        """

        if old == new:
            return
        if new < 0:
            raise ValueError(f"Visit ids must be non-negative, got {new}")
        if not self.contains(old):
            raise ValueError(f"Visit {old} is not part of the tour")
        if self.contains(new):
            raise ValueError(f"Visit {new} is already part of the tour")

        self._ensure_capacity(new)
        before = self._prev[old]
        after = self._next[old]
        self._next[new] = after
        self._prev[new] = before
        if before >= 0:
            self._next[before] = new
        if after >= 0:
            self._prev[after] = new
        if self._tail == old:
            self._tail = new
        self._next[old] = Tour.NOT_SET
        self._prev[old] = Tour.NOT_SET

        if old == self._first:
            self._first = new
        if old == self._last:
            self._last = new

    def clear(self) -> None:
        """Drop every visit except the anchors."""

        keep_last = self._last if self.has_fixed_last else None
        self._next = [Tour.NOT_SET] * len(self._next)
        self._prev = [Tour.NOT_SET] * len(self._prev)
        self._next[self._first] = Tour.END
        self._tail = self._first
        self._count = 1
        if keep_last is not None:
            self._next[self._first] = keep_last
            self._prev[keep_last] = self._first
            self._next[keep_last] = Tour.END
            self._tail = keep_last
            self._count = 2

    def clone(self) -> "Tour":
        """Deep copy, independent of this tour."""

        copy = Tour.__new__(Tour)
        copy._next = list(self._next)
        copy._prev = list(self._prev)
        copy._first = self._first
        copy._last = self._last
        copy._tail = self._tail
        copy._count = self._count
        return copy

    def restore(self, other: "Tour") -> None:
        """Overwrite this tour with the state of ``other``."""

        self._next = list(other._next)
        self._prev = list(other._prev)
        self._first = other._first
        self._last = other._last
        self._tail = other._tail
        self._count = other._count

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    def _resolve(self, successor: int) -> Optional[int]:
        if successor == Tour.END:
            return self._first if self.is_closed else None
        return successor

    def _ensure_capacity(self, visit: int) -> None:
        if visit >= len(self._next):
            extra = visit + 1 - len(self._next)
            self._next.extend([Tour.NOT_SET] * extra)
            self._prev.extend([Tour.NOT_SET] * extra)
