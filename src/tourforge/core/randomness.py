"""Injected random number generation.

Every operator, generator and strategy takes an explicit
:class:`RandomGenerator`.  When none is given they fall back on
:func:`default_generator`, one entropy-seeded instance per thread, so parallel
searches never share a random stream.
"""

from __future__ import annotations

import random
import threading
from typing import Iterator, List, MutableSequence, Optional, Sequence, Tuple, TypeVar

T = TypeVar("T")

_local = threading.local()


class RandomGenerator:
    """Thin wrapper over :class:`random.Random` with the draws the search needs."""

    def __init__(self, seed: Optional[int] = None) -> None:
        self._random = random.Random(seed)

    def seed(self, seed: Optional[int]) -> None:
        self._random.seed(seed)

    def generate(self, max_value: int) -> int:
        """Uniform integer in ``[0, max_value)``."""

        if max_value <= 0:
            raise ValueError(f"max_value must be positive, got {max_value}")
        return self._random.randrange(max_value)

    def generate2(self, max_value: int) -> Tuple[int, int]:
        """Two different integers in ``[0, max_value)``."""

        if max_value < 2:
            raise ValueError(f"Need at least two values to draw a pair, got {max_value}")
        first = self._random.randrange(max_value)
        second = self._random.randrange(max_value - 1)
        if second >= first:
            second += 1
        return first, second

    def random(self) -> float:
        return self._random.random()

    def uniform(self, max_value: float = 1.0) -> float:
        return self._random.uniform(0.0, max_value)

    def choice(self, items: Sequence[T]) -> T:
        if not items:
            raise ValueError("Cannot choose from an empty sequence")
        return items[self._random.randrange(len(items))]

    def shuffle(self, items: MutableSequence[T]) -> None:
        self._random.shuffle(items)

    def sample(self, items: Sequence[T], k: int) -> List[T]:
        return self._random.sample(list(items), k)


def default_generator() -> RandomGenerator:
    """Per-thread generator used when callers do not inject one."""

    generator = getattr(_local, "generator", None)
    if generator is None:
        generator = RandomGenerator()
        _local.generator = generator
    return generator


def resolve(generator: Optional[RandomGenerator]) -> RandomGenerator:
    return generator if generator is not None else default_generator()


class RandomPool:
    """Draws the values ``0..size-1`` in random order without repetition.

    Each draw swaps the chosen value to the end of the live region, so a full
    pass is a Fisher-Yates shuffle done lazily.
    """

    def __init__(self, size: int, generator: Optional[RandomGenerator] = None) -> None:
        if size < 0:
            raise ValueError(f"size must be non-negative, got {size}")
        self._pool = list(range(size))
        self._remaining = size
        self._random = resolve(generator)

    @property
    def remaining(self) -> int:
        return self._remaining

    def has_next(self) -> bool:
        return self._remaining > 0

    def next(self) -> int:
        if self._remaining == 0:
            raise ValueError("Random pool is exhausted")
        index = self._random.generate(self._remaining)
        value = self._pool[index]
        last = self._remaining - 1
        self._pool[index], self._pool[last] = self._pool[last], self._pool[index]
        self._remaining = last
        return value

    def reset(self) -> None:
        self._remaining = len(self._pool)

    def __iter__(self) -> Iterator[int]:
        while self.has_next():
            yield self.next()
