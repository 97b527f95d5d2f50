"""Fitness algebra shared by every strategy and operator.

Strategies never look inside a fitness value: they only combine and rank
fitness values through an :class:`Objective`.  Lower is better.
"""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from typing import Any, Generic, TypeVar

P = TypeVar("P")
S = TypeVar("S")
F = TypeVar("F")


class Objective(ABC, Generic[P, S, F]):
    """Polymorphic fitness definition over a problem and solution type."""

    name: str = "objective"

    @property
    @abstractmethod
    def zero(self) -> F:
        ...

    @property
    @abstractmethod
    def infinite(self) -> F:
        """Fitness of an infeasible solution."""

    @property
    def is_non_continuous(self) -> bool:
        """True when fitness must be recomputed instead of updated by deltas."""

        return False

    @abstractmethod
    def calculate(self, problem: P, solution: S) -> F:
        ...

    @abstractmethod
    def add(self, fitness1: F, fitness2: F) -> F:
        ...

    @abstractmethod
    def subtract(self, fitness1: F, fitness2: F) -> F:
        ...

    @abstractmethod
    def compare(self, fitness1: F, fitness2: F) -> int:
        """Negative when ``fitness1`` is better, zero when equal, positive otherwise."""

    @abstractmethod
    def is_zero(self, fitness: F) -> bool:
        ...

    def is_better(self, fitness1: F, fitness2: F) -> bool:
        return self.compare(fitness1, fitness2) < 0


class WeightObjective(Objective[P, S, float]):
    """Objective whose fitness is a single float weight."""

    name = "weight"

    @property
    def zero(self) -> float:
        return 0.0

    @property
    def infinite(self) -> float:
        return math.inf

    def add(self, fitness1: float, fitness2: float) -> float:
        return fitness1 + fitness2

    def subtract(self, fitness1: float, fitness2: float) -> float:
        return fitness1 - fitness2

    def compare(self, fitness1: float, fitness2: float) -> int:
        if fitness1 < fitness2:
            return -1
        if fitness1 > fitness2:
            return 1
        return 0

    def is_zero(self, fitness: float) -> bool:
        return fitness == 0.0


def describe(objective: Objective[Any, Any, Any]) -> str:
    kind = "non-continuous" if objective.is_non_continuous else "continuous"
    return f"{objective.name} ({kind})"
