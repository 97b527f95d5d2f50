"""Problem/solution/fitness triple under active search."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from .objective import Objective

P = TypeVar("P")
S = TypeVar("S")
F = TypeVar("F")


@dataclass(eq=False)
class Candidate(Generic[P, S, F]):
    """A solution bound to its problem and fitness.

    The problem and objective are shared read-only; the solution is owned and
    deep-copied by :meth:`clone`.  Candidates rank by fitness through their
    objective, never by solution structure.
    """

    problem: P
    objective: Objective[P, S, F]
    solution: S
    fitness: F

    @classmethod
    def build(cls, problem: P, objective: Objective[P, S, F], solution: S) -> "Candidate[P, S, F]":
        return cls(problem, objective, solution, objective.calculate(problem, solution))

    def clone(self) -> "Candidate[P, S, F]":
        return Candidate(self.problem, self.objective, self.solution.clone(), self.fitness)  # type: ignore[attr-defined]

    def recalculate(self) -> F:
        self.fitness = self.objective.calculate(self.problem, self.solution)
        return self.fitness

    def apply_delta(self, delta: Any) -> F:
        """Bring fitness up to date after an in-place move with ``delta``."""

        if self.objective.is_non_continuous:
            return self.recalculate()
        self.fitness = self.objective.add(self.fitness, delta)
        return self.fitness

    def compare(self, other: "Candidate[P, S, F]") -> int:
        return self.objective.compare(self.fitness, other.fitness)

    def better_than(self, other: "Candidate[P, S, F]") -> bool:
        return self.compare(other) < 0

    def __lt__(self, other: "Candidate[P, S, F]") -> bool:
        return self.compare(other) < 0

    def __str__(self) -> str:
        return f"{self.solution} ({self.fitness})"
