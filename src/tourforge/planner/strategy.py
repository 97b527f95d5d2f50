"""Search strategy contract and the simple strategies built on it.

A strategy turns a problem into a candidate.  Metaheuristics take other
strategies (generators) and operators as constructor arguments; there is no
deeper hierarchy than :class:`Strategy` itself.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, Callable, Optional

from ..core.candidate import Candidate
from .operators import Operator

logger = logging.getLogger(__name__)

NewBestHook = Callable[[Candidate], Optional[bool]]
StopCondition = Callable[[Candidate, int, int], bool]


class SearchFailedError(RuntimeError):
    """Raised when no feasible candidate can be produced."""

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


class Strategy(ABC):
    """Produces a candidate for a problem.

    ``on_new_best`` is called with every new best candidate a strategy finds;
    returning ``False`` from it stops the search, which then returns the best
    candidate so far.
    """

    name: str = "strategy"

    def __init__(self, on_new_best: Optional[NewBestHook] = None) -> None:
        self.on_new_best = on_new_best

    @abstractmethod
    def search(self, problem: Any) -> Candidate:
        ...

    def report(self, candidate: Candidate) -> bool:
        """Hand ``candidate`` to the hook; False means the caller asked to stop."""

        if self.on_new_best is None:
            return True
        return self.on_new_best(candidate) is not False


class FuncStrategy(Strategy):
    """Adapts a plain ``problem -> candidate`` function."""

    def __init__(self, func: Callable[[Any], Candidate], name: str = "func") -> None:
        super().__init__()
        self._func = func
        self.name = name

    def search(self, problem: Any) -> Candidate:
        return self._func(problem)


class StrategyThenOperator(Strategy):
    """Runs a strategy and improves its result with an operator."""

    def __init__(self, strategy: Strategy, operator: Operator, until_stable: bool = True) -> None:
        super().__init__()
        self._strategy = strategy
        self._operator = operator
        self._until_stable = until_stable
        self.name = f"{strategy.name}_{operator.name}"

    def search(self, problem: Any) -> Candidate:
        candidate = self._strategy.search(problem)
        if self._until_stable:
            while self._operator.apply(candidate):
                pass
        else:
            self._operator.apply(candidate)
        return candidate


class IterativeStrategy(Strategy):
    """Runs a strategy ``count`` times and keeps the best candidate."""

    def __init__(
        self,
        strategy: Strategy,
        count: int,
        operator: Optional[Operator] = None,
        stopped: Optional[Callable[[], bool]] = None,
        on_new_best: Optional[NewBestHook] = None,
    ) -> None:
        super().__init__(on_new_best)
        if count < 1:
            raise ValueError(f"count must be at least 1, got {count}")
        self._strategy = strategy
        self._count = count
        self._operator = operator
        self._stopped = stopped
        self.name = f"{strategy.name}_x{count}"

    def search(self, problem: Any) -> Candidate:
        best = self._run(problem)
        if not self.report(best):
            return best
        for iteration in range(1, self._count):
            if self._stopped is not None and self._stopped():
                logger.info(f"[ITER] cancelled after {iteration} runs")
                break
            candidate = self._run(problem)
            if candidate.better_than(best):
                best = candidate
                if not self.report(best):
                    break
        return best

    def _run(self, problem: Any) -> Candidate:
        candidate = self._strategy.search(problem)
        if self._operator is not None:
            self._operator.apply(candidate)
        return candidate
