"""Operator contracts, combinators and adaptive operator choice.

Operators improve a candidate in place and report whether they did; perturbers
deliberately move a candidate away from its local optimum by an amount set by
a neighbourhood level; crossover operators build a child from two parents.
Single-tour operators implement :meth:`TourOperator.apply_to_tour`, which
returns ``(improved, delta)`` with the exact signed change of the fitness, and
inherit the bookkeeping that keeps the candidate's fitness in sync.

Composition happens through the wrappers at the bottom of this module
(``ApplyUntil``, ``Iterate``, ``Concat``, ``RandomOperator`` and the adaptive
roulette wheel) rather than through subclassing.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections import defaultdict
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from ..config import AdaptiveSelectorParams, DEFAULT_ADAPTIVE_SELECTOR_PARAMS
from ..core.candidate import Candidate
from ..core.objective import Objective
from ..core.randomness import RandomGenerator, resolve
from ..core.tour import Tour

logger = logging.getLogger(__name__)


class Operator(ABC):
    """Improves a candidate in place."""

    name: str = "operator"

    @abstractmethod
    def apply(self, candidate: Candidate) -> bool:
        """Return True when the candidate was strictly improved."""

    def feedback(self, is_new_best: bool) -> None:
        """Told by the driving search whether its last result became the new best."""


class Perturber(ABC):
    """Diversifies a candidate; larger levels move it further."""

    name: str = "perturber"

    @abstractmethod
    def apply(self, candidate: Candidate, level: int) -> bool:
        ...


class CrossOverOperator(ABC):
    """Builds a child candidate from two parents."""

    name: str = "crossover"

    @abstractmethod
    def apply(self, parent1: Candidate, parent2: Candidate) -> Candidate:
        ...


class TourOperator(Operator):
    """Operator over a candidate whose solution is a single tour."""

    @abstractmethod
    def apply_to_tour(self, problem: Any, objective: Objective, tour: Tour) -> Tuple[bool, Any]:
        """Mutate ``tour`` and return ``(improved, delta)``."""

    def apply(self, candidate: Candidate) -> bool:
        improved, delta = self.apply_to_tour(candidate.problem, candidate.objective, candidate.solution)
        if improved or delta:
            candidate.apply_delta(delta)
        return improved


class TourPerturber(Perturber):
    """Perturber over a candidate whose solution is a single tour."""

    @abstractmethod
    def apply_to_tour(self, problem: Any, objective: Objective, tour: Tour, level: int) -> Tuple[bool, Any]:
        ...

    def apply(self, candidate: Candidate, level: int) -> bool:
        improved, delta = self.apply_to_tour(candidate.problem, candidate.objective, candidate.solution, level)
        candidate.apply_delta(delta)
        return improved


# ----------------------------------------------------------------------
# Combinators
# ----------------------------------------------------------------------
class FuncOperator(Operator):
    """Adapts a plain ``candidate -> bool`` function."""

    def __init__(self, func: Callable[[Candidate], bool], name: str = "func") -> None:
        self._func = func
        self.name = name

    def apply(self, candidate: Candidate) -> bool:
        return bool(self._func(candidate))


class ApplyUntil(Operator):
    """Repeats an operator until it stops improving."""

    def __init__(self, operator: Operator, max_rounds: Optional[int] = None) -> None:
        if max_rounds is not None and max_rounds < 1:
            raise ValueError(f"max_rounds must be at least 1, got {max_rounds}")
        self._operator = operator
        self._max_rounds = max_rounds
        self.name = f"{operator.name}_until"

    def apply(self, candidate: Candidate) -> bool:
        improved = False
        rounds = 0
        while self._max_rounds is None or rounds < self._max_rounds:
            if not self._operator.apply(candidate):
                break
            improved = True
            rounds += 1
        return improved

    def feedback(self, is_new_best: bool) -> None:
        self._operator.feedback(is_new_best)


class Iterate(Operator):
    """Applies an operator a fixed number of times."""

    def __init__(self, operator: Operator, count: int) -> None:
        if count < 1:
            raise ValueError(f"count must be at least 1, got {count}")
        self._operator = operator
        self._count = count
        self.name = f"{operator.name}_x{count}"

    def apply(self, candidate: Candidate) -> bool:
        improved = False
        for _ in range(self._count):
            if self._operator.apply(candidate):
                improved = True
        return improved

    def feedback(self, is_new_best: bool) -> None:
        self._operator.feedback(is_new_best)


class Concat(Operator):
    """Applies operators one after another; improved when any of them improved."""

    def __init__(self, operators: Sequence[Operator], until_stable: bool = False) -> None:
        if not operators:
            raise ValueError("operators must contain at least one entry")
        self._operators = list(operators)
        self._until_stable = until_stable
        self.name = "+".join(op.name for op in self._operators)

    def apply(self, candidate: Candidate) -> bool:
        improved = False
        while True:
            round_improved = False
            for operator in self._operators:
                if operator.apply(candidate):
                    round_improved = True
            improved = improved or round_improved
            if not (self._until_stable and round_improved):
                return improved

    def feedback(self, is_new_best: bool) -> None:
        for operator in self._operators:
            operator.feedback(is_new_best)


class RandomOperator(Operator):
    """Applies one operator drawn uniformly at random."""

    def __init__(self, operators: Sequence[Operator], random: Optional[RandomGenerator] = None) -> None:
        if not operators:
            raise ValueError("operators must contain at least one entry")
        self._operators = list(operators)
        self._random = resolve(random)
        self.name = "random(" + ",".join(op.name for op in self._operators) + ")"

    def apply(self, candidate: Candidate) -> bool:
        return self._random.choice(self._operators).apply(candidate)

    def feedback(self, is_new_best: bool) -> None:
        for operator in self._operators:
            operator.feedback(is_new_best)


class ObjectiveGuard(Operator):
    """Keeps the effect of an operator only when the objective strictly improves.

    Lets operators that optimise plain weight run under objectives with other
    components (lateness, unplaced visits) without ever making them worse.
    """

    def __init__(self, operator: Operator) -> None:
        self._operator = operator
        self.name = f"guarded_{operator.name}"

    def apply(self, candidate: Candidate) -> bool:
        backup = candidate.solution.clone()
        before = candidate.fitness
        self._operator.apply(candidate)
        candidate.recalculate()
        if candidate.objective.is_better(candidate.fitness, before):
            return True
        candidate.solution = backup
        candidate.fitness = before
        return False

    def feedback(self, is_new_best: bool) -> None:
        self._operator.feedback(is_new_best)


class OperatorAsPerturber(Perturber):
    """Uses an operator as a perturbation by applying it ``level`` times."""

    def __init__(self, operator: Operator) -> None:
        self._operator = operator
        self.name = operator.name

    def apply(self, candidate: Candidate, level: int) -> bool:
        improved = False
        for _ in range(max(1, level)):
            if self._operator.apply(candidate):
                improved = True
        return improved


# ----------------------------------------------------------------------
# Adaptive roulette-wheel choice
# ----------------------------------------------------------------------
@dataclass
class WheelStats:
    """Counters of one roulette-wheel entry."""

    draws: int
    improvements: int
    new_bests: int
    mean_gain: float
    weight: float

    @property
    def improvement_rate(self) -> float:
        return self.improvements / self.draws if self.draws else 0.0


class RouletteWheel:
    """Draws names with probability proportional to their weights.

    Every reward moves the weight of a name towards the reward's score by
    ``params.decay_factor``, so names that paid off recently are drawn more
    often while the others fade towards zero.
    """

    def __init__(
        self,
        names: Iterable[str],
        params: AdaptiveSelectorParams = DEFAULT_ADAPTIVE_SELECTOR_PARAMS,
        random: Optional[RandomGenerator] = None,
    ) -> None:
        self.names: List[str] = list(names)
        if not self.names:
            raise ValueError("names must contain at least one entry")
        self.params = params
        self.weights: Dict[str, float] = {name: params.initial_weight for name in self.names}
        self._draws: Dict[str, int] = defaultdict(int)
        self._improvements: Dict[str, int] = defaultdict(int)
        self._new_bests: Dict[str, int] = defaultdict(int)
        self._gain: Dict[str, float] = defaultdict(float)
        self._random = resolve(random)

    def spin(self, exclude: Iterable[str] = ()) -> Optional[str]:
        """Draw one name outside ``exclude``; None when every name is excluded."""

        skipped = set(exclude)
        names = [name for name in self.names if name not in skipped]
        if not names:
            return None
        total = sum(self.weights[name] for name in names)
        if total <= 0.0:
            chosen = self._random.choice(names)
        else:
            target = self._random.random() * total
            chosen = names[-1]
            for name in names:
                target -= self.weights[name]
                if target < 0.0:
                    chosen = name
                    break
        self._draws[chosen] += 1
        return chosen

    def reward(self, name: str, score: float) -> None:
        decay = self.params.decay_factor
        self.weights[name] = self.weights[name] * decay + score * (1.0 - decay)

    def record_improvement(self, name: str, gain: float) -> None:
        self._improvements[name] += 1
        self._gain[name] += gain
        self.reward(name, self.params.sigma_improve)

    def record_failure(self, name: str) -> None:
        self.reward(name, 0.0)

    def record_new_best(self, name: str) -> None:
        self._new_bests[name] += 1
        self.reward(name, self.params.sigma_best)

    def statistics(self) -> Dict[str, WheelStats]:
        return {
            name: WheelStats(
                draws=self._draws[name],
                improvements=self._improvements[name],
                new_bests=self._new_bests[name],
                mean_gain=self._gain[name] / self._improvements[name] if self._improvements[name] else 0.0,
                weight=self.weights[name],
            )
            for name in self.names
        }

    def summary(self) -> str:
        lines = [f"{'name':<16}{'draws':>7}{'improved':>10}{'best':>6}{'gain':>10}{'weight':>9}"]
        for name, stats in self.statistics().items():
            lines.append(
                f"{name:<16}{stats.draws:>7}{stats.improvements:>10}{stats.new_bests:>6}"
                f"{stats.mean_gain:>10.2f}{stats.weight:>9.2f}"
            )
        return "\n".join(lines)


class AdaptiveOperator(Operator):
    """Local search that tries its operators in roulette-wheel order.

    One call draws operators without replacement until one of them improves
    the candidate, so the call only fails in a local optimum of all of them.
    Operators that improved since the last :meth:`feedback` are rewarded a
    second time when the driving search reports that the result became its
    new best.
    """

    def __init__(
        self,
        operators: Sequence[Operator],
        params: AdaptiveSelectorParams = DEFAULT_ADAPTIVE_SELECTOR_PARAMS,
        random: Optional[RandomGenerator] = None,
    ) -> None:
        if not operators:
            raise ValueError("operators must contain at least one entry")
        self._by_name: Dict[str, Operator] = {}
        for operator in operators:
            if operator.name in self._by_name:
                raise ValueError(f"Duplicate operator name: {operator.name}")
            self._by_name[operator.name] = operator
        self.wheel = RouletteWheel(self._by_name, params, random)
        self._contributed: List[str] = []
        self.name = "adaptive(" + ",".join(self._by_name) + ")"

    def apply(self, candidate: Candidate) -> bool:
        tried: List[str] = []
        name = self.wheel.spin()
        while name is not None:
            before = candidate.fitness
            if self._by_name[name].apply(candidate):
                gain = _gain(before, candidate.fitness)
                self.wheel.record_improvement(name, gain)
                if name not in self._contributed:
                    self._contributed.append(name)
                logger.debug(f"[ADAPTIVE] {name} improved by {gain:.3f}")
                return True
            self.wheel.record_failure(name)
            tried.append(name)
            name = self.wheel.spin(exclude=tried)
        return False

    def feedback(self, is_new_best: bool) -> None:
        if is_new_best:
            for name in self._contributed:
                self.wheel.record_new_best(name)
        self._contributed = []
        for operator in self._by_name.values():
            operator.feedback(is_new_best)


def _gain(before: Any, after: Any) -> float:
    if isinstance(before, (int, float)) and isinstance(after, (int, float)):
        return float(before - after)
    return 0.0
