"""Basic variable neighbourhood search.

The search starts from a generated candidate, brings it to a local optimum
with the local search operator and then loops: perturb a clone of the best
candidate at the current level, improve it to a local optimum and keep it
only when strictly better.  Success resets the level to 1, failure widens it
by one.  Worse candidates are never accepted, so the sequence of reported
bests is monotone.
After every decision the local search is told through
:meth:`Operator.feedback` whether its result became the new best.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Callable, Optional

from ..config import DEFAULT_VNS_PARAMS, VNSParams
from ..core.candidate import Candidate
from ..core.objective import describe
from .operators import Operator, Perturber
from .strategy import NewBestHook, StopCondition, Strategy

logger = logging.getLogger(__name__)


class VNSStrategy(Strategy):
    """Generator + perturber + local search, accepting strict improvements only."""

    name = "VNS"

    def __init__(
        self,
        generator: Strategy,
        perturber: Perturber,
        local_search: Operator,
        params: VNSParams = DEFAULT_VNS_PARAMS,
        stop_condition: Optional[StopCondition] = None,
        stopped: Optional[Callable[[], bool]] = None,
        on_new_best: Optional[NewBestHook] = None,
    ) -> None:
        super().__init__(on_new_best)
        self._generator = generator
        self._perturber = perturber
        self._local_search = local_search
        self.params = params
        self._stop_condition = stop_condition
        self._stopped = stopped
        self.iterations = 0

    def search(self, problem: Any) -> Candidate:
        best = self._generator.search(problem)
        logger.info(
            f"[VNS] initial {best.fitness} from {self._generator.name} using {describe(best.objective)}"
        )
        if not self.report(best):
            return best
        improved = self._improve(best)
        self._local_search.feedback(True)
        if improved:
            logger.debug(f"[VNS] local search improved the initial candidate to {best.fitness}")
            if not self.report(best):
                return best

        level = 1
        iteration = 0
        started = time.perf_counter()
        while not self._should_stop(best, iteration, level, started):
            current = best.clone()
            self._perturber.apply(current, level)
            self._improve(current)

            accepted = current.better_than(best)
            self._local_search.feedback(accepted)
            if accepted:
                logger.debug(f"[VNS] iteration {iteration}: new best {current.fitness} at level {level}")
                best = current
                level = 1
                if not self.report(best):
                    iteration += 1
                    break
            else:
                level += 1
            iteration += 1

        self.iterations = iteration
        logger.info(f"[VNS] finished after {iteration} iterations with best {best.fitness}")
        return best

    def _improve(self, candidate: Candidate) -> bool:
        if not self.params.until_stable:
            return self._local_search.apply(candidate)
        improved = False
        while self._local_search.apply(candidate):
            improved = True
        return improved

    def _should_stop(self, best: Candidate, iteration: int, level: int, started: float) -> bool:
        if self._stopped is not None and self._stopped():
            logger.info(f"[VNS] cancelled at iteration {iteration}")
            return True
        if iteration >= self.params.max_iterations:
            return True
        if self.params.max_level is not None and level > self.params.max_level:
            return True
        if self.params.time_limit_s is not None and time.perf_counter() - started >= self.params.time_limit_s:
            logger.info(f"[VNS] time limit reached at iteration {iteration}")
            return True
        if self._stop_condition is not None and self._stop_condition(best, iteration, level):
            return True
        return False
