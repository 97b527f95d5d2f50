"""TSP with time windows.

Weights are travel times.  Walking a tour from its first visit, the clock
advances by each travel time, waits when a visit is reached before its window
opens and records lateness when a visit is reached after its window closes.
The objective is travel time plus a steep penalty per unit of lateness, so a
feasible tour always beats an infeasible one of similar length.  Because a
single move can shift the clock for every later visit, the objective is
non-continuous and is recomputed after every move.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence, Tuple, Union

from ..config import DEFAULT_SOLVER_PARAMS, DEFAULT_TIME_WINDOW_PARAMS, SolverParams, TimeWindowParams
from ..core.candidate import Candidate
from ..core.objective import WeightObjective
from ..core.randomness import RandomGenerator, resolve
from ..core.tour import Tour
from ..planner.local_search import OrOptOperator, TwoOptOperator
from ..planner.operators import Concat, ObjectiveGuard, TourOperator
from ..planner.shift import RandomShiftPerturber, movable_visits
from ..planner.strategy import NewBestHook
from ..planner.vns import VNSStrategy
from ..weights.matrix import MatrixLike, WeightMatrix
from .tsp import RandomTourGenerator, TSProblem

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TimeWindow:
    """Earliest and latest service start at a visit."""

    min: float = 0.0
    max: float = math.inf

    def __post_init__(self) -> None:
        if self.min > self.max:
            raise ValueError(f"Time window opens after it closes: [{self.min}, {self.max}]")

    @property
    def is_unbounded(self) -> bool:
        return self.min <= 0.0 and self.max == math.inf


@dataclass
class TimeWindowReport:
    """Outcome of walking a tour against the windows."""

    travel: float = 0.0
    wait: float = 0.0
    lateness: float = 0.0
    late_visits: List[int] = field(default_factory=list)

    @property
    def feasible(self) -> bool:
        return not self.late_visits


class TSPTWProblem(TSProblem):
    def __init__(
        self,
        weights: Union[WeightMatrix, MatrixLike],
        windows: Sequence[TimeWindow],
        first: int = 0,
        last: Optional[int] = None,
        visits: Optional[Sequence[int]] = None,
    ) -> None:
        super().__init__(weights, first, last, visits)
        if len(windows) != self.size:
            raise ValueError(f"Expected {self.size} time windows, got {len(windows)}")
        self.windows = tuple(windows)

    def closed_equivalent(self) -> "TSPTWProblem":
        if self.is_closed:
            return self
        raise ValueError("Time-window problems are solved on their own tours")

    def evaluate(self, tour: Tour) -> TimeWindowReport:
        report = TimeWindowReport()
        time = 0.0
        previous: Optional[int] = None
        for visit in tour:
            if previous is not None:
                travel = self.weight(previous, visit)
                report.travel += travel
                time += travel
            window = self.windows[visit]
            if time < window.min:
                report.wait += window.min - time
                time = window.min
            if time > window.max:
                report.lateness += time - window.max
                report.late_visits.append(visit)
            previous = visit
        if tour.is_closed and previous is not None and tour.count > 1:
            report.travel += self.weight(previous, tour.first)
        return report


class TimeWindowObjective(WeightObjective):
    """Travel time plus ``lateness_penalty`` per unit of lateness."""

    name = "TSPTW"

    def __init__(self, params: TimeWindowParams = DEFAULT_TIME_WINDOW_PARAMS) -> None:
        self.params = params

    @property
    def is_non_continuous(self) -> bool:
        return True

    def calculate(self, problem: TSPTWProblem, solution: Tour) -> float:
        report = problem.evaluate(solution)
        return report.travel + self.params.lateness_penalty * report.lateness


class FeasibleTimeWindowObjective(WeightObjective):
    """Lateness only; zero for every feasible tour."""

    name = "TSPTW_FEASIBLE"

    @property
    def is_non_continuous(self) -> bool:
        return True

    def calculate(self, problem: TSPTWProblem, solution: Tour) -> float:
        return problem.evaluate(solution).lateness


class TimeWindowShiftOperator(TourOperator):
    """First-improvement 1-shift judged by the objective.

    Late visits are tried first, moved towards the start of the tour; after
    that every visit is tried at every position.
    """

    name = "tw1shift"

    def apply_to_tour(self, problem: TSPTWProblem, objective: WeightObjective, tour: Tour) -> Tuple[bool, float]:
        before = objective.calculate(problem, tour)
        late = [visit for visit in problem.evaluate(tour).late_visits if visit in movable_visits(tour)]
        for visit in late:
            for new_before in list(tour.between(tour.first, visit)) + [tour.first]:
                result = self._try(problem, objective, tour, visit, new_before, before)
                if result is not None:
                    return True, result
        for visit in movable_visits(tour):
            for new_before in tour.to_list():
                result = self._try(problem, objective, tour, visit, new_before, before)
                if result is not None:
                    return True, result
        return False, 0.0

    def _try(
        self,
        problem: TSPTWProblem,
        objective: WeightObjective,
        tour: Tour,
        visit: int,
        new_before: int,
        before: float,
    ) -> Optional[float]:
        if new_before == visit or (tour.has_fixed_last and new_before == tour.last):
            return None
        old_before = tour.previous(visit)
        if old_before == new_before:
            return None
        tour.shift_after(visit, new_before)
        after = objective.calculate(problem, tour)
        if objective.is_better(after, before):
            logger.debug(f"[TW] moved {visit} after {new_before}: {before:.2f} -> {after:.2f}")
            return after - before
        tour.shift_after(visit, old_before)
        return None


def build_vns(
    problem: TSPTWProblem,
    params: SolverParams = DEFAULT_SOLVER_PARAMS,
    random: Optional[RandomGenerator] = None,
    on_new_best: Optional[NewBestHook] = None,
    stopped: Optional[Callable[[], bool]] = None,
) -> VNSStrategy:
    random = resolve(random)
    objective = TimeWindowObjective(params.time_windows)
    local_search = Concat(
        [
            TimeWindowShiftOperator(),
            ObjectiveGuard(TwoOptOperator(params.local_search)),
            ObjectiveGuard(OrOptOperator(params.local_search)),
        ],
        until_stable=True,
    )
    return VNSStrategy(
        generator=RandomTourGenerator(objective, random),
        perturber=RandomShiftPerturber(random, params.local_search),
        local_search=local_search,
        params=params.vns,
        stopped=stopped,
        on_new_best=on_new_best,
    )


def solve(
    problem: TSPTWProblem,
    params: SolverParams = DEFAULT_SOLVER_PARAMS,
    random: Optional[RandomGenerator] = None,
    on_new_best: Optional[NewBestHook] = None,
    stopped: Optional[Callable[[], bool]] = None,
) -> Candidate:
    best = build_vns(problem, params, random, on_new_best, stopped).search(problem)
    report = problem.evaluate(best.solution)
    if not report.feasible:
        logger.warning(f"[TSPTW] best tour is late at {len(report.late_visits)} visits ({report.lateness:.2f})")
    return best
