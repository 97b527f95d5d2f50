"""Time windows: evaluation, objective, repair operator and solver."""

import logging
import math

import pytest

from tourforge.config import SolverParams, TimeWindowParams, VNSParams
from tourforge.core.candidate import Candidate
from tourforge.core.randomness import RandomGenerator
from tourforge.core.tour import Tour
from tourforge.problems import tsptw
from tourforge.problems.tsptw import (
    FeasibleTimeWindowObjective,
    TimeWindow,
    TimeWindowObjective,
    TimeWindowShiftOperator,
    TSPTWProblem,
)
from tourforge.weights.matrix import WeightMatrix


def _line_problem(positions, windows, last=None):
    points = [(float(position), 0.0) for position in positions]
    return TSPTWProblem(WeightMatrix.from_points(points), windows, first=0, last=last)


def test_time_window_validation():
    assert TimeWindow().is_unbounded
    assert not TimeWindow(5.0, 10.0).is_unbounded
    assert TimeWindow(3.0, 3.0).max == 3.0
    with pytest.raises(ValueError):
        TimeWindow(10.0, 5.0)


def test_problem_needs_one_window_per_visit():
    with pytest.raises(ValueError):
        _line_problem([0, 5, 10], [TimeWindow(), TimeWindow()])


def test_evaluate_waits_and_records_lateness():
    problem = _line_problem([0, 5, 10], [TimeWindow(), TimeWindow(10.0, 20.0), TimeWindow(0.0, 12.0)])

    report = problem.evaluate(Tour([0, 1, 2]))

    # arrive at 1 at 5 and wait until 10; arrive at 2 at 15, three late
    assert report.travel == pytest.approx(10.0)
    assert report.wait == pytest.approx(5.0)
    assert report.lateness == pytest.approx(3.0)
    assert report.late_visits == [2]
    assert not report.feasible


def test_evaluate_counts_the_return_edge_of_closed_tours():
    problem = _line_problem([0, 5, 10], [TimeWindow()] * 3, last=0)

    report = problem.evaluate(Tour.closed([0, 1, 2]))

    assert report.travel == pytest.approx(20.0)
    assert report.feasible


def test_objective_penalises_each_unit_of_lateness():
    problem = _line_problem([0, 5, 10], [TimeWindow(), TimeWindow(10.0, 20.0), TimeWindow(0.0, 12.0)])
    tour = Tour([0, 1, 2])

    assert TimeWindowObjective().calculate(problem, tour) == pytest.approx(10.0 + 1000.0 * 3.0)
    assert TimeWindowObjective(TimeWindowParams(lateness_penalty=2.0)).calculate(problem, tour) == pytest.approx(16.0)
    assert FeasibleTimeWindowObjective().calculate(problem, tour) == pytest.approx(3.0)
    assert TimeWindowObjective().is_non_continuous


def test_shift_operator_moves_late_visits_forward():
    windows = [TimeWindow(), TimeWindow(), TimeWindow(), TimeWindow(0.0, 15.0)]
    problem = _line_problem([0, 10, 20, 5], windows)
    candidate = Candidate.build(problem, TimeWindowObjective(), Tour([0, 1, 2, 3]))

    assert TimeWindowShiftOperator().apply(candidate)

    assert candidate.solution.to_list() == [0, 1, 3, 2]
    assert problem.evaluate(candidate.solution).feasible
    assert candidate.fitness == pytest.approx(30.0)


def test_shift_operator_reports_local_optima():
    problem = _line_problem([0, 10, 20], [TimeWindow()] * 3)
    candidate = Candidate.build(problem, TimeWindowObjective(), Tour([0, 1, 2]))

    assert not TimeWindowShiftOperator().apply(candidate)
    assert candidate.fitness == pytest.approx(20.0)


def test_closed_equivalent_only_exists_for_closed_problems():
    closed = _line_problem([0, 5], [TimeWindow()] * 2, last=0)

    assert closed.closed_equivalent() is closed
    with pytest.raises(ValueError):
        _line_problem([0, 5], [TimeWindow()] * 2).closed_equivalent()


@pytest.mark.parametrize("seed", [1, 2, 3])
def test_solve_finds_the_only_feasible_order(seed):
    # reaching visit i after any later visit is always too late
    windows = [TimeWindow(0.0, 10.0 * visit + 1.0) for visit in range(6)]
    problem = _line_problem([10 * visit for visit in range(6)], windows)
    params = SolverParams(vns=VNSParams(max_iterations=100))

    best = tsptw.solve(problem, params, RandomGenerator(seed))

    assert best.solution.to_list() == [0, 1, 2, 3, 4, 5]
    assert problem.evaluate(best.solution).feasible
    assert best.fitness == pytest.approx(50.0)


def test_solve_warns_when_nothing_is_feasible(caplog):
    windows = [TimeWindow(), TimeWindow(0.0, 1.0), TimeWindow(0.0, math.inf)]
    problem = _line_problem([0, 10, 20], windows)
    params = SolverParams(vns=VNSParams(max_iterations=10))

    with caplog.at_level(logging.WARNING):
        best = tsptw.solve(problem, params, RandomGenerator(1))

    assert not problem.evaluate(best.solution).feasible
    assert "[TSPTW]" in caplog.text
