"""Sequences, random pools, candidates and objectives."""

import math
import threading

import pytest

from tourforge.core.candidate import Candidate
from tourforge.core.objective import WeightObjective, describe
from tourforge.core.randomness import RandomGenerator, RandomPool, default_generator, resolve
from tourforge.core.sequences import Seq
from tourforge.core.tour import Tour
from tourforge.problems.tsp import TSPObjective, TSProblem
from tourforge.problems.tsptw import TimeWindowObjective

from tests.common import ring_weights


def _lookup(weights):
    return lambda a, b: float(weights[a][b])


class TestSeq:
    """Seq windows keep their ends fixed and cost both orientations."""

    def test_build_costs_both_orientations(self):
        weights = [
            [0, 1, 5, 5],
            [5, 0, 2, 5],
            [5, 3, 0, 4],
            [5, 5, 5, 0],
        ]
        seq = Seq.build([0, 1, 2, 3], _lookup(weights))

        assert seq.between_travel_cost == 1 + 2 + 4
        # reversed inner part: 0 -> 2 -> 1 -> 3
        assert seq.between_travel_cost_reversed == 5 + 3 + 5
        assert seq.between == 7
        assert seq.reverse().between == 13

    def test_reversed_indexing_keeps_the_ends(self):
        seq = Seq.build([4, 5, 6, 7], _lookup(ring_weights(8))).reverse()

        assert [seq[index] for index in range(4)] == [4, 6, 5, 7]
        assert seq.inner == [6, 5]
        assert seq[-1] == 7
        assert str(seq) == "4->[6->5]->7"
        with pytest.raises(IndexError):
            seq[4]

    def test_visit_costs_count_inner_visits_only(self):
        seq = Seq.build([0, 1, 2], _lookup(ring_weights(3)), visit_cost=lambda visit: 100.0 * visit)

        assert seq.between_visit_cost == 100.0
        assert seq.total_original == seq.between_travel_cost + 100.0

    def test_from_tour_follows_the_tour(self):
        tour = Tour.closed([0, 3, 1, 2])
        seq = Seq.from_tour(tour, 1, 3, _lookup(ring_weights(4)))

        assert [seq[index] for index in range(len(seq))] == [1, 2, 0, 3]

    def test_too_short_raises(self):
        with pytest.raises(ValueError):
            Seq.build([1], _lookup(ring_weights(3)))


class TestRandomness:
    """Injected generators are reproducible; pools never repeat."""

    def test_seeded_generators_repeat(self):
        first = RandomGenerator(42)
        second = RandomGenerator(42)

        assert [first.generate(100) for _ in range(10)] == [second.generate(100) for _ in range(10)]

    def test_generate2_returns_distinct_values(self):
        random = RandomGenerator(3)
        for _ in range(200):
            a, b = random.generate2(3)
            assert a != b
            assert 0 <= a < 3 and 0 <= b < 3

    def test_invalid_ranges_raise(self):
        random = RandomGenerator(1)
        with pytest.raises(ValueError):
            random.generate(0)
        with pytest.raises(ValueError):
            random.generate2(1)
        with pytest.raises(ValueError):
            random.choice([])

    def test_pool_draws_every_value_once(self):
        pool = RandomPool(20, RandomGenerator(9))

        drawn = list(pool)

        assert sorted(drawn) == list(range(20))
        assert not pool.has_next()
        with pytest.raises(ValueError):
            pool.next()
        pool.reset()
        assert pool.remaining == 20

    def test_default_generator_is_per_thread(self):
        seen = []

        def record():
            seen.append(default_generator())

        worker = threading.Thread(target=record)
        worker.start()
        worker.join()

        assert default_generator() is default_generator()
        assert seen[0] is not default_generator()
        assert resolve(None) is default_generator()


class TestCandidate:
    """Candidates rank through their objective and clone their tour."""

    def _candidate(self, order):
        problem = TSProblem(ring_weights(5), first=0, last=0)
        return Candidate.build(problem, TSPObjective(), Tour.closed(order))

    def test_build_and_compare(self):
        good = self._candidate([0, 1, 2, 3, 4])
        bad = self._candidate([0, 3, 2, 1, 4])

        assert good.fitness == 50.0
        assert bad.fitness == 230.0
        assert good.better_than(bad)
        assert good < bad
        assert sorted([bad, good])[0] is good

    def test_clone_owns_its_tour(self):
        original = self._candidate([0, 1, 2, 3, 4])
        copy = original.clone()

        copy.solution.shift_after(1, 3)

        assert original.solution.to_list() == [0, 1, 2, 3, 4]
        assert copy.problem is original.problem
        assert copy.fitness == original.fitness

    def test_apply_delta_adds_for_continuous_objectives(self):
        candidate = self._candidate([0, 1, 2, 3, 4])

        assert candidate.apply_delta(5.0) == 55.0

    def test_apply_delta_recalculates_for_non_continuous_objectives(self):
        problem = TSProblem(ring_weights(5), first=0, last=0)
        candidate = Candidate(problem, _RecalculatingObjective(), Tour.closed([0, 1, 2, 3, 4]), 0.0)

        assert candidate.apply_delta(1234.0) == 50.0


class _RecalculatingObjective(TSPObjective):
    @property
    def is_non_continuous(self) -> bool:
        return True


def test_weight_objective_algebra():
    objective = TSPObjective()

    assert objective.zero == 0.0
    assert math.isinf(objective.infinite)
    assert objective.add(1.5, 2.0) == 3.5
    assert objective.subtract(1.5, 2.0) == -0.5
    assert objective.compare(1.0, 2.0) < 0
    assert objective.compare(2.0, 2.0) == 0
    assert objective.compare(3.0, 2.0) > 0
    assert objective.is_zero(0.0)
    assert objective.is_better(1.0, 2.0)
    assert isinstance(objective, WeightObjective)


def test_describe_reports_continuity():
    assert describe(TSPObjective()) == "TSP (continuous)"
    assert describe(TimeWindowObjective()) == "TSPTW (non-continuous)"
