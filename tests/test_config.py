"""Parameter blocks validate themselves on construction."""

import dataclasses

import pytest

from tourforge.config import (
    DEFAULT_SOLVER_PARAMS,
    AdaptiveSelectorParams,
    CVRPParams,
    GAParams,
    InsertionParams,
    LocalSearchParams,
    NearestNeighbourParams,
    SolverParams,
    TimeWindowParams,
    TournamentParams,
    VNSParams,
)


@pytest.mark.parametrize(
    "factory",
    [
        lambda: LocalSearchParams(two_opt_epsilon=-0.1),
        lambda: LocalSearchParams(or_opt_max_window=1),
        lambda: NearestNeighbourParams(n=0),
        lambda: NearestNeighbourParams(direction="sideways"),
        lambda: InsertionParams(fraction=0.0),
        lambda: InsertionParams(min_removed=0),
        lambda: VNSParams(max_iterations=-1),
        lambda: VNSParams(max_level=0),
        lambda: VNSParams(time_limit_s=0.0),
        lambda: GAParams(population_size=1),
        lambda: GAParams(mutation_percentage=101.0),
        lambda: GAParams(stagnation_count=0),
        lambda: GAParams(crossover_operator="pmx"),
        lambda: GAParams(eax_max_offspring=0),
        lambda: TournamentParams(size_percentage=0.0),
        lambda: TournamentParams(probability=1.5),
        lambda: AdaptiveSelectorParams(initial_weight=0.0),
        lambda: AdaptiveSelectorParams(decay_factor=1.2),
        lambda: AdaptiveSelectorParams(sigma_best=-1.0),
        lambda: TimeWindowParams(lateness_penalty=-1.0),
        lambda: CVRPParams(cross_exchange_window=0),
        lambda: CVRPParams(improvement_interval=0.0),
        lambda: CVRPParams(remaining_threshold=1.5),
    ],
)
def test_invalid_values_raise(factory):
    with pytest.raises(ValueError):
        factory()


def test_ga_counts_follow_the_percentages():
    params = GAParams(population_size=50, elitism_percentage=4.0, crossover_percentage=30.0)

    assert params.elitism == 2
    assert params.crossover == 15
    assert GAParams().elitism == 1
    assert GAParams().crossover == 10


def test_params_are_frozen():
    with pytest.raises(dataclasses.FrozenInstanceError):
        DEFAULT_SOLVER_PARAMS.vns.max_iterations = 5


def test_solver_params_bundle_defaults():
    params = SolverParams(vns=VNSParams(max_iterations=10))

    assert params.vns.max_iterations == 10
    assert params.ga == GAParams()
    assert params.time_windows.lateness_penalty == 1000.0
    assert params.local_search.three_opt_epsilon == 0.1
