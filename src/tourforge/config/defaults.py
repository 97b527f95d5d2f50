"""Central repository for tunable search defaults.

All numerical values that influence operator acceptance, neighbourhood
pruning and metaheuristic stopping are collected here so they can be updated
from a single location without touching algorithmic code.  The constants are
exposed as frozen dataclasses to provide structure and discoverability while
keeping them easily serialisable.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional


@dataclass(frozen=True)
class LocalSearchParams:
    """Improvement thresholds shared by the local-search operators.

    A move is only reported as improving when it beats the current cost by
    more than the operator's epsilon, so floating-point noise never makes an
    operator oscillate between two equivalent tours.
    """

    two_opt_epsilon: float = 0.001
    three_opt_epsilon: float = 0.1
    shift_epsilon: float = 0.001
    direction_epsilon: float = 0.001
    or_opt_epsilon: float = 0.001
    or_opt_max_window: int = 3
    insertion_epsilon: float = 0.001

    def __post_init__(self) -> None:
        for name in (
            "two_opt_epsilon",
            "three_opt_epsilon",
            "shift_epsilon",
            "direction_epsilon",
            "or_opt_epsilon",
            "insertion_epsilon",
        ):
            if getattr(self, name) < 0.0:
                raise ValueError(f"{name} must be non-negative, got {getattr(self, name)}")
        if self.or_opt_max_window < 2:
            raise ValueError(f"or_opt_max_window must be at least 2, got {self.or_opt_max_window}")


@dataclass(frozen=True)
class NearestNeighbourParams:
    """Size and orientation of the neighbour lists used to prune 3-opt."""

    n: int = 10
    direction: str = "bidirectional"  # forward | backward | bidirectional
    use_for_three_opt: bool = True

    def __post_init__(self) -> None:
        if self.n <= 0:
            raise ValueError(f"n must be positive, got {self.n}")
        if self.direction not in ("forward", "backward", "bidirectional"):
            raise ValueError(f"Unknown neighbour direction: {self.direction}")


@dataclass(frozen=True)
class InsertionParams:
    """Removal fraction for the cheapest-reinsertion operator."""

    fraction: float = 0.1
    min_removed: int = 1

    def __post_init__(self) -> None:
        if not 0.0 < self.fraction <= 1.0:
            raise ValueError(f"fraction must be in (0, 1], got {self.fraction}")
        if self.min_removed < 1:
            raise ValueError(f"min_removed must be at least 1, got {self.min_removed}")


@dataclass(frozen=True)
class VNSParams:
    """Stopping rules for variable neighbourhood search."""

    max_iterations: int = 1000
    max_level: Optional[int] = None
    time_limit_s: Optional[float] = None
    until_stable: bool = True

    def __post_init__(self) -> None:
        if self.max_iterations < 0:
            raise ValueError(f"max_iterations must be non-negative, got {self.max_iterations}")
        if self.max_level is not None and self.max_level < 1:
            raise ValueError(f"max_level must be at least 1, got {self.max_level}")
        if self.time_limit_s is not None and self.time_limit_s <= 0.0:
            raise ValueError(f"time_limit_s must be positive, got {self.time_limit_s}")


@dataclass(frozen=True)
class GAParams:
    """Population sizing and stopping rules for the genetic algorithm.

    Percentages are expressed in ``[0, 100]`` like the rest of the search
    configuration.  ``crossover_operator`` picks the crossover of the
    TSP pipeline: ``"eax"`` (edge assembly) or ``"ox"`` (order crossover).
    """

    population_size: int = 100
    elitism_percentage: float = 1.0
    crossover_percentage: float = 10.0
    mutation_percentage: float = 0.0
    stagnation_count: int = 20
    max_generations: int = 500
    crossover_operator: str = "eax"
    eax_max_offspring: int = 10

    def __post_init__(self) -> None:
        if self.population_size < 2:
            raise ValueError(f"population_size must be at least 2, got {self.population_size}")
        for name in ("elitism_percentage", "crossover_percentage", "mutation_percentage"):
            value = getattr(self, name)
            if not 0.0 <= value <= 100.0:
                raise ValueError(f"{name} must be in [0, 100], got {value}")
        if self.stagnation_count < 1:
            raise ValueError(f"stagnation_count must be at least 1, got {self.stagnation_count}")
        if self.max_generations < 0:
            raise ValueError(f"max_generations must be non-negative, got {self.max_generations}")
        if self.crossover_operator not in ("eax", "ox"):
            raise ValueError(f"Unknown crossover operator: {self.crossover_operator}")
        if self.eax_max_offspring < 1:
            raise ValueError(f"eax_max_offspring must be at least 1, got {self.eax_max_offspring}")

    @property
    def elitism(self) -> int:
        return int(self.population_size * (self.elitism_percentage / 100.0))

    @property
    def crossover(self) -> int:
        return int(self.population_size * (self.crossover_percentage / 100.0))


@dataclass(frozen=True)
class TournamentParams:
    """Tournament selection: sample size (percent of population) and win probability."""

    size_percentage: float = 10.0
    probability: float = 0.5

    def __post_init__(self) -> None:
        if not 0.0 < self.size_percentage <= 100.0:
            raise ValueError(f"size_percentage must be in (0, 100], got {self.size_percentage}")
        if not 0.0 < self.probability <= 1.0:
            raise ValueError(f"probability must be in (0, 1], got {self.probability}")


@dataclass(frozen=True)
class AdaptiveSelectorParams:
    """Roulette-wheel rewards for adaptive local search.

    An improving operator scores ``sigma_improve``; when the search then keeps
    the result as its new best, the operators that got it there score
    ``sigma_best`` on top.  Failed draws score zero.  Scores follow Ropke &
    Pisinger (2006); each one pulls the weight towards it by ``decay_factor``.
    """

    initial_weight: float = 1.0
    decay_factor: float = 0.8
    sigma_best: float = 33.0
    sigma_improve: float = 13.0

    def __post_init__(self) -> None:
        if self.initial_weight <= 0.0:
            raise ValueError(f"initial_weight must be positive, got {self.initial_weight}")
        if not 0.0 <= self.decay_factor <= 1.0:
            raise ValueError(f"decay_factor must be in [0, 1], got {self.decay_factor}")
        if self.sigma_best < 0.0 or self.sigma_improve < 0.0:
            raise ValueError("rewards must be non-negative")


@dataclass(frozen=True)
class TimeWindowParams:
    """Cost of arriving after a window closes, per time unit of lateness."""

    lateness_penalty: float = 1000.0

    def __post_init__(self) -> None:
        if self.lateness_penalty < 0.0:
            raise ValueError(f"lateness_penalty must be non-negative, got {self.lateness_penalty}")


@dataclass(frozen=True)
class CVRPParams:
    """Construction and inter-tour move settings for no-depot vehicle routing.

    ``improvement_interval`` and ``remaining_threshold`` are fractions of the
    number of visits: tours are improved every ``improvement_interval`` of
    them placed, and once no more than ``remaining_threshold`` of them are left
    the generator first tries to fit them into existing tours.
    """

    epsilon: float = 0.001
    cross_exchange_window: int = 4
    cross_exchange_reversed: bool = True
    improvement_interval: float = 0.25
    remaining_threshold: float = 0.03

    def __post_init__(self) -> None:
        if self.epsilon < 0.0:
            raise ValueError(f"epsilon must be non-negative, got {self.epsilon}")
        if self.cross_exchange_window < 1:
            raise ValueError(f"cross_exchange_window must be at least 1, got {self.cross_exchange_window}")
        if not 0.0 < self.improvement_interval <= 1.0:
            raise ValueError(f"improvement_interval must be in (0, 1], got {self.improvement_interval}")
        if not 0.0 <= self.remaining_threshold <= 1.0:
            raise ValueError(f"remaining_threshold must be in [0, 1], got {self.remaining_threshold}")


@dataclass(frozen=True)
class SolverParams:
    """Bundle of every parameter block consumed by the default solver pipelines."""

    local_search: LocalSearchParams = field(default_factory=LocalSearchParams)
    nearest_neighbours: NearestNeighbourParams = field(default_factory=NearestNeighbourParams)
    insertion: InsertionParams = field(default_factory=InsertionParams)
    vns: VNSParams = field(default_factory=VNSParams)
    ga: GAParams = field(default_factory=GAParams)
    tournament: TournamentParams = field(default_factory=TournamentParams)
    adaptive: AdaptiveSelectorParams = field(default_factory=AdaptiveSelectorParams)
    time_windows: TimeWindowParams = field(default_factory=TimeWindowParams)
    cvrp: CVRPParams = field(default_factory=CVRPParams)


DEFAULT_LOCAL_SEARCH_PARAMS = LocalSearchParams()
DEFAULT_NEAREST_NEIGHBOUR_PARAMS = NearestNeighbourParams()
DEFAULT_INSERTION_PARAMS = InsertionParams()
DEFAULT_VNS_PARAMS = VNSParams()
DEFAULT_GA_PARAMS = GAParams()
DEFAULT_TOURNAMENT_PARAMS = TournamentParams()
DEFAULT_ADAPTIVE_SELECTOR_PARAMS = AdaptiveSelectorParams()
DEFAULT_TIME_WINDOW_PARAMS = TimeWindowParams()
DEFAULT_CVRP_PARAMS = CVRPParams()
DEFAULT_SOLVER_PARAMS = SolverParams()
