"""Operators, combinators and search strategies."""

from .crossover import EdgeAssemblyCrossover, OrderCrossover, ab_cycles, edge_assembly_crossover, order_crossover
from .directed_search import (
    DirectedCheapestReinsertionOperator,
    DirectionLocalSearchOperator,
    TurnOptimizationOperator,
    cheapest_insertion_directed,
    direction_local_search,
    optimize_turns,
)
from .ga import GAStrategy, Selector, TournamentSelector
from .insertion import (
    CheapestReinsertionOperator,
    build_cheapest_insertion,
    cheapest_position,
    cheapest_reinsertion,
    insert_cheapest,
)
from .local_search import (
    DontLookBits,
    OrOptOperator,
    ThreeOptOperator,
    TwoOptOperator,
    or_opt,
    three_opt,
    two_opt,
)
from .operators import (
    AdaptiveOperator,
    RouletteWheel,
    WheelStats,
    ApplyUntil,
    Concat,
    CrossOverOperator,
    FuncOperator,
    Iterate,
    ObjectiveGuard,
    Operator,
    OperatorAsPerturber,
    Perturber,
    RandomOperator,
    TourOperator,
    TourPerturber,
)
from .shift import LocalOneShiftOperator, RandomShiftPerturber, local_one_shift, random_shift, shift_delta
from .strategy import FuncStrategy, IterativeStrategy, SearchFailedError, Strategy, StrategyThenOperator
from .vns import VNSStrategy

__all__ = [
    "EdgeAssemblyCrossover",
    "OrderCrossover",
    "ab_cycles",
    "edge_assembly_crossover",
    "order_crossover",
    "DirectedCheapestReinsertionOperator",
    "DirectionLocalSearchOperator",
    "TurnOptimizationOperator",
    "cheapest_insertion_directed",
    "direction_local_search",
    "optimize_turns",
    "GAStrategy",
    "Selector",
    "TournamentSelector",
    "CheapestReinsertionOperator",
    "build_cheapest_insertion",
    "cheapest_position",
    "cheapest_reinsertion",
    "insert_cheapest",
    "DontLookBits",
    "OrOptOperator",
    "ThreeOptOperator",
    "TwoOptOperator",
    "or_opt",
    "three_opt",
    "two_opt",
    "AdaptiveOperator",
    "RouletteWheel",
    "WheelStats",
    "ApplyUntil",
    "Concat",
    "CrossOverOperator",
    "FuncOperator",
    "Iterate",
    "ObjectiveGuard",
    "Operator",
    "OperatorAsPerturber",
    "Perturber",
    "RandomOperator",
    "TourOperator",
    "TourPerturber",
    "LocalOneShiftOperator",
    "RandomShiftPerturber",
    "local_one_shift",
    "random_shift",
    "shift_delta",
    "FuncStrategy",
    "IterativeStrategy",
    "SearchFailedError",
    "Strategy",
    "StrategyThenOperator",
    "VNSStrategy",
]
