"""Tunable defaults for operators, strategies and problem pipelines."""

from .defaults import (
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
    DEFAULT_ADAPTIVE_SELECTOR_PARAMS,
    DEFAULT_CVRP_PARAMS,
    DEFAULT_GA_PARAMS,
    DEFAULT_INSERTION_PARAMS,
    DEFAULT_LOCAL_SEARCH_PARAMS,
    DEFAULT_NEAREST_NEIGHBOUR_PARAMS,
    DEFAULT_SOLVER_PARAMS,
    DEFAULT_TIME_WINDOW_PARAMS,
    DEFAULT_TOURNAMENT_PARAMS,
    DEFAULT_VNS_PARAMS,
)

__all__ = [
    "AdaptiveSelectorParams",
    "CVRPParams",
    "GAParams",
    "InsertionParams",
    "LocalSearchParams",
    "NearestNeighbourParams",
    "SolverParams",
    "TimeWindowParams",
    "TournamentParams",
    "VNSParams",
    "DEFAULT_ADAPTIVE_SELECTOR_PARAMS",
    "DEFAULT_CVRP_PARAMS",
    "DEFAULT_GA_PARAMS",
    "DEFAULT_INSERTION_PARAMS",
    "DEFAULT_LOCAL_SEARCH_PARAMS",
    "DEFAULT_NEAREST_NEIGHBOUR_PARAMS",
    "DEFAULT_SOLVER_PARAMS",
    "DEFAULT_TIME_WINDOW_PARAMS",
    "DEFAULT_TOURNAMENT_PARAMS",
    "DEFAULT_VNS_PARAMS",
]
