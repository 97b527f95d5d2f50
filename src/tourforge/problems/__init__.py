"""Problem models and their default solver pipelines."""

from .cvrp import CapacityConstraint, NoDepotCVRPObjective, NoDepotCVRProblem, SeededCheapestInsertion
from .stsp import STSPFitness, STSPObjective, STSProblem
from .tsp import BruteForceSolver, CheapestInsertionGenerator, RandomTourGenerator, TSPObjective, TSProblem
from .tspd import DirectedTSPObjective, TSPDProblem
from .tsptw import TimeWindow, TimeWindowObjective, TimeWindowReport, TSPTWProblem

__all__ = [
    "CapacityConstraint",
    "NoDepotCVRPObjective",
    "NoDepotCVRProblem",
    "SeededCheapestInsertion",
    "STSPFitness",
    "STSPObjective",
    "STSProblem",
    "BruteForceSolver",
    "CheapestInsertionGenerator",
    "RandomTourGenerator",
    "TSPObjective",
    "TSProblem",
    "DirectedTSPObjective",
    "TSPDProblem",
    "TimeWindow",
    "TimeWindowObjective",
    "TimeWindowReport",
    "TSPTWProblem",
]
