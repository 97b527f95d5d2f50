"""Tour planning: local search, VNS and GA over visit sequences."""

from .core import Candidate, Objective, RandomGenerator, Tour, WeightObjective
from .planner import GAStrategy, SearchFailedError, VNSStrategy
from .problems import STSProblem, TSPDProblem, TSProblem, TSPTWProblem, TimeWindow
from .weights import WeightMatrix

__version__ = "0.1.0"

__all__ = [
    "Candidate",
    "Objective",
    "RandomGenerator",
    "Tour",
    "WeightObjective",
    "GAStrategy",
    "SearchFailedError",
    "VNSStrategy",
    "STSProblem",
    "TSPDProblem",
    "TSProblem",
    "TSPTWProblem",
    "TimeWindow",
    "WeightMatrix",
]
