"""Leaf data structures: tours, directed ids, sequences, candidates and objectives."""

from .candidate import Candidate
from .directed import DirectedVisit, Direction, Turn
from .multitour import MultiTour
from .objective import Objective, WeightObjective
from .randomness import RandomGenerator, RandomPool, default_generator
from .sequences import Seq
from .tour import Pair, Tour, Triple

__all__ = [
    "Candidate",
    "DirectedVisit",
    "Direction",
    "Turn",
    "MultiTour",
    "Objective",
    "WeightObjective",
    "RandomGenerator",
    "RandomPool",
    "default_generator",
    "Seq",
    "Pair",
    "Tour",
    "Triple",
]
