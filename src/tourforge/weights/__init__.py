"""Weight matrices and nearest-neighbour lists."""

from .matrix import WeightMatrix, tour_weight
from .nearest import NearestNeighbourArray, NearestNeighbourCache, NeighbourDirection

__all__ = [
    "WeightMatrix",
    "tour_weight",
    "NearestNeighbourArray",
    "NearestNeighbourCache",
    "NeighbourDirection",
]
