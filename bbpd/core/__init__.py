"""Core data structures for 1D peridynamics simulation."""

from .particles import PointCloud
from .bonds import BondTopology, find_bonds

__all__ = [
    "PointCloud",
    "BondTopology",
    "find_bonds",
]
