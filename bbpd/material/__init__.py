"""Material models for peridynamics."""

from .bond_based import BondBasedMaterial

__all__ = [
    "BondBasedMaterial",
]
