"""Bond topology for 1D peridynamics using CSR (index-range) storage.

Every point owns a contiguous slice ``bond_start[i]:bond_end[i]`` of the flat
``neighbor`` / ``initial_length`` arrays. Both directions of a bond are
discovered independently by the pairwise scan, so the topology is symmetric
in aggregate without any mirroring step.
"""

import logging
from typing import TYPE_CHECKING

import numpy as np
import taichi as ti

from ..errors import DegenerateTopologyError

if TYPE_CHECKING:
    from .particles import PointCloud

logger = logging.getLogger(__name__)


class BondTopology:
    """Flat bond arrays partitioned by per-point index ranges.

    Attributes:
        n_points: Number of points
        n_bonds: Total number of directed bonds
        neighbor: Other endpoint of each bond (n_bonds,)
        initial_length: Reference bond length |xi| (n_bonds,)
        bond_start: First bond index of each point (n_points,)
        bond_end: One past the last bond index of each point (n_points,)
    """

    def __init__(
        self,
        neighbor: np.ndarray,
        initial_length: np.ndarray,
        bond_start: np.ndarray,
        bond_end: np.ndarray,
    ):
        self.neighbor = np.asarray(neighbor, dtype=np.int32)
        self.initial_length = np.asarray(initial_length, dtype=np.float64)
        self.bond_start = np.asarray(bond_start, dtype=np.int32)
        self.bond_end = np.asarray(bond_end, dtype=np.int32)
        self.n_points = len(self.bond_start)
        self.n_bonds = len(self.neighbor)

        if len(self.initial_length) != self.n_bonds or len(self.bond_end) != self.n_points:
            raise DegenerateTopologyError("bond arrays have inconsistent lengths")

    @classmethod
    def build(cls, point_cloud: "PointCloud", horizon: float) -> "BondTopology":
        """Build bonds by O(n^2) pairwise scan.

        A bond i -> j exists for i != j whenever |X_j - X_i| <= horizon.
        Construction is two-pass: count bonds per point, exclusive prefix
        sum for the ranges, then fill.

        Args:
            point_cloud: Reference point cloud
            horizon: Peridynamic horizon delta
        """
        n = point_cloud.n_points
        position = np.ascontiguousarray(point_cloud.position, dtype=np.float64)

        counts = np.zeros(n, dtype=np.int32)
        if n > 0:
            _count_bonds(position, float(horizon), counts)

        bond_end = np.cumsum(counts, dtype=np.int64).astype(np.int32)
        bond_start = (bond_end - counts).astype(np.int32)
        n_bonds = int(bond_end[-1]) if n > 0 else 0

        neighbor = np.zeros(n_bonds, dtype=np.int32)
        initial_length = np.zeros(n_bonds, dtype=np.float64)
        filled = np.zeros(n, dtype=np.int32)
        if n_bonds > 0:
            _fill_bonds(position, float(horizon), bond_start, neighbor, initial_length, filled)

        # Ranges must partition the bond arrays exactly
        if not np.array_equal(filled, counts) or int(filled.sum()) != n_bonds:
            raise DegenerateTopologyError(
                f"bond construction mismatch: counted {n_bonds}, filled {int(filled.sum())}"
            )

        logger.info(f"Bond topology: {n} points, {n_bonds} bonds (horizon={horizon:g})")
        return cls(neighbor, initial_length, bond_start, bond_end)

    def counts(self) -> np.ndarray:
        """Number of bonds owned by each point."""
        return (self.bond_end - self.bond_start).astype(np.int64)

    def owners(self) -> np.ndarray:
        """Owning point of each bond (n_bonds,)."""
        return np.repeat(np.arange(self.n_points), self.counts())

    def bonds_of(self, i: int) -> range:
        """Bond index range owned by point i."""
        return range(int(self.bond_start[i]), int(self.bond_end[i]))

    def neighbors_of(self, i: int) -> np.ndarray:
        """Partner indices of point i."""
        return self.neighbor[self.bond_start[i]:self.bond_end[i]]

    def isolated_points(self) -> np.ndarray:
        """Indices of points without any bond."""
        return np.flatnonzero(self.counts() == 0)

    def __repr__(self) -> str:
        return f"BondTopology(n_points={self.n_points}, n_bonds={self.n_bonds})"


@ti.kernel
def _count_bonds(
    position: ti.types.ndarray(),
    horizon: ti.f64,
    counts: ti.types.ndarray(),
):
    """Count partners within the horizon for every point."""
    for i in range(position.shape[0]):
        c = 0
        for j in range(position.shape[0]):
            if i != j and ti.abs(position[j] - position[i]) <= horizon:
                c += 1
        counts[i] = c


@ti.kernel
def _fill_bonds(
    position: ti.types.ndarray(),
    horizon: ti.f64,
    bond_start: ti.types.ndarray(),
    neighbor: ti.types.ndarray(),
    initial_length: ti.types.ndarray(),
    filled: ti.types.ndarray(),
):
    """Write bonds of point i into its range, partners in ascending order."""
    for i in range(position.shape[0]):
        k = bond_start[i]
        for j in range(position.shape[0]):
            if i != j:
                L = ti.abs(position[j] - position[i])
                if L <= horizon:
                    neighbor[k] = j
                    initial_length[k] = L
                    k += 1
        filled[i] = k - bond_start[i]


def find_bonds(point_cloud: "PointCloud", horizon: float) -> BondTopology:
    """Shorthand for :meth:`BondTopology.build`."""
    return BondTopology.build(point_cloud, horizon)
