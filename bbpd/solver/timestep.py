"""Stable time step estimation for explicit bond-based peridynamics."""

import logging
from typing import TYPE_CHECKING

import numpy as np

from ..errors import DegenerateTopologyError

if TYPE_CHECKING:
    from ..core.bonds import BondTopology
    from ..core.particles import PointCloud
    from ..material.bond_based import BondBasedMaterial

logger = logging.getLogger(__name__)

SAFETY_FACTOR = 0.7


def critical_timesteps(
    point_cloud: "PointCloud",
    material: "BondBasedMaterial",
    topology: "BondTopology",
) -> np.ndarray:
    """Per-point critical time step.

    dt_i = sqrt(2 * rho / sum_j(V_j * c / |xi_ij|))

    Points without bonds get ``inf``.
    """
    weights = point_cloud.volume[topology.neighbor] * material.bond_constant / topology.initial_length
    dtsum = np.bincount(topology.owners(), weights=weights, minlength=topology.n_points)

    timesteps = np.full(topology.n_points, np.inf, dtype=np.float64)
    bonded = dtsum > 0
    timesteps[bonded] = np.sqrt(2.0 * material.density / dtsum[bonded])
    return timesteps


def calc_stable_timestep(
    point_cloud: "PointCloud",
    material: "BondBasedMaterial",
    topology: "BondTopology",
    safety_factor: float = SAFETY_FACTOR,
) -> float:
    """Global stable time step (CFL-like bound).

    dt = safety_factor * min_i dt_i

    Args:
        point_cloud: Reference point cloud
        material: Bond-based material
        topology: Bond topology of the point cloud
        safety_factor: Fraction of the theoretical bound (default 0.7)

    Returns:
        Stable time step [s]

    Raises:
        DegenerateTopologyError: no point has a bond, or a bond has zero
            reference length
    """
    if topology.n_bonds > 0 and np.any(topology.initial_length <= 0):
        raise DegenerateTopologyError("bond with zero reference length (coincident points)")

    timesteps = critical_timesteps(point_cloud, material, topology)
    if timesteps.size == 0 or not np.any(np.isfinite(timesteps)):
        raise DegenerateTopologyError(
            "no bonds within the horizon: stable time step is undefined "
            f"(n_points={topology.n_points}, horizon={material.horizon:g})"
        )

    n_isolated = int(np.sum(~np.isfinite(timesteps)))
    if n_isolated:
        logger.warning(f"{n_isolated} point(s) have no bonds and move freely")

    dt = safety_factor * float(np.min(timesteps))
    logger.info(f"Stable time step: dt={dt:.6e} (safety factor {safety_factor})")
    return dt
