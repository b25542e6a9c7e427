"""1D bond-based peridynamics with explicit time integration (Taichi).

Material points on a bar interact through pairwise bonds within a finite
horizon; a velocity Verlet scheme advances position, velocity and internal
force density.
"""

from .core.particles import PointCloud
from .core.bonds import BondTopology, find_bonds
from .material.bond_based import BondBasedMaterial
from .solver.boundary import VelocityBC
from .solver.explicit import ExplicitSolver, SolverState, UpdateOrder
from .solver.timestep import calc_stable_timestep
from .simulation import SimulationResult, simulate
from .errors import BBPDError, ConfigurationError, DegenerateTopologyError
from .runtime import init, Backend

__version__ = "0.1.0"

__all__ = [
    "PointCloud",
    "BondTopology",
    "find_bonds",
    "BondBasedMaterial",
    "VelocityBC",
    "ExplicitSolver",
    "SolverState",
    "UpdateOrder",
    "calc_stable_timestep",
    "SimulationResult",
    "simulate",
    "BBPDError",
    "ConfigurationError",
    "DegenerateTopologyError",
    "init",
    "Backend",
]
