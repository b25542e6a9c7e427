"""Time integration for 1D bond-based peridynamics."""

from .boundary import VelocityBC, constant, ramp
from .explicit import ExplicitSolver, SolverState, UpdateOrder
from .timestep import calc_stable_timestep, critical_timesteps

__all__ = [
    "VelocityBC",
    "constant",
    "ramp",
    "ExplicitSolver",
    "SolverState",
    "UpdateOrder",
    "calc_stable_timestep",
    "critical_timesteps",
]
