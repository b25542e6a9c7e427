"""Simulation entry point: topology → stable dt → time loop → export.

Usage:
    from bbpd import PointCloud, BondBasedMaterial, VelocityBC, simulate
    from bbpd.solver import constant

    pc = PointCloud.from_grid(1.0, 0.01)
    mat = BondBasedMaterial(horizon=0.0301, bond_constant=1e12, density=8000.0)
    bcs = [VelocityBC(constant(-1.0), range(3)), VelocityBC(constant(1.0), range(97, 100))]
    result = simulate(pc, mat, bcs, n_timesteps=2000, export_freq=100, export_path="results")
"""

import logging
import time as _time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional, Sequence

import numpy as np

from . import runtime
from .core.bonds import BondTopology
from .core.particles import PointCloud
from .errors import ConfigurationError
from .io.logfile import write_logfile
from .io.vtk_export import export_pvd, export_snapshot
from .material.bond_based import BondBasedMaterial
from .solver.boundary import VelocityBC
from .solver.explicit import ExplicitSolver, UpdateOrder
from .solver.timestep import calc_stable_timestep

logger = logging.getLogger(__name__)

PVD_NAME = "timesteps.pvd"


@dataclass
class SimulationResult:
    """Outcome of a completed simulation."""

    dt: float
    n_points: int
    n_bonds: int
    n_timesteps: int
    walltime: float
    position: np.ndarray
    displacement: np.ndarray
    velocity: np.ndarray
    snapshots: List[str] = field(default_factory=list)
    snapshot_times: List[float] = field(default_factory=list)
    logfile: Optional[str] = None
    pvd_file: Optional[str] = None

    @property
    def final_time(self) -> float:
        return self.n_timesteps * self.dt


def validate_run(
    point_cloud: PointCloud,
    material: BondBasedMaterial,
    bcs: Sequence[VelocityBC],
    n_timesteps: int,
    export_freq: int,
):
    """Fail fast on invalid input before any simulation work."""
    if not isinstance(point_cloud, PointCloud):
        raise ConfigurationError(f"expected PointCloud, got {type(point_cloud).__name__}")
    if not isinstance(material, BondBasedMaterial):
        raise ConfigurationError(f"expected BondBasedMaterial, got {type(material).__name__}")
    if point_cloud.n_points < 1:
        raise ConfigurationError("point cloud has no points")
    for name, value in (("n_timesteps", n_timesteps), ("export_freq", export_freq)):
        if isinstance(value, bool) or not isinstance(value, (int, np.integer)) or value < 1:
            raise ConfigurationError(f"{name} must be a positive integer, got {value!r}")
    for bc in bcs:
        if not isinstance(bc, VelocityBC):
            raise ConfigurationError(f"expected VelocityBC, got {type(bc).__name__}")
        bc.validate(point_cloud.n_points)


def simulate(
    point_cloud: PointCloud,
    material: BondBasedMaterial,
    bcs: Sequence[VelocityBC] = (),
    n_timesteps: int = 1000,
    export_freq: int = 10,
    export_path: str = "results",
    order: UpdateOrder = UpdateOrder.SYNCHRONIZED,
    initial_velocity=None,
    binary: bool = False,
    progress_callback: Optional[Callable[[str, dict], None]] = None,
) -> SimulationResult:
    """Run a complete simulation and write snapshots plus logfile.log.

    Snapshots are written at step 0 and every export_freq steps.

    Args:
        point_cloud: Discretized bar
        material: Bond-based material
        bcs: Velocity boundary conditions (declaration order matters)
        n_timesteps: Number of time steps
        export_freq: Snapshot frequency in steps
        export_path: Output directory
        order: Kinematic/force update ordering
        initial_velocity: Optional velocity at t = 0 (scalar or per point)
        binary: Write VTU data arrays in binary encoding
        progress_callback: Called as (stage, details) during the run

    Returns:
        SimulationResult
    """
    bcs = list(bcs)
    validate_run(point_cloud, material, bcs, n_timesteps, export_freq)

    def report(stage: str, **details):
        if progress_callback is not None:
            progress_callback(stage, details)

    runtime.init()
    export_dir = Path(export_path)
    export_dir.mkdir(parents=True, exist_ok=True)

    t_start = _time.perf_counter()

    report("initialization", message="building bonds...")
    topology = BondTopology.build(point_cloud, material.horizon)
    dt = calc_stable_timestep(point_cloud, material, topology)

    solver = ExplicitSolver(point_cloud, material, topology, bcs, dt=dt, order=order)
    solver.initialize(n_timesteps)
    if initial_velocity is not None:
        solver.set_initial_velocity(initial_velocity)
    logger.info(
        f"Simulation: {point_cloud.n_points} points, {topology.n_bonds} bonds, "
        f"dt={dt:.6e}, {n_timesteps} steps"
    )

    snapshots: List[str] = []
    snapshot_times: List[float] = []

    def export(step: int, t: float):
        path = export_snapshot(
            str(export_dir), step, t,
            solver.get_positions(), solver.get_displacements(), binary=binary,
        )
        snapshots.append(path)
        snapshot_times.append(t)

    export(0, 0.0)

    def on_export(s: ExplicitSolver, step: int):
        export(step, s.time)
        report("time loop", message=f"{step}/{n_timesteps}", step=step, time=s.time)

    report("time loop", message=f"0/{n_timesteps}", step=0, time=0.0)
    solver.run(callback=on_export, callback_interval=export_freq)

    walltime = _time.perf_counter() - t_start

    pvd_file = export_pvd(str(export_dir / PVD_NAME), list(zip(snapshot_times, snapshots)))
    logfile = write_logfile(str(export_dir), walltime, point_cloud.n_points, topology.n_bonds, dt)
    logger.info(f"Simulation completed in {walltime:.2f}s, {len(snapshots)} snapshot(s) → {export_dir}")
    report("completed", message=f"{walltime:.1f}s", walltime=walltime)

    return SimulationResult(
        dt=dt,
        n_points=point_cloud.n_points,
        n_bonds=topology.n_bonds,
        n_timesteps=n_timesteps,
        walltime=walltime,
        position=solver.get_positions(),
        displacement=solver.get_displacements(),
        velocity=solver.get_velocities(),
        snapshots=snapshots,
        snapshot_times=snapshot_times,
        logfile=logfile,
        pvd_file=pvd_file,
    )
