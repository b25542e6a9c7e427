"""Explicit time integration solver for 1D bond-based peridynamics."""

import enum
import logging
import math
from typing import TYPE_CHECKING, Callable, Optional, Sequence

import numpy as np
import taichi as ti

from ..errors import ConfigurationError, DegenerateTopologyError
from .boundary import VelocityBC, resolve_slots, stack_schedules

if TYPE_CHECKING:
    from ..core.bonds import BondTopology
    from ..core.particles import PointCloud
    from ..material.bond_based import BondBasedMaterial

logger = logging.getLogger(__name__)


class UpdateOrder(enum.Enum):
    """Order of kinematic update and force evaluation within a step.

    SYNCHRONIZED: all positions are advanced first, then every force is
        computed from that common position buffer (textbook central
        difference).
    SEQUENTIAL: one serial sweep where point i is advanced and its force
        evaluated before point i+1 moves, so forces may see neighbours that
        were already advanced in the same step.
    """
    SYNCHRONIZED = "synchronized"
    SEQUENTIAL = "sequential"


class SolverState(enum.Enum):
    """Solver lifecycle."""
    UNINITIALIZED = "uninitialized"
    RUNNING = "running"
    COMPLETED = "completed"


@ti.data_oriented
class ExplicitSolver:
    """Velocity Verlet explicit time integrator for 1D bond-based peridynamics.

    Each step t (elapsed time t*dt), for every point i:
    1. v_half = v + a * dt/2
    2. v_half overwritten by velocity boundary conditions
    3. u += v_half * dt,  x += v_half * dt
    4. b_int = sum_j c * s_ij / |eta| * V_j * eta,  s_ij = (|eta| - |xi|) / |xi|
    5. a = b_int / rho
    6. v = v_half + a * dt/2
    """

    def __init__(
        self,
        point_cloud: "PointCloud",
        material: "BondBasedMaterial",
        topology: "BondTopology",
        bcs: Sequence[VelocityBC] = (),
        dt: float = 1e-6,
        order: UpdateOrder = UpdateOrder.SYNCHRONIZED,
    ):
        """Initialize explicit solver.

        Args:
            point_cloud: Reference point cloud
            material: Bond-based material
            topology: Bond topology built for point_cloud
            bcs: Velocity boundary conditions, applied in declaration order
            dt: Time step size
            order: Kinematic/force update ordering
        """
        if point_cloud.n_points < 1:
            raise ConfigurationError("point cloud has no points")
        if topology.n_points != point_cloud.n_points:
            raise ConfigurationError(
                f"topology built for {topology.n_points} points, "
                f"point cloud has {point_cloud.n_points}"
            )
        if not (math.isfinite(dt) and dt > 0):
            raise ConfigurationError(f"time step must be positive and finite, got {dt!r}")
        if topology.n_bonds > 0 and np.any(topology.initial_length <= 0):
            raise DegenerateTopologyError("bond with zero reference length (coincident points)")

        self.bcs = list(bcs)
        for bc in self.bcs:
            bc.validate(point_cloud.n_points)

        self.point_cloud = point_cloud
        self.material = material
        self.topology = topology
        self.dt = float(dt)
        self.order = UpdateOrder(order)
        self.n_points = point_cloud.n_points
        self.n_bonds = topology.n_bonds

        n = self.n_points
        nb = max(self.n_bonds, 1)

        # Kinematic state
        self.X = ti.field(dtype=ti.f64, shape=n)       # Reference
        self.x = ti.field(dtype=ti.f64, shape=n)       # Current
        self.u = ti.field(dtype=ti.f64, shape=n)       # Displacement
        self.v = ti.field(dtype=ti.f64, shape=n)       # Velocity
        self.v_half = ti.field(dtype=ti.f64, shape=n)  # Half-step velocity
        self.a = ti.field(dtype=ti.f64, shape=n)       # Acceleration
        self.b_int = ti.field(dtype=ti.f64, shape=n)   # Internal force density
        self.volume = ti.field(dtype=ti.f64, shape=n)

        # Bond topology (CSR)
        self.neighbor = ti.field(dtype=ti.i32, shape=nb)
        self.initial_length = ti.field(dtype=ti.f64, shape=nb)
        self.bond_start = ti.field(dtype=ti.i32, shape=n)
        self.bond_end = ti.field(dtype=ti.i32, shape=n)

        # Boundary conditions: governing condition per point (-1 = free) and
        # the current step's value of every condition
        self.bc_slot = ti.field(dtype=ti.i32, shape=n)
        self.bc_now = ti.field(dtype=ti.f64, shape=max(len(self.bcs), 1))
        self.schedules = np.zeros((len(self.bcs), 0), dtype=np.float64)

        # Zero-length bonds seen in the last force evaluation
        self.n_collapsed = ti.field(dtype=ti.i32, shape=())

        self.X.from_numpy(point_cloud.position.astype(np.float64))
        self.volume.from_numpy(point_cloud.volume.astype(np.float64))
        self.bond_start.from_numpy(topology.bond_start.astype(np.int32))
        self.bond_end.from_numpy(topology.bond_end.astype(np.int32))
        if self.n_bonds > 0:
            self.neighbor.from_numpy(topology.neighbor.astype(np.int32))
            self.initial_length.from_numpy(topology.initial_length.astype(np.float64))
        self.bc_slot.from_numpy(resolve_slots(self.bcs, n))

        self.state = SolverState.UNINITIALIZED
        self.n_timesteps = 0
        self.step_count = 0
        self.time = 0.0

    # ------------------------------------------------------------------
    #  Lifecycle
    # ------------------------------------------------------------------

    def initialize(self, n_timesteps: int):
        """Reset state and precompute boundary condition schedules for a run.

        Args:
            n_timesteps: Total number of steps of the run
        """
        if int(n_timesteps) != n_timesteps or n_timesteps < 1:
            raise ConfigurationError(f"n_timesteps must be a positive integer, got {n_timesteps!r}")
        n_timesteps = int(n_timesteps)

        for bc in self.bcs:
            bc.init_schedule(n_timesteps, self.dt)
        self.schedules = stack_schedules(self.bcs, n_timesteps, self.dt)

        self._reset_state()
        self.n_timesteps = n_timesteps
        self.step_count = 0
        self.time = 0.0
        self.state = SolverState.RUNNING
        logger.debug(
            f"Solver initialized: {n_timesteps} steps, dt={self.dt:.6e}, "
            f"{len(self.bcs)} boundary condition(s), order={self.order.value}"
        )

    def set_initial_velocity(self, velocity):
        """Prescribe v at t = 0 (scalar or per-point array).

        Only valid between initialize() and the first step.
        """
        if self.state != SolverState.RUNNING or self.step_count != 0:
            raise ConfigurationError("initial velocity can only be set right after initialize()")
        velocity = np.broadcast_to(np.asarray(velocity, dtype=np.float64), (self.n_points,))
        if not np.all(np.isfinite(velocity)):
            raise ConfigurationError("initial velocity must be finite")
        self.v.from_numpy(np.ascontiguousarray(velocity))

    @ti.kernel
    def _reset_state(self):
        """x = X, all other state zero."""
        for i in range(self.n_points):
            self.x[i] = self.X[i]
            self.u[i] = 0.0
            self.v[i] = 0.0
            self.v_half[i] = 0.0
            self.a[i] = 0.0
            self.b_int[i] = 0.0

    # ------------------------------------------------------------------
    #  Per-point updates
    # ------------------------------------------------------------------

    @ti.func
    def _advance_point(self, i, dt):
        """Half-step velocity, boundary override, displacement/position update."""
        vh = self.v[i] + self.a[i] * 0.5 * dt
        slot = self.bc_slot[i]
        if slot >= 0:
            vh = self.bc_now[slot]
        self.v_half[i] = vh
        self.u[i] += vh * dt
        self.x[i] += vh * dt

    @ti.func
    def _update_point(self, i, c, rho, dt):
        """Bond force accumulation, acceleration, full-step velocity."""
        b = ti.cast(0.0, ti.f64)
        for k in range(self.bond_start[i], self.bond_end[i]):
            j = self.neighbor[k]
            L = self.initial_length[k]
            eta = self.x[j] - self.x[i]
            l = ti.abs(eta)
            if l > 0.0:
                stretch = (l - L) / L
                b += c * stretch / l * self.volume[j] * eta
            else:
                self.n_collapsed[None] += 1
        self.b_int[i] = b
        self.a[i] = b / rho
        self.v[i] = self.v_half[i] + self.a[i] * 0.5 * dt

    @ti.kernel
    def _kinematic_update(self, dt: ti.f64):
        for i in range(self.n_points):
            self._advance_point(i, dt)

    @ti.kernel
    def _force_update(self, c: ti.f64, rho: ti.f64, dt: ti.f64):
        self.n_collapsed[None] = 0
        for i in range(self.n_points):
            self._update_point(i, c, rho, dt)

    @ti.kernel
    def _sequential_update(self, c: ti.f64, rho: ti.f64, dt: ti.f64):
        self.n_collapsed[None] = 0
        ti.loop_config(serialize=True)
        for i in range(self.n_points):
            self._advance_point(i, dt)
            self._update_point(i, c, rho, dt)

    # ------------------------------------------------------------------
    #  Time marching
    # ------------------------------------------------------------------

    def step(self):
        """Perform one time step."""
        if self.state != SolverState.RUNNING:
            raise ConfigurationError(f"solver is {self.state.value}; call initialize() first")

        t = self.step_count + 1
        c = self.material.bond_constant
        rho = self.material.density

        if len(self.bcs) > 0:
            self.bc_now.from_numpy(np.ascontiguousarray(self.schedules[:, t - 1]))

        if self.order == UpdateOrder.SYNCHRONIZED:
            self._kinematic_update(self.dt)
            self._force_update(c, rho, self.dt)
        else:
            self._sequential_update(c, rho, self.dt)

        n_collapsed = int(self.n_collapsed[None])
        if n_collapsed > 0:
            raise DegenerateTopologyError(
                f"{n_collapsed} bond(s) collapsed to zero length at step {t}"
            )

        self.step_count = t
        self.time = t * self.dt
        if self.step_count == self.n_timesteps:
            self.state = SolverState.COMPLETED

    def run(
        self,
        n_timesteps: Optional[int] = None,
        callback: Optional[Callable[["ExplicitSolver", int], None]] = None,
        callback_interval: int = 1,
    ):
        """Run the remaining steps of a run.

        Args:
            n_timesteps: Total steps; when given, the run is (re)initialized
            callback: Called as callback(solver, step) every callback_interval steps
            callback_interval: Callback frequency in steps
        """
        if n_timesteps is not None:
            self.initialize(n_timesteps)
        if callback_interval < 1:
            raise ConfigurationError(f"callback_interval must be >= 1, got {callback_interval}")

        while self.state == SolverState.RUNNING:
            self.step()
            if callback is not None and self.step_count % callback_interval == 0:
                callback(self, self.step_count)

        if self.state != SolverState.COMPLETED:
            raise ConfigurationError(f"solver is {self.state.value}; call initialize() first")

    # ------------------------------------------------------------------
    #  State access
    # ------------------------------------------------------------------

    def get_positions(self) -> np.ndarray:
        """Current positions as numpy array."""
        return self.x.to_numpy()

    def get_displacements(self) -> np.ndarray:
        """Displacements accumulated since the start of the run."""
        return self.u.to_numpy()

    def get_velocities(self) -> np.ndarray:
        return self.v.to_numpy()

    def get_half_step_velocities(self) -> np.ndarray:
        return self.v_half.to_numpy()

    def get_accelerations(self) -> np.ndarray:
        return self.a.to_numpy()

    def get_internal_forces(self) -> np.ndarray:
        return self.b_int.to_numpy()

    def get_kinetic_energy(self) -> float:
        """Compute total kinetic energy."""
        return float(self._compute_kinetic_energy(self.material.density))

    @ti.kernel
    def _compute_kinetic_energy(self, rho: ti.f64) -> ti.f64:
        """Kinetic energy: 0.5 * sum(rho * V * v^2)."""
        KE = ti.cast(0.0, ti.f64)
        for i in range(self.n_points):
            KE += 0.5 * rho * self.volume[i] * self.v[i] * self.v[i]
        return KE

    def get_strain_energy(self) -> float:
        """Compute total strain energy of the bond network."""
        return float(self._compute_strain_energy(self.material.bond_constant))

    @ti.kernel
    def _compute_strain_energy(self, c: ti.f64) -> ti.f64:
        """Strain energy: 0.25 * c * sum(s^2 * |xi| * V_i * V_j).

        Factor 0.25 because every bond is stored once per endpoint.
        """
        SE = ti.cast(0.0, ti.f64)
        for i in range(self.n_points):
            for k in range(self.bond_start[i], self.bond_end[i]):
                j = self.neighbor[k]
                L = self.initial_length[k]
                stretch = (ti.abs(self.x[j] - self.x[i]) - L) / L
                SE += 0.25 * c * stretch * stretch * L * self.volume[i] * self.volume[j]
        return SE
