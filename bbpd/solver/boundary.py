"""Prescribed velocity boundary conditions.

A boundary condition overwrites the half-step velocity of its points at
every step with a value sampled from ``fun(t)``. The samples are computed in
an explicit initialization phase (:meth:`VelocityBC.init_schedule`) for a
given step count and step size, and are invalid for any other time stepping.
"""

from typing import Callable, Iterable, List, Optional, Sequence, Tuple

import numpy as np

from ..errors import ConfigurationError


class VelocityBC:
    """Velocity boundary condition on a set of points.

    Attributes:
        fun: Velocity as a function of simulated time v(t)
        point_ids: Indices of the constrained points
        value: Schedule v(k*dt) for k = 1..n_timesteps (empty until initialized)
    """

    def __init__(self, fun: Callable[[float], float], point_ids: Iterable[int], name: str = ""):
        if not callable(fun):
            raise ConfigurationError("velocity boundary condition needs a callable fun(t)")

        ids = np.asarray(list(point_ids))
        if ids.size and not np.issubdtype(ids.dtype, np.integer):
            raise ConfigurationError(f"point ids must be integers, got dtype {ids.dtype}")

        self.fun = fun
        self.point_ids = frozenset(int(i) for i in ids)
        self.name = name
        self.value = np.empty(0, dtype=np.float64)
        self._schedule_key: Optional[Tuple[int, float]] = None

    def __contains__(self, i: int) -> bool:
        return i in self.point_ids

    def validate(self, n_points: int):
        """Reject point ids outside [0, n_points)."""
        bad = sorted(i for i in self.point_ids if i < 0 or i >= n_points)
        if bad:
            raise ConfigurationError(
                f"boundary condition {self.name or '<unnamed>'} references point ids "
                f"outside [0, {n_points}): {bad[:10]}"
            )

    def init_schedule(self, n_timesteps: int, dt: float):
        """Sample fun at dt, 2*dt, ..., n_timesteps*dt."""
        if n_timesteps < 1 or not dt > 0:
            raise ConfigurationError(f"invalid time stepping: n_timesteps={n_timesteps}, dt={dt}")
        times = dt * np.arange(1, n_timesteps + 1, dtype=np.float64)
        self.value = np.array([float(self.fun(t)) for t in times], dtype=np.float64)
        if not np.all(np.isfinite(self.value)):
            raise ConfigurationError(f"boundary condition {self.name or '<unnamed>'} produced non-finite velocity")
        self._schedule_key = (n_timesteps, dt)

    def schedule_for(self, n_timesteps: int, dt: float) -> np.ndarray:
        """Return the schedule, refusing one built for other time stepping."""
        if self._schedule_key != (n_timesteps, dt):
            raise ConfigurationError(
                f"stale boundary condition schedule: built for {self._schedule_key}, "
                f"requested ({n_timesteps}, {dt})"
            )
        return self.value

    def __repr__(self) -> str:
        return f"VelocityBC(name={self.name!r}, n_points={len(self.point_ids)})"


def resolve_slots(bcs: Sequence[VelocityBC], n_points: int) -> np.ndarray:
    """Per-point index of the governing boundary condition (-1 if free).

    Conditions are applied in declaration order, so the last one covering a
    point wins.
    """
    slot = np.full(n_points, -1, dtype=np.int32)
    for k, bc in enumerate(bcs):
        if bc.point_ids:
            slot[np.fromiter(bc.point_ids, dtype=np.int64)] = k
    return slot


def stack_schedules(bcs: Sequence[VelocityBC], n_timesteps: int, dt: float) -> np.ndarray:
    """Schedules of all conditions as a (n_bcs, n_timesteps) array."""
    rows: List[np.ndarray] = [bc.schedule_for(n_timesteps, dt) for bc in bcs]
    if not rows:
        return np.zeros((0, n_timesteps), dtype=np.float64)
    return np.stack(rows)


def constant(value: float) -> Callable[[float], float]:
    """v(t) = value."""
    value = float(value)

    def fun(t: float) -> float:
        return value

    return fun


def ramp(rate: float, max_value: float) -> Callable[[float], float]:
    """v(t) = rate * t, clipped to max_value in magnitude."""
    rate, max_value = float(rate), abs(float(max_value))

    def fun(t: float) -> float:
        return float(np.clip(rate * t, -max_value, max_value))

    return fun
