"""1D point cloud (material point discretization) for bond-based peridynamics."""

import math
from dataclasses import dataclass
from typing import Optional

import numpy as np

from ..errors import ConfigurationError


@dataclass(frozen=True)
class PointCloud:
    """Regular 1D discretization of a bar into material points.

    The reference configuration is immutable: solvers copy ``position``
    into their own state before marching.

    Attributes:
        n_points: Number of material points
        position: Reference coordinates (n_points,)
        volume: Point volumes (n_points,)
    """

    n_points: int
    position: np.ndarray
    volume: np.ndarray

    def __post_init__(self):
        position = np.asarray(self.position, dtype=np.float64).reshape(-1)
        volume = np.asarray(self.volume, dtype=np.float64).reshape(-1)
        if not (len(position) == len(volume) == self.n_points):
            raise ConfigurationError(
                f"position/volume length mismatch: n_points={self.n_points}, "
                f"len(position)={len(position)}, len(volume)={len(volume)}"
            )
        position.setflags(write=False)
        volume.setflags(write=False)
        object.__setattr__(self, "position", position)
        object.__setattr__(self, "volume", volume)

    @classmethod
    def from_grid(cls, length: float, spacing: float) -> "PointCloud":
        """Cell-centred grid ``spacing/2, 3*spacing/2, ..., length - spacing/2``.

        Each point carries the cubic cell volume ``spacing**3``. A spacing
        larger than the domain yields zero or one point.

        Args:
            length: Bar length lx
            spacing: Point spacing dx
        """
        _check_positive("length", length)
        _check_positive("spacing", spacing)

        # Inclusive end point, tolerant to round-off in (lx - dx) / dx
        span = (length - spacing) / spacing
        n_points = max(int(math.floor(round(span, 10))) + 1, 0)

        position = spacing / 2 + spacing * np.arange(n_points, dtype=np.float64)
        volume = np.full(n_points, spacing**3, dtype=np.float64)
        return cls(n_points, position, volume)

    @classmethod
    def from_positions(
        cls,
        position,
        volume=None,
        spacing: Optional[float] = None,
    ) -> "PointCloud":
        """Build a point cloud from arbitrary 1D coordinates.

        Args:
            position: Point coordinates
            volume: Per-point volumes (scalar or array); defaults to spacing**3
            spacing: Nominal spacing used when volume is not given
        """
        position = np.asarray(position, dtype=np.float64).reshape(-1)
        n_points = len(position)

        if volume is None:
            if spacing is None:
                raise ConfigurationError("either volume or spacing must be given")
            _check_positive("spacing", spacing)
            volume = np.full(n_points, spacing**3, dtype=np.float64)
        else:
            volume = np.broadcast_to(
                np.asarray(volume, dtype=np.float64), (n_points,)
            ).copy()

        if not np.all(np.isfinite(position)):
            raise ConfigurationError("point positions must be finite")
        if np.any(volume <= 0) or not np.all(np.isfinite(volume)):
            raise ConfigurationError("point volumes must be positive and finite")

        return cls(n_points, position, volume)

    def select_range(self, lower: float, upper: float) -> np.ndarray:
        """Indices of points with lower <= position <= upper."""
        return np.flatnonzero((self.position >= lower) & (self.position <= upper))

    def __repr__(self) -> str:
        if self.n_points == 0:
            return "PointCloud(n_points=0)"
        return (
            f"PointCloud(n_points={self.n_points}, "
            f"x=[{self.position[0]:.4g}, {self.position[-1]:.4g}])"
        )


def _check_positive(name: str, value: float):
    if not (isinstance(value, (int, float, np.floating, np.integer))
            and math.isfinite(value) and value > 0):
        raise ConfigurationError(f"{name} must be a positive finite number, got {value!r}")
