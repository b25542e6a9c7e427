"""Bond-based peridynamic material for 1D bars."""

import math
from dataclasses import dataclass

from ..errors import ConfigurationError


@dataclass(frozen=True)
class BondBasedMaterial:
    """Prototype microelastic material: pairwise force proportional to stretch.

    The critical stretch is kept on the material so that bond-breaking
    models can be added later, but the explicit solver never evaluates it.

    Attributes:
        horizon: Interaction radius delta [m]
        bond_constant: Micromodulus c (bc) [N/m^6 in 1D units]
        density: Mass density rho [kg/m^3]
        critical_stretch: Fracture stretch s_c (inert)
    """

    horizon: float
    bond_constant: float
    density: float
    critical_stretch: float = math.inf

    def __post_init__(self):
        for name in ("horizon", "bond_constant", "density"):
            value = getattr(self, name)
            if not (math.isfinite(value) and value > 0):
                raise ConfigurationError(f"{name} must be positive and finite, got {value!r}")
        if math.isnan(self.critical_stretch) or self.critical_stretch < 0:
            raise ConfigurationError(
                f"critical_stretch must be non-negative, got {self.critical_stretch!r}"
            )

    @classmethod
    def from_youngs_modulus(
        cls,
        youngs_modulus: float,
        horizon: float,
        density: float,
        area: float = 1.0,
        critical_stretch: float = math.inf,
    ) -> "BondBasedMaterial":
        """Calibrate the 1D micromodulus from Young's modulus.

        c = 2*E / (A * delta^2)

        Args:
            youngs_modulus: Young's modulus E [Pa]
            horizon: Horizon delta [m]
            density: Density [kg/m^3]
            area: Cross-section area A [m^2]
            critical_stretch: Fracture stretch (inert)
        """
        if not (youngs_modulus > 0 and area > 0 and horizon > 0):
            raise ConfigurationError("youngs_modulus, area and horizon must be positive")
        bond_constant = 2.0 * youngs_modulus / (area * horizon**2)
        return cls(horizon, bond_constant, density, critical_stretch)

    def wave_speed(self, area: float = 1.0) -> float:
        """Elastic wave speed sqrt(E/rho) implied by the micromodulus."""
        youngs_modulus = self.bond_constant * area * self.horizon**2 / 2.0
        return math.sqrt(youngs_modulus / self.density)

    def __repr__(self) -> str:
        return (
            f"BondBasedMaterial(delta={self.horizon:.4g}, c={self.bond_constant:.4g}, "
            f"rho={self.density:.4g}, s_c={self.critical_stretch:.4g})"
        )
