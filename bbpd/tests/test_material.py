"""재료 모델 테스트."""

import math

import pytest

from bbpd.errors import ConfigurationError
from bbpd.material.bond_based import BondBasedMaterial


class TestBondBasedMaterial:

    def test_fields(self):
        mat = BondBasedMaterial(horizon=0.03, bond_constant=1e12, density=8000.0, critical_stretch=0.01)
        assert mat.horizon == 0.03
        assert mat.bond_constant == 1e12
        assert mat.density == 8000.0
        assert mat.critical_stretch == 0.01

    def test_critical_stretch_defaults_to_inert(self):
        mat = BondBasedMaterial(horizon=1.0, bond_constant=1.0, density=1.0)
        assert math.isinf(mat.critical_stretch)

    @pytest.mark.parametrize("kwargs", [
        dict(horizon=0.0, bond_constant=1.0, density=1.0),
        dict(horizon=1.0, bond_constant=-1.0, density=1.0),
        dict(horizon=1.0, bond_constant=1.0, density=0.0),
        dict(horizon=float("inf"), bond_constant=1.0, density=1.0),
        dict(horizon=1.0, bond_constant=1.0, density=1.0, critical_stretch=-0.1),
    ])
    def test_invalid_parameters(self, kwargs):
        with pytest.raises(ConfigurationError):
            BondBasedMaterial(**kwargs)

    def test_from_youngs_modulus(self):
        """1D 보정: c = 2E / (A delta^2)."""
        mat = BondBasedMaterial.from_youngs_modulus(200e9, horizon=0.01, density=7850.0, area=2.0)
        assert mat.bond_constant == pytest.approx(2 * 200e9 / (2.0 * 0.01**2))
        assert mat.wave_speed(area=2.0) == pytest.approx(math.sqrt(200e9 / 7850.0))

    def test_frozen(self):
        mat = BondBasedMaterial(horizon=1.0, bond_constant=1.0, density=1.0)
        with pytest.raises(AttributeError):
            mat.horizon = 2.0
