"""시뮬레이션 설정 테스트."""

import math

import pytest
from pydantic import ValidationError

from bbpd.config import (
    BoundaryConfig, GridConfig, MaterialConfig, RunConfig, SimulationConfig,
)
from bbpd.solver.explicit import UpdateOrder


EXAMPLE_TOML = """
[grid]
length = 1.0
spacing = 0.01

[material]
horizon_factor = 3.015
bond_constant = 1e12
density = 8000.0
critical_stretch = 0.01

[[boundary]]
name = "left"
region = "left"
width = 0.025
kind = "constant"
value = -1.0

[[boundary]]
name = "right"
region = "ids"
point_ids = [97, 98, 99]
kind = "ramp"
rate = 100.0
value = 1.0

[run]
n_timesteps = 200
export_freq = 50
export_path = "out"
order = "sequential"
"""


class TestSimulationConfig:
    """SimulationConfig 테스트."""

    def test_default_config(self):
        cfg = SimulationConfig.default()
        assert cfg.run.n_timesteps == 1000
        assert cfg.run.export_freq == 10
        assert cfg.run.export_path == "results"
        assert cfg.update_order == UpdateOrder.SYNCHRONIZED
        assert cfg.boundary == []

    def test_from_toml(self, tmp_path):
        path = tmp_path / "sim.toml"
        path.write_text(EXAMPLE_TOML)
        cfg = SimulationConfig.from_toml(path)
        assert cfg.grid.spacing == 0.01
        assert cfg.material.bond_constant == 1e12
        assert len(cfg.boundary) == 2
        assert cfg.boundary[1].kind == "ramp"
        assert cfg.run.export_freq == 50
        assert cfg.update_order == UpdateOrder.SEQUENTIAL

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            SimulationConfig.from_toml(tmp_path / "missing.toml")

    def test_build(self, tmp_path):
        path = tmp_path / "sim.toml"
        path.write_text(EXAMPLE_TOML)
        pc, mat, bcs = SimulationConfig.from_toml(path).build()

        assert pc.n_points == 100
        assert mat.horizon == pytest.approx(0.03015)
        assert mat.critical_stretch == 0.01
        assert bcs[0].name == "left"
        assert bcs[0].point_ids == {0, 1, 2}
        assert bcs[0].fun(0.3) == -1.0
        assert bcs[1].point_ids == {97, 98, 99}
        assert bcs[1].fun(0.005) == pytest.approx(0.5)
        assert bcs[1].fun(1.0) == 1.0

    def test_build_from_youngs_modulus(self):
        cfg = SimulationConfig(
            grid=GridConfig(length=1.0, spacing=0.1),
            material=MaterialConfig(youngs_modulus=1e9, horizon=0.3, density=1000.0),
        )
        _, mat, _ = cfg.build()
        assert mat.bond_constant == pytest.approx(2e9 / 0.09)


class TestFieldValidation:
    """필드 검증 테스트."""

    def test_positive_grid(self):
        with pytest.raises(ValidationError):
            GridConfig(spacing=0.0)

    def test_exactly_one_stiffness(self):
        with pytest.raises(ValidationError):
            MaterialConfig(density=1.0)
        with pytest.raises(ValidationError):
            MaterialConfig(bond_constant=1.0, youngs_modulus=1.0)

    def test_default_critical_stretch_inert(self):
        assert math.isinf(MaterialConfig(bond_constant=1.0).critical_stretch)

    def test_run_config_bounds(self):
        with pytest.raises(ValidationError):
            RunConfig(n_timesteps=0)
        with pytest.raises(ValidationError):
            RunConfig(export_freq=0)
        with pytest.raises(ValidationError):
            RunConfig(order="random")

    def test_right_region(self):
        from bbpd.core.particles import PointCloud

        pc = PointCloud.from_grid(1.0, 0.1)
        b = BoundaryConfig(region="right", width=0.15)
        assert b.select(pc) == [8, 9]
