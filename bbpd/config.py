"""시뮬레이션 설정 — Pydantic 모델 + TOML 로드.

예시 (TOML):

    [grid]
    length = 1.0
    spacing = 0.01

    [material]
    horizon_factor = 3.015
    youngs_modulus = 210e9
    density = 7850.0

    [[boundary]]
    name = "left"
    region = "left"
    width = 0.03
    kind = "constant"
    value = -1.0

    [run]
    n_timesteps = 2000
    export_freq = 100
    export_path = "results"
"""

import math
import tomllib
from pathlib import Path
from typing import List, Literal, Optional, Tuple

from pydantic import BaseModel, Field, model_validator

from .core.particles import PointCloud
from .material.bond_based import BondBasedMaterial
from .solver.boundary import VelocityBC, constant, ramp
from .solver.explicit import UpdateOrder


class GridConfig(BaseModel):
    """1D 입자 격자 설정."""

    length: float = Field(1.0, gt=0)
    spacing: float = Field(0.01, gt=0)


class MaterialConfig(BaseModel):
    """본드 기반 재료 설정.

    bond_constant를 직접 주거나 youngs_modulus로부터 보정한다.
    horizon이 없으면 horizon_factor * spacing을 사용한다.
    """

    horizon: Optional[float] = Field(None, gt=0)
    horizon_factor: float = Field(3.015, gt=0)
    bond_constant: Optional[float] = Field(None, gt=0)
    youngs_modulus: Optional[float] = Field(None, gt=0)
    area: float = Field(1.0, gt=0)
    density: float = Field(8000.0, gt=0)
    critical_stretch: float = Field(math.inf, ge=0)

    @model_validator(mode="after")
    def _check_stiffness(self) -> "MaterialConfig":
        if (self.bond_constant is None) == (self.youngs_modulus is None):
            raise ValueError("bond_constant 또는 youngs_modulus 중 정확히 하나를 지정해야 합니다")
        return self

    def resolve_horizon(self, spacing: float) -> float:
        return self.horizon if self.horizon is not None else self.horizon_factor * spacing


class BoundaryConfig(BaseModel):
    """속도 경계조건 설정.

    region:
    - "ids": point_ids에 나열된 입자
    - "left"/"right": 막대 끝에서 width 이내의 입자
    kind:
    - "constant": v(t) = value
    - "ramp": v(t) = rate * t, |v| <= |value|
    """

    name: str = ""
    region: Literal["ids", "left", "right"] = "ids"
    point_ids: List[int] = Field(default_factory=list)
    width: float = Field(0.0, ge=0)
    kind: Literal["constant", "ramp"] = "constant"
    value: float = 0.0
    rate: float = 0.0

    def select(self, point_cloud: PointCloud) -> List[int]:
        """경계조건이 적용될 입자 인덱스."""
        if self.region == "ids":
            return list(self.point_ids)
        if point_cloud.n_points == 0:
            return []
        x = point_cloud.position
        if self.region == "left":
            return point_cloud.select_range(x.min(), x.min() + self.width).tolist()
        return point_cloud.select_range(x.max() - self.width, x.max()).tolist()

    def velocity_function(self):
        if self.kind == "ramp":
            return ramp(self.rate, self.value)
        return constant(self.value)

    def build(self, point_cloud: PointCloud) -> VelocityBC:
        return VelocityBC(self.velocity_function(), self.select(point_cloud), name=self.name)


class RunConfig(BaseModel):
    """시간 적분 실행 설정."""

    n_timesteps: int = Field(1000, ge=1)
    export_freq: int = Field(10, ge=1)
    export_path: str = "results"
    order: Literal["synchronized", "sequential"] = "synchronized"
    binary: bool = False


class SimulationConfig(BaseModel):
    """최상위 시뮬레이션 설정."""

    grid: GridConfig = Field(default_factory=GridConfig)
    material: MaterialConfig = Field(
        default_factory=lambda: MaterialConfig(youngs_modulus=210e9, density=7850.0)
    )
    boundary: List[BoundaryConfig] = Field(default_factory=list)
    run: RunConfig = Field(default_factory=RunConfig)

    @classmethod
    def from_toml(cls, path: str | Path) -> "SimulationConfig":
        """TOML 파일에서 설정 로드.

        Args:
            path: TOML 파일 경로

        Returns:
            SimulationConfig 인스턴스
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"설정 파일을 찾을 수 없습니다: {path}")

        with open(path, "rb") as f:
            data = tomllib.load(f)

        return cls(**data)

    @classmethod
    def default(cls) -> "SimulationConfig":
        """기본 설정 반환."""
        return cls()

    def build(self) -> Tuple[PointCloud, BondBasedMaterial, List[VelocityBC]]:
        """설정으로부터 입자, 재료, 경계조건 객체 생성."""
        pc = PointCloud.from_grid(self.grid.length, self.grid.spacing)

        m = self.material
        horizon = m.resolve_horizon(self.grid.spacing)
        if m.bond_constant is not None:
            mat = BondBasedMaterial(horizon, m.bond_constant, m.density, m.critical_stretch)
        else:
            mat = BondBasedMaterial.from_youngs_modulus(
                m.youngs_modulus, horizon, m.density, m.area, m.critical_stretch,
            )

        bcs = [b.build(pc) for b in self.boundary]
        return pc, mat, bcs

    @property
    def update_order(self) -> UpdateOrder:
        return UpdateOrder(self.run.order)
