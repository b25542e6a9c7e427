"""시뮬레이션 진입점 통합 테스트."""

import math
from pathlib import Path

import numpy as np
import pytest

from bbpd import (
    BondBasedMaterial, ConfigurationError, DegenerateTopologyError,
    PointCloud, UpdateOrder, VelocityBC, simulate,
)
from bbpd.io import read_logfile, read_pvd, read_vtu
from bbpd.runtime import Backend, init
from bbpd.solver import constant


@pytest.fixture(scope="module", autouse=True)
def init_taichi():
    """모듈당 한 번 Taichi 초기화."""
    init(Backend.CPU)


@pytest.fixture
def bar():
    """강철 막대: 100 입자, horizon = 3.015 dx."""
    pc = PointCloud.from_grid(1.0, 0.01)
    mat = BondBasedMaterial.from_youngs_modulus(210e9, horizon=0.03015, density=7850.0)
    return pc, mat


class TestSnapshots:
    """스냅샷 출력 테스트."""

    def test_two_snapshots_when_freq_equals_steps(self, tmp_path):
        """export_freq == n_timesteps → 스텝 0과 마지막 스텝 두 개."""
        pc = PointCloud.from_grid(2.0, 1.0)
        mat = BondBasedMaterial(horizon=1.5, bond_constant=1.0, density=1.0)
        result = simulate(pc, mat, [], n_timesteps=20, export_freq=20, export_path=str(tmp_path))

        files = sorted(p.name for p in tmp_path.glob("*.vtu"))
        assert files == ["timestep_0000.vtu", "timestep_0020.vtu"]
        assert len(result.snapshots) == 2

        t0 = read_vtu(tmp_path / "timestep_0000.vtu")["field_data"]["Time"]
        t1 = read_vtu(tmp_path / "timestep_0020.vtu")["field_data"]["Time"]
        assert t0 == 0.0
        assert t1 == 20 * result.dt

    def test_export_frequency(self, tmp_path, bar):
        pc, mat = bar
        result = simulate(pc, mat, [], n_timesteps=25, export_freq=10, export_path=str(tmp_path))
        steps = [Path(p).stem for p in result.snapshots]
        assert steps == ["timestep_0000", "timestep_0010", "timestep_0020"]
        assert result.snapshot_times == pytest.approx([0.0, 10 * result.dt, 20 * result.dt])
        assert [f for _, f in read_pvd(result.pvd_file)] == [Path(p).name for p in result.snapshots]

    def test_snapshot_fields(self, tmp_path, bar):
        pc, mat = bar
        bcs = [VelocityBC(constant(1.0), range(97, 100))]
        result = simulate(pc, mat, bcs, n_timesteps=10, export_freq=10, export_path=str(tmp_path))
        last = read_vtu(result.snapshots[-1])
        np.testing.assert_allclose(last["points"][:, 0], result.position)
        np.testing.assert_allclose(last["point_data"]["Displacement"], result.displacement)
        np.testing.assert_allclose(result.position - pc.position, result.displacement, atol=1e-12)


class TestLogfile:
    """실행 로그 테스트."""

    def test_logfile_written(self, tmp_path, bar):
        pc, mat = bar
        result = simulate(pc, mat, [], n_timesteps=5, export_freq=5, export_path=str(tmp_path))
        values = read_logfile(str(tmp_path))
        assert int(values["number of points"]) == 100
        # 내부 입자 6개, 끝에서부터 3/4/5개
        assert int(values["number of bonds"]) == result.n_bonds == 100 * 6 - 2 * (3 + 2 + 1)
        assert float(values["Δt"]) == result.dt
        assert result.logfile == str(tmp_path / "logfile.log")


class TestPhysics:
    """물리 거동 테스트."""

    def test_two_point_pair_stays_at_rest(self, tmp_path):
        pc = PointCloud.from_grid(2.0, 1.0)
        mat = BondBasedMaterial(horizon=1.5, bond_constant=1.0, density=1.0)
        result = simulate(pc, mat, [], n_timesteps=100, export_freq=10, export_path=str(tmp_path))
        assert result.n_bonds == 2
        assert np.all(result.displacement == 0.0)
        for path in result.snapshots:
            assert np.all(read_vtu(path)["point_data"]["Displacement"] == 0.0)

    def test_tension_wave_enters_bar(self, tmp_path, bar):
        """오른쪽 끝을 당기면 인접 입자가 양의 변위, 먼 쪽은 아직 정지."""
        pc, mat = bar
        bcs = [
            VelocityBC(constant(0.0), range(0, 3)),
            VelocityBC(constant(1.0), range(97, 100)),
        ]
        result = simulate(pc, mat, bcs, n_timesteps=10, export_freq=10, export_path=str(tmp_path))
        u = result.displacement
        assert np.all(u[:3] == 0.0)
        np.testing.assert_allclose(u[97:], 10 * result.dt)
        assert u[96] > 0.0
        assert np.all(np.isfinite(u))
        # 스텝당 horizon(3 입자) 이상 전파되지 않음
        assert np.all(u[3:67] == 0.0)

    def test_initial_velocity(self, tmp_path):
        pc = PointCloud.from_grid(2.0, 1.0)
        mat = BondBasedMaterial(horizon=1.5, bond_constant=1.0, density=1.0)
        result = simulate(
            pc, mat, [], n_timesteps=10, export_freq=10, export_path=str(tmp_path),
            initial_velocity=[-1e-6, 1e-6],
        )
        assert result.displacement[0] == pytest.approx(-result.displacement[1])
        assert result.displacement[1] != 0.0

    def test_sequential_order(self, tmp_path, bar):
        pc, mat = bar
        bcs = [VelocityBC(constant(1.0), range(97, 100))]
        result = simulate(
            pc, mat, bcs, n_timesteps=20, export_freq=20,
            export_path=str(tmp_path), order=UpdateOrder.SEQUENTIAL,
        )
        assert np.all(np.isfinite(result.displacement))


class TestProgress:
    """진행 콜백 테스트."""

    def test_progress_stages(self, tmp_path):
        events = []
        pc = PointCloud.from_grid(2.0, 1.0)
        mat = BondBasedMaterial(horizon=1.5, bond_constant=1.0, density=1.0)
        result = simulate(
            pc, mat, [], n_timesteps=4, export_freq=2, export_path=str(tmp_path),
            progress_callback=lambda stage, details: events.append((stage, details)),
        )

        assert [s for s, _ in events] == [
            "initialization", "time loop", "time loop", "time loop", "completed",
        ]
        assert events[0][1]["message"] == "building bonds..."
        assert [d["step"] for s, d in events if s == "time loop"] == [0, 2, 4]
        assert events[-1][1]["walltime"] == result.walltime
        assert events[-1][1]["message"].endswith("s")


class TestErrors:
    """오류 처리 테스트."""

    def test_zero_bond_cloud_raises(self, tmp_path):
        """간격 >> horizon: 퇴화 오류, NaN 상태 없음."""
        pc = PointCloud.from_grid(1.0, 0.1)
        mat = BondBasedMaterial(horizon=0.01, bond_constant=1.0, density=1.0)
        with pytest.raises(DegenerateTopologyError):
            simulate(pc, mat, [], n_timesteps=10, export_path=str(tmp_path))
        assert not list(tmp_path.glob("*.vtu"))

    def test_out_of_range_bc_fails_before_work(self, tmp_path, bar):
        pc, mat = bar
        out = tmp_path / "out"
        with pytest.raises(ConfigurationError):
            simulate(pc, mat, [VelocityBC(constant(1.0), [100])], export_path=str(out))
        assert not out.exists()

    @pytest.mark.parametrize("kwargs", [
        dict(n_timesteps=0),
        dict(n_timesteps=1.5),
        dict(export_freq=0),
        dict(export_freq=True),
    ])
    def test_invalid_tunables(self, tmp_path, bar, kwargs):
        pc, mat = bar
        with pytest.raises(ConfigurationError):
            simulate(pc, mat, [], export_path=str(tmp_path), **kwargs)

    def test_empty_point_cloud(self, tmp_path):
        pc = PointCloud.from_grid(0.5, 1.0)
        mat = BondBasedMaterial(horizon=1.0, bond_constant=1.0, density=1.0)
        with pytest.raises(ConfigurationError):
            simulate(pc, mat, [], export_path=str(tmp_path))

    def test_unwritable_output(self, tmp_path, bar):
        pc, mat = bar
        blocker = tmp_path / "file"
        blocker.write_text("x")
        with pytest.raises(OSError):
            simulate(pc, mat, [], n_timesteps=2, export_freq=1, export_path=str(blocker / "out"))
