"""런타임 초기화 테스트."""

import subprocess
import sys

import taichi as ti

from bbpd.runtime import Backend, _arch_to_backend, get_backend, init, is_initialized


class TestRuntime:
    """런타임 초기화 테스트."""

    def test_init_returns_info(self):
        info = init(Backend.CPU)
        assert "backend" in info
        assert is_initialized()

    def test_init_idempotent(self):
        init(Backend.CPU)
        info = init()
        assert info["already_initialized"] is True
        assert info["backend"] == get_backend().value

    def test_reports_actual_arch(self):
        """기록된 백엔드는 Taichi가 실제 선택한 arch와 일치."""
        init(Backend.CPU)
        assert get_backend() == _arch_to_backend(ti.lang.impl.current_cfg().arch)

    def test_arch_mapping(self):
        assert _arch_to_backend(ti.cuda) == Backend.CUDA
        assert _arch_to_backend(ti.x64) == Backend.CPU
        assert _arch_to_backend(ti.arm64) == Backend.CPU


def test_auto_reports_real_backend():
    """AUTO 초기화는 CUDA 부재 시 CPU를 보고 (새 프로세스에서 확인)."""
    code = (
        "import taichi as ti\n"
        "from bbpd.runtime import Backend, init, get_backend\n"
        "info = init(Backend.AUTO)\n"
        "arch = ti.lang.impl.current_cfg().arch\n"
        "expected = 'cuda' if arch == ti.cuda else 'cpu'\n"
        "assert info['backend'] == expected, (info, arch)\n"
        "assert get_backend().value == expected\n"
    )
    proc = subprocess.run([sys.executable, "-c", code], capture_output=True, text=True)
    assert proc.returncode == 0, proc.stderr
