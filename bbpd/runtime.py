"""Taichi 런타임 초기화 중앙 관리.

프로세스당 1회 초기화를 보장한다. 솔버 필드는 모두 f64이므로 f64를 지원하는
CPU/CUDA 백엔드만 다룬다. AUTO는 CUDA를 요청하고, Taichi가 CUDA를 찾지 못하면
스스로 CPU로 내려가므로 초기화 후 실제 선택된 arch를 읽어 기록한다.
"""

import enum
import logging
import taichi as ti
from typing import Optional

logger = logging.getLogger(__name__)


class Backend(enum.Enum):
    """Taichi 백엔드 열거형."""
    CPU = "cpu"
    CUDA = "cuda"
    AUTO = "auto"


_initialized = False
_active_backend: Optional[Backend] = None


def init(backend: Backend = Backend.AUTO) -> dict:
    """Taichi 런타임 초기화 (f64 기본 정밀도).

    중복 호출 시 기존 설정을 반환한다.

    Args:
        backend: 요청 백엔드 (AUTO면 CUDA 우선, 없으면 CPU)

    Returns:
        {"backend", "requested", "already_initialized"} 딕셔너리
    """
    global _initialized, _active_backend

    if _initialized:
        if backend not in (Backend.AUTO, _active_backend):
            logger.warning(
                f"Taichi는 이미 {_active_backend.value}로 초기화됨, {backend.value} 요청 무시"
            )
        return {
            "backend": _active_backend.value,
            "requested": backend.value,
            "already_initialized": True,
        }

    requested = Backend.CUDA if backend == Backend.AUTO else backend
    ti.init(arch=ti.cuda if requested == Backend.CUDA else ti.cpu, default_fp=ti.f64)
    _active_backend = _arch_to_backend(ti.lang.impl.current_cfg().arch)
    _initialized = True

    if _active_backend != requested:
        logger.info(f"{requested.value} 백엔드 사용 불가, {_active_backend.value}로 실행")
    logger.info(f"Taichi 초기화: 백엔드={_active_backend.value}")
    return {
        "backend": _active_backend.value,
        "requested": backend.value,
        "already_initialized": False,
    }


def get_backend() -> Optional[Backend]:
    """실제 사용 중인 백엔드 반환 (초기화 전이면 None)."""
    return _active_backend


def is_initialized() -> bool:
    return _initialized


def _arch_to_backend(arch) -> Backend:
    """Taichi arch → Backend 변환. CUDA가 아닌 arch는 CPU(x64/arm64)이다."""
    return Backend.CUDA if arch == ti.cuda else Backend.CPU
