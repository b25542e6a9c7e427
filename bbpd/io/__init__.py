"""입출력 모듈 — VTU 스냅샷 및 실행 로그."""

from .vtk_export import export_vtk, export_snapshot, export_pvd, read_vtu, read_pvd
from .logfile import write_logfile, read_logfile

__all__ = [
    "export_vtk",
    "export_snapshot",
    "export_pvd",
    "read_vtu",
    "read_pvd",
    "write_logfile",
    "read_logfile",
]
