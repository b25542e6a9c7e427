"""실행 로그 파일 (logfile.log) 기록."""

from pathlib import Path

LOGFILE_NAME = "logfile.log"


def write_logfile(
    export_path: str,
    walltime: float,
    n_points: int,
    n_bonds: int,
    dt: float,
) -> str:
    """시뮬레이션 종료 후 요약 로그 작성.

    Args:
        export_path: 출력 디렉토리
        walltime: 실행 시간 [s]
        n_points: 입자 수
        n_bonds: 본드 수
        dt: 안정 시간 간격

    Returns:
        로그 파일 경로
    """
    path = Path(export_path) / LOGFILE_NAME
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        f.write(f"simulation completed after {walltime} seconds (wall time)\n\n")
        f.write(f"number of points = {n_points}\n")
        f.write(f"number of bonds = {n_bonds}\n")
        f.write(f"Δt = {dt}\n")
    return str(path)


def read_logfile(export_path: str) -> dict:
    """logfile.log의 "key = value" 줄을 딕셔너리로 읽기."""
    values = {}
    with open(Path(export_path) / LOGFILE_NAME, encoding="utf-8") as f:
        for line in f:
            if " = " in line:
                key, value = line.strip().split(" = ", 1)
                values[key] = value
    return values
