"""VTK/VTU 내보내기 — 1D 입자 스냅샷을 ParaView 호환 형식으로 저장.

VTK XML Unstructured Grid (.vtu) 형식으로 내보내며, 각 입자는 VTK_VERTEX 셀이다.
ASCII 및 binary 모드를 지원한다.

스냅샷 내용:
- Points: 현재 입자 좌표 (1D → 3D 패딩)
- PointData "Displacement": 입자별 스칼라 변위
- FieldData "Time": 스냅샷 시점의 경과 시간

사용 예:
    from bbpd.io import export_snapshot
    export_snapshot("results", 10, time, position, displacement)

참고문헌:
- VTK File Formats: https://vtk.org/wp-content/uploads/2015/04/file-formats.pdf
"""

import base64
import logging
import struct
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np

logger = logging.getLogger(__name__)

VTK_VERTEX = 1

SNAPSHOT_PATTERN = "timestep_{:04d}.vtu"


def _encode_binary(data: np.ndarray) -> str:
    """NumPy 배열을 VTK binary (base64) 인코딩."""
    # VTK는 앞에 데이터 크기 (바이트) 헤더를 추가
    raw = data.tobytes()
    header = struct.pack('<I', len(raw))  # 32-bit LE 크기 헤더
    return base64.b64encode(header + raw).decode('ascii')


def _decode_binary(text: str, dtype) -> np.ndarray:
    """VTK binary (base64) 문자열을 NumPy 배열로 복원."""
    raw = base64.b64decode(text.strip())
    (n_bytes,) = struct.unpack('<I', raw[:4])
    return np.frombuffer(raw[4:4 + n_bytes], dtype=dtype)


def export_vtk(
    filename: str,
    position: np.ndarray,
    fields: Optional[Dict[str, np.ndarray]] = None,
    field_data: Optional[Dict[str, float]] = None,
    binary: bool = False,
) -> str:
    """1D 입자 데이터를 VTK XML Unstructured Grid (.vtu) 파일로 내보내기.

    Args:
        filename: 출력 파일 경로 (.vtu)
        position: 입자 좌표 (n_points,)
        fields: 입자별 스칼라 데이터 딕셔너리 → PointData
        field_data: 데이터셋 전역 스칼라 딕셔너리 → FieldData
        binary: True면 binary, False면 ASCII

    Returns:
        저장된 파일 경로
    """
    if fields is None:
        fields = {}
    if field_data is None:
        field_data = {}

    filepath = Path(filename)
    if filepath.suffix != '.vtu':
        filepath = filepath.with_suffix('.vtu')

    position = np.asarray(position, dtype=np.float64).reshape(-1)
    n_points = len(position)

    # 1D 좌표를 3D로 패딩 (VTK는 항상 3D)
    points_3d = np.zeros((n_points, 3), dtype=np.float64)
    points_3d[:, 0] = position

    # XML 구조 생성
    root = ET.Element("VTKFile", {
        "type": "UnstructuredGrid",
        "version": "0.1",
        "byte_order": "LittleEndian",
        "header_type": "UInt32",
    })
    grid = ET.SubElement(root, "UnstructuredGrid")

    # ─── FieldData (전역 스칼라) ───
    if field_data:
        fd = ET.SubElement(grid, "FieldData")
        for name, value in field_data.items():
            _add_data_array(
                fd, name, np.array([value], dtype=np.float64), 1, binary,
                n_tuples=1,
            )

    piece = ET.SubElement(grid, "Piece", {
        "NumberOfPoints": str(n_points),
        "NumberOfCells": str(n_points),
    })

    # ─── Points ───
    points = ET.SubElement(piece, "Points")
    _add_data_array(points, "Points", points_3d.flatten(), 3, binary)

    # ─── Cells (입자당 VTK_VERTEX 1개) ───
    cells = ET.SubElement(piece, "Cells")
    connectivity = np.arange(n_points, dtype=np.int32)
    _add_data_array(cells, "connectivity", connectivity, 1, binary)
    offsets = np.arange(1, n_points + 1, dtype=np.int32)
    _add_data_array(cells, "offsets", offsets, 1, binary)
    types = np.full(n_points, VTK_VERTEX, dtype=np.int32)
    _add_data_array(cells, "types", types, 1, binary)

    # ─── PointData (입자 필드) ───
    point_data = ET.SubElement(piece, "PointData")
    for name, data in fields.items():
        data = np.asarray(data, dtype=np.float64).reshape(-1)
        if len(data) != n_points:
            raise ValueError(
                f"필드 '{name}' 길이 불일치: {len(data)} != {n_points}"
            )
        _add_data_array(point_data, name, data, 1, binary)

    # 파일 저장
    filepath.parent.mkdir(parents=True, exist_ok=True)
    tree = ET.ElementTree(root)
    ET.indent(tree, space="  ")
    tree.write(str(filepath), xml_declaration=True, encoding="unicode")

    return str(filepath)


def _add_data_array(
    parent: ET.Element,
    name: str,
    data: np.ndarray,
    n_components: int,
    binary: bool,
    n_tuples: Optional[int] = None,
):
    """VTK DataArray 요소 추가."""
    if data.dtype in (np.int32, np.int64):
        dtype = "Int32"
        data = data.astype(np.int32)
    else:
        dtype = "Float64"
        data = data.astype(np.float64)

    attrs = {
        "type": dtype,
        "Name": name,
        "NumberOfComponents": str(n_components),
    }
    if n_tuples is not None:
        attrs["NumberOfTuples"] = str(n_tuples)

    if binary:
        attrs["format"] = "binary"
        elem = ET.SubElement(parent, "DataArray", attrs)
        elem.text = "\n" + _encode_binary(data) + "\n"
    else:
        attrs["format"] = "ascii"
        elem = ET.SubElement(parent, "DataArray", attrs)
        # ASCII 포맷: 공백 구분 숫자 (f64 왕복 보존을 위해 17자리)
        if dtype == "Int32":
            elem.text = "\n" + " ".join(str(int(v)) for v in data.flatten()) + "\n"
        else:
            elem.text = "\n" + " ".join(f"{v:.17e}" for v in data.flatten()) + "\n"


def export_snapshot(
    export_path: str,
    timestep: int,
    time: float,
    position: np.ndarray,
    displacement: np.ndarray,
    binary: bool = False,
) -> str:
    """시간 단계 스냅샷 내보내기 (timestep_%04d.vtu).

    Args:
        export_path: 출력 디렉토리
        timestep: 시간 단계 번호 (0 = 초기 상태)
        time: 경과 시간
        position: 현재 입자 좌표
        displacement: 입자 변위
        binary: binary 인코딩 여부

    Returns:
        저장된 파일 경로
    """
    filename = Path(export_path) / SNAPSHOT_PATTERN.format(timestep)
    path = export_vtk(
        str(filename),
        position,
        fields={"Displacement": displacement},
        field_data={"Time": time},
        binary=binary,
    )
    logger.debug(f"스냅샷 저장: step={timestep}, t={time:.6e} → {path}")
    return path


def export_pvd(pvd_filename: str, entries: Sequence[Tuple[float, str]]) -> str:
    """스냅샷 목록을 PVD 컬렉션 파일로 기록.

    Args:
        pvd_filename: 출력 .pvd 파일 경로
        entries: (time, vtu 파일 경로) 리스트

    Returns:
        PVD 파일 경로
    """
    pvd_path = Path(pvd_filename)
    root = ET.Element("VTKFile", {
        "type": "Collection",
        "version": "0.1",
    })
    collection = ET.SubElement(root, "Collection")

    for time_val, vtu_file in entries:
        ET.SubElement(collection, "DataSet", {
            "timestep": repr(float(time_val)),
            "file": Path(vtu_file).name,
        })

    pvd_path.parent.mkdir(parents=True, exist_ok=True)
    tree = ET.ElementTree(root)
    ET.indent(tree, space="  ")
    tree.write(str(pvd_path), xml_declaration=True, encoding="unicode")

    return str(pvd_path)


def read_vtu(filename: str) -> dict:
    """export_vtk로 저장한 .vtu 파일 읽기.

    Returns:
        {"points": (n, 3), "point_data": {name: (n,)}, "field_data": {name: float}}
    """
    root = ET.parse(str(filename)).getroot()
    grid = root.find("UnstructuredGrid")

    field_data = {}
    fd = grid.find("FieldData")
    if fd is not None:
        for arr in fd.findall("DataArray"):
            field_data[arr.get("Name")] = float(_read_data_array(arr)[0])

    piece = grid.find("Piece")
    n_points = int(piece.get("NumberOfPoints"))
    points = _read_data_array(piece.find("Points/DataArray")).reshape(n_points, 3)

    point_data = {}
    for arr in piece.findall("PointData/DataArray"):
        point_data[arr.get("Name")] = _read_data_array(arr)

    return {"points": points, "point_data": point_data, "field_data": field_data}


def read_pvd(filename: str) -> List[Tuple[float, str]]:
    """PVD 컬렉션에서 (time, file) 목록 읽기."""
    root = ET.parse(str(filename)).getroot()
    return [
        (float(ds.get("timestep")), ds.get("file"))
        for ds in root.findall("Collection/DataSet")
    ]


def _read_data_array(elem: ET.Element) -> np.ndarray:
    dtype = np.int32 if elem.get("type") == "Int32" else np.float64
    text = elem.text or ""
    if elem.get("format") == "binary":
        return _decode_binary(text, dtype).copy()
    return np.array(text.split(), dtype=dtype)
