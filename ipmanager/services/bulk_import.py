"""
엑셀/CSV 장비 목록 파싱

헤더는 대소문자 무시 부분 문자열로 인식한다.
장비: location / ip 또는 address / device 또는 name
기타 장비: name / display ip / controller ip / location (camera ip 는 선택)
"""
from dataclasses import dataclass, field
from io import BytesIO, StringIO
from typing import Any, List, Optional, Sequence
import csv
import logging

from openpyxl import load_workbook

from ipmanager.core.entities import BulkImportResult
from ipmanager.core.ip_utils import is_valid_ip

logger = logging.getLogger(__name__)

SUPPORTED_EXTENSIONS = ("csv", "xlsx")

# 카메라 IP 칸의 "-" 는 빈 값으로 취급
EMPTY_MARKER = "-"


@dataclass
class ImportRow:
    """가져오기 대상 한 행"""
    name: str
    location: str
    ip_address: str
    line: int = 0
    error: Optional[str] = None

    @property
    def is_valid(self) -> bool:
        return self.error is None


@dataclass
class OtherImportRow:
    """기타 장비 가져오기 대상 한 행"""
    name: str
    display_ip: str
    controller_ip: str
    location: str
    camera_ip: Optional[str] = None
    line: int = 0
    errors: List[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors

    @property
    def error(self) -> Optional[str]:
        return ", ".join(self.errors) if self.errors else None


@dataclass
class ParsedImport:
    success: bool
    rows: List[Any] = field(default_factory=list)
    error: str = ""

    @property
    def valid_rows(self) -> List[Any]:
        return [row for row in self.rows if row.is_valid]

    @property
    def invalid_rows(self) -> List[Any]:
        return [row for row in self.rows if not row.is_valid]


def _cell(value: Any) -> str:
    return "" if value is None else str(value).strip()


def _find_column(lowered: Sequence[str], *keywords) -> int:
    for index, header in enumerate(lowered):
        if any(keyword in header for keyword in keywords):
            return index
    return -1


def _row_reader(raw: Sequence[Any]):
    def value(index):
        return _cell(raw[index]) if 0 <= index < len(raw) else ""
    return value


def detect_columns(headers: Sequence[Any]):
    """(location, ip, device) 컬럼 인덱스 반환, 없으면 -1"""
    lowered = [_cell(h).lower() for h in headers]
    return (
        _find_column(lowered, "location"),
        _find_column(lowered, "ip", "address"),
        _find_column(lowered, "device", "name"),
    )


def detect_other_columns(headers: Sequence[Any]):
    """(name, display ip, controller ip, location, camera ip) 컬럼 인덱스 반환, 없으면 -1"""
    lowered = [_cell(h).lower() for h in headers]
    return (
        _find_column(lowered, "name"),
        _find_column(lowered, "display ip"),
        _find_column(lowered, "controller ip"),
        _find_column(lowered, "location"),
        _find_column(lowered, "camera ip"),
    )


def parse_table(table: Sequence[Sequence[Any]]) -> ParsedImport:
    """첫 행을 헤더로 하는 2차원 표를 ImportRow 목록으로 변환"""
    if not table:
        return ParsedImport(success=False, error="The file is empty")

    location_idx, ip_idx, device_idx = detect_columns(table[0])
    if -1 in (location_idx, ip_idx, device_idx):
        return ParsedImport(
            success=False,
            error="Could not find required columns: Location, IP Address, Device Name",
        )

    rows: List[ImportRow] = []
    for line, raw in enumerate(table[1:], start=2):
        value = _row_reader(raw)
        location = value(location_idx)
        ip_address = value(ip_idx)
        name = value(device_idx)

        # 빈 행 건너뛰기
        if not location and not ip_address and not name:
            continue

        error = None
        if not name:
            error = "Device name is required"
        elif not location:
            error = "Location is required"
        elif not ip_address:
            error = "IP address is required"
        elif not is_valid_ip(ip_address):
            error = "Invalid IP format"

        rows.append(ImportRow(name=name, location=location, ip_address=ip_address, line=line, error=error))

    return ParsedImport(success=True, rows=rows)


def parse_other_table(table: Sequence[Sequence[Any]]) -> ParsedImport:
    """기타 장비 표를 OtherImportRow 목록으로 변환

    한 행의 모든 문제를 errors 에 모은다. 중복 Display IP 검사는 저장소
    상태가 필요하므로 import_other_devices 에서 한다.
    """
    if not table:
        return ParsedImport(success=False, error="The file is empty")

    name_idx, display_idx, controller_idx, location_idx, camera_idx = detect_other_columns(table[0])
    if -1 in (name_idx, display_idx, controller_idx, location_idx):
        return ParsedImport(
            success=False,
            error="Could not find required columns: Name, Display IP, Controller IP, Location",
        )

    rows: List[OtherImportRow] = []
    for line, raw in enumerate(table[1:], start=2):
        value = _row_reader(raw)
        name = value(name_idx)
        display_ip = value(display_idx)
        controller_ip = value(controller_idx)
        location = value(location_idx)
        camera_ip = value(camera_idx)

        if not any((name, display_ip, controller_ip, location, camera_ip)):
            continue

        errors = []
        if not name:
            errors.append("Missing name")
        if not display_ip:
            errors.append("Missing Display IP")
        elif not is_valid_ip(display_ip):
            errors.append("Invalid Display IP format")
        if not controller_ip:
            errors.append("Missing Controller IP")
        elif not is_valid_ip(controller_ip):
            errors.append("Invalid Controller IP format")
        if not location:
            errors.append("Missing location")
        if camera_ip == EMPTY_MARKER:
            camera_ip = ""
        if camera_ip and not is_valid_ip(camera_ip):
            errors.append("Invalid Camera IP format")

        rows.append(OtherImportRow(
            name=name,
            display_ip=display_ip,
            controller_ip=controller_ip,
            location=location,
            camera_ip=camera_ip or None,
            line=line,
            errors=errors,
        ))

    return ParsedImport(success=True, rows=rows)


def read_csv(data: bytes) -> List[List[str]]:
    text = data.decode("utf-8-sig")
    return [row for row in csv.reader(StringIO(text))]


def read_xlsx(data: bytes) -> List[List[Any]]:
    """첫 번째 시트의 값만 읽는다"""
    workbook = load_workbook(BytesIO(data), read_only=True, data_only=True)
    try:
        sheet = workbook.worksheets[0]
        return [list(row) for row in sheet.iter_rows(values_only=True)]
    finally:
        workbook.close()


def _parse_upload(data: bytes, filename: str, parser) -> ParsedImport:
    ext = filename.rsplit(".", 1)[-1].lower() if "." in filename else ""
    if ext not in SUPPORTED_EXTENSIONS:
        return ParsedImport(success=False, error=f"Unsupported file type: .{ext}")

    try:
        table = read_csv(data) if ext == "csv" else read_xlsx(data)
    except Exception as e:
        logger.exception(f"가져오기 파일 파싱 실패: {filename}")
        return ParsedImport(success=False, error=f"Failed to parse file: {str(e)}")

    return parser(table)


def parse_file(data: bytes, filename: str) -> ParsedImport:
    """확장자에 따라 CSV 또는 XLSX 장비 목록 파싱"""
    return _parse_upload(data, filename, parse_table)


def parse_other_file(data: bytes, filename: str) -> ParsedImport:
    """확장자에 따라 CSV 또는 XLSX 기타 장비 목록 파싱"""
    return _parse_upload(data, filename, parse_other_table)


def import_parsed(store, parsed: ParsedImport, vlan_id: Optional[str] = None) -> BulkImportResult:
    """유효한 행만 저장소의 bulk_import_devices 로 전달

    형식 오류가 있는 행은 저장소에 도달하지 않고 skipped 로 집계된다.
    """
    result = store.bulk_import_devices(parsed.valid_rows, vlan_id=vlan_id)
    for row in parsed.invalid_rows:
        result.skipped += 1
        result.errors.append(f"Row {row.line}: {row.error}")
    return result


def import_other_devices(store, parsed: ParsedImport) -> BulkImportResult:
    """유효한 기타 장비 행을 등록, Display IP 가 이미 있으면 건너뛴다"""
    result = BulkImportResult()
    with store.batch():
        taken = {other.display_ip.lower() for other in store.list_other_devices()}
        for row in parsed.rows:
            if not row.is_valid:
                result.skipped += 1
                result.errors.append(f"Row {row.line}: {row.error}")
                continue
            if row.display_ip.lower() in taken:
                result.skipped += 1
                result.errors.append(f"Row {row.line}: Display IP already exists")
                continue

            outcome = store.add_other_device(
                name=row.name,
                display_ip=row.display_ip,
                controller_ip=row.controller_ip,
                location=row.location,
                camera_ip=row.camera_ip,
            )
            if outcome.success:
                taken.add(row.display_ip.lower())
                result.imported += 1
            else:
                result.skipped += 1
                result.errors.append(f"Row {row.line}: {outcome.error}")

    logger.info(f"기타 장비 가져오기: {result.imported}개 추가, {result.skipped}개 건너뜀")
    return result
