"""
장비 / IP / 기타 장비 목록 내보내기 (CSV, XLSX)
"""
from io import BytesIO, StringIO
from typing import List, Optional, Sequence, Tuple
import csv

from openpyxl import Workbook
from openpyxl.styles import Font, PatternFill

from ipmanager.core.entities import MANUAL_IMPORT_RANGE_ID, MANUAL_RANGE_ID

DEVICE_HEADERS = ["Name", "Location", "VLAN", "IP Address", "MAC Address", "Type", "Notes", "Created At"]
IP_HEADERS = ["IP Address", "Status", "Device Name", "Location", "VLAN", "Range Name", "Created At"]
OTHER_HEADERS = ["Name", "Display IP", "Controller IP", "Camera IP", "Location", "Notes", "Added Date", "Added Time"]

Table = Tuple[List[str], List[List[str]]]


def _vlan_labels(store):
    return {vlan.id: vlan.label for vlan in store.list_vlans()}


def device_table(store) -> Table:
    """장비 목록 (VLAN 은 'VLAN {번호} - {이름}' 으로 표시)"""
    vlans = _vlan_labels(store)
    rows = [
        [
            device.name,
            device.location,
            vlans.get(device.vlan_id, "") if device.vlan_id else "",
            device.assigned_ip or "",
            device.mac_address or "",
            device.type.value,
            device.notes,
            device.created_at.isoformat(),
        ]
        for device in store.list_devices()
    ]
    return DEVICE_HEADERS, rows


def ip_table(store) -> Table:
    """IP 목록 (장비 이름/위치, VLAN, 범위 이름 포함)"""
    vlans = _vlan_labels(store)
    devices = {device.id: device for device in store.list_devices()}
    ranges = {ip_range.id: ip_range.name for ip_range in store.list_ranges()}

    rows = []
    for ip in store.list_ips():
        device = devices.get(ip.device_id) if ip.device_id else None
        if ip.range_id in (MANUAL_RANGE_ID, MANUAL_IMPORT_RANGE_ID):
            range_name = "Manual"
        else:
            range_name = ranges.get(ip.range_id, "Manual")
        rows.append([
            ip.address,
            ip.status.value,
            device.name if device else "",
            device.location if device else "",
            vlans.get(ip.vlan_id, "") if ip.vlan_id else "",
            range_name,
            ip.created_at.isoformat(),
        ])
    return IP_HEADERS, rows


def _date_and_time(value):
    """(YYYY-MM-DD, h:mmam) 형식으로 분리"""
    if not value:
        return "-", "-"
    hour = value.hour % 12 or 12
    suffix = "pm" if value.hour >= 12 else "am"
    return value.strftime("%Y-%m-%d"), f"{hour}:{value.minute:02d}{suffix}"


def other_device_table(store, search: Optional[str] = None) -> Table:
    """기타 장비 목록 (검색어가 있으면 화면과 같은 필터 적용)"""
    rows = []
    for other in store.list_other_devices(search=search):
        date, time = _date_and_time(other.created_at)
        rows.append([
            other.name,
            other.display_ip,
            other.controller_ip,
            other.camera_ip or "-",
            other.location,
            other.notes or "-",
            date,
            time,
        ])
    return OTHER_HEADERS, rows


def to_csv(headers: Sequence[str], rows: Sequence[Sequence[str]]) -> str:
    output = StringIO()
    writer = csv.writer(output, lineterminator="\n")
    writer.writerow(headers)
    writer.writerows(rows)
    return output.getvalue()


def to_xlsx(headers: Sequence[str], rows: Sequence[Sequence[str]], title: str = "Sheet1") -> bytes:
    """헤더를 굵게 표시한 단일 시트 워크북 생성"""
    workbook = Workbook()
    sheet = workbook.active
    sheet.title = title

    sheet.append(list(headers))
    header_fill = PatternFill(start_color="D9E1F2", end_color="D9E1F2", fill_type="solid")
    for cell in sheet[1]:
        cell.font = Font(bold=True)
        cell.fill = header_fill

    for row in rows:
        sheet.append(list(row))

    # 열 너비 자동 조정
    for column in sheet.columns:
        width = max(len(str(cell.value or "")) for cell in column)
        sheet.column_dimensions[column[0].column_letter].width = min(width + 2, 50)

    output = BytesIO()
    workbook.save(output)
    return output.getvalue()
