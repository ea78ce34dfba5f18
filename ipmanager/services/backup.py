"""
JSON 백업 생성 및 복원
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List
import logging

from ipmanager.core.entities import IPStatus, MANUAL_IMPORT_RANGE_ID, MANUAL_RANGE_ID, utcnow
from ipmanager.services.store import AllocationStore

logger = logging.getLogger(__name__)

BACKUP_VERSION = 1

# 컬렉션별 필드 타입 (값이 있을 때만 검사, None 은 허용)
FIELD_TYPES = {
    "vlans": {"vlanId": int, "name": str, "description": str},
    "ipRanges": {"name": str, "startIp": str, "endIp": str, "cidr": str, "vlanId": str},
    "ipAddresses": {"address": str, "rangeId": str, "vlanId": str, "status": str},
    "devices": {
        "name": str, "location": str, "type": str, "vlanId": str, "macAddress": str,
        "assignedIp": str, "switchIp": str, "notes": str,
    },
}

_TYPE_NAMES = {int: "an integer", str: "a string"}


@dataclass
class RestoreResult:
    success: bool
    vlans: int = 0
    ranges: int = 0
    devices: int = 0
    reserved: int = 0
    errors: List[str] = field(default_factory=list)
    error: str = ""


def build_backup(store) -> Dict[str, Any]:
    """백업 문서 생성 (otherDevices 는 포함하지 않음)"""
    state = store.snapshot()
    return {
        "version": BACKUP_VERSION,
        "exportedAt": utcnow().isoformat().replace("+00:00", "Z"),
        "data": {
            "devices": state["devices"],
            "ipAddresses": state["ipAddresses"],
            "ipRanges": state["ipRanges"],
            "vlans": state["vlans"],
        },
    }


def _type_matches(value, expected) -> bool:
    if value is None:
        return True
    if expected is int and isinstance(value, bool):
        return False
    return isinstance(value, expected)


def validate_backup(document: Any) -> str:
    """백업 문서 구조와 필드 타입 검증, 문제가 있으면 오류 메시지 반환"""
    if not isinstance(document, dict):
        return "Backup must be a JSON object"
    if not document.get("version") or not isinstance(document.get("data"), dict):
        return "Invalid backup file: missing version or data"

    for key, fields in FIELD_TYPES.items():
        items = document["data"].get(key, [])
        if not isinstance(items, list) or not all(isinstance(item, dict) for item in items):
            return f"Invalid backup file: {key} must be a list of objects"
        for index, item in enumerate(items):
            for name, expected in fields.items():
                if not _type_matches(item.get(name), expected):
                    return f"Invalid backup file: {key}[{index}].{name} must be {_TYPE_NAMES[expected]}"
    return ""


def _manual_range_id(range_id) -> str:
    return range_id if range_id in (MANUAL_RANGE_ID, MANUAL_IMPORT_RANGE_ID) else MANUAL_RANGE_ID


def _replay(staging: AllocationStore, data: Dict[str, Any], result: RestoreResult):
    """빈 저장소에 VLAN -> IP 범위 -> 수동 IP -> 장비 -> 예약 상태 순으로 재생"""
    vlan_map: Dict[str, str] = {}
    for vlan in data.get("vlans", []):
        outcome = staging.add_vlan(
            vlan_id=vlan.get("vlanId"),
            name=vlan.get("name"),
            description=vlan.get("description") or "",
        )
        if outcome.success:
            vlan_map[vlan.get("id")] = outcome.id
            result.vlans += 1
        else:
            result.errors.append(f"VLAN {vlan.get('vlanId')}: {outcome.error}")

    for ip_range in data.get("ipRanges", []):
        outcome = staging.add_ip_range(
            name=ip_range.get("name"),
            start_ip=ip_range.get("startIp"),
            end_ip=ip_range.get("endIp"),
            cidr=ip_range.get("cidr"),
            vlan_id=vlan_map.get(ip_range.get("vlanId")),
        )
        if outcome.success:
            result.ranges += 1
        else:
            result.errors.append(f"Range {ip_range.get('name')}: {outcome.error}")

    # 범위에 속하지 않던 수동 IP (manual / manual-import 구분 유지)
    range_ids = {r.get("id") for r in data.get("ipRanges", [])}
    for ip in data.get("ipAddresses", []):
        if ip.get("rangeId") in range_ids or staging.get_ip_by_address(ip.get("address")):
            continue
        outcome = staging.add_manual_ip(
            ip.get("address"),
            vlan_map.get(ip.get("vlanId")),
            range_id=_manual_range_id(ip.get("rangeId")),
        )
        if not outcome.success:
            result.errors.append(f"IP {ip.get('address')}: {outcome.error}")

    for device in data.get("devices", []):
        vlan_id = vlan_map.get(device.get("vlanId"))
        assigned_ip = device.get("assignedIp") or None
        if assigned_ip and not staging.get_ip_by_address(assigned_ip):
            staging.add_manual_ip(assigned_ip, vlan_id)

        outcome = staging.add_device(
            name=device.get("name"),
            type=device.get("type") or "other",
            location=device.get("location"),
            vlan_id=vlan_id,
            mac_address=device.get("macAddress") or None,
            assigned_ip=assigned_ip,
            switch_ip=device.get("switchIp") or None,
            notes=device.get("notes") or "",
        )
        if outcome.success:
            result.devices += 1
        else:
            result.errors.append(f"Device {device.get('name')}: {outcome.error}")

    for ip in data.get("ipAddresses", []):
        if ip.get("status") != IPStatus.RESERVED.value:
            continue
        restored = staging.get_ip_by_address(ip.get("address"))
        if restored and staging.update_ip_status(restored.id, IPStatus.RESERVED).success:
            result.reserved += 1


def restore_backup(store, document: Dict[str, Any]) -> RestoreResult:
    """현재 데이터를 모두 지우고 백업 내용으로 교체

    별도 저장소에 먼저 재생한 뒤 성공했을 때만 한 번에 교체한다. 백업의
    VLAN ID 는 새로 만들어진 VLAN ID 로 바꿔 연결하고, 범위에 없는 장비 IP 는
    수동 IP 로 등록한다. 기타 장비 목록은 백업 대상이 아니므로 유지된다.
    """
    error = validate_backup(document)
    if error:
        logger.warning(f"백업 복원 거부: {error}")
        return RestoreResult(success=False, error=error)

    result = RestoreResult(success=True)
    staging = AllocationStore()
    try:
        _replay(staging, document["data"], result)
    except (AttributeError, TypeError, ValueError) as e:
        logger.exception("백업 재생 실패, 기존 데이터 유지")
        return RestoreResult(success=False, error=f"Failed to restore backup: {str(e)}")

    state = staging.snapshot()
    with store.batch():
        state["otherDevices"] = store.snapshot()["otherDevices"]
        store.clear_all_data()
        store.load_snapshot(state)

    logger.info(
        f"백업 복원: VLAN {result.vlans}개, 범위 {result.ranges}개, 장비 {result.devices}개, "
        f"오류 {len(result.errors)}건"
    )
    return result
