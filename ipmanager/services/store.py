"""
IP / 장비 / VLAN 할당 저장소

장비, IP 주소, 범위, VLAN 을 하나의 프로세스 내 저장소가 소유한다.
모든 공개 연산은 하나의 재진입 락 안에서 실행되며, 상태를 바꾸기 전에
검증을 끝내고 변경은 한 번에 적용한다. 장비와 IP 의 할당 관계가 중간
상태로 관찰되는 일은 없다.
"""
from contextlib import contextmanager
from typing import Any, Dict, Iterable, List, Optional
import logging
import threading

from ipmanager.core.entities import (
    BulkImportResult,
    Device,
    DeviceType,
    ErrorKind,
    IPAddress,
    IPRange,
    IPStatus,
    MANUAL_IMPORT_RANGE_ID,
    MANUAL_RANGE_ID,
    ManualIpResult,
    OperationResult,
    OtherDevice,
    RangeResult,
    VLAN_TAG_MAX,
    VLAN_TAG_MIN,
    Vlan,
    generate_id,
    utcnow,
)
from ipmanager.core.ip_utils import (
    calculate_cidr,
    format_mac,
    generate_ip_range,
    ip_to_number,
    is_valid_ip,
    is_valid_mac,
    parse_cidr,
)

logger = logging.getLogger(__name__)

DEVICE_FIELDS = {"name", "type", "location", "vlan_id", "mac_address", "assigned_ip", "switch_ip", "notes"}
VLAN_FIELDS = {"vlan_id", "name", "description"}
OTHER_DEVICE_FIELDS = {"name", "display_ip", "controller_ip", "camera_ip", "location", "notes"}

MSG_MAC_EXISTS = "A device with this MAC address already exists"
MSG_IP_UNMANAGED = "The specified IP address is not in any managed range"
MSG_IP_TAKEN = "This IP address is already assigned to another device"


def _blank(value) -> bool:
    return not isinstance(value, str) or not value.strip()


class AllocationStore:
    """장비, IP 주소, IP 범위, VLAN 컬렉션을 소유하는 저장소"""

    def __init__(self):
        self._lock = threading.RLock()
        self._devices: Dict[str, Device] = {}
        self._ip_addresses: Dict[str, IPAddress] = {}
        self._ip_ranges: Dict[str, IPRange] = {}
        self._vlans: Dict[str, Vlan] = {}
        self._other_devices: Dict[str, OtherDevice] = {}
        # address -> ip id
        self._ip_index: Dict[str, str] = {}

    @contextmanager
    def batch(self):
        """여러 연산을 하나의 원자적 단위로 묶는다 (복원 등)"""
        with self._lock:
            yield self

    # ------------------------------------------------------------------
    # 내부 헬퍼
    # ------------------------------------------------------------------

    def _find_ip(self, address: Optional[str]) -> Optional[IPAddress]:
        ip_id = self._ip_index.get(address) if address else None
        return self._ip_addresses.get(ip_id) if ip_id else None

    def _add_ip_record(self, ip: IPAddress):
        self._ip_addresses[ip.id] = ip
        self._ip_index[ip.address] = ip.id

    def _remove_ip_record(self, ip: IPAddress):
        self._ip_addresses.pop(ip.id, None)
        if self._ip_index.get(ip.address) == ip.id:
            del self._ip_index[ip.address]

    def _mac_taken(self, mac: str, exclude_id: Optional[str] = None) -> bool:
        lowered = mac.lower()
        return any(
            d.id != exclude_id and d.mac_address and d.mac_address.lower() == lowered
            for d in self._devices.values()
        )

    def _vlan_missing(self, vlan_id: Optional[str]) -> bool:
        return vlan_id is not None and vlan_id not in self._vlans

    @staticmethod
    def _bind(ip: IPAddress, device: Device, now):
        ip.status = IPStatus.ASSIGNED
        ip.device_id = device.id
        ip.assigned_at = now
        ip.updated_at = now
        device.assigned_ip = ip.address
        device.assigned_at = now
        device.updated_at = now

    @staticmethod
    def _release(ip: IPAddress, now):
        ip.status = IPStatus.AVAILABLE
        ip.device_id = None
        ip.assigned_at = None
        ip.updated_at = now

    def _check_device_fields(self, values: Dict[str, Any], exclude_id: Optional[str] = None) -> Optional[OperationResult]:
        """장비 필드 검증, 오류가 있으면 실패 결과 반환"""
        if "name" in values and _blank(values["name"]):
            return OperationResult.fail(ErrorKind.VALIDATION, "Device name is required")
        if "location" in values and _blank(values["location"]):
            return OperationResult.fail(ErrorKind.VALIDATION, "Location is required")
        if "type" in values:
            try:
                DeviceType(values["type"])
            except ValueError:
                return OperationResult.fail(ErrorKind.VALIDATION, f"Invalid device type: {values['type']}")
        mac = values.get("mac_address")
        if mac:
            if not is_valid_mac(mac):
                return OperationResult.fail(ErrorKind.VALIDATION, "Invalid MAC address format")
            if self._mac_taken(mac, exclude_id):
                return OperationResult.fail(ErrorKind.CONFLICT, MSG_MAC_EXISTS)
        for key in ("assigned_ip", "switch_ip"):
            if values.get(key) and not is_valid_ip(values[key]):
                return OperationResult.fail(ErrorKind.VALIDATION, f"Invalid IP address format: {values[key]}")
        if self._vlan_missing(values.get("vlan_id")):
            return OperationResult.fail(ErrorKind.NOT_FOUND, "VLAN not found")
        return None

    # ------------------------------------------------------------------
    # 조회
    # ------------------------------------------------------------------

    def get_device(self, device_id: str) -> Optional[Device]:
        with self._lock:
            device = self._devices.get(device_id)
            return device.model_copy() if device else None

    def get_ip(self, ip_id: str) -> Optional[IPAddress]:
        with self._lock:
            ip = self._ip_addresses.get(ip_id)
            return ip.model_copy() if ip else None

    def get_ip_by_address(self, address: str) -> Optional[IPAddress]:
        with self._lock:
            ip = self._find_ip(address)
            return ip.model_copy() if ip else None

    def get_range(self, range_id: str) -> Optional[IPRange]:
        with self._lock:
            ip_range = self._ip_ranges.get(range_id)
            return ip_range.model_copy() if ip_range else None

    def get_vlan(self, vlan_id: str) -> Optional[Vlan]:
        with self._lock:
            vlan = self._vlans.get(vlan_id)
            return vlan.model_copy() if vlan else None

    def get_other_device(self, other_id: str) -> Optional[OtherDevice]:
        with self._lock:
            other = self._other_devices.get(other_id)
            return other.model_copy() if other else None

    def list_devices(self, search: Optional[str] = None, vlan_id: Optional[str] = None,
                     device_type: Optional[str] = None) -> List[Device]:
        with self._lock:
            devices = [d.model_copy() for d in self._devices.values()]
        if vlan_id is not None:
            devices = [d for d in devices if d.vlan_id == vlan_id]
        if device_type is not None:
            devices = [d for d in devices if d.type == device_type]
        if search:
            needle = search.lower()
            devices = [
                d for d in devices
                if needle in d.name.lower()
                or needle in d.location.lower()
                or needle in (d.assigned_ip or "")
                or needle in (d.mac_address or "").lower()
            ]
        return devices

    def list_ips(self, status: Optional[str] = None, range_id: Optional[str] = None,
                 vlan_id: Optional[str] = None, search: Optional[str] = None) -> List[IPAddress]:
        with self._lock:
            ips = [ip.model_copy() for ip in self._ip_addresses.values()]
            device_names = {d.id: d.name.lower() for d in self._devices.values()}
        if status is not None:
            ips = [ip for ip in ips if ip.status == status]
        if range_id is not None:
            ips = [ip for ip in ips if ip.range_id == range_id]
        if vlan_id is not None:
            ips = [ip for ip in ips if ip.vlan_id == vlan_id]
        if search:
            needle = search.lower()
            ips = [
                ip for ip in ips
                if needle in ip.address or needle in device_names.get(ip.device_id, "")
            ]
        ips.sort(key=lambda ip: ip_to_number(ip.address))
        return ips

    def list_ranges(self) -> List[IPRange]:
        with self._lock:
            return [r.model_copy() for r in self._ip_ranges.values()]

    def list_vlans(self) -> List[Vlan]:
        with self._lock:
            vlans = [v.model_copy() for v in self._vlans.values()]
        return sorted(vlans, key=lambda v: v.vlan_id)

    def list_other_devices(self, search: Optional[str] = None) -> List[OtherDevice]:
        with self._lock:
            others = [o.model_copy() for o in self._other_devices.values()]
        if search and search.strip():
            needle = search.lower()
            others = [
                o for o in others
                if needle in o.name.lower()
                or needle in o.display_ip.lower()
                or needle in o.controller_ip.lower()
                or needle in o.location.lower()
            ]
        return others

    def get_ips_by_range(self, range_id: str) -> List[IPAddress]:
        return self.list_ips(range_id=range_id)

    def get_available_ips(self) -> List[IPAddress]:
        return self.list_ips(status=IPStatus.AVAILABLE)

    def get_stats(self) -> Dict[str, int]:
        """대시보드 통계"""
        with self._lock:
            statuses = [ip.status for ip in self._ip_addresses.values()]
            return {
                "total_devices": len(self._devices),
                "total_ips": len(statuses),
                "available": statuses.count(IPStatus.AVAILABLE),
                "assigned": statuses.count(IPStatus.ASSIGNED),
                "reserved": statuses.count(IPStatus.RESERVED),
                "total_ranges": len(self._ip_ranges),
                "total_vlans": len(self._vlans),
                "total_other_devices": len(self._other_devices),
            }

    def get_vlan_detail(self, vlan_id: str) -> Optional[Dict[str, Any]]:
        """VLAN 과 이를 참조하는 장비/IP/범위 목록"""
        with self._lock:
            vlan = self._vlans.get(vlan_id)
            if not vlan:
                return None
            return {
                "vlan": vlan.model_copy(),
                "devices": [d.model_copy() for d in self._devices.values() if d.vlan_id == vlan_id],
                "ip_addresses": [ip.model_copy() for ip in self._ip_addresses.values() if ip.vlan_id == vlan_id],
                "ip_ranges": [r.model_copy() for r in self._ip_ranges.values() if r.vlan_id == vlan_id],
            }

    # ------------------------------------------------------------------
    # 장비
    # ------------------------------------------------------------------

    def add_device(self, name: str, location: str, type: str = DeviceType.OTHER,
                   vlan_id: Optional[str] = None, mac_address: Optional[str] = None,
                   assigned_ip: Optional[str] = None, switch_ip: Optional[str] = None,
                   notes: str = "") -> OperationResult:
        """장비 추가, assigned_ip 가 있으면 해당 IP 를 함께 할당"""
        values = {
            "name": name, "location": location, "type": type, "vlan_id": vlan_id,
            "mac_address": mac_address, "assigned_ip": assigned_ip, "switch_ip": switch_ip,
        }
        with self._lock:
            failure = self._check_device_fields(values)
            if failure:
                logger.warning(f"장비 추가 거부: {failure.error}")
                return failure

            ip = None
            if assigned_ip:
                ip = self._find_ip(assigned_ip)
                if not ip:
                    return OperationResult.fail(ErrorKind.NOT_FOUND, MSG_IP_UNMANAGED)
                if ip.status == IPStatus.ASSIGNED and ip.device_id:
                    return OperationResult.fail(ErrorKind.CONFLICT, MSG_IP_TAKEN)

            now = utcnow()
            device = Device(
                id=generate_id(),
                name=name.strip(),
                type=DeviceType(type),
                location=location.strip(),
                vlan_id=vlan_id,
                mac_address=format_mac(mac_address) if mac_address else None,
                switch_ip=switch_ip or None,
                notes=notes or "",
                created_at=now,
                updated_at=now,
            )
            if ip:
                self._bind(ip, device, now)
            self._devices[device.id] = device

        logger.info(f"장비 추가: {device.name} ({device.assigned_ip or '-'})")
        return OperationResult.ok(device.id)

    def update_device(self, device_id: str, **updates) -> OperationResult:
        """장비 수정

        assigned_ip 키가 있으면 기존 IP 해제와 새 IP 할당을 한 번에 처리한다.
        키가 없으면 할당은 그대로 유지된다.
        """
        unknown = set(updates) - DEVICE_FIELDS
        if unknown:
            return OperationResult.fail(ErrorKind.VALIDATION, f"Unknown device fields: {', '.join(sorted(unknown))}")

        with self._lock:
            device = self._devices.get(device_id)
            if not device:
                return OperationResult.fail(ErrorKind.NOT_FOUND, "Device not found")

            failure = self._check_device_fields(updates, exclude_id=device_id)
            if failure:
                logger.warning(f"장비 수정 거부 ({device_id}): {failure.error}")
                return failure

            old_address = device.assigned_ip
            new_address = old_address
            if "assigned_ip" in updates:
                new_address = updates["assigned_ip"] or None
            new_ip = None
            if new_address and new_address != old_address:
                new_ip = self._find_ip(new_address)
                if not new_ip:
                    return OperationResult.fail(ErrorKind.NOT_FOUND, MSG_IP_UNMANAGED)
                if new_ip.status == IPStatus.ASSIGNED and new_ip.device_id and new_ip.device_id != device_id:
                    return OperationResult.fail(ErrorKind.CONFLICT, MSG_IP_TAKEN)

            now = utcnow()
            if new_address != old_address:
                old_ip = self._find_ip(old_address)
                if old_ip and old_ip.device_id == device_id:
                    self._release(old_ip, now)
                if new_ip:
                    self._bind(new_ip, device, now)
                else:
                    device.assigned_ip = None
                    device.assigned_at = None

            for key, value in updates.items():
                if key == "assigned_ip":
                    continue
                if key == "mac_address":
                    value = format_mac(value) if value else None
                elif key == "type":
                    value = DeviceType(value)
                elif key in ("name", "location"):
                    value = value.strip()
                elif key == "notes":
                    value = value or ""
                elif key == "switch_ip":
                    value = value or None
                setattr(device, key, value)
            device.updated_at = now

        logger.info(f"장비 수정: {device_id}")
        return OperationResult.ok(device_id)

    def delete_device(self, device_id: str) -> OperationResult:
        """장비 삭제, 할당된 IP 는 available 로 복귀"""
        with self._lock:
            device = self._devices.pop(device_id, None)
            if not device:
                return OperationResult.fail(ErrorKind.NOT_FOUND, "Device not found")
            now = utcnow()
            for ip in self._ip_addresses.values():
                if ip.device_id == device_id:
                    self._release(ip, now)

        logger.info(f"장비 삭제: {device.name}")
        return OperationResult.ok(device_id)

    # ------------------------------------------------------------------
    # IP 범위
    # ------------------------------------------------------------------

    def add_ip_range(self, name: str, start_ip: Optional[str] = None, end_ip: Optional[str] = None,
                     cidr: Optional[str] = None, vlan_id: Optional[str] = None) -> RangeResult:
        """IP 범위 생성 및 주소 전개

        생성될 주소 중 하나라도 이미 존재하면 범위 전체를 거부한다.
        """
        if _blank(name):
            return RangeResult.fail(ErrorKind.VALIDATION, "Range name is required")

        if cidr and not (start_ip and end_ip):
            parsed = parse_cidr(cidr)
            if not parsed:
                return RangeResult.fail(ErrorKind.VALIDATION, f"Invalid CIDR notation: {cidr}")
            start_ip, end_ip = parsed["start_ip"], parsed["end_ip"]

        if not is_valid_ip(start_ip) or not is_valid_ip(end_ip):
            return RangeResult.fail(ErrorKind.VALIDATION, "Start and end IP must be valid IPv4 addresses")
        if ip_to_number(start_ip) > ip_to_number(end_ip):
            return RangeResult.fail(ErrorKind.VALIDATION, "Start IP must not be greater than end IP")

        generated = generate_ip_range(start_ip, end_ip)

        with self._lock:
            if self._vlan_missing(vlan_id):
                return RangeResult.fail(ErrorKind.NOT_FOUND, "VLAN not found")

            duplicates = [address for address in generated if address in self._ip_index]
            if duplicates:
                more = "..." if len(duplicates) > 3 else ""
                result = RangeResult.fail(
                    ErrorKind.CONFLICT,
                    f"{len(duplicates)} IP addresses already exist in other ranges: "
                    f"{', '.join(duplicates[:3])}{more}",
                )
                result.conflicts = duplicates
                logger.warning(f"범위 추가 거부 ({name}): {result.error}")
                return result

            now = utcnow()
            ip_range = IPRange(
                id=generate_id(),
                name=name.strip(),
                start_ip=start_ip,
                end_ip=end_ip,
                cidr=cidr or calculate_cidr(start_ip, end_ip),
                vlan_id=vlan_id,
                created_at=now,
            )
            self._ip_ranges[ip_range.id] = ip_range
            for address in generated:
                self._add_ip_record(IPAddress(
                    id=generate_id(),
                    address=address,
                    range_id=ip_range.id,
                    vlan_id=vlan_id,
                    created_at=now,
                    updated_at=now,
                ))

        if generated.truncated:
            logger.warning(
                f"범위 {ip_range.name}: 요청 {generated.requested}개 중 {len(generated)}개만 생성 (최대 제한)"
            )
        logger.info(f"범위 추가: {ip_range.name} {start_ip}-{end_ip} ({len(generated)}개)")
        result = RangeResult.ok(ip_range.id)
        result.count = len(generated)
        result.truncated = generated.truncated
        return result

    def delete_ip_range(self, range_id: str) -> OperationResult:
        """범위와 소속 IP 삭제, 해당 IP 를 가진 장비는 할당만 해제

        장비의 assigned_at 은 마지막 할당 시각으로 남겨둔다.
        """
        with self._lock:
            ip_range = self._ip_ranges.pop(range_id, None)
            if not ip_range:
                return OperationResult.fail(ErrorKind.NOT_FOUND, "IP range not found")

            doomed = [ip for ip in self._ip_addresses.values() if ip.range_id == range_id]
            addresses = {ip.address for ip in doomed}
            for ip in doomed:
                self._remove_ip_record(ip)

            now = utcnow()
            for device in self._devices.values():
                if device.assigned_ip in addresses:
                    device.assigned_ip = None
                    device.updated_at = now

        logger.info(f"범위 삭제: {ip_range.name} ({len(doomed)}개 IP)")
        return OperationResult.ok(range_id)

    # ------------------------------------------------------------------
    # IP 주소
    # ------------------------------------------------------------------

    def update_ip_status(self, ip_id: str, status: str) -> OperationResult:
        """관리자용 상태 변경

        available 로 바꾸면 장비 쪽 할당까지 함께 해제한다.
        장비에 할당된 주소를 reserved 로 바꾸거나, 장비 없이 assigned 로
        바꾸는 것은 거부한다.
        """
        try:
            status = IPStatus(status)
        except ValueError:
            return OperationResult.fail(ErrorKind.VALIDATION, f"Invalid IP status: {status}")

        with self._lock:
            ip = self._ip_addresses.get(ip_id)
            if not ip:
                return OperationResult.fail(ErrorKind.NOT_FOUND, "IP address not found")

            if status == IPStatus.ASSIGNED and not ip.device_id:
                return OperationResult.fail(
                    ErrorKind.VALIDATION, "Use device assignment to mark an address as assigned"
                )
            if status == IPStatus.RESERVED and ip.device_id:
                return OperationResult.fail(
                    ErrorKind.CONFLICT, "IP is assigned to a device; unassign it before reserving"
                )

            now = utcnow()
            if status == IPStatus.AVAILABLE and ip.device_id:
                device = self._devices.get(ip.device_id)
                if device and device.assigned_ip == ip.address:
                    device.assigned_ip = None
                    device.assigned_at = None
                    device.updated_at = now
                self._release(ip, now)
            else:
                ip.status = status
                ip.updated_at = now

        logger.info(f"IP 상태 변경: {ip.address} -> {status.value}")
        return OperationResult.ok(ip_id)

    def assign_ip_to_device(self, ip_id: str, device_id: str) -> OperationResult:
        """IP 를 장비에 할당, 장비가 가지고 있던 다른 IP 는 해제"""
        with self._lock:
            ip = self._ip_addresses.get(ip_id)
            device = self._devices.get(device_id)
            if not ip or not device:
                return OperationResult.fail(ErrorKind.NOT_FOUND, "IP or Device not found")
            if ip.status == IPStatus.ASSIGNED and ip.device_id and ip.device_id != device_id:
                return OperationResult.fail(ErrorKind.CONFLICT, "IP is already assigned to another device")

            now = utcnow()
            for other in self._ip_addresses.values():
                if other.device_id == device_id and other.id != ip_id:
                    self._release(other, now)
            self._bind(ip, device, now)

        logger.info(f"IP 할당: {ip.address} -> {device.name}")
        return OperationResult.ok(ip_id)

    def unassign_ip(self, ip_id: str) -> OperationResult:
        """IP 와 장비 양쪽의 할당을 해제 (장비가 없으면 아무것도 하지 않음)"""
        with self._lock:
            ip = self._ip_addresses.get(ip_id)
            if not ip:
                return OperationResult.fail(ErrorKind.NOT_FOUND, "IP address not found")
            if not ip.device_id:
                return OperationResult.ok(ip_id)

            now = utcnow()
            device = self._devices.get(ip.device_id)
            if device:
                device.assigned_ip = None
                device.assigned_at = None
                device.updated_at = now
            self._release(ip, now)

        logger.info(f"IP 할당 해제: {ip.address}")
        return OperationResult.ok(ip_id)

    def add_manual_ip(self, address: str, vlan_id: Optional[str] = None,
                      range_id: str = MANUAL_RANGE_ID) -> ManualIpResult:
        """범위 밖의 주소를 수동 등록, 이미 있으면 기존 ID 반환

        range_id 는 manual 또는 manual-import 만 허용한다.
        """
        if not is_valid_ip(address):
            return ManualIpResult.fail(ErrorKind.VALIDATION, f"Invalid IP address format: {address}")
        if range_id not in (MANUAL_RANGE_ID, MANUAL_IMPORT_RANGE_ID):
            return ManualIpResult.fail(ErrorKind.VALIDATION, f"Invalid manual range id: {range_id}")

        with self._lock:
            existing = self._find_ip(address)
            if existing:
                return ManualIpResult(success=True, id=existing.id, ip_id=existing.id)
            if self._vlan_missing(vlan_id):
                return ManualIpResult.fail(ErrorKind.NOT_FOUND, "VLAN not found")

            now = utcnow()
            ip = IPAddress(
                id=generate_id(),
                address=address,
                range_id=range_id,
                vlan_id=vlan_id,
                created_at=now,
                updated_at=now,
            )
            self._add_ip_record(ip)

        logger.info(f"수동 IP 추가: {address}")
        return ManualIpResult(success=True, id=ip.id, ip_id=ip.id)

    # ------------------------------------------------------------------
    # VLAN
    # ------------------------------------------------------------------

    @staticmethod
    def _check_vlan_tag(tag) -> Optional[OperationResult]:
        if isinstance(tag, bool) or not isinstance(tag, int) or not VLAN_TAG_MIN <= tag <= VLAN_TAG_MAX:
            return OperationResult.fail(
                ErrorKind.VALIDATION, f"VLAN ID must be between {VLAN_TAG_MIN} and {VLAN_TAG_MAX}"
            )
        return None

    def add_vlan(self, vlan_id: int, name: str, description: str = "") -> OperationResult:
        failure = self._check_vlan_tag(vlan_id)
        if failure:
            return failure
        if _blank(name):
            return OperationResult.fail(ErrorKind.VALIDATION, "VLAN name is required")

        with self._lock:
            if any(v.vlan_id == vlan_id for v in self._vlans.values()):
                return OperationResult.fail(ErrorKind.CONFLICT, f"VLAN {vlan_id} already exists")

            now = utcnow()
            vlan = Vlan(
                id=generate_id(),
                vlan_id=vlan_id,
                name=name.strip(),
                description=description or "",
                created_at=now,
                updated_at=now,
            )
            self._vlans[vlan.id] = vlan

        logger.info(f"VLAN 추가: {vlan.label}")
        return OperationResult.ok(vlan.id)

    def update_vlan(self, vlan_id: str, /, **updates) -> OperationResult:
        unknown = set(updates) - VLAN_FIELDS
        if unknown:
            return OperationResult.fail(ErrorKind.VALIDATION, f"Unknown VLAN fields: {', '.join(sorted(unknown))}")
        if "vlan_id" in updates:
            failure = self._check_vlan_tag(updates["vlan_id"])
            if failure:
                return failure
        if "name" in updates and _blank(updates["name"]):
            return OperationResult.fail(ErrorKind.VALIDATION, "VLAN name is required")

        with self._lock:
            vlan = self._vlans.get(vlan_id)
            if not vlan:
                return OperationResult.fail(ErrorKind.NOT_FOUND, "VLAN not found")

            tag = updates.get("vlan_id", vlan.vlan_id)
            if any(v.id != vlan_id and v.vlan_id == tag for v in self._vlans.values()):
                return OperationResult.fail(ErrorKind.CONFLICT, f"VLAN {tag} already exists")

            for key, value in updates.items():
                if key == "name":
                    value = value.strip()
                elif key == "description":
                    value = value or ""
                setattr(vlan, key, value)
            vlan.updated_at = utcnow()

        logger.info(f"VLAN 수정: {vlan.label}")
        return OperationResult.ok(vlan_id)

    def delete_vlan(self, vlan_id: str) -> OperationResult:
        """VLAN 삭제, 참조하는 장비/IP/범위는 vlan_id 만 비운다"""
        with self._lock:
            vlan = self._vlans.pop(vlan_id, None)
            if not vlan:
                return OperationResult.fail(ErrorKind.NOT_FOUND, "VLAN not found")

            now = utcnow()
            for device in self._devices.values():
                if device.vlan_id == vlan_id:
                    device.vlan_id = None
                    device.updated_at = now
            for ip in self._ip_addresses.values():
                if ip.vlan_id == vlan_id:
                    ip.vlan_id = None
                    ip.updated_at = now
            for ip_range in self._ip_ranges.values():
                if ip_range.vlan_id == vlan_id:
                    ip_range.vlan_id = None

        logger.info(f"VLAN 삭제: {vlan.label}")
        return OperationResult.ok(vlan_id)

    # ------------------------------------------------------------------
    # 기타 장비 (디스플레이/컨트롤러/카메라)
    # ------------------------------------------------------------------

    @staticmethod
    def _check_other_fields(values: Dict[str, Any]) -> Optional[OperationResult]:
        for key, label in (("name", "Name"), ("location", "Location")):
            if key in values and _blank(values[key]):
                return OperationResult.fail(ErrorKind.VALIDATION, f"{label} is required")
        for key, label in (("display_ip", "Display IP"), ("controller_ip", "Controller IP")):
            if key in values and not is_valid_ip((values[key] or "").strip()):
                return OperationResult.fail(ErrorKind.VALIDATION, f"{label} must be a valid IP address")
        camera_ip = values.get("camera_ip")
        if camera_ip and not is_valid_ip(camera_ip.strip()):
            return OperationResult.fail(ErrorKind.VALIDATION, "Camera IP must be a valid IP address")
        return None

    def add_other_device(self, name: str, display_ip: str, controller_ip: str, location: str,
                         camera_ip: Optional[str] = None, notes: str = "") -> OperationResult:
        failure = self._check_other_fields({
            "name": name, "display_ip": display_ip, "controller_ip": controller_ip,
            "camera_ip": camera_ip, "location": location,
        })
        if failure:
            return failure

        now = utcnow()
        other = OtherDevice(
            id=generate_id(),
            name=name.strip(),
            display_ip=display_ip.strip(),
            controller_ip=controller_ip.strip(),
            camera_ip=camera_ip.strip() if camera_ip else None,
            location=location.strip(),
            notes=(notes or "").strip(),
            created_at=now,
            updated_at=now,
        )
        with self._lock:
            self._other_devices[other.id] = other
        logger.info(f"기타 장비 추가: {other.name}")
        return OperationResult.ok(other.id)

    def update_other_device(self, other_id: str, **updates) -> OperationResult:
        unknown = set(updates) - OTHER_DEVICE_FIELDS
        if unknown:
            return OperationResult.fail(ErrorKind.VALIDATION, f"Unknown fields: {', '.join(sorted(unknown))}")
        failure = self._check_other_fields(updates)
        if failure:
            return failure

        with self._lock:
            other = self._other_devices.get(other_id)
            if not other:
                return OperationResult.fail(ErrorKind.NOT_FOUND, "Device not found")
            for key, value in updates.items():
                if key == "camera_ip":
                    value = value.strip() if value else None
                else:
                    value = (value or "").strip()
                setattr(other, key, value)
            other.updated_at = utcnow()
        return OperationResult.ok(other_id)

    def delete_other_device(self, other_id: str) -> OperationResult:
        with self._lock:
            if not self._other_devices.pop(other_id, None):
                return OperationResult.fail(ErrorKind.NOT_FOUND, "Device not found")
        logger.info(f"기타 장비 삭제: {other_id}")
        return OperationResult.ok(other_id)

    # ------------------------------------------------------------------
    # 대량 가져오기
    # ------------------------------------------------------------------

    def bulk_import_devices(self, rows: Iterable[Any], vlan_id: Optional[str] = None) -> BulkImportResult:
        """표 형식 행들을 장비로 일괄 등록

        이름(대소문자 무시) 또는 IP 가 이미 있는 행은 건너뛰고, 관리 범위에
        없는 IP 는 manual-import 주소로 새로 만든다. 한 행의 실패가 배치
        전체를 중단시키지 않는다.
        """
        result = BulkImportResult()
        with self._lock:
            if self._vlan_missing(vlan_id):
                return BulkImportResult(success=False, errors=["VLAN not found"])

            names = {d.name.lower() for d in self._devices.values()}
            taken = {d.assigned_ip for d in self._devices.values() if d.assigned_ip}
            now = utcnow()

            for row in rows:
                name = (_row_value(row, "name") or "").strip()
                location = (_row_value(row, "location") or "").strip()
                address = (_row_value(row, "ip_address") or "").strip()

                if not name or not location or not is_valid_ip(address):
                    result.skipped += 1
                    result.errors.append(f'Skipped: Invalid row for device "{name}" ({address or "no IP"})')
                    continue

                ip = self._find_ip(address)
                if name.lower() in names or address in taken or (ip and ip.device_id):
                    result.skipped += 1
                    result.errors.append(f'Skipped: Device "{name}" or IP {address} already exists')
                    continue

                device = Device(
                    id=generate_id(),
                    name=name,
                    type=DeviceType.OTHER,
                    location=location,
                    vlan_id=vlan_id,
                    created_at=now,
                    updated_at=now,
                )
                if not ip:
                    ip = IPAddress(
                        id=generate_id(),
                        address=address,
                        range_id=MANUAL_IMPORT_RANGE_ID,
                        vlan_id=vlan_id,
                        created_at=now,
                        updated_at=now,
                    )
                    self._add_ip_record(ip)
                self._bind(ip, device, now)
                self._devices[device.id] = device

                names.add(name.lower())
                taken.add(address)
                result.imported += 1

        logger.info(f"장비 일괄 가져오기: {result.imported}개 추가, {result.skipped}개 건너뜀")
        return result

    # ------------------------------------------------------------------
    # 전체 상태
    # ------------------------------------------------------------------

    def clear_all_data(self):
        """장비/IP/범위/VLAN 전체 초기화 (기타 장비 목록은 유지)"""
        with self._lock:
            self._devices = {}
            self._ip_addresses = {}
            self._ip_ranges = {}
            self._vlans = {}
            self._ip_index = {}
        logger.info("저장소 데이터 전체 초기화")

    def snapshot(self) -> Dict[str, List[dict]]:
        """전체 상태를 camelCase JSON 구조로 반환"""
        with self._lock:
            return {
                "devices": [d.model_dump(mode="json", by_alias=True) for d in self._devices.values()],
                "ipAddresses": [ip.model_dump(mode="json", by_alias=True) for ip in self._ip_addresses.values()],
                "ipRanges": [r.model_dump(mode="json", by_alias=True) for r in self._ip_ranges.values()],
                "vlans": [v.model_dump(mode="json", by_alias=True) for v in self._vlans.values()],
                "otherDevices": [o.model_dump(mode="json", by_alias=True) for o in self._other_devices.values()],
            }

    def load_snapshot(self, data: Dict[str, Any]):
        """snapshot() 구조로부터 상태 교체

        잘못된 항목이 있으면 pydantic ValidationError (ValueError) 를 그대로
        올리고 기존 상태는 변경하지 않는다.
        """
        devices = {d.id: d for d in (Device.model_validate(item) for item in data.get("devices") or [])}
        ips = {ip.id: ip for ip in (IPAddress.model_validate(item) for item in data.get("ipAddresses") or [])}
        ranges = {r.id: r for r in (IPRange.model_validate(item) for item in data.get("ipRanges") or [])}
        vlans = {v.id: v for v in (Vlan.model_validate(item) for item in data.get("vlans") or [])}
        others = {o.id: o for o in (OtherDevice.model_validate(item) for item in data.get("otherDevices") or [])}

        with self._lock:
            self._devices = devices
            self._ip_addresses = ips
            self._ip_ranges = ranges
            self._vlans = vlans
            self._other_devices = others
            self._ip_index = {ip.address: ip.id for ip in ips.values()}

        logger.info(f"저장소 로드: 장비 {len(devices)}개, IP {len(ips)}개, 범위 {len(ranges)}개, VLAN {len(vlans)}개")


def _row_value(row: Any, key: str) -> Optional[str]:
    if isinstance(row, dict):
        return row.get(key)
    return getattr(row, key, None)
