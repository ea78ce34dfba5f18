"""
인벤토리 엔티티 및 결과 타입 정의
"""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional
import random
import string
import time

from pydantic import BaseModel, Field, field_validator
from pydantic.alias_generators import to_camel

from ipmanager.core.ip_utils import is_valid_ip

# 범위에서 생성되지 않은 주소의 rangeId
MANUAL_RANGE_ID = "manual"
MANUAL_IMPORT_RANGE_ID = "manual-import"

VLAN_TAG_MIN = 1
VLAN_TAG_MAX = 4094

_ID_ALPHABET = string.digits + string.ascii_lowercase


def generate_id() -> str:
    """<epoch-millis>-<base36 9자리> 형식의 ID 생성"""
    suffix = "".join(random.choice(_ID_ALPHABET) for _ in range(9))
    return f"{int(time.time() * 1000)}-{suffix}"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class IPStatus(str, Enum):
    AVAILABLE = "available"
    ASSIGNED = "assigned"
    RESERVED = "reserved"


class DeviceType(str, Enum):
    PC = "pc"
    LAPTOP = "laptop"
    PHONE = "phone"
    TABLET = "tablet"
    SERVER = "server"
    ROUTER = "router"
    SWITCH = "switch"
    PRINTER = "printer"
    CAMERA = "camera"
    IOT = "iot"
    OTHER = "other"


DEVICE_TYPE_LABELS = {
    DeviceType.PC: "Desktop PC",
    DeviceType.LAPTOP: "Laptop",
    DeviceType.PHONE: "Phone",
    DeviceType.TABLET: "Tablet",
    DeviceType.SERVER: "Server",
    DeviceType.ROUTER: "Router",
    DeviceType.SWITCH: "Switch",
    DeviceType.PRINTER: "Printer",
    DeviceType.CAMERA: "Camera",
    DeviceType.IOT: "IoT Device",
    DeviceType.OTHER: "Other",
}


def _require_ip(value: str) -> str:
    if not is_valid_ip(value):
        raise ValueError(f"invalid IPv4 address: {value!r}")
    return value


class CamelModel(BaseModel):
    """JSON 직렬화 시 camelCase 키를 사용하는 기본 모델"""

    class Config:
        alias_generator = to_camel
        populate_by_name = True


class Vlan(CamelModel):
    """VLAN 모델"""
    id: str
    vlan_id: int = Field(..., ge=VLAN_TAG_MIN, le=VLAN_TAG_MAX)
    name: str
    description: str = ""
    created_at: datetime
    updated_at: datetime

    @property
    def label(self) -> str:
        return f"VLAN {self.vlan_id} - {self.name}"


class IPRange(CamelModel):
    """IP 범위 모델"""
    id: str
    name: str
    start_ip: str
    end_ip: str
    cidr: Optional[str] = None
    vlan_id: Optional[str] = None
    created_at: datetime

    @field_validator("start_ip", "end_ip")
    @classmethod
    def check_bounds(cls, value: str) -> str:
        return _require_ip(value)


class IPAddress(CamelModel):
    """IP 주소 모델"""
    id: str
    address: str
    status: IPStatus = IPStatus.AVAILABLE
    device_id: Optional[str] = None
    range_id: str = MANUAL_RANGE_ID
    vlan_id: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    assigned_at: Optional[datetime] = None

    @field_validator("address")
    @classmethod
    def check_address(cls, value: str) -> str:
        return _require_ip(value)


class Device(CamelModel):
    """장비 모델"""
    id: str
    name: str
    type: DeviceType = DeviceType.OTHER
    location: str
    vlan_id: Optional[str] = None
    mac_address: Optional[str] = None
    assigned_ip: Optional[str] = None
    switch_ip: Optional[str] = None
    notes: str = ""
    created_at: datetime
    updated_at: datetime
    assigned_at: Optional[datetime] = None


class OtherDevice(CamelModel):
    """디스플레이/컨트롤러/카메라 IP 묶음 (할당 풀과 무관)"""
    id: str
    name: str
    display_ip: str
    controller_ip: str
    camera_ip: Optional[str] = None
    location: str
    notes: str = ""
    created_at: datetime
    updated_at: datetime


class ErrorKind(str, Enum):
    VALIDATION = "validation"
    CONFLICT = "conflict"
    NOT_FOUND = "not_found"


@dataclass
class OperationResult:
    """저장소 변경 연산 결과"""
    success: bool
    error: str = ""
    kind: Optional[ErrorKind] = None
    id: Optional[str] = None

    @classmethod
    def ok(cls, entity_id: Optional[str] = None):
        return cls(success=True, id=entity_id)

    @classmethod
    def fail(cls, kind: ErrorKind, error: str):
        return cls(success=False, error=error, kind=kind)


@dataclass
class RangeResult(OperationResult):
    count: int = 0
    truncated: bool = False
    conflicts: List[str] = field(default_factory=list)


@dataclass
class ManualIpResult(OperationResult):
    ip_id: Optional[str] = None


@dataclass
class BulkImportResult:
    success: bool = True
    imported: int = 0
    skipped: int = 0
    errors: List[str] = field(default_factory=list)
