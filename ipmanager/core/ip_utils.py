"""
IP 주소 연산 유틸리티

점 표기 <-> 32비트 정수 변환, IP/MAC 형식 검증,
시작/끝 주소 또는 CIDR 블록을 실제 주소 목록으로 전개
"""
from dataclasses import dataclass, field
from typing import List, Optional
import re

# 하나의 범위가 생성할 수 있는 최대 주소 수 (고정 상수)
MAX_RANGE_SIZE = 1024

_IP_PATTERN = re.compile(r"^(\d{1,3}\.){3}\d{1,3}$")
_MAC_PATTERN = re.compile(r"^([0-9A-Fa-f]{2}[:-]){5}([0-9A-Fa-f]{2})$")
_CIDR_PATTERN = re.compile(r"^(\d{1,3}\.\d{1,3}\.\d{1,3}\.\d{1,3})/(\d{1,2})$")

_UINT32 = 0xFFFFFFFF


@dataclass
class GeneratedRange:
    """주소 범위 전개 결과 (MAX_RANGE_SIZE 로 제한됨)"""
    addresses: List[str] = field(default_factory=list)
    requested: int = 0
    truncated: bool = False

    def __len__(self):
        return len(self.addresses)

    def __iter__(self):
        return iter(self.addresses)


def ip_to_number(ip: str) -> int:
    """IP 주소를 정수로 변환 (big-endian octet order)"""
    parts = [int(part) for part in ip.split(".")]
    return ((parts[0] << 24) + (parts[1] << 16) + (parts[2] << 8) + parts[3]) & _UINT32


def number_to_ip(num: int) -> str:
    """정수를 IP 주소로 변환"""
    num &= _UINT32
    return ".".join(str((num >> shift) & 255) for shift in (24, 16, 8, 0))


def is_valid_ip(ip) -> bool:
    """IPv4 dotted-quad 형식 검증

    자릿수만 검사하므로 앞자리 0 은 허용된다 ("010.1.1.1").
    """
    if not isinstance(ip, str) or not _IP_PATTERN.fullmatch(ip):
        return False
    return all(0 <= int(part) <= 255 for part in ip.split("."))


def is_valid_mac(mac) -> bool:
    """MAC 주소 형식 검증 (콜론 또는 하이픈 구분자)"""
    return isinstance(mac, str) and bool(_MAC_PATTERN.fullmatch(mac))


def format_mac(mac: str) -> str:
    """MAC 주소를 대문자 + 콜론 형식으로 정규화"""
    raw = re.sub(r"[:-]", "", mac)
    pairs = re.findall(r".{2}", raw)
    if not pairs:
        return mac
    return ":".join(pairs).upper()


def generate_ip_range(start_ip: str, end_ip: str) -> GeneratedRange:
    """start_ip 부터 end_ip 까지 (포함) 모든 주소 생성

    앞쪽 MAX_RANGE_SIZE 개만 생성하며, 요청 범위가 더 크면 truncated 가 True.
    """
    start = ip_to_number(start_ip)
    end = ip_to_number(end_ip)
    requested = max(end - start + 1, 0)
    count = min(requested, MAX_RANGE_SIZE)

    return GeneratedRange(
        addresses=[number_to_ip(start + i) for i in range(count)],
        requested=requested,
        truncated=requested > MAX_RANGE_SIZE,
    )


def parse_cidr(cidr: str) -> Optional[dict]:
    """CIDR 표기를 파싱하여 시작/끝 IP 반환

    /30 이하는 네트워크/브로드캐스트 주소를 제외하고, /31 과 /32 는 블록 전체를 반환.
    """
    if not isinstance(cidr, str):
        return None
    match = _CIDR_PATTERN.fullmatch(cidr.strip())
    if not match:
        return None

    ip, prefix = match.groups()
    if not is_valid_ip(ip):
        return None

    prefix_num = int(prefix)
    if prefix_num < 0 or prefix_num > 32:
        return None

    mask = 0 if prefix_num == 0 else (_UINT32 << (32 - prefix_num)) & _UINT32
    network = ip_to_number(ip) & mask
    broadcast = network | (~mask & _UINT32)

    if prefix_num <= 30:
        start_num, end_num = network + 1, broadcast - 1
    else:
        start_num, end_num = network, broadcast

    return {
        "start_ip": number_to_ip(start_num),
        "end_ip": number_to_ip(end_num),
    }


def calculate_cidr(start_ip: str, end_ip: str) -> Optional[str]:
    """시작/끝 IP 로부터 CIDR 근사값 계산

    범위를 담는 가장 작은 2의 거듭제곱 블록의 prefix 를 사용한다.
    parse_cidr 의 역함수가 아니다.
    """
    count = ip_to_number(end_ip) - ip_to_number(start_ip) + 1
    if count <= 0:
        return None

    # ceil(log2(count))
    bits = (count - 1).bit_length()
    prefix = 32 - bits
    if prefix < 0 or prefix > 32:
        return None

    return f"{start_ip}/{prefix}"
