"""Tests for IP arithmetic helpers."""

import pytest

from ipmanager.core.ip_utils import (
    MAX_RANGE_SIZE,
    calculate_cidr,
    format_mac,
    generate_ip_range,
    ip_to_number,
    is_valid_ip,
    is_valid_mac,
    number_to_ip,
    parse_cidr,
)


class TestConversion:
    @pytest.mark.parametrize("ip", ["0.0.0.0", "10.0.0.1", "192.168.1.254", "255.255.255.255"])
    def test_round_trip(self, ip):
        assert number_to_ip(ip_to_number(ip)) == ip

    def test_big_endian_order(self):
        assert ip_to_number("1.2.3.4") == 0x01020304
        assert ip_to_number("255.255.255.255") == 0xFFFFFFFF

    def test_number_to_ip(self):
        assert number_to_ip(3232235777) == "192.168.1.1"


class TestValidation:
    @pytest.mark.parametrize("ip", ["192.168.1.1", "0.0.0.0", "255.255.255.255", "010.1.1.1"])
    def test_valid_ips(self, ip):
        assert is_valid_ip(ip) is True

    @pytest.mark.parametrize("ip", ["256.1.1.1", "1.2.3", "1.2.3.4.5", "a.b.c.d", "1.2.3.4 ", "", None, "1234.1.1.1"])
    def test_invalid_ips(self, ip):
        assert is_valid_ip(ip) is False

    @pytest.mark.parametrize("mac", ["AA:BB:CC:DD:EE:FF", "aa-bb-cc-dd-ee-ff", "00:1a:2B:3c:4D:5e"])
    def test_valid_macs(self, mac):
        assert is_valid_mac(mac) is True

    @pytest.mark.parametrize("mac", ["AABBCCDDEEFF", "AA:BB:CC:DD:EE", "GG:BB:CC:DD:EE:FF", "", None])
    def test_invalid_macs(self, mac):
        assert is_valid_mac(mac) is False

    def test_format_mac(self):
        assert format_mac("aa-bb-cc-dd-ee-ff") == "AA:BB:CC:DD:EE:FF"
        assert format_mac("aa:bb:cc:dd:ee:ff") == "AA:BB:CC:DD:EE:FF"
        assert format_mac("aabbccddeeff") == "AA:BB:CC:DD:EE:FF"


class TestGenerateRange:
    def test_small_range(self):
        result = generate_ip_range("192.168.1.1", "192.168.1.5")
        assert result.addresses == [
            "192.168.1.1", "192.168.1.2", "192.168.1.3", "192.168.1.4", "192.168.1.5",
        ]
        assert result.requested == 5
        assert result.truncated is False

    def test_crosses_octet_boundary(self):
        result = generate_ip_range("10.0.0.254", "10.0.1.1")
        assert list(result) == ["10.0.0.254", "10.0.0.255", "10.0.1.0", "10.0.1.1"]

    def test_sorted_ascending(self):
        result = generate_ip_range("10.0.0.0", "10.0.3.255")
        numbers = [ip_to_number(ip) for ip in result]
        assert numbers == sorted(numbers)
        assert len(result) == 1024
        assert result.truncated is False

    def test_capped_at_max(self):
        result = generate_ip_range("10.0.0.0", "10.0.255.255")
        assert len(result) == MAX_RANGE_SIZE
        assert result.requested == 65536
        assert result.truncated is True
        assert result.addresses[-1] == "10.0.3.255"

    def test_reversed_is_empty(self):
        result = generate_ip_range("10.0.0.5", "10.0.0.1")
        assert len(result) == 0
        assert result.requested == 0


class TestCidr:
    def test_parse_slash_24(self):
        assert parse_cidr("192.168.1.0/24") == {"start_ip": "192.168.1.1", "end_ip": "192.168.1.254"}

    def test_parse_uses_network_address(self):
        assert parse_cidr("192.168.1.77/24") == {"start_ip": "192.168.1.1", "end_ip": "192.168.1.254"}

    def test_parse_slash_30(self):
        assert parse_cidr("10.0.0.0/30") == {"start_ip": "10.0.0.1", "end_ip": "10.0.0.2"}

    def test_parse_slash_31_untrimmed(self):
        assert parse_cidr("10.0.0.0/31") == {"start_ip": "10.0.0.0", "end_ip": "10.0.0.1"}

    def test_parse_slash_32(self):
        assert parse_cidr("10.0.0.7/32") == {"start_ip": "10.0.0.7", "end_ip": "10.0.0.7"}

    def test_parse_slash_0(self):
        assert parse_cidr("0.0.0.0/0") == {"start_ip": "0.0.0.1", "end_ip": "255.255.255.254"}

    @pytest.mark.parametrize("cidr", ["192.168.1.0/33", "192.168.1.0", "300.1.1.1/24", "abc/24", "1.2.3.4/123"])
    def test_parse_invalid(self, cidr):
        assert parse_cidr(cidr) is None

    def test_calculate(self):
        assert calculate_cidr("192.168.1.1", "192.168.1.254") == "192.168.1.1/24"
        assert calculate_cidr("10.0.0.1", "10.0.0.1") == "10.0.0.1/32"
        assert calculate_cidr("10.0.0.0", "10.0.0.2") == "10.0.0.0/30"

    def test_calculate_reversed(self):
        assert calculate_cidr("10.0.0.5", "10.0.0.1") is None
