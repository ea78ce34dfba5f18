"""Tests for spreadsheet parsing and the bulk import reconciler."""

from io import BytesIO

from openpyxl import Workbook

from ipmanager.core.entities import IPStatus, MANUAL_IMPORT_RANGE_ID
from ipmanager.services.bulk_import import (
    ImportRow,
    OtherImportRow,
    detect_columns,
    detect_other_columns,
    import_other_devices,
    import_parsed,
    parse_file,
    parse_other_file,
    parse_other_table,
    parse_table,
)

HEADERS = ["Location", "IP Address", "Device Name"]
OTHER_HEADERS = ["Name", "Display IP", "Controller IP", "Camera IP", "Location"]


def _xlsx_bytes(rows):
    workbook = Workbook()
    sheet = workbook.active
    for row in rows:
        sheet.append(row)
    buffer = BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()


class TestDetectColumns:
    def test_standard_headers(self):
        assert detect_columns(HEADERS) == (0, 1, 2)

    def test_case_insensitive_substrings(self):
        assert detect_columns(["HOSTNAME", "site location", "ip"]) == (1, 2, 0)

    def test_first_match_wins(self):
        assert detect_columns(["Location", "IP", "Address", "Device", "Name"]) == (0, 1, 3)

    def test_missing(self):
        assert detect_columns(["Location", "Notes"]) == (0, -1, -1)


class TestParseTable:
    def test_missing_columns(self):
        parsed = parse_table([["Location", "Notes"], ["A", "B"]])
        assert parsed.success is False
        assert parsed.error == "Could not find required columns: Location, IP Address, Device Name"

    def test_empty_table(self):
        assert parse_table([]).success is False

    def test_rows_and_errors(self):
        parsed = parse_table([
            HEADERS,
            ["Room 1", "10.0.0.1", "PC-1"],
            ["", "", ""],
            ["Room 2", "10.0.0.2", ""],
            ["", "10.0.0.3", "PC-3"],
            ["Room 4", "", "PC-4"],
            ["Room 5", "10.0.0.999", "PC-5"],
            [" Room 6 ", " 10.0.0.6 ", " PC-6 "],
        ])
        assert parsed.success is True
        assert [row.line for row in parsed.rows] == [2, 4, 5, 6, 7, 8]
        assert [row.error for row in parsed.invalid_rows] == [
            "Device name is required",
            "Location is required",
            "IP address is required",
            "Invalid IP format",
        ]
        assert [(r.name, r.location, r.ip_address) for r in parsed.valid_rows] == [
            ("PC-1", "Room 1", "10.0.0.1"),
            ("PC-6", "Room 6", "10.0.0.6"),
        ]

    def test_short_rows(self):
        parsed = parse_table([HEADERS, ["Room 1"]])
        assert parsed.rows[0].error == "Device name is required"


class TestParseFile:
    def test_csv(self):
        data = "\ufeffLocation,IP Address,Device Name\nRoom 1,10.0.0.1,PC-1\n".encode("utf-8")
        parsed = parse_file(data, "devices.csv")
        assert parsed.success is True
        assert parsed.valid_rows[0].name == "PC-1"

    def test_xlsx(self):
        data = _xlsx_bytes([HEADERS, ["Room 1", "10.0.0.1", "PC-1"], ["Room 2", "10.0.0.2", "PC-2"]])
        parsed = parse_file(data, "Devices.XLSX")
        assert parsed.success is True
        assert [row.ip_address for row in parsed.valid_rows] == ["10.0.0.1", "10.0.0.2"]

    def test_unsupported(self):
        parsed = parse_file(b"whatever", "devices.txt")
        assert parsed.success is False
        assert parsed.error == "Unsupported file type: .txt"

    def test_corrupt_xlsx(self):
        parsed = parse_file(b"not a zip file", "devices.xlsx")
        assert parsed.success is False
        assert parsed.error.startswith("Failed to parse file")


class TestBulkImport:
    def test_duplicate_name_in_file(self, store, check_invariants):
        rows = [
            ImportRow(name="PC-1", location="Room 1", ip_address="10.0.0.1"),
            ImportRow(name="PC-2", location="Room 1", ip_address="10.0.0.2"),
            ImportRow(name="pc-1", location="Room 2", ip_address="10.0.0.3"),
            ImportRow(name="PC-4", location="Room 2", ip_address="10.0.0.4"),
            ImportRow(name="PC-5", location="Room 3", ip_address="10.0.0.5"),
        ]
        result = store.bulk_import_devices(rows)
        assert result.success is True
        assert result.imported == 4
        assert result.skipped == 1
        assert result.errors == ['Skipped: Device "pc-1" or IP 10.0.0.3 already exists']
        assert store.get_ip_by_address("10.0.0.3") is None
        check_invariants(store)

    def test_creates_manual_import_ips(self, store, office_vlan, check_invariants):
        result = store.bulk_import_devices(
            [{"name": "Cam", "location": "Gate", "ip_address": "10.50.0.1"}], vlan_id=office_vlan
        )
        assert result.imported == 1

        ip = store.get_ip_by_address("10.50.0.1")
        device = store.list_devices()[0]
        assert ip.range_id == MANUAL_IMPORT_RANGE_ID
        assert ip.vlan_id == office_vlan
        assert ip.status == IPStatus.ASSIGNED
        assert ip.device_id == device.id
        assert device.vlan_id == office_vlan
        check_invariants(store)

    def test_uses_existing_range_ip(self, store, office_range, check_invariants):
        result = store.bulk_import_devices([{"name": "PC", "location": "L", "ip_address": "192.168.1.2"}])
        assert result.imported == 1
        assert store.get_ip_by_address("192.168.1.2").range_id == office_range
        assert len(store.list_ips()) == 5
        check_invariants(store)

    def test_skips_existing_device_and_ip(self, store, office_range):
        store.add_device(name="Existing", location="L", assigned_ip="192.168.1.1")
        result = store.bulk_import_devices([
            {"name": "EXISTING", "location": "L", "ip_address": "192.168.1.4"},
            {"name": "New", "location": "L", "ip_address": "192.168.1.1"},
        ])
        assert result.imported == 0
        assert result.skipped == 2

    def test_invalid_row(self, store):
        result = store.bulk_import_devices([{"name": "X", "location": "", "ip_address": "10.0.0.1"}])
        assert result.skipped == 1
        assert result.errors == ['Skipped: Invalid row for device "X" (10.0.0.1)']

    def test_unknown_vlan(self, store):
        result = store.bulk_import_devices([{"name": "X", "location": "L", "ip_address": "10.0.0.1"}], vlan_id="nope")
        assert result.success is False
        assert result.errors == ["VLAN not found"]
        assert store.list_devices() == []

    def test_import_parsed_counts_invalid_rows(self, store):
        parsed = parse_table([
            HEADERS,
            ["Room 1", "10.0.0.1", "PC-1"],
            ["Room 2", "bad", "PC-2"],
        ])
        result = import_parsed(store, parsed)
        assert result.imported == 1
        assert result.skipped == 1
        assert result.errors == ["Row 3: Invalid IP format"]


class TestParseOtherTable:
    def test_detect_columns(self):
        assert detect_other_columns(OTHER_HEADERS) == (0, 1, 2, 4, 3)
        assert detect_other_columns(["name", "DISPLAY IP", "controller ip", "location"]) == (0, 1, 2, 3, -1)

    def test_missing_columns(self):
        parsed = parse_other_table([["Name", "Display IP", "Location"], ["Wall", "10.0.0.1", "Lobby"]])
        assert parsed.success is False
        assert parsed.error == "Could not find required columns: Name, Display IP, Controller IP, Location"

    def test_camera_optional_and_dash(self):
        parsed = parse_other_table([
            ["Name", "Display IP", "Controller IP", "Location"],
            ["Wall", "10.0.0.1", "10.0.0.2", "Lobby"],
        ])
        assert parsed.rows[0].camera_ip is None

        parsed = parse_other_table([
            OTHER_HEADERS,
            ["Wall", "10.0.0.1", "10.0.0.2", "-", "Lobby"],
            ["Board", "10.0.0.3", "10.0.0.4", "10.0.0.5", "Hall"],
        ])
        assert parsed.success is True
        assert [row.camera_ip for row in parsed.rows] == [None, "10.0.0.5"]
        assert all(row.is_valid for row in parsed.rows)

    def test_row_errors_collected(self):
        parsed = parse_other_table([
            OTHER_HEADERS,
            ["", "10.0.0.1", "bad", "10.0.0", ""],
            ["", "", "", "", ""],
            ["Wall", "", "", "", "Lobby"],
        ])
        assert len(parsed.rows) == 2
        first, second = parsed.rows
        assert first.line == 2
        assert first.errors == [
            "Missing name", "Invalid Controller IP format", "Missing location", "Invalid Camera IP format",
        ]
        assert first.error == "Missing name, Invalid Controller IP format, Missing location, Invalid Camera IP format"
        assert second.line == 4
        assert second.errors == ["Missing Display IP", "Missing Controller IP"]

    def test_parse_other_file_csv(self):
        data = b"Name,Display IP,Controller IP,Location\nWall,10.0.0.1,10.0.0.2,Lobby\n"
        parsed = parse_other_file(data, "others.csv")
        assert parsed.success is True
        assert isinstance(parsed.rows[0], OtherImportRow)
        assert parse_other_file(data, "others.txt").success is False


class TestImportOtherDevices:
    def test_imports_valid_rows(self, store):
        parsed = parse_other_table([
            OTHER_HEADERS,
            ["Wall", "10.0.0.1", "10.0.0.2", "-", "Lobby"],
            ["Board", "10.0.0.3", "10.0.0.4", "10.0.0.5", "Hall"],
            ["Bad", "x", "10.0.0.6", "", "Hall"],
        ])
        result = import_other_devices(store, parsed)

        assert (result.imported, result.skipped) == (2, 1)
        assert result.errors == ["Row 4: Invalid Display IP format"]
        others = {o.name: o for o in store.list_other_devices()}
        assert set(others) == {"Wall", "Board"}
        assert others["Wall"].camera_ip is None
        assert others["Board"].camera_ip == "10.0.0.5"

    def test_skips_existing_display_ip(self, store):
        store.add_other_device(name="Old", display_ip="10.0.0.1", controller_ip="10.0.0.9", location="Lobby")
        parsed = parse_other_table([
            OTHER_HEADERS,
            ["Wall", "10.0.0.1", "10.0.0.2", "", "Lobby"],
            ["Board", "10.0.0.3", "10.0.0.4", "", "Hall"],
            ["Board 2", "10.0.0.3", "10.0.0.8", "", "Hall"],
        ])
        result = import_other_devices(store, parsed)

        assert (result.imported, result.skipped) == (1, 2)
        assert result.errors == ["Row 2: Display IP already exists", "Row 4: Display IP already exists"]
        assert sorted(o.name for o in store.list_other_devices()) == ["Board", "Old"]
