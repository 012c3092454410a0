"""Unit tests for vulnchain.inventory — inventory parsing."""

import json

import pytest

from vulnchain.inventory import (
    InventoryParseError,
    inventory_commands,
    load_inventory,
    parse_inventory,
    parse_json_record,
    parse_text_line,
)
from vulnchain.models import PackageRecord


class TestParseTextInventory:
    def test_dpkg_output(self):
        text = "openssl 1.1.1f-1ubuntu2\ncurl 7.68.0-1ubuntu2.7\n\n  zlib1g   1:1.2.11 extra\n"
        assert parse_inventory(text, "linux") == [
            PackageRecord("openssl", "1.1.1f-1ubuntu2"),
            PackageRecord("curl", "7.68.0-1ubuntu2.7"),
            PackageRecord("zlib1g", "1:1.2.11"),
        ]

    def test_bad_line_skipped(self):
        text = "openssl 1.1.1f\nbroken\ncurl 7.68.0\n"
        assert [p.name for p in parse_inventory(text, "macos")] == ["openssl", "curl"]

    def test_line_parser_raises(self):
        with pytest.raises(InventoryParseError):
            parse_text_line("onlyname")

    def test_name_normalized(self):
        assert parse_text_line("OpenSSL 3.0").name == "openssl"


class TestParseWindowsInventory:
    def test_array(self):
        data = [{"Name": "Microsoft Edge", "Version": "120.0.2210.91 "}, {"Name": "7-Zip 23.01", "Version": "23.01"}]
        assert parse_inventory(json.dumps(data), "windows") == [
            PackageRecord("microsoft-edge", "120.0.2210.91"),
            PackageRecord("7-zip-23.01", "23.01"),
        ]

    def test_single_object(self):
        text = json.dumps({"Name": "Python 3.12", "Version": "3.12.1"})
        assert parse_inventory(text, "windows") == [PackageRecord("python-3.12", "3.12.1")]

    def test_records_without_name_or_version_skipped(self):
        data = [{"Name": "Git", "Version": "2.43.0"}, {"Name": None, "Version": "1"}, {"Name": "Orphan"}, "junk"]
        assert [p.name for p in parse_inventory(json.dumps(data), "windows")] == ["git"]

    def test_invalid_json(self):
        assert parse_inventory("{not json", "windows") == []

    def test_bom(self):
        text = "\ufeff" + json.dumps([{"Name": "Git", "Version": "2.43.0"}])
        assert parse_inventory(text, "windows") == [PackageRecord("git", "2.43.0")]

    def test_record_parser_raises(self):
        with pytest.raises(InventoryParseError):
            parse_json_record({"Version": "1.0"})


class TestLoadInventory:
    def test_utf16_powershell_file(self, tmp_path):
        path = tmp_path / "system-inventory.json"
        path.write_bytes(json.dumps([{"Name": "Git", "Version": "2.43.0"}]).encode("utf-16"))
        assert load_inventory(path, "windows") == [PackageRecord("git", "2.43.0")]

    def test_text_file(self, tmp_path):
        path = tmp_path / "system-inventory.txt"
        path.write_text("openssl 3.0.2\n", encoding="utf-8")
        assert load_inventory(path, "linux") == [PackageRecord("openssl", "3.0.2")]


class TestInventoryCommands:
    def test_linux_has_dpkg_and_rpm(self):
        labels = [c["label"] for c in inventory_commands("linux")]
        assert labels == ["Debian/Ubuntu", "RHEL/Fedora/CentOS"]

    def test_windows_powershell(self):
        assert "ConvertTo-Json" in inventory_commands("windows")[0]["command"]

    def test_unknown_platform(self):
        assert inventory_commands("plan9") == []
