"""Inventory parsing and collection commands.

Windows inventories are PowerShell ``ConvertTo-Json`` output; Linux and
macOS inventories are ``name version`` text lines from the package
manager.  Malformed records are skipped; the rest of the inventory is
still analyzed.
"""

import json
from pathlib import Path
from typing import Any

from .models import PackageRecord
from .parsers import LINUX, MACOS, WINDOWS, normalize_package_name

INVENTORY_COMMANDS: dict[str, list[dict[str, str]]] = {
    WINDOWS: [
        {
            "label": "PowerShell",
            "command": (
                "Get-WmiObject -Class Win32_Product | Select-Object Name, Version | "
                "ConvertTo-Json | Out-File system-inventory.json"
            ),
            "filename": "system-inventory.json",
        },
    ],
    LINUX: [
        {
            "label": "Debian/Ubuntu",
            "command": "dpkg-query -W -f='${Package} ${Version}\\n' > system-inventory.txt",
            "filename": "system-inventory.txt",
        },
        {
            "label": "RHEL/Fedora/CentOS",
            "command": "rpm -qa --queryformat '%{NAME} %{VERSION}\\n' > system-inventory.txt",
            "filename": "system-inventory.txt",
        },
    ],
    MACOS: [
        {
            "label": "macOS (Homebrew)",
            "command": "brew list --versions > system-inventory.txt",
            "filename": "system-inventory.txt",
        },
    ],
}


class InventoryParseError(ValueError):
    """A single inventory record could not be parsed."""


def parse_json_record(item: Any) -> PackageRecord:
    """Parse one ``{"Name": ..., "Version": ...}`` object.

    Raises:
        InventoryParseError: if the record lacks a name or version.
    """
    if not isinstance(item, dict):
        raise InventoryParseError(f"expected an object, got {type(item).__name__}")
    name = item.get("Name")
    version = item.get("Version")
    if not isinstance(name, str) or not name.strip():
        raise InventoryParseError("record has no Name")
    if version is None or not str(version).strip():
        raise InventoryParseError(f"record {name!r} has no Version")
    return PackageRecord(name=normalize_package_name(name), version=str(version).strip())


def parse_text_line(line: str) -> PackageRecord:
    """Parse one ``name version`` line; extra columns are ignored.

    Raises:
        InventoryParseError: if the line has fewer than two columns.
    """
    parts = line.split()
    if len(parts) < 2:
        raise InventoryParseError(f"expected 'name version', got {line.strip()!r}")
    return PackageRecord(name=normalize_package_name(parts[0]), version=parts[1].strip())


def parse_windows_inventory(text: str) -> list[PackageRecord]:
    """Parse a PowerShell JSON inventory (object or array of objects)."""
    try:
        data = json.loads(text.lstrip("\ufeff"))
    except json.JSONDecodeError as e:
        print(f"Warning: Could not parse JSON inventory ({e})")
        return []

    items = data if isinstance(data, list) else [data]
    packages = []
    for i, item in enumerate(items):
        try:
            packages.append(parse_json_record(item))
        except InventoryParseError as e:
            print(f"  Skipping inventory record {i}: {e}")
    return packages


def parse_text_inventory(text: str) -> list[PackageRecord]:
    """Parse a ``name version`` per-line inventory; blank lines are skipped."""
    packages = []
    for lineno, line in enumerate(text.splitlines(), start=1):
        if not line.strip():
            continue
        try:
            packages.append(parse_text_line(line))
        except InventoryParseError as e:
            print(f"  Skipping inventory line {lineno}: {e}")
    return packages


def parse_inventory(text: str, platform: str) -> list[PackageRecord]:
    """Parse an inventory document for ``platform``.

    Args:
        text: Raw inventory contents.
        platform: ``windows`` selects JSON; anything else selects text.

    Returns:
        Packages in inventory order.
    """
    if platform == WINDOWS:
        return parse_windows_inventory(text)
    return parse_text_inventory(text)


def load_inventory(path: Path, platform: str) -> list[PackageRecord]:
    """Read and parse an inventory file.

    PowerShell writes UTF-16 by default, so a UTF-16 BOM is honored.
    """
    raw = path.read_bytes()
    if raw.startswith((b"\xff\xfe", b"\xfe\xff")):
        text = raw.decode("utf-16")
    else:
        text = raw.decode("utf-8-sig", errors="replace")
    return parse_inventory(text, platform)


def inventory_commands(platform: str) -> list[dict[str, str]]:
    """Commands that produce an inventory file on ``platform``."""
    return list(INVENTORY_COMMANDS.get(platform, []))
