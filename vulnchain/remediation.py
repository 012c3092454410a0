"""Remediation advice for vulnerable packages.

Turns a package group into a one-line instruction, an optional
copy-pastable command, and a list of manual steps.
"""

from typing import Callable, Sequence

from packaging.version import InvalidVersion, Version

from .models import UNAVAILABLE, Advice, PackageGroup
from .parsers import MACOS, WINDOWS
from .resolvers import ADVISORY_PLACEHOLDER, VENDOR_AFFECTED_VERSIONS, VENDOR_FIXED_VERSION

PLACEHOLDER_VERSIONS = {
    p.lower()
    for p in (
        UNAVAILABLE,
        "not available",
        ADVISORY_PLACEHOLDER,
        "see cisa advisory",
        VENDOR_AFFECTED_VERSIONS,
        VENDOR_FIXED_VERSION,
    )
}

VENDOR_MARKERS = ("microsoft", "windows", ".net", "kb")

WINDOWS_UPDATE_COMMAND = "Start-Process ms-settings:windowsupdate"
WINGET_UPGRADE_COMMAND = "winget upgrade --all"


def is_placeholder(version: str | None) -> bool:
    return not version or version.strip().lower() in PLACEHOLDER_VERSIONS


def last_version(versions: Sequence[str]) -> str | None:
    """Pick the last version in iteration order."""
    return versions[-1] if versions else None


def highest_version(versions: Sequence[str]) -> str | None:
    """Pick the highest PEP 440 comparable version.

    Falls back to ``last_version`` when none of the values parse.
    """
    best: tuple[Version, str] | None = None
    for v in versions:
        try:
            parsed = Version(v)
        except InvalidVersion:
            continue
        if best is None or parsed > best[0]:
            best = (parsed, v)
    return best[1] if best else last_version(versions)


STRATEGIES: dict[str, Callable[[Sequence[str]], str | None]] = {
    "last": last_version,
    "highest": highest_version,
}


def minimum_safe_version(group: PackageGroup, strategy: str = "last") -> str | None:
    """Select the minimum safe version for a package group.

    Args:
        group: Package group.
        strategy: ``last`` or ``highest``.

    Returns:
        A fixed version, or None if every finding has a placeholder.

    Raises:
        ValueError: if ``strategy`` is unknown.
    """
    try:
        pick = STRATEGIES[strategy]
    except KeyError:
        raise ValueError(f"Unknown fixed-version strategy: {strategy}") from None
    versions = [f.fixed_version for f in group.findings if not is_placeholder(f.fixed_version)]
    return pick(versions)


def looks_vendor_owned(package_name: str) -> bool:
    name = package_name.lower()
    return any(marker in name for marker in VENDOR_MARKERS)


def advise(group: PackageGroup, platform: str, strategy: str = "last") -> Advice:
    """Build remediation advice for one package group.

    Args:
        group: Package group with its findings.
        platform: ``windows``, ``linux`` or ``macos``.
        strategy: Fixed-version selection strategy.

    Returns:
        ``Advice`` with instruction, optional command and steps.
    """
    name = group.package_name
    safe = minimum_safe_version(group, strategy)

    if safe:
        instruction = f"Update {name} to version >= {safe}"
        if platform == WINDOWS:
            return Advice(
                instruction=instruction,
                command=WINDOWS_UPDATE_COMMAND,
                steps=(
                    "Open Windows Update or the application's update mechanism",
                    f"Update {name} to version {safe} or later",
                    "Restart the application or system if required",
                    "Verify the update was installed successfully",
                ),
                safe_version=safe,
            )
        if platform == MACOS:
            return Advice(
                instruction=instruction,
                command=f"brew update && brew upgrade {name}",
                steps=(
                    "Update Homebrew",
                    f"Upgrade {name} to version {safe} or later",
                    "Verify the installation",
                ),
                safe_version=safe,
            )
        return Advice(
            instruction=instruction,
            command=f"sudo apt-get update && sudo apt-get install --only-upgrade {name}",
            steps=(
                "Update package manager cache",
                f"Upgrade {name} to version {safe} or later",
                "Verify the installation",
                "Restart affected services if necessary",
            ),
            safe_version=safe,
        )

    if platform == WINDOWS:
        if looks_vendor_owned(name):
            return Advice(
                instruction=f"Install latest Windows updates to patch {name}",
                command=WINDOWS_UPDATE_COMMAND,
                steps=(
                    "Open Windows Update settings",
                    'Click "Check for updates"',
                    "Install all available updates",
                    "Restart your system if required",
                    "Verify updates were installed successfully",
                ),
            )
        return Advice(
            instruction=f"Update {name} using Windows Package Manager (WinGet)",
            command=WINGET_UPGRADE_COMMAND,
            steps=(
                "Open PowerShell or Command Prompt",
                "Run: winget update (to check for available updates)",
                "Run: winget upgrade --all (to upgrade all packages)",
                "Alternatively, download the latest installer from the vendor website",
                "Verify the installation",
            ),
        )

    return Advice(
        instruction=f"No specific patch version available - apply vendor updates for {name}",
        steps=(
            "Check vendor website for latest security updates",
            "Apply all available patches",
            "Verify the updates were installed",
            "Monitor vendor advisories for additional guidance",
        ),
    )
