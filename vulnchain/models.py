"""Data model shared by resolvers, the resolution chain and reporting.

All records are plain dataclasses.  ``Finding`` and ``PackageRecord`` are
frozen; ``PackageGroup`` is rebuilt for every render pass.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

CRITICAL = "critical"
HIGH = "high"
MEDIUM = "medium"
LOW = "low"

SEVERITIES = (CRITICAL, HIGH, MEDIUM, LOW)
SEVERITY_ORDER = {CRITICAL: 0, HIGH: 1, MEDIUM: 2, LOW: 3}

VENDOR_ADVISORY = "VendorAdvisory"
COMMUNITY_ADVISORY = "CommunityAdvisory"
KNOWN_EXPLOITED = "KnownExploited"

SOURCE_LABELS = {
    VENDOR_ADVISORY: "MSRC",
    COMMUNITY_ADVISORY: "OSV.dev",
    KNOWN_EXPLOITED: "CISA KEV",
}

UNAVAILABLE = "unavailable"

TRANSPORT_ERROR = "transport"
SCHEMA_ERROR = "schema"


@dataclass(frozen=True)
class PackageRecord:
    """One installed package from the inventory.

    Attributes:
        name: Normalized package name (lower-case, whitespace as hyphens).
        version: Installed version string.
    """

    name: str
    version: str


@dataclass(frozen=True)
class Finding:
    """A single vulnerability reported for a package by one source.

    Attributes:
        package: Normalized package name.
        installed_version: Version found in the inventory.
        cve_id: Advisory identifier (CVE, GHSA, vendor update ID, ...).
        severity: One of ``critical``, ``high``, ``medium``, ``low``.
        source: Source tag (``VendorAdvisory``, ``CommunityAdvisory``,
            ``KnownExploited``).
        description: Human readable summary.
        affected_versions: Human readable affected range text.
        fixed_version: First fixed version, or a placeholder such as
            ``unavailable``.
        remediation_steps: Ordered remediation steps for this finding.
        is_fallback: ``True`` for last-resort, non version-aware matches.
        metadata: Source specific extras.
    """

    package: str
    installed_version: str
    cve_id: str
    severity: str
    source: str
    description: str = ""
    affected_versions: str = "Unknown"
    fixed_version: str = UNAVAILABLE
    remediation_steps: tuple[str, ...] = ()
    is_fallback: bool = False
    metadata: dict[str, Any] = field(default_factory=dict, compare=False)

    def to_dict(self) -> dict[str, Any]:
        return {
            "package": self.package,
            "installed_version": self.installed_version,
            "cve_id": self.cve_id,
            "severity": self.severity,
            "source": self.source,
            "description": self.description,
            "affected_versions": self.affected_versions,
            "fixed_version": self.fixed_version,
            "remediation_steps": list(self.remediation_steps),
            "is_fallback": self.is_fallback,
            "metadata": dict(self.metadata),
        }


@dataclass(frozen=True)
class SourceError:
    """A failure caught at a resolver boundary.

    Attributes:
        source: Source tag of the failing resolver.
        kind: ``transport`` or ``schema``.
        message: Human readable detail.
    """

    source: str
    kind: str
    message: str

    def __str__(self) -> str:
        return f"{self.source} {self.kind} error: {self.message}"


@dataclass(frozen=True)
class SourceResult:
    """Outcome of asking one source about one package.

    ``found=False`` means the source has no knowledge of the package;
    ``found=True`` with no findings means the package is known and clean.
    A failed lookup carries ``error`` and is never ``found``.
    """

    found: bool
    findings: tuple[Finding, ...] = ()
    error: SourceError | None = None

    @classmethod
    def ok(cls, found: bool, findings: list[Finding] | tuple[Finding, ...] = ()) -> SourceResult:
        return cls(found=found, findings=tuple(findings))

    @classmethod
    def failed(cls, source: str, kind: str, message: str) -> SourceResult:
        return cls(found=False, error=SourceError(source=source, kind=kind, message=message))

    @property
    def is_error(self) -> bool:
        return self.error is not None


@dataclass
class PackageGroup:
    """All findings for one package, derived for display.

    Attributes:
        package_name: Normalized package name.
        installed_version: Version from the first finding seen.
        findings: Findings in the order they were reported.
        highest_severity: Minimum-ordinal severity among ``findings``.
        sources: Source tags that contributed findings.
    """

    package_name: str
    installed_version: str
    findings: list[Finding] = field(default_factory=list)
    highest_severity: str = LOW
    sources: set[str] = field(default_factory=set)


@dataclass(frozen=True)
class Advice:
    """Remediation advice for one package group.

    Attributes:
        instruction: One-line fix instruction.
        command: Copy-pastable command, if one applies.
        steps: Ordered manual steps.
        safe_version: Selected minimum safe version, if any.
    """

    instruction: str
    command: str | None = None
    steps: tuple[str, ...] = ()
    safe_version: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "instruction": self.instruction,
            "command": self.command,
            "steps": list(self.steps),
            "safe_version": self.safe_version,
        }
