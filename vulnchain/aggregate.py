"""Per-package aggregation of findings.

Groups are derived data: they are rebuilt from the flat finding list on
every render and never stored on their own.
"""

from typing import Iterable

from .models import SEVERITIES, SEVERITY_ORDER, Finding, PackageGroup


def severity_rank(severity: str) -> int:
    """Ordinal of a severity; unknown values sort after ``low``."""
    return SEVERITY_ORDER.get(severity, len(SEVERITY_ORDER))


def group_by_package(findings: Iterable[Finding]) -> dict[str, PackageGroup]:
    """Group findings by package name.

    Each group's ``highest_severity`` is the minimum-ordinal severity of
    its findings.  Insertion order follows the first finding per package.

    Args:
        findings: Flat findings from a scan.

    Returns:
        Dict mapping package name to ``PackageGroup``.
    """
    groups: dict[str, PackageGroup] = {}
    for f in findings:
        group = groups.get(f.package)
        if group is None:
            group = PackageGroup(
                package_name=f.package,
                installed_version=f.installed_version,
                highest_severity=f.severity,
            )
            groups[f.package] = group
        group.findings.append(f)
        group.sources.add(f.source)
        if severity_rank(f.severity) < severity_rank(group.highest_severity):
            group.highest_severity = f.severity
    return groups


def summarize(groups: dict[str, PackageGroup]) -> dict[str, int]:
    """Count packages per severity bucket.

    Each package counts once, in its ``highest_severity`` bucket, no
    matter how many findings it has.

    Returns:
        Dict with ``critical``, ``high``, ``medium`` and ``low`` counts.
    """
    summary = {s: 0 for s in SEVERITIES}
    for group in groups.values():
        if group.findings and group.highest_severity in summary:
            summary[group.highest_severity] += 1
    return summary


def sort_groups(groups: dict[str, PackageGroup]) -> list[PackageGroup]:
    """Groups ordered critical first; ties keep insertion order."""
    return sorted(groups.values(), key=lambda g: severity_rank(g.highest_severity))


def filter_groups(
    groups: Iterable[PackageGroup],
    severity: str = "all",
    search: str = "",
) -> list[PackageGroup]:
    """Filter groups by severity bucket and free-text search.

    Args:
        groups: Package groups to filter.
        severity: A severity bucket, or ``all``.
        search: Case-insensitive term matched against package names,
            advisory identifiers and descriptions.

    Returns:
        Matching groups in their original order.
    """
    term = (search or "").strip().lower()
    out = []
    for g in groups:
        if severity != "all" and g.highest_severity != severity:
            continue
        if term and not _group_matches(g, term):
            continue
        out.append(g)
    return out


def _group_matches(group: PackageGroup, term: str) -> bool:
    if term in group.package_name:
        return True
    for f in group.findings:
        if term in f.cve_id.lower() or term in f.description.lower():
            return True
    return False
