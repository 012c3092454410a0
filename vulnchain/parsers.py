"""Pure parsing and classification helpers.

Name normalization, ecosystem mapping, severity classification and
advisory range formatting.  Everything here works on in-memory data;
network access lives in ``downloaders``.
"""

import math
import re
from typing import Any
from urllib.parse import quote

from cvss import CVSS3
from cvss.exceptions import CVSS3Error

from .models import CRITICAL, HIGH, LOW, MEDIUM, SEVERITIES, UNAVAILABLE

WINDOWS = "windows"
LINUX = "linux"
MACOS = "macos"
PLATFORMS = (WINDOWS, LINUX, MACOS)

DEFAULT_ECOSYSTEM = "Debian"

# Distribution markers checked in order; first match wins.
_DISTRO_ECOSYSTEMS = (
    (("ubuntu", "debian"), "Debian"),
    (("rhel", "centos", "fedora"), "Rocky Linux"),
    (("alpine",), "Alpine"),
)

_SEVERITY_KEYWORDS = (
    (("critical",), CRITICAL),
    (("high",), HIGH),
    (("medium", "moderate"), MEDIUM),
    (("low",), LOW),
)


def normalize_package_name(name: str) -> str:
    """Normalize a package name the way inventories are keyed.

    Lower-cases, trims and replaces whitespace runs with a hyphen, so
    ``"Microsoft Edge"`` becomes ``"microsoft-edge"``.

    Args:
        name: Raw package name (may be None).

    Returns:
        Normalized name.
    """
    return re.sub(r"\s+", "-", (name or "").strip().lower())


def map_ecosystem(platform: str, package_name: str) -> str:
    """Derive the OSV ecosystem tag for a package.

    Distribution markers in the package name are only honored on Linux;
    macOS maps to ``Homebrew`` and anything else falls back to ``Debian``.
    The returned tag is case-sensitive.

    Args:
        platform: ``windows``, ``linux`` or ``macos``.
        package_name: Normalized package name.

    Returns:
        Ecosystem tag such as ``Debian``, ``Rocky Linux`` or ``Alpine``.
    """
    if platform == LINUX:
        name = (package_name or "").lower()
        for markers, ecosystem in _DISTRO_ECOSYSTEMS:
            if any(m in name for m in markers):
                return ecosystem
        return DEFAULT_ECOSYSTEM
    if platform == MACOS:
        return "Homebrew"
    return DEFAULT_ECOSYSTEM


def cvss_to_severity(score: float) -> str:
    """Bucket a CVSS v3 base score; lower bounds are inclusive."""
    if score >= 9.0:
        return CRITICAL
    if score >= 7.0:
        return HIGH
    if score >= 4.0:
        return MEDIUM
    return LOW


def parse_cvss_score(value: Any) -> float | None:
    """Turn a numeric score or a ``CVSS:3.x/...`` vector into a base score.

    Args:
        value: Number, numeric string, or CVSS v3 vector string.

    Returns:
        Base score, or None when ``value`` is neither or is not finite.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        score = float(value)
    else:
        text = str(value).strip()
        if text.upper().startswith("CVSS:3"):
            try:
                return float(CVSS3(text).base_score)
            except CVSS3Error:
                return None
        try:
            score = float(text)
        except ValueError:
            return None
    return score if math.isfinite(score) else None


def severity_from_text(text: str | None) -> str | None:
    """Keyword-scan free text for a severity word.

    Checks ``critical``, ``high``, ``medium``/``moderate`` and ``low`` in
    that order.

    Returns:
        The matching severity, or None if no keyword is present.
    """
    lower = (text or "").lower()
    if not lower:
        return None
    for keywords, severity in _SEVERITY_KEYWORDS:
        if any(k in lower for k in keywords):
            return severity
    return None


def classify_severity(
    score: Any = None,
    label: str | None = None,
    text: str | None = None,
) -> str:
    """Normalize heterogeneous severity data to the four-level scale.

    Precedence: numeric CVSS v3 score, then a textual label, then a
    keyword scan of free text.  Anything unrecognized is ``medium``.

    Args:
        score: CVSS v3 base score or vector string.
        label: Source supplied severity label (``HIGH``, ``Moderate``...).
        text: Free-text title or vulnerability name.

    Returns:
        One of ``critical``, ``high``, ``medium``, ``low``.
    """
    parsed = parse_cvss_score(score)
    if parsed is not None:
        return cvss_to_severity(parsed)

    if label:
        lowered = label.strip().lower()
        if lowered in SEVERITIES:
            return lowered
        from_label = severity_from_text(lowered)
        if from_label:
            return from_label

    return severity_from_text(text) or MEDIUM


def osv_severity(vuln: dict[str, Any]) -> str:
    """Classify an OSV vulnerability record.

    Uses the first ``CVSS_V3`` entry in ``severity``, then
    ``database_specific.severity``, then the summary text.
    """
    score = None
    entries = vuln.get("severity")
    if isinstance(entries, list):
        for entry in entries:
            if isinstance(entry, dict) and entry.get("type") == "CVSS_V3" and entry.get("score"):
                score = entry.get("score")
                break

    label = None
    db_specific = vuln.get("database_specific")
    if isinstance(db_specific, dict) and isinstance(db_specific.get("severity"), str):
        label = db_specific["severity"]

    return classify_severity(score=score, label=label, text=vuln.get("summary"))


def _iter_ranges(affected: Any):
    if not isinstance(affected, list):
        return
    for a in affected:
        if not isinstance(a, dict):
            continue
        ranges = a.get("ranges")
        if not isinstance(ranges, list):
            continue
        for r in ranges:
            if isinstance(r, dict):
                yield r


def _first_event(events: list[Any], key: str) -> str | None:
    for e in events:
        if isinstance(e, dict) and e.get(key):
            return str(e[key])
    return None


def format_affected_versions(affected: Any) -> str:
    """Build ``introduced - fixed`` text for every range of an OSV record.

    Args:
        affected: The ``affected`` list of an OSV vulnerability.

    Returns:
        Comma-joined ranges, or ``Unknown`` when there are none.
    """
    parts = []
    for r in _iter_ranges(affected):
        events = r.get("events") if isinstance(r.get("events"), list) else []
        introduced = _first_event(events, "introduced") or "0"
        fixed = _first_event(events, "fixed") or "unfixed"
        parts.append(f"{introduced} - {fixed}")
    return ", ".join(parts) if parts else "Unknown"


def extract_fixed_version(affected: Any) -> str:
    """Return the first ``fixed`` boundary found while scanning ranges.

    Args:
        affected: The ``affected`` list of an OSV vulnerability.

    Returns:
        Fixed version string, or ``unavailable``.
    """
    for r in _iter_ranges(affected):
        events = r.get("events") if isinstance(r.get("events"), list) else []
        fixed = _first_event(events, "fixed")
        if fixed:
            return fixed
    return UNAVAILABLE


def advisory_url(advisory_id: str) -> str:
    """Link an advisory identifier to its canonical web page."""
    advisory_id = (advisory_id or "").strip()
    if advisory_id.startswith("CVE-"):
        return f"https://nvd.nist.gov/vuln/detail/{advisory_id}"
    if advisory_id.startswith("GHSA-"):
        return f"https://github.com/advisories/{advisory_id}"
    if advisory_id.startswith("OSV-"):
        return f"https://osv.dev/vulnerability/{advisory_id}"
    return f"https://nvd.nist.gov/vuln/search/results?query={quote(advisory_id)}"
