"""Vulnerability source resolvers.

Every resolver answers one question for one package: does this source
know the package, and if so, which advisories apply?  Adding a new source
requires only:

1. Subclass ``Resolver`` and implement ``_resolve``.
2. Register it in ``RESOLVER_TYPES`` and teach ``chain.build_resolver``
   how to construct it.
3. Reference the identifier from a platform chain in the configuration.
"""

from abc import ABC, abstractmethod
from typing import Any

import requests

from .downloaders import (
    CISA_KEV_URL,
    DEFAULT_HTTP_TIMEOUT,
    MSRC_UPDATES_URL,
    OSV_QUERY_URL,
    CatalogCache,
    get_json,
    post_json,
)
from .models import (
    COMMUNITY_ADVISORY,
    KNOWN_EXPLOITED,
    MEDIUM,
    SCHEMA_ERROR,
    TRANSPORT_ERROR,
    UNAVAILABLE,
    VENDOR_ADVISORY,
    Finding,
    PackageRecord,
    SourceResult,
)
from .parsers import (
    extract_fixed_version,
    format_affected_versions,
    map_ecosystem,
    normalize_package_name,
    osv_severity,
    severity_from_text,
)

VENDOR_FIXED_VERSION = "Install latest vendor updates"
VENDOR_AFFECTED_VERSIONS = "See vendor advisory"
ADVISORY_PLACEHOLDER = "See advisory"


class SchemaMismatch(ValueError):
    """A source answered with a payload of unexpected shape."""


class Resolver(ABC):
    """Base class for all vulnerability sources.

    Subclasses implement ``_resolve`` and may raise freely; ``resolve``
    converts transport and schema failures into a failed ``SourceResult``
    so a single unreachable source never aborts a scan.

    Attributes:
        name: Identifier used in chain configuration.
        source: Source tag stamped on every finding.
    """

    name: str = "base"
    source: str = "base"

    def __init__(self, session: requests.Session, url: str, timeout: float = DEFAULT_HTTP_TIMEOUT):
        self.session = session
        self.url = url
        self.timeout = timeout

    def resolve(self, package: PackageRecord) -> SourceResult:
        """Look up a package, never raising transport or schema errors.

        Args:
            package: Package to look up.

        Returns:
            ``SourceResult`` describing what this source knows.
        """
        try:
            return self._resolve(package)
        except requests.exceptions.JSONDecodeError as e:
            return SourceResult.failed(self.source, SCHEMA_ERROR, f"invalid JSON: {e}")
        except requests.RequestException as e:
            return SourceResult.failed(self.source, TRANSPORT_ERROR, str(e) or e.__class__.__name__)
        except (ValueError, TypeError, KeyError, AttributeError) as e:
            return SourceResult.failed(self.source, SCHEMA_ERROR, str(e) or e.__class__.__name__)

    @abstractmethod
    def _resolve(self, package: PackageRecord) -> SourceResult:
        """Query the source for ``package``."""
        ...

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(url={self.url!r})"


# ─────────────────────────────────────────────────────────────────────────────
# Vendor advisory feed (MSRC)
# ─────────────────────────────────────────────────────────────────────────────


def vendor_remediation_steps(update_id: str | None) -> tuple[str, ...]:
    return (
        "Open Windows Update settings",
        'Click "Check for updates"',
        f"Install update: {update_id or 'Latest security update'}",
        "Restart your system if required",
        "Verify the update was installed successfully",
    )


class VendorAdvisoryResolver(Resolver):
    """Match packages against the most recent vendor security updates.

    The feed carries no severity, so every match is ``medium``.  The
    package is ``found`` only when at least one advisory title mentions it.

    Args:
        session: Requests session.
        url: Vendor update feed URL.
        timeout: Per-request timeout in seconds.
        window: Number of most recent advisories to consider.
        vendor_prefix: Package name prefix that may be stripped before
            matching (``microsoft-edge`` also matches ``edge``).
    """

    name = "vendor_advisory"
    source = VENDOR_ADVISORY

    def __init__(
        self,
        session: requests.Session,
        url: str = MSRC_UPDATES_URL,
        timeout: float = DEFAULT_HTTP_TIMEOUT,
        window: int = 12,
        vendor_prefix: str = "microsoft-",
    ):
        super().__init__(session, url, timeout)
        self.window = window
        self.vendor_prefix = vendor_prefix.lower()

    @staticmethod
    def advisory_title(update: dict[str, Any]) -> str:
        return str(update.get("DocumentTitle") or update.get("Title") or "")

    def recent_advisories(self, updates: list[Any]) -> list[dict[str, Any]]:
        """Return the ``window`` most recent advisories, newest first."""
        valid = [u for u in updates if isinstance(u, dict)]
        valid.sort(
            key=lambda u: str(u.get("InitialReleaseDate") or u.get("CurrentReleaseDate") or ""),
            reverse=True,
        )
        return valid[: self.window]

    def matches(self, package_name: str, title: str) -> bool:
        """Case-insensitive containment of the package name in a title."""
        name = package_name.lower()
        candidates = [name]
        if self.vendor_prefix and name.startswith(self.vendor_prefix):
            candidates.append(name[len(self.vendor_prefix) :])

        lowered = title.lower()
        haystacks = (lowered, normalize_package_name(lowered))
        return any(c and c in h for c in candidates for h in haystacks)

    def _resolve(self, package: PackageRecord) -> SourceResult:
        data = get_json(self.session, self.url, timeout=self.timeout)
        updates = data.get("value") if isinstance(data, dict) else None
        if not isinstance(updates, list):
            raise SchemaMismatch("vendor feed response has no 'value' list")

        findings = []
        for update in self.recent_advisories(updates):
            title = self.advisory_title(update)
            if title and self.matches(package.name, title):
                findings.append(self._finding(package, update, title))
        return SourceResult.ok(found=bool(findings), findings=findings)

    def _finding(self, package: PackageRecord, update: dict[str, Any], title: str) -> Finding:
        update_id = update.get("ID")
        return Finding(
            package=package.name,
            installed_version=package.version,
            cve_id=str(update_id or "N/A"),
            severity=MEDIUM,
            source=self.source,
            description=title or "Vendor security update",
            affected_versions=VENDOR_AFFECTED_VERSIONS,
            fixed_version=VENDOR_FIXED_VERSION,
            remediation_steps=vendor_remediation_steps(update_id),
            is_fallback=False,
            metadata={
                "update_id": update_id,
                "release_date": update.get("InitialReleaseDate"),
            },
        )


# ─────────────────────────────────────────────────────────────────────────────
# Community advisory database (OSV.dev)
# ─────────────────────────────────────────────────────────────────────────────


def community_remediation_steps(package_name: str, fixed_version: str) -> tuple[str, ...]:
    target = fixed_version if fixed_version != UNAVAILABLE else "latest"
    return (
        "Update your package manager cache",
        f"Upgrade {package_name} to version {target}",
        "Verify the installation",
        "Restart affected services if necessary",
    )


class CommunityAdvisoryResolver(Resolver):
    """Query the OSV vulnerability database for one package version.

    A response carrying a ``vulns`` field (even an empty one) means the
    database knows the package; a response without it means it does not.

    Args:
        session: Requests session.
        platform: Scan platform, used to pick the OSV ecosystem.
        url: OSV query endpoint.
        timeout: Per-request timeout in seconds.
    """

    name = "community_advisory"
    source = COMMUNITY_ADVISORY

    def __init__(
        self,
        session: requests.Session,
        platform: str,
        url: str = OSV_QUERY_URL,
        timeout: float = DEFAULT_HTTP_TIMEOUT,
    ):
        super().__init__(session, url, timeout)
        self.platform = platform

    def build_query(self, package: PackageRecord) -> dict[str, Any]:
        return {
            "version": package.version,
            "package": {
                "name": package.name,
                "ecosystem": map_ecosystem(self.platform, package.name),
            },
        }

    def _resolve(self, package: PackageRecord) -> SourceResult:
        data = post_json(self.session, self.url, self.build_query(package), timeout=self.timeout)
        if not isinstance(data, dict):
            raise SchemaMismatch("advisory database response is not a JSON object")
        if "vulns" not in data or data["vulns"] is None:
            return SourceResult.ok(found=False)

        vulns = data["vulns"]
        if not isinstance(vulns, list):
            raise SchemaMismatch("'vulns' is not a list")
        findings = [self._finding(package, v) for v in vulns if isinstance(v, dict)]
        return SourceResult.ok(found=True, findings=findings)

    def _finding(self, package: PackageRecord, vuln: dict[str, Any]) -> Finding:
        aliases = vuln.get("aliases") if isinstance(vuln.get("aliases"), list) else []
        affected = vuln.get("affected")
        fixed = extract_fixed_version(affected)
        return Finding(
            package=package.name,
            installed_version=package.version,
            cve_id=str(vuln.get("id") or (aliases[0] if aliases else "") or "N/A"),
            severity=osv_severity(vuln),
            source=self.source,
            description=str(vuln.get("summary") or vuln.get("details") or "No description available"),
            affected_versions=format_affected_versions(affected),
            fixed_version=fixed,
            remediation_steps=community_remediation_steps(package.name, fixed),
            is_fallback=False,
            metadata={
                "aliases": list(aliases),
                "references": vuln.get("references") or [],
                "modified": vuln.get("modified"),
                "published": vuln.get("published"),
                "withdrawn": vuln.get("withdrawn"),
            },
        )


# ─────────────────────────────────────────────────────────────────────────────
# Known exploited vulnerabilities catalog (CISA KEV)
# ─────────────────────────────────────────────────────────────────────────────


def kev_remediation_steps(entry: dict[str, Any]) -> tuple[str, ...]:
    steps = []
    if entry.get("requiredAction"):
        steps.append(str(entry["requiredAction"]))
    else:
        steps.append("Apply updates per vendor instructions")
        steps.append("Verify patches are successfully installed")
    if entry.get("dueDate"):
        steps.append(f"CISA Due Date: {entry['dueDate']}")
    if entry.get("knownRansomwareCampaignUse") == "Known":
        steps.append("WARNING: Known to be used in ransomware campaigns")
    return tuple(steps)


def kev_matches(package_name: str, entry: dict[str, Any]) -> bool:
    """Loose, name-only match between a package and a catalog entry.

    True when the package name occurs in ``vendor-product`` or the
    product occurs in the package name.
    """
    product = normalize_package_name(str(entry.get("product") or ""))
    vendor_product = normalize_package_name(f"{entry.get('vendorProject') or ''} {entry.get('product') or ''}")
    if package_name and package_name in vendor_product:
        return True
    return bool(product) and product in package_name


class KnownExploitedResolver(Resolver):
    """Last-resort lookup in the known-exploited vulnerabilities catalog.

    The catalog is downloaded at most once per scan session through the
    shared ``CatalogCache``.  Matching is name-only, so every finding is
    marked ``is_fallback``.

    Args:
        session: Requests session.
        cache: Scan-scoped catalog cache.
        url: Catalog URL.
        timeout: Per-request timeout in seconds.
    """

    name = "known_exploited"
    source = KNOWN_EXPLOITED

    def __init__(
        self,
        session: requests.Session,
        cache: CatalogCache,
        url: str = CISA_KEV_URL,
        timeout: float = DEFAULT_HTTP_TIMEOUT,
    ):
        super().__init__(session, url, timeout)
        self.cache = cache

    def load_catalog(self) -> list[dict[str, Any]]:
        """Download the catalog and return its vulnerability entries."""
        data = get_json(self.session, self.url, timeout=self.timeout)
        vulns = data.get("vulnerabilities") if isinstance(data, dict) else None
        if not isinstance(vulns, list):
            raise SchemaMismatch("catalog has no 'vulnerabilities' list")
        return [v for v in vulns if isinstance(v, dict)]

    def _resolve(self, package: PackageRecord) -> SourceResult:
        catalog = self.cache.get(self.load_catalog)
        findings = [self._finding(package, e) for e in catalog if kev_matches(package.name, e)]
        return SourceResult.ok(found=bool(findings), findings=findings)

    def _finding(self, package: PackageRecord, entry: dict[str, Any]) -> Finding:
        name = str(entry.get("vulnerabilityName") or "")
        return Finding(
            package=package.name,
            installed_version=package.version,
            cve_id=str(entry.get("cveID") or "N/A"),
            severity=severity_from_text(name) or MEDIUM,
            source=self.source,
            description=str(entry.get("shortDescription") or name or "No description available"),
            affected_versions=ADVISORY_PLACEHOLDER,
            fixed_version=ADVISORY_PLACEHOLDER,
            remediation_steps=kev_remediation_steps(entry),
            is_fallback=True,
            metadata={
                "vendor_project": entry.get("vendorProject"),
                "product": entry.get("product"),
                "known_ransomware": entry.get("knownRansomwareCampaignUse") == "Known",
                "due_date": entry.get("dueDate"),
                "required_action": entry.get("requiredAction"),
            },
        )


RESOLVER_TYPES = {
    VendorAdvisoryResolver.name: VendorAdvisoryResolver,
    CommunityAdvisoryResolver.name: CommunityAdvisoryResolver,
    KnownExploitedResolver.name: KnownExploitedResolver,
}
