"""Per-platform resolution chain with stop-on-authority semantics.

Sources are consulted strictly in trust order.  The first source that
reports ``found`` settles the package, even with zero findings; only a
``found=False`` answer (or a failed lookup) falls through to the next
source.  The last source in a chain is always terminal.
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass, field
from typing import Callable, Sequence

import requests

from .config import ScanConfig
from .downloaders import CatalogCache, requests_session
from .models import Finding, PackageRecord, SourceError
from .resolvers import (
    CommunityAdvisoryResolver,
    KnownExploitedResolver,
    Resolver,
    VendorAdvisoryResolver,
)

ProgressCallback = Callable[[int, int, PackageRecord, int], None]


class ScanPreconditionError(ValueError):
    """A scan was requested without a platform or an inventory."""


@dataclass
class PackageResolution:
    """How one package was resolved.

    Attributes:
        package: The package looked up.
        findings: Final findings from the settling source.
        authority: Source tag that settled the package, or None when no
            source answered.
        consulted: Source tags queried, in order.
        errors: Failures caught at resolver boundaries along the way.
    """

    package: PackageRecord
    findings: list[Finding] = field(default_factory=list)
    authority: str | None = None
    consulted: list[str] = field(default_factory=list)
    errors: list[SourceError] = field(default_factory=list)

    @property
    def degraded(self) -> bool:
        """True when a source failure may have hidden findings."""
        return bool(self.errors)


@dataclass
class ScanResult:
    """Outcome of one scan session.

    Attributes:
        platform: Platform the chain was built for.
        resolutions: One entry per analyzed package, in inventory order.
        total: Number of packages in the inventory.
        cancelled: True when the scan stopped at a cancellation checkpoint.
    """

    platform: str
    resolutions: list[PackageResolution] = field(default_factory=list)
    total: int = 0
    cancelled: bool = False

    @property
    def findings(self) -> list[Finding]:
        return [f for r in self.resolutions for f in r.findings]

    @property
    def diagnostics(self) -> list[SourceError]:
        return [e for r in self.resolutions for e in r.errors]

    @property
    def scanned(self) -> int:
        return len(self.resolutions)

    @property
    def degraded_packages(self) -> list[str]:
        return [r.package.name for r in self.resolutions if r.degraded]


def build_resolver(
    name: str,
    platform: str,
    config: ScanConfig,
    session: requests.Session,
    cache: CatalogCache,
) -> Resolver:
    """Instantiate a resolver from its chain identifier.

    Raises:
        ValueError: if ``name`` is not a known resolver.
    """
    sources = config.sources
    timeout = config.request_timeout
    if name == VendorAdvisoryResolver.name:
        return VendorAdvisoryResolver(
            session,
            url=sources.vendor_advisory_url,
            timeout=timeout,
            window=sources.vendor_window,
            vendor_prefix=sources.vendor_prefix,
        )
    if name == CommunityAdvisoryResolver.name:
        return CommunityAdvisoryResolver(session, platform, url=sources.community_advisory_url, timeout=timeout)
    if name == KnownExploitedResolver.name:
        return KnownExploitedResolver(session, cache, url=sources.known_exploited_url, timeout=timeout)
    raise ValueError(f"Unknown resolver: {name}")


class ResolutionChain:
    """Ordered resolvers for one platform.

    The chain owns the scan-scoped catalog cache; ``scan`` resets it so
    independent scans never share catalog data.

    Args:
        platform: ``windows``, ``linux`` or ``macos``.
        resolvers: Resolvers in trust order.
        cache: Catalog cache shared with catalog-backed resolvers.
        delay: Seconds to wait after each package.
        sleep: Sleep function, replaceable in tests.
    """

    def __init__(
        self,
        platform: str,
        resolvers: Sequence[Resolver],
        cache: CatalogCache | None = None,
        delay: float = 0.0,
        sleep: Callable[[float], None] = time.sleep,
    ):
        if not resolvers:
            raise ValueError("a resolution chain needs at least one resolver")
        self.platform = platform
        self.resolvers = list(resolvers)
        self.cache = cache if cache is not None else CatalogCache()
        self.delay = delay
        self._sleep = sleep

    @classmethod
    def from_config(
        cls,
        platform: str,
        config: ScanConfig | None = None,
        session: requests.Session | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> ResolutionChain:
        """Build the configured chain for ``platform``.

        Args:
            platform: Scan platform.
            config: Scan configuration (defaults if omitted).
            session: Requests session (a fresh one if omitted).
            sleep: Sleep function used for the inter-package delay.

        Returns:
            Ready-to-use ``ResolutionChain``.
        """
        if not platform:
            raise ScanPreconditionError("No platform selected")
        config = config or ScanConfig()
        session = session or requests_session()
        cache = CatalogCache()
        platform = platform.lower()
        resolvers = [build_resolver(n, platform, config, session, cache) for n in config.chain_for(platform)]
        return cls(platform, resolvers, cache=cache, delay=config.package_delay, sleep=sleep)

    def resolve(self, package: PackageRecord) -> PackageResolution:
        """Walk the chain for one package.

        Args:
            package: Package to resolve.

        Returns:
            ``PackageResolution`` with the settling source's findings.
        """
        resolution = PackageResolution(package=package)
        last = len(self.resolvers) - 1
        for i, resolver in enumerate(self.resolvers):
            resolution.consulted.append(resolver.source)
            result = resolver.resolve(package)
            if result.error is not None:
                print(f"  Warning: {result.error} ({package.name})")
                resolution.errors.append(result.error)
            if result.found or i == last:
                resolution.findings = list(result.findings)
                if result.found:
                    resolution.authority = resolver.source
                return resolution
        return resolution

    def scan(
        self,
        packages: Sequence[PackageRecord] | None,
        cancel: threading.Event | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> ScanResult:
        """Resolve every package in inventory order.

        Cancellation is checked before each package; a cancelled scan
        returns everything resolved so far.

        Args:
            packages: Inventory in order.
            cancel: Optional cancellation signal.
            on_progress: Called before each package with
                ``(index, total, package, findings_so_far)``.

        Returns:
            ``ScanResult`` for this session.

        Raises:
            ScanPreconditionError: if no platform or inventory is supplied.
        """
        if not self.platform:
            raise ScanPreconditionError("No platform selected")
        if packages is None:
            raise ScanPreconditionError("No inventory supplied")

        self.cache.reset()
        result = ScanResult(platform=self.platform, total=len(packages))
        found_so_far = 0
        for index, package in enumerate(packages):
            if cancel is not None and cancel.is_set():
                result.cancelled = True
                print(f"  Scan cancelled after {result.scanned}/{result.total} packages")
                break
            if on_progress is not None:
                on_progress(index, result.total, package, found_so_far)

            resolution = self.resolve(package)
            result.resolutions.append(resolution)
            found_so_far += len(resolution.findings)

            if self.delay > 0:
                self._sleep(self.delay)
        return result
