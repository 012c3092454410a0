"""Configuration models using Pydantic.

Source endpoints, per-platform resolver chains, timeouts and the
fixed-version selection strategy, loaded from YAML or JSON.
"""

import json
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, field_validator

from .downloaders import CISA_KEV_URL, DEFAULT_HTTP_TIMEOUT, MSRC_UPDATES_URL, OSV_QUERY_URL
from .resolvers import RESOLVER_TYPES

FIXED_VERSION_STRATEGIES = ("last", "highest")

DEFAULT_CHAINS: dict[str, list[str]] = {
    "windows": ["vendor_advisory", "community_advisory", "known_exploited"],
    "linux": ["community_advisory", "known_exploited"],
    "macos": ["community_advisory", "known_exploited"],
}


def _validate_chain(chain: list[str]) -> list[str]:
    if not chain:
        raise ValueError("a resolver chain must name at least one resolver")
    unknown = [name for name in chain if name not in RESOLVER_TYPES]
    if unknown:
        raise ValueError(f"unknown resolver(s): {', '.join(unknown)}")
    return chain


class SourcesConfig(BaseModel):
    """Endpoints and matching knobs for the vulnerability sources.

    Attributes:
        vendor_advisory_url: Vendor security update feed.
        community_advisory_url: OSV-compatible query endpoint.
        known_exploited_url: Known exploited vulnerabilities catalog.
        vendor_window: Number of most recent vendor advisories to match.
        vendor_prefix: Package name prefix stripped for vendor matching.
    """

    vendor_advisory_url: str = MSRC_UPDATES_URL
    community_advisory_url: str = OSV_QUERY_URL
    known_exploited_url: str = CISA_KEV_URL
    vendor_window: int = Field(default=12, ge=1, le=200)
    vendor_prefix: str = "microsoft-"


class ScanConfig(BaseModel):
    """Validated scan configuration.

    Example YAML::

        request_timeout: 20
        package_delay: 0.25
        fixed_version_strategy: highest
        chains:
          linux:
            - community_advisory
            - known_exploited
        sources:
          vendor_window: 24
    """

    sources: SourcesConfig = Field(default_factory=SourcesConfig)
    chains: dict[str, list[str]] = Field(default_factory=lambda: {k: list(v) for k, v in DEFAULT_CHAINS.items()})
    default_chain: list[str] = Field(default_factory=lambda: ["community_advisory", "known_exploited"])
    request_timeout: float = Field(default=DEFAULT_HTTP_TIMEOUT, gt=0.0)
    package_delay: float = Field(default=0.1, ge=0.0)
    fixed_version_strategy: str = "last"

    @field_validator("chains", mode="before")
    @classmethod
    def _merge_chains(cls, v: Any) -> dict[str, list[str]]:
        """Lower-case platform keys and layer overrides on the defaults."""
        merged = {k: list(chain) for k, chain in DEFAULT_CHAINS.items()}
        if v is None:
            return merged
        if not isinstance(v, dict):
            raise ValueError("chains must be a mapping of platform to resolver list")
        for platform, chain in v.items():
            merged[str(platform).strip().lower()] = chain
        return merged

    @field_validator("chains")
    @classmethod
    def _check_chains(cls, v: dict[str, list[str]]) -> dict[str, list[str]]:
        for chain in v.values():
            _validate_chain(chain)
        return v

    @field_validator("default_chain")
    @classmethod
    def _check_default_chain(cls, v: list[str]) -> list[str]:
        return _validate_chain(v)

    @field_validator("fixed_version_strategy")
    @classmethod
    def _check_strategy(cls, v: str) -> str:
        v = v.strip().lower()
        if v not in FIXED_VERSION_STRATEGIES:
            raise ValueError(f"fixed_version_strategy must be one of {', '.join(FIXED_VERSION_STRATEGIES)}")
        return v

    def chain_for(self, platform: str) -> list[str]:
        """Resolver identifiers for ``platform``, or the default chain."""
        return list(self.chains.get((platform or "").lower(), self.default_chain))


def load_config(path: Path) -> ScanConfig:
    """Load a scan configuration from a YAML or JSON file.

    Args:
        path: Path to the configuration file.

    Returns:
        Validated ``ScanConfig`` instance.

    Raises:
        FileNotFoundError: if the file doesn't exist.
        pydantic.ValidationError: if content fails validation.
    """
    suffix = path.suffix.lower()
    content = path.read_text(encoding="utf-8")

    if suffix == ".json":
        raw = json.loads(content)
    else:
        raw = yaml.safe_load(content) or {}

    return ScanConfig.model_validate(raw)


def find_config() -> Path | None:
    """Find a configuration file in the working directory.

    Returns:
        Path of the first existing candidate, or None.
    """
    for name in ("vulnchain.yaml", "vulnchain.yml", "vulnchain.json"):
        if Path(name).exists():
            return Path(name)
    return None
