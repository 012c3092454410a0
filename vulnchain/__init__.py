"""VulnChain: multi-source vulnerability resolution for local package inventories.

This package provides the core logic for querying vendor, community and
known-exploited vulnerability sources in trust order, aggregating the
findings per package, and synthesizing remediation advice.
"""

__version__ = "0.1.0"
