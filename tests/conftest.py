"""Shared fixtures for VulnChain tests."""

from unittest.mock import MagicMock

import pytest


@pytest.fixture
def osv_openssl_vuln():
    """An OSV record in the shape returned by /v1/query."""
    return {
        "id": "CVE-2021-3711",
        "aliases": ["DSA-4963-1"],
        "summary": "SM2 decryption buffer overflow",
        "details": "In order to decrypt SM2 encrypted data an application is expected to call the API function.",
        "severity": [{"type": "CVSS_V3", "score": "CVSS:3.1/AV:N/AC:L/PR:N/UI:N/S:U/C:N/I:N/A:H"}],
        "affected": [
            {
                "package": {"name": "openssl", "ecosystem": "Debian"},
                "ranges": [{"type": "ECOSYSTEM", "events": [{"introduced": "0"}, {"fixed": "1.1.1k"}]}],
            }
        ],
        "modified": "2024-01-01T00:00:00Z",
        "published": "2021-08-24T15:15:00Z",
        "references": [{"type": "ADVISORY", "url": "https://www.openssl.org/news/secadv/20210824.txt"}],
    }


@pytest.fixture
def kev_catalog():
    """A small known-exploited vulnerabilities catalog."""
    return {
        "title": "CISA Catalog of Known Exploited Vulnerabilities",
        "vulnerabilities": [
            {
                "cveID": "CVE-2021-44228",
                "vendorProject": "Apache",
                "product": "Log4j2",
                "vulnerabilityName": "Apache Log4j2 Remote Code Execution Vulnerability",
                "shortDescription": "Apache Log4j2 contains a vulnerability where JNDI features do not protect.",
                "requiredAction": "Apply updates per vendor instructions.",
                "dueDate": "2021-12-24",
                "knownRansomwareCampaignUse": "Known",
            },
            {
                "cveID": "CVE-2023-4863",
                "vendorProject": "Google",
                "product": "Chromium WebP",
                "vulnerabilityName": "Google Chromium WebP Heap-Based Buffer Overflow Vulnerability",
                "shortDescription": "Google Chromium WebP contains a heap-based buffer overflow.",
                "requiredAction": "",
                "dueDate": "2023-10-04",
                "knownRansomwareCampaignUse": "Unknown",
            },
        ],
    }


@pytest.fixture
def msrc_feed():
    """A vendor update feed in the MSRC CVRF ``updates`` shape."""
    return {
        "value": [
            {
                "ID": "2024-Jan",
                "DocumentTitle": "January 2024 Security Updates",
                "InitialReleaseDate": "2024-01-09T08:00:00Z",
            },
            {
                "ID": "2024-Feb",
                "DocumentTitle": "Microsoft Edge Security Update February 2024",
                "InitialReleaseDate": "2024-02-13T08:00:00Z",
            },
            {
                "ID": "2024-Mar",
                "DocumentTitle": "March 2024 Security Updates",
                "InitialReleaseDate": "2024-03-12T07:00:00Z",
            },
        ]
    }


@pytest.fixture
def mock_session():
    """A requests session stand-in whose responses succeed by default."""
    session = MagicMock()
    session.get.return_value.raise_for_status = MagicMock()
    session.post.return_value.raise_for_status = MagicMock()
    return session
