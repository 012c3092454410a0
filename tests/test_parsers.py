"""Unit tests for vulnchain.parsers — the pure parsing/classification module."""

import pytest

from vulnchain.parsers import (
    advisory_url,
    classify_severity,
    cvss_to_severity,
    extract_fixed_version,
    format_affected_versions,
    map_ecosystem,
    normalize_package_name,
    osv_severity,
    parse_cvss_score,
    severity_from_text,
)

# ── normalize_package_name ───────────────────────────────────────────────────


class TestNormalizePackageName:
    def test_lowercases_and_hyphenates(self):
        assert normalize_package_name("  Microsoft   Edge ") == "microsoft-edge"

    def test_none(self):
        assert normalize_package_name(None) == ""

    def test_already_normalized(self):
        assert normalize_package_name("openssl") == "openssl"


# ── map_ecosystem ────────────────────────────────────────────────────────────


class TestMapEcosystem:
    def test_alpine(self):
        assert map_ecosystem("linux", "alpine-musl") == "Alpine"

    def test_rhel(self):
        assert map_ecosystem("linux", "rhel-kernel") == "Rocky Linux"

    def test_centos_and_fedora(self):
        assert map_ecosystem("linux", "centos-release") == "Rocky Linux"
        assert map_ecosystem("linux", "fedora-repos") == "Rocky Linux"

    def test_debian_marker(self):
        assert map_ecosystem("linux", "ubuntu-keyring") == "Debian"

    def test_linux_default(self):
        assert map_ecosystem("linux", "curl") == "Debian"

    def test_debian_marker_wins_over_alpine(self):
        assert map_ecosystem("linux", "debian-alpine-tools") == "Debian"

    def test_macos(self):
        assert map_ecosystem("macos", "openssl") == "Homebrew"

    def test_unknown_platform_defaults_to_debian(self):
        assert map_ecosystem("plan9", "curl") == "Debian"
        assert map_ecosystem("windows", "python") == "Debian"


# ── CVSS / severity ──────────────────────────────────────────────────────────


class TestCvssToSeverity:
    @pytest.mark.parametrize(
        "score,expected",
        [
            (9.0, "critical"),
            (8.99, "high"),
            (7.0, "high"),
            (6.99, "medium"),
            (4.0, "medium"),
            (3.99, "low"),
            (10.0, "critical"),
            (0.0, "low"),
        ],
    )
    def test_boundaries(self, score, expected):
        assert cvss_to_severity(score) == expected


class TestParseCvssScore:
    def test_number(self):
        assert parse_cvss_score(7.5) == 7.5

    def test_numeric_string(self):
        assert parse_cvss_score("9.8") == 9.8

    def test_vector(self):
        assert parse_cvss_score("CVSS:3.1/AV:N/AC:L/PR:N/UI:N/S:U/C:H/I:H/A:H") == pytest.approx(9.8)

    def test_malformed_vector(self):
        assert parse_cvss_score("CVSS:3.1/garbage") is None

    def test_incomplete_vector(self):
        assert parse_cvss_score("CVSS:3.1/AV:N") is None

    def test_non_finite(self):
        assert parse_cvss_score("nan") is None
        assert parse_cvss_score("inf") is None
        assert parse_cvss_score(float("nan")) is None

    def test_non_finite_score_falls_back_to_label(self):
        assert classify_severity(score="nan", label="critical") == "critical"

    def test_not_a_score(self):
        assert parse_cvss_score("HIGH") is None
        assert parse_cvss_score(None) is None


class TestSeverityFromText:
    def test_priority_order(self):
        assert severity_from_text("Critical and high impact") == "critical"
        assert severity_from_text("High impact, low complexity") == "high"

    def test_moderate(self):
        assert severity_from_text("Moderate risk") == "medium"

    def test_low(self):
        assert severity_from_text("low severity issue") == "low"

    def test_no_keyword(self):
        assert severity_from_text("Remote Code Execution Vulnerability") is None
        assert severity_from_text(None) is None


class TestClassifySeverity:
    def test_score_wins_over_label(self):
        assert classify_severity(score=9.1, label="low") == "critical"

    def test_label_used_when_no_score(self):
        assert classify_severity(label="HIGH") == "high"

    def test_moderate_label(self):
        assert classify_severity(label="MODERATE") == "medium"

    def test_text_fallback(self):
        assert classify_severity(text="Critical buffer overflow") == "critical"

    def test_default_medium(self):
        assert classify_severity() == "medium"
        assert classify_severity(label="important", text="Something bad") == "medium"


class TestOsvSeverity:
    def test_cvss_vector(self, osv_openssl_vuln):
        # AV:N/AC:L/PR:N/UI:N/S:U/C:N/I:N/A:H scores 7.5
        assert osv_severity(osv_openssl_vuln) == "high"

    def test_database_specific(self):
        vuln = {"id": "GHSA-xxxx", "database_specific": {"severity": "CRITICAL"}}
        assert osv_severity(vuln) == "critical"

    def test_ignores_non_v3_entries(self):
        vuln = {"severity": [{"type": "CVSS_V2", "score": "AV:N/AC:L/Au:N/C:P/I:P/A:P"}]}
        assert osv_severity(vuln) == "medium"

    def test_summary_keywords(self):
        assert osv_severity({"summary": "Low impact information leak"}) == "low"


# ── Range helpers ────────────────────────────────────────────────────────────


class TestAffectedRanges:
    def test_format_ranges(self, osv_openssl_vuln):
        assert format_affected_versions(osv_openssl_vuln["affected"]) == "0 - 1.1.1k"

    def test_format_unfixed(self):
        affected = [{"ranges": [{"events": [{"introduced": "2.0"}]}]}]
        assert format_affected_versions(affected) == "2.0 - unfixed"

    def test_format_multiple_ranges(self):
        affected = [
            {"ranges": [{"events": [{"introduced": "1.0"}, {"fixed": "1.2"}]}]},
            {"ranges": [{"events": [{"introduced": "2.0"}, {"fixed": "2.1"}]}]},
        ]
        assert format_affected_versions(affected) == "1.0 - 1.2, 2.0 - 2.1"

    def test_format_unknown(self):
        assert format_affected_versions(None) == "Unknown"
        assert format_affected_versions([]) == "Unknown"

    def test_first_fixed(self):
        affected = [
            {"ranges": [{"events": [{"introduced": "0"}]}, {"events": [{"introduced": "0"}, {"fixed": "3.0.1"}]}]},
            {"ranges": [{"events": [{"fixed": "3.0.9"}]}]},
        ]
        assert extract_fixed_version(affected) == "3.0.1"

    def test_no_fixed(self):
        assert extract_fixed_version([{"ranges": [{"events": [{"introduced": "0"}]}]}]) == "unavailable"
        assert extract_fixed_version(None) == "unavailable"


class TestAdvisoryUrl:
    def test_cve(self):
        assert advisory_url("CVE-2021-3711") == "https://nvd.nist.gov/vuln/detail/CVE-2021-3711"

    def test_ghsa(self):
        assert advisory_url("GHSA-abcd-1234").startswith("https://github.com/advisories/")

    def test_osv(self):
        assert advisory_url("OSV-2020-111") == "https://osv.dev/vulnerability/OSV-2020-111"

    def test_other(self):
        assert advisory_url("2024 Jan") == "https://nvd.nist.gov/vuln/search/results?query=2024%20Jan"
