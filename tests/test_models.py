"""Record construction, validation and report shapes."""

import pytest

from scrapii.models import (
    VERSION_CURRENT,
    VERSION_NEWER,
    VERSION_OUTDATED,
    DetectedTechnology,
    ScoreBreakdown,
    SecurityScoreResult,
    SiteContext,
    SSLAssessment,
    VulnerabilityFinding,
    compare_versions,
)


# ============================================================================
# VERSION COMPARISON
# ============================================================================

class TestCompareVersions:
    """Dotted version comparison against the current release"""

    def test_older_version_is_outdated(self):
        assert compare_versions("1.9.2", "3.7.1") == VERSION_OUTDATED

    def test_missing_components_count_as_zero(self):
        assert compare_versions("3.7", "3.7.0") == VERSION_CURRENT

    def test_newer_version(self):
        assert compare_versions("4.0", "3.7.1") == VERSION_NEWER

    def test_unknown_side_is_current(self):
        assert compare_versions(None, "3.7.1") == VERSION_CURRENT
        assert compare_versions("1.0", None) == VERSION_CURRENT

    def test_technology_payload_includes_status(self):
        tech = DetectedTechnology("jQuery", "1.9.2", "3.7.1")
        assert tech.to_dict() == {
            "name": "jQuery",
            "version": "1.9.2",
            "currentVersion": "3.7.1",
            "status": VERSION_OUTDATED,
        }


# ============================================================================
# FINDINGS
# ============================================================================

class TestVulnerabilityFinding:
    """Validation in __post_init__ and camelCase output"""

    def test_unknown_severity_rejected(self):
        with pytest.raises(ValueError):
            VulnerabilityFinding("x", "y", "severe", "z")

    def test_confidence_out_of_range_rejected(self):
        with pytest.raises(ValueError):
            VulnerabilityFinding("x", "y", "low", "z", confidence=1.5)

    def test_line_numbers_are_one_based(self):
        with pytest.raises(ValueError):
            VulnerabilityFinding("x", "y", "low", "z", line_numbers=(0, 3))

    def test_display_lines_truncates(self):
        finding = VulnerabilityFinding("x", "y", "low", "z", line_numbers=(1, 4, 9, 12))
        assert finding.display_lines(3) == (1, 4, 9)
        assert finding.line_numbers == (1, 4, 9, 12), "Full evidence must be kept"

    def test_to_dict_shape(self):
        finding = VulnerabilityFinding(
            "jQuery",
            "XSS",
            "high",
            "Upgrade",
            line_numbers=(3,),
            confidence=0.9,
            category="version",
            version_label="1.9.2",
        )
        payload = finding.to_dict()
        assert payload["lineNumbers"] == [3]
        assert payload["isFalsePositive"] is False
        assert payload["version"] == "1.9.2"
        assert payload["category"] == "version"
        assert "reason" not in payload


# ============================================================================
# OTHER RECORDS
# ============================================================================

class TestRecords:
    def test_score_out_of_range_rejected(self):
        breakdown = ScoreBreakdown(80, 0, 0, 0)
        with pytest.raises(ValueError):
            SecurityScoreResult(101, "A+", "Low", breakdown, "DEFAULT")

    def test_breakdown_total(self):
        breakdown = ScoreBreakdown(70, 20.5, -12, 3)
        assert breakdown.total == pytest.approx(81.5)

    def test_site_context_type_validated(self):
        with pytest.raises(ValueError):
            SiteContext(type="intranet")

    def test_ssl_payload_marks_estimate(self):
        payload = SSLAssessment(True, True, "TLS 1.2+", certificate_issuer="Unknown").to_dict()
        assert payload["hasSSL"] is True
        assert payload["tlsVersion"] == "TLS 1.2+"
        assert payload["additionalInfo"]["isEstimate"] is True
        assert payload["additionalInfo"]["daysRemainingEstimate"] is None
        assert payload["additionalInfo"]["certificateIssuer"] == "Unknown"
