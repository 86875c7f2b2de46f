"""Pattern scanner passes: credentials, code, versions, configuration."""

from dataclasses import replace

from scrapii.models import DetectedTechnology
from scrapii.patterns import (
    CATEGORY_CODE,
    CATEGORY_CONFIGURATION,
    CATEGORY_CREDENTIALS,
    CATEGORY_VERSION,
    CREDENTIAL_FINDING_NAME,
)
from scrapii.vulnerabilities import (
    PassDeadline,
    is_safe_known_credential,
    scan_code_patterns,
    scan_configuration,
    scan_credentials,
    scan_html,
    scan_versions,
)


# ============================================================================
# CREDENTIALS
# ============================================================================

class TestCredentials:
    """Hardcoded secrets with the public-identifier allowlist applied"""

    def test_leaked_key_and_password_reported(self, vulnerable_html, settings):
        findings = scan_credentials(vulnerable_html, settings)
        labels = [finding.vulnerability for finding in findings]
        assert any(label.startswith("Hardcoded API key") for label in labels)
        assert any(label.startswith("Hardcoded password") for label in labels)
        for finding in findings:
            assert finding.name == CREDENTIAL_FINDING_NAME
            assert finding.category == CATEGORY_CREDENTIALS
            assert finding.confidence == 0.95

    def test_line_numbers_are_one_based(self, vulnerable_html, settings):
        findings = scan_credentials(vulnerable_html, settings)
        password = next(f for f in findings if f.vulnerability.startswith("Hardcoded password"))
        assert password.line_numbers == (6,)
        assert password.version_label == "Lines: 6"
        assert 'var password = "hunter22";' in password.context

    def test_google_browser_key_never_reported(self, google_key_html, settings):
        findings = scan_credentials(google_key_html, settings)
        assert [f for f in findings if f.name == CREDENTIAL_FINDING_NAME] == []

    def test_safe_allowlist(self, google_browser_key):
        assert is_safe_known_credential(google_browser_key)
        assert is_safe_known_credential("GTM-ABC1234")
        assert not is_safe_known_credential("hunter22")

    def test_tokens_for_legitimate_services_skipped(self, settings):
        html = 'var token = "googleAnalyticsToken123456789";'
        assert scan_credentials(html, settings) == []

    def test_google_key_under_quoted_key_never_reported(self, google_browser_key, settings):
        html = f'<script>var cfg = {{"password": "{google_browser_key}"}};</script>'
        assert scan_credentials(html, settings) == []

    def test_quoted_key_with_real_password_reported(self, settings):
        html = '<script>var cfg = {"password": "hunter22"};</script>'
        findings = scan_credentials(html, settings)
        assert [f.vulnerability.split(" - ")[0] for f in findings] == ["Hardcoded password"]

    def test_provider_keys_skip_value_allowlist(self, settings):
        html = 'var stripe = "sk_live_' + "a1B2" * 6 + '";'
        findings = scan_credentials(html, settings)
        assert [f.vulnerability.split(" - ")[0] for f in findings] == ["Stripe live secret key exposed"]


# ============================================================================
# CODE AND CONFIGURATION
# ============================================================================

class TestCodePatterns:
    def test_eval_reported_once_with_all_lines(self, settings):
        html = "eval(a);\nvar x = 1;\neval(b);"
        findings = [f for f in scan_code_patterns(html, settings) if "eval()" in f.vulnerability]
        assert len(findings) == 1
        assert findings[0].severity == "critical"
        assert findings[0].line_numbers == (1, 3)
        assert findings[0].category == CATEGORY_CODE

    def test_evidence_label_truncated(self, settings):
        html = "\n".join("alert(1);" for _ in range(5))
        finding = next(f for f in scan_code_patterns(html, settings) if "alert()" in f.vulnerability)
        assert finding.line_numbers == (1, 2, 3, 4, 5)
        assert finding.version_label == "Lines: 1, 2, 3..."

    def test_match_past_line_bound_is_found(self, settings):
        narrow = replace(settings, max_line_length=200)
        html = "ok();\n" + "var a=1;" * 100 + "eval(payload);"
        findings = [f for f in scan_code_patterns(html, narrow) if "eval()" in f.vulnerability]
        assert len(findings) == 1
        assert findings[0].line_numbers == (2,)
        assert "eval(payload);" in findings[0].context

    def test_match_across_chunk_boundary(self, settings):
        narrow = replace(settings, max_line_length=200)
        html = "x" * 197 + "eval(payload);" + "y" * 400
        findings = [f for f in scan_code_patterns(html, narrow) if "eval()" in f.vulnerability]
        assert len(findings) == 1
        assert findings[0].line_numbers == (1,)

    def test_context_is_symmetric(self, settings):
        lines = [f"var line{number} = {number};" for number in range(1, 9)]
        lines[3] = "eval(x);"
        finding = next(
            f for f in scan_code_patterns("\n".join(lines), settings) if "eval()" in f.vulnerability
        )
        assert finding.line_numbers == (4,)
        assert "var line1 = 1;" in finding.context
        assert "var line7 = 7;" in finding.context
        assert "var line8 = 8;" not in finding.context

    def test_spent_budget_stops_pass(self, settings):
        exhausted = replace(settings, pass_time_budget=-1.0)
        assert scan_code_patterns("eval(x);", exhausted) == []

    def test_deadline(self):
        assert PassDeadline("test", 60.0).exhausted() is False
        assert PassDeadline("test", -1.0).exhausted() is True


class TestConfiguration:
    def test_cors_wildcard(self, settings):
        findings = scan_configuration('allowOrigin = "*";', settings)
        assert len(findings) == 1
        assert findings[0].name == "CORS Configuration"
        assert findings[0].severity == "high"
        assert findings[0].version_label == "Overly Permissive"
        assert findings[0].category == CATEGORY_CONFIGURATION

    def test_clean_page(self, clean_html, settings):
        assert scan_configuration(clean_html, settings) == []


# ============================================================================
# VERSIONS
# ============================================================================

class TestVersions:
    def test_jquery_1_9_2_is_high(self):
        findings = scan_versions([DetectedTechnology("jQuery", "1.9.2", "3.7.1")])
        assert len(findings) == 1
        assert findings[0].name == "jQuery"
        assert findings[0].severity == "high"
        assert findings[0].version_label == "1.9.2"
        assert findings[0].category == CATEGORY_VERSION

    def test_current_version_not_reported(self):
        assert scan_versions([DetectedTechnology("jQuery", "3.7.1", "3.7.1")]) == []

    def test_missing_version_not_reported(self):
        assert scan_versions([DetectedTechnology("WordPress", None, "6.4.0")]) == []


class TestScanHtml:
    def test_all_passes_combined(self, vulnerable_html, settings):
        techs = [DetectedTechnology("jQuery", "1.9.2", "3.7.1")]
        categories = {f.category for f in scan_html(vulnerable_html, techs, settings)}
        assert {CATEGORY_CREDENTIALS, CATEGORY_CODE, CATEGORY_VERSION} <= categories

    def test_empty_input(self, settings):
        assert scan_html("", (), settings) == []
