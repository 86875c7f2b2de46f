import pytest

from scrapii.false_positives import (
    false_positive_reason,
    filter_false_positives,
    is_safe_inner_html,
    mark_false_positives,
)
from scrapii.models import VulnerabilityFinding
from scrapii.patterns import CATEGORY_CODE, CATEGORY_CONFIGURATION, CATEGORY_CREDENTIALS, CODE_FINDING_NAME
from scrapii.vulnerabilities import scan_code_patterns, scan_credentials


def _code_finding(label, context, severity="high"):
    return VulnerabilityFinding(
        name=CODE_FINDING_NAME,
        vulnerability=label,
        severity=severity,
        recommendation="Fix it",
        line_numbers=(1,),
        category=CATEGORY_CODE,
        context=context,
    )


@pytest.fixture
def mixed_findings():
    return [
        _code_finding(
            "XSS via document.write() - injected markup runs",
            "document.write('<script src=\"https://www.googletagmanager.com/gtm.js\"></script>');",
        ),
        _code_finding(
            "JSON.parse on unvalidated input - malformed data",
            "try { data = JSON.parse(raw); } catch (e) { data = {}; }",
            severity="low",
        ),
        _code_finding("DOM XSS via innerHTML assignment - script injection", 'el.innerHTML = "<b>Hi</b>";'),
        _code_finding("DOM XSS via innerHTML assignment - script injection", "el.innerHTML = location.hash;"),
        _code_finding(
            "Dangerous eval() execution - arbitrary code",
            "eval(userInput);",
            severity="critical",
        ),
    ]


class TestRules:
    """Individual suppression rules"""

    def test_vendor_document_write(self, mixed_findings):
        assert "vendor" in false_positive_reason(mixed_findings[0])

    def test_guarded_json_parse(self, mixed_findings):
        assert false_positive_reason(mixed_findings[1]) == "JSON.parse wrapped in try/catch"

    def test_static_inner_html(self, mixed_findings):
        assert false_positive_reason(mixed_findings[2]) is not None

    def test_user_controlled_inner_html_kept(self, mixed_findings):
        assert false_positive_reason(mixed_findings[3]) is None

    def test_genuine_eval_kept(self, mixed_findings):
        assert false_positive_reason(mixed_findings[4]) is None

    def test_development_context_only_applies_to_code(self):
        code = _code_finding("Dangerous eval() execution", "if (development) { eval(x); }")
        config = VulnerabilityFinding(
            name="Development Mode",
            vulnerability="Dev build flag enabled in production",
            severity="medium",
            recommendation="Ship production builds",
            category=CATEGORY_CONFIGURATION,
            context="if (development) { eval(x); }",
        )
        assert false_positive_reason(code) == "Code path only runs in development builds"
        assert false_positive_reason(config) is None

    def test_secret_next_to_tag_manager_kept(self, settings):
        html = "\n".join(
            [
                '<script async src="https://www.googletagmanager.com/gtag/js?id=G-ABCD1234EF"></script>',
                "<script>",
                'var stripe = "sk_live_' + "a1B2" * 6 + '";',
                "</script>",
            ]
        )
        raw = scan_credentials(html, settings)
        assert [f.category for f in raw] == [CATEGORY_CREDENTIALS]
        assert "googletagmanager" in raw[0].context
        assert filter_false_positives(raw) == raw

    def test_code_next_to_tag_manager_suppressed(self, settings):
        html = "\n".join(
            [
                '<script async src="https://www.googletagmanager.com/gtag/js?id=G-ABCD1234EF"></script>',
                "<script>eval(dataLayerCommand);</script>",
            ]
        )
        raw = [f for f in scan_code_patterns(html, settings) if "eval()" in f.vulnerability]
        assert len(raw) == 1
        assert filter_false_positives(raw) == []

    def test_safe_inner_html_helper(self):
        assert is_safe_inner_html("el.innerHTML = `<span></span>`;")
        assert is_safe_inner_html("// sanitized upstream\nel.innerHTML = html;")
        assert not is_safe_inner_html("el.innerHTML = '<p>' + name + '</p>';")


class TestFiltering:
    """Marking, filtering and idempotence"""

    def test_mark_keeps_everything(self, mixed_findings):
        marked = mark_false_positives(mixed_findings)
        assert len(marked) == len(mixed_findings)
        assert [f.is_false_positive for f in marked] == [True, True, True, False, False]
        assert all(f.reason for f in marked if f.is_false_positive)

    def test_filter_drops_suppressed(self, mixed_findings):
        kept = filter_false_positives(mixed_findings)
        assert [f.severity for f in kept] == ["high", "critical"]

    def test_filter_is_idempotent(self, mixed_findings):
        once = filter_false_positives(mixed_findings)
        assert filter_false_positives(once) == once

    def test_mark_is_idempotent(self, mixed_findings):
        once = mark_false_positives(mixed_findings)
        assert mark_false_positives(once) == once

    def test_inputs_not_mutated(self, mixed_findings):
        mark_false_positives(mixed_findings)
        assert not any(f.is_false_positive for f in mixed_findings)
