"""Second-order false-positive suppression.

Runs after the pattern scanner and looks at the finding text together with
the source lines around the first match. Suppressed findings are copies with
``is_false_positive`` and ``reason`` set; nothing else changes, so running the
filter twice gives the same result as running it once.
"""

from __future__ import annotations

import logging
import re
from dataclasses import replace
from typing import Callable, Iterable, List, Optional, Tuple

from .models import VulnerabilityFinding
from .patterns import CATEGORY_CODE, CATEGORY_CREDENTIALS, CATEGORY_VERSION

logger = logging.getLogger("scrapii.false_positives")

DOCUMENT_WRITE_VENDORS = (
    "googletagmanager",
    "gtm",
    "tag manager",
    "intercom",
    "widget.intercom.io",
    "google",
    "maps.googleapis.com",
    "clarity.ms",
    "analytics",
    "pendo",
    "zapier",
    "stripe",
)
VENDOR_CONSOLE_MARKERS = (
    "google maps javascript api",
    "only loads once",
    "already loaded",
    "library",
    "vendor",
    "third-party",
)
PARSING_CODE_MARKERS = ("getparametername", "getparameter", "parse", "extract", "match")
GOOGLE_SERVICE_MARKERS = ("google", "gtm", "tag manager", "maps api", "analytics", "firebase", "gapi")
DEVELOPMENT_MARKERS = ("debug mode", "development")

SAFE_MARKER_PATTERN = re.compile(r"\b(safe|sanitized|sanitised|trusted|hardcoded)\b")
SAFE_INNER_HTML_PATTERNS = (
    re.compile(r"""innerHTML\s*=\s*["'][^"']*["']\s*;?$"""),
    re.compile(r"innerHTML\s*=\s*`<[^>]*>`\s*;?$"),
    re.compile(r"innerHTML\s*=\s*`[^`$]*`\s*;?$"),
)
USER_INPUT_PATTERN = re.compile(r"(\$\{|\w+\s*\+|window\.|document\.location|location\.)", re.IGNORECASE)


def _mentions(text: str, markers: Iterable[str]) -> bool:
    return any(marker in text for marker in markers)


def is_safe_inner_html(context: str) -> bool:
    """True when the ``innerHTML`` write only assigns static markup."""
    if SAFE_MARKER_PATTERN.search(context.lower()):
        return True
    for line in context.split("\n"):
        stripped = line.strip()
        if "innerHTML" not in stripped:
            continue
        if USER_INPUT_PATTERN.search(stripped):
            continue
        if any(pattern.search(stripped) for pattern in SAFE_INNER_HTML_PATTERNS):
            return True
    return False


def _vendor_document_write(finding: VulnerabilityFinding, text: str, context: str) -> Optional[str]:
    if "document.write" in text and (
        _mentions(context, DOCUMENT_WRITE_VENDORS) or _mentions(text, DOCUMENT_WRITE_VENDORS)
    ):
        return "document.write issued by a vendor or tag-manager snippet"
    return None


def _vendor_console(finding: VulnerabilityFinding, text: str, context: str) -> Optional[str]:
    if "console." in text and (
        _mentions(context, VENDOR_CONSOLE_MARKERS) or _mentions(text, VENDOR_CONSOLE_MARKERS)
    ):
        return "Console output from a vendor library warning"
    return None


def _guarded_json_parse(finding: VulnerabilityFinding, text: str, context: str) -> Optional[str]:
    if "json.parse" not in text:
        return None
    if ("try" in context and "catch" in context) or _mentions(context, ("catch (e)", "catch(e)")):
        return "JSON.parse wrapped in try/catch"
    return None


def _parsing_regex(finding: VulnerabilityFinding, text: str, context: str) -> Optional[str]:
    if ("regexp" in text or "exec(" in text) and _mentions(context, PARSING_CODE_MARKERS):
        return "Regular expression use inside URL or parameter parsing code"
    return None


def _google_service(finding: VulnerabilityFinding, text: str, context: str) -> Optional[str]:
    if finding.category in (CATEGORY_CREDENTIALS, CATEGORY_VERSION):
        return None
    if _mentions(context, GOOGLE_SERVICE_MARKERS):
        return "Code belongs to a Google, Firebase or analytics integration"
    return None


def _development_only(finding: VulnerabilityFinding, text: str, context: str) -> Optional[str]:
    if finding.category == CATEGORY_CODE and _mentions(context, DEVELOPMENT_MARKERS):
        return "Code path only runs in development builds"
    return None


def _safe_inner_html(finding: VulnerabilityFinding, text: str, context: str) -> Optional[str]:
    if "innerhtml" in text and is_safe_inner_html(finding.context):
        return "innerHTML assigns hardcoded or sanitized content"
    return None


FALSE_POSITIVE_RULES: Tuple[Callable[[VulnerabilityFinding, str, str], Optional[str]], ...] = (
    _vendor_document_write,
    _vendor_console,
    _guarded_json_parse,
    _parsing_regex,
    _google_service,
    _development_only,
    _safe_inner_html,
)


def false_positive_reason(finding: VulnerabilityFinding) -> Optional[str]:
    text = finding.vulnerability.lower()
    context = finding.context.lower()
    for rule in FALSE_POSITIVE_RULES:
        reason = rule(finding, text, context)
        if reason:
            return reason
    return None


def mark_false_positives(findings: Iterable[VulnerabilityFinding]) -> List[VulnerabilityFinding]:
    marked: List[VulnerabilityFinding] = []
    for finding in findings:
        if finding.is_false_positive:
            marked.append(finding)
            continue
        reason = false_positive_reason(finding)
        if reason:
            logger.debug("Suppressing %s (%s): %s", finding.name, finding.severity, reason)
            marked.append(replace(finding, is_false_positive=True, reason=reason))
        else:
            marked.append(finding)
    return marked


def filter_false_positives(findings: Iterable[VulnerabilityFinding]) -> List[VulnerabilityFinding]:
    return [finding for finding in mark_false_positives(findings) if not finding.is_false_positive]
