"""Vulnerability pattern scanner.

Four passes run over the same page: hardcoded credentials, risky JavaScript
idioms, known-vulnerable technology versions and production
misconfiguration. None of them raises; a failing rule is logged and skipped.

Regexes run line by line over a bounded copy of the page
(``SCRAPII_MAX_SCAN_BYTES``). Lines longer than ``SCRAPII_MAX_LINE_LENGTH`` are
matched in overlapping chunks that keep the line number. Every pass stops
once its time budget (``SCRAPII_PASS_TIME_BUDGET``) is spent, so hostile
markup cannot stall a scan through catastrophic backtracking.
"""

from __future__ import annotations

import logging
import time
from typing import Iterable, Iterator, List, Match, Optional, Sequence, Tuple

from .config import Settings, get_settings
from .models import DetectedTechnology, VulnerabilityFinding
from .patterns import (
    CATEGORY_CODE,
    CATEGORY_CONFIGURATION,
    CATEGORY_CREDENTIALS,
    CATEGORY_VERSION,
    CODE_FINDING_NAME,
    CODE_PATTERNS,
    CONFIG_PATTERNS,
    CREDENTIAL_FINDING_NAME,
    CREDENTIAL_PATTERNS,
    LEGITIMATE_SERVICE_KEYWORDS,
    LEGITIMATE_SERVICE_PREFIXES,
    SAFE_CREDENTIAL_PATTERNS,
    VULNERABILITY_DATABASE,
)

logger = logging.getLogger("scrapii.vulnerabilities")

CONTEXT_RADIUS_LINES = 3
CONTEXT_LINE_CHARS = 300
CHUNK_OVERLAP_CHARS = 200
DEADLINE_CHECK_INTERVAL = 256


class PassDeadline:
    """Wall-clock budget shared by every rule of one scanning pass."""

    def __init__(self, pass_name: str, budget: float) -> None:
        self.pass_name = pass_name
        self.budget = budget
        self._started = time.monotonic()
        self._reported = False

    def exhausted(self) -> bool:
        if time.monotonic() - self._started <= self.budget:
            return False
        if not self._reported:
            logger.warning(
                "Pass %s exceeded its %.1fs budget; remaining rules skipped",
                self.pass_name,
                self.budget,
            )
            self._reported = True
        return True


def _bounded_lines(html: str, settings: Settings) -> List[str]:
    if not html:
        return []
    bounded = html[: settings.max_scan_bytes]
    if len(html) > settings.max_scan_bytes:
        logger.info("Page truncated to %d bytes for pattern scanning", settings.max_scan_bytes)
    return bounded.split("\n")


def _line_chunks(line: str, max_length: int) -> Iterator[Tuple[int, str]]:
    """Yield ``(offset, chunk)`` pieces of at most ``max_length`` characters."""
    if len(line) <= max_length:
        yield 0, line
        return
    overlap = min(CHUNK_OVERLAP_CHARS, max_length // 4)
    step = max_length - overlap
    for offset in range(0, len(line) - overlap, step):
        yield offset, line[offset : offset + max_length]


def _lines_label(lines: Sequence[int], limit: int) -> str:
    shown = ", ".join(str(number) for number in lines[:limit])
    suffix = "..." if len(lines) > limit else ""
    return f"Lines: {shown}{suffix}"


def _context_window(lines: Sequence[str], line_number: int, column: int) -> str:
    index = line_number - 1
    start = max(0, index - CONTEXT_RADIUS_LINES)
    end = min(len(lines), index + CONTEXT_RADIUS_LINES + 1)
    window: List[str] = []
    for position in range(start, end):
        text = lines[position]
        if position == index:
            left = max(0, column - CONTEXT_LINE_CHARS // 2)
            window.append(text[left : left + CONTEXT_LINE_CHARS])
        else:
            window.append(text[:CONTEXT_LINE_CHARS])
    return "\n".join(window)


def is_safe_known_credential(value: str) -> bool:
    return any(pattern.match(value) for pattern in SAFE_CREDENTIAL_PATTERNS)


def is_legitimate_service_value(value: str) -> bool:
    lowered = value.lower()
    if any(keyword in lowered for keyword in LEGITIMATE_SERVICE_KEYWORDS):
        return True
    return lowered.startswith(LEGITIMATE_SERVICE_PREFIXES)


def _credential_match_is_reportable(match: Match[str]) -> bool:
    value = match.groupdict().get("value")
    if value is None:
        return True
    return not (is_safe_known_credential(value) or is_legitimate_service_value(value))


def _first_match(regex, line: str, max_length: int, accept=None) -> Optional[int]:
    for offset, chunk in _line_chunks(line, max_length):
        for match in regex.finditer(chunk):
            if accept is None or accept(match):
                return offset + match.start()
    return None


def _scan_lines(
    regex,
    lines: Sequence[str],
    deadline: PassDeadline,
    max_length: int,
    accept=None,
) -> Tuple[List[int], Optional[Tuple[int, int]]]:
    found: List[int] = []
    first: Optional[Tuple[int, int]] = None
    for index, line in enumerate(lines, start=1):
        if index % DEADLINE_CHECK_INTERVAL == 0 and deadline.exhausted():
            break
        match = _first_match(regex, line, max_length, accept)
        if match is None:
            continue
        found.append(index)
        if first is None:
            first = (index, match)
    return found, first


def scan_credentials(html: str, settings: Optional[Settings] = None) -> List[VulnerabilityFinding]:
    settings = settings or get_settings()
    lines = _bounded_lines(html, settings)
    deadline = PassDeadline("credentials", settings.pass_time_budget)
    findings: List[VulnerabilityFinding] = []
    for rule in CREDENTIAL_PATTERNS:
        if deadline.exhausted():
            break
        try:
            found, first = _scan_lines(
                rule.regex,
                lines,
                deadline,
                settings.max_line_length,
                accept=_credential_match_is_reportable,
            )
        except Exception as exc:
            logger.warning("Credential rule %r failed: %s", rule.vulnerability, exc)
            continue
        if not found or first is None:
            continue
        findings.append(
            VulnerabilityFinding(
                name=CREDENTIAL_FINDING_NAME,
                vulnerability=f"{rule.vulnerability} - {rule.exploitation}",
                severity=rule.severity,
                recommendation=rule.recommendation,
                line_numbers=tuple(found),
                confidence=0.95,
                category=CATEGORY_CREDENTIALS,
                version_label=_lines_label(found, settings.evidence_display_limit),
                context=_context_window(lines, *first),
            )
        )
    return findings


def scan_code_patterns(html: str, settings: Optional[Settings] = None) -> List[VulnerabilityFinding]:
    settings = settings or get_settings()
    lines = _bounded_lines(html, settings)
    deadline = PassDeadline("code", settings.pass_time_budget)
    findings: List[VulnerabilityFinding] = []
    for rule in CODE_PATTERNS:
        if deadline.exhausted():
            break
        try:
            found, first = _scan_lines(rule.regex, lines, deadline, settings.max_line_length)
        except Exception as exc:
            logger.warning("Code rule %r failed: %s", rule.vulnerability, exc)
            continue
        if not found or first is None:
            continue
        findings.append(
            VulnerabilityFinding(
                name=CODE_FINDING_NAME,
                vulnerability=f"{rule.vulnerability} - {rule.exploitation}",
                severity=rule.severity,
                recommendation=rule.recommendation,
                line_numbers=tuple(found),
                confidence=rule.confidence,
                category=CATEGORY_CODE,
                version_label=_lines_label(found, settings.evidence_display_limit),
                context=_context_window(lines, *first),
            )
        )
    return findings


def _version_is_vulnerable(version: str, prefixes: Iterable[str]) -> bool:
    return any(version.startswith(prefix) for prefix in prefixes)


def scan_versions(technologies: Iterable[DetectedTechnology]) -> List[VulnerabilityFinding]:
    findings: List[VulnerabilityFinding] = []
    for tech in technologies:
        entry = VULNERABILITY_DATABASE.get(tech.name)
        if entry is None or not tech.version:
            continue
        if not _version_is_vulnerable(tech.version, entry.versions):
            continue
        findings.append(
            VulnerabilityFinding(
                name=tech.name,
                vulnerability=entry.vulnerability,
                severity=entry.severity,
                recommendation=entry.recommendation,
                confidence=0.9,
                category=CATEGORY_VERSION,
                version_label=tech.version,
                context=entry.exploitation,
            )
        )
    return findings


def scan_configuration(html: str, settings: Optional[Settings] = None) -> List[VulnerabilityFinding]:
    settings = settings or get_settings()
    lines = _bounded_lines(html, settings)
    deadline = PassDeadline("configuration", settings.pass_time_budget)
    findings: List[VulnerabilityFinding] = []
    for rule in CONFIG_PATTERNS:
        if deadline.exhausted():
            break
        try:
            found, first = _scan_lines(rule.regex, lines, deadline, settings.max_line_length)
        except Exception as exc:
            logger.warning("Configuration rule %r failed: %s", rule.name, exc)
            continue
        if not found or first is None:
            continue
        findings.append(
            VulnerabilityFinding(
                name=rule.name,
                vulnerability=rule.vulnerability,
                severity=rule.severity,
                recommendation=rule.recommendation,
                line_numbers=tuple(found),
                confidence=0.7,
                category=CATEGORY_CONFIGURATION,
                version_label=rule.label,
                context=_context_window(lines, *first),
            )
        )
    return findings


def scan_html(
    html: str,
    technologies: Iterable[DetectedTechnology] = (),
    settings: Optional[Settings] = None,
) -> List[VulnerabilityFinding]:
    settings = settings or get_settings()
    findings: List[VulnerabilityFinding] = []
    findings.extend(scan_credentials(html, settings))
    findings.extend(scan_code_patterns(html, settings))
    findings.extend(scan_versions(technologies))
    findings.extend(scan_configuration(html, settings))
    logger.debug("Pattern scan produced %d raw findings", len(findings))
    return findings
