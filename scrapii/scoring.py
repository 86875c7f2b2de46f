"""Realistic security scorer.

The primary algorithm starts from a per-archetype baseline, adds the weighted
header score, subtracts a capped vulnerability penalty and adds a few
contextual bonuses. When it fails for any reason the simpler fallback model
takes over; the two models are intentionally left independent.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from .context import (
    SITE_BLOG_INFLUENCER,
    SITE_ECOMMERCE_PREMIUM,
    SITE_ECOMMERCE_STANDARD,
    SITE_EDUCATION,
    SITE_ENTERPRISE_CORPORATE,
    SITE_ENTERPRISE_SMB,
    SITE_FINANCIAL,
    SITE_GOVERNMENT,
    SITE_HEALTHCARE,
    SITE_LANDING_PAGE,
    SITE_MEDIA_PUBLISHER,
    SITE_PORTFOLIO_PROFESSIONAL,
    SITE_SAAS_PLATFORM,
)
from .headers import HSTS, normalize_headers
from .models import (
    ALGORITHM_FALLBACK,
    ALGORITHM_PRIMARY,
    CONTEXT_BLOG,
    CONTEXT_PORTFOLIO,
    RISK_CRITICAL,
    RISK_HIGH,
    RISK_LOW,
    RISK_MEDIUM,
    SEVERITIES,
    SEVERITY_CRITICAL,
    SEVERITY_HIGH,
    SEVERITY_LOW,
    SEVERITY_MEDIUM,
    HeaderEvaluation,
    ScoreBreakdown,
    ScoreOutcome,
    SecurityScoreResult,
    SiteContext,
    VulnerabilityFinding,
)

logger = logging.getLogger("scrapii.scoring")

DEFAULT_SITE_TYPE = "DEFAULT"
SITE_BASELINES: Dict[str, int] = {
    SITE_ECOMMERCE_STANDARD: 75,
    SITE_ECOMMERCE_PREMIUM: 85,
    SITE_ENTERPRISE_SMB: 70,
    SITE_ENTERPRISE_CORPORATE: 80,
    SITE_PORTFOLIO_PROFESSIONAL: 65,
    SITE_SAAS_PLATFORM: 78,
    SITE_GOVERNMENT: 90,
    SITE_FINANCIAL: 95,
    SITE_HEALTHCARE: 85,
    SITE_EDUCATION: 75,
    SITE_MEDIA_PUBLISHER: 70,
    SITE_BLOG_INFLUENCER: 60,
    SITE_LANDING_PAGE: 65,
    DEFAULT_SITE_TYPE: 80,
}

# (penalty per occurrence, occurrences counted at most)
VULNERABILITY_PENALTIES: Dict[str, Tuple[int, int]] = {
    SEVERITY_CRITICAL: (25, 3),
    SEVERITY_HIGH: (12, 5),
    SEVERITY_MEDIUM: (5, 8),
    SEVERITY_LOW: (2, 10),
}
MAX_VULNERABILITY_PENALTY = 30

HSTS_BONUS = 5
CLEAN_SCAN_BONUS = 3
FEW_FINDINGS_BONUS = 1
FEW_FINDINGS_LIMIT = 2
SIMPLE_SITE_BONUS = 2
LOW_RISK_SITE_BONUS = 3

FALLBACK_BASELINE = 80
FALLBACK_HEADER_POINTS: Dict[str, int] = {
    "csp": 10,
    "hsts": 8,
    "xss": 5,
    "contentType": 3,
}
FALLBACK_HTTPS_BONUS = 12
FALLBACK_HTTPS_FLOOR = 65
# (penalty per finding, cap)
FALLBACK_PENALTIES: Dict[str, Tuple[int, int]] = {
    SEVERITY_CRITICAL: (15, 25),
    SEVERITY_HIGH: (8, 20),
    SEVERITY_MEDIUM: (3, 10),
}


def _clamp_score(value: float) -> int:
    return int(max(0, min(100, round(value))))


def severity_counts(findings: Iterable[VulnerabilityFinding]) -> Dict[str, int]:
    counts = {severity: 0 for severity in SEVERITIES}
    for finding in findings:
        counts[finding.severity] = counts.get(finding.severity, 0) + 1
    return counts


def baseline_for(site_type: Optional[str]) -> int:
    return SITE_BASELINES.get(site_type or DEFAULT_SITE_TYPE, SITE_BASELINES[DEFAULT_SITE_TYPE])


def vulnerability_penalty(
    findings: Iterable[VulnerabilityFinding],
) -> Tuple[float, Dict[str, float]]:
    """Return the (negative) penalty and the uncapped contribution of each tier."""
    counts = severity_counts(findings)
    tiers: Dict[str, float] = {}
    for severity, (weight, max_occurrences) in VULNERABILITY_PENALTIES.items():
        tiers[severity] = float(weight * min(counts[severity], max_occurrences))
    total = sum(tiers.values())
    return -float(min(total, MAX_VULNERABILITY_PENALTY)), tiers


def contextual_bonus(
    headers: Optional[Mapping[str, Any]],
    findings: Iterable[VulnerabilityFinding],
    context: Optional[SiteContext] = None,
) -> float:
    bonus = 0.0
    hsts = normalize_headers(headers).get(HSTS, "")
    if "max-age" in hsts.lower():
        bonus += HSTS_BONUS

    total = len(list(findings))
    if total == 0:
        bonus += CLEAN_SCAN_BONUS
    elif total <= FEW_FINDINGS_LIMIT:
        bonus += FEW_FINDINGS_BONUS

    if context is not None:
        if context.type in (CONTEXT_BLOG, CONTEXT_PORTFOLIO) and not context.has_user_generated_content:
            bonus += SIMPLE_SITE_BONUS
        if not (
            context.handles_financial_data or context.has_login_system or context.allows_file_uploads
        ):
            bonus += LOW_RISK_SITE_BONUS
    return bonus


def grade_for(score: float) -> str:
    if score >= 95:
        return "A+"
    if score >= 90:
        return "A"
    if score >= 85:
        return "A-"
    if score >= 80:
        return "B+"
    if score >= 75:
        return "B"
    if score >= 70:
        return "B-"
    if score >= 65:
        return "C+"
    if score >= 60:
        return "C"
    if score >= 55:
        return "C-"
    if score >= 50:
        return "D"
    return "F"


def risk_level_for(score: float, findings: Iterable[VulnerabilityFinding]) -> str:
    counts = severity_counts(findings)
    critical = counts[SEVERITY_CRITICAL]
    high = counts[SEVERITY_HIGH]
    if score >= 85 and critical == 0 and high <= 1:
        return RISK_LOW
    if score >= 70 and critical == 0:
        return RISK_MEDIUM
    if score >= 50 or high > 2:
        return RISK_HIGH
    return RISK_CRITICAL


def compute_primary_score(
    evaluation: HeaderEvaluation,
    findings: Iterable[VulnerabilityFinding],
    site_type: Optional[str] = None,
    context: Optional[SiteContext] = None,
    headers: Optional[Mapping[str, Any]] = None,
) -> ScoreOutcome:
    """Run the realistic scorer; errors are returned, never raised."""
    try:
        items: List[VulnerabilityFinding] = list(findings)
        baseline = baseline_for(site_type)
        penalty, tiers = vulnerability_penalty(items)
        bonus = contextual_bonus(headers, items, context)
        breakdown = ScoreBreakdown(
            baseline=float(baseline),
            header_score=evaluation.score,
            vulnerability_penalty=penalty,
            bonus=bonus,
            tier_penalties=tiers,
        )
        overall = _clamp_score(breakdown.total)
        result = SecurityScoreResult(
            overall=overall,
            grade=grade_for(overall),
            risk_level=risk_level_for(overall, items),
            breakdown=breakdown,
            site_type=site_type or DEFAULT_SITE_TYPE,
            algorithm=ALGORITHM_PRIMARY,
        )
    except Exception as exc:
        return ScoreOutcome(error=exc)
    return ScoreOutcome(result=result)


def compute_fallback_score(
    header_flags: Optional[Mapping[str, Any]],
    https_enabled: bool,
    findings: Iterable[VulnerabilityFinding],
    site_type: Optional[str] = None,
) -> SecurityScoreResult:
    flags = header_flags or {}
    items = list(findings)
    counts = severity_counts(items)

    header_points = sum(points for key, points in FALLBACK_HEADER_POINTS.items() if flags.get(key))
    tiers: Dict[str, float] = {}
    for severity, (per_finding, cap) in FALLBACK_PENALTIES.items():
        tiers[severity] = float(min(counts[severity] * per_finding, cap))
    penalty = -sum(tiers.values())

    bonus = 0.0
    if https_enabled:
        bonus += FALLBACK_HTTPS_BONUS
        raw = FALLBACK_BASELINE + header_points + penalty + bonus
        if raw < FALLBACK_HTTPS_FLOOR:
            bonus += FALLBACK_HTTPS_FLOOR - raw

    breakdown = ScoreBreakdown(
        baseline=float(FALLBACK_BASELINE),
        header_score=float(header_points),
        vulnerability_penalty=penalty,
        bonus=bonus,
        tier_penalties=tiers,
    )
    overall = _clamp_score(breakdown.total)
    return SecurityScoreResult(
        overall=overall,
        grade=grade_for(overall),
        risk_level=risk_level_for(overall, items),
        breakdown=breakdown,
        site_type=site_type or DEFAULT_SITE_TYPE,
        algorithm=ALGORITHM_FALLBACK,
    )


def score_security(
    evaluation: HeaderEvaluation,
    findings: Iterable[VulnerabilityFinding],
    *,
    site_type: Optional[str] = None,
    context: Optional[SiteContext] = None,
    headers: Optional[Mapping[str, Any]] = None,
    header_flags: Optional[Mapping[str, Any]] = None,
    https_enabled: bool = False,
) -> SecurityScoreResult:
    items = list(findings)
    outcome = compute_primary_score(evaluation, items, site_type, context, headers)
    if outcome.ok and outcome.result is not None:
        logger.debug(
            "Primary score %d (%s, %s) for site type %s",
            outcome.result.overall,
            outcome.result.grade,
            outcome.result.risk_level,
            outcome.result.site_type,
        )
        return outcome.result
    logger.warning("Primary scoring failed, using fallback model: %s", outcome.error)
    return compute_fallback_score(header_flags, https_enabled, items, site_type)
