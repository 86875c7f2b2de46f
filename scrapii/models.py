"""Canonical records shared by every stage of the page security engine.

Each scan builds these fresh; finished records are frozen and the stages only
hand copies to each other (``dataclasses.replace``). ``to_dict`` produces the
camelCase report shape consumed by the API and the CLI.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, Optional, Tuple

SEVERITY_CRITICAL = "critical"
SEVERITY_HIGH = "high"
SEVERITY_MEDIUM = "medium"
SEVERITY_LOW = "low"

SEVERITIES = (SEVERITY_CRITICAL, SEVERITY_HIGH, SEVERITY_MEDIUM, SEVERITY_LOW)

CRITICALITY_CRITICAL = "CRITICAL"
CRITICALITY_HIGH = "HIGH"
CRITICALITY_MEDIUM = "MEDIUM"
CRITICALITY_LOW = "LOW"

RISK_LOW = "Low"
RISK_MEDIUM = "Medium"
RISK_HIGH = "High"
RISK_CRITICAL = "Critical"

CONTEXT_STATIC = "static"
CONTEXT_DYNAMIC = "dynamic"
CONTEXT_ECOMMERCE = "ecommerce"
CONTEXT_ENTERPRISE = "enterprise"
CONTEXT_GOVERNMENT = "government"
CONTEXT_API = "api"
CONTEXT_SPA = "spa"
CONTEXT_BLOG = "blog"
CONTEXT_PORTFOLIO = "portfolio"

CONTEXT_TYPES = (
    CONTEXT_STATIC,
    CONTEXT_DYNAMIC,
    CONTEXT_ECOMMERCE,
    CONTEXT_ENTERPRISE,
    CONTEXT_GOVERNMENT,
    CONTEXT_API,
    CONTEXT_SPA,
    CONTEXT_BLOG,
    CONTEXT_PORTFOLIO,
)

ALGORITHM_PRIMARY = "primary"
ALGORITHM_FALLBACK = "fallback"

VERSION_OUTDATED = "outdated"
VERSION_CURRENT = "current"
VERSION_NEWER = "newer"


def _extract_version_tuple(candidate: Optional[str]) -> Tuple[int, ...]:
    if not candidate:
        return ()
    match = re.search(r"(\d+(?:\.\d+){0,2})", candidate)
    if not match:
        return ()
    return tuple(int(part) for part in match.group(1).split("."))


def compare_versions(version: Optional[str], current: Optional[str]) -> str:
    """Compare a detected version with the current release of the technology.

    Missing components count as zero, so ``"3.7"`` equals ``"3.7.0"``. When
    either side is unknown the technology is reported as current.
    """
    found = _extract_version_tuple(version)
    latest = _extract_version_tuple(current)
    if not found or not latest:
        return VERSION_CURRENT
    max_len = max(len(found), len(latest))
    padded_found = found + (0,) * (max_len - len(found))
    padded_latest = latest + (0,) * (max_len - len(latest))
    if padded_found < padded_latest:
        return VERSION_OUTDATED
    if padded_found > padded_latest:
        return VERSION_NEWER
    return VERSION_CURRENT


@dataclass(frozen=True)
class DetectedTechnology:
    name: str
    version: Optional[str] = None
    current_version: Optional[str] = None

    def version_status(self) -> str:
        return compare_versions(self.version, self.current_version)

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"name": self.name}
        if self.version is not None:
            payload["version"] = self.version
        if self.current_version is not None:
            payload["currentVersion"] = self.current_version
        if self.version is not None and self.current_version is not None:
            payload["status"] = self.version_status()
        return payload


@dataclass(frozen=True)
class VulnerabilityFinding:
    name: str
    vulnerability: str
    severity: str
    recommendation: str
    line_numbers: Tuple[int, ...] = ()
    confidence: float = 0.8
    category: str = ""
    version_label: Optional[str] = None
    context: str = ""
    is_false_positive: bool = False
    reason: str = ""

    def __post_init__(self) -> None:
        if self.severity not in SEVERITIES:
            raise ValueError(f"Unknown severity: {self.severity!r}")
        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError(f"Confidence must be within [0, 1], got {self.confidence!r}")
        if any(line < 1 for line in self.line_numbers):
            raise ValueError("Line numbers are 1-based")

    def display_lines(self, limit: int) -> Tuple[int, ...]:
        return self.line_numbers[:limit]

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "name": self.name,
            "vulnerability": self.vulnerability,
            "severity": self.severity,
            "recommendation": self.recommendation,
            "lineNumbers": list(self.line_numbers),
            "confidence": round(self.confidence, 2),
            "isFalsePositive": self.is_false_positive,
        }
        if self.version_label is not None:
            payload["version"] = self.version_label
        if self.category:
            payload["category"] = self.category
        if self.reason:
            payload["reason"] = self.reason
        return payload


@dataclass(frozen=True)
class HeaderAssessment:
    name: str
    present: bool
    raw_value: str
    quality_score: float
    weight: int
    criticality: str
    penalty: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "present": self.present,
            "rawValue": self.raw_value,
            "qualityScore": round(self.quality_score, 2),
            "weight": self.weight,
            "criticality": self.criticality,
            "penalty": round(self.penalty, 2),
        }


@dataclass(frozen=True)
class HeaderEvaluation:
    assessments: Tuple[HeaderAssessment, ...]
    present_points: float
    missing_points: float

    @property
    def score(self) -> float:
        return self.present_points - self.missing_points

    def get(self, name: str) -> Optional[HeaderAssessment]:
        for assessment in self.assessments:
            if assessment.name == name:
                return assessment
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "score": round(self.score, 2),
            "presentPoints": round(self.present_points, 2),
            "missingPoints": round(self.missing_points, 2),
            "headers": {item.name: item.to_dict() for item in self.assessments},
        }


@dataclass(frozen=True)
class SSLAssessment:
    https_enabled: bool
    certificate_assumed_valid: bool
    tls_version_estimate: str
    days_remaining_estimate: Optional[int] = None
    certificate_issuer: Optional[str] = None
    protocol_version: Optional[str] = None
    mixed_content: int = 0
    is_estimate: bool = True

    def to_dict(self) -> Dict[str, Any]:
        additional: Dict[str, Any] = {
            "isEstimate": self.is_estimate,
            "daysRemainingEstimate": self.days_remaining_estimate,
            "mixedContent": self.mixed_content,
        }
        if self.certificate_issuer:
            additional["certificateIssuer"] = self.certificate_issuer
        if self.protocol_version:
            additional["protocolVersion"] = self.protocol_version
        return {
            "hasSSL": self.https_enabled,
            "validCertificate": self.certificate_assumed_valid,
            "tlsVersion": self.tls_version_estimate,
            "httpsEnabled": self.https_enabled,
            "additionalInfo": additional,
        }


@dataclass(frozen=True)
class SiteContext:
    type: str
    has_user_generated_content: bool = False
    handles_financial_data: bool = False
    has_login_system: bool = False
    allows_file_uploads: bool = False
    uses_external_apis: bool = False
    uses_https: bool = False
    technology_stack: FrozenSet[str] = frozenset()

    def __post_init__(self) -> None:
        if self.type not in CONTEXT_TYPES:
            raise ValueError(f"Unknown site context type: {self.type!r}")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type,
            "hasUserGeneratedContent": self.has_user_generated_content,
            "handlesFinancialData": self.handles_financial_data,
            "hasLoginSystem": self.has_login_system,
            "allowsFileUploads": self.allows_file_uploads,
            "usesExternalAPIs": self.uses_external_apis,
            "usesHTTPS": self.uses_https,
            "technologyStack": sorted(self.technology_stack),
        }


@dataclass(frozen=True)
class ScoreBreakdown:
    baseline: float
    header_score: float
    vulnerability_penalty: float
    bonus: float
    tier_penalties: Dict[str, float] = field(default_factory=dict)

    @property
    def total(self) -> float:
        return self.baseline + self.header_score + self.vulnerability_penalty + self.bonus

    def to_dict(self) -> Dict[str, Any]:
        return {
            "baseline": round(self.baseline, 2),
            "headerScore": round(self.header_score, 2),
            "vulnerabilityPenalty": round(self.vulnerability_penalty, 2),
            "bonus": round(self.bonus, 2),
            "tierPenalties": dict(self.tier_penalties),
        }


@dataclass(frozen=True)
class SecurityScoreResult:
    overall: int
    grade: str
    risk_level: str
    breakdown: ScoreBreakdown
    site_type: str
    algorithm: str = ALGORITHM_PRIMARY

    def __post_init__(self) -> None:
        if not 0 <= self.overall <= 100:
            raise ValueError(f"Score out of range: {self.overall!r}")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "overall": self.overall,
            "grade": self.grade,
            "riskLevel": self.risk_level,
            "siteType": self.site_type,
            "algorithm": self.algorithm,
            "breakdown": self.breakdown.to_dict(),
        }


@dataclass(frozen=True)
class ScoreOutcome:
    result: Optional[SecurityScoreResult] = None
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.result is not None and self.error is None


@dataclass(frozen=True)
class EcommerceSignals:
    total_products: int = 0
    payment_methods: Tuple[str, ...] = ()
    has_product_schema: bool = False
    has_organization_schema: bool = False
    has_review_schema: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "totalProducts": self.total_products,
            "paymentMethods": list(self.payment_methods),
            "structuredData": {
                "hasProductSchema": self.has_product_schema,
                "hasOrganizationSchema": self.has_organization_schema,
                "hasReviewSchema": self.has_review_schema,
            },
        }


@dataclass(frozen=True)
class UserSignals:
    has_users: bool = False
    access_points: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {"hasUsers": self.has_users, "accessPoints": list(self.access_points)}


@dataclass(frozen=True)
class PageSignals:
    title: str = ""
    ecommerce: EcommerceSignals = field(default_factory=EcommerceSignals)
    users: UserSignals = field(default_factory=UserSignals)
    external_links: int = 0
    images_without_alt: int = 0
    cookies_detected: int = 0


@dataclass(frozen=True)
class SecurityAnalysis:
    security_headers: Dict[str, Any]
    ssl: SSLAssessment
    vulnerable_technologies: Tuple[VulnerabilityFinding, ...]
    score: SecurityScoreResult
    technologies: Tuple[DetectedTechnology, ...] = ()
    site_context: Optional[SiteContext] = None
    header_evaluation: Optional[HeaderEvaluation] = None
    external_links: int = 0
    images_without_alt: int = 0
    cookies_detected: int = 0
    suppressed_findings: int = 0

    @property
    def privacy_score(self) -> int:
        return self.score.overall

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "securityHeaders": self.security_headers,
            "sslAnalysis": self.ssl.to_dict(),
            "vulnerableTechnologies": [item.to_dict() for item in self.vulnerable_technologies],
            "privacyScore": self.privacy_score,
            "externalLinks": self.external_links,
            "imagesWithoutAlt": self.images_without_alt,
            "cookiesDetected": self.cookies_detected,
            "score": self.score.to_dict(),
            "technologies": [tech.to_dict() for tech in self.technologies],
            "suppressedFindings": self.suppressed_findings,
        }
        if self.site_context is not None:
            payload["siteContext"] = self.site_context.to_dict()
        if self.header_evaluation is not None:
            payload["headerEvaluation"] = self.header_evaluation.to_dict()
        return payload
