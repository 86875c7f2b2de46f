"""Security header evaluation.

Two views of the same response headers are produced: a weighted score used
by the realistic scorer (quality of present headers minus a context-aware
penalty for missing ones), and the boolean/detail summary that ends up in
the ``securityHeaders`` block of the report.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Tuple

from .models import (
    CONTEXT_API,
    CONTEXT_BLOG,
    CONTEXT_PORTFOLIO,
    CONTEXT_STATIC,
    CRITICALITY_CRITICAL,
    CRITICALITY_HIGH,
    CRITICALITY_LOW,
    CRITICALITY_MEDIUM,
    HeaderAssessment,
    HeaderEvaluation,
    SiteContext,
)

CSP = "content-security-policy"
HSTS = "strict-transport-security"
X_FRAME_OPTIONS = "x-frame-options"
X_CONTENT_TYPE_OPTIONS = "x-content-type-options"
REFERRER_POLICY = "referrer-policy"
PERMISSIONS_POLICY = "permissions-policy"
X_XSS_PROTECTION = "x-xss-protection"

HSTS_MIN_MAX_AGE = 31536000


@dataclass(frozen=True)
class HeaderSpec:
    name: str
    weight: int
    criticality: str


SECURITY_HEADERS: Tuple[HeaderSpec, ...] = (
    HeaderSpec(CSP, 25, CRITICALITY_CRITICAL),
    HeaderSpec(HSTS, 20, CRITICALITY_CRITICAL),
    HeaderSpec(X_FRAME_OPTIONS, 15, CRITICALITY_HIGH),
    HeaderSpec(X_CONTENT_TYPE_OPTIONS, 12, CRITICALITY_HIGH),
    HeaderSpec(REFERRER_POLICY, 8, CRITICALITY_MEDIUM),
    HeaderSpec(PERMISSIONS_POLICY, 6, CRITICALITY_MEDIUM),
    HeaderSpec(X_XSS_PROTECTION, 3, CRITICALITY_LOW),
)

STATIC_SITE_MODIFIERS: Dict[str, float] = {
    CSP: 0.3,
    REFERRER_POLICY: 0.5,
    PERMISSIONS_POLICY: 0.4,
    X_XSS_PROTECTION: 0.1,
}
API_ONLY_MODIFIERS: Dict[str, float] = {
    CSP: 0.0,
    X_FRAME_OPTIONS: 0.0,
    REFERRER_POLICY: 0.2,
}
BLOG_PORTFOLIO_MODIFIERS: Dict[str, float] = {
    CSP: 0.4,
    X_FRAME_OPTIONS: 0.3,
    REFERRER_POLICY: 1.1,
}

MISSING_HEADER_MODIFIERS: Dict[str, Dict[str, float]] = {
    CONTEXT_STATIC: STATIC_SITE_MODIFIERS,
    CONTEXT_API: {**STATIC_SITE_MODIFIERS, **API_ONLY_MODIFIERS},
    CONTEXT_BLOG: {**STATIC_SITE_MODIFIERS, **BLOG_PORTFOLIO_MODIFIERS},
    CONTEXT_PORTFOLIO: {**STATIC_SITE_MODIFIERS, **BLOG_PORTFOLIO_MODIFIERS},
}

VALID_REFERRER_POLICIES = ("no-referrer", "strict-origin-when-cross-origin", "no-referrer-when-downgrade")
VALID_FRAME_OPTIONS = ("deny", "sameorigin", "allow-from")
SERVER_DISCLOSURE_PATTERN = re.compile(r"apache|nginx|iis|lighttpd|tomcat", re.IGNORECASE)
POWERED_BY_DISCLOSURE_PATTERN = re.compile(r"express|php|laravel|django|rails", re.IGNORECASE)
MAX_AGE_PATTERN = re.compile(r"max-age=(\d+)", re.IGNORECASE)
NOT_PRESENT = "Not present"


def normalize_headers(headers: Optional[Mapping[str, Any]]) -> Dict[str, str]:
    """Lowercase the header names and drop empty values."""
    if not headers:
        return {}
    normalized: Dict[str, str] = {}
    for key, value in headers.items():
        if key is None or value is None:
            continue
        if isinstance(value, (list, tuple)):
            value = ", ".join(str(item) for item in value)
        text = str(value).strip()
        if text:
            normalized[str(key).strip().lower()] = text
    return normalized


def csp_quality(value: str) -> float:
    score = 0.5
    for directive in ("default-src", "script-src", "style-src"):
        if directive in value:
            score += 0.2
    if "'unsafe-inline'" not in value:
        score += 0.3
    if "nonce-" in value or "sha256-" in value:
        score += 0.2
    return min(1.0, score)


def hsts_quality(value: str) -> float:
    lowered = value.lower()
    score = 0.3
    if "max-age=" in lowered:
        score += 0.3
    if "includesubdomains" in lowered:
        score += 0.2
    if "preload" in lowered:
        score += 0.2
    return min(1.0, round(score, 2))


def header_quality(name: str, value: Optional[str]) -> float:
    if not value:
        return 0.0
    if name == CSP:
        return csp_quality(value)
    if name == HSTS:
        return hsts_quality(value)
    if name == X_FRAME_OPTIONS:
        upper = value.upper()
        return 1.0 if "DENY" in upper or "SAMEORIGIN" in upper else 0.7
    return 1.0


def missing_header_penalty(name: str, context: Optional[SiteContext] = None) -> float:
    if context is None:
        return 1.0
    modifiers = MISSING_HEADER_MODIFIERS.get(context.type, {})
    return modifiers.get(name, 1.0)


def evaluate_headers(
    headers: Optional[Mapping[str, Any]], context: Optional[SiteContext] = None
) -> HeaderEvaluation:
    normalized = normalize_headers(headers)
    assessments = []
    present_points = 0.0
    missing_points = 0.0
    for spec in SECURITY_HEADERS:
        value = normalized.get(spec.name)
        if value:
            quality = header_quality(spec.name, value)
            present_points += spec.weight * quality
            assessments.append(
                HeaderAssessment(
                    name=spec.name,
                    present=True,
                    raw_value=value,
                    quality_score=quality,
                    weight=spec.weight,
                    criticality=spec.criticality,
                )
            )
        else:
            penalty = missing_header_penalty(spec.name, context)
            missing_points += spec.weight * penalty
            assessments.append(
                HeaderAssessment(
                    name=spec.name,
                    present=False,
                    raw_value="",
                    quality_score=0.0,
                    weight=spec.weight,
                    criticality=spec.criticality,
                    penalty=penalty,
                )
            )
    return HeaderEvaluation(
        assessments=tuple(assessments),
        present_points=present_points,
        missing_points=missing_points,
    )


def hsts_max_age(value: Optional[str]) -> int:
    if not value:
        return 0
    match = MAX_AGE_PATTERN.search(value)
    return int(match.group(1)) if match else 0


def is_csp_valid(value: Optional[str]) -> bool:
    if not value:
        return False
    lowered = value.lower()
    if "default-src" not in lowered or "script-src" not in lowered:
        return False
    return "unsafe-inline" not in lowered or "nonce-" in lowered or "sha256-" in lowered


def summarize_headers(headers: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    """Build the ``securityHeaders`` block of the report."""
    normalized = normalize_headers(headers)
    csp = normalized.get(CSP)
    hsts = normalized.get(HSTS)
    xss_protection = normalized.get(X_XSS_PROTECTION)
    content_type = normalized.get(X_CONTENT_TYPE_OPTIONS)
    referrer = normalized.get(REFERRER_POLICY)
    frame_options = normalized.get(X_FRAME_OPTIONS)
    permissions = normalized.get(PERMISSIONS_POLICY)
    server = normalized.get("server")
    powered_by = normalized.get("x-powered-by")

    csp_valid = is_csp_valid(csp)
    max_age = hsts_max_age(hsts)
    hsts_valid = max_age >= HSTS_MIN_MAX_AGE
    if xss_protection:
        xss_valid = xss_protection.lower().replace(" ", "") == "1;mode=block"
    elif csp:
        xss_valid = "object-src" in csp.lower() and "script-src" in csp.lower()
    else:
        xss_valid = False
    content_type_valid = (content_type or "").lower() == "nosniff"
    referrer_valid = bool(referrer) and any(
        policy in referrer.lower() for policy in VALID_REFERRER_POLICIES
    )
    frame_valid = bool(frame_options) and any(
        option in frame_options.lower() for option in VALID_FRAME_OPTIONS
    )

    def detail(value: Optional[str], valid: bool) -> Dict[str, Any]:
        return {"present": bool(value), "valid": valid, "content": value or NOT_PRESENT}

    hsts_detail = detail(hsts, hsts_valid)
    hsts_detail["maxAge"] = max_age
    return {
        "csp": csp_valid,
        "hsts": hsts_valid,
        "xss": xss_valid,
        "contentType": content_type_valid,
        "detailed": {
            "csp": detail(csp, csp_valid),
            "hsts": hsts_detail,
            "xssProtection": detail(xss_protection, xss_valid),
            "contentTypeOptions": detail(content_type, content_type_valid),
            "referrerPolicy": detail(referrer, referrer_valid),
            "frameOptions": detail(frame_options, frame_valid),
            "permissionsPolicy": detail(permissions, bool(permissions)),
            "infoDisclosure": {
                "serverExposed": bool(server and SERVER_DISCLOSURE_PATTERN.search(server)),
                "poweredByExposed": bool(
                    powered_by and POWERED_BY_DISCLOSURE_PATTERN.search(powered_by)
                ),
            },
        },
    }
