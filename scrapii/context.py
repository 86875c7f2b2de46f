from __future__ import annotations

from typing import Dict, Iterable, Optional

from .models import (
    CONTEXT_BLOG,
    CONTEXT_ECOMMERCE,
    CONTEXT_ENTERPRISE,
    CONTEXT_GOVERNMENT,
    CONTEXT_PORTFOLIO,
    CONTEXT_SPA,
    DetectedTechnology,
    PageSignals,
    SiteContext,
)

SITE_ECOMMERCE_STANDARD = "ecommerce-standard"
SITE_ECOMMERCE_PREMIUM = "ecommerce-premium"
SITE_ENTERPRISE_SMB = "enterprise-smb"
SITE_ENTERPRISE_CORPORATE = "enterprise-corporate"
SITE_PORTFOLIO_PROFESSIONAL = "portfolio-professional"
SITE_SAAS_PLATFORM = "saas-platform"
SITE_GOVERNMENT = "government"
SITE_FINANCIAL = "financial"
SITE_HEALTHCARE = "healthcare"
SITE_EDUCATION = "education"
SITE_MEDIA_PUBLISHER = "media-publisher"
SITE_BLOG_INFLUENCER = "blog-influencer"
SITE_LANDING_PAGE = "landing-page-conversion"

PREMIUM_PRODUCT_THRESHOLD = 50
CORPORATE_ACCESS_POINT_THRESHOLD = 3
EXTERNAL_API_LINK_THRESHOLD = 5
SPA_FRAMEWORKS = ("React", "Vue.js")
UPLOAD_CAPABLE_STACKS = ("PHP", "Node.js/Express")
PORTFOLIO_TITLE_KEYWORDS = ("blog", "portfolio")

SITE_TYPE_CONTEXT: Dict[str, str] = {
    SITE_ECOMMERCE_STANDARD: CONTEXT_ECOMMERCE,
    SITE_ECOMMERCE_PREMIUM: CONTEXT_ECOMMERCE,
    SITE_SAAS_PLATFORM: CONTEXT_SPA,
    SITE_PORTFOLIO_PROFESSIONAL: CONTEXT_PORTFOLIO,
    SITE_BLOG_INFLUENCER: CONTEXT_BLOG,
    SITE_GOVERNMENT: CONTEXT_GOVERNMENT,
}


def determine_site_type(
    signals: Optional[PageSignals], technologies: Iterable[DetectedTechnology] = ()
) -> str:
    """Pick the site archetype; the first matching rule wins."""
    signals = signals or PageSignals()
    products = signals.ecommerce.total_products
    if products > 0:
        return SITE_ECOMMERCE_PREMIUM if products > PREMIUM_PRODUCT_THRESHOLD else SITE_ECOMMERCE_STANDARD

    names = {tech.name for tech in technologies}
    if any(framework in names for framework in SPA_FRAMEWORKS):
        return SITE_SAAS_PLATFORM

    users = signals.users
    if users.has_users and len(users.access_points) > CORPORATE_ACCESS_POINT_THRESHOLD:
        return SITE_ENTERPRISE_CORPORATE

    title = signals.title.lower()
    if any(keyword in title for keyword in PORTFOLIO_TITLE_KEYWORDS):
        return SITE_PORTFOLIO_PROFESSIONAL

    return SITE_ENTERPRISE_SMB


def context_type_for(site_type: str) -> str:
    return SITE_TYPE_CONTEXT.get(site_type, CONTEXT_ENTERPRISE)


def build_site_context(
    signals: Optional[PageSignals],
    technologies: Iterable[DetectedTechnology],
    site_type: str,
    https_enabled: bool,
) -> SiteContext:
    signals = signals or PageSignals()
    stack = frozenset(tech.name for tech in technologies)
    return SiteContext(
        type=context_type_for(site_type),
        has_user_generated_content=signals.users.has_users,
        handles_financial_data=bool(signals.ecommerce.payment_methods),
        has_login_system=signals.users.has_users,
        allows_file_uploads=any(name in stack for name in UPLOAD_CAPABLE_STACKS),
        uses_external_apis=signals.external_links > EXTERNAL_API_LINK_THRESHOLD,
        uses_https=https_enabled,
        technology_stack=stack,
    )
