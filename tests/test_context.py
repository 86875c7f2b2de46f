from scrapii.context import (
    SITE_ECOMMERCE_PREMIUM,
    SITE_ECOMMERCE_STANDARD,
    SITE_ENTERPRISE_CORPORATE,
    SITE_ENTERPRISE_SMB,
    SITE_PORTFOLIO_PROFESSIONAL,
    SITE_SAAS_PLATFORM,
    build_site_context,
    context_type_for,
    determine_site_type,
)
from scrapii.models import DetectedTechnology, EcommerceSignals, PageSignals, UserSignals


def _signals(**kwargs):
    return PageSignals(**kwargs)


class TestDetermineSiteType:
    """First matching rule wins"""

    def test_premium_shop(self):
        signals = _signals(ecommerce=EcommerceSignals(total_products=60))
        assert determine_site_type(signals) == SITE_ECOMMERCE_PREMIUM

    def test_standard_shop_beats_spa(self):
        signals = _signals(ecommerce=EcommerceSignals(total_products=10))
        techs = [DetectedTechnology("React")]
        assert determine_site_type(signals, techs) == SITE_ECOMMERCE_STANDARD

    def test_spa_framework(self):
        assert determine_site_type(_signals(), [DetectedTechnology("Vue.js")]) == SITE_SAAS_PLATFORM

    def test_corporate_needs_more_than_three_access_points(self):
        three = UserSignals(True, ("Login", "Registration", "Account"))
        four = UserSignals(True, ("Login", "Registration", "Account", "Dashboard"))
        assert determine_site_type(_signals(users=three)) == SITE_ENTERPRISE_SMB
        assert determine_site_type(_signals(users=four)) == SITE_ENTERPRISE_CORPORATE

    def test_blog_title(self):
        assert determine_site_type(_signals(title="Jo's Blog")) == SITE_PORTFOLIO_PROFESSIONAL

    def test_default(self):
        assert determine_site_type(None) == SITE_ENTERPRISE_SMB


class TestBuildSiteContext:
    def test_flags(self):
        signals = _signals(
            ecommerce=EcommerceSignals(total_products=3, payment_methods=("PayPal",)),
            users=UserSignals(True, ("Login",)),
            external_links=6,
        )
        techs = [DetectedTechnology("PHP"), DetectedTechnology("jQuery")]
        context = build_site_context(signals, techs, SITE_ECOMMERCE_STANDARD, https_enabled=True)
        assert context.type == "ecommerce"
        assert context.handles_financial_data is True
        assert context.has_login_system is True
        assert context.has_user_generated_content is True
        assert context.allows_file_uploads is True
        assert context.uses_external_apis is True
        assert context.uses_https is True
        assert context.technology_stack == frozenset({"PHP", "jQuery"})

    def test_quiet_site(self):
        context = build_site_context(None, [], SITE_ENTERPRISE_SMB, https_enabled=False)
        assert context.type == "enterprise"
        assert not (context.handles_financial_data or context.has_login_system)

    def test_context_mapping(self):
        assert context_type_for(SITE_PORTFOLIO_PROFESSIONAL) == "portfolio"
        assert context_type_for("blog-influencer") == "blog"
        assert context_type_for(SITE_SAAS_PLATFORM) == "spa"
        assert context_type_for("unknown") == "enterprise"
