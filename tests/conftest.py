import pytest

from scrapii.config import Settings


# ============================================================================
# FIXTURES - Reusable page content
# ============================================================================

GOOGLE_BROWSER_KEY = "AIzaSy" + "a1B2c3D4e5" * 3 + "XyZ_-"
LEAKED_API_KEY = "Zq8" * 12


@pytest.fixture
def clean_html():
    """Plain brochure page without scripts, forms or account links"""
    return (
        "<html><head><title>Acme</title></head>"
        "<body><h1>Welcome</h1><p>Quality hardware since 1990.</p></body></html>"
    )


@pytest.fixture
def vulnerable_html():
    """Page leaking secrets, calling eval() and loading jQuery 1.9.2"""
    return "\n".join(
        [
            "<html><head><title>Shop</title>",
            '<script src="https://code.jquery.com/jquery-1.9.2.min.js"></script>',
            "</head><body>",
            "<script>",
            f'var api_key = "{LEAKED_API_KEY}";',
            'var password = "hunter22";',
            "eval(userInput);",
            "</script>",
            "</body></html>",
        ]
    )


@pytest.fixture
def google_key_html():
    """Browser key for Google Maps embedded the way the Maps docs show it"""
    return "\n".join(
        [
            "<html><body><script>",
            f'var config = {{ apiKey: "{GOOGLE_BROWSER_KEY}" }};',
            f'var api_key = "{GOOGLE_BROWSER_KEY}";',
            "</script></body></html>",
        ]
    )


@pytest.fixture
def strong_headers():
    """All seven security headers with strong values"""
    return {
        "Content-Security-Policy": (
            "default-src 'self'; script-src 'self' 'nonce-r4nd0m'; style-src 'self'; object-src 'none'"
        ),
        "Strict-Transport-Security": "max-age=31536000; includeSubDomains; preload",
        "X-Frame-Options": "DENY",
        "X-Content-Type-Options": "nosniff",
        "Referrer-Policy": "strict-origin-when-cross-origin",
        "Permissions-Policy": "geolocation=(), camera=()",
        "X-XSS-Protection": "1; mode=block",
    }


@pytest.fixture
def settings():
    """Default limits, built directly so the environment cannot leak in"""
    return Settings(
        max_scan_bytes=2_000_000,
        max_line_length=5_000,
        pass_time_budget=5.0,
        evidence_display_limit=3,
        max_subdomains=5,
        subdomain_workers=5,
        timeout=12,
    )


@pytest.fixture(autouse=True)
def _clear_scrapii_env(monkeypatch):
    for name in (
        "SCRAPII_MAX_SCAN_BYTES",
        "SCRAPII_MAX_LINE_LENGTH",
        "SCRAPII_PASS_TIME_BUDGET",
        "SCRAPII_EVIDENCE_DISPLAY_LIMIT",
        "SCRAPII_MAX_SUBDOMAINS",
        "SCRAPII_SUBDOMAIN_WORKERS",
        "SCRAPII_TIMEOUT",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def google_browser_key():
    return GOOGLE_BROWSER_KEY
