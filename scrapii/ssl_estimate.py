"""Heuristic SSL/TLS posture estimate.

No handshake is performed: everything here is inferred from the URL scheme
and response headers. ``SSLAssessment.is_estimate`` is always true and the
certificate lifetime is reported as unknown (``None``).
"""

from __future__ import annotations

from typing import Any, Mapping, Optional
from urllib.parse import urljoin, urlparse

from bs4 import BeautifulSoup

from .headers import normalize_headers
from .models import SSLAssessment

TLS_NOT_APPLICABLE = "N/A"
TLS_GENERIC = "TLS 1.2+"
TLS_1_2 = "TLS 1.2"
# Server banners whose default builds are known to top out at TLS 1.2.
TLS_1_2_SERVER_MARKERS = ("Apache/2.4", "nginx/1.16")
LETS_ENCRYPT = "Let's Encrypt"
UNKNOWN_ISSUER = "Unknown"

MIXED_CONTENT_TAGS = ["script", "img", "link", "iframe", "audio", "video", "source"]


def count_mixed_content(soup: BeautifulSoup, url: str) -> int:
    mixed = 0
    for tag in soup.find_all(MIXED_CONTENT_TAGS):
        candidate = tag.get("src") or tag.get("href")
        if not candidate:
            continue
        if urljoin(url, str(candidate)).startswith("http://"):
            mixed += 1
    return mixed


def estimate_ssl(
    url: str,
    headers: Optional[Mapping[str, Any]] = None,
    soup: Optional[BeautifulSoup] = None,
) -> SSLAssessment:
    https_enabled = urlparse(url or "").scheme.lower() == "https"
    if not https_enabled:
        return SSLAssessment(
            https_enabled=False,
            certificate_assumed_valid=False,
            tls_version_estimate=TLS_NOT_APPLICABLE,
        )

    server = normalize_headers(headers).get("server", "")
    protocol = TLS_GENERIC
    if any(marker in server for marker in TLS_1_2_SERVER_MARKERS):
        protocol = TLS_1_2
    issuer = LETS_ENCRYPT if LETS_ENCRYPT in server else UNKNOWN_ISSUER
    return SSLAssessment(
        https_enabled=True,
        certificate_assumed_valid=True,
        tls_version_estimate=protocol,
        days_remaining_estimate=None,
        certificate_issuer=issuer,
        protocol_version=protocol,
        mixed_content=count_mixed_content(soup, url) if soup is not None else 0,
    )
