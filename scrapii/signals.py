from __future__ import annotations

import json
import logging
import re
from http.cookies import CookieError, SimpleCookie
from typing import Any, Dict, Iterable, List, Mapping, Optional, Set, Tuple
from urllib.parse import urljoin, urlparse

from bs4 import BeautifulSoup

from .config import get_settings
from .models import EcommerceSignals, PageSignals, UserSignals

logger = logging.getLogger("scrapii.signals")

ACCESS_POINT_PATTERN = re.compile(
    r"(login|log\s*in|register|sign\s*in|sign\s*up|profile|account|dashboard|admin|user|member|author)",
    re.IGNORECASE,
)

# Checked in order; the first label whose regex matches wins.
ACCESS_POINT_LABELS: Tuple[Tuple[Any, str], ...] = (
    (re.compile(r"log\s*in"), "Login"),
    (re.compile(r"register"), "Registration"),
    (re.compile(r"sign\s*in"), "Sign In"),
    (re.compile(r"sign\s*up"), "Sign Up"),
    (re.compile(r"profile"), "Profile"),
    (re.compile(r"account"), "Account"),
    (re.compile(r"dashboard"), "Dashboard"),
    (re.compile(r"admin"), "Administration"),
    (re.compile(r"user"), "User"),
    (re.compile(r"member"), "Member"),
    (re.compile(r"author"), "Author"),
)

PRODUCT_SELECTORS = (
    ".product",
    ".product-item",
    ".product-card",
    ".product-tile",
    ".woocommerce-product",
    ".shopify-product",
    ".magento-product",
    "[data-product]",
    "[data-product-id]",
    ".catalog-item",
)
PRODUCT_NAME_SELECTORS = (
    ".product-title",
    ".product-name",
    ".title",
    ".name",
    "h2",
    "h3",
    "[data-product-title]",
    ".card-title",
)
PRODUCT_PRICE_SELECTORS = (".price", ".product-price", ".amount", "[data-price]", ".money")
PRICE_PATTERN = re.compile(r"\$\d+|€\d+|£\d+|¥\d+|₹\d+|\d+\.\d+\s*\$|\d+,\d+\s*€")
PRICE_FALLBACK_LIMIT = 5

PAYMENT_KEYWORDS: Dict[str, Tuple[str, ...]] = {
    "PayPal": ("paypal", "pp-logo", "paypal-button"),
    "Stripe": ("stripe", "stripe-button", "stripe-checkout"),
    "Visa": ("visa-card", "visa"),
    "Mastercard": ("mastercard", "master-card", "mc-card"),
    "American Express": ("amex", "american-express", "americanexpress"),
    "Apple Pay": ("apple-pay", "applepay", "apple-payment"),
    "Google Pay": ("google-pay", "googlepay", "gpay"),
    "Bitcoin": ("bitcoin", "btc-"),
    "Mercado Pago": ("mercadopago", "mercado-pago", "mp-payment"),
}


def base_domain(hostname: Optional[str]) -> str:
    if not hostname:
        return ""
    normalized = hostname.lower().rstrip(".")
    parts = normalized.split(".")
    if len(parts) <= 2:
        return normalized
    return ".".join(parts[-2:])


def detect_user_access_points(html: str) -> UserSignals:
    found: List[str] = []
    for match in ACCESS_POINT_PATTERN.finditer(html or ""):
        text = match.group(0).lower()
        for pattern, label in ACCESS_POINT_LABELS:
            if pattern.search(text):
                if label not in found:
                    found.append(label)
                break
    return UserSignals(has_users=bool(found), access_points=tuple(found))


def _schema_types(payload: Any) -> Iterable[str]:
    items = payload if isinstance(payload, list) else [payload]
    for item in items:
        if not isinstance(item, dict):
            continue
        declared = item.get("@type")
        if isinstance(declared, list):
            yield " ".join(str(value) for value in declared)
        elif declared:
            yield str(declared)
        graph = item.get("@graph")
        if isinstance(graph, list):
            yield from _schema_types(graph)


def parse_structured_data(soup: BeautifulSoup) -> Set[str]:
    """Collect the ``@type`` values of every JSON-LD block.

    Blocks that fail to parse are skipped; they never abort the scan.
    """
    types: Set[str] = set()
    for script in soup.find_all("script", attrs={"type": "application/ld+json"}):
        raw = script.string or script.get_text() or ""
        try:
            payload = json.loads(raw)
        except (json.JSONDecodeError, ValueError):
            logger.debug("Ignoring malformed JSON-LD block (%d chars)", len(raw))
            continue
        types.update(_schema_types(payload))
    return types


def _count_products(soup: BeautifulSoup) -> int:
    seen = set()
    for selector in PRODUCT_SELECTORS:
        for element in soup.select(selector):
            if id(element) in seen:
                continue
            has_name = any(element.select_one(sel) is not None for sel in PRODUCT_NAME_SELECTORS)
            has_price = any(element.select_one(sel) is not None for sel in PRODUCT_PRICE_SELECTORS) or bool(
                PRICE_PATTERN.search(element.get_text(" ", strip=True))
            )
            if has_name or has_price:
                seen.add(id(element))
    return len(seen)


def analyze_ecommerce(html: str, soup: BeautifulSoup) -> EcommerceSignals:
    html_lower = (html or "").lower()
    total_products = _count_products(soup)
    if total_products == 0:
        total_products = min(len(PRICE_PATTERN.findall(html or "")), PRICE_FALLBACK_LIMIT)

    payment_methods = tuple(
        method
        for method, keywords in PAYMENT_KEYWORDS.items()
        if any(keyword in html_lower for keyword in keywords)
    )

    schema_types = " ".join(sorted(parse_structured_data(soup)))
    return EcommerceSignals(
        total_products=total_products,
        payment_methods=payment_methods,
        has_product_schema="Product" in schema_types,
        has_organization_schema="Organization" in schema_types,
        has_review_schema="Review" in schema_types,
    )


def count_external_links(soup: BeautifulSoup, url: str) -> int:
    base = base_domain(urlparse(url).hostname)
    count = 0
    for tag in soup.find_all("a", href=True):
        href = str(tag.get("href") or "").strip()
        if not href or href.startswith(("#", "mailto:", "tel:", "javascript:")):
            continue
        try:
            hostname = urlparse(urljoin(url, href)).hostname
        except ValueError:
            continue
        if not hostname or not base:
            continue
        host = hostname.lower()
        if host != base and not host.endswith("." + base):
            count += 1
    return count


def count_images_without_alt(soup: BeautifulSoup) -> int:
    return sum(1 for img in soup.find_all("img") if not str(img.get("alt") or "").strip())


def _set_cookie_values(headers: Optional[Mapping[str, Any]]) -> List[str]:
    if not headers:
        return []
    values: List[str] = []
    for key, value in headers.items():
        if str(key).lower() != "set-cookie" or value is None:
            continue
        if isinstance(value, (list, tuple)):
            values.extend(str(item) for item in value)
        else:
            values.append(str(value))
    return values


def count_cookies(headers: Optional[Mapping[str, Any]]) -> int:
    names: Set[str] = set()
    for header in _set_cookie_values(headers):
        cookie = SimpleCookie()
        try:
            cookie.load(header)
        except CookieError:
            logger.debug("Could not parse Set-Cookie header: %s", header)
            continue
        names.update(cookie.keys())
    return len(names)


def extract_page_signals(
    html: str,
    url: str,
    soup: Optional[BeautifulSoup] = None,
    headers: Optional[Mapping[str, Any]] = None,
) -> PageSignals:
    bounded = (html or "")[: get_settings().max_scan_bytes]
    if soup is None:
        soup = BeautifulSoup(bounded, "html.parser")
    title_tag = soup.find("title")
    title = title_tag.get_text(strip=True) if title_tag else ""
    return PageSignals(
        title=title,
        ecommerce=analyze_ecommerce(bounded, soup),
        users=detect_user_access_points(bounded),
        external_links=count_external_links(soup, url or ""),
        images_without_alt=count_images_without_alt(soup),
        cookies_detected=count_cookies(headers),
    )
