"""Declarative technology fingerprinting.

A technology is present when any of its signals matches: a substring of the
lowercased HTML, a CSS selector hit, a ``<script src>`` or ``<link href>``
substring, or a substring of ``<meta name="generator">``.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Dict, List, Optional, Pattern, Tuple

from bs4 import BeautifulSoup

from .config import get_settings
from .models import VERSION_OUTDATED, DetectedTechnology, compare_versions

logger = logging.getLogger("scrapii.fingerprint")

VERSION_NUMBER_PATTERN = re.compile(r"\d+\.\d+\.\d+|\d+\.\d+")

CURRENT_VERSIONS: Dict[str, str] = {
    # JavaScript frameworks
    "React": "18.2.0",
    "Vue.js": "3.3.0",
    "Angular": "17.1.0",
    "Svelte": "4.2.0",
    "Ember.js": "5.0.0",
    "Backbone.js": "1.4.1",
    "jQuery": "3.7.1",
    "jQuery UI": "1.13.2",
    "Lodash": "4.17.21",
    "Moment.js": "2.30.1",
    # CSS frameworks
    "Bootstrap": "5.3.0",
    "Tailwind CSS": "3.4.0",
    "Bulma": "0.9.4",
    "Foundation": "6.8.1",
    "Semantic UI": "2.5.0",
    # Meta frameworks and bundlers
    "Next.js": "14.1.0",
    "Nuxt.js": "3.8.0",
    "Gatsby": "5.12.0",
    "Vite": "5.1.0",
    "Webpack": "5.89.0",
    "Rollup": "4.9.0",
    # CMS
    "WordPress": "6.4.0",
    "Shopify": "2024-01",
    "Drupal": "10.3.0",
    "Joomla": "5.0.0",
    "Magento": "2.4.7",
    # Backend
    "PHP": "8.3.0",
    "ASP.NET": "8.0.0",
    "Django": "4.2.7",
    "Flask": "3.0.0",
    "Ruby on Rails": "7.1.0",
    "Node.js/Express": "21.5.0",
    "Laravel": "11.0.0",
    "Spring": "3.2.0",
    "FastAPI": "0.109.0",
    # Data services
    "MongoDB": "7.0.0",
    "Firebase": "10.7.0",
    "Supabase": "2.37.0",
    # Tooling and libraries
    "TypeScript": "5.3.0",
    "SASS/SCSS": "1.69.0",
    "LESS": "4.2.0",
    "PostCSS": "8.4.0",
    "Chart.js": "4.4.0",
    "D3.js": "7.8.0",
}


@dataclass(frozen=True)
class TechnologyRule:
    name: str
    html: Tuple[str, ...] = ()
    selectors: Tuple[str, ...] = ()
    script_srcs: Tuple[str, ...] = ()
    link_hrefs: Tuple[str, ...] = ()
    generator: Tuple[str, ...] = ()
    version_patterns: Tuple[Pattern[str], ...] = ()
    version_key: Optional[str] = None


def _patterns(*sources: str) -> Tuple[Pattern[str], ...]:
    return tuple(re.compile(source) for source in sources)


TECHNOLOGY_RULES: Tuple[TechnologyRule, ...] = (
    TechnologyRule(
        "React",
        html=("react",),
        selectors=("[data-reactroot]", "[data-react]"),
        script_srcs=("react",),
        version_patterns=_patterns(
            r"react[.\-]?\d+\.\d+\.\d+",
            r"react[-_]\d+\.\d+\.\d+",
            r"react[.\-]\d+\.\d+",
            r"react[-_]\d+\.\d+",
            r"react\.version[.\-]?\d+\.\d+\.\d+",
            r"react-dom@\d+\.\d+\.\d+",
            r"""react[.\-]version[:\s]*['"]?\d+\.\d+\.\d+""",
            r"react[.\-]v\d+\.\d+\.\d+",
        ),
    ),
    TechnologyRule(
        "Vue.js",
        html=("vue",),
        selectors=("#app[data-v-app]",),
        script_srcs=("vue",),
        version_patterns=_patterns(
            r"vue[.\-@]?\d+\.\d+\.\d+",
            r"vue[.\-@]?\d+\.\d+",
            r"vue[.\-]v\d+\.\d+\.\d+",
            r"vue[.\-]version[.\-]?\d+\.\d+\.\d+",
        ),
    ),
    TechnologyRule(
        "Angular",
        html=("angular", "ng-app"),
        script_srcs=("angular",),
        version_patterns=_patterns(
            r"@angular[./]core[.\-@]?\d+\.\d+\.\d+",
            r"@angular[./]cli[.\-@]?\d+\.\d+\.\d+",
            r"angular[.\-]v?\d+\.\d+\.\d+",
            r"""ng[.\-]version[:\s]*['"]?\d+\.\d+\.\d+""",
        ),
    ),
    TechnologyRule("Svelte", html=("svelte",), selectors=("[data-svelte]",), script_srcs=("svelte",)),
    TechnologyRule(
        "Ember.js",
        html=("ember.js", "ember.min.js", "ember-application", "data-ember-action"),
        script_srcs=("ember",),
        version_key="ember",
    ),
    TechnologyRule("Backbone.js", html=("backbone",), script_srcs=("backbone",), version_key="backbone"),
    TechnologyRule(
        "jQuery",
        html=("jquery",),
        version_patterns=_patterns(
            r"jquery[.\-]?\d+\.\d+\.\d+",
            r"jquery[.\-]?\d+\.\d+",
            r"jquery[.\-]v\d+\.\d+\.\d+",
            r"jquery[.\-]v\d+\.\d+",
            r"jquery[.\-]version[.\-]?\d+\.\d+\.\d+",
        ),
    ),
    TechnologyRule(
        "jQuery UI",
        html=("jquery-ui", "jquery.ui", "jqueryui"),
        version_patterns=_patterns(
            r"jquery[.\-]?ui[.\-/@]?v?\d+\.\d+\.\d+",
            r"jquery[.\-]?ui[.\-/@]?v?\d+\.\d+",
        ),
    ),
    TechnologyRule("Lodash", html=("lodash",), script_srcs=("lodash",), version_key="lodash"),
    TechnologyRule("Moment.js", html=("moment.js", "moment.min.js", "moment@"), script_srcs=("moment",), version_key="moment"),
    TechnologyRule(
        "Bootstrap",
        html=("bootstrap",),
        selectors=(".container-fluid",),
        link_hrefs=("bootstrap",),
        version_patterns=_patterns(
            r"bootstrap[.\-@]?\d+\.\d+\.\d+",
            r"bootstrap[.\-@]?\d+\.\d+",
            r"bootstrap[.\-]v\d+\.\d+\.\d+",
            r"bootstrap[.\-]version[.\-]?\d+\.\d+\.\d+",
        ),
    ),
    TechnologyRule("Tailwind CSS", html=("tailwind",), selectors=('[class*="tw-"]',), version_key="tailwindcss"),
    TechnologyRule("Bulma", html=("bulma",), selectors=(".is-primary",)),
    TechnologyRule("Foundation", html=("foundation.css", "foundation.min", "foundation.js"), selectors=("[data-sticky]",)),
    TechnologyRule("Semantic UI", html=("semantic-ui",), selectors=(".ui.segment",), version_key="semantic"),
    TechnologyRule("Next.js", html=("__next", "_next/static"), selectors=("#__next",), version_key="next"),
    TechnologyRule("Nuxt.js", html=("nuxt",), selectors=("[data-n-head]",), version_key="nuxt"),
    TechnologyRule("Gatsby", html=("gatsby",), selectors=("[data-gatsby]",)),
    TechnologyRule("Vite", html=("@vite", "/vite.svg", "vite/client"), selectors=("[data-vite-plugin]",)),
    TechnologyRule("Webpack", html=("webpack",), script_srcs=("webpack",)),
    TechnologyRule("Rollup", html=("rollup",), script_srcs=("rollup",)),
    TechnologyRule("WordPress", html=("wp-content", "wordpress"), generator=("wordpress",)),
    TechnologyRule("Shopify", html=("shopify",), generator=("shopify",)),
    TechnologyRule("Drupal", html=("drupal",), generator=("drupal",)),
    TechnologyRule("Joomla", html=("joomla",), generator=("joomla",)),
    TechnologyRule("Magento", html=("magento",), generator=("magento",)),
    TechnologyRule("Docusaurus", html=("docusaurus", "dokuwiki")),
    TechnologyRule("Notion", html=("notion.so", "notion-static")),
    TechnologyRule("Wix", html=("wixstatic", "wix.com")),
    TechnologyRule("Squarespace", html=("squarespace",)),
    TechnologyRule("PHP", html=("php",), generator=("php",)),
    TechnologyRule("ASP.NET", html=("asp.net", ".aspx", "__viewstate"), generator=("asp.net",), version_key="asp"),
    TechnologyRule("Django", html=("django", "csrfmiddlewaretoken")),
    TechnologyRule("Flask", html=("flask",)),
    TechnologyRule("Ruby on Rails", html=("ruby on rails", "rails", "csrf-token"), version_key="rails"),
    TechnologyRule(
        "Node.js/Express",
        html=("express", "node.js", "nodejs"),
        version_patterns=_patterns(
            r"node[.\-]?\d+\.\d+\.\d+",
            r"nodejs[.\-]?\d+\.\d+\.\d+",
            r"express[.\-@]?\d+\.\d+\.\d+",
        ),
    ),
    TechnologyRule("Laravel", html=("laravel",)),
    TechnologyRule("Spring", html=("spring",)),
    TechnologyRule("FastAPI", html=("fastapi", "swagger-ui")),
    TechnologyRule("MongoDB", html=("mongodb",), script_srcs=("mongodb",)),
    TechnologyRule("Firebase", html=("firebase",)),
    TechnologyRule("Supabase", html=("supabase",)),
    TechnologyRule("Animate.css", html=("animate.css", "aos.css", "aos.js"), link_hrefs=("animate",), version_key="animate"),
    TechnologyRule("Slider/Carousel", html=("swiper", "slick")),
    TechnologyRule("Chart.js", html=("chart.js",), script_srcs=("chart",), version_key="chart"),
    TechnologyRule("D3.js", html=("d3.js", "d3.min.js", "d3.v"), script_srcs=("d3",), version_key="d3"),
    TechnologyRule("Google Analytics", html=("google-analytics", "gtag")),
    TechnologyRule("Facebook Pixel", html=("fbq(", "connect.facebook.net")),
    TechnologyRule("HubSpot", html=("hubspot", "hs-scripts")),
    TechnologyRule("Mailchimp", html=("mailchimp", "mc-embedded")),
    TechnologyRule("Stripe", html=("stripe",)),
    TechnologyRule("PayPal", html=("paypal",)),
    TechnologyRule(
        "TypeScript",
        html=("typescript",),
        version_patterns=_patterns(
            r"typescript[.\-@]?\d+\.\d+\.\d+",
            r"typescript[.\-@]?\d+\.\d+",
        ),
    ),
    TechnologyRule("SASS/SCSS", html=("sass", "scss"), link_hrefs=("sass", "scss"), version_key="sass"),
    TechnologyRule("LESS", html=("less.js", "less.min.js"), link_hrefs=(".less",), version_key="less"),
    TechnologyRule("PostCSS", html=("postcss",), link_hrefs=("postcss",)),
)


def _version_key(rule: TechnologyRule) -> str:
    if rule.version_key:
        return rule.version_key
    return re.sub(r"[^a-z0-9]", "", rule.name.lower())


def _generic_version_pattern(rule: TechnologyRule) -> Pattern[str]:
    key = re.escape(_version_key(rule))
    return re.compile(rf"{key}[.\-@_\s]*v?(\d+\.\d+(?:\.\d+)?)")


def detect_version(html: str, name: str) -> Optional[str]:
    """Return the first dotted version number found for ``name`` in ``html``."""
    rule = RULES_BY_NAME.get(name)
    if rule is None or not html:
        return None
    html_lower = html[: get_settings().max_scan_bytes].lower()
    return _detect_version(html_lower, rule)


def _detect_version(html_lower: str, rule: TechnologyRule) -> Optional[str]:
    if rule.version_patterns:
        for pattern in rule.version_patterns:
            match = pattern.search(html_lower)
            if not match:
                continue
            number = VERSION_NUMBER_PATTERN.search(match.group(0))
            if number:
                return number.group(0)
        return None
    match = _generic_version_pattern(rule).search(html_lower)
    return match.group(1) if match else None


def _rule_matches(
    rule: TechnologyRule,
    html_lower: str,
    soup: BeautifulSoup,
    script_srcs: List[str],
    link_hrefs: List[str],
    generator: str,
) -> bool:
    if any(token in html_lower for token in rule.html):
        return True
    if any(token in generator for token in rule.generator):
        return True
    if any(token in src for token in rule.script_srcs for src in script_srcs):
        return True
    if any(token in href for token in rule.link_hrefs for href in link_hrefs):
        return True
    return any(soup.select_one(selector) is not None for selector in rule.selectors)


def detect_technologies(html: str, soup: Optional[BeautifulSoup] = None) -> List[DetectedTechnology]:
    if not html:
        return []
    bounded = html[: get_settings().max_scan_bytes]
    if soup is None:
        soup = BeautifulSoup(bounded, "html.parser")
    html_lower = bounded.lower()

    script_srcs = [str(tag.get("src")).lower() for tag in soup.find_all("script", src=True)]
    link_hrefs = [str(tag.get("href")).lower() for tag in soup.find_all("link", href=True)]
    meta = soup.find("meta", attrs={"name": "generator"})
    generator = str(meta.get("content") or "").lower() if meta else ""

    detected = sorted(
        {
            rule.name
            for rule in TECHNOLOGY_RULES
            if _rule_matches(rule, html_lower, soup, script_srcs, link_hrefs, generator)
        }
    )
    logger.debug("Detected %d technologies", len(detected))
    return [
        DetectedTechnology(
            name=name,
            version=_detect_version(html_lower, RULES_BY_NAME[name]),
            current_version=CURRENT_VERSIONS.get(name),
        )
        for name in detected
    ]


def outdated_technologies(technologies: List[DetectedTechnology]) -> List[DetectedTechnology]:
    return [
        tech
        for tech in technologies
        if compare_versions(tech.version, tech.current_version) == VERSION_OUTDATED
    ]


RULES_BY_NAME: Dict[str, TechnologyRule] = {rule.name: rule for rule in TECHNOLOGY_RULES}
