#!/usr/bin/env python3
"""
Scrapii page security engine
----------------------------

Turns the HTML and response headers of a single page into a
``SecurityAnalysis``:

* technology fingerprinting and known-vulnerable versions
* hardcoded credentials, risky JavaScript and production misconfiguration
* security header quality and a heuristic SSL/TLS estimate
* a context-aware score with grade and risk level

``analyze_page`` is pure computation. ``run_scan`` adds the network fetch
(and optional subdomain fan-out) used by the CLI and the API.
"""

from __future__ import annotations

import argparse
import json
import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Union

from bs4 import BeautifulSoup

from .config import get_settings
from .context import build_site_context, determine_site_type
from .false_positives import mark_false_positives
from .fetch import FetchedPage, extract_subdomains, fetch_page, scan_subdomains
from .fingerprint import CURRENT_VERSIONS, detect_technologies
from .headers import evaluate_headers, normalize_headers, summarize_headers
from .models import DetectedTechnology, PageSignals, SecurityAnalysis
from .scoring import score_security
from .signals import extract_page_signals
from .ssl_estimate import estimate_ssl
from .vulnerabilities import scan_html

logger = logging.getLogger("scrapii.scanner")

TechnologyInput = Union[DetectedTechnology, str, Mapping[str, Any]]


def _notify_progress(
    callback: Optional[Callable[[Dict[str, Any]], None]],
    payload: Dict[str, Any],
) -> None:
    if not callback:
        return
    try:
        callback(payload)
    except Exception:
        logger.debug("Progress callback raised; ignoring", exc_info=True)


def coerce_technologies(items: Iterable[TechnologyInput]) -> List[DetectedTechnology]:
    """Accept technology names, ``{"name", "version"}`` mappings or records."""
    technologies: List[DetectedTechnology] = []
    for item in items:
        if isinstance(item, DetectedTechnology):
            technologies.append(item)
        elif isinstance(item, str):
            if item.strip():
                name = item.strip()
                technologies.append(DetectedTechnology(name, None, CURRENT_VERSIONS.get(name)))
        elif isinstance(item, Mapping) and item.get("name"):
            name = str(item["name"]).strip()
            version = item.get("version")
            technologies.append(
                DetectedTechnology(
                    name=name,
                    version=str(version) if version else None,
                    current_version=item.get("currentVersion") or CURRENT_VERSIONS.get(name),
                )
            )
    return technologies


def _parse(html: str) -> BeautifulSoup:
    try:
        return BeautifulSoup(html[: get_settings().max_scan_bytes], "html.parser")
    except Exception as exc:
        logger.warning("Could not parse page markup: %s", exc)
        return BeautifulSoup("", "html.parser")


def analyze_page(
    html: Optional[str],
    headers: Optional[Mapping[str, Any]],
    url: Optional[str],
    technologies: Optional[Iterable[TechnologyInput]] = None,
    signals: Optional[PageSignals] = None,
    soup: Optional[BeautifulSoup] = None,
) -> SecurityAnalysis:
    html = html if isinstance(html, str) else ""
    url = url or ""
    if not isinstance(headers, Mapping):
        headers = None
    normalized = normalize_headers(headers)
    if soup is None:
        soup = _parse(html)

    if technologies is None:
        try:
            detected = detect_technologies(html, soup)
        except Exception as exc:
            logger.warning("Technology detection failed: %s", exc)
            detected = []
    else:
        detected = coerce_technologies(technologies)

    if signals is None:
        try:
            signals = extract_page_signals(html, url, soup=soup, headers=headers)
        except Exception as exc:
            logger.warning("Page signal extraction failed: %s", exc)
            signals = PageSignals()

    marked = mark_false_positives(scan_html(html, detected))
    findings = [finding for finding in marked if not finding.is_false_positive]
    suppressed = len(marked) - len(findings)
    if suppressed:
        logger.info("Suppressed %d false positive finding(s)", suppressed)

    ssl = estimate_ssl(url, normalized, soup)
    site_type = determine_site_type(signals, detected)
    site_context = build_site_context(signals, detected, site_type, ssl.https_enabled)
    evaluation = evaluate_headers(normalized, site_context)
    summary = summarize_headers(normalized)
    score = score_security(
        evaluation,
        findings,
        site_type=site_type,
        context=site_context,
        headers=normalized,
        header_flags=summary,
        https_enabled=ssl.https_enabled,
    )

    return SecurityAnalysis(
        security_headers=summary,
        ssl=ssl,
        vulnerable_technologies=tuple(findings),
        score=score,
        technologies=tuple(detected),
        site_context=site_context,
        header_evaluation=evaluation,
        external_links=signals.external_links,
        images_without_alt=signals.images_without_alt,
        cookies_detected=signals.cookies_detected,
        suppressed_findings=suppressed,
    )


def _analyze_fetched(page: FetchedPage) -> Dict[str, Any]:
    return analyze_page(page.html, page.headers, page.url, soup=page.soup).to_dict()


def run_scan(
    target_url: str,
    progress_callback: Optional[Callable[[Dict[str, Any]], None]] = None,
    include_subdomains: bool = False,
) -> Dict[str, Any]:
    _notify_progress(progress_callback, {"type": "phase", "phase": "fetch", "progress": 5})
    page = fetch_page(target_url)
    if page is None:
        raise RuntimeError(f"Could not reach {target_url}.")

    _notify_progress(progress_callback, {"type": "phase", "phase": "analyze", "progress": 35})
    analysis = analyze_page(page.html, page.headers, page.url, soup=page.soup)

    subdomains: List[Dict[str, Any]] = []
    if include_subdomains:
        candidates = extract_subdomains(page.soup, page.url)
        _notify_progress(
            progress_callback,
            {"type": "phase", "phase": "subdomains", "progress": 60, "candidates": len(candidates)},
        )
        subdomains = scan_subdomains(candidates, _analyze_fetched)

    _notify_progress(progress_callback, {"type": "phase", "phase": "report", "progress": 95})
    return {
        "meta": {
            "target": target_url,
            "final_url": page.url,
            "status_code": page.status_code,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "subdomains_scanned": len(subdomains),
        },
        "analysis": analysis.to_dict(),
        "subdomains": subdomains,
    }


def _load_headers_file(path: Optional[str]) -> Dict[str, Any]:
    if not path:
        return {}
    with open(path, "r", encoding="utf-8") as handle:
        payload = json.load(handle)
    if not isinstance(payload, dict):
        raise SystemExit(f"{path} must contain a JSON object of response headers")
    return payload


def main() -> None:
    parser = argparse.ArgumentParser(description="Scrapii page security analyzer")
    parser.add_argument("--url", "-u", help="Target URL (including scheme).")
    parser.add_argument(
        "--html",
        help="Analyze a local HTML file instead of fetching; --url is then only used as the page URL.",
    )
    parser.add_argument("--headers", help="JSON file with response headers for --html mode.")
    parser.add_argument(
        "--output",
        "-o",
        default="report.json",
        help="File the JSON report is written to.",
    )
    parser.add_argument(
        "--subdomains",
        action="store_true",
        help="Also analyze up to SCRAPII_MAX_SUBDOMAINS linked subdomains.",
    )
    parser.add_argument("--verbose", "-v", action="count", default=0)
    args = parser.parse_args()

    level = logging.WARNING
    if args.verbose == 1:
        level = logging.INFO
    elif args.verbose > 1:
        level = logging.DEBUG
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    if args.html:
        with open(args.html, "r", encoding="utf-8", errors="replace") as handle:
            html = handle.read()
        report: Dict[str, Any] = analyze_page(
            html, _load_headers_file(args.headers), args.url or ""
        ).to_dict()
    elif args.url:
        report = run_scan(args.url, include_subdomains=args.subdomains)
    else:
        parser.error("one of --url or --html is required")

    with open(args.output, "w", encoding="utf-8") as handle:
        json.dump(report, handle, ensure_ascii=False, indent=2)
    print(f"Report saved to {args.output}")


if __name__ == "__main__":
    main()
