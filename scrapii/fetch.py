"""HTTP fetch adapter and subdomain fan-out.

This is the only module that touches the network. ``analyze_page`` never
calls into it; ``scanner.run_scan`` and the API use it to obtain the HTML and
headers that are then handed to ``analyze_page``.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Optional
from urllib.parse import urljoin, urlparse

import requests
from bs4 import BeautifulSoup

from .config import HARD_MAX_SUBDOMAIN_WORKERS, USER_AGENT, get_settings
from .signals import base_domain

logger = logging.getLogger("scrapii.fetch")

SESSION = requests.Session()
SESSION.headers.update({"User-Agent": USER_AGENT, "Accept": "*/*"})

_THREAD_LOCAL_SESSION: threading.local = threading.local()


@dataclass
class FetchedPage:
    url: str
    status_code: int
    html: str
    headers: Dict[str, str]
    soup: BeautifulSoup


def _get_thread_session() -> requests.Session:
    session = getattr(_THREAD_LOCAL_SESSION, "session", None)
    if session is None:
        session = requests.Session()
        session.headers.update(SESSION.headers)
        setattr(_THREAD_LOCAL_SESSION, "session", session)
    return session


def _safe_request(
    url: str, method: str = "GET", timeout: Optional[int] = None, **kwargs
) -> Optional[requests.Response]:
    if timeout is None:
        timeout = get_settings().timeout
    session = _get_thread_session()
    try:
        return session.request(method, url, timeout=timeout, **kwargs)
    except requests.RequestException as exc:
        if logger.isEnabledFor(logging.DEBUG):
            logger.exception("Request %s %s failed", method.upper(), url)
        else:
            logger.warning("Request %s %s failed: %s", method.upper(), url, exc)
        return None


def fetch_page(url: str) -> Optional[FetchedPage]:
    resp = _safe_request(url, allow_redirects=True)
    if resp is None:
        return None
    html = resp.text or ""
    return FetchedPage(
        url=resp.url or url,
        status_code=resp.status_code,
        html=html,
        headers={key: value for key, value in resp.headers.items()},
        soup=BeautifulSoup(html, "html.parser"),
    )


def extract_subdomains(soup: BeautifulSoup, url: str) -> List[str]:
    """Origins of linked hosts that share the page's registrable domain."""
    parsed = urlparse(url)
    base_host = (parsed.hostname or "").lower()
    registrable = base_domain(base_host)
    if not registrable:
        return []
    base_origin = f"{parsed.scheme}://{parsed.netloc}".lower()

    origins: List[str] = []
    for tag in soup.find_all("a", href=True):
        href = str(tag.get("href") or "").strip()
        if not href:
            continue
        try:
            link = urlparse(urljoin(url, href))
        except ValueError:
            continue
        host = (link.hostname or "").lower()
        if not host or host == base_host or not host.endswith("." + registrable):
            continue
        origin = f"{link.scheme}://{link.netloc}".lower()
        if origin != base_origin and origin not in origins:
            origins.append(origin)
    return origins


def _scan_one(url: str, analyze: Callable[[FetchedPage], Dict[str, Any]]) -> Dict[str, Any]:
    page = fetch_page(url)
    if page is None:
        return {"url": url, "status": "error", "error": f"Could not reach {url}"}
    try:
        analysis = analyze(page)
    except Exception as exc:
        logger.warning("Analysis of subdomain %s failed: %s", url, exc)
        return {"url": url, "status": "error", "error": str(exc)}
    return {"url": page.url, "status": "ok", "statusCode": page.status_code, "analysis": analysis}


def scan_subdomains(
    urls: Iterable[str], analyze: Callable[[FetchedPage], Dict[str, Any]]
) -> List[Dict[str, Any]]:
    """Fetch and analyze up to ``max_subdomains`` origins concurrently.

    Every subdomain is reported on its own, in input order; one failure never
    affects the others.
    """
    settings = get_settings()
    targets = list(urls)[: settings.max_subdomains]
    if not targets:
        return []
    max_workers = min(settings.subdomain_workers, HARD_MAX_SUBDOMAIN_WORKERS, len(targets))
    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        futures = [executor.submit(_scan_one, target, analyze) for target in targets]
        return [future.result() for future in futures]
