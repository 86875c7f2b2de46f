from __future__ import annotations

import os
from dataclasses import dataclass

DEFAULT_TIMEOUT = 12
USER_AGENT = "Scrapii-Security/3.0 (+https://scrapii.example)"

DEFAULT_MAX_SCAN_BYTES = 2_000_000
DEFAULT_MAX_LINE_LENGTH = 5_000
DEFAULT_PASS_TIME_BUDGET = 5.0
DEFAULT_EVIDENCE_DISPLAY_LIMIT = 3
DEFAULT_MAX_SUBDOMAINS = 5
HARD_MAX_SUBDOMAIN_WORKERS = 5


def _read_limit_from_env(var_name: str, default: int, minimum: int) -> int:
    value = os.getenv(var_name)
    if value is None:
        return default
    try:
        parsed = int(value)
    except ValueError:
        return default
    return max(minimum, parsed)


def _read_seconds_from_env(var_name: str, default: float, minimum: float) -> float:
    value = os.getenv(var_name)
    if value is None:
        return default
    try:
        parsed = float(value)
    except ValueError:
        return default
    return max(minimum, parsed)


@dataclass(frozen=True)
class Settings:
    max_scan_bytes: int
    max_line_length: int
    pass_time_budget: float
    evidence_display_limit: int
    max_subdomains: int
    subdomain_workers: int
    timeout: int


def get_settings() -> Settings:
    """Read the runtime limits from ``SCRAPII_*`` environment variables.

    Values are resolved on every call so a long-running API process picks up
    changes without a restart, and tests can monkeypatch the environment.
    """
    workers = _read_limit_from_env("SCRAPII_SUBDOMAIN_WORKERS", HARD_MAX_SUBDOMAIN_WORKERS, 1)
    return Settings(
        max_scan_bytes=_read_limit_from_env("SCRAPII_MAX_SCAN_BYTES", DEFAULT_MAX_SCAN_BYTES, 10_000),
        max_line_length=_read_limit_from_env("SCRAPII_MAX_LINE_LENGTH", DEFAULT_MAX_LINE_LENGTH, 200),
        pass_time_budget=_read_seconds_from_env(
            "SCRAPII_PASS_TIME_BUDGET", DEFAULT_PASS_TIME_BUDGET, 0.5
        ),
        evidence_display_limit=_read_limit_from_env(
            "SCRAPII_EVIDENCE_DISPLAY_LIMIT", DEFAULT_EVIDENCE_DISPLAY_LIMIT, 1
        ),
        max_subdomains=_read_limit_from_env("SCRAPII_MAX_SUBDOMAINS", DEFAULT_MAX_SUBDOMAINS, 1),
        subdomain_workers=min(workers, HARD_MAX_SUBDOMAIN_WORKERS),
        timeout=_read_limit_from_env("SCRAPII_TIMEOUT", DEFAULT_TIMEOUT, 2),
    )
