"""
HTTP Source
Shared plumbing for sources reached through an ordered chain of endpoints
(mirrors, optionally wrapped by CORS-style proxy prefixes).
"""
from __future__ import annotations

import logging
import time
from typing import List, Optional, Tuple
from urllib.parse import quote

import requests

from ..models.search_result import SearchQuery, TorrentRecord
from .base import BaseSource

logger = logging.getLogger(__name__)

BROWSER_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0 Safari/537.36"
)

BLOCKED_SIGNALS = (
    "just a moment",
    "cf-browser-verification",
    "ddos protection",
    "fastpanel",
)

# The chain must finish before the aggregator stops waiting for it.
CHAIN_MARGIN_SECONDS = 0.5
MIN_ATTEMPT_SECONDS = 0.05


def dedupe_urls(urls) -> List[str]:
    deduped: List[str] = []
    for raw in urls:
        url = str(raw or "").strip().rstrip("/")
        if url and url not in deduped:
            deduped.append(url)
    return deduped


class ChainedHTTPSource(BaseSource):
    """
    Base for sources that try several endpoints in order.

    Every configured mirror is tried in declared order. When proxy prefixes are
    configured, each mirror URL is tried through each proxy (an empty prefix
    means a direct request). The first successful response wins; when all
    candidates fail the source fails closed.

    The whole chain shares one time budget derived from search_timeout_seconds.
    Each attempt gets at most request_timeout_seconds and at most an even share
    of what is left, so a hanging first mirror cannot starve the later ones and
    no request outlives the search that started it.
    """

    MIRRORS: List[str] = []
    mirror_setting = ""
    # HTML sites often answer 200 with an anti-bot interstitial.
    check_blocked = False
    accept = "text/html,application/xhtml+xml,application/xml"

    def __init__(self, settings=None):
        self.settings = settings
        self.mirrors = list(self.MIRRORS)
        self.proxies: List[str] = []
        self.timeout_seconds = 6.0
        self.budget_seconds = 8.0 - CHAIN_MARGIN_SECONDS
        self.last_error = ""
        self.session = requests.Session()
        self.session.headers.update({
            "User-Agent": BROWSER_USER_AGENT,
            "Accept": self.accept,
            "Accept-Language": "en-US,en;q=0.9",
        })
        self.reload_from_settings()

    def reload_from_settings(self):
        custom_mirrors = []
        proxies = []
        timeout = 6.0
        search_timeout = 8.0
        if self.settings is not None:
            if self.mirror_setting:
                custom_mirrors = list(self.settings.get(self.mirror_setting, []) or [])
            proxies = list(self.settings.get("proxy_prefixes", []) or [])
            timeout = float(self.settings.get("request_timeout_seconds", 6.0) or 6.0)
            search_timeout = float(self.settings.get("search_timeout_seconds", 8.0) or 8.0)
        self.mirrors = dedupe_urls(custom_mirrors + self.MIRRORS)
        self.proxies = [str(p or "").strip() for p in proxies]
        self.timeout_seconds = max(1.0, timeout)
        self.budget_seconds = max(0.5, search_timeout - CHAIN_MARGIN_SECONDS)

    def search(self, query: SearchQuery) -> List[TorrentRecord]:
        records, error = self.search_with_error(query)
        self.last_error = error
        return records

    def candidate_urls(self, path: str) -> List[str]:
        """Expand a mirror-relative path into the ordered list of URLs to try."""
        urls: List[str] = []
        for mirror in self.mirrors:
            target = f"{mirror}{path}"
            if not self.proxies:
                urls.append(target)
                continue
            for proxy in self.proxies:
                url = f"{proxy}{quote(target, safe='')}" if proxy else target
                if url not in urls:
                    urls.append(url)
        return urls

    def _fetch_first_ok(self, path: str) -> Tuple[Optional[requests.Response], str]:
        """
        GET each candidate in turn within the chain budget.

        Returns (response, "") for the first healthy response, else (None, reason).
        """
        candidates = self.candidate_urls(path)
        if not candidates:
            return None, f"No {self.name} endpoints configured."

        deadline = time.monotonic() + self.budget_seconds
        last_error = ""
        for index, url in enumerate(candidates):
            remaining = deadline - time.monotonic()
            if remaining <= MIN_ATTEMPT_SECONDS:
                skipped = len(candidates) - index
                last_error = f"{self.budget_seconds:g}s budget spent; {skipped} endpoint(s) not tried ({last_error})"
                break
            timeout = min(self.timeout_seconds, remaining / (len(candidates) - index))
            try:
                response = self.session.get(url, timeout=timeout)
                response.raise_for_status()
                if self.check_blocked and self._looks_blocked(response.text):
                    raise requests.RequestException("anti-bot challenge page")
                return response, ""
            except requests.RequestException as exc:
                last_error = f"{url}: {exc}"
                logger.warning("%s endpoint failed (%s): %s", self.name, url, exc)

        return None, f"All {self.name} endpoints failed: {last_error}"

    @staticmethod
    def _looks_blocked(html: str) -> bool:
        low = (html or "")[:4000].lower()
        return any(sig in low for sig in BLOCKED_SIGNALS)
