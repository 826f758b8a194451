from __future__ import annotations

import logging
import random
import re
import time
from typing import Dict, Optional, Tuple

import requests

from .urls import BASE, SEARCH_PATH

logger = logging.getLogger(__name__)

HEADERS_BASE = {
    "accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/avif,image/webp,*/*;q=0.8",
    "accept-language": "en-US,en;q=0.9,ar;q=0.8",
    "cache-control": "max-age=0",
    "upgrade-insecure-requests": "1",
    "dnt": "1",
}

USER_AGENTS = [
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/122.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/121.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/121.0 Safari/537.36",
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/121.0 Safari/537.36",
]

BLOCKED_STATUS = {403, 429}

_CHALLENGE_PATTERNS = (
    "just a moment",
    "checking your browser",
    "attention required",
    "cf-challenge",
    "cf-turnstile",
    "/cdn-cgi/challenge-platform",
    "verify you are human",
    "are you a robot",
)


class FetchError(Exception):
    """Page could not be fetched (network, non-2xx, blocked or challenge page)."""

    def __init__(self, url: str, reason: str, status: Optional[int] = None):
        super().__init__(f"{reason} ({url})")
        self.url = url
        self.reason = reason
        self.status = status


def looks_like_challenge(html: str) -> bool:
    if not html:
        return False
    low = html[:20000].lower()
    if any(p in low for p in _CHALLENGE_PATTERNS):
        return True
    return bool(re.search(r"cf-chl|cf-ray", low))


class PageFetcher:
    """
    requests.Session wrapper used by the adapters.
    Retries with linear backoff + jitter, raises FetchError when out of attempts.
    """

    def __init__(
        self,
        proxies: Optional[Dict[str, str]] = None,
        timeout: float = 30,
        retries: int = 2,
        backoff: float = 2.0,
        jitter: float = 0.7,
        delay_range: Optional[Tuple[float, float]] = None,
        session: Optional[requests.Session] = None,
    ):
        self.sess = session or requests.Session()
        if proxies:
            self.sess.proxies.update(proxies)
        self.timeout = timeout
        self.retries = max(int(retries), 0)
        self.backoff = backoff
        self.jitter = jitter
        self.delay_range = delay_range

    def _headers(self, referer: Optional[str]) -> Dict[str, str]:
        headers = dict(HEADERS_BASE)
        headers["user-agent"] = random.choice(USER_AGENTS)
        headers["referer"] = referer or f"{BASE}{SEARCH_PATH}"
        return headers

    def fetch(self, url: str, referer: Optional[str] = None) -> str:
        if self.delay_range:
            time.sleep(random.uniform(*self.delay_range))

        attempts = self.retries + 1
        attempt = 0

        while True:
            attempt += 1
            try:
                resp = self.sess.get(url, headers=self._headers(referer), timeout=self.timeout)
            except requests.RequestException as e:
                last_err = FetchError(url, f"{type(e).__name__}: {e}")
            else:
                if resp.status_code in BLOCKED_STATUS:
                    raise FetchError(url, f"blocked_status_{resp.status_code}", resp.status_code)
                if resp.status_code >= 400:
                    last_err = FetchError(url, f"http_{resp.status_code}", resp.status_code)
                else:
                    html = resp.text or ""
                    if looks_like_challenge(html):
                        raise FetchError(url, "protection_page", resp.status_code)
                    return html

            if attempt >= attempts:
                raise last_err

            sleep_s = (self.backoff * attempt) + random.uniform(0, self.jitter)
            logger.debug("[HTTP] retry %s/%s in %.1fs: %s", attempt, self.retries, sleep_s, last_err)
            time.sleep(sleep_s)

    def close(self) -> None:
        self.sess.close()
