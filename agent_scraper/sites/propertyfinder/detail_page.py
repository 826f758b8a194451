from __future__ import annotations

import logging
import re
from typing import Any, Callable, Dict, List, Optional

from bs4 import BeautifulSoup

from agent_scraper.core.http import FetchError
from agent_scraper.core.normalizer import clean_text, is_present, normalize_agent, to_email, to_phone
from agent_scraper.core.schema import AgentRecord, ensure_agent_block
from agent_scraper.core.urls import canonical_profile_url

from .aliases import AGENT_RULES
from .list_items import attr_of, href_value, image_src, text_of, whatsapp_digits
from .structured import PROFILE_AGENT_PATHS, extract_next_data, find_json_ld_agent

logger = logging.getLogger(__name__)

_TRAILING_ID_RE = re.compile(r"-(\d+)$")


def _meta(soup: BeautifulSoup, selector: str) -> Optional[str]:
    return attr_of(soup, selector, "content")


def _all_texts(soup: BeautifulSoup, selector: str) -> Optional[List[str]]:
    out: List[str] = []
    for el in soup.select(selector):
        t = clean_text(el.get_text(" ", strip=True))
        if t and t not in out:
            out.append(t)
    return out or None


def _description(soup: BeautifulSoup) -> Optional[str]:
    sel = '[data-testid*="bio"], [data-testid*="description"], [class*="bio"], [class*="about"]'
    parts = _all_texts(soup, sel)
    if parts:
        return clean_text(" ".join(parts))
    return _meta(soup, 'meta[name="description"]')


def raw_from_detail_html(soup: BeautifulSoup) -> Dict[str, Any]:
    """
    Whole-page DOM heuristics for an agent profile page. Visible text ranks
    above link payloads and <meta> fallbacks. Contact labels without a value
    ("Call", "Email") are dropped here.
    """
    return {
        "name": text_of(soup, 'h1, [data-testid*="agent-name"], [class*="agent-name"]'),
        "email": to_email(text_of(soup, '[data-testid*="email"], [class*="email"], a[href^="mailto:"]')),
        "email_address": href_value(soup, "mailto:"),
        "phone": to_phone(text_of(soup, '[data-testid*="phone"], [class*="phone"], a[href^="tel:"]')),
        "mobile": href_value(soup, "tel:"),
        "telephone": _meta(soup, 'meta[itemprop="telephone"]'),
        "whatsapp": to_phone(text_of(soup, '[data-testid*="whatsapp"], [class*="whatsapp"]')),
        "whatsapp_number": whatsapp_digits(soup),
        "agency_name": text_of(
            soup, '[data-testid*="company"], [class*="company"], [class*="broker"], [class*="agency"]'
        ),
        "agency": _meta(soup, 'meta[property="og:site_name"]'),
        "city": text_of(soup, '[data-testid*="location"], [class*="location"], [class*="area"]'),
        "region": _meta(soup, 'meta[itemprop="address"]'),
        "image": image_src(soup, 'img[alt*="agent"], img[class*="profile"], img[class*="avatar"]'),
        "picture": _meta(soup, 'meta[property="og:image"]'),
        "total_listings": text_of(
            soup, '[data-testid*="listing"], [class*="listing-count"], [class*="property-count"]'
        ),
        "description": _description(soup),
        "languages": _all_texts(soup, '[data-testid*="language"], [class*="language"]'),
        "specializations": _all_texts(
            soup, '[data-testid*="specialization"], [class*="specialization"], [class*="expertise"]'
        ),
        "rating": text_of(soup, '[data-testid*="rating"], [class*="rating"]'),
        "reviews_count": text_of(soup, '[data-testid*="review"], [class*="review-count"]'),
        "experience": text_of(soup, '[data-testid*="experience"], [class*="experience"], [class*="years"]'),
        "license": text_of(
            soup, '[data-testid*="permit"], [data-testid*="license"], [class*="permit"], [class*="rera"]'
        ),
    }


def extract_detail_from_html(soup: BeautifulSoup, url: str) -> Dict[str, Any]:
    raw = raw_from_detail_html(soup)
    raw["url"] = url
    return normalize_agent(raw, AGENT_RULES) or {}


def pick_page_owner(agents: List[AgentRecord], profile_url: str) -> AgentRecord:
    """The entry whose profile URL or trailing id matches the page; else the first."""
    for a in agents:
        if a.get("profileUrl") == profile_url:
            return a
    m = _TRAILING_ID_RE.search(profile_url)
    if m:
        for a in agents:
            if a.get("agentId") == m.group(1):
                return a
    return agents[0]


def parse_detail_page(html: str, url: str) -> Optional[AgentRecord]:
    """
    Profile page -> one record tagged with `url`.
      1) embedded state (the agent owning `url`, else the first one)
      2) DOM heuristics, with JSON-LD values layered on top
    None when nothing usable was found.
    """
    profile_url = canonical_profile_url(url) or url
    soup = BeautifulSoup(html or "", "lxml")

    agents = extract_next_data(soup, PROFILE_AGENT_PATHS)
    if agents:
        logger.debug("[DETAIL] extracted from __NEXT_DATA__: %s", profile_url)
        rec = dict(pick_page_owner(agents, profile_url))
        rec["profileUrl"] = profile_url
        return ensure_agent_block(rec)

    rec: Dict[str, Any] = dict(extract_detail_from_html(soup, profile_url))

    ld_raw = find_json_ld_agent(soup)
    ld = normalize_agent(ld_raw, AGENT_RULES) if ld_raw else None
    for k, v in (ld or {}).items():
        if v is not None:
            rec[k] = v

    rec["profileUrl"] = profile_url
    if not any(is_present(v) for k, v in rec.items() if k != "profileUrl"):
        logger.debug("[DETAIL] nothing extracted from %s", profile_url)
        return None
    return ensure_agent_block(rec)


def fetch_detail(
    fetch: Callable[..., str],
    url: str,
) -> Optional[AgentRecord]:
    """
    Fetch + parse one profile page. Fetch and extraction failures are logged
    and turned into None so the caller keeps the listing-only record.
    """
    try:
        html = fetch(url, referer=url)
    except FetchError as e:
        logger.warning("[DETAIL] Detail fetch failed, using listing data: %s", e)
        return None
    except Exception as e:
        logger.warning("[DETAIL] Detail fetch failed, using listing data: %s: %s", type(e).__name__, e)
        return None

    try:
        return parse_detail_page(html, url)
    except Exception as e:
        logger.warning("[DETAIL] Detail extraction failed for %s: %s: %s", url, type(e).__name__, e)
        return None
