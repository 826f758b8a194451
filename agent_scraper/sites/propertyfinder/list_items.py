from __future__ import annotations

import logging
import re
from typing import Any, Dict, List, Optional, Sequence, Tuple

from bs4 import BeautifulSoup
from bs4.element import Tag

from agent_scraper.core.normalizer import clean_text, normalize_agent, to_email, to_phone
from agent_scraper.core.schema import AgentRecord

from .aliases import AGENT_RULES

logger = logging.getLogger(__name__)

AGENT_LINK = 'a[href*="/agent/"], a[href*="/broker/"]'

# (tier name, card selectors), most stable first
CARD_TIERS: Tuple[Tuple[str, Sequence[str]], ...] = (
    (
        "data-testid",
        (
            'article[data-testid*="agent"]',
            'div[data-testid*="agent"]',
            '[data-testid*="broker"]',
            '[data-testid*="agent-card"]',
        ),
    ),
    (
        "class-name",
        (
            'article[class*="agent"]',
            'div[class*="AgentCard"]',
            'div[class*="agent-card"]',
            'div[class*="broker-card"]',
            '[class*="BrokerCard"]',
        ),
    ),
    ("semantic", ("article", 'div[class*="card"]')),
)

NAME_SEL = '[data-testid*="name"], [class*="name"], h2, h3, h4'
EMAIL_SEL = '[data-testid*="email"], [class*="email"], a[href^="mailto:"]'
PHONE_SEL = '[data-testid*="phone"], [class*="phone"], a[href^="tel:"]'
WHATSAPP_SEL = '[data-testid*="whatsapp"], [class*="whatsapp"]'
WHATSAPP_LINK = 'a[href*="wa.me"], a[href*="whatsapp"]'
COMPANY_SEL = '[data-testid*="company"], [class*="company"], [class*="broker"], [class*="agency"]'
LOCATION_SEL = '[data-testid*="location"], [class*="location"], [class*="area"]'
LISTINGS_SEL = '[data-testid*="listing"], [class*="listing"], [class*="property"]'
RATING_SEL = '[data-testid*="rating"], [class*="rating"], [class*="stars"]'


def text_of(node: Tag, selector: str) -> Optional[str]:
    el = node.select_one(selector)
    return clean_text(el.get_text(" ", strip=True)) if el else None


def attr_of(node: Tag, selector: str, attr: str) -> Optional[str]:
    el = node.select_one(selector)
    if not el:
        return None
    v = el.get(attr)
    if isinstance(v, list):
        v = " ".join(v)
    return clean_text(v)


def href_value(node: Tag, prefix: str) -> Optional[str]:
    """mailto:/tel: link payload without the scheme and query."""
    href = attr_of(node, f'a[href^="{prefix}"]', "href")
    if not href:
        return None
    return clean_text(href.split(prefix, 1)[1].split("?", 1)[0])


def whatsapp_digits(node: Tag) -> Optional[str]:
    href = attr_of(node, WHATSAPP_LINK, "href")
    if not href:
        return None
    m = re.search(r"\d+", href)
    return m.group(0) if m else None


def image_src(node: Tag, selector: str = "img") -> Optional[str]:
    img = node.select_one(selector)
    if not img:
        return None
    for attr in ("src", "data-src", "data-lazy-src"):
        v = (img.get(attr) or "").strip()
        if v and not v.startswith("data:image"):
            return v
    return None


def raw_from_card(card: Tag) -> Optional[Dict[str, Any]]:
    """
    DOM card -> raw shape keyed by the same aliases the structured payload
    uses, so one alias table serves both. None when the card has no agent
    link or no usable name.
    """
    href = attr_of(card, AGENT_LINK, "href")
    if not href:
        return None

    name = text_of(card, NAME_SEL)
    if not name or len(name) < 2:
        return None

    # visible text first, link payload as the lower-ranked alias;
    # button labels like "Call" or "Email" carry no value and are dropped
    return {
        "name": name,
        "url": href,
        "email": to_email(text_of(card, EMAIL_SEL)),
        "email_address": href_value(card, "mailto:"),
        "phone": to_phone(text_of(card, PHONE_SEL)),
        "telephone": href_value(card, "tel:"),
        "whatsapp": to_phone(text_of(card, WHATSAPP_SEL)),
        "whatsapp_number": whatsapp_digits(card),
        "agency_name": text_of(card, COMPANY_SEL),
        "image": image_src(card),
        "location": text_of(card, LOCATION_SEL),
        "total_listings": text_of(card, LISTINGS_SEL),
        "rating": text_of(card, RATING_SEL),
    }


def parse_card(card: Tag) -> Optional[AgentRecord]:
    try:
        raw = raw_from_card(card)
    except (AttributeError, TypeError, ValueError) as e:
        logger.debug("[CARDS] Failed to extract agent card: %s", e)
        return None
    if not raw:
        return None
    rec = normalize_agent(raw, AGENT_RULES)
    # the link must resolve to an absolute profile URL
    if not rec or not rec.get("profileUrl"):
        return None
    return rec


def _tier_cards(soup: BeautifulSoup, tier: str, selectors: Sequence[str]) -> List[Tag]:
    cards = soup.select(", ".join(selectors))
    if tier == "semantic":
        cards = [c for c in cards if c.select_one(AGENT_LINK)]
    return cards


def extract_agent_cards(html_or_soup: str | BeautifulSoup) -> List[AgentRecord]:
    """
    DOM fallback. Tiers are tried in CARD_TIERS order; the first tier that
    yields at least one parseable card is returned and the rest are skipped.
    Non-agent cards (promos, ads) are dropped silently.
    """
    soup = html_or_soup if isinstance(html_or_soup, BeautifulSoup) else BeautifulSoup(html_or_soup or "", "lxml")
    logger.debug("[CARDS] Attempting HTML card extraction (fallback mode)")

    for tier, selectors in CARD_TIERS:
        agents: List[AgentRecord] = []
        for card in _tier_cards(soup, tier, selectors):
            rec = parse_card(card)
            if rec:
                agents.append(rec)
        if agents:
            logger.info("[CARDS] HTML extraction (%s): %s agents", tier, len(agents))
            return agents
        logger.debug("[CARDS] tier %s: no agents", tier)

    logger.warning("[CARDS] No agent cards found via HTML parsing")
    return []
