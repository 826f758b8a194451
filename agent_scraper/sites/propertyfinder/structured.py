from __future__ import annotations

import logging
import re
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

import orjson
from bs4 import BeautifulSoup

from agent_scraper.core.normalizer import dig, normalize_agent
from agent_scraper.core.schema import AgentRecord

from .aliases import AGENT_RULES

logger = logging.getLogger(__name__)

NEXT_DATA_SELECTOR = "script#__NEXT_DATA__"
JSON_LD_SELECTOR = 'script[type="application/ld+json"]'

PAGE_PROPS: Tuple[str, ...] = ("props", "pageProps")

# probed in order under props.pageProps; first non-empty list wins
AGENT_LIST_PATHS: Tuple[Tuple[str, ...], ...] = (
    ("brokers",),
    ("agents",),
    ("searchResult", "brokers"),
    ("searchResult", "agents"),
    ("data", "brokers"),
    ("data", "agents"),
    ("initialData", "brokers"),
    ("initialData", "agents"),
    ("serverState", "brokers"),
    ("serverState", "agents"),
    # detail page: a single agent, promoted to [agent]
    ("broker",),
    ("agent",),
)

# profile page: the page owner before any "similar agents" list
PROFILE_AGENT_PATHS: Tuple[Tuple[str, ...], ...] = (("agent",),) + tuple(p for p in AGENT_LIST_PATHS if p != ("agent",))

AGENT_TYPE_RE = re.compile(r"Person|RealEstateAgent|Agent|Broker", re.I)


def _as_agent_list(v: Any) -> Optional[List[Mapping[str, Any]]]:
    if isinstance(v, list):
        items = [x for x in v if isinstance(x, Mapping)]
        return items or None
    if isinstance(v, Mapping) and v:
        return [v]
    return None


def find_agent_list(
    page_props: Mapping[str, Any],
    paths: Sequence[Tuple[str, ...]] = AGENT_LIST_PATHS,
) -> Tuple[Optional[Tuple[str, ...]], Optional[List[Mapping[str, Any]]]]:
    for path in paths:
        found = _as_agent_list(dig(page_props, path))
        if found:
            return path, found
    return None, None


def _soup(html_or_soup: str | BeautifulSoup) -> BeautifulSoup:
    if isinstance(html_or_soup, BeautifulSoup):
        return html_or_soup
    return BeautifulSoup(html_or_soup or "", "lxml")


def load_next_data(soup: BeautifulSoup) -> Optional[Dict[str, Any]]:
    tag = soup.select_one(NEXT_DATA_SELECTOR)
    if not tag:
        logger.debug("[STRUCT] __NEXT_DATA__ script tag not found")
        return None
    # NavigableString is a str subclass; orjson only takes exact str
    payload = str(tag.string or tag.get_text() or "")
    if not payload.strip():
        return None
    try:
        data = orjson.loads(payload)
    except orjson.JSONDecodeError as e:
        logger.debug("[STRUCT] __NEXT_DATA__ is not valid JSON: %s", e)
        return None
    return data if isinstance(data, dict) else None


def extract_next_data(
    html_or_soup: str | BeautifulSoup,
    paths: Sequence[Tuple[str, ...]] = AGENT_LIST_PATHS,
) -> List[AgentRecord]:
    """
    Tier 1: agents from the embedded application state.
    [] means "no usable state here", never an error.
    """
    soup = _soup(html_or_soup)
    data = load_next_data(soup)
    if not data:
        return []

    page_props = dig(data, PAGE_PROPS)
    if not isinstance(page_props, Mapping):
        logger.debug("[STRUCT] No pageProps in __NEXT_DATA__")
        return []

    path, raw_agents = find_agent_list(page_props, paths)
    if not raw_agents:
        logger.debug(
            "[STRUCT] No agents in __NEXT_DATA__ (keys: %s)",
            ", ".join(list(page_props.keys())[:10]),
        )
        return []

    out: List[AgentRecord] = []
    for raw in raw_agents:
        rec = normalize_agent(raw, AGENT_RULES)
        if rec:
            out.append(rec)

    logger.info("[STRUCT] __NEXT_DATA__ %s: %s agents", ".".join(path or ()), len(out))
    return out


def _type_matches(t: Any) -> bool:
    if isinstance(t, list):
        return any(_type_matches(x) for x in t)
    return isinstance(t, str) and bool(AGENT_TYPE_RE.search(t))


def _ld_candidates(parsed: Any) -> List[Mapping[str, Any]]:
    if isinstance(parsed, list):
        items = parsed
    elif isinstance(parsed, Mapping) and isinstance(parsed.get("@graph"), list):
        items = parsed["@graph"]
    else:
        items = [parsed]
    return [x for x in items if isinstance(x, Mapping)]


def find_json_ld_agent(html_or_soup: str | BeautifulSoup) -> Optional[Mapping[str, Any]]:
    """First JSON-LD entity typed as a person / agent / broker. Bad blocks are skipped."""
    soup = _soup(html_or_soup)
    for script in soup.select(JSON_LD_SELECTOR):
        content = str(script.string or script.get_text() or "")
        if not content.strip():
            continue
        try:
            parsed = orjson.loads(content)
        except orjson.JSONDecodeError:
            logger.debug("[STRUCT] skipping malformed JSON-LD block")
            continue

        for item in _ld_candidates(parsed):
            if _type_matches(item.get("@type")):
                logger.debug("[STRUCT] Found JSON-LD agent data (%s)", item.get("@type"))
                return item
    return None


def extract_json_ld(html_or_soup: str | BeautifulSoup) -> List[AgentRecord]:
    """Tier 2: one agent described by a schema.org block."""
    raw = find_json_ld_agent(html_or_soup)
    if not raw:
        return []
    rec = normalize_agent(raw, AGENT_RULES)
    return [rec] if rec else []


def extract_structured(html_or_soup: str | BeautifulSoup) -> List[AgentRecord]:
    """Embedded state first, JSON-LD second; first non-empty tier wins."""
    soup = _soup(html_or_soup)
    agents = extract_next_data(soup)
    if agents:
        return agents
    logger.debug("[STRUCT] __NEXT_DATA__ miss, trying JSON-LD")
    return extract_json_ld(soup)
