from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import List, Optional

from bs4 import BeautifulSoup

from agent_scraper.core.base_adapter import BaseAdapter
from agent_scraper.core.config import RunConfig
from agent_scraper.core.http import PageFetcher
from agent_scraper.core.schema import AgentRecord
from agent_scraper.core.urls import build_search_url

from .detail_page import fetch_detail
from .list_items import extract_agent_cards
from .structured import extract_structured

logger = logging.getLogger(__name__)


class PropertyFinderAdapter(BaseAdapter):
    source_key = "propertyfinder"

    def __init__(self, config: RunConfig, fetcher: Optional[PageFetcher] = None):
        self.config = config
        self.scrape_run_id = datetime.now(timezone.utc).isoformat()
        self.fetcher = fetcher or PageFetcher(
            proxies=config.proxies,
            timeout=config.request_timeout,
            retries=config.retries,
            delay_range=config.delay_range,
        )

    def build_page_url(self, page: int) -> str:
        c = self.config
        return build_search_url(
            start_url=c.start_url,
            location=c.location,
            language=c.language,
            specialization=c.specialization,
            page=page,
        )

    def fetch_list_page(self, url: str, referer: Optional[str] = None) -> str:
        return self.fetcher.fetch(url, referer=referer)

    def extract_listing(self, html: str, page_url: str) -> List[AgentRecord]:
        soup = BeautifulSoup(html or "", "lxml")

        agents = extract_structured(soup)
        if agents:
            return agents

        logger.debug("[PF] structured tiers missed on %s, falling back to HTML parsing", page_url)
        return extract_agent_cards(soup)

    def fetch_detail(self, profile_url: str) -> Optional[AgentRecord]:
        return fetch_detail(self.fetcher.fetch, profile_url)

    def close(self) -> None:
        self.fetcher.close()
