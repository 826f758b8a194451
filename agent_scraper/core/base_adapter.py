from __future__ import annotations

from abc import ABC, abstractmethod
from typing import List, Optional

from .schema import AgentRecord


class BaseAdapter(ABC):
    source_key: str

    @abstractmethod
    def build_page_url(self, page: int) -> str:
        ...

    @abstractmethod
    def fetch_list_page(self, url: str, referer: Optional[str] = None) -> str:
        """Return page HTML; raise FetchError when it cannot be fetched."""
        ...

    @abstractmethod
    def extract_listing(self, html: str, page_url: str) -> List[AgentRecord]:
        """Normalized agent records found on one search-results page (may be empty)."""
        ...

    @abstractmethod
    def fetch_detail(self, profile_url: str) -> Optional[AgentRecord]:
        """Best-effort detail record for one agent; None instead of raising."""
        ...

    def close(self) -> None:
        pass
