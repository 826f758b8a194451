from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any, Callable, Dict, List, Optional, Set

from .schema import AgentRecord

logger = logging.getLogger(__name__)


class CrawlStatus(StrEnum):
    RUNNING = "running"
    STOPPING_TARGET_REACHED = "stopping_target_reached"
    STOPPING_EMPTY_STREAK = "stopping_empty_streak"
    STOPPING_PAGE_LIMIT = "stopping_page_limit"
    DONE = "done"


STOPPING_STATES = frozenset(
    {
        CrawlStatus.STOPPING_TARGET_REACHED,
        CrawlStatus.STOPPING_EMPTY_STREAK,
        CrawlStatus.STOPPING_PAGE_LIMIT,
    }
)

TRANSITIONS: Dict[CrawlStatus, frozenset] = {
    CrawlStatus.RUNNING: STOPPING_STATES | {CrawlStatus.DONE},
    CrawlStatus.STOPPING_TARGET_REACHED: frozenset({CrawlStatus.DONE}),
    CrawlStatus.STOPPING_EMPTY_STREAK: frozenset({CrawlStatus.DONE}),
    CrawlStatus.STOPPING_PAGE_LIMIT: frozenset({CrawlStatus.DONE}),
    CrawlStatus.DONE: frozenset(),
}


class InvalidTransition(RuntimeError):
    pass


@dataclass
class CrawlState:
    """
    Process-scoped crawl bookkeeping for one run.

    seen_urls / enqueued_pages are the only shared mutable collections and
    are touched only through try_claim / try_enqueue, which check-and-insert
    under one lock.
    """

    seen_urls: Set[str] = field(default_factory=set)
    enqueued_pages: Set[str] = field(default_factory=set)
    pages_processed: int = 0
    agents_found: int = 0
    total_saved: int = 0
    in_flight: int = 0
    empty_page_streak: int = 0
    detail_fetched: int = 0
    detail_failed: int = 0
    errors: int = 0
    completeness: List[int] = field(default_factory=list)
    lock: threading.RLock = field(default_factory=threading.RLock, repr=False, compare=False)

    def try_claim(self, profile_url: str) -> bool:
        with self.lock:
            if not profile_url or profile_url in self.seen_urls:
                return False
            self.seen_urls.add(profile_url)
            return True

    def try_enqueue(self, page_url: str) -> bool:
        with self.lock:
            if not page_url or page_url in self.enqueued_pages:
                return False
            self.enqueued_pages.add(page_url)
            return True

    def avg_completeness(self) -> int:
        with self.lock:
            if not self.completeness:
                return 0
            return int(sum(self.completeness) / len(self.completeness) + 0.5)


class CrawlController:
    """
    Page-by-page crawl state machine.

      RUNNING --target hit--------> STOPPING_TARGET_REACHED --+
      RUNNING --2 empty pages-----> STOPPING_EMPTY_STREAK ----+--> DONE
      RUNNING --max_pages hit-----> STOPPING_PAGE_LIMIT ------+
      RUNNING --queue drained-----------------------------------> DONE

    The scheduler polls `is_stopping` before starting any page or detail
    fetch; work already in flight is allowed to finish and is still counted.
    """

    def __init__(
        self,
        results_wanted: int,
        max_pages: int,
        empty_streak_limit: int = 2,
        state: Optional[CrawlState] = None,
    ):
        if results_wanted < 1:
            raise ValueError("results_wanted must be >= 1")
        if max_pages < 1:
            raise ValueError("max_pages must be >= 1")

        self.results_wanted = results_wanted
        self.max_pages = max_pages
        self.empty_streak_limit = max(int(empty_streak_limit), 1)
        self.state = state or CrawlState()
        self._status = CrawlStatus.RUNNING
        self.stop_reason: Optional[CrawlStatus] = None

    # ---------------- status

    @property
    def status(self) -> CrawlStatus:
        return self._status

    @property
    def is_stopping(self) -> bool:
        return self._status in STOPPING_STATES or self._status == CrawlStatus.DONE

    def _transition(self, new: CrawlStatus) -> None:
        with self.state.lock:
            cur = self._status
            if new == cur:
                return
            if cur in STOPPING_STATES and new in STOPPING_STATES:
                # first stop reason wins
                logger.debug("[CRAWL] ignoring %s, already %s", new, cur)
                return
            if new not in TRANSITIONS[cur]:
                raise InvalidTransition(f"{cur} -> {new}")
            logger.info("[CRAWL] %s -> %s", cur, new)
            if new in STOPPING_STATES:
                self.stop_reason = new
            self._status = new

    # ---------------- pages

    def start(self, first_page_url: str) -> bool:
        return self.state.try_enqueue(first_page_url)

    def on_page(self, page_no: int, records: List[AgentRecord]) -> bool:
        """
        Account for one processed page. False means the page yielded nothing
        and its records (none) need no processing.
        """
        with self.state.lock:
            self.state.pages_processed += 1

            if not records:
                self.state.empty_page_streak += 1
                logger.warning(
                    "[CRAWL] No agents found on page %s (streak=%s)", page_no, self.state.empty_page_streak
                )
                if self.state.empty_page_streak >= self.empty_streak_limit:
                    logger.info("[CRAWL] %s consecutive empty pages. Stop.", self.state.empty_page_streak)
                    self._transition(CrawlStatus.STOPPING_EMPTY_STREAK)
                return False

            self.state.empty_page_streak = 0
            self.state.agents_found += len(records)
            logger.info(
                "[CRAWL] Found %s agents on page %s (total: %s)", len(records), page_no, self.state.agents_found
            )
            return True

    def next_page(self, page_no: int, build_url: Callable[[int], str]) -> Optional[str]:
        """URL of the page after `page_no`, or None when nothing should be enqueued."""
        with self.state.lock:
            if self.is_stopping:
                return None
            if self.state.total_saved >= self.results_wanted:
                self._transition(CrawlStatus.STOPPING_TARGET_REACHED)
                return None
            if self.state.pages_processed >= self.max_pages:
                logger.info("[CRAWL] Page limit %s reached. Stop.", self.max_pages)
                self._transition(CrawlStatus.STOPPING_PAGE_LIMIT)
                return None

            url = build_url(page_no + 1)
            if not self.state.try_enqueue(url):
                logger.info("[CRAWL] Page %s repeats an enqueued URL. Not queued.", page_no + 1)
                return None
            logger.info("[CRAWL] Queued page %s", page_no + 1)
            return url

    # ---------------- records

    def admit(self, record: AgentRecord) -> bool:
        """
        Reserve an output slot for `record`. Rejected when stopping, when the
        target is already covered by saved + in-flight records, or when its
        profile URL was seen before.
        """
        url = (record or {}).get("profileUrl")
        with self.state.lock:
            if self.is_stopping or not url:
                return False
            if self.state.total_saved + self.state.in_flight >= self.results_wanted:
                return False
            if not self.state.try_claim(url):
                return False
            self.state.in_flight += 1
            return True

    def release(self) -> None:
        """Give back a reserved slot whose record was not emitted."""
        with self.state.lock:
            self.state.in_flight = max(self.state.in_flight - 1, 0)

    def record_saved(self, completeness_pct: int) -> None:
        with self.state.lock:
            self.state.in_flight = max(self.state.in_flight - 1, 0)
            self.state.total_saved += 1
            self.state.completeness.append(int(completeness_pct))
            if self.state.total_saved >= self.results_wanted and self._status == CrawlStatus.RUNNING:
                logger.info("[CRAWL] Target reached: %s/%s", self.state.total_saved, self.results_wanted)
                self._transition(CrawlStatus.STOPPING_TARGET_REACHED)

    def record_detail(self, ok: bool) -> None:
        with self.state.lock:
            if ok:
                self.state.detail_fetched += 1
            else:
                self.state.detail_failed += 1

    def record_error(self) -> None:
        with self.state.lock:
            self.state.errors += 1

    def finish(self) -> None:
        self._transition(CrawlStatus.DONE)

    def summary(self) -> Dict[str, Any]:
        with self.state.lock:
            return {
                "pagesProcessed": self.state.pages_processed,
                "agentsFound": self.state.agents_found,
                "totalSaved": self.state.total_saved,
                "avgCompleteness": self.state.avg_completeness(),
                "target": self.results_wanted,
                "detailFetched": self.state.detail_fetched,
                "detailFailed": self.state.detail_failed,
                "errors": self.state.errors,
                "status": str(self._status.value),
                "stopReason": self.stop_reason.value if self.stop_reason else None,
            }
