# agent_scraper/core/runner.py
from __future__ import annotations

import logging
import random
import time
from collections import deque
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Deque, Dict, Optional, Tuple

from agent_scraper.core.base_adapter import BaseAdapter
from agent_scraper.core.config import RunConfig
from agent_scraper.core.http import FetchError
from agent_scraper.core.jsonl import write_json
from agent_scraper.core.reconciler import Completeness, compute_completeness, merge_listing_with_detail
from agent_scraper.core.schema import AgentRecord, ensure_agent_block
from agent_scraper.core.state import CrawlController
from agent_scraper.sinks.base import Sink
from agent_scraper.sinks.jsonl_sink import JsonlSink

logger = logging.getLogger(__name__)


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _default_sink(out_path: str) -> Sink:
    """
    Default behavior:
    - If no sink is provided, we write JSONL to out_path.
    """
    return JsonlSink(out_path)


def reconcile_agent(
    adapter: BaseAdapter,
    controller: CrawlController,
    listing: AgentRecord,
    config: RunConfig,
) -> Tuple[AgentRecord, Completeness]:
    """
    listing -> (optional detail fetch) -> merge -> final score.
    Detail is skipped when disabled, when the listing already scores at or
    above the threshold, or when the crawl is stopping.
    """
    listing_score = compute_completeness(listing)
    needs_detail = (
        config.collect_details
        and listing_score.percentage < config.detail_threshold
        and not controller.is_stopping
    )
    if not needs_detail:
        return ensure_agent_block(listing), listing_score

    url = listing["profileUrl"]
    logger.debug("[PF] Fetching detail page: %s", url)
    try:
        detail = adapter.fetch_detail(url)
    except Exception as e:
        logger.warning("[PF] Detail fetch failed, using listing data url=%s: %s", url, e)
        detail = None
    controller.record_detail(detail is not None)

    merged = ensure_agent_block(merge_listing_with_detail(listing, detail))
    return merged, compute_completeness(merged)


def _process_page(
    adapter: BaseAdapter,
    controller: CrawlController,
    config: RunConfig,
    pool: ThreadPoolExecutor,
    sink: Sink,
    page_no: int,
    records: list,
) -> None:
    admitted = [r for r in records if controller.admit(r)]
    if not admitted:
        return

    futures = [pool.submit(reconcile_agent, adapter, controller, r, config) for r in admitted]

    # emit in page order
    for listing, fut in zip(admitted, futures):
        try:
            final, score = fut.result()
        except Exception as e:
            # reconcile is total; this only guards the slot accounting
            logger.error("[PF] reconcile failed url=%s: %s: %s", listing.get("profileUrl"), type(e).__name__, e)
            controller.release()
            controller.record_error()
            continue

        sink.write(final, score.to_dict())
        controller.record_saved(score.percentage)

        logger.info(
            "[PF] Saved agent %s/%s name=%s completeness=%s%% email=%s phone=%s",
            controller.state.total_saved,
            controller.results_wanted,
            final.get("name"),
            score.percentage,
            "yes" if final.get("email") else "no",
            "yes" if final.get("phone") else "no",
        )


def run_site_stream(
    adapter: BaseAdapter,
    config: RunConfig,
    out_path: Optional[str] = None,
    sink: Optional[Sink] = None,
    summary_path: Optional[str] = None,
    sleep=time.sleep,
) -> Dict[str, Any]:
    """
    Crawl search pages until the controller stops, emit one record per
    unique profile URL, return the run summary.

    sink:
      - If provided, records go there (JsonlSink/SQLiteSink/MultiSink/etc).
      - If None, defaults to JsonlSink(out_path).
    """
    if sink is None:
        if not out_path:
            raise ValueError("either sink or out_path is required")
        sink = _default_sink(out_path)

    started_at = utc_now_iso()
    controller = CrawlController(config.results_wanted, config.max_pages)

    first_url = adapter.build_page_url(1)
    controller.start(first_url)
    queue: Deque[Tuple[str, int]] = deque([(first_url, 1)])

    logger.info(
        "[PF] Starting crawl url=%s target=%s max_pages=%s details=%s",
        first_url,
        config.results_wanted,
        config.max_pages,
        config.collect_details,
    )

    try:
        with ThreadPoolExecutor(max_workers=config.max_concurrency) as pool:
            referer: Optional[str] = None
            while queue and not controller.is_stopping:
                url, page_no = queue.popleft()

                if page_no > 1 and config.page_delay_range:
                    sleep(random.uniform(*config.page_delay_range))

                logger.info("[PF] Processing page %s", page_no)
                try:
                    html = adapter.fetch_list_page(url, referer=referer)
                except FetchError as e:
                    logger.error("[PF] Request failed page=%s: %s", page_no, e)
                    controller.record_error()
                    continue
                referer = url

                records = adapter.extract_listing(html, url)
                if controller.on_page(page_no, records):
                    _process_page(adapter, controller, config, pool, sink, page_no, records)

                next_url = controller.next_page(page_no, adapter.build_page_url)
                if next_url:
                    queue.append((next_url, page_no + 1))

        controller.finish()
    finally:
        try:
            sink.close()
        finally:
            adapter.close()

    summary = controller.summary()
    summary["startedAt"] = started_at
    summary["finishedAt"] = utc_now_iso()

    if summary["totalSaved"] == 0:
        logger.warning("[PF] Run finished with zero records")
    logger.info(
        "[PF] Scraping completed: saved=%s/%s pages=%s avg_completeness=%s%%",
        summary["totalSaved"],
        config.results_wanted,
        summary["pagesProcessed"],
        summary["avgCompleteness"],
    )

    if summary_path:
        Path(summary_path).parent.mkdir(parents=True, exist_ok=True)
        write_json(summary_path, summary)

    return summary
