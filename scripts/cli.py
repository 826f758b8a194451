# scripts/cli.py
from __future__ import annotations

import argparse
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional

from agent_scraper.core.config import RunConfig
from agent_scraper.core.runner import run_site_stream
from agent_scraper.sinks.base import Sink


# ----------------------------
# Registry: map "site name" -> adapter factory
# A new site is one more entry here.
# ----------------------------

@dataclass(frozen=True)
class SiteConfig:
    key: str
    adapter_factory: Callable[[RunConfig], object]


def _pf_adapter(config: RunConfig):
    from agent_scraper.sites.propertyfinder.adapter import PropertyFinderAdapter
    return PropertyFinderAdapter(config)


SITE_REGISTRY: dict[str, SiteConfig] = {
    "propertyfinder": SiteConfig(key="propertyfinder", adapter_factory=_pf_adapter),
}


def safe_filename(run_id: str) -> str:
    # 2026-02-26T10:11:12.123456+00:00 -> 2026-02-26T10_11_12_123456_00_00
    return run_id.replace(":", "_").replace(".", "_").replace("+", "_")


def build_paths(site_key: str, run_id: str, env: str) -> tuple[str, str]:
    """
    env:
      - "prod": out/
      - "test": out_test/
    Returns (records_jsonl, summary_json).
    """
    out_dir = Path("out_test") if env == "test" else Path("out")
    out_dir.mkdir(parents=True, exist_ok=True)

    stem = f"{site_key}_{safe_filename(run_id)}"
    return str(out_dir / f"{stem}.jsonl"), str(out_dir / f"{stem}_summary.json")


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(
        prog="agent-scraper",
        description="Agent/broker profile scraper (prod/test, jsonl/sqlite sinks).",
    )

    mode_group = p.add_mutually_exclusive_group(required=True)
    mode_group.add_argument("--start", metavar="SITE", help="Run site in production mode (writes to out/).")
    mode_group.add_argument("--start-test", metavar="SITE", help="Run site in test/dev mode (writes to out_test/).")

    p.add_argument("--input", default=None, help="JSON input document (startUrl, location, results_wanted, ...).")
    p.add_argument("--start-url", default=None, help="Literal search URL; only its page parameter is changed.")
    p.add_argument("--location", default=None)
    p.add_argument("--language", default=None)
    p.add_argument("--specialization", default=None)
    p.add_argument("--results-wanted", default=None, help="Target number of agents (non-numeric = unbounded).")
    p.add_argument("--max-pages", default=None, help="Ceiling on search pages.")
    p.add_argument("--no-details", action="store_true", help="Never fetch agent profile pages.")
    p.add_argument("--proxy-url", default=None, help="Proxy URL passed to the HTTP session.")
    p.add_argument("--concurrency", type=int, default=None, help="Max concurrent detail fetches.")

    p.add_argument(
        "--sink",
        choices=["auto", "jsonl", "sqlite", "multi"],
        default="auto",
        help="Output sink. auto=prod->jsonl, test->multi (sqlite+jsonl).",
    )
    p.add_argument("--db-path", default=None, help="SQLite path. If omitted uses out dir + site key.")
    p.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR"])

    return p.parse_args(argv)


def _build_sink(env: str, sink_choice: str, site_key: str, out_path: str, db_path: str | None) -> Sink:
    """
    test + auto -> multi (sqlite + jsonl) so the run can be inspected both ways.
    """
    if sink_choice == "auto":
        sink_choice = "jsonl" if env == "prod" else "multi"

    if not db_path:
        db_path = str(Path(out_path).parent / f"{site_key}.sqlite")

    if sink_choice == "jsonl":
        from agent_scraper.sinks.jsonl_sink import JsonlSink
        return JsonlSink(out_path)

    if sink_choice == "sqlite":
        from agent_scraper.sinks.sqlite_sink import SQLiteSink
        return SQLiteSink(db_path)

    if sink_choice == "multi":
        from agent_scraper.sinks.jsonl_sink import JsonlSink
        from agent_scraper.sinks.sqlite_sink import SQLiteSink
        from agent_scraper.sinks.multi_sink import MultiSink
        return MultiSink([SQLiteSink(db_path), JsonlSink(out_path)], strict=False)

    raise ValueError(f"Unknown sink_choice: {sink_choice}")


def build_config(args: argparse.Namespace) -> RunConfig:
    overrides = {
        "start_url": args.start_url,
        "location": args.location,
        "language": args.language,
        "specialization": args.specialization,
        "results_wanted": args.results_wanted,
        "max_pages": args.max_pages,
        "collect_details": False if args.no_details else None,
        "proxy_configuration": {"proxyUrl": args.proxy_url} if args.proxy_url else None,
        "max_concurrency": args.concurrency,
    }
    if args.input:
        return RunConfig.from_file(args.input, **overrides)
    return RunConfig.from_input({}, **overrides)


def run(argv: Optional[List[str]] = None) -> dict:
    args = parse_args(argv)
    logging.basicConfig(level=args.log_level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    env = "prod" if args.start else "test"
    site_key = args.start or args.start_test

    site = SITE_REGISTRY.get(site_key)
    if not site:
        known = ", ".join(sorted(SITE_REGISTRY.keys()))
        raise SystemExit(f"Unknown site '{site_key}'. Known sites: {known}")

    try:
        config = build_config(args)
    except (OSError, ValueError) as e:
        raise SystemExit(f"Invalid run configuration: {e}")

    adapter = site.adapter_factory(config)
    out_path, summary_path = build_paths(site_key, adapter.scrape_run_id, env=env)
    sink = _build_sink(env, args.sink, site_key, out_path, args.db_path)

    stats = run_site_stream(
        adapter=adapter,
        config=config,
        sink=sink,
        summary_path=summary_path,
    )

    print(f"[{site_key}] env={env} sink={args.sink} target={config.results_wanted} max_pages={config.max_pages}")
    print(f"out_path={out_path}")
    print(f"summary_path={summary_path}")
    print(stats)
    return stats


def main(argv: Optional[List[str]] = None) -> None:
    run(argv)


if __name__ == "__main__":
    main()
