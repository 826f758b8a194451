from __future__ import annotations

import logging
import math
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple

import orjson

logger = logging.getLogger(__name__)

DEFAULT_RESULTS_WANTED = 100
DEFAULT_MAX_PAGES = 20
UNBOUNDED = sys.maxsize


def _as_number(v: Any) -> Optional[float]:
    if v is None or isinstance(v, bool):
        return None
    try:
        n = float(v)
    except (TypeError, ValueError):
        return None
    return n


def coerce_results_wanted(v: Any) -> int:
    """
    100 -> 100, 0 / -3 -> 1, "inf" / "abc" -> UNBOUNDED, None -> 100
    """
    if v is None:
        return DEFAULT_RESULTS_WANTED
    n = _as_number(v)
    if n is None or not math.isfinite(n):
        return UNBOUNDED
    return max(1, int(n))


def coerce_max_pages(v: Any) -> int:
    if v is None:
        return DEFAULT_MAX_PAGES
    n = _as_number(v)
    if n is None or not math.isfinite(n):
        return DEFAULT_MAX_PAGES
    return max(1, int(n))


def _as_bool(v: Any, default: bool) -> bool:
    if v is None:
        return default
    if isinstance(v, bool):
        return v
    if isinstance(v, str):
        return v.strip().lower() not in ("false", "0", "no", "off", "")
    return bool(v)


def proxies_from_config(proxy_cfg: Any) -> Optional[Dict[str, str]]:
    """
    {"proxyUrls": ["http://u:p@host:8000", ...]} or {"proxyUrl": "..."}
    -> requests proxies mapping (first URL). Anything else -> None.
    """
    if not proxy_cfg:
        return None
    if not isinstance(proxy_cfg, Mapping):
        logger.warning("[CONFIG] proxyConfiguration is not an object, proceeding without proxy")
        return None

    url = proxy_cfg.get("proxyUrl")
    urls = proxy_cfg.get("proxyUrls")
    if not url and isinstance(urls, list) and urls:
        url = urls[0]

    if not isinstance(url, str) or not url.strip():
        if proxy_cfg.get("useApifyProxy") or urls is not None:
            logger.warning("[CONFIG] proxy configuration has no usable URL, proceeding without proxy")
        return None

    url = url.strip()
    return {"http": url, "https": url}


@dataclass(frozen=True)
class RunConfig:
    start_url: Optional[str] = None
    location: Optional[str] = None
    language: Optional[str] = None
    specialization: Optional[str] = None
    results_wanted: int = DEFAULT_RESULTS_WANTED
    max_pages: int = DEFAULT_MAX_PAGES
    collect_details: bool = True
    proxy_configuration: Optional[Dict[str, Any]] = None

    detail_threshold: int = 90
    max_concurrency: int = 2
    request_timeout: float = 30
    retries: int = 2
    delay_range: Tuple[float, float] = (0.3, 1.0)
    page_delay_range: Tuple[float, float] = (0.8, 1.5)
    extra: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.results_wanted < 1:
            raise ValueError("results_wanted must be >= 1")
        if self.max_pages < 1:
            raise ValueError("max_pages must be >= 1")
        if not 0 <= self.detail_threshold <= 100:
            raise ValueError("detail_threshold must be within 0..100")
        if self.max_concurrency < 1:
            raise ValueError("max_concurrency must be >= 1")

    @property
    def proxies(self) -> Optional[Dict[str, str]]:
        return proxies_from_config(self.proxy_configuration)

    @classmethod
    def from_input(cls, data: Optional[Mapping[str, Any]] = None, **overrides: Any) -> "RunConfig":
        """
        Build from the actor-style input document:
          startUrl, location, language, specialization,
          results_wanted, max_pages, collectDetails, proxyConfiguration
        Keyword overrides (snake_case) win over the document; None overrides are ignored.
        """
        d = dict(data or {})
        known = {
            "startUrl",
            "location",
            "language",
            "specialization",
            "results_wanted",
            "max_pages",
            "collectDetails",
            "proxyConfiguration",
        }

        def s(v: Any) -> Optional[str]:
            if v is None:
                return None
            v = str(v).strip()
            return v or None

        kwargs: Dict[str, Any] = {
            "start_url": s(d.get("startUrl")),
            "location": s(d.get("location")),
            "language": s(d.get("language")),
            "specialization": s(d.get("specialization")),
            "results_wanted": coerce_results_wanted(d.get("results_wanted")),
            "max_pages": coerce_max_pages(d.get("max_pages")),
            "collect_details": _as_bool(d.get("collectDetails"), True),
            "proxy_configuration": d.get("proxyConfiguration"),
            "extra": {k: v for k, v in d.items() if k not in known},
        }

        for k, v in overrides.items():
            if v is None:
                continue
            if k == "results_wanted":
                v = coerce_results_wanted(v)
            elif k == "max_pages":
                v = coerce_max_pages(v)
            kwargs[k] = v

        return cls(**kwargs)

    @classmethod
    def from_file(cls, path: str | Path, **overrides: Any) -> "RunConfig":
        raw = orjson.loads(Path(path).read_bytes())
        if not isinstance(raw, dict):
            raise ValueError(f"{path}: input must be a JSON object")
        return cls.from_input(raw, **overrides)
