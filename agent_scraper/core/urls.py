from __future__ import annotations

import re
from typing import Any, Dict, Optional
from urllib.parse import urlencode, urljoin, urlsplit, urlunsplit

BASE = "https://www.propertyfinder.ae"
SEARCH_PATH = "/en/find-agent/search"
AGENT_PATH = "/en/agent/"

_ABS_RE = re.compile(r"^https?://", re.I)


def to_absolute_url(href: Any, base: str = BASE) -> Optional[str]:
    """
    Resolve href to an absolute http(s) URL.
      "https://x/y"  -> unchanged
      "//cdn/x.png"  -> "https://cdn/x.png"
      "/en/agent/a"  -> base + path
    Returns None for empty / non-string / malformed input.
    """
    if not isinstance(href, str):
        return None
    s = href.strip()
    if not s:
        return None

    if s.startswith("//"):
        s = "https:" + s
    if _ABS_RE.match(s):
        try:
            netloc = urlsplit(s).netloc
        except ValueError:
            return None
        return s if netloc else None

    try:
        out = urljoin(base, s)
        scheme = urlsplit(out).scheme.lower()
    except ValueError:
        return None

    if scheme not in ("http", "https"):
        return None
    return out


def _strip_query(url: str) -> str:
    if not url:
        return url
    u = urlsplit(url)
    return urlunsplit((u.scheme, u.netloc, u.path, "", ""))


def canonical_profile_url(href: Any, base: str = BASE) -> Optional[str]:
    """Dedup key for an agent: absolute, lower-cased host, no query/fragment/trailing slash."""
    url = to_absolute_url(href, base)
    if not url:
        return None
    try:
        u = urlsplit(_strip_query(url))
    except ValueError:
        return None
    path = u.path.rstrip("/") or "/"
    return urlunsplit((u.scheme.lower(), u.netloc.lower(), path, "", ""))


def slugify(text: str) -> str:
    return re.sub(r"\s+", "-", (text or "").strip().lower())


def build_profile_url(slug: Optional[str], agent_id: Any, base: str = BASE) -> Optional[str]:
    if not slug or agent_id in (None, ""):
        return None
    return f"{base}{AGENT_PATH}{slug}-{agent_id}"


def _set_page_param(url: str, page: int) -> str:
    """
    Overwrite only the `page` query parameter; every other parameter is kept
    byte-for-byte and in place.
    """
    u = urlsplit(url)
    parts = [p for p in u.query.split("&") if p] if u.query else []

    out = []
    replaced = False
    for p in parts:
        key = p.split("=", 1)[0]
        if key == "page":
            if not replaced:
                out.append(f"page={page}")
                replaced = True
            continue
        out.append(p)

    if not replaced:
        out.append(f"page={page}")

    return urlunsplit((u.scheme, u.netloc, u.path, "&".join(out), u.fragment))


def build_search_url(
    start_url: Optional[str] = None,
    location: Optional[str] = None,
    language: Optional[str] = None,
    specialization: Optional[str] = None,
    page: int = 1,
) -> str:
    """
    Search / pagination URL.
    - start_url given: only its `page` parameter changes.
    - otherwise: BASE + SEARCH_PATH with page first, then l / language /
      specialization when non-empty.
    Same inputs always produce the same string.
    """
    page = int(page)
    if start_url:
        return _set_page_param(start_url.strip(), page)

    params: Dict[str, str] = {"page": str(page)}
    if location:
        params["l"] = location
    if language:
        params["language"] = language
    if specialization:
        params["specialization"] = specialization

    return f"{BASE}{SEARCH_PATH}?{urlencode(params)}"
