from __future__ import annotations

import math
import re
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from dateutil import parser as dtparser

from .schema import AgentRecord, ensure_agent_block
from .urls import to_absolute_url

Accessor = Callable[[Mapping[str, Any]], Any]
Converter = Callable[[Any], Any]

# field -> (ranked accessors, converter)
FieldRules = Mapping[str, Tuple[Sequence[Accessor], Converter]]

_WS_RE = re.compile(r"\s+")
_NUM_RE = re.compile(r"\d+(?:\.\d+)?|\.\d+")
_EMAIL_RE = re.compile(r"[A-Z0-9._%+-]+@[A-Z0-9.-]+\.[A-Z]{2,}", re.I)


# ----------------------------
# accessors
# ----------------------------

def dig(raw: Any, path: Sequence[str]) -> Any:
    cur = raw
    for p in path:
        if not isinstance(cur, Mapping):
            return None
        cur = cur.get(p)
    return cur


def key(*path: str) -> Accessor:
    """Accessor for raw[path[0]][path[1]]...; its __name__ is the dotted path."""

    def get(raw: Mapping[str, Any]) -> Any:
        return dig(raw, path)

    get.__name__ = ".".join(path)
    return get


def is_present(v: Any) -> bool:
    if v is None:
        return False
    if isinstance(v, str):
        return bool(v.strip())
    if isinstance(v, (list, tuple, set, dict)):
        return len(v) > 0
    if isinstance(v, float) and math.isnan(v):
        return False
    return True


def resolve(raw: Mapping[str, Any], accessors: Iterable[Accessor], convert: Converter = lambda v: v) -> Any:
    """
    First alias (in order) holding a present value wins, even when that value
    converts to None. A container the converter cannot read (an image object
    under "image", say) is a shape miss and resolution moves on.
    The order of `accessors` is the precedence contract.
    """
    _, value = resolve_with_source(raw, accessors, convert)
    return value


def resolve_with_source(
    raw: Mapping[str, Any],
    accessors: Iterable[Accessor],
    convert: Converter = lambda v: v,
) -> Tuple[Optional[str], Any]:
    for acc in accessors:
        try:
            v = acc(raw)
        except (AttributeError, KeyError, TypeError, ValueError):
            continue
        if not is_present(v):
            continue
        out = convert(v)
        if out is None and isinstance(v, (Mapping, list, tuple)):
            continue
        return getattr(acc, "__name__", None), out
    return None, None


# ----------------------------
# converters
# ----------------------------

def clean_text(v: Any) -> Optional[str]:
    if v is None or isinstance(v, (bool, dict, list, tuple, set)):
        return None
    s = _WS_RE.sub(" ", str(v)).strip()
    return s or None


def number_from_text(v: Any) -> Optional[float | int]:
    """
    "1,250 properties" -> 1250
    "4.8 (32 reviews)" -> 4.8
    "N/A"              -> None
    """
    if v is None or isinstance(v, bool):
        return None
    if isinstance(v, (int, float)):
        if isinstance(v, float) and not math.isfinite(v):
            return None
        return v
    if not isinstance(v, str):
        return None

    m = _NUM_RE.search(v.replace(",", ""))
    if not m:
        return None
    token = m.group(0)
    try:
        return float(token) if "." in token else int(token)
    except ValueError:
        return None


def to_email(v: Any) -> Optional[str]:
    s = clean_text(v)
    if not s:
        return None
    if s.lower().startswith("mailto:"):
        s = s[7:].split("?", 1)[0]
    m = _EMAIL_RE.search(s)
    return m.group(0).lower() if m else None


def to_phone(v: Any) -> Optional[str]:
    """Keeps the site's formatting; rejects labels like "Call" that carry no number."""
    if isinstance(v, int) and not isinstance(v, bool):
        v = str(v)
    s = clean_text(v)
    if not s:
        return None
    if s.lower().startswith("tel:"):
        s = s[4:].strip()
    if len(re.sub(r"\D", "", s)) < 6:
        return None
    return s


def to_url(v: Any) -> Optional[str]:
    return to_absolute_url(v)


def to_id(v: Any) -> Optional[str]:
    if v is None or isinstance(v, (bool, dict, list)):
        return None
    s = str(v).strip()
    return s or None


def to_bool(v: Any) -> Optional[bool]:
    if isinstance(v, bool):
        return v
    if isinstance(v, (int, float)):
        return bool(v)
    if isinstance(v, str):
        s = v.strip().lower()
        if s in ("true", "yes", "y", "1", "verified"):
            return True
        if s in ("false", "no", "n", "0"):
            return False
    return None


def _dedupe_preserve_order(items: Iterable[str]) -> List[str]:
    seen = set()
    out: List[str] = []
    for x in items:
        if not x or x in seen:
            continue
        seen.add(x)
        out.append(x)
    return out


def to_string_list(v: Any) -> Optional[List[str]]:
    """
    ["English", {"name": "Arabic"}] -> ["English", "Arabic"]
    "Villas, Townhouses"            -> ["Villas, Townhouses"]
    A lone string is promoted to a one-item list as is.
    """
    if isinstance(v, str):
        parts = [clean_text(v)]
    elif isinstance(v, (list, tuple)):
        parts = []
        for x in v:
            if isinstance(x, Mapping):
                x = x.get("name") or x.get("label") or x.get("value")
            parts.append(clean_text(x))
    else:
        return None

    out = _dedupe_preserve_order(p for p in parts if p)
    return out or None


def to_comma_list(v: Any) -> Optional[List[str]]:
    """"English, Arabic" -> ["English", "Arabic"]; lists as in to_string_list."""
    if isinstance(v, str):
        return to_string_list(v.split(","))
    return to_string_list(v)


def to_iso_datetime(v: Any) -> Optional[str]:
    """Epoch seconds/millis or a date string -> ISO-8601; unparseable text is kept cleaned."""
    if v is None or isinstance(v, bool):
        return None
    if isinstance(v, (int, float)):
        ts = float(v)
        if not math.isfinite(ts):
            return None
        if ts > 1e11:
            ts = ts / 1000.0
        try:
            return datetime.fromtimestamp(ts, timezone.utc).isoformat()
        except (OverflowError, OSError, ValueError):
            return None

    s = clean_text(v)
    if not s:
        return None
    try:
        return dtparser.parse(s).isoformat()
    except (dtparser.ParserError, OverflowError, ValueError):
        return s


# ----------------------------
# shape normalization
# ----------------------------

def normalize_shape(raw: Mapping[str, Any], rules: FieldRules) -> Dict[str, Any]:
    out: Dict[str, Any] = {}
    for field, (accessors, convert) in rules.items():
        out[field] = resolve(raw, accessors, convert)
    return out


def explain_sources(raw: Mapping[str, Any], rules: FieldRules) -> Dict[str, Optional[str]]:
    """Which alias won per field. Handy when the site changes its payload shape."""
    return {field: resolve_with_source(raw, acc, conv)[0] for field, (acc, conv) in rules.items()}


def normalize_agent(raw: Mapping[str, Any], rules: FieldRules) -> Optional[AgentRecord]:
    """
    Raw shape -> AgentRecord with every key present.
    None when neither a name nor a profile URL can be resolved.
    """
    if not isinstance(raw, Mapping):
        return None
    record = ensure_agent_block(normalize_shape(raw, rules))
    if not (record.get("name") or record.get("profileUrl")):
        return None
    return record
