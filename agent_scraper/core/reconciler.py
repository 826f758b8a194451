from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Dict, FrozenSet, Optional, Tuple

from .normalizer import is_present
from .schema import AgentRecord

# detail page is authoritative for narrative / credential data
DETAIL_PREFERRED: FrozenSet[str] = frozenset(
    {"description", "experience", "brokerPermitNo", "specializations", "transactionHistory"}
)

CRITICAL_FIELDS: Tuple[str, ...] = ("name", "email", "phone", "company", "profileUrl")
IMPORTANT_FIELDS: Tuple[str, ...] = ("whatsapp", "location", "totalListings", "rating", "description")
OPTIONAL_FIELDS: Tuple[str, ...] = (
    "languages",
    "specializations",
    "experience",
    "brokerPermitNo",
    "transactionHistory",
)
ALL_SCORED_FIELDS: Tuple[str, ...] = CRITICAL_FIELDS + IMPORTANT_FIELDS + OPTIONAL_FIELDS


@dataclass(frozen=True)
class Completeness:
    percentage: int
    filled: int
    total: int
    has_critical: bool

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d["hasCritical"] = d.pop("has_critical")
        return d


def merge_listing_with_detail(listing: AgentRecord, detail: Optional[AgentRecord]) -> AgentRecord:
    """
    Merge strategy:
    - detail is None            -> listing unchanged
    - DETAIL_PREFERRED fields   -> detail wins whenever it has a value
    - everything else           -> detail only fills listing gaps (falsy values)
    """
    out = dict(listing or {})
    if not detail:
        return out

    for k, v in detail.items():
        if v is None:
            continue
        if k in DETAIL_PREFERRED:
            out[k] = v
        elif not out.get(k):
            out[k] = v

    return out


def compute_completeness(record: Optional[AgentRecord]) -> Completeness:
    record = record or {}
    total = len(ALL_SCORED_FIELDS)
    filled = sum(1 for f in ALL_SCORED_FIELDS if is_present(record.get(f)))

    # half-up rounding
    percentage = int((filled * 100) / total + 0.5)
    percentage = max(0, min(100, percentage))

    return Completeness(
        percentage=percentage,
        filled=filled,
        total=total,
        has_critical=all(record.get(f) for f in CRITICAL_FIELDS),
    )
