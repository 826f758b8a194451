from __future__ import annotations

from typing import Any, Dict, Tuple

# --- Output schema (source of truth for key order) ---
AGENT_FIELDS: Tuple[str, ...] = (
    # identity
    "agentId",
    "profileUrl",
    "name",
    # contact
    "email",
    "phone",
    "whatsapp",
    # affiliation
    "company",
    "companyId",
    "companyLogo",
    "companyAddress",
    "position",
    # profile
    "profileImage",
    "nationality",
    "languages",
    "location",
    "description",
    # performance
    "totalListings",
    "activeListings",
    "rentListings",
    "saleListings",
    "rating",
    "reviewsCount",
    "ranking",
    # credentials
    "experience",
    "brokerPermitNo",
    "verified",
    "specializations",
    # history
    "transactionHistory",
    "totalDealVolume",
    "totalTransactions",
    # freshness
    "lastActive",
)

TRANSACTION_FIELDS: Tuple[str, ...] = ("propertyType", "location", "dealType", "price", "date")

AgentRecord = Dict[str, Any]
TransactionRecord = Dict[str, Any]


def coerce_deal_type(v: Any) -> Any:
    s = (v or "").strip().lower() if isinstance(v, str) else ""
    if s in ("sale", "sell", "sold", "buy", "for_sale"):
        return "sale"
    if s in ("rent", "rental", "rented", "lease", "for_rent"):
        return "rent"
    return v or None


def empty_agent_record() -> AgentRecord:
    return {k: None for k in AGENT_FIELDS}


def empty_transaction() -> TransactionRecord:
    return {k: None for k in TRANSACTION_FIELDS}


def ensure_agent_block(record: Dict[str, Any]) -> AgentRecord:
    """
    Return a record carrying every AgentRecord key, in schema order.
    Absent values become None so the emitted shape never changes.
    Unknown keys are dropped.
    """
    out = empty_agent_record()
    for k in AGENT_FIELDS:
        v = (record or {}).get(k)
        if v is not None:
            out[k] = v

    history = out.get("transactionHistory")
    if isinstance(history, list):
        fixed = []
        for tx in history:
            if not isinstance(tx, dict):
                continue
            row = empty_transaction()
            for k in TRANSACTION_FIELDS:
                if tx.get(k) is not None:
                    row[k] = tx[k]
            fixed.append(row)
        out["transactionHistory"] = fixed or None

    return out
