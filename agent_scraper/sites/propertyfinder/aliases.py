"""
Ranked source aliases per AgentRecord field.

Every raw shape (embedded state, JSON-LD, DOM card, detail page) goes through
this one table. Order inside each tuple is precedence: the first alias holding
a usable value wins. When the site renames a payload key, add the new alias
here in the right position.
"""
from __future__ import annotations

from typing import Any, List, Mapping, Optional

from agent_scraper.core.normalizer import (
    FieldRules,
    clean_text,
    key,
    normalize_shape,
    number_from_text,
    to_bool,
    to_comma_list,
    to_email,
    to_id,
    to_iso_datetime,
    to_phone,
    to_string_list,
    to_url,
)
from agent_scraper.core.schema import coerce_deal_type
from agent_scraper.core.urls import build_profile_url, canonical_profile_url, slugify


def _first_last(raw: Mapping[str, Any]) -> Optional[str]:
    first = clean_text(raw.get("first_name") or raw.get("firstName"))
    last = clean_text(raw.get("last_name") or raw.get("lastName"))
    if first and last:
        return f"{first} {last}"
    return None


def _slug_profile_url(raw: Mapping[str, Any]) -> Optional[str]:
    agent_id = raw.get("id") or raw.get("agent_id") or raw.get("broker_id")
    slug = raw.get("slug")
    if not slug and isinstance(raw.get("name"), str):
        slug = slugify(raw["name"])
    return build_profile_url(slug, agent_id)


_first_last.__name__ = "first_name+last_name"
_slug_profile_url.__name__ = "slug+id"


def _transactions(v: Any) -> Optional[List[dict]]:
    if not isinstance(v, list):
        return None
    out = []
    for tx in v:
        if not isinstance(tx, Mapping):
            continue
        row = normalize_shape(tx, TRANSACTION_RULES)
        if any(x is not None for x in row.values()):
            out.append(row)
    return out or None


def _deal_type(v: Any) -> Any:
    return coerce_deal_type(clean_text(v))


def _transaction_count(raw: Mapping[str, Any]) -> Optional[int]:
    txs = raw.get("claimedTransactionsList")
    if not isinstance(txs, list):
        return None
    return sum(1 for tx in txs if isinstance(tx, Mapping)) or None


_transaction_count.__name__ = "len(claimedTransactionsList)"


TRANSACTION_RULES: FieldRules = {
    "propertyType": ((key("propertyType"), key("property_type")), clean_text),
    "location": ((key("location", "name"), key("location")), clean_text),
    "dealType": ((key("dealType"), key("deal_type")), _deal_type),
    "price": ((key("price"), key("amount")), number_from_text),
    "date": ((key("date"), key("transactionDate"), key("transaction_date")), to_iso_datetime),
}


AGENT_RULES: FieldRules = {
    # identity
    "agentId": ((key("id"), key("agent_id"), key("broker_id")), to_id),
    "profileUrl": (
        (key("url"), key("profile_url"), key("href"), _slug_profile_url),
        canonical_profile_url,
    ),
    "name": (
        (key("name"), key("full_name"), key("display_name"), _first_last),
        clean_text,
    ),
    # contact
    "email": (
        (key("email"), key("contact", "email"), key("email_address")),
        to_email,
    ),
    "phone": (
        (
            key("phone"),
            key("mobile"),
            key("contact_number"),
            key("contact", "phone"),
            key("telephone"),
        ),
        to_phone,
    ),
    "whatsapp": (
        (
            key("whatsapp"),
            key("whatsappNumber"),
            key("whatsapp_number"),
            key("contact", "whatsapp"),
        ),
        to_phone,
    ),
    # affiliation
    "company": (
        (
            key("broker", "name"),
            key("company", "name"),
            key("agency_name"),
            key("broker_name"),
            key("agency"),
            key("worksFor", "name"),
            key("affiliation", "name"),
        ),
        clean_text,
    ),
    "companyId": ((key("broker", "id"), key("company", "id"), key("broker_id")), to_id),
    "companyLogo": (
        (
            key("broker", "logo"),
            key("company", "logo"),
            key("broker_logo"),
            key("company_logo"),
        ),
        to_url,
    ),
    "companyAddress": (
        (key("broker", "address"), key("company", "address"), key("office_address")),
        clean_text,
    ),
    "position": ((key("position"), key("jobTitle"), key("job_title"), key("role")), clean_text),
    # profile
    "profileImage": (
        (
            key("image"),
            key("photo"),
            key("avatar"),
            key("profile_image"),
            key("picture"),
            key("image", "url"),
        ),
        to_url,
    ),
    "nationality": (
        (key("nationality", "name"), key("nationality"), key("country")),
        clean_text,
    ),
    "languages": ((key("languages"),), to_comma_list),
    "location": (
        (
            key("location", "name"),
            key("city"),
            key("area"),
            key("location"),
            key("region"),
            key("address", "addressLocality"),
            key("workLocation"),
        ),
        clean_text,
    ),
    "description": (
        (key("description"), key("bio"), key("about"), key("summary")),
        clean_text,
    ),
    # performance
    "totalListings": (
        (
            key("total_listings"),
            key("totalActiveProperties"),
            key("property_count"),
            key("listings_count"),
            key("properties_count"),
            key("listing_count"),
        ),
        number_from_text,
    ),
    "activeListings": (
        (
            key("active_listings"),
            key("activeListings"),
            key("active_properties"),
            key("active_count"),
        ),
        number_from_text,
    ),
    "rentListings": (
        (key("rentListings"), key("propertiesForRent"), key("rent_count")),
        number_from_text,
    ),
    "saleListings": (
        (key("saleListings"), key("propertiesForSale"), key("sale_count")),
        number_from_text,
    ),
    "rating": (
        (key("rating"), key("average_rating"), key("score"), key("stars")),
        number_from_text,
    ),
    "reviewsCount": (
        (
            key("reviews_count"),
            key("reviewsCount"),
            key("total_reviews"),
            key("review_count"),
            key("reviews"),
        ),
        number_from_text,
    ),
    "ranking": ((key("ranking"), key("rank"), key("position_rank")), number_from_text),
    # credentials
    "experience": (
        (
            key("experience_years"),
            key("yearsOfExperience"),
            key("years_of_experience"),
            key("experience"),
            key("years"),
        ),
        number_from_text,
    ),
    "brokerPermitNo": (
        (
            key("broker_permit_no"),
            key("licenseNumber"),
            key("license_number"),
            key("rera_permit"),
            key("permit_number"),
            key("license"),
            key("registration_no"),
            key("brn"),
        ),
        lambda v: clean_text(v) if not isinstance(v, bool) else None,
    ),
    "verified": ((key("verified"), key("is_verified"), key("is_active")), to_bool),
    "specializations": (
        (key("specializations"), key("property_types"), key("specialization")),
        to_string_list,
    ),
    # history
    "transactionHistory": ((key("claimedTransactionsList"), key("transactions")), _transactions),
    "totalDealVolume": (
        (
            key("claimedTransactionsDealVolume"),
            key("total_deal_volume"),
            key("deal_volume"),
        ),
        number_from_text,
    ),
    "totalTransactions": (
        (
            key("claimedTransactionsCount"),
            key("total_transactions"),
            _transaction_count,
        ),
        number_from_text,
    ),
    # freshness
    "lastActive": (
        (
            key("last_active"),
            key("lastActive"),
            key("last_seen"),
            key("updated_at"),
            key("last_online"),
        ),
        to_iso_datetime,
    ),
}
