"""USAspending award-search connector for AgencyScope."""
from __future__ import annotations

import logging
import math
import re
import time
from typing import Any, Callable, Dict, Iterable, List, Optional

import requests
from pydantic import BaseModel, Field

from backend.settings import DEFAULT_USASPENDING_URL

logger = logging.getLogger(__name__)

BASE_URL = DEFAULT_USASPENDING_URL
PAGE_LIMIT = 100
FALLBACK_MAX_PAGES = 10
AWARD_TYPE_CODES = ["A", "B", "C", "D"]
SOURCE_NAME = "USAspending"

SEARCH_FIELDS = [
    "Award ID",
    "Recipient Name",
    "Award Amount",
    "Awarding Agency",
    "Awarding Sub Agency",
    "Awarding Agency Code",
    "Awarding Sub Agency Code",
    "Awarding Office",
    "NAICS Code",
    "NAICS Description",
    "Place of Performance State Code",
    "Place of Performance City Code",
    "Primary Place of Performance",
    "Set-Aside Type",
    "Number of Offers Received",
]
PROBE_FIELDS = ["Award ID"]

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


class TimePeriod(BaseModel):
    start_date: str
    end_date: str


class LocationFilter(BaseModel):
    country: str = "USA"
    state: str


class SearchFilters(BaseModel):
    """The ``filters`` object of a spending_by_award request."""

    award_type_codes: List[str] = Field(default_factory=lambda: list(AWARD_TYPE_CODES))
    time_period: List[TimePeriod]
    naics_codes: Optional[List[str]] = None
    set_aside_type_codes: Optional[List[str]] = None
    place_of_performance_locations: Optional[List[LocationFilter]] = None

    def without(self, *fields: str) -> "SearchFilters":
        return self.copy(update={name: None for name in fields})

    def to_api(self) -> Dict[str, Any]:
        return self.dict(exclude_none=True)


class AwardRecord(BaseModel):
    """One award row after key fallback and numeric coercion."""

    award_id: Optional[str] = None
    recipient_name: Optional[str] = None
    award_amount: float = 0.0
    awarding_agency: Optional[str] = None
    awarding_sub_agency: Optional[str] = None
    awarding_agency_code: Optional[str] = None
    awarding_sub_agency_code: Optional[str] = None
    awarding_office: Optional[str] = None
    naics_code: Optional[str] = None
    naics_description: Optional[str] = None
    state_code: Optional[str] = None
    city_code: Optional[str] = None
    primary_place: Optional[str] = None
    set_aside_type: Optional[str] = None
    offers: Optional[int] = None
    agency_slug: Optional[str] = None
    awarding_agency_id: Optional[str] = None


def _pick(record: Dict[str, Any], *keys: str) -> Any:
    for key in keys:
        value = record.get(key)
        if value is not None and value != "":
            return value
    return None


def _text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def coerce_amount(value: Any) -> float:
    if isinstance(value, bool) or value is None:
        return 0.0
    try:
        amount = float(value)
    except (TypeError, ValueError):
        logger.debug("Unparseable award amount: %r", value)
        return 0.0
    if not math.isfinite(amount):
        logger.debug("Non-finite award amount: %r", value)
        return 0.0
    return amount


def coerce_offers(value: Any) -> Optional[int]:
    """Offer count as a positive int; blanks, junk and non-positive values become ``None``."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, float):
        if not math.isfinite(value):
            return None
        count = int(value)
    elif isinstance(value, int):
        count = value
    elif isinstance(value, str):
        match = _LEADING_INT.match(value)
        if not match:
            return None
        count = int(match.group(1))
    else:
        return None
    return count if count > 0 else None


def adapt_award_record(record: Dict[str, Any]) -> AwardRecord:
    """Map a raw result row (display or snake_case keys) onto :class:`AwardRecord`."""
    return AwardRecord(
        award_id=_text(_pick(record, "Award ID", "award_id", "generated_internal_id")),
        recipient_name=_text(_pick(record, "Recipient Name", "recipient_name")),
        award_amount=coerce_amount(_pick(record, "Award Amount", "award_amount")),
        awarding_agency=_text(_pick(record, "Awarding Agency", "awarding_agency")),
        awarding_sub_agency=_text(_pick(record, "Awarding Sub Agency", "awarding_sub_agency")),
        awarding_agency_code=_text(_pick(record, "Awarding Agency Code", "awarding_agency_code")),
        awarding_sub_agency_code=_text(_pick(record, "Awarding Sub Agency Code", "awarding_sub_agency_code")),
        awarding_office=_text(_pick(record, "Awarding Office", "awarding_office", "awarding_office_name")),
        naics_code=_text(_pick(record, "NAICS Code", "naics_code", "NAICS")),
        naics_description=_text(_pick(record, "NAICS Description", "naics_description")),
        state_code=_text(_pick(record, "Place of Performance State Code", "place_of_performance_state_code")),
        city_code=_text(_pick(record, "Place of Performance City Code", "place_of_performance_city_code")),
        primary_place=_text(_pick(record, "Primary Place of Performance", "primary_place_of_performance")),
        set_aside_type=_text(_pick(record, "Set-Aside Type", "set_aside_type", "type_set_aside")),
        offers=coerce_offers(_pick(record, "Number of Offers Received", "number_of_offers_received")),
        agency_slug=_text(record.get("agency_slug")),
        awarding_agency_id=_text(record.get("awarding_agency_id")),
    )


def adapt_award_records(records: Iterable[Dict[str, Any]]) -> List[AwardRecord]:
    return [adapt_award_record(r) for r in records if isinstance(r, dict)]


def build_request_payload(
    filters: SearchFilters,
    page: int = 1,
    limit: int = PAGE_LIMIT,
    fields: Optional[List[str]] = None,
) -> Dict[str, Any]:
    return {
        "filters": filters.to_api(),
        "fields": list(fields or SEARCH_FIELDS),
        "page": page,
        "limit": limit,
        "sort": "Award Amount",
        "order": "desc",
    }


def _post_page(
    session: requests.Session,
    url: str,
    payload: Dict[str, Any],
    timeout: float,
) -> Optional[List[Dict[str, Any]]]:
    """POST one page; ``None`` when the upstream call failed in any way."""
    try:
        response = session.post(url, json=payload, timeout=timeout)
    except requests.RequestException as exc:
        logger.warning("USAspending request failed (page %s): %s", payload.get("page"), exc)
        return None
    if not 200 <= response.status_code < 300:
        logger.warning("USAspending returned HTTP %s (page %s)", response.status_code, payload.get("page"))
        return None
    try:
        data = response.json()
    except ValueError:
        logger.warning("USAspending returned a non-JSON body (page %s)", payload.get("page"))
        return None
    results = data.get("results") if isinstance(data, dict) else None
    if not isinstance(results, list):
        logger.warning("USAspending response missing results (page %s)", payload.get("page"))
        return None
    return results


def fetch_award_pages(
    filters: SearchFilters,
    max_pages: int,
    session: Optional[requests.Session] = None,
    url: str = BASE_URL,
    page_delay: float = 0.1,
    timeout: float = 30.0,
    sleep: Callable[[float], None] = time.sleep,
) -> List[Dict[str, Any]]:
    """Fetch award rows page by page, keeping whatever arrived before a failure."""
    sess = session or requests.Session()
    rows: List[Dict[str, Any]] = []

    for page in range(1, max(max_pages, 0) + 1):
        payload = build_request_payload(filters, page=page)
        logger.debug("USAspending request payload: %s", payload)
        results = _post_page(sess, url, payload, timeout)
        if results is None:
            break
        rows.extend(results)
        logger.info("Fetched %d awards from USAspending (page %d)", len(results), page)
        if len(results) < PAGE_LIMIT:
            break
        if page < max_pages:
            sleep(page_delay)

    return rows


def probe_award_count(
    filters: SearchFilters,
    session: Optional[requests.Session] = None,
    url: str = BASE_URL,
    timeout: float = 5.0,
) -> Optional[int]:
    """Number of rows on the first 100-row page, or ``None`` if the probe failed."""
    sess = session or requests.Session()
    payload = build_request_payload(filters, page=1, fields=PROBE_FIELDS)
    results = _post_page(sess, url, payload, timeout)
    return None if results is None else len(results)


__all__ = [
    "AWARD_TYPE_CODES",
    "AwardRecord",
    "BASE_URL",
    "FALLBACK_MAX_PAGES",
    "LocationFilter",
    "PAGE_LIMIT",
    "PROBE_FIELDS",
    "SEARCH_FIELDS",
    "SearchFilters",
    "TimePeriod",
    "adapt_award_record",
    "adapt_award_records",
    "build_request_payload",
    "coerce_amount",
    "coerce_offers",
    "fetch_award_pages",
    "probe_award_count",
]
