"""Per-office spending buckets and competition percentiles."""
from __future__ import annotations

import math
from functools import cmp_to_key
from typing import Any, Dict, Iterable, List, Optional

from pydantic import BaseModel, Field

from backend.analysis.criteria import is_set_aside_marker
from backend.analysis.normalizer import NameNormalizer
from backend.connectors.usaspending import AwardRecord
from backend.reference.store import ReferenceStore

UNKNOWN_AGENCY = "Unknown Agency"
MAX_OFFICES = 50
SET_ASIDE_TIE_DOLLARS = 1000.0


class OfficeAggregate(BaseModel):
    agency_id: str
    agency_code: str = ""
    sub_agency_code: str = ""
    searchable_office_code: str = ""
    contracting_office: str
    agency_name: str
    parent_agency: str
    location: Optional[str] = None
    city: Optional[str] = None
    primary_place_of_performance: Optional[str] = None
    total_spending: float = 0.0
    set_aside_spending: float = 0.0
    contract_count: int = 0
    set_aside_contract_count: int = 0
    total_offers: int = 0
    offers_data: List[int] = Field(default_factory=list)
    bids_per_contract_5th: Optional[int] = None
    bids_per_contract_avg: Optional[float] = None
    bids_per_contract_95th: Optional[int] = None

    def to_output(self) -> Dict[str, Any]:
        return self.dict(exclude={"offers_data", "total_offers"})


def office_key(office_id: str, sub_agency: str, office: str) -> str:
    return f"{office_id}|{sub_agency}|{office}"


def _fold(bucket: OfficeAggregate, record: AwardRecord, set_aside: bool) -> None:
    bucket.total_spending += record.award_amount
    bucket.contract_count += 1
    if record.offers is not None and record.offers > 0:
        bucket.total_offers += record.offers
        bucket.offers_data.append(record.offers)
    if set_aside:
        bucket.set_aside_spending += record.award_amount
        bucket.set_aside_contract_count += 1


def compute_percentiles(bucket: OfficeAggregate) -> None:
    """Fill the 5th/avg/95th bids-per-contract fields from the offer samples."""
    samples = sorted(bucket.offers_data)
    bucket.offers_data = samples
    n = len(samples)
    if n == 0:
        bucket.bids_per_contract_5th = None
        bucket.bids_per_contract_avg = None
        bucket.bids_per_contract_95th = None
        return
    index5 = max(0, math.floor(n * 0.05))
    index95 = min(n - 1, math.floor(n * 0.95))
    bucket.bids_per_contract_5th = samples[index5]
    bucket.bids_per_contract_avg = round(bucket.total_offers / n, 1)
    bucket.bids_per_contract_95th = samples[index95]


def aggregate_awards(
    records: Iterable[AwardRecord],
    set_aside_filtered: bool,
    normalizer: NameNormalizer,
    store: ReferenceStore,
) -> Dict[str, OfficeAggregate]:
    """Fold award records into one bucket per contracting office.

    A record counts toward set-aside totals when the whole search was filtered
    by set-aside, or when the record itself carries a set-aside type.
    """
    buckets: Dict[str, OfficeAggregate] = {}

    for record in records:
        agency = record.awarding_agency or UNKNOWN_AGENCY
        sub_agency = normalizer.normalize(record.awarding_sub_agency or agency) or agency
        office = normalizer.normalize(record.awarding_office or record.awarding_sub_agency or agency) or sub_agency
        office_id = record.agency_slug or record.awarding_agency_id or agency
        key = office_key(office_id, sub_agency, office)

        bucket = buckets.get(key)
        if bucket is None:
            bucket = OfficeAggregate(
                agency_id=office_id,
                agency_code=record.awarding_agency_code or "",
                sub_agency_code=record.awarding_sub_agency_code or "",
                searchable_office_code=record.awarding_sub_agency_code or record.awarding_agency_code or "",
                contracting_office=office,
                agency_name=sub_agency,
                parent_agency=agency,
                location=record.state_code,
                city=record.city_code,
                primary_place_of_performance=record.primary_place,
            )
            buckets[key] = bucket

        set_aside = set_aside_filtered or is_set_aside_marker(record.set_aside_type, store)
        _fold(bucket, record, set_aside)

    for bucket in buckets.values():
        compute_percentiles(bucket)
    return buckets


def _rank_key(a: OfficeAggregate, b: OfficeAggregate) -> int:
    if abs(b.set_aside_spending - a.set_aside_spending) > SET_ASIDE_TIE_DOLLARS:
        return -1 if a.set_aside_spending > b.set_aside_spending else 1
    if a.total_spending == b.total_spending:
        return 0
    return -1 if a.total_spending > b.total_spending else 1


def rank_offices(buckets: Iterable[OfficeAggregate], limit: int = MAX_OFFICES) -> List[OfficeAggregate]:
    """Set-aside spending desc; within $1,000 of each other, total spending desc."""
    return sorted(buckets, key=cmp_to_key(_rank_key))[:limit]


def apply_display_names(offices: List[OfficeAggregate], normalizer: NameNormalizer) -> List[OfficeAggregate]:
    """Swap in office-id names and USACE district names after ranking."""
    for office in offices:
        looked_up = normalizer.lookup_office_name(office.agency_id, office.agency_name)
        if looked_up and looked_up != office.agency_name and len(looked_up) > 3:
            office.agency_name = looked_up
        district = normalizer.usace_district_name(office.agency_name, office.city)
        if district:
            office.agency_name = district
    return offices


__all__ = [
    "MAX_OFFICES",
    "OfficeAggregate",
    "UNKNOWN_AGENCY",
    "aggregate_awards",
    "apply_display_names",
    "compute_percentiles",
    "office_key",
    "rank_offices",
]
