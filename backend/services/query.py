"""Caller search criteria and their translation into USAspending filters."""
from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional

from pydantic import BaseModel

from backend.analysis.criteria import resolve_business_type, resolve_veteran_status, set_aside_codes
from backend.analysis.locations import location_filter, state_from_zip, validate_zip
from backend.analysis.naics import NaicsFilter, resolve_naics_filter
from backend.connectors.usaspending import LocationFilter, SearchFilters, TimePeriod
from backend.reference.store import ReferenceStore
from backend.settings import Settings

DEFAULT_MAX_PAGES = 10


class SearchCriteria(BaseModel):
    business_type: Optional[str] = None
    naics_code: Optional[str] = None
    zip_code: Optional[str] = None
    veteran_status: Optional[str] = None
    goods_or_services: Optional[str] = None

    def has_filters(self) -> bool:
        return any(
            value and value.strip()
            for value in (self.naics_code, self.business_type, self.veteran_status, self.zip_code)
        )


@dataclass(frozen=True)
class CompiledQuery:
    criteria: SearchCriteria
    filters: SearchFilters
    naics: Optional[NaicsFilter]
    set_aside_codes: List[str]
    state: Optional[str]

    @property
    def location_applied(self) -> bool:
        return self.filters.place_of_performance_locations is not None

    @property
    def filter_count(self) -> int:
        return sum((self.naics is not None, bool(self.set_aside_codes), bool(self.criteria.zip_code)))

    @property
    def max_pages(self) -> int:
        """Page budget grows with the number of narrowing filters."""
        if self.filter_count >= 3:
            return 50
        if self.filter_count == 2:
            return 25
        return DEFAULT_MAX_PAGES


def compile_query(criteria: SearchCriteria, store: ReferenceStore, settings: Settings) -> CompiledQuery:
    """Validate ``criteria`` and build the request filters.

    Raises :class:`InvalidSearchCriteria` for values that can never match.
    The returned criteria carry canonical business-type and veteran labels.
    """
    business_type = resolve_business_type(criteria.business_type, store)
    veteran_status = resolve_veteran_status(criteria.veteran_status, store)
    naics = resolve_naics_filter(criteria.naics_code, store)
    zip_code = validate_zip(criteria.zip_code)

    codes = set_aside_codes(business_type, veteran_status, store)
    locations = location_filter(zip_code, store)

    filters = SearchFilters(
        time_period=[TimePeriod(start_date=settings.search_start_date, end_date=settings.search_end_date)],
        naics_codes=list(naics.codes) if naics else None,
        set_aside_type_codes=codes or None,
        place_of_performance_locations=[LocationFilter(**loc) for loc in locations] if locations else None,
    )
    resolved = criteria.copy(
        update={
            "business_type": business_type,
            "veteran_status": veteran_status,
            "naics_code": naics.original if naics else None,
            "zip_code": zip_code,
        }
    )
    return CompiledQuery(
        criteria=resolved,
        filters=filters,
        naics=naics,
        set_aside_codes=codes,
        state=state_from_zip(zip_code, store),
    )


__all__ = ["CompiledQuery", "DEFAULT_MAX_PAGES", "SearchCriteria", "compile_query"]
